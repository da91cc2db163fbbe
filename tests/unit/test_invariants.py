# tests/unit/test_invariants.py
"""Unit tests for the position ledger audit and balance conservation audit."""
from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.pa_balance.domain.reconciliation import verify_balance_conservation
from src.pa_distribution.domain.invariants import check_position_row, verify_position_ledger


def _ledger_row(**kwargs: Any) -> SimpleNamespace:
    defaults: dict[str, Any] = {
        "id": "POS-1",
        "status": "ACTIVE",
        "total_profit": 4500,
        "duration_periods": 30,
        "periods": 3,
        "record_profit": 4500,
        "min_period": 1,
        "max_period": 3,
        "capital_returned": False,
    }
    defaults.update(kwargs)
    return SimpleNamespace(**defaults)


def _fetchall(rows: list[Any]) -> MagicMock:
    result = MagicMock()
    result.fetchall.return_value = rows
    return result


class TestCheckPositionRow:
    def test_healthy_active_position(self) -> None:
        assert check_position_row(_ledger_row()) == []

    def test_fresh_position_without_records(self) -> None:
        row = _ledger_row(total_profit=0, periods=0, record_profit=0, min_period=0, max_period=0)
        assert check_position_row(row) == []

    def test_profit_cache_drift(self) -> None:
        violations = check_position_row(_ledger_row(total_profit=6000))
        assert len(violations) == 1
        assert "INV-P1" in violations[0]

    def test_gap_in_periods(self) -> None:
        violations = check_position_row(_ledger_row(periods=2, max_period=3))
        assert any("not contiguous" in v for v in violations)

    def test_period_beyond_duration(self) -> None:
        row = _ledger_row(duration_periods=2)
        assert any("beyond duration" in v for v in check_position_row(row))

    def test_completed_with_capital_and_all_periods(self) -> None:
        row = _ledger_row(
            status="COMPLETED", duration_periods=3, capital_returned=True
        )
        assert check_position_row(row) == []

    def test_completed_without_capital_return(self) -> None:
        row = _ledger_row(status="COMPLETED", duration_periods=3)
        assert any("INV-P3" in v for v in check_position_row(row))

    def test_capital_returned_while_active(self) -> None:
        row = _ledger_row(capital_returned=True)
        assert any("INV-P3" in v for v in check_position_row(row))

    def test_completed_early(self) -> None:
        row = _ledger_row(status="COMPLETED", capital_returned=True)
        violations = check_position_row(row)
        assert any("completed with 3/30" in v for v in violations)

    def test_missing_plan_skips_duration_checks(self) -> None:
        assert check_position_row(_ledger_row(duration_periods=None)) == []


class TestVerifyPositionLedger:
    @pytest.mark.asyncio
    async def test_collects_violations_across_rows(self) -> None:
        db = AsyncMock()
        db.execute.return_value = _fetchall(
            [_ledger_row(), _ledger_row(id="POS-2", total_profit=1)]
        )
        violations = await verify_position_ledger(db)
        assert len(violations) == 1
        assert "POS-2" in violations[0]

    @pytest.mark.asyncio
    async def test_passes_position_filter(self) -> None:
        db = AsyncMock()
        db.execute.return_value = _fetchall([])
        assert await verify_position_ledger(db, "POS-9") == []
        assert db.execute.await_args.args[1] == {"position_id": "POS-9"}


class TestVerifyBalanceConservation:
    @pytest.mark.asyncio
    async def test_balanced_returns_empty(self) -> None:
        db = AsyncMock()
        db.execute.side_effect = [_fetchall([]), _fetchall([])]
        assert await verify_balance_conservation(db) == []

    @pytest.mark.asyncio
    async def test_mismatch_reported(self) -> None:
        db = AsyncMock()
        mismatch = SimpleNamespace(user_id="user-1", total_balance=10_080, tx_sum=10_060)
        db.execute.side_effect = [_fetchall([mismatch]), _fetchall([])]

        violations = await verify_balance_conservation(db, "user-1")

        assert len(violations) == 1
        assert "user-1" in violations[0]
        assert "10080" in violations[0]

    @pytest.mark.asyncio
    async def test_transactions_without_balance_reported(self) -> None:
        db = AsyncMock()
        orphan = SimpleNamespace(user_id="user-7", tx_sum=1500)
        db.execute.side_effect = [_fetchall([]), _fetchall([orphan])]

        violations = await verify_balance_conservation(db)

        assert violations == ["Balance missing: user=user-7 has transactions summing to 1500"]
