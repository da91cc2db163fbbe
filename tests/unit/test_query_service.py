"""Unit tests for DistributionQueryService (progress and summary views)."""

from datetime import timedelta

import pytest

from src.pa_common.enums import PositionKind
from src.pa_common.errors import PlanNotFoundError, PositionNotFoundError
from src.pa_distribution.application.service import DistributionQueryService


def _service(ledger) -> DistributionQueryService:
    return DistributionQueryService(ledger.position_repo, ledger.distribution_repo)


class TestGetProgress:
    async def test_active_position_progress(self, ledger, days_later) -> None:
        plan = ledger.add_plan(rate="0.015", duration=30)
        ledger.add_position("POS-1", plan, principal=100_000)
        await ledger.engine().distribute_position(
            ledger.session(), ledger.snapshot("POS-1"), days_later(3)
        )

        progress = await _service(ledger).get_progress(
            ledger.session(), "POS-1", days_later(3) + timedelta(hours=5)
        )

        assert progress.elapsed_periods == 3
        assert progress.remaining_periods == 27
        assert progress.progress_percentage == 10.0
        assert progress.distributed_periods == 3
        assert progress.distributed_profit_cents == 4500
        assert progress.distributed_profit_display == "$45.00"
        assert progress.expected_total_profit_cents == 45_000
        assert progress.next_profit_due == days_later(4)
        assert not progress.is_due_for_completion

    async def test_due_for_completion(self, ledger, hours_later) -> None:
        plan = ledger.add_plan("PLAN-LIVE-4H", kind=PositionKind.HOURLY_LIVE_TRADE, rate="0.002", duration=4)
        ledger.add_position("POS-LT", plan, principal=10_000)

        progress = await _service(ledger).get_progress(ledger.session(), "POS-LT", hours_later(6))

        assert progress.elapsed_periods == 4
        assert progress.next_profit_due is None
        assert progress.is_due_for_completion

    async def test_completed_position_frozen_at_end(self, ledger, hours_later) -> None:
        plan = ledger.add_plan("PLAN-LIVE-4H", kind=PositionKind.HOURLY_LIVE_TRADE, rate="0.002", duration=4)
        ledger.add_position("POS-LT", plan, principal=10_000)
        await ledger.completion().complete_if_due(
            ledger.session(), ledger.snapshot("POS-LT"), hours_later(5)
        )

        progress = await _service(ledger).get_progress(ledger.session(), "POS-LT", hours_later(50))

        assert progress.status == "COMPLETED"
        assert progress.remaining_periods == 0
        assert progress.distributed_profit_cents == 80
        assert not progress.is_due_for_completion

    async def test_unknown_position(self, ledger) -> None:
        with pytest.raises(PositionNotFoundError):
            await _service(ledger).get_progress(ledger.session(), "POS-404")

    async def test_missing_plan(self, ledger, days_later) -> None:
        plan = ledger.add_plan()
        ledger.add_position("POS-1", plan)
        del ledger.plans[plan.id]
        with pytest.raises(PlanNotFoundError):
            await _service(ledger).get_progress(ledger.session(), "POS-1", days_later(1))


class TestGetSummary:
    async def test_summary_totals(self, ledger, days_later) -> None:
        plan = ledger.add_plan()
        ledger.add_position("POS-1", plan, principal=100_000)
        ledger.add_position("POS-2", plan, principal=50_000, user_id="user-2")
        ledger.clock = days_later(2)
        await ledger.runner().run_batch(PositionKind.DAILY_INVESTMENT, days_later(2))

        summary = await _service(ledger).get_summary(
            ledger.session(), PositionKind.DAILY_INVESTMENT, days_later(2)
        )

        assert summary.active_positions == 2
        assert summary.principal_under_management_cents == 150_000
        assert summary.total_profit_distributed_cents == 4500
        assert summary.profit_last_24h_cents == 4500
        assert summary.principal_under_management_display == "$1,500.00"
