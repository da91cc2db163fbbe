"""DistributionRepository: concrete implementation of DistributionRepositoryProtocol.

Both inserts use ON CONFLICT DO NOTHING ... RETURNING: an empty result means a
concurrent or earlier run already wrote the row, and the caller must not credit.
"""

from datetime import datetime

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.pa_common.enums import PositionKind
from src.pa_distribution.domain.models import (
    CapitalReturn,
    DistributionRecord,
    DistributionSummary,
)

_LIST_PERIODS_SQL = text("""
    SELECT period_number
    FROM distribution_records
    WHERE position_id = :position_id
    ORDER BY period_number
""")

_INSERT_RECORD_SQL = text("""
    INSERT INTO distribution_records (position_id, user_id, period_number, profit)
    VALUES (:position_id, :user_id, :period_number, :profit)
    ON CONFLICT (position_id, period_number) DO NOTHING
    RETURNING id, position_id, user_id, period_number, profit, created_at
""")

_INSERT_CAPITAL_RETURN_SQL = text("""
    INSERT INTO capital_returns (position_id, user_id, amount)
    VALUES (:position_id, :user_id, :amount)
    ON CONFLICT (position_id) DO NOTHING
    RETURNING position_id, user_id, amount, created_at
""")

_POSITION_TOTALS_SQL = text("""
    SELECT COUNT(*) AS periods, COALESCE(SUM(profit), 0) AS profit
    FROM distribution_records
    WHERE position_id = :position_id
""")

_SUMMARY_SQL = text("""
    SELECT
        COUNT(*) FILTER (WHERE status = 'ACTIVE') AS active_positions,
        COALESCE(SUM(principal) FILTER (WHERE status = 'ACTIVE'), 0) AS principal,
        COALESCE(SUM(total_profit), 0) AS total_profit
    FROM positions
    WHERE kind = :kind
""")

_RECENT_PROFIT_SQL = text("""
    SELECT COALESCE(SUM(d.profit), 0)
    FROM distribution_records d
    JOIN positions p ON p.id = d.position_id
    WHERE p.kind = :kind AND d.created_at >= :since
""")


def _row_to_record(row: object) -> DistributionRecord:
    return DistributionRecord(
        id=row.id,  # type: ignore[attr-defined]
        position_id=row.position_id,  # type: ignore[attr-defined]
        user_id=row.user_id,  # type: ignore[attr-defined]
        period_number=row.period_number,  # type: ignore[attr-defined]
        profit=row.profit,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


class DistributionRepository:
    """Concrete repository: caller owns the transaction."""

    async def list_period_numbers(
        self, db: AsyncSession, position_id: str
    ) -> list[int]:
        result = await db.execute(_LIST_PERIODS_SQL, {"position_id": position_id})
        return [row.period_number for row in result.fetchall()]

    async def insert_record(
        self,
        db: AsyncSession,
        position_id: str,
        user_id: str,
        period_number: int,
        profit: int,
    ) -> DistributionRecord | None:
        result = await db.execute(
            _INSERT_RECORD_SQL,
            {
                "position_id": position_id,
                "user_id": user_id,
                "period_number": period_number,
                "profit": profit,
            },
        )
        row = result.fetchone()
        return _row_to_record(row) if row else None

    async def insert_capital_return(
        self, db: AsyncSession, position_id: str, user_id: str, amount: int
    ) -> CapitalReturn | None:
        result = await db.execute(
            _INSERT_CAPITAL_RETURN_SQL,
            {"position_id": position_id, "user_id": user_id, "amount": amount},
        )
        row = result.fetchone()
        if row is None:
            return None
        return CapitalReturn(
            position_id=row.position_id,
            user_id=row.user_id,
            amount=row.amount,
            created_at=row.created_at,
        )

    async def get_position_totals(
        self, db: AsyncSession, position_id: str
    ) -> tuple[int, int]:
        """(recorded period count, summed profit in cents) for one position."""
        row = (
            await db.execute(_POSITION_TOTALS_SQL, {"position_id": position_id})
        ).fetchone()
        if row is None:
            return 0, 0
        return int(row.periods), int(row.profit)

    async def summarize(
        self, db: AsyncSession, kind: PositionKind, since: datetime
    ) -> DistributionSummary:
        row = (await db.execute(_SUMMARY_SQL, {"kind": kind.value})).fetchone()
        recent = (
            await db.execute(_RECENT_PROFIT_SQL, {"kind": kind.value, "since": since})
        ).scalar_one()
        return DistributionSummary(
            kind=kind,
            active_positions=int(row.active_positions) if row else 0,
            principal_under_management=int(row.principal) if row else 0,
            total_profit_distributed=int(row.total_profit) if row else 0,
            profit_last_24h=int(recent),
        )
