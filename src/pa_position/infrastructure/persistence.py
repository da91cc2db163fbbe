"""PositionRepository: concrete implementation of PositionRepositoryProtocol.

Positions are read with a LEFT JOIN on plans so that a deleted plan shows up
as plan=None (a data-integrity error raised by the engine) instead of silently
dropping the position from the batch.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.pa_common.datetime_utils import ensure_utc
from src.pa_common.enums import PositionKind, PositionStatus
from src.pa_common.errors import InternalError
from src.pa_position.domain.models import Plan, Position

_POSITION_COLUMNS = """
    p.id, p.user_id, p.plan_id, p.kind, p.principal, p.status,
    p.start_at, p.end_at, p.total_profit, p.created_at, p.updated_at,
    pl.id AS pl_id, pl.kind AS pl_kind, pl.name AS pl_name, pl.rate AS pl_rate,
    pl.duration_periods AS pl_duration_periods,
    pl.min_principal AS pl_min_principal, pl.max_principal AS pl_max_principal,
    pl.is_active AS pl_is_active
"""

_LIST_ACTIVE_SQL = text(f"""
    SELECT {_POSITION_COLUMNS}
    FROM positions p
    LEFT JOIN plans pl ON pl.id = p.plan_id
    WHERE p.kind = :kind AND p.status = 'ACTIVE'
    ORDER BY p.start_at, p.id
""")

_GET_POSITION_SQL = text(f"""
    SELECT {_POSITION_COLUMNS}
    FROM positions p
    LEFT JOIN plans pl ON pl.id = p.plan_id
    WHERE p.id = :position_id
""")

# FOR UPDATE OF p: plans sits on the nullable side of the outer join
_LOCK_POSITION_SQL = text(f"""
    SELECT {_POSITION_COLUMNS}
    FROM positions p
    LEFT JOIN plans pl ON pl.id = p.plan_id
    WHERE p.id = :position_id
    FOR UPDATE OF p
""")

_ADD_PROFIT_SQL = text("""
    UPDATE positions
    SET total_profit = total_profit + :amount,
        updated_at = NOW()
    WHERE id = :position_id AND status = 'ACTIVE'
    RETURNING id
""")

_MARK_COMPLETED_SQL = text("""
    UPDATE positions
    SET status = 'COMPLETED',
        end_at = :end_at,
        updated_at = NOW()
    WHERE id = :position_id AND status = 'ACTIVE'
    RETURNING id
""")


def _row_to_plan(row: object) -> Plan | None:
    if row.pl_id is None:  # type: ignore[attr-defined]
        return None
    return Plan(
        id=row.pl_id,  # type: ignore[attr-defined]
        kind=PositionKind(row.pl_kind),  # type: ignore[attr-defined]
        name=row.pl_name,  # type: ignore[attr-defined]
        rate=Decimal(row.pl_rate),  # type: ignore[attr-defined]
        duration_periods=row.pl_duration_periods,  # type: ignore[attr-defined]
        min_principal=row.pl_min_principal,  # type: ignore[attr-defined]
        max_principal=row.pl_max_principal,  # type: ignore[attr-defined]
        is_active=row.pl_is_active,  # type: ignore[attr-defined]
    )


def _row_to_position(row: object) -> Position:
    end_at = row.end_at  # type: ignore[attr-defined]
    return Position(
        id=row.id,  # type: ignore[attr-defined]
        user_id=row.user_id,  # type: ignore[attr-defined]
        plan_id=row.plan_id,  # type: ignore[attr-defined]
        kind=PositionKind(row.kind),  # type: ignore[attr-defined]
        principal=row.principal,  # type: ignore[attr-defined]
        status=PositionStatus(row.status),  # type: ignore[attr-defined]
        start_at=ensure_utc(row.start_at),  # type: ignore[attr-defined]
        end_at=ensure_utc(end_at) if end_at is not None else None,
        total_profit=row.total_profit,  # type: ignore[attr-defined]
        plan=_row_to_plan(row),
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


class PositionRepository:
    """Concrete repository: raw SQL, caller owns the transaction."""

    async def list_active_positions(
        self, db: AsyncSession, kind: PositionKind
    ) -> list[Position]:
        result = await db.execute(_LIST_ACTIVE_SQL, {"kind": kind.value})
        return [_row_to_position(row) for row in result.fetchall()]

    async def get_position(
        self, db: AsyncSession, position_id: str
    ) -> Position | None:
        result = await db.execute(_GET_POSITION_SQL, {"position_id": position_id})
        row = result.fetchone()
        return _row_to_position(row) if row else None

    async def lock_position(
        self, db: AsyncSession, position_id: str
    ) -> Position | None:
        result = await db.execute(_LOCK_POSITION_SQL, {"position_id": position_id})
        row = result.fetchone()
        return _row_to_position(row) if row else None

    async def add_profit(
        self, db: AsyncSession, position_id: str, amount: int
    ) -> None:
        result = await db.execute(
            _ADD_PROFIT_SQL, {"position_id": position_id, "amount": amount}
        )
        if result.fetchone() is None:
            # Caller holds the row lock and checked ACTIVE; reaching here is a bug
            raise InternalError(f"Profit cache update matched no active position {position_id}")

    async def mark_completed(
        self, db: AsyncSession, position_id: str, end_at: datetime
    ) -> bool:
        result = await db.execute(
            _MARK_COMPLETED_SQL, {"position_id": position_id, "end_at": end_at}
        )
        return result.fetchone() is not None
