"""Distribution Engine: credits every missing period of one position.

Each period is its own database transaction:
  1. SELECT ... FOR UPDATE the position row; stop if it is no longer ACTIVE
  2. INSERT the distribution record (ON CONFLICT DO NOTHING)
  3. only if inserted: credit the balance (PROFIT_CREDIT transaction)
  4. only if inserted: bump positions.total_profit
  5. COMMIT

Periods run oldest first, so a failure at period k leaves 1..k-1 committed and
the next run resumes at k without ever leaving a gap.
"""
import logging
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from src.pa_balance.domain.repository import BalanceRepositoryProtocol
from src.pa_balance.infrastructure.persistence import BalanceRepository
from src.pa_common.cents import profit_for_period
from src.pa_common.enums import PositionKind, ReferenceType, TransactionType
from src.pa_common.errors import PositionNotActiveError
from src.pa_distribution.domain.models import DistributionRecord, DistributionResult
from src.pa_distribution.domain.periods import elapsed_periods, missing_periods
from src.pa_distribution.domain.repository import DistributionRepositoryProtocol
from src.pa_distribution.infrastructure.persistence import DistributionRepository
from src.pa_position.domain.models import Plan, Position
from src.pa_position.domain.repository import PositionRepositoryProtocol
from src.pa_position.infrastructure.persistence import PositionRepository

logger = logging.getLogger(__name__)

_KIND_LABELS = {
    PositionKind.DAILY_INVESTMENT: ("Daily investment profit", "day"),
    PositionKind.HOURLY_LIVE_TRADE: ("Live trade hourly profit", "hour"),
}


class DistributionEngine:
    def __init__(
        self,
        position_repo: PositionRepositoryProtocol | None = None,
        distribution_repo: DistributionRepositoryProtocol | None = None,
        balance_repo: BalanceRepositoryProtocol | None = None,
    ) -> None:
        self._positions: PositionRepositoryProtocol = position_repo or PositionRepository()
        self._distributions: DistributionRepositoryProtocol = (
            distribution_repo or DistributionRepository()
        )
        self._balances: BalanceRepositoryProtocol = balance_repo or BalanceRepository()

    async def distribute_position(
        self, db: AsyncSession, position: Position, now: datetime
    ) -> DistributionResult:
        """Distribute all periods elapsed by `now` that have no record yet.

        Raises PositionNotActiveError if the given snapshot is not ACTIVE and a
        DataIntegrityError subclass if its plan cannot be trusted.
        """
        if not position.is_active:
            raise PositionNotActiveError(position.id, position.status.value)
        plan = position.validated_plan()

        result = DistributionResult(position_id=position.id)
        elapsed = elapsed_periods(
            position.start_at, now, position.period_length, plan.duration_periods
        )
        recorded = await self._distributions.list_period_numbers(db, position.id)
        missing = missing_periods(elapsed, recorded)
        if not missing:
            await db.commit()  # end the read-only transaction
            return result

        for period in missing:
            try:
                locked = await self._positions.lock_position(db, position.id)
                if locked is None or not locked.is_active:
                    await db.rollback()
                    logger.info(
                        "Position %s left ACTIVE during distribution; stopping at period %d",
                        position.id,
                        period,
                    )
                    break
                record = await self.distribute_period(
                    db, locked, locked.validated_plan(), period
                )
                await db.commit()
            except Exception:
                await db.rollback()
                raise

            if record is None:
                result.periods_skipped += 1
            else:
                result.periods_distributed += 1
                result.amount_distributed += record.profit

        if result.periods_distributed:
            logger.info(
                "Distributed %d period(s), %d cents: position=%s user=%s",
                result.periods_distributed,
                result.amount_distributed,
                position.id,
                position.user_id,
            )
        return result

    async def distribute_period(
        self,
        db: AsyncSession,
        position: Position,
        plan: Plan,
        period_number: int,
    ) -> DistributionRecord | None:
        """Write one period inside the caller's transaction; caller holds the row lock.

        Returns None when the (position, period) record already exists.
        """
        profit = profit_for_period(position.principal, plan.rate)
        record = await self._distributions.insert_record(
            db, position.id, position.user_id, period_number, profit
        )
        if record is None:
            logger.debug(
                "Distribution idempotency hit: position=%s period=%d",
                position.id,
                period_number,
            )
            return None

        if profit > 0:
            label, unit = _KIND_LABELS[position.kind]
            await self._balances.credit(
                db,
                position.user_id,
                profit,
                TransactionType.PROFIT_CREDIT,
                ReferenceType.DISTRIBUTION,
                str(record.id),
                f"{label}: position {position.id}, {unit} "
                f"{period_number}/{plan.duration_periods}",
            )
            await self._positions.add_profit(db, position.id, profit)
        return record
