"""Completion Handler: closes a position once its full duration has elapsed.

Everything happens in ONE transaction under the position row lock, so a
concurrent distribution run can neither credit a period on a completed
position nor see a half-completed one:
  1. re-check ACTIVE and elapsed >= duration on the locked row
  2. flush any missing periods through the engine
  3. verify the ledger holds exactly periods 1..duration
  4. ACTIVE -> COMPLETED, end_at = now
  5. insert the capital_returns marker; credit principal only if it was new
"""
import logging
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from src.pa_balance.domain.repository import BalanceRepositoryProtocol
from src.pa_balance.infrastructure.persistence import BalanceRepository
from src.pa_common.enums import ReferenceType, TransactionType
from src.pa_common.errors import (
    DistributionIncompleteError,
    InternalError,
    PositionNotFoundError,
)
from src.pa_distribution.domain.engine import DistributionEngine
from src.pa_distribution.domain.models import CompletionResult
from src.pa_distribution.domain.periods import elapsed_periods, missing_periods
from src.pa_distribution.domain.repository import DistributionRepositoryProtocol
from src.pa_distribution.infrastructure.persistence import DistributionRepository
from src.pa_position.domain.models import Position
from src.pa_position.domain.repository import PositionRepositoryProtocol
from src.pa_position.infrastructure.persistence import PositionRepository

logger = logging.getLogger(__name__)


class CompletionHandler:
    def __init__(
        self,
        engine: DistributionEngine | None = None,
        position_repo: PositionRepositoryProtocol | None = None,
        distribution_repo: DistributionRepositoryProtocol | None = None,
        balance_repo: BalanceRepositoryProtocol | None = None,
    ) -> None:
        self._positions: PositionRepositoryProtocol = position_repo or PositionRepository()
        self._distributions: DistributionRepositoryProtocol = (
            distribution_repo or DistributionRepository()
        )
        self._balances: BalanceRepositoryProtocol = balance_repo or BalanceRepository()
        self._engine = engine or DistributionEngine(
            self._positions, self._distributions, self._balances
        )

    async def complete_if_due(
        self, db: AsyncSession, position: Position, now: datetime
    ) -> CompletionResult:
        result = CompletionResult(position_id=position.id)
        if not position.is_active:
            return result
        plan = position.validated_plan()
        if not self._is_due(position, plan.duration_periods, now):
            return result

        try:
            locked = await self._positions.lock_position(db, position.id)
            if locked is None:
                raise PositionNotFoundError(position.id)
            if not locked.is_active:
                await db.rollback()
                logger.info(
                    "Completion skipped: position=%s already %s", locked.id, locked.status.value
                )
                return result
            plan = locked.validated_plan()
            duration = plan.duration_periods
            if not self._is_due(locked, duration, now):
                await db.rollback()
                return result

            recorded = await self._distributions.list_period_numbers(db, locked.id)
            for period in missing_periods(duration, recorded):
                record = await self._engine.distribute_period(db, locked, plan, period)
                if record is not None:
                    result.periods_flushed += 1
                    result.amount_flushed += record.profit

            final_periods = await self._distributions.list_period_numbers(db, locked.id)
            if sorted(final_periods) != list(range(1, duration + 1)):
                raise DistributionIncompleteError(locked.id, len(final_periods), duration)

            if not await self._positions.mark_completed(db, locked.id, now):
                raise InternalError(f"Position {locked.id} could not transition to COMPLETED")

            marker = await self._distributions.insert_capital_return(
                db, locked.id, locked.user_id, locked.principal
            )
            if marker is None:
                logger.warning(
                    "Capital return idempotency hit: position=%s already returned", locked.id
                )
            else:
                await self._balances.credit(
                    db,
                    locked.user_id,
                    locked.principal,
                    TransactionType.CAPITAL_RETURN,
                    ReferenceType.CAPITAL_RETURN,
                    locked.id,
                    f"Principal returned: position {locked.id} completed ({plan.name})",
                )
                result.capital_returned = locked.principal

            await db.commit()
        except Exception:
            await db.rollback()
            raise

        result.completed = True
        logger.info(
            "Position completed: position=%s user=%s capital_returned=%d flushed=%d",
            position.id,
            position.user_id,
            result.capital_returned,
            result.periods_flushed,
        )
        return result

    @staticmethod
    def _is_due(position: Position, duration: int, now: datetime) -> bool:
        elapsed = elapsed_periods(position.start_at, now, position.period_length, duration)
        return elapsed >= duration
