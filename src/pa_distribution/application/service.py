"""DistributionQueryService: read-only views over positions and the ledger.

Nothing here mutates state; reads run without an explicit transaction.
"""

from datetime import datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from src.pa_common.cents import cents_to_display, profit_for_period
from src.pa_common.datetime_utils import utc_now
from src.pa_common.enums import PositionKind
from src.pa_common.errors import PlanNotFoundError, PositionNotFoundError
from src.pa_distribution.application.schemas import (
    DistributionSummaryResponse,
    PositionProgressResponse,
)
from src.pa_distribution.domain.periods import elapsed_periods, period_due_at
from src.pa_distribution.domain.repository import DistributionRepositoryProtocol
from src.pa_distribution.infrastructure.persistence import DistributionRepository
from src.pa_position.domain.repository import PositionRepositoryProtocol
from src.pa_position.infrastructure.persistence import PositionRepository


class DistributionQueryService:
    def __init__(
        self,
        position_repo: PositionRepositoryProtocol | None = None,
        distribution_repo: DistributionRepositoryProtocol | None = None,
    ) -> None:
        self._positions: PositionRepositoryProtocol = position_repo or PositionRepository()
        self._distributions: DistributionRepositoryProtocol = (
            distribution_repo or DistributionRepository()
        )

    async def get_progress(
        self, db: AsyncSession, position_id: str, now: datetime | None = None
    ) -> PositionProgressResponse:
        now = now or utc_now()
        position = await self._positions.get_position(db, position_id)
        if position is None:
            raise PositionNotFoundError(position_id)
        plan = position.plan
        if plan is None:
            raise PlanNotFoundError(position.id, position.plan_id)

        duration = plan.duration_periods
        # A closed position stops accruing at end_at
        as_of = now if position.is_active else (position.end_at or now)
        elapsed = elapsed_periods(position.start_at, as_of, position.period_length, duration)
        periods, profit = await self._distributions.get_position_totals(db, position.id)

        next_due = None
        if position.is_active and elapsed < duration:
            next_due = period_due_at(position.start_at, position.period_length, elapsed + 1)

        return PositionProgressResponse(
            position_id=position.id,
            user_id=position.user_id,
            kind=position.kind.value,
            status=position.status.value,
            principal_cents=position.principal,
            duration_periods=duration,
            elapsed_periods=elapsed,
            remaining_periods=duration - elapsed,
            progress_percentage=round(elapsed * 100 / duration, 2) if duration else 100.0,
            distributed_periods=periods,
            distributed_profit_cents=profit,
            distributed_profit_display=cents_to_display(profit),
            expected_total_profit_cents=profit_for_period(position.principal, plan.rate) * duration,
            next_profit_due=next_due,
            is_due_for_completion=position.is_active and elapsed >= duration,
        )

    async def get_summary(
        self, db: AsyncSession, kind: PositionKind, now: datetime | None = None
    ) -> DistributionSummaryResponse:
        now = now or utc_now()
        summary = await self._distributions.summarize(db, kind, now - timedelta(hours=24))
        return DistributionSummaryResponse.from_summary(summary)
