"""Domain models for pa_position: pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal

from src.pa_common.enums import PositionKind, PositionStatus
from src.pa_common.errors import (
    InvalidPlanTermsError,
    InvalidPrincipalError,
    PlanInactiveError,
    PlanNotFoundError,
    PositionKindMismatchError,
)


@dataclass
class Plan:
    id: str
    kind: PositionKind
    name: str
    rate: Decimal                # profit per period, fraction (0.015 = 1.5%)
    duration_periods: int        # days or hours depending on kind
    min_principal: int           # cents
    max_principal: int | None    # cents, None = unbounded
    is_active: bool = True


@dataclass
class Position:
    id: str
    user_id: str
    plan_id: str
    kind: PositionKind
    principal: int               # cents
    status: PositionStatus
    start_at: datetime
    end_at: datetime | None = None
    total_profit: int = 0        # cents, cache of SUM(distribution_records.profit)
    plan: Plan | None = None     # None when the referenced plan no longer exists
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def period_length(self) -> timedelta:
        return self.kind.period_length

    @property
    def is_active(self) -> bool:
        return self.status is PositionStatus.ACTIVE

    def validated_plan(self) -> Plan:
        """Return the plan or raise a DataIntegrityError; never repairs anything."""
        if self.principal <= 0:
            raise InvalidPrincipalError(self.id, self.principal)
        plan = self.plan
        if plan is None:
            raise PlanNotFoundError(self.id, self.plan_id)
        if not plan.is_active:
            raise PlanInactiveError(self.id, plan.id)
        if plan.kind is not self.kind:
            raise PositionKindMismatchError(self.id, self.kind.value, plan.kind.value)
        if plan.rate <= 0:
            raise InvalidPlanTermsError(plan.id, f"rate must be positive, got {plan.rate}")
        if plan.duration_periods <= 0:
            raise InvalidPlanTermsError(
                plan.id, f"duration must be positive, got {plan.duration_periods}"
            )
        return plan
