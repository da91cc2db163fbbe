"""Domain models for pa_distribution: pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass, field
from datetime import datetime

from src.pa_common.enums import PositionKind


@dataclass
class DistributionRecord:
    id: int                  # BIGSERIAL
    position_id: str
    user_id: str
    period_number: int       # 1-based
    profit: int              # cents
    created_at: datetime | None = None


@dataclass
class CapitalReturn:
    position_id: str
    user_id: str
    amount: int              # cents, the original principal
    created_at: datetime | None = None


@dataclass
class DistributionResult:
    position_id: str
    periods_distributed: int = 0
    amount_distributed: int = 0    # cents
    periods_skipped: int = 0       # idempotency collisions


@dataclass
class CompletionResult:
    position_id: str
    completed: bool = False
    capital_returned: int = 0      # cents; 0 when already returned earlier
    periods_flushed: int = 0
    amount_flushed: int = 0        # cents


@dataclass
class PositionOutcome:
    """What one position's unit of work did inside a batch."""
    position_id: str
    periods_distributed: int = 0
    amount_distributed: int = 0
    completed: bool = False
    capital_returned: int = 0
    idempotency_hits: int = 0    # periods another run had already written
    error: str | None = None

    @classmethod
    def from_results(
        cls, distribution: DistributionResult, completion: CompletionResult
    ) -> "PositionOutcome":
        return cls(
            position_id=distribution.position_id,
            periods_distributed=distribution.periods_distributed + completion.periods_flushed,
            amount_distributed=distribution.amount_distributed + completion.amount_flushed,
            completed=completion.completed,
            capital_returned=completion.capital_returned,
            idempotency_hits=distribution.periods_skipped,
        )


@dataclass
class BatchResult:
    kind: PositionKind
    started_at: datetime
    finished_at: datetime | None = None
    total_positions: int = 0
    processed: int = 0
    skipped: int = 0
    completed: int = 0
    errors: int = 0
    periods_distributed: int = 0
    amount_distributed: int = 0    # cents
    capital_returned: int = 0      # cents
    idempotency_hits: int = 0
    failed_position_ids: list[str] = field(default_factory=list)

    def record(self, outcome: PositionOutcome) -> None:
        if outcome.error is not None:
            self.errors += 1
            self.failed_position_ids.append(outcome.position_id)
            return
        if outcome.periods_distributed > 0:
            self.processed += 1
        else:
            self.skipped += 1
        if outcome.completed:
            self.completed += 1
        self.periods_distributed += outcome.periods_distributed
        self.amount_distributed += outcome.amount_distributed
        self.capital_returned += outcome.capital_returned
        self.idempotency_hits += outcome.idempotency_hits


@dataclass
class DistributionSummary:
    kind: PositionKind
    active_positions: int
    principal_under_management: int   # cents
    total_profit_distributed: int     # cents
    profit_last_24h: int              # cents
