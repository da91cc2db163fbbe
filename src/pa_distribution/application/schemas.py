"""Pydantic schemas for distribution results, progress and summaries."""

from datetime import datetime

from pydantic import BaseModel

from src.pa_common.cents import cents_to_display
from src.pa_distribution.domain.models import BatchResult, DistributionSummary


class BatchResultResponse(BaseModel):
    kind: str
    started_at: str
    finished_at: str | None
    total_positions: int
    processed: int
    skipped: int
    completed: int
    errors: int
    periods_distributed: int
    amount_distributed_cents: int
    amount_distributed_display: str
    capital_returned_cents: int
    capital_returned_display: str
    idempotency_hits: int
    failed_position_ids: list[str]

    @classmethod
    def from_result(cls, result: BatchResult) -> "BatchResultResponse":
        return cls(
            kind=result.kind.value,
            started_at=result.started_at.isoformat(),
            finished_at=result.finished_at.isoformat() if result.finished_at else None,
            total_positions=result.total_positions,
            processed=result.processed,
            skipped=result.skipped,
            completed=result.completed,
            errors=result.errors,
            periods_distributed=result.periods_distributed,
            amount_distributed_cents=result.amount_distributed,
            amount_distributed_display=cents_to_display(result.amount_distributed),
            capital_returned_cents=result.capital_returned,
            capital_returned_display=cents_to_display(result.capital_returned),
            idempotency_hits=result.idempotency_hits,
            failed_position_ids=list(result.failed_position_ids),
        )


class PositionProgressResponse(BaseModel):
    position_id: str
    user_id: str
    kind: str
    status: str
    principal_cents: int
    duration_periods: int
    elapsed_periods: int
    remaining_periods: int
    progress_percentage: float
    distributed_periods: int
    distributed_profit_cents: int
    distributed_profit_display: str
    expected_total_profit_cents: int
    next_profit_due: datetime | None
    is_due_for_completion: bool


class DistributionSummaryResponse(BaseModel):
    kind: str
    active_positions: int
    principal_under_management_cents: int
    principal_under_management_display: str
    total_profit_distributed_cents: int
    total_profit_distributed_display: str
    profit_last_24h_cents: int
    profit_last_24h_display: str

    @classmethod
    def from_summary(cls, summary: DistributionSummary) -> "DistributionSummaryResponse":
        return cls(
            kind=summary.kind.value,
            active_positions=summary.active_positions,
            principal_under_management_cents=summary.principal_under_management,
            principal_under_management_display=cents_to_display(
                summary.principal_under_management
            ),
            total_profit_distributed_cents=summary.total_profit_distributed,
            total_profit_distributed_display=cents_to_display(
                summary.total_profit_distributed
            ),
            profit_last_24h_cents=summary.profit_last_24h,
            profit_last_24h_display=cents_to_display(summary.profit_last_24h),
        )
