"""Distribution Ledger Protocol.

insert_record() and insert_capital_return() are the idempotency mechanism:
they return None instead of raising when the unique key already exists.
"""

from datetime import datetime
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.pa_common.enums import PositionKind
from src.pa_distribution.domain.models import (
    CapitalReturn,
    DistributionRecord,
    DistributionSummary,
)


class DistributionRepositoryProtocol(Protocol):
    async def list_period_numbers(
        self, db: AsyncSession, position_id: str
    ) -> list[int]: ...

    async def insert_record(
        self,
        db: AsyncSession,
        position_id: str,
        user_id: str,
        period_number: int,
        profit: int,
    ) -> DistributionRecord | None: ...

    async def insert_capital_return(
        self, db: AsyncSession, position_id: str, user_id: str, amount: int
    ) -> CapitalReturn | None: ...

    async def get_position_totals(
        self, db: AsyncSession, position_id: str
    ) -> tuple[int, int]: ...

    async def summarize(
        self, db: AsyncSession, kind: PositionKind, since: datetime
    ) -> DistributionSummary: ...
