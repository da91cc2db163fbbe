"""Position Store Protocol.

Mutations (add_profit, mark_completed) are only issued while the caller holds
the row lock taken by lock_position() in the same transaction.
"""

from datetime import datetime
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.pa_common.enums import PositionKind
from src.pa_position.domain.models import Position


class PositionRepositoryProtocol(Protocol):
    async def list_active_positions(
        self, db: AsyncSession, kind: PositionKind
    ) -> list[Position]: ...

    async def get_position(
        self, db: AsyncSession, position_id: str
    ) -> Position | None: ...

    async def lock_position(
        self, db: AsyncSession, position_id: str
    ) -> Position | None: ...

    async def add_profit(
        self, db: AsyncSession, position_id: str, amount: int
    ) -> None: ...

    async def mark_completed(
        self, db: AsyncSession, position_id: str, end_at: datetime
    ) -> bool: ...
