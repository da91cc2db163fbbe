"""Repository Protocol: dependency inversion for testability.

Unit tests inject an in-memory fake that conforms to this Protocol.
Infrastructure layer provides the real implementation.
"""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.pa_balance.domain.models import Balance, Transaction
from src.pa_common.enums import ReferenceType, TransactionType


class BalanceRepositoryProtocol(Protocol):
    async def get_balance(self, db: AsyncSession, user_id: str) -> Balance | None: ...

    async def credit(
        self,
        db: AsyncSession,
        user_id: str,
        amount: int,
        transaction_type: TransactionType,
        reference_type: ReferenceType,
        reference_id: str,
        description: str,
    ) -> tuple[Balance, Transaction]: ...

    async def sum_transactions(self, db: AsyncSession, user_id: str) -> int: ...
