"""BalanceRepository: concrete implementation of BalanceRepositoryProtocol.

The balance increment is a single atomic upsert: the row lock taken by the
UPDATE branch serialises concurrent credits to the same user, so two positions
completing at once never lose an update.

Transaction ownership: The CALLER (distribution engine / completion handler) is
responsible for committing or rolling back; credit() and the transaction row it
appends always land in the caller's transaction together.
"""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.pa_balance.domain.models import Balance, Transaction
from src.pa_common.enums import ReferenceType, TransactionType
from src.pa_common.errors import InternalError, InvalidAmountError

_CREDIT_SQL = text("""
    INSERT INTO balances (user_id, total_balance, version)
    VALUES (:user_id, :amount, 1)
    ON CONFLICT (user_id) DO UPDATE
        SET total_balance = balances.total_balance + EXCLUDED.total_balance,
            version = balances.version + 1,
            updated_at = NOW()
    RETURNING user_id, total_balance, version, created_at, updated_at
""")

_INSERT_TRANSACTION_SQL = text("""
    INSERT INTO transactions
        (user_id, transaction_type, amount, balance_after,
         reference_type, reference_id, description)
    VALUES
        (:user_id, :transaction_type, :amount, :balance_after,
         :reference_type, :reference_id, :description)
    RETURNING id, user_id, transaction_type, amount, balance_after,
              reference_type, reference_id, description, created_at
""")

_GET_BALANCE_SQL = text("""
    SELECT user_id, total_balance, version, created_at, updated_at
    FROM balances
    WHERE user_id = :user_id
""")

_SUM_TRANSACTIONS_SQL = text("""
    SELECT COALESCE(SUM(amount), 0)
    FROM transactions
    WHERE user_id = :user_id
""")


def _row_to_balance(row: object) -> Balance:
    return Balance(
        user_id=row.user_id,  # type: ignore[attr-defined]
        total_balance=row.total_balance,  # type: ignore[attr-defined]
        version=row.version,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


def _row_to_transaction(row: object) -> Transaction:
    return Transaction(
        id=row.id,  # type: ignore[attr-defined]
        user_id=row.user_id,  # type: ignore[attr-defined]
        transaction_type=row.transaction_type,  # type: ignore[attr-defined]
        amount=row.amount,  # type: ignore[attr-defined]
        balance_after=row.balance_after,  # type: ignore[attr-defined]
        reference_type=row.reference_type,  # type: ignore[attr-defined]
        reference_id=row.reference_id,  # type: ignore[attr-defined]
        description=row.description,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


class BalanceRepository:
    """Concrete repository: all operations atomic at the SQL level."""

    async def get_balance(self, db: AsyncSession, user_id: str) -> Balance | None:
        result = await db.execute(_GET_BALANCE_SQL, {"user_id": user_id})
        row = result.fetchone()
        return _row_to_balance(row) if row else None

    async def credit(
        self,
        db: AsyncSession,
        user_id: str,
        amount: int,
        transaction_type: TransactionType,
        reference_type: ReferenceType,
        reference_id: str,
        description: str,
    ) -> tuple[Balance, Transaction]:
        if amount <= 0:
            raise InvalidAmountError(amount)
        result = await db.execute(_CREDIT_SQL, {"user_id": user_id, "amount": amount})
        row = result.fetchone()
        if row is None:
            raise InternalError(f"Balance upsert returned no rows for user {user_id}")
        balance = _row_to_balance(row)
        tx_result = await db.execute(
            _INSERT_TRANSACTION_SQL,
            {
                "user_id": user_id,
                "transaction_type": transaction_type.value,
                "amount": amount,
                "balance_after": balance.total_balance,
                "reference_type": reference_type.value,
                "reference_id": reference_id,
                "description": description,
            },
        )
        tx_row = tx_result.fetchone()
        if tx_row is None:
            raise InternalError("Transaction insert returned no rows")
        return balance, _row_to_transaction(tx_row)

    async def sum_transactions(self, db: AsyncSession, user_id: str) -> int:
        result = await db.execute(_SUM_TRANSACTIONS_SQL, {"user_id": user_id})
        return int(result.scalar_one())
