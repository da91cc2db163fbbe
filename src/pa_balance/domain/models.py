"""Domain models for pa_balance: pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class Balance:
    user_id: str
    total_balance: int   # cents
    version: int
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class Transaction:
    id: int                          # BIGSERIAL
    user_id: str
    transaction_type: str            # TransactionType value
    amount: int                      # cents, positive=credit negative=debit
    balance_after: int               # cents, total_balance snapshot after op
    reference_type: str | None = None
    reference_id: str | None = None
    description: str | None = None
    created_at: datetime | None = None
