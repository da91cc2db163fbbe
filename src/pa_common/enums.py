"""Global enums: must match DB CHECK constraints exactly."""

from datetime import timedelta
from enum import Enum


class PositionKind(str, Enum):
    """Position family: decides period length and which plans apply."""
    DAILY_INVESTMENT = "DAILY_INVESTMENT"
    HOURLY_LIVE_TRADE = "HOURLY_LIVE_TRADE"

    @property
    def period_length(self) -> timedelta:
        if self is PositionKind.DAILY_INVESTMENT:
            return timedelta(days=1)
        return timedelta(hours=1)

    @classmethod
    def parse(cls, raw: str) -> "PositionKind":
        """Accept either the enum value or the trigger spelling (daily-investment)."""
        normalized = raw.strip().upper().replace("-", "_")
        try:
            return cls(normalized)
        except ValueError:
            raise ValueError(
                f"Unknown position kind {raw!r}; "
                f"expected one of {[k.cli_name for k in cls]}"
            ) from None

    @property
    def cli_name(self) -> str:
        return self.value.lower().replace("_", "-")


class PositionStatus(str, Enum):
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class TransactionType(str, Enum):
    # Written by the distribution engine
    PROFIT_CREDIT = "PROFIT_CREDIT"
    CAPITAL_RETURN = "CAPITAL_RETURN"
    # Written by external workflows (deposit/withdrawal approval, position creation)
    DEPOSIT = "DEPOSIT"
    WITHDRAWAL = "WITHDRAWAL"
    INVESTMENT_DEBIT = "INVESTMENT_DEBIT"
    ADMIN_ADJUSTMENT = "ADMIN_ADJUSTMENT"


class ReferenceType(str, Enum):
    """What a transaction's reference_id points at."""
    DISTRIBUTION = "DISTRIBUTION"
    CAPITAL_RETURN = "CAPITAL_RETURN"
