"""Integer arithmetic utilities for cents-based balances.

All principals, profits and balances are int (cents). Rates are Decimal
fractions per period; the only rounding step is profit_for_period().
"""

from decimal import ROUND_HALF_UP, Decimal


def cents_to_display(cents: int) -> str:
    """Convert cents to display string: 6500 -> '$65.00', -1200 -> '-$12.00'."""
    if cents < 0:
        abs_cents = -cents
        return f"-${abs_cents // 100:,}.{abs_cents % 100:02d}"
    return f"${cents // 100:,}.{cents % 100:02d}"


def profit_for_period(principal_cents: int, rate: Decimal) -> int:
    """One period's profit in cents: principal × rate, rounded half-up to the cent.

    100000 cents at 0.015 -> 1500; 10000 cents at 0.002 -> 20.
    """
    exact = Decimal(principal_cents) * Decimal(rate)
    return int(exact.quantize(Decimal(1), rounding=ROUND_HALF_UP))
