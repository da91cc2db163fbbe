"""Period arithmetic: pure functions, no I/O, no clock access.

Period numbers are 1-based: period k covers [start + (k-1)·L, start + k·L) and
becomes payable once now >= start + k·L.
"""

from collections.abc import Iterable
from datetime import datetime, timedelta


def elapsed_periods(
    start_at: datetime,
    now: datetime,
    period_length: timedelta,
    duration: int,
) -> int:
    """Whole periods elapsed since start_at, capped at duration, never negative.

    elapsed = min(floor((now - start_at) / period_length), duration)
    """
    if period_length <= timedelta(0):
        raise ValueError(f"period_length must be positive, got {period_length}")
    if duration < 0:
        raise ValueError(f"duration must be >= 0, got {duration}")
    delta = now - start_at
    if delta <= timedelta(0):
        # Clock skew or a position starting in the future
        return 0
    return min(delta // period_length, duration)


def missing_periods(elapsed: int, recorded: Iterable[int]) -> list[int]:
    """Period numbers in [1, elapsed] with no distribution record, oldest first."""
    already = set(recorded)
    return [period for period in range(1, elapsed + 1) if period not in already]


def period_due_at(start_at: datetime, period_length: timedelta, period_number: int) -> datetime:
    """Timestamp at which the given period becomes payable."""
    return start_at + period_length * period_number
