"""Position ledger audit.

Per position:
  INV-P1: positions.total_profit == SUM(distribution_records.profit)
  INV-P2: recorded periods are exactly {1..k}, k <= plan duration
  INV-P3: COMPLETED  <=> capital_returns row exists, and then k == duration
"""
import logging

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

_LEDGER_STATE_SQL = text("""
    SELECT p.id,
           p.status,
           p.total_profit,
           pl.duration_periods,
           COALESCE(d.periods, 0)    AS periods,
           COALESCE(d.profit, 0)     AS record_profit,
           COALESCE(d.min_period, 0) AS min_period,
           COALESCE(d.max_period, 0) AS max_period,
           (c.position_id IS NOT NULL) AS capital_returned
    FROM positions p
    LEFT JOIN plans pl ON pl.id = p.plan_id
    LEFT JOIN (
        SELECT position_id,
               COUNT(*)           AS periods,
               SUM(profit)        AS profit,
               MIN(period_number) AS min_period,
               MAX(period_number) AS max_period
        FROM distribution_records
        GROUP BY position_id
    ) d ON d.position_id = p.id
    LEFT JOIN capital_returns c ON c.position_id = p.id
    WHERE (CAST(:position_id AS VARCHAR) IS NULL OR p.id = :position_id)
    ORDER BY p.id
""")


def check_position_row(row: object) -> list[str]:
    """Evaluate INV-P1..P3 for one row of _LEDGER_STATE_SQL."""
    violations: list[str] = []
    pid = row.id  # type: ignore[attr-defined]
    periods = row.periods  # type: ignore[attr-defined]
    max_period = row.max_period  # type: ignore[attr-defined]
    duration = row.duration_periods  # type: ignore[attr-defined]
    status = row.status  # type: ignore[attr-defined]

    if row.total_profit != row.record_profit:  # type: ignore[attr-defined]
        violations.append(
            f"INV-P1 violated: position={pid} total_profit={row.total_profit} "  # type: ignore[attr-defined]
            f"!= sum(records)={row.record_profit}"  # type: ignore[attr-defined]
        )
    if periods and (row.min_period != 1 or max_period != periods):  # type: ignore[attr-defined]
        violations.append(
            f"INV-P2 violated: position={pid} periods not contiguous "
            f"(count={periods}, min={row.min_period}, max={max_period})"  # type: ignore[attr-defined]
        )
    if duration is not None and max_period > duration:
        violations.append(
            f"INV-P2 violated: position={pid} period {max_period} beyond duration {duration}"
        )
    if (status == "COMPLETED") != bool(row.capital_returned):  # type: ignore[attr-defined]
        violations.append(
            f"INV-P3 violated: position={pid} status={status} "
            f"capital_returned={bool(row.capital_returned)}"  # type: ignore[attr-defined]
        )
    if status == "COMPLETED" and duration is not None and periods != duration:
        violations.append(
            f"INV-P3 violated: position={pid} completed with {periods}/{duration} periods"
        )
    return violations


async def verify_position_ledger(
    db: AsyncSession, position_id: str | None = None
) -> list[str]:
    """Audit one position (or all when position_id is None). Returns violation strings."""
    rows = (await db.execute(_LEDGER_STATE_SQL, {"position_id": position_id})).fetchall()
    violations: list[str] = []
    for row in rows:
        violations.extend(check_position_row(row))
    for msg in violations:
        logger.error(msg)
    return violations
