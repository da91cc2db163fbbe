"""Balance conservation audit: total_balance == signed sum of transactions."""
import logging

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

_MISMATCH_SQL = text("""
    SELECT b.user_id,
           b.total_balance,
           COALESCE(t.tx_sum, 0) AS tx_sum
    FROM balances b
    LEFT JOIN (
        SELECT user_id, SUM(amount) AS tx_sum
        FROM transactions
        GROUP BY user_id
    ) t ON t.user_id = b.user_id
    WHERE (CAST(:user_id AS VARCHAR) IS NULL OR b.user_id = :user_id)
      AND b.total_balance <> COALESCE(t.tx_sum, 0)
    ORDER BY b.user_id
""")

_ORPHAN_TX_SQL = text("""
    SELECT t.user_id, SUM(t.amount) AS tx_sum
    FROM transactions t
    LEFT JOIN balances b ON b.user_id = t.user_id
    WHERE b.user_id IS NULL
      AND (CAST(:user_id AS VARCHAR) IS NULL OR t.user_id = :user_id)
    GROUP BY t.user_id
    ORDER BY t.user_id
""")


async def verify_balance_conservation(
    db: AsyncSession, user_id: str | None = None
) -> list[str]:
    """Return one violation string per user whose balance disagrees with its transactions."""
    violations: list[str] = []
    params = {"user_id": user_id}

    for row in (await db.execute(_MISMATCH_SQL, params)).fetchall():
        violations.append(
            f"Balance mismatch: user={row.user_id} total_balance={row.total_balance} "
            f"!= sum(transactions)={row.tx_sum}"
        )
    for row in (await db.execute(_ORPHAN_TX_SQL, params)).fetchall():
        violations.append(
            f"Balance missing: user={row.user_id} has transactions summing to {row.tx_sum}"
        )

    for msg in violations:
        logger.error(msg)
    return violations
