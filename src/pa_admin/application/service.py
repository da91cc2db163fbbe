"""Admin application service: manual trigger, last-run snapshots, audits."""
import logging
from typing import Any

from redis.exceptions import RedisError
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.pa_balance.domain.reconciliation import verify_balance_conservation
from src.pa_common.enums import PositionKind
from src.pa_common.errors import SnapshotStoreUnavailableError
from src.pa_common.redis_client import get_redis
from src.pa_distribution.application.batch_runner import BatchRunner
from src.pa_distribution.application.schemas import BatchResultResponse
from src.pa_distribution.domain.invariants import verify_position_ledger

logger = logging.getLogger(__name__)


def _last_run_key(kind: PositionKind) -> str:
    return f"distribution:last_run:{kind.value}"


class AdminService:
    def __init__(self, runner: BatchRunner | None = None) -> None:
        self._runner = runner or BatchRunner()

    async def run_distribution(self, kind: PositionKind) -> dict[str, Any]:
        result = await self._runner.run_batch(kind)
        response = BatchResultResponse.from_result(result)
        try:
            redis = await get_redis()
            await redis.set(
                _last_run_key(kind),
                response.model_dump_json(),
                ex=settings.LAST_RUN_TTL_SECONDS,
            )
        except RedisError:
            # The batch itself is committed; only the dashboard snapshot is lost
            logger.warning("Could not store last-run snapshot for %s", kind.value, exc_info=True)
        return response.model_dump()

    async def get_last_run(self, kind: PositionKind) -> dict[str, Any] | None:
        try:
            redis = await get_redis()
            raw = await redis.get(_last_run_key(kind))
        except RedisError as exc:
            logger.warning("Could not read last-run snapshot for %s", kind.value, exc_info=True)
            raise SnapshotStoreUnavailableError() from exc
        if raw is None:
            return None
        return BatchResultResponse.model_validate_json(raw).model_dump()

    async def audit_balances(
        self, db: AsyncSession, user_id: str | None
    ) -> dict[str, Any]:
        violations = await verify_balance_conservation(db, user_id)
        return {"ok": not violations, "violations": violations}

    async def audit_position(
        self, db: AsyncSession, position_id: str | None
    ) -> dict[str, Any]:
        violations = await verify_position_ledger(db, position_id)
        return {"ok": not violations, "violations": violations}
