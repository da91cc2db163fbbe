"""Batch Runner: drives distribution and completion over every ACTIVE position of a kind.

Safe to invoke repeatedly and concurrently (cron tick racing an admin trigger):
correctness comes from the per-position row lock and the uniqueness of
distribution_records / capital_returns, not from preventing overlapping runs.

Each position gets its own session, a timeout, and an error boundary; only a
failure to list positions at all propagates to the caller.
"""
import asyncio
import logging
from collections.abc import Callable
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from config.settings import settings
from src.pa_common.database import async_session_factory
from src.pa_common.datetime_utils import utc_now
from src.pa_common.enums import PositionKind
from src.pa_common.errors import DataIntegrityError
from src.pa_distribution.domain.completion import CompletionHandler
from src.pa_distribution.domain.engine import DistributionEngine
from src.pa_distribution.domain.models import BatchResult, PositionOutcome
from src.pa_position.domain.models import Position
from src.pa_position.domain.repository import PositionRepositoryProtocol
from src.pa_position.infrastructure.persistence import PositionRepository

logger = logging.getLogger(__name__)


class BatchRunner:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | Callable[[], AsyncSession] | None = None,
        position_repo: PositionRepositoryProtocol | None = None,
        engine: DistributionEngine | None = None,
        completion: CompletionHandler | None = None,
        concurrency: int | None = None,
        timeout_seconds: float | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._session_factory = session_factory or async_session_factory
        self._positions: PositionRepositoryProtocol = position_repo or PositionRepository()
        self._engine = engine or DistributionEngine(position_repo=self._positions)
        self._completion = completion or CompletionHandler(
            engine=self._engine, position_repo=self._positions
        )
        self._concurrency = max(1, concurrency or settings.BATCH_CONCURRENCY)
        self._timeout = timeout_seconds or settings.POSITION_TIMEOUT_SECONDS
        self._clock = clock

    async def run_batch(
        self, kind: PositionKind, now: datetime | None = None
    ) -> BatchResult:
        """Process every ACTIVE position of `kind` as of `now` (defaults to the clock)."""
        now = now or self._clock()
        async with self._session_factory() as db:
            positions = await self._positions.list_active_positions(db, kind)

        result = BatchResult(kind=kind, started_at=now, total_positions=len(positions))
        logger.info("Batch started: kind=%s positions=%d", kind.value, len(positions))

        semaphore = asyncio.Semaphore(self._concurrency)

        async def worker(position: Position) -> None:
            async with semaphore:
                outcome = await self._run_one(position, now)
            result.record(outcome)

        await asyncio.gather(*(worker(p) for p in positions))

        result.finished_at = self._clock()
        logger.info(
            "Batch finished: kind=%s processed=%d skipped=%d completed=%d errors=%d "
            "periods=%d amount=%d capital=%d",
            kind.value,
            result.processed,
            result.skipped,
            result.completed,
            result.errors,
            result.periods_distributed,
            result.amount_distributed,
            result.capital_returned,
        )
        return result

    async def _run_one(self, position: Position, now: datetime) -> PositionOutcome:
        """Error boundary: nothing raised here escapes the batch."""
        try:
            return await asyncio.wait_for(self._process(position, now), timeout=self._timeout)
        except DataIntegrityError as exc:
            logger.error(
                "Data integrity error, position left untouched: position=%s code=%d %s",
                position.id,
                exc.code,
                exc.message,
            )
            return PositionOutcome(position_id=position.id, error=exc.message)
        except asyncio.TimeoutError:
            logger.error(
                "Position unit of work timed out after %.1fs: position=%s",
                self._timeout,
                position.id,
            )
            return PositionOutcome(position_id=position.id, error="timeout")
        except Exception as exc:
            logger.exception("Position processing failed: position=%s", position.id)
            return PositionOutcome(position_id=position.id, error=str(exc) or type(exc).__name__)

    async def _process(self, position: Position, now: datetime) -> PositionOutcome:
        async with self._session_factory() as db:
            distribution = await self._engine.distribute_position(db, position, now)
            completion = await self._completion.complete_if_due(db, position, now)
        return PositionOutcome.from_results(distribution, completion)
