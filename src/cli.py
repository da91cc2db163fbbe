"""
CLI entrypoint for scheduled (cron) triggers and operator audits.

Examples:
    python -m src.cli run-batch --kind daily-investment
    python -m src.cli run-batch --kind all
    python -m src.cli audit-balances --user-id user-42
    python -m src.cli audit-positions
"""
import asyncio
import json
import logging
from collections.abc import Awaitable, Callable

import typer
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.pa_balance.domain.reconciliation import verify_balance_conservation
from src.pa_common.database import async_session_factory, engine
from src.pa_common.enums import PositionKind
from src.pa_distribution.application.batch_runner import BatchRunner
from src.pa_distribution.application.schemas import BatchResultResponse
from src.pa_distribution.domain.invariants import verify_position_ledger

app = typer.Typer(
    name="profit-accrual",
    help="Profit accrual & distribution engine",
    add_completion=False,
)

logger = logging.getLogger(__name__)


def _setup_logging() -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _kinds_for(raw: str) -> list[PositionKind]:
    if raw.strip().lower() == "all":
        return list(PositionKind)
    try:
        return [PositionKind.parse(raw)]
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from None


async def _run_batches(kinds: list[PositionKind]) -> list[PositionKind]:
    """Run each kind in turn, printing its result as soon as it finishes.

    Returns the kinds whose batch could not run.
    """
    runner = BatchRunner()
    failed: list[PositionKind] = []
    try:
        for kind in kinds:
            try:
                result = await runner.run_batch(kind)
            except Exception:
                logger.exception("Batch run failed: kind=%s", kind.value)
                failed.append(kind)
                continue
            typer.echo(json.dumps(BatchResultResponse.from_result(result).model_dump()))
    finally:
        await engine.dispose()
    return failed


async def _audit(
    check: Callable[[AsyncSession, str | None], Awaitable[list[str]]],
    target: str | None,
) -> list[str]:
    try:
        async with async_session_factory() as db:
            return await check(db, target)
    finally:
        await engine.dispose()


@app.command("run-batch")
def run_batch(
    kind: str = typer.Option(
        ..., "--kind", help="daily-investment, hourly-live-trade, or all"
    ),
):
    """Distribute due profit and complete expired positions for one or all kinds."""
    _setup_logging()
    failed = asyncio.run(_run_batches(_kinds_for(kind)))
    if failed:
        raise typer.Exit(code=1)


@app.command("audit-balances")
def audit_balances(
    user_id: str | None = typer.Option(None, "--user-id", help="Audit a single user"),
):
    """Check balances.total_balance == SUM(transactions.amount) per user."""
    _setup_logging()
    violations = asyncio.run(_audit(verify_balance_conservation, user_id))
    for line in violations:
        typer.echo(line)
    if violations:
        raise typer.Exit(code=1)
    typer.echo("OK: balances reconcile with transactions")


@app.command("audit-positions")
def audit_positions(
    position_id: str | None = typer.Option(None, "--position-id", help="Audit a single position"),
):
    """Check profit caches, period contiguity and completion markers."""
    _setup_logging()
    violations = asyncio.run(_audit(verify_position_ledger, position_id))
    for line in violations:
        typer.echo(line)
    if violations:
        raise typer.Exit(code=1)
    typer.echo("OK: position ledgers consistent")


if __name__ == "__main__":
    app()
