"""In-memory ledger fixtures for unit tests.

The fakes implement the repository Protocols against plain dicts. FakeSession
gives them the two database properties the engine relies on:
  - rollback undoes every write made since the last commit
  - lock_position() holds a per-position asyncio.Lock until commit/rollback
so concurrent batch runs interleave the way they would against PostgreSQL.
"""

import asyncio
import itertools
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any

import pytest

from src.pa_balance.domain.models import Balance, Transaction
from src.pa_common.enums import (
    PositionKind,
    PositionStatus,
    ReferenceType,
    TransactionType,
)
from src.pa_common.errors import InternalError, InvalidAmountError
from src.pa_distribution.application.batch_runner import BatchRunner
from src.pa_distribution.domain.completion import CompletionHandler
from src.pa_distribution.domain.engine import DistributionEngine
from src.pa_distribution.domain.models import (
    CapitalReturn,
    DistributionRecord,
    DistributionSummary,
)
from src.pa_position.domain.models import Plan, Position

START = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class FakeSession:
    def __init__(self) -> None:
        self.held: dict[str, asyncio.Lock] = {}
        self.commits = 0
        self.rollbacks = 0
        self._undo: list[Callable[[], None]] = []

    def on_rollback(self, undo: Callable[[], None]) -> None:
        self._undo.append(undo)

    async def commit(self) -> None:
        self.commits += 1
        self._undo.clear()
        self._release()

    async def rollback(self) -> None:
        self.rollbacks += 1
        self._discard()

    async def close(self) -> None:
        self._discard()

    def _discard(self) -> None:
        while self._undo:
            self._undo.pop()()
        self._release()

    def _release(self) -> None:
        for lock in self.held.values():
            lock.release()
        self.held.clear()

    async def __aenter__(self) -> "FakeSession":
        return self

    async def __aexit__(self, *exc: object) -> None:
        self._discard()


class FakePositionRepository:
    def __init__(self, ledger: "InMemoryLedger") -> None:
        self._ledger = ledger
        self.unreachable = False
        self.lock_delay = 0.0

    def _snapshot(self, position: Position) -> Position:
        return replace(position, plan=self._ledger.plans.get(position.plan_id))

    async def list_active_positions(
        self, db: FakeSession, kind: PositionKind
    ) -> list[Position]:
        if self.unreachable:
            raise ConnectionError("position store unreachable")
        return [
            self._snapshot(p)
            for p in self._ledger.positions.values()
            if p.kind is kind and p.is_active
        ]

    async def get_position(self, db: FakeSession, position_id: str) -> Position | None:
        position = self._ledger.positions.get(position_id)
        return self._snapshot(position) if position else None

    async def lock_position(self, db: FakeSession, position_id: str) -> Position | None:
        position = self._ledger.positions.get(position_id)
        if position is None:
            return None
        if position_id not in db.held:
            lock = self._ledger.locks.setdefault(position_id, asyncio.Lock())
            await lock.acquire()
            db.held[position_id] = lock
        await asyncio.sleep(self.lock_delay)
        return self._snapshot(position)

    async def add_profit(self, db: FakeSession, position_id: str, amount: int) -> None:
        position = self._ledger.positions[position_id]
        if not position.is_active:
            raise InternalError(f"Profit cache update matched no active position {position_id}")
        position.total_profit += amount

        def undo() -> None:
            position.total_profit -= amount

        db.on_rollback(undo)

    async def mark_completed(
        self, db: FakeSession, position_id: str, end_at: datetime
    ) -> bool:
        position = self._ledger.positions[position_id]
        if not position.is_active:
            return False
        position.status = PositionStatus.COMPLETED
        position.end_at = end_at

        def undo() -> None:
            position.status = PositionStatus.ACTIVE
            position.end_at = None

        db.on_rollback(undo)
        return True


class FakeDistributionRepository:
    def __init__(self, ledger: "InMemoryLedger") -> None:
        self._ledger = ledger
        self.fail_on: set[tuple[str, int]] = set()

    async def list_period_numbers(self, db: FakeSession, position_id: str) -> list[int]:
        return sorted(n for (pid, n) in self._ledger.records if pid == position_id)

    async def insert_record(
        self,
        db: FakeSession,
        position_id: str,
        user_id: str,
        period_number: int,
        profit: int,
    ) -> DistributionRecord | None:
        await asyncio.sleep(0)
        key = (position_id, period_number)
        if key in self.fail_on:
            raise ConnectionError(f"connection lost writing period {period_number}")
        if key in self._ledger.records:
            return None
        record = DistributionRecord(
            id=next(self._ledger.ids),
            position_id=position_id,
            user_id=user_id,
            period_number=period_number,
            profit=profit,
            created_at=self._ledger.clock,
        )
        self._ledger.records[key] = record
        db.on_rollback(lambda: self._ledger.records.pop(key, None))
        return record

    async def insert_capital_return(
        self, db: FakeSession, position_id: str, user_id: str, amount: int
    ) -> CapitalReturn | None:
        await asyncio.sleep(0)
        if position_id in self._ledger.capital_returns:
            return None
        marker = CapitalReturn(position_id=position_id, user_id=user_id, amount=amount)
        self._ledger.capital_returns[position_id] = marker
        db.on_rollback(lambda: self._ledger.capital_returns.pop(position_id, None))
        return marker

    async def get_position_totals(self, db: FakeSession, position_id: str) -> tuple[int, int]:
        records = self._ledger.records_for(position_id)
        return len(records), sum(r.profit for r in records)

    async def summarize(
        self, db: FakeSession, kind: PositionKind, since: datetime
    ) -> DistributionSummary:
        positions = [p for p in self._ledger.positions.values() if p.kind is kind]
        ids = {p.id for p in positions}
        return DistributionSummary(
            kind=kind,
            active_positions=sum(1 for p in positions if p.is_active),
            principal_under_management=sum(p.principal for p in positions if p.is_active),
            total_profit_distributed=sum(p.total_profit for p in positions),
            profit_last_24h=sum(
                r.profit
                for r in self._ledger.records.values()
                if r.position_id in ids and r.created_at is not None and r.created_at >= since
            ),
        )


class FakeBalanceRepository:
    def __init__(self, ledger: "InMemoryLedger") -> None:
        self._ledger = ledger

    async def get_balance(self, db: FakeSession, user_id: str) -> Balance | None:
        if user_id not in self._ledger.balances:
            return None
        return Balance(user_id=user_id, total_balance=self._ledger.balances[user_id], version=1)

    async def credit(
        self,
        db: FakeSession,
        user_id: str,
        amount: int,
        transaction_type: TransactionType,
        reference_type: ReferenceType,
        reference_id: str,
        description: str,
    ) -> tuple[Balance, Transaction]:
        if amount <= 0:
            raise InvalidAmountError(amount)
        balances = self._ledger.balances
        balances[user_id] = balances.get(user_id, 0) + amount
        tx = Transaction(
            id=next(self._ledger.ids),
            user_id=user_id,
            transaction_type=transaction_type.value,
            amount=amount,
            balance_after=balances[user_id],
            reference_type=reference_type.value,
            reference_id=reference_id,
            description=description,
        )
        self._ledger.transactions.append(tx)

        def undo() -> None:
            balances[user_id] -= amount
            self._ledger.transactions.remove(tx)

        db.on_rollback(undo)
        return Balance(user_id=user_id, total_balance=balances[user_id], version=1), tx

    async def sum_transactions(self, db: FakeSession, user_id: str) -> int:
        return sum(t.amount for t in self._ledger.transactions if t.user_id == user_id)


class InMemoryLedger:
    """Plans, positions, distribution ledger and balances behind fake repositories."""

    def __init__(self) -> None:
        self.plans: dict[str, Plan] = {}
        self.positions: dict[str, Position] = {}
        self.records: dict[tuple[str, int], DistributionRecord] = {}
        self.capital_returns: dict[str, CapitalReturn] = {}
        self.balances: dict[str, int] = {}
        self.transactions: list[Transaction] = []
        self.locks: dict[str, asyncio.Lock] = {}
        self.ids = itertools.count(1)
        self.clock = START
        self.sessions: list[FakeSession] = []
        self.position_repo = FakePositionRepository(self)
        self.distribution_repo = FakeDistributionRepository(self)
        self.balance_repo = FakeBalanceRepository(self)

    # --- seeding ---

    def add_plan(
        self,
        plan_id: str = "PLAN-STARTER-30D",
        kind: PositionKind = PositionKind.DAILY_INVESTMENT,
        rate: str = "0.015",
        duration: int = 30,
        is_active: bool = True,
    ) -> Plan:
        plan = Plan(
            id=plan_id,
            kind=kind,
            name=plan_id.title(),
            rate=Decimal(rate),
            duration_periods=duration,
            min_principal=1,
            max_principal=None,
            is_active=is_active,
        )
        self.plans[plan_id] = plan
        return plan

    def add_position(
        self,
        position_id: str,
        plan: Plan,
        principal: int = 100_000,
        start_at: datetime = START,
        user_id: str = "user-1",
        status: PositionStatus = PositionStatus.ACTIVE,
    ) -> Position:
        position = Position(
            id=position_id,
            user_id=user_id,
            plan_id=plan.id,
            kind=plan.kind,
            principal=principal,
            status=status,
            start_at=start_at,
        )
        self.positions[position_id] = position
        return position

    # --- wiring ---

    def session(self) -> FakeSession:
        db = FakeSession()
        self.sessions.append(db)
        return db

    def snapshot(self, position_id: str) -> Position:
        return self.position_repo._snapshot(self.positions[position_id])

    def engine(self) -> DistributionEngine:
        return DistributionEngine(self.position_repo, self.distribution_repo, self.balance_repo)

    def completion(self, engine: DistributionEngine | None = None) -> CompletionHandler:
        return CompletionHandler(
            engine or self.engine(),
            self.position_repo,
            self.distribution_repo,
            self.balance_repo,
        )

    def runner(self, **kwargs: Any) -> BatchRunner:
        engine = self.engine()
        kwargs.setdefault("concurrency", 4)
        kwargs.setdefault("timeout_seconds", 5.0)
        return BatchRunner(
            session_factory=self.session,
            position_repo=self.position_repo,
            engine=engine,
            completion=self.completion(engine),
            **kwargs,
        )

    # --- inspection ---

    def records_for(self, position_id: str) -> list[DistributionRecord]:
        return sorted(
            (r for r in self.records.values() if r.position_id == position_id),
            key=lambda r: r.period_number,
        )

    def balance_of(self, user_id: str) -> int:
        return self.balances.get(user_id, 0)

    def transactions_for(self, user_id: str, tx_type: TransactionType | None = None) -> list[Transaction]:
        return [
            t
            for t in self.transactions
            if t.user_id == user_id and (tx_type is None or t.transaction_type == tx_type.value)
        ]

    def conservation_holds(self) -> bool:
        """Balances match their transactions and profit caches match their records."""
        for user_id, total in self.balances.items():
            if total != sum(t.amount for t in self.transactions if t.user_id == user_id):
                return False
        for position in self.positions.values():
            if position.total_profit != sum(r.profit for r in self.records_for(position.id)):
                return False
        return True


@pytest.fixture
def ledger() -> InMemoryLedger:
    return InMemoryLedger()


@pytest.fixture
def hours_later() -> Callable[[int], datetime]:
    return lambda n: START + timedelta(hours=n)


@pytest.fixture
def days_later() -> Callable[[int], datetime]:
    return lambda n: START + timedelta(days=n)


@pytest.fixture
def start_at() -> datetime:
    return START
