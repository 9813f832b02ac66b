"""
Shared fixtures.

Every test runs against a fixed clock and in-memory storage; nothing
touches the real data directory or the system time.
"""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from cashbook.audit import AuditLogger
from cashbook.models import (
    Account,
    Ledger,
    RecurrenceFrequency,
    RecurringRule,
    TransactionType,
)
from cashbook.orchestrator import AccountsManager
from cashbook.recurrence import RecurrenceEngine
from cashbook.services.storage import InMemoryAuditStorage, InMemorySnapshotStorage


class FixedClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def set_day(self, day: date) -> None:
        self.now = datetime(day.year, day.month, day.day, 12, 0, tzinfo=timezone.utc)

    def advance(self, days: int) -> None:
        self.now += timedelta(days=days)


@pytest.fixture
def now() -> datetime:
    return datetime(2026, 2, 10, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock(now) -> FixedClock:
    return FixedClock(now)


@pytest.fixture
def engine() -> RecurrenceEngine:
    return RecurrenceEngine(horizon_months=1)


@pytest.fixture
def account() -> Account:
    return Account(name="Main")


@pytest.fixture
def ledger(account) -> Ledger:
    return Ledger(account_name=account.name)


@pytest.fixture
def make_rule():
    """Build a rule with sensible defaults; override any field by keyword."""

    def _make(**overrides) -> RecurringRule:
        data = {
            "amount": Decimal("750"),
            "comment": "Rent",
            "type": TransactionType.EXPENSE,
            "frequency": RecurrenceFrequency.MONTHLY,
            "start_date": date(2026, 1, 5),
        }
        data.update(overrides)
        return RecurringRule(**data)

    return _make


@pytest.fixture
def snapshot_storage() -> InMemorySnapshotStorage:
    return InMemorySnapshotStorage()


@pytest.fixture
def audit_storage() -> InMemoryAuditStorage:
    return InMemoryAuditStorage()


@pytest.fixture
def manager(snapshot_storage, audit_storage, engine, clock) -> AccountsManager:
    """Accounts manager with one selected account called 'Main'."""
    manager = AccountsManager(
        storage=snapshot_storage,
        engine=engine,
        audit_logger=AuditLogger(audit_storage),
        clock=clock,
    )
    manager.add_account(Account(name="Main"))
    return manager
