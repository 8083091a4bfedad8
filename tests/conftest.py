"""Mini README: Shared pytest fixtures for the donation ledger tests.

Structure:
    * TickingClock - deterministic clock advancing one second per call.
    * storage - parametrised over the in-memory and SQLite backends.
    * core / admin / manager / collector - a ledger with one user per role.
    * seed_book - factory creating a task plus a receipt book.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable, Iterator

import pytest

from donation_ledger import Actor, LedgerCore
from donation_ledger.domain import ReceiptBook, Role, User
from donation_ledger.storage import InMemoryStorage, SqliteStorage, StorageBackend


class TickingClock:
    """Clock returning strictly increasing UTC timestamps."""

    def __init__(self, start: datetime = datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)) -> None:
        self.current = start

    def __call__(self) -> datetime:
        self.current += timedelta(seconds=1)
        return self.current


@pytest.fixture
def clock() -> TickingClock:
    return TickingClock()


@pytest.fixture(params=["memory", "sqlite"])
def storage(request: pytest.FixtureRequest, tmp_path) -> Iterator[StorageBackend]:
    if request.param == "memory":
        backend: StorageBackend = InMemoryStorage()
    else:
        backend = SqliteStorage(tmp_path / "ledger.db")
    yield backend
    backend.close()


@pytest.fixture
def core(storage: StorageBackend, clock: TickingClock) -> LedgerCore:
    return LedgerCore(storage, clock=clock)


@pytest.fixture
def admin(storage: StorageBackend) -> Actor:
    user = storage.insert(
        "users",
        User(username="admin", password="digest", full_name="Site Admin", role=Role.ADMIN, id="user-admin"),
    )
    return Actor(user.id, user.role)


@pytest.fixture
def manager(core: LedgerCore, admin: Actor) -> Actor:
    user = core.create_user(admin, username="manager", password="digest", full_name="Manager", role=Role.MANAGER)
    return Actor(user.id, user.role)


@pytest.fixture
def collector(core: LedgerCore, admin: Actor) -> Actor:
    user = core.create_user(admin, username="collector", password="digest", full_name="Collector")
    return Actor(user.id, user.role)


@pytest.fixture
def seed_book(core: LedgerCore, manager: Actor) -> Callable[..., ReceiptBook]:
    """Create a task (once per name) and a receipt book covering ``start``-``end``."""

    tasks = {}

    def _create(book_number: str = "B-001", start: int = 1, end: int = 3, task: str = "Roof repair", **extra):
        if task not in tasks:
            tasks[task] = core.create_task(manager, name=task)
        return core.create_receipt_book(
            manager,
            book_number=book_number,
            task_id=tasks[task].id,
            starting_receipt_number=start,
            ending_receipt_number=end,
            **extra,
        )

    return _create
