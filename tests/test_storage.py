"""Mini README: Tests shared by every storage backend.

Each test runs once against the in-memory backend and once against SQLite
through the parametrised ``storage`` fixture, so both enforce the same keys,
references and error types.
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from donation_ledger.configuration import LedgerSettings
from donation_ledger.domain import Dataset, Receipt, ReceiptBook, Task, User
from donation_ledger.errors import (
    DanglingReferenceError,
    DuplicateKeyError,
    DuplicateNumberError,
    NotFoundError,
    ReferenceInUseError,
)
from donation_ledger.storage import BACKENDS, DELETE_ORDER, INSERT_ORDER, InMemoryStorage, SqliteStorage


def _seed(storage):
    user = storage.insert("users", User(username="ada", password="digest", full_name="Ada", id="u1"))
    task = storage.insert("tasks", Task(name="Roof", created_by=user.id, id="t1"))
    book = storage.insert(
        "receipt_books",
        ReceiptBook(
            book_number="B-1",
            task_id=task.id,
            starting_receipt_number=1,
            ending_receipt_number=5,
            created_by=user.id,
            assigned_to=None,
            id="b1",
        ),
    )
    return user, task, book


def _receipt(number: int, receipt_id: str) -> Receipt:
    return Receipt(
        receipt_number=number,
        receipt_book_id="b1",
        task_id="t1",
        giver_name="Giver",
        address="Street",
        amount="12.50",
        entered_by="u1",
        id=receipt_id,
    )


def test_insert_get_and_filter(storage) -> None:
    """Stored records come back with their values and filters apply."""

    _seed(storage)
    storage.insert("receipts", _receipt(2, "r1"))

    stored = storage.get("receipts", "r1")
    assert stored.amount == Decimal("12.50")
    assert storage.get("receipts", "missing") is None
    assert [book.id for book in storage.list("receipt_books", assigned_to=None)] == ["b1"]
    assert storage.used_receipt_numbers("b1") == {2}
    assert storage.get("receipt_books", "b1").total_receipts == 5


def test_unique_keys(storage) -> None:
    """Duplicate receipt numbers, usernames and ids are refused."""

    _seed(storage)
    storage.insert("receipts", _receipt(1, "r1"))

    with pytest.raises(DuplicateNumberError):
        storage.insert("receipts", _receipt(1, "r2"))
    with pytest.raises(DuplicateKeyError):
        storage.insert("users", User(username="ada", password="x", full_name="Other"))
    with pytest.raises(DuplicateKeyError):
        storage.insert("receipts", _receipt(3, "r1"))


def test_dangling_reference_rejected(storage) -> None:
    """A receipt pointing at a missing book is never stored."""

    _seed(storage)
    orphan = Receipt(
        receipt_number=1,
        receipt_book_id="no-such-book",
        task_id="t1",
        giver_name="Giver",
        address="Street",
        amount="1",
        entered_by="u1",
    )
    with pytest.raises(DanglingReferenceError):
        storage.insert("receipts", orphan)
    assert storage.list("receipts") == []


def test_delete_respects_references(storage) -> None:
    """Rows stay while other rows still point at them."""

    _seed(storage)
    storage.insert("receipts", _receipt(1, "r1"))

    with pytest.raises(ReferenceInUseError):
        storage.delete("receipt_books", "b1")
    storage.delete("receipts", "r1")
    storage.delete("receipt_books", "b1")
    with pytest.raises(NotFoundError):
        storage.delete("receipt_books", "b1")


def test_update_missing_record(storage) -> None:
    """Updating an unknown id raises NotFoundError."""

    with pytest.raises(NotFoundError):
        storage.update("users", User(username="ghost", password="x", full_name="Ghost"))


def test_unknown_filter_field(storage) -> None:
    """Filtering on a column the table lacks is a caller error."""

    with pytest.raises(ValueError):
        storage.list("receipts", colour="red")


def test_dump_and_replace_all(storage) -> None:
    """A dump restores to the identical dataset."""

    _seed(storage)
    storage.insert("receipts", _receipt(4, "r1"))
    dataset = storage.dump()
    assert dataset.counts()["receipts"] == 1

    storage.replace_all(Dataset())
    assert storage.list("users") == []

    storage.replace_all(dataset)
    assert storage.dump() == dataset


def test_table_orders_follow_dataset_fields() -> None:
    """Inserts run roots first and deletes run leaves first."""

    assert INSERT_ORDER == Dataset.collection_names()
    assert DELETE_ORDER == tuple(reversed(INSERT_ORDER))


def test_backend_registry() -> None:
    """Built-in backends register by name, case-insensitively."""

    assert set(BACKENDS.available_backends()) >= {"memory", "sqlite"}
    assert isinstance(BACKENDS.create("memory"), InMemoryStorage)
    sqlite_backend = BACKENDS.create("SQLITE")
    assert isinstance(sqlite_backend, SqliteStorage)
    sqlite_backend.close()
    with pytest.raises(KeyError):
        BACKENDS.create("postgres")


@pytest.mark.parametrize(("backend", "expected"), [("memory", InMemoryStorage), ("sqlite", SqliteStorage)])
def test_backend_registry_builds_from_settings(tmp_path, backend, expected) -> None:
    """Each backend reads its own options from the settings."""

    settings = LedgerSettings(_env_file=None, storage_backend=backend, database_path=tmp_path / "ledger.db")

    with BACKENDS.create_from_settings(settings) as storage:
        assert isinstance(storage, expected)
        if backend == "sqlite":
            assert storage.metadata()["database"] == str(tmp_path / "ledger.db")
            assert (tmp_path / "ledger.db").exists()
