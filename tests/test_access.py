"""Mini README: Tests for role rules and the service operations they guard.

These tests confirm cash collectors are confined to their assigned books and
their own receipts, that bookkeeping is reserved for administrators and
managers, and that book and task edits cannot break existing receipts.
"""

from __future__ import annotations

import pytest

from donation_ledger import Actor
from donation_ledger.domain import ReceiptBookStatus, Role
from donation_ledger.errors import (
    DuplicateKeyError,
    DuplicateNumberError,
    NotFoundError,
    PermissionDenied,
    ReferenceInUseError,
    ValidationError,
)


def test_actor_rejects_unknown_role() -> None:
    """Roles outside admin, manager and cash collector are refused."""

    with pytest.raises(PermissionDenied):
        Actor("u1", "treasurer")


def test_actor_for_resolves_active_users(core, admin, collector) -> None:
    """Only stored, active users become actors."""

    assert core.actor_for(collector.user_id) == collector
    core.directory.update_user(admin, collector.user_id, {"is_active": False})
    with pytest.raises(PermissionDenied):
        core.actor_for(collector.user_id)
    with pytest.raises(NotFoundError):
        core.actor_for("nobody")


def test_collector_limited_to_assigned_books(core, collector, seed_book) -> None:
    """Cash collectors record receipts only in books assigned to them."""

    mine = seed_book(book_number="B-1", assigned_to=collector.user_id)
    other = seed_book(book_number="B-2")
    assert mine.status is ReceiptBookStatus.ASSIGNED

    receipt = core.create_receipt(collector, mine.id, giver_name="A", address="X", amount="5")
    assert receipt.entered_by == collector.user_id
    with pytest.raises(PermissionDenied):
        core.create_receipt(collector, other.id, giver_name="A", address="X", amount="5")
    assert [book.id for book in core.list_receipt_books(collector)] == [mine.id]


def test_collector_edits_only_own_receipts(core, manager, collector, seed_book) -> None:
    """Cash collectors may edit their own receipts but never delete them."""

    book = seed_book(assigned_to=collector.user_id)
    own = core.create_receipt(collector, book.id, giver_name="A", address="X", amount="5")
    foreign = core.create_receipt(manager, book.id, giver_name="B", address="X", amount="5")

    updated = core.update_receipt(collector, own.id, {"amount": "7.50", "giver_name": "A. Giver"})
    assert str(updated.amount) == "7.50"
    with pytest.raises(PermissionDenied):
        core.update_receipt(collector, foreign.id, {"amount": "1"})
    with pytest.raises(PermissionDenied):
        core.delete_receipt(collector, own.id)
    assert [receipt.id for receipt in core.list_receipts(collector)] == [own.id]


def test_receipt_task_must_match_book(core, manager, seed_book) -> None:
    """A receipt always carries its book's task."""

    book = seed_book()
    other_book = seed_book(book_number="B-2", task="Library")
    with pytest.raises(ValidationError):
        core.create_receipt(manager, book.id, giver_name="A", address="X", amount="5", task_id=other_book.task_id)
    receipt = core.create_receipt(manager, book.id, giver_name="A", address="X", amount="5", task_id=book.task_id)
    assert receipt.task_id == book.task_id


def test_receipt_update_cannot_move_task_or_collide(core, manager, seed_book) -> None:
    """Receipt edits keep the task fixed and the numbers unique."""

    book = seed_book(start=1, end=5)
    first = core.create_receipt(manager, book.id, giver_name="A", address="X", amount="5")
    second = core.create_receipt(manager, book.id, giver_name="B", address="X", amount="5")

    with pytest.raises(ValidationError):
        core.update_receipt(manager, first.id, {"task_id": "elsewhere"})
    with pytest.raises(DuplicateNumberError):
        core.update_receipt(manager, first.id, {"receipt_number": second.receipt_number})
    moved = core.update_receipt(manager, first.id, {"receipt_number": 5})
    assert moved.receipt_number == 5
    assert core.allocate_receipt_number(book.id) == 1


def test_invalid_amounts_rejected(core, manager, seed_book) -> None:
    """Zero, negative, over-precise and non-numeric amounts are refused."""

    book = seed_book()
    for amount in ("0", "-3", "1.234", "abc"):
        with pytest.raises(ValidationError):
            core.create_receipt(manager, book.id, giver_name="A", address="X", amount=amount)
    assert core.receipts_for_book(book.id) == []


def test_bookkeeping_reserved_for_staff(core, collector, seed_book) -> None:
    """Tasks, books, backups and users are off limits to cash collectors."""

    book = seed_book()
    with pytest.raises(PermissionDenied):
        core.create_task(collector, name="Side project")
    with pytest.raises(PermissionDenied):
        core.create_receipt_book(
            collector,
            book_number="B-9",
            task_id=book.task_id,
            starting_receipt_number=1,
            ending_receipt_number=2,
        )
    with pytest.raises(PermissionDenied):
        core.export_backup(collector)
    with pytest.raises(PermissionDenied):
        core.create_user(collector, username="x", password="y", full_name="Z", role=Role.ADMIN)


def test_book_rules(core, manager, seed_book) -> None:
    """Book numbers are unique and range edits cannot strand receipts."""

    book = seed_book(start=1, end=10)
    with pytest.raises(DuplicateKeyError):
        seed_book(book_number=book.book_number)
    with pytest.raises(ValidationError):
        seed_book(book_number="B-bad", start=5, end=4)

    core.create_receipt(manager, book.id, giver_name="A", address="X", amount="5", number=8)
    with pytest.raises(ValidationError):
        core.update_receipt_book(manager, book.id, {"ending_receipt_number": 7})
    with pytest.raises(ValidationError):
        core.update_receipt_book(manager, book.id, {"task_id": "elsewhere"})
    widened = core.update_receipt_book(manager, book.id, {"ending_receipt_number": 20})
    assert widened.total_receipts == 20
    with pytest.raises(ReferenceInUseError):
        core.delete_receipt_book(manager, book.id)


def test_referenced_task_keeps_its_name(core, manager, seed_book) -> None:
    """A task in use only accepts status and description changes."""

    book = seed_book()
    with pytest.raises(ReferenceInUseError):
        core.update_task(manager, book.task_id, {"name": "Renamed"})
    updated = core.update_task(manager, book.task_id, {"status": "completed", "description": "Done"})
    assert updated.status.value == "completed"
    with pytest.raises(ReferenceInUseError):
        core.directory.delete_task(manager, book.task_id)
