"""Mini README: Tests for publishing frozen ledger snapshots.

Structure:
    * latest report resolution and history ordering.
    * published figures stay frozen while live data changes.
    * public projections expose only the intended fields.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from donation_ledger import LedgerCore
from donation_ledger.domain import PublishedReport, User
from donation_ledger.errors import CorruptReport, LedgerError, NotFoundError, PermissionDenied
from donation_ledger.finance import SnapshotPublisher, aggregate, decode_report
from donation_ledger.storage import InMemoryStorage


def test_latest_report_missing_raises(core) -> None:
    """Asking for the latest report before any publish raises NotFoundError."""

    with pytest.raises(NotFoundError):
        core.get_latest_published_report()


def test_published_figures_stay_frozen(core, manager, seed_book) -> None:
    """Published figures ignore later receipts until the next publish."""

    book = seed_book()
    core.create_receipt(manager, book.id, giver_name="A", address="X", amount="100.00")
    first = core.publish_report(manager)

    core.create_receipt(manager, book.id, giver_name="B", address="X", amount="250.50")

    latest = core.get_latest_published_report()
    assert latest.id == first.id
    assert decode_report(latest).total_income == Decimal("100.00")
    assert core.get_financials().total_income == Decimal("350.50")

    second = core.publish_report(manager)
    assert core.get_latest_published_report().id == second.id
    assert [report.id for report in core.reporting.report_history(manager)] == [second.id, first.id]


def test_collectors_cannot_publish(core, collector) -> None:
    """Publishing is reserved for administrators and managers."""

    with pytest.raises(PermissionDenied):
        core.publish_report(collector)


def test_latest_tie_goes_to_last_stored() -> None:
    """Reports sharing a timestamp resolve to the one stored last."""

    storage = InMemoryStorage()
    storage.insert("users", _user())
    fixed = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)
    publisher = SnapshotPublisher(storage, clock=lambda: fixed)
    snapshot = aggregate([], [], [], [])

    publisher.publish(snapshot, "u1")
    last = publisher.publish(snapshot, "u1")

    assert publisher.latest().id == last.id


def test_latest_uses_published_at_not_insert_order() -> None:
    """The newest publication time wins regardless of insert order."""

    storage = InMemoryStorage()
    storage.insert("users", _user())
    newer = PublishedReport(report_data="{}", published_by="u1", published_at="2024-06-02T00:00:00+00:00")
    older = PublishedReport(report_data="{}", published_by="u1", published_at="2024-06-01T00:00:00+00:00")
    storage.insert("published_reports", newer)
    storage.insert("published_reports", older)

    assert SnapshotPublisher(storage).latest().id == newer.id


@pytest.mark.parametrize("report_data", ["not json", "{}", "[1, 2]"])
def test_corrupt_stored_report_raises_typed_error(storage, admin, report_data) -> None:
    """Public readers get a ledger error, not a decoding exception."""

    storage.insert("published_reports", PublishedReport(report_data=report_data, published_by=admin.user_id))

    with pytest.raises(CorruptReport) as info:
        LedgerCore(storage).get_public_report()

    assert isinstance(info.value, LedgerError)


def test_public_report_and_projections(core, manager, seed_book) -> None:
    """Public views expose frozen totals and hide donor contact details."""

    book = seed_book()
    core.create_receipt(manager, book.id, giver_name="Amina", address="Hidden 1", amount="20", phone_number="555")
    expense_type = core.create_expense_type(manager, name="Utilities")
    core.create_expense(manager, expense_type_id=expense_type.id, amount="5.25", expense_date="2024-05-03")
    report = core.publish_report(manager)

    public = core.get_public_report()
    assert public["totalIncome"] == "20.00"
    assert public["currentBalance"] == "14.75"
    assert public["publishedAt"] == report.published_at.isoformat()

    receipts = core.reporting.public_receipts(book.id)
    assert receipts[0]["giverName"] == "Amina"
    assert "address" not in receipts[0] and "phoneNumber" not in receipts[0]
    assert core.reporting.public_expenses()[0]["expenseTypeName"] == "Utilities"
    assert core.reporting.public_receipt_books(book.task_id)[0]["totalReceipts"] == 3
    assert [task["name"] for task in core.reporting.public_tasks()] == ["Roof repair"]


def _user() -> User:
    return User(username="u1", password="digest", full_name="User One", id="u1")
