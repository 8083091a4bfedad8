"""Mini README: Financial figures, published reports and public projections.

Structure:
    * ReportingService - live financials, publishing, report history and the
      read-only public views.

Live financials are aggregated from one consistent storage read. Publishing
freezes that result; the public side only ever reads frozen reports and a
few deliberately narrow projections (no phone numbers, addresses or user
details).
"""

from __future__ import annotations

from typing import Callable, Dict, List, Optional

from ..access import ANY_ROLE, STAFF, Actor, require_role
from ..concurrency import MaintenanceGate
from ..domain import PublishedReport, format_money, utc_now
from ..finance import LedgerSnapshot, SnapshotPublisher, aggregate, decode_report
from ..logging_utils import get_logger
from ..storage.base import StorageBackend
from .base import LedgerService, newest_first

LOGGER = get_logger(__name__)


class ReportingService(LedgerService):
    """Aggregate, publish and expose ledger figures."""

    def __init__(
        self,
        storage: StorageBackend,
        gate: Optional[MaintenanceGate] = None,
        clock: Callable[[], object] = utc_now,
    ) -> None:
        super().__init__(storage, gate, clock)
        self.publisher = SnapshotPublisher(storage, clock=clock)

    def _snapshot(self) -> LedgerSnapshot:
        dataset = self._storage.dump()
        return aggregate(dataset.receipts, dataset.expenses, dataset.tasks, dataset.receipt_books)

    def financials(self, actor: Optional[Actor] = None) -> LedgerSnapshot:
        """Live totals; an actor, when given, must hold a known role."""

        if actor is not None:
            require_role(actor, ANY_ROLE, "view financials")
        with self._gate.shared():
            return self._snapshot()

    def publish(self, actor: Actor) -> PublishedReport:
        """Freeze the current figures into a new published report."""

        require_role(actor, STAFF, "publish reports")
        with self._gate.shared():
            return self.publisher.publish(self._snapshot(), actor.user_id)

    def latest_report(self) -> PublishedReport:
        with self._gate.shared():
            return self.publisher.latest()

    def report_history(self, actor: Actor) -> List[PublishedReport]:
        require_role(actor, STAFF, "view report history")
        with self._gate.shared():
            return self.publisher.history()

    # Public projections --------------------------------------------------

    def public_report(self) -> Dict[str, object]:
        """The latest frozen figures plus their publication time."""

        report = self.latest_report()
        payload = decode_report(report).as_dict()
        payload["publishedAt"] = report.published_at.isoformat()
        return payload

    def public_tasks(self) -> List[Dict[str, object]]:
        with self._gate.shared():
            tasks = self._storage.list("tasks")
        return [
            {
                "id": task.id,
                "name": task.name,
                "description": task.description,
                "status": task.status.value,
                "createdAt": task.created_at.isoformat(),
            }
            for task in newest_first(tasks)  # type: ignore[attr-defined]
        ]

    def public_receipt_books(self, task_id: str) -> List[Dict[str, object]]:
        with self._gate.shared():
            books = self._storage.list("receipt_books", task_id=task_id)
        return [
            {
                "id": book.id,
                "bookNumber": book.book_number,
                "startingReceiptNumber": book.starting_receipt_number,
                "endingReceiptNumber": book.ending_receipt_number,
                "totalReceipts": book.total_receipts,
                "createdAt": book.created_at.isoformat(),
            }
            for book in sorted(books, key=lambda book: book.book_number)  # type: ignore[attr-defined]
        ]

    def public_receipts(self, book_id: str) -> List[Dict[str, object]]:
        with self._gate.shared():
            receipts = self._storage.list("receipts", receipt_book_id=book_id)
        return [
            {
                "id": receipt.id,
                "receiptNumber": receipt.receipt_number,
                "amount": format_money(receipt.amount),
                "giverName": receipt.giver_name,
                "createdAt": receipt.created_at.isoformat(),
            }
            for receipt in sorted(receipts, key=lambda receipt: receipt.receipt_number)  # type: ignore[attr-defined]
        ]

    def public_expenses(self) -> List[Dict[str, object]]:
        """Expenses with their type name resolved ("Unknown" if it vanished)."""

        with self._gate.shared():
            expenses = self._storage.list("expenses")
            type_names = {item.id: item.name for item in self._storage.list("expense_types")}  # type: ignore[attr-defined]
        return [
            {
                "id": expense.id,
                "amount": format_money(expense.amount),
                "description": expense.description,
                "expenseDate": expense.expense_date.isoformat(),
                "expenseTypeName": type_names.get(expense.expense_type_id, "Unknown"),
                "createdAt": expense.created_at.isoformat(),
            }
            for expense in newest_first(expenses)  # type: ignore[attr-defined]
        ]
