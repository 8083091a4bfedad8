"""Mini README: Backup export and atomic restore of the whole dataset.

Structure:
    * validate_snapshot - self-consistency checks of an incoming dataset.
    * BulkReplacer - point-in-time export and exclusive, all-or-nothing
      restore.

A restore is a full destructive replace, never a merge. It owns the
maintenance gate exclusively for its whole duration, so no receipt, expense
or task mutation and no aggregation read can observe the store half-way.
A second restore arriving meanwhile is refused with ``RestoreInProgress``.
The incoming dataset must be consistent on its own: every foreign key
resolves inside it, business keys are unique, receipt numbers sit inside
their book's range, a receipt's task is its book's task and every
published report decodes into a snapshot. Anything else is refused with
``InvalidSnapshot`` before a single row changes. Callers may cancel through a
``threading.Event`` until the backend replace starts; from then on the
backend commits everything or rolls everything back.
"""

from __future__ import annotations

import threading
from typing import Dict, List, Optional

from ..concurrency import MaintenanceGate
from ..domain import Dataset, PublishedReport, ReceiptBook
from ..errors import CorruptReport, InvalidSnapshot, RestoreCancelled
from ..finance.publisher import decode_report
from ..logging_utils import get_logger
from ..storage.base import StorageBackend
from ..storage.tables import integrity_problems

LOGGER = get_logger(__name__)


def validate_snapshot(dataset: Dataset) -> List[str]:
    """Return every reason ``dataset`` cannot be restored (empty when valid)."""

    problems = integrity_problems(dataset)
    books: Dict[str, ReceiptBook] = {
        book.id: book for book in dataset.receipt_books if isinstance(book, ReceiptBook)
    }
    for receipt in dataset.receipts:
        book = books.get(getattr(receipt, "receipt_book_id", None))
        if book is None:
            continue
        if not book.contains(receipt.receipt_number):
            problems.append(
                f"receipts '{receipt.id}': number {receipt.receipt_number} is outside book "
                f"{book.book_number} range {book.starting_receipt_number}-{book.ending_receipt_number}"
            )
        if receipt.task_id != book.task_id:
            problems.append(
                f"receipts '{receipt.id}': task '{receipt.task_id}' differs from book task '{book.task_id}'"
            )
    for report in dataset.published_reports:
        if not isinstance(report, PublishedReport):
            continue
        try:
            decode_report(report)
        except CorruptReport as error:
            problems.append(f"published_reports '{report.id}': {error.reason}")
    return problems


class BulkReplacer:
    """Export the dataset and replace it atomically on restore."""

    def __init__(self, storage: StorageBackend, gate: Optional[MaintenanceGate] = None) -> None:
        self._storage = storage
        self._gate = gate or MaintenanceGate()

    def export_all(self) -> Dataset:
        """Return a self-consistent point-in-time copy of every collection."""

        with self._gate.shared():
            dataset = self._storage.dump()
        LOGGER.info("Exported backup: %s", dataset.counts())
        return dataset

    def restore_all(self, dataset: Dataset, cancel_event: Optional[threading.Event] = None) -> None:
        """Replace the whole store with ``dataset`` or leave it untouched."""

        with self._gate.exclusive():
            LOGGER.info("Restore started: %s", dataset.counts())
            problems = validate_snapshot(dataset)
            if problems:
                LOGGER.warning("Restore refused with %s problems; first: %s", len(problems), problems[0])
                raise InvalidSnapshot(problems)
            if cancel_event is not None and cancel_event.is_set():
                LOGGER.warning("Restore cancelled before replacing data")
                raise RestoreCancelled()
            self._storage.replace_all(dataset)
        LOGGER.info("Restore completed")
