"""Mini README: The ledger core facade.

Structure:
    * LedgerCore - one object composing receipting, directory, reporting and
      the bulk replacer over an injected storage backend.

Usage:
    Build a backend in the outer layer
    (``BACKENDS.create_from_settings(get_settings())``) and hand it to
    ``LedgerCore``. Callers pass an already authenticated ``Actor``;
    ``actor_for`` turns a stored, active user id into one. All services
    share one maintenance gate and one set of book locks, so a restore
    pauses every other operation of this core.
"""

from __future__ import annotations

import threading
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from .access import ADMIN_ONLY, STAFF, Actor, require_role
from .backup import BulkReplacer, dumps_document, parse_document, render_sql
from .concurrency import KeyedLocks, MaintenanceGate
from .domain import (
    Dataset,
    Expense,
    ExpenseType,
    PublishedReport,
    Receipt,
    ReceiptBook,
    Task,
    User,
    utc_now,
)
from .errors import NotFoundError, PermissionDenied
from .finance import LedgerSnapshot
from .logging_utils import get_logger
from .services import DirectoryService, ReceiptingService, ReportingService
from .storage.base import StorageBackend

LOGGER = get_logger(__name__)

BackupSource = Union[Dataset, str, bytes, Mapping[str, Any]]


class LedgerCore:
    """Entry point for every ledger operation."""

    def __init__(
        self,
        storage: StorageBackend,
        *,
        gate: Optional[MaintenanceGate] = None,
        book_locks: Optional[KeyedLocks] = None,
        clock: Optional[Callable[[], object]] = None,
    ) -> None:
        self.storage = storage
        self.gate = gate or MaintenanceGate()
        clock = clock or utc_now
        self.receipting = ReceiptingService(storage, self.gate, clock, book_locks=book_locks)
        self.directory = DirectoryService(storage, self.gate, clock)
        self.reporting = ReportingService(storage, self.gate, clock)
        self.replacer = BulkReplacer(storage, self.gate)
        LOGGER.debug("Ledger core ready on %s", storage.metadata())

    def actor_for(self, user_id: str) -> Actor:
        """Resolve an active stored user into an ``Actor``."""

        user = self.directory.get_user(user_id)
        if user is None:
            raise NotFoundError("users", user_id)
        if not user.is_active:
            raise PermissionDenied(f"User '{user.username}' is inactive")
        return Actor(user.id, user.role)

    # Receipt numbering ---------------------------------------------------

    def allocate_receipt_number(self, book_id: str) -> int:
        return self.receipting.allocate_number(book_id)

    def create_receipt(
        self,
        actor: Actor,
        book_id: str,
        *,
        giver_name: str,
        address: str,
        amount: object,
        number: Optional[int] = None,
        phone_number: Optional[str] = None,
        task_id: Optional[str] = None,
    ) -> Receipt:
        return self.receipting.create_receipt(
            actor,
            book_id,
            giver_name=giver_name,
            address=address,
            amount=amount,
            number=number,
            phone_number=phone_number,
            task_id=task_id,
        )

    def update_receipt(self, actor: Actor, receipt_id: str, changes: Mapping[str, object]) -> Receipt:
        return self.receipting.update_receipt(actor, receipt_id, changes)

    def delete_receipt(self, actor: Actor, receipt_id: str) -> None:
        self.receipting.delete_receipt(actor, receipt_id)

    def list_receipts(self, actor: Actor) -> List[Receipt]:
        return self.receipting.list_receipts(actor)

    def receipts_for_book(self, book_id: str) -> List[Receipt]:
        return self.receipting.receipts_for_book(book_id)

    def create_receipt_book(self, actor: Actor, **details: Any) -> ReceiptBook:
        return self.receipting.create_book(actor, **details)

    def update_receipt_book(self, actor: Actor, book_id: str, changes: Mapping[str, object]) -> ReceiptBook:
        return self.receipting.update_book(actor, book_id, changes)

    def delete_receipt_book(self, actor: Actor, book_id: str) -> None:
        self.receipting.delete_book(actor, book_id)

    def list_receipt_books(self, actor: Actor) -> List[ReceiptBook]:
        return self.receipting.list_books(actor)

    # Directory -----------------------------------------------------------

    def create_user(self, actor: Actor, **details: Any) -> User:
        return self.directory.create_user(actor, **details)

    def create_task(self, actor: Actor, **details: Any) -> Task:
        return self.directory.create_task(actor, **details)

    def update_task(self, actor: Actor, task_id: str, changes: Mapping[str, object]) -> Task:
        return self.directory.update_task(actor, task_id, changes)

    def create_expense_type(self, actor: Actor, **details: Any) -> ExpenseType:
        return self.directory.create_expense_type(actor, **details)

    def create_expense(self, actor: Actor, **details: Any) -> Expense:
        return self.directory.create_expense(actor, **details)

    # Financials and publishing -------------------------------------------

    def get_financials(self, actor: Optional[Actor] = None) -> LedgerSnapshot:
        return self.reporting.financials(actor)

    def publish_report(self, actor: Actor) -> PublishedReport:
        return self.reporting.publish(actor)

    def get_latest_published_report(self) -> PublishedReport:
        return self.reporting.latest_report()

    def get_public_report(self) -> Dict[str, object]:
        return self.reporting.public_report()

    # Backup and restore --------------------------------------------------

    def export_backup(self, actor: Actor) -> Dataset:
        require_role(actor, STAFF, "export backups")
        return self.replacer.export_all()

    def export_backup_document(self, actor: Actor) -> str:
        """The whole dataset as a structured JSON document."""

        return dumps_document(self.export_backup(actor))

    def export_backup_sql(self, actor: Actor) -> str:
        """The whole dataset as an SQL script loadable into the SQLite schema."""

        return render_sql(self.export_backup(actor))

    def restore_backup(
        self,
        actor: Actor,
        source: BackupSource,
        cancel_event: Optional[threading.Event] = None,
    ) -> None:
        """Replace every collection with ``source`` atomically."""

        require_role(actor, ADMIN_ONLY, "restore backups")
        dataset = source if isinstance(source, Dataset) else parse_document(source)
        LOGGER.info("Restore requested by %s", actor.user_id)
        self.replacer.restore_all(dataset, cancel_event=cancel_event)

    def close(self) -> None:
        self.storage.close()
