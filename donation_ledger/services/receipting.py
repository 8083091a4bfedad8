"""Mini README: Receipt books and the receipts written into them.

Structure:
    * ReceiptingService - book maintenance, number allocation and receipt
      create/update/delete.

Creating a receipt holds the book's lock across read-allocate-write: the
used numbers are read, the lowest free one (or the caller's explicit number)
is chosen and the receipt is stored before the lock is released. Requests
against different books never wait for each other. The storage unique key
on ``(receipt_book_id, receipt_number)`` backs the lock; if another process
wins a number first, an auto-allocated receipt is retried once with a fresh
read while an explicit number surfaces ``DuplicateNumberError``.

A receipt always carries its book's task. Books never move between tasks
and a range change may not leave existing receipts outside the new range.
"""

from __future__ import annotations

from typing import Callable, List, Mapping, Optional

from ..access import ANY_ROLE, STAFF, Actor, require_book_assignment, require_receipt_owner, require_role
from ..concurrency import KeyedLocks, MaintenanceGate
from ..domain import Receipt, ReceiptBook, ReceiptBookStatus, utc_now
from ..errors import DuplicateNumberError, ValidationError
from ..logging_utils import get_logger
from ..numbering import check_explicit_number, next_number
from ..storage.base import StorageBackend
from .base import LedgerService, apply_changes, newest_first

LOGGER = get_logger(__name__)

BOOKS = "receipt_books"
RECEIPTS = "receipts"

BOOK_EDITABLE = (
    "book_number",
    "starting_receipt_number",
    "ending_receipt_number",
    "assigned_to",
    "status",
)
RECEIPT_EDITABLE = ("receipt_number", "giver_name", "address", "phone_number", "amount")


class ReceiptingService(LedgerService):
    """Manage receipt books and allocate receipt numbers."""

    def __init__(
        self,
        storage: StorageBackend,
        gate: Optional[MaintenanceGate] = None,
        clock: Callable[[], object] = utc_now,
        book_locks: Optional[KeyedLocks] = None,
    ) -> None:
        super().__init__(storage, gate, clock)
        self._book_locks = book_locks or KeyedLocks()

    # Receipt books -------------------------------------------------------

    def create_book(
        self,
        actor: Actor,
        *,
        book_number: str,
        task_id: str,
        starting_receipt_number: int,
        ending_receipt_number: int,
        assigned_to: Optional[str] = None,
        status: Optional[ReceiptBookStatus] = None,
    ) -> ReceiptBook:
        """Register a new book; ``total_receipts`` is derived from the range."""

        require_role(actor, STAFF, "create receipt books")
        if status is None:
            status = ReceiptBookStatus.ASSIGNED if assigned_to else ReceiptBookStatus.ACTIVE
        book = ReceiptBook(
            book_number=book_number,
            task_id=task_id,
            starting_receipt_number=starting_receipt_number,
            ending_receipt_number=ending_receipt_number,
            assigned_to=assigned_to,
            status=status,
            created_by=actor.user_id,
            **self._timestamps(),
        )
        with self._gate.shared():
            stored = self._storage.insert(BOOKS, book)
        LOGGER.info(
            "Created receipt book %s (%s-%s) for task %s",
            stored.book_number,
            stored.starting_receipt_number,
            stored.ending_receipt_number,
            stored.task_id,
        )
        return stored

    def update_book(self, actor: Actor, book_id: str, changes: Mapping[str, object]) -> ReceiptBook:
        """Apply ``changes`` to a book without orphaning any of its receipts."""

        require_role(actor, STAFF, "update receipt books")
        with self._gate.shared(), self._book_locks.hold(book_id):
            book = self._storage.require(BOOKS, book_id)
            updated = apply_changes(book, changes, BOOK_EDITABLE, self._clock)
            outside = sorted(
                number for number in self._storage.used_receipt_numbers(book_id) if not updated.contains(number)
            )
            if outside:
                raise ValidationError(
                    {"ending_receipt_number": f"range would exclude existing receipts {outside}"}
                )
            stored = self._storage.update(BOOKS, updated)
        LOGGER.info("Updated receipt book %s: %s", book_id, sorted(changes))
        return stored

    def delete_book(self, actor: Actor, book_id: str) -> None:
        require_role(actor, STAFF, "delete receipt books")
        with self._gate.shared(), self._book_locks.hold(book_id):
            self._storage.delete(BOOKS, book_id)
        LOGGER.info("Deleted receipt book %s", book_id)

    def get_book(self, book_id: str) -> ReceiptBook:
        with self._gate.shared():
            return self._storage.require(BOOKS, book_id)  # type: ignore[return-value]

    def list_books(self, actor: Actor) -> List[ReceiptBook]:
        """All books, or only the caller's assigned books for cash collectors."""

        require_role(actor, ANY_ROLE, "list receipt books")
        with self._gate.shared():
            if actor.is_collector:
                books = self._storage.list(BOOKS, assigned_to=actor.user_id)
            else:
                books = self._storage.list(BOOKS)
        return newest_first(books)  # type: ignore[arg-type]

    def books_for_task(self, task_id: str) -> List[ReceiptBook]:
        with self._gate.shared():
            books = self._storage.list(BOOKS, task_id=task_id)
        return sorted(books, key=lambda book: book.book_number)  # type: ignore[attr-defined]

    # Receipts ------------------------------------------------------------

    def allocate_number(self, book_id: str) -> int:
        """Preview the number the next auto-numbered receipt of a book would get."""

        with self._gate.shared(), self._book_locks.hold(book_id):
            book = self._storage.require(BOOKS, book_id)
            number = next_number(book, self._storage.used_receipt_numbers(book_id))  # type: ignore[arg-type]
        LOGGER.debug("Next receipt number for book %s is %s", book_id, number)
        return number

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
        """Store a donation in ``book_id`` under an allocated or explicit number."""

        require_role(actor, ANY_ROLE, "create receipts")
        with self._gate.shared():
            book = self._storage.require(BOOKS, book_id)
            require_book_assignment(actor, book)  # type: ignore[arg-type]
            if task_id is not None and task_id != book.task_id:  # type: ignore[attr-defined]
                raise ValidationError({"task_id": "must match the receipt book's task"})
            for attempt in range(2):
                try:
                    stored = self._insert_receipt(
                        actor,
                        book,  # type: ignore[arg-type]
                        number,
                        giver_name=giver_name,
                        address=address,
                        amount=amount,
                        phone_number=phone_number,
                    )
                except DuplicateNumberError as error:
                    if number is not None or attempt:
                        raise
                    LOGGER.warning("Receipt number %s was taken concurrently; retrying", error.number)
                else:
                    break
        LOGGER.info(
            "Receipt %s #%s created in book %s by %s",
            stored.id,
            stored.receipt_number,
            book_id,
            actor.user_id,
        )
        return stored

    def _insert_receipt(
        self, actor: Actor, book: ReceiptBook, number: Optional[int], **details: object
    ) -> Receipt:
        with self._book_locks.hold(book.id):
            used = self._storage.used_receipt_numbers(book.id)
            if number is None:
                chosen = next_number(book, used)
            else:
                chosen = check_explicit_number(book, number, used)
            receipt = Receipt(
                receipt_number=chosen,
                receipt_book_id=book.id,
                task_id=book.task_id,
                entered_by=actor.user_id,
                **details,
                **self._timestamps(),
            )
            return self._storage.insert(RECEIPTS, receipt)

    def update_receipt(self, actor: Actor, receipt_id: str, changes: Mapping[str, object]) -> Receipt:
        """Edit donor details, amount or number; collectors only edit their own."""

        require_role(actor, ANY_ROLE, "update receipts")
        with self._gate.shared():
            receipt = self._storage.require(RECEIPTS, receipt_id)
            require_receipt_owner(actor, receipt)  # type: ignore[arg-type]
            book_id = receipt.receipt_book_id  # type: ignore[attr-defined]
            with self._book_locks.hold(book_id):
                updated = apply_changes(receipt, changes, RECEIPT_EDITABLE, self._clock)
                if updated.receipt_number != receipt.receipt_number:  # type: ignore[attr-defined]
                    book = self._storage.require(BOOKS, book_id)
                    used = self._storage.used_receipt_numbers(book_id) - {receipt.receipt_number}  # type: ignore[attr-defined]
                    check_explicit_number(book, updated.receipt_number, used)  # type: ignore[arg-type]
                stored = self._storage.update(RECEIPTS, updated)
        LOGGER.info("Updated receipt %s: %s", receipt_id, sorted(changes))
        return stored

    def delete_receipt(self, actor: Actor, receipt_id: str) -> None:
        """Remove a receipt; its number becomes available again."""

        require_role(actor, STAFF, "delete receipts")
        with self._gate.shared():
            receipt = self._storage.require(RECEIPTS, receipt_id)
            with self._book_locks.hold(receipt.receipt_book_id):  # type: ignore[attr-defined]
                self._storage.delete(RECEIPTS, receipt_id)
        LOGGER.info("Deleted receipt %s #%s", receipt_id, receipt.receipt_number)  # type: ignore[attr-defined]

    def get_receipt(self, receipt_id: str) -> Receipt:
        with self._gate.shared():
            return self._storage.require(RECEIPTS, receipt_id)  # type: ignore[return-value]

    def list_receipts(self, actor: Actor) -> List[Receipt]:
        """Every receipt, or only the caller's own for cash collectors."""

        require_role(actor, ANY_ROLE, "list receipts")
        with self._gate.shared():
            if actor.is_collector:
                receipts = self._storage.list(RECEIPTS, entered_by=actor.user_id)
            else:
                receipts = self._storage.list(RECEIPTS)
        return newest_first(receipts)  # type: ignore[arg-type]

    def receipts_for_book(self, book_id: str) -> List[Receipt]:
        """Receipts of one book ordered by receipt number."""

        with self._gate.shared():
            self._storage.require(BOOKS, book_id)
            receipts = self._storage.list(RECEIPTS, receipt_book_id=book_id)
        return sorted(receipts, key=lambda receipt: receipt.receipt_number)  # type: ignore[attr-defined]
