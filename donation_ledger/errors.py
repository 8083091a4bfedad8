"""Mini README: Typed failure taxonomy shared by every ledger component.

Structure:
    * LedgerError - root of all failures raised by the core.
    * ValidationError / OutOfRangeError / DanglingReferenceError - bad input,
      rejected before any state change, with field-level detail.
    * PermissionDenied / NotFoundError - caller or lookup problems.
    * RangeExhausted - capacity: a receipt book has no free numbers.
    * ConflictError and subclasses - duplicates and references in use.
    * RestoreError and subclasses - bulk replace refusals.
    * StorageUnavailable - the backing store failed unexpectedly.
    * CorruptReport - a stored published report cannot be decoded.

The core never swallows these. Collaborators translate them into user facing
messages; the admin CLI prints them and exits non-zero.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional


class LedgerError(Exception):
    """Base class for every failure raised by the ledger core."""


class ValidationError(LedgerError, ValueError):
    """Input rejected because of bad shape, range or missing fields."""

    def __init__(self, errors: Dict[str, str], message: Optional[str] = None) -> None:
        self.errors = dict(errors)
        if message is None:
            details = "; ".join(f"{field}: {reason}" for field, reason in sorted(self.errors.items()))
            message = f"Validation failed ({details})"
        super().__init__(message)


class OutOfRangeError(ValidationError):
    """An explicit receipt number lies outside its book's range."""

    def __init__(self, book_id: str, number: int, starting: int, ending: int) -> None:
        self.book_id = book_id
        self.number = number
        self.starting = starting
        self.ending = ending
        super().__init__(
            {"receipt_number": f"must be between {starting} and {ending}"},
            f"Receipt number {number} is outside the range {starting}-{ending} of book {book_id}",
        )


class DanglingReferenceError(ValidationError):
    """A record points at a row that does not exist."""

    def __init__(self, collection: str, field: str, target_id: str) -> None:
        self.collection = collection
        self.field = field
        self.target_id = target_id
        super().__init__(
            {field: f"references unknown id '{target_id}'"},
            f"{collection}.{field} references unknown id '{target_id}'",
        )


class PermissionDenied(LedgerError):
    """The caller's role does not allow the requested operation."""


class NotFoundError(LedgerError, LookupError):
    """A requested record does not exist."""

    def __init__(self, collection: str, entity_id: str) -> None:
        self.collection = collection
        self.entity_id = entity_id
        super().__init__(f"{collection} record '{entity_id}' not found")


class RangeExhausted(LedgerError):
    """Every number of a receipt book is already used."""

    def __init__(self, book_id: str) -> None:
        self.book_id = book_id
        super().__init__(f"All receipt numbers in book {book_id} have been used")


class ConflictError(LedgerError):
    """A write collided with existing state."""


class DuplicateNumberError(ConflictError):
    """A receipt number is already held by another receipt in the same book."""

    def __init__(self, book_id: str, number: int) -> None:
        self.book_id = book_id
        self.number = number
        super().__init__(f"Receipt number {number} is already used in book {book_id}")


class DuplicateKeyError(ConflictError):
    """A unique business key (username, book number, ...) is already taken."""

    def __init__(self, collection: str, fields: Iterable[str], value: object) -> None:
        self.collection = collection
        self.fields = tuple(fields)
        self.value = value
        super().__init__(f"{collection} already has a record with {', '.join(self.fields)} = {value!r}")


class ReferenceInUseError(ConflictError):
    """A record cannot be removed or re-keyed while other records point at it."""

    def __init__(self, collection: str, entity_id: str, referenced_by: str) -> None:
        self.collection = collection
        self.entity_id = entity_id
        self.referenced_by = referenced_by
        super().__init__(f"{collection} record '{entity_id}' is still referenced by {referenced_by}")


class RestoreError(LedgerError):
    """Base class for refused bulk replace operations."""


class InvalidSnapshot(RestoreError):
    """The incoming dataset is not self-consistent; nothing was applied."""

    def __init__(self, problems: List[str]) -> None:
        self.problems = list(problems)
        preview = "; ".join(self.problems[:5])
        more = f" (+{len(self.problems) - 5} more)" if len(self.problems) > 5 else ""
        super().__init__(f"Backup snapshot rejected: {preview}{more}")


class RestoreInProgress(RestoreError):
    """Another restore currently owns the store."""

    def __init__(self) -> None:
        super().__init__("A restore is already in progress; retry once it has finished")


class RestoreCancelled(RestoreError):
    """The caller cancelled the restore before the replace began."""

    def __init__(self) -> None:
        super().__init__("Restore cancelled before any data was replaced")


class StorageUnavailable(LedgerError):
    """The backing store failed; multi-step work was rolled back."""


class CorruptReport(LedgerError, ValueError):
    """A stored published report no longer decodes into a ledger snapshot."""

    def __init__(self, report_id: str, reason: str) -> None:
        self.report_id = report_id
        self.reason = reason
        super().__init__(f"Published report {report_id} is unreadable: {reason}")
