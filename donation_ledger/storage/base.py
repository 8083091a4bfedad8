"""Mini README: Abstract storage backend used by the ledger core.

Structure:
    * StorageBackend - abstract interface implemented by concrete stores.

Backends are constructed by the outer layer and injected into the core; the
core never chooses one itself. All operations are collection-generic and
keyed by the names in ``donation_ledger.storage.tables``. Implementations
must be safe to call from several request threads at once and must raise the
ledger error taxonomy rather than driver exceptions:

* ``insert`` / ``update`` raise ``DuplicateKeyError`` or
  ``DuplicateNumberError`` on unique key collisions and
  ``DanglingReferenceError`` when a foreign key does not resolve.
* ``update`` / ``delete`` raise ``NotFoundError`` for unknown ids and
  ``delete`` raises ``ReferenceInUseError`` while other rows point at the row.
* ``replace_all`` is atomic: the new dataset becomes visible entirely or the
  previous one stays untouched.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Dict, List, Optional, Set, TypeVar

from ..domain import Dataset
from ..errors import NotFoundError
from ..logging_utils import get_logger
from .tables import TableSpec, table

if TYPE_CHECKING:
    from ..configuration import LedgerSettings

LOGGER = get_logger(__name__)

R = TypeVar("R")


class StorageBackend(ABC):
    """Base interface for ledger persistence."""

    backend_name: str = "generic"

    @abstractmethod
    def insert(self, collection: str, record: R) -> R:
        """Persist a new record and return it."""

    @abstractmethod
    def get(self, collection: str, record_id: str) -> Optional[object]:
        """Return the record with ``record_id`` or ``None``."""

    @abstractmethod
    def list(self, collection: str, **filters: object) -> List[object]:
        """Return records whose fields equal every given filter, in storage order."""

    @abstractmethod
    def update(self, collection: str, record: R) -> R:
        """Replace the stored record that has ``record.id``."""

    @abstractmethod
    def delete(self, collection: str, record_id: str) -> None:
        """Remove a record that nothing references any more."""

    @abstractmethod
    def dump(self) -> Dataset:
        """Return a consistent point-in-time copy of every collection."""

    @abstractmethod
    def replace_all(self, dataset: Dataset) -> None:
        """Atomically swap the whole store for ``dataset``."""

    @classmethod
    def options_from_settings(cls, settings: "LedgerSettings") -> Dict[str, object]:
        """Constructor keyword arguments this backend takes from ``settings``."""

        return {}

    def require(self, collection: str, record_id: str) -> object:
        """Like ``get`` but raise ``NotFoundError`` for unknown ids."""

        record = self.get(collection, record_id)
        if record is None:
            raise NotFoundError(collection, record_id)
        return record

    def used_receipt_numbers(self, receipt_book_id: str) -> Set[int]:
        """Numbers currently held by live receipts of one book."""

        return {
            receipt.receipt_number  # type: ignore[attr-defined]
            for receipt in self.list("receipts", receipt_book_id=receipt_book_id)
        }

    def close(self) -> None:
        """Release resources held by the backend."""

    def metadata(self) -> Dict[str, str]:
        """Return diagnostic metadata for logs and the admin CLI."""

        return {"backend": self.backend_name}

    def __enter__(self) -> "StorageBackend":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @staticmethod
    def _spec_for(collection: str, filters: Optional[Dict[str, object]] = None) -> TableSpec:
        spec = table(collection)
        if filters:
            unknown = set(filters) - set(spec.columns)
            if unknown:
                raise ValueError(f"Unknown filter fields for {collection}: {sorted(unknown)}")
        return spec
