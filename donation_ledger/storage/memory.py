"""Mini README: In-memory storage backend.

Structure:
    * InMemoryStorage - dictionary tables guarded by a re-entrant lock.

The backend enforces the same unique keys and foreign keys as the SQLite
schema so tests and demos exercise identical failure modes. Records are
immutable, so tables can share them freely; ``replace_all`` builds fresh
tables off to the side and swaps them in one assignment under the lock.
"""

from __future__ import annotations

import threading
from typing import Dict, List, Optional

from ..domain import Dataset
from ..errors import DanglingReferenceError, DuplicateKeyError, InvalidSnapshot, NotFoundError, ReferenceInUseError
from ..logging_utils import get_logger
from .base import R, StorageBackend
from .registry import BACKENDS
from .tables import INSERT_ORDER, TableSpec, conflict_for, integrity_problems, referencing

LOGGER = get_logger(__name__)


class InMemoryStorage(StorageBackend):
    """Process-local store, handy for tests and short-lived tooling."""

    backend_name = "memory"

    def __init__(self, dataset: Optional[Dataset] = None) -> None:
        self._lock = threading.RLock()
        self._tables: Dict[str, Dict[str, object]] = {name: {} for name in INSERT_ORDER}
        if dataset is not None:
            self.replace_all(dataset)
        LOGGER.debug("In-memory storage initialised with %s", self._counts())

    def _counts(self) -> Dict[str, int]:
        return {name: len(rows) for name, rows in self._tables.items()}

    def _check_type(self, spec: TableSpec, record: object) -> None:
        if not isinstance(record, spec.entity):
            raise TypeError(f"{spec.name} stores {spec.entity.__name__} records, got {type(record).__name__}")

    def _check_references(self, spec: TableSpec, record: object) -> None:
        for fk in spec.foreign_keys:
            value = getattr(record, fk.field)
            if value is None and fk.optional:
                continue
            if value not in self._tables[fk.target]:
                raise DanglingReferenceError(spec.name, fk.field, value)

    def _check_unique(self, spec: TableSpec, record: object) -> None:
        rows = self._tables[spec.name]
        for columns in spec.unique:
            key = tuple(getattr(record, column) for column in columns)
            for other in rows.values():
                if other.id != record.id and tuple(getattr(other, column) for column in columns) == key:  # type: ignore[attr-defined]
                    raise conflict_for(spec, columns, record)

    def insert(self, collection: str, record: R) -> R:
        spec = self._spec_for(collection)
        self._check_type(spec, record)
        with self._lock:
            rows = self._tables[collection]
            if record.id in rows:  # type: ignore[attr-defined]
                raise DuplicateKeyError(collection, ("id",), record.id)  # type: ignore[attr-defined]
            self._check_references(spec, record)
            self._check_unique(spec, record)
            rows[record.id] = record  # type: ignore[attr-defined]
        return record

    def get(self, collection: str, record_id: str) -> Optional[object]:
        self._spec_for(collection)
        with self._lock:
            return self._tables[collection].get(record_id)

    def list(self, collection: str, **filters: object) -> List[object]:
        self._spec_for(collection, filters)
        with self._lock:
            rows = list(self._tables[collection].values())
        return [
            row for row in rows if all(getattr(row, name) == value for name, value in filters.items())
        ]

    def update(self, collection: str, record: R) -> R:
        spec = self._spec_for(collection)
        self._check_type(spec, record)
        with self._lock:
            rows = self._tables[collection]
            if record.id not in rows:  # type: ignore[attr-defined]
                raise NotFoundError(collection, record.id)  # type: ignore[attr-defined]
            self._check_references(spec, record)
            self._check_unique(spec, record)
            rows[record.id] = record  # type: ignore[attr-defined]
        return record

    def delete(self, collection: str, record_id: str) -> None:
        self._spec_for(collection)
        with self._lock:
            rows = self._tables[collection]
            if record_id not in rows:
                raise NotFoundError(collection, record_id)
            for ref_spec, fk in referencing(collection):
                if any(getattr(row, fk.field) == record_id for row in self._tables[ref_spec.name].values()):
                    raise ReferenceInUseError(collection, record_id, ref_spec.name)
            del rows[record_id]

    def dump(self) -> Dataset:
        with self._lock:
            return Dataset(**{name: list(rows.values()) for name, rows in self._tables.items()})

    def _index(self, name: str, records: List[object]) -> Dict[str, object]:
        return {record.id: record for record in records}  # type: ignore[attr-defined]

    def replace_all(self, dataset: Dataset) -> None:
        problems = integrity_problems(dataset)
        if problems:
            raise InvalidSnapshot(problems)
        fresh = {name: self._index(name, dataset.collection(name)) for name in INSERT_ORDER}
        with self._lock:
            self._tables = fresh
        LOGGER.info("In-memory store replaced: %s", self._counts())


BACKENDS.register(InMemoryStorage)
