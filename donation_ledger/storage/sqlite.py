"""Mini README: SQLite storage backend.

Structure:
    * SCHEMA - DDL for the seven ledger tables.
    * SqliteStorage - relational backend with explicit transactions.

Design:
    * One connection shared by request threads and serialised by a
      re-entrant lock; SQLite's own file locking covers other processes.
    * ``PRAGMA foreign_keys = ON`` plus ``UNIQUE(receipt_book_id,
      receipt_number)`` make the database the final arbiter of numbering
      collisions, even between processes sharing the file.
    * Transactions are explicit (``BEGIN`` / ``COMMIT`` / ``ROLLBACK``) so
      the bulk replace deletes leaves first, inserts roots first and either
      commits as a whole or leaves the previous data in place.
    * Money is stored as text (``"350.50"``) and timestamps as ISO 8601 text.
"""

from __future__ import annotations

import re
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Dict, Iterator, List, Optional, Sequence, Set, Tuple, Union

from ..domain import Dataset, format_money
from ..errors import (
    DanglingReferenceError,
    DuplicateKeyError,
    InvalidSnapshot,
    LedgerError,
    NotFoundError,
    ReferenceInUseError,
    StorageUnavailable,
    ValidationError,
)
from ..logging_utils import get_logger
from .base import R, StorageBackend
from .registry import BACKENDS
from .tables import DELETE_ORDER, INSERT_ORDER, TableSpec, conflict_for, integrity_problems, referencing, table

if TYPE_CHECKING:
    from ..configuration import LedgerSettings

LOGGER = get_logger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id TEXT PRIMARY KEY,
    username TEXT NOT NULL UNIQUE,
    password TEXT NOT NULL,
    full_name TEXT NOT NULL,
    role TEXT NOT NULL CHECK (role IN ('admin', 'manager', 'cash_collector')),
    is_active INTEGER NOT NULL DEFAULT 1,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS tasks (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    created_by TEXT NOT NULL REFERENCES users(id),
    description TEXT,
    status TEXT NOT NULL CHECK (status IN ('active', 'inactive', 'completed')),
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS expense_types (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL UNIQUE,
    created_by TEXT NOT NULL REFERENCES users(id),
    description TEXT,
    status TEXT NOT NULL CHECK (status IN ('active', 'inactive')),
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS receipt_books (
    id TEXT PRIMARY KEY,
    book_number TEXT NOT NULL UNIQUE,
    task_id TEXT NOT NULL REFERENCES tasks(id),
    starting_receipt_number INTEGER NOT NULL,
    ending_receipt_number INTEGER NOT NULL,
    created_by TEXT NOT NULL REFERENCES users(id),
    assigned_to TEXT REFERENCES users(id),
    status TEXT NOT NULL CHECK (status IN ('active', 'assigned', 'completed')),
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    total_receipts INTEGER NOT NULL,
    CHECK (ending_receipt_number >= starting_receipt_number),
    CHECK (total_receipts = ending_receipt_number - starting_receipt_number + 1)
);

CREATE TABLE IF NOT EXISTS receipts (
    id TEXT PRIMARY KEY,
    receipt_number INTEGER NOT NULL,
    receipt_book_id TEXT NOT NULL REFERENCES receipt_books(id),
    task_id TEXT NOT NULL REFERENCES tasks(id),
    giver_name TEXT NOT NULL,
    address TEXT NOT NULL,
    amount TEXT NOT NULL,
    entered_by TEXT NOT NULL REFERENCES users(id),
    phone_number TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    UNIQUE (receipt_book_id, receipt_number)
);

CREATE TABLE IF NOT EXISTS expenses (
    id TEXT PRIMARY KEY,
    expense_type_id TEXT NOT NULL REFERENCES expense_types(id),
    amount TEXT NOT NULL,
    expense_date TEXT NOT NULL,
    created_by TEXT NOT NULL REFERENCES users(id),
    description TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS published_reports (
    id TEXT PRIMARY KEY,
    report_data TEXT NOT NULL,
    published_by TEXT NOT NULL REFERENCES users(id),
    published_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_receipts_book ON receipts(receipt_book_id);
CREATE INDEX IF NOT EXISTS idx_receipt_books_task ON receipt_books(task_id);
CREATE INDEX IF NOT EXISTS idx_published_reports_at ON published_reports(published_at);
"""

_UNIQUE_FAILURE = re.compile(r"UNIQUE constraint failed: (?P<columns>.+)$")


def to_column(value: object) -> object:
    """Convert a record attribute into the value SQLite stores."""

    if isinstance(value, Enum):
        return value.value
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, Decimal):
        return format_money(value)
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def connect_sqlite(path: Union[str, Path] = ":memory:", timeout: float = 30.0) -> sqlite3.Connection:
    """Open a connection configured for explicit transactions and foreign keys."""

    conn = sqlite3.connect(str(path), timeout=timeout, check_same_thread=False, isolation_level=None)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON;")
    return conn


class SqliteStorage(StorageBackend):
    """Relational backend over a single SQLite database file."""

    backend_name = "sqlite"

    def __init__(self, database: Union[str, Path] = ":memory:", *, timeout: float = 30.0) -> None:
        self.database = str(database)
        if self.database != ":memory:":
            Path(self.database).expanduser().parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.RLock()
        try:
            self._conn = connect_sqlite(self.database, timeout=timeout)
            self._conn.executescript(SCHEMA)
        except sqlite3.Error as error:
            raise StorageUnavailable(f"Cannot open ledger database {self.database}: {error}") from error
        LOGGER.debug("SQLite storage ready at %s", self.database)

    @classmethod
    def options_from_settings(cls, settings: "LedgerSettings") -> Dict[str, object]:
        return {"database": settings.database_path}

    def metadata(self) -> Dict[str, str]:
        return {"backend": self.backend_name, "database": self.database}

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    @contextmanager
    def _transaction(self, mode: str = "DEFERRED") -> Iterator[sqlite3.Connection]:
        """Run the block in one transaction, rolling back on any failure."""

        with self._lock:
            try:
                self._conn.execute(f"BEGIN {mode}")
            except sqlite3.Error as error:
                raise StorageUnavailable(f"Cannot start transaction: {error}") from error
            try:
                yield self._conn
                self._conn.execute("COMMIT")
            except BaseException:
                if self._conn.in_transaction:
                    self._conn.execute("ROLLBACK")
                raise

    def _row_to_record(self, spec: TableSpec, row: sqlite3.Row) -> object:
        return spec.entity(**{column: row[column] for column in spec.init_columns})

    def _record_values(self, spec: TableSpec, record: object) -> Tuple[object, ...]:
        return tuple(to_column(getattr(record, column)) for column in spec.columns)

    def _check_references(self, conn: sqlite3.Connection, spec: TableSpec, record: object) -> None:
        for fk in spec.foreign_keys:
            value = getattr(record, fk.field)
            if value is None and fk.optional:
                continue
            found = conn.execute(f"SELECT 1 FROM {fk.target} WHERE id = ?", (value,)).fetchone()
            if found is None:
                raise DanglingReferenceError(spec.name, fk.field, value)

    def _translate(self, error: sqlite3.Error, spec: TableSpec, record: object) -> LedgerError:
        message = str(error)
        if isinstance(error, sqlite3.IntegrityError):
            match = _UNIQUE_FAILURE.search(message)
            if match:
                columns = tuple(part.strip().split(".")[-1] for part in match.group("columns").split(","))
                if columns == ("id",):
                    return DuplicateKeyError(spec.name, columns, getattr(record, "id", None))
                return conflict_for(spec, columns, record)
            if "CHECK constraint failed" in message or "NOT NULL constraint failed" in message:
                return ValidationError({spec.name: message})
        return StorageUnavailable(f"{spec.name}: {message}")

    def insert(self, collection: str, record: R) -> R:
        spec = self._spec_for(collection)
        placeholders = ", ".join("?" for _ in spec.columns)
        statement = f"INSERT INTO {spec.name} ({', '.join(spec.columns)}) VALUES ({placeholders})"
        try:
            with self._transaction("IMMEDIATE") as conn:
                self._check_references(conn, spec, record)
                conn.execute(statement, self._record_values(spec, record))
        except sqlite3.Error as error:
            raise self._translate(error, spec, record) from error
        return record

    def get(self, collection: str, record_id: str) -> Optional[object]:
        spec = self._spec_for(collection)
        try:
            with self._lock:
                row = self._conn.execute(f"SELECT * FROM {spec.name} WHERE id = ?", (record_id,)).fetchone()
        except sqlite3.Error as error:
            raise StorageUnavailable(f"{spec.name}: {error}") from error
        return self._row_to_record(spec, row) if row is not None else None

    def list(self, collection: str, **filters: object) -> List[object]:
        spec = self._spec_for(collection, filters)
        clauses: List[str] = []
        params: List[object] = []
        for name, value in filters.items():
            if value is None:
                clauses.append(f"{name} IS NULL")
            else:
                clauses.append(f"{name} = ?")
                params.append(to_column(value))
        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
        try:
            with self._lock:
                rows = self._conn.execute(
                    f"SELECT * FROM {spec.name}{where} ORDER BY rowid", params
                ).fetchall()
        except sqlite3.Error as error:
            raise StorageUnavailable(f"{spec.name}: {error}") from error
        return [self._row_to_record(spec, row) for row in rows]

    def used_receipt_numbers(self, receipt_book_id: str) -> Set[int]:
        try:
            with self._lock:
                rows = self._conn.execute(
                    "SELECT receipt_number FROM receipts WHERE receipt_book_id = ?", (receipt_book_id,)
                ).fetchall()
        except sqlite3.Error as error:
            raise StorageUnavailable(f"receipts: {error}") from error
        return {row[0] for row in rows}

    def update(self, collection: str, record: R) -> R:
        spec = self._spec_for(collection)
        columns = [column for column in spec.columns if column != "id"]
        assignments = ", ".join(f"{column} = ?" for column in columns)
        values = [to_column(getattr(record, column)) for column in columns]
        values.append(record.id)  # type: ignore[attr-defined]
        try:
            with self._transaction("IMMEDIATE") as conn:
                self._check_references(conn, spec, record)
                cursor = conn.execute(f"UPDATE {spec.name} SET {assignments} WHERE id = ?", values)
                if cursor.rowcount == 0:
                    raise NotFoundError(collection, record.id)  # type: ignore[attr-defined]
        except sqlite3.Error as error:
            raise self._translate(error, spec, record) from error
        return record

    def delete(self, collection: str, record_id: str) -> None:
        spec = self._spec_for(collection)
        try:
            with self._transaction("IMMEDIATE") as conn:
                for ref_spec, fk in referencing(collection):
                    in_use = conn.execute(
                        f"SELECT 1 FROM {ref_spec.name} WHERE {fk.field} = ? LIMIT 1", (record_id,)
                    ).fetchone()
                    if in_use is not None:
                        raise ReferenceInUseError(collection, record_id, ref_spec.name)
                cursor = conn.execute(f"DELETE FROM {spec.name} WHERE id = ?", (record_id,))
                if cursor.rowcount == 0:
                    raise NotFoundError(collection, record_id)
        except sqlite3.Error as error:
            raise StorageUnavailable(f"{spec.name}: {error}") from error

    def dump(self) -> Dataset:
        collections: Dict[str, List[object]] = {}
        try:
            with self._transaction("DEFERRED") as conn:
                for name in INSERT_ORDER:
                    spec = table(name)
                    rows = conn.execute(f"SELECT * FROM {name} ORDER BY rowid").fetchall()
                    collections[name] = [self._row_to_record(spec, row) for row in rows]
        except sqlite3.Error as error:
            raise StorageUnavailable(f"Backup read failed: {error}") from error
        return Dataset(**collections)

    def replace_all(self, dataset: Dataset) -> None:
        problems = integrity_problems(dataset)
        if problems:
            raise InvalidSnapshot(problems)
        try:
            with self._transaction("IMMEDIATE") as conn:
                for name in DELETE_ORDER:
                    conn.execute(f"DELETE FROM {name}")
                for name in INSERT_ORDER:
                    self._insert_many(conn, table(name), dataset.collection(name))
        except sqlite3.IntegrityError as error:
            raise InvalidSnapshot([f"database rejected snapshot: {error}"]) from error
        except sqlite3.Error as error:
            raise StorageUnavailable(f"Restore rolled back: {error}") from error
        LOGGER.info("SQLite store replaced: %s", dataset.counts())

    def _insert_many(self, conn: sqlite3.Connection, spec: TableSpec, records: Sequence[object]) -> None:
        if not records:
            return
        placeholders = ", ".join("?" for _ in spec.columns)
        conn.executemany(
            f"INSERT INTO {spec.name} ({', '.join(spec.columns)}) VALUES ({placeholders})",
            [self._record_values(spec, record) for record in records],
        )


BACKENDS.register(SqliteStorage)
