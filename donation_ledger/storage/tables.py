"""Mini README: Relational table metadata shared by storage, backup and export.

Structure:
    * ForeignKey / TableSpec - column-level description of one collection.
    * TABLES - every collection ordered roots before leaves.
    * INSERT_ORDER / DELETE_ORDER - dependency orders used by bulk replace.
    * conflict_for - maps a unique key violation onto the error taxonomy.
    * integrity_problems - structural checks (ids, unique keys, foreign keys)
      of a whole dataset against itself.

A single description keeps both backends, snapshot validation and the SQL
export in agreement about names, keys and ordering.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Dict, List, Set, Tuple, Type

from ..domain import (
    Dataset,
    Expense,
    ExpenseType,
    PublishedReport,
    Receipt,
    ReceiptBook,
    Task,
    User,
    camel_case,
)
from ..errors import ConflictError, DuplicateKeyError, DuplicateNumberError


@dataclass(frozen=True, slots=True)
class ForeignKey:
    field: str
    target: str
    optional: bool = False


@dataclass(frozen=True, slots=True)
class TableSpec:
    """Name, record type and keys of one collection."""

    name: str
    entity: Type[object]
    foreign_keys: Tuple[ForeignKey, ...] = ()
    unique: Tuple[Tuple[str, ...], ...] = ()

    @property
    def document_key(self) -> str:
        return camel_case(self.name)

    @property
    def columns(self) -> Tuple[str, ...]:
        """All stored columns with ``id`` first."""

        names = [item.name for item in fields(self.entity) if item.name != "id"]
        return ("id", *names)

    @property
    def init_columns(self) -> Tuple[str, ...]:
        """Columns accepted by the record constructor (derived ones excluded)."""

        return tuple(item.name for item in fields(self.entity) if item.init)


TABLES: Tuple[TableSpec, ...] = (
    TableSpec("users", User, unique=(("username",),)),
    TableSpec("tasks", Task, foreign_keys=(ForeignKey("created_by", "users"),)),
    TableSpec(
        "expense_types",
        ExpenseType,
        foreign_keys=(ForeignKey("created_by", "users"),),
        unique=(("name",),),
    ),
    TableSpec(
        "receipt_books",
        ReceiptBook,
        foreign_keys=(
            ForeignKey("task_id", "tasks"),
            ForeignKey("assigned_to", "users", optional=True),
            ForeignKey("created_by", "users"),
        ),
        unique=(("book_number",),),
    ),
    TableSpec(
        "receipts",
        Receipt,
        foreign_keys=(
            ForeignKey("receipt_book_id", "receipt_books"),
            ForeignKey("task_id", "tasks"),
            ForeignKey("entered_by", "users"),
        ),
        unique=(("receipt_book_id", "receipt_number"),),
    ),
    TableSpec(
        "expenses",
        Expense,
        foreign_keys=(
            ForeignKey("expense_type_id", "expense_types"),
            ForeignKey("created_by", "users"),
        ),
    ),
    TableSpec("published_reports", PublishedReport, foreign_keys=(ForeignKey("published_by", "users"),)),
)

TABLE_BY_NAME: Dict[str, TableSpec] = {spec.name: spec for spec in TABLES}
INSERT_ORDER: Tuple[str, ...] = tuple(spec.name for spec in TABLES)
DELETE_ORDER: Tuple[str, ...] = tuple(reversed(INSERT_ORDER))


def table(name: str) -> TableSpec:
    try:
        return TABLE_BY_NAME[name]
    except KeyError:
        raise KeyError(f"Unknown collection '{name}'") from None


def referencing(name: str) -> List[Tuple[TableSpec, ForeignKey]]:
    """Every (table, foreign key) pair that points at collection ``name``."""

    return [(spec, fk) for spec in TABLES for fk in spec.foreign_keys if fk.target == name]


def conflict_for(spec: TableSpec, columns: Tuple[str, ...], record: object) -> ConflictError:
    if spec.name == "receipts" and columns == ("receipt_book_id", "receipt_number"):
        return DuplicateNumberError(record.receipt_book_id, record.receipt_number)  # type: ignore[attr-defined]
    value = tuple(getattr(record, column) for column in columns)
    return DuplicateKeyError(spec.name, columns, value[0] if len(value) == 1 else value)


def integrity_problems(dataset: Dataset) -> List[str]:
    """Describe every structural inconsistency of ``dataset`` (empty if none)."""

    problems: List[str] = []
    known_ids: Dict[str, Set[str]] = {}
    valid: Dict[str, List[object]] = {}
    for spec in TABLES:
        seen: Set[str] = set()
        records: List[object] = []
        for record in dataset.collection(spec.name):
            if not isinstance(record, spec.entity):
                problems.append(f"{spec.name}: unexpected record type {type(record).__name__}")
                continue
            if record.id in seen:  # type: ignore[attr-defined]
                problems.append(f"{spec.name}: duplicate id '{record.id}'")  # type: ignore[attr-defined]
            seen.add(record.id)  # type: ignore[attr-defined]
            records.append(record)
        known_ids[spec.name] = seen
        valid[spec.name] = records

    for spec in TABLES:
        for columns in spec.unique:
            owners: Dict[Tuple[object, ...], str] = {}
            for record in valid[spec.name]:
                key = tuple(getattr(record, column) for column in columns)
                if key in owners:
                    problems.append(
                        f"{spec.name}: duplicate {', '.join(columns)} {key!r} "
                        f"(records '{owners[key]}' and '{record.id}')"  # type: ignore[attr-defined]
                    )
                else:
                    owners[key] = record.id  # type: ignore[attr-defined]
        for fk in spec.foreign_keys:
            for record in valid[spec.name]:
                value = getattr(record, fk.field)
                if value is None and fk.optional:
                    continue
                if value not in known_ids[fk.target]:
                    problems.append(
                        f"{spec.name} '{record.id}': {fk.field} references missing "  # type: ignore[attr-defined]
                        f"{fk.target} '{value}'"
                    )
    return problems
