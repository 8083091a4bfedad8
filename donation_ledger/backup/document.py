"""Mini README: Structured-document (JSON) form of a ledger backup.

Structure:
    * *Record models - pydantic schemas for one camelCase record per table.
    * BackupDocument - the whole document: one array per collection.
    * dataset_to_document / dumps_document - export helpers.
    * parse_document - validate a document and rebuild a ``Dataset``.

The document carries ``users``, ``tasks``, ``receiptBooks``, ``receipts``,
``expenses``, ``expenseTypes`` and ``publishedReports`` arrays plus
``formatVersion`` / ``exportedAt`` metadata. Every array is required because
a restore replaces everything; a missing array would otherwise silently wipe
a table. Shape errors are reported per field as ``InvalidSnapshot`` problems.
"""

from __future__ import annotations

import json
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import BaseModel
from pydantic import ValidationError as SchemaError

from ..domain import (
    Dataset,
    Expense,
    ExpenseType,
    ExpenseTypeStatus,
    PublishedReport,
    Receipt,
    ReceiptBook,
    ReceiptBookStatus,
    Role,
    Task,
    TaskStatus,
    User,
    camel_case,
    utc_now,
)
from ..errors import InvalidSnapshot, ValidationError
from ..logging_utils import get_logger
from ..storage.tables import INSERT_ORDER, table

LOGGER = get_logger(__name__)

FORMAT_VERSION = 1


class _RecordModel(BaseModel):
    class Config:
        alias_generator = camel_case
        extra = "ignore"


class UserRecord(_RecordModel):
    id: str
    username: str
    password: str
    full_name: str
    role: Role
    is_active: bool = True
    created_at: datetime
    updated_at: datetime


class TaskRecord(_RecordModel):
    id: str
    name: str
    description: Optional[str] = None
    status: TaskStatus
    created_by: str
    created_at: datetime
    updated_at: datetime


class ExpenseTypeRecord(_RecordModel):
    id: str
    name: str
    description: Optional[str] = None
    status: ExpenseTypeStatus
    created_by: str
    created_at: datetime
    updated_at: datetime


class ReceiptBookRecord(_RecordModel):
    id: str
    book_number: str
    task_id: str
    assigned_to: Optional[str] = None
    starting_receipt_number: int
    ending_receipt_number: int
    total_receipts: Optional[int] = None
    status: ReceiptBookStatus
    created_by: str
    created_at: datetime
    updated_at: datetime


class ReceiptRecord(_RecordModel):
    id: str
    receipt_number: int
    receipt_book_id: str
    task_id: str
    giver_name: str
    address: str
    phone_number: Optional[str] = None
    amount: Decimal
    entered_by: str
    created_at: datetime
    updated_at: datetime


class ExpenseRecord(_RecordModel):
    id: str
    expense_type_id: str
    amount: Decimal
    expense_date: datetime
    description: Optional[str] = None
    created_by: str
    created_at: datetime
    updated_at: datetime


class PublishedReportRecord(_RecordModel):
    id: str
    report_data: str
    published_by: str
    published_at: datetime


class BackupDocument(_RecordModel):
    users: List[UserRecord]
    tasks: List[TaskRecord]
    expense_types: List[ExpenseTypeRecord]
    receipt_books: List[ReceiptBookRecord]
    receipts: List[ReceiptRecord]
    expenses: List[ExpenseRecord]
    published_reports: List[PublishedReportRecord]


_ENTITIES = {
    "users": User,
    "tasks": Task,
    "expense_types": ExpenseType,
    "receipt_books": ReceiptBook,
    "receipts": Receipt,
    "expenses": Expense,
    "published_reports": PublishedReport,
}


def dataset_to_document(dataset: Dataset, exported_at: Optional[datetime] = None) -> Dict[str, Any]:
    """Return the JSON-ready structured form of ``dataset``."""

    document: Dict[str, Any] = {
        "formatVersion": FORMAT_VERSION,
        "exportedAt": (exported_at or utc_now()).isoformat(),
    }
    for name in INSERT_ORDER:
        document[table(name).document_key] = [record.as_dict() for record in dataset.collection(name)]  # type: ignore[attr-defined]
    return document


def dumps_document(dataset: Dataset, exported_at: Optional[datetime] = None) -> str:
    return json.dumps(dataset_to_document(dataset, exported_at), indent=2, ensure_ascii=False)


def _schema_problems(error: SchemaError) -> List[str]:
    problems = []
    for issue in error.errors():
        location = ".".join(str(part) for part in issue.get("loc", ()))
        problems.append(f"{location}: {issue.get('msg', 'invalid value')}")
    return problems


def parse_document(payload: Union[str, bytes, Mapping[str, Any]]) -> Dataset:
    """Validate a structured backup and rebuild the ``Dataset`` it describes."""

    if isinstance(payload, (str, bytes)):
        try:
            payload = json.loads(payload)
        except json.JSONDecodeError as error:
            raise InvalidSnapshot([f"document is not valid JSON: {error}"]) from error
    if not isinstance(payload, Mapping):
        raise InvalidSnapshot(["document must be a JSON object with one array per collection"])

    try:
        document = BackupDocument.model_validate(payload)
    except SchemaError as error:
        raise InvalidSnapshot(_schema_problems(error)) from error

    problems: List[str] = []
    collections: Dict[str, List[object]] = {}
    for name in INSERT_ORDER:
        entity_cls = _ENTITIES[name]
        key = table(name).document_key
        records: List[object] = []
        for index, model in enumerate(getattr(document, name)):
            values = model.model_dump()
            declared_total = values.pop("total_receipts", None)
            try:
                record = entity_cls(**values)
            except ValidationError as error:
                problems.extend(f"{key}.{index}.{field}: {reason}" for field, reason in sorted(error.errors.items()))
                continue
            if declared_total is not None and declared_total != getattr(record, "total_receipts", declared_total):
                problems.append(
                    f"{key}.{index}.totalReceipts: {declared_total} does not match the range size "
                    f"{record.total_receipts}"  # type: ignore[attr-defined]
                )
            records.append(record)
        collections[name] = records
    if problems:
        raise InvalidSnapshot(problems)

    dataset = Dataset(**collections)
    LOGGER.debug("Parsed backup document with %s", dataset.counts())
    return dataset
