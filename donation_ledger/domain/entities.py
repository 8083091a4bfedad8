"""Mini README: Ledger entities and the backup dataset container.

Structure:
    * Role / TaskStatus / ReceiptBookStatus / ExpenseTypeStatus - enums.
    * User, Task, ReceiptBook, Receipt, ExpenseType, Expense, PublishedReport -
      immutable records mirroring the relational tables one to one.
    * Dataset - one list per collection, ordered roots before leaves.

Every record validates and normalises itself on construction: enum values
given as strings are coerced, timestamps become timezone-aware UTC datetimes
and money becomes a two-digit ``Decimal``. A record that cannot be built
raises ``ValidationError`` with one message per offending field, so storage
rows, restore documents and service payloads all share the same rules.
Changes are expressed with ``dataclasses.replace`` which re-runs validation.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import date, datetime, time, timezone
from decimal import Decimal
from enum import Enum
from typing import Dict, Iterator, List, Optional, Tuple, Type, TypeVar
from uuid import uuid4

from ..errors import ValidationError
from .money import ZERO, format_money, to_money

E = TypeVar("E", bound=Enum)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid4())


def camel_case(name: str) -> str:
    """``receipt_book_id`` -> ``receiptBookId``."""

    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


class Role(str, Enum):
    """Caller roles known to the ledger."""

    ADMIN = "admin"
    MANAGER = "manager"
    CASH_COLLECTOR = "cash_collector"


class TaskStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    COMPLETED = "completed"


class ReceiptBookStatus(str, Enum):
    ACTIVE = "active"
    ASSIGNED = "assigned"
    COMPLETED = "completed"


class ExpenseTypeStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class _Checks:
    """Collects field errors while a record normalises itself."""

    __slots__ = ("record", "errors")

    def __init__(self, record: object) -> None:
        self.record = record
        self.errors: Dict[str, str] = {}

    def set(self, name: str, value: object) -> None:
        object.__setattr__(self.record, name, value)

    def text(self, name: str, *, optional: bool = False) -> None:
        value = getattr(self.record, name)
        if value is None and optional:
            return
        if not isinstance(value, str) or not value.strip():
            self.errors[name] = "must be a non-empty string"

    def integer(self, name: str) -> None:
        value = getattr(self.record, name)
        if isinstance(value, bool) or not isinstance(value, int):
            self.errors[name] = "must be an integer"

    def choice(self, name: str, enum_cls: Type[E]) -> None:
        value = getattr(self.record, name)
        try:
            self.set(name, enum_cls(value.strip().lower() if isinstance(value, str) else value))
        except ValueError:
            allowed = ", ".join(member.value for member in enum_cls)
            self.errors[name] = f"must be one of: {allowed}"

    def flag(self, name: str) -> None:
        value = getattr(self.record, name)
        if isinstance(value, bool):
            return
        if value in (0, 1):
            self.set(name, bool(value))
        else:
            self.errors[name] = "must be a boolean"

    def timestamp(self, name: str) -> None:
        value = getattr(self.record, name)
        try:
            if isinstance(value, str):
                value = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
            elif isinstance(value, date) and not isinstance(value, datetime):
                value = datetime.combine(value, time.min)
            if not isinstance(value, datetime):
                raise ValueError
        except ValueError:
            self.errors[name] = "must be an ISO 8601 timestamp"
            return
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        self.set(name, value.astimezone(timezone.utc))

    def money(self, name: str) -> None:
        try:
            amount = to_money(getattr(self.record, name))
        except ValueError as error:
            self.errors[name] = str(error)
            return
        if amount <= ZERO:
            self.errors[name] = "must be greater than zero"
            return
        self.set(name, amount)

    def done(self) -> None:
        if self.errors:
            raise ValidationError(self.errors)


def _serialise(value: object) -> object:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return format_money(value)
    if isinstance(value, datetime):
        return value.isoformat()
    return value


class _Record:
    """Shared helpers for ledger records."""

    __slots__ = ()

    def as_dict(self) -> Dict[str, object]:
        """Export the record with camelCase keys and JSON-safe values."""

        return {camel_case(item.name): _serialise(getattr(self, item.name)) for item in fields(self)}


@dataclass(frozen=True, slots=True)
class User(_Record):
    """A person allowed to act on the ledger."""

    username: str
    password: str
    full_name: str
    role: Role = Role.CASH_COLLECTOR
    is_active: bool = True
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    def __post_init__(self) -> None:
        checks = _Checks(self)
        checks.text("id")
        checks.text("username")
        checks.text("password")
        checks.text("full_name")
        checks.choice("role", Role)
        checks.flag("is_active")
        checks.timestamp("created_at")
        checks.timestamp("updated_at")
        checks.done()


@dataclass(frozen=True, slots=True)
class Task(_Record):
    """A fundraising purpose grouping receipt books and receipts."""

    name: str
    created_by: str
    description: Optional[str] = None
    status: TaskStatus = TaskStatus.ACTIVE
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    def __post_init__(self) -> None:
        checks = _Checks(self)
        checks.text("id")
        checks.text("name")
        checks.text("created_by")
        checks.text("description", optional=True)
        checks.choice("status", TaskStatus)
        checks.timestamp("created_at")
        checks.timestamp("updated_at")
        checks.done()


@dataclass(frozen=True, slots=True)
class ReceiptBook(_Record):
    """A numbered range of receipt slots belonging to one task.

    ``total_receipts`` is always derived from the range and cannot be passed
    in. A single-slot book (``starting == ending``) is valid.
    """

    book_number: str
    task_id: str
    starting_receipt_number: int
    ending_receipt_number: int
    created_by: str
    assigned_to: Optional[str] = None
    status: ReceiptBookStatus = ReceiptBookStatus.ACTIVE
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)
    total_receipts: int = field(init=False)

    def __post_init__(self) -> None:
        checks = _Checks(self)
        checks.text("id")
        checks.text("book_number")
        checks.text("task_id")
        checks.text("created_by")
        checks.text("assigned_to", optional=True)
        checks.integer("starting_receipt_number")
        checks.integer("ending_receipt_number")
        checks.choice("status", ReceiptBookStatus)
        checks.timestamp("created_at")
        checks.timestamp("updated_at")
        if not checks.errors:
            if self.starting_receipt_number < 0:
                checks.errors["starting_receipt_number"] = "must not be negative"
            elif self.ending_receipt_number < self.starting_receipt_number:
                checks.errors["ending_receipt_number"] = "must not be lower than starting_receipt_number"
        checks.done()
        checks.set("total_receipts", self.ending_receipt_number - self.starting_receipt_number + 1)

    def contains(self, number: int) -> bool:
        return self.starting_receipt_number <= number <= self.ending_receipt_number

    def numbers(self) -> Iterator[int]:
        """Every slot of the book in ascending order."""

        return iter(range(self.starting_receipt_number, self.ending_receipt_number + 1))


@dataclass(frozen=True, slots=True)
class Receipt(_Record):
    """A donation recorded against one slot of a receipt book."""

    receipt_number: int
    receipt_book_id: str
    task_id: str
    giver_name: str
    address: str
    amount: Decimal
    entered_by: str
    phone_number: Optional[str] = None
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    def __post_init__(self) -> None:
        checks = _Checks(self)
        checks.text("id")
        checks.integer("receipt_number")
        checks.text("receipt_book_id")
        checks.text("task_id")
        checks.text("giver_name")
        checks.text("address")
        checks.text("phone_number", optional=True)
        checks.money("amount")
        checks.text("entered_by")
        checks.timestamp("created_at")
        checks.timestamp("updated_at")
        checks.done()


@dataclass(frozen=True, slots=True)
class ExpenseType(_Record):
    name: str
    created_by: str
    description: Optional[str] = None
    status: ExpenseTypeStatus = ExpenseTypeStatus.ACTIVE
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    def __post_init__(self) -> None:
        checks = _Checks(self)
        checks.text("id")
        checks.text("name")
        checks.text("created_by")
        checks.text("description", optional=True)
        checks.choice("status", ExpenseTypeStatus)
        checks.timestamp("created_at")
        checks.timestamp("updated_at")
        checks.done()


@dataclass(frozen=True, slots=True)
class Expense(_Record):
    expense_type_id: str
    amount: Decimal
    expense_date: datetime
    created_by: str
    description: Optional[str] = None
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    def __post_init__(self) -> None:
        checks = _Checks(self)
        checks.text("id")
        checks.text("expense_type_id")
        checks.money("amount")
        checks.timestamp("expense_date")
        checks.text("created_by")
        checks.text("description", optional=True)
        checks.timestamp("created_at")
        checks.timestamp("updated_at")
        checks.done()


@dataclass(frozen=True, slots=True)
class PublishedReport(_Record):
    """A frozen ledger snapshot made public at ``published_at``.

    ``report_data`` holds the serialised snapshot and is never recomputed.
    """

    report_data: str
    published_by: str
    published_at: datetime = field(default_factory=utc_now)
    id: str = field(default_factory=new_id)

    def __post_init__(self) -> None:
        checks = _Checks(self)
        checks.text("id")
        checks.text("report_data")
        checks.text("published_by")
        checks.timestamp("published_at")
        checks.done()


@dataclass(slots=True)
class Dataset:
    """Complete copy of every collection, ordered roots before leaves."""

    users: List[User] = field(default_factory=list)
    tasks: List[Task] = field(default_factory=list)
    expense_types: List[ExpenseType] = field(default_factory=list)
    receipt_books: List[ReceiptBook] = field(default_factory=list)
    receipts: List[Receipt] = field(default_factory=list)
    expenses: List[Expense] = field(default_factory=list)
    published_reports: List[PublishedReport] = field(default_factory=list)

    def collection(self, name: str) -> List[object]:
        if name not in self.collection_names():
            raise KeyError(f"Unknown collection '{name}'")
        return getattr(self, name)

    @classmethod
    def collection_names(cls) -> Tuple[str, ...]:
        return tuple(item.name for item in fields(cls))

    def counts(self) -> Dict[str, int]:
        return {name: len(self.collection(name)) for name in self.collection_names()}
