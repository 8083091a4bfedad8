"""Mini README: Domain records and money helpers for the donation ledger.

``entities`` holds the immutable records that mirror the relational tables
plus the ``Dataset`` container used by backups; ``money`` holds the
fixed-point helpers every amount passes through.
"""

from .entities import (
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
    new_id,
    utc_now,
)
from .money import CENT, ZERO, format_money, money_sum, to_money

__all__ = [
    "CENT",
    "Dataset",
    "Expense",
    "ExpenseType",
    "ExpenseTypeStatus",
    "PublishedReport",
    "Receipt",
    "ReceiptBook",
    "ReceiptBookStatus",
    "Role",
    "Task",
    "TaskStatus",
    "User",
    "ZERO",
    "camel_case",
    "format_money",
    "money_sum",
    "new_id",
    "to_money",
    "utc_now",
]
