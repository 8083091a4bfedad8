"""Mini README: Income and expense aggregation.

Structure:
    * TaskIncome - per-task amount raised and receipt book count.
    * LedgerSnapshot - totals, balance and the per-task breakdown.
    * aggregate - builds a snapshot from the four source collections.

The aggregation is read-only and keeps no state. Amounts are summed as
``Decimal`` values so the identity ``total_income - total_expenses ==
current_balance`` holds exactly, including negative balances. Every task
appears in the breakdown, including tasks that have not raised anything yet,
and a task's book count does not depend on whether its books hold receipts.
"""

from __future__ import annotations

from collections import Counter, defaultdict
from dataclasses import dataclass, field
from decimal import Decimal
from typing import DefaultDict, Dict, Iterable, List, Mapping, Tuple

from ..domain import Expense, Receipt, ReceiptBook, Task, ZERO, format_money, money_sum, to_money
from ..logging_utils import get_logger

LOGGER = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class TaskIncome:
    """Amount raised for a single task."""

    task_id: str
    task_name: str
    total: Decimal
    receipt_book_count: int

    def as_dict(self) -> Dict[str, object]:
        return {
            "taskId": self.task_id,
            "taskName": self.task_name,
            "total": format_money(self.total),
            "receiptBookCount": self.receipt_book_count,
        }


@dataclass(frozen=True, slots=True)
class LedgerSnapshot:
    """Point-in-time financial totals."""

    total_income: Decimal
    total_expenses: Decimal
    current_balance: Decimal
    income_by_task: Tuple[TaskIncome, ...] = field(default_factory=tuple)

    def as_dict(self) -> Dict[str, object]:
        """Serialise with camelCase keys and string amounts."""

        return {
            "totalIncome": format_money(self.total_income),
            "totalExpenses": format_money(self.total_expenses),
            "currentBalance": format_money(self.current_balance),
            "incomeByTask": [entry.as_dict() for entry in self.income_by_task],
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, object]) -> "LedgerSnapshot":
        """Rebuild a snapshot from ``as_dict`` output, amounts taken verbatim."""

        try:
            income_by_task = tuple(
                TaskIncome(
                    task_id=str(entry["taskId"]),
                    task_name=str(entry["taskName"]),
                    total=to_money(entry["total"]),
                    receipt_book_count=int(entry["receiptBookCount"]),
                )
                for entry in payload.get("incomeByTask", [])  # type: ignore[union-attr]
            )
            return cls(
                total_income=to_money(payload["totalIncome"]),
                total_expenses=to_money(payload["totalExpenses"]),
                current_balance=to_money(payload["currentBalance"]),
                income_by_task=income_by_task,
            )
        except (AttributeError, KeyError, TypeError) as error:
            raise ValueError(f"Malformed ledger snapshot payload: {error}") from error


def aggregate(
    receipts: Iterable[Receipt],
    expenses: Iterable[Expense],
    tasks: Iterable[Task],
    receipt_books: Iterable[ReceiptBook],
) -> LedgerSnapshot:
    """Compute totals, balance and the per-task breakdown."""

    raised_by_task: DefaultDict[str, List[Decimal]] = defaultdict(list)
    all_income: List[Decimal] = []
    for receipt in receipts:
        all_income.append(receipt.amount)
        raised_by_task[receipt.task_id].append(receipt.amount)

    books_by_task = Counter(book.task_id for book in receipt_books)
    total_income = money_sum(all_income)
    total_expenses = money_sum(expense.amount for expense in expenses)

    breakdown = tuple(
        TaskIncome(
            task_id=task.id,
            task_name=task.name,
            total=money_sum(raised_by_task.get(task.id, [ZERO])),
            receipt_book_count=books_by_task.get(task.id, 0),
        )
        for task in tasks
    )
    snapshot = LedgerSnapshot(
        total_income=total_income,
        total_expenses=total_expenses,
        current_balance=total_income - total_expenses,
        income_by_task=breakdown,
    )
    LOGGER.debug(
        "Aggregated ledger income=%s expenses=%s balance=%s tasks=%s",
        snapshot.total_income,
        snapshot.total_expenses,
        snapshot.current_balance,
        len(breakdown),
    )
    return snapshot
