"""Mini README: Tests for record validation and money handling.

Structure:
    * money helpers - two-digit decimals, no silent rounding.
    * record validation - field-level errors and normalisation.
"""

from __future__ import annotations

from datetime import timezone
from decimal import Decimal

import pytest

from donation_ledger.domain import Dataset, Expense, ReceiptBook, Role, User, format_money, money_sum, to_money
from donation_ledger.errors import ValidationError


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("350.5", Decimal("350.50")), (0.1, Decimal("0.10")), (12, Decimal("12.00")), (" 7.25 ", Decimal("7.25"))],
)
def test_to_money_normalises(raw, expected) -> None:
    """Amounts normalise to two fractional digits."""

    assert to_money(raw) == expected
    assert to_money(raw).as_tuple().exponent == -2


@pytest.mark.parametrize("raw", ["1.005", "NaN", "Infinity", True, None, "twelve"])
def test_to_money_rejects(raw) -> None:
    """Over-precise, non-finite and non-numeric amounts raise ValueError."""

    with pytest.raises(ValueError):
        to_money(raw)


def test_money_sum_and_format() -> None:
    """Sums are exact and formatted with two digits."""

    total = money_sum([Decimal("0.10")] * 3)
    assert total == Decimal("0.30")
    assert format_money(total) == "0.30"
    assert money_sum([]) == Decimal("0.00")


def test_record_collects_field_errors() -> None:
    """Every invalid field is reported at once."""

    with pytest.raises(ValidationError) as info:
        User(username=" ", password="digest", full_name="", role="owner")
    assert set(info.value.errors) == {"username", "full_name", "role"}


def test_record_normalises_values() -> None:
    """Roles, flags, amounts and timestamps are coerced on construction."""

    user = User(username="ada", password="digest", full_name="Ada", role="MANAGER", is_active=0)
    assert user.role is Role.MANAGER
    assert user.is_active is False

    expense = Expense(expense_type_id="et", amount="4.5", expense_date="2024-05-02T10:00:00Z", created_by="u")
    assert expense.amount == Decimal("4.50")
    assert expense.expense_date.tzinfo == timezone.utc
    assert expense.as_dict()["amount"] == "4.50"
    assert expense.as_dict()["expenseTypeId"] == "et"


def test_receipt_book_range_rules() -> None:
    """Book ranges start at zero or above and derive their size."""

    with pytest.raises(ValidationError) as info:
        ReceiptBook(book_number="B", task_id="t", starting_receipt_number=-1, ending_receipt_number=3, created_by="u")
    assert "starting_receipt_number" in info.value.errors
    book = ReceiptBook(book_number="B", task_id="t", starting_receipt_number=3, ending_receipt_number=5, created_by="u")
    assert book.total_receipts == 3
    assert list(book.numbers()) == [3, 4, 5]
    assert book.contains(5) and not book.contains(6)


def test_dataset_collections() -> None:
    """Datasets expose the seven collections by name only."""

    dataset = Dataset()
    assert dataset.counts()["receipts"] == 0
    with pytest.raises(KeyError):
        dataset.collection("donors")
