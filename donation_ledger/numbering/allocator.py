"""Mini README: Gap-filling receipt number allocation.

Structure:
    * next_number - lowest unused number of a book or ``RangeExhausted``.
    * check_explicit_number - validation for caller supplied numbers.

Both functions are pure: they look only at the book bounds and the set of
numbers already held by live receipts of that book. Deleting a receipt frees
its number, and the next allocation returns the lowest free slot rather than
continuing after the highest number issued. Callers hold the per-book lock
from ``donation_ledger.concurrency`` across the read-allocate-write sequence.
"""

from __future__ import annotations

from typing import AbstractSet

from ..domain import ReceiptBook
from ..errors import DuplicateNumberError, OutOfRangeError, RangeExhausted, ValidationError


def next_number(book: ReceiptBook, used_numbers: AbstractSet[int]) -> int:
    """Return the lowest number of ``book`` that is not in ``used_numbers``."""

    for number in book.numbers():
        if number not in used_numbers:
            return number
    raise RangeExhausted(book.id)


def check_explicit_number(book: ReceiptBook, number: object, used_numbers: AbstractSet[int]) -> int:
    """Validate a caller supplied receipt number for ``book`` and return it."""

    if isinstance(number, bool) or not isinstance(number, int):
        raise ValidationError({"receipt_number": "must be an integer"})
    if not book.contains(number):
        raise OutOfRangeError(book.id, number, book.starting_receipt_number, book.ending_receipt_number)
    if number in used_numbers:
        raise DuplicateNumberError(book.id, number)
    return number
