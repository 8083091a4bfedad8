"""Mini README: Fixed-point money helpers.

All monetary values in the ledger are ``Decimal`` instances quantized to two
fractional digits. Inputs carrying more precision are rejected rather than
rounded so that a receipt never silently changes value between entry and
aggregation. Floats are accepted only through their shortest ``repr`` so
``0.1`` becomes ``Decimal("0.10")`` and not its binary expansion.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Iterable

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value: object) -> Decimal:
    """Coerce ``value`` into a two-digit ``Decimal`` or raise ``ValueError``."""

    if isinstance(value, bool):
        raise ValueError("must be a decimal amount, not a boolean")
    try:
        if isinstance(value, Decimal):
            amount = value
        elif isinstance(value, int):
            amount = Decimal(value)
        elif isinstance(value, float):
            amount = Decimal(repr(value))
        elif isinstance(value, str):
            amount = Decimal(value.strip())
        else:
            raise ValueError(f"must be a decimal amount, got {type(value).__name__}")
        if not amount.is_finite():
            raise ValueError("must be a finite amount")
        quantized = amount.quantize(CENT)
    except InvalidOperation as error:
        raise ValueError(f"is not a valid amount: {value!r}") from error
    if quantized != amount:
        raise ValueError("must have at most 2 fractional digits")
    return quantized


def money_sum(amounts: Iterable[Decimal]) -> Decimal:
    """Exact sum of money values, always returned with two fractional digits."""

    return sum(amounts, ZERO).quantize(CENT)


def format_money(amount: Decimal) -> str:
    """Render an amount the way documents and SQL literals store it."""

    return str(amount.quantize(CENT))
