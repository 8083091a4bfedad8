"""Mini README: Receipt numbering helpers.

The ``allocator`` module contains the pure gap-filling allocation routine and
the validation applied to explicitly supplied receipt numbers.
"""

from .allocator import check_explicit_number, next_number

__all__ = ["check_explicit_number", "next_number"]
