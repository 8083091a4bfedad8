"""Mini README: Donation ledger core package.

This package contains the bookkeeping core of a donation ledger: receipt
books with range-bounded receipt numbering, income and expense aggregation
with frozen published reports, and atomic backup export/restore. Sub-modules
are organised by domain (``domain``, ``numbering``, ``finance``, ``backup``,
``storage``, ``services``) and share logging through
``donation_ledger.logging_utils``.
"""

from .access import Actor
from .core import LedgerCore
from .logging_utils import get_logger

__all__ = ["Actor", "LedgerCore", "get_logger"]
