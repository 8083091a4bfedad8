"""Mini README: Ledger services grouped by concern.

``receipting`` owns receipt books and numbering, ``directory`` the users,
tasks and expense records around them, and ``reporting`` the financial
views. ``LedgerCore`` composes all three over one storage backend.
"""

from .base import LedgerService
from .directory import DirectoryService
from .receipting import ReceiptingService
from .reporting import ReportingService

__all__ = ["DirectoryService", "LedgerService", "ReceiptingService", "ReportingService"]
