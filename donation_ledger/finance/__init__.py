"""Mini README: Financial aggregation and publication for the donation ledger.

``aggregator`` computes the ledger snapshot (income, expenses, balance and
per-task breakdown) from raw records; ``publisher`` freezes snapshots into
append-only published reports and resolves the current public one.
"""

from .aggregator import LedgerSnapshot, TaskIncome, aggregate
from .publisher import SnapshotPublisher, decode_report

__all__ = ["LedgerSnapshot", "SnapshotPublisher", "TaskIncome", "aggregate", "decode_report"]
