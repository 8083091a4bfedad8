"""Mini README: Publication of frozen ledger snapshots.

Structure:
    * SnapshotPublisher - appends ``PublishedReport`` records and resolves the
      latest one for public consumption.
    * decode_report - turns a stored report back into a ``LedgerSnapshot``.

Publishing never overwrites: each call stores a new record and the history
is kept. The "current" report is the one with the greatest ``published_at``;
when two share a timestamp the one stored last wins. Public readers only see
those frozen numbers, so the public view stays stable between publish events
while receipts and expenses keep changing underneath.
"""

from __future__ import annotations

import json
from typing import Callable, List

from ..domain import PublishedReport, utc_now
from ..errors import CorruptReport, NotFoundError
from ..logging_utils import get_logger
from ..storage.base import StorageBackend
from .aggregator import LedgerSnapshot

LOGGER = get_logger(__name__)

REPORTS = "published_reports"


def decode_report(report: PublishedReport) -> LedgerSnapshot:
    """Return the frozen snapshot embedded in ``report`` or raise ``CorruptReport``."""

    try:
        payload = json.loads(report.report_data)
    except ValueError as error:
        raise CorruptReport(report.id, "invalid JSON") from error
    if not isinstance(payload, dict):
        raise CorruptReport(report.id, f"expected an object, got {type(payload).__name__}")
    try:
        return LedgerSnapshot.from_dict(payload)
    except ValueError as error:
        raise CorruptReport(report.id, str(error)) from error


class SnapshotPublisher:
    """Freeze aggregation results into append-only published reports."""

    def __init__(self, storage: StorageBackend, clock: Callable[[], object] = utc_now) -> None:
        self._storage = storage
        self._clock = clock

    def publish(self, snapshot: LedgerSnapshot, published_by: str) -> PublishedReport:
        """Store ``snapshot`` as a new report attributed to ``published_by``."""

        report = PublishedReport(
            report_data=json.dumps(snapshot.as_dict(), sort_keys=True),
            published_by=published_by,
            published_at=self._clock(),
        )
        stored = self._storage.insert(REPORTS, report)
        LOGGER.info(
            "Published report %s by %s (income=%s expenses=%s balance=%s)",
            stored.id,
            published_by,
            snapshot.total_income,
            snapshot.total_expenses,
            snapshot.current_balance,
        )
        return stored

    def history(self) -> List[PublishedReport]:
        """Every published report, newest first."""

        reports = list(enumerate(self._storage.list(REPORTS)))
        reports.sort(key=lambda item: (item[1].published_at, item[0]), reverse=True)
        return [report for _, report in reports]

    def latest(self) -> PublishedReport:
        """The current public report or ``NotFoundError`` when none exists."""

        reports = self.history()
        if not reports:
            raise NotFoundError(REPORTS, "latest")
        return reports[0]
