"""Mini README: Shared plumbing for the ledger services.

Structure:
    * LedgerService - holds the storage backend, the maintenance gate and the
      clock shared by every service.
    * apply_changes - validated partial update of an immutable record.
    * newest_first - listing order used by every collection view.

Every public service method enters ``gate.shared()`` exactly once and then
works through private helpers that never touch the gate again, so a waiting
restore can never deadlock a half-finished request.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Callable, Iterable, List, Mapping, Optional, TypeVar

from ..concurrency import MaintenanceGate
from ..domain import utc_now
from ..errors import ValidationError
from ..storage.base import StorageBackend

T = TypeVar("T")


class LedgerService:
    """Base class wiring a service to its collaborators."""

    def __init__(
        self,
        storage: StorageBackend,
        gate: Optional[MaintenanceGate] = None,
        clock: Callable[[], object] = utc_now,
    ) -> None:
        self._storage = storage
        self._gate = gate or MaintenanceGate()
        self._clock = clock

    def _timestamps(self) -> dict:
        now = self._clock()
        return {"created_at": now, "updated_at": now}


def apply_changes(record: T, changes: Mapping[str, object], editable: Iterable[str], clock: Callable[[], object]) -> T:
    """Return a copy of ``record`` with ``changes`` applied and ``updated_at`` refreshed."""

    allowed = set(editable)
    refused = {key: "cannot be changed" for key in changes if key not in allowed}
    if refused:
        raise ValidationError(refused)
    return replace(record, updated_at=clock(), **dict(changes))  # type: ignore[type-var]


def newest_first(records: Iterable[T]) -> List[T]:
    """Order records by ``created_at`` descending, keeping storage order for ties."""

    return sorted(records, key=lambda record: record.created_at, reverse=True)  # type: ignore[attr-defined]
