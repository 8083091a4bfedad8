"""Mini README: Locking primitives for the ledger core.

Structure:
    * KeyedLocks - one mutex per key (receipt book id), created on demand
      and dropped once unused.
    * MaintenanceGate - shared/exclusive gate separating normal ledger work
      from the stop-the-world restore.

Receipt numbering is the only resource needing explicit mutual exclusion:
two requests against the same book serialise on that book's mutex while
requests against different books never contend. Every other operation holds
the gate in shared mode; a restore holds it exclusively so nothing observes
the store mid-replace. The gate prefers the writer: once a restore is
waiting, new shared holders queue behind it. A second restore never queues
and is refused with ``RestoreInProgress``.

Shared holds are not re-entrant across a waiting restore, so code holding the
gate must not call back into another gated operation.
"""

from __future__ import annotations

import threading
import weakref
from contextlib import contextmanager
from typing import Hashable, Iterator

from .errors import RestoreInProgress
from .logging_utils import get_logger

LOGGER = get_logger(__name__)


class KeyedLocks:
    """Registry handing out a dedicated lock per key.

    Locks are only referenced weakly: once no thread holds or waits on a
    key's lock it is dropped, so keys of deleted books do not accumulate.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: weakref.WeakValueDictionary[Hashable, threading.Lock] = weakref.WeakValueDictionary()

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    def lock_for(self, key: Hashable) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        """Hold the lock for ``key`` for the duration of the block."""

        lock = self.lock_for(key)
        with lock:
            yield


class MaintenanceGate:
    """Readers-writer gate where the single writer is a restore."""

    def __init__(self) -> None:
        self._condition = threading.Condition()
        self._shared_holders = 0
        self._exclusive = False

    @property
    def restore_active(self) -> bool:
        with self._condition:
            return self._exclusive

    @contextmanager
    def shared(self) -> Iterator[None]:
        """Hold the gate alongside other normal operations."""

        with self._condition:
            while self._exclusive:
                self._condition.wait()
            self._shared_holders += 1
        try:
            yield
        finally:
            with self._condition:
                self._shared_holders -= 1
                if not self._shared_holders:
                    self._condition.notify_all()

    @contextmanager
    def exclusive(self) -> Iterator[None]:
        """Hold the gate alone; refuse immediately if a restore owns it."""

        with self._condition:
            if self._exclusive:
                raise RestoreInProgress()
            self._exclusive = True
            LOGGER.debug("Exclusive hold requested; draining %s shared holders", self._shared_holders)
            while self._shared_holders:
                self._condition.wait()
        try:
            yield
        finally:
            with self._condition:
                self._exclusive = False
                self._condition.notify_all()
