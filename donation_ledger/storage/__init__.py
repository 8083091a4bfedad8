"""Mini README: Storage subsystem package initialiser.

Re-exports the storage abstraction and the built-in backends. The package is
divided into ``tables`` for shared relational metadata, ``base`` for the
abstract interface, ``registry`` for name based lookup and one module per
concrete backend.
"""

from .base import StorageBackend
from .registry import BACKENDS, StorageBackendRegistry
from .memory import InMemoryStorage
from .sqlite import SqliteStorage
from .tables import DELETE_ORDER, INSERT_ORDER, TABLES, ForeignKey, TableSpec, integrity_problems, table

__all__ = [
    "BACKENDS",
    "DELETE_ORDER",
    "ForeignKey",
    "INSERT_ORDER",
    "InMemoryStorage",
    "SqliteStorage",
    "StorageBackend",
    "StorageBackendRegistry",
    "TABLES",
    "TableSpec",
    "integrity_problems",
    "table",
]
