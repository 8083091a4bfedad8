"""Mini README: Registry of storage backends.

Structure:
    * StorageBackendRegistry - maps backend identifiers to ``StorageBackend``
      classes and builds instances on request, either from explicit options
      or from ``LedgerSettings``.

Built-in backends register themselves on import. The outer layer looks a
backend up by the name found in its configuration; each backend class picks
the settings it needs (the SQLite store reads ``database_path``) so callers
never special-case a backend. The core only ever sees the constructed
instance.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Dict, Iterable, Type

from ..logging_utils import get_logger
from .base import StorageBackend

if TYPE_CHECKING:
    from ..configuration import LedgerSettings

LOGGER = get_logger(__name__)


class StorageBackendRegistry:
    """Simple registry for mapping backend identifiers to classes."""

    def __init__(self) -> None:
        self._backends: Dict[str, Type[StorageBackend]] = {}

    def register(self, backend: Type[StorageBackend]) -> None:
        """Register a backend class under its ``backend_name``."""

        identifier = backend.backend_name.lower()
        LOGGER.debug("Registering storage backend '%s'", identifier)
        self._backends[identifier] = backend

    def available_backends(self) -> Iterable[str]:
        return sorted(self._backends.keys())

    def _lookup(self, identifier: str) -> Type[StorageBackend]:
        backend_cls = self._backends.get(identifier.strip().lower())
        if not backend_cls:
            raise KeyError(f"Unknown storage backend '{identifier}'")
        return backend_cls

    def create(self, identifier: str, **options: object) -> StorageBackend:
        """Instantiate the backend matching ``identifier``."""

        backend_cls = self._lookup(identifier)
        LOGGER.info("Creating storage backend '%s'", identifier)
        return backend_cls(**options)

    def create_from_settings(self, settings: "LedgerSettings") -> StorageBackend:
        """Instantiate the configured backend with the options it reads from ``settings``."""

        backend_cls = self._lookup(settings.storage_backend)
        options = backend_cls.options_from_settings(settings)
        LOGGER.info("Creating storage backend '%s' with %s", backend_cls.backend_name, options)
        return backend_cls(**options)


BACKENDS = StorageBackendRegistry()
