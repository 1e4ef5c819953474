"""
apps.config_core.services.adapters
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Interfaces of the storage tiers consumed by the datalist resolver, plus the
Django cache-framework implementation of the distributed cache tier.

The resolver depends only on :class:`PersistentStore` and
:class:`DistributedCache`; concrete implementations are injected when a
:class:`~apps.config_core.services.config_context.ConfigContext` is built.

Public API
----------
StoreUnavailableError   – raised by adapters when their backend cannot be read
PersistentStore         – durable attribute storage scoped to one site
DistributedCache        – optional read-mostly accelerator
DjangoCacheAdapter      – DistributedCache over ``django.core.cache.caches``
"""
from __future__ import annotations

from typing import Any, Protocol

import structlog

logger = structlog.get_logger(__name__)


class StoreUnavailableError(Exception):
    """The backing store could not be reached or queried."""


class PersistentStore(Protocol):
    """
    Durable attribute storage keyed by name, scoped to one installation.

    ``set_attribute`` only stages a mutation; ``save`` commits every staged
    mutation at once and reports success as a boolean.
    """

    def get_attribute(self, key: str) -> Any:
        """Return the stored value or ``None``; raise StoreUnavailableError."""
        ...

    def set_attribute(self, key: str, value: Any) -> None:
        ...

    def save(self) -> bool:
        ...


class DistributedCache(Protocol):
    """Read-only view of a shared cache.  Nothing here writes or invalidates."""

    def is_available(self) -> bool:
        ...

    def load(self, key: str) -> Any:
        ...


class DjangoCacheAdapter:
    """
    Reads datalist values from a configured Django cache alias.

    Availability is probed once, at construction: the alias must be declared
    in ``settings.CACHES``.  A backend error during :meth:`load` is logged and
    reported as a miss so that resolution continues with the next tier.
    """

    def __init__(self, alias: str, caches=None) -> None:
        if caches is None:
            from django.core.cache import caches  # noqa: PLC0415
        self.alias = alias
        self._caches = caches
        self._available = alias in caches.settings

    def is_available(self) -> bool:
        return self._available

    def load(self, key: str) -> Any:
        if not self._available:
            return None
        try:
            return self._caches[self.alias].get(key)
        except Exception as exc:  # noqa: BLE001 - any backend failure is a miss
            logger.warning(
                "datalist_cache_load_failed",
                alias=self.alias,
                key=key,
                error=str(exc),
            )
            return None
