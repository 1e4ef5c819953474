"""
apps.config_core.services.datalist
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Tiered resolver for installation-wide named settings ("datalists").

Lookup order (first hit wins):
    1. **Process memo cache** - values already resolved or set during this
       process.  A hit here is terminal, even if a lower tier has changed.
    2. **Static settings** - the flat name → value table loaded once from
       the settings file at process start.
    3. **Distributed cache** - only when an adapter is injected and reports
       itself available.  Queried by bare name.
    4. **Persistent store** - the bare name as a direct attribute first,
       then the namespaced key ``"config:<name>"``.

Writes go to the persistent store only, always under the namespaced key.
The distributed cache is never written or invalidated here, so an entry in
it can lag behind the store until it expires.  Concurrent writers are not
isolated from each other: the last successful ``save`` wins.

This module is **pure Python**: it has zero Django view, serializer, or
ORM imports.

Public API
----------
LOOKUP_FAILED               – sentinel: the lookup failed (vs. ``None``: not set)
MAX_NAME_LENGTH             – longest name any persistent tier accepts
CONFIG_NAMESPACE            – prefix for keys written to the persistent store
DatalistStore.resolve(name) -> value | None | LOOKUP_FAILED
DatalistStore.persist(name, value) -> bool
"""
from __future__ import annotations

from typing import Any, Mapping

import structlog

from .adapters import DistributedCache, PersistentStore, StoreUnavailableError
from .memo_cache import ProcessMemoCache

logger = structlog.get_logger(__name__)

MAX_NAME_LENGTH = 255
CONFIG_NAMESPACE = "config:"


class _LookupFailed:
    """Type of :data:`LOOKUP_FAILED`; falsy so callers can test it loosely."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "LOOKUP_FAILED"


#: Returned by :meth:`DatalistStore.resolve` when the name is invalid or the
#: persistent store could not be read.  Distinct from ``None`` ("not set").
LOOKUP_FAILED = _LookupFailed()


def namespaced(name: str) -> str:
    """Return the persistent-store key for *name*."""
    return f"{CONFIG_NAMESPACE}{name}"


def name_too_long(name: str) -> bool:
    """Log and return True when *name* exceeds :data:`MAX_NAME_LENGTH`."""
    if len(name) > MAX_NAME_LENGTH:
        logger.error(
            "config_name_too_long",
            name_length=len(name),
            limit=MAX_NAME_LENGTH,
        )
        return True
    return False


class DatalistStore:
    """
    Resolves and persists installation-wide settings across storage tiers.

    Args:
        memo: The process memo cache shared with the configuration facade.
            The resolver reads it but never writes it; memoization is the
            facade's decision.
        static_settings: Flat mapping loaded from the settings file.
        store: Persistent store adapter, or ``None`` when no installation
            record is reachable (every lookup is then "not set" and every
            write fails).
        cache: Optional distributed cache adapter.

    Example::

        datalist = DatalistStore(
            memo=ProcessMemoCache(),
            static_settings={"language": "en"},
            store=SiteAttributeStore(site_id=1),
        )
        datalist.persist("dataroot", "/var/www/data")   # True
        datalist.resolve("dataroot")                    # "/var/www/data"
        datalist.resolve("never_set")                   # None
    """

    def __init__(
        self,
        memo: ProcessMemoCache,
        static_settings: Mapping[str, Any] | None = None,
        store: PersistentStore | None = None,
        cache: DistributedCache | None = None,
    ) -> None:
        self.memo = memo
        self.static_settings = static_settings if static_settings is not None else {}
        self.store = store
        self.cache = cache

    def resolve(self, name: str) -> Any:
        """
        Look *name* up through every tier in precedence order.

        Returns:
            The first value found; ``None`` when no tier has the name; or
            :data:`LOOKUP_FAILED` when the name is longer than
            :data:`MAX_NAME_LENGTH` or the persistent store is unreachable.
        """
        name = name.strip()

        if name_too_long(name):
            return LOOKUP_FAILED

        if self.memo.has(name):
            return self.memo.get(name)

        if name in self.static_settings:
            return self.static_settings[name]

        if self.cache is not None and self.cache.is_available():
            value = self.cache.load(name)
            if value is not None:
                return value

        if self.store is None:
            return None

        try:
            value = self.store.get_attribute(name)
            if value is None:
                value = self.store.get_attribute(namespaced(name))
        except StoreUnavailableError as exc:
            logger.error("datalist_store_unreachable", name=name, error=str(exc))
            return LOOKUP_FAILED
        return value

    def persist(self, name: str, value: Any) -> bool:
        """
        Write *value* to the persistent store under ``"config:<name>"`` and
        commit it.

        Returns:
            The store's ``save()`` result; ``False`` without touching any tier
            when the name is too long or there is no store.
        """
        name = name.strip()

        if name_too_long(name):
            return False

        if self.store is None:
            logger.warning("datalist_persist_without_store", name=name)
            return False

        try:
            self.store.set_attribute(namespaced(name), value)
            return bool(self.store.save())
        except StoreUnavailableError as exc:
            logger.error("datalist_store_unreachable", name=name, error=str(exc))
            return False
