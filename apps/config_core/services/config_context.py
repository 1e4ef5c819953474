"""
apps.config_core.services.config_context
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Public configuration facade.

A :class:`ConfigContext` is constructed explicitly, once per process, and
handed to whatever needs configuration.  It bundles the memo cache, the
tiered resolver and the run-once guard.

Two-phase writes: :meth:`ConfigContext.set_config` only updates the memo
cache; :meth:`ConfigContext.save_config` also persists.
"""
from __future__ import annotations

import time
from typing import Any, Callable, Mapping

import structlog

from common.exceptions import UnsupportedOperationError

from .adapters import DistributedCache, PersistentStore
from .datalist import LOOKUP_FAILED, DatalistStore, name_too_long
from .memo_cache import ProcessMemoCache
from .run_once import Operation, RunOnceGuard

logger = structlog.get_logger(__name__)

#: Scalar types the persistent store accepts.  Anything else is opaque.
#: Tuples are excluded: the store would hand them back as lists.
PERSISTABLE_SCALARS = (type(None), str, int, float, bool)


def is_persistable(value: Any) -> bool:
    """True for JSON-like values: scalars, lists and str-keyed dicts of them."""
    if isinstance(value, PERSISTABLE_SCALARS):
        return True
    if isinstance(value, list):
        return all(is_persistable(item) for item in value)
    if isinstance(value, dict):
        return all(
            isinstance(key, str) and is_persistable(item)
            for key, item in value.items()
        )
    return False


class ConfigContext:
    """
    Configuration state for one process.

    Example::

        ctx = ConfigContext(store=SiteAttributeStore(site_id=1))
        ctx.save_config("dataroot", "/var/www/data")   # True
        ctx.get_config("dataroot")                     # "/var/www/data"
        ctx.run_once("apps.upgrades.migrate_v2", 1700000000)
    """

    def __init__(
        self,
        static_settings: Mapping[str, Any] | None = None,
        store: PersistentStore | None = None,
        cache: DistributedCache | None = None,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self.memo = ProcessMemoCache()
        self.static_settings = dict(static_settings or {})
        self.datalist = DatalistStore(
            memo=self.memo,
            static_settings=self.static_settings,
            store=store,
            cache=cache,
        )
        self.guard = RunOnceGuard(self.datalist, clock=clock or time.time)

    def get_config(self, name: str) -> Any:
        """Return the value for *name*, or ``None`` if it is not set anywhere."""
        name = name.strip()

        if self.memo.has(name):
            return self.memo.get(name)

        value = self.datalist.resolve(name)

        # Misses and failures are not memoized; the next call asks again.
        if value is LOOKUP_FAILED or value is None:
            return None

        self.memo.put(name, value)
        return value

    def set_config(self, name: str, value: Any) -> None:
        """Set *name* for the rest of this process.  Does not persist."""
        self.memo.put(name.strip(), value)

    def save_config(self, name: str, value: Any) -> bool:
        """
        Set *name* and persist it to the installation record.

        The memo cache is updated even when persistence is refused: an
        opaque (non JSON-like) value stays usable in this process but
        ``False`` is returned and the store is not touched.

        Returns:
            ``False`` when the name is longer than 255 characters, the value
            is opaque, or the store could not save; otherwise ``True``.
        """
        name = name.strip()

        if name_too_long(name):
            return False

        self.set_config(name, value)

        if not is_persistable(value):
            logger.warning(
                "config_value_not_persistable",
                name=name,
                value_type=type(value).__name__,
            )
            return False

        return self.datalist.persist(name, value)

    def unset_config(self, name: str) -> None:
        """Deleting configuration values is not supported."""
        raise UnsupportedOperationError(
            f"Configuration value '{name.strip()}' cannot be deleted."
        )

    def run_once(self, operation: str | Operation, threshold: int = 0) -> bool:
        """See :meth:`RunOnceGuard.run`."""
        return self.guard.run(operation, threshold)
