"""
apps.config_core.services.memo_cache
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Process-lifetime mapping of configuration names to resolved values.

There is no eviction, TTL or size bound, and no locking: one instance is
owned by one process and lives as long as it does.
"""
from __future__ import annotations

from typing import Any


class ProcessMemoCache:
    """Lazily populated name → value map backing the configuration facade."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._values: dict[str, Any] = dict(initial or {})

    def get(self, name: str, default: Any = None) -> Any:
        return self._values.get(name, default)

    def put(self, name: str, value: Any) -> None:
        self._values[name] = value

    def has(self, name: str) -> bool:
        """Return True when *name* holds a value other than ``None``."""
        return self._values.get(name) is not None

    def __contains__(self, name: str) -> bool:
        return self.has(name)

    def __len__(self) -> int:
        return len(self._values)
