"""
apps.sites.services.attribute_store
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
ORM-backed persistent store for the datalist resolver.

Reads see the site's direct columns (``name``, ``url``, …) first and then
its :class:`~apps.sites.models.SiteAttribute` rows.  Writes are staged in
memory by :meth:`SiteAttributeStore.set_attribute` and committed together,
inside one transaction, by :meth:`SiteAttributeStore.save`.

There is no version check: when two processes save the same key, the last
commit wins.
"""
from __future__ import annotations

from typing import Any

import structlog
from django.db import DatabaseError, transaction

from apps.config_core.services.adapters import StoreUnavailableError
from apps.sites.models import Site, SiteAttribute

logger = structlog.get_logger(__name__)


class SiteAttributeStore:
    """:class:`~apps.config_core.services.adapters.PersistentStore` for one site."""

    def __init__(self, site_id: int) -> None:
        self.site_id = site_id
        self._pending: dict[str, Any] = {}

    def get_attribute(self, key: str) -> Any:
        try:
            if key in Site.DIRECT_ATTRIBUTES:
                value = (
                    Site.objects.filter(pk=self.site_id)
                    .values_list(key, flat=True)
                    .first()
                )
                # Blank columns read as unset.
                return value or None
            return (
                SiteAttribute.objects.filter(site_id=self.site_id, name=key)
                .values_list("value", flat=True)
                .first()
            )
        except DatabaseError as exc:
            raise StoreUnavailableError(str(exc)) from exc

    def set_attribute(self, key: str, value: Any) -> None:
        self._pending[key] = value

    def save(self) -> bool:
        """Commit every staged attribute; ``False`` if the commit failed."""
        if not self._pending:
            return True
        pending = list(self._pending.items())
        # A failed commit is dropped, not retried by a later save.
        self._pending.clear()
        try:
            with transaction.atomic():
                if not Site.objects.filter(pk=self.site_id).exists():
                    logger.error("site_attribute_save_no_site", site_id=self.site_id)
                    return False
                for key, value in pending:
                    SiteAttribute.objects.update_or_create(
                        site_id=self.site_id,
                        name=key,
                        defaults={"value": value},
                    )
        except (DatabaseError, TypeError, ValueError) as exc:
            # TypeError/ValueError: the JSON encoder rejected a value.
            logger.error(
                "site_attribute_save_failed",
                site_id=self.site_id,
                keys=[key for key, _ in pending],
                error=str(exc),
            )
            return False
        logger.info(
            "site_attributes_saved",
            site_id=self.site_id,
            keys=[key for key, _ in pending],
        )
        return True
