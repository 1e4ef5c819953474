"""
apps.sites.services.site_service
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Business logic for the installation record.

Responsibilities
----------------
- Creating the :class:`~apps.sites.models.Site` row during installation.
- Fetching the installation record by id.
- Building the persistent store adapter bound to that record.
"""
from __future__ import annotations

import structlog
from django.conf import settings

from apps.sites.models import Site

from .attribute_store import SiteAttributeStore

logger = structlog.get_logger(__name__)


def create_site(
    *,
    name: str,
    url: str = "",
    email: str = "",
    description: str = "",
    site_id: int | None = None,
) -> Site:
    """
    Create and persist the installation record.

    Args:
        name: Display name of the installation.
        url: Public base URL (``wwwroot``).
        email: Contact address.
        description: Free text.
        site_id: Explicit primary key; defaults to ``settings.SITE_GUID``.

    Returns:
        The newly created ``Site`` instance.
    """
    site = Site.objects.create(
        id=site_id if site_id is not None else settings.SITE_GUID,
        name=name,
        url=url,
        email=email,
        description=description,
    )
    logger.info("site_created", site_id=site.id, name=site.name)
    return site


def get_site_entity(site_id: int | None = None) -> Site | None:
    """Return the installation record, or ``None`` if it does not exist."""
    if site_id is None:
        site_id = settings.SITE_GUID
    return Site.objects.filter(pk=site_id).first()


def get_attribute_store(site_id: int | None = None) -> SiteAttributeStore:
    """Return a persistent store adapter for the installation record."""
    if site_id is None:
        site_id = settings.SITE_GUID
    return SiteAttributeStore(site_id=site_id)
