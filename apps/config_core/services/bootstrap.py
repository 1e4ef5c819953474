"""
apps.config_core.services.bootstrap
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Process start-up: building the :class:`ConfigContext` from Django settings
and seeding it with application and site configuration.

Public API
----------
build_config_context()                  -> ConfigContext
load_application_config(ctx, viewtype)  -> None
load_site_config(ctx)                   -> None
get_site_url / get_plugins_path / get_data_path / get_root_path
"""
from __future__ import annotations

from pathlib import Path

import structlog
from django.conf import settings

from apps.sites.models import Site
from apps.sites.services import get_attribute_store, get_site_entity
from common.exceptions import InstallationError

from .adapters import DjangoCacheAdapter
from .config_context import ConfigContext
from .datalist import LOOKUP_FAILED

logger = structlog.get_logger(__name__)

#: Must stay in sync with the entity types known to the rest of the platform.
ENTITY_TYPES = ["group", "object", "site", "user", "plugin", "notification"]


def build_config_context() -> ConfigContext:
    """
    Construct the process-wide :class:`ConfigContext`.

    The static tier is ``settings.INSTALLATION_SETTINGS``; the persistent
    tier is the attribute store of ``settings.SITE_GUID``; the distributed
    tier is the cache alias ``settings.DATALIST_CACHE_ALIAS`` when it is
    declared in ``settings.CACHES``.
    """
    cache = DjangoCacheAdapter(settings.DATALIST_CACHE_ALIAS)
    ctx = ConfigContext(
        static_settings=settings.INSTALLATION_SETTINGS,
        store=get_attribute_store(settings.SITE_GUID),
        cache=cache if cache.is_available() else None,
    )
    logger.info(
        "config_context_built",
        site_id=settings.SITE_GUID,
        static_settings=len(ctx.static_settings),
        distributed_cache=cache.is_available(),
    )
    return ctx


def _resolved(ctx: ConfigContext, name: str):
    """Resolver lookup with failures folded into ``None``."""
    value = ctx.datalist.resolve(name)
    return None if value is LOOKUP_FAILED else value


def load_application_config(
    ctx: ConfigContext,
    viewtype: str = "default",
    install_root: str | Path | None = None,
) -> None:
    """
    Seed *ctx* with installation-wide configuration.

    Path defaults are derived from *install_root* (``settings.BASE_DIR`` by
    default) and only fill names that are still empty.
    """
    root = Path(install_root if install_root is not None else settings.BASE_DIR).as_posix()
    defaults = {
        "path": f"{root}/",
        "view_path": f"{root}/views/",
        "plugins_path": f"{root}/mod/",
        "language": "en",
        # legacy names
        "viewpath": f"{root}/views/",
        "pluginspath": f"{root}/mod/",
    }
    for name, value in defaults.items():
        if not ctx.memo.get(name):
            ctx.set_config(name, value)

    for name in ("path", "dataroot"):
        value = _resolved(ctx, name)
        if value:
            ctx.set_config(name, value)

    for name in ("simplecache_enabled", "system_cache_enabled"):
        value = _resolved(ctx, name)
        ctx.set_config(name, 1 if value is None else value)

    if not ctx.memo.has("lastcache"):
        lastcache = _resolved(ctx, f"simplecache_lastcached_{viewtype}") or _resolved(
            ctx, "lastcache"
        )
        ctx.set_config("lastcache", lastcache)

    ctx.set_config("i18n_loaded_from_cache", False)
    ctx.set_config("entity_types", list(ENTITY_TYPES))


def load_site_config(ctx: ConfigContext) -> None:
    """
    Load the installation record into *ctx*.

    When ``site_name`` is present in the static settings the record is built
    from them without touching the database.

    Raises:
        InstallationError: If no installation record exists.
    """
    site_guid = settings.SITE_GUID
    ctx.set_config("site_guid", site_guid)
    ctx.set_config("site_id", site_guid)

    static = ctx.static_settings
    if static.get("site_name") is not None:
        site = Site(
            id=site_guid,
            name=static["site_name"],
            url=static.get("site_url", ""),
            email=static.get("site_email", ""),
            description=static.get("site_description", ""),
        )
    else:
        site = get_site_entity(site_guid)

    if site is None:
        raise InstallationError()

    ctx.set_config("site", site)
    ctx.set_config("wwwroot", site.get_url())
    ctx.set_config("sitename", site.name)
    ctx.set_config("sitedescription", site.description)
    ctx.set_config("siteemail", site.email)
    ctx.set_config("url", site.get_url())
    ctx.set_config("site_config_loaded", True)


def get_site_url(ctx: ConfigContext) -> str | None:
    """Return the installation's base URL, or ``None`` if there is no site."""
    if ctx.memo.has("wwwroot"):
        return ctx.memo.get("wwwroot")
    site = get_site_entity()
    if site is None:
        return None
    return site.get_url()


def get_plugins_path(ctx: ConfigContext) -> str | None:
    return ctx.memo.get("pluginspath")


def get_data_path(ctx: ConfigContext) -> str | None:
    return ctx.memo.get("dataroot")


def get_root_path(ctx: ConfigContext) -> str | None:
    return ctx.memo.get("path")
