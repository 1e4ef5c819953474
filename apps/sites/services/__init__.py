"""
apps.sites.services package.
"""
from .attribute_store import SiteAttributeStore  # noqa: F401
from .site_service import (  # noqa: F401
    create_site,
    get_attribute_store,
    get_site_entity,
)
