"""
apps.sites.apps
"""
from django.apps import AppConfig


class SitesConfig(AppConfig):
    name = "apps.sites"
    label = "sites_core"
    verbose_name = "Sites"
