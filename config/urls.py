"""
Root URL configuration for the site config engine.
"""
from django.contrib import admin
from django.urls import path

from common.health import health_check

urlpatterns = [
    # Admin
    path("admin/", admin.site.urls),

    # Health check
    path("health/", health_check, name="health-check"),
]
