"""
Test settings – SQLite, no distributed cache, empty static tier.
"""
import os

os.environ.setdefault("SECRET_KEY", "test-secret-key")

import structlog  # noqa: E402

from .base import *  # noqa: E402, F401, F403

DEBUG = False

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
    },
}

SITE_GUID = 1
INSTALLATION_SETTINGS = {}

# structlog.testing.capture_logs only sees loggers that are not cached.
structlog.configure(cache_logger_on_first_use=False)
