"""
common.middleware
~~~~~~~~~~~~~~~~~
Request middleware.

StructuredLoggingMiddleware
    Logs method, path, status_code, duration_ms on every request/response
    cycle, powered by structlog.
SiteConfigMiddleware
    Owns the process-wide :class:`~apps.config_core.services.config_context.ConfigContext`
    and exposes it to views as ``request.site_config``.
"""
import time

import structlog

from apps.config_core.services.bootstrap import (
    build_config_context,
    load_application_config,
)

logger = structlog.get_logger(__name__)


class StructuredLoggingMiddleware:
    """
    WSGI middleware that emits one structured log record per HTTP request.

    Log record fields:
        event       – "http_request"
        method      – HTTP verb (GET, POST, …)
        path        – URL path
        status      – HTTP response status code (int)
        duration_ms – Round-trip duration in milliseconds (float, 2 dp)
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        start = time.monotonic()
        response = self.get_response(request)
        duration_ms = round((time.monotonic() - start) * 1000, 2)

        logger.info(
            "http_request",
            method=request.method,
            path=request.get_full_path(),
            status=response.status_code,
            duration_ms=duration_ms,
        )
        return response


class SiteConfigMiddleware:
    """
    Builds one ConfigContext when the middleware chain is loaded and
    attaches it to every request.

    Application config is loaded on the first request rather than at
    construction so that the database is not touched while Django starts.
    """

    def __init__(self, get_response):
        self.get_response = get_response
        self.site_config = build_config_context()
        self._bootstrapped = False

    def __call__(self, request):
        # No lock: assumes one request at a time per process.  Under a
        # threaded server two first requests may both load the (idempotent)
        # application config.
        if not self._bootstrapped:
            load_application_config(self.site_config)
            self._bootstrapped = True
        request.site_config = self.site_config
        return self.get_response(request)
