"""
common.health
~~~~~~~~~~~~~
GET /health/ – lightweight liveness + readiness probe.

Returns:
    200  {"status": "ok", "db": "ok", "site": "installed"}    – everything healthy
    503  {"status": "degraded", "db": "error: <msg>", "site": "unknown"} – DB unreachable
    503  {"status": "degraded", "db": "ok", "site": "missing"} – no installation record
"""
import structlog
from django.db import DatabaseError, OperationalError, connection
from django.http import JsonResponse

from apps.sites.services import get_site_entity

logger = structlog.get_logger(__name__)


def health_check(request):
    """Return service health including database and installation status."""
    db_status: str
    site_status = "unknown"

    try:
        connection.ensure_connection()
        db_status = "ok"
    except OperationalError as exc:
        db_status = f"error: {exc}"
        logger.error("health_check_db_failure", error=str(exc))

    if db_status == "ok":
        try:
            site_status = "installed" if get_site_entity() is not None else "missing"
        except DatabaseError as exc:
            logger.error("health_check_site_failure", error=str(exc))
            site_status = "unknown"

    healthy = db_status == "ok" and site_status == "installed"
    payload = {
        "status": "ok" if healthy else "degraded",
        "db": db_status,
        "site": site_status,
    }
    return JsonResponse(payload, status=200 if healthy else 503)
