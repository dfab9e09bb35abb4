"""
Core views providing infrastructure endpoints.

The health check is used by load balancers and container probes. Gateways
stop retrying once they receive a 2xx, so a quick liveness signal matters
when diagnosing delivery issues.
"""

from django.core.cache import cache
from django.db import connection
from django.http import JsonResponse


def health_check(request):
    """
    Report database and cache connectivity.

    Returns:
        200 with {"status": "healthy", ...} when the database answers
        503 when the database is unreachable

    A cache outage degrades but does not fail the check: the cache only
    backs the commission circuit breaker, which fails open.
    """
    health_status = {
        "status": "healthy",
        "database": "unknown",
        "cache": "unknown",
    }
    is_healthy = True

    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
            cursor.fetchone()
        health_status["database"] = "connected"
    except Exception:
        health_status["database"] = "disconnected"
        health_status["status"] = "unhealthy"
        is_healthy = False

    try:
        cache.set("health_check", "ok", timeout=1)
        connected = cache.get("health_check") == "ok"
        health_status["cache"] = "connected" if connected else "disconnected"
    except Exception:
        health_status["cache"] = "disconnected"

    return JsonResponse(health_status, status=200 if is_healthy else 503)
