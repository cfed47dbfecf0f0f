import logging

from django.db import DatabaseError, connection
from django.http import JsonResponse

from apps.orders.http_adapters import catalog_cb

logger = logging.getLogger("monitoring")


def health_view(_request):
    """Report database reachability and the catalog circuit breaker state.

    The breaker is informational: an OPEN catalog circuit degrades order
    placement but does not fail the health check.
    """
    db_ok = False
    try:
        with connection.cursor() as cur:
            cur.execute("SELECT 1;")
        db_ok = True
    except DatabaseError:
        logger.warning("health check: database unreachable")

    code = 200 if db_ok else 503
    return JsonResponse(
        {
            "ok": db_ok,
            "components": {
                "db": {"ok": db_ok},
                "catalog": {"circuit": catalog_cb.state},
            },
        },
        status=code,
    )
