"""
Health check view for load balancers and deployment verification.
"""

import logging

from django.db import DatabaseError, connection
from django.http import JsonResponse
from django.views.decorators.cache import never_cache
from django.views.decorators.http import require_GET

logger = logging.getLogger(__name__)


@never_cache
@require_GET
def health_check(request) -> JsonResponse:
    """
    Health check endpoint with a database round trip.

    Returns 200 when the database answers, 503 otherwise.

    Returns:
        JsonResponse: {"status": "ok", "database": "ok"}
    """
    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
            cursor.fetchone()
    except DatabaseError as e:
        logger.error(f"Health check database failure: {e}")
        return JsonResponse({"status": "unhealthy", "database": "error"}, status=503)

    return JsonResponse({"status": "ok", "database": "ok"})
