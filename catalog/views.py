"""
Catalog service views.

Includes the health check endpoint for monitoring and load balancer checks.
"""

import logging

import redis
from django.conf import settings
from django.db import connection
from django.http import JsonResponse

from catalog.models import Product, ProcessingQueue, ProcessingRecoveryLog

logger = logging.getLogger(__name__)


def get_redis_status() -> str:
    """
    Ping the Redis broker.

    Returns:
        "connected", "error", or "not_configured" when the broker is not Redis.
    """
    broker_url = getattr(settings, "CELERY_BROKER_URL", "") or ""
    if not broker_url.startswith(("redis://", "rediss://")):
        return "not_configured"
    try:
        client = redis.Redis.from_url(broker_url, socket_connect_timeout=2)
        return "connected" if client.ping() else "error"
    except redis.RedisError as e:
        logger.warning(f"Redis health check failed: {e}")
        return "error"


def get_celery_worker_count() -> int:
    """
    Get the count of active Celery workers.

    Returns:
        int: Number of active workers, 0 if none answer.
    """
    try:
        from config.celery import app as celery_app

        active = celery_app.control.inspect(timeout=1.0).active()
        return len(active) if active else 0
    except Exception as e:
        logger.warning(f"Celery worker inspection failed: {e}")
        return 0


def health_check(request):
    """
    Health check endpoint for the catalog service.

    Endpoint: GET /api/health/
    No authentication required (for load balancer checks).

    Response fields:
        - status: "healthy" or "unhealthy"
        - database: "connected" or "error"
        - redis: "connected", "not_configured", or "error"
        - celery_workers: integer count of active workers
        - products_pending: products still without a listing
        - active_queue: the processing run in progress, if any
        - last_recovery: ISO timestamp of the last supervisor intervention

    Returns:
        JsonResponse: HTTP 200 for healthy, HTTP 503 for unhealthy
    """
    status = "healthy"
    http_status = 200

    database_status = "connected"
    try:
        connection.ensure_connection()
    except Exception:
        database_status = "error"
        status = "unhealthy"
        http_status = 503

    products_pending = None
    active_queue = None
    last_recovery = None
    if database_status == "connected":
        products_pending = Product.objects.unprocessed().count()

        queue = ProcessingQueue.objects.active().order_by("-created_at").first()
        if queue is not None:
            active_queue = {
                "id": str(queue.id),
                "processed_count": queue.processed_count,
                "total_count": queue.total_count,
                "last_heartbeat": queue.last_heartbeat.isoformat() if queue.last_heartbeat else None,
            }

        entry = ProcessingRecoveryLog.objects.order_by("-created_at").first()
        if entry is not None:
            last_recovery = entry.created_at.isoformat()

    response_data = {
        "status": status,
        "database": database_status,
        "redis": get_redis_status(),
        "celery_workers": get_celery_worker_count(),
        "products_pending": products_pending,
        "active_queue": active_queue,
        "last_recovery": last_recovery,
    }

    return JsonResponse(response_data, status=http_status)
