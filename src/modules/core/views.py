import time
from typing import Any, Callable, Dict

import structlog
from django.conf import settings
from django.core.cache import cache
from django.db import connections
from django.http import HttpRequest, JsonResponse
from django.utils import timezone

from modules.core.models import OutboxEvent

logger = structlog.get_logger()


def _check_database() -> None:
    with connections["default"].cursor() as cursor:
        cursor.execute("SELECT 1")
        cursor.fetchone()


def _check_cache() -> None:
    cache.set("health:ping", "ok", 10)
    if cache.get("health:ping") != "ok":
        raise ConnectionError("cache round-trip failed")


def _timed(check: Callable[[], None]) -> Dict[str, Any]:
    started = time.monotonic()
    check()
    return {"status": "up", "response_time_ms": round((time.monotonic() - started) * 1000, 2)}


def health_check(request: HttpRequest) -> JsonResponse:
    """Liveness of the database and cache, plus the outbox backlog.

    A growing backlog means the Celery relay is not running; it is reported
    but does not make the service unhealthy.
    """
    services: Dict[str, Dict[str, Any]] = {}
    for name, check in (("database", _check_database), ("cache", _check_cache)):
        try:
            services[name] = _timed(check)
        except Exception:
            logger.exception("health_check.service_down", service=name)
            services[name] = {"status": "down"}

    healthy = all(s["status"] == "up" for s in services.values())
    body: Dict[str, Any] = {
        "status": "healthy" if healthy else "unhealthy",
        "timestamp": timezone.now().isoformat(),
        "services": services,
    }
    if services["database"]["status"] == "up":
        body["outbox_backlog"] = OutboxEvent.objects.deliverable(
            settings.OUTBOX_MAX_RETRIES
        ).count()

    logger.info("health_check.completed", status=body["status"])
    return JsonResponse(body, status=200 if healthy else 503)
