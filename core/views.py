import time

from django.conf import settings
from django.core.cache import cache
from django.db import connections
from django.db.utils import OperationalError
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

HEALTH_CACHE_KEY = "health:ping"


def _database_ok() -> bool:
    try:
        with connections["default"].cursor() as cursor:
            cursor.execute("SELECT 1")
    except OperationalError:
        return False
    return True


def _cache_ok() -> bool:
    # The ranking is served from this cache
    cache.set(HEALTH_CACHE_KEY, "pong", 5)
    return cache.get(HEALTH_CACHE_KEY) == "pong"


class HealthCheckView(APIView):
    """
    Public uptime check. Reports database and cache reachability.
    """
    permission_classes = [AllowAny]
    authentication_classes = []
    throttle_classes = []

    def get(self, request, *args, **kwargs):
        start = time.monotonic()
        db_ok = _database_ok()
        cache_ok = _cache_ok()

        return Response(
            {
                "status": "ok" if db_ok and cache_ok else "degraded",
                "db": db_ok,
                "cache": cache_ok,
                "env": getattr(settings, "ENV", "unknown"),
                "latency_ms": int((time.monotonic() - start) * 1000),
            }
        )
