"""
Leaderboard derived from the points ledger on demand.

Totals are a fold over PointTransaction rows. The computed list is cached
under a key stamped with the ledger's row count and newest id, so any
append or delete (from any worker process) makes earlier entries
unreachable. A list built from an older ledger can never be stored under
the current key either, because the stamp is read before the build.
"""
import logging

from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.db.models import Count, Max, Sum

from .models import PointTransaction

logger = logging.getLogger("weekend.ranking")

RANKING_CACHE_KEY = "points:ranking:v2"


def ledger_version() -> str:
    stamp = PointTransaction.objects.aggregate(rows=Count("id"), newest=Max("id"))
    return f"{stamp['rows']}-{stamp['newest'] or 0}"


def ranking_cache_key(version=None) -> str:
    return f"{RANKING_CACHE_KEY}:{version or ledger_version()}"


def invalidate_ranking_cache():
    cache.delete(ranking_cache_key())


def _build_ranking():
    # Equal totals are ordered by user id so the order never depends on scan order
    totals = (
        PointTransaction.objects
        .values("user")
        .annotate(total=Sum("amount"))
        .order_by("-total", "user")
    )
    totals = list(totals)

    users = get_user_model().objects.in_bulk([row["user"] for row in totals])

    ranking = []
    for row in totals:
        user = users.get(row["user"])
        if user is None:
            continue
        ranking.append({
            "user_id": user.id,
            "username": user.username,
            "name": user.display_name,
            "avatar": user.avatar,
            "total_points": row["total"] or 0,
            "rank": len(ranking) + 1,
        })
    return ranking


def compute_ranking(use_cache: bool = True) -> list:
    """
    Full leaderboard: one entry per user with ledger rows, sorted by total
    descending. Ranks are positions (1-based); ties are not collapsed.
    """
    if not use_cache:
        return _build_ranking()

    key = ranking_cache_key()
    cached = cache.get(key)
    if cached is not None:
        return cached

    ranking = _build_ranking()
    cache.set(key, ranking, getattr(settings, "RANKING_CACHE_SECONDS", 300))
    logger.debug(f"Ranking rebuilt: {len(ranking)} users, key={key}")
    return ranking


def top_n(n: int) -> list:
    return compute_ranking()[:max(0, n)]


def get_user_rank(user):
    """The user's ranking entry, or None if they have no ledger rows."""
    for entry in compute_ranking():
        if entry["user_id"] == user.id:
            return entry
    return None
