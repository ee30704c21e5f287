# activities/throttles.py

from rest_framework.throttling import ScopedRateThrottle


class ActivityJoinThrottle(ScopedRateThrottle):
    """
    Throttle join/leave per user per activity.

    Scope key: 'activity-join'
    Cache key shape:
      throttle_activity-join_u<user_id>_a<activity_id>
    """
    scope = "activity-join"

    def get_cache_key(self, request, view):
        if request.method != "POST":
            return None

        user = getattr(request, "user", None)
        if not user or not user.is_authenticated:
            return None

        activity_id = getattr(view, "kwargs", {}).get("activity_id", "none")
        return f"throttle_{self.scope}_u{user.id}_a{activity_id}"


class PointsAwardThrottle(ScopedRateThrottle):
    """
    Throttle manual point awards per admin.

    Scope key: 'points-award'
    """
    scope = "points-award"

    def get_cache_key(self, request, view):
        if request.method != "POST":
            return None

        user = getattr(request, "user", None)
        if not user or not user.is_authenticated:
            return None

        return f"throttle_{self.scope}_u{user.id}"
