from rest_framework.exceptions import PermissionDenied


def user_is_system_admin(user) -> bool:
    """
    Global admin flag: superusers and users with role 'admin'.
    """
    if not user or not getattr(user, "is_authenticated", False):
        return False

    return bool(getattr(user, "is_admin", False))


def user_can_manage_activity(user, activity) -> bool:
    """
    Who can edit/delete an activity, change its status or moderate its roster?
    - the creator
    - global admins
    """
    if not user or not getattr(user, "is_authenticated", False):
        return False

    return activity.creator_id == user.id or user_is_system_admin(user)


def require_activity_manager(user, activity, message="You do not have permission to manage this activity."):
    if not user_can_manage_activity(user, activity):
        raise PermissionDenied(message)
