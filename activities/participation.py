# activities/participation.py
"""
Participation guard: join/leave rules for an activity's roster.

join serializes on the activity row lock so the capacity count and the
insert cannot interleave with another join for the same activity.
"""
import logging

from django.db import DatabaseError, IntegrityError, transaction

from .exceptions import (
    ActivityCompleted,
    ActivityFull,
    ActivityNotOpen,
    AlreadyJoined,
    NotJoined,
    StorageError,
)
from .models import Activity, Participation
from .state_machine import lock_activity

logger = logging.getLogger('weekend.activities')


def join(activity_id, user) -> Participation:
    """
    Add `user` to the activity. The user is always the requester and the
    activity is always the one addressed by the request.
    """
    try:
        with transaction.atomic():
            # Lock the activity row to prevent race conditions
            activity = lock_activity(activity_id)

            if activity.status != Activity.STATUS_OPEN:
                logger.warning(
                    f"Join rejected: activity={activity.id} is {activity.status}, user={user.id}"
                )
                raise ActivityNotOpen()

            if Participation.objects.filter(activity=activity, user=user).exists():
                raise AlreadyJoined()

            # Capacity check inside transaction
            if not activity.is_unlimited:
                current_count = Participation.objects.filter(activity=activity).count()
                if current_count >= activity.max_participants:
                    logger.warning(
                        f"Join rejected: activity={activity.id} full "
                        f"({current_count}/{activity.max_participants}), user={user.id}"
                    )
                    raise ActivityFull()

            with transaction.atomic():
                participation = Participation.objects.create(activity=activity, user=user)

    except IntegrityError:
        # Unique (activity, user) lost a race with a concurrent join by the same user
        raise AlreadyJoined()
    except DatabaseError as e:
        logger.error(f"Join failed: activity={activity_id}, user={user.id}: {e}")
        raise StorageError() from e

    logger.info(f"Participation created: user={user.id}, activity={activity_id}")
    return participation


def _delete_participation(participation, activity, actor):
    if activity.status == Activity.STATUS_COMPLETED:
        logger.warning(
            f"Leave rejected: activity={activity.id} completed, "
            f"participation={participation.id}, actor={getattr(actor, 'id', 'unknown')}"
        )
        raise ActivityCompleted()

    participation.delete()
    logger.info(
        f"Participation removed: user={participation.user_id}, activity={activity.id}, "
        f"actor={getattr(actor, 'id', 'unknown')}"
    )


def leave(activity_id, user) -> None:
    """
    Remove the requester from the activity.
    Open and cancelled activities can be left; completed ones are frozen.
    """
    try:
        with transaction.atomic():
            activity = lock_activity(activity_id)

            participation = Participation.objects.filter(activity=activity, user=user).first()
            if participation is None:
                raise NotJoined()

            _delete_participation(participation, activity, actor=user)
    except DatabaseError as e:
        logger.error(f"Leave failed: activity={activity_id}, user={user.id}: {e}")
        raise StorageError() from e


def remove_participant(participation_id, actor=None) -> Participation:
    """
    Moderation: remove any user's participation. Same completion lock as leave.
    Permission to moderate is checked by the caller.
    """
    try:
        with transaction.atomic():
            try:
                activity_id = Participation.objects.values_list("activity_id", flat=True).get(pk=participation_id)
            except Participation.DoesNotExist:
                raise NotJoined("Participation not found.")

            activity = lock_activity(activity_id)

            # Re-read under the lock; a concurrent leave may have removed it
            participation = Participation.objects.filter(pk=participation_id).first()
            if participation is None:
                raise NotJoined("Participation not found.")

            _delete_participation(participation, activity, actor=actor)
    except DatabaseError as e:
        logger.error(f"Remove participant failed: participation={participation_id}: {e}")
        raise StorageError() from e

    return participation


def list_participants(activity):
    return (
        Participation.objects
        .filter(activity=activity)
        .select_related("user")
        .order_by("created_at", "id")
    )


def list_user_participations(user):
    return (
        Participation.objects
        .filter(user=user)
        .select_related("activity", "activity__creator")
        .order_by("-activity__start_time")
    )


def is_joined(activity, user) -> bool:
    if not user or not user.is_authenticated:
        return False
    return Participation.objects.filter(activity=activity, user=user).exists()
