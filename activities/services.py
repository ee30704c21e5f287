"""
Create / edit / delete for activities.

Status changes never go through here; they belong to the state machine.
"""
import logging

from django.db import DatabaseError, transaction

from gamification.ledger import PointsLedger
from .exceptions import ActivityCompleted, StorageError, ValidationError
from .models import Activity
from .serializers import ActivitySerializer
from .state_machine import lock_activity

logger = logging.getLogger('weekend.activities')

FROZEN_WHEN_COMPLETED = ("points_participant", "points_creator")


class ActivityService:
    @staticmethod
    def create_activity(data, requester, context=None) -> Activity:
        """
        The creator is always the requester and every activity starts open,
        whatever the client sent.
        """
        serializer = ActivitySerializer(data=data, context=context or {})
        if not serializer.is_valid():
            raise ValidationError(serializer.errors)

        try:
            activity = serializer.save(creator=requester, status=Activity.STATUS_OPEN)
        except DatabaseError as e:
            logger.error(f"Activity create failed: user={requester.id}: {e}")
            raise StorageError() from e

        logger.info(
            f"Activity created: activity={activity.id}, creator={requester.id}, "
            f"points=({activity.points_creator}/{activity.points_participant}), "
            f"max_participants={activity.max_participants}"
        )
        return activity

    @staticmethod
    def update_activity(activity_id, data, actor=None, context=None) -> Activity:
        """
        Partial edit of descriptive fields, points and capacity.
        Point values are frozen while the activity is completed.
        """
        try:
            with transaction.atomic():
                activity = lock_activity(activity_id)

                serializer = ActivitySerializer(activity, data=data, partial=True, context=context or {})
                if not serializer.is_valid():
                    raise ValidationError(serializer.errors)

                if activity.status == Activity.STATUS_COMPLETED:
                    changed = [
                        field for field in FROZEN_WHEN_COMPLETED
                        if field in serializer.validated_data
                        and serializer.validated_data[field] != getattr(activity, field)
                    ]
                    if changed:
                        raise ActivityCompleted(
                            "Point values cannot change while the activity is completed. Reopen it first."
                        )

                activity = serializer.save()
        except DatabaseError as e:
            logger.error(f"Activity update failed: activity={activity_id}: {e}")
            raise StorageError() from e

        logger.info(f"Activity updated: activity={activity.id}, actor={getattr(actor, 'id', 'unknown')}")
        return activity

    @staticmethod
    def delete_activity(activity_id, actor=None) -> None:
        """
        A completed activity is reversed before it is deleted so no credit
        outlives it. Ledger rows stay (their activity link is cleared).
        """
        try:
            with transaction.atomic():
                activity = lock_activity(activity_id)
                if activity.status == Activity.STATUS_COMPLETED:
                    PointsLedger.reverse_completion(activity)
                activity.delete()
        except DatabaseError as e:
            logger.error(f"Activity delete failed: activity={activity_id}: {e}")
            raise StorageError() from e

        logger.info(f"Activity deleted: activity={activity_id}, actor={getattr(actor, 'id', 'unknown')}")
