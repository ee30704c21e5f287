# activities/state_machine.py
"""
Activity State Machine.

Enforces valid state transitions for the activity lifecycle:
open → completed → open   (reopen reverses the payout)
open → cancelled → open

completed and cancelled never move into each other directly.
Every transition locks the activity row and performs its ledger side
effect inside the same database transaction, before returning.
"""
from typing import Tuple
import logging

from django.db import DatabaseError, transaction
from rest_framework.exceptions import NotFound

from gamification.ledger import PointsLedger
from .exceptions import InvalidTransition, StorageError
from .models import Activity

logger = logging.getLogger('weekend.activities')


# Valid state transitions: from_status -> list of allowed to_statuses
VALID_TRANSITIONS = {
    Activity.STATUS_OPEN: [Activity.STATUS_COMPLETED, Activity.STATUS_CANCELLED],
    Activity.STATUS_COMPLETED: [Activity.STATUS_OPEN],
    Activity.STATUS_CANCELLED: [Activity.STATUS_OPEN],
}


def lock_activity(activity_id) -> Activity:
    """
    Fetch the activity with a row lock. Must be called inside transaction.atomic().
    """
    try:
        return Activity.objects.select_for_update().get(pk=activity_id)
    except Activity.DoesNotExist:
        raise NotFound("Activity not found")


def can_transition(activity: Activity, new_status: str) -> Tuple[bool, str]:
    """
    Check if an activity can transition to a new status.

    Returns (can_transition: bool, reason: str)
    """
    current_status = activity.status

    if new_status not in dict(Activity.STATUS_CHOICES):
        return False, f"Invalid status: {new_status}"

    if new_status == current_status:
        return False, f"Activity is already '{current_status}'"

    allowed = VALID_TRANSITIONS.get(current_status, [])

    if new_status not in allowed:
        return False, f"Cannot transition from '{current_status}' to '{new_status}'"

    return True, ""


def get_allowed_transitions(activity: Activity) -> list:
    return VALID_TRANSITIONS.get(activity.status, [])


def _reject(activity, new_status, reason, actor):
    logger.warning(
        f"Invalid state transition attempted: activity={activity.id}, "
        f"from={activity.status}, to={new_status}, actor={getattr(actor, 'id', 'unknown')}. "
        f"Reason: {reason}"
    )
    raise InvalidTransition(reason)


def _set_status(activity, new_status, actor):
    old_status = activity.status
    activity.status = new_status
    activity.save(update_fields=['status', 'updated_at'])

    logger.info(
        f"Activity state transition: activity={activity.id}, "
        f"from={old_status}, to={new_status}, actor={getattr(actor, 'id', 'unknown')}"
    )


def _atomic(operation):
    """
    Run a lifecycle operation as one transaction; storage failures roll
    everything back and surface as StorageError.
    """
    try:
        with transaction.atomic():
            return operation()
    except DatabaseError as e:
        logger.error(f"Lifecycle operation rolled back: {e}")
        raise StorageError() from e


def complete(activity_id, actor=None) -> Activity:
    """
    open → completed, then settle payouts.
    Completing an already completed activity is a no-op so retries are safe.
    """
    def run():
        activity = lock_activity(activity_id)

        if activity.status == Activity.STATUS_COMPLETED:
            logger.info(f"Complete ignored: activity={activity.id} already completed")
            return activity

        if activity.status != Activity.STATUS_OPEN:
            _reject(activity, Activity.STATUS_COMPLETED,
                    f"Cannot transition from '{activity.status}' to 'completed'", actor)

        _set_status(activity, Activity.STATUS_COMPLETED, actor)
        PointsLedger.settle_completion(activity)
        return activity

    return _atomic(run)


def cancel(activity_id, actor=None) -> Activity:
    """
    open → cancelled. Nothing is paid for cancelled activities.
    """
    def run():
        activity = lock_activity(activity_id)

        can, reason = can_transition(activity, Activity.STATUS_CANCELLED)
        if not can:
            _reject(activity, Activity.STATUS_CANCELLED, reason, actor)

        _set_status(activity, Activity.STATUS_CANCELLED, actor)
        return activity

    return _atomic(run)


def reopen(activity_id, actor=None) -> Activity:
    """
    completed/cancelled → open.
    Leaving completed reverses every outstanding payout first.
    """
    def run():
        activity = lock_activity(activity_id)

        can, reason = can_transition(activity, Activity.STATUS_OPEN)
        if not can:
            _reject(activity, Activity.STATUS_OPEN, reason, actor)

        if activity.status == Activity.STATUS_COMPLETED:
            PointsLedger.reverse_completion(activity)

        _set_status(activity, Activity.STATUS_OPEN, actor)
        return activity

    return _atomic(run)


TRANSITION_HANDLERS = {
    Activity.STATUS_COMPLETED: complete,
    Activity.STATUS_CANCELLED: cancel,
    Activity.STATUS_OPEN: reopen,
}


def transition(activity_id, new_status: str, actor=None) -> Activity:
    """
    Route a requested status change (e.g. a PATCH of `status`) to the
    matching lifecycle operation.
    """
    handler = TRANSITION_HANDLERS.get(new_status)
    if handler is None:
        logger.warning(f"Unknown status requested: activity={activity_id}, status={new_status}")
        raise InvalidTransition(f"Invalid status: {new_status}")
    return handler(activity_id, actor=actor)
