"""
Request-rejection errors raised by the lifecycle, participation and ledger code.

They are DRF APIExceptions so views can let them propagate; the project-wide
handler in core.exceptions renders them in the standard error envelope.
"""
from rest_framework import status
from rest_framework.exceptions import APIException


class ActivityError(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "The request conflicts with the activity's current state."
    default_code = "activity_error"


class InvalidTransition(ActivityError):
    default_detail = "This status change is not allowed."
    default_code = "invalid_transition"


class ActivityNotOpen(ActivityError):
    default_detail = "Cannot join: activity is no longer open."
    default_code = "activity_not_open"


class ActivityFull(ActivityError):
    default_detail = "Cannot join: activity is full."
    default_code = "activity_full"


class AlreadyJoined(ActivityError):
    default_detail = "You already joined this activity."
    default_code = "already_joined"


class NotJoined(ActivityError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "You are not a participant of this activity."
    default_code = "not_joined"


class ActivityCompleted(ActivityError):
    default_detail = "Cannot change participants: activity is already completed."
    default_code = "activity_completed"


class ValidationError(ActivityError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid input."
    default_code = "validation_error"


class StorageError(ActivityError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = "Storage failure; the request was rolled back."
    default_code = "storage_error"
