from rest_framework import serializers

from users.serializers import UserSummarySerializer
from .models import Activity, Participation
from .sanitizers import (
    sanitize_title,
    sanitize_description,
    validate_points,
    validate_max_participants,
    SanitizationError,
)


# -----------------------------------------
# ACTIVITY SERIALIZER
# -----------------------------------------
class ActivitySerializer(serializers.ModelSerializer):
    creator = UserSummarySerializer(read_only=True)
    participants_count = serializers.SerializerMethodField()
    is_joined = serializers.SerializerMethodField()
    is_full = serializers.SerializerMethodField()
    allowed_transitions = serializers.SerializerMethodField()

    class Meta:
        model = Activity
        fields = [
            "id",
            "title",
            "description",
            "start_time",
            "image",
            "status",
            "points_participant",
            "points_creator",
            "max_participants",
            "creator",
            "participants_count",
            "is_joined",
            "is_full",
            "allowed_transitions",
            "created_at",
            "updated_at",
        ]
        read_only_fields = [
            "id",
            "status",
            "creator",
            "created_at",
            "updated_at",
        ]

    def get_participants_count(self, obj) -> int:
        # Use annotated value if available (from list query), else count
        if hasattr(obj, "_annotated_participants_count"):
            return obj._annotated_participants_count or 0
        return obj.participations.count()

    def get_is_joined(self, obj) -> bool:
        request = self.context.get("request")
        if request and request.user.is_authenticated:
            return obj.participations.filter(user=request.user).exists()
        return False

    def get_is_full(self, obj) -> bool:
        if obj.is_unlimited:
            return False
        return self.get_participants_count(obj) >= obj.max_participants

    def get_allowed_transitions(self, obj) -> list:
        from .state_machine import get_allowed_transitions
        return get_allowed_transitions(obj)

    def validate_title(self, value):
        title = sanitize_title(value)
        if not title:
            raise serializers.ValidationError("Title is required.")
        return title

    def validate_description(self, value):
        return sanitize_description(value)

    def _validate_number(self, validator, value, *args):
        try:
            return validator(value, *args)
        except SanitizationError as e:
            raise serializers.ValidationError(str(e))

    def validate_points_participant(self, value):
        return self._validate_number(validate_points, value, "Participant points")

    def validate_points_creator(self, value):
        return self._validate_number(validate_points, value, "Creator points")

    def validate_max_participants(self, value):
        return self._validate_number(validate_max_participants, value)


class ParticipationSerializer(serializers.ModelSerializer):
    user = UserSummarySerializer(read_only=True)
    activity_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = Participation
        fields = ["id", "activity_id", "user", "created_at"]
        read_only_fields = fields


class MyParticipationSerializer(serializers.ModelSerializer):
    activity = ActivitySerializer(read_only=True)

    class Meta:
        model = Participation
        fields = ["id", "activity", "created_at"]
        read_only_fields = fields
