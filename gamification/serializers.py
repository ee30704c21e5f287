from django.contrib.auth import get_user_model
from rest_framework import serializers

from users.serializers import UserSummarySerializer
from .models import PointTransaction

User = get_user_model()


class PointTransactionSerializer(serializers.ModelSerializer):
    user = UserSummarySerializer(read_only=True)
    awarded_by = UserSummarySerializer(read_only=True)
    activity_id = serializers.IntegerField(read_only=True, allow_null=True)
    activity_title = serializers.CharField(source="activity.title", read_only=True, default=None)
    reverses_id = serializers.IntegerField(read_only=True, allow_null=True)

    class Meta:
        model = PointTransaction
        fields = [
            "id",
            "user",
            "amount",
            "reason",
            "type",
            "activity_id",
            "activity_title",
            "awarded_by",
            "reverses_id",
            "created_at",
        ]
        read_only_fields = fields


class RankingEntrySerializer(serializers.Serializer):
    user_id = serializers.IntegerField()
    username = serializers.CharField()
    name = serializers.CharField()
    avatar = serializers.CharField(allow_blank=True)
    total_points = serializers.IntegerField()
    rank = serializers.IntegerField()


class AwardPointsSerializer(serializers.Serializer):
    user_id = serializers.PrimaryKeyRelatedField(
        queryset=User.objects.filter(is_active=True),
        source="user",
    )
    amount = serializers.IntegerField()
    reason = serializers.CharField(max_length=255)

    def validate_amount(self, value):
        if value == 0:
            raise serializers.ValidationError("Amount must not be zero.")
        return value
