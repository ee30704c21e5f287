from rest_framework import serializers
from .models import User


class UserSerializer(serializers.ModelSerializer):
    display_name = serializers.CharField(read_only=True)
    is_admin = serializers.BooleanField(read_only=True)

    class Meta:
        model = User
        fields = [
            'id',
            'username',
            'email',
            'name',
            'display_name',
            'avatar',
            'role',
            'is_admin',
            'date_joined',
        ]
        read_only_fields = ['id', 'username', 'role', 'date_joined']


class UserSummarySerializer(serializers.ModelSerializer):
    """Compact user shape embedded in activities, rosters and ledger rows."""
    display_name = serializers.CharField(read_only=True)

    class Meta:
        model = User
        fields = ['id', 'username', 'display_name', 'avatar']
