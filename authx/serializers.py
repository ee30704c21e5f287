from django.contrib.auth import authenticate, get_user_model
from django.contrib.auth.password_validation import validate_password
from rest_framework import serializers

from activities.sanitizers import sanitize_text

User = get_user_model()


class SignupSerializer(serializers.ModelSerializer):
    password = serializers.CharField(write_only=True, min_length=8)

    class Meta:
        model = User
        fields = ["username", "email", "name", "password"]
        extra_kwargs = {"email": {"required": True}}

    def validate_email(self, value):
        value = value.lower()
        if User.objects.filter(email__iexact=value).exists():
            raise serializers.ValidationError("An account with this email already exists.")
        return value

    def validate_name(self, value):
        return sanitize_text(value, max_length=150)

    def validate_password(self, value):
        validate_password(value)
        return value

    def create(self, validated_data):
        # Role is never client-settable; admins are promoted out of band
        return User.objects.create_user(**validated_data)


class LoginSerializer(serializers.Serializer):
    login = serializers.CharField()
    password = serializers.CharField(write_only=True)

    def validate(self, attrs):
        login = attrs["login"].strip()

        # Accounts sign in with either their email or their username
        if "@" in login:
            account = User.objects.filter(email__iexact=login).first()
            username = account.username if account else None
        else:
            username = login

        user = authenticate(username=username, password=attrs["password"]) if username else None
        if user is None:
            raise serializers.ValidationError("Invalid credentials")

        attrs["user"] = user
        return attrs
