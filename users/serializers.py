"""Serializers for the current user profile and sign-in.

- UserMeSerializer: read-only profile data for the authenticated user.
- IdentifierTokenObtainPairSerializer: obtain JWTs using email or username.
"""

from django.contrib.auth.models import update_last_login
from rest_framework import serializers
from rest_framework_simplejwt.settings import api_settings
from rest_framework_simplejwt.tokens import RefreshToken

from .models import User


class UserMeSerializer(serializers.ModelSerializer):
    """Serializer returning basic profile fields for the current user."""

    class Meta:
        model = User
        fields = ["id", "username", "email", "first_name", "last_name", "is_staff"]


class IdentifierTokenObtainPairSerializer(serializers.Serializer):
    """Obtain JWTs by authenticating with either email or username.

    Accepts a single `identifier` field which may be an email address
    (case-insensitive) or a username, and a `password`.
    Returns `access` and `refresh` tokens on success.
    """

    identifier = serializers.CharField()
    password = serializers.CharField(write_only=True)

    def validate(self, attrs):
        identifier = (attrs.get("identifier") or "").strip()
        password = attrs.get("password") or ""

        if not identifier or not password:
            raise serializers.ValidationError({"detail": "identifier and password are required."})

        user = None
        if "@" in identifier:
            lookup = {"email": identifier.lower()}
        else:
            lookup = {"username": identifier}
        try:
            user = User.objects.get(**lookup)
        except User.DoesNotExist:
            pass

        if not user or not user.check_password(password) or not user.is_active:
            raise serializers.ValidationError({"detail": "Invalid credentials."})

        refresh = RefreshToken.for_user(user)
        if api_settings.UPDATE_LAST_LOGIN:
            update_last_login(None, user)
        return {"access": str(refresh.access_token), "refresh": str(refresh)}
