"""
Serializers for accounts.
"""

import re

from rest_framework import serializers

from apps.jurisdictions.models import Jurisdiction
from .models import Profile, Role

MOBILE_NUMBER_RE = re.compile(r"^(09|\+639)\d{9}$")


class SignupSerializer(serializers.Serializer):
    """
    Validates a signup payload before any side effect.

    On success `validated_data` holds the resolved `role` and `jurisdiction`
    objects in place of `role_name` and `jurisdiction_code`.
    """

    email = serializers.EmailField(required=True)
    password = serializers.CharField(required=True, write_only=True, trim_whitespace=False)
    first_name = serializers.CharField(required=True, max_length=100)
    last_name = serializers.CharField(required=True, max_length=100)
    mobile_number = serializers.CharField(required=False, allow_blank=True, default="")
    role_name = serializers.CharField(required=True)
    jurisdiction_code = serializers.CharField(
        required=False, allow_blank=True, allow_null=True, default=None
    )

    def validate_email(self, value):
        return value.strip().lower()

    def validate_password(self, value):
        if len(value) < 8:
            raise serializers.ValidationError("Password must be at least 8 characters")
        if not (re.search(r"[a-z]", value) and re.search(r"[A-Z]", value) and re.search(r"\d", value)):
            raise serializers.ValidationError(
                "Password must contain at least one uppercase letter, one lowercase letter, and one number"
            )
        return value

    def validate_mobile_number(self, value):
        value = re.sub(r"\s+", "", value or "")
        if value and not MOBILE_NUMBER_RE.match(value):
            raise serializers.ValidationError("Please enter a valid Philippine mobile number")
        return value

    def validate_role_name(self, value):
        try:
            role = Role.objects.get(name=value)
        except Role.DoesNotExist:
            raise serializers.ValidationError("Unknown role.")
        if not role.allows_self_signup:
            raise serializers.ValidationError("This role cannot be requested at signup.")
        return role

    def validate_jurisdiction_code(self, value):
        if not value or not value.strip():
            return None
        try:
            return Jurisdiction.objects.get(code=value.strip(), is_active=True)
        except Jurisdiction.DoesNotExist:
            raise serializers.ValidationError("Unknown barangay code.")

    def validate(self, attrs):
        unknown = sorted(set(self.initial_data) - set(self.fields))
        if unknown:
            raise serializers.ValidationError({key: ["Unknown field."] for key in unknown})

        attrs["role"] = attrs.pop("role_name")
        attrs["jurisdiction"] = attrs.pop("jurisdiction_code")
        if attrs["role"].is_jurisdiction_admin and attrs["jurisdiction"] is None:
            raise serializers.ValidationError(
                {"jurisdiction_code": ["A barangay is required for this role."]}
            )
        return attrs


class ProfileSerializer(serializers.ModelSerializer):
    """Public representation of a profile. Never includes credentials."""

    role_name = serializers.CharField(source="role.name", read_only=True)
    jurisdiction_code = serializers.CharField(source="jurisdiction_id", read_only=True)

    class Meta:
        model = Profile
        fields = [
            "id", "email", "first_name", "last_name", "mobile_number",
            "role_name", "jurisdiction_code", "status", "created_at",
        ]
        read_only_fields = fields


class UserListSerializer(ProfileSerializer):
    """Serializer for the admin user list."""

    jurisdiction_name = serializers.CharField(source="jurisdiction.name", read_only=True, default=None)

    class Meta(ProfileSerializer.Meta):
        fields = ProfileSerializer.Meta.fields + ["jurisdiction_name", "updated_at"]
        read_only_fields = fields
