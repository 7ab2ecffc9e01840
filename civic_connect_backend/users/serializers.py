from rest_framework import serializers

from .forms import EMAIL_ERROR, PASSWORD_ERROR, FULL_NAME_ERROR
from .models import User, Profile


class UserSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ['id', 'email', 'date_joined']
        read_only_fields = fields


class ProfileSerializer(serializers.ModelSerializer):
    id = serializers.UUIDField(source='pk', read_only=True)

    class Meta:
        model = Profile
        fields = ['id', 'email', 'full_name', 'role', 'department', 'created_at', 'updated_at']
        read_only_fields = fields


class SignInSerializer(serializers.Serializer):
    email = serializers.EmailField(error_messages={'invalid': EMAIL_ERROR, 'required': EMAIL_ERROR})
    password = serializers.CharField(
        min_length=6,
        trim_whitespace=False,
        write_only=True,
        error_messages={'min_length': PASSWORD_ERROR, 'required': PASSWORD_ERROR, 'blank': PASSWORD_ERROR},
    )


class SignUpSerializer(SignInSerializer):
    full_name = serializers.CharField(
        min_length=2,
        max_length=150,
        error_messages={'min_length': FULL_NAME_ERROR, 'required': FULL_NAME_ERROR, 'blank': FULL_NAME_ERROR},
    )


class ProfileRoleSerializer(serializers.ModelSerializer):
    """Superadmin-only: promote/demote a profile and route it to a department."""

    class Meta:
        model = Profile
        fields = ['role', 'department']
