from rest_framework import serializers
from .models import User, Profile


class ProfileSerializer(serializers.ModelSerializer):
    class Meta:
        model = Profile
        fields = [
            'display_name',
            'bio',
            'role',
            'avatar',
            'location',
            'experience',
            'hourly_rate',
            'availability',
            'timezone',
            'github',
            'linkedin',
            'portfolio',
            'skills',
            'interests',
            'is_available',
            'rating',
            'projects_completed',
        ]


class UserSerializer(serializers.ModelSerializer):
    id = serializers.CharField(read_only=True)
    profile = ProfileSerializer(read_only=True)

    class Meta:
        model = User
        fields = [
            'id',
            'username',
            'name',
            'email',
            'role',
            'is_active',
            'created_at',
            'profile',
        ]


class BasicUserSerializer(serializers.ModelSerializer):
    """Identity fields only: used inside team, request and invitation projections."""
    id = serializers.CharField(read_only=True)

    class Meta:
        model = User
        fields = ['id', 'name', 'email']


class RestoreUserSerializer(serializers.Serializer):
    original_name = serializers.CharField(required=False, allow_blank=True, max_length=255)
