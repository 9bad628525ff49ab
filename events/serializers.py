# teammatch/events/serializers.py
from rest_framework import serializers

from users.models import Profile
from users.serializers import BasicUserSerializer
from .models import Event, Team, TeamMember, JoinRequest, TeamEventRegistration, TeamInvitation


class MemberUserSerializer(BasicUserSerializer):
    """User identity plus the handful of profile fields shown on team cards."""
    profile = serializers.SerializerMethodField()

    class Meta(BasicUserSerializer.Meta):
        fields = BasicUserSerializer.Meta.fields + ['profile']

    def get_profile(self, obj):
        try:
            profile = obj.profile
        except Profile.DoesNotExist:
            return None
        return {
            'display_name': profile.display_name,
            'avatar': profile.avatar,
            'role': profile.role,
            'bio': profile.bio,
        }


class EventSummarySerializer(serializers.ModelSerializer):
    id = serializers.CharField(read_only=True)

    class Meta:
        model = Event
        fields = ['id', 'name', 'event_type', 'start_date', 'end_date', 'location', 'is_active']


class TeamMemberSerializer(serializers.ModelSerializer):
    id = serializers.CharField(read_only=True)
    team_id = serializers.CharField(read_only=True)
    user_id = serializers.CharField(read_only=True)
    user = MemberUserSerializer(read_only=True)

    class Meta:
        model = TeamMember
        fields = ['id', 'team_id', 'user_id', 'role', 'joined_at', 'is_active', 'user']


class JoinRequestSerializer(serializers.ModelSerializer):
    id = serializers.CharField(read_only=True)
    team_id = serializers.CharField(read_only=True)
    user_id = serializers.CharField(read_only=True)
    user = MemberUserSerializer(read_only=True)

    class Meta:
        model = JoinRequest
        fields = ['id', 'team_id', 'user_id', 'message', 'status', 'created_at', 'user']


class TeamSerializer(serializers.ModelSerializer):
    """
    Sanitized team projection: string ids, owner and event summaries,
    membership roster. Pending join requests are only shown to the owner.
    """
    id = serializers.CharField(read_only=True)
    event_id = serializers.CharField(read_only=True)
    owner_id = serializers.CharField(read_only=True)
    owner = MemberUserSerializer(read_only=True)
    event = EventSummarySerializer(read_only=True)
    members = serializers.SerializerMethodField()
    member_count = serializers.SerializerMethodField()
    join_requests = serializers.SerializerMethodField()

    class Meta:
        model = Team
        fields = [
            'id',
            'name',
            'description',
            'event_id',
            'owner_id',
            'max_members',
            'tags',
            'looking_for',
            'is_active',
            'created_at',
            'updated_at',
            'owner',
            'event',
            'members',
            'member_count',
            'join_requests',
        ]

    def get_members(self, obj):
        members = obj.members.select_related('user__profile').order_by('joined_at', 'id')
        return TeamMemberSerializer(members, many=True).data

    def get_member_count(self, obj):
        return obj.members.filter(is_active=True).count()

    def get_join_requests(self, obj):
        viewer = self.context.get('viewer')
        if viewer is None or viewer.pk != obj.owner_id:
            return []
        requests = obj.join_requests.select_related('user__profile').order_by('-created_at')
        return JoinRequestSerializer(requests, many=True).data


class TeamCreateSerializer(serializers.Serializer):
    """
    Shape-only parsing of the create payload. Business validation
    (non-empty strings, 1..20 bound) lives in the formation service.
    """
    name = serializers.CharField(required=False, allow_blank=True)
    description = serializers.CharField(required=False, allow_blank=True)
    event_id = serializers.CharField(required=False, allow_blank=True)
    max_members = serializers.JSONField(required=False)
    tags = serializers.CharField(required=False, allow_blank=True)
    looking_for = serializers.CharField(required=False, allow_blank=True)


class TeamSummarySerializer(serializers.ModelSerializer):
    id = serializers.CharField(read_only=True)
    event = EventSummarySerializer(read_only=True)
    owner = BasicUserSerializer(read_only=True)
    member_count = serializers.SerializerMethodField()

    class Meta:
        model = Team
        fields = ['id', 'name', 'description', 'max_members', 'tags', 'looking_for', 'event', 'owner', 'member_count']

    def get_member_count(self, obj):
        annotated = getattr(obj, 'active_member_count', None)
        if annotated is not None:
            return annotated
        return obj.members.filter(is_active=True).count()


class TeamInvitationSerializer(serializers.ModelSerializer):
    id = serializers.CharField(read_only=True)
    team = TeamSummarySerializer(read_only=True)
    inviter = BasicUserSerializer(read_only=True)
    invitee = BasicUserSerializer(read_only=True)
    status = serializers.CharField(source='effective_status', read_only=True)

    class Meta:
        model = TeamInvitation
        fields = ['id', 'team', 'inviter', 'invitee', 'message', 'status', 'expires_at', 'responded_at', 'created_at']


class InvitationCreateSerializer(serializers.Serializer):
    invitee_id = serializers.IntegerField()
    message = serializers.CharField(required=False, allow_blank=True, max_length=2000)


class InvitationResponseSerializer(serializers.Serializer):
    action = serializers.ChoiceField(choices=['accept', 'decline'])


class JoinRequestCreateSerializer(serializers.Serializer):
    message = serializers.CharField(required=False, allow_blank=True, max_length=2000)


class JoinRequestActionSerializer(serializers.Serializer):
    action = serializers.ChoiceField(choices=['approve', 'reject'])


class TeamEventRegistrationSerializer(serializers.ModelSerializer):
    id = serializers.CharField(read_only=True)
    event_id = serializers.CharField(read_only=True)
    team_id = serializers.CharField(read_only=True)
    team = TeamSummarySerializer(read_only=True)
    event = EventSummarySerializer(read_only=True)
    registered_by = BasicUserSerializer(read_only=True)

    class Meta:
        model = TeamEventRegistration
        fields = [
            'id',
            'event_id',
            'team_id',
            'status',
            'message',
            'reviewed_at',
            'created_at',
            'updated_at',
            'team',
            'event',
            'registered_by',
        ]


class TeamRegistrationSerializer(serializers.Serializer):
    """Register / cancel body. `event_id` defaults to the team's own event."""
    event_id = serializers.IntegerField(required=False)
    message = serializers.CharField(required=False, allow_blank=True, max_length=2000)


class RegistrationReviewSerializer(serializers.Serializer):
    action = serializers.ChoiceField(choices=['approve', 'reject'])
