# events/views/teams.py - Team Formation & Membership API Views

from rest_framework import viewsets, status
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated

from events.serializers import (
    InvitationCreateSerializer,
    JoinRequestActionSerializer,
    JoinRequestCreateSerializer,
    JoinRequestSerializer,
    TeamCreateSerializer,
    TeamInvitationSerializer,
    TeamEventRegistrationSerializer,
    TeamMemberSerializer,
    TeamRegistrationSerializer,
    TeamSerializer,
    TeamSummarySerializer,
)
from events.services import membership, registration, team_formation


class TeamViewSet(viewsets.ViewSet):
    """
    API for forming teams and managing their membership.

    The views only translate HTTP to the service layer; every rule
    (ownership, capacity, request/invitation states) lives in
    events.services.
    """
    permission_classes = [IsAuthenticated]

    def _team_data(self, team):
        return TeamSerializer(team, context={'viewer': self.request.user}).data

    def list(self, request):
        """
        GET /api/teams/?event=<id>
        Active teams, optionally narrowed to one event.
        """
        event_id = request.query_params.get('event')
        if event_id:
            teams = team_formation.list_event_teams(event_id)
        else:
            teams = team_formation.list_active_teams()
        data = TeamSummarySerializer(teams, many=True).data
        return Response({'teams': data, 'count': len(data)})

    def create(self, request):
        """
        POST /api/teams/
        Body: {"name", "description", "event_id", "max_members", "tags", "looking_for"}
        The caller becomes the owner.
        """
        serializer = TeamCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = team_formation.create_team(serializer.validated_data, owner=request.user)
        return Response(data, status=status.HTTP_201_CREATED)

    def retrieve(self, request, pk=None):
        team = team_formation.get_team(pk)
        return Response(self._team_data(team))

    def destroy(self, request, pk=None):
        """DELETE /api/teams/<id>/ deactivates the team (owner or admin)."""
        team = team_formation.get_team(pk)
        team_formation.deactivate_team(team, actor=request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=False, methods=['get'], url_path='mine')
    def mine(self, request):
        teams = team_formation.list_teams_for_user(request.user)
        data = [self._team_data(team) for team in teams]
        return Response({'teams': data, 'count': len(data)})

    @action(detail=True, methods=['post'], url_path='join')
    def join(self, request, pk=None):
        """
        POST /api/teams/<id>/join/
        Body: {"message": "optional"}
        """
        serializer = JoinRequestCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        join_request = membership.create_join_request(
            pk, request.user, message=serializer.validated_data.get('message', ''),
        )
        return Response(JoinRequestSerializer(join_request).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['get'], url_path='requests')
    def requests(self, request, pk=None):
        """GET /api/teams/<id>/requests/ (owner only)"""
        join_requests = membership.list_join_requests(pk, request.user)
        data = JoinRequestSerializer(join_requests, many=True).data
        return Response({'requests': data, 'count': len(data)})

    @action(detail=True, methods=['post'], url_path=r'requests/(?P<request_id>[0-9]+)')
    def review_request(self, request, pk=None, request_id=None):
        """
        POST /api/teams/<id>/requests/<request_id>/
        Body: {"action": "approve" | "reject"}
        """
        serializer = JoinRequestActionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        if serializer.validated_data['action'] == 'approve':
            member = membership.approve_join_request(request_id, request.user, team_id=pk)
            return Response({
                'status': 'approved',
                'member': TeamMemberSerializer(member).data,
            })

        join_request = membership.reject_join_request(request_id, request.user, team_id=pk)
        return Response({
            'status': 'rejected',
            'request': JoinRequestSerializer(join_request).data,
        })

    @action(detail=True, methods=['post'], url_path='leave')
    def leave(self, request, pk=None):
        """Leave a team (members only, owners cannot leave)"""
        membership.leave_team(pk, request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=['delete'], url_path=r'members/(?P<user_id>[0-9]+)')
    def remove_member(self, request, pk=None, user_id=None):
        """DELETE /api/teams/<id>/members/<user_id>/ (owner only)"""
        membership.remove_member(pk, user_id, request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=['post'], url_path='invite')
    def invite(self, request, pk=None):
        """
        POST /api/teams/<id>/invite/
        Body: {"invitee_id": <id>, "message": "optional"}
        """
        serializer = InvitationCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        invitation = membership.create_invitation(
            pk,
            request.user,
            serializer.validated_data['invitee_id'],
            message=serializer.validated_data.get('message'),
        )
        return Response(TeamInvitationSerializer(invitation).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['post', 'delete'], url_path='register')
    def register(self, request, pk=None):
        """
        POST /api/teams/<id>/register/    Body: {"event_id": optional, "message": "optional"}
        DELETE /api/teams/<id>/register/  Body: {"event_id": optional}
        Owner or active member only. `event_id` defaults to the team's event.
        """
        serializer = TeamRegistrationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        event_id = serializer.validated_data.get('event_id') or request.query_params.get('event')

        if request.method == 'DELETE':
            entry = registration.cancel_registration(pk, request.user, event_id=event_id)
            return Response({
                'status': 'cancelled',
                'registration': TeamEventRegistrationSerializer(entry).data,
            })

        entry = registration.register_team(
            pk,
            request.user,
            event_id=event_id,
            message=serializer.validated_data.get('message', ''),
        )
        return Response(TeamEventRegistrationSerializer(entry).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['get'], url_path='registration-status')
    def registration_status(self, request, pk=None):
        """GET /api/teams/<id>/registration-status/?event=<id>"""
        entry = registration.get_registration_status(pk, event_id=request.query_params.get('event'))
        return Response({
            'is_registered': bool(entry and entry.is_registered),
            'registration': TeamEventRegistrationSerializer(entry).data if entry else None,
        })
