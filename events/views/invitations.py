from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from rest_framework import status

from events.serializers import (
    InvitationResponseSerializer,
    TeamInvitationSerializer,
    TeamMemberSerializer,
)
from events.services import membership


class MyInvitationsView(APIView):
    """
    GET /api/invitations/
    Live (pending, unexpired) invitations for the current user.
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        invitations = membership.list_invitations_for_user(request.user)
        data = TeamInvitationSerializer(invitations, many=True).data
        return Response({"invitations": data, "count": len(data)}, status=status.HTTP_200_OK)


class InvitationRespondView(APIView):
    """
    POST /api/invitations/<id>/respond/
    Body: {"action": "accept" | "decline"}
    """
    permission_classes = [IsAuthenticated]

    def post(self, request, invitation_id):
        serializer = InvitationResponseSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        action = serializer.validated_data["action"]

        result = membership.respond_to_invitation(invitation_id, request.user, action)

        if action == "accept":
            return Response(
                {"status": "accepted", "member": TeamMemberSerializer(result).data},
                status=status.HTTP_200_OK,
            )
        return Response(
            {"status": "declined", "invitation": TeamInvitationSerializer(result).data},
            status=status.HTTP_200_OK,
        )


class InvitationCancelView(APIView):
    """POST /api/invitations/<id>/cancel/ (inviter or team owner)"""
    permission_classes = [IsAuthenticated]

    def post(self, request, invitation_id):
        invitation = membership.cancel_invitation(invitation_id, request.user)
        return Response(
            {"status": "cancelled", "invitation": TeamInvitationSerializer(invitation).data},
            status=status.HTTP_200_OK,
        )
