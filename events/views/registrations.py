from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from rest_framework import status

from events.serializers import RegistrationReviewSerializer, TeamEventRegistrationSerializer
from events.services import registration


class EventRegistrationsView(APIView):
    """
    GET /api/events/<event_id>/registrations/?status=<status>
    Team registrations for an event. Organizers and admins only.
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, event_id):
        entries = registration.list_event_registrations(
            event_id, request.user, status=request.query_params.get("status"),
        )
        data = TeamEventRegistrationSerializer(entries, many=True).data
        return Response({"registrations": data, "count": len(data)}, status=status.HTTP_200_OK)


class RegistrationReviewView(APIView):
    """
    POST /api/registrations/<id>/review/
    Body: {"action": "approve" | "reject"}
    """
    permission_classes = [IsAuthenticated]

    def post(self, request, registration_id):
        serializer = RegistrationReviewSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        entry = registration.review_registration(
            registration_id, request.user, serializer.validated_data["action"],
        )
        return Response(
            {"status": entry.status, "registration": TeamEventRegistrationSerializer(entry).data},
            status=status.HTTP_200_OK,
        )
