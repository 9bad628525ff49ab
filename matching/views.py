# matching/views.py - swipe deck API

from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from . import discovery, engine
from .serializers import SwipeRequestSerializer, SwipeSerializer


class CandidateListView(APIView):
    """
    GET /api/matching/candidates/?limit=<n>

    Next batch of people the caller has not swiped on yet.
    An empty list means there is nobody left to show.
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        candidates = discovery.discover_candidates(
            request.user,
            limit=request.query_params.get("limit"),
        )
        return Response({
            "meta": {"success": True},
            "data": {
                "candidates": candidates,
                "count": len(candidates),
            },
        })


class SwipeView(APIView):
    """
    POST /api/matching/swipe/
    Body: {"target_user_id": <id>, "action": "like" | "pass"}
    """
    permission_classes = [IsAuthenticated]
    throttle_scope = "swipe"

    def post(self, request):
        serializer = SwipeRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = engine.record_swipe(
            request.user,
            serializer.validated_data["target_user_id"],
            serializer.validated_data["action"],
        )
        return Response(
            {
                "success": True,
                "action": result.swipe.decision,
                "swipe": SwipeSerializer(result.swipe).data,
                "match": result.matched,
                "match_id": str(result.match.pk) if result.match else None,
                "new_match": result.created,
            },
            status=status.HTTP_200_OK,
        )


class MatchListView(APIView):
    """GET /api/matching/matches/"""
    permission_classes = [IsAuthenticated]

    def get(self, request):
        matches = engine.list_matches(request.user)
        return Response({
            "meta": {"success": True},
            "data": {
                "matches": matches,
                "count": len(matches),
            },
        })


class UnmatchView(APIView):
    """POST /api/matching/matches/<id>/unmatch/"""
    permission_classes = [IsAuthenticated]

    def post(self, request, match_id):
        match = engine.unmatch(match_id, request.user)
        return Response({"success": True, "match_id": str(match.pk), "is_active": match.is_active})
