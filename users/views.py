# users/views.py - user search and admin soft-delete API

from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from .serializers import RestoreUserSerializer, UserSerializer
from . import services


class MeView(APIView):
    """
    GET /api/users/me/
    Return current user info
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        return Response(UserSerializer(request.user).data)


class UserSearchView(APIView):
    """
    GET /api/users/search/?q=<text>&limit=<n>

    Name/email search used by the invite dialog. Deleted users and the
    caller are never returned.
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        users = services.search_users(
            request.query_params.get("q", ""),
            current_user=request.user,
            limit=request.query_params.get("limit", services.SEARCH_DEFAULT_LIMIT),
        )
        return Response({"users": users, "count": len(users)})


class UserSoftDeleteView(APIView):
    """POST /api/users/<id>/soft-delete/ (admins only)"""
    permission_classes = [IsAuthenticated]

    def post(self, request, user_id):
        user = services.get_user_or_404(user_id)
        services.soft_delete_user(user, actor=request.user)
        return Response(
            {"success": True, "message": "User deleted.", "user": UserSerializer(user).data},
            status=status.HTTP_200_OK,
        )


class UserRestoreView(APIView):
    """POST /api/users/<id>/restore/ (admins only). Body: {"original_name": "..."}"""
    permission_classes = [IsAuthenticated]

    def post(self, request, user_id):
        serializer = RestoreUserSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        user = services.get_user_or_404(user_id)
        services.restore_user(
            user,
            actor=request.user,
            original_name=serializer.validated_data.get("original_name"),
        )
        return Response(
            {"success": True, "message": "User restored.", "user": UserSerializer(user).data},
            status=status.HTTP_200_OK,
        )


class DeletedUserListView(APIView):
    """GET /api/users/deleted/ (admins only)"""
    permission_classes = [IsAuthenticated]

    def get(self, request):
        deleted_users = services.list_deleted_users(actor=request.user)
        return Response({"deleted_users": deleted_users, "total": len(deleted_users)})
