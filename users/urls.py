# users/urls.py

from django.urls import path
from .views import (
    DeletedUserListView,
    MeView,
    UserRestoreView,
    UserSearchView,
    UserSoftDeleteView,
)

urlpatterns = [
    path('me/', MeView.as_view(), name='user-me'),
    path('search/', UserSearchView.as_view(), name='user-search'),
    path('deleted/', DeletedUserListView.as_view(), name='user-deleted-list'),
    path('<int:user_id>/soft-delete/', UserSoftDeleteView.as_view(), name='user-soft-delete'),
    path('<int:user_id>/restore/', UserRestoreView.as_view(), name='user-restore'),
]
