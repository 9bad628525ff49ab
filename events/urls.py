from django.urls import path, include
from rest_framework.routers import SimpleRouter

from .views import (
    TeamViewSet,
    MyInvitationsView,
    InvitationRespondView,
    InvitationCancelView,
    EventRegistrationsView,
    RegistrationReviewView,
)

router = SimpleRouter()
router.register(r'teams', TeamViewSet, basename='team')

urlpatterns = [
    path('', include(router.urls)),
    path("invitations/", MyInvitationsView.as_view(), name="invitation-list"),
    path(
        "invitations/<int:invitation_id>/respond/",
        InvitationRespondView.as_view(),
        name="invitation-respond",
    ),
    path(
        "invitations/<int:invitation_id>/cancel/",
        InvitationCancelView.as_view(),
        name="invitation-cancel",
    ),
    path(
        "events/<int:event_id>/registrations/",
        EventRegistrationsView.as_view(),
        name="event-registrations",
    ),
    path(
        "registrations/<int:registration_id>/review/",
        RegistrationReviewView.as_view(),
        name="registration-review",
    ),
]
