from .teams import TeamViewSet
from .invitations import (
    MyInvitationsView,
    InvitationRespondView,
    InvitationCancelView,
)
from .registrations import (
    EventRegistrationsView,
    RegistrationReviewView,
)
