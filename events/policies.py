# teammatch/events/policies.py
"""
Centralized team policy layer.

All permission checks for team actions are defined here. Authorization
compares the caller's id against the stored owner / inviter ids.
"""
from typing import Tuple

from .models import Team, TeamInvitation, TeamMember


class TeamPolicy:
    """
    Permission checks for teams, join requests and invitations.
    All methods return bool or (bool, str) with reason.
    """

    @staticmethod
    def is_system_admin(user) -> bool:
        """Check if user is a system-level admin."""
        if not user or not user.is_authenticated:
            return False
        return user.is_superuser or user.role == 'admin'

    @staticmethod
    def is_team_owner(user, team: Team) -> bool:
        if not user or not user.is_authenticated or team is None:
            return False
        return team.owner_id == user.id

    @staticmethod
    def is_active_member(user, team: Team) -> bool:
        if not user or not user.is_authenticated or team is None:
            return False
        return TeamMember.objects.filter(team=team, user=user, is_active=True).exists()

    @staticmethod
    def is_event_organizer(user) -> bool:
        if not user or not user.is_authenticated:
            return False
        return user.role == 'organizer' or TeamPolicy.is_system_admin(user)

    # ─────────────────────────────────────────────────────────────
    # Team lifecycle
    # ─────────────────────────────────────────────────────────────

    @staticmethod
    def can_deactivate_team(user, team: Team) -> Tuple[bool, str]:
        if TeamPolicy.is_team_owner(user, team) or TeamPolicy.is_system_admin(user):
            return True, ""
        return False, "Only the team owner can deactivate this team"

    # ─────────────────────────────────────────────────────────────
    # Membership workflow
    # ─────────────────────────────────────────────────────────────

    @staticmethod
    def can_review_join_requests(user, team: Team) -> Tuple[bool, str]:
        if TeamPolicy.is_team_owner(user, team):
            return True, ""
        return False, "Only team owners can process join requests"

    @staticmethod
    def can_invite(user, team: Team) -> Tuple[bool, str]:
        if TeamPolicy.is_team_owner(user, team):
            return True, ""
        return False, "Only team owners can send invitations"

    @staticmethod
    def can_respond_to_invitation(user, invitation: TeamInvitation) -> Tuple[bool, str]:
        if user and user.is_authenticated and invitation.invitee_id == user.id:
            return True, ""
        return False, "Only the invited user can respond to this invitation"

    @staticmethod
    def can_cancel_invitation(user, invitation: TeamInvitation) -> Tuple[bool, str]:
        if not user or not user.is_authenticated:
            return False, "Authentication required"
        if invitation.inviter_id == user.id or invitation.team.owner_id == user.id:
            return True, ""
        return False, "Only the inviter or the team owner can cancel this invitation"

    @staticmethod
    def can_remove_member(user, team: Team, member: TeamMember) -> Tuple[bool, str]:
        if not TeamPolicy.is_team_owner(user, team):
            return False, "Only team owners can remove members"
        if member.role == TeamMember.ROLE_OWNER or member.user_id == team.owner_id:
            return False, "The team owner cannot be removed"
        return True, ""

    # ─────────────────────────────────────────────────────────────
    # Event registration
    # ─────────────────────────────────────────────────────────────

    @staticmethod
    def can_register_team(user, team: Team) -> Tuple[bool, str]:
        if TeamPolicy.is_team_owner(user, team) or TeamPolicy.is_active_member(user, team):
            return True, ""
        return False, "You must be a team owner or member to manage event registration"

    @staticmethod
    def can_review_registrations(user) -> Tuple[bool, str]:
        if TeamPolicy.is_event_organizer(user):
            return True, ""
        return False, "Only organizers and admins can manage event registrations"
