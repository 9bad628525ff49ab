"""
Membership workflow engine.

Join requests (user asks, owner decides) and invitations (owner asks, user
decides) both end in the same place: an active TeamMember row. That seat is
only ever granted inside one transaction that

  1. locks the Team row (select_for_update),
  2. re-counts active members against `max_members`,
  3. creates or re-activates the (team, user) membership,
  4. flips the request/invitation status with a compare-and-set.

If any step fails the whole unit rolls back, so a status never reads
approved/accepted without the seat that goes with it.
"""
from contextlib import contextmanager
import logging

from django.contrib.auth import get_user_model
from django.db import IntegrityError, OperationalError, transaction
from django.utils import timezone

from core.constants import (
    ACTIVITY_INVITATION_ACCEPTED,
    ACTIVITY_INVITATION_CANCELLED,
    ACTIVITY_INVITATION_DECLINED,
    ACTIVITY_INVITATION_SENT,
    ACTIVITY_JOIN_APPROVED,
    ACTIVITY_JOIN_REJECTED,
    ACTIVITY_JOIN_REQUESTED,
    ACTIVITY_MEMBER_LEFT,
    ACTIVITY_MEMBER_REMOVED,
)
from core.exceptions import (
    CapacityExceededError,
    ConflictError,
    InvitationExpiredError,
    NotFoundError,
    PermissionDeniedError,
    StorageError,
    ValidationError,
)
from core.services import ActivityService
from events import state_machine
from events.models import JoinRequest, Team, TeamInvitation, TeamMember
from events.policies import TeamPolicy
from users.services import is_soft_deleted

logger = logging.getLogger("teammatch.events")

User = get_user_model()


@contextmanager
def membership_write():
    """
    Atomic block for workflow writes. Lock timeouts / dropped connections
    surface as StorageError so the caller can retry the whole operation.
    """
    try:
        with transaction.atomic():
            yield
    except OperationalError as exc:
        logger.warning("Membership write failed on storage: %s", exc)
        raise StorageError() from exc


def _lock_team(team_id) -> Team:
    try:
        return Team.objects.select_for_update().get(pk=team_id)
    except (Team.DoesNotExist, ValueError, TypeError):
        raise NotFoundError("Team not found")


def active_member_count(team) -> int:
    return TeamMember.objects.filter(team=team, is_active=True).count()


def grant_seat(team: Team, user, role=TeamMember.ROLE_MEMBER) -> TeamMember:
    """
    Create or re-activate the (team, user) membership.

    Must run inside an atomic block holding the lock on `team`. Raises
    ConflictError if the user already holds an active seat and
    CapacityExceededError if the team is full.
    """
    existing = TeamMember.objects.filter(team=team, user=user).first()
    if existing is not None and existing.is_active:
        raise ConflictError("User is already a member of this team")

    current = active_member_count(team)
    if current >= team.max_members:
        logger.warning(
            "Capacity check rejected seat: team=%s user=%s count=%s max=%s",
            team.pk, user.pk, current, team.max_members,
        )
        raise CapacityExceededError(f"Team is full ({current}/{team.max_members})")

    now = timezone.now()
    if existing is not None:
        existing.is_active = True
        existing.role = role
        existing.joined_at = now
        existing.save(update_fields=["is_active", "role", "joined_at", "updated_at"])
        return existing

    try:
        # Savepoint: the unique (team, user) constraint is the last line
        with transaction.atomic():
            return TeamMember.objects.create(team=team, user=user, role=role, joined_at=now, is_active=True)
    except IntegrityError as exc:
        raise ConflictError("User is already a member of this team") from exc


def _deny(reason, **ids):
    logger.warning("Membership action denied (%s): %s", reason, ids)
    raise PermissionDeniedError(reason)


# ─────────────────────────────────────────────────────────────
# Join requests
# ─────────────────────────────────────────────────────────────

def create_join_request(team_id, user, message="") -> JoinRequest:
    """
    Ask to join a team. One request per (team, user) for all time: a second
    attempt is a conflict whatever became of the first. Team fullness is not
    checked here; it is checked when the owner approves.
    """
    try:
        team = Team.objects.get(pk=team_id, is_active=True)
    except (Team.DoesNotExist, ValueError, TypeError):
        raise NotFoundError("Team not found")

    if TeamMember.objects.filter(team=team, user=user, is_active=True).exists():
        raise ConflictError("You are already a member of this team")

    if JoinRequest.objects.filter(team=team, user=user).exists():
        raise ConflictError("You have already requested to join this team")

    try:
        with membership_write():
            with transaction.atomic():
                join_request = JoinRequest.objects.create(
                    team=team,
                    user=user,
                    message=(message or "").strip(),
                    status=JoinRequest.STATUS_PENDING,
                )
            ActivityService.log_activity(
                actor=user,
                verb=ACTIVITY_JOIN_REQUESTED,
                target=join_request,
                metadata={"team_id": team.id, "team_name": team.name},
            )
    except IntegrityError as exc:
        logger.warning("Duplicate join request blocked by constraint: team=%s user=%s", team.pk, user.pk)
        raise ConflictError("You have already requested to join this team") from exc

    logger.info("Join request created: request=%s team=%s user=%s", join_request.pk, team.pk, user.pk)
    return join_request


def _get_join_request(request_id, team_id=None) -> JoinRequest:
    try:
        join_request = JoinRequest.objects.select_related("user").get(pk=request_id)
    except (JoinRequest.DoesNotExist, ValueError, TypeError):
        raise NotFoundError("Join request not found")
    if team_id is not None and str(join_request.team_id) != str(team_id):
        raise NotFoundError("Join request not found")
    return join_request


def approve_join_request(request_id, actor, team_id=None) -> TeamMember:
    """
    Owner approves a pending request. The request stays pending when the
    team is full so the owner can retry later or reject it.
    """
    join_request = _get_join_request(request_id, team_id)

    with membership_write():
        team = _lock_team(join_request.team_id)

        allowed, reason = TeamPolicy.can_review_join_requests(actor, team)
        if not allowed:
            _deny(reason, team=team.pk, actor=actor.pk, request=join_request.pk)

        # Re-read under the team lock; a concurrent approval may have landed
        join_request.refresh_from_db(fields=["status"])
        if join_request.status != JoinRequest.STATUS_PENDING:
            logger.warning("Approve on non-pending request=%s status=%s", join_request.pk, join_request.status)
            raise ConflictError("Join request has already been processed")

        if not team.is_active:
            raise ConflictError("Team is no longer active")
        if is_soft_deleted(join_request.user) or not join_request.user.is_active:
            raise ConflictError("Requesting user is no longer active")

        member = grant_seat(team, join_request.user, role=TeamMember.ROLE_MEMBER)

        ok, reason = state_machine.transition(join_request, JoinRequest.STATUS_APPROVED, actor=actor)
        if not ok:
            raise ConflictError(reason)

        ActivityService.log_activity(
            actor=actor,
            verb=ACTIVITY_JOIN_APPROVED,
            target=join_request,
            metadata={"team_id": team.id, "user_id": join_request.user_id, "member_id": member.id},
        )

    logger.info("Join request approved: request=%s team=%s user=%s actor=%s",
                join_request.pk, team.pk, join_request.user_id, actor.pk)
    return member


def reject_join_request(request_id, actor, team_id=None) -> JoinRequest:
    join_request = _get_join_request(request_id, team_id)

    with membership_write():
        team = _lock_team(join_request.team_id)

        allowed, reason = TeamPolicy.can_review_join_requests(actor, team)
        if not allowed:
            _deny(reason, team=team.pk, actor=actor.pk, request=join_request.pk)

        join_request.refresh_from_db(fields=["status"])
        ok, reason = state_machine.transition(join_request, JoinRequest.STATUS_REJECTED, actor=actor)
        if not ok:
            raise ConflictError("Join request has already been processed")

        ActivityService.log_activity(
            actor=actor,
            verb=ACTIVITY_JOIN_REJECTED,
            target=join_request,
            metadata={"team_id": team.id, "user_id": join_request.user_id},
        )

    return join_request


def list_join_requests(team_id, actor):
    """All requests for the team, newest first. Owner only."""
    try:
        team = Team.objects.get(pk=team_id)
    except (Team.DoesNotExist, ValueError, TypeError):
        raise NotFoundError("Team not found")

    allowed, reason = TeamPolicy.can_review_join_requests(actor, team)
    if not allowed:
        _deny("Only team owners can view join requests", team=team.pk, actor=actor.pk)

    return (
        JoinRequest.objects.filter(team=team)
        .select_related("user__profile")
        .order_by("-created_at", "-id")
    )


# ─────────────────────────────────────────────────────────────
# Invitations
# ─────────────────────────────────────────────────────────────

def default_invitation_message(team) -> str:
    return f"You've been invited to join {team.name}!"


def create_invitation(team_id, inviter, invitee_id, message=None) -> TeamInvitation:
    """
    Owner invites a user. Refused for existing members, for a user who
    already holds a live invitation, and for a full team.
    """
    with membership_write():
        team = _lock_team(team_id)
        if not team.is_active:
            raise NotFoundError("Team not found")

        allowed, reason = TeamPolicy.can_invite(inviter, team)
        if not allowed:
            _deny(reason, team=team.pk, actor=inviter.pk)

        try:
            invitee = User.objects.get(pk=invitee_id)
        except (User.DoesNotExist, ValueError, TypeError):
            raise NotFoundError("User not found")
        if is_soft_deleted(invitee) or not invitee.is_active:
            raise NotFoundError("User not found")
        if invitee.pk == inviter.pk:
            raise ValidationError("You cannot invite yourself")

        if TeamMember.objects.filter(team=team, user=invitee, is_active=True).exists():
            raise ConflictError("User is already a member of this team")

        pending = list(
            TeamInvitation.objects.filter(team=team, invitee=invitee, status=TeamInvitation.STATUS_PENDING)
        )
        for invitation in pending:
            if invitation.is_actionable:
                raise ConflictError("User already has a pending invitation to this team")
            # Past its deadline: retire it so the pending-unique constraint admits the new one
            state_machine.transition(invitation, TeamInvitation.STATUS_EXPIRED, actor=inviter)

        current = active_member_count(team)
        if current >= team.max_members:
            logger.warning("Invitation refused, team=%s full (%s/%s)", team.pk, current, team.max_members)
            raise CapacityExceededError("Team is already full")

        try:
            with transaction.atomic():
                invitation = TeamInvitation.objects.create(
                    team=team,
                    inviter=inviter,
                    invitee=invitee,
                    message=(message or "").strip() or default_invitation_message(team),
                    status=TeamInvitation.STATUS_PENDING,
                )
        except IntegrityError as exc:
            raise ConflictError("User already has a pending invitation to this team") from exc

        ActivityService.log_activity(
            actor=inviter,
            verb=ACTIVITY_INVITATION_SENT,
            target=invitation,
            metadata={"team_id": team.id, "invitee_id": invitee.id},
        )

    logger.info("Invitation created: invitation=%s team=%s inviter=%s invitee=%s",
                invitation.pk, team.pk, inviter.pk, invitee.pk)
    return invitation


def _get_invitation(invitation_id) -> TeamInvitation:
    try:
        return TeamInvitation.objects.select_related("team").get(pk=invitation_id)
    except (TeamInvitation.DoesNotExist, ValueError, TypeError):
        raise NotFoundError("Invitation not found")


def _ensure_actionable(invitation):
    if invitation.status != TeamInvitation.STATUS_PENDING:
        raise ConflictError(f"Invitation has already been {invitation.status}")
    if invitation.is_expired:
        logger.warning("Action on expired invitation=%s (expires_at=%s)", invitation.pk, invitation.expires_at)
        raise InvitationExpiredError()


def accept_invitation(invitation_id, user) -> TeamMember:
    invitation = _get_invitation(invitation_id)

    allowed, reason = TeamPolicy.can_respond_to_invitation(user, invitation)
    if not allowed:
        _deny(reason, invitation=invitation.pk, actor=user.pk)

    with membership_write():
        team = _lock_team(invitation.team_id)
        invitation.refresh_from_db(fields=["status", "expires_at"])
        _ensure_actionable(invitation)

        if not team.is_active:
            raise ConflictError("Team is no longer active")

        member = grant_seat(team, user, role=TeamMember.ROLE_MEMBER)

        ok, reason = state_machine.transition(invitation, TeamInvitation.STATUS_ACCEPTED, actor=user)
        if not ok:
            raise ConflictError(reason)

        ActivityService.log_activity(
            actor=user,
            verb=ACTIVITY_INVITATION_ACCEPTED,
            target=invitation,
            metadata={"team_id": team.id, "member_id": member.id},
        )

    logger.info("Invitation accepted: invitation=%s team=%s user=%s", invitation.pk, team.pk, user.pk)
    return member


def decline_invitation(invitation_id, user) -> TeamInvitation:
    invitation = _get_invitation(invitation_id)

    allowed, reason = TeamPolicy.can_respond_to_invitation(user, invitation)
    if not allowed:
        _deny(reason, invitation=invitation.pk, actor=user.pk)

    with membership_write():
        _ensure_actionable(invitation)
        ok, reason = state_machine.transition(invitation, TeamInvitation.STATUS_DECLINED, actor=user)
        if not ok:
            raise ConflictError(reason)

        ActivityService.log_activity(
            actor=user,
            verb=ACTIVITY_INVITATION_DECLINED,
            target=invitation,
            metadata={"team_id": invitation.team_id},
        )

    return invitation


def respond_to_invitation(invitation_id, user, action):
    if action == "accept":
        return accept_invitation(invitation_id, user)
    if action == "decline":
        return decline_invitation(invitation_id, user)
    raise ValidationError('Action must be either "accept" or "decline"')


def cancel_invitation(invitation_id, actor) -> TeamInvitation:
    invitation = _get_invitation(invitation_id)

    allowed, reason = TeamPolicy.can_cancel_invitation(actor, invitation)
    if not allowed:
        _deny(reason, invitation=invitation.pk, actor=actor.pk)

    with membership_write():
        _ensure_actionable(invitation)
        ok, reason = state_machine.transition(invitation, TeamInvitation.STATUS_CANCELLED, actor=actor)
        if not ok:
            raise ConflictError(f"Invitation cannot be cancelled: {reason}")

        ActivityService.log_activity(
            actor=actor,
            verb=ACTIVITY_INVITATION_CANCELLED,
            target=invitation,
            metadata={"team_id": invitation.team_id, "invitee_id": invitation.invitee_id},
        )

    return invitation


def list_invitations_for_user(user):
    """Live invitations addressed to the user, newest first."""
    return (
        TeamInvitation.objects.filter(
            invitee=user,
            status=TeamInvitation.STATUS_PENDING,
            expires_at__gt=timezone.now(),
            team__is_active=True,
        )
        .select_related("team__event", "team__owner", "inviter", "invitee")
        .order_by("-created_at", "-id")
    )


def expire_stale_invitations(now=None) -> int:
    """
    Rewrite pending-but-past-deadline invitations to `expired`.
    Reads already treat them as expired; this only tidies the stored status.
    """
    now = now or timezone.now()
    expired = TeamInvitation.objects.filter(
        status=TeamInvitation.STATUS_PENDING,
        expires_at__lte=now,
    ).update(status=TeamInvitation.STATUS_EXPIRED, updated_at=now)
    if expired:
        logger.info("Expired %s stale invitations", expired)
    return expired


# ─────────────────────────────────────────────────────────────
# Leaving / removal
# ─────────────────────────────────────────────────────────────

def leave_team(team_id, user) -> TeamMember:
    with membership_write():
        team = _lock_team(team_id)
        member = TeamMember.objects.filter(team=team, user=user, is_active=True).first()
        if member is None:
            raise NotFoundError("You are not a member of this team")
        if member.role == TeamMember.ROLE_OWNER or team.owner_id == user.pk:
            raise ValidationError("Team owners cannot leave. Deactivate the team instead.")

        member.is_active = False
        member.save(update_fields=["is_active", "updated_at"])

        ActivityService.log_activity(
            actor=user,
            verb=ACTIVITY_MEMBER_LEFT,
            target=team,
            metadata={"user_id": user.pk},
        )

    logger.info("Member left: team=%s user=%s", team.pk, user.pk)
    return member


def remove_member(team_id, member_user_id, actor) -> TeamMember:
    with membership_write():
        team = _lock_team(team_id)
        member = TeamMember.objects.filter(team=team, user_id=member_user_id, is_active=True).first()
        if member is None:
            raise NotFoundError("Member not found")

        allowed, reason = TeamPolicy.can_remove_member(actor, team, member)
        if not allowed:
            _deny(reason, team=team.pk, actor=actor.pk, member=member_user_id)

        member.is_active = False
        member.save(update_fields=["is_active", "updated_at"])

        ActivityService.log_activity(
            actor=actor,
            verb=ACTIVITY_MEMBER_REMOVED,
            target=team,
            metadata={"user_id": member.user_id},
        )

    logger.info("Member removed: team=%s user=%s actor=%s", team.pk, member.user_id, actor.pk)
    return member
