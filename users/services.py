"""
Account-level workflows: soft delete, restore and user search.

Soft delete never removes the row. The user is flagged, hidden from
discovery and search, and every team-side trace of them is closed out
(memberships, owned teams, pending invitations and join requests).
"""
import logging
import re

from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from core.constants import ACTIVITY_USER_RESTORED, ACTIVITY_USER_SOFT_DELETED
from core.exceptions import ConflictError, NotFoundError, PermissionDeniedError, ValidationError
from core.models import DomainActivity
from core.services import ActivityService

from .models import DELETED_NAME_PREFIX, Profile

logger = logging.getLogger("teammatch.users")

User = get_user_model()

# "[DELETED] 2024-01-01T00:00:00.000Z Alice" -> "Alice"
LEGACY_MARKER_RE = re.compile(r"^\[DELETED\]\s+\S+\s?")
RESTORED_FALLBACK_NAME = "Restored User"

SEARCH_DEFAULT_LIMIT = 20
SEARCH_MAX_LIMIT = 100


def is_soft_deleted(user) -> bool:
    if user is None:
        return False
    return bool(user.is_deleted) or (user.name or "").startswith(DELETED_NAME_PREFIX)


def exclude_deleted(queryset=None):
    if queryset is None:
        queryset = User.objects.all()
    return queryset.filter(is_deleted=False).exclude(name__startswith=DELETED_NAME_PREFIX)


def strip_deleted_marker(name):
    """Return the name without a legacy deletion marker (or '' if nothing is left)."""
    if not name or not name.startswith(DELETED_NAME_PREFIX):
        return name or ""
    return LEGACY_MARKER_RE.sub("", name, count=1).strip()


def _require_admin(actor):
    if actor is None or not actor.is_platform_admin:
        raise PermissionDeniedError("Only administrators can manage deleted accounts.")


def get_user_or_404(user_id):
    try:
        return User.objects.get(pk=user_id)
    except (User.DoesNotExist, ValueError, TypeError):
        raise NotFoundError("User not found.")


def soft_delete_user(user, actor):
    """
    Flag the user as deleted and close out everything they take part in.

    Memberships go inactive, owned teams are deactivated (with their
    memberships, pending invitations and event registrations), pending
    invitations to the user are cancelled and their pending join requests
    are rejected.
    """
    # Local import: events.models references the user model
    from events.models import JoinRequest, Team, TeamEventRegistration, TeamInvitation, TeamMember

    _require_admin(actor)
    if user.pk == actor.pk:
        raise ValidationError("Administrators cannot delete their own account.")
    if is_soft_deleted(user):
        raise ConflictError("User is already deleted.")

    now = timezone.now()
    with transaction.atomic():
        user.is_deleted = True
        user.deleted_at = now
        user.save(update_fields=["is_deleted", "deleted_at", "updated_at"])

        owned_team_ids = list(Team.objects.filter(owner=user, is_active=True).values_list("id", flat=True))
        Team.objects.filter(id__in=owned_team_ids).update(is_active=False, updated_at=now)

        memberships = TeamMember.objects.filter(
            Q(user=user) | Q(team_id__in=owned_team_ids),
            is_active=True,
        ).update(is_active=False, updated_at=now)

        invitations = TeamInvitation.objects.filter(
            Q(invitee=user) | Q(team_id__in=owned_team_ids),
            status=TeamInvitation.STATUS_PENDING,
        ).update(status=TeamInvitation.STATUS_CANCELLED, responded_at=now, updated_at=now)

        requests = JoinRequest.objects.filter(
            Q(user=user) | Q(team_id__in=owned_team_ids),
            status=JoinRequest.STATUS_PENDING,
        ).update(status=JoinRequest.STATUS_REJECTED, updated_at=now)

        registrations = TeamEventRegistration.objects.filter(
            team_id__in=owned_team_ids,
            status__in=TeamEventRegistration.ACTIVE_STATUSES,
        ).update(status=TeamEventRegistration.STATUS_CANCELLED, updated_at=now)

        ActivityService.log_activity(
            actor=actor,
            verb=ACTIVITY_USER_SOFT_DELETED,
            target=user,
            visibility=DomainActivity.VISIBILITY_PRIVATE,
            metadata={
                "teams_deactivated": len(owned_team_ids),
                "memberships_deactivated": memberships,
                "invitations_cancelled": invitations,
                "join_requests_rejected": requests,
                "registrations_cancelled": registrations,
            },
        )

    logger.info(
        "User %s soft-deleted by %s (teams=%s memberships=%s invitations=%s requests=%s)",
        user.pk, actor.pk, len(owned_team_ids), memberships, invitations, requests,
    )
    return user


def restore_user(user, actor, original_name=None):
    """
    Clear the deletion flag. Legacy rows carrying the name marker get their
    name back from `original_name`, or from the marker-stripped name.
    """
    _require_admin(actor)
    if not is_soft_deleted(user):
        raise ConflictError("User is not deleted.")

    with transaction.atomic():
        user.is_deleted = False
        user.deleted_at = None
        if original_name and original_name.strip():
            user.name = original_name.strip()
        elif user.name.startswith(DELETED_NAME_PREFIX):
            user.name = strip_deleted_marker(user.name) or RESTORED_FALLBACK_NAME
        user.save(update_fields=["is_deleted", "deleted_at", "name", "updated_at"])

        ActivityService.log_activity(
            actor=actor,
            verb=ACTIVITY_USER_RESTORED,
            target=user,
            visibility=DomainActivity.VISIBILITY_PRIVATE,
            metadata={"name": user.name},
        )

    logger.info("User %s restored by %s as %r", user.pk, actor.pk, user.name)
    return user


def list_deleted_users(actor):
    _require_admin(actor)
    users = User.objects.deleted().select_related("profile").order_by("-updated_at")

    results = []
    for user in users:
        profile = _profile_or_none(user)
        results.append({
            "id": str(user.pk),
            "original_name": strip_deleted_marker(user.name) or "Unknown",
            "email": user.email,
            "role": user.role or User.ROLE_USER,
            "deleted_at": (user.deleted_at or user.updated_at).isoformat(),
            "avatar": profile.avatar if profile else None,
        })
    return results


def _profile_or_none(user):
    try:
        return user.profile
    except Profile.DoesNotExist:
        return None


def _clamp_limit(limit, default=SEARCH_DEFAULT_LIMIT):
    try:
        limit = int(limit)
    except (TypeError, ValueError):
        return default
    return max(1, min(limit, SEARCH_MAX_LIMIT))


def search_users(query, current_user=None, limit=SEARCH_DEFAULT_LIMIT):
    """Case-insensitive name/email search over non-deleted users, sorted by name."""
    query = (query or "").strip()
    qs = exclude_deleted(User.objects.filter(is_active=True))
    if query:
        qs = qs.filter(Q(name__icontains=query) | Q(email__icontains=query))
    if current_user is not None and current_user.pk:
        qs = qs.exclude(pk=current_user.pk)

    qs = qs.select_related("profile").order_by("name", "id")[:_clamp_limit(limit)]

    results = []
    for user in qs:
        profile = _profile_or_none(user)
        results.append({
            "id": str(user.pk),
            "name": user.name,
            "email": user.email,
            "profile": {
                "display_name": profile.display_name,
                "avatar": profile.avatar,
                "role": profile.role,
            } if profile else None,
        })
    return results
