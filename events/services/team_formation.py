"""
Team formation: a team and its owner membership are born together.

`create_team` writes both rows in one transaction. `repair_team_owners`
re-drives the owner membership for any team that lost it (rows created
before the transactional write, or edited by hand in the admin).
"""
import logging

from django.contrib.auth import get_user_model
from django.db import IntegrityError, OperationalError, transaction
from django.db.models import Count, Exists, OuterRef, Q
from django.utils import timezone

from core.constants import (
    ACTIVITY_TEAM_CREATED,
    ACTIVITY_TEAM_DEACTIVATED,
    ACTIVITY_TEAM_OWNER_REPAIRED,
)
from core.exceptions import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    StorageError,
    ValidationError,
)
from core.models import DomainActivity
from core.services import ActivityService
from events.models import (
    TEAM_MAX_MEMBERS_LIMIT,
    Event,
    JoinRequest,
    Team,
    TeamEventRegistration,
    TeamInvitation,
    TeamMember,
)
from events.policies import TeamPolicy
from events.serializers import TeamSerializer
from users.services import is_soft_deleted

logger = logging.getLogger("teammatch.events")

User = get_user_model()

REQUIRED_TEXT_FIELDS = ("name", "description", "tags", "looking_for")


def validate_team_payload(data) -> dict:
    """
    Return the cleaned create payload or raise ValidationError listing every
    offending field.
    """
    errors = {}
    cleaned = {}

    for field in REQUIRED_TEXT_FIELDS:
        value = data.get(field)
        if not isinstance(value, str) or not value.strip():
            errors[field] = "This field is required."
        else:
            cleaned[field] = value.strip()

    for field in ("owner_id", "event_id"):
        value = data.get(field)
        if value in (None, ""):
            errors[field] = "This field is required."
        else:
            cleaned[field] = value

    max_members = data.get("max_members")
    limit = TEAM_MAX_MEMBERS_LIMIT
    # bool is an int subclass; True must not pass as 1
    if isinstance(max_members, bool) or not isinstance(max_members, int):
        errors["max_members"] = f"Must be an integer between 1 and {limit}."
    elif not 1 <= max_members <= limit:
        errors["max_members"] = f"Must be an integer between 1 and {limit}."
    else:
        cleaned["max_members"] = max_members

    if errors:
        detail = "; ".join(f"{field}: {msg}" for field, msg in errors.items())
        raise ValidationError(f"Invalid team payload ({detail})")

    return cleaned


def _get_or_404(model, pk, label):
    try:
        return model.objects.get(pk=pk)
    except (model.DoesNotExist, ValueError, TypeError):
        raise NotFoundError(f"{label} not found")


def create_team(data, owner=None) -> dict:
    """
    Create a team with its owner as first active member.

    `data` carries name, description, event_id, max_members, tags and
    looking_for; `owner_id` is taken from `owner` when given. Returns the
    sanitized team projection.
    """
    payload = dict(data)
    if owner is not None:
        payload["owner_id"] = owner.pk

    cleaned = validate_team_payload(payload)

    owner = _get_or_404(User, cleaned["owner_id"], "Team owner")
    if not owner.is_active or is_soft_deleted(owner):
        raise NotFoundError("Team owner not found")
    event = _get_or_404(Event, cleaned["event_id"], "Event")

    try:
        with transaction.atomic():
            team = Team.objects.create(
                name=cleaned["name"],
                description=cleaned["description"],
                event=event,
                owner=owner,
                max_members=cleaned["max_members"],
                tags=cleaned["tags"],
                looking_for=cleaned["looking_for"],
                is_active=True,
            )
            TeamMember.objects.create(
                team=team,
                user=owner,
                role=TeamMember.ROLE_OWNER,
                is_active=True,
            )
            ActivityService.log_activity(
                actor=owner,
                verb=ACTIVITY_TEAM_CREATED,
                target=team,
                visibility=DomainActivity.VISIBILITY_PUBLIC,
                metadata={
                    "team_id": team.id,
                    "team_name": team.name,
                    "event_id": event.id,
                    "event_name": event.name,
                },
            )
    except IntegrityError as exc:
        logger.warning("Team creation rolled back for owner=%s event=%s: %s", owner.pk, event.pk, exc)
        raise ConflictError("Team could not be created") from exc
    except OperationalError as exc:
        logger.warning("Team creation failed on storage for owner=%s: %s", owner.pk, exc)
        raise StorageError() from exc

    logger.info("Team created: team=%s event=%s owner=%s max_members=%s",
                team.pk, event.pk, owner.pk, team.max_members)

    return TeamSerializer(team, context={"viewer": owner}).data


def _active_teams():
    return Team.objects.filter(is_active=True).select_related("event", "owner")


def list_active_teams():
    return (
        _active_teams()
        .annotate(active_member_count=Count("members", filter=Q(members__is_active=True)))
        .order_by("-created_at", "-id")
    )


def list_teams_for_user(user):
    """Active teams the user owns or is an active member of, newest first."""
    return (
        _active_teams()
        .filter(Q(owner=user) | Q(members__user=user, members__is_active=True))
        .distinct()
        .order_by("-created_at", "-id")
    )


def list_event_teams(event_id):
    if not Event.objects.filter(pk=event_id).exists():
        raise NotFoundError("Event not found")
    return (
        _active_teams()
        .filter(event_id=event_id)
        .annotate(active_member_count=Count("members", filter=Q(members__is_active=True)))
        .order_by("-created_at", "-id")
    )


def get_team(team_id, include_inactive=False):
    qs = Team.objects.select_related("event", "owner")
    if not include_inactive:
        qs = qs.filter(is_active=True)
    try:
        return qs.get(pk=team_id)
    except (Team.DoesNotExist, ValueError, TypeError):
        raise NotFoundError("Team not found")


def deactivate_team(team, actor):
    """
    Close a team: every membership goes inactive, pending invitations and
    live event registrations are cancelled, pending join requests rejected.
    """
    allowed, reason = TeamPolicy.can_deactivate_team(actor, team)
    if not allowed:
        logger.warning("Team deactivation denied: team=%s actor=%s", team.pk, actor.pk)
        raise PermissionDeniedError(reason)

    now = timezone.now()
    with transaction.atomic():
        locked = Team.objects.select_for_update().get(pk=team.pk)
        if not locked.is_active:
            raise ConflictError("Team is already inactive")

        locked.is_active = False
        locked.save(update_fields=["is_active", "updated_at"])

        members = TeamMember.objects.filter(team=locked, is_active=True).update(is_active=False, updated_at=now)
        invitations = TeamInvitation.objects.filter(
            team=locked, status=TeamInvitation.STATUS_PENDING,
        ).update(status=TeamInvitation.STATUS_CANCELLED, responded_at=now, updated_at=now)
        requests = JoinRequest.objects.filter(
            team=locked, status=JoinRequest.STATUS_PENDING,
        ).update(status=JoinRequest.STATUS_REJECTED, updated_at=now)
        registrations = TeamEventRegistration.objects.filter(
            team=locked, status__in=TeamEventRegistration.ACTIVE_STATUSES,
        ).update(status=TeamEventRegistration.STATUS_CANCELLED, updated_at=now)

        ActivityService.log_activity(
            actor=actor,
            verb=ACTIVITY_TEAM_DEACTIVATED,
            target=locked,
            metadata={
                "memberships_deactivated": members,
                "invitations_cancelled": invitations,
                "join_requests_rejected": requests,
                "registrations_cancelled": registrations,
            },
        )

    team.is_active = False
    logger.info("Team deactivated: team=%s actor=%s members=%s invitations=%s requests=%s registrations=%s",
                team.pk, actor.pk, members, invitations, requests, registrations)
    return team


def repair_team_owners(dry_run=False):
    """
    Ensure every active team has its owner as an active 'owner' member.

    Idempotent: a second run finds nothing to fix. A team already at
    capacity without its owner is skipped and logged for manual review.
    Returns the list of repaired team ids.
    """
    repaired = []
    owner_seat = TeamMember.objects.filter(
        team=OuterRef("pk"),
        user_id=OuterRef("owner_id"),
        role=TeamMember.ROLE_OWNER,
        is_active=True,
    )
    broken = (
        Team.objects.filter(is_active=True)
        .annotate(has_owner_seat=Exists(owner_seat))
        .filter(has_owner_seat=False)
        .order_by("id")
    )

    for team in broken:
        if dry_run:
            repaired.append(team.pk)
            continue

        with transaction.atomic():
            locked = Team.objects.select_for_update().get(pk=team.pk)
            seated = TeamMember.objects.filter(team=locked, is_active=True).exclude(user_id=locked.owner_id).count()
            if seated >= locked.max_members:
                logger.warning("Owner repair skipped, team=%s is full without its owner", locked.pk)
                continue

            member, created = TeamMember.objects.get_or_create(
                team=team,
                user_id=team.owner_id,
                defaults={"role": TeamMember.ROLE_OWNER, "is_active": True},
            )
            if not created:
                member.role = TeamMember.ROLE_OWNER
                member.is_active = True
                member.save(update_fields=["role", "is_active", "updated_at"])

            ActivityService.log_activity(
                actor=None,
                verb=ACTIVITY_TEAM_OWNER_REPAIRED,
                target=team,
                metadata={"owner_id": team.owner_id, "created": created},
            )

        logger.info("Owner membership repaired: team=%s owner=%s created=%s", team.pk, team.owner_id, created)
        repaired.append(team.pk)

    return repaired
