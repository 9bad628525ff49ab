"""
Team registration for events.

Any owner or active member enters their team into an event; organizers
approve or reject the entry. The event row is locked while a registration
is opened so `max_teams` is counted against a stable set of entries.
"""
import logging

from django.db import IntegrityError, transaction

from core.constants import (
    ACTIVITY_REGISTRATION_APPROVED,
    ACTIVITY_REGISTRATION_CANCELLED,
    ACTIVITY_REGISTRATION_CREATED,
    ACTIVITY_REGISTRATION_REJECTED,
)
from core.exceptions import (
    CapacityExceededError,
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from core.models import DomainActivity
from core.services import ActivityService
from events import state_machine
from events.models import Event, Team, TeamEventRegistration
from events.policies import TeamPolicy
from events.services.membership import membership_write

logger = logging.getLogger("teammatch.events")

REVIEW_ACTIONS = {
    "approve": (TeamEventRegistration.STATUS_APPROVED, ACTIVITY_REGISTRATION_APPROVED),
    "reject": (TeamEventRegistration.STATUS_REJECTED, ACTIVITY_REGISTRATION_REJECTED),
}


def _get_team(team_id, include_inactive=False) -> Team:
    qs = Team.objects.all() if include_inactive else Team.objects.filter(is_active=True)
    try:
        return qs.get(pk=team_id)
    except (Team.DoesNotExist, ValueError, TypeError):
        raise NotFoundError("Team not found")


def _require_member(actor, team):
    allowed, reason = TeamPolicy.can_register_team(actor, team)
    if not allowed:
        logger.warning("Registration action denied: team=%s actor=%s", team.pk, getattr(actor, "pk", None))
        raise PermissionDeniedError(reason)


def _registration_for(team, event_id):
    event_id = event_id or team.event_id
    try:
        return (
            TeamEventRegistration.objects.select_related("event", "team")
            .filter(team=team, event_id=event_id)
            .first()
        )
    except (ValueError, TypeError):
        raise ValidationError("Invalid event id")


def register_team(team_id, actor, event_id=None, message="") -> TeamEventRegistration:
    """
    Enter a team into an event (its own event unless `event_id` is given).

    Refused for an inactive event, a team that already holds a pending,
    approved or rejected entry, and an event whose `max_teams` is taken.
    A cancelled entry is re-opened as pending.
    """
    team = _get_team(team_id)
    _require_member(actor, team)

    event_id = event_id or team.event_id
    message = (message or "").strip()

    with membership_write():
        try:
            event = Event.objects.select_for_update().get(pk=event_id)
        except (Event.DoesNotExist, ValueError, TypeError):
            raise NotFoundError("Event not found")

        if not event.is_active:
            raise ValidationError("Event is not active")

        existing = TeamEventRegistration.objects.filter(event=event, team=team).first()
        if existing is not None and existing.status != TeamEventRegistration.STATUS_CANCELLED:
            raise ConflictError("Team is already registered for this event")

        if event.max_teams:
            taken = TeamEventRegistration.objects.filter(
                event=event, status__in=TeamEventRegistration.ACTIVE_STATUSES,
            ).count()
            if taken >= event.max_teams:
                logger.warning("Registration refused, event=%s full (%s/%s)", event.pk, taken, event.max_teams)
                raise CapacityExceededError(f"Event is full ({taken}/{event.max_teams} teams)")

        if existing is not None:
            ok, reason = state_machine.transition(existing, TeamEventRegistration.STATUS_PENDING, actor=actor)
            if not ok:
                raise ConflictError(reason)
            existing.message = message
            existing.registered_by = actor
            existing.reviewed_by = None
            existing.reviewed_at = None
            existing.save(update_fields=["message", "registered_by", "reviewed_by", "reviewed_at", "updated_at"])
            registration = existing
        else:
            try:
                with transaction.atomic():
                    registration = TeamEventRegistration.objects.create(
                        event=event,
                        team=team,
                        registered_by=actor,
                        message=message,
                        status=TeamEventRegistration.STATUS_PENDING,
                    )
            except IntegrityError as exc:
                raise ConflictError("Team is already registered for this event") from exc

        ActivityService.log_activity(
            actor=actor,
            verb=ACTIVITY_REGISTRATION_CREATED,
            target=registration,
            visibility=DomainActivity.VISIBILITY_PUBLIC,
            metadata={"team_id": team.id, "event_id": event.id, "reopened": existing is not None},
        )

    logger.info("Team registered: registration=%s team=%s event=%s actor=%s",
                registration.pk, team.pk, event.pk, actor.pk)
    return registration


def cancel_registration(team_id, actor, event_id=None) -> TeamEventRegistration:
    team = _get_team(team_id, include_inactive=True)
    _require_member(actor, team)

    with membership_write():
        registration = _registration_for(team, event_id)
        if registration is None or registration.status == TeamEventRegistration.STATUS_CANCELLED:
            raise NotFoundError("Registration not found")

        ok, reason = state_machine.transition(registration, TeamEventRegistration.STATUS_CANCELLED, actor=actor)
        if not ok:
            raise ConflictError(f"Registration cannot be cancelled: {reason}")

        ActivityService.log_activity(
            actor=actor,
            verb=ACTIVITY_REGISTRATION_CANCELLED,
            target=registration,
            metadata={"team_id": team.id, "event_id": registration.event_id},
        )

    logger.info("Registration cancelled: registration=%s team=%s actor=%s", registration.pk, team.pk, actor.pk)
    return registration


def get_registration_status(team_id, event_id=None):
    """The team's registration for the event, or None when it never registered."""
    team = _get_team(team_id, include_inactive=True)
    return _registration_for(team, event_id)


def list_event_registrations(event_id, actor, status=None):
    """Every team registration for an event, newest first. Organizers and admins only."""
    if not Event.objects.filter(pk=event_id).exists():
        raise NotFoundError("Event not found")

    allowed, reason = TeamPolicy.can_review_registrations(actor)
    if not allowed:
        raise PermissionDeniedError(reason)

    qs = TeamEventRegistration.objects.filter(event_id=event_id)
    if status:
        if status not in dict(TeamEventRegistration.STATUS_CHOICES):
            raise ValidationError(f"Unknown registration status: {status}")
        qs = qs.filter(status=status)
    return qs.select_related("event", "team__event", "team__owner", "registered_by").order_by("-created_at", "-id")


def review_registration(registration_id, actor, action) -> TeamEventRegistration:
    if action not in REVIEW_ACTIONS:
        raise ValidationError('Action must be either "approve" or "reject"')
    new_status, verb = REVIEW_ACTIONS[action]

    allowed, reason = TeamPolicy.can_review_registrations(actor)
    if not allowed:
        raise PermissionDeniedError(reason)

    try:
        registration = TeamEventRegistration.objects.select_related("team").get(pk=registration_id)
    except (TeamEventRegistration.DoesNotExist, ValueError, TypeError):
        raise NotFoundError("Registration not found")

    with membership_write():
        if new_status == TeamEventRegistration.STATUS_APPROVED and not registration.team.is_active:
            raise ConflictError("Team is no longer active")

        ok, reason = state_machine.transition(registration, new_status, actor=actor)
        if not ok:
            raise ConflictError("Registration has already been processed")

        ActivityService.log_activity(
            actor=actor,
            verb=verb,
            target=registration,
            visibility=DomainActivity.VISIBILITY_PUBLIC,
            metadata={"team_id": registration.team_id, "event_id": registration.event_id},
        )

    logger.info("Registration %s: registration=%s team=%s actor=%s",
                new_status, registration.pk, registration.team_id, actor.pk)
    return registration
