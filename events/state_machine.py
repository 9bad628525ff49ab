# teammatch/events/state_machine.py
"""
Status state machines for the membership and event registration workflows.

JoinRequest:            pending → approved | rejected
TeamInvitation:         pending → accepted | declined | cancelled | expired
TeamEventRegistration:  pending → approved | rejected | cancelled
                        approved → cancelled
                        cancelled → pending (the team registers again)

Request and invitation outcomes are terminal. Transitions are applied as a
compare-and-set on the stored status, so two callers racing on the same
row cannot both move it out of `pending`.
"""
from typing import Tuple
import logging

from django.utils import timezone

from .models import JoinRequest, TeamEventRegistration, TeamInvitation

logger = logging.getLogger('teammatch.events')


# Valid state transitions: from_status -> list of allowed to_statuses
JOIN_REQUEST_TRANSITIONS = {
    JoinRequest.STATUS_PENDING: [JoinRequest.STATUS_APPROVED, JoinRequest.STATUS_REJECTED],
    JoinRequest.STATUS_APPROVED: [],
    JoinRequest.STATUS_REJECTED: [],
}

INVITATION_TRANSITIONS = {
    TeamInvitation.STATUS_PENDING: [
        TeamInvitation.STATUS_ACCEPTED,
        TeamInvitation.STATUS_DECLINED,
        TeamInvitation.STATUS_CANCELLED,
        TeamInvitation.STATUS_EXPIRED,
    ],
    TeamInvitation.STATUS_ACCEPTED: [],
    TeamInvitation.STATUS_DECLINED: [],
    TeamInvitation.STATUS_CANCELLED: [],
    TeamInvitation.STATUS_EXPIRED: [],
}

REGISTRATION_TRANSITIONS = {
    TeamEventRegistration.STATUS_PENDING: [
        TeamEventRegistration.STATUS_APPROVED,
        TeamEventRegistration.STATUS_REJECTED,
        TeamEventRegistration.STATUS_CANCELLED,
    ],
    TeamEventRegistration.STATUS_APPROVED: [TeamEventRegistration.STATUS_CANCELLED],
    TeamEventRegistration.STATUS_REJECTED: [],
    TeamEventRegistration.STATUS_CANCELLED: [TeamEventRegistration.STATUS_PENDING],
}

# Invitation outcomes that record when the invitee (or owner) answered
RESPONDED_STATUSES = {
    TeamInvitation.STATUS_ACCEPTED,
    TeamInvitation.STATUS_DECLINED,
    TeamInvitation.STATUS_CANCELLED,
}

REVIEWED_STATUSES = {
    TeamEventRegistration.STATUS_APPROVED,
    TeamEventRegistration.STATUS_REJECTED,
}


def _transitions_for(obj) -> dict:
    if isinstance(obj, JoinRequest):
        return JOIN_REQUEST_TRANSITIONS
    if isinstance(obj, TeamInvitation):
        return INVITATION_TRANSITIONS
    if isinstance(obj, TeamEventRegistration):
        return REGISTRATION_TRANSITIONS
    raise TypeError(f"No state machine for {obj.__class__.__name__}")


def can_transition(obj, new_status: str) -> Tuple[bool, str]:
    """
    Check if a join request, invitation or registration can move to a new status.

    Returns (can_transition: bool, reason: str)
    """
    transitions = _transitions_for(obj)
    current_status = obj.status

    if new_status not in transitions:
        return False, f"Invalid status: {new_status}"

    allowed = transitions.get(current_status, [])

    if new_status not in allowed:
        if not allowed:
            return False, f"Already {current_status}"
        return False, f"Cannot transition from '{current_status}' to '{new_status}'"

    return True, ""


def transition(obj, new_status: str, actor=None) -> Tuple[bool, str]:
    """
    Move `obj` to `new_status` if the stored row still has the status we read.

    Args:
        obj: JoinRequest, TeamInvitation or TeamEventRegistration
        new_status: The target status
        actor: The user performing the action (logged; recorded as reviewer on
            registration approvals and rejections)

    Returns (success: bool, message: str). On success `obj` reflects the new row.
    """
    can, reason = can_transition(obj, new_status)
    kind = obj.__class__.__name__

    if not can:
        logger.warning(
            f"Invalid state transition attempted: {kind}={obj.pk}, "
            f"from={obj.status}, to={new_status}, actor={getattr(actor, 'id', 'system')}. "
            f"Reason: {reason}"
        )
        return False, reason

    now = timezone.now()
    updates = {"status": new_status, "updated_at": now}
    if isinstance(obj, TeamInvitation) and new_status in RESPONDED_STATUSES:
        updates["responded_at"] = now
    if isinstance(obj, TeamEventRegistration) and new_status in REVIEWED_STATUSES:
        updates["reviewed_at"] = now
        updates["reviewed_by"] = actor

    old_status = obj.status
    rows = type(obj).objects.filter(pk=obj.pk, status=old_status).update(**updates)

    if rows == 0:
        logger.warning(
            f"State transition lost a race: {kind}={obj.pk}, "
            f"expected={old_status}, to={new_status}, actor={getattr(actor, 'id', 'system')}"
        )
        return False, f"{kind} was modified concurrently"

    for field, value in updates.items():
        setattr(obj, field, value)

    logger.info(
        f"{kind} state transition: id={obj.pk}, "
        f"from={old_status}, to={new_status}, actor={getattr(actor, 'id', 'system')}"
    )

    return True, f"Transitioned from '{old_status}' to '{new_status}'"


def get_allowed_transitions(obj) -> list:
    return _transitions_for(obj).get(obj.status, [])


def is_terminal_status(obj) -> bool:
    """
    Check if the object's status is terminal (no further transitions).
    """
    return len(get_allowed_transitions(obj)) == 0
