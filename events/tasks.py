# events/tasks.py

from celery import shared_task

from .services import membership


@shared_task
def expire_stale_invitations() -> int:
    """
    Periodic sweep: pending invitations past expires_at become 'expired'.
    Returns the number of rows rewritten.
    """
    return membership.expire_stale_invitations()
