"""
Candidate discovery for the swipe flow.

Given a user, surface the people they have not decided on yet: newest
accounts first, everyone already swiped (like or pass) filtered out, and
hidden accounts (inactive, soft-deleted, marked unavailable) never shown.
An empty list means the deck is exhausted.
"""
import logging

from django.conf import settings
from django.contrib.auth import get_user_model

from users.models import Profile
from users.services import exclude_deleted

from .models import Swipe

logger = logging.getLogger("teammatch.matching")

User = get_user_model()

MAX_LIMIT = 100

# Placeholders shown for a candidate with a sparse (or missing) profile
DEFAULT_NAME = "Anonymous"
DEFAULT_ROLE = "No role specified"
DEFAULT_LOCATION = "Location not specified"
DEFAULT_EXPERIENCE = "Experience not specified"
DEFAULT_BIO = "No bio available"


def default_limit():
    return getattr(settings, "DISCOVERY_DEFAULT_LIMIT", 20)


def clamp_limit(limit):
    if limit is None:
        return default_limit()
    try:
        limit = int(limit)
    except (TypeError, ValueError):
        return default_limit()
    return max(1, min(limit, MAX_LIMIT))


def _iso(value):
    return value.isoformat() if value else None


def _string_list(value):
    if not isinstance(value, (list, tuple)):
        return []
    return [item for item in value if isinstance(item, str)]


def build_person_summary(user, profile=None):
    """
    Merge a user and their optional profile into the card shown in discovery.

    Returns None when the row cannot be shown: no resolvable id, or a
    profile that opted out of discovery.
    """
    if user is None or getattr(user, "pk", None) is None:
        return None

    if profile is not None and not profile.is_available:
        return None

    def pick(attr):
        value = getattr(profile, attr, None) if profile is not None else None
        return value or None

    return {
        "id": str(user.pk),
        "name": pick("display_name") or user.name or user.email or DEFAULT_NAME,
        "role": pick("role") or DEFAULT_ROLE,
        "avatar": pick("avatar"),
        "location": pick("location") or DEFAULT_LOCATION,
        "skills": _string_list(pick("skills")),
        "experience": pick("experience") or DEFAULT_EXPERIENCE,
        "interests": _string_list(pick("interests")),
        "status": "available",
        "bio": pick("bio") or DEFAULT_BIO,
        "github": pick("github"),
        "linkedin": pick("linkedin"),
        "portfolio": pick("portfolio"),
        "rating": float(profile.rating) if profile is not None and profile.rating is not None else 0,
        "projects_completed": profile.projects_completed if profile is not None else 0,
        "hourly_rate": pick("hourly_rate"),
        "timezone": pick("timezone"),
        "created_at": _iso(user.created_at),
        "updated_at": _iso(user.updated_at),
    }


def candidate_queryset(user):
    """Every user `user` may still be shown, newest first."""
    swiped = Swipe.objects.filter(swiper=user).values("swipee_id")
    return (
        exclude_deleted(User.objects.filter(is_active=True))
        .exclude(pk=user.pk)
        .exclude(pk__in=swiped)
        .exclude(profile__is_available=False)
        .select_related("profile")
        .order_by("-created_at", "-id")
    )


def discover_candidates(user, limit=None):
    limit = clamp_limit(limit)

    results = []
    for candidate in candidate_queryset(user)[:limit]:
        try:
            profile = candidate.profile
        except Profile.DoesNotExist:
            profile = None

        summary = build_person_summary(candidate, profile)
        if summary is None:
            logger.debug("Dropped candidate %s from discovery for user=%s", candidate.pk, user.pk)
            continue
        results.append(summary)

    logger.info("Discovery for user=%s returned %s candidates (limit=%s)", user.pk, len(results), limit)
    return results
