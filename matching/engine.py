"""
Match resolution: turns two reciprocal likes into exactly one Match.
"""
from dataclasses import dataclass
from typing import Optional
import logging

from django.contrib.auth import get_user_model
from django.db import IntegrityError, OperationalError, transaction
from django.db.models import Q
from django.utils import timezone

from core.constants import ACTIVITY_MATCH_CREATED, ACTIVITY_MATCH_ENDED
from core.exceptions import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    StorageError,
    ValidationError,
)
from core.models import DomainActivity
from core.services import ActivityService
from users.models import Profile
from users.services import is_soft_deleted

from .discovery import build_person_summary
from .models import Match, Swipe

logger = logging.getLogger("teammatch.matching")

User = get_user_model()

DECISIONS = {Swipe.DECISION_LIKE, Swipe.DECISION_PASS}


@dataclass
class SwipeResult:
    swipe: Swipe
    match: Optional[Match] = None
    matched: bool = False
    created: bool = False


class MatchEngine:
    """
    Records swipes and materializes mutual likes.

    The (swiper, swipee) and normalized (user_a, user_b) unique constraints
    make both writes idempotent: replaying a swipe never adds rows.
    """

    @classmethod
    def record_swipe(cls, swiper, swipee_id, decision) -> SwipeResult:
        decision = decision.strip().lower() if isinstance(decision, str) else None
        if decision not in DECISIONS:
            raise ValidationError('Invalid action. Must be "like" or "pass"')

        swipee = cls._get_target(swiper, swipee_id)

        try:
            with transaction.atomic():
                swipe = cls._upsert_swipe(swiper, swipee, decision)

                if decision != Swipe.DECISION_LIKE:
                    return SwipeResult(swipe=swipe)

                reciprocal = Swipe.objects.filter(
                    swiper=swipee, swipee=swiper, decision=Swipe.DECISION_LIKE,
                ).exists()
                if not reciprocal:
                    return SwipeResult(swipe=swipe)

                match, created = cls._get_or_create_match(swiper, swipee)
        except OperationalError as exc:
            logger.warning("Swipe write failed on storage: swiper=%s swipee=%s: %s", swiper.pk, swipee.pk, exc)
            raise StorageError() from exc

        if not match.is_active:
            # Unmatching is final; a fresh mutual like does not revive it
            logger.info("Mutual like on ended match=%s, not reactivated", match.pk)
            return SwipeResult(swipe=swipe, match=None, matched=False)

        return SwipeResult(swipe=swipe, match=match, matched=True, created=created)

    @staticmethod
    def _get_target(swiper, swipee_id):
        if swipee_id in (None, ""):
            raise ValidationError("Missing required field: target_user_id")
        try:
            swipee = User.objects.get(pk=swipee_id)
        except (User.DoesNotExist, ValueError, TypeError):
            raise NotFoundError("User not found")

        if swipee.pk == swiper.pk:
            raise ValidationError("You cannot swipe on yourself")
        if not swipee.is_active or is_soft_deleted(swipee):
            raise NotFoundError("User not found")
        return swipee

    @staticmethod
    def _upsert_swipe(swiper, swipee, decision) -> Swipe:
        try:
            with transaction.atomic():
                swipe, created = Swipe.objects.get_or_create(
                    swiper=swiper, swipee=swipee, defaults={"decision": decision},
                )
        except IntegrityError:
            # Concurrent first swipe on the same pair; the other insert won
            swipe, created = Swipe.objects.get(swiper=swiper, swipee=swipee), False

        if not created and swipe.decision != decision:
            swipe.decision = decision
            swipe.save(update_fields=["decision", "updated_at"])

        logger.info("Swipe recorded: swiper=%s swipee=%s decision=%s new=%s",
                    swiper.pk, swipee.pk, decision, created)
        return swipe

    @staticmethod
    def _get_or_create_match(first, second):
        user_a_id, user_b_id = Match.normalize_pair(first.pk, second.pk)
        try:
            with transaction.atomic():
                match, created = Match.objects.get_or_create(user_a_id=user_a_id, user_b_id=user_b_id)
        except IntegrityError:
            match, created = Match.objects.get(user_a_id=user_a_id, user_b_id=user_b_id), False

        if created:
            ActivityService.log_activity(
                actor=first,
                verb=ACTIVITY_MATCH_CREATED,
                target=match,
                visibility=DomainActivity.VISIBILITY_PRIVATE,
                metadata={"user_a_id": user_a_id, "user_b_id": user_b_id},
            )
            logger.info("Match created: match=%s users=(%s, %s)", match.pk, user_a_id, user_b_id)
        return match, created

    @staticmethod
    def list_matches(user):
        """Active matches for `user`, newest first, each with the other person's summary."""
        matches = (
            Match.objects.filter(Q(user_a=user) | Q(user_b=user), is_active=True)
            .select_related("user_a__profile", "user_b__profile")
            .order_by("-created_at", "-id")
        )

        results = []
        for match in matches:
            other = match.other_user(user)
            if is_soft_deleted(other):
                continue
            try:
                profile = other.profile
            except Profile.DoesNotExist:
                profile = None
            results.append({
                "id": str(match.pk),
                "created_at": match.created_at.isoformat(),
                "user": build_person_summary(other, profile) or {
                    "id": str(other.pk),
                    "name": other.name or other.email,
                },
            })
        return results

    @staticmethod
    def unmatch(match_id, user) -> Match:
        try:
            match = Match.objects.get(pk=match_id)
        except (Match.DoesNotExist, ValueError, TypeError):
            raise NotFoundError("Match not found")

        if not match.involves(user):
            logger.warning("Unmatch denied: match=%s user=%s", match.pk, user.pk)
            raise PermissionDeniedError("You are not part of this match")

        now = timezone.now()
        with transaction.atomic():
            rows = Match.objects.filter(pk=match.pk, is_active=True).update(
                is_active=False, ended_at=now, updated_at=now,
            )
            if rows == 0:
                raise ConflictError("Match has already ended")

            ActivityService.log_activity(
                actor=user,
                verb=ACTIVITY_MATCH_ENDED,
                target=match,
                visibility=DomainActivity.VISIBILITY_PRIVATE,
                metadata={"user_a_id": match.user_a_id, "user_b_id": match.user_b_id},
            )

        match.is_active = False
        match.ended_at = now
        logger.info("Match ended: match=%s by user=%s", match.pk, user.pk)
        return match


# Module-level entry points
record_swipe = MatchEngine.record_swipe
list_matches = MatchEngine.list_matches
unmatch = MatchEngine.unmatch
