# teammatch/matching/models.py
from django.conf import settings
from django.db import models


class Swipe(models.Model):
    """
    One directional decision by `swiper` about `swipee`.
    A second decision about the same person updates this row.
    """
    DECISION_LIKE = "like"
    DECISION_PASS = "pass"

    DECISION_CHOICES = [
        (DECISION_LIKE, "Like"),
        (DECISION_PASS, "Pass"),
    ]

    swiper = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="swipes_made",
    )
    swipee = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="swipes_received",
    )
    decision = models.CharField(max_length=8, choices=DECISION_CHOICES)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["swiper", "swipee"], name="unique_swipe_pair"),
        ]
        indexes = [
            models.Index(fields=["swipee", "decision"], name="swipe_swipee_decision_idx"),
        ]

    def __str__(self):
        return f"{self.swiper_id} -> {self.swipee_id}: {self.decision}"


class Match(models.Model):
    """
    Mutual like between two users. Stored with user_a_id < user_b_id so
    the unordered pair maps to exactly one row.
    """
    user_a = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="matches_as_a",
    )
    user_b = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="matches_as_b",
    )
    is_active = models.BooleanField(default=True)
    ended_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(fields=["user_a", "user_b"], name="unique_match_pair"),
        ]
        indexes = [
            models.Index(fields=["user_a", "is_active"], name="match_user_a_active_idx"),
            models.Index(fields=["user_b", "is_active"], name="match_user_b_active_idx"),
        ]

    def __str__(self):
        return f"Match {self.user_a_id} <-> {self.user_b_id}"

    @staticmethod
    def normalize_pair(first_id, second_id):
        return (first_id, second_id) if first_id < second_id else (second_id, first_id)

    def involves(self, user) -> bool:
        return user.pk in (self.user_a_id, self.user_b_id)

    def other_user(self, user):
        return self.user_b if user.pk == self.user_a_id else self.user_a
