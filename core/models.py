#  teammatch/core/models.py
from django.db import models
from django.conf import settings
from django.contrib.contenttypes.fields import GenericForeignKey
from django.contrib.contenttypes.models import ContentType


class DomainActivity(models.Model):
    """
    Append-only ledger of the state transitions in the system.
    Team formation, membership workflow, matching and soft delete all
    record here, so "a transition happened" is always answerable.
    """
    VISIBILITY_PUBLIC = "public"
    VISIBILITY_TEAM = "team"
    VISIBILITY_PRIVATE = "private"

    VISIBILITY_CHOICES = [
        (VISIBILITY_PUBLIC, "Public"),
        (VISIBILITY_TEAM, "Team-Only"),
        (VISIBILITY_PRIVATE, "Private"),
    ]

    # Who did it? Null for system actors (sweeps, repair command)
    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="activities",
    )

    # What happened? (e.g., 'team.created')
    verb = models.CharField(max_length=64, db_index=True)

    # To what? (Generic Foreign Key)
    content_type = models.ForeignKey(ContentType, on_delete=models.CASCADE)
    object_id = models.PositiveBigIntegerField()
    content_object = GenericForeignKey("content_type", "object_id")

    visibility = models.CharField(
        max_length=16,
        choices=VISIBILITY_CHOICES,
        default=VISIBILITY_TEAM,
        db_index=True,
    )

    # Snapshot of ids / names at time of logging
    metadata = models.JSONField(default=dict, blank=True)

    timestamp = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        verbose_name_plural = "Domain Activities"
        ordering = ["-timestamp"]
        indexes = [
            models.Index(fields=["content_type", "object_id"], name="activity_target_idx"),
            models.Index(fields=["actor", "-timestamp"], name="activity_actor_ts_idx"),
        ]

    def __str__(self):
        return f"{self.actor} - {self.verb} - {self.timestamp}"
