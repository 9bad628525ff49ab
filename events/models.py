# teammatch/events/models.py
from datetime import timedelta

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.db.models import Q
from django.utils import timezone


TEAM_MAX_MEMBERS_LIMIT = 20


def default_invitation_expiry():
    return timezone.now() + timedelta(days=getattr(settings, "INVITATION_TTL_DAYS", 7))


class Event(models.Model):
    """
    Hackathon / competition that teams are formed around and register for.
    `max_teams` caps live registrations; null means no cap.
    """
    TYPE_HACKATHON = "hackathon"
    TYPE_CASE_COMPETITION = "case-competition"
    TYPE_INNOVATION_CHALLENGE = "innovation-challenge"
    TYPE_CONFERENCE = "conference"
    TYPE_MEETUP = "meetup"
    TYPE_WORKSHOP = "workshop"

    TYPE_CHOICES = [
        (TYPE_HACKATHON, "Hackathon"),
        (TYPE_CASE_COMPETITION, "Case Competition"),
        (TYPE_INNOVATION_CHALLENGE, "Innovation Challenge"),
        (TYPE_CONFERENCE, "Conference"),
        (TYPE_MEETUP, "Meetup"),
        (TYPE_WORKSHOP, "Workshop"),
    ]

    name = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    event_type = models.CharField(max_length=32, choices=TYPE_CHOICES, default=TYPE_HACKATHON)
    start_date = models.DateTimeField()
    end_date = models.DateTimeField()
    location = models.CharField(max_length=255, blank=True)
    max_teams = models.PositiveIntegerField(null=True, blank=True)
    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["start_date"]
        indexes = [
            models.Index(fields=["is_active", "start_date"], name="event_active_start_idx"),
        ]

    def __str__(self):
        return self.name


class Team(models.Model):
    event = models.ForeignKey(Event, on_delete=models.CASCADE, related_name="teams")
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="owned_teams",
    )
    name = models.CharField(max_length=255)
    description = models.TextField()
    max_members = models.PositiveSmallIntegerField(
        validators=[MinValueValidator(1), MaxValueValidator(TEAM_MAX_MEMBERS_LIMIT)],
        help_text="Upper bound on active members, owner included",
    )
    tags = models.CharField(max_length=500)
    looking_for = models.CharField(max_length=500)
    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["event", "is_active"], name="team_event_active_idx"),
            models.Index(fields=["owner"], name="team_owner_idx"),
            models.Index(fields=["name"], name="team_name_idx"),
        ]

    def __str__(self):
        return f"{self.name} ({self.event.name})"


class TeamMember(models.Model):
    """
    (team, user) membership. Never deleted: leaving or removal flips
    `is_active`, and rejoining re-activates the same row.
    """
    ROLE_OWNER = "owner"
    ROLE_MEMBER = "member"

    ROLE_CHOICES = [
        (ROLE_OWNER, "Owner"),
        (ROLE_MEMBER, "Member"),
    ]

    team = models.ForeignKey(Team, on_delete=models.CASCADE, related_name="members")
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="team_memberships",
    )
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default=ROLE_MEMBER)
    joined_at = models.DateTimeField(default=timezone.now)
    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["team", "user"], name="unique_team_member"),
        ]
        indexes = [
            models.Index(fields=["team", "is_active"], name="teammember_team_active_idx"),
            models.Index(fields=["user", "is_active"], name="teammember_user_active_idx"),
        ]

    def __str__(self):
        return f"{self.user.username} in {self.team.name} ({self.role})"


class JoinRequest(models.Model):
    STATUS_PENDING = "pending"
    STATUS_APPROVED = "approved"
    STATUS_REJECTED = "rejected"

    STATUS_CHOICES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_APPROVED, "Approved"),
        (STATUS_REJECTED, "Rejected"),
    ]

    team = models.ForeignKey(Team, on_delete=models.CASCADE, related_name="join_requests")
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="join_requests",
    )
    message = models.TextField(blank=True, default="")
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            # One request per pair for its whole history, whatever the status
            models.UniqueConstraint(fields=["team", "user"], name="unique_join_request"),
        ]
        indexes = [
            models.Index(fields=["team", "status"], name="joinrequest_team_status_idx"),
        ]

    def __str__(self):
        return f"{self.user_id} -> team {self.team_id} ({self.status})"


class TeamInvitation(models.Model):
    STATUS_PENDING = "pending"
    STATUS_ACCEPTED = "accepted"
    STATUS_DECLINED = "declined"
    STATUS_CANCELLED = "cancelled"
    STATUS_EXPIRED = "expired"

    STATUS_CHOICES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_ACCEPTED, "Accepted"),
        (STATUS_DECLINED, "Declined"),
        (STATUS_CANCELLED, "Cancelled"),
        (STATUS_EXPIRED, "Expired"),
    ]

    team = models.ForeignKey(Team, on_delete=models.CASCADE, related_name="invitations")
    inviter = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="sent_team_invitations",
    )
    invitee = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="received_team_invitations",
    )
    message = models.TextField(blank=True, default="")
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING)
    expires_at = models.DateTimeField(default=default_invitation_expiry, db_index=True)
    responded_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["team", "invitee"],
                condition=Q(status="pending"),
                name="unique_pending_team_invitation",
            ),
        ]
        indexes = [
            models.Index(fields=["invitee", "status"], name="invitation_invitee_status_idx"),
            models.Index(fields=["team", "status"], name="invitation_team_status_idx"),
        ]

    def __str__(self):
        return f"Invite team {self.team_id} -> {self.invitee_id} ({self.status})"

    @property
    def is_expired(self):
        """Past its deadline. Stored status may still read 'pending'."""
        if self.status == self.STATUS_EXPIRED:
            return True
        return self.expires_at is not None and timezone.now() >= self.expires_at

    @property
    def is_actionable(self):
        return self.status == self.STATUS_PENDING and not self.is_expired

    @property
    def effective_status(self):
        if self.status == self.STATUS_PENDING and self.is_expired:
            return self.STATUS_EXPIRED
        return self.status


class TeamEventRegistration(models.Model):
    """
    A team's entry into an event, reviewed by the organizers.

    One row per (event, team) for good: cancelling marks the row and a
    later registration re-opens it as pending.
    """
    STATUS_PENDING = "pending"
    STATUS_APPROVED = "approved"
    STATUS_REJECTED = "rejected"
    STATUS_CANCELLED = "cancelled"

    STATUS_CHOICES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_APPROVED, "Approved"),
        (STATUS_REJECTED, "Rejected"),
        (STATUS_CANCELLED, "Cancelled"),
    ]

    # Statuses that hold one of the event's team slots
    ACTIVE_STATUSES = (STATUS_PENDING, STATUS_APPROVED)

    event = models.ForeignKey(Event, on_delete=models.CASCADE, related_name="team_registrations")
    team = models.ForeignKey(Team, on_delete=models.CASCADE, related_name="event_registrations")
    registered_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="team_event_registrations",
    )
    message = models.TextField(blank=True, default="")
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING)
    reviewed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="reviewed_team_registrations",
    )
    reviewed_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(fields=["event", "team"], name="unique_team_event_registration"),
        ]
        indexes = [
            models.Index(fields=["event", "status"], name="registration_event_status_idx"),
            models.Index(fields=["team", "status"], name="registration_team_status_idx"),
        ]

    def __str__(self):
        return f"Team {self.team_id} -> event {self.event_id} ({self.status})"

    @property
    def is_registered(self):
        return self.status in self.ACTIVE_STATUSES
