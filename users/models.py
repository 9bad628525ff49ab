# users/models.py
from django.conf import settings
from django.contrib.auth.models import AbstractUser, UserManager
from django.db import models
from django.db.models import Q

# Rows soft-deleted before the is_deleted flag existed carry this marker
# followed by an ISO timestamp at the start of `name`.
DELETED_NAME_PREFIX = "[DELETED]"


class TeamMatchUserQuerySet(models.QuerySet):
    def exclude_deleted(self):
        """Drop soft-deleted users: explicit flag or legacy name marker."""
        return self.filter(is_deleted=False).exclude(name__startswith=DELETED_NAME_PREFIX)

    def deleted(self):
        return self.filter(Q(is_deleted=True) | Q(name__startswith=DELETED_NAME_PREFIX))


class TeamMatchUserManager(UserManager.from_queryset(TeamMatchUserQuerySet)):
    pass


class User(AbstractUser):
    ROLE_USER = "user"
    ROLE_ORGANIZER = "organizer"
    ROLE_ADMIN = "admin"

    ROLE_CHOICES = (
        (ROLE_USER, 'User'),
        (ROLE_ORGANIZER, 'Organizer'),
        (ROLE_ADMIN, 'Admin'),
    )

    name = models.CharField(max_length=255, blank=True, default="")
    email = models.EmailField(unique=True)

    role = models.CharField(
        max_length=30,
        choices=ROLE_CHOICES,
        default=ROLE_USER,
    )

    # Soft delete: the record stays, discovery and search never see it
    is_deleted = models.BooleanField(default=False, db_index=True)
    deleted_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = TeamMatchUserManager()

    class Meta:
        indexes = [
            models.Index(fields=["is_active", "is_deleted", "-created_at"], name="user_discovery_idx"),
        ]

    def __str__(self):
        return self.username

    @property
    def display_name(self):
        return self.name or self.get_full_name() or self.username

    @property
    def is_platform_admin(self):
        return self.role == self.ROLE_ADMIN or self.is_superuser


class Profile(models.Model):
    """
    Public-facing matching profile. Optional: a user without one is still
    discoverable and is shown with placeholder values.
    """
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="profile",
    )
    display_name = models.CharField(max_length=255, blank=True)
    bio = models.TextField(blank=True)
    role = models.CharField(max_length=120, blank=True, help_text="e.g. Backend Developer, Designer")
    avatar = models.CharField(max_length=1024, blank=True)
    location = models.CharField(max_length=255, blank=True)
    experience = models.CharField(max_length=120, blank=True)
    hourly_rate = models.PositiveIntegerField(null=True, blank=True)
    availability = models.CharField(max_length=120, blank=True)
    timezone = models.CharField(max_length=64, blank=True)

    github = models.URLField(blank=True)
    linkedin = models.URLField(blank=True)
    portfolio = models.URLField(blank=True)

    skills = models.JSONField(default=list, blank=True, help_text="List of skills")
    interests = models.JSONField(default=list, blank=True, help_text="List of interests")

    is_available = models.BooleanField(default=True)
    rating = models.DecimalField(max_digits=3, decimal_places=2, default=0)
    projects_completed = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"Profile<{self.user_id}> {self.display_name}"
