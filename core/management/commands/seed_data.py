from datetime import timedelta

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand
from django.utils import timezone

from events.models import Event, Team
from events.services import team_formation
from users.models import Profile

User = get_user_model()


class Command(BaseCommand):
    help = "Seeds the database with sample users, an event and a team"

    def handle(self, *args, **options):
        self.stdout.write("Seeding data...")

        # 1. Ensure Users
        admin, _ = User.objects.get_or_create(
            username="admin",
            defaults={"email": "admin@example.com", "name": "Admin", "role": User.ROLE_ADMIN},
        )
        if not admin.check_password("admin"):
            admin.set_password("admin")
            admin.save()

        people = [
            ("alice", "Alice", "Backend Developer", ["python", "django"]),
            ("bob", "Bob", "Designer", ["figma", "ux"]),
            ("carol", "Carol", "Data Scientist", ["pandas", "ml"]),
        ]
        users = {}
        for username, name, role, skills in people:
            user, _ = User.objects.get_or_create(
                username=username,
                defaults={"email": f"{username}@example.com", "name": name},
            )
            user.set_password("password")
            user.save()
            Profile.objects.get_or_create(
                user=user,
                defaults={"display_name": name, "role": role, "skills": skills},
            )
            users[username] = user

        # 2. Event
        event, _ = Event.objects.get_or_create(
            name="Spring Hackathon",
            defaults={
                "description": "48 hours to build something useful.",
                "event_type": Event.TYPE_HACKATHON,
                "start_date": timezone.now() + timedelta(days=14),
                "end_date": timezone.now() + timedelta(days=16),
                "location": "Online",
            },
        )
        self.stdout.write(f"Used Event: {event.name}")

        # 3. Team (owner seated through the formation service)
        if not Team.objects.filter(event=event, name="Night Owls").exists():
            team_formation.create_team(
                {
                    "name": "Night Owls",
                    "description": "Shipping a study-group matcher.",
                    "event_id": event.pk,
                    "max_members": 4,
                    "tags": "python, web",
                    "looking_for": "designer",
                },
                owner=users["alice"],
            )

        self.stdout.write(self.style.SUCCESS("Seeding complete."))
