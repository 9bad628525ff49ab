from django.core.management.base import BaseCommand

from events.services.team_formation import repair_team_owners


class Command(BaseCommand):
    help = "Re-creates missing owner memberships for active teams"

    def add_arguments(self, parser):
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Only report teams whose owner seat is missing",
        )

    def handle(self, *args, **options):
        dry_run = options["dry_run"]
        self.stdout.write("Checking teams for missing owner memberships...")

        repaired = repair_team_owners(dry_run=dry_run)

        if not repaired:
            self.stdout.write(self.style.SUCCESS("All teams have their owner seated. Data is healthy."))
            return

        verb = "Would repair" if dry_run else "Repaired"
        self.stdout.write(self.style.WARNING(f"{verb} {len(repaired)} team(s): {', '.join(map(str, repaired))}"))
