from datetime import timedelta
from unittest import mock

from django.contrib.auth import get_user_model
from django.db import OperationalError
from django.test import TestCase, override_settings
from django.utils import timezone

from core.constants import ACTIVITY_TEAM_CREATED, ACTIVITY_TEAM_DEACTIVATED
from core.exceptions import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    StorageError,
    ValidationError,
)
from core.models import DomainActivity
from events.models import Event, JoinRequest, Team, TeamInvitation, TeamMember
from events.services import membership, team_formation

User = get_user_model()


def make_event(name="Hack Night"):
    now = timezone.now()
    return Event.objects.create(
        name=name,
        description="Build something",
        start_date=now + timedelta(days=1),
        end_date=now + timedelta(days=2),
    )


def team_payload(event, **overrides):
    payload = {
        "name": "Rocket",
        "description": "We build rockets",
        "event_id": event.pk,
        "max_members": 4,
        "tags": "python, ml",
        "looking_for": "frontend",
    }
    payload.update(overrides)
    return payload


class CreateTeamTests(TestCase):
    def setUp(self):
        self.owner = User.objects.create_user(
            username="owner", email="owner@example.com", password="pass1234", name="Olive",
        )
        self.event = make_event()

    def test_create_team_seats_owner(self):
        data = team_formation.create_team(team_payload(self.event), owner=self.owner)

        team = Team.objects.get(pk=int(data["id"]))
        self.assertEqual(team.owner, self.owner)
        self.assertTrue(team.is_active)

        members = TeamMember.objects.filter(team=team)
        self.assertEqual(members.count(), 1)
        self.assertEqual(members[0].user, self.owner)
        self.assertEqual(members[0].role, TeamMember.ROLE_OWNER)
        self.assertTrue(members[0].is_active)

    def test_projection_uses_string_ids_and_member_count(self):
        data = team_formation.create_team(team_payload(self.event), owner=self.owner)

        self.assertIsInstance(data["id"], str)
        self.assertEqual(data["owner_id"], str(self.owner.pk))
        self.assertEqual(data["event_id"], str(self.event.pk))
        self.assertEqual(data["member_count"], 1)
        self.assertEqual(data["owner"]["name"], "Olive")
        self.assertEqual(data["event"]["name"], "Hack Night")
        self.assertEqual(len(data["members"]), 1)
        self.assertEqual(data["join_requests"], [])

    def test_create_team_logs_activity(self):
        data = team_formation.create_team(team_payload(self.event), owner=self.owner)
        activity = DomainActivity.objects.get(verb=ACTIVITY_TEAM_CREATED)
        self.assertEqual(activity.object_id, int(data["id"]))
        self.assertEqual(activity.actor, self.owner)
        self.assertEqual(activity.visibility, DomainActivity.VISIBILITY_PUBLIC)

    def test_strings_are_trimmed(self):
        data = team_formation.create_team(
            team_payload(self.event, name="  Rocket  ", tags=" ml "), owner=self.owner,
        )
        self.assertEqual(data["name"], "Rocket")
        self.assertEqual(data["tags"], "ml")

    def test_missing_fields_rejected(self):
        for field in ("name", "description", "tags", "looking_for", "event_id", "max_members"):
            payload = team_payload(self.event)
            payload.pop(field)
            with self.subTest(field=field):
                with self.assertRaises(ValidationError) as ctx:
                    team_formation.create_team(payload, owner=self.owner)
                self.assertIn(field, str(ctx.exception))
        self.assertFalse(Team.objects.exists())

    def test_blank_string_rejected(self):
        with self.assertRaises(ValidationError):
            team_formation.create_team(team_payload(self.event, name="   "), owner=self.owner)

    def test_max_members_bounds(self):
        for bad in (0, 21, -1, "5", 2.5, True, None):
            with self.subTest(max_members=bad):
                with self.assertRaises(ValidationError):
                    team_formation.create_team(team_payload(self.event, max_members=bad), owner=self.owner)

        for good in (1, 20):
            data = team_formation.create_team(
                team_payload(self.event, name=f"Team {good}", max_members=good), owner=self.owner,
            )
            self.assertEqual(data["max_members"], good)

    def test_owner_id_from_payload(self):
        payload = team_payload(self.event, owner_id=self.owner.pk)
        data = team_formation.create_team(payload)
        self.assertEqual(data["owner_id"], str(self.owner.pk))

    def test_unknown_event_is_not_found(self):
        with self.assertRaises(NotFoundError):
            team_formation.create_team(team_payload(self.event, event_id=999999), owner=self.owner)
        self.assertFalse(Team.objects.exists())

    def test_deleted_owner_is_not_found(self):
        self.owner.is_deleted = True
        self.owner.save()
        with self.assertRaises(NotFoundError):
            team_formation.create_team(team_payload(self.event), owner=self.owner)

    def test_legacy_deleted_name_owner_is_not_found(self):
        self.owner.name = "[DELETED] 2024-01-01T00:00:00.000Z Alice"
        self.owner.save(update_fields=["name"])

        with self.assertRaises(NotFoundError):
            team_formation.create_team(team_payload(self.event), owner=self.owner)
        self.assertFalse(Team.objects.exists())
        self.assertFalse(TeamMember.objects.exists())

    @override_settings(TEAM_MAX_MEMBERS_LIMIT=50)
    def test_max_members_bound_ignores_settings(self):
        with self.assertRaises(ValidationError):
            team_formation.create_team(team_payload(self.event, max_members=30), owner=self.owner)
        self.assertFalse(Team.objects.exists())

    def test_failed_owner_seat_rolls_back_team(self):
        with mock.patch.object(TeamMember.objects, "create", side_effect=OperationalError("locked")):
            with self.assertRaises(StorageError):
                team_formation.create_team(team_payload(self.event), owner=self.owner)

        self.assertFalse(Team.objects.exists())
        self.assertFalse(DomainActivity.objects.exists())


class TeamListingTests(TestCase):
    def setUp(self):
        self.owner = User.objects.create_user(username="owner", email="owner@example.com", password="x")
        self.member = User.objects.create_user(username="member", email="member@example.com", password="x")
        self.event = make_event()
        self.other_event = make_event("Data Jam")

        self.team = Team.objects.get(pk=int(
            team_formation.create_team(team_payload(self.event), owner=self.owner)["id"]
        ))
        self.other_team = Team.objects.get(pk=int(
            team_formation.create_team(team_payload(self.other_event, name="Other"), owner=self.owner)["id"]
        ))

    def test_list_event_teams(self):
        teams = list(team_formation.list_event_teams(self.event.pk))
        self.assertEqual([t.pk for t in teams], [self.team.pk])
        self.assertEqual(teams[0].active_member_count, 1)

    def test_list_event_teams_unknown_event(self):
        with self.assertRaises(NotFoundError):
            team_formation.list_event_teams(999999)

    def test_inactive_teams_hidden(self):
        team_formation.deactivate_team(self.team, self.owner)
        self.assertEqual(list(team_formation.list_event_teams(self.event.pk)), [])
        with self.assertRaises(NotFoundError):
            team_formation.get_team(self.team.pk)
        self.assertEqual(team_formation.get_team(self.team.pk, include_inactive=True), self.team)

    def test_teams_for_user_covers_membership(self):
        self.assertEqual(list(team_formation.list_teams_for_user(self.member)), [])

        TeamMember.objects.create(team=self.team, user=self.member)
        teams = list(team_formation.list_teams_for_user(self.member))
        self.assertEqual(teams, [self.team])

        owned = list(team_formation.list_teams_for_user(self.owner))
        self.assertEqual(len(owned), 2)


class DeactivateTeamTests(TestCase):
    def setUp(self):
        self.owner = User.objects.create_user(username="owner", email="owner@example.com", password="x")
        self.member = User.objects.create_user(username="member", email="member@example.com", password="x")
        self.requester = User.objects.create_user(username="req", email="req@example.com", password="x")
        self.invitee = User.objects.create_user(username="inv", email="inv@example.com", password="x")
        self.event = make_event()
        self.team = Team.objects.get(pk=int(
            team_formation.create_team(team_payload(self.event), owner=self.owner)["id"]
        ))
        TeamMember.objects.create(team=self.team, user=self.member)

    def test_cascades_to_memberships_invitations_and_requests(self):
        join_request = membership.create_join_request(self.team.pk, self.requester)
        invitation = membership.create_invitation(self.team.pk, self.owner, self.invitee.pk)

        team_formation.deactivate_team(self.team, self.owner)

        self.team.refresh_from_db()
        join_request.refresh_from_db()
        invitation.refresh_from_db()
        self.assertFalse(self.team.is_active)
        self.assertFalse(TeamMember.objects.filter(team=self.team, is_active=True).exists())
        self.assertEqual(join_request.status, JoinRequest.STATUS_REJECTED)
        self.assertEqual(invitation.status, TeamInvitation.STATUS_CANCELLED)
        self.assertTrue(DomainActivity.objects.filter(verb=ACTIVITY_TEAM_DEACTIVATED).exists())

    def test_member_cannot_deactivate(self):
        with self.assertRaises(PermissionDeniedError):
            team_formation.deactivate_team(self.team, self.member)

    def test_platform_admin_can_deactivate(self):
        admin = User.objects.create_user(username="admin", email="admin@example.com", password="x", role="admin")
        team_formation.deactivate_team(self.team, admin)
        self.team.refresh_from_db()
        self.assertFalse(self.team.is_active)

    def test_twice_is_conflict(self):
        team_formation.deactivate_team(self.team, self.owner)
        with self.assertRaises(ConflictError):
            team_formation.deactivate_team(self.team, self.owner)


class RepairTeamOwnersTests(TestCase):
    def setUp(self):
        self.owner = User.objects.create_user(username="owner", email="owner@example.com", password="x")
        self.event = make_event()

    def _orphan_team(self, max_members=3):
        # Bypasses the formation service: team row without its owner seat
        return Team.objects.create(
            event=self.event,
            owner=self.owner,
            name="Orphan",
            description="d",
            max_members=max_members,
            tags="t",
            looking_for="l",
        )

    def test_creates_missing_owner_seat(self):
        team = self._orphan_team()
        self.assertEqual(team_formation.repair_team_owners(), [team.pk])

        seat = TeamMember.objects.get(team=team, user=self.owner)
        self.assertEqual(seat.role, TeamMember.ROLE_OWNER)
        self.assertTrue(seat.is_active)

        # Idempotent
        self.assertEqual(team_formation.repair_team_owners(), [])

    def test_reactivates_inactive_owner_seat(self):
        team = self._orphan_team()
        TeamMember.objects.create(team=team, user=self.owner, role=TeamMember.ROLE_MEMBER, is_active=False)

        team_formation.repair_team_owners()

        seat = TeamMember.objects.get(team=team, user=self.owner)
        self.assertEqual(seat.role, TeamMember.ROLE_OWNER)
        self.assertTrue(seat.is_active)
        self.assertEqual(TeamMember.objects.filter(team=team).count(), 1)

    def test_dry_run_writes_nothing(self):
        team = self._orphan_team()
        self.assertEqual(team_formation.repair_team_owners(dry_run=True), [team.pk])
        self.assertFalse(TeamMember.objects.filter(team=team).exists())

    def test_full_team_is_skipped(self):
        team = self._orphan_team(max_members=1)
        other = User.objects.create_user(username="other", email="other@example.com", password="x")
        TeamMember.objects.create(team=team, user=other)

        self.assertEqual(team_formation.repair_team_owners(), [])
        self.assertFalse(TeamMember.objects.filter(team=team, user=self.owner).exists())

    def test_healthy_team_untouched(self):
        team_formation.create_team(team_payload(self.event), owner=self.owner)
        self.assertEqual(team_formation.repair_team_owners(), [])
