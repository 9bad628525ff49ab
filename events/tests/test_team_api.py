from datetime import timedelta

from django.contrib.auth import get_user_model
from django.utils import timezone

from rest_framework import status
from rest_framework.test import APIClient, APITestCase

from events.models import Event, JoinRequest, Team, TeamInvitation, TeamMember


User = get_user_model()


class TeamApiTests(APITestCase):
    def setUp(self):
        self.client = APIClient()

        # ---- Users ----
        self.owner = User.objects.create_user(
            username="owner",
            email="owner@example.com",
            password="pass1234",
            name="Olive Owner",
        )
        self.alice = User.objects.create_user(
            username="alice",
            email="alice@example.com",
            password="pass1234",
            name="Alice",
        )
        self.bob = User.objects.create_user(
            username="bob",
            email="bob@example.com",
            password="pass1234",
            name="Bob",
        )

        # ---- Event ----
        now = timezone.now()
        self.event = Event.objects.create(
            name="Hack Night",
            description="Overnight hackathon",
            start_date=now + timedelta(days=1),
            end_date=now + timedelta(days=2),
        )

        # Base paths (from config: path("api/", include("events.urls")))
        self.teams_url = "/api/teams/"
        self.invitations_url = "/api/invitations/"

    def _create_team(self, max_members=3):
        self.client.force_authenticate(user=self.owner)
        resp = self.client.post(
            self.teams_url,
            {
                "name": "Rocket",
                "description": "We build rockets",
                "event_id": self.event.pk,
                "max_members": max_members,
                "tags": "python",
                "looking_for": "designer",
            },
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED, resp.content)
        return resp.data

    # -------------------------
    # Team lifecycle
    # -------------------------
    def test_create_team(self):
        data = self._create_team()

        self.assertEqual(data["owner_id"], str(self.owner.pk))
        self.assertEqual(data["member_count"], 1)
        self.assertTrue(
            TeamMember.objects.filter(
                team_id=int(data["id"]), user=self.owner, role=TeamMember.ROLE_OWNER,
            ).exists()
        )

    def test_create_team_invalid_payload(self):
        self.client.force_authenticate(user=self.owner)
        resp = self.client.post(
            self.teams_url,
            {"name": "Rocket", "event_id": self.event.pk, "max_members": 50},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST, resp.content)
        self.assertFalse(resp.data["success"])
        self.assertEqual(resp.data["errors"]["code"], "validation_error")
        self.assertFalse(Team.objects.exists())

    def test_requires_authentication(self):
        resp = self.client.get(self.teams_url)
        self.assertIn(resp.status_code, (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN))

    def test_list_and_retrieve(self):
        team = self._create_team()

        self.client.force_authenticate(user=self.alice)
        resp = self.client.get(self.teams_url, {"event": self.event.pk})
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["count"], 1)
        self.assertEqual(resp.data["teams"][0]["member_count"], 1)

        resp = self.client.get(f"{self.teams_url}{team['id']}/")
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["name"], "Rocket")

    def test_list_unknown_event(self):
        self.client.force_authenticate(user=self.alice)
        resp = self.client.get(self.teams_url, {"event": 999999})
        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(resp.data["errors"]["code"], "not_found")

    def test_join_requests_visible_to_owner_only(self):
        team = self._create_team()
        url = f"{self.teams_url}{team['id']}/"

        self.client.force_authenticate(user=self.alice)
        resp = self.client.post(f"{url}join/", {"message": "let me in"}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED, resp.content)

        resp = self.client.get(url)
        self.assertEqual(resp.data["join_requests"], [])

        self.client.force_authenticate(user=self.owner)
        resp = self.client.get(url)
        self.assertEqual(len(resp.data["join_requests"]), 1)
        self.assertEqual(resp.data["join_requests"][0]["message"], "let me in")

    def test_deactivate_team(self):
        team = self._create_team()
        url = f"{self.teams_url}{team['id']}/"

        self.client.force_authenticate(user=self.alice)
        resp = self.client.delete(url)
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(user=self.owner)
        resp = self.client.delete(url)
        self.assertEqual(resp.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Team.objects.get(pk=int(team["id"])).is_active)

        resp = self.client.get(url)
        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)

    # -------------------------
    # Join requests
    # -------------------------
    def test_join_and_approve_flow(self):
        team = self._create_team(max_members=2)
        url = f"{self.teams_url}{team['id']}/"

        self.client.force_authenticate(user=self.alice)
        alice_req = self.client.post(f"{url}join/", {}, format="json").data
        self.client.force_authenticate(user=self.bob)
        bob_req = self.client.post(f"{url}join/", {}, format="json").data

        resp = self.client.post(f"{url}join/", {}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_409_CONFLICT)

        self.client.force_authenticate(user=self.owner)
        resp = self.client.get(f"{url}requests/")
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["count"], 2)

        resp = self.client.post(f"{url}requests/{alice_req['id']}/", {"action": "approve"}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_200_OK, resp.content)
        self.assertEqual(resp.data["status"], "approved")
        self.assertEqual(resp.data["member"]["user_id"], str(self.alice.pk))

        resp = self.client.post(f"{url}requests/{bob_req['id']}/", {"action": "approve"}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(resp.data["errors"]["code"], "capacity_exceeded")
        self.assertEqual(JoinRequest.objects.get(pk=int(bob_req["id"])).status, JoinRequest.STATUS_PENDING)

        resp = self.client.post(f"{url}requests/{bob_req['id']}/", {"action": "reject"}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["request"]["status"], JoinRequest.STATUS_REJECTED)

    def test_non_owner_cannot_review(self):
        team = self._create_team()
        url = f"{self.teams_url}{team['id']}/"

        self.client.force_authenticate(user=self.alice)
        req = self.client.post(f"{url}join/", {}, format="json").data

        self.client.force_authenticate(user=self.bob)
        resp = self.client.post(f"{url}requests/{req['id']}/", {"action": "approve"}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(resp.data["errors"]["code"], "permission_denied")

        resp = self.client.get(f"{url}requests/")
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

    def test_bad_review_action(self):
        team = self._create_team()
        url = f"{self.teams_url}{team['id']}/"
        self.client.force_authenticate(user=self.alice)
        req = self.client.post(f"{url}join/", {}, format="json").data

        self.client.force_authenticate(user=self.owner)
        resp = self.client.post(f"{url}requests/{req['id']}/", {"action": "maybe"}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("action", resp.data["errors"])

    # -------------------------
    # Invitations
    # -------------------------
    def test_invite_and_accept(self):
        team = self._create_team()
        url = f"{self.teams_url}{team['id']}/"

        resp = self.client.post(f"{url}invite/", {"invitee_id": self.alice.pk}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED, resp.content)
        invitation_id = resp.data["id"]

        self.client.force_authenticate(user=self.alice)
        resp = self.client.get(self.invitations_url)
        self.assertEqual(resp.data["count"], 1)
        self.assertEqual(resp.data["invitations"][0]["status"], "pending")

        resp = self.client.post(
            f"{self.invitations_url}{invitation_id}/respond/", {"action": "accept"}, format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_200_OK, resp.content)
        self.assertEqual(resp.data["status"], "accepted")
        self.assertTrue(TeamMember.objects.filter(team_id=int(team["id"]), user=self.alice, is_active=True).exists())

        resp = self.client.get(self.invitations_url)
        self.assertEqual(resp.data["count"], 0)

    def test_expired_invitation_response(self):
        team = self._create_team()
        url = f"{self.teams_url}{team['id']}/"
        invitation_id = self.client.post(f"{url}invite/", {"invitee_id": self.alice.pk}, format="json").data["id"]
        TeamInvitation.objects.filter(pk=int(invitation_id)).update(expires_at=timezone.now() - timedelta(seconds=1))

        self.client.force_authenticate(user=self.alice)
        resp = self.client.post(
            f"{self.invitations_url}{invitation_id}/respond/", {"action": "accept"}, format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(resp.data["errors"]["code"], "invitation_expired")
        self.assertFalse(TeamMember.objects.filter(team_id=int(team["id"]), user=self.alice).exists())

    def test_cancel_invitation(self):
        team = self._create_team()
        url = f"{self.teams_url}{team['id']}/"
        invitation_id = self.client.post(f"{url}invite/", {"invitee_id": self.alice.pk}, format="json").data["id"]

        resp = self.client.post(f"{self.invitations_url}{invitation_id}/cancel/")
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["invitation"]["status"], "cancelled")

    # -------------------------
    # Leaving / removal
    # -------------------------
    def test_leave_and_remove(self):
        team = self._create_team()
        url = f"{self.teams_url}{team['id']}/"
        for user in (self.alice, self.bob):
            TeamMember.objects.create(team_id=int(team["id"]), user=user)

        self.client.force_authenticate(user=self.alice)
        resp = self.client.post(f"{url}leave/")
        self.assertEqual(resp.status_code, status.HTTP_204_NO_CONTENT)

        self.client.force_authenticate(user=self.owner)
        resp = self.client.post(f"{url}leave/")
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

        resp = self.client.delete(f"{url}members/{self.bob.pk}/")
        self.assertEqual(resp.status_code, status.HTTP_204_NO_CONTENT)
        self.assertEqual(TeamMember.objects.filter(team_id=int(team["id"]), is_active=True).count(), 1)

    def test_my_teams(self):
        self._create_team()
        resp = self.client.get(f"{self.teams_url}mine/")
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["count"], 1)

        self.client.force_authenticate(user=self.alice)
        resp = self.client.get(f"{self.teams_url}mine/")
        self.assertEqual(resp.data["count"], 0)
