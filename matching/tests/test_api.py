from django.contrib.auth import get_user_model

from rest_framework import status
from rest_framework.test import APIClient, APITestCase

from matching.models import Match

User = get_user_model()


class MatchingApiTests(APITestCase):
    def setUp(self):
        self.client = APIClient()
        self.ann = User.objects.create_user(username="ann", email="ann@example.com", password="pass1234", name="Ann")
        self.bob = User.objects.create_user(username="bob", email="bob@example.com", password="pass1234", name="Bob")

        # Base path (from config: path("api/matching/", include("matching.urls")))
        self.base_api = "/api/matching/"

    def swipe(self, user, target, action):
        self.client.force_authenticate(user=user)
        return self.client.post(
            f"{self.base_api}swipe/",
            {"target_user_id": target.pk, "action": action},
            format="json",
        )

    def test_candidates(self):
        self.client.force_authenticate(user=self.ann)
        resp = self.client.get(f"{self.base_api}candidates/")
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertTrue(resp.data["meta"]["success"])
        self.assertEqual(resp.data["data"]["count"], 1)
        self.assertEqual(resp.data["data"]["candidates"][0]["id"], str(self.bob.pk))

        self.swipe(self.ann, self.bob, "pass")
        resp = self.client.get(f"{self.base_api}candidates/")
        self.assertEqual(resp.data["data"]["candidates"], [])

    def test_swipe_to_match_to_unmatch(self):
        resp = self.swipe(self.ann, self.bob, "like")
        self.assertEqual(resp.status_code, status.HTTP_200_OK, resp.content)
        self.assertFalse(resp.data["match"])
        self.assertIsNone(resp.data["match_id"])

        resp = self.swipe(self.bob, self.ann, "like")
        self.assertTrue(resp.data["match"])
        self.assertTrue(resp.data["new_match"])
        match_id = resp.data["match_id"]
        self.assertEqual(match_id, str(Match.objects.get().pk))

        resp = self.client.get(f"{self.base_api}matches/")
        self.assertEqual(resp.data["data"]["count"], 1)
        self.assertEqual(resp.data["data"]["matches"][0]["user"]["name"], "Ann")

        resp = self.client.post(f"{self.base_api}matches/{match_id}/unmatch/")
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertFalse(resp.data["is_active"])

        resp = self.client.post(f"{self.base_api}matches/{match_id}/unmatch/")
        self.assertEqual(resp.status_code, status.HTTP_409_CONFLICT)

    def test_invalid_swipe_payload(self):
        resp = self.swipe(self.ann, self.bob, "superlike")
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("action", resp.data["errors"])

        resp = self.swipe(self.ann, self.ann, "like")
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(resp.data["errors"]["code"], "validation_error")

    def test_requires_authentication(self):
        resp = self.client.get(f"{self.base_api}candidates/")
        self.assertIn(resp.status_code, (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN))
