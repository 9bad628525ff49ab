from django.contrib.auth import get_user_model

from rest_framework import status
from rest_framework.test import APIClient, APITestCase

from users.models import Profile
from users.services import search_users

User = get_user_model()


class UserSearchTests(APITestCase):
    def setUp(self):
        self.client = APIClient()
        self.me = User.objects.create_user(username="me", email="me@example.com", password="x", name="Sam Me")
        self.sam = User.objects.create_user(username="sam", email="sam@example.com", password="x", name="Sam Stone")
        self.ann = User.objects.create_user(username="ann", email="ann@samples.io", password="x", name="Ann")
        self.gone = User.objects.create_user(username="gone", email="gone@example.com", password="x", name="Sam Gone")
        self.gone.is_deleted = True
        self.gone.save()
        self.legacy = User.objects.create_user(
            username="legacy", email="legacy@example.com", password="x",
            name="[DELETED] 2024-01-01T00:00:00Z Sam Old",
        )
        Profile.objects.create(user=self.sam, display_name="Sammy", role="Backend Developer")

    def test_matches_name_and_email_case_insensitive(self):
        results = search_users("SAM", current_user=self.me)
        self.assertEqual([r["id"] for r in results], [str(self.ann.pk), str(self.sam.pk)])

    def test_excludes_caller_and_deleted(self):
        ids = {r["id"] for r in search_users("sam", current_user=self.me)}
        self.assertNotIn(str(self.me.pk), ids)
        self.assertNotIn(str(self.gone.pk), ids)
        self.assertNotIn(str(self.legacy.pk), ids)

    def test_profile_is_optional(self):
        results = {r["id"]: r for r in search_users("sam", current_user=self.me)}
        self.assertEqual(results[str(self.sam.pk)]["profile"]["display_name"], "Sammy")
        self.assertIsNone(results[str(self.ann.pk)]["profile"])

    def test_limit_is_clamped(self):
        self.assertEqual(len(search_users("", current_user=self.me, limit=1)), 1)
        self.assertEqual(len(search_users("", current_user=self.me, limit=0)), 1)
        self.assertEqual(len(search_users("", current_user=self.me, limit="junk")), 2)

    def test_search_endpoint(self):
        self.client.force_authenticate(user=self.me)
        resp = self.client.get("/api/users/search/", {"q": "stone"})
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["count"], 1)
        self.assertEqual(resp.data["users"][0]["email"], "sam@example.com")

    def test_me_endpoint(self):
        self.client.force_authenticate(user=self.sam)
        resp = self.client.get("/api/users/me/")
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["id"], str(self.sam.pk))
        self.assertEqual(resp.data["profile"]["role"], "Backend Developer")
