from django.contrib.auth import get_user_model
from django.test import TestCase

from core.constants import ACTIVITY_MATCH_CREATED
from core.exceptions import ConflictError, NotFoundError, PermissionDeniedError, ValidationError
from core.models import DomainActivity
from matching import engine
from matching.models import Match, Swipe

User = get_user_model()


class RecordSwipeTests(TestCase):
    def setUp(self):
        self.ann = User.objects.create_user(username="ann", email="ann@example.com", password="x", name="Ann")
        self.bob = User.objects.create_user(username="bob", email="bob@example.com", password="x", name="Bob")
        self.cid = User.objects.create_user(username="cid", email="cid@example.com", password="x", name="Cid")

    def test_one_sided_like_is_not_a_match(self):
        result = engine.record_swipe(self.ann, self.bob.pk, "like")
        self.assertFalse(result.matched)
        self.assertIsNone(result.match)
        self.assertEqual(result.swipe.decision, Swipe.DECISION_LIKE)
        self.assertFalse(Match.objects.exists())

    def test_mutual_like_creates_one_normalized_match(self):
        engine.record_swipe(self.bob, self.ann.pk, "like")
        result = engine.record_swipe(self.ann, self.bob.pk, "like")

        self.assertTrue(result.matched)
        self.assertTrue(result.created)
        match = Match.objects.get()
        self.assertLess(match.user_a_id, match.user_b_id)
        self.assertEqual({match.user_a_id, match.user_b_id}, {self.ann.pk, self.bob.pk})
        self.assertEqual(DomainActivity.objects.filter(verb=ACTIVITY_MATCH_CREATED).count(), 1)
        self.assertEqual(
            DomainActivity.objects.get(verb=ACTIVITY_MATCH_CREATED).visibility,
            DomainActivity.VISIBILITY_PRIVATE,
        )

    def test_order_independent(self):
        engine.record_swipe(self.ann, self.bob.pk, "like")
        engine.record_swipe(self.bob, self.ann.pk, "like")
        first = Match.objects.get()

        Match.objects.all().delete()
        Swipe.objects.all().delete()

        engine.record_swipe(self.bob, self.ann.pk, "like")
        engine.record_swipe(self.ann, self.bob.pk, "like")
        second = Match.objects.get()
        self.assertEqual((first.user_a_id, first.user_b_id), (second.user_a_id, second.user_b_id))

    def test_replayed_like_is_idempotent(self):
        engine.record_swipe(self.ann, self.bob.pk, "like")
        engine.record_swipe(self.bob, self.ann.pk, "like")
        result = engine.record_swipe(self.bob, self.ann.pk, "like")

        self.assertTrue(result.matched)
        self.assertFalse(result.created)
        self.assertEqual(Match.objects.count(), 1)
        self.assertEqual(Swipe.objects.count(), 2)

    def test_pass_never_matches_and_updates_decision(self):
        engine.record_swipe(self.ann, self.bob.pk, "like")
        result = engine.record_swipe(self.bob, self.ann.pk, "pass")
        self.assertFalse(result.matched)

        engine.record_swipe(self.ann, self.bob.pk, "pass")
        self.assertEqual(Swipe.objects.get(swiper=self.ann).decision, Swipe.DECISION_PASS)
        self.assertEqual(Swipe.objects.filter(swiper=self.ann, swipee=self.bob).count(), 1)
        self.assertFalse(Match.objects.exists())

    def test_decision_is_normalized(self):
        result = engine.record_swipe(self.ann, self.bob.pk, " LIKE ")
        self.assertEqual(result.swipe.decision, Swipe.DECISION_LIKE)

    def test_invalid_input(self):
        with self.assertRaises(ValidationError):
            engine.record_swipe(self.ann, self.bob.pk, "superlike")
        with self.assertRaises(ValidationError):
            engine.record_swipe(self.ann, None, "like")
        with self.assertRaises(ValidationError):
            engine.record_swipe(self.ann, self.ann.pk, "like")
        with self.assertRaises(NotFoundError):
            engine.record_swipe(self.ann, 999999, "like")

    def test_deleted_target_is_not_found(self):
        self.bob.is_deleted = True
        self.bob.save()
        with self.assertRaises(NotFoundError):
            engine.record_swipe(self.ann, self.bob.pk, "like")


class MatchLifecycleTests(TestCase):
    def setUp(self):
        self.ann = User.objects.create_user(username="ann", email="ann@example.com", password="x", name="Ann")
        self.bob = User.objects.create_user(username="bob", email="bob@example.com", password="x", name="Bob")
        self.cid = User.objects.create_user(username="cid", email="cid@example.com", password="x", name="Cid")
        engine.record_swipe(self.ann, self.bob.pk, "like")
        self.match = engine.record_swipe(self.bob, self.ann.pk, "like").match

    def test_list_matches_shows_other_user(self):
        for user, other in ((self.ann, self.bob), (self.bob, self.ann)):
            matches = engine.list_matches(user)
            self.assertEqual(len(matches), 1)
            self.assertEqual(matches[0]["id"], str(self.match.pk))
            self.assertEqual(matches[0]["user"]["id"], str(other.pk))
        self.assertEqual(engine.list_matches(self.cid), [])

    def test_deleted_partner_hidden(self):
        self.bob.is_deleted = True
        self.bob.save()
        self.assertEqual(engine.list_matches(self.ann), [])

    def test_unmatch(self):
        ended = engine.unmatch(self.match.pk, self.ann)
        self.assertFalse(ended.is_active)
        self.assertIsNotNone(ended.ended_at)
        self.assertEqual(engine.list_matches(self.bob), [])

        with self.assertRaises(ConflictError):
            engine.unmatch(self.match.pk, self.bob)

    def test_outsider_cannot_unmatch(self):
        with self.assertRaises(PermissionDeniedError):
            engine.unmatch(self.match.pk, self.cid)
        with self.assertRaises(NotFoundError):
            engine.unmatch(999999, self.ann)

    def test_unmatched_pair_is_not_revived(self):
        engine.unmatch(self.match.pk, self.ann)
        result = engine.record_swipe(self.ann, self.bob.pk, "like")

        self.assertFalse(result.matched)
        self.assertIsNone(result.match)
        self.match.refresh_from_db()
        self.assertFalse(self.match.is_active)
        self.assertEqual(Match.objects.count(), 1)
