import unittest
from unittest.mock import patch

from fanslink.db import InMemoryDbClient
from fanslink.errors import BackendError, UsernameTakenError
from fanslink.profiles import LookupStatus, ProfileService, has_active_subscription
from fanslink.types import Subscription


class SubscriptionDerivationTests(unittest.TestCase):
    def _derive(self, records):
        return has_active_subscription(Subscription.from_document(r) for r in records)

    def test_active(self):
        self.assertTrue(self._derive([{"status": "active"}]))

    def test_trialing(self):
        self.assertTrue(self._derive([{"status": "trialing"}]))

    def test_canceled_without_period_end(self):
        self.assertFalse(
            self._derive([{"status": "canceled", "cancel_at_period_end": False}])
        )

    def test_canceled_at_period_end(self):
        self.assertTrue(
            self._derive([{"status": "canceled", "cancel_at_period_end": True}])
        )

    def test_no_subscriptions(self):
        self.assertFalse(self._derive([]))

    def test_any_matching_record_wins(self):
        self.assertTrue(
            self._derive(
                [
                    {"status": "canceled", "cancel_at_period_end": False},
                    {"status": "active"},
                ]
            )
        )


class ProfileServiceTests(unittest.TestCase):
    def setUp(self):
        self.db = InMemoryDbClient()
        self.db.set_user(
            "uid-alice",
            {
                "username": "alice",
                "photoUrl": "https://cdn.test/alice.png",
                "background": "#000",
                "color": "#fff",
                "links": [
                    {"id": 1, "title": "Shown", "link": "https://a.test", "active": True},
                    {"id": 2, "title": "Hidden", "link": "https://b.test", "active": False},
                ],
            },
        )
        self.service = ProfileService(self.db)

    def test_resolve_found(self):
        lookup = self.service.resolve_public_profile("alice")
        self.assertEqual(lookup.status, LookupStatus.FOUND)
        self.assertEqual(lookup.profile.username, "alice")
        self.assertEqual(lookup.profile.photo_url, "https://cdn.test/alice.png")
        self.assertEqual([link.title for link in lookup.profile.links], ["Shown"])

    def test_resolve_not_found(self):
        for username in ("bob", "Alice", "", "alice "):
            with self.subTest(username=username):
                lookup = self.service.resolve_public_profile(username)
                self.assertEqual(lookup.status, LookupStatus.NOT_FOUND)
                self.assertIsNone(lookup.profile)

    def test_resolve_backend_error_is_distinct(self):
        with patch.object(
            self.db, "find_users_by_username", side_effect=BackendError("down")
        ), self.assertLogs("fanslink.profiles", level="ERROR"):
            lookup = self.service.resolve_public_profile("alice")
        self.assertEqual(lookup.status, LookupStatus.BACKEND_ERROR)
        self.assertFalse(lookup.found)

    def test_legacy_profile_picture_field(self):
        self.db.set_user("uid-old", {"username": "old", "profilePicture": "https://x/p.png"})
        lookup = self.service.resolve_public_profile("old")
        self.assertEqual(lookup.profile.photo_url, "https://x/p.png")

    def test_username_taken_is_case_sensitive(self):
        self.assertTrue(self.service.is_username_taken("alice"))
        self.assertFalse(self.service.is_username_taken("Alice"))

    def test_has_username(self):
        self.db.set_user("uid-blank", {"username": "   "})
        self.assertTrue(self.service.has_username("uid-alice"))
        self.assertFalse(self.service.has_username("uid-blank"))
        self.assertFalse(self.service.has_username("missing"))

    def test_claim_username(self):
        self.service.claim_username("uid-bob", "bob")
        self.assertEqual(self.db.get_user("uid-bob")["username"], "bob")
        # Claiming your own name again is allowed.
        self.service.claim_username("uid-bob", "bob")

    def test_claim_taken_username(self):
        with self.assertRaises(UsernameTakenError):
            self.service.claim_username("uid-bob", "alice")
        self.assertIsNone(self.db.get_user("uid-bob"))

    def test_update_profile(self):
        user = self.service.update_profile("uid-alice", {"background": "#123"})
        self.assertEqual(user["background"], "#123")
        self.assertEqual(user["username"], "alice")

    def test_update_profile_rejects_other_fields(self):
        with self.assertRaises(ValueError):
            self.service.update_profile("uid-alice", {"links": []})

    def test_check_subscription_status(self):
        self.assertFalse(self.service.check_subscription_status("uid-alice"))
        self.db.add_subscription("uid-alice", {"status": "past_due"})
        self.assertFalse(self.service.check_subscription_status("uid-alice"))
        self.db.add_subscription(
            "uid-alice", {"status": "canceled", "cancel_at_period_end": True}
        )
        self.assertTrue(self.service.check_subscription_status("uid-alice"))

    def test_list_templates(self):
        self.db.save_template("minimal", {"name": "Minimal"})
        self.assertEqual(
            self.service.list_templates(), [{"id": "minimal", "name": "Minimal"}]
        )


if __name__ == "__main__":
    unittest.main()
