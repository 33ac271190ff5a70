import threading
import unittest
from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

from cms.db import InMemoryDbClient
from cms.errors import ConflictError, NotFound, Unauthorized, ValidationError
from cms.security import PasswordHasher
from cms.services import AuthService, ConfigService, ContentService, PostFields
from shared.site_config import DEFAULT_SITE_CONFIG, SITE_CONFIG_SECTIONS
from shared.types import PostStatus

DEFAULT_PASSWORD = "UniUnity2025!"


class ContentServiceTests(unittest.TestCase):
    def setUp(self):
        self.db = InMemoryDbClient()
        self.content = ContentService(self.db)

    def test_create_then_list_contains_new_post(self):
        started = datetime.now(timezone.utc)
        post = self.content.create_post(PostFields(title="Title", content="Body"))
        finished = datetime.now(timezone.utc)

        posts = self.content.list_posts()
        self.assertEqual(len(posts), 1)
        self.assertEqual(posts[0].id, post.id)
        self.assertEqual(posts[0].title, "Title")
        self.assertEqual(posts[0].content, "Body")
        self.assertEqual(posts[0].status, PostStatus.PUBLISHED)
        self.assertTrue(started <= posts[0].created_at <= finished)

    def test_create_accepts_draft_status(self):
        post = self.content.create_post(
            PostFields(title="T", content="C", status=PostStatus.DRAFT)
        )
        self.assertEqual(post.status, PostStatus.DRAFT)

    def test_create_requires_title_and_content(self):
        for fields in (
            PostFields(title="", content="Body"),
            PostFields(title="Title", content="   "),
            PostFields(content="Body"),
        ):
            with self.assertRaises(ValidationError):
                self.content.create_post(fields)
        self.assertEqual(self.content.list_posts(), [])

    def test_update_unknown_post_never_creates(self):
        with self.assertRaises(NotFound):
            self.content.update_post("missing", PostFields(title="T", content="C"))
        self.assertEqual(self.content.list_posts(), [])

    def test_update_overwrites_only_supplied_fields(self):
        post = self.content.create_post(
            PostFields(title="T", content="C", seo_title="S")
        )
        updated = self.content.update_post(post.id, PostFields(content="New"))
        self.assertEqual(updated.title, "T")
        self.assertEqual(updated.content, "New")
        self.assertEqual(updated.seo_title, "S")
        self.assertEqual(updated.created_at, post.created_at)

    def test_update_rejects_emptied_title(self):
        post = self.content.create_post(PostFields(title="T", content="C"))
        with self.assertRaises(ValidationError):
            self.content.update_post(post.id, PostFields(title=" "))
        self.assertEqual(self.content.get_post(post.id).title, "T")

    def test_delete_twice(self):
        post = self.content.create_post(PostFields(title="T", content="C"))
        self.content.delete_post(post.id)
        with self.assertRaises(NotFound):
            self.content.delete_post(post.id)

    def test_list_is_ordered_by_creation(self):
        first = self.content.create_post(PostFields(title="1", content="C"))
        second = self.content.create_post(PostFields(title="2", content="C"))
        self.assertEqual(
            [post.id for post in self.content.list_posts()], [first.id, second.id]
        )


class AuthServiceTests(unittest.TestCase):
    def setUp(self):
        self.db = InMemoryDbClient()
        self.hasher = PasswordHasher(rounds=4)
        self.auth = AuthService(self.db, self.hasher)
        self.auth.seed_admin("admin", DEFAULT_PASSWORD)

    def test_seeded_admin_authenticates(self):
        self.assertTrue(self.auth.authenticate("admin", DEFAULT_PASSWORD))
        self.assertFalse(self.auth.authenticate("admin", "wrong"))
        self.assertFalse(self.auth.authenticate("someone", DEFAULT_PASSWORD))

    def test_password_is_stored_hashed(self):
        stored = self.db.get_admin("admin").password_hash
        self.assertNotEqual(stored, DEFAULT_PASSWORD)
        self.assertTrue(stored.startswith("$2"))

    def test_missing_fields_fail_without_lookup(self):
        db = MagicMock()
        auth = AuthService(db, self.hasher)
        self.assertFalse(auth.authenticate("admin", ""))
        self.assertFalse(auth.authenticate(None, "pw"))
        db.get_admin.assert_not_called()

    def test_seed_is_idempotent(self):
        original = self.db.get_admin("admin").password_hash
        self.assertFalse(self.auth.seed_admin("admin", "different"))
        self.assertEqual(self.db.get_admin("admin").password_hash, original)
        self.assertEqual(len(self.db.admins), 1)


class ConfigServiceTests(unittest.TestCase):
    def setUp(self):
        self.db = InMemoryDbClient()
        self.hasher = PasswordHasher(rounds=4)
        self.auth = AuthService(self.db, self.hasher)
        self.auth.seed_admin("admin", DEFAULT_PASSWORD)
        self.config = ConfigService(self.db, self.hasher)

    def test_get_on_empty_store_returns_default(self):
        config = self.config.get_config()
        for key in SITE_CONFIG_SECTIONS:
            self.assertIn(key, config)
        self.assertEqual(config["title"], "UniUnity.space")
        self.assertEqual(
            config["banner"]["heading"], "Future-Proof Your Growth with AI-Driven Tech"
        )
        self.assertEqual(config, DEFAULT_SITE_CONFIG)

    def test_partial_update_merges(self):
        self.config.update_config(
            {"favicon": "/icon.png", "seo": {"title": "S", "description": "D"}}
        )
        self.config.update_config({"title": "X"})
        config = self.config.get_config()
        self.assertEqual(config["title"], "X")
        self.assertEqual(config["favicon"], "/icon.png")
        self.assertEqual(config["seo"], {"title": "S", "description": "D"})
        self.assertEqual(config["banner"], DEFAULT_SITE_CONFIG["banner"])

    def test_nested_section_is_replaced_wholesale(self):
        self.config.update_config({"banner": {"heading": "Only heading"}})
        self.assertEqual(self.config.get_config()["banner"], {"heading": "Only heading"})

    def test_rotation_changes_which_password_works(self):
        self.assertTrue(self.auth.authenticate("admin", DEFAULT_PASSWORD))
        self.config.update_config({}, admin_password="Rotated1")
        self.assertFalse(self.auth.authenticate("admin", DEFAULT_PASSWORD))
        self.assertTrue(self.auth.authenticate("admin", "Rotated1"))

    def test_rotation_without_current_password_after_first_set(self):
        self.config.update_config({}, admin_password="Rotated1")
        with self.assertRaises(Unauthorized):
            self.config.update_config({}, admin_password="Rotated2")
        with self.assertRaises(Unauthorized):
            self.config.update_config(
                {}, admin_password="Rotated2", current_password="bad"
            )
        self.assertTrue(self.auth.authenticate("admin", "Rotated1"))

        self.config.update_config(
            {}, admin_password="Rotated2", current_password="Rotated1"
        )
        self.assertTrue(self.auth.authenticate("admin", "Rotated2"))

    def test_first_time_set_verifies_supplied_current_password(self):
        with self.assertRaises(Unauthorized):
            self.config.update_config(
                {}, admin_password="Rotated1", current_password="bad"
            )
        self.assertIsNone(self.db.get_site_config())

    def test_update_without_password_keeps_hash(self):
        before = self.db.get_admin("admin").password_hash
        self.config.update_config({"title": "No password change"})
        self.assertEqual(self.db.get_admin("admin").password_hash, before)

    def test_username_change_moves_credential(self):
        self.config.update_config({"admin_username": "editor"})
        self.assertIsNone(self.db.get_admin("admin"))
        self.assertTrue(self.auth.authenticate("editor", DEFAULT_PASSWORD))
        self.assertEqual(self.config.get_config()["admin_username"], "editor")

    def test_username_change_without_any_credential(self):
        self.db.admins.clear()
        with self.assertRaises(ValidationError):
            self.config.update_config({"admin_username": "editor"})

    def test_stale_version_is_rejected(self):
        self.config.update_config({"title": "A"})
        with self.assertRaises(ConflictError):
            self.db.save_site_config({"title": "B"}, expected_version=0)
        self.assertEqual(self.config.get_config()["title"], "A")

    def test_concurrent_rotations_leave_one_working_password(self):
        barrier = threading.Barrier(2, timeout=10)
        real_verify = self.hasher.verify

        def verify_after_both_read(password, password_hash):
            result = real_verify(password, password_hash)
            barrier.wait()
            return result

        outcomes = {}

        def rotate(new_password):
            try:
                self.config.update_config(
                    {}, admin_password=new_password, current_password=DEFAULT_PASSWORD
                )
                outcomes[new_password] = "ok"
            except ConflictError:
                outcomes[new_password] = "conflict"

        with patch.object(self.hasher, "verify", side_effect=verify_after_both_read):
            threads = [
                threading.Thread(target=rotate, args=(password,))
                for password in ("Alpha-1", "Bravo-2")
            ]
            for thread in threads:
                thread.start()
            for thread in threads:
                thread.join()

        self.assertEqual(sorted(outcomes.values()), ["conflict", "ok"])
        winner = next(p for p, outcome in outcomes.items() if outcome == "ok")
        loser = next(p for p, outcome in outcomes.items() if outcome == "conflict")
        self.assertTrue(self.auth.authenticate("admin", winner))
        self.assertFalse(self.auth.authenticate("admin", loser))
        self.assertFalse(self.auth.authenticate("admin", DEFAULT_PASSWORD))


if __name__ == "__main__":
    unittest.main()
