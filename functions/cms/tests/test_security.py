import unittest

from cms.errors import Unauthorized
from cms.security import PasswordHasher, SessionTokenCodec


class PasswordHasherTests(unittest.TestCase):
    def setUp(self):
        self.hasher = PasswordHasher(rounds=4)

    def test_hash_and_verify(self):
        hashed = self.hasher.hash("s3cret")
        self.assertNotEqual(hashed, "s3cret")
        self.assertTrue(self.hasher.verify("s3cret", hashed))
        self.assertFalse(self.hasher.verify("other", hashed))

    def test_hashes_are_salted(self):
        self.assertNotEqual(self.hasher.hash("same"), self.hasher.hash("same"))

    def test_verify_fails_closed(self):
        self.assertFalse(self.hasher.verify("s3cret", None))
        self.assertFalse(self.hasher.verify("", self.hasher.hash("x")))
        self.assertFalse(self.hasher.verify("s3cret", "not-a-bcrypt-hash"))


class SessionTokenCodecTests(unittest.TestCase):
    def test_issue_and_decode(self):
        codec = SessionTokenCodec(secret="test-secret", ttl_minutes=5)
        session = codec.issue("admin")
        self.assertEqual(codec.decode(session.token), "admin")
        self.assertIsNotNone(session.expires_at.tzinfo)

    def test_expired_token_is_rejected(self):
        codec = SessionTokenCodec(secret="test-secret", ttl_minutes=-1)
        token = codec.issue("admin").token
        with self.assertRaises(Unauthorized):
            codec.decode(token)

    def test_token_signed_with_other_secret_is_rejected(self):
        token = SessionTokenCodec(secret="one").issue("admin").token
        with self.assertRaises(Unauthorized):
            SessionTokenCodec(secret="two").decode(token)

    def test_garbage_token_is_rejected(self):
        with self.assertRaises(Unauthorized):
            SessionTokenCodec(secret="test-secret").decode("garbage")


if __name__ == "__main__":
    unittest.main()
