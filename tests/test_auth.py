"""Tests for token encryption, credential policies, refresh persistence and JWT identity."""

import asyncio
import os
import sys
import unittest
import uuid
from datetime import timedelta
from pathlib import Path
from types import SimpleNamespace

os.environ["DATABASE_URL"] = "sqlite:///:memory:"
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from cryptography.fernet import Fernet

from draftsync.auth import JwtIdentityVerifier, TokenCipher
from draftsync.auth.encryption import TokenEncryptionError
from draftsync.auth.token_validator import TokenValidator
from draftsync.db import get_session, init_db
from draftsync.db.models import User
from draftsync.db.repositories import user_repo
from draftsync.errors import AuthenticationError
from draftsync.mail_provider import MockMailboxProvider
from draftsync.models import CredentialPolicy, Credentials


def _user():
    uid = f"auth-{uuid.uuid4().hex[:8]}"
    return user_repo.get_or_create(uid, f"{uid}@example.com")


class TestTokenCipher(unittest.TestCase):
    def test_round_trip_and_ciphertext_differs(self):
        cipher = TokenCipher(key=Fernet.generate_key().decode())
        stored = cipher.encrypt("ya29.secret")
        self.assertNotEqual(stored, "ya29.secret")
        self.assertEqual(cipher.decrypt(stored), "ya29.secret")

    def test_legacy_plaintext_passes_through(self):
        cipher = TokenCipher(key=Fernet.generate_key().decode())
        self.assertEqual(cipher.decrypt("plain-old-token"), "plain-old-token")

    def test_no_key_outside_production_stores_plaintext(self):
        cipher = TokenCipher(key="", allow_plaintext=True)
        self.assertFalse(cipher.enabled)
        self.assertEqual(cipher.encrypt("tok"), "tok")
        self.assertEqual(cipher.decrypt("tok"), "tok")

    def test_no_key_in_production_refuses(self):
        cipher = TokenCipher(key="", allow_plaintext=False)
        with self.assertRaises(TokenEncryptionError):
            cipher.encrypt("tok")

    def test_none_is_preserved(self):
        cipher = TokenCipher(key=Fernet.generate_key().decode())
        self.assertIsNone(cipher.encrypt(None))
        self.assertIsNone(cipher.decrypt(None))


class TestUserTokens(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        init_db()

    def test_tokens_encrypted_at_rest(self):
        user = _user()
        cipher = TokenCipher(key=Fernet.generate_key().decode())
        user_repo.store_tokens(user.id, Credentials(access_token="acc", refresh_token="ref"), cipher=cipher)
        with get_session() as session:
            row = session.get(User, user.id)
            self.assertNotEqual(row.access_token, "acc")
        creds = user_repo.get_tokens(user.id, cipher=cipher)
        self.assertEqual(creds, Credentials(access_token="acc", refresh_token="ref"))

    def test_partial_store_keeps_existing_refresh_token(self):
        user = _user()
        user_repo.store_tokens(user.id, Credentials(access_token="a1", refresh_token="r1"))
        user_repo.store_tokens(user.id, Credentials(access_token="a2"))
        self.assertEqual(user_repo.get_tokens(user.id), Credentials(access_token="a2", refresh_token="r1"))


class TestTokenValidator(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        init_db()

    def test_policies(self):
        user = _user()
        validator = TokenValidator(MockMailboxProvider())

        async def run():
            self.assertIsNone(await validator.get_credentials(user.id, CredentialPolicy.ANY))
            user_repo.store_tokens(user.id, Credentials(refresh_token="r"))
            self.assertIsNone(await validator.get_credentials(user.id, CredentialPolicy.ACCESS))
            any_creds = await validator.get_credentials(user.id, CredentialPolicy.ANY)
            self.assertEqual(any_creds.refresh_token, "r")
            user_repo.store_tokens(user.id, Credentials(access_token="a"))
            access_creds = await validator.get_credentials(user.id, CredentialPolicy.ACCESS)
            self.assertEqual(access_creds.access_token, "a")

        asyncio.run(run())

    def test_rotated_token_is_persisted_and_refresh_token_kept(self):
        user = _user()
        stored = Credentials(access_token="old", refresh_token="keep-me")
        user_repo.store_tokens(user.id, stored)
        mailbox = MockMailboxProvider(rotated_token="new")
        validator = TokenValidator(mailbox)

        async def run():
            return await validator.ensure_valid_credentials(user.id, stored)

        merged = asyncio.run(run())
        self.assertEqual(merged, Credentials(access_token="new", refresh_token="keep-me"))
        self.assertEqual(user_repo.get_tokens(user.id), merged)

    def test_valid_without_rotation_returns_stored(self):
        user = _user()
        stored = Credentials(access_token="same", refresh_token="r")
        validator = TokenValidator(MockMailboxProvider())
        self.assertEqual(asyncio.run(validator.ensure_valid_credentials(user.id, stored)), stored)

    def test_uses_injected_user_store(self):
        stored = {"u-1": Credentials(access_token="old", refresh_token="r")}
        users = SimpleNamespace(
            get_tokens=lambda user_id: stored.get(user_id),
            store_tokens=lambda user_id, creds: stored.__setitem__(user_id, creds),
        )
        validator = TokenValidator(MockMailboxProvider(rotated_token="new"), users)

        async def run():
            creds = await validator.get_credentials("u-1", CredentialPolicy.ACCESS)
            return await validator.ensure_valid_credentials("u-1", creds)

        merged = asyncio.run(run())
        self.assertEqual(merged.access_token, "new")
        self.assertEqual(stored["u-1"], Credentials(access_token="new", refresh_token="r"))

    def test_rejected_credentials_return_none(self):
        user = _user()
        validator = TokenValidator(MockMailboxProvider(reject_credentials=True))
        result = asyncio.run(validator.ensure_valid_credentials(user.id, Credentials(access_token="x")))
        self.assertIsNone(result)


class TestJwtIdentity(unittest.TestCase):
    def test_issue_and_verify(self):
        verifier = JwtIdentityVerifier(secret="s3cret")
        token = verifier.issue("uid-123", email="a@b.c")
        self.assertEqual(verifier.verify(token), "uid-123")

    def test_wrong_secret(self):
        token = JwtIdentityVerifier(secret="one").issue("uid")
        with self.assertRaises(AuthenticationError):
            JwtIdentityVerifier(secret="two").verify(token)

    def test_expired(self):
        verifier = JwtIdentityVerifier(secret="s3cret")
        token = verifier.issue("uid", ttl=timedelta(seconds=-10))
        with self.assertRaises(AuthenticationError):
            verifier.verify(token)

    def test_missing_secret(self):
        with self.assertRaises(AuthenticationError):
            JwtIdentityVerifier(secret="").verify("whatever")


if __name__ == "__main__":
    unittest.main()
