"""Unit tests for app.core.security: bcrypt hashing, password policy, token issuance and validation."""

import asyncio
import base64
import json
import unittest
from datetime import UTC, datetime, timedelta

import jwt

from app.core.config import Settings
from app.core.errors import ConfigurationError
from app.core.security import (
    BcryptPasswordHasher,
    SigningConfig,
    TokenClaims,
    TokenIssuer,
    normalize_username,
    password_policy_violations,
)

SECRET = "unit-test-signing-secret-0123456789abcdef"
OTHER_SECRET = "another-signing-secret-fedcba9876543210"


def _issuer(secret: str = SECRET) -> TokenIssuer:
    return TokenIssuer(SigningConfig(secret=secret))


def _claims(role: str = "User") -> TokenClaims:
    return TokenClaims(subject_id="8a1f7c3e-0000-4000-8000-000000000001", username="alice", role=role)


class TestBcryptPasswordHasher(unittest.TestCase):
    """Hashes are salted and verify only the original password."""

    def setUp(self) -> None:
        self.hasher = BcryptPasswordHasher(rounds=4)

    def test_verify_correct_password(self) -> None:
        hashed = self.hasher.hash_sync("Secret123")
        self.assertTrue(self.hasher.verify_sync(hashed, "Secret123"))

    def test_verify_wrong_password(self) -> None:
        hashed = self.hasher.hash_sync("Secret123")
        self.assertFalse(self.hasher.verify_sync(hashed, "secret123"))
        self.assertFalse(self.hasher.verify_sync(hashed, ""))

    def test_hash_is_salted(self) -> None:
        self.assertNotEqual(self.hasher.hash_sync("Secret123"), self.hasher.hash_sync("Secret123"))

    def test_hash_does_not_contain_plaintext(self) -> None:
        self.assertNotIn("Secret123", self.hasher.hash_sync("Secret123"))

    def test_dummy_hash_uses_configured_cost(self) -> None:
        self.assertTrue(self.hasher.dummy_hash.startswith("$2b$04$"))
        self.assertFalse(self.hasher.verify_sync(self.hasher.dummy_hash, ""))
        self.assertFalse(self.hasher.verify_sync(self.hasher.dummy_hash, "Secret123"))

    def test_malformed_hash_is_a_mismatch(self) -> None:
        self.assertFalse(self.hasher.verify_sync("not-a-bcrypt-hash", "Secret123"))

    def test_async_roundtrip(self) -> None:
        async def run() -> tuple[bool, bool]:
            hashed = await self.hasher.hash("Secret123")
            return (
                await self.hasher.verify(hashed, "Secret123"),
                await self.hasher.verify(hashed, "wrong"),
            )

        ok, bad = asyncio.run(run())
        self.assertTrue(ok)
        self.assertFalse(bad)


class TestPasswordPolicy(unittest.TestCase):
    def test_strong_password_passes(self) -> None:
        self.assertEqual(password_policy_violations("Secret123"), [])

    def test_each_rule_reported(self) -> None:
        codes = {code for code, _ in password_policy_violations("abc")}
        self.assertEqual(
            codes,
            {"PasswordTooShort", "PasswordRequiresDigit", "PasswordRequiresUpper"},
        )

    def test_descriptions_never_echo_password(self) -> None:
        for _, desc in password_policy_violations("weakpass"):
            self.assertNotIn("weakpass", desc)


class TestNormalizeUsername(unittest.TestCase):
    def test_case_and_whitespace_insensitive(self) -> None:
        for variant in ("alice", "ALICE", "  Alice", "aLiCe  \t"):
            self.assertEqual(normalize_username(variant), "alice")


class TestTokenIssuer(unittest.TestCase):
    """Tokens carry id/username/role, expire after the ttl and fail closed."""

    def test_roundtrip_recovers_claims(self) -> None:
        issuer = _issuer()
        decoded = issuer.decode(issuer.issue(_claims("Admin")))
        self.assertEqual(decoded.claims, _claims("Admin"))

    def test_expiry_is_two_hours_by_default(self) -> None:
        issuer = _issuer()
        before = datetime.now(UTC).replace(microsecond=0)
        decoded = issuer.decode(issuer.issue(_claims()))
        self.assertEqual(decoded.expires_at - decoded.issued_at, timedelta(hours=2))
        self.assertLessEqual(abs((decoded.issued_at - before).total_seconds()), 5)

    def test_payload_uses_expected_claim_names(self) -> None:
        token = _issuer().issue(_claims())
        payload = jwt.decode(token, SECRET, algorithms=["HS256"])
        self.assertEqual(payload["id"], _claims().subject_id)
        self.assertEqual(payload["username"], "alice")
        self.assertEqual(payload["role"], "User")
        self.assertIn("exp", payload)
        self.assertEqual(jwt.get_unverified_header(token)["alg"], "HS256")

    def test_different_secret_fails(self) -> None:
        token = _issuer().issue(_claims())
        with self.assertRaises(jwt.PyJWTError):
            _issuer(OTHER_SECRET).decode(token)

    def test_expired_token_fails(self) -> None:
        issuer = _issuer()
        token = issuer.issue(_claims(), now=datetime.now(UTC) - timedelta(hours=3))
        with self.assertRaises(jwt.ExpiredSignatureError):
            issuer.decode(token)

    def test_tampered_payload_fails(self) -> None:
        issuer = _issuer()
        header, payload, signature = issuer.issue(_claims()).split(".")
        data = json.loads(base64.urlsafe_b64decode(payload + "=" * (-len(payload) % 4)))
        data["role"] = "Admin"
        forged = base64.urlsafe_b64encode(json.dumps(data).encode()).rstrip(b"=").decode()
        with self.assertRaises(jwt.PyJWTError):
            issuer.decode(f"{header}.{forged}.{signature}")

    def test_empty_role_claim(self) -> None:
        issuer = _issuer()
        self.assertEqual(issuer.decode(issuer.issue(_claims(role=""))).claims.role, "")


class TestSigningConfig(unittest.TestCase):
    """A missing secret is a configuration error, raised before any request is served."""

    def test_missing_secret_raises(self) -> None:
        with self.assertRaises(ConfigurationError):
            SigningConfig.from_settings(Settings(JWT_SECRET=None))

    def test_blank_secret_raises(self) -> None:
        with self.assertRaises(ConfigurationError):
            SigningConfig.from_settings(Settings(JWT_SECRET="   "))

    def test_issuer_rejects_empty_secret(self) -> None:
        with self.assertRaises(ConfigurationError):
            TokenIssuer(SigningConfig(secret=""))

    def test_from_settings(self) -> None:
        config = SigningConfig.from_settings(Settings(JWT_SECRET=SECRET))
        self.assertEqual(config.secret, SECRET)
        self.assertEqual(config.algorithm, "HS256")

    def test_repr_hides_secret(self) -> None:
        self.assertNotIn(SECRET, repr(SigningConfig(secret=SECRET)))

    def test_unsupported_algorithm_rejected(self) -> None:
        with self.assertRaises(ValueError):
            Settings(JWT_SECRET=SECRET, JWT_ALGORITHM="none")
