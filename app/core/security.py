"""Password hashing and JWT issuance/verification for authentication."""

import asyncio
import secrets
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any, Protocol

import bcrypt
import jwt

from app.core.config import Settings
from app.core.errors import ConfigurationError

# Bcrypt cost (rounds); 12 is a good default for security vs speed.
BCRYPT_ROUNDS = 12

# Min/max lengths for username and password validation.
USERNAME_MIN_LEN = 1
USERNAME_MAX_LEN = 255
PASSWORD_MIN_LEN = 8
PASSWORD_MAX_LEN = 128

# Claim names carried by access tokens.
CLAIM_ID = "id"
CLAIM_USERNAME = "username"
CLAIM_ROLE = "role"

DEFAULT_TOKEN_TTL = timedelta(hours=2)


class PasswordHasher(Protocol):
    """Hashes and verifies passwords; both calls may suspend."""

    async def hash(self, plain_password: str) -> str: ...

    # Hash of a random secret at the stored-hash cost; verified against when no user matches.
    dummy_hash: str

    async def verify(self, stored_hash: str, plain_password: str) -> bool: ...


class BcryptPasswordHasher:
    """
    Salted adaptive hashing with bcrypt.

    bcrypt.checkpw compares digests in constant time. Work runs in a worker thread so
    the event loop is not blocked for the duration of the key derivation.
    """

    def __init__(self, rounds: int = BCRYPT_ROUNDS) -> None:
        self._rounds = rounds
        self.dummy_hash = self.hash_sync(secrets.token_urlsafe(32))

    @staticmethod
    def _encode(plain_password: str) -> bytes:
        # bcrypt has a 72-byte limit; truncate to avoid errors (validation already limits length).
        return plain_password.encode("utf-8")[:72]

    def hash_sync(self, plain_password: str) -> str:
        """Hash a plain-text password for storage. Do not store plain passwords."""
        return bcrypt.hashpw(
            self._encode(plain_password), bcrypt.gensalt(rounds=self._rounds)
        ).decode("utf-8")

    def verify_sync(self, stored_hash: str, plain_password: str) -> bool:
        try:
            return bcrypt.checkpw(self._encode(plain_password), stored_hash.encode("utf-8"))
        except (ValueError, TypeError):
            return False

    async def hash(self, plain_password: str) -> str:
        return await asyncio.to_thread(self.hash_sync, plain_password)

    async def verify(self, stored_hash: str, plain_password: str) -> bool:
        return await asyncio.to_thread(self.verify_sync, stored_hash, plain_password)


@dataclass(frozen=True)
class SigningConfig:
    """Process-wide signing key and algorithm, immutable after startup."""

    secret: str
    algorithm: str = "HS256"

    def __repr__(self) -> str:
        return f"SigningConfig(secret='**********', algorithm={self.algorithm!r})"

    @classmethod
    def from_settings(cls, settings: Settings) -> "SigningConfig":
        """Build from settings; a missing JWT_SECRET is a fatal startup error."""
        if settings.JWT_SECRET is None or not settings.JWT_SECRET.get_secret_value().strip():
            raise ConfigurationError("JWT_SECRET is not configured")
        return cls(
            secret=settings.JWT_SECRET.get_secret_value(),
            algorithm=settings.JWT_ALGORITHM,
        )


@dataclass(frozen=True)
class TokenClaims:
    """Identity claims embedded in an access token."""

    subject_id: str
    username: str
    role: str


@dataclass(frozen=True)
class DecodedToken:
    claims: TokenClaims
    issued_at: datetime
    expires_at: datetime


class TokenIssuer:
    """Builds and validates HMAC-signed JWT access tokens."""

    def __init__(self, config: SigningConfig) -> None:
        if not config.secret:
            raise ConfigurationError("JWT_SECRET is not configured")
        self._config = config

    def issue(
        self,
        claims: TokenClaims,
        ttl: timedelta = DEFAULT_TOKEN_TTL,
        now: datetime | None = None,
    ) -> str:
        """Create a signed token carrying id, username, role, iat and exp = now + ttl."""
        issued_at = now or datetime.now(UTC)
        payload: dict[str, Any] = {
            CLAIM_ID: claims.subject_id,
            CLAIM_USERNAME: claims.username,
            CLAIM_ROLE: claims.role,
            "iat": issued_at,
            "exp": issued_at + ttl,
        }
        return jwt.encode(payload, self._config.secret, algorithm=self._config.algorithm)

    def decode(self, token: str) -> DecodedToken:
        """
        Validate signature and expiry and return the claims.
        Raises jwt.PyJWTError on invalid, tampered or expired tokens.
        """
        payload = jwt.decode(
            token,
            self._config.secret,
            algorithms=[self._config.algorithm],
            options={"require": ["exp", CLAIM_ID, CLAIM_USERNAME]},
        )
        claims = TokenClaims(
            subject_id=str(payload[CLAIM_ID]),
            username=str(payload[CLAIM_USERNAME]),
            role=str(payload.get(CLAIM_ROLE) or ""),
        )
        issued_at = payload.get("iat")
        return DecodedToken(
            claims=claims,
            issued_at=datetime.fromtimestamp(issued_at, UTC) if issued_at else datetime.now(UTC),
            expires_at=datetime.fromtimestamp(payload["exp"], UTC),
        )


def password_policy_violations(password: str) -> list[tuple[str, str]]:
    """Return (code, description) pairs for each password rule the candidate breaks."""
    violations: list[tuple[str, str]] = []
    if len(password) < PASSWORD_MIN_LEN:
        violations.append(
            ("PasswordTooShort", f"Passwords must be at least {PASSWORD_MIN_LEN} characters.")
        )
    if len(password) > PASSWORD_MAX_LEN:
        violations.append(
            ("PasswordTooLong", f"Passwords must be at most {PASSWORD_MAX_LEN} characters.")
        )
    if not any(c.isdigit() for c in password):
        violations.append(("PasswordRequiresDigit", "Passwords must have at least one digit."))
    if not any(c.islower() for c in password):
        violations.append(
            ("PasswordRequiresLower", "Passwords must have at least one lowercase letter.")
        )
    if not any(c.isupper() for c in password):
        violations.append(
            ("PasswordRequiresUpper", "Passwords must have at least one uppercase letter.")
        )
    return violations


def normalize_username(username: str) -> str:
    """Case- and surrounding-whitespace-insensitive lookup key for usernames."""
    return username.strip().lower()
