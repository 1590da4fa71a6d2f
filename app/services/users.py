"""Credential store: persistence of user records backed by SQLAlchemy."""

import logging
from dataclasses import dataclass, field
from typing import Protocol

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import UNAVAILABLE_ERRORS
from app.core.errors import DependencyError
from app.core.security import PasswordHasher, normalize_username, password_policy_violations
from app.models.user import User, UserRole

logger = logging.getLogger(__name__)

DUPLICATE_USER_NAME = "DuplicateUserName"


@dataclass(frozen=True)
class NewUser:
    """Candidate record for registration; the store generates id and hash."""

    username: str
    normalized_email: str
    name: str | None = None
    email: str | None = None


@dataclass(frozen=True)
class StoreError:
    code: str
    description: str


@dataclass
class CreateUserOutcome:
    """Result of a create call: the new user, or the list of reasons it was rejected."""

    user: User | None = None
    errors: list[StoreError] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.user is not None and not self.errors

    @property
    def is_duplicate(self) -> bool:
        return any(e.code == DUPLICATE_USER_NAME for e in self.errors)


class UserStore(Protocol):
    async def find_by_username(self, username: str) -> User | None: ...

    async def get(self, user_id: str) -> User | None: ...

    async def list_users(self) -> list[User]: ...

    async def is_unique_user(self, username: str) -> bool: ...

    async def create(self, candidate: NewUser, password: str) -> CreateUserOutcome: ...

    async def delete(self, user_id: str) -> None: ...


class SqlUserStore:
    """UserStore over an AsyncSession. Each create commits its own unit of work."""

    def __init__(self, session: AsyncSession, hasher: PasswordHasher) -> None:
        self._session = session
        self._hasher = hasher

    async def find_by_username(self, username: str) -> User | None:
        normalized = normalize_username(username)
        try:
            result = await self._session.execute(
                select(User).where(User.normalized_username == normalized)
            )
        except UNAVAILABLE_ERRORS as e:
            raise DependencyError("User store is unavailable") from e
        return result.scalar_one_or_none()

    async def get(self, user_id: str) -> User | None:
        try:
            return await self._session.get(User, user_id)
        except UNAVAILABLE_ERRORS as e:
            raise DependencyError("User store is unavailable") from e

    async def list_users(self) -> list[User]:
        try:
            result = await self._session.execute(select(User).order_by(User.username))
        except UNAVAILABLE_ERRORS as e:
            raise DependencyError("User store is unavailable") from e
        return list(result.scalars().all())

    async def is_unique_user(self, username: str) -> bool:
        normalized = normalize_username(username)
        try:
            result = await self._session.execute(
                select(func.count())
                .select_from(User)
                .where(User.normalized_username == normalized)
            )
        except UNAVAILABLE_ERRORS as e:
            raise DependencyError("User store is unavailable") from e
        return result.scalar_one() == 0

    async def create(self, candidate: NewUser, password: str) -> CreateUserOutcome:
        """
        Validate the password policy, hash, and insert. Duplicate usernames are
        reported through the unique constraint on normalized_username, so two
        concurrent registrations of the same name leave exactly one row.
        """
        errors = [StoreError(code, desc) for code, desc in password_policy_violations(password)]
        if errors:
            return CreateUserOutcome(errors=errors)

        user = User(
            username=candidate.username,
            normalized_username=normalize_username(candidate.username),
            email=candidate.email,
            normalized_email=candidate.normalized_email,
            name=candidate.name,
            password_hash=await self._hasher.hash(password),
        )
        self._session.add(user)
        try:
            await self._session.commit()
        except IntegrityError:
            await self._session.rollback()
            logger.info("User creation rejected: duplicate username")
            return CreateUserOutcome(
                errors=[
                    StoreError(
                        DUPLICATE_USER_NAME,
                        f"Username '{candidate.username}' is already taken.",
                    )
                ]
            )
        except UNAVAILABLE_ERRORS as e:
            await self._session.rollback()
            raise DependencyError("User store is unavailable") from e
        return CreateUserOutcome(user=user)

    async def delete(self, user_id: str) -> None:
        """Remove the user and its role memberships. Unknown ids are a no-op."""
        try:
            await self._session.execute(delete(UserRole).where(UserRole.user_id == user_id))
            await self._session.execute(delete(User).where(User.id == user_id))
            await self._session.commit()
        except UNAVAILABLE_ERRORS as e:
            await self._session.rollback()
            raise DependencyError("User store is unavailable") from e
        logger.info("Deleted user", extra={"user_id": user_id})
