"""Auth service: login (lookup, verify, issue token) and registration (validate, create, assign role)."""

import logging
from datetime import timedelta

from app.core.errors import (
    ConflictError,
    DependencyError,
    NotFoundError,
    RegistrationError,
    ValidationError,
)
from app.core.result import Err, Ok, Result
from app.core.security import DEFAULT_TOKEN_TTL, PasswordHasher, TokenClaims, TokenIssuer
from app.schemas.auth import LoginRequest, LoginResult, RegisterRequest, UserProfile
from app.services.roles import RoleRegistry, resolve_role_name
from app.services.users import NewUser, UserStore

logger = logging.getLogger(__name__)

MSG_USERNAME_REQUIRED = "username required"
MSG_USERNAME_NOT_FOUND = "username not found"
MSG_PASSWORD_REQUIRED = "password required"
MSG_INVALID_CREDENTIALS = "invalid credentials"
MSG_LOGIN_SUCCESSFUL = "login successful"

RegisterResult = Result[UserProfile, ValidationError | ConflictError | DependencyError]


def _failed(message: str) -> LoginResult:
    return LoginResult(token="", user=None, message=message)


class AuthService:
    """
    Orchestrates the credential store, role registry, password hasher and token issuer.

    Login never raises for expected failures; it returns a LoginResult with an empty
    token. Registration returns Ok(profile) or Err(error).
    """

    def __init__(
        self,
        users: UserStore,
        roles: RoleRegistry,
        hasher: PasswordHasher,
        tokens: TokenIssuer,
        default_role: str,
        token_ttl: timedelta = DEFAULT_TOKEN_TTL,
    ) -> None:
        self._users = users
        self._roles = roles
        self._hasher = hasher
        self._tokens = tokens
        self._token_ttl = token_ttl
        self._default_role = default_role

    async def is_unique_user(self, username: str) -> bool:
        """True when no account matches `username` ignoring case and surrounding whitespace."""
        return await self._users.is_unique_user(username)

    async def login(self, request: LoginRequest) -> LoginResult:
        if not request.username or not request.username.strip():
            return _failed(MSG_USERNAME_REQUIRED)

        user = await self._users.find_by_username(request.username)
        if user is None:
            await self._hasher.verify(self._hasher.dummy_hash, request.password or "")
            logger.info("Login failed", extra={"login_outcome": "unknown_user"})
            return _failed(MSG_USERNAME_NOT_FOUND)

        if request.password is None:
            await self._hasher.verify(self._hasher.dummy_hash, "")
            return _failed(MSG_PASSWORD_REQUIRED)

        if not await self._hasher.verify(user.password_hash, request.password):
            logger.info(
                "Login failed",
                extra={"login_outcome": "bad_password", "user_id": user.id},
            )
            return _failed(MSG_INVALID_CREDENTIALS)

        roles = await self._roles.list_roles(user)
        # First role wins; list_roles orders by assignment time.
        role = roles[0].name if roles else ""
        token = self._tokens.issue(
            TokenClaims(subject_id=str(user.id), username=user.username, role=role),
            ttl=self._token_ttl,
        )
        logger.info(
            "Login succeeded",
            extra={"login_outcome": "success", "user_id": user.id, "role": role},
        )
        return LoginResult(
            token=token,
            user=UserProfile.model_validate(user),
            message=MSG_LOGIN_SUCCESSFUL,
        )

    async def register(self, request: RegisterRequest) -> RegisterResult:
        """
        Create the account, ensure and assign its role, then return the stored profile.

        Does not pre-check uniqueness; the store's unique constraint rejects duplicates.
        """
        if not request.username or not request.username.strip():
            return Err(ValidationError("username required"))
        if request.password is None:
            return Err(ValidationError("password required"))

        username = request.username.strip()
        candidate = NewUser(
            username=username,
            email=username,
            normalized_email=username.upper(),
            name=request.name,
        )
        try:
            outcome = await self._users.create(candidate, request.password)
        except DependencyError as e:
            logger.error("Registration failed", extra={"reason": e.message})
            return Err(e)
        if not outcome.succeeded:
            reasons = [e.description for e in outcome.errors]
            joined = ", ".join(reasons)
            if outcome.is_duplicate:
                return Err(ConflictError(f"could not create user: {joined}", reasons))
            return Err(RegistrationError(f"could not create user: {joined}", reasons))

        user_id = str(outcome.user.id)
        role_name = resolve_role_name(request.role, self._default_role)
        try:
            role = await self._roles.ensure_role(role_name)
            user = await self._users.get(user_id)
            if user is None:
                raise NotFoundError(f"user {user_id} vanished after creation")
            await self._roles.assign_role(user, role)

            created = await self._users.get(user_id)
            if created is None:
                raise NotFoundError(f"user {user_id} vanished after creation")
        except DependencyError as e:
            logger.error(
                "Registration failed after user creation",
                extra={"user_id": user_id, "reason": e.message},
            )
            await self._discard_user(user_id)
            return Err(e)

        logger.info("Registered user", extra={"user_id": user_id, "role": role_name})
        return Ok(UserProfile.model_validate(created))

    async def _discard_user(self, user_id: str) -> None:
        # Frees the username for a retry.
        try:
            await self._users.delete(user_id)
        except DependencyError as e:
            logger.error(
                "Could not remove partially registered user",
                extra={"user_id": user_id, "reason": e.message},
            )

    async def list_users(self) -> list[UserProfile]:
        return [UserProfile.model_validate(u) for u in await self._users.list_users()]

    async def get_user(self, user_id: str) -> UserProfile:
        user = await self._users.get(user_id)
        if user is None:
            raise NotFoundError(f"user {user_id} does not exist")
        return UserProfile.model_validate(user)
