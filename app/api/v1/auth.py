"""Auth dependencies: service wiring, bearer token verification and role checks."""

from collections.abc import Callable, Coroutine
from datetime import timedelta
from typing import Annotated, Any

import jwt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import Settings
from app.core.database import get_db
from app.core.security import PasswordHasher, TokenIssuer
from app.schemas.auth import CurrentUser
from app.services.auth import AuthService
from app.services.roles import RoleRegistry, normalize_role_name
from app.services.users import SqlUserStore

security = HTTPBearer(auto_error=False)


def get_app_settings(request: Request) -> Settings:
    """Settings the running app was created with."""
    return request.app.state.settings


def get_token_issuer(request: Request) -> TokenIssuer:
    """The issuer built once by create_app()."""
    return request.app.state.token_issuer


def get_password_hasher(request: Request) -> PasswordHasher:
    return request.app.state.password_hasher


def get_auth_service(
    db: Annotated[AsyncSession, Depends(get_db)],
    tokens: Annotated[TokenIssuer, Depends(get_token_issuer)],
    hasher: Annotated[PasswordHasher, Depends(get_password_hasher)],
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> AuthService:
    """Request-scoped AuthService bound to this request's DB session."""
    return AuthService(
        users=SqlUserStore(db, hasher),
        roles=RoleRegistry(db),
        hasher=hasher,
        tokens=tokens,
        token_ttl=timedelta(minutes=settings.JWT_EXPIRE_MINUTES),
        default_role=settings.DEFAULT_ROLE,
    )


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    tokens: Annotated[TokenIssuer, Depends(get_token_issuer)],
) -> CurrentUser:
    """Dependency: require valid Bearer JWT and return the caller. Raises 401 if missing or invalid."""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        decoded = tokens.decode(credentials.credentials)
    except jwt.PyJWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    claims = decoded.claims
    if not claims.subject_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return CurrentUser(id=claims.subject_id, username=claims.username, role=claims.role)


def require_role(role: str) -> Callable[..., Coroutine[Any, Any, CurrentUser]]:
    """Dependency factory: require an authenticated caller whose role claim is `role` (403 otherwise)."""

    async def _require_role(
        current_user: Annotated[CurrentUser, Depends(get_current_user)],
    ) -> CurrentUser:
        if normalize_role_name(current_user.role or "") != normalize_role_name(role):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"{role} access required",
            )
        return current_user

    return _require_role


async def require_admin(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> CurrentUser:
    """Dependency: require the configured admin role. Raises 403 for other roles."""
    return await require_role(settings.ADMIN_ROLE)(current_user)
