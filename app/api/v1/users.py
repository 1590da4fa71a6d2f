"""User endpoints: login, registration and admin-only listing."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse

from app.api.v1.auth import get_app_settings, get_auth_service, require_admin
from app.core.config import Settings
from app.core.errors import DependencyError, NotFoundError
from app.core.result import Ok
from app.schemas.auth import (
    CurrentUser,
    ErrorResponse,
    LoginRequest,
    LoginResult,
    RegisterRequest,
    UserProfile,
    UsersListResponse,
)
from app.services.auth import MSG_INVALID_CREDENTIALS, MSG_USERNAME_REQUIRED, AuthService

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post(
    "/login",
    response_model=LoginResult,
    responses={401: {"model": LoginResult}},
)
async def login(
    body: LoginRequest,
    service: Annotated[AuthService, Depends(get_auth_service)],
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> LoginResult | JSONResponse:
    """
    Authenticate with username and password; returns a JWT in `token`.
    Include the token in the Authorization header as: Bearer <token>
    """
    result = await service.login(body)
    if result.succeeded:
        return result
    if settings.AUTH_COLLAPSE_LOGIN_ERRORS and result.message != MSG_USERNAME_REQUIRED:
        result = LoginResult(token="", user=None, message=MSG_INVALID_CREDENTIALS)
    return JSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED,
        content=result.model_dump(),
        headers={"WWW-Authenticate": "Bearer"},
    )


@router.post(
    "",
    response_model=UserProfile,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}},
)
async def register(
    body: RegisterRequest,
    service: Annotated[AuthService, Depends(get_auth_service)],
) -> UserProfile | JSONResponse:
    """Create an account. role defaults to the configured default role."""
    if not body.username or not body.username.strip():
        return _bad_request(["username required"])
    if not await service.is_unique_user(body.username):
        return _bad_request(["username already exists"])

    result = await service.register(body)
    if isinstance(result, Ok):
        return result.value
    if isinstance(result.error, DependencyError):
        raise result.error
    return _bad_request(result.error.errors)


@router.get("", response_model=UsersListResponse)
async def list_users(
    _admin: Annotated[CurrentUser, Depends(require_admin)],
    service: Annotated[AuthService, Depends(get_auth_service)],
) -> UsersListResponse:
    """List all users ordered by username (admin only)."""
    return UsersListResponse(users=await service.list_users())


@router.get("/{user_id}", response_model=UserProfile)
async def get_user(
    user_id: str,
    _admin: Annotated[CurrentUser, Depends(require_admin)],
    service: Annotated[AuthService, Depends(get_auth_service)],
) -> UserProfile:
    try:
        return await service.get_user(user_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message) from e


def _bad_request(errors: list[str]) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=ErrorResponse(errors=errors).model_dump(),
    )
