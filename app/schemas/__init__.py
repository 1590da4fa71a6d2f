"""Pydantic request/response schemas."""

from app.schemas.auth import (
    CurrentUser,
    ErrorResponse,
    LoginRequest,
    LoginResult,
    RegisterRequest,
    UserProfile,
    UsersListResponse,
)
from app.schemas.category import CategoryRead, CategoryWrite
from app.schemas.health import HealthResponse
from app.schemas.product import ProductPage, ProductRead, ProductWrite, PurchaseResponse

__all__ = [
    "CategoryRead",
    "CategoryWrite",
    "CurrentUser",
    "ErrorResponse",
    "HealthResponse",
    "LoginRequest",
    "LoginResult",
    "ProductPage",
    "ProductRead",
    "ProductWrite",
    "PurchaseResponse",
    "RegisterRequest",
    "UserProfile",
    "UsersListResponse",
]
