"""Request/response schemas for login, registration and user endpoints."""

from pydantic import BaseModel, ConfigDict, Field

from app.core.security import PASSWORD_MAX_LEN, USERNAME_MAX_LEN


class LoginRequest(BaseModel):
    """Credentials for login. Blank values are reported by the login result, not rejected here."""

    username: str = Field(..., max_length=USERNAME_MAX_LEN, description="Username")
    password: str | None = Field(default=None, max_length=PASSWORD_MAX_LEN, description="Password")


class RegisterRequest(BaseModel):
    """New account details. role defaults to the configured default role."""

    username: str = Field(..., max_length=USERNAME_MAX_LEN, description="Username")
    password: str | None = Field(default=None, max_length=PASSWORD_MAX_LEN, description="Password")
    name: str | None = Field(default=None, max_length=255, description="Display name")
    role: str | None = Field(default=None, max_length=64, description="Role to assign")


class UserProfile(BaseModel):
    """Public projection of a user record (no email, no password hash)."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    username: str
    name: str | None = None


class LoginResult(BaseModel):
    """Outcome of a login attempt. token is empty and user is None on any failure."""

    token: str = Field(default="", description="Signed bearer token, empty on failure")
    user: UserProfile | None = None
    message: str

    @property
    def succeeded(self) -> bool:
        return bool(self.token)


class CurrentUser(BaseModel):
    """Authenticated caller, built from verified token claims."""

    id: str
    username: str
    role: str


class UsersListResponse(BaseModel):
    """Response for GET /users (admin only)."""

    users: list[UserProfile]


class ErrorResponse(BaseModel):
    """Error body for rejected requests: one entry per reason."""

    errors: list[str]
