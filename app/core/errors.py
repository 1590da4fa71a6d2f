"""Error taxonomy shared by the auth core, the stores and the HTTP layer."""


class AppError(Exception):
    """Base for application errors; carries a message and optional list of reasons."""

    def __init__(self, message: str, errors: list[str] | None = None) -> None:
        self.message = message
        self.errors = list(errors) if errors else [message]
        super().__init__(message)


class ValidationError(AppError):
    """Missing or malformed input (e.g. empty username). Caller fixes input and retries."""


class RegistrationError(ValidationError):
    """The credential store rejected a new user (e.g. weak password)."""


class AuthenticationError(AppError):
    """Unknown user or bad password. Login reports this as a result, never raises it."""


class ConflictError(AppError):
    """A uniqueness constraint was violated (duplicate username, category or product)."""


class NotFoundError(AppError):
    """Requested record does not exist."""


class ConfigurationError(AppError):
    """Required configuration is missing or invalid; fatal at startup."""


class DependencyError(AppError):
    """A backing store is unavailable. Not retried here."""
