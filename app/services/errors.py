"""Domain errors raised by the auth and user services; mapped to HTTP in app.api.errors."""


class ServiceError(Exception):
    """Base class for expected, user-visible service failures."""

    default_message = "Request failed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidCredentialsError(ServiceError):
    """Unknown email or wrong password; both look identical to the caller."""

    default_message = "Invalid credentials"


class AccountLockedError(ServiceError):
    default_message = "Account is temporarily locked due to too many failed login attempts"


class AccountInactiveError(ServiceError):
    default_message = "Account is deactivated"


class InvalidTokenError(ServiceError):
    """Access/refresh token rejected: malformed, expired, bad signature or account gone."""

    default_message = "Invalid or expired token"


class InvalidOrExpiredTokenError(ServiceError):
    """Password reset token unknown, already used, or past its expiry."""

    default_message = "Invalid or expired reset token"


class ConflictError(ServiceError):
    default_message = "User with this email or username already exists"


class NotFoundError(ServiceError):
    default_message = "User not found"


class ForbiddenError(ServiceError):
    default_message = "Insufficient permissions"


class BadRequestError(ServiceError):
    default_message = "Bad request"


class StoreUnavailableError(ServiceError):
    """Transient database failure (timeout, connection lost). Safe to retry."""

    default_message = "Service temporarily unavailable, please retry"

    def __init__(self, message: str | None = None, cause: Exception | None = None) -> None:
        self.cause = cause
        super().__init__(message)
