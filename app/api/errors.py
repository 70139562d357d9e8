"""Map service errors to HTTP responses. The only place status codes are chosen."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from app.services.errors import (
    AccountInactiveError,
    AccountLockedError,
    BadRequestError,
    ConflictError,
    ForbiddenError,
    InvalidCredentialsError,
    InvalidOrExpiredTokenError,
    InvalidTokenError,
    NotFoundError,
    ServiceError,
    StoreUnavailableError,
)

logger = logging.getLogger(__name__)

STATUS_BY_ERROR: dict[type[ServiceError], int] = {
    InvalidCredentialsError: status.HTTP_401_UNAUTHORIZED,
    AccountLockedError: status.HTTP_401_UNAUTHORIZED,
    AccountInactiveError: status.HTTP_401_UNAUTHORIZED,
    InvalidTokenError: status.HTTP_401_UNAUTHORIZED,
    InvalidOrExpiredTokenError: status.HTTP_400_BAD_REQUEST,
    BadRequestError: status.HTTP_400_BAD_REQUEST,
    ForbiddenError: status.HTTP_403_FORBIDDEN,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ConflictError: status.HTTP_409_CONFLICT,
    StoreUnavailableError: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def status_for(error: ServiceError) -> int:
    for error_type in type(error).__mro__:
        if error_type in STATUS_BY_ERROR:
            return STATUS_BY_ERROR[error_type]
    return status.HTTP_400_BAD_REQUEST


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    """Render a ServiceError as {"detail": message} with its mapped status."""
    status_code = status_for(exc)
    headers: dict[str, str] = {}
    if isinstance(exc, InvalidTokenError):
        headers["WWW-Authenticate"] = "Bearer"
    if isinstance(exc, StoreUnavailableError):
        headers["Retry-After"] = "1"
        logger.warning("%s %s -> 503 store unavailable", request.method, request.url.path)
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.message},
        headers=headers or None,
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ServiceError, service_error_handler)
