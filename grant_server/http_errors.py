"""
Translate core errors into OAuth-style HTTP errors: {"error", "error_description"}.
Expired and unknown credentials share one response, so callers cannot tell them apart.
"""
from fastapi import HTTPException, status

from grant_server.errors import (
    AlreadyUsedError,
    AuthorizationError,
    ClientNotFound,
    InvalidClientCredentials,
    MismatchError,
    NotFoundError,
    Unauthorized,
    UserNotAuthenticated,
    ValidationError,
)


def oauth_error(status_code: int, error: str, description: str, headers: dict | None = None) -> HTTPException:
    return HTTPException(
        status_code=status_code,
        detail={"error": error, "error_description": description},
        headers=headers,
    )


def to_http_exception(exc: AuthorizationError) -> HTTPException:
    if isinstance(exc, InvalidClientCredentials):
        return oauth_error(
            status.HTTP_401_UNAUTHORIZED, "invalid_client", exc.description, {"WWW-Authenticate": "Basic"}
        )
    if isinstance(exc, Unauthorized):
        return oauth_error(
            status.HTTP_401_UNAUTHORIZED, "invalid_token", exc.description, {"WWW-Authenticate": "Bearer"}
        )
    if isinstance(exc, UserNotAuthenticated):
        return oauth_error(status.HTTP_401_UNAUTHORIZED, "login_required", exc.description)
    if isinstance(exc, ValidationError):
        return oauth_error(status.HTTP_400_BAD_REQUEST, "invalid_request", exc.description)
    if isinstance(exc, ClientNotFound):
        return oauth_error(status.HTTP_400_BAD_REQUEST, "invalid_request", exc.description)
    if isinstance(exc, (NotFoundError, AlreadyUsedError, MismatchError)):
        return oauth_error(status.HTTP_400_BAD_REQUEST, "invalid_grant", exc.description)
    return oauth_error(status.HTTP_400_BAD_REQUEST, "invalid_request", exc.description)
