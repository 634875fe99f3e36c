"""
Error taxonomy for the authorization core.

Every failure carries a stable ``kind`` string. Expired credentials subclass
NotFoundError and revoked tokens raise InvalidToken, so callers that handle
NotFoundError treat expired, revoked and never-issued credentials alike.
"""


class AuthorizationError(Exception):
    kind = "authorization_error"
    description = "Authorization failed"

    def __init__(self, description: str | None = None):
        self.description = description or self.description
        super().__init__(self.description)


class ValidationError(AuthorizationError):
    kind = "validation_error"
    description = "Invalid request"


class NotFoundError(AuthorizationError):
    kind = "not_found"
    description = "Not found"


class ClientNotFound(NotFoundError):
    kind = "client_not_found"
    description = "Unknown client"


class UserNotFound(NotFoundError):
    kind = "user_not_found"
    description = "Unknown user"


class InvalidCode(NotFoundError):
    kind = "invalid_code"
    description = "Invalid or expired authorization code"


class InvalidToken(NotFoundError):
    kind = "invalid_token"
    description = "Invalid or expired token"


class ExpiredError(NotFoundError):
    kind = "expired"
    description = "Credential expired"


class ExpiredCode(ExpiredError):
    kind = "expired_code"
    description = "Invalid or expired authorization code"


class ExpiredToken(ExpiredError):
    kind = "expired_token"
    description = "Invalid or expired token"


class AuthenticationError(AuthorizationError):
    kind = "authentication_error"
    description = "Authentication failed"


class InvalidClientCredentials(AuthenticationError):
    kind = "invalid_client_credentials"
    description = "Invalid client credentials"


class UserNotAuthenticated(AuthenticationError):
    kind = "user_not_authenticated"
    description = "User is not authenticated"


class Unauthorized(AuthenticationError):
    kind = "unauthorized"
    description = "Invalid or expired token"


class AlreadyUsedError(AuthorizationError):
    kind = "already_used"
    description = "Credential already used"


class CodeAlreadyUsed(AlreadyUsedError):
    kind = "code_already_used"
    description = "Authorization code already used"


class MismatchError(AuthorizationError):
    kind = "mismatch"
    description = "Credential binding mismatch"


class ClientMismatch(MismatchError):
    kind = "client_mismatch"
    description = "Client mismatch"


class RedirectUriMismatch(MismatchError):
    kind = "redirect_uri_mismatch"
    description = "redirect_uri mismatch"
