"""
Token endpoint (POST /token). Authorization code exchange and refresh_token grant.
"""
import logging

from fastapi import APIRouter, Depends, Form, Request, status

from grant_server.authorization import AuthorizationEngine
from grant_server.client_auth import require_client_credentials
from grant_server.dependencies import get_authz
from grant_server.errors import AuthorizationError
from grant_server.http_errors import oauth_error, to_http_exception
from grant_server.records import TokenPair

logger = logging.getLogger(__name__)
router = APIRouter()


def _token_response(pair: TokenPair, authz: AuthorizationEngine) -> dict:
    now = authz.now()
    return {
        "access_token": pair.access_token,
        "token_type": "Bearer",
        "expires_in": pair.expires_in(now),
        "refresh_token": pair.refresh_token,
        "refresh_expires_in": pair.refresh_expires_in(now),
    }


@router.post("/token")
def token(
    request: Request,
    grant_type: str = Form(...),
    code: str | None = Form(None),
    redirect_uri: str | None = Form(None),
    client_id: str | None = Form(None),
    client_secret: str | None = Form(None),
    refresh_token: str | None = Form(None),
    authz: AuthorizationEngine = Depends(get_authz),
):
    """
    authorization_code: authenticate the client and exchange code for access_token + refresh_token.
    refresh_token: exchange refresh_token for a new access_token; rotates the refresh token.
    """
    if grant_type == "authorization_code":
        return _token_authorization_code(request, code, redirect_uri, client_id, client_secret, authz)
    if grant_type == "refresh_token":
        return _token_refresh_token(refresh_token, authz)
    raise oauth_error(
        status.HTTP_400_BAD_REQUEST,
        "unsupported_grant_type",
        "Only authorization_code and refresh_token are supported",
    )


def _token_authorization_code(
    request: Request,
    code: str | None,
    redirect_uri: str | None,
    client_id_form: str | None,
    client_secret_form: str | None,
    authz: AuthorizationEngine,
):
    client_id, client_secret = require_client_credentials(request, client_id_form, client_secret_form)
    if not code:
        raise oauth_error(
            status.HTTP_400_BAD_REQUEST,
            "invalid_request",
            "code is required for authorization_code grant",
        )
    try:
        pair = authz.exchange_code_for_token(code, client_id, client_secret, redirect_uri)
    except AuthorizationError as e:
        logger.debug("authorization_code grant failed for client_id=%s: %s", client_id, e.kind)
        raise to_http_exception(e)
    return _token_response(pair, authz)


def _token_refresh_token(refresh_token: str | None, authz: AuthorizationEngine):
    if not refresh_token:
        raise oauth_error(status.HTTP_400_BAD_REQUEST, "invalid_request", "refresh_token is required")
    try:
        pair = authz.refresh(refresh_token)
    except AuthorizationError as e:
        logger.debug("refresh_token grant failed: %s", e.kind)
        raise to_http_exception(e)
    logger.info("refresh_token grant: new tokens issued for client_id=%s sub=%s", pair.client_id, pair.user_id)
    return _token_response(pair, authz)
