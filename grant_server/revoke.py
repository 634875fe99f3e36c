"""
Token revocation endpoint (POST /revoke). RFC 7009.
Revokes the whole pair (access + refresh) holding the token. The client must authenticate.
"""
import logging

from fastapi import APIRouter, Depends, Form, Request, status

from grant_server.authorization import AuthorizationEngine
from grant_server.client_auth import require_client_credentials
from grant_server.dependencies import get_authz
from grant_server.errors import AuthorizationError
from grant_server.http_errors import oauth_error, to_http_exception

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/revoke")
def revoke(
    request: Request,
    token: str = Form(""),
    token_type_hint: str | None = Form(None),
    client_id: str | None = Form(None),
    client_secret: str | None = Form(None),
    authz: AuthorizationEngine = Depends(get_authz),
):
    """
    RFC 7009: always return 200 for an authenticated request, even if the token is unknown,
    to avoid leaking information. token_type_hint is accepted and ignored; both token kinds are looked up.
    """
    if not token or not token.strip():
        raise oauth_error(status.HTTP_400_BAD_REQUEST, "invalid_request", "token is required")
    cid, csecret = require_client_credentials(request, client_id, client_secret)
    try:
        revoked = authz.revoke(token.strip(), cid, csecret)
    except AuthorizationError as e:
        raise to_http_exception(e)
    logger.debug("revoke client_id=%s revoked=%s", cid, revoked)
    return {}
