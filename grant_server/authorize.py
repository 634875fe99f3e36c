"""
Authorization endpoint (GET /authorize).
The user is already authenticated by upstream login middleware, which names them in a request header.
On success the code is relayed to the client's redirect_uri with state.
"""
import logging
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import RedirectResponse

from grant_server.authorization import AuthorizationEngine
from grant_server.config import AUTHENTICATED_USER_HEADER
from grant_server.dependencies import get_authz
from grant_server.errors import AuthorizationError
from grant_server.http_errors import oauth_error, to_http_exception

logger = logging.getLogger(__name__)
router = APIRouter()


def get_current_user_id(request: Request) -> str | None:
    """Authenticated user id as supplied by the session/login collaborator."""
    value = request.headers.get(AUTHENTICATED_USER_HEADER)
    return value.strip() if value and value.strip() else None


def _redirect_with(redirect_uri: str, params: dict) -> RedirectResponse:
    separator = "&" if "?" in redirect_uri else "?"
    return RedirectResponse(url=f"{redirect_uri}{separator}{urlencode(params)}", status_code=302)


@router.get("/authorize")
def authorize(
    client_id: str | None = None,
    redirect_uri: str | None = None,
    state: str | None = None,
    response_type: str = "code",
    current_user_id: str | None = Depends(get_current_user_id),
    authz: AuthorizationEngine = Depends(get_authz),
):
    """
    Validate client_id and redirect_uri (exact match), then issue a code for the current user.
    Errors are returned directly, never redirected, because the redirect target is not trusted yet.
    """
    if response_type != "code":
        raise oauth_error(status.HTTP_400_BAD_REQUEST, "unsupported_response_type", "response_type must be 'code'")
    if not client_id:
        raise oauth_error(status.HTTP_400_BAD_REQUEST, "invalid_request", "client_id is required")

    try:
        issued = authz.authorize(client_id, current_user_id, redirect_uri)
    except AuthorizationError as e:
        logger.debug("authorize failed for client_id=%s: %s", client_id, e.kind)
        raise to_http_exception(e)

    params = {"code": issued.code}
    if state:
        params["state"] = state
    return _redirect_with(issued.redirect_uri, params)
