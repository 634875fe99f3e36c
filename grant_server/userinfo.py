"""
Protected resource (GET /userinfo). Bearer access token required; returns the bound user's profile.
"""
import logging

from fastapi import APIRouter, Depends, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from grant_server.authorization import AuthorizationEngine
from grant_server.dependencies import get_authz
from grant_server.errors import Unauthorized
from grant_server.http_errors import oauth_error, to_http_exception

logger = logging.getLogger(__name__)
router = APIRouter()
security = HTTPBearer(auto_error=False)


@router.get("/userinfo")
def userinfo(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    authz: AuthorizationEngine = Depends(get_authz),
):
    """Return {sub, preferred_username, name?, email?} for the user the access token is bound to."""
    if credentials is None:
        raise oauth_error(
            status.HTTP_401_UNAUTHORIZED,
            "invalid_request",
            "Authorization header missing",
            {"WWW-Authenticate": "Bearer"},
        )
    try:
        user = authz.get_protected_resource(credentials.credentials)
    except Unauthorized as e:
        logger.debug("userinfo rejected token: %s", e.__cause__.__class__.__name__)
        raise to_http_exception(e)
    return user.profile()
