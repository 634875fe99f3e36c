"""
Client registration endpoint (POST /register). Shape follows RFC 7591 loosely.
The client_secret appears in this response only.
"""
import logging

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from grant_server.authorization import AuthorizationEngine
from grant_server.dependencies import get_authz
from grant_server.errors import ValidationError
from grant_server.http_errors import oauth_error

logger = logging.getLogger(__name__)
router = APIRouter()


class RegistrationRequest(BaseModel):
    application_name: str = ""
    # Bare strings reach the registry, which rejects them as invalid_client_metadata
    redirect_uris: list[str] | str = Field(default_factory=list)


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(body: RegistrationRequest, authz: AuthorizationEngine = Depends(get_authz)):
    try:
        registered = authz.register(body.application_name, body.redirect_uris)
    except ValidationError as e:
        raise oauth_error(status.HTTP_400_BAD_REQUEST, "invalid_client_metadata", e.description)
    logger.info("Registered client %s (%s)", registered.client_id, registered.client.name)
    return {
        "client_id": registered.client_id,
        "client_secret": registered.client_secret,
        "client_name": registered.client.name,
        "redirect_uris": list(registered.client.redirect_uris),
    }
