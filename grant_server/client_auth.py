"""
Client authentication input for /token and /revoke (RFC 6749 §3.2.1).
A client sends client_id + client_secret as form fields or as an HTTP Basic Authorization header.
"""
import base64
import binascii

from fastapi import Request, status

from grant_server.http_errors import oauth_error

_BASIC_PREFIX = "basic "


def decode_basic_credentials(header_value: str | None) -> tuple[str, str] | None:
    """(client_id, client_secret) from an Authorization header, or None when it is absent or not usable Basic."""
    value = (header_value or "").strip()
    if not value.lower().startswith(_BASIC_PREFIX):
        return None
    try:
        decoded = base64.b64decode(value[len(_BASIC_PREFIX):].strip(), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return None
    client_id, separator, client_secret = decoded.partition(":")
    if not separator:
        return None
    return client_id.strip(), client_secret


def resolve_client_credentials(
    request: Request,
    form_client_id: str | None,
    form_client_secret: str | None,
) -> tuple[str | None, str | None]:
    # A complete form pair wins over the header; a lone form client_id is a public client
    if form_client_id and form_client_secret is not None:
        return form_client_id.strip(), form_client_secret
    header = decode_basic_credentials(request.headers.get("Authorization"))
    if header is not None:
        return header
    if form_client_id:
        return form_client_id.strip(), form_client_secret
    return None, None


def require_client_credentials(
    request: Request,
    form_client_id: str | None,
    form_client_secret: str | None,
) -> tuple[str, str | None]:
    """Resolved credentials; 401 invalid_client when no client_id was sent at all."""
    client_id, client_secret = resolve_client_credentials(request, form_client_id, form_client_secret)
    if not client_id:
        raise oauth_error(
            status.HTTP_401_UNAUTHORIZED,
            "invalid_client",
            "client_id is required",
            {"WWW-Authenticate": "Basic"},
        )
    return client_id, client_secret
