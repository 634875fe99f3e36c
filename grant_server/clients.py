"""
Client Registry: registered client applications and their secrets.
The secret is generated once at registration and only its bcrypt hash is kept.
"""
import json
from urllib.parse import urlsplit

from grant_server import models
from grant_server.credentials import generate_identifier, hash_secret, verify_secret
from grant_server.database import Database
from grant_server.errors import ClientNotFound, ValidationError
from grant_server.records import Client, RegisteredClient, as_utc

_ALLOWED_SCHEMES = ("http", "https")


def _to_record(row: models.Client) -> Client:
    return Client(
        client_id=row.client_id,
        name=row.name,
        redirect_uris=tuple(row.get_redirect_uris_list()),
        created_at=as_utc(row.created_at) if row.created_at else None,
    )


def normalize_redirect_uris(redirect_uris) -> list[str]:
    """
    Validate redirect URIs: absolute http(s) URL with a host and no fragment.
    Returns the list with duplicates removed (order kept). Raises ValidationError.
    """
    if isinstance(redirect_uris, str) or not redirect_uris:
        raise ValidationError("redirect_uris must be a non-empty list")
    seen: list[str] = []
    for uri in redirect_uris:
        if not isinstance(uri, str) or not uri.strip():
            raise ValidationError("redirect_uris must not contain empty values")
        uri = uri.strip()
        try:
            parts = urlsplit(uri)
        except ValueError as e:
            raise ValidationError(f"Malformed redirect URI: {uri}") from e
        if parts.scheme not in _ALLOWED_SCHEMES or not parts.hostname:
            raise ValidationError(f"Redirect URI must be an absolute http(s) URL: {uri}")
        if parts.fragment:
            raise ValidationError(f"Redirect URI must not contain a fragment: {uri}")
        if uri not in seen:
            seen.append(uri)
    return seen


class ClientRegistry:
    def __init__(self, database: Database):
        self._database = database

    def register(self, name: str, redirect_uris) -> RegisteredClient:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Application name is required")
        uris = normalize_redirect_uris(redirect_uris)

        client_secret = generate_identifier()
        row = models.Client(
            client_id=generate_identifier(),
            name=name,
            redirect_uris=json.dumps(uris),
            client_secret_hash=hash_secret(client_secret),
        )
        with self._database.write_lock, self._database.session() as db:
            db.add(row)
            db.commit()
            return RegisteredClient(client=_to_record(row), client_secret=client_secret)

    def lookup(self, client_id: str) -> Client:
        with self._database.session() as db:
            row = db.get(models.Client, client_id) if client_id else None
            if row is None:
                raise ClientNotFound()
            return _to_record(row)

    def verify_secret(self, client_id: str, supplied_secret: str | None) -> bool:
        """True only if the client exists and the secret matches (bcrypt, constant-time)."""
        with self._database.session() as db:
            row = db.get(models.Client, client_id) if client_id else None
            hashed = row.client_secret_hash if row else None
        return verify_secret(supplied_secret, hashed)
