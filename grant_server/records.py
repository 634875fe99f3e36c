"""
Plain data records returned by the stores. ORM rows never leave a store.
"""
from dataclasses import dataclass
from datetime import datetime, timezone


def as_utc(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; every stored value is UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


@dataclass(frozen=True)
class User:
    id: str
    username: str
    name: str | None = None
    email: str | None = None

    def profile(self) -> dict:
        """Protected resource representation of the user."""
        claims = {"sub": self.id, "preferred_username": self.username}
        if self.name is not None:
            claims["name"] = self.name
        if self.email is not None:
            claims["email"] = self.email
        return claims


@dataclass(frozen=True)
class Client:
    client_id: str
    name: str
    redirect_uris: tuple[str, ...]
    created_at: datetime | None = None

    def redirect_uri_allowed(self, uri: str) -> bool:
        return uri in self.redirect_uris


@dataclass(frozen=True)
class RegisteredClient:
    """Returned once, at registration: the only place the plaintext secret appears."""
    client: Client
    client_secret: str

    @property
    def client_id(self) -> str:
        return self.client.client_id


@dataclass(frozen=True)
class AuthorizationCode:
    code: str
    client_id: str
    user_id: str
    redirect_uri: str
    issued_at: datetime
    expires_at: datetime
    consumed: bool = False

    def expired(self, now: datetime) -> bool:
        return now > self.expires_at


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str
    client_id: str
    user_id: str
    access_expires_at: datetime
    refresh_expires_at: datetime
    revoked: bool = False

    def access_expired(self, now: datetime) -> bool:
        return now > self.access_expires_at

    def refresh_expired(self, now: datetime) -> bool:
        return now > self.refresh_expires_at

    def expires_in(self, now: datetime) -> int:
        return max(0, int((self.access_expires_at - now).total_seconds()))

    def refresh_expires_in(self, now: datetime) -> int:
        return max(0, int((self.refresh_expires_at - now).total_seconds()))
