"""
Token Issuer: access/refresh token pairs bound to (client, user).

Rotation rewrites the pair in place with a conditional UPDATE keyed by the
presented refresh token. The previous access token stops validating the moment
the update commits; there is no overlap window.
"""
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime, timedelta

from sqlalchemy import or_

from grant_server import models
from grant_server.config import ACCESS_TOKEN_EXPIRES, REFRESH_TOKEN_EXPIRES, ROTATE_REFRESH_TOKEN
from grant_server.credentials import generate_identifier, utc_now
from grant_server.database import Database
from grant_server.errors import ExpiredToken, InvalidToken
from grant_server.records import TokenPair, as_utc


def _to_record(row: models.TokenPair) -> TokenPair:
    return TokenPair(
        access_token=row.access_token,
        refresh_token=row.refresh_token,
        client_id=row.client_id,
        user_id=row.user_id,
        access_expires_at=as_utc(row.access_expires_at),
        refresh_expires_at=as_utc(row.refresh_expires_at),
        revoked=row.revoked,
    )


class TokenIssuer:
    def __init__(
        self,
        database: Database,
        *,
        access_ttl: int = ACCESS_TOKEN_EXPIRES,
        refresh_ttl: int = REFRESH_TOKEN_EXPIRES,
        rotate_refresh_token: bool = ROTATE_REFRESH_TOKEN,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._database = database
        self._access_ttl = timedelta(seconds=access_ttl)
        self._refresh_ttl = timedelta(seconds=refresh_ttl)
        self._rotate_refresh_token = rotate_refresh_token
        self._clock = clock

    def now(self) -> datetime:
        return self._clock()

    def issue_from_code(self, client_id: str, user_id: str) -> TokenPair:
        """Create a fresh pair for a redeemed code's binding."""
        now = self._clock()
        row = models.TokenPair(
            access_token=generate_identifier(),
            refresh_token=generate_identifier(),
            client_id=client_id,
            user_id=user_id,
            access_expires_at=now + self._access_ttl,
            refresh_expires_at=now + self._refresh_ttl,
            revoked=False,
        )
        with self._database.write_lock, self._database.session() as db:
            db.add(row)
            db.commit()
            return _to_record(row)

    def lookup(self, token: str) -> TokenPair | None:
        """Resolve either half of a pair without validating it."""
        if not token:
            return None
        with self._database.session() as db:
            row = (
                db.query(models.TokenPair)
                .filter(or_(models.TokenPair.access_token == token, models.TokenPair.refresh_token == token))
                .first()
            )
            return _to_record(row) if row else None

    def validate_access_token(self, token: str) -> TokenPair:
        """Read-only check. Raises InvalidToken (unknown or revoked) or ExpiredToken."""
        if not token:
            raise InvalidToken()
        with self._database.session() as db:
            row = db.query(models.TokenPair).filter(models.TokenPair.access_token == token).first()
            if row is None or row.revoked:
                raise InvalidToken()
            record = _to_record(row)
        if record.access_expired(self._clock()):
            raise ExpiredToken()
        return record

    def rotate(self, refresh_token: str) -> TokenPair:
        """
        Replace the access token (and, when configured, the refresh token) of the pair holding refresh_token.
        Raises InvalidToken or ExpiredToken; a failed call changes nothing.
        """
        if not refresh_token:
            raise InvalidToken()
        with self._database.write_lock, self._database.session() as db:
            row = db.query(models.TokenPair).filter(models.TokenPair.refresh_token == refresh_token).first()
            if row is None or row.revoked:
                raise InvalidToken()
            record = _to_record(row)
            now = self._clock()
            if record.refresh_expired(now):
                raise ExpiredToken()

            changes = {
                "access_token": generate_identifier(),
                "access_expires_at": now + self._access_ttl,
            }
            if self._rotate_refresh_token:
                changes["refresh_token"] = generate_identifier()
                changes["refresh_expires_at"] = now + self._refresh_ttl

            swapped = (
                db.query(models.TokenPair)
                .filter(
                    models.TokenPair.id == row.id,
                    models.TokenPair.refresh_token == refresh_token,
                    models.TokenPair.revoked.is_(False),
                )
                .update(changes, synchronize_session=False)
            )
            if swapped != 1:
                db.rollback()
                raise InvalidToken()
            db.commit()
        return replace(record, **changes)

    def revoke(self, token: str) -> TokenPair | None:
        """Revoke the pair holding token (access or refresh). Returns the pair, or None if unknown."""
        if not token:
            return None
        with self._database.write_lock, self._database.session() as db:
            row = (
                db.query(models.TokenPair)
                .filter(or_(models.TokenPair.access_token == token, models.TokenPair.refresh_token == token))
                .first()
            )
            if row is None:
                return None
            row.revoked = True
            db.commit()
            return _to_record(row)

    def purge_expired(self) -> int:
        """Delete revoked pairs and pairs whose refresh token has expired."""
        now = self._clock()
        with self._database.write_lock, self._database.session() as db:
            removed = (
                db.query(models.TokenPair)
                .filter(or_(models.TokenPair.revoked.is_(True), models.TokenPair.refresh_expires_at < now))
                .delete(synchronize_session=False)
            )
            db.commit()
            return removed
