"""
Code Issuer: one-time authorization codes bound to (client, user).

A code is redeemable exactly once. Redemption flips consumed with a conditional
UPDATE inside the database write lock, so concurrent callers presenting the same
code race to a single winner; everyone else sees CodeAlreadyUsed.
"""
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime, timedelta

from sqlalchemy import or_

from grant_server import models
from grant_server.config import CODE_TTL_SECONDS
from grant_server.credentials import generate_identifier, utc_now
from grant_server.database import Database
from grant_server.errors import (
    ClientNotFound,
    CodeAlreadyUsed,
    ExpiredCode,
    InvalidCode,
    UserNotFound,
    ValidationError,
)
from grant_server.records import AuthorizationCode, as_utc


def _to_record(row: models.AuthorizationCode) -> AuthorizationCode:
    return AuthorizationCode(
        code=row.code,
        client_id=row.client_id,
        user_id=row.user_id,
        redirect_uri=row.redirect_uri,
        issued_at=as_utc(row.issued_at),
        expires_at=as_utc(row.expires_at),
        consumed=row.consumed,
    )


class CodeIssuer:
    def __init__(
        self,
        database: Database,
        *,
        code_ttl: int = CODE_TTL_SECONDS,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._database = database
        self._code_ttl = timedelta(seconds=code_ttl)
        self._clock = clock

    def issue(self, client_id: str, user_id: str, redirect_uri: str | None = None) -> AuthorizationCode:
        """Mint a code for a registered client and a known user."""
        now = self._clock()
        with self._database.write_lock, self._database.session() as db:
            client = db.get(models.Client, client_id) if client_id else None
            if client is None:
                raise ClientNotFound()
            if not user_id or db.get(models.User, user_id) is None:
                raise UserNotFound()

            allowed = client.get_redirect_uris_list()
            if redirect_uri is None:
                redirect_uri = allowed[0]
            elif redirect_uri not in allowed:
                raise ValidationError("redirect_uri not allowed")

            row = models.AuthorizationCode(
                code=generate_identifier(),
                client_id=client_id,
                user_id=user_id,
                redirect_uri=redirect_uri,
                issued_at=now,
                expires_at=now + self._code_ttl,
                consumed=False,
            )
            db.add(row)
            db.commit()
            return _to_record(row)

    def lookup(self, code: str) -> AuthorizationCode | None:
        with self._database.session() as db:
            row = db.get(models.AuthorizationCode, code) if code else None
            return _to_record(row) if row else None

    def redeem(self, code: str) -> AuthorizationCode:
        """
        Consume the code and return it with its (client_id, user_id) binding.
        Raises InvalidCode, ExpiredCode or CodeAlreadyUsed; a failed call changes nothing.
        """
        if not code:
            raise InvalidCode()
        with self._database.write_lock, self._database.session() as db:
            row = db.get(models.AuthorizationCode, code)
            if row is None:
                raise InvalidCode()
            record = _to_record(row)
            if record.expired(self._clock()):
                raise ExpiredCode()
            if record.consumed:
                raise CodeAlreadyUsed()

            swapped = (
                db.query(models.AuthorizationCode)
                .filter(
                    models.AuthorizationCode.code == code,
                    models.AuthorizationCode.consumed.is_(False),
                )
                .update({models.AuthorizationCode.consumed: True}, synchronize_session=False)
            )
            if swapped != 1:
                db.rollback()
                raise CodeAlreadyUsed()
            db.commit()
        return replace(record, consumed=True)

    def purge_expired(self) -> int:
        """Delete consumed and expired codes. Returns the number removed."""
        now = self._clock()
        with self._database.write_lock, self._database.session() as db:
            removed = (
                db.query(models.AuthorizationCode)
                .filter(
                    or_(
                        models.AuthorizationCode.consumed.is_(True),
                        models.AuthorizationCode.expires_at < now,
                    )
                )
                .delete(synchronize_session=False)
            )
            db.commit()
            return removed
