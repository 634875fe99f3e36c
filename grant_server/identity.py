"""
Identity Store: resolves registered users by id.
Users normally arrive through the external authentication collaborator; add_user exists for seeding.
"""
from sqlalchemy.exc import IntegrityError

from grant_server import models
from grant_server.credentials import generate_identifier
from grant_server.database import Database
from grant_server.errors import UserNotFound, ValidationError
from grant_server.records import User


def _to_record(row: models.User) -> User:
    return User(id=row.id, username=row.username, name=row.name, email=row.email)


class IdentityStore:
    def __init__(self, database: Database):
        self._database = database

    def lookup(self, user_id: str) -> User:
        with self._database.session() as db:
            row = db.get(models.User, user_id) if user_id else None
            if row is None:
                raise UserNotFound()
            return _to_record(row)

    def find_by_username(self, username: str) -> User | None:
        with self._database.session() as db:
            row = db.query(models.User).filter(models.User.username == username).first()
            return _to_record(row) if row else None

    def add_user(
        self,
        username: str,
        *,
        name: str | None = None,
        email: str | None = None,
    ) -> User:
        username = (username or "").strip()
        if not username:
            raise ValidationError("username is required")
        row = models.User(
            id=generate_identifier(),
            username=username,
            name=name,
            email=email,
        )
        with self._database.write_lock, self._database.session() as db:
            db.add(row)
            try:
                db.commit()
            except IntegrityError as e:
                db.rollback()
                raise ValidationError(f"username already registered: {username}") from e
            return _to_record(row)
