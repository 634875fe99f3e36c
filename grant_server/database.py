"""
Database engine, session factory and write lock for the auth server.
Built once at startup and injected into the stores; tests build a fresh one each.
"""
import threading

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from grant_server.models import Base


def create_db_engine(database_url: str) -> Engine:
    """SQLite in-memory needs StaticPool so all sessions share the same DB; file SQLite needs check_same_thread=False."""
    if database_url.startswith("sqlite:///:memory:") or database_url == "sqlite://":
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}
    return create_engine(database_url, connect_args=connect_args)


class Database:
    """
    Engine + session factory shared by every store.

    write_lock brackets every mutating transaction. Combined with conditional
    UPDATEs in the stores it gives a single winner when two callers race on the
    same code or refresh token, and it keeps writers off the shared connection
    used for in-memory SQLite.
    """

    def __init__(self, engine: Engine):
        self.engine = engine
        self.session_factory = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)
        self.write_lock = threading.Lock()

    @classmethod
    def from_url(cls, database_url: str) -> "Database":
        return cls(create_db_engine(database_url))

    def session(self) -> Session:
        return self.session_factory()

    def init_db(self) -> None:
        """Create all tables."""
        Base.metadata.create_all(bind=self.engine)

    def dispose(self) -> None:
        self.engine.dispose()
