"""
Pytest configuration for grant_server. In-memory SQLite so tests don't touch the filesystem,
cheap bcrypt rounds, and no background sweeper.
"""
import os

os.environ["AUTH_DATABASE_URL"] = "sqlite:///:memory:"
os.environ["OAUTH_SECRET_HASH_ROUNDS"] = "4"
os.environ["OAUTH_SWEEP_INTERVAL_SECONDS"] = "0"
# Avoid seed_from_env picking up a developer's environment during tests
for _name in ("OAUTH_SEED_USER", "OAUTH_SEED_NAME", "OAUTH_SEED_EMAIL"):
    os.environ.pop(_name, None)

from datetime import datetime, timedelta, timezone  # noqa: E402

import pytest  # noqa: E402

from grant_server.authorization import build_authorization_engine  # noqa: E402
from grant_server.database import Database  # noqa: E402

REDIRECT_URI = "https://x/cb"


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2030, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def database():
    db = Database.from_url("sqlite:///:memory:")
    db.init_db()
    yield db
    db.dispose()


@pytest.fixture
def events():
    return []


@pytest.fixture
def authz(database, clock, events):
    return build_authorization_engine(
        database,
        code_ttl=60,
        access_ttl=600,
        refresh_ttl=3600,
        clock=clock,
        event_hook=events.append,
    )


@pytest.fixture
def user(authz):
    return authz.identities.add_user("alice", name="Alice", email="alice@example.com")


@pytest.fixture
def registered(authz):
    return authz.register("demo-app", [REDIRECT_URI])
