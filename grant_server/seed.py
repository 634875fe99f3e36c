"""
Seed users from environment. No hardcoded credentials.
Optional: set OAUTH_SEED_USER (+ OAUTH_SEED_NAME, OAUTH_SEED_EMAIL).
Clients are not seeded: their credentials only exist through POST /register.
"""
import logging
import os

from grant_server.identity import IdentityStore
from grant_server.records import User

logger = logging.getLogger(__name__)


def seed_from_env(identities: IdentityStore) -> User | None:
    """Create the seed user if configured and missing. Returns the seed user, if any."""
    seed_user = (os.environ.get("OAUTH_SEED_USER") or "").strip()
    if not seed_user:
        return None
    existing = identities.find_by_username(seed_user)
    if existing is not None:
        logger.debug("User already exists: %s", seed_user)
        return existing
    user = identities.add_user(
        seed_user,
        name=os.environ.get("OAUTH_SEED_NAME") or None,
        email=os.environ.get("OAUTH_SEED_EMAIL") or None,
    )
    logger.info("Seeded user: %s (id=%s)", user.username, user.id)
    return user
