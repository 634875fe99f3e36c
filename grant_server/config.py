"""
Authorization Server configuration.
No secrets in this file; credentials come from env or DB.
"""
import os

# SQLite DB for development; any SQLAlchemy URL works
DATABASE_URL = os.environ.get("AUTH_DATABASE_URL", "sqlite:///./grant_server.db")

# Authorization code lifetime (seconds). Short-lived, at most a few minutes.
CODE_TTL_SECONDS = int(os.environ.get("OAUTH_CODE_TTL_SECONDS", "60"))

# Access token lifetime (seconds)
ACCESS_TOKEN_EXPIRES = int(os.environ.get("OAUTH_ACCESS_TOKEN_EXPIRES", "3600"))

# Refresh token lifetime (seconds). Long-lived for obtaining new access tokens without re-auth.
REFRESH_TOKEN_EXPIRES = int(os.environ.get("OAUTH_REFRESH_TOKEN_EXPIRES", str(14 * 24 * 3600)))

# Issue a new refresh token on every refresh grant (old one stops working immediately)
ROTATE_REFRESH_TOKEN = os.environ.get("OAUTH_ROTATE_REFRESH_TOKEN", "1").strip().lower() in ("1", "true", "yes")

# bcrypt work factor for client secrets
SECRET_HASH_ROUNDS = int(os.environ.get("OAUTH_SECRET_HASH_ROUNDS", "12"))

# Header set by the upstream login/session middleware with the authenticated user id
AUTHENTICATED_USER_HEADER = os.environ.get("OAUTH_AUTHENTICATED_USER_HEADER", "X-Authenticated-User")

# Background sweep of expired/consumed codes and dead token pairs (seconds); 0 disables
SWEEP_INTERVAL_SECONDS = int(os.environ.get("OAUTH_SWEEP_INTERVAL_SECONDS", "300"))
