"""
Authorization Server: client registration, authorization codes, token exchange/refresh,
revocation and the protected userinfo resource.
Port 9000.
"""
import asyncio
import contextlib
import logging
from collections.abc import Callable
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI
from sqlalchemy.exc import SQLAlchemyError

from grant_server.audit import AuditHook
from grant_server.audit import router as audit_router
from grant_server.authorization import AuthorizationEngine, build_authorization_engine
from grant_server.authorize import router as authorize_router
from grant_server.config import DATABASE_URL, SWEEP_INTERVAL_SECONDS
from grant_server.credentials import utc_now
from grant_server.database import Database
from grant_server.register import router as register_router
from grant_server.revoke import router as revoke_router
from grant_server.seed import seed_from_env
from grant_server.token_endpoint import router as token_router
from grant_server.userinfo import router as userinfo_router


logger = logging.getLogger(__name__)


async def sweep_periodically(authz: AuthorizationEngine, interval: float) -> None:
    """Remove dead codes and token pairs every interval seconds, off the event loop."""
    while True:
        await asyncio.sleep(interval)
        try:
            codes, pairs = await asyncio.to_thread(authz.sweep_expired)
        except SQLAlchemyError:
            logger.exception("Expiry sweep failed; retrying in %s seconds", interval)
            continue
        if codes or pairs:
            logger.info("Swept %d authorization codes and %d token pairs", codes, pairs)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables, seed the user from env and start the sweeper on startup; stop it and release the engine on shutdown."""
    database: Database = app.state.database
    database.init_db()
    seed_from_env(app.state.authz.identities)
    sweeper = None
    if SWEEP_INTERVAL_SECONDS > 0:
        sweeper = asyncio.create_task(sweep_periodically(app.state.authz, SWEEP_INTERVAL_SECONDS))
    yield
    if sweeper is not None:
        sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sweeper
    database.dispose()


def create_app(
    database_url: str | None = None,
    *,
    clock: Callable[[], datetime] = utc_now,
    **engine_options,
) -> FastAPI:
    """
    Build the stores once, inject them into an AuthorizationEngine and expose it on app.state.
    engine_options are passed to build_authorization_engine (TTLs, rotate_refresh_token).
    """
    database = Database.from_url(database_url or DATABASE_URL)
    authz = build_authorization_engine(database, clock=clock, event_hook=AuditHook(database), **engine_options)

    app = FastAPI(title="Grant Server", version="0.1.0", lifespan=lifespan)
    app.state.database = database
    app.state.authz = authz
    app.include_router(register_router, tags=["register"])
    app.include_router(authorize_router, tags=["authorize"])
    app.include_router(token_router, tags=["token"])
    app.include_router(userinfo_router, tags=["userinfo"])
    app.include_router(revoke_router, tags=["revoke"])
    app.include_router(audit_router)

    @app.get("/health")
    def health():
        """Health check endpoint."""
        return {"status": "ok", "service": "grant_server"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "grant_server.main:app",
        host="127.0.0.1",
        port=9000,
        reload=True,
    )
