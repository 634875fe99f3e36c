"""
Audit logging. Security-relevant events only; no tokens, codes, secrets or request bodies.
AuditHook is the side-channel the AuthorizationEngine reports to; GET /audit lists recent events.
"""
import logging

from fastapi import APIRouter, Depends

from grant_server.authorization import OUTCOME_SUCCESS, AuthEvent
from grant_server.database import Database
from grant_server.dependencies import get_database
from grant_server.models import AuditLog

logger = logging.getLogger(__name__)


def log_audit(database: Database, event: AuthEvent) -> None:
    """Append one audit record."""
    with database.write_lock, database.session() as db:
        db.add(
            AuditLog(
                event_type=event.event_type,
                client_id=event.client_id,
                user_id=event.user_id,
                outcome=event.outcome,
                error=event.error,
            )
        )
        db.commit()


class AuditHook:
    """Event hook: log each event and persist it to the audit_log table."""

    def __init__(self, database: Database):
        self._database = database

    def __call__(self, event: AuthEvent) -> None:
        level = logging.INFO if event.outcome == OUTCOME_SUCCESS else logging.WARNING
        logger.log(
            level,
            "%s outcome=%s client_id=%s user_id=%s error=%s",
            event.event_type,
            event.outcome,
            event.client_id,
            event.user_id,
            event.error,
        )
        log_audit(self._database, event)


def query_audit_logs(
    database: Database,
    *,
    limit: int = 100,
    event_type: str | None = None,
    outcome: str | None = None,
    client_id: str | None = None,
) -> list[dict]:
    """Query audit logs with optional filters. Most recent first."""
    with database.session() as db:
        q = db.query(AuditLog).order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
        if event_type:
            q = q.filter(AuditLog.event_type == event_type)
        if outcome:
            q = q.filter(AuditLog.outcome == outcome)
        if client_id:
            q = q.filter(AuditLog.client_id == client_id)
        rows = q.limit(min(max(1, limit), 500)).all()
        return [
            {
                "created_at": r.created_at.isoformat() if r.created_at else None,
                "event_type": r.event_type,
                "client_id": r.client_id,
                "user_id": r.user_id,
                "outcome": r.outcome,
                "error": r.error,
            }
            for r in rows
        ]


router = APIRouter(tags=["audit"])


@router.get("/audit")
def list_audit_logs(
    limit: int = 100,
    event_type: str | None = None,
    outcome: str | None = None,
    client_id: str | None = None,
    database: Database = Depends(get_database),
):
    """List recent audit events. No tokens or secrets. Most recent first."""
    return query_audit_logs(database, limit=limit, event_type=event_type, outcome=outcome, client_id=client_id)
