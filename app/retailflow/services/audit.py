import logging
from dataclasses import dataclass
from datetime import datetime

from app.retailflow.db.models import AuditEvent
from app.retailflow.repos.audit import AuditRepository

logger = logging.getLogger(__name__)

AUDIT_RESULTS = ("success", "failure")


@dataclass
class AuditEventPayload:
    actor: str
    action: str
    entity_type: str
    result: str = "success"
    user_id: str | None = None
    trace_id: str | None = None
    actor_role: str | None = None
    entity_id: str | None = None
    before: dict | None = None
    after: dict | None = None
    metadata: dict | None = None

    @classmethod
    def for_user(cls, request, user, **fields) -> "AuditEventPayload":
        """Payload attributed to an authenticated store user and the current trace."""
        return cls(
            actor=user.username,
            user_id=str(user.id),
            actor_role=user.role,
            trace_id=getattr(request.state, "trace_id", "") or None,
            **fields,
        )


class AuditService:
    """Writes audit rows for catalog, stock, POS and account changes.

    A failed write is rolled back and logged; the request that triggered it still succeeds.
    """

    def __init__(self, db):
        self.repo = AuditRepository(db)

    def record_event(self, payload: AuditEventPayload) -> None:
        if payload.result not in AUDIT_RESULTS:
            raise ValueError(f"unknown audit result: {payload.result!r}")
        metadata = dict(payload.metadata or {})
        if payload.actor_role:
            metadata["actor_role"] = payload.actor_role
        event = AuditEvent(
            user_id=payload.user_id,
            trace_id=payload.trace_id,
            actor=payload.actor,
            action=payload.action,
            entity_type=payload.entity_type,
            entity_id=payload.entity_id,
            before_payload=payload.before,
            after_payload=payload.after,
            event_metadata=metadata or None,
            result=payload.result,
            created_at=datetime.utcnow(),
        )
        try:
            self.repo.create(event)
        except Exception:
            self.repo.db.rollback()
            logger.exception(
                "Failed to write audit event %s",
                payload.action,
                extra={"trace_id": payload.trace_id, "entity_id": payload.entity_id},
            )
