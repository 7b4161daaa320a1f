from types import SimpleNamespace
from unittest.mock import patch

import pytest
from sqlalchemy import select

from app.retailflow.core.error_catalog import AppError, ErrorCatalog
from app.retailflow.db.models import AuditEvent, IdempotencyRecord
from app.retailflow.services.audit import AuditEventPayload, AuditService
from app.retailflow.services.idempotency import IdempotencyService, extract_idempotency_key


def _start(db_session, *, key="key-1", body=None):
    return IdempotencyService(db_session).start(
        endpoint="/retailflow/pos/carts/c1/checkout",
        method="POST",
        idempotency_key=key,
        request_hash=IdempotencyService.fingerprint(body or {"tendered_amount": "10.00"}),
    )


def test_fingerprint_ignores_key_order():
    assert IdempotencyService.fingerprint({"a": 1, "b": 2}) == IdempotencyService.fingerprint({"b": 2, "a": 1})


def test_extract_idempotency_key():
    assert extract_idempotency_key({"Idempotency-Key": "abc"}, required=True) == "abc"
    assert extract_idempotency_key({}, required=False) is None
    try:
        extract_idempotency_key({}, required=True)
    except AppError as exc:
        assert exc.error is ErrorCatalog.IDEMPOTENCY_KEY_REQUIRED
    else:
        raise AssertionError("expected IDEMPOTENCY_KEY_REQUIRED")


def test_in_progress_request_is_reported(db_session):
    context, replay = _start(db_session)
    assert context is not None and replay is None

    try:
        _start(db_session)
    except AppError as exc:
        assert exc.error is ErrorCatalog.IDEMPOTENCY_REQUEST_IN_PROGRESS
    else:
        raise AssertionError("expected IDEMPOTENCY_REQUEST_IN_PROGRESS")


def test_stored_failure_is_replayed(db_session):
    context, _ = _start(db_session)
    context.record_failure(status_code=422, response_body={"code": "INSUFFICIENT_PAYMENT"})

    context, replay = _start(db_session)
    assert context is None
    assert replay.status_code == 422
    assert replay.response_body == {"code": "INSUFFICIENT_PAYMENT"}

    record = db_session.execute(select(IdempotencyRecord)).scalars().one()
    assert record.state == "failed"


def test_audit_event_is_written(db_session):
    AuditService(db_session).record_event(
        AuditEventPayload(
            user_id=None,
            trace_id="trace-1",
            actor="boss",
            actor_role="ADMIN",
            action="catalog.product.create",
            entity_type="product",
            entity_id="p-1",
            before=None,
            after={"name": "Pen"},
            metadata=None,
            result="success",
        )
    )

    event = db_session.execute(select(AuditEvent)).scalars().one()
    assert event.after_payload == {"name": "Pen"}
    assert event.event_metadata == {"actor_role": "ADMIN"}


def test_audit_failures_do_not_propagate(db_session):
    service = AuditService(db_session)
    with patch.object(service.repo, "create", side_effect=RuntimeError("disk full")):
        service.record_event(
            AuditEventPayload(
                user_id=None,
                trace_id=None,
                actor="boss",
                action="catalog.product.create",
                entity_type="product",
                entity_id=None,
                before=None,
                after=None,
                metadata=None,
                result="success",
            )
        )
    assert db_session.execute(select(AuditEvent)).scalars().all() == []


def test_audit_payload_for_user_carries_identity_and_trace(db_session):
    request = SimpleNamespace(state=SimpleNamespace(trace_id="trace-9"))
    user = SimpleNamespace(id="5b0f3f4e-8d1c-4f51-9d35-2f1c2b7a9e10", username="cashier", role="WORKER")

    payload = AuditEventPayload.for_user(request, user, action="pos.sale.commit", entity_type="sale", result="failure")
    assert payload.actor == "cashier"
    assert payload.user_id == user.id
    assert payload.actor_role == "WORKER"
    assert payload.trace_id == "trace-9"

    AuditService(db_session).record_event(payload)
    event = db_session.execute(select(AuditEvent)).scalars().one()
    assert event.result == "failure"
    assert event.event_metadata == {"actor_role": "WORKER"}


def test_audit_rejects_unknown_result(db_session):
    with pytest.raises(ValueError):
        AuditService(db_session).record_event(
            AuditEventPayload(actor="boss", action="stock.adjust", entity_type="product", result="maybe")
        )
