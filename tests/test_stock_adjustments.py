from sqlalchemy import select

from app.retailflow.db.models import AuditEvent, Product
from tests.pos_helpers import auth_headers, create_product, create_user, login


def _admin(client, db_session):
    create_user(db_session, username="boss", role="ADMIN")
    return login(client, "boss")


def _adjust(client, token, product_id, adjustment, reason="Recount"):
    return client.post(
        "/retailflow/stock/adjustments",
        headers=auth_headers(token),
        json={"product_id": str(product_id), "adjustment": adjustment, "reason": reason},
    )


def test_adjustment_in_records_movement(client, db_session):
    token = _admin(client, db_session)
    product = create_product(db_session, barcode="111", quantity=5)

    response = _adjust(client, token, product.id, 10, reason="Delivery")
    assert response.status_code == 201
    payload = response.json()
    assert payload["product"]["quantity"] == 15
    assert payload["product"]["status"] == "in-stock"
    movement = payload["movement"]
    assert movement["movement_type"] == "in"
    assert movement["quantity_before"] == 5
    assert movement["quantity_after"] == 15
    assert movement["reason"] == "Delivery"

    events = db_session.execute(select(AuditEvent).where(AuditEvent.action == "stock.adjust")).scalars().all()
    assert len(events) == 1


def test_negative_adjustment_clamps_at_zero(client, db_session):
    token = _admin(client, db_session)
    product = create_product(db_session, barcode="111", quantity=3)

    response = _adjust(client, token, product.id, -10, reason="Damaged")
    assert response.status_code == 201
    payload = response.json()
    assert payload["product"]["quantity"] == 0
    assert payload["product"]["status"] == "out-of-stock"
    assert payload["movement"]["movement_type"] == "adjustment"
    assert payload["movement"]["quantity"] == -3

    db_session.expire_all()
    assert db_session.get(Product, product.id).quantity == 0


def test_adjustment_validation(client, db_session):
    token = _admin(client, db_session)
    product = create_product(db_session, barcode="111", quantity=3)

    response = _adjust(client, token, product.id, 0)
    assert response.status_code == 422
    assert response.json()["code"] == "VALIDATION_ERROR"

    response = _adjust(client, token, product.id, 1, reason="   ")
    assert response.status_code == 422

    response = _adjust(client, token, "00000000-0000-0000-0000-000000000000", 1)
    assert response.status_code == 404
    assert response.json()["code"] == "PRODUCT_NOT_FOUND"


def test_worker_cannot_adjust_stock(client, db_session):
    create_user(db_session, username="worker")
    token = login(client, "worker")
    product = create_product(db_session, barcode="111", quantity=3)

    response = _adjust(client, token, product.id, 1)
    assert response.status_code == 403
    assert response.json()["code"] == "PERMISSION_DENIED"


def test_movements_overview_and_alerts(client, db_session):
    token = _admin(client, db_session)
    healthy = create_product(db_session, barcode="111", quantity=50)
    create_product(db_session, barcode="222", quantity=4)
    create_product(db_session, barcode="333", quantity=0)
    create_product(db_session, barcode="444", quantity=8)
    _adjust(client, token, healthy.id, -5)

    response = client.get("/retailflow/stock/movements", headers=auth_headers(token), params={"product_id": str(healthy.id)})
    movements = response.json()["movements"]
    assert len(movements) == 1
    assert movements[0]["quantity_after"] == 45

    response = client.get("/retailflow/stock/overview", headers=auth_headers(token))
    overview = response.json()
    assert (overview["in_stock"], overview["low_stock"], overview["out_of_stock"], overview["total"]) == (1, 2, 1, 4)

    response = client.get("/retailflow/stock/alerts", headers=auth_headers(token))
    alerts = {row["barcode"]: (row["alert_type"], row["severity"]) for row in response.json()["alerts"]}
    assert alerts == {
        "333": ("out-of-stock", "high"),
        "222": ("low-stock", "medium"),
        "444": ("low-stock", "low"),
    }
