from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from app.retailflow.db.models import AuditEvent, Product, Sale, StockMovement
from app.retailflow.schemas.errors import ApiErrorResponse, ApiValidationErrorResponse
from app.retailflow.services.checkout import CheckoutService
from tests.pos_helpers import auth_headers, checkout, create_product, create_user, login, open_cart, scan


def _setup(client, db_session):
    create_user(db_session, username="cashier")
    first = create_product(db_session, barcode="111", price="10.00", quantity=10)
    second = create_product(db_session, barcode="222", price="5.00", quantity=5)
    token = login(client, "cashier")
    cart = open_cart(client, token)
    return token, cart, first, second


def _fill(client, token, cart_id):
    for barcode in ("111", "111", "222"):
        response = scan(client, token, cart_id, barcode)
        assert response.status_code == 200, response.text
    return response.json()


def test_scan_builds_cart_with_totals(client, db_session):
    token, cart, _, _ = _setup(client, db_session)
    assert cart["state"] == "IDLE"
    assert cart["cached_products"] == 2

    payload = _fill(client, token, cart["cart_id"])
    assert payload["state"] == "BUILDING"
    assert len(payload["lines"]) == 2
    assert Decimal(payload["totals"]["subtotal"]) == Decimal("25.00")
    assert Decimal(payload["totals"]["tax"]) == Decimal("2.00")
    assert Decimal(payload["totals"]["total"]) == Decimal("27.00")


def test_scan_unknown_and_out_of_stock(client, db_session):
    create_user(db_session, username="cashier")
    create_product(db_session, barcode="000", quantity=0)
    token = login(client, "cashier")
    cart = open_cart(client, token)

    response = scan(client, token, cart["cart_id"], "999")
    assert response.status_code == 404
    assert response.json()["code"] == "PRODUCT_NOT_FOUND"

    response = scan(client, token, cart["cart_id"], "000")
    assert response.status_code == 409
    assert response.json()["code"] == "OUT_OF_STOCK"


def test_checkout_commits_sale_and_decrements_stock(client, db_session):
    token, cart, first, second = _setup(client, db_session)
    _fill(client, token, cart["cart_id"])

    response = checkout(client, token, cart["cart_id"], "30.00")
    assert response.status_code == 200, response.text
    receipt = response.json()
    assert Decimal(receipt["total"]) == Decimal("27.00")
    assert Decimal(receipt["change"]) == Decimal("3.00")
    assert receipt["transaction_id"] == cart["transaction_id"]
    assert receipt["next_transaction_id"] != cart["transaction_id"]
    assert [line["barcode"] for line in receipt["lines"]] == ["111", "222"]

    db_session.expire_all()
    assert db_session.get(Product, first.id).quantity == 8
    assert db_session.get(Product, second.id).quantity == 4

    movements = db_session.execute(select(StockMovement).where(StockMovement.movement_type == "sale")).scalars().all()
    assert sorted(movement.quantity for movement in movements) == [-2, -1]
    assert all(str(movement.sale_id) == receipt["sale_id"] for movement in movements)

    response = client.get(f"/retailflow/pos/carts/{cart['cart_id']}", headers=auth_headers(token))
    payload = response.json()
    assert payload["state"] == "IDLE"
    assert payload["lines"] == []
    assert payload["transaction_id"] == receipt["next_transaction_id"]

    events = db_session.execute(select(AuditEvent).where(AuditEvent.action == "pos.sale.commit")).scalars().all()
    assert len(events) == 1
    assert events[0].result == "success"


def test_checkout_insufficient_payment_keeps_cart(client, db_session):
    token, cart, first, _ = _setup(client, db_session)
    _fill(client, token, cart["cart_id"])

    response = checkout(client, token, cart["cart_id"], "20.00")
    assert response.status_code == 422
    assert response.json()["code"] == "INSUFFICIENT_PAYMENT"

    response = client.get(f"/retailflow/pos/carts/{cart['cart_id']}", headers=auth_headers(token))
    assert response.json()["state"] == "BUILDING"
    assert len(response.json()["lines"]) == 2

    db_session.expire_all()
    assert db_session.get(Product, first.id).quantity == 10
    assert db_session.execute(select(Sale)).scalars().all() == []


def test_checkout_empty_cart(client, db_session):
    token, cart, _, _ = _setup(client, db_session)

    response = checkout(client, token, cart["cart_id"], "10.00")
    assert response.status_code == 422
    assert response.json()["code"] == "EMPTY_CART"


def test_checkout_requires_idempotency_key(client, db_session):
    token, cart, _, _ = _setup(client, db_session)
    _fill(client, token, cart["cart_id"])

    response = client.post(
        f"/retailflow/pos/carts/{cart['cart_id']}/checkout",
        headers=auth_headers(token),
        json={"tendered_amount": "30.00"},
    )
    assert response.status_code == 400
    assert response.json()["code"] == "IDEMPOTENCY_KEY_REQUIRED"


def test_checkout_replay_returns_same_receipt(client, db_session):
    token, cart, first, _ = _setup(client, db_session)
    _fill(client, token, cart["cart_id"])

    response = checkout(client, token, cart["cart_id"], "30.00", key="sale-1")
    assert response.status_code == 200
    sale_id = response.json()["sale_id"]

    replay = checkout(client, token, cart["cart_id"], "30.00", key="sale-1")
    assert replay.status_code == 200
    assert replay.headers["X-Idempotency-Result"] == "IDEMPOTENCY_REPLAY"
    assert replay.json()["sale_id"] == sale_id

    db_session.expire_all()
    assert db_session.get(Product, first.id).quantity == 8
    assert len(db_session.execute(select(Sale)).scalars().all()) == 1

    conflict = checkout(client, token, cart["cart_id"], "50.00", key="sale-1")
    assert conflict.status_code == 409
    assert conflict.json()["code"] == "IDEMPOTENCY_KEY_REUSED_WITH_DIFFERENT_PAYLOAD"


def test_cart_of_another_worker_is_not_found(client, db_session):
    token, cart, _, _ = _setup(client, db_session)
    create_user(db_session, username="other")
    other_token = login(client, "other")

    response = scan(client, other_token, cart["cart_id"], "111")
    assert response.status_code == 404
    assert response.json()["code"] == "CART_NOT_FOUND"

    response = client.get("/retailflow/pos/carts", headers=auth_headers(other_token))
    assert response.json() == []


def test_update_and_remove_lines(client, db_session):
    token, cart, first, _ = _setup(client, db_session)
    _fill(client, token, cart["cart_id"])
    line_id = str(first.id)

    response = client.patch(
        f"/retailflow/pos/carts/{cart['cart_id']}/lines/{line_id}",
        headers=auth_headers(token),
        json={"quantity": 5},
    )
    assert response.status_code == 200
    assert Decimal(response.json()["totals"]["subtotal"]) == Decimal("55.00")

    response = client.delete(f"/retailflow/pos/carts/{cart['cart_id']}/lines/{line_id}", headers=auth_headers(token))
    assert response.status_code == 200
    assert [line["barcode"] for line in response.json()["lines"]] == ["222"]

    response = client.post(f"/retailflow/pos/carts/{cart['cart_id']}/clear", headers=auth_headers(token))
    assert response.json()["lines"] == []
    assert response.json()["transaction_id"] != cart["transaction_id"]


def test_refresh_products_picks_up_new_stock(client, db_session):
    create_user(db_session, username="cashier")
    token = login(client, "cashier")
    cart = open_cart(client, token)

    create_product(db_session, barcode="333", quantity=2)
    assert scan(client, token, cart["cart_id"], "333").json()["code"] == "PRODUCT_NOT_FOUND"

    response = client.post(f"/retailflow/pos/carts/{cart['cart_id']}/refresh-products", headers=auth_headers(token))
    assert response.json()["cached_products"] == 1
    assert scan(client, token, cart["cart_id"], "333").status_code == 200


def test_discard_cart(client, db_session):
    token, cart, _, _ = _setup(client, db_session)

    response = client.delete(f"/retailflow/pos/carts/{cart['cart_id']}", headers=auth_headers(token))
    assert response.status_code == 204

    response = client.get(f"/retailflow/pos/carts/{cart['cart_id']}", headers=auth_headers(token))
    assert response.status_code == 404


def test_sales_history(client, db_session):
    token, cart, _, _ = _setup(client, db_session)
    _fill(client, token, cart["cart_id"])
    sale_id = checkout(client, token, cart["cart_id"], "27.00").json()["sale_id"]

    response = client.get("/retailflow/pos/sales", headers=auth_headers(token))
    assert response.status_code == 200
    rows = response.json()["rows"]
    assert [row["header"]["id"] for row in rows] == [sale_id]
    assert Decimal(rows[0]["header"]["change_amount"]) == Decimal("0")

    response = client.get(f"/retailflow/pos/sales/{sale_id}", headers=auth_headers(token))
    assert response.status_code == 200
    assert [line["quantity"] for line in response.json()["lines"]] == [2, 1]

    response = client.get("/retailflow/pos/sales/00000000-0000-0000-0000-000000000000", headers=auth_headers(token))
    assert response.status_code == 404
    assert response.json()["code"] == "SALE_NOT_FOUND"


def test_checkout_database_failure_returns_503_and_fails_cart(client, db_session, monkeypatch):
    token, cart, first, _ = _setup(client, db_session)
    _fill(client, token, cart["cart_id"])

    def broken_decrement(self, sale, line, cashier_id, now):
        raise OperationalError("UPDATE products", {}, Exception("disk I/O error"))

    monkeypatch.setattr(CheckoutService, "_decrement", broken_decrement)

    response = checkout(client, token, cart["cart_id"], "30.00")
    assert response.status_code == 503
    payload = response.json()
    assert payload["code"] == "PERSISTENCE_ERROR"
    ApiErrorResponse.model_validate(payload)
    assert payload["details"]["transaction_id"] == cart["transaction_id"]

    db_session.expire_all()
    assert db_session.get(Product, first.id).quantity == 10
    assert db_session.execute(select(Sale)).scalars().all() == []
    assert db_session.execute(select(StockMovement)).scalars().all() == []

    events = db_session.execute(select(AuditEvent).where(AuditEvent.action == "pos.sale.commit")).scalars().all()
    assert len(events) == 1
    assert events[0].result == "failure"
    assert events[0].event_metadata["error_code"] == "PERSISTENCE_ERROR"
    assert events[0].event_metadata["transaction_id"] == cart["transaction_id"]

    response = client.get(f"/retailflow/pos/carts/{cart['cart_id']}", headers=auth_headers(token))
    assert response.json()["state"] == "FAILED"

    response = client.post(f"/retailflow/pos/carts/{cart['cart_id']}/clear", headers=auth_headers(token))
    assert response.status_code == 200
    assert response.json()["state"] == "IDLE"


def test_line_quantity_is_bounded(client, db_session):
    token, cart, _, _ = _setup(client, db_session)
    payload = _fill(client, token, cart["cart_id"])
    line_id = payload["lines"][0]["line_id"]

    response = client.patch(
        f"/retailflow/pos/carts/{cart['cart_id']}/lines/{line_id}",
        headers=auth_headers(token),
        json={"quantity": 10**19},
    )
    assert response.status_code == 422
    assert response.json()["code"] == "VALIDATION_ERROR"
    assert response.json()["details"]["errors"][0]["field"] == "quantity"
    ApiValidationErrorResponse.model_validate(response.json())

    response = client.get(f"/retailflow/pos/carts/{cart['cart_id']}", headers=auth_headers(token))
    assert response.json()["state"] == "BUILDING"
    assert response.json()["lines"][0]["quantity"] == 2
