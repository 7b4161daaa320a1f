from decimal import Decimal

from sqlalchemy import select

from app.retailflow.db.models import AuditEvent, StockMovement
from tests.pos_helpers import auth_headers, create_user, login


def _admin(client, db_session):
    create_user(db_session, username="boss", role="ADMIN")
    return login(client, "boss")


def _create_product(client, token, **overrides):
    payload = {"barcode": "4006381333931", "name": "Ballpoint pen", "quantity": 20, "selling_price": "1.25"}
    payload.update(overrides)
    return client.post("/retailflow/products", headers=auth_headers(token), json=payload)


def test_create_product_derives_status_and_records_initial_stock(client, db_session):
    token = _admin(client, db_session)

    response = _create_product(client, token, quantity=4)
    assert response.status_code == 201
    product = response.json()["product"]
    assert product["status"] == "low-stock"
    assert Decimal(product["selling_price"]) == Decimal("1.25")

    movement = db_session.execute(select(StockMovement)).scalars().one()
    assert movement.movement_type == "in"
    assert movement.quantity == 4
    assert movement.reason == "Initial stock"

    events = db_session.execute(select(AuditEvent).where(AuditEvent.action == "catalog.product.create")).scalars().all()
    assert len(events) == 1


def test_create_product_statuses(client, db_session):
    token = _admin(client, db_session)

    assert _create_product(client, token, barcode="1", quantity=0).json()["product"]["status"] == "out-of-stock"
    assert _create_product(client, token, barcode="2", quantity=10).json()["product"]["status"] == "low-stock"
    assert _create_product(client, token, barcode="3", quantity=11).json()["product"]["status"] == "in-stock"


def test_duplicate_barcode_is_rejected(client, db_session):
    token = _admin(client, db_session)
    _create_product(client, token)

    response = _create_product(client, token, name="Other")
    assert response.status_code == 409
    assert response.json()["code"] == "BARCODE_ALREADY_EXISTS"


def test_negative_values_are_rejected(client, db_session):
    token = _admin(client, db_session)

    response = _create_product(client, token, selling_price="-1")
    assert response.status_code == 422
    assert response.json()["code"] == "VALIDATION_ERROR"

    response = _create_product(client, token, quantity=-3)
    assert response.status_code == 422


def test_unknown_category_is_rejected(client, db_session):
    token = _admin(client, db_session)

    response = _create_product(client, token, category_id="00000000-0000-0000-0000-000000000000")
    assert response.status_code == 404
    assert response.json()["code"] == "CATEGORY_NOT_FOUND"


def test_list_and_search_products(client, db_session):
    token = _admin(client, db_session)
    category = client.post("/retailflow/categories", headers=auth_headers(token), json={"name": "Stationery"}).json()
    _create_product(client, token, barcode="100", name="Blue pen", category_id=category["category"]["id"])
    _create_product(client, token, barcode="200", name="Stapler", quantity=0)

    response = client.get("/retailflow/products", headers=auth_headers(token), params={"q": "pen"})
    assert [row["name"] for row in response.json()["products"]] == ["Blue pen"]

    response = client.get("/retailflow/products", headers=auth_headers(token), params={"q": "stationery"})
    assert [row["category_name"] for row in response.json()["products"]] == ["Stationery"]

    response = client.get("/retailflow/products", headers=auth_headers(token), params={"status": "out-of-stock"})
    assert response.json()["total"] == 1
    assert response.json()["products"][0]["barcode"] == "200"


def test_update_product(client, db_session):
    token = _admin(client, db_session)
    product_id = _create_product(client, token).json()["product"]["id"]

    response = client.patch(
        f"/retailflow/products/{product_id}",
        headers=auth_headers(token),
        json={"name": "Gel pen", "selling_price": "1.50"},
    )
    assert response.status_code == 200
    product = response.json()["product"]
    assert product["name"] == "Gel pen"
    assert Decimal(product["selling_price"]) == Decimal("1.50")
    assert product["quantity"] == 20


def test_update_barcode_conflict(client, db_session):
    token = _admin(client, db_session)
    _create_product(client, token, barcode="100")
    product_id = _create_product(client, token, barcode="200").json()["product"]["id"]

    response = client.patch(f"/retailflow/products/{product_id}", headers=auth_headers(token), json={"barcode": "100"})
    assert response.status_code == 409
    assert response.json()["code"] == "BARCODE_ALREADY_EXISTS"


def test_blank_barcode_is_rejected_and_padding_is_stripped(client, db_session):
    token = _admin(client, db_session)

    response = _create_product(client, token, barcode="   ")
    assert response.status_code == 422
    assert response.json()["code"] == "VALIDATION_ERROR"

    response = _create_product(client, token, barcode="  555  ")
    assert response.status_code == 201
    product_id = response.json()["product"]["id"]
    assert response.json()["product"]["barcode"] == "555"

    response = client.patch(f"/retailflow/products/{product_id}", headers=auth_headers(token), json={"barcode": " "})
    assert response.status_code == 422
    assert response.json()["code"] == "VALIDATION_ERROR"

    cart = client.post("/retailflow/pos/carts", headers=auth_headers(token)).json()
    response = client.post(
        f"/retailflow/pos/carts/{cart['cart_id']}/scan",
        headers=auth_headers(token),
        json={"barcode": "555"},
    )
    assert response.status_code == 200
    assert response.json()["lines"][0]["barcode"] == "555"


def test_delete_product(client, db_session):
    token = _admin(client, db_session)
    product_id = _create_product(client, token).json()["product"]["id"]

    response = client.delete(f"/retailflow/products/{product_id}", headers=auth_headers(token))
    assert response.status_code == 200
    assert response.json()["ok"] is True

    response = client.get(f"/retailflow/products/{product_id}", headers=auth_headers(token))
    assert response.status_code == 404
    assert response.json()["code"] == "PRODUCT_NOT_FOUND"

    movement = db_session.execute(select(StockMovement)).scalars().one()
    assert movement.product_id is None
    assert movement.product_name == "Ballpoint pen"


def test_categories(client, db_session):
    token = _admin(client, db_session)

    response = client.post("/retailflow/categories", headers=auth_headers(token), json={"name": "Snacks"})
    assert response.status_code == 201
    category_id = response.json()["category"]["id"]

    response = client.post("/retailflow/categories", headers=auth_headers(token), json={"name": "Snacks"})
    assert response.status_code == 409
    assert response.json()["code"] == "CATEGORY_ALREADY_EXISTS"

    product_id = _create_product(client, token, category_id=category_id).json()["product"]["id"]
    categories = client.get("/retailflow/categories", headers=auth_headers(token)).json()["categories"]
    assert [(row["name"], row["products_count"]) for row in categories] == [("Snacks", 1)]

    response = client.delete(f"/retailflow/categories/{category_id}", headers=auth_headers(token))
    assert response.status_code == 200

    product = client.get(f"/retailflow/products/{product_id}", headers=auth_headers(token)).json()["product"]
    assert product["category_id"] is None
