from tests.pos_helpers import auth_headers, create_user, login


def _admin(client, db_session):
    create_user(db_session, username="boss", role="ADMIN")
    return login(client, "boss")


def _create_supplier(client, token, **overrides):
    payload = {"name": "Acme Wholesale", "contact_person": "Ann", "email": "orders@acme.example.com", "phone": "555-0100"}
    payload.update(overrides)
    return client.post("/retailflow/suppliers", headers=auth_headers(token), json=payload)


def test_supplier_crud(client, db_session):
    token = _admin(client, db_session)

    response = _create_supplier(client, token)
    assert response.status_code == 201
    supplier = response.json()["supplier"]
    assert supplier["status"] == "active"
    assert supplier["products_count"] == 0

    response = client.patch(
        f"/retailflow/suppliers/{supplier['id']}",
        headers=auth_headers(token),
        json={"status": "inactive", "phone": "555-0199"},
    )
    assert response.status_code == 200
    assert response.json()["supplier"]["status"] == "inactive"
    assert response.json()["supplier"]["phone"] == "555-0199"

    response = client.get(f"/retailflow/suppliers/{supplier['id']}", headers=auth_headers(token))
    assert response.json()["supplier"]["name"] == "Acme Wholesale"

    response = client.delete(f"/retailflow/suppliers/{supplier['id']}", headers=auth_headers(token))
    assert response.status_code == 200

    response = client.get(f"/retailflow/suppliers/{supplier['id']}", headers=auth_headers(token))
    assert response.status_code == 404
    assert response.json()["code"] == "SUPPLIER_NOT_FOUND"


def test_supplier_filters_and_product_counts(client, db_session):
    token = _admin(client, db_session)
    acme = _create_supplier(client, token).json()["supplier"]
    _create_supplier(client, token, name="Globex", email="sales@globex.example.com", status="inactive")

    client.post(
        "/retailflow/products",
        headers=auth_headers(token),
        json={"barcode": "100", "name": "Widget", "quantity": 3, "selling_price": "2.00", "supplier_id": acme["id"]},
    )

    response = client.get("/retailflow/suppliers", headers=auth_headers(token), params={"status": "active"})
    rows = response.json()["suppliers"]
    assert [(row["name"], row["products_count"]) for row in rows] == [("Acme Wholesale", 1)]

    response = client.get("/retailflow/suppliers", headers=auth_headers(token), params={"q": "globex"})
    assert [row["name"] for row in response.json()["suppliers"]] == ["Globex"]


def test_deleting_supplier_detaches_products(client, db_session):
    token = _admin(client, db_session)
    acme = _create_supplier(client, token).json()["supplier"]
    product = client.post(
        "/retailflow/products",
        headers=auth_headers(token),
        json={"barcode": "100", "name": "Widget", "selling_price": "2.00", "supplier_id": acme["id"]},
    ).json()["product"]

    client.delete(f"/retailflow/suppliers/{acme['id']}", headers=auth_headers(token))

    response = client.get(f"/retailflow/products/{product['id']}", headers=auth_headers(token))
    assert response.json()["product"]["supplier_id"] is None


def test_worker_can_view_but_not_manage_suppliers(client, db_session):
    create_user(db_session, username="worker")
    token = login(client, "worker")

    assert client.get("/retailflow/suppliers", headers=auth_headers(token)).status_code == 200
    response = _create_supplier(client, token)
    assert response.status_code == 403
    assert response.json()["code"] == "PERMISSION_DENIED"
