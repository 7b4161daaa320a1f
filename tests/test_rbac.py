import pytest

from app.retailflow.core.metrics import metrics
from app.retailflow.services.rbac import has_permission, is_admin, permissions_for_role
from tests.pos_helpers import auth_headers, create_user, login


@pytest.mark.parametrize(
    "permission",
    ["PRODUCT_MANAGE", "SUPPLIER_MANAGE", "STOCK_MANAGE", "REPORT_VIEW", "USER_MANAGE"],
)
def test_worker_lacks_management_permissions(permission):
    assert not has_permission("WORKER", permission)
    assert has_permission("ADMIN", permission)


def test_worker_can_operate_pos():
    assert {"POS_SALE_MANAGE", "POS_SALE_VIEW", "PRODUCT_VIEW", "STOCK_VIEW"} <= permissions_for_role("worker")
    assert permissions_for_role("GUEST") == frozenset()
    assert is_admin(" admin ")


def test_worker_cannot_create_products(client, db_session):
    create_user(db_session, username="worker")
    token = login(client, "worker")

    response = client.post(
        "/retailflow/products",
        headers=auth_headers(token),
        json={"barcode": "111", "name": "Pen", "selling_price": "1.00"},
    )
    assert response.status_code == 403
    payload = response.json()
    assert payload["code"] == "PERMISSION_DENIED"
    assert payload["details"] == {"permission": "PRODUCT_MANAGE"}
    assert payload["trace_id"]

    assert client.get("/retailflow/products", headers=auth_headers(token)).status_code == 200


def test_worker_cannot_manage_users(client, db_session):
    create_user(db_session, username="worker")
    token = login(client, "worker")

    response = client.get("/retailflow/users", headers=auth_headers(token))
    assert response.status_code == 403


def test_role_change_applies_to_existing_token(client, db_session):
    worker = create_user(db_session, username="worker")
    token = login(client, "worker")
    assert client.get("/retailflow/reports/dashboard", headers=auth_headers(token)).status_code == 403

    worker.role = "ADMIN"
    db_session.commit()

    assert client.get("/retailflow/reports/dashboard", headers=auth_headers(token)).status_code == 200


def test_denials_are_counted(client, db_session):
    create_user(db_session, username="worker")
    token = login(client, "worker")
    client.get("/retailflow/users", headers=auth_headers(token))

    content = metrics.render().content.decode("utf-8")
    if metrics.enabled:
        assert 'rbac_denied_total{permission="USER_MANAGE"} 1.0' in content


def test_invalid_token_is_rejected(client):
    response = client.get("/retailflow/products", headers=auth_headers("not-a-token"))
    assert response.status_code == 401
    assert response.json()["code"] == "INVALID_TOKEN"
