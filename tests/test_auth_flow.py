from sqlalchemy import select

from app.retailflow.db.models import AuditEvent
from tests.pos_helpers import auth_headers, create_user, login


def test_register_creates_worker(client):
    response = client.post(
        "/retailflow/auth/register",
        json={"username": "jdoe", "email": "Jane@Example.com", "password": "Secret123", "full_name": "Jane Doe"},
    )
    assert response.status_code == 201
    payload = response.json()
    assert payload["role"] == "WORKER"
    assert payload["email"] == "jane@example.com"
    assert payload["must_change_password"] is False
    assert "POS_SALE_MANAGE" in payload["permissions"]
    assert "PRODUCT_MANAGE" not in payload["permissions"]


def test_register_duplicate_username(client, db_session):
    create_user(db_session, username="jdoe")

    response = client.post(
        "/retailflow/auth/register",
        json={"username": "jdoe", "email": "other@example.com", "password": "Secret123"},
    )
    assert response.status_code == 409
    assert response.json()["code"] == "USERNAME_TAKEN"


def test_register_rejects_weak_password(client):
    response = client.post(
        "/retailflow/auth/register",
        json={"username": "jdoe", "email": "jane@example.com", "password": "short"},
    )
    assert response.status_code == 400
    assert response.json()["code"] == "PASSWORD_TOO_SHORT"

    response = client.post(
        "/retailflow/auth/register",
        json={"username": "jdoe", "email": "jane@example.com", "password": "lettersonly"},
    )
    assert response.status_code == 400
    assert response.json()["code"] == "PASSWORD_COMPLEXITY"


def test_login_success_by_email(client, db_session):
    create_user(db_session, username="jane")

    response = client.post(
        "/retailflow/auth/login",
        json={"email": "jane@example.com", "password": "Pass1234"},
    )
    assert response.status_code == 200
    payload = response.json()
    assert payload["access_token"]
    assert payload["token_type"] == "bearer"
    assert payload["trace_id"]


def test_login_invalid_password_is_audited(client, db_session):
    create_user(db_session, username="jane")

    response = client.post(
        "/retailflow/auth/login",
        json={"username_or_email": "jane", "password": "wrong-pass1"},
    )
    assert response.status_code == 401
    assert response.json()["code"] == "INVALID_CREDENTIALS"

    events = db_session.execute(select(AuditEvent).where(AuditEvent.action == "auth.login.failed")).scalars().all()
    assert len(events) == 1
    assert events[0].result == "failure"


def test_login_unknown_user(client):
    response = client.post(
        "/retailflow/auth/login",
        json={"username_or_email": "ghost", "password": "Pass1234"},
    )
    assert response.status_code == 401
    assert response.json()["code"] == "INVALID_CREDENTIALS"


def test_login_blocked_inactive(client, db_session):
    create_user(db_session, username="jane", is_active=False)

    response = client.post(
        "/retailflow/auth/login",
        json={"username_or_email": "jane", "password": "Pass1234"},
    )
    assert response.status_code == 403
    assert response.json()["code"] == "USER_INACTIVE"


def test_login_requires_identifier(client):
    response = client.post("/retailflow/auth/login", json={"password": "Pass1234"})
    assert response.status_code == 422
    assert response.json()["code"] == "VALIDATION_ERROR"


def test_me_requires_token(client):
    response = client.get("/retailflow/auth/me")
    assert response.status_code == 401


def test_me_returns_profile(client, db_session):
    create_user(db_session, username="jane", role="ADMIN")
    token = login(client, "jane")

    response = client.get("/retailflow/auth/me", headers=auth_headers(token))
    assert response.status_code == 200
    payload = response.json()
    assert payload["username"] == "jane"
    assert payload["role"] == "ADMIN"
    assert "USER_MANAGE" in payload["permissions"]


def test_oauth2_token_form(client, db_session):
    create_user(db_session, username="jane")

    response = client.post(
        "/retailflow/auth/token",
        content="username=jane&password=Pass1234",
        headers={"Content-Type": "application/x-www-form-urlencoded"},
    )
    assert response.status_code == 200
    assert response.json()["access_token"]


def test_must_change_password_flow(client, db_session):
    create_user(db_session, username="jane", must_change_password=True, password="OldPass123")

    response = client.post(
        "/retailflow/auth/login",
        json={"username_or_email": "jane", "password": "OldPass123"},
    )
    assert response.status_code == 200
    assert response.json()["must_change_password"] is True
    token = response.json()["access_token"]

    response = client.post(
        "/retailflow/auth/change-password",
        headers=auth_headers(token),
        json={"current_password": "OldPass123", "new_password": "NewPass456"},
    )
    assert response.status_code == 200
    payload = response.json()
    assert payload["ok"] is True
    assert payload["access_token"]

    response = client.post(
        "/retailflow/auth/login",
        json={"username_or_email": "jane", "password": "NewPass456"},
    )
    assert response.status_code == 200
    assert response.json()["must_change_password"] is False


def test_change_password_errors(client, db_session):
    create_user(db_session, username="jane", password="OldPass123")
    token = login(client, "jane", "OldPass123")

    response = client.post(
        "/retailflow/auth/change-password",
        headers=auth_headers(token),
        json={"current_password": "wrong", "new_password": "NewPass456"},
    )
    assert response.status_code == 400
    assert response.json()["code"] == "CURRENT_PASSWORD_INVALID"

    response = client.post(
        "/retailflow/auth/change-password",
        headers=auth_headers(token),
        json={"current_password": "OldPass123", "new_password": "OldPass123"},
    )
    assert response.status_code == 400
    assert response.json()["code"] == "PASSWORD_MUST_DIFFER"
