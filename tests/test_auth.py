from datetime import datetime, timedelta

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from product_genius.api.v1 import auth as auth_module
from product_genius.core.config import settings
from product_genius.core.security import create_refresh_token, decode_token, verify_password
from product_genius.models.token_blacklist import TokenBlacklist
from product_genius.models.user import UserRole


def _login(client: TestClient, email: str, password: str = "StrongPass1"):
    return client.post(
        "/api/v1/auth/login",
        json={"email": email, "password": password},
    )


def test_login_success_sets_cookies(client: TestClient, create_user):
    create_user("login@example.com")

    response = _login(client, "login@example.com")

    assert response.status_code == 200
    payload = response.json()
    assert payload["success"] is True
    assert payload["data"]["user"]["email"] == "login@example.com"
    assert payload["data"]["user"]["role"] == "USER"
    assert response.cookies.get("access_token") is not None
    assert response.cookies.get("refresh_token") is not None

    claims = decode_token(response.cookies.get("access_token"))
    assert claims["type"] == "access"
    assert claims["jti"]


def test_login_accepts_form_data(client: TestClient, create_user):
    create_user("form@example.com")

    response = client.post(
        "/api/v1/auth/login",
        data={"email": "form@example.com", "password": "StrongPass1"},
    )

    assert response.status_code == 200


def test_login_failure(client: TestClient, create_user):
    create_user("wrongpass@example.com")

    response = _login(client, "wrongpass@example.com", "WrongPass1")

    assert response.status_code == 401
    payload = response.json()
    assert payload["success"] is False
    assert payload["message"] == "Incorrect email or password"
    assert payload["data"] is None
    assert "timestamp" in payload


def test_login_inactive_account(client: TestClient, create_user):
    create_user("inactive@example.com", is_active=False)

    response = _login(client, "inactive@example.com")

    assert response.status_code == 403


def test_login_invalid_payload_returns_validation_envelope(client: TestClient):
    response = client.post("/api/v1/auth/login", json={"email": "not-an-email"})

    assert response.status_code == 422
    payload = response.json()
    assert payload["message"] == "Validation failed"
    assert payload["errors"]


def test_login_rejects_malformed_json(client: TestClient):
    for body in (b"{not json", b'["a.com", "StrongPass1"]'):
        response = client.post(
            "/api/v1/auth/login",
            content=body,
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Invalid JSON body"


def test_me_requires_authentication(client: TestClient):
    response = client.get("/api/v1/users/me")

    assert response.status_code == 401
    assert response.json()["message"] == "Not authenticated"


def test_logout_revokes_access_token(client: TestClient, create_user, db_session: Session):
    create_user("revoke@example.com")

    login_response = _login(client, "revoke@example.com")
    assert login_response.status_code == 200
    old_access_token = login_response.cookies.get("access_token")

    assert client.get("/api/v1/users/me").status_code == 200

    logout_response = client.post("/api/v1/auth/logout")
    assert logout_response.status_code == 200
    revoked = db_session.query(TokenBlacklist).order_by(TokenBlacklist.token_type).all()
    assert [row.token_type for row in revoked] == ["access", "refresh"]
    assert {row.reason for row in revoked} == {"logout"}

    client.cookies.set("access_token", old_access_token)
    revoked_response = client.get("/api/v1/users/me")
    assert revoked_response.status_code == 401
    assert revoked_response.json()["message"] == "Token has been revoked"


def test_refresh_issues_new_access_token(client: TestClient, create_user):
    user = create_user("refresh@example.com")
    refresh = create_refresh_token(data={"sub": str(user.id), "session_version": user.session_version})
    client.cookies.set("refresh_token", refresh)

    response = client.post("/api/v1/auth/refresh")

    assert response.status_code == 200
    assert decode_token(response.cookies.get("access_token"))["sub"] == str(user.id)


def test_refresh_rejects_access_token(client: TestClient, create_user, auth_headers):
    user = create_user("wrongtype@example.com")
    access = auth_headers(user)["Authorization"].split(" ", 1)[1]
    client.cookies.set("refresh_token", access)

    response = client.post("/api/v1/auth/refresh")

    assert response.status_code == 401
    assert response.json()["message"] == "Invalid token type"


def test_login_rotates_session_version_in_production(client: TestClient, create_user, db_session: Session):
    create_user("session@example.com")

    first_login = _login(client, "session@example.com")
    old_access_token = first_login.cookies.get("access_token")

    old_env = settings.ENVIRONMENT
    settings.ENVIRONMENT = "production"
    try:
        second_login = _login(client, "session@example.com")
        assert second_login.status_code == 200
    finally:
        settings.ENVIRONMENT = old_env

    client.cookies.clear()
    response = client.get(
        "/api/v1/users/me",
        headers={"Authorization": f"Bearer {old_access_token}"},
    )
    assert response.status_code == 401
    assert response.json()["message"] == "Session has been invalidated. Please login again."


def test_forgot_password_queues_reset_email(client: TestClient, create_user, db_session: Session, monkeypatch):
    user = create_user("forgot@example.com")
    queued = []
    monkeypatch.setattr(auth_module, "queue_password_reset_email", lambda email, token: queued.append((email, token)))

    response = client.post("/api/v1/auth/forgot-password", json={"email": "forgot@example.com"})

    assert response.status_code == 200
    db_session.refresh(user)
    assert queued == [("forgot@example.com", user.reset_token)]
    assert user.reset_token_expires > datetime.utcnow()


def test_forgot_password_unknown_email_still_succeeds(client: TestClient, monkeypatch):
    queued = []
    monkeypatch.setattr(auth_module, "queue_password_reset_email", lambda email, token: queued.append(email))

    response = client.post("/api/v1/auth/forgot-password", json={"email": "nobody@example.com"})

    assert response.status_code == 200
    assert queued == []


def test_reset_password_updates_hash_and_invalidates_sessions(client: TestClient, create_user, db_session: Session):
    user = create_user("reset@example.com")
    user.reset_token = "reset-token-123"
    user.reset_token_expires = datetime.utcnow() + timedelta(minutes=30)
    db_session.commit()
    old_version = user.session_version

    response = client.post(
        "/api/v1/auth/reset-password",
        json={"token": "reset-token-123", "new_password": "NewSecret9"},
    )

    assert response.status_code == 200
    db_session.refresh(user)
    assert verify_password("NewSecret9", user.password_hash)
    assert user.reset_token is None
    assert user.session_version == old_version + 1


def test_reset_password_rejects_expired_token(client: TestClient, create_user, db_session: Session):
    user = create_user("expired-reset@example.com")
    user.reset_token = "expired-token"
    user.reset_token_expires = datetime.utcnow() - timedelta(minutes=1)
    db_session.commit()

    response = client.post(
        "/api/v1/auth/reset-password",
        json={"token": "expired-token", "new_password": "NewSecret9"},
    )

    assert response.status_code == 400
    assert response.json()["message"] == "Invalid or expired reset token"


def test_admin_routes_reject_regular_users(client: TestClient, user_headers):
    response = client.get("/api/v1/suppliers", headers=user_headers)

    assert response.status_code == 403
    assert response.json()["message"] == "Insufficient permissions"


def test_owner_has_admin_access(client: TestClient, create_user, auth_headers):
    owner = create_user("owner@example.com", role=UserRole.OWNER)

    response = client.get("/api/v1/suppliers", headers=auth_headers(owner))

    assert response.status_code == 200


def test_admin_ip_whitelist_enforcement(client: TestClient, admin_headers):
    old_env = settings.ENVIRONMENT
    old_ips = settings.ADMIN_ALLOWED_IPS
    settings.ENVIRONMENT = "production"
    settings.ADMIN_ALLOWED_IPS = "10.10.10.10"
    try:
        response = client.get("/api/v1/suppliers", headers=admin_headers)
        assert response.status_code == 403
        assert response.json()["message"] == "Access denied"
    finally:
        settings.ENVIRONMENT = old_env
        settings.ADMIN_ALLOWED_IPS = old_ips


def test_csrf_enforced_in_production(client: TestClient):
    token_response = client.get("/api/v1/auth/csrf-token")
    csrf_token = token_response.cookies.get("csrf_token")
    assert csrf_token

    old_env = settings.ENVIRONMENT
    settings.ENVIRONMENT = "production"
    try:
        rejected = client.post("/api/v1/locale", json={"locale": "de"})
        accepted = client.post(
            "/api/v1/locale",
            json={"locale": "de"},
            headers={"X-CSRF-Token": csrf_token},
        )
    finally:
        settings.ENVIRONMENT = old_env

    assert rejected.status_code == 403
    assert rejected.json()["message"] == "CSRF validation failed"
    assert accepted.status_code == 200
