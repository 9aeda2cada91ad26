"""Tests for authentication endpoints"""
from datetime import datetime, timedelta

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from user_service.models.user import User
from user_service.utils.jwt_utils import ACCESS, REFRESH, decode_token


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------

def test_register(client: TestClient, registration_data: dict, mailer):
    """Test registering a new account"""
    response = client.post("/api/auth/register", json=registration_data)
    assert response.status_code == 201

    body = response.json()
    assert body["success"] is True
    assert body["message"] == "User registered successfully. Please check your email to verify your account."

    user = body["data"]["user"]
    assert user["email"] == "jane@example.com"
    assert user["firstName"] == "Jane"
    assert user["role"] == "customer"
    assert user["isVerified"] is False
    assert user["isActive"] is True
    assert "password" not in user
    assert "resetPasswordToken" not in user

    tokens = body["data"]["tokens"]
    assert decode_token(tokens["accessToken"], ACCESS).user_id == user["id"]
    assert decode_token(tokens["refreshToken"], REFRESH).user_id == user["id"]

    assert len(mailer.sent_to("jane@example.com", "Verify Your Email")) == 1


def test_register_stores_bcrypt_hash(client: TestClient, register, db: Session):
    """Test that the password is never stored in plaintext"""
    register()
    stored = db.query(User).filter(User.email == "jane@example.com").one()
    assert stored.password != "secret123"
    assert stored.password.startswith("$2")


def test_register_normalizes_email(client: TestClient, register):
    """Test that emails are stored lowercase"""
    body = register(email="Jane.Doe@Example.COM")
    assert body["data"]["user"]["email"] == "jane.doe@example.com"


def test_register_provider_role(client: TestClient, register):
    body = register(role="independent_washer")
    assert body["data"]["user"]["role"] == "independent_washer"


def test_register_duplicate_email(client: TestClient, register, registration_data: dict):
    """Test that a second registration with the same email conflicts"""
    register()
    response = client.post("/api/auth/register", json={**registration_data, "email": "JANE@example.com"})
    assert response.status_code == 409
    assert response.json() == {"success": False, "message": "User already exists with this email"}


def test_register_rejects_admin_role(client: TestClient, registration_data: dict):
    """Test that admins cannot self-register"""
    response = client.post("/api/auth/register", json={**registration_data, "role": "admin"})
    assert response.status_code == 400
    assert response.json()["success"] is False


def test_register_validation(client: TestClient, registration_data: dict):
    """Test registration input validation"""
    for overrides in (
        {"email": "not-an-email"},
        {"password": "123"},
        {"firstName": "   "},
        {"role": "wizard"},
    ):
        response = client.post("/api/auth/register", json={**registration_data, **overrides})
        assert response.status_code == 400, overrides
        assert response.json()["success"] is False

    incomplete = dict(registration_data)
    del incomplete["phone"]
    response = client.post("/api/auth/register", json=incomplete)
    assert response.status_code == 400


# ---------------------------------------------------------------------------
# Login
# ---------------------------------------------------------------------------

def test_login(client: TestClient, register):
    """Test logging in with valid credentials"""
    register()
    response = client.post("/api/auth/login", json={"email": "jane@example.com", "password": "secret123"})
    assert response.status_code == 200

    body = response.json()
    assert body["message"] == "Login successful"
    assert body["data"]["user"]["email"] == "jane@example.com"
    assert body["data"]["tokens"]["accessToken"]
    assert body["data"]["tokens"]["refreshToken"]


def test_login_unverified_account_allowed(client: TestClient, register):
    """Test that verification is not required to log in"""
    register()
    response = client.post("/api/auth/login", json={"email": "jane@example.com", "password": "secret123"})
    assert response.status_code == 200
    assert response.json()["data"]["user"]["isVerified"] is False


def test_login_failures_are_indistinguishable(client: TestClient, register, db: Session):
    """Test that unknown email, wrong password and deactivated account look the same"""
    register()
    register(email="gone@example.com")
    gone = db.query(User).filter(User.email == "gone@example.com").one()
    gone.is_active = False
    db.commit()

    attempts = [
        {"email": "nobody@example.com", "password": "secret123"},
        {"email": "jane@example.com", "password": "wrong-password"},
        {"email": "gone@example.com", "password": "secret123"},
    ]
    responses = [client.post("/api/auth/login", json=attempt) for attempt in attempts]

    for response in responses:
        assert response.status_code == 401
        assert response.json() == {"success": False, "message": "Invalid credentials"}


# ---------------------------------------------------------------------------
# Refresh and logout
# ---------------------------------------------------------------------------

def test_refresh_rotates_tokens(client: TestClient, register):
    """Test that a refresh token can be used exactly once"""
    tokens = register()["data"]["tokens"]

    response = client.post("/api/auth/refresh", json={"refreshToken": tokens["refreshToken"]})
    assert response.status_code == 200
    rotated = response.json()["data"]["tokens"]
    assert rotated["refreshToken"] != tokens["refreshToken"]
    assert rotated["accessToken"] != tokens["accessToken"]

    # The rotated-out token is now stale
    reuse = client.post("/api/auth/refresh", json={"refreshToken": tokens["refreshToken"]})
    assert reuse.status_code == 401
    assert reuse.json()["message"] == "Invalid refresh token"

    # The new one still works
    again = client.post("/api/auth/refresh", json={"refreshToken": rotated["refreshToken"]})
    assert again.status_code == 200


def test_login_invalidates_previous_refresh_token(client: TestClient, register):
    """Test that only the most recently issued refresh token is accepted"""
    first = register()["data"]["tokens"]
    client.post("/api/auth/login", json={"email": "jane@example.com", "password": "secret123"})

    response = client.post("/api/auth/refresh", json={"refreshToken": first["refreshToken"]})
    assert response.status_code == 401


def test_refresh_rejects_access_token(client: TestClient, register):
    tokens = register()["data"]["tokens"]
    response = client.post("/api/auth/refresh", json={"refreshToken": tokens["accessToken"]})
    assert response.status_code == 401


def test_refresh_rejects_garbage(client: TestClient):
    response = client.post("/api/auth/refresh", json={"refreshToken": "not.a.jwt"})
    assert response.status_code == 401
    assert response.json() == {"success": False, "message": "Invalid refresh token"}


def test_logout_revokes_access_and_refresh(client: TestClient, register):
    """Test that logout blacklists the access token and drops the refresh token"""
    tokens = register()["data"]["tokens"]
    headers = bearer(tokens["accessToken"])

    assert client.get("/api/profiles/me", headers=headers).status_code == 200

    response = client.post("/api/auth/logout", headers=headers)
    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "Logout successful"}

    revoked = client.get("/api/profiles/me", headers=headers)
    assert revoked.status_code == 401
    assert revoked.json()["message"] == "Token has been revoked."

    refresh = client.post("/api/auth/refresh", json={"refreshToken": tokens["refreshToken"]})
    assert refresh.status_code == 401


def test_logout_without_token(client: TestClient):
    """Test that logout is best-effort"""
    response = client.post("/api/auth/logout")
    assert response.status_code == 200
    assert response.json()["success"] is True


def test_protected_route_requires_token(client: TestClient):
    response = client.get("/api/profiles/me")
    assert response.status_code == 401
    assert response.json() == {"success": False, "message": "Access denied. No token provided."}


def test_protected_route_rejects_refresh_token(client: TestClient, register):
    tokens = register()["data"]["tokens"]
    response = client.get("/api/profiles/me", headers=bearer(tokens["refreshToken"]))
    assert response.status_code == 401
    assert response.json()["message"] == "Invalid token."


# ---------------------------------------------------------------------------
# Password reset
# ---------------------------------------------------------------------------

def test_forgot_password_same_response_for_unknown_email(client: TestClient, register, mailer):
    """Test that forgot-password does not reveal whether an account exists"""
    register()

    known = client.post("/api/auth/forgot-password", json={"email": "jane@example.com"})
    unknown = client.post("/api/auth/forgot-password", json={"email": "nobody@example.com"})

    assert known.status_code == unknown.status_code == 200
    assert known.json() == unknown.json()
    assert len(mailer.sent_to("jane@example.com", "Reset Your Password")) == 1
    assert mailer.sent_to("nobody@example.com", "Reset Your Password") == []


def test_forgot_password_stores_digest_only(client: TestClient, register, mailer, db: Session):
    register()
    client.post("/api/auth/forgot-password", json={"email": "jane@example.com"})
    token = mailer.last_token("jane@example.com", "Reset Your Password")

    user = db.query(User).filter(User.email == "jane@example.com").one()
    db.refresh(user)
    assert user.reset_password_token is not None
    assert user.reset_password_token != token
    assert user.reset_password_expires > datetime.utcnow()


def test_reset_password(client: TestClient, register, mailer):
    """Test the full reset flow and that the token is single-use"""
    register()
    client.post("/api/auth/forgot-password", json={"email": "jane@example.com"})
    token = mailer.last_token("jane@example.com", "Reset Your Password")

    response = client.post("/api/auth/reset-password", json={"token": token, "password": "brand-new-pass"})
    assert response.status_code == 200
    assert response.json()["message"] == "Password reset successful"

    old = client.post("/api/auth/login", json={"email": "jane@example.com", "password": "secret123"})
    assert old.status_code == 401
    new = client.post("/api/auth/login", json={"email": "jane@example.com", "password": "brand-new-pass"})
    assert new.status_code == 200

    reuse = client.post("/api/auth/reset-password", json={"token": token, "password": "another-pass"})
    assert reuse.status_code == 400
    assert reuse.json()["message"] == "Invalid or expired reset token"


def test_reset_password_expired_token(client: TestClient, register, mailer, db: Session):
    """Test that a reset token past its expiry is rejected"""
    register()
    client.post("/api/auth/forgot-password", json={"email": "jane@example.com"})
    token = mailer.last_token("jane@example.com", "Reset Your Password")

    user = db.query(User).filter(User.email == "jane@example.com").one()
    user.reset_password_expires = datetime.utcnow() - timedelta(minutes=1)
    db.commit()

    response = client.post("/api/auth/reset-password", json={"token": token, "password": "brand-new-pass"})
    assert response.status_code == 400
    assert response.json() == {"success": False, "message": "Reset token has expired"}


def test_reset_password_unknown_token(client: TestClient):
    response = client.post("/api/auth/reset-password", json={"token": "f" * 64, "password": "brand-new-pass"})
    assert response.status_code == 400


# ---------------------------------------------------------------------------
# Email verification
# ---------------------------------------------------------------------------

def test_verify_email(client: TestClient, register, mailer):
    """Test that a verification token marks the account verified exactly once"""
    tokens = register()["data"]["tokens"]
    token = mailer.last_token("jane@example.com", "Verify Your Email")

    response = client.post("/api/auth/verify-email", json={"token": token})
    assert response.status_code == 200
    assert response.json()["message"] == "Email verified successfully"
    assert len(mailer.sent_to("jane@example.com", "Welcome to")) == 1

    me = client.get("/api/profiles/me", headers=bearer(tokens["accessToken"]))
    assert me.json()["data"]["user"]["isVerified"] is True

    reuse = client.post("/api/auth/verify-email", json={"token": token})
    assert reuse.status_code == 400
    assert reuse.json()["message"] == "Invalid or expired verification token"


def test_verify_email_unknown_token(client: TestClient):
    response = client.post("/api/auth/verify-email", json={"token": "0" * 64})
    assert response.status_code == 400


def test_resend_verification(client: TestClient, register, mailer):
    """Test that a resend issues a new token and earlier tokens stay usable"""
    register()
    first = mailer.last_token("jane@example.com", "Verify Your Email")

    response = client.post("/api/auth/resend-verification", json={"email": "jane@example.com"})
    assert response.status_code == 200
    assert response.json()["message"] == "Verification email sent successfully"

    second = mailer.last_token("jane@example.com", "Verify Your Email")
    assert second != first

    assert client.post("/api/auth/verify-email", json={"token": first}).status_code == 200


def test_resend_verification_errors(client: TestClient, register, mailer):
    unknown = client.post("/api/auth/resend-verification", json={"email": "nobody@example.com"})
    assert unknown.status_code == 404
    assert unknown.json()["message"] == "User not found"

    register()
    token = mailer.last_token("jane@example.com", "Verify Your Email")
    client.post("/api/auth/verify-email", json={"token": token})

    verified = client.post("/api/auth/resend-verification", json={"email": "jane@example.com"})
    assert verified.status_code == 400
    assert verified.json()["message"] == "Email is already verified"


# ---------------------------------------------------------------------------
# End to end
# ---------------------------------------------------------------------------

def test_account_lifecycle(client: TestClient, registration_data: dict, mailer):
    """Register, verify, log in, rotate, reset the password and log out"""
    registered = client.post("/api/auth/register", json=registration_data)
    assert registered.status_code == 201

    verify_token = mailer.last_token("jane@example.com", "Verify Your Email")
    assert client.post("/api/auth/verify-email", json={"token": verify_token}).status_code == 200

    login = client.post("/api/auth/login", json={"email": "jane@example.com", "password": "secret123"})
    tokens = login.json()["data"]["tokens"]
    me = client.get("/api/profiles/me", headers=bearer(tokens["accessToken"]))
    assert me.json()["data"]["user"]["isVerified"] is True

    rotated = client.post("/api/auth/refresh", json={"refreshToken": tokens["refreshToken"]}).json()["data"]["tokens"]

    client.post("/api/auth/forgot-password", json={"email": "jane@example.com"})
    reset_token = mailer.last_token("jane@example.com", "Reset Your Password")
    assert client.post(
        "/api/auth/reset-password", json={"token": reset_token, "password": "changed-pass"}
    ).status_code == 200

    assert client.post("/api/auth/logout", headers=bearer(rotated["accessToken"])).status_code == 200
    assert client.get("/api/profiles/me", headers=bearer(rotated["accessToken"])).status_code == 401

    relogin = client.post("/api/auth/login", json={"email": "jane@example.com", "password": "changed-pass"})
    assert relogin.status_code == 200
