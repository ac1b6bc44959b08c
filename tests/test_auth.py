"""
Session auth, CSRF and license acceptance.
"""

import pytest
from werkzeug.security import generate_password_hash

from richhabits.models import db


# ═══════════════════════════════════════════════════════════════
# LOGIN / LOGOUT
# ═══════════════════════════════════════════════════════════════

class TestLogin:
    def test_missing_fields(self, client):
        res = client.post("/api/auth/local/login", json={"email": "x@y.z"})
        assert res.status_code == 400

    def test_wrong_password(self, client, sales_user):
        res = client.post("/api/auth/local/login",
                          json={"email": sales_user.email, "password": "nope"})
        assert res.status_code == 401

    def test_unknown_email(self, client, password):
        res = client.post("/api/auth/local/login",
                          json={"email": "ghost@richhabits.test", "password": password})
        assert res.status_code == 401

    def test_email_case_insensitive(self, client, sales_user, password):
        res = client.post("/api/auth/local/login",
                          json={"email": sales_user.email.upper(), "password": password})
        assert res.status_code == 200
        assert res.get_json()["user"]["id"] == sales_user.id
        assert "passwordHash" not in res.get_json()["user"]

    def test_deactivated_account(self, client, make_user, password):
        user = make_user("sales", is_active=False)
        res = client.post("/api/auth/local/login",
                          json={"email": user.email, "password": password})
        assert res.status_code == 403

    def test_legacy_hash_upgraded_to_bcrypt(self, client, sales_user, password):
        sales_user.password_hash = generate_password_hash(password, method="pbkdf2:sha256")
        db.session.commit()

        res = client.post("/api/auth/local/login",
                          json={"email": sales_user.email, "password": password})
        assert res.status_code == 200
        db.session.refresh(sales_user)
        assert sales_user.password_hash.startswith("$2b$")

    def test_deactivated_after_login(self, login, sales_user):
        c = login(sales_user)
        sales_user.is_active = False
        db.session.commit()
        assert c.get("/api/auth/user").status_code == 403

    def test_current_user(self, client, login, sales_user):
        assert client.get("/api/auth/user").status_code == 401

        body = login(sales_user).get("/api/auth/user").get_json()
        assert body["email"] == sales_user.email
        assert body["effectiveRole"] == "sales"
        assert body["testMode"] is False
        assert body["lastLoginAt"] is not None

    def test_logout(self, login, sales_user):
        c = login(sales_user)
        assert c.post("/api/auth/logout").status_code == 200
        assert c.get("/api/auth/user").status_code == 401


# ═══════════════════════════════════════════════════════════════
# CSRF
# ═══════════════════════════════════════════════════════════════

@pytest.fixture()
def csrf_on(app):
    app.config["CSRF_ENABLED"] = True
    yield
    app.config["CSRF_ENABLED"] = False


class TestCsrf:
    def test_mutation_without_token_rejected(self, csrf_on, login, sales_user):
        c = login(sales_user)
        res = c.post("/api/leads", json={})
        assert res.status_code == 403
        assert res.get_json()["code"] == "CSRF_VALIDATION_FAILED"

    def test_mutation_with_token_allowed(self, csrf_on, login, sales_user):
        c = login(sales_user)
        token = c.get("/api/auth/csrf-token").get_json()["csrfToken"]
        res = c.post("/api/leads", json={}, headers={"X-CSRF-Token": token})
        assert res.status_code == 201

    def test_tampered_token_rejected(self, csrf_on, login, sales_user):
        c = login(sales_user)
        token = c.get("/api/auth/csrf-token").get_json()["csrfToken"]
        nonce, _, sig = token.partition(".")
        res = c.post("/api/leads", json={}, headers={"X-CSRF-Token": f"{nonce}x.{sig}"})
        assert res.status_code == 403

    def test_login_and_reads_exempt(self, csrf_on, client, sales_user, password):
        res = client.post("/api/auth/local/login",
                          json={"email": sales_user.email, "password": password})
        assert res.status_code == 200
        assert client.get("/api/leads").status_code == 200


# ═══════════════════════════════════════════════════════════════
# LICENSE
# ═══════════════════════════════════════════════════════════════

class TestLicense:
    def test_anonymous(self, client):
        assert client.post("/api/license/accept").status_code == 401

    def test_accept_is_idempotent(self, app, login, sales_user):
        c = login(sales_user)
        first = c.post("/api/license/accept").get_json()
        assert first["accepted"] is True
        assert first["licenseVersion"] == app.config["LICENSE_VERSION"]

        second = c.post("/api/license/accept").get_json()
        assert second["licenseAcceptedAt"] == first["licenseAcceptedAt"]
