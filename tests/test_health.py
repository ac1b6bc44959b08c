"""
Health endpoints and response hardening.
"""


class TestHealth:
    def test_liveness(self, client):
        res = client.get("/api/health")
        assert res.status_code == 200
        body = res.get_json()
        assert body["status"] == "healthy"
        assert body["environment"] == "testing"
        assert body["uptime"] >= 0

    def test_readiness(self, client):
        res = client.get("/api/ready")
        assert res.status_code == 200
        assert res.get_json()["checks"] == {"database": True, "session": True, "auth": True}

    def test_details(self, client):
        res = client.get("/health/details")
        assert res.status_code == 200
        checks = res.get_json()["checks"]
        assert checks["database"]["status"] == "ok"
        assert checks["redis"]["status"] == "skipped"
        assert checks["app"]["testing"] is True

    def test_no_auth_required(self, client):
        for path in ("/api/health", "/api/ready", "/health/details"):
            assert client.get(path).status_code == 200


class TestRequestHandling:
    def test_unknown_api_path(self, client):
        res = client.get("/api/nope")
        assert res.status_code == 404
        assert res.get_json()["path"] == "/api/nope"

    def test_non_json_body_rejected(self, login, sales_user):
        res = login(sales_user).post("/api/leads", data="x=1",
                                     content_type="application/x-www-form-urlencoded")
        assert res.status_code == 415

    def test_security_headers(self, client):
        res = client.get("/api/health")
        assert res.headers["X-Content-Type-Options"] == "nosniff"

    def test_request_id_echoed(self, client):
        res = client.get("/api/health", headers={"X-Request-ID": "abc-123"})
        assert res.headers.get("X-Request-ID") == "abc-123"

    def test_unsafe_request_id_replaced(self, client):
        res = client.get("/api/health", headers={"X-Request-ID": "bad id <x>"})
        rid = res.headers.get("X-Request-ID")
        assert rid and rid != "bad id <x>"
        assert len(rid) == 12

    def test_error_bodies_carry_codes(self, client):
        assert client.get("/api/nope").get_json()["code"] == "ERR_NOT_FOUND"
        res = client.delete("/api/health")
        assert res.status_code == 405
        assert res.get_json()["code"] == "ERR_METHOD_NOT_ALLOWED"

    def test_json_not_cached_and_no_hsts_over_http(self, client):
        res = client.get("/api/health")
        assert res.headers["Cache-Control"] == "no-store"
        assert "Strict-Transport-Security" not in res.headers
