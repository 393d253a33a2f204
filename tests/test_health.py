"""Tests for the root, health and request context behaviour."""


class TestHealth:

    def test_root(self, client):
        resp = client.get("/")
        assert resp.status_code == 200
        assert resp.json()["name"] == "OpenDesk API"

    def test_health_reports_db(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "healthy"
        assert body["db"] == "ok"


class TestRequestContext:

    def test_generates_request_id(self, client):
        resp = client.get("/health")
        assert resp.headers.get("X-Request-ID")
        assert resp.headers.get("X-Response-Time", "").endswith("ms")

    def test_propagates_request_id(self, client):
        resp = client.get("/health", headers={"X-Request-ID": "abc123"})
        assert resp.headers["X-Request-ID"] == "abc123"
