"""Tests for the FastAPI endpoints."""

import pytest


def _scan(client, content, source_type="email", user_id="user-1"):
    return client.post(
        "/scan",
        json={"user_id": user_id, "content": content, "source_type": source_type},
    )


class TestHealthEndpoint:
    """Tests for /health and /status."""

    def test_health_returns_ok(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_status_lists_source_types(self, client):
        data = client.get("/status").json()

        assert data["supported_source_types"] == ["email", "link", "message", "other"]
        assert data["catalog_failure_policy"] in {"fail_open", "fail_closed"}


class TestScanEndpoint:
    """Tests for /scan."""

    def test_scan_scam_text(self, client, sample_scam_text):
        response = _scan(client, sample_scam_text)

        assert response.status_code == 200
        data = response.json()
        assert data["severity_level"] == "high"
        assert data["confidence_score"] == 95
        assert data["threat_type"] == "urgency_manipulation"
        assert data["detected_patterns"] == ["Urgent Action Required", "Suspicious Links"]
        assert data["status"] == "new"
        assert data["resolved_at"] is None

    def test_scan_safe_text(self, client, sample_safe_text):
        data = _scan(client, sample_safe_text, source_type="message").json()

        assert data["severity_level"] == "safe"
        assert data["confidence_score"] == 95

    def test_scan_empty_content(self, client):
        response = _scan(client, "   ")

        assert response.status_code == 400
        assert response.json()["error"] == "EmptyContentError"

    def test_scan_invalid_source_type(self, client):
        response = _scan(client, "urgent", source_type="fax")

        assert response.status_code == 400
        assert "unsupported" in response.json()["detail"].lower()

    def test_scan_missing_field(self, client):
        response = client.post("/scan", json={"user_id": "user-1", "source_type": "email"})

        assert response.status_code == 422


class TestThreatEndpoints:
    """Tests for listing and status transitions."""

    def test_list_most_recent_first(self, client):
        _scan(client, "urgent one")
        _scan(client, "urgent two")

        data = client.get("/threats", params={"user_id": "user-1"}).json()

        assert len(data) == 2
        assert data[0]["id"] > data[1]["id"]

    def test_list_limit_validated(self, client):
        response = client.get("/threats", params={"user_id": "user-1", "limit": 0})

        assert response.status_code == 422

    def test_get_unknown_threat(self, client):
        response = client.get("/threats/9999")

        assert response.status_code == 404

    def test_acknowledge_then_resolve(self, client, sample_scam_text):
        record_id = _scan(client, sample_scam_text).json()["id"]

        ack = client.post(f"/threats/{record_id}/acknowledge")
        assert ack.status_code == 200
        assert ack.json()["status"] == "acknowledged"

        resolved = client.post(f"/threats/{record_id}/resolve")
        assert resolved.status_code == 200
        assert resolved.json()["resolved_at"] is not None

    def test_illegal_transition_conflict(self, client, sample_scam_text):
        record_id = _scan(client, sample_scam_text).json()["id"]
        client.post(f"/threats/{record_id}/resolve")

        response = client.post(f"/threats/{record_id}/acknowledge")

        assert response.status_code == 409
        assert response.json()["error"] == "IllegalTransitionError"

    def test_false_positive(self, client, sample_scam_text):
        record_id = _scan(client, sample_scam_text).json()["id"]

        response = client.post(f"/threats/{record_id}/false-positive")

        assert response.status_code == 200
        assert response.json()["status"] == "false_positive"
        assert client.get("/stats/user-1").json()["false_positives"] == 1


class TestStatsEndpoints:
    def test_stats_after_scans(self, client, sample_scam_text, sample_safe_text):
        _scan(client, sample_scam_text)
        _scan(client, sample_safe_text)

        data = client.get("/stats/user-1").json()

        assert data["total_scanned"] == 2
        assert data["threats_detected"] == 1
        assert sum(data["by_severity"].values()) == 2

    def test_stats_missing(self, client):
        response = client.get("/stats/nobody")

        assert response.status_code == 404

    def test_history(self, client, sample_scam_text):
        _scan(client, sample_scam_text)

        data = client.get("/stats/user-1/history", params={"days": 7}).json()

        assert len(data) == 1
        assert data[0]["total_scanned"] == 1


class TestAdminEndpoints:
    def test_list_default_patterns(self, client):
        data = client.get("/admin/patterns").json()

        assert [p["name"] for p in data][:2] == ["Urgent Action Required", "Authority Impersonation"]
        assert len(data) == 6

    def test_create_pattern_used_by_scan(self, client):
        response = client.post(
            "/admin/patterns",
            json={
                "name": "Gift Card Request",
                "category": "baiting",
                "indicators": ["gift card"],
                "severity_weight": 0.6,
            },
        )
        assert response.status_code == 200

        data = _scan(client, "Please buy a gift card for me").json()
        assert data["detected_patterns"] == ["Gift Card Request"]
        assert data["severity_level"] == "medium"

    def test_create_pattern_invalid_weight(self, client):
        response = client.post(
            "/admin/patterns",
            json={"name": "X", "category": "y", "indicators": ["z"], "severity_weight": 1.5},
        )

        assert response.status_code == 422

    def test_deactivate_pattern(self, client):
        pattern_id = client.get("/admin/patterns").json()[0]["id"]

        response = client.post(f"/admin/patterns/{pattern_id}/deactivate")
        assert response.json()["active"] is False

        data = _scan(client, "urgent").json()
        assert "Urgent Action Required" not in data["detected_patterns"]

    def test_metrics(self, client, sample_scam_text):
        _scan(client, sample_scam_text)

        data = client.get("/admin/metrics").json()
        assert data["counters"]["scan.total"] >= 1


class TestRequestGuards:
    def test_request_id_echoed(self, client):
        response = client.get("/health", headers={"X-Request-ID": "abc123"})

        assert response.headers["X-Request-ID"] == "abc123"
        assert response.headers["X-Content-Type-Options"] == "nosniff"

    def test_rate_limit(self, client, monkeypatch):
        from socialshield.config import settings

        monkeypatch.setattr(settings, "rate_limit_requests", 2)

        assert _scan(client, "hello").status_code == 200
        assert _scan(client, "hello").status_code == 200
        response = _scan(client, "hello")

        assert response.status_code == 429
        assert "Retry-After" in response.headers

    def test_api_token_required(self, client, monkeypatch):
        from socialshield.config import settings

        monkeypatch.setattr(settings, "api_token", "secret")

        assert client.get("/threats", params={"user_id": "user-1"}).status_code == 401
        response = client.get(
            "/threats", params={"user_id": "user-1"}, headers={"X-API-Key": "secret"}
        )
        assert response.status_code == 200
