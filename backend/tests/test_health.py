"""
Tests for health check endpoints.
"""

from sqlalchemy import text

from shared.utils.health import HealthStatus, aggregate_status, run_health_check


class TestHealthEndpoints:
    """Test health check API endpoints."""

    def test_health_check(self, client):
        """Basic health check should return healthy status."""
        response = client.get("/api/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["service"] == "tableside-api"

    def test_detailed_health_check(self, client):
        """Database reachable and schema stamped: healthy."""
        response = client.get("/api/health/detailed")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["dependencies"]["database"]["status"] == "healthy"
        assert data["dependencies"]["schema"]["details"] == {"version": 1}
        assert data["circuit_breakers"]["billing"]["state"] in ("closed", "open", "half_open")

    def test_detailed_health_reports_schema_drift(self, client, db_session):
        """A missing version stamp makes the service degraded (503)."""
        db_session.execute(text("DELETE FROM schema_version"))
        db_session.commit()

        response = client.get("/api/health/detailed")

        assert response.status_code == 503
        data = response.json()
        assert data["status"] == "degraded"
        assert data["dependencies"]["schema"]["status"] == "unhealthy"
        assert data["dependencies"]["database"]["status"] == "healthy"


class TestHealthCheckHelpers:
    def test_successful_check(self):
        result = run_health_check("thing", lambda: {"answer": 42})

        assert result.healthy
        assert result.to_dict()["details"] == {"answer": 42}
        assert result.latency_ms is not None

    def test_failing_check(self):
        def boom():
            raise RuntimeError("down")

        result = run_health_check("thing", boom)

        assert result.status == HealthStatus.UNHEALTHY
        assert result.to_dict()["error"] == "down"

    def test_aggregate(self):
        ok = run_health_check("a", lambda: None)
        bad = run_health_check("b", lambda: 1 / 0)

        assert aggregate_status([ok]) == HealthStatus.HEALTHY
        assert aggregate_status([ok, bad]) == HealthStatus.DEGRADED
