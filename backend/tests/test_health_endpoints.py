"""
Prompt Builder - Health Endpoint Tests

Tests for /health, /readiness and /api/version.

Run: python -m pytest -xvs tests/test_health_endpoints.py
"""

from unittest.mock import patch


class TestHealthEndpoint:
    """Test the /health liveness probe."""

    def test_health_returns_200(self, test_client):
        """GET /health should return 200 with status and version."""
        response = test_client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert "version" in data

    def test_health_includes_version_string(self, test_client):
        data = test_client.get("/health").json()
        assert isinstance(data["version"], str)
        assert len(data["version"]) > 0


class TestReadinessEndpoint:
    """Test the /readiness probe endpoint."""

    def test_ready_with_mock_provider(self, test_client):
        response = test_client.get("/readiness")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ready"
        assert data["checks"]["database"] is True
        assert data["checks"]["llm_providers"] is True
        assert data["checks"]["mock_mode"] is True

    def test_degraded_without_providers(self, test_client, monkeypatch):
        """No registered providers degrades readiness but keeps 200."""
        from llm_factory import reset_llm_manager
        monkeypatch.setenv("SKIP_AI_REQUEST", "false")
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
        reset_llm_manager()

        response = test_client.get("/readiness")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "degraded"
        assert data["checks"]["llm_providers"] is False

    def test_manager_error_degrades(self, test_client):
        with patch("llm_factory.get_llm_manager", side_effect=RuntimeError("boom")):
            data = test_client.get("/readiness").json()
        assert data["checks"]["llm_providers"] is False
        assert data["status"] == "degraded"


class TestVersionEndpoint:

    def test_version(self, test_client):
        from constants import __version__
        response = test_client.get("/api/version")
        assert response.status_code == 200
        assert response.json() == {"version": __version__, "name": "AI Prompt Builder"}
