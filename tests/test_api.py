"""
API endpoint tests for the CAL Engine.
"""

from unittest.mock import patch

import pytest
import yaml
from fastapi.testclient import TestClient

from cal_engine.connectors import MockDirectoryConnector

from conftest import HOLDING, WORKSTATIONS


@pytest.fixture
def config_file(tmp_path, monkeypatch):
    path = tmp_path / "cal_config.yaml"
    path.write_text(yaml.safe_dump({
        "holding_location": HOLDING,
        "directory": {"mock_mode": True},
        "audit_dir": str(tmp_path / "audit"),
    }), encoding="utf-8")
    monkeypatch.setenv("CAL_CONFIG", str(path))
    return path


@pytest.fixture
def client(config_file):
    """Test client for the FastAPI application."""
    from cal_engine.api.server import app
    with TestClient(app) as client:
        yield client


class TestHealthEndpoints:
    """Tests for health check endpoints."""

    def test_root_endpoint(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["status"] == "running"

    def test_health_endpoint(self, client):
        response = client.get("/health")
        assert response.status_code == 200

        data = response.json()
        assert data["status"] == "healthy"
        assert data["components"] == {"config": True, "audit_logger": True}
        assert data["pass_running"] is False

    def test_degraded_without_config(self, tmp_path, monkeypatch):
        monkeypatch.setenv("CAL_CONFIG", str(tmp_path / "missing.yaml"))
        from cal_engine.api.server import app

        with TestClient(app) as client:
            assert client.get("/health").json()["status"] == "degraded"
            assert client.post("/passes").status_code == 503


class TestPassEndpoints:
    """Tests for pass endpoints."""

    def test_latest_pass_before_any_run(self, client):
        with patch("cal_engine.api.server.latest_result", None):
            assert client.get("/passes/latest").status_code == 404

    def test_run_pass_on_empty_directory(self, client):
        response = client.post("/passes", json={})
        assert response.status_code == 200

        data = response.json()
        assert data["success"] is True
        assert data["holding_location"] == HOLDING
        assert data["counts"]["total"]["reviewed"] == 0
        assert data["dry_run"] == {"move": True, "disable": True, "delete": True}

        latest = client.get("/passes/latest")
        assert latest.status_code == 200
        assert latest.json()["pass_id"] == data["pass_id"]

    def test_run_pass_applies_requested_mode(self, client, make_account):
        directory = MockDirectoryConnector(
            accounts=[make_account("WS01", days=100)], containers=[HOLDING, WORKSTATIONS]
        )

        with patch("cal_engine.api.server.create_connector", return_value=directory):
            response = client.post("/passes", json={"dry_run_move": False})

        assert response.status_code == 200
        data = response.json()
        assert data["executed"]["MOVE"] == 1
        assert data["dry_run"]["move"] is False
        assert directory.calls == [("relocate", "WS01")]

        audit = client.get("/audit", params={"account": "WS01"})
        assert audit.status_code == 200
        assert [r["action"] for r in audit.json()] == ["MOVE"]

    def test_ambiguous_holding_location(self, client):
        directory = MockDirectoryConnector(containers=[HOLDING, HOLDING.upper()])

        with patch("cal_engine.api.server.create_connector", return_value=directory):
            response = client.post("/passes")

        assert response.status_code == 422
        assert "expected exactly 1" in response.json()["detail"]
