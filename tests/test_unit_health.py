"""Liveness and readiness probes."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from app.main import create_app


@pytest.fixture
def fake_engine():
    engine = MagicMock()
    with patch("app.api.routes.health.get_async_engine", return_value=engine):
        yield engine


def test_health_needs_no_token_or_database() -> None:
    resp = TestClient(create_app()).get("/api/v1/health")

    assert resp.status_code == 200
    assert resp.json() == {"ok": True}


def test_readyz_pings_database(fake_engine: MagicMock) -> None:
    conn = AsyncMock()
    fake_engine.connect.return_value.__aenter__.return_value = conn

    resp = TestClient(create_app()).get("/api/v1/readyz")

    assert (resp.status_code, resp.json()) == (200, {"ok": True, "db": "ok"})
    conn.execute.assert_awaited_once()


def test_readyz_unavailable_hides_driver_error(fake_engine: MagicMock) -> None:
    fake_engine.connect.return_value.__aenter__.side_effect = OSError("connection refused")

    resp = TestClient(create_app()).get("/api/v1/readyz")

    assert (resp.status_code, resp.json()) == (503, {"ok": False, "db": "unavailable"})
    assert "refused" not in resp.text
