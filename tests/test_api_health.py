"""Tests for the /health endpoint."""

from unittest.mock import MagicMock
from fastapi import FastAPI
from fastapi.testclient import TestClient

from meeting_protocol.api.routes.health import router


def _make_app(generator=None) -> FastAPI:
    app = FastAPI()
    app.include_router(router)
    app.state.generator = generator
    return app


class TestHealthRoute:
    def test_health_ok(self):
        client = TestClient(_make_app(MagicMock()))
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_health_not_initialized(self):
        client = TestClient(_make_app(None))
        response = client.get("/health")
        assert response.status_code == 503
