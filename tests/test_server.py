"""
Tests for the web front end.

Run with: pytest tests/test_server.py -v
"""

import pytest

pytest.importorskip("fastapi")
pytest.importorskip("httpx")

from fastapi.testclient import TestClient

from driftlight.server import app as app_module


class FakeLightsClient:
    def __init__(self):
        self.params = {"lambda": 1, "decay": 2, "rate": 3}

    async def state(self):
        return dict(self.params)

    async def config(self):
        return {"topic": "homeassistant/light/x/config", "config": {"name": "n"}}

    async def set_param(self, name, value):
        if value == "300":
            raise RuntimeError("value 300 does not fit in 8 bits")
        self.params[name] = int(value)
        return dict(self.params)


@pytest.fixture
def client(monkeypatch):
    fake = FakeLightsClient()
    monkeypatch.setattr(app_module, "lc", fake)
    return TestClient(app_module.app)


class TestApi:

    def test_index_has_sliders(self, client):
        r = client.get("/")
        assert r.status_code == 200
        for name in ("lambda", "decay", "rate"):
            assert f"id={name}" in r.text

    def test_state(self, client):
        assert client.get("/api/state").json() == {"lambda": 1, "decay": 2, "rate": 3}

    def test_config(self, client):
        assert client.get("/api/config").json()["topic"] == "homeassistant/light/x/config"

    def test_set_param(self, client):
        r = client.post("/api/param/decay/40")
        assert r.status_code == 200
        assert r.json() == {"ok": True, "state": {"lambda": 1, "decay": 40, "rate": 3}}

    def test_set_param_rejected(self, client):
        r = client.post("/api/param/rate/300")
        assert r.status_code == 400
        assert "8 bits" in r.json()["detail"]

    def test_unknown_parameter(self, client):
        assert client.post("/api/param/hue/3").status_code == 404
