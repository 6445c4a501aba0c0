"""Tests for the HTTP and WebSocket surface in pinguard.main."""

from __future__ import annotations

import json

import pytest
from fastapi.testclient import TestClient

from pinguard.config import GuardConfig
from pinguard.main import create_app


@pytest.fixture()
def app_config(tmp_path) -> GuardConfig:
    return GuardConfig(storage_path=str(tmp_path / "prefs.json"))


@pytest.fixture()
def app(app_config, clock, hasher):
    return create_app(app_config, clock=clock, hasher=hasher)


@pytest.fixture()
def client(app):
    with TestClient(app) as c:
        yield c


def setup_pin(client, pin="7412"):
    resp = client.post("/pin/setup", json={"pin": pin, "confirm_pin": pin})
    assert resp.status_code == 200, resp.text
    return resp.json()


class TestHealthAndStatus:

    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "healthy"

    def test_initial_status(self, client):
        body = client.get("/pin/status").json()
        assert body == {
            "state": "no_pin",
            "is_pin_set": False,
            "is_locked": False,
            "is_authenticated": False,
            "inactivity_timeout": 300000,
        }

    def test_guard_outside_lifespan_fails_loudly(self, app):
        client = TestClient(app)
        resp = client.get("/pin/status")
        assert resp.status_code == 503
        assert "must be used within a GuardProvider" in resp.json()["detail"]


class TestPinSetup:

    def test_setup_persists_hash(self, client, app_config):
        body = setup_pin(client)
        assert body["state"] == "unlocked"

        stored = json.loads(open(app_config.storage_path).read())
        assert stored["pin"].startswith("$argon2")

    def test_confirmation_mismatch(self, client):
        resp = client.post("/pin/setup", json={"pin": "1234", "confirm_pin": "4321"})
        assert resp.status_code == 400
        assert resp.json()["detail"] == "PINs do not match"

    def test_too_short(self, client):
        resp = client.post("/pin/setup", json={"pin": "123", "confirm_pin": "123"})
        assert resp.status_code == 400
        assert resp.json()["detail"] == "PIN must be at least 4 digits"
        assert client.get("/pin/status").json()["is_pin_set"] is False

    def test_setup_refused_while_locked(self, client):
        setup_pin(client)
        client.post("/pin/lock")
        resp = client.post("/pin/setup", json={"pin": "9999", "confirm_pin": "9999"})
        assert resp.status_code == 423

    def test_verify(self, client):
        setup_pin(client)
        assert client.post("/pin/verify", json={"pin": "7412"}).json() == {"valid": True}
        assert client.post("/pin/verify", json={"pin": "0000"}).json() == {"valid": False}

    def test_clear(self, client):
        setup_pin(client)
        body = client.delete("/pin").json()
        assert body["state"] == "no_pin"
        assert client.post("/pin/verify", json={"pin": "7412"}).json() == {"valid": False}

    def test_unwritable_storage_reports_not_saved(self, tmp_path, clock, hasher):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        config = GuardConfig(storage_path=str(blocker / "prefs.json"))

        with TestClient(create_app(config, clock=clock, hasher=hasher)) as first:
            resp = first.post("/pin/setup", json={"pin": "7412", "confirm_pin": "7412"})
            assert resp.status_code == 503
            assert resp.json()["detail"] == "PIN not saved"
            assert first.get("/pin/status").json()["is_pin_set"] is False

        with TestClient(create_app(config, clock=clock, hasher=hasher)) as second:
            assert second.get("/pin/status").json()["is_pin_set"] is False

    def test_memory_fallback_keeps_pin_for_the_process(self, tmp_path, clock, hasher):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        config = GuardConfig(storage_path=str(blocker / "prefs.json"), memory_fallback=True)

        with TestClient(create_app(config, clock=clock, hasher=hasher)) as client:
            assert setup_pin(client)["is_pin_set"] is True


class TestLockFlow:

    def test_lock_without_pin_is_noop(self, client):
        assert client.post("/pin/lock").json()["is_locked"] is False

    def test_lock_redirect_and_unlock(self, client, app):
        client.post("/session/start")
        setup_pin(client)

        assert client.post("/pin/lock").json()["state"] == "locked"
        assert app.state.navigator.current == "/pin-lock"

        route = client.get("/session/route", params={"path": "/dashboard"}).json()
        assert route["redirect"] == "/pin-lock"
        assert route["origin"] == "/dashboard"

        resp = client.post("/pin/unlock", json={"pin": "0000"})
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Incorrect PIN. Please try again."

        resp = client.post("/pin/unlock", json={"pin": "7412"})
        assert resp.status_code == 200
        assert resp.json() == {"success": True, "redirect": "/"}
        assert client.get("/pin/status").json()["is_locked"] is False

    def test_unlock_after_relogin_returns_to_origin(self, client, app):
        client.post("/session/start")
        setup_pin(client)
        client.post("/pin/lock")

        client.post("/session/end")
        client.post("/session/start")
        assert app.state.navigator.current == "/auth/login"

        resp = client.post("/pin/unlock", json={"pin": "7412"})
        assert resp.json() == {"success": True, "redirect": "/"}
        assert app.state.navigator.current == "/"

    def test_inactivity_locks_session(self, client, clock, app):
        client.post("/session/start")
        setup_pin(client)

        clock.advance(300_000 + 10_000)
        assert client.get("/pin/status").json()["is_locked"] is True
        assert app.state.navigator.current == "/pin-lock"

    def test_activity_keeps_session_alive(self, client, clock):
        client.post("/session/start")
        setup_pin(client)

        for _ in range(10):
            clock.advance(60_000)
            resp = client.post("/session/activity", json={"event": "mousemove"})
            assert resp.json() == {"recorded": True}
        assert client.get("/pin/status").json()["is_locked"] is False

    def test_unknown_activity_rejected(self, client):
        resp = client.post("/session/activity", json={"event": "scroll"})
        assert resp.status_code == 400

    def test_activity_ignored_before_login(self, client):
        setup_pin(client)
        resp = client.post("/session/activity", json={"event": "keypress"})
        assert resp.json() == {"recorded": False}

    def test_end_session(self, client, app):
        client.post("/session/start")
        setup_pin(client)
        body = client.post("/session/end").json()
        assert body == {"is_authenticated": False, "redirect": "/auth/login"}
        assert app.state.navigator.current == "/auth/login"

        route = client.get("/session/route", params={"path": "/dashboard"}).json()
        assert route["redirect"] == "/auth/login"


class TestSettings:

    def test_defaults(self, client):
        body = client.get("/pin/settings").json()
        assert body == {
            "timeout_ms": 300000,
            "timeout_minutes": 5,
            "options_minutes": [1, 5, 10, 15, 30, 60],
        }

    def test_update(self, client, app_config):
        body = client.put("/pin/settings", json={"timeout_ms": 60_000}).json()
        assert body["timeout_ms"] == 60_000
        assert body["timeout_minutes"] == 1

        stored = json.loads(open(app_config.storage_path).read())
        assert stored["inactivityTimeout"] == "60000"

    @pytest.mark.parametrize("value", [0, -1000])
    def test_rejects_non_positive(self, client, value):
        resp = client.put("/pin/settings", json={"timeout_ms": value})
        assert resp.status_code == 422

    def test_survives_restart(self, app_config, clock, hasher):
        with TestClient(create_app(app_config, clock=clock, hasher=hasher)) as first:
            setup_pin(first, "2580")
            first.put("/pin/settings", json={"timeout_ms": 900_000})

        with TestClient(create_app(app_config, clock=clock, hasher=hasher)) as second:
            status = second.get("/pin/status").json()
            assert status["is_pin_set"] is True
            assert status["is_locked"] is False
            assert status["inactivity_timeout"] == 900_000
            assert second.post("/pin/verify", json={"pin": "2580"}).json()["valid"] is True


class TestStepUp:

    def test_requires_pin(self, client):
        resp = client.post("/pin/step-up", json={"pin": "7412"})
        assert resp.status_code == 409

    def test_failure_then_success(self, client):
        setup_pin(client)
        failed = client.post("/pin/step-up", json={"pin": "0000"}).json()
        assert failed["verified"] is False
        assert failed["failed_attempts"] == 1
        assert "2 attempts remaining" in failed["error"]

        ok = client.post("/pin/step-up", json={"pin": "7412"}).json()
        assert ok["verified"] is True

        assert client.post("/pin/step-up/session", json={}).json() == {"active": True}
        assert client.post(
            "/pin/step-up/session", json={"bypass_session": True}
        ).json() == {"active": False}

    def test_lockout(self, client):
        setup_pin(client)
        for _ in range(3):
            body = client.post("/pin/step-up", json={"pin": "0000"}).json()
        assert body["lockout_until"] is not None
        assert body["error"] == "Too many failed attempts. Locked for 1 minute."


class TestNavigationSocket:

    def test_snapshot_then_navigation(self, client):
        client.post("/session/start")
        setup_pin(client)

        with client.websocket_connect("/ws/navigation") as ws:
            snapshot = ws.receive_json()
            assert snapshot == {
                "type": "snapshot",
                "path": "/",
                "state": "unlocked",
                "is_locked": False,
            }

            client.post("/pin/lock")
            assert ws.receive_json() == {"type": "navigate", "path": "/pin-lock"}

            client.post("/pin/unlock", json={"pin": "7412"})
            assert ws.receive_json() == {"type": "navigate", "path": "/"}
