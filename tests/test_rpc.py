"""Tests for the RPC server module."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock

import aiosqlite
from fastapi.testclient import TestClient

from dtunes.server.rpc import AppState, RpcResponse, create_rpc_app
from dtunes.storage import Database


def _make_client(tmp_path: Path) -> tuple[TestClient, AppState]:
    """Create a fresh AppState + TestClient pair.

    The database is never connected; these commands must not touch it.
    """
    state = AppState(Database(tmp_path / "unused.db"))
    app = create_rpc_app(state)
    return TestClient(app), state


# ---------------------------------------------------------------------------
# RPC endpoint tests
# ---------------------------------------------------------------------------


def test_ping(tmp_path: Path) -> None:
    client, _state = _make_client(tmp_path)
    resp = client.post("/rpc", json={"cmd": "ping"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["ok"] is True


def test_health_rpc(tmp_path: Path) -> None:
    client, _state = _make_client(tmp_path)
    resp = client.post("/rpc", json={"cmd": "health"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["ok"] is True
    assert "uptime_seconds" in body["data"]


def test_health_get_endpoint(tmp_path: Path) -> None:
    client, _state = _make_client(tmp_path)
    resp = client.get("/health")
    assert resp.status_code == 200
    body = resp.json()
    assert body["ok"] is True
    assert "uptime_seconds" in body["data"]


def test_unknown_command(tmp_path: Path) -> None:
    client, _state = _make_client(tmp_path)
    resp = client.post("/rpc", json={"cmd": "foobar"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["ok"] is False
    assert "unknown" in body["error"].lower()


def test_missing_param_is_reported(tmp_path: Path) -> None:
    client, _state = _make_client(tmp_path)
    resp = client.post("/rpc", json={"cmd": "view_artist", "params": {}})
    assert resp.status_code == 200
    body = resp.json()
    assert body["ok"] is False
    assert body["error"].startswith("invalid params")
    assert "id" in body["error"]


def test_wrongly_typed_param_is_reported(tmp_path: Path) -> None:
    client, _state = _make_client(tmp_path)
    resp = client.post("/rpc", json={"cmd": "delete_playlist", "params": {"id": "seven"}})
    body = resp.json()
    assert body["ok"] is False
    assert "id" in body["error"]


def test_malformed_request_rejected(tmp_path: Path) -> None:
    client, _state = _make_client(tmp_path)
    resp = client.post("/rpc", json={"params": {}})
    assert resp.status_code == 422


# ---------------------------------------------------------------------------
# AppState / wire model unit tests
# ---------------------------------------------------------------------------


def test_app_state_get_status(tmp_path: Path) -> None:
    state = AppState(Database(tmp_path / "unused.db"))
    status = state.get_status()
    assert "uptime_seconds" in status
    assert "started_at" in status
    assert isinstance(status["uptime_seconds"], float)


def test_app_state_builds_library(tmp_path: Path) -> None:
    db = Database(tmp_path / "unused.db")
    state = AppState(db)
    assert state.library.db is db
    assert state.player is None


def test_rpc_response_defaults() -> None:
    resp = RpcResponse()
    assert resp.ok is True
    assert resp.data == {}
    assert resp.error is None


def test_status_store_error_is_reported(tmp_path: Path) -> None:
    client, state = _make_client(tmp_path)
    state.library.counts = AsyncMock(side_effect=aiosqlite.OperationalError("disk I/O error"))
    resp = client.post("/rpc", json={"cmd": "status"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["ok"] is False
    assert "disk I/O error" in body["error"]
