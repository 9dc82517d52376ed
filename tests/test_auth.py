"""Tests for authentication endpoints and sessions."""
from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from echolingo.services.auth import AuthService, SessionRegistry
from echolingo.services.store import JsonStore
from echolingo.utils.exceptions import AuthenticationError
from tests.conftest import login


def test_login_returns_token_and_user(client: TestClient) -> None:
    response = client.post("/api/auth/login", json={"account": " admin ", "password": "admin"})

    assert response.status_code == 200
    body = response.json()
    assert len(body["token"]) == 48
    assert body["user"] == {"account": "admin", "role": "admin", "name": "System Admin"}


def test_login_rejects_bad_password(client: TestClient) -> None:
    response = client.post("/api/auth/login", json={"account": "admin", "password": "nope"})

    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid account or password"


def test_me_requires_token(client: TestClient) -> None:
    assert client.get("/api/auth/me").status_code == 401
    assert client.get("/api/auth/me", headers={"Authorization": "Bearer bogus"}).status_code == 401


def test_me_and_logout(client: TestClient, admin_headers: dict[str, str]) -> None:
    me = client.get("/api/auth/me", headers=admin_headers)
    assert me.status_code == 200
    assert me.json()["account"] == "admin"

    assert client.post("/api/auth/logout", headers=admin_headers).json() == {"ok": True}
    assert client.get("/api/auth/me", headers=admin_headers).status_code == 401


def test_disabled_account_cannot_login(client: TestClient, admin_headers: dict[str, str]) -> None:
    client.post("/api/admin/users", json={"account": "bob", "password": "pass1"}, headers=admin_headers)
    client.patch("/api/admin/users/bob/status", json={"active": False}, headers=admin_headers)

    response = client.post("/api/auth/login", json={"account": "bob", "password": "pass1"})

    assert response.status_code == 403


def test_health(client: TestClient) -> None:
    body = client.get("/api/health").json()
    assert body["ok"] is True
    assert body["now"].endswith("Z")


class Clock:
    def __init__(self) -> None:
        self.now = 1_000.0

    def __call__(self) -> float:
        return self.now


@pytest.mark.asyncio
async def test_sessions_slide_and_expire(tmp_path) -> None:
    store = JsonStore(tmp_path)
    await store.load()
    clock = Clock()
    auth = AuthService(store, SessionRegistry(ttl_seconds=60, clock=clock))
    token, _ = auth.login("admin", "admin")

    clock.now += 50
    assert auth.authenticate(token).account == "admin"
    clock.now += 50
    assert auth.authenticate(token).account == "admin"

    clock.now += 61
    with pytest.raises(AuthenticationError, match="session expired"):
        auth.authenticate(token)
    with pytest.raises(AuthenticationError, match="invalid session"):
        auth.authenticate(token)


def test_prune_drops_expired_sessions() -> None:
    clock = Clock()
    sessions = SessionRegistry(ttl_seconds=10, clock=clock)
    sessions.issue("a")
    clock.now += 5
    sessions.issue("b")
    clock.now += 6

    assert sessions.prune() == 1
    assert len(sessions) == 1


def test_non_admin_is_forbidden(client: TestClient, admin_headers: dict[str, str]) -> None:
    client.post("/api/admin/users", json={"account": "carol", "password": "pass1"}, headers=admin_headers)
    headers = login(client, "carol", "pass1")

    assert client.get("/api/admin/users", headers=headers).status_code == 403
