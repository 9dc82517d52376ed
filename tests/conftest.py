"""Pytest fixtures shared by the unit and API tests."""

import asyncio
import datetime as dt
from collections.abc import Generator
from typing import Any, Callable, Optional

import pytest
from fastapi.testclient import TestClient

from echolingo.api.deps import get_sessions, get_store
from echolingo.core.cancellation import CancellationToken, OperationCancelled
from echolingo.core.sanitizer import sanitize_user_data
from echolingo.main import create_app
from echolingo.schemas.records import SpeechProfile, UserDataRecord
from echolingo.services.auth import SessionRegistry
from echolingo.services.speech import NarrationReport
from echolingo.services.store import JsonStore
from echolingo.utils.cache import cache_backend

FIXED_NOW = dt.datetime(2024, 5, 1, 12, 0, 0, tzinfo=dt.timezone.utc)


@pytest.fixture(autouse=True)
def clear_cache() -> Generator[None, None, None]:
    cache_backend.clear()
    try:
        yield
    finally:
        cache_backend.clear()


@pytest.fixture()
def store(tmp_path) -> JsonStore:
    return JsonStore(tmp_path / "data")


@pytest.fixture()
def sessions() -> SessionRegistry:
    return SessionRegistry()


@pytest.fixture()
def client(store: JsonStore, sessions: SessionRegistry) -> Generator[TestClient, None, None]:
    app = create_app()
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_sessions] = lambda: sessions
    with TestClient(app) as test_client:
        yield test_client


def login(client: TestClient, account: str = "admin", password: str = "admin") -> dict[str, str]:
    response = client.post("/api/auth/login", json={"account": account, "password": password})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['token']}"}


@pytest.fixture()
def admin_headers(client: TestClient) -> dict[str, str]:
    return login(client)


def make_record(
    words: Optional[list[dict[str, Any]]] = None,
    sentences: Optional[list[dict[str, Any]]] = None,
) -> UserDataRecord:
    """Sanitized record holding exactly the given raw items."""

    return sanitize_user_data(
        {
            "englishWords": words if words is not None else [],
            "japaneseSentences": sentences if sentences is not None else [],
        }
    )


class FakeNarrator:
    """Narrator double recording calls; ``hold()`` keeps each item sounding until ``release()``."""

    def __init__(self, failures: tuple[str, ...] = ()) -> None:
        self.failures = list(failures)
        self.calls: list[str] = []
        self.tokens: list[CancellationToken] = []
        self.pause_calls = 0
        self.resume_calls = 0
        self.halt_calls = 0
        self._released = asyncio.Event()
        self._released.set()

    def hold(self) -> None:
        self._released.clear()

    def release(self) -> None:
        self._released.set()

    async def narrate(
        self, item: Any, profile: SpeechProfile, token: CancellationToken
    ) -> NarrationReport:
        self.calls.append(item.id)
        self.tokens.append(token)
        try:
            await token.run(self._released.wait())
        except OperationCancelled:
            return NarrationReport(item_id=item.id, segments=1, cancelled=True)
        return NarrationReport(item_id=item.id, segments=1, spoken=1, failures=list(self.failures))

    async def speak(self, segments: Any, *, engine: str, token: CancellationToken, item_id: Any = None) -> NarrationReport:
        self.calls.append(f"speak:{len(segments)}")
        return NarrationReport(item_id=item_id, segments=len(segments), spoken=len(segments))

    def pause_all(self) -> None:
        self.pause_calls += 1

    def resume_all(self) -> None:
        self.resume_calls += 1

    def halt(self) -> None:
        self.halt_calls += 1


async def wait_for(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Yield to the loop until ``predicate()`` holds."""

    async def poll() -> None:
        while not predicate():
            await asyncio.sleep(0.001)

    await asyncio.wait_for(poll(), timeout)
