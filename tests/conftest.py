"""
Pytest configuration and fixtures for resource cache tests.
"""

from __future__ import annotations

import asyncio
import os
from pathlib import Path
from typing import Any, Generator
from unittest.mock import patch

import pytest

from stitch.auth.credentials import TOKEN_KEY, CredentialResolver, MemoryCredentialStorage
from stitch.auth.session import Session
from stitch.cache.store import ResourceCacheStore
from stitch.config import Settings, clear_settings_cache
from stitch.orchestrator import FetchOrchestrator
from stitch.types import ApiResult

TTL_MS = 5 * 60 * 1000


class FakeClock:
    """Manually advanced epoch-millisecond clock."""

    def __init__(self, start: int = 1_700_000_000_000) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += int(seconds * 1000)


class FakeBackend:
    """Backend API double recording every call.

    ``responses`` maps a method name (e.g. "get_workers") to an ApiResult,
    an exception to raise, or a callable receiving the call arguments.
    ``gates`` maps a method name to an asyncio.Event the call waits on,
    which keeps a fetch in flight until the test releases it.
    """

    def __init__(self) -> None:
        self.responses: dict[str, Any] = {}
        self.gates: dict[str, asyncio.Event] = {}
        self.calls: list[tuple[str, tuple[Any, ...]]] = []

    def __getattr__(self, name: str) -> Any:
        if not name.startswith("get_"):
            raise AttributeError(name)

        async def call(*args: Any) -> ApiResult:
            self.calls.append((name, args))
            gate = self.gates.get(name)
            if gate is not None:
                await gate.wait()
            response = self.responses.get(name, ApiResult.ok([]))
            if isinstance(response, BaseException):
                raise response
            if callable(response):
                return response(*args)
            return response

        return call

    async def close(self) -> None:
        self.closed = True

    def count(self, name: str) -> int:
        return sum(1 for called, _ in self.calls if called == name)

    def gate(self, name: str) -> asyncio.Event:
        event = asyncio.Event()
        self.gates[name] = event
        return event


@pytest.fixture
def temp_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for test outputs."""
    return tmp_path


@pytest.fixture
def mock_env_vars() -> Generator[dict[str, str], None, None]:
    """Provide mock environment variables for testing."""
    env_vars = {
        "API_URL": "https://api.test.local",
        "API_TOKEN": "",
        "CACHE_TTL_SECONDS": "300",
        "REQUEST_TIMEOUT_SECONDS": "5",
        "REQUEST_MAX_ATTEMPTS": "2",
        "CACHE_DIR": ".test_cache",
        "LOG_LEVEL": "DEBUG",
    }

    with patch.dict(os.environ, env_vars, clear=False):
        clear_settings_cache()
        yield env_vars


@pytest.fixture
def mock_settings(mock_env_vars: dict[str, str], temp_dir: Path) -> Generator[Settings, None, None]:
    """Provide a Settings instance with mock configuration.

    Uses temp_dir for the cache directory.
    """
    with patch.dict(os.environ, {"CACHE_DIR": str(temp_dir / "cache")}):
        clear_settings_cache()
        from stitch.config import get_settings

        settings = get_settings()
        settings.ensure_directories()
        yield settings
        clear_settings_cache()


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None, None, None]:
    """Automatically reset settings cache before and after each test."""
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock: FakeClock) -> ResourceCacheStore:
    return ResourceCacheStore(ttl_ms=TTL_MS, clock=clock)


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def storage() -> MemoryCredentialStorage:
    """Credential storage holding a bearer token."""
    return MemoryCredentialStorage({TOKEN_KEY: "test-token"})


@pytest.fixture
def session(storage: MemoryCredentialStorage) -> Session:
    session = Session(storage)
    session.login({"id": "u1", "name": "Owner", "role": "OWNER"})
    return session


@pytest.fixture
async def orchestrator(
    store: ResourceCacheStore,
    backend: FakeBackend,
    storage: MemoryCredentialStorage,
    session: Session,
) -> FetchOrchestrator:
    orchestrator = FetchOrchestrator(
        store=store,
        api=backend,
        credentials=CredentialResolver(storage),
        session=session,
    )
    yield orchestrator
    await orchestrator.aclose()
