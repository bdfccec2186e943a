"""Shared fixtures for casefile tests."""

from __future__ import annotations

import httpx
import pytest

from casefile import config, session
from casefile.enrichment import breaches
from casefile.extraction import jobs
from casefile.routes import enrichment as enrichment_routes
from casefile.storage import filesystem

PROVIDER_ENV_VARS = (
    "HIBP_API_KEY",
    "MAPBOX_TOKEN",
    "GITHUB_TOKEN",
    "SEC_USER_AGENT",
    "CASEFILE_PORT",
    "CASEFILE_PROVIDER_TIMEOUT",
    "CASEFILE_MODEL_PROVIDER",
)


@pytest.fixture(autouse=True)
def casefile_home(tmp_path, monkeypatch):
    """Point ~/.casefile at a temp dir and reset process-wide state."""
    home = tmp_path / "casefile"
    monkeypatch.setenv("CASEFILE_HOME", str(home))
    for name in PROVIDER_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(config, "_env_loaded", False)

    monkeypatch.setattr(session, "_sessions", {})
    monkeypatch.setattr(jobs, "_manager", None)
    monkeypatch.setattr(filesystem, "_store", None)
    monkeypatch.setattr(breaches, "_default_limiter", None)
    monkeypatch.setattr(enrichment_routes, "_orchestrator", None)
    return home


class FakeClock:
    """Manually advanced clock; ``sleep`` advances it instead of waiting."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def mock_http():
    """Factory for an ``httpx.AsyncClient`` answering through *handler*."""

    def factory(handler) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return factory
