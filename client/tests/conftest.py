"""Shared fixtures for client tests."""

from pathlib import Path

import httpx
import pytest

from fake_backend import FakeBackend
from ragconsole.core.config import Settings
from ragconsole.services.backend import BackendClient


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        backend_base_url="http://backend",
        session_file=tmp_path / "session.json",
    )


@pytest.fixture
def fake_backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def backend(fake_backend: FakeBackend, settings: Settings) -> BackendClient:
    """BackendClient wired to the in-process fake backend."""
    http_client = httpx.AsyncClient(
        transport=httpx.ASGITransport(app=fake_backend.app),
        base_url=settings.base_url,
    )
    return BackendClient(settings, http_client)

