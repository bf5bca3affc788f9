"""Shared pytest fixtures."""

from unittest.mock import MagicMock

import pytest

from entrasync.core.auth import AuthContext
from entrasync.entra.client import DirectoryClient


@pytest.fixture
def mock_env_vars(monkeypatch):
    """Set mock environment variables for testing."""
    monkeypatch.setenv("MS_GRAPH_TENANT_ID", "test-tenant-id")
    monkeypatch.setenv("MS_GRAPH_CLIENT_ID", "test-client-id")
    monkeypatch.setenv("MS_GRAPH_CLIENT_SECRET", "test-client-secret")
    monkeypatch.delenv("MS_GRAPH_CERTIFICATE_PATH", raising=False)
    monkeypatch.delenv("MS_GRAPH_CERTIFICATE_PASSWORD", raising=False)
    monkeypatch.delenv("ENTRASYNC_REFRESH_LIMIT", raising=False)
    monkeypatch.delenv("ENTRASYNC_CONFIG_URL", raising=False)


@pytest.fixture
def token_provider():
    """Token provider returning token-1, token-2, ... on successive calls."""
    counter = {"n": 0}

    def provide() -> str:
        counter["n"] += 1
        return f"token-{counter['n']}"

    return MagicMock(side_effect=provide)


@pytest.fixture
def auth(token_provider):
    """AuthContext with a small refresh budget."""
    return AuthContext(token_provider=token_provider, refresh_limit=3)


@pytest.fixture
def graph(auth):
    """Open DirectoryClient; register respx routes before making calls."""
    with DirectoryClient(auth) as client:
        yield client


@pytest.fixture
def no_sleep(monkeypatch):
    """Skip tenacity backoff waits."""
    monkeypatch.setattr("time.sleep", lambda seconds: None)
