"""Pytest configuration and shared fixtures."""
from collections.abc import Callable

import httpx
import pytest

from streamchat.client import BackendClient
from streamchat.credentials import Credential

NOW = 1_700_000_000.0
BASE_URL = "http://backend.test"


@pytest.fixture
def now() -> float:
    """Fixed 'current time' in epoch seconds."""
    return NOW


@pytest.fixture
def fresh_credential() -> Credential:
    """A credential valid for another hour."""
    return Credential(token="tok-fresh", session_id="sess-1", expires_at=int(NOW) + 3600)


@pytest.fixture
def make_backend() -> Callable[..., BackendClient]:
    """Build a BackendClient whose HTTP traffic goes to ``handler``."""

    def _make(handler: Callable[[httpx.Request], httpx.Response]) -> BackendClient:
        http = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url=BASE_URL)
        return BackendClient(BASE_URL, http=http)

    return _make


@pytest.fixture
def sse_body() -> Callable[..., str]:
    """Render payloads as ``data:`` frames separated by blank lines."""

    def _render(*payloads: str) -> str:
        return "".join(f"data: {payload}\n\n" for payload in payloads)

    return _render
