"""Pytest configuration and shared fixtures."""

from collections.abc import Callable, Iterator
from typing import Any

import httpx
import pytest
from pydantic import SecretStr

from fathom_mcp.models.auth import Credential, CredentialSource
from fathom_mcp.tools.fathom_api import FathomClient
from fathom_mcp.utils.config import Settings, reset_settings

TEST_API_KEY = "fathom-test-key-12345"

ENV_VARS = (
    "FATHOM_API_KEY",
    "FATHOM_BASE_URL",
    "FATHOM_TIMEOUT",
    "HTTP_MODE",
    "HTTP_HOST",
    "HTTP_PORT",
    "HTTP_MCP_PATH",
    "HTTP_JSON_RESPONSE",
    "HTTP_PUBLIC_URL",
    "OAUTH_STATE_SECRET",
    "OAUTH_ACCESS_TOKEN_TTL",
    "OAUTH_DEFAULT_SCOPES",
    "MCP_SERVER_NAME",
    "MCP_LOG_LEVEL",
    "MCP_STRUCTURED_LOGGING",
)


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Start every test from a clean configuration environment."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    reset_settings()
    yield
    reset_settings()


class FakeFathomAPI:
    """Scripted stand-in for the Fathom API behind ``httpx.MockTransport``.

    Routes map a request path to a JSON payload, a ``(status, body)`` tuple,
    or a callable taking the request. Unrouted paths answer 404. Every
    request is recorded.
    """

    def __init__(self) -> None:
        self.routes: dict[str, Any] = {}
        self.requests: list[httpx.Request] = []

    def route(self, path: str, response: Any) -> None:
        self.routes[path] = response

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path.removeprefix("/external/v1")
        response = self.routes.get(path)

        if response is None:
            return httpx.Response(404, text=f"Not found: {path}")
        if callable(response):
            response = response(request)
        if isinstance(response, httpx.Response):
            return response
        if isinstance(response, tuple):
            status, body = response
            if isinstance(body, str):
                return httpx.Response(status, text=body)
            return httpx.Response(status, json=body)
        if isinstance(response, str):
            return httpx.Response(200, text=response)
        return httpx.Response(200, json=response)

    @property
    def paths(self) -> list[str]:
        return [r.url.path.removeprefix("/external/v1") for r in self.requests]


@pytest.fixture
def fake_api() -> FakeFathomAPI:
    """Empty fake API; tests add routes."""
    return FakeFathomAPI()


@pytest.fixture
def fathom_client(fake_api: FakeFathomAPI) -> FathomClient:
    """FathomClient wired to the fake API."""
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(fake_api.handler))
    return FathomClient(http_client=http_client)


@pytest.fixture
def credential() -> Credential:
    return Credential(api_key=SecretStr(TEST_API_KEY), source=CredentialSource.STATIC)


@pytest.fixture
def make_settings(monkeypatch: pytest.MonkeyPatch) -> Callable[..., Settings]:
    """Build Settings from environment overrides.

    Example: ``make_settings(HTTP_MODE="oauth")``
    """

    def _make(**env: str) -> Settings:
        for name, value in env.items():
            monkeypatch.setenv(name, value)
        return Settings()

    return _make


@pytest.fixture
def sample_meetings() -> list[dict[str, Any]]:
    """Upstream meeting records in the shapes seen in practice."""
    return [
        {
            "id": "m1",
            "title": "Weekly sync",
            "created_at": "2026-02-20T10:00:00Z",
            "duration": 1800,
            "participants": ["Alice", "Bob"],
            "recording_id": "r1",
        },
        {
            "id": "m2",
            "name": "Customer call",
            "date": "2026-02-21T15:00:00Z",
            "duration_seconds": 900,
            "attendees": [{"name": "Carol"}, {"email": "dave@example.com"}],
            "recordings": [{"id": "r2"}],
        },
        {
            "id": "m3",
            "recorded_at": "2026-02-22T09:30:00Z",
        },
    ]
