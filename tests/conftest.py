"""Shared test fixtures for the depot client test suite."""

import json
from typing import Any, Callable

import httpx
import pytest
import pytest_asyncio

from depot_client.api.client import ApiClient, LocationNavigator
from depot_client.auth.manager import SessionController
from depot_client.auth.storage import FileKeyValueStore, MemoryKeyValueStore, TokenStore
from depot_client.config import DepotSettings

# Sample IDs used across tests
SAMPLE_USER_ID = "u1"
SAMPLE_TENANT_ID = "t1"
SAMPLE_TOKEN = "abc123"
BASE_URL = "https://depot.test"


# ============================================================================
# Mock Response Data
# ============================================================================

MOCK_PROFILE = {
    "id": SAMPLE_USER_ID,
    "email": "manager@depot.test",
    "password": "$2b$10$hashed",
    "name": "Awa Diop",
    "phone": "+221770000000",
    "tenantId": SAMPLE_TENANT_ID,
    "tenantName": "Depot Central",
    "role": "MANAGER",
}

MOCK_PRODUCTS = [
    {"id": "p1", "name": "Cola 33cl", "price": 500, "purchasePrice": 400, "stock": 24},
    {"id": "p2", "name": "Water 1.5L", "price": 300, "purchasePrice": 250, "stock": 6},
]


class FakeBridge:
    """In-memory host bridge."""

    def __init__(self, token: str | None = None, fail: bool = False):
        self.token = token
        self.fail = fail
        self.notifications: list[tuple[str, str]] = []

    async def get_token(self) -> str | None:
        if self.fail:
            raise RuntimeError("bridge unavailable")
        return self.token

    async def set_token(self, token: str) -> None:
        if self.fail:
            raise RuntimeError("bridge unavailable")
        self.token = token

    async def delete_token(self) -> None:
        if self.fail:
            raise RuntimeError("bridge unavailable")
        self.token = None

    def notify_login_success(self, title: str, body: str) -> None:
        self.notifications.append((title, body))


class MockBackend:
    """Routes requests to canned responses and records what was sent.

    Routes map ``"METHOD /path"`` to a status/body tuple, an exception
    class raised as a transport error, or a callable taking the request.
    """

    def __init__(self, routes: dict[str, Any] | None = None):
        self.routes: dict[str, Any] = dict(routes or {})
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = f"{request.method} {request.url.path}"
        route = self.routes.get(key, (404, {"message": f"No route for {key}"}))

        if isinstance(route, type) and issubclass(route, httpx.TransportError):
            raise route("simulated failure", request=request)
        if callable(route):
            return route(request)

        status, body = route
        return httpx.Response(status, json=body)

    def calls(self, key: str) -> list[httpx.Request]:
        return [r for r in self.requests if f"{r.method} {r.url.path}" == key]

    def json_body(self, request: httpx.Request) -> Any:
        return json.loads(request.content)


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def settings(tmp_path):
    """Settings pointing storage at a temporary directory."""
    return DepotSettings(_env_file=None, api_url=BASE_URL, storage_dir=str(tmp_path))


@pytest.fixture
def bridge_slot():
    """Mutable holder for the bridge the code under test will see."""
    return {"bridge": None}


@pytest.fixture
def bridge_provider(bridge_slot) -> Callable[[], FakeBridge | None]:
    return lambda: bridge_slot["bridge"]


@pytest.fixture
def token_store(settings, bridge_provider):
    return TokenStore(
        durable=FileKeyValueStore(settings.storage_path),
        session=MemoryKeyValueStore(),
        bridge_provider=bridge_provider,
    )


@pytest.fixture
def backend():
    return MockBackend()


@pytest.fixture
def navigator():
    return LocationNavigator("/dashboard")


@pytest_asyncio.fixture
async def api(settings, token_store, navigator, backend, bridge_provider):
    http_client = httpx.AsyncClient(
        base_url=BASE_URL,
        transport=httpx.MockTransport(backend),
        headers=ApiClient.DEFAULT_HEADERS,
    )
    client = ApiClient(
        settings,
        token_store,
        navigator=navigator,
        http_client=http_client,
        bridge_provider=bridge_provider,
    )
    yield client
    await http_client.aclose()


@pytest.fixture
def controller(api, token_store, bridge_provider):
    return SessionController(api, token_store, bridge_provider=bridge_provider)


# ============================================================================
# CLI Testing Fixtures
# ============================================================================

@pytest.fixture
def cli_runner():
    """Create a Typer CLI test runner."""
    from typer.testing import CliRunner
    return CliRunner()
