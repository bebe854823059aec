"""Depot API Client - single HTTP entry point for the depot backend.

Every request carries the stored bearer token. Every response passes through
the same checks:
- 401 purges the token, redirects to the login page and notifies listeners
- no response at all produces a best-effort notification
Nothing is retried.
"""

from __future__ import annotations

import inspect
import logging
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Protocol, Union

import httpx

from ..config import DepotSettings, get_settings
from ..host import HostBridge, current_host_bridge
from ..notify import notify

if TYPE_CHECKING:
    from ..auth.storage import TokenStore

log = logging.getLogger(__name__)

UnauthorizedCallback = Callable[[], Union[None, Awaitable[None]]]


class ApiError(Exception):
    """Base exception for depot API errors."""

    def __init__(self, message: str, status_code: int | None = None, payload: Any = None):
        self.message = message
        self.status_code = status_code
        self.payload = payload
        super().__init__(self.message)

    @property
    def server_message(self) -> str | None:
        """The backend's own ``message`` field, when it sent one."""
        if isinstance(self.payload, dict):
            message = self.payload.get("message")
            if isinstance(message, str) and message:
                return message
        return None


class ApiAuthError(ApiError):
    """Token missing, invalid or expired (HTTP 401)."""

    pass


class ApiServerError(ApiError):
    """Backend failure (HTTP 5xx)."""

    pass


class ApiNetworkError(ApiError):
    """No response received (connection failure or timeout)."""

    pass


class ApiResponseError(ApiError):
    """A response arrived but could not be read (bad encoding, redirect loop)."""

    pass


class Navigator(Protocol):
    """Current location of the application and a way to leave it."""

    @property
    def current_path(self) -> str: ...

    def redirect(self, path: str) -> None: ...


class LocationNavigator:
    """In-memory navigator that records redirects."""

    def __init__(self, initial_path: str = "/"):
        self.current_path = initial_path
        self.history: list[str] = []

    def redirect(self, path: str) -> None:
        log.info("Redirecting from %s to %s", self.current_path, path)
        self.history.append(path)
        self.current_path = path


def _decode(response: httpx.Response) -> Any:
    if not response.content:
        return {}
    try:
        return response.json()
    except ValueError:
        return {"raw_response": response.text[:500]}


class ApiClient:
    """Depot backend client.

    Usage:
        async with ApiClient(settings, token_store) as api:
            profile = await api.get("/auth/me")

    The session layer subscribes to authentication failures instead of the
    client depending on it:

        unsubscribe = api.on_unauthorized(controller.handle_unauthorized)
    """

    DEFAULT_HEADERS = {
        "Content-Type": "application/json",
        "Accept": "application/json",
    }

    def __init__(
        self,
        settings: DepotSettings | None = None,
        token_store: "TokenStore | None" = None,
        navigator: Navigator | None = None,
        http_client: httpx.AsyncClient | None = None,
        bridge_provider: Callable[[], HostBridge | None] = current_host_bridge,
    ):
        """Initialize API client.

        Args:
            settings: DepotSettings (loaded from the environment if not provided)
            token_store: TokenStore (built from settings if not provided)
            navigator: Navigator used for the 401 redirect
            http_client: Pre-configured httpx.AsyncClient, not closed by this client
            bridge_provider: Returns the host bridge used for notifications
        """
        self.settings = settings or get_settings()
        if token_store is None:
            from ..auth.storage import TokenStore

            token_store = TokenStore.from_settings(self.settings)
        self.token_store = token_store
        self.navigator = navigator or LocationNavigator()
        self._bridge_provider = bridge_provider
        self._listeners: list[UnauthorizedCallback] = []

        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            base_url=self.settings.base_url,
            timeout=self.settings.timeout_seconds,
            headers=self.DEFAULT_HEADERS,
        )

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *args) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()

    def on_unauthorized(self, callback: UnauthorizedCallback) -> Callable[[], None]:
        """Register a listener for 401 responses.

        Returns:
            Function that removes the listener
        """
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    async def request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json: Any = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """Send a request and run response checks.

        Raises:
            ApiAuthError: On 401, after the session has been torn down
            ApiServerError: On 5xx
            ApiNetworkError: When no response was received
            ApiResponseError: When the response could not be read
            ApiError: On any other 4xx
        """
        request_headers = dict(headers or {})
        token = await self.token_store.get_token()
        if token:
            request_headers["Authorization"] = f"Bearer {token}"

        try:
            response = await self._client.request(
                method,
                path,
                params=params,
                json=json,
                headers=request_headers,
            )
        except httpx.TransportError as e:
            log.error("Network error on %s %s: %s", method, path, e)
            notify(
                "Connection error",
                "Unable to reach the server",
                bridge_provider=self._bridge_provider,
            )
            raise ApiNetworkError(f"No response from server: {e}") from e
        except httpx.RequestError as e:
            log.error("Unreadable response to %s %s: %s", method, path, e)
            raise ApiResponseError(f"Invalid response from server: {e}") from e

        if response.status_code == 401:
            await self._handle_unauthorized()
            raise ApiAuthError("Invalid or expired token", 401, _decode(response))

        if response.status_code >= 500:
            raise ApiServerError(
                f"Server error: {response.status_code}",
                response.status_code,
                _decode(response),
            )

        if response.status_code >= 400:
            raise ApiError(
                f"API error: {response.status_code}",
                response.status_code,
                _decode(response),
            )

        return response

    async def _handle_unauthorized(self) -> None:
        await self.token_store.delete_token()

        # Check and redirect with no await in between so concurrent 401s
        # redirect once.
        if self.navigator.current_path not in self.settings.public_paths:
            self.navigator.redirect(self.settings.login_path)

        for callback in list(self._listeners):
            try:
                result = callback()
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                log.error("Unauthorized listener failed: %s", e)

    async def get(self, path: str, **params: Any) -> Any:
        """GET and decode the JSON body."""
        response = await self.request("GET", path, params=params or None)
        return _decode(response)

    async def post(self, path: str, data: Any = None) -> Any:
        """POST a JSON body and decode the response."""
        response = await self.request("POST", path, json=data)
        return _decode(response)

    async def put(self, path: str, data: Any = None) -> Any:
        """PUT a JSON body and decode the response."""
        response = await self.request("PUT", path, json=data)
        return _decode(response)

    async def patch(self, path: str, data: Any = None) -> Any:
        """PATCH a JSON body and decode the response."""
        response = await self.request("PATCH", path, json=data)
        return _decode(response)

    async def delete(self, path: str) -> Any:
        """DELETE and decode the response."""
        response = await self.request("DELETE", path)
        return _decode(response)
