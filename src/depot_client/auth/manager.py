"""Session controller - the authenticate/deauthenticate state machine.

Owns the single ``Session`` object. Startup hydration restores a session from
a persisted token, login exchanges credentials for a token and a profile,
logout clears everything regardless of what the server says.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Callable

from ..api.client import (
    ApiAuthError,
    ApiClient,
    ApiError,
    ApiNetworkError,
    ApiServerError,
)
from ..host import HostBridge, current_host_bridge
from ..models import Session, SessionState, UserProfile
from ..notify import notify
from .storage import TokenStore

log = logging.getLogger(__name__)

SessionListener = Callable[[Session], None]


class LoginErrorKind(str, Enum):
    INVALID_CREDENTIALS = "invalid_credentials"
    SERVER_ERROR = "server_error"
    NETWORK = "network"
    TOKEN_MISSING = "token_missing"
    PROFILE_UNAVAILABLE = "profile_unavailable"
    IN_PROGRESS = "in_progress"
    CANCELLED = "cancelled"
    UNKNOWN = "unknown"


LOGIN_MESSAGES = {
    LoginErrorKind.INVALID_CREDENTIALS: "Incorrect email or password.",
    LoginErrorKind.SERVER_ERROR: "The server is unavailable. Please try again later.",
    LoginErrorKind.NETWORK: "Unable to reach the server. Check your connection.",
    LoginErrorKind.TOKEN_MISSING: "The server did not return an access token.",
    LoginErrorKind.PROFILE_UNAVAILABLE: "Unable to load your profile. Please sign in again.",
    LoginErrorKind.IN_PROGRESS: "A sign-in is already in progress.",
    LoginErrorKind.CANCELLED: "Sign-in was cancelled by a sign-out.",
    LoginErrorKind.UNKNOWN: "Sign-in failed. Please try again.",
}


class LoginError(Exception):
    """Raised when login fails. ``str(error)`` is safe to show to the user."""

    def __init__(self, kind: LoginErrorKind, message: str | None = None):
        self.kind = kind
        super().__init__(message or LOGIN_MESSAGES[kind])


def extract_token(payload: Any) -> str | None:
    """Find the access token in a login response.

    Accepted shapes, in order:
        {"token": {"access_token": "..."}}
        {"access_token": "..."}
        {"token": "..."}
    """
    if not isinstance(payload, dict):
        return None

    nested = payload.get("token")
    candidates = [
        nested.get("access_token") if isinstance(nested, dict) else None,
        payload.get("access_token"),
        nested,
    ]
    for candidate in candidates:
        if isinstance(candidate, str) and candidate:
            return candidate
    return None


def classify_login_error(exc: Exception) -> LoginErrorKind:
    """Map a failure during login to the error kind shown to the user."""
    if isinstance(exc, LoginError):
        return exc.kind
    if isinstance(exc, ApiNetworkError):
        return LoginErrorKind.NETWORK
    if isinstance(exc, ApiServerError):
        return LoginErrorKind.SERVER_ERROR
    if isinstance(exc, ApiError) and exc.status_code in (401, 403):
        return LoginErrorKind.INVALID_CREDENTIALS
    if isinstance(exc, ValueError):
        return LoginErrorKind.PROFILE_UNAVAILABLE
    return LoginErrorKind.UNKNOWN


class SessionController:
    """The only writer of ``Session``.

    Usage:
        controller = SessionController(api, token_store)
        await controller.hydrate()

        if not controller.is_authenticated:
            user = await controller.login("manager@depot.test", "secret")

        await controller.logout()
    """

    def __init__(
        self,
        api: ApiClient,
        token_store: TokenStore | None = None,
        session: Session | None = None,
        bridge_provider: Callable[[], HostBridge | None] = current_host_bridge,
    ):
        """Initialize session controller.

        Args:
            api: ApiClient used for the auth endpoints
            token_store: TokenStore (defaults to the client's store)
            session: Session to own (a fresh one if not provided)
            bridge_provider: Returns the host bridge used for notifications
        """
        self.api = api
        self.token_store = token_store or api.token_store
        self.session = session or Session()
        self._bridge_provider = bridge_provider
        self._listeners: list[SessionListener] = []
        self._hydrated = False
        self._login_in_flight = False
        # Bumped whenever the session is torn down; in-flight work started
        # under an older value must not publish a user.
        self._generation = 0
        self._unsubscribe = api.on_unauthorized(self.handle_unauthorized)

    # Read-only views

    @property
    def user(self) -> UserProfile | None:
        return self.session.user

    @property
    def is_authenticated(self) -> bool:
        return self.session.is_authenticated

    @property
    def loading(self) -> bool:
        return self.session.loading

    @property
    def state(self) -> SessionState:
        return self.session.state

    def add_listener(self, callback: SessionListener) -> Callable[[], None]:
        """Call ``callback(session)`` after every state change.

        Returns:
            Function that removes the listener
        """
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def close(self) -> None:
        """Stop reacting to 401 responses."""
        self._unsubscribe()

    def _update(self, **changes: Any) -> None:
        for name, value in changes.items():
            setattr(self.session, name, value)
        for callback in list(self._listeners):
            try:
                callback(self.session)
            except Exception as e:
                log.error("Session listener failed: %s", e)

    async def _fetch_profile(self) -> UserProfile:
        return UserProfile.from_dict(await self.api.get("/auth/me"))

    # Transitions

    async def hydrate(self) -> Session:
        """Restore the session from a persisted token. Runs once; never raises."""
        if self._hydrated:
            return self.session
        self._hydrated = True

        token = await self.token_store.get_token()
        if not token:
            log.debug("No persisted token; starting anonymous")
            self._update(user=None, loading=False)
            return self.session

        generation = self._generation
        try:
            user = await self._fetch_profile()
        except Exception as e:
            log.info("Stored session is no longer valid: %s", e)
            await self.token_store.delete_token()
            self._update(user=None, loading=False)
            return self.session

        if self._generation != generation:
            log.debug("Session ended during restore; discarding profile")
            return self.session

        log.info("Restored session for %s (tenant %s)", user.email, user.tenant_id)
        self._update(user=user, loading=False)
        return self.session

    async def login(self, email: str, password: str) -> UserProfile:
        """Exchange credentials for a token and load the profile.

        Raises:
            LoginError: On any failure; the session is left anonymous
                with no token stored
        """
        if self._login_in_flight:
            raise LoginError(LoginErrorKind.IN_PROGRESS)

        self._login_in_flight = True
        self._update(loading=True)
        generation = self._generation
        persisted = False
        try:
            payload = await self.api.post("/auth/login", {"email": email, "password": password})
            token = extract_token(payload)
            if not token:
                raise LoginError(LoginErrorKind.TOKEN_MISSING)

            await self.token_store.set_token(token)
            persisted = True

            user = await self._fetch_profile()
            if self._generation != generation:
                raise LoginError(LoginErrorKind.CANCELLED)
        except Exception as e:
            kind = classify_login_error(e)
            log.warning("Login failed for %s: %s", email, kind.value)
            if persisted:
                await self.token_store.delete_token()
            self._update(user=None, loading=False)
            if isinstance(e, LoginError):
                raise
            raise LoginError(kind) from e
        finally:
            self._login_in_flight = False

        self._hydrated = True
        self._update(user=user, loading=False)
        log.info("Signed in as %s (tenant %s)", user.email, user.tenant_id)

        try:
            notify("Signed in", f"Welcome {user.name}!", bridge_provider=self._bridge_provider)
        except Exception as e:
            log.debug("Login notification failed: %s", e)

        return user

    async def logout(self) -> None:
        """Sign out locally, telling the server when it is reachable."""
        self._generation += 1
        self._update(loading=True)
        try:
            await self.api.post("/auth/logout")
        except Exception as e:
            log.debug("Server logout failed (ignored): %s", e)
        finally:
            self._generation += 1
            await self.token_store.delete_token()
            self._update(user=None, loading=False)

    async def refresh_user(self) -> UserProfile | None:
        """Re-fetch the profile, keeping the current one on failure."""
        if not self.is_authenticated:
            return None

        generation = self._generation
        try:
            user = await self._fetch_profile()
        except (ApiError, ValueError) as e:
            log.warning("Profile refresh failed: %s", e)
            return None

        # The session may have ended while we were waiting
        if self._generation != generation or not self.is_authenticated:
            return None

        self._update(user=user)
        return user

    def handle_unauthorized(self) -> None:
        """React to a 401 anywhere: the token is already gone, drop the user."""
        self._generation += 1
        if self.session.user is None and not self.session.loading:
            return
        log.info("Session expired; signing out")
        self._update(user=None, loading=False)
