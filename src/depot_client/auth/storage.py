"""Token storage across host bridge and local key/value stores.

With a host bridge installed, the token lives in the host's secure store.
Without one, the token is written to both a durable file store and a
process-scoped memory store, and read back from whichever still holds it.

Note: The durable store is plaintext JSON protected by file permissions
(0o600), the same guarantee browser localStorage gives.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Callable, Protocol

from ..config import DepotSettings
from ..host import HostBridge, current_host_bridge

log = logging.getLogger(__name__)

TOKEN_KEY = "auth_token"


class KeyValueStore(Protocol):
    """Minimal string key/value store."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


class FileKeyValueStore:
    """Durable store backed by a JSON file.

    Usage:
        store = FileKeyValueStore(Path.home() / ".depot" / "storage.json")
        store.set("auth_token", "abc123")
        store.get("auth_token")  # "abc123"
    """

    def __init__(self, path: Path | str):
        self.path = Path(path)

    def _load(self) -> dict[str, str]:
        if not self.path.exists():
            return {}

        try:
            with open(self.path) as f:
                data = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            log.warning("Ignoring unreadable store %s: %s", self.path, e)
            return {}

        if not isinstance(data, dict):
            log.warning("Ignoring malformed store %s", self.path)
            return {}
        return data

    def _save(self, data: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w") as f:
            json.dump(data, f, indent=2)

        # Set restrictive permissions
        os.chmod(self.path, 0o600)

    def get(self, key: str) -> str | None:
        value = self._load().get(key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        self._save(data)

    def delete(self, key: str) -> None:
        data = self._load()
        if key not in data:
            return
        del data[key]
        self._save(data)


class MemoryKeyValueStore:
    """Store scoped to the running process."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def clear(self) -> None:
        self._data.clear()


class TokenStore:
    """Persists the single bearer token for the session.

    The host bridge is probed on every call. Storage failures are logged and
    never propagate: a failed read means "no token".

    Usage:
        store = TokenStore.from_settings(get_settings())
        await store.set_token(token)
        token = await store.get_token()
        await store.delete_token()
    """

    def __init__(
        self,
        durable: KeyValueStore,
        session: KeyValueStore,
        bridge_provider: Callable[[], HostBridge | None] = current_host_bridge,
        key: str = TOKEN_KEY,
    ):
        """Initialize token store.

        Args:
            durable: Store that survives restarts
            session: Store scoped to the current process
            bridge_provider: Returns the host bridge, or None when absent
            key: Key the token is stored under
        """
        self.durable = durable
        self.session = session
        self.key = key
        self._bridge_provider = bridge_provider

    @classmethod
    def from_settings(cls, settings: DepotSettings) -> "TokenStore":
        return cls(
            durable=FileKeyValueStore(settings.storage_path),
            session=MemoryKeyValueStore(),
            key=settings.token_key,
        )

    def _bridge(self) -> HostBridge | None:
        try:
            return self._bridge_provider()
        except Exception as e:
            log.warning("Host bridge probe failed: %s", e)
            return None

    @property
    def uses_host_bridge(self) -> bool:
        return self._bridge() is not None

    async def get_token(self) -> str | None:
        """Return the stored token, or None if absent or unreadable."""
        bridge = self._bridge()
        if bridge is not None:
            try:
                return await bridge.get_token() or None
            except Exception as e:
                log.warning("Could not read token from host bridge: %s", e)
                return None

        for store in (self.durable, self.session):
            try:
                token = store.get(self.key)
            except Exception as e:
                log.warning("Could not read token from %s: %s", type(store).__name__, e)
                continue
            if token:
                return token

        return None

    async def set_token(self, token: str) -> None:
        """Persist the token (both local stores when no bridge is present)."""
        bridge = self._bridge()
        if bridge is not None:
            try:
                await bridge.set_token(token)
            except Exception as e:
                log.error("Could not write token to host bridge: %s", e)
            return

        for store in (self.durable, self.session):
            try:
                store.set(self.key, token)
            except Exception as e:
                log.error("Could not write token to %s: %s", type(store).__name__, e)

    async def delete_token(self) -> None:
        """Remove the token everywhere. Safe to call when nothing is stored."""
        bridge = self._bridge()
        if bridge is not None:
            try:
                await bridge.delete_token()
            except Exception as e:
                log.error("Could not delete token from host bridge: %s", e)
            return

        for store in (self.durable, self.session):
            try:
                store.delete(self.key)
            except Exception as e:
                log.error("Could not delete token from %s: %s", type(store).__name__, e)
