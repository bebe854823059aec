"""Authentication module for the depot client.

Provides token persistence and the session state machine.

Usage:
    from depot_client.auth import SessionController, TokenStore

    store = TokenStore.from_settings(settings)
    controller = SessionController(api, store)
    await controller.hydrate()
"""

from .storage import TokenStore, KeyValueStore, FileKeyValueStore, MemoryKeyValueStore
from .manager import SessionController, LoginError, LoginErrorKind, extract_token

__all__ = [
    "TokenStore",
    "KeyValueStore",
    "FileKeyValueStore",
    "MemoryKeyValueStore",
    "SessionController",
    "LoginError",
    "LoginErrorKind",
    "extract_token",
]
