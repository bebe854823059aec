"""Host bridge - optional privileged channel exposed by a desktop shell.

A desktop shell installs its bridge once at startup:

    from depot_client.host import install_host_bridge

    install_host_bridge(ShellBridge())

Everything else probes ``current_host_bridge()`` at call time, so the same
code runs unchanged in a plain environment where no bridge is installed.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class HostBridge(Protocol):
    """Secure token storage and native notifications provided by the host."""

    async def get_token(self) -> str | None: ...

    async def set_token(self, token: str) -> None: ...

    async def delete_token(self) -> None: ...

    def notify_login_success(self, title: str, body: str) -> None: ...


_bridge: HostBridge | None = None


def install_host_bridge(bridge: HostBridge) -> None:
    """Register the bridge for the running process."""
    global _bridge
    if not isinstance(bridge, HostBridge):
        raise TypeError(f"{type(bridge).__name__} does not implement HostBridge")
    _bridge = bridge


def uninstall_host_bridge() -> None:
    global _bridge
    _bridge = None


def current_host_bridge() -> HostBridge | None:
    """Return the installed bridge, or None outside a desktop shell."""
    return _bridge
