"""Best-effort user notifications."""

from __future__ import annotations

import logging
from typing import Callable

from .host import HostBridge, current_host_bridge

log = logging.getLogger(__name__)


def notify(
    title: str,
    body: str,
    bridge_provider: Callable[[], HostBridge | None] = current_host_bridge,
) -> None:
    """Show a notification through the host, falling back to a log warning.

    Never raises.
    """
    try:
        bridge = bridge_provider()
    except Exception as exc:
        log.warning("Host bridge probe failed: %s", exc)
        bridge = None

    if bridge is None:
        log.warning("%s: %s", title, body)
        return

    try:
        bridge.notify_login_success(title, body)
    except Exception as exc:
        log.warning("Host notification failed (%s): %s: %s", exc, title, body)
