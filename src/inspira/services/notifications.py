"""Realtime notification port and its WebSocket implementation.

Delivery is best effort: nothing about delivery is persisted and a failed
send never fails the operation that triggered it.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Protocol

from fastapi import BackgroundTasks, WebSocket

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    """Realtime notification capability."""

    def notify(self, profile_id: int, payload: dict[str, Any]) -> None: ...


class ConnectionRegistry:
    """Open chat sockets keyed by profile id (one socket per profile)."""

    def __init__(self) -> None:
        self.active_connections: dict[int, WebSocket] = {}
        self._lock = asyncio.Lock()

    async def connect(self, profile_id: int, websocket: WebSocket) -> None:
        async with self._lock:
            self.active_connections[profile_id] = websocket
        logger.info("WebSocket connected profile=%s", profile_id)

    async def disconnect(self, profile_id: int, websocket: WebSocket) -> None:
        async with self._lock:
            if self.active_connections.get(profile_id) is websocket:
                del self.active_connections[profile_id]
        logger.info("WebSocket disconnected profile=%s", profile_id)

    def is_connected(self, profile_id: int) -> bool:
        return profile_id in self.active_connections

    async def send(self, profile_id: int, payload: dict[str, Any]) -> bool:
        """Send ``payload`` to ``profile_id`` if connected; True when it was written."""
        websocket = self.active_connections.get(profile_id)
        if websocket is None:
            return False
        try:
            await websocket.send_json(payload)
        except Exception:  # noqa: BLE001 - delivery is best effort
            logger.warning("Dropping notification for profile %s", profile_id, exc_info=True)
            await self.disconnect(profile_id, websocket)
            return False
        return True


class BackgroundNotifier:
    """Queues sends to run after the HTTP response has been sent."""

    def __init__(self, registry: ConnectionRegistry, tasks: BackgroundTasks) -> None:
        self._registry = registry
        self._tasks = tasks

    def notify(self, profile_id: int, payload: dict[str, Any]) -> None:
        self._tasks.add_task(self._registry.send, profile_id, payload)


def notify_quietly(notifier: Notifier, profile_id: int, payload: dict[str, Any]) -> None:
    """Call ``notifier`` and log, rather than raise, any failure."""
    try:
        notifier.notify(profile_id, payload)
    except Exception:  # noqa: BLE001 - notifications must not fail the caller
        logger.warning("Notification to profile %s failed", profile_id, exc_info=True)
