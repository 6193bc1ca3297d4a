"""WebSocket event hub - Pushes timer events to connected UIs.

Timer completions happen on timer threads, not on the server loop, so
events raised there are handed over to the loop with ``publish``.
"""

import asyncio
import json
import logging
from concurrent.futures import Future
from dataclasses import dataclass
from enum import Enum
from typing import Any

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    """WebSocket message types."""

    # server -> client
    TIMER_STATE = "timer_state"
    TIMER_FINISHED = "timer_finished"
    TIMER_REMOVED = "timer_removed"
    TIMERS = "timers"

    # client -> server
    TIMER_ACTION = "timer_action"


@dataclass
class WebSocketEvent:
    """One message: a type and its payload."""

    type: EventType
    data: dict[str, Any]

    def to_json(self) -> str:
        return json.dumps({"type": self.type.value, "data": self.data})


class ConnectionManager:
    """Tracks connected clients and fans events out to them.

    All coroutines run on the server loop. ``loop`` is set while the
    server is up so other threads can :meth:`publish`.
    """

    def __init__(self) -> None:
        self.active_connections: list[WebSocket] = []
        self.loop: asyncio.AbstractEventLoop | None = None

    @property
    def connection_count(self) -> int:
        return len(self.active_connections)

    async def connect(self, websocket: WebSocket) -> None:
        """Accept a client and start sending it events."""
        await websocket.accept()
        self.active_connections.append(websocket)
        logger.info("WebSocket client connected (%d open)", self.connection_count)

    async def disconnect(self, websocket: WebSocket) -> None:
        """Stop sending events to a client."""
        if websocket in self.active_connections:
            self.active_connections.remove(websocket)
        logger.info("WebSocket client disconnected (%d open)", self.connection_count)

    async def broadcast(self, event: WebSocketEvent) -> None:
        """Send an event to every client, dropping clients whose send fails."""
        clients = list(self.active_connections)
        if not clients:
            return

        message = event.to_json()
        results = await asyncio.gather(
            *(client.send_text(message) for client in clients),
            return_exceptions=True,
        )
        for client, result in zip(clients, results):
            if isinstance(result, Exception):
                logger.warning("Dropping WebSocket client: %s", result)
                if client in self.active_connections:
                    self.active_connections.remove(client)

    async def send_personal(self, websocket: WebSocket, event: WebSocketEvent) -> bool:
        """Send an event to one client.

        Returns:
            False if the send failed.
        """
        try:
            await websocket.send_text(event.to_json())
        except Exception as e:
            logger.warning("Failed to send to WebSocket client: %s", e)
            return False
        return True

    def publish(self, event: WebSocketEvent) -> None:
        """Broadcast from any thread without waiting.

        Dropped when the server loop is not running (e.g. CLI-only use).
        """
        loop = self.loop
        if loop is None or not loop.is_running():
            logger.debug("No server loop, dropped %s event", event.type.value)
            return
        future = asyncio.run_coroutine_threadsafe(self.broadcast(event), loop)
        future.add_done_callback(_log_broadcast_failure)


def _log_broadcast_failure(future: Future) -> None:
    if future.cancelled():
        return
    error = future.exception()
    if error is not None:
        logger.warning("WebSocket broadcast failed: %s", error)


_manager: ConnectionManager | None = None


def get_connection_manager() -> ConnectionManager:
    """Get the shared connection manager."""
    global _manager
    if _manager is None:
        _manager = ConnectionManager()
    return _manager


def set_server_loop(loop: asyncio.AbstractEventLoop | None) -> None:
    """Attach the running server loop, or detach it with None on shutdown."""
    get_connection_manager().loop = loop


def broadcast_timer_state(status: dict[str, Any]) -> None:
    """Publish a timer's status payload."""
    get_connection_manager().publish(
        WebSocketEvent(type=EventType.TIMER_STATE, data=status)
    )


def broadcast_timer_finished(timer_id: str) -> None:
    """Publish that a timer reached 0."""
    get_connection_manager().publish(
        WebSocketEvent(type=EventType.TIMER_FINISHED, data={"id": timer_id})
    )


def broadcast_timer_removed(timer_id: str) -> None:
    """Publish that a timer was removed."""
    get_connection_manager().publish(
        WebSocketEvent(type=EventType.TIMER_REMOVED, data={"id": timer_id})
    )


async def send_timers(websocket: WebSocket, timers: list[dict[str, Any]]) -> None:
    """Send every timer's status to a newly connected client."""
    await get_connection_manager().send_personal(
        websocket, WebSocketEvent(type=EventType.TIMERS, data={"timers": timers})
    )
