"""FastAPI Web Server - timerdeck API backend.

Provides REST API and WebSocket endpoints for timer UIs.
Listens only on localhost (127.0.0.1).
"""

import asyncio
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware

from timerdeck.core.timer_manager import (
    EVENT_FINISHED,
    EVENT_REMOVED,
    EVENT_STATE,
    get_timer_manager,
)
from timerdeck.web.routes import time, timers
from timerdeck.web.routes.timers import TimerAction, timer_status
from timerdeck.web.websocket.manager import (
    EventType,
    broadcast_timer_finished,
    broadcast_timer_removed,
    broadcast_timer_state,
    get_connection_manager,
    send_timers,
    set_server_loop,
)

logger = logging.getLogger(__name__)

DEFAULT_PORT = 8425


def on_timer_event(event: str, timer_id: str) -> None:
    """Broadcast timer manager events to WebSocket clients."""
    if event == EVENT_REMOVED:
        broadcast_timer_removed(timer_id)
        return

    entry = get_timer_manager().get(timer_id)
    if entry is None:
        return
    if event == EVENT_FINISHED:
        broadcast_timer_finished(timer_id)
    elif event == EVENT_STATE:
        broadcast_timer_state(timer_status(entry))


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler.

    Startup: register the loop for thread-safe broadcasts and subscribe
    to timer events. Shutdown: unsubscribe.
    """
    logger.info("timerdeck API starting...")
    set_server_loop(asyncio.get_running_loop())

    manager = get_timer_manager()
    manager.register_callback(on_timer_event)

    yield

    manager.unregister_callback(on_timer_event)
    set_server_loop(None)
    logger.info("timerdeck API stopped")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="timerdeck",
        description="Countdown timer API",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origin_regex=r"^http://(localhost|127\.0\.0\.1)(:\d+)?$",
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(timers.router, prefix="/api/timers", tags=["timers"])
    app.include_router(time.router, prefix="/api/time", tags=["time"])

    @app.websocket("/ws/events")
    async def websocket_endpoint(websocket: WebSocket) -> None:
        """WebSocket endpoint for real-time timer events.

        Sends:
        - timers: every timer's status, on connect
        - timer_state: a timer's status after it changes
        - timer_finished: a timer reached 0
        - timer_removed: a timer was removed

        Receives:
        - timer_action: {"id": ..., "action": "start" | "pause" | ... | "next"}
        """
        manager = get_connection_manager()
        await manager.connect(websocket)

        try:
            await send_timers(
                websocket, [timer_status(e) for e in get_timer_manager().list_all()]
            )
            while True:
                data = await websocket.receive_json()
                handle_client_message(data)
        except WebSocketDisconnect:
            pass
        except Exception as e:
            logger.error("WebSocket error: %s", e)
        finally:
            await manager.disconnect(websocket)

    return app


NEXT_ACTION = "next"
TIMER_ACTIONS = tuple(a.value for a in TimerAction)


def handle_client_message(data: Any) -> None:
    """Handle an incoming WebSocket message from a client.

    Args:
        data: Parsed JSON message, expected to be an object.
    """
    if not isinstance(data, dict):
        logger.warning("WebSocket: Ignoring non-object message: %r", data)
        return

    event_type = data.get("type")
    event_data = data.get("data")
    if not isinstance(event_data, dict):
        event_data = {}

    if event_type == EventType.TIMER_ACTION.value:
        timer_id = event_data.get("id")
        action = event_data.get("action")
        manager = get_timer_manager()
        entry = manager.get(timer_id) if isinstance(timer_id, str) else None

        if entry is None:
            logger.warning("WebSocket: Unknown timer: %s", timer_id)
        elif action == NEXT_ACTION:
            manager.advance(timer_id)
        elif action not in TIMER_ACTIONS:
            logger.warning("WebSocket: Unknown timer action: %s", action)
        else:
            getattr(entry.controller, action)()
            manager.notify_state(timer_id)
            logger.debug("WebSocket: Timer %s %s", timer_id, action)

    else:
        logger.warning("WebSocket: Unknown message type: %s", event_type)


def run_server(host: str = "127.0.0.1", port: int = DEFAULT_PORT) -> None:
    """Run the web server.

    Args:
        host: Host to bind to (default: localhost only).
        port: Port to listen on (default: 8425).
    """
    import uvicorn

    logger.info("Starting timerdeck API on http://%s:%d", host, port)
    uvicorn.run(create_app(), host=host, port=port, log_level="warning")
