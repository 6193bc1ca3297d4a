"""Timer API Routes - Create, control and inspect timers.

Endpoints:
- GET    /api/timers                 - All timers
- POST   /api/timers                 - Create a timer
- GET    /api/timers/export          - Export timers as JSON
- POST   /api/timers/import          - Import exported timers
- GET    /api/timers/{id}            - One timer
- DELETE /api/timers/{id}            - Remove a timer
- PUT    /api/timers/{id}/input      - Set duration text (resets the timer)
- POST   /api/timers/{id}/drift      - Add/subtract time
- POST   /api/timers/{id}/next       - Next duration of a sequence
- POST   /api/timers/{id}/{action}   - start | pause | resume | stop | reset
"""

import logging
from enum import Enum
from typing import Any

from fastapi import APIRouter, HTTPException
from fastapi.responses import Response
from pydantic import BaseModel

from timerdeck.core.formatter import format_time_to_strings
from timerdeck.core.parser import ParseError
from timerdeck.core.relative_time import format_relative_time
from timerdeck.core.settings import get_settings
from timerdeck.core.timer_manager import TimerEntry, get_timer_manager

logger = logging.getLogger(__name__)

router = APIRouter()


class TimerAction(str, Enum):
    """Controls that can be applied to a timer."""

    START = "start"
    PAUSE = "pause"
    RESUME = "resume"
    STOP = "stop"
    RESET = "reset"


class TimerCreate(BaseModel):
    """Request body for creating a timer."""

    input: str = ""


class TimerInput(BaseModel):
    """Request body for setting a timer's duration text."""

    input: str


class Drift(BaseModel):
    """Request body for adding time (negative to subtract)."""

    ms: int


class TimerImport(BaseModel):
    """Request body for importing timers."""

    json_data: str


def timer_status(entry: TimerEntry) -> dict[str, Any]:
    """Build the status payload for a timer."""
    settings = get_settings()
    controller = entry.controller
    remaining = controller.get_time_remaining()

    strings = format_time_to_strings(
        remaining, settings.unit_range, settings.auto_trim
    )
    display = [[unit.value, text] for unit, text in reversed(strings.items())]
    # drop the sign of an all-zero negative time ("-0:00")
    if display and all(int(text) == 0 for _, text in display):
        display[0][1] = display[0][1].lstrip("-")

    end_time = None
    if controller.is_started() and not controller.is_stopped():
        end_time = format_relative_time(max(remaining, 0), settings.time_format)

    return {
        "id": entry.id,
        "input": entry.input,
        "consumed": entry.consumed,
        "next": entry.next_duration,
        "state": controller.state,
        "duration": controller.duration,
        "elapsed": controller.get_time_elapsed(),
        "remaining": remaining,
        "started": controller.is_started(),
        "paused": controller.is_paused(),
        "running": controller.is_running(),
        "stopped": controller.is_stopped(),
        "finished": controller.is_finished(),
        "display": display,
        "end_time": end_time,
    }


def _get_entry(timer_id: str) -> TimerEntry:
    entry = get_timer_manager().get(timer_id)
    if entry is None:
        raise HTTPException(status_code=404, detail=f"Timer '{timer_id}' not found")
    return entry


@router.get("")
async def list_timers() -> list[dict[str, Any]]:
    """Get all timers."""
    return [timer_status(e) for e in get_timer_manager().list_all()]


@router.post("", status_code=201)
async def create_timer(body: TimerCreate) -> dict[str, Any]:
    """Create an idle timer from duration text."""
    try:
        entry = get_timer_manager().create(body.input)
    except ParseError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return timer_status(entry)


@router.get("/export")
async def export_timers() -> Response:
    """Export all timers as a JSON list of snapshots."""
    return Response(
        content=get_timer_manager().export_json(),
        media_type="application/json",
        headers={"Content-Disposition": 'attachment; filename="timers.json"'},
    )


@router.post("/import")
async def import_timers(body: TimerImport) -> dict[str, Any]:
    """Import timers from an export. Invalid timers are skipped."""
    added = get_timer_manager().import_json(body.json_data)
    return {"imported": len(added), "timers": [timer_status(e) for e in added]}


@router.get("/{timer_id}")
async def get_timer(timer_id: str) -> dict[str, Any]:
    """Get one timer."""
    return timer_status(_get_entry(timer_id))


@router.delete("/{timer_id}")
async def delete_timer(timer_id: str) -> dict[str, Any]:
    """Remove a timer."""
    _get_entry(timer_id)
    get_timer_manager().remove(timer_id)
    return {"success": True, "id": timer_id}


@router.put("/{timer_id}/input")
async def set_timer_input(timer_id: str, body: TimerInput) -> dict[str, Any]:
    """Parse new duration text and reset the timer to it."""
    _get_entry(timer_id)
    try:
        entry = get_timer_manager().set_input(timer_id, body.input)
    except ParseError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return timer_status(entry)


@router.post("/{timer_id}/drift")
async def drift_timer(timer_id: str, body: Drift) -> dict[str, Any]:
    """Add (or subtract) time from a timer's duration."""
    entry = _get_entry(timer_id)
    entry.controller.add_duration(body.ms)
    get_timer_manager().notify_state(timer_id)
    return timer_status(entry)


@router.post("/{timer_id}/next")
async def next_duration(timer_id: str) -> dict[str, Any]:
    """Restart a timer with the next duration of its sequence.

    Ignored when nothing is queued.
    """
    _get_entry(timer_id)
    return timer_status(get_timer_manager().advance(timer_id))


@router.post("/{timer_id}/{action}")
async def control_timer(timer_id: str, action: TimerAction) -> dict[str, Any]:
    """Start, pause, resume, stop or reset a timer.

    Invalid transitions (e.g. resuming a stopped timer) are ignored.
    """
    entry = _get_entry(timer_id)
    getattr(entry.controller, action.value)()
    logger.debug("Timer '%s': %s", timer_id, action.value)
    get_timer_manager().notify_state(timer_id)
    return timer_status(entry)
