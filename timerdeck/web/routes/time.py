"""Time API Routes - Parse and format durations.

Endpoints:
- POST /api/time/parse   - Duration text to ms
- GET  /api/time/format  - ms to clock string, units and unit strings
- GET  /api/time/end     - Relative end time for a time remaining
- POST /api/time/until   - ms until a time of day ("5:30pm")
"""

import logging
from typing import Any

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from timerdeck.core.formatter import (
    format_time_to_clock,
    format_time_to_strings,
    format_time_to_units,
)
from timerdeck.core.parser import ParseError, parse_input
from timerdeck.core.relative_time import format_relative_time, parse_end_time
from timerdeck.core.settings import get_settings
from timerdeck.core.units import Unit

logger = logging.getLogger(__name__)

router = APIRouter()


class ParseRequest(BaseModel):
    """Request body for parsing duration text."""

    input: str


@router.post("/parse")
async def parse_duration(body: ParseRequest) -> dict[str, Any]:
    """Parse duration text using the configured separator."""
    settings = get_settings()
    try:
        ms = parse_input(body.input, settings.separator)
    except ParseError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return {
        "ms": ms,
        "clock": format_time_to_clock(
            ms, settings.unit_range, settings.auto_trim, separator=settings.separator
        ),
    }


@router.get("/format")
async def format_duration(
    ms: int,
    smallest: Unit = Unit.MS,
    largest: Unit = Unit.D,
    auto: bool = False,
) -> dict[str, Any]:
    """Format a time in ms over a unit range."""
    unit_range = (smallest, largest)
    return {
        "clock": format_time_to_clock(ms, unit_range, auto),
        "units": {u.value: v for u, v in format_time_to_units(ms).items()},
        "strings": {
            u.value: s for u, s in format_time_to_strings(ms, unit_range, auto).items()
        },
    }


@router.get("/end")
async def end_time(ms: int) -> dict[str, str]:
    """Relative end time for a timer with ``ms`` remaining."""
    return {"end_time": format_relative_time(ms, get_settings().time_format)}


@router.post("/until")
async def until_time(body: ParseRequest) -> dict[str, Any]:
    """Duration until the next occurrence of a time of day."""
    try:
        ms = parse_end_time(body.input)
    except ParseError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return {"ms": ms}
