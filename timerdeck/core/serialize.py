"""Timer snapshots - JSON representation of timer state.

A snapshot holds the raw timekeeping fields, so a restored timer keeps
counting from where it was (a running timer keeps running, including
the time it spent saved).
"""

import json
import logging
import threading

from pydantic import BaseModel, Field, ValidationError, model_validator

from timerdeck.core.finish_scheduler import TimerFactory
from timerdeck.core.timer_controller import Clock, TimerController

logger = logging.getLogger(__name__)


class SnapshotError(ValueError):
    """Raised when a snapshot does not describe a valid timer state."""

    pass


class TimerSnapshot(BaseModel):
    """Short JSON form of a timer."""

    duration: int = Field(ge=0)
    # clock timestamps (ms), set while the respective state applies
    started_at: int | None = None
    resumed_at: int | None = None
    stopped_at: int | None = None
    accumulated_elapsed: int = Field(default=0, ge=0)
    finished: bool = False
    input: str = ""
    # durations of a sequence input used so far
    consumed: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def _check_state(self) -> "TimerSnapshot":
        if self.started_at is None and (
            self.resumed_at is not None or self.stopped_at is not None
        ):
            raise ValueError("timer must be started to be running or stopped")
        if self.resumed_at is not None and self.stopped_at is not None:
            raise ValueError("a stopped timer cannot be running")
        return self


def snapshot(
    controller: TimerController, input: str = "", consumed: int = 0
) -> TimerSnapshot:
    """Capture a controller's state.

    Args:
        controller: Timer to capture.
        input: The text the duration was entered as.
        consumed: How many durations of ``input`` have been used.
    """
    return TimerSnapshot(**controller.dump_state(), input=input, consumed=consumed)


def restore(
    snap: TimerSnapshot | dict,
    clock: Clock | None = None,
    timer_factory: TimerFactory = threading.Timer,
) -> TimerController:
    """Rebuild a controller from a snapshot.

    Args:
        snap: Snapshot model or its dict form.
        clock: Clock for the new controller; must share the snapshot's time base.
        timer_factory: Wake timer factory for the new controller.

    Returns:
        A controller in the saved state, armed if it was running.

    Raises:
        SnapshotError: If the snapshot is invalid.
    """
    if not isinstance(snap, TimerSnapshot):
        try:
            snap = TimerSnapshot.model_validate(snap)
        except ValidationError as e:
            raise SnapshotError(str(e)) from e

    controller = TimerController(snap.duration, clock=clock, timer_factory=timer_factory)
    return controller.restore_state(
        duration=snap.duration,
        started_at=snap.started_at,
        resumed_at=snap.resumed_at,
        stopped_at=snap.stopped_at,
        accumulated_elapsed=snap.accumulated_elapsed,
        finished=snap.finished,
    )


def dumps_timers(snapshots: list[TimerSnapshot]) -> str:
    """Serialize snapshots to a JSON list."""
    return json.dumps([s.model_dump() for s in snapshots])


def loads_timers(text: str) -> list[TimerSnapshot]:
    """Parse a JSON list of snapshots created by :func:`dumps_timers`.

    Invalid entries are skipped with a warning.

    Returns:
        The valid snapshots, or an empty list if ``text`` is not a JSON list.
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        logger.error("Failed to parse timers JSON: %s", e)
        return []

    if not isinstance(data, list):
        logger.error("Timers JSON must be a list, got %s", type(data).__name__)
        return []

    snapshots = []
    for i, item in enumerate(data):
        try:
            snapshots.append(TimerSnapshot.model_validate(item))
        except ValidationError as e:
            logger.warning("Skipping invalid timer %d: %s", i, e)
    return snapshots
