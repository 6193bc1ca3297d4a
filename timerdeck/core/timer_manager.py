"""Timer Manager - The set of timers shown at once.

Each timer has an id, the text its duration was entered as, and its
controller. Text holding a sequence (``"(25m + 5m) * 4"``) queues its
durations; when one finishes the timer restarts with the next.
Listeners are told when a timer changes state, finishes or is removed.
Timers are transient unless exported.
"""

import logging
import threading
import uuid
from collections.abc import Callable
from dataclasses import dataclass

from timerdeck.core.finish_scheduler import TimerFactory
from timerdeck.core.parser import ParseError
from timerdeck.core.sequence import DurationQueue
from timerdeck.core.serialize import (
    SnapshotError,
    TimerSnapshot,
    dumps_timers,
    loads_timers,
    restore,
    snapshot,
)
from timerdeck.core.timer_controller import Clock, TimerController

logger = logging.getLogger(__name__)

EVENT_STATE = "state"
EVENT_FINISHED = "finished"
EVENT_REMOVED = "removed"

TimerEventCallback = Callable[[str, str], None]


@dataclass
class TimerEntry:
    """A timer, the text its duration was entered as and its queued durations."""

    id: str
    controller: TimerController
    input: str = ""
    queue: DurationQueue | None = None

    @property
    def consumed(self) -> int:
        """How many of the input's durations have been used."""
        return self.queue.consumed if self.queue is not None else 0

    @property
    def next_duration(self) -> int | None:
        """The duration that follows the current one, if any."""
        return self.queue.peek() if self.queue is not None else None


class TimerManager:
    """Manages the displayed timers.

    Singleton pattern ensures the web API and the CLI share the same state.
    """

    _instance: "TimerManager | None" = None

    def __new__(cls) -> "TimerManager":
        """Ensure singleton instance."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self) -> None:
        """Initialize the timer manager (only runs once)."""
        if self._initialized:
            return

        self._timers: dict[str, TimerEntry] = {}
        self._callbacks: list[TimerEventCallback] = []
        self._lock = threading.Lock()
        self._separator = ":"
        self.clock: Clock | None = None
        self.timer_factory: TimerFactory = threading.Timer
        self._initialized = True

    def configure(self, separator: str = ":") -> None:
        """Set the separator used when parsing timer input."""
        self._separator = separator

    def create(self, input: str = "", duration: int | None = None) -> TimerEntry:
        """Add a new idle timer.

        Args:
            input: Duration or sequence text. Parsed unless ``duration`` is given.
            duration: Duration in ms, overrides ``input``.

        Returns:
            The new entry.

        Raises:
            ParseError: If ``input`` is given and invalid.
        """
        queue = None
        if duration is None:
            duration = 0
            if input.strip():
                queue = DurationQueue(input, self._separator)
                duration = queue.pop()

        controller = TimerController(
            duration, clock=self.clock, timer_factory=self.timer_factory
        )
        entry = TimerEntry(
            id=uuid.uuid4().hex, controller=controller, input=input, queue=queue
        )
        self._add(entry)
        logger.info("Timer '%s' created: %dms", entry.id, duration)
        return entry

    def _add(self, entry: TimerEntry) -> None:
        entry.controller.on_finish(lambda: self._on_finished(entry))
        with self._lock:
            self._timers[entry.id] = entry

    def get(self, timer_id: str) -> TimerEntry | None:
        """Get a timer by id, or None if it doesn't exist."""
        return self._timers.get(timer_id)

    def list_all(self) -> list[TimerEntry]:
        """All timers, in creation order."""
        with self._lock:
            return list(self._timers.values())

    def remove(self, timer_id: str) -> bool:
        """Remove a timer and tear down its controller.

        Returns:
            True if the timer existed.
        """
        with self._lock:
            entry = self._timers.pop(timer_id, None)
        if entry is None:
            return False
        entry.controller.close()
        logger.info("Timer '%s' removed", timer_id)
        self._notify(EVENT_REMOVED, timer_id)
        return True

    def set_input(self, timer_id: str, text: str) -> TimerEntry | None:
        """Parse new duration or sequence text and reset the timer to it.

        Returns:
            The updated entry, or None if the timer doesn't exist.

        Raises:
            ParseError: If ``text`` is invalid. The timer is left unchanged.
        """
        entry = self.get(timer_id)
        if entry is None:
            return None
        queue = DurationQueue(text, self._separator)
        entry.input = text
        entry.queue = queue
        entry.controller.reset(queue.pop())
        self.notify_state(timer_id)
        return entry

    def advance(self, timer_id: str) -> TimerEntry | None:
        """Restart a timer with the next duration of its sequence.

        A timer with no durations left is not changed.

        Returns:
            The entry, or None if the timer doesn't exist.
        """
        entry = self.get(timer_id)
        if entry is None:
            return None
        with self._lock:
            duration = entry.queue.pop() if entry.queue is not None else None
        if duration is None:
            return entry
        entry.controller.reset(duration).start()
        logger.info(
            "Timer '%s' on duration %d: %dms", timer_id, entry.consumed, duration
        )
        self.notify_state(timer_id)
        return entry

    def _on_finished(self, entry: TimerEntry) -> None:
        self._notify(EVENT_FINISHED, entry.id)
        if entry.next_duration is not None and self.get(entry.id) is entry:
            self.advance(entry.id)

    def notify_state(self, timer_id: str) -> None:
        """Tell listeners that a timer's state changed."""
        self._notify(EVENT_STATE, timer_id)

    def stop_all(self) -> None:
        """Remove all timers (call on app shutdown)."""
        with self._lock:
            entries = list(self._timers.values())
            self._timers.clear()
        for entry in entries:
            entry.controller.close()
        logger.info("All timers stopped")

    def export_json(self) -> str:
        """All timers as a JSON list of snapshots."""
        return dumps_timers(
            [snapshot(e.controller, e.input, e.consumed) for e in self.list_all()]
        )

    def import_json(self, text: str) -> list[TimerEntry]:
        """Add timers from an :meth:`export_json` string.

        Invalid timers are skipped. A timer whose input is a sequence picks
        up after the durations it had already used.

        Returns:
            The added entries.
        """
        added = []
        for snap in loads_timers(text):
            try:
                controller = restore(
                    snap, clock=self.clock, timer_factory=self.timer_factory
                )
            except SnapshotError as e:
                logger.warning("Skipping timer: %s", e)
                continue
            entry = TimerEntry(
                id=uuid.uuid4().hex,
                controller=controller,
                input=snap.input,
                queue=self._restore_queue(snap),
            )
            self._add(entry)
            added.append(entry)
        logger.info("Imported %d timers", len(added))
        return added

    def _restore_queue(self, snap: TimerSnapshot) -> DurationQueue | None:
        if not snap.input.strip():
            return None
        try:
            queue = DurationQueue(snap.input, self._separator)
        except ParseError as e:
            logger.warning("Timer input '%s' not queued: %s", snap.input, e)
            return None
        # the current duration was taken when the timer was created
        used = max(snap.consumed, 1)
        if queue.skip(used) < used:
            logger.warning(
                "Timer input '%s' has fewer than %d durations", snap.input, used
            )
        return queue

    def register_callback(self, callback: TimerEventCallback) -> None:
        """Register a listener called with ``(event, timer_id)``."""
        self._callbacks.append(callback)

    def unregister_callback(self, callback: TimerEventCallback) -> None:
        """Unregister a listener."""
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    def _notify(self, event: str, timer_id: str) -> None:
        for callback in list(self._callbacks):
            try:
                callback(event, timer_id)
            except Exception as e:
                logger.error("Timer event callback error: %s", e)


def get_timer_manager() -> TimerManager:
    """Get the timer manager singleton.

    Returns:
        The TimerManager instance.
    """
    return TimerManager()
