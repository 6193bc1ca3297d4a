"""Timer Controller - Lifecycle of a single countdown timer.

States: idle -> running -> (paused <-> running) -> stopped. ``reset`` returns
to idle from anywhere. Invalid transitions are silent no-ops so that rapid,
overlapping button presses can never raise.
"""

import logging
import threading
import time
from collections.abc import Callable

from timerdeck.core.finish_scheduler import DeadlineTimer, TimerFactory

logger = logging.getLogger(__name__)

Clock = Callable[[], int]


def now_ms() -> int:
    """Current wall-clock time in whole milliseconds."""
    return time.time_ns() // 1_000_000


class TimerController:
    """Countdown timer with pause/resume, drift and a finish notification.

    Elapsed time excludes pauses: it is the time committed on each pause
    plus, while running, the time since the last resume. The finish
    listeners fire at most once per run, when the time remaining first
    reaches 0.
    """

    def __init__(
        self,
        duration: int = 0,
        clock: Clock | None = None,
        timer_factory: TimerFactory = threading.Timer,
    ):
        """Initialize the controller.

        Args:
            duration: Countdown length in ms.
            clock: Returns the current time in ms. Defaults to wall-clock ms.
            timer_factory: Creates the finish scheduler's wake timers.
        """
        self._duration = max(0, int(duration))
        self._clock = clock or now_ms
        self._lock = threading.RLock()

        self._started_at: int | None = None
        self._stopped_at: int | None = None
        self._resumed_at: int | None = None
        self._accumulated_elapsed = 0
        self._finished = False
        self._closed = False

        self._listeners: list[Callable[[], None]] = []
        self._scheduler = DeadlineTimer(
            self.get_time_remaining, self._on_deadline, timer_factory
        )

    def __repr__(self) -> str:
        return (
            f"TimerController(duration={self._duration}, "
            f"remaining={self.get_time_remaining()}, state={self.state!r})"
        )

    # -- interaction -------------------------------------------------------

    def start(self) -> "TimerController":
        """Start the timer. Only works from idle."""
        with self._lock:
            if self.is_started() or self._closed:
                return self
            self._clear()
            self._started_at = self._clock()
            self._resume()
            logger.debug("Timer started: %dms", self._duration)
        return self

    def resume(self) -> "TimerController":
        """Resume a paused timer. Does nothing once stopped."""
        with self._lock:
            if not self.is_paused():
                return self
            self._resume()
        return self

    def pause(self) -> "TimerController":
        """Pause a running timer, committing its elapsed time."""
        with self._lock:
            if not self.is_running():
                return self
            self._accumulated_elapsed += self._clock() - self._resumed_at
            self._resumed_at = None
            self._scheduler.disarm()
        return self

    def stop(self) -> "TimerController":
        """Stop the timer for good. Unlike a pause, it cannot be resumed."""
        with self._lock:
            if not self.is_started() or self.is_stopped():
                return self
            self.pause()
            self._stopped_at = self._clock()
            self._scheduler.disarm()
            logger.debug("Timer stopped: %dms elapsed", self._accumulated_elapsed)
        return self

    def reset(self, duration: int | None = None) -> "TimerController":
        """Return to idle, optionally with a new duration.

        Args:
            duration: New countdown length in ms. Keeps the current one if None.
        """
        with self._lock:
            self._clear()
            if duration is not None:
                self._duration = max(0, int(duration))
        return self

    def add_duration(self, ms: int) -> "TimerController":
        """Increase or decrease the duration.

        The duration never goes below 0. Has no effect once stopped.

        Args:
            ms: Milliseconds to add. Use a negative number to subtract.
        """
        with self._lock:
            if self.is_stopped():
                return self
            self._duration = max(0, self._duration + int(ms))
            if not self.is_started():
                return self
            # deadline moved; a paused timer at 0 finishes now
            self._scheduler.disarm()
            if self.is_running() or self.get_time_remaining() <= 0:
                self._scheduler.arm()
        return self

    def on_finish(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Register a listener for when the timer reaches 0.

        Not called when the timer is stopped early with :meth:`stop`.

        Args:
            callback: Called with no arguments, once per run.

        Returns:
            A function that unregisters the listener.
        """
        with self._lock:
            self._listeners.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._listeners:
                    self._listeners.remove(callback)

        return unsubscribe

    def close(self) -> None:
        """Tear down: cancel the pending wake and ignore any further fires."""
        with self._lock:
            self._closed = True
            self._scheduler.close()

    # -- status ------------------------------------------------------------

    @property
    def duration(self) -> int:
        """Countdown length in ms."""
        return self._duration

    @property
    def started_at(self) -> int | None:
        return self._started_at

    @property
    def stopped_at(self) -> int | None:
        return self._stopped_at

    @property
    def state(self) -> str:
        """One of ``idle``, ``running``, ``paused`` or ``stopped``."""
        if self.is_stopped():
            return "stopped"
        if self.is_running():
            return "running"
        if self.is_paused():
            return "paused"
        return "idle"

    def is_started(self) -> bool:
        """Started, including paused or stopped."""
        return self._started_at is not None

    def is_paused(self) -> bool:
        """Started and paused. Stopped timers are not paused."""
        return (
            self.is_started() and self._resumed_at is None and not self.is_stopped()
        )

    def is_running(self) -> bool:
        """Started and neither paused nor stopped."""
        return self.is_started() and self._resumed_at is not None

    def is_stopped(self) -> bool:
        return self._stopped_at is not None

    def is_finished(self) -> bool:
        """Whether the time remaining has reached 0."""
        return self.get_time_remaining() <= 0

    def get_time_elapsed(self) -> int:
        """Time spent running, in ms. Pauses are not counted."""
        with self._lock:
            if self._resumed_at is None:
                return self._accumulated_elapsed
            return self._accumulated_elapsed + (self._clock() - self._resumed_at)

    def get_time_remaining(self) -> int:
        """Time left until 0, in ms. Negative once overdue."""
        return self._duration - self.get_time_elapsed()

    def dump_state(self) -> dict:
        """Raw timekeeping fields, for serialization."""
        with self._lock:
            return {
                "duration": self._duration,
                "started_at": self._started_at,
                "resumed_at": self._resumed_at,
                "stopped_at": self._stopped_at,
                "accumulated_elapsed": self._accumulated_elapsed,
                "finished": self._finished,
            }

    def restore_state(
        self,
        duration: int,
        started_at: int | None,
        resumed_at: int | None,
        stopped_at: int | None,
        accumulated_elapsed: int,
        finished: bool,
    ) -> "TimerController":
        """Overwrite the timekeeping fields and re-arm if running.

        Callers are responsible for passing a consistent state; see
        :func:`timerdeck.core.serialize.restore`.
        """
        with self._lock:
            self._clear()
            self._duration = max(0, int(duration))
            self._started_at = started_at
            self._resumed_at = resumed_at
            self._stopped_at = stopped_at
            self._accumulated_elapsed = int(accumulated_elapsed)
            self._finished = finished
            if self.is_running():
                self._scheduler.arm()
        return self

    # -- internals ---------------------------------------------------------

    def _resume(self) -> None:
        self._resumed_at = self._clock()
        self._scheduler.arm()

    def _clear(self) -> None:
        self._started_at = None
        self._stopped_at = None
        self._resumed_at = None
        self._accumulated_elapsed = 0
        self._finished = False
        self._scheduler.disarm()

    def _on_deadline(self) -> None:
        with self._lock:
            # a wake can race with stop/reset; idle and stopped timers never finish
            if self._closed or self._finished:
                return
            if not self.is_started() or self.is_stopped():
                return
            if self.get_time_remaining() > 0:
                return
            self._finished = True
            listeners = list(self._listeners)

        logger.info("Timer finished (%dms)", self._duration)
        for listener in listeners:
            try:
                listener()
            except Exception as e:
                logger.error("Timer on_finish error: %s", e)
