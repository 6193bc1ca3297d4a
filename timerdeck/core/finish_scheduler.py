"""Finish Scheduler - Deadline-driven re-arming timer.

Deferred callbacks fire no earlier than requested but may fire much later.
Instead of trusting one long wait, the scheduler re-samples the time left
every time it wakes and either fires or waits again for the new amount.
"""

import logging
import threading
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

TimerFactory = Callable[..., Any]

# longest single wait; longer deadlines are reached by waking again
MAX_WAIT_MS = 24 * 60 * 60 * 1000


class DeadlineTimer:
    """One-shot wake that re-derives its deadline on every wake.

    Waits run on ``threading.Timer`` (or any factory with the same
    ``(interval, function, args)`` signature and ``start``/``cancel``).
    Each arm/disarm bumps a generation counter so a wake that is already
    running when it is cancelled does nothing.
    """

    def __init__(
        self,
        remaining: Callable[[], float],
        on_deadline: Callable[[], None],
        timer_factory: TimerFactory = threading.Timer,
    ):
        """Initialize the scheduler.

        Args:
            remaining: Returns the time left until the deadline, in ms.
            on_deadline: Called once the time left reaches 0 or less.
            timer_factory: Creates the one-shot wake timers.
        """
        self._remaining = remaining
        self._on_deadline = on_deadline
        self._timer_factory = timer_factory
        self._pending: Any = None
        self._generation = 0
        self._closed = False
        self._lock = threading.Lock()

    def arm(self) -> None:
        """Fire now if the deadline has passed, otherwise wait for it."""
        self._check(None)

    def disarm(self) -> None:
        """Cancel any pending wake without side effects."""
        with self._lock:
            self._cancel_pending()
            self._generation += 1

    def close(self) -> None:
        """Disarm permanently. Later arms are ignored."""
        with self._lock:
            self._cancel_pending()
            self._generation += 1
            self._closed = True

    @property
    def armed(self) -> bool:
        """Whether a wake is currently scheduled."""
        return self._pending is not None

    @property
    def closed(self) -> bool:
        """Whether :meth:`close` has been called."""
        return self._closed

    def _check(self, generation: int | None) -> None:
        # sampled outside the lock: remaining() takes the owner's lock
        remaining = self._remaining()

        with self._lock:
            if self._closed:
                return
            if generation is not None and generation != self._generation:
                return

            self._cancel_pending()
            self._generation += 1

            if remaining > 0:
                wait = min(remaining, MAX_WAIT_MS)
                timer = self._timer_factory(
                    wait / 1000.0, self._wake, args=[self._generation]
                )
                timer.daemon = True
                self._pending = timer
                timer.start()
                logger.debug("Deadline wake scheduled in %.0fms", wait)
                return

        try:
            self._on_deadline()
        except Exception as e:
            logger.error("Deadline callback error: %s", e)

    def _wake(self, generation: int) -> None:
        with self._lock:
            if self._closed or generation != self._generation:
                return
            self._pending = None
        self._check(generation)

    def _cancel_pending(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None
