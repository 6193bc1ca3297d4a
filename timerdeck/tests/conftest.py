"""Shared fixtures: a hand-driven clock and wake timers that fire on demand."""

import pytest


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, now: int = 1_000_000):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class ManualTimer:
    """Stand-in for ``threading.Timer`` that never starts a thread."""

    def __init__(self, factory, interval, function, args=None):
        self.factory = factory
        self.interval = interval
        self.function = function
        self.args = args or []
        self.daemon = False
        self.started = False
        self.cancelled = False
        self.fired = False
        self.due = factory.clock() + round(interval * 1000)

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    @property
    def live(self) -> bool:
        return self.started and not self.cancelled and not self.fired

    def fire(self):
        """Run the callback now, whatever the clock says."""
        self.fired = True
        self.function(*self.args)


class ManualTimerFactory:
    """Creates :class:`ManualTimer` objects and fires them as the clock moves."""

    def __init__(self, clock: FakeClock):
        self.clock = clock
        self.timers: list[ManualTimer] = []

    def __call__(self, interval, function, args=None):
        timer = ManualTimer(self, interval, function, args)
        self.timers.append(timer)
        return timer

    @property
    def pending(self) -> list[ManualTimer]:
        return [t for t in self.timers if t.live]

    def advance(self, ms: int) -> None:
        """Move the clock forward, firing due timers in deadline order."""
        target = self.clock.now + ms
        while True:
            due = [t for t in self.pending if t.due <= target]
            if not due:
                break
            timer = min(due, key=lambda t: t.due)
            self.clock.now = max(self.clock.now, timer.due)
            timer.fire()
        self.clock.now = target


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def timers(clock):
    return ManualTimerFactory(clock)
