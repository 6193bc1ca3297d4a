"""Tests for timerdeck.core.serialize - Timer snapshots."""

import json
from unittest.mock import MagicMock

import pytest

from timerdeck.core.serialize import (
    SnapshotError,
    TimerSnapshot,
    dumps_timers,
    loads_timers,
    restore,
    snapshot,
)
from timerdeck.core.timer_controller import TimerController


class TestSnapshot:
    """Test capturing and restoring timers."""

    def test_idle(self, clock, timers):
        """An idle timer has no timestamps."""
        snap = snapshot(TimerController(5000, clock=clock, timer_factory=timers), "5s")
        assert snap.duration == 5000
        assert snap.started_at is None
        assert snap.input == "5s"
        assert snap.consumed == 0

    def test_consumed(self, clock, timers):
        """Records how far through a sequence the timer is."""
        timer = TimerController(5000, clock=clock, timer_factory=timers)
        assert snapshot(timer, "5s + 1m", consumed=2).consumed == 2

    def test_negative_consumed_rejected(self):
        """consumed cannot be negative."""
        assert loads_timers(json.dumps([{"duration": 1, "consumed": -1}])) == []

    def test_paused_round_trip(self, clock, timers):
        """A paused timer restores paused with the same time left."""
        timer = TimerController(5000, clock=clock, timer_factory=timers).start()
        clock.advance(1200)
        timer.pause()

        restored = restore(snapshot(timer), clock=clock, timer_factory=timers)

        assert restored.is_paused()
        assert restored.get_time_remaining() == 3800

    def test_running_keeps_counting(self, clock, timers):
        """A running timer keeps running across a save."""
        timer = TimerController(5000, clock=clock, timer_factory=timers).start()
        clock.advance(1000)
        snap = snapshot(timer)
        timer.close()

        clock.advance(500)
        restored = restore(snap, clock=clock, timer_factory=timers)

        assert restored.is_running()
        assert restored.get_time_remaining() == 3500

    def test_running_restore_finishes(self, clock, timers):
        """A restored running timer still finishes."""
        timer = TimerController(2000, clock=clock, timer_factory=timers).start()
        snap = snapshot(timer)
        timer.close()

        restored = restore(snap, clock=clock, timer_factory=timers)
        on_finish = MagicMock()
        restored.on_finish(on_finish)
        timers.advance(2000)
        on_finish.assert_called_once()

    def test_finished_not_fired_again(self, clock, timers):
        """A finished timer does not fire again after restore."""
        timer = TimerController(0, clock=clock, timer_factory=timers).start()
        snap = snapshot(timer)
        assert snap.finished

        on_finish = MagicMock()
        restored = TimerController(clock=clock, timer_factory=timers)
        restored.on_finish(on_finish)
        restored.restore_state(**snap.model_dump(exclude={"input", "consumed"}))
        on_finish.assert_not_called()

    def test_stopped(self, clock, timers):
        """A stopped timer stays stopped."""
        timer = TimerController(5000, clock=clock, timer_factory=timers).start()
        clock.advance(100)
        timer.stop()
        restored = restore(snapshot(timer).model_dump(), clock=clock, timer_factory=timers)
        assert restored.is_stopped()
        assert restored.get_time_elapsed() == 100

    def test_restore_invalid_dict(self):
        """Invalid dicts raise SnapshotError."""
        with pytest.raises(SnapshotError):
            restore({"duration": -1})

    def test_restore_inconsistent_state(self):
        """A stopped timer cannot also be running."""
        with pytest.raises(SnapshotError):
            restore({"duration": 1, "started_at": 1, "resumed_at": 2, "stopped_at": 3})

    def test_not_started_cannot_run(self):
        """Timestamps need a start time."""
        with pytest.raises(SnapshotError):
            restore({"duration": 1, "resumed_at": 2})


class TestDumpsLoads:
    """Test JSON lists of snapshots."""

    def test_round_trip(self):
        """dumps and loads agree."""
        snaps = [
            TimerSnapshot(duration=1000, input="1s"),
            TimerSnapshot(duration=5, started_at=10, resumed_at=12),
        ]
        assert loads_timers(dumps_timers(snaps)) == snaps

    def test_invalid_json(self, caplog):
        """Bad JSON gives an empty list."""
        assert loads_timers("{not json") == []
        assert "Failed to parse timers JSON" in caplog.text

    def test_not_a_list(self):
        """Only a list is accepted."""
        assert loads_timers(json.dumps({"duration": 1})) == []

    def test_skips_invalid(self, caplog):
        """Invalid entries are skipped."""
        text = json.dumps([{"duration": 1}, {"duration": "x"}, {"duration": 2}])
        assert [s.duration for s in loads_timers(text)] == [1, 2]
        assert "Skipping invalid timer 1" in caplog.text
