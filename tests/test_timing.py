"""
Unit tests for the timer schedulers.
"""

import threading

import pytest

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from timing.scheduler import ManualScheduler, ThreadedScheduler


class TestManualScheduler:
    """Tests for ManualScheduler."""

    @pytest.fixture
    def scheduler(self):
        return ManualScheduler()

    def test_call_later_fires_at_due_time(self, scheduler):
        fired = []
        scheduler.call_later(0.5, lambda: fired.append(scheduler.now()))

        scheduler.advance(0.4)
        assert fired == []

        scheduler.advance(0.2)
        assert fired == [pytest.approx(0.5)]
        assert scheduler.now() == pytest.approx(0.6)

    def test_call_every_does_not_drift(self, scheduler):
        fired = []
        scheduler.call_every(0.1, lambda: fired.append(scheduler.now()))

        scheduler.advance(1.0)

        assert len(fired) == 10
        assert fired[-1] == pytest.approx(1.0)

    def test_cancel_is_idempotent(self, scheduler):
        fired = []
        handle = scheduler.call_later(0.1, lambda: fired.append(1))

        handle.cancel()
        handle.cancel()
        scheduler.advance(1.0)

        assert fired == []
        assert not handle.active
        assert scheduler.pending == 0

    def test_cancel_after_fire_is_noop(self, scheduler):
        handle = scheduler.call_later(0.1, lambda: None)
        scheduler.advance(0.2)

        handle.cancel()
        assert not handle.active

    def test_repeating_timer_can_cancel_itself(self, scheduler):
        fired = []

        def tick():
            fired.append(scheduler.now())
            if len(fired) == 3:
                handle.cancel()

        handle = scheduler.call_every(0.1, tick)
        scheduler.advance(1.0)

        assert len(fired) == 3

    def test_same_due_time_fires_in_arming_order(self, scheduler):
        order = []
        scheduler.call_later(0.5, lambda: order.append("a"))
        scheduler.call_later(0.5, lambda: order.append("b"))

        scheduler.advance(0.5)

        assert order == ["a", "b"]

    def test_callback_error_does_not_stop_clock(self, scheduler):
        fired = []

        def broken():
            raise RuntimeError("boom")

        scheduler.call_later(0.1, broken)
        scheduler.call_later(0.2, lambda: fired.append(1))
        scheduler.advance(0.3)

        assert fired == [1]

    def test_rejects_non_positive_interval(self, scheduler):
        with pytest.raises(ValueError):
            scheduler.call_every(0, lambda: None)


class TestThreadedScheduler:
    """Tests for ThreadedScheduler."""

    def test_call_later_runs_on_worker(self):
        done = threading.Event()
        threads = []

        def callback():
            threads.append(threading.current_thread())
            done.set()

        with ThreadedScheduler() as scheduler:
            scheduler.call_later(0.01, callback)
            assert done.wait(2.0)

        assert threads[0] is not threading.current_thread()

    def test_cancelled_timer_never_runs(self):
        fired = []
        with ThreadedScheduler() as scheduler:
            handle = scheduler.call_later(0.2, lambda: fired.append(1))
            handle.cancel()
            done = threading.Event()
            scheduler.call_later(0.3, done.set)
            assert done.wait(2.0)

        assert fired == []

    def test_stop_is_idempotent(self):
        scheduler = ThreadedScheduler()
        scheduler.start()
        scheduler.call_every(0.01, lambda: None)

        scheduler.stop()
        scheduler.stop()

        assert not scheduler.is_running


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
