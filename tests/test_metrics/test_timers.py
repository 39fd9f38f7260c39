"""
Тесты таймеров фаз.
"""

import time

import pytest

from dkmeans.metrics.timers import PhaseTimings, Timer


class TestTimer:
    def test_timer_basic(self):
        with Timer() as t:
            time.sleep(0.05)

        assert t.elapsed >= 0.05
        assert t.end > t.start
        assert abs(t.elapsed - (t.end - t.start)) < 1e-6


class TestPhaseTimings:
    """Накопление времени по фазам поколения."""

    def test_accumulates_per_phase(self):
        timings = PhaseTimings()
        for _ in range(3):
            with timings.measure("assign"):
                time.sleep(0.01)
        with timings.measure("sync"):
            pass

        assert timings.total("assign") >= 0.03
        assert timings.last["assign"] >= 0.01
        assert timings.total("sync") >= 0.0
        assert timings.total("aggregate") == 0.0

    def test_failed_phase_is_not_counted(self):
        timings = PhaseTimings()
        with pytest.raises(RuntimeError):
            with timings.measure("assign"):
                raise RuntimeError("boom")
        assert timings.total("assign") == 0.0
