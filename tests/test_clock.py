"""
Tests for GenerationClock: fixed-interval firing decoupled from frame rate.
"""

import logging
import math

import pytest

from life import ConfigurationError, GenerationClock, InvalidTimestampError


class Counter:
    """Step callable that counts how often it ran."""

    def __init__(self):
        self.calls = 0

    def __call__(self):
        self.calls += 1


@pytest.fixture
def counter() -> Counter:
    return Counter()


class TestFiring:
    """Tests for when a generation fires."""

    def test_first_tick_never_fires(self, counter):
        """The first tick only records the reference timestamp."""
        clock = GenerationClock(counter, interval=1.0)
        assert clock.tick(1000.0) is False
        assert counter.calls == 0
        assert clock.previous == 1000.0
        assert clock.accumulated == 0.0

    def test_fires_once_after_interval(self, counter):
        """Ticks at 0, 0.6, 1.2 fire exactly once, on the third tick."""
        clock = GenerationClock(counter, interval=1.0)
        assert clock.tick(0.0) is False
        assert clock.tick(0.6) is False
        assert clock.accumulated == pytest.approx(0.6)
        assert clock.tick(1.2) is True
        assert counter.calls == 1
        assert clock.accumulated == 0.0

    def test_exact_interval_does_not_fire(self, counter):
        """The threshold is strictly greater than the interval."""
        clock = GenerationClock(counter, interval=0.5)
        clock.tick(0.0)
        assert clock.tick(0.5) is False
        assert counter.calls == 0
        assert clock.tick(0.5001) is True

    def test_at_most_one_per_tick(self, counter):
        """A long frame fires once and the excess is discarded."""
        clock = GenerationClock(counter, interval=1.0)
        clock.tick(0.0)
        assert clock.tick(10.0) is True
        assert counter.calls == 1
        assert clock.accumulated == 0.0
        # The nine dropped intervals are not replayed.
        assert clock.tick(10.5) is False
        assert counter.calls == 1

    def test_independent_of_frame_rate(self):
        """Fast and slow hosts see roughly the same number of generations."""
        fast, slow = Counter(), Counter()
        fast_clock = GenerationClock(fast, interval=1.0)
        slow_clock = GenerationClock(slow, interval=1.0)
        for frame in range(641):
            fast_clock.tick(frame / 64.0)
        for frame in range(41):
            slow_clock.tick(frame / 4.0)
        # Each generation needs one frame past the interval: 65 fast frames, 5 slow ones.
        assert fast.calls == 9
        assert slow.calls == 8

    def test_zero_delta(self, counter):
        """Repeated timestamps accumulate nothing."""
        clock = GenerationClock(counter, interval=1.0)
        for _ in range(5):
            clock.tick(3.0)
        assert counter.calls == 0
        assert clock.accumulated == 0.0


class TestBackwardsTime:
    """Tests for timestamps that go backwards or are not finite."""

    def test_strict_raises_and_keeps_state(self, counter):
        """Strict mode raises InvalidTimestampError and leaves the clock untouched."""
        clock = GenerationClock(counter, interval=1.0, strict=True)
        clock.tick(5.0)
        clock.tick(5.4)
        with pytest.raises(InvalidTimestampError) as excinfo:
            clock.tick(4.0)
        assert excinfo.value.previous == 5.4
        assert excinfo.value.current == 4.0
        assert clock.previous == 5.4
        assert clock.accumulated == pytest.approx(0.4)

    def test_lenient_clamps_and_logs(self, counter, caplog):
        """Lenient mode treats the delta as 0, warns, and moves on."""
        clock = GenerationClock(counter, interval=1.0, strict=False)
        clock.tick(5.0)
        clock.tick(5.4)
        with caplog.at_level(logging.WARNING, logger="life"):
            assert clock.tick(4.0) is False
        assert "backwards" in caplog.text
        assert clock.clamped == 1
        assert clock.previous == 4.0
        assert clock.accumulated == pytest.approx(0.4)
        assert clock.tick(4.7) is True

    @pytest.mark.parametrize("bad", [math.nan, math.inf, -math.inf])
    def test_strict_rejects_non_finite(self, counter, bad):
        """Strict mode raises on NaN or infinite timestamps and keeps its state."""
        clock = GenerationClock(counter, interval=1.0, strict=True)
        clock.tick(0.0)
        with pytest.raises(InvalidTimestampError, match="not finite"):
            clock.tick(bad)
        assert clock.previous == 0.0
        assert clock.accumulated == 0.0
        assert clock.tick(1.5) is True

    def test_lenient_ignores_nan(self, counter, caplog):
        """Lenient mode drops a NaN timestamp and keeps firing afterwards."""
        clock = GenerationClock(counter, interval=1.0, strict=False)
        clock.tick(0.0)
        with caplog.at_level(logging.WARNING, logger="life"):
            assert clock.tick(math.nan) is False
        assert "non-finite" in caplog.text
        assert clock.clamped == 1
        assert clock.tick(5.0) is True
        assert clock.tick(10.0) is True
        assert counter.calls == 2

    def test_nan_first_tick_not_recorded(self, counter):
        """A non-finite first timestamp never becomes the reference."""
        clock = GenerationClock(counter, interval=1.0, strict=False)
        clock.tick(math.nan)
        assert clock.previous is None


class TestResetAndInterval:
    """Tests for reset() and interval validation."""

    def test_reset_forgets_previous(self, counter):
        """After reset the next tick is a first tick again."""
        clock = GenerationClock(counter, interval=1.0)
        clock.tick(0.0)
        clock.tick(0.9)
        clock.reset()
        assert clock.previous is None
        assert clock.accumulated == 0.0
        assert clock.tick(100.0) is False
        assert counter.calls == 0

    @pytest.mark.parametrize("interval", [0.0, -1.0])
    def test_non_positive_interval_rejected(self, counter, interval):
        """The interval must be strictly positive."""
        with pytest.raises(ConfigurationError, match="generation_interval_seconds"):
            GenerationClock(counter, interval=interval)

    def test_non_numeric_interval_rejected(self, counter):
        """A string interval is a configuration error, not a TypeError."""
        with pytest.raises(ConfigurationError, match="generation_interval_seconds"):
            GenerationClock(counter, interval="1.0")

    def test_interval_setter_validates(self, counter):
        """Changing the interval at runtime goes through the same check."""
        clock = GenerationClock(counter, interval=1.0)
        clock.interval = 0.25
        assert clock.interval == 0.25
        with pytest.raises(ConfigurationError):
            clock.interval = 0
