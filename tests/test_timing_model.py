import pytest

from timing_model import FrameClock


def test_first_tick_has_no_elapsed_time():
    clock = FrameClock()
    assert clock.tick(5000.0) == 0.0


def test_long_suspension_is_clamped():
    clock = FrameClock(max_delta_ms=100.0)
    clock.tick(0.0)
    assert clock.tick(10_000.0) == pytest.approx(100.0)
    assert clock.last_unscaled_delta_ms() == pytest.approx(100.0)


def test_backward_timestamp_counts_as_zero():
    clock = FrameClock()
    clock.tick(1000.0)
    assert clock.tick(900.0) == 0.0
    assert clock.tick(916.0) == pytest.approx(16.0)


def test_time_scale_applies_after_clamp():
    clock = FrameClock(max_delta_ms=100.0)
    clock.tick(0.0)
    clock.set_time_scale(0.3)
    assert clock.tick(500.0) == pytest.approx(30.0)
    assert clock.last_unscaled_delta_ms() == pytest.approx(100.0)


def test_negative_time_scale_is_floored_at_zero():
    clock = FrameClock()
    clock.set_time_scale(-2.0)
    assert clock.time_scale() == 0.0


def test_invalid_clamp_rejected():
    with pytest.raises(ValueError):
        FrameClock(max_delta_ms=0.0)


def test_output_stays_within_clamp_times_scale(seeded_rng):
    clock = FrameClock(max_delta_ms=50.0)
    clock.set_time_scale(0.5)
    timestamp = 0.0
    for _ in range(500):
        timestamp += seeded_rng.uniform(-40.0, 400.0)
        delta = clock.tick(timestamp)
        assert 0.0 <= delta <= 50.0 * 0.5 + 1e-9


def test_reset_keeps_time_scale():
    clock = FrameClock()
    clock.set_time_scale(0.3)
    clock.tick(0.0)
    clock.tick(16.0)
    clock.reset()
    assert clock.time_scale() == pytest.approx(0.3)
    assert clock.snapshot().tick_count == 0
    assert clock.tick(1000.0) == 0.0
