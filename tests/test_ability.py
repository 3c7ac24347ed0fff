import pytest

from ability import AbilityPhase, TimedAbility
from timer_registry import TimerRegistry
from timing_model import FrameClock


def _focus(registry, clock):
    return TimedAbility(
        registry,
        name="focus",
        duration_ms=6000.0,
        cooldown_ms=6000.0,
        on_activate=lambda: clock.set_time_scale(0.3),
        on_expire=lambda: clock.set_time_scale(1.0),
    )


def test_focus_slows_time_then_cools_down():
    registry = TimerRegistry()
    clock = FrameClock()
    focus = _focus(registry, clock)

    assert focus.activate() is True
    assert clock.time_scale() == pytest.approx(0.3)

    registry.advance(5999.0)
    assert focus.phase() is AbilityPhase.ACTIVE
    assert clock.time_scale() == pytest.approx(0.3)

    registry.advance(1.0)
    assert focus.phase() is AbilityPhase.COOLDOWN
    assert clock.time_scale() == pytest.approx(1.0)
    assert focus.activate() is False

    registry.advance(5999.0)
    assert focus.activate() is False
    registry.advance(1.0)
    assert focus.phase() is AbilityPhase.IDLE
    assert focus.activate() is True


def test_active_and_cooldown_are_exclusive():
    registry = TimerRegistry()
    focus = _focus(registry, FrameClock())
    focus.activate()
    for _ in range(150):
        registry.advance(100.0)
        state = focus.state()
        assert not (state.active and state.on_cooldown)


def test_cooldown_progress():
    registry = TimerRegistry()
    focus = _focus(registry, FrameClock())
    assert focus.cooldown_progress() == 1.0
    focus.activate()
    assert focus.cooldown_progress() == 0.0
    registry.advance(6000.0 + 1500.0)
    assert focus.cooldown_progress() == pytest.approx(0.25)
    assert focus.cooldown_remaining_fraction() == pytest.approx(0.75)


def test_reset_reverts_time_scale_and_cancels_timers():
    registry = TimerRegistry()
    clock = FrameClock()
    focus = _focus(registry, clock)
    focus.activate()
    focus.reset()
    assert focus.phase() is AbilityPhase.IDLE
    assert clock.time_scale() == pytest.approx(1.0)
    assert registry.pending_names() == []


def test_negative_durations_rejected():
    with pytest.raises(ValueError):
        TimedAbility(TimerRegistry(), name="bad", duration_ms=-1.0, cooldown_ms=0.0)
