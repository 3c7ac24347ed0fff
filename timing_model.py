# -*- coding: utf-8 -*-
########################
# timing_model.py
########################
# Purpose:
# - Single source of truth for per-tick delta time in gameplay.
# - Converts raw monotonic timestamps into clamped, optionally scaled delta time.
#
# Design notes:
# - Gameplay code must take delta time from FrameClock.tick, never from wall clock reads.
# - No Qt usage. Keep this module pure and deterministic.
# - The first tick yields 0.0. Backward timestamps yield 0.0.
# - Raw delta is clamped before scaling so a suspended tab cannot explode the simulation.
#
########################
# Interfaces:
# Public dataclasses:
# - ClockState(last_timestamp_ms: Optional[float], time_scale: float)
# - ClockSnapshot(last_timestamp_ms: Optional[float], time_scale: float, unscaled_delta_ms: float,
#                 scaled_delta_ms: float, tick_count: int)
#
# Public classes:
# - class FrameClock
#   - __init__(*, max_delta_ms: float = 100.0, time_scale: float = 1.0)
#   - tick(raw_timestamp_ms: float) -> float
#   - last_unscaled_delta_ms() -> float
#   - last_scaled_delta_ms() -> float
#   - time_scale() -> float
#   - set_time_scale(time_scale: float) -> None
#   - max_delta_ms() -> float
#   - reset() -> None
#   - state() -> ClockState
#   - snapshot() -> ClockSnapshot
#
# Inputs:
# - raw_timestamp_ms from the frame driver (game_clock.GameClock) or from tests.
#
# Outputs:
# - Scaled delta time for entity motion; unscaled delta time for timers and limits.
#
########################

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

DEFAULT_MAX_DELTA_MS = 100.0


@dataclass
class ClockState:
    last_timestamp_ms: Optional[float] = None
    time_scale: float = 1.0


@dataclass(frozen=True)
class ClockSnapshot:
    last_timestamp_ms: Optional[float]
    time_scale: float
    unscaled_delta_ms: float
    scaled_delta_ms: float
    tick_count: int


class FrameClock:
    def __init__(self, *, max_delta_ms: float = DEFAULT_MAX_DELTA_MS, time_scale: float = 1.0) -> None:
        if float(max_delta_ms) <= 0.0:
            raise ValueError("max_delta_ms must be > 0")
        self._max_delta_ms = float(max_delta_ms)
        self._state = ClockState(last_timestamp_ms=None, time_scale=1.0)
        self._unscaled_delta_ms = 0.0
        self._scaled_delta_ms = 0.0
        self._tick_count = 0
        self.set_time_scale(time_scale)

    def tick(self, raw_timestamp_ms: float) -> float:
        timestamp = float(raw_timestamp_ms)
        last = self._state.last_timestamp_ms
        if last is None:
            raw_delta = 0.0
        else:
            raw_delta = timestamp - float(last)

        # Contract choice:
        # - backward jumps are treated as no elapsed time
        # - clamp happens before scaling
        if raw_delta < 0.0:
            raw_delta = 0.0
        if raw_delta > self._max_delta_ms:
            raw_delta = self._max_delta_ms

        self._state.last_timestamp_ms = timestamp
        self._unscaled_delta_ms = raw_delta
        self._scaled_delta_ms = raw_delta * float(self._state.time_scale)
        self._tick_count += 1
        return float(self._scaled_delta_ms)

    def last_unscaled_delta_ms(self) -> float:
        return float(self._unscaled_delta_ms)

    def last_scaled_delta_ms(self) -> float:
        return float(self._scaled_delta_ms)

    def time_scale(self) -> float:
        return float(self._state.time_scale)

    def set_time_scale(self, time_scale: float) -> None:
        value = float(time_scale)
        if value < 0.0:
            value = 0.0
        self._state.time_scale = value

    def max_delta_ms(self) -> float:
        return float(self._max_delta_ms)

    def reset(self) -> None:
        # Time scale survives a reset; abilities own reverting it.
        self._state.last_timestamp_ms = None
        self._unscaled_delta_ms = 0.0
        self._scaled_delta_ms = 0.0
        self._tick_count = 0

    def state(self) -> ClockState:
        return ClockState(last_timestamp_ms=self._state.last_timestamp_ms, time_scale=self._state.time_scale)

    def snapshot(self) -> ClockSnapshot:
        return ClockSnapshot(
            last_timestamp_ms=self._state.last_timestamp_ms,
            time_scale=self.time_scale(),
            unscaled_delta_ms=self.last_unscaled_delta_ms(),
            scaled_delta_ms=self.last_scaled_delta_ms(),
            tick_count=int(self._tick_count),
        )


def _run_unit_tests() -> None:
    clock = FrameClock(max_delta_ms=100.0)
    assert clock.tick(1000.0) == 0.0
    assert abs(clock.tick(1016.0) - 16.0) < 1e-9

    # Suspension clamp
    assert abs(clock.tick(9000.0) - 100.0) < 1e-9

    # Backward jump
    assert clock.tick(8000.0) == 0.0

    clock.set_time_scale(0.3)
    assert abs(clock.tick(8050.0) - 15.0) < 1e-9
    assert abs(clock.last_unscaled_delta_ms() - 50.0) < 1e-9

    snap = clock.snapshot()
    assert snap.tick_count == 5


if __name__ == "__main__":
    _run_unit_tests()
    print("timing_model.py: ok")
