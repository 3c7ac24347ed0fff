# -*- coding: utf-8 -*-
########################
# timer_registry.py
########################
# Purpose:
# - Deterministic replacement for deferred wall-clock callbacks (countdowns, ability durations, cooldowns).
# - Named one-shot timers advanced once per tick by unscaled delta time.
#
# Design notes:
# - No Qt usage. No threads. Nothing fires outside advance().
# - Event accurate: within one advance() call timers fire in due order, ties in scheduling order.
#   A timer scheduled from inside a callback receives the remaining budget of that advance().
# - Scheduling an existing name replaces the pending timer of that name.
# - cancel_all() bumps the generation so a timer captured by an in-flight advance() cannot fire
#   into a new session.
#
########################
# Interfaces:
# Public classes:
# - class TimerRegistry
#   - schedule(name: str, delay_ms: float, callback: Callable[[], None]) -> None
#   - cancel(name: str) -> bool
#   - cancel_all() -> None
#   - advance(delta_ms: float) -> list[str]
#   - is_scheduled(name: str) -> bool
#   - remaining_ms(name: str) -> Optional[float]
#   - fraction_elapsed(name: str) -> Optional[float]
#   - now_ms() -> float
#   - pending_names() -> list[str]
#
# Inputs:
# - Unscaled delta time from the session tick.
#
# Outputs:
# - Callback invocations on the loop thread.
#
########################

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


@dataclass
class _PendingTimer:
    name: str
    duration_ms: float
    remaining_ms: float
    callback: Callable[[], None]
    sequence: int
    generation: int


class TimerRegistry:
    def __init__(self) -> None:
        self._timers: Dict[str, _PendingTimer] = {}
        self._sequence = 0
        self._generation = 0
        self._now_ms = 0.0

    def now_ms(self) -> float:
        return float(self._now_ms)

    def schedule(self, name: str, delay_ms: float, callback: Callable[[], None]) -> None:
        delay = max(0.0, float(delay_ms))
        self._sequence += 1
        self._timers[str(name)] = _PendingTimer(
            name=str(name),
            duration_ms=delay,
            remaining_ms=delay,
            callback=callback,
            sequence=self._sequence,
            generation=self._generation,
        )

    def cancel(self, name: str) -> bool:
        return self._timers.pop(str(name), None) is not None

    def cancel_all(self) -> None:
        if self._timers:
            logger.debug("Cancelling %d pending timers: %s", len(self._timers), sorted(self._timers.keys()))
        self._timers.clear()
        self._generation += 1

    def is_scheduled(self, name: str) -> bool:
        return str(name) in self._timers

    def remaining_ms(self, name: str) -> Optional[float]:
        timer = self._timers.get(str(name))
        if timer is None:
            return None
        return float(timer.remaining_ms)

    def fraction_elapsed(self, name: str) -> Optional[float]:
        timer = self._timers.get(str(name))
        if timer is None:
            return None
        if timer.duration_ms <= 0.0:
            return 1.0
        fraction = 1.0 - (timer.remaining_ms / timer.duration_ms)
        return min(1.0, max(0.0, fraction))

    def pending_names(self) -> List[str]:
        ordered = sorted(self._timers.values(), key=lambda item: (item.remaining_ms, item.sequence))
        return [timer.name for timer in ordered]

    def advance(self, delta_ms: float) -> List[str]:
        budget = max(0.0, float(delta_ms))
        fired: List[str] = []

        while True:
            due = self._next_due(budget)
            if due is None:
                break

            step = max(0.0, due.remaining_ms)
            self._consume(step)
            budget -= step

            self._timers.pop(due.name, None)
            if due.generation != self._generation:
                continue
            fired.append(due.name)
            due.callback()

        self._consume(budget)
        return fired

    def _next_due(self, budget: float) -> Optional[_PendingTimer]:
        best: Optional[_PendingTimer] = None
        for timer in self._timers.values():
            if timer.remaining_ms > budget:
                continue
            if best is None or (timer.remaining_ms, timer.sequence) < (best.remaining_ms, best.sequence):
                best = timer
        return best

    def _consume(self, step_ms: float) -> None:
        if step_ms <= 0.0:
            return
        self._now_ms += step_ms
        for timer in self._timers.values():
            timer.remaining_ms -= step_ms


def _run_unit_tests() -> None:
    registry = TimerRegistry()
    order: List[str] = []

    registry.schedule("b", 200.0, lambda: order.append("b"))
    registry.schedule("a", 100.0, lambda: order.append("a"))
    registry.advance(150.0)
    assert order == ["a"]
    assert abs((registry.remaining_ms("b") or 0.0) - 50.0) < 1e-9

    # Chained timer inherits the remaining budget.
    registry.schedule("chain", 10.0, lambda: registry.schedule("next", 10.0, lambda: order.append("next")))
    registry.advance(100.0)
    assert order == ["a", "next", "b"]

    registry.schedule("stale", 10.0, lambda: order.append("stale"))
    registry.cancel_all()
    registry.advance(100.0)
    assert "stale" not in order


if __name__ == "__main__":
    _run_unit_tests()
    print("timer_registry.py: ok")
