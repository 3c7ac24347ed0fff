# -*- coding: utf-8 -*-
########################
# session.py
########################
# Purpose:
# - Session State Machine shared by every minigame.
# - Owns phase, score and combo, bounded resources (stamina, progress, tension), round index,
#   active elapsed time, end reason and the countdown label.
#
# Design notes:
# - No Qt usage. Pure gameplay logic.
# - Phases: MENU -> COUNTDOWN -> ACTIVE -> {PAUSED <-> ACTIVE} -> ENDED.
#   - restart (start from ACTIVE, PAUSED or ENDED) resets the session and re-enters COUNTDOWN
#   - quit from ACTIVE, PAUSED or ENDED returns to MENU
#   - advance_round (ACTIVE -> COUNTDOWN) keeps score and combo
# - Invalid transitions are logged and return False. They never raise.
# - The countdown is a chain of registry timers, so it freezes with the registry while PAUSED
#   and is cancelled by restart or quit.
# - The session owns the registry clock: tick() advances it by unscaled delta only in
#   COUNTDOWN and ACTIVE.
#
########################
# Interfaces:
# Public enums:
# - Phase: MENU | COUNTDOWN | ACTIVE | PAUSED | ENDED
# - EndReason: EXHAUSTED | COMPLETED | DEADLINE
#
# Public dataclasses:
# - BoundedResource(name, floor, ceiling, initial)
# - SessionState (read-only copy for renderers)
#
# Public classes:
# - class SessionStateMachine
#   - start() / restart() -> bool
#   - advance_round() -> bool
#   - pause() / resume() / toggle_pause() -> bool
#   - end(reason) -> bool
#   - quit() -> bool
#   - tick(unscaled_delta_ms) -> None
#   - apply_success(tier, base_value, combo_bonus_rate) -> float
#   - apply_failure(tier) -> None
#   - add_bonus(points) -> None
#   - adjust_resource(name, delta) -> float
#   - set_resource(name, value) -> float
#   - check_end() -> Optional[EndReason]
#   - summary(extras=None) -> SessionSummary
#   - add_listener(callback(old_phase, new_phase)) -> None
#
########################

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import logging
from typing import Any, Callable, Dict, List, Optional, Sequence, Set

from gameplay_models import SessionSummary, Tier
from judge import ScoreState
from timer_registry import TimerRegistry

logger = logging.getLogger(__name__)

COUNTDOWN_TIMER_NAME = "session:countdown"


class Phase(str, Enum):
    MENU = "MENU"
    COUNTDOWN = "COUNTDOWN"
    ACTIVE = "ACTIVE"
    PAUSED = "PAUSED"
    ENDED = "ENDED"


class EndReason(str, Enum):
    EXHAUSTED = "EXHAUSTED"
    COMPLETED = "COMPLETED"
    DEADLINE = "DEADLINE"


_TRANSITIONS: Dict[Phase, Set[Phase]] = {
    Phase.MENU: {Phase.COUNTDOWN},
    Phase.COUNTDOWN: {Phase.ACTIVE},
    Phase.ACTIVE: {Phase.PAUSED, Phase.ENDED, Phase.COUNTDOWN, Phase.MENU},
    Phase.PAUSED: {Phase.ACTIVE, Phase.COUNTDOWN, Phase.MENU},
    Phase.ENDED: {Phase.COUNTDOWN, Phase.MENU},
}


@dataclass
class BoundedResource:
    name: str
    floor: float = 0.0
    ceiling: float = 100.0
    initial: float = 0.0
    value: float = field(init=False, default=0.0)

    def __post_init__(self) -> None:
        if float(self.floor) > float(self.ceiling):
            raise ValueError(f"resource {self.name}: floor must be <= ceiling")
        self.reset()

    def reset(self) -> None:
        self.value = self._clamp(self.initial)

    def _clamp(self, value: float) -> float:
        return max(float(self.floor), min(float(self.ceiling), float(value)))

    def set(self, value: float) -> float:
        self.value = self._clamp(value)
        return self.value

    def adjust(self, delta: float) -> float:
        return self.set(self.value + float(delta))

    def at_floor(self) -> bool:
        return self.value <= float(self.floor)

    def at_ceiling(self) -> bool:
        return self.value >= float(self.ceiling)


@dataclass(frozen=True)
class SessionState:
    phase: Phase
    score: float
    display_score: int
    combo: int
    max_combo: int
    tier_counts: Dict[str, int]
    resources: Dict[str, float]
    round_index: int
    active_elapsed_ms: float
    round_elapsed_ms: float
    time_remaining_ms: Optional[float]
    end_reason: Optional[EndReason]
    countdown_label: Optional[str]


PhaseListener = Callable[[Phase, Phase], None]


class SessionStateMachine:
    def __init__(
        self,
        *,
        session_id: str,
        registry: TimerRegistry,
        countdown_labels: Sequence[str] = (),
        countdown_step_ms: float = 0.0,
        resources: Sequence[BoundedResource] = (),
        exhaustion_resource: Optional[str] = None,
        completion_resource: Optional[str] = None,
        required_rounds: Optional[int] = None,
        time_limit_ms: Optional[float] = None,
        on_reset: Optional[Callable[[], None]] = None,
        on_round_start: Optional[Callable[[], None]] = None,
        on_enter_active: Optional[Callable[[], None]] = None,
    ) -> None:
        if float(countdown_step_ms) < 0.0:
            raise ValueError("countdown_step_ms must be >= 0")
        if required_rounds is not None and int(required_rounds) < 1:
            raise ValueError("required_rounds must be >= 1")

        self._session_id = str(session_id)
        self._registry = registry
        self._countdown_labels: List[str] = [str(label) for label in countdown_labels]
        self._countdown_step_ms = float(countdown_step_ms)
        self._resources: Dict[str, BoundedResource] = {resource.name: resource for resource in resources}
        for resource_name in (exhaustion_resource, completion_resource):
            if resource_name is not None and resource_name not in self._resources:
                raise ValueError(f"unknown resource: {resource_name}")
        self._exhaustion_resource = exhaustion_resource
        self._completion_resource = completion_resource
        self._required_rounds = None if required_rounds is None else int(required_rounds)
        self._time_limit_ms = None if time_limit_ms is None else float(time_limit_ms)
        self._on_reset = on_reset
        self._on_round_start = on_round_start
        self._on_enter_active = on_enter_active
        self._listeners: List[PhaseListener] = []

        self._phase = Phase.MENU
        self._score = ScoreState()
        self._round_index = 0
        self._active_elapsed_ms = 0.0
        self._round_elapsed_ms = 0.0
        self._end_reason: Optional[EndReason] = None
        self._countdown_index = -1

    # ---- accessors ----

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def registry(self) -> TimerRegistry:
        return self._registry

    @property
    def score(self) -> ScoreState:
        return self._score

    def phase(self) -> Phase:
        return self._phase

    def is_active(self) -> bool:
        return self._phase is Phase.ACTIVE

    def end_reason(self) -> Optional[EndReason]:
        return self._end_reason

    def round_index(self) -> int:
        return int(self._round_index)

    def required_rounds(self) -> Optional[int]:
        return self._required_rounds

    def active_elapsed_ms(self) -> float:
        return float(self._active_elapsed_ms)

    def round_elapsed_ms(self) -> float:
        return float(self._round_elapsed_ms)

    def set_time_limit_ms(self, time_limit_ms: Optional[float]) -> None:
        self._time_limit_ms = None if time_limit_ms is None else max(0.0, float(time_limit_ms))

    def time_limit_ms(self) -> Optional[float]:
        return self._time_limit_ms

    def time_remaining_ms(self) -> Optional[float]:
        if self._time_limit_ms is None:
            return None
        return max(0.0, self._time_limit_ms - self._round_elapsed_ms)

    def deadline_reached(self) -> bool:
        remaining = self.time_remaining_ms()
        return remaining is not None and remaining <= 0.0

    def countdown_label(self) -> Optional[str]:
        if self._phase is not Phase.COUNTDOWN:
            return None
        if 0 <= self._countdown_index < len(self._countdown_labels):
            return self._countdown_labels[self._countdown_index]
        return None

    def resource(self, name: str) -> BoundedResource:
        return self._resources[name]

    def resource_value(self, name: str) -> float:
        return float(self._resources[name].value)

    def add_listener(self, callback: PhaseListener) -> None:
        self._listeners.append(callback)

    def state(self) -> SessionState:
        return SessionState(
            phase=self._phase,
            score=float(self._score.score),
            display_score=self._score.display_score(),
            combo=int(self._score.combo),
            max_combo=int(self._score.max_combo),
            tier_counts=self._score.stats_by_tier(),
            resources={name: float(resource.value) for name, resource in self._resources.items()},
            round_index=int(self._round_index),
            active_elapsed_ms=float(self._active_elapsed_ms),
            round_elapsed_ms=float(self._round_elapsed_ms),
            time_remaining_ms=self.time_remaining_ms(),
            end_reason=self._end_reason,
            countdown_label=self.countdown_label(),
        )

    # ---- transitions ----

    def _can_transition(self, target: Phase) -> bool:
        return target in _TRANSITIONS.get(self._phase, set())

    def _set_phase(self, target: Phase) -> None:
        previous = self._phase
        self._phase = target
        logger.info("Session %s: %s -> %s", self._session_id, previous.value, target.value)
        for listener in list(self._listeners):
            listener(previous, target)

    def _reject(self, action: str) -> bool:
        logger.debug("Session %s: %s rejected in phase %s", self._session_id, action, self._phase.value)
        return False

    def start(self) -> bool:
        """Fresh start from MENU, or restart from ACTIVE, PAUSED or ENDED."""
        if not self._can_transition(Phase.COUNTDOWN):
            return self._reject("start")

        self._registry.cancel_all()
        self._score = ScoreState()
        for resource in self._resources.values():
            resource.reset()
        self._round_index = 0
        self._active_elapsed_ms = 0.0
        self._end_reason = None
        if self._on_reset is not None:
            self._on_reset()
        self._begin_countdown()
        return True

    def restart(self) -> bool:
        return self.start()

    def advance_round(self) -> bool:
        """Finish the current round. Ends the session once the required round count is reached."""
        if self._phase is not Phase.ACTIVE:
            return self._reject("advance_round")

        if self._required_rounds is not None and self._round_index + 1 >= self._required_rounds:
            return self.end(EndReason.COMPLETED)

        self._round_index += 1
        self._begin_countdown()
        return True

    def _begin_countdown(self) -> None:
        self._registry.cancel(COUNTDOWN_TIMER_NAME)
        self._round_elapsed_ms = 0.0
        self._countdown_index = 0
        self._set_phase(Phase.COUNTDOWN)
        if self._on_round_start is not None:
            self._on_round_start()

        if not self._countdown_labels or self._countdown_step_ms <= 0.0:
            self._enter_active()
            return
        self._registry.schedule(COUNTDOWN_TIMER_NAME, self._countdown_step_ms, self._on_countdown_step)

    def _on_countdown_step(self) -> None:
        if self._phase is not Phase.COUNTDOWN:
            return
        self._countdown_index += 1
        if self._countdown_index >= len(self._countdown_labels):
            self._enter_active()
            return
        self._registry.schedule(COUNTDOWN_TIMER_NAME, self._countdown_step_ms, self._on_countdown_step)

    def _enter_active(self) -> None:
        self._countdown_index = -1
        self._set_phase(Phase.ACTIVE)
        if self._on_enter_active is not None:
            self._on_enter_active()

    def pause(self) -> bool:
        if self._phase is not Phase.ACTIVE:
            return self._reject("pause")
        self._set_phase(Phase.PAUSED)
        return True

    def resume(self) -> bool:
        if self._phase is not Phase.PAUSED:
            return self._reject("resume")
        self._set_phase(Phase.ACTIVE)
        return True

    def toggle_pause(self) -> bool:
        if self._phase is Phase.ACTIVE:
            return self.pause()
        if self._phase is Phase.PAUSED:
            return self.resume()
        return self._reject("toggle_pause")

    def end(self, reason: EndReason) -> bool:
        if self._phase is not Phase.ACTIVE:
            return self._reject("end")
        self._end_reason = EndReason(reason)
        self._registry.cancel_all()
        self._set_phase(Phase.ENDED)
        return True

    def quit(self) -> bool:
        if not self._can_transition(Phase.MENU):
            return self._reject("quit")
        self._registry.cancel_all()
        self._countdown_index = -1
        self._set_phase(Phase.MENU)
        return True

    # ---- per tick ----

    def tick(self, unscaled_delta_ms: float) -> None:
        delta = max(0.0, float(unscaled_delta_ms))
        if self._phase not in (Phase.COUNTDOWN, Phase.ACTIVE):
            return

        was_active = self._phase is Phase.ACTIVE
        self._registry.advance(delta)
        if was_active and self._phase in (Phase.ACTIVE, Phase.ENDED):
            self._active_elapsed_ms += delta
            self._round_elapsed_ms += delta

    # ---- score and resources ----

    def apply_success(self, tier: Tier, base_value: float, combo_bonus_rate: float) -> float:
        return self._score.apply_success(tier, base_value, combo_bonus_rate)

    def apply_failure(self, tier: Tier) -> None:
        self._score.apply_failure(tier)

    def add_bonus(self, points: float) -> None:
        self._score.add_bonus(points)

    def adjust_resource(self, name: str, delta: float) -> float:
        return self._resources[name].adjust(delta)

    def set_resource(self, name: str, value: float) -> float:
        return self._resources[name].set(value)

    def check_end(self) -> Optional[EndReason]:
        """End the session if the exhaustion or completion resource hit its bound."""
        if self._phase is not Phase.ACTIVE:
            return None

        reason: Optional[EndReason] = None
        if self._exhaustion_resource is not None and self._resources[self._exhaustion_resource].at_floor():
            reason = EndReason.EXHAUSTED
        elif self._completion_resource is not None and self._resources[self._completion_resource].at_ceiling():
            reason = EndReason.COMPLETED

        if reason is not None:
            self.end(reason)
        return reason

    def summary(self, extras: Optional[Dict[str, Any]] = None) -> SessionSummary:
        payload: Dict[str, Any] = {name: float(resource.value) for name, resource in self._resources.items()}
        payload["round_index"] = int(self._round_index)
        payload["active_elapsed_ms"] = float(self._active_elapsed_ms)
        if extras:
            payload.update(extras)
        return SessionSummary(
            session_id=self._session_id,
            final_score=float(self._score.score),
            max_combo=int(self._score.max_combo),
            stats_by_tier=self._score.stats_by_tier(),
            end_reason=None if self._end_reason is None else self._end_reason.value,
            extras=payload,
        )


def _run_unit_tests() -> None:
    registry = TimerRegistry()
    session = SessionStateMachine(
        session_id="test",
        registry=registry,
        countdown_labels=("3", "2", "1", "Start"),
        countdown_step_ms=800.0,
        resources=(BoundedResource("stamina", 0.0, 100.0, 100.0),),
        exhaustion_resource="stamina",
    )
    assert session.pause() is False
    assert session.start() is True
    assert session.countdown_label() == "3"
    session.tick(1700.0)
    assert session.countdown_label() == "1"
    session.tick(1500.0)
    assert session.phase() is Phase.ACTIVE

    session.apply_success(Tier.PERFECT, 100.0, 0.01)
    session.apply_failure(Tier.MISS)
    assert session.score.combo == 0 and abs(session.score.score - 101.0) < 1e-9

    assert session.pause() is True
    session.tick(5000.0)
    assert session.active_elapsed_ms() == 0.0
    assert session.resume() is True

    session.adjust_resource("stamina", -150.0)
    assert session.check_end() is EndReason.EXHAUSTED
    assert session.phase() is Phase.ENDED
    assert session.summary().end_reason == "EXHAUSTED"


if __name__ == "__main__":
    _run_unit_tests()
    print("session.py: ok")
