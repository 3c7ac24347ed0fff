# -*- coding: utf-8 -*-
########################
# ability.py
########################
# Purpose:
# - Single-slot timed ability with a fixed active duration followed by a fixed cooldown.
# - Example: archery "Focus" scales the clock down to 0.3 for 6000 ms, then cools down for 6000 ms.
#
# Design notes:
# - No Qt usage. Timing comes from TimerRegistry (unscaled time), never from wall clock.
# - Lifecycle: IDLE -> ACTIVE -> COOLDOWN -> IDLE. active and on_cooldown are never both true.
# - Activation while ACTIVE or COOLDOWN is a silent no-op. No queuing.
# - Timer callbacks check the owning phase before mutating.
#
########################
# Interfaces:
# Public enums:
# - class AbilityPhase(str, Enum): IDLE | ACTIVE | COOLDOWN
#
# Public dataclasses:
# - AbilityState(active: bool, on_cooldown: bool, cooldown_start_ms: float)
#
# Public classes:
# - class TimedAbility
#   - __init__(registry, *, name, duration_ms, cooldown_ms, on_activate, on_expire)
#   - activate() -> bool
#   - reset() -> None
#   - phase() -> AbilityPhase
#   - state() -> AbilityState
#   - cooldown_progress() -> float
#   - cooldown_remaining_fraction() -> float
#
########################

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import logging
from typing import Callable, Optional

from timer_registry import TimerRegistry

logger = logging.getLogger(__name__)


class AbilityPhase(str, Enum):
    IDLE = "IDLE"
    ACTIVE = "ACTIVE"
    COOLDOWN = "COOLDOWN"


@dataclass
class AbilityState:
    active: bool = False
    on_cooldown: bool = False
    cooldown_start_ms: float = 0.0


class TimedAbility:
    def __init__(
        self,
        registry: TimerRegistry,
        *,
        name: str,
        duration_ms: float,
        cooldown_ms: float,
        on_activate: Optional[Callable[[], None]] = None,
        on_expire: Optional[Callable[[], None]] = None,
    ) -> None:
        if float(duration_ms) < 0.0 or float(cooldown_ms) < 0.0:
            raise ValueError("ability durations must be >= 0")
        self._registry = registry
        self._name = str(name)
        self._duration_ms = float(duration_ms)
        self._cooldown_ms = float(cooldown_ms)
        self._on_activate = on_activate
        self._on_expire = on_expire
        self._phase = AbilityPhase.IDLE
        self._cooldown_start_ms = 0.0

    @property
    def name(self) -> str:
        return self._name

    def _active_timer_name(self) -> str:
        return f"{self._name}:active"

    def _cooldown_timer_name(self) -> str:
        return f"{self._name}:cooldown"

    def phase(self) -> AbilityPhase:
        return self._phase

    def state(self) -> AbilityState:
        return AbilityState(
            active=self._phase is AbilityPhase.ACTIVE,
            on_cooldown=self._phase is AbilityPhase.COOLDOWN,
            cooldown_start_ms=float(self._cooldown_start_ms),
        )

    def activate(self) -> bool:
        if self._phase is not AbilityPhase.IDLE:
            logger.debug("Ability %s rejected in phase %s", self._name, self._phase.value)
            return False

        self._phase = AbilityPhase.ACTIVE
        if self._on_activate is not None:
            self._on_activate()
        self._registry.schedule(self._active_timer_name(), self._duration_ms, self._on_duration_elapsed)
        logger.debug("Ability %s active for %.0f ms", self._name, self._duration_ms)
        return True

    def reset(self) -> None:
        self._registry.cancel(self._active_timer_name())
        self._registry.cancel(self._cooldown_timer_name())
        was_active = self._phase is AbilityPhase.ACTIVE
        self._phase = AbilityPhase.IDLE
        self._cooldown_start_ms = 0.0
        if was_active and self._on_expire is not None:
            self._on_expire()

    def cooldown_progress(self) -> float:
        """Fraction of the cooldown already served. 1.0 when ready, 0.0 while active."""
        if self._phase is AbilityPhase.IDLE:
            return 1.0
        if self._phase is AbilityPhase.ACTIVE:
            return 0.0
        fraction = self._registry.fraction_elapsed(self._cooldown_timer_name())
        return 1.0 if fraction is None else float(fraction)

    def cooldown_remaining_fraction(self) -> float:
        if self._phase is not AbilityPhase.COOLDOWN:
            return 0.0
        return 1.0 - self.cooldown_progress()

    def _on_duration_elapsed(self) -> None:
        if self._phase is not AbilityPhase.ACTIVE:
            return
        if self._on_expire is not None:
            self._on_expire()
        self._phase = AbilityPhase.COOLDOWN
        self._cooldown_start_ms = self._registry.now_ms()
        self._registry.schedule(self._cooldown_timer_name(), self._cooldown_ms, self._on_cooldown_elapsed)

    def _on_cooldown_elapsed(self) -> None:
        if self._phase is not AbilityPhase.COOLDOWN:
            return
        self._phase = AbilityPhase.IDLE
        logger.debug("Ability %s ready", self._name)
