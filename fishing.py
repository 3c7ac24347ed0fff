# -*- coding: utf-8 -*-
########################
# fishing.py
########################
# Purpose:
# - Fishing minigame: charge a cast, lure a fish with taps, then keep the line inside a zone
#   until the catch progress fills.
#
# Design notes:
# - No Qt usage.
# - Stages inside ACTIVE: CASTING -> WAITING -> STRUGGLE. The result screen is the ENDED phase.
# - Cast power is graded by its distance from full power with the shared JudgementWindows.
# - The bite delay is a registry timer, so it freezes while paused and dies on restart.
# - Struggle noise is a function of active elapsed time, so pause does not move the line.
#
########################
# Interfaces:
# Public enums:
# - FishingStage: CASTING | WAITING | STRUGGLE
#
# Public classes:
# - class FishingGame(minigame.Minigame)
#   - __init__(settings: config.FishingConfig, *, rng=None, max_delta_ms=100.0)
#   - stage() -> FishingStage
#
# Inputs:
# - POINTER_DOWN / POINTER_UP: hold and release the cast
# - POINTER_DOWN or space KEY_DOWN: lure taps while waiting
# - POINTER_MOVE: line angle during the struggle
#
########################

from __future__ import annotations

from enum import Enum
import math
import random
from typing import Any, Dict, Optional

from config import FishingConfig
from entity_set import particle_expired
from gameplay_models import Entity, EntityKind, InputEvent, InputKind, JudgementEvent, ParticlePayload, Tier
from judge import JudgementWindows
from minigame import Minigame
from session import BoundedResource, Phase
from spawner import UniformRange

PROGRESS = "progress"
BITE_TIMER_NAME = "fishing:bite"
FULL_POWER = 100.0
CENTER_ANGLE_DEG = 90.0
RIPPLE_DECAY_PER_MS = 0.0012

CAST_TIERS = (Tier.PERFECT, Tier.GREAT, Tier.GOOD, Tier.WEAK)


class FishingStage(str, Enum):
    CASTING = "CASTING"
    WAITING = "WAITING"
    STRUGGLE = "STRUGGLE"


def struggle_noise(elapsed_seconds: float) -> float:
    return math.sin(elapsed_seconds * 5.0) * 15.0 + math.cos(elapsed_seconds * 2.3) * 10.0


class FishingGame(Minigame):
    game_id = "fishing"

    def __init__(self, settings: FishingConfig, *, rng: Optional[random.Random] = None, max_delta_ms: float = 100.0) -> None:
        super().__init__(
            session_id="fishing",
            rng=rng,
            max_delta_ms=max_delta_ms,
            resources=(BoundedResource(PROGRESS, 0.0, 100.0, float(settings.progress_start)),),
            exhaustion_resource=PROGRESS,
            completion_resource=PROGRESS,
        )
        self._settings = settings
        self._cast_windows = JudgementWindows(
            thresholds=tuple(zip(CAST_TIERS[:3], (float(value) for value in settings.cast_thresholds))),
            miss_cutoff=FULL_POWER - float(settings.min_cast_power),
            search_range=FULL_POWER,
            fallback_tier=Tier.WEAK,
        )
        self._cast_scores: Dict[Tier, float] = dict(zip(CAST_TIERS, (float(value) for value in settings.cast_scores)))
        self._zone_center_range = UniformRange.from_pair(settings.zone_center_deg)
        self._zone_width_range = UniformRange.from_pair(settings.zone_width_deg)

        self._stage = FishingStage.CASTING
        self._reset_stage_state()

    def _reset_stage_state(self) -> None:
        self._power = 0.0
        self._power_direction = 1.0
        self._top_pause_ms = 0.0
        self._cast_held = False
        self._cast_tier: Optional[Tier] = None
        self._required_taps = 0
        self._taps = 0
        self._lure_completed = False
        self._zone_center_deg = CENTER_ANGLE_DEG
        self._zone_width_deg = float(self._settings.zone_width_deg[0])
        self._mouse_angle_deg = CENTER_ANGLE_DEG
        self._player_angle_deg = CENTER_ANGLE_DEG
        self._in_zone = False

    def stage(self) -> FishingStage:
        return self._stage

    # ---- lifecycle hooks ----

    def _on_reset(self) -> None:
        self._reset_stage_state()
        self._stage = FishingStage.CASTING

    def _switch_stage(self, stage: FishingStage) -> None:
        self._stage = stage
        if stage is FishingStage.CASTING:
            self._power = 0.0
            self._power_direction = 1.0
            self._top_pause_ms = 0.0
        elif stage is FishingStage.WAITING:
            low, high = self._settings.lure_taps
            self._required_taps = self._rng.randint(int(low), int(high))
            self._taps = 0
            self._lure_completed = False
        elif stage is FishingStage.STRUGGLE:
            self._session.set_resource(PROGRESS, float(self._settings.progress_start))
            self._zone_center_deg = self._zone_center_range.sample(self._rng)
            self._zone_width_deg = self._zone_width_range.sample(self._rng)
            self._mouse_angle_deg = CENTER_ANGLE_DEG
            self._player_angle_deg = CENTER_ANGLE_DEG

    def clear_held_input(self) -> None:
        """A cast whose button release was lost is dropped, not thrown."""
        super().clear_held_input()
        self._cast_held = False
        self._power = 0.0
        self._power_direction = 1.0
        self._top_pause_ms = 0.0

    # ---- per tick ----

    def _update(self, scaled_delta_ms: float, unscaled_delta_ms: float) -> None:
        if self._stage is FishingStage.CASTING:
            self._update_cast_power(scaled_delta_ms)
        elif self._stage is FishingStage.STRUGGLE:
            self._update_struggle(scaled_delta_ms)

        self._entities.update(scaled_delta_ms)
        self._entities.prune(particle_expired)

    def _update_cast_power(self, delta_ms: float) -> None:
        if not self._cast_held:
            self._power = 0.0
            self._power_direction = 1.0
            self._top_pause_ms = 0.0
            return

        if self._top_pause_ms > 0.0:
            self._top_pause_ms -= delta_ms
            return

        self._power += self._power_direction * float(self._settings.power_speed_per_ms) * delta_ms
        if self._power >= FULL_POWER:
            self._power = FULL_POWER
            self._power_direction = -1.0
            self._top_pause_ms = float(self._settings.top_pause_ms)
        elif self._power <= 0.0:
            self._power = 0.0
            self._power_direction = 1.0

    def _update_struggle(self, delta_ms: float) -> None:
        elapsed_seconds = self._session.active_elapsed_ms() / 1000.0
        self._player_angle_deg = self._mouse_angle_deg + struggle_noise(elapsed_seconds)
        self._in_zone = abs(self._player_angle_deg - self._zone_center_deg) < self._zone_width_deg / 2.0

        if self._in_zone:
            progress = self._session.adjust_resource(PROGRESS, float(self._settings.progress_gain_per_ms) * delta_ms)
        else:
            progress = self._session.adjust_resource(PROGRESS, -float(self._settings.progress_loss_per_ms) * delta_ms)

        if progress >= 100.0:
            self._session.add_bonus(float(self._settings.catch_bonus))
        self._session.check_end()

    # ---- input ----

    def _handle_input(self, input_event: InputEvent) -> None:
        if self._session.phase() is not Phase.ACTIVE:
            return

        kind = input_event.kind
        if kind is InputKind.POINTER_MOVE and self._stage is FishingStage.STRUGGLE and input_event.x is not None:
            width = float(self._settings.field_width)
            clamped_x = max(0.0, min(width, float(input_event.x)))
            self._mouse_angle_deg = clamped_x / width * 180.0
            return

        is_press = (kind is InputKind.POINTER_DOWN and input_event.button == 0) or (
            kind is InputKind.KEY_DOWN and input_event.key == "space" and not input_event.is_repeat
        )
        is_release = kind is InputKind.POINTER_UP and input_event.button == 0

        if self._stage is FishingStage.CASTING:
            if kind is InputKind.POINTER_DOWN and input_event.button == 0:
                self._cast_held = True
            elif is_release:
                self._release_cast()
            return

        if self._stage is FishingStage.WAITING and is_press:
            self._lure_tap()

    def _release_cast(self) -> None:
        if not self._cast_held:
            return
        self._cast_held = False
        if self._power <= float(self._settings.min_cast_power):
            return

        deviation = FULL_POWER - self._power
        tier = self._cast_windows.classify_deviation(deviation) or CAST_TIERS[-1]
        self._cast_tier = tier
        self._session.apply_success(tier, self._cast_scores[tier], 0.0)
        self._emit_judgement(
            JudgementEvent(
                time_ms=self._session.active_elapsed_ms(),
                tier=tier,
                deviation=deviation,
                delta=-deviation,
            )
        )
        self._switch_stage(FishingStage.WAITING)

    def _lure_tap(self) -> None:
        if self._lure_completed:
            return

        self._spawn_ripple()
        self._taps += 1
        if self._taps >= self._required_taps:
            self._lure_completed = True
            self._registry.schedule(BITE_TIMER_NAME, float(self._settings.bite_delay_ms), self._on_bite)

    def _on_bite(self) -> None:
        if self._session.phase() is not Phase.ACTIVE or self._stage is not FishingStage.WAITING:
            return
        self._switch_stage(FishingStage.STRUGGLE)

    def _spawn_ripple(self) -> None:
        self._entities.spawn(
            Entity(
                entity_id=0,
                kind=EntityKind.PARTICLE,
                payload=ParticlePayload(life=1.0, decay_per_ms=RIPPLE_DECAY_PER_MS, style="ripple"),
                x=float(self._settings.field_width) / 2.0,
                y=0.0,
            )
        )

    # ---- snapshot ----

    def _extras(self) -> Dict[str, Any]:
        return {
            "stage": self._stage.value,
            "power": float(self._power),
            "cast_tier": None if self._cast_tier is None else self._cast_tier.value,
            "required_taps": int(self._required_taps),
            "taps": int(self._taps),
            "lure_completed": bool(self._lure_completed),
            "zone_center_deg": float(self._zone_center_deg),
            "zone_width_deg": float(self._zone_width_deg),
            "player_angle_deg": float(self._player_angle_deg),
            "in_zone": bool(self._in_zone),
            "progress": self._session.resource_value(PROGRESS),
        }

    def _summary_extras(self) -> Dict[str, Any]:
        return {
            "caught": self._session.resource(PROGRESS).at_ceiling(),
            "cast_tier": None if self._cast_tier is None else self._cast_tier.value,
        }
