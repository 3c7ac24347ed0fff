# -*- coding: utf-8 -*-
########################
# archery.py
########################
# Purpose:
# - Archery minigame: shoot birds crossing the field before the time limit runs out.
# - Focus ability slows bird motion for a fixed duration, then cools down.
#
# Design notes:
# - No Qt usage.
# - Birds move on scaled time. The spawn timer, ability timers and time limit use unscaled time,
#   so Focus slows the birds without stretching the round.
# - A shot picks the nearest bird by rendered position (sine offset included).
# - Escaped birds are pruned silently. Archery has no timing misses.
#
########################
# Interfaces:
# Public classes:
# - class ArcheryGame(minigame.Minigame)
#   - __init__(settings: config.ArcheryConfig, *, rng=None, max_delta_ms=100.0)
#   - focus -> ability.TimedAbility
#
# Inputs:
# - POINTER_DOWN with x/y: shoot
# - KEY_DOWN focus key ("1" by default): activate Focus
#
# Outputs:
# - Snapshot extras: ability phase, cooldown progress, time scale, time remaining, birds hit
#
########################

from __future__ import annotations

import math
import random
from typing import Any, Dict, Optional, Tuple

from ability import TimedAbility
from config import ArcheryConfig
from entity_set import is_dead, particle_expired
from gameplay_models import BirdPayload, Entity, EntityKind, InputEvent, InputKind, ParticlePayload, Tier
from judge import InputClassifier, JudgementWindows, MatchMode
from minigame import Minigame
from session import EndReason, Phase
from spawner import IntervalSpawner, UniformRange

SPLATTER_LIFETIME_MS = 600.0
SPLATTER_SPREAD_PX = 80.0


class ArcheryGame(Minigame):
    game_id = "archery"

    def __init__(self, settings: ArcheryConfig, *, rng: Optional[random.Random] = None, max_delta_ms: float = 100.0) -> None:
        super().__init__(
            session_id="archery",
            rng=rng,
            max_delta_ms=max_delta_ms,
            time_limit_ms=float(settings.duration_seconds) * 1000.0,
        )
        self._settings = settings
        self._speed_range = UniformRange.from_pair(settings.bird_speed_px_per_ms)
        self._size_range = UniformRange.from_pair(settings.size_scale)
        self._sine_freq_range = UniformRange.from_pair(settings.sine_frequency_per_px)
        self._sine_amp_range = UniformRange.from_pair(settings.sine_amplitude_px)

        self._spawner = IntervalSpawner(
            interval_range=UniformRange.from_pair(settings.spawn_interval_ms),
            rng=self._rng,
            first_interval_ms=float(settings.first_spawn_ms),
        )

        self._aim: Tuple[float, float] = (0.0, 0.0)
        self._classifier = InputClassifier(
            JudgementWindows.simple(
                perfect=float(settings.perfect_px),
                good=float(settings.good_px),
                miss_cutoff=float(settings.hit_radius_px),
            ),
            deviation_of=self._distance_from_aim,
            match_mode=MatchMode.NEAREST_MATCHING,
            stray_policy=settings.stray_input_policy,
        )

        self.focus = TimedAbility(
            self._registry,
            name="focus",
            duration_ms=float(settings.focus_duration_ms),
            cooldown_ms=float(settings.focus_cooldown_ms),
            on_activate=lambda: self._clock.set_time_scale(float(settings.focus_time_scale)),
            on_expire=lambda: self._clock.set_time_scale(1.0),
        )
        self._birds_hit = 0

    # ---- lifecycle hooks ----

    def _on_reset(self) -> None:
        self.focus.reset()
        self._clock.set_time_scale(1.0)
        self._birds_hit = 0

    def _on_enter_active(self) -> None:
        self._spawner.reset()

    def _on_end(self) -> None:
        self.focus.reset()

    # ---- per tick ----

    def _update(self, scaled_delta_ms: float, unscaled_delta_ms: float) -> None:
        self._spawner.advance(unscaled_delta_ms, self._spawn_bird)
        self._entities.update(scaled_delta_ms)
        self._entities.prune(lambda entity: is_dead(entity) or particle_expired(entity) or self._escaped(entity))

        if self._session.deadline_reached():
            self._session.end(EndReason.DEADLINE)

    def _spawn_bird(self) -> Entity:
        settings = self._settings
        direction = 1 if self._rng.random() > 0.5 else -1
        start_x = -settings.offscreen_margin_px if direction == 1 else settings.field_width + settings.offscreen_margin_px
        base_y = self._rng.random() * (settings.field_height * 0.5) + 50.0
        speed = self._speed_range.sample(self._rng)
        vertical_speed = (self._rng.random() - 0.5) * speed * settings.vertical_speed_factor

        payload = BirdPayload(
            direction=direction,
            size_scale=self._size_range.sample(self._rng),
            sine_freq=self._sine_freq_range.sample(self._rng),
            sine_amp=self._sine_amp_range.sample(self._rng),
            noise_offset=self._rng.random() * 1000.0,
        )
        bird = Entity(
            entity_id=0,
            kind=EntityKind.BIRD,
            payload=payload,
            x=float(start_x),
            y=float(base_y),
            vx=speed * direction,
            vy=vertical_speed,
            spawn_time_ms=self._session.active_elapsed_ms(),
        )
        return self._entities.spawn(bird)

    def _escaped(self, entity: Entity) -> bool:
        if entity.kind is not EntityKind.BIRD or not isinstance(entity.payload, BirdPayload):
            return False
        settings = self._settings
        if entity.payload.direction == 1 and entity.x > settings.field_width + settings.offscreen_margin_px:
            return True
        if entity.payload.direction == -1 and entity.x < -settings.offscreen_margin_px:
            return True
        return entity.y < -settings.vertical_margin_px or entity.y > settings.field_height + settings.vertical_margin_px

    # ---- input ----

    def _handle_input(self, input_event: InputEvent) -> None:
        if self._session.phase() is not Phase.ACTIVE:
            return

        if input_event.kind is InputKind.KEY_DOWN and not input_event.is_repeat:
            if input_event.key == self._settings.focus_key:
                self.focus.activate()
            return

        if input_event.kind is InputKind.POINTER_DOWN and input_event.x is not None and input_event.y is not None:
            self._shoot(input_event)

    def _distance_from_aim(self, entity: Entity) -> float:
        render_x, render_y = entity.render_position()
        return math.hypot(render_x - self._aim[0], render_y - self._aim[1])

    def _shoot(self, input_event: InputEvent) -> None:
        self._aim = (float(input_event.x or 0.0), float(input_event.y or 0.0))
        judgement = self._classifier.classify(
            input_event,
            self._entities.live(EntityKind.BIRD),
            now_ms=self._session.active_elapsed_ms(),
        )
        if judgement is None or judgement.entity is None:
            return

        judgement.entity.alive = False
        if judgement.tier.is_success:
            self._session.apply_success(judgement.tier, float(self._settings.points_per_hit), float(self._settings.combo_bonus_rate))
            self._birds_hit += 1
            self._spawn_splatter(*self._aim)
        else:
            self._session.apply_failure(Tier.MISS)
        self._emit_judgement(judgement)

    def _spawn_splatter(self, x: float, y: float) -> None:
        for _ in range(int(self._settings.splatter_particles)):
            self._entities.spawn(
                Entity(
                    entity_id=0,
                    kind=EntityKind.PARTICLE,
                    payload=ParticlePayload(life=1.0, decay_per_ms=1.0 / SPLATTER_LIFETIME_MS, style="ink"),
                    x=x,
                    y=y,
                    vx=(self._rng.random() - 0.5) * SPLATTER_SPREAD_PX / SPLATTER_LIFETIME_MS,
                    vy=(self._rng.random() - 0.5) * SPLATTER_SPREAD_PX / SPLATTER_LIFETIME_MS,
                )
            )

    # ---- snapshot ----

    def _extras(self) -> Dict[str, Any]:
        return {
            "ability_phase": self.focus.phase().value,
            "ability_cooldown_progress": self.focus.cooldown_progress(),
            "time_scale": self._clock.time_scale(),
            "time_remaining_ms": self._session.time_remaining_ms(),
            "birds_hit": int(self._birds_hit),
        }

    def _summary_extras(self) -> Dict[str, Any]:
        return {"birds_hit": int(self._birds_hit)}
