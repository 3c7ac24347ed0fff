# -*- coding: utf-8 -*-
########################
# horse_taming.py
########################
# Purpose:
# - Horse taming minigame: direction prompts fly outward from the centre and must be struck
#   with the matching W/A/S/D key as they cross the ring.
#
# Design notes:
# - No Qt usage.
# - Only the front-most prompt (oldest live) is judged. A wrong key inside the window, or any
#   key once the prompt is late, consumes it as a miss.
# - Prompt keys come from a bag so every key appears twice per eight prompts.
# - Spawning speeds up with progress: interval = base * (1 - progress / 200) * jitter.
# - Stamina empties -> EXHAUSTED. Progress fills -> COMPLETED.
#
########################
# Interfaces:
# Public classes:
# - class HorseTamingGame(minigame.Minigame)
#   - __init__(settings: config.HorseTamingConfig, *, rng=None, max_delta_ms=100.0)
#   - rank() -> str
#
# Public functions:
# - prompt_angle(key: str) -> float
# - rank_for(completed: bool, max_combo: int, stamina: float) -> str
#
# Inputs:
# - KEY_DOWN w/a/s/d (repeats ignored). Other keys are ignored.
#
# Outputs:
# - Snapshot extras: stamina, progress, combo, ring radius, centre
# - Summary extras: rank, stamina, progress
#
########################

from __future__ import annotations

import math
import random
from typing import Any, Dict, Optional

from config import HorseTamingConfig
from entity_set import is_dead, particle_expired
from gameplay_models import Entity, EntityKind, InputEvent, InputKind, JudgementEvent, ParticlePayload, PromptPayload, Tier
from judge import InputClassifier, JudgementWindows, MatchMode
from minigame import Minigame
from session import BoundedResource, EndReason, Phase
from spawner import IntervalSpawner, SpawnBag, UniformRange

STAMINA = "stamina"
PROGRESS = "progress"

PROMPT_ANGLES: Dict[str, float] = {
    "w": -math.pi / 2.0,
    "s": math.pi / 2.0,
    "a": math.pi,
    "d": 0.0,
}

TIER_GAIN: Dict[Tier, float] = {Tier.PERFECT: 3.0, Tier.GREAT: 2.0, Tier.GOOD: 1.0}
TIER_PARTICLES: Dict[Tier, int] = {Tier.PERFECT: 15, Tier.GREAT: 10, Tier.GOOD: 5}

FRAME_MS = 16.66
PARTICLE_MAX_SPEED_PX_PER_MS = 8.0 / FRAME_MS
PARTICLE_DECAY_PER_MS = 0.03 / FRAME_MS


def prompt_angle(key: str) -> float:
    return PROMPT_ANGLES.get(str(key).lower(), 0.0)


def rank_for(completed: bool, max_combo: int, stamina: float) -> str:
    if not completed:
        return "Unworthy"
    if max_combo >= 20 and stamina >= 80.0:
        return "Grandmaster"
    if max_combo >= 15 and stamina >= 50.0:
        return "Master"
    if max_combo >= 10:
        return "Disciple"
    return "Novice"


class HorseTamingGame(Minigame):
    game_id = "horse_taming"

    def __init__(self, settings: HorseTamingConfig, *, rng: Optional[random.Random] = None, max_delta_ms: float = 100.0) -> None:
        super().__init__(
            session_id="horse_taming",
            rng=rng,
            max_delta_ms=max_delta_ms,
            resources=(
                BoundedResource(STAMINA, 0.0, 100.0, 100.0),
                BoundedResource(PROGRESS, 0.0, 100.0, 0.0),
            ),
            exhaustion_resource=STAMINA,
            completion_resource=PROGRESS,
        )
        self._settings = settings
        self._center = (float(settings.field_width) / 2.0, float(settings.field_height) / 2.0)
        self._ring_radius = float(settings.ring_radius_px)

        base = float(settings.spawn_base_interval_ms)
        jitter_low, jitter_high = settings.spawn_jitter
        self._spawner = IntervalSpawner(
            interval_range=UniformRange(base * float(jitter_low), base * float(jitter_high)),
            rng=self._rng,
            first_interval_ms=0.0,
            interval_scale=lambda: 1.0 - self._session.resource_value(PROGRESS) / 200.0,
        )
        self._bag = SpawnBag(settings.prompt_keys, self._rng)

        self._classifier = InputClassifier(
            JudgementWindows(
                thresholds=((Tier.PERFECT, float(settings.perfect_px)), (Tier.GREAT, float(settings.great_px))),
                miss_cutoff=float(settings.hit_threshold_px),
                fallback_tier=Tier.GOOD,
            ),
            deviation_of=self._ring_deviation,
            signed_delta_of=self._ring_delta,
            corresponds=self._key_matches,
            match_mode=MatchMode.FRONT_OF_QUEUE,
            stray_policy=settings.stray_input_policy,
        )

    def rank(self) -> str:
        completed = self._session.end_reason() is EndReason.COMPLETED
        return rank_for(completed, self._session.score.max_combo, self._session.resource_value(STAMINA))

    # ---- lifecycle hooks ----

    def _on_reset(self) -> None:
        self._bag.reset()

    def _on_enter_active(self) -> None:
        self._spawner.reset()

    # ---- geometry ----

    def _ring_delta(self, entity: Entity) -> float:
        return float(entity.distance) - self._ring_radius

    def _ring_deviation(self, entity: Entity) -> float:
        return abs(self._ring_delta(entity))

    @staticmethod
    def _key_matches(input_event: InputEvent, entity: Entity) -> bool:
        return isinstance(entity.payload, PromptPayload) and entity.payload.key == input_event.key

    def _expired(self, entity: Entity) -> bool:
        return float(entity.distance) > self._ring_radius + float(self._settings.expiry_margin_px)

    # ---- per tick ----

    def _update(self, scaled_delta_ms: float, unscaled_delta_ms: float) -> None:
        self._spawner.advance(unscaled_delta_ms, self._spawn_prompt)
        self._entities.update(scaled_delta_ms)

        for judgement in self._classifier.collect_expired(
            self._entities.live(EntityKind.PROMPT),
            self._expired,
            now_ms=self._session.active_elapsed_ms(),
        ):
            self._apply_miss(judgement)

        self._entities.prune(lambda entity: is_dead(entity) or particle_expired(entity))
        self._session.check_end()

    def _spawn_prompt(self) -> Entity:
        key = self._bag.draw()
        return self._entities.spawn(
            Entity(
                entity_id=0,
                kind=EntityKind.PROMPT,
                payload=PromptPayload(key=key, angle_radians=prompt_angle(key)),
                x=self._center[0],
                y=self._center[1],
                radial_speed=float(self._settings.prompt_speed_px_per_ms),
                spawn_time_ms=self._session.active_elapsed_ms(),
            )
        )

    # ---- input ----

    def _handle_input(self, input_event: InputEvent) -> None:
        if self._session.phase() is not Phase.ACTIVE:
            return
        if input_event.kind is not InputKind.KEY_DOWN or input_event.is_repeat:
            return
        if input_event.key not in PROMPT_ANGLES:
            return

        judgement = self._classifier.classify(
            input_event,
            self._entities.live(EntityKind.PROMPT),
            now_ms=self._session.active_elapsed_ms(),
        )
        if judgement is None or judgement.entity is None:
            return

        judgement.entity.alive = False
        if judgement.tier.is_success:
            self._apply_hit(judgement)
        else:
            self._apply_miss(judgement)
        self._session.check_end()

    def _apply_hit(self, judgement: JudgementEvent) -> None:
        settings = self._settings
        gain = TIER_GAIN.get(judgement.tier, 1.0)
        self._session.apply_success(judgement.tier, float(settings.points_per_gain) * gain, float(settings.combo_bonus_rate))
        combo = self._session.score.combo
        self._session.adjust_resource(PROGRESS, gain + combo * float(settings.progress_combo_factor))
        self._session.adjust_resource(STAMINA, gain)
        if judgement.entity is not None:
            self._spawn_burst(judgement.entity, TIER_PARTICLES.get(judgement.tier, 5))
        self._emit_judgement(judgement)

    def _apply_miss(self, judgement: JudgementEvent) -> None:
        self._session.apply_failure(Tier.MISS)
        self._session.adjust_resource(STAMINA, -float(self._settings.miss_stamina_penalty))
        self._emit_judgement(judgement)

    def _spawn_burst(self, prompt: Entity, count: int) -> None:
        origin_x, origin_y = prompt.render_position()
        for _ in range(int(count)):
            angle = self._rng.random() * math.pi * 2.0
            speed = self._rng.random() * PARTICLE_MAX_SPEED_PX_PER_MS
            self._entities.spawn(
                Entity(
                    entity_id=0,
                    kind=EntityKind.PARTICLE,
                    payload=ParticlePayload(life=1.0, decay_per_ms=PARTICLE_DECAY_PER_MS, style="fire"),
                    x=origin_x,
                    y=origin_y,
                    vx=math.cos(angle) * speed,
                    vy=math.sin(angle) * speed,
                )
            )

    # ---- snapshot ----

    def _extras(self) -> Dict[str, Any]:
        return {
            "stamina": self._session.resource_value(STAMINA),
            "progress": self._session.resource_value(PROGRESS),
            "combo": int(self._session.score.combo),
            "ring_radius": self._ring_radius,
            "center": self._center,
        }

    def _summary_extras(self) -> Dict[str, Any]:
        return {
            "rank": self.rank(),
            "stamina": self._session.resource_value(STAMINA),
            "progress": self._session.resource_value(PROGRESS),
        }
