# -*- coding: utf-8 -*-
########################
# pitch_pot.py
########################
# Purpose:
# - Pitch pot minigame: keep the cursor(s) on drifting pots until they are fully charged, then
#   commit. A round is won when every pot is charged at the moment of the commit.
#
# Design notes:
# - No Qt usage.
# - Each round draws a variety: mouse (1 pot), wasd (1 pot), hybrid (1 pot needing both
#   cursors) or dual (a mouse pot and a wasd pot). Varieties can be restricted for practice.
# - The commit is all-or-nothing over every pot of the round (judge.classify_commit).
# - Cursors move during COUNTDOWN too. Pots and charges only move while ACTIVE.
# - The next round is a registry timer, so pause freezes it and restart cancels it.
#   Commits are ignored while it is pending.
#
########################
# Interfaces:
# Public enums:
# - RoundVariety: MOUSE | WASD | HYBRID | DUAL
#
# Public classes:
# - class PitchPotGame(minigame.Minigame)
#   - __init__(settings: config.PitchPotConfig, *, rng=None, rounds=None, varieties=None, max_delta_ms=100.0)
#   - variety() -> Optional[RoundVariety]
#   - pots() -> list[Entity]
#   - cursor(name: str) -> Optional[tuple[float, float]]
#   - commit() -> Optional[JudgementEvent]
#
# Inputs:
# - POINTER_MOVE: mouse cursor
# - held w/a/s/d: wasd cursor
# - POINTER_DOWN or space KEY_DOWN: commit
#
########################

from __future__ import annotations

from enum import Enum
import logging
import math
import random
from typing import Any, Dict, List, Optional, Sequence, Tuple

from config import PitchPotConfig
from entity_set import separate_overlapping
from gameplay_models import Entity, EntityKind, InputEvent, InputKind, JudgementEvent, PotPayload, PotType, Tier
from judge import classify_commit
from minigame import Minigame
from session import EndReason, Phase
from spawner import UniformRange

logger = logging.getLogger(__name__)

NEXT_ROUND_TIMER_NAME = "pitch_pot:next_round"
MOUSE_CURSOR = "mouse"
WASD_CURSOR = "wasd"
FULL_CHARGE = 100.0


class RoundVariety(str, Enum):
    MOUSE = "mouse"
    WASD = "wasd"
    HYBRID = "hybrid"
    DUAL = "dual"


# variety -> (pot types, base speed px/s, speed step per round px/s, time limit s)
ROUND_TABLE: Dict[RoundVariety, Tuple[Tuple[PotType, ...], float, float, float]] = {
    RoundVariety.MOUSE: ((PotType.MOUSE,), 80.0, 8.0, 30.0),
    RoundVariety.WASD: ((PotType.WASD,), 60.0, 8.0, 30.0),
    RoundVariety.HYBRID: ((PotType.HYBRID,), 70.0, 8.0, 40.0),
    RoundVariety.DUAL: ((PotType.MOUSE, PotType.WASD), 50.0, 5.0, 45.0),
}

WASD_DIRECTIONS: Dict[str, Tuple[float, float]] = {
    "w": (0.0, -1.0),
    "s": (0.0, 1.0),
    "a": (-1.0, 0.0),
    "d": (1.0, 0.0),
}


def pot_speed_px_per_ms(variety: RoundVariety, round_index: int) -> float:
    _types, base, step, _limit = ROUND_TABLE[RoundVariety(variety)]
    return (base + step * int(round_index)) / 1000.0


def round_time_limit_ms(variety: RoundVariety) -> float:
    return ROUND_TABLE[RoundVariety(variety)][3] * 1000.0


class PitchPotGame(Minigame):
    game_id = "pitch_pot"

    def __init__(
        self,
        settings: PitchPotConfig,
        *,
        rng: Optional[random.Random] = None,
        rounds: Optional[int] = None,
        varieties: Optional[Sequence[RoundVariety]] = None,
        max_delta_ms: float = 100.0,
    ) -> None:
        required_rounds = int(rounds) if rounds is not None else int(settings.rounds)
        if required_rounds < 1:
            raise ValueError(f"rounds must be >= 1, got {rounds}")

        super().__init__(
            session_id="pitch_pot",
            rng=rng,
            max_delta_ms=max_delta_ms,
            countdown_labels=settings.countdown_labels,
            countdown_step_ms=float(settings.countdown_step_ms),
            required_rounds=required_rounds,
        )
        self._settings = settings
        self._varieties: Tuple[RoundVariety, ...] = tuple(RoundVariety(item) for item in (varieties or tuple(RoundVariety)))
        if not self._varieties:
            raise ValueError("varieties must not be empty")

        self._spawn_x = UniformRange.from_pair(settings.spawn_x)
        self._spawn_y = UniformRange.from_pair(settings.spawn_y)
        min_x, min_y, max_x, max_y = settings.bounce_bounds
        self._bounds = (float(min_x), float(min_y), float(max_x), float(max_y))

        self._variety: Optional[RoundVariety] = None
        self._cursors: Dict[str, List[float]] = {}
        self._resolving = False
        self._pots_completed = 0
        self._rounds_cleared = 0

    # ---- accessors ----

    def variety(self) -> Optional[RoundVariety]:
        return self._variety

    def pots(self) -> List[Entity]:
        return self._entities.live(EntityKind.POT)

    def cursor(self, name: str) -> Optional[Tuple[float, float]]:
        position = self._cursors.get(name)
        if position is None:
            return None
        return (float(position[0]), float(position[1]))

    def is_resolving(self) -> bool:
        return self._resolving

    # ---- lifecycle hooks ----

    def _on_reset(self) -> None:
        self._pots_completed = 0
        self._rounds_cleared = 0

    def _on_round_start(self) -> None:
        round_index = self._session.round_index()
        variety = self._varieties[self._rng.randrange(len(self._varieties))]
        self._variety = variety
        self._resolving = False
        self._session.set_time_limit_ms(round_time_limit_ms(variety))

        self._entities.prune(lambda entity: entity.kind is EntityKind.POT)
        pot_types = ROUND_TABLE[variety][0]
        speed = pot_speed_px_per_ms(variety, round_index)
        for pot_type in pot_types:
            self._spawn_pot(pot_type, speed)

        center = [float(self._settings.field_width) / 2.0, float(self._settings.field_height) / 2.0]
        self._cursors = {}
        if any(pot_type in (PotType.MOUSE, PotType.HYBRID) for pot_type in pot_types):
            self._cursors[MOUSE_CURSOR] = list(center)
        if any(pot_type in (PotType.WASD, PotType.HYBRID) for pot_type in pot_types):
            self._cursors[WASD_CURSOR] = list(center)

        logger.info("Pitch pot round %d: %s, %d pot(s)", round_index + 1, variety.value, len(pot_types))

    def _spawn_pot(self, pot_type: PotType, speed_px_per_ms: float) -> Entity:
        heading = self._rng.random() * math.pi * 2.0
        return self._entities.spawn(
            Entity(
                entity_id=0,
                kind=EntityKind.POT,
                payload=PotPayload(pot_type=pot_type, bounce_bounds=self._bounds),
                x=self._spawn_x.sample(self._rng),
                y=self._spawn_y.sample(self._rng),
                vx=math.cos(heading) * speed_px_per_ms,
                vy=math.sin(heading) * speed_px_per_ms,
                spawn_time_ms=self._session.active_elapsed_ms(),
            )
        )

    # ---- per tick ----

    def _track(self, unscaled_delta_ms: float) -> None:
        mouse = self._cursors.get(MOUSE_CURSOR)
        pointer = self.pointer_position()
        if mouse is not None and pointer is not None:
            mouse[0], mouse[1] = pointer

        wasd = self._cursors.get(WASD_CURSOR)
        if wasd is None:
            return
        step = float(self._settings.cursor_speed_px_per_ms) * float(unscaled_delta_ms)
        for key in self._held_keys:
            direction = WASD_DIRECTIONS.get(key)
            if direction is None:
                continue
            wasd[0] += direction[0] * step
            wasd[1] += direction[1] * step
        wasd[0] = max(0.0, min(float(self._settings.field_width), wasd[0]))
        wasd[1] = max(0.0, min(float(self._settings.field_height), wasd[1]))

    def _update(self, scaled_delta_ms: float, unscaled_delta_ms: float) -> None:
        self._entities.update(scaled_delta_ms)

        active_pots = [pot for pot in self.pots() if not self._completed(pot)]
        for index, first in enumerate(active_pots):
            for second in active_pots[index + 1:]:
                separate_overlapping(first, second, min_distance=float(self._settings.min_separation_px))

        for pot in active_pots:
            self._charge(pot, scaled_delta_ms)

        if not self._resolving and self._session.deadline_reached():
            self._session.end(EndReason.DEADLINE)

    @staticmethod
    def _completed(pot: Entity) -> bool:
        return isinstance(pot.payload, PotPayload) and pot.payload.completed

    def _cursor_on(self, name: str, pot: Entity) -> bool:
        position = self._cursors.get(name)
        if position is None:
            return False
        return math.hypot(position[0] - pot.x, position[1] - pot.y) < float(self._settings.charge_radius_px)

    def _is_charging(self, pot: Entity) -> bool:
        payload = pot.payload
        if not isinstance(payload, PotPayload):
            return False
        if payload.pot_type is PotType.HYBRID:
            return self._cursor_on(MOUSE_CURSOR, pot) and self._cursor_on(WASD_CURSOR, pot)
        return self._cursor_on(payload.pot_type.value, pot)

    def _charge(self, pot: Entity, delta_ms: float) -> None:
        payload = pot.payload
        if not isinstance(payload, PotPayload):
            return
        if self._is_charging(pot):
            payload.charge = min(FULL_CHARGE, payload.charge + float(self._settings.charge_gain_per_ms) * delta_ms)
        else:
            payload.charge = max(0.0, payload.charge - float(self._settings.charge_loss_per_ms) * delta_ms)

    # ---- input ----

    def _handle_input(self, input_event: InputEvent) -> None:
        if self._session.phase() is not Phase.ACTIVE:
            return

        kind = input_event.kind
        is_commit = (kind is InputKind.POINTER_DOWN and input_event.button == 0) or (
            kind is InputKind.KEY_DOWN and input_event.key == "space" and not input_event.is_repeat
        )
        if is_commit:
            self.commit()

    def commit(self) -> Optional[JudgementEvent]:
        if self._session.phase() is not Phase.ACTIVE:
            return None
        if self._resolving:
            logger.debug("Pitch pot: commit ignored while the round resolves")
            return None

        linked = [pot for pot in self.pots() if not self._completed(pot)]
        judgement = classify_commit(
            linked,
            is_satisfied=lambda pot: isinstance(pot.payload, PotPayload) and pot.payload.charge >= FULL_CHARGE,
            reset=self._reset_charge,
            now_ms=self._session.active_elapsed_ms(),
        )
        if judgement is None:
            return None

        if judgement.tier.is_success:
            settings = self._settings
            self._session.apply_success(judgement.tier, float(settings.points_per_pot) * len(linked), float(settings.combo_bonus_rate))
            for pot in linked:
                if isinstance(pot.payload, PotPayload):
                    pot.payload.completed = True
            self._pots_completed += len(linked)
            self._rounds_cleared += 1
            self._resolving = True
            self._registry.schedule(NEXT_ROUND_TIMER_NAME, float(settings.next_round_delay_ms), self._on_next_round)
        else:
            self._session.apply_failure(Tier.MISS)
        self._emit_judgement(judgement)
        return judgement

    @staticmethod
    def _reset_charge(pot: Entity) -> None:
        if isinstance(pot.payload, PotPayload):
            pot.payload.charge = 0.0

    def _on_next_round(self) -> None:
        if self._session.phase() is not Phase.ACTIVE:
            return
        self._session.advance_round()

    # ---- snapshot ----

    def _extras(self) -> Dict[str, Any]:
        required = self._session.required_rounds() or 0
        return {
            "variety": None if self._variety is None else self._variety.value,
            "round": self._session.round_index() + 1,
            "rounds": int(required),
            "cursors": {name: (float(pos[0]), float(pos[1])) for name, pos in self._cursors.items()},
            "charges": [float(pot.payload.charge) for pot in self.pots() if isinstance(pot.payload, PotPayload)],
            "time_remaining_ms": self._session.time_remaining_ms(),
            "countdown_label": self._session.countdown_label(),
            "resolving": bool(self._resolving),
            "pots_completed": int(self._pots_completed),
        }

    def _summary_extras(self) -> Dict[str, Any]:
        return {
            "rounds_cleared": int(self._rounds_cleared),
            "pots_completed": int(self._pots_completed),
            "variety": None if self._variety is None else self._variety.value,
        }
