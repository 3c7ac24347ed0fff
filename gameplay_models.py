# -*- coding: utf-8 -*-
########################
# gameplay_models.py
########################
# Purpose:
# - Core gameplay data models shared by every minigame.
# - Defines the entity tagged variant, input events, judgement events and the end-of-session summary.
#
# Design notes:
# - Keep these models stable. Prefer extending with new optional fields rather than breaking changes.
# - No Qt usage. These are plain dataclasses and enums.
# - Entity is one homogeneous type. The kind tag selects the payload dataclass and the update rule
#   applied by entity_set.EntitySet.
#
########################
# Interfaces:
# Public enums:
# - EntityKind: BIRD | NOTE | PROMPT | POT | PARTICLE
# - NoteType: TAP | HOLD
# - PotType: MOUSE | WASD | HYBRID
# - InputKind: KEY_DOWN | KEY_UP | POINTER_DOWN | POINTER_UP | POINTER_MOVE
# - Tier: PERFECT | GREAT | GOOD | WEAK | MISS | BROKEN_HOLD
#
# Public dataclasses:
# - BirdPayload, NotePayload, PromptPayload, PotPayload, ParticlePayload
# - Entity(entity_id, kind, x, y, vx, vy, distance, radial_speed, spawn_time_ms, alive, payload)
# - NoteEvent(time_ms: float, lane: int, note_type: NoteType, length_ms: float)
# - BackingCue(time_ms: float, chord: tuple[int, ...])
# - InputEvent(kind, key, x, y, button, is_repeat, time_ms)
# - JudgementEvent(time_ms, tier, deviation, delta, entity, implicit)
# - SessionSummary(session_id, final_score, max_combo, stats_by_tier, end_reason, extras)
#
# Inputs/Outputs:
# - Exchanged between spawners, EntitySet, InputClassifier, SessionStateMachine, games and the Qt shell.
#
########################

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import math
from typing import Any, Dict, Optional, Tuple, Union


class EntityKind(str, Enum):
    BIRD = "bird"
    NOTE = "note"
    PROMPT = "prompt"
    POT = "pot"
    PARTICLE = "particle"


class NoteType(str, Enum):
    TAP = "tap"
    HOLD = "hold"


class PotType(str, Enum):
    MOUSE = "mouse"
    WASD = "wasd"
    HYBRID = "hybrid"


class InputKind(str, Enum):
    KEY_DOWN = "key_down"
    KEY_UP = "key_up"
    POINTER_DOWN = "pointer_down"
    POINTER_UP = "pointer_up"
    POINTER_MOVE = "pointer_move"


class Tier(str, Enum):
    PERFECT = "perfect"
    GREAT = "great"
    GOOD = "good"
    WEAK = "weak"
    MISS = "miss"
    BROKEN_HOLD = "broken_hold"

    @property
    def is_success(self) -> bool:
        return self not in (Tier.MISS, Tier.BROKEN_HOLD)


@dataclass
class BirdPayload:
    direction: int
    size_scale: float
    sine_freq: float
    sine_amp: float
    noise_offset: float


@dataclass
class NotePayload:
    lane: int
    note_type: NoteType = NoteType.TAP
    hold_length_px: float = 0.0
    hit_time_ms: float = 0.0
    is_holding: bool = False


@dataclass
class PromptPayload:
    key: str
    angle_radians: float


@dataclass
class PotPayload:
    pot_type: PotType
    bounce_bounds: Tuple[float, float, float, float]
    charge: float = 0.0
    completed: bool = False
    radius: float = 50.0


@dataclass
class ParticlePayload:
    life: float = 1.0
    decay_per_ms: float = 0.0018
    gravity_per_ms2: float = 0.0
    style: str = "spark"


EntityPayload = Union[BirdPayload, NotePayload, PromptPayload, PotPayload, ParticlePayload]


@dataclass(eq=False)
class Entity:
    entity_id: int
    kind: EntityKind
    payload: EntityPayload
    x: float = 0.0
    y: float = 0.0
    vx: float = 0.0
    vy: float = 0.0
    distance: float = 0.0
    radial_speed: float = 0.0
    spawn_time_ms: float = 0.0
    alive: bool = True

    def render_position(self) -> Tuple[float, float]:
        """Position a renderer should paint, including any layered oscillation."""
        if self.kind is EntityKind.BIRD and isinstance(self.payload, BirdPayload):
            bird = self.payload
            wave_offset = math.sin(self.x * bird.sine_freq + bird.noise_offset) * bird.sine_amp
            return (float(self.x), float(self.y) + wave_offset)
        if self.kind is EntityKind.PROMPT and isinstance(self.payload, PromptPayload):
            angle = self.payload.angle_radians
            return (
                float(self.x) + math.cos(angle) * float(self.distance),
                float(self.y) + math.sin(angle) * float(self.distance),
            )
        return (float(self.x), float(self.y))


@dataclass(frozen=True)
class NoteEvent:
    time_ms: float
    lane: int
    note_type: NoteType = NoteType.TAP
    length_ms: float = 0.0


@dataclass(frozen=True)
class BackingCue:
    time_ms: float
    chord: Tuple[int, ...]


@dataclass(frozen=True)
class InputEvent:
    kind: InputKind
    key: Optional[str] = None
    x: Optional[float] = None
    y: Optional[float] = None
    button: int = 0
    is_repeat: bool = False
    time_ms: float = 0.0


@dataclass(frozen=True)
class JudgementEvent:
    time_ms: float
    tier: Tier
    deviation: float
    delta: float
    entity: Optional[Entity] = None
    implicit: bool = False


@dataclass(frozen=True)
class SessionSummary:
    session_id: str
    final_score: float
    max_combo: int
    stats_by_tier: Dict[str, int]
    end_reason: Optional[str]
    extras: Dict[str, Any] = field(default_factory=dict)

    @property
    def display_score(self) -> int:
        return int(math.floor(self.final_score))
