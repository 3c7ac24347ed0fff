# -*- coding: utf-8 -*-
########################
# entity_set.py
########################
# Purpose:
# - Owns the live entities of one minigame session (birds, notes, prompts, pots, particles).
# - Advances kinematics by delta time and removes entities by predicate.
#
# Design notes:
# - No Qt usage. Pure gameplay logic.
# - One homogeneous container. The update rule is selected by Entity.kind.
# - Linear motion is additive: update(a); update(b) equals update(a + b) for constant velocity.
#   Bird oscillation is layered on top at render time and never feeds back into x/y.
# - prune() is final. A pruned entity never reappears.
# - Iteration order is spawn order.
#
########################
# Interfaces:
# Public classes:
# - class EntitySet
#   - spawn(entity: Entity) -> Entity
#   - next_entity_id() -> int
#   - update(delta_ms: float) -> None
#   - prune(predicate: Callable[[Entity], bool]) -> list[Entity]
#   - live(kind: Optional[EntityKind] = None) -> list[Entity]
#   - clear() -> None
#
# Public functions (removal predicates):
# - is_dead(entity) -> bool
# - outside_rect(min_x, min_y, max_x, max_y) -> Callable[[Entity], bool]
# - particle_expired(entity) -> bool
#
# Public functions (pair response):
# - separate_overlapping(first, second, *, min_distance) -> bool
#
########################

from __future__ import annotations

import math
from typing import Callable, Dict, Iterator, List, Optional

from gameplay_models import Entity, EntityKind, ParticlePayload, PotPayload

EntityPredicate = Callable[[Entity], bool]


def _integrate_linear(entity: Entity, delta_ms: float) -> None:
    entity.x += entity.vx * delta_ms
    entity.y += entity.vy * delta_ms
    entity.distance += entity.radial_speed * delta_ms


def _integrate_pot(entity: Entity, delta_ms: float) -> None:
    pot = entity.payload
    if not isinstance(pot, PotPayload) or pot.completed:
        return
    _integrate_linear(entity, delta_ms)

    min_x, min_y, max_x, max_y = pot.bounce_bounds
    if entity.x < min_x or entity.x > max_x:
        entity.vx = -entity.vx
    if entity.y < min_y or entity.y > max_y:
        entity.vy = -entity.vy
    entity.x = max(min_x, min(max_x, entity.x))
    entity.y = max(min_y, min(max_y, entity.y))


def _integrate_particle(entity: Entity, delta_ms: float) -> None:
    particle = entity.payload
    if not isinstance(particle, ParticlePayload):
        _integrate_linear(entity, delta_ms)
        return
    entity.vy += particle.gravity_per_ms2 * delta_ms
    _integrate_linear(entity, delta_ms)
    particle.life -= particle.decay_per_ms * delta_ms


_INTEGRATORS: Dict[EntityKind, Callable[[Entity, float], None]] = {
    EntityKind.BIRD: _integrate_linear,
    EntityKind.NOTE: _integrate_linear,
    EntityKind.PROMPT: _integrate_linear,
    EntityKind.POT: _integrate_pot,
    EntityKind.PARTICLE: _integrate_particle,
}


class EntitySet:
    def __init__(self) -> None:
        self._entities: List[Entity] = []
        self._next_id = 1

    def __len__(self) -> int:
        return len(self._entities)

    def __iter__(self) -> Iterator[Entity]:
        return iter(list(self._entities))

    def next_entity_id(self) -> int:
        entity_id = self._next_id
        self._next_id += 1
        return entity_id

    def spawn(self, entity: Entity) -> Entity:
        if entity.entity_id <= 0:
            entity.entity_id = self.next_entity_id()
        self._entities.append(entity)
        return entity

    def update(self, delta_ms: float) -> None:
        delta = float(delta_ms)
        if delta <= 0.0:
            return
        for entity in self._entities:
            if not entity.alive:
                continue
            _INTEGRATORS[entity.kind](entity, delta)

    def prune(self, predicate: EntityPredicate) -> List[Entity]:
        kept: List[Entity] = []
        removed: List[Entity] = []
        for entity in self._entities:
            if predicate(entity):
                removed.append(entity)
            else:
                kept.append(entity)
        self._entities = kept
        return removed

    def live(self, kind: Optional[EntityKind] = None) -> List[Entity]:
        return [
            entity
            for entity in self._entities
            if entity.alive and (kind is None or entity.kind is kind)
        ]

    def clear(self) -> None:
        self._entities.clear()


def is_dead(entity: Entity) -> bool:
    return not entity.alive


def particle_expired(entity: Entity) -> bool:
    return isinstance(entity.payload, ParticlePayload) and entity.payload.life <= 0.0


def outside_rect(min_x: float, min_y: float, max_x: float, max_y: float) -> EntityPredicate:
    def predicate(entity: Entity) -> bool:
        return entity.x < min_x or entity.x > max_x or entity.y < min_y or entity.y > max_y

    return predicate


def separate_overlapping(first: Entity, second: Entity, *, min_distance: float) -> bool:
    """Push two entities apart and exchange the normal component of their velocities.

    Returns True if the pair overlapped.
    """
    dx = second.x - first.x
    dy = second.y - first.y
    dist = math.hypot(dx, dy)
    if dist >= min_distance:
        return False

    if dist <= 0.0:
        # Coincident centres have no defined normal; nudge along x.
        first.x -= min_distance * 0.5
        second.x += min_distance * 0.5
        return True

    nx = dx / dist
    ny = dy / dist
    overlap = min_distance - dist
    first.x -= nx * overlap * 0.5
    first.y -= ny * overlap * 0.5
    second.x += nx * overlap * 0.5
    second.y += ny * overlap * 0.5

    dvx = second.vx - first.vx
    dvy = second.vy - first.vy
    dot = dvx * nx + dvy * ny
    if dot < 0.0:
        first.vx += nx * dot
        first.vy += ny * dot
        second.vx -= nx * dot
        second.vy -= ny * dot
    return True
