# -*- coding: utf-8 -*-
########################
# judge.py
########################
# Purpose:
# - Hit judgement and score bookkeeping shared by every minigame.
# - Matches an InputEvent to the best live candidate entity and grades its deviation from the target.
# - Emits implicit misses for entities that passed their window, broken holds on early release,
#   and all-or-nothing results for multi-target commits.
#
# Design notes:
# - No Qt usage. Pure gameplay logic.
# - Deviation is a plain float. Games decide what it measures (pixels from a hit line, distance
#   from a ring, cursor distance, missing cast power). The classifier only compares numbers.
# - classify() never mutates entities. The calling game consumes or holds the matched entity.
#   collect_expired() marks expired entities dead so they cannot be judged twice.
# - Two failure triggers are kept apart:
#   - input outside the miss cutoff: a non-event (or an explicit miss under CONSUME_AS_MISS
#     when the entity is already late or the key is wrong)
#   - expiry past the window: always an implicit miss, detected during update
#
########################
# Interfaces:
# Public enums:
# - MatchMode: NEAREST_MATCHING | FRONT_OF_QUEUE
# - StrayInputPolicy: IGNORE | CONSUME_AS_MISS
#
# Public dataclasses:
# - JudgementWindows(thresholds: tuple[(Tier, float), ...], miss_cutoff, search_range=None, fallback_tier=None)
#   - classify_deviation(deviation: float) -> Optional[Tier]
# - ScoreState(score, combo, max_combo, tier_counts)
#   - apply_success(tier, base_value, combo_bonus_rate) -> float
#   - apply_failure(tier) -> None
#   - add_bonus(points) -> None
# - ReleaseResult(entity: Entity, judgement: Optional[JudgementEvent])
#
# Public classes:
# - class InputClassifier
#   - classify(input_event, candidates, *, now_ms) -> Optional[JudgementEvent]
#   - classify_release(input_event, held, *, remaining_extent_of, tolerance, now_ms) -> Optional[ReleaseResult]
#   - collect_expired(candidates, is_expired, *, now_ms) -> list[JudgementEvent]
#
# Public functions:
# - classify_commit(linked, *, is_satisfied, reset, now_ms) -> Optional[JudgementEvent]
#
########################

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import logging
import math
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from gameplay_models import Entity, InputEvent, JudgementEvent, Tier

logger = logging.getLogger(__name__)


class MatchMode(str, Enum):
    NEAREST_MATCHING = "nearest_matching"
    FRONT_OF_QUEUE = "front_of_queue"


class StrayInputPolicy(str, Enum):
    IGNORE = "ignore"
    CONSUME_AS_MISS = "consume_as_miss"


@dataclass(frozen=True)
class JudgementWindows:
    thresholds: Tuple[Tuple[Tier, float], ...]
    miss_cutoff: float
    search_range: Optional[float] = None
    fallback_tier: Optional[Tier] = None

    def __post_init__(self) -> None:
        if not self.thresholds:
            raise ValueError("JudgementWindows needs at least one graded threshold")

        previous = 0.0
        for tier, threshold in self.thresholds:
            if not Tier(tier).is_success:
                raise ValueError(f"graded tier must be a success tier, got {tier}")
            if float(threshold) <= previous:
                raise ValueError("judgement thresholds must be strictly increasing and > 0")
            previous = float(threshold)

        if float(self.miss_cutoff) <= previous:
            raise ValueError("miss_cutoff must be greater than every graded threshold")

        if self.search_range is None:
            object.__setattr__(self, "search_range", float(self.miss_cutoff) * 1.25)
        elif float(self.search_range) <= float(self.miss_cutoff):
            raise ValueError("search_range must be greater than miss_cutoff")

        if self.fallback_tier is not None and not Tier(self.fallback_tier).is_success:
            raise ValueError(f"fallback tier must be a success tier, got {self.fallback_tier}")

    @classmethod
    def simple(cls, *, perfect: float, good: float, miss_cutoff: float, search_range: Optional[float] = None) -> "JudgementWindows":
        return cls(
            thresholds=((Tier.PERFECT, float(perfect)), (Tier.GOOD, float(good))),
            miss_cutoff=float(miss_cutoff),
            search_range=search_range,
        )

    def classify_deviation(self, deviation: float) -> Optional[Tier]:
        abs_deviation = abs(float(deviation))
        if abs_deviation >= float(self.miss_cutoff):
            return None
        for tier, threshold in self.thresholds:
            if abs_deviation < float(threshold):
                return tier
        # Between the last graded threshold and the cutoff: fallback tier, else the worst graded tier.
        if self.fallback_tier is not None:
            return Tier(self.fallback_tier)
        return self.thresholds[-1][0]

    def threshold_for(self, tier: Tier) -> Optional[float]:
        for graded_tier, threshold in self.thresholds:
            if graded_tier is tier:
                return float(threshold)
        return None

    def in_search_range(self, deviation: float) -> bool:
        return abs(float(deviation)) <= float(self.search_range or 0.0)


@dataclass
class ScoreState:
    score: float = 0.0
    combo: int = 0
    max_combo: int = 0
    tier_counts: Dict[str, int] = field(default_factory=dict)

    def _count(self, tier: Tier) -> None:
        key = Tier(tier).value
        self.tier_counts[key] = int(self.tier_counts.get(key, 0)) + 1

    def apply_success(self, tier: Tier, base_value: float, combo_bonus_rate: float) -> float:
        self.combo += 1
        if self.combo > self.max_combo:
            self.max_combo = self.combo
        gained = float(base_value) * (1.0 + self.combo * float(combo_bonus_rate))
        self.score += gained
        self._count(tier)
        return gained

    def apply_failure(self, tier: Tier) -> None:
        self.combo = 0
        self._count(tier)

    def add_bonus(self, points: float) -> None:
        self.score += float(points)

    def display_score(self) -> int:
        return int(math.floor(self.score))

    def count(self, tier: Tier) -> int:
        return int(self.tier_counts.get(Tier(tier).value, 0))

    def stats_by_tier(self) -> Dict[str, int]:
        return dict(self.tier_counts)


@dataclass(frozen=True)
class ReleaseResult:
    entity: Entity
    judgement: Optional[JudgementEvent]


def _always(_entity: Entity) -> bool:
    return True


class InputClassifier:
    def __init__(
        self,
        windows: JudgementWindows,
        *,
        deviation_of: Callable[[Entity], float],
        signed_delta_of: Optional[Callable[[Entity], float]] = None,
        corresponds: Optional[Callable[[InputEvent, Entity], bool]] = None,
        selectable: Optional[Callable[[Entity], bool]] = None,
        match_mode: MatchMode = MatchMode.NEAREST_MATCHING,
        stray_policy: StrayInputPolicy = StrayInputPolicy.IGNORE,
    ) -> None:
        """
        deviation_of:
            Absolute distance (spatial or temporal) of an entity from its target.
        signed_delta_of:
            Signed distance; positive once the entity has moved past the target.
            Defaults to deviation_of, which treats every deviation as late.
        corresponds:
            Whether an input may address an entity (lane, key, cursor type).
        selectable:
            Extra liveness filter, e.g. notes that are already being held are not selectable.
        """
        self._windows = windows
        self._deviation_of = deviation_of
        self._signed_delta_of = signed_delta_of if signed_delta_of is not None else deviation_of
        self._corresponds = corresponds if corresponds is not None else (lambda _event, _entity: True)
        self._selectable = selectable if selectable is not None else _always
        self._match_mode = MatchMode(match_mode)
        self._stray_policy = StrayInputPolicy(stray_policy)

    def windows(self) -> JudgementWindows:
        return self._windows

    def stray_policy(self) -> StrayInputPolicy:
        return self._stray_policy

    def _live(self, candidates: Sequence[Entity]) -> List[Entity]:
        return [entity for entity in candidates if entity.alive and self._selectable(entity)]

    def _event(self, *, now_ms: float, tier: Tier, entity: Entity, implicit: bool = False) -> JudgementEvent:
        return JudgementEvent(
            time_ms=float(now_ms),
            tier=tier,
            deviation=abs(float(self._deviation_of(entity))),
            delta=float(self._signed_delta_of(entity)),
            entity=entity,
            implicit=implicit,
        )

    def classify(self, input_event: InputEvent, candidates: Sequence[Entity], *, now_ms: float = 0.0) -> Optional[JudgementEvent]:
        live = self._live(candidates)
        if not live:
            return None

        if self._match_mode is MatchMode.FRONT_OF_QUEUE:
            return self._classify_front(input_event, live[0], now_ms=now_ms)
        return self._classify_nearest(input_event, live, now_ms=now_ms)

    def _classify_nearest(self, input_event: InputEvent, live: List[Entity], *, now_ms: float) -> Optional[JudgementEvent]:
        best: Optional[Entity] = None
        best_deviation = math.inf
        for entity in live:
            if not self._corresponds(input_event, entity):
                continue
            deviation = abs(float(self._deviation_of(entity)))
            if not self._windows.in_search_range(deviation):
                continue
            if deviation < best_deviation:
                best = entity
                best_deviation = deviation

        if best is None:
            return None

        tier = self._windows.classify_deviation(best_deviation)
        if tier is not None:
            return self._event(now_ms=now_ms, tier=tier, entity=best)

        if self._stray_policy is StrayInputPolicy.CONSUME_AS_MISS and float(self._signed_delta_of(best)) > 0.0:
            return self._event(now_ms=now_ms, tier=Tier.MISS, entity=best)
        return None

    def _classify_front(self, input_event: InputEvent, front: Entity, *, now_ms: float) -> Optional[JudgementEvent]:
        deviation = abs(float(self._deviation_of(front)))
        tier = self._windows.classify_deviation(deviation)
        consume = self._stray_policy is StrayInputPolicy.CONSUME_AS_MISS

        if tier is not None:
            if self._corresponds(input_event, front):
                return self._event(now_ms=now_ms, tier=tier, entity=front)
            if consume:
                return self._event(now_ms=now_ms, tier=Tier.MISS, entity=front)
            return None

        if consume and float(self._signed_delta_of(front)) > 0.0:
            return self._event(now_ms=now_ms, tier=Tier.MISS, entity=front)
        # Too early: the entity stays reserved for a later input.
        return None

    def classify_release(
        self,
        input_event: InputEvent,
        held: Sequence[Entity],
        *,
        remaining_extent_of: Callable[[Entity], float],
        tolerance: float,
        now_ms: float = 0.0,
    ) -> Optional[ReleaseResult]:
        """Judge a key-up against entities currently being held.

        remaining_extent_of returns how much of the held entity has not yet crossed the target.
        More than tolerance left means the hold was broken.
        """
        for entity in held:
            if not entity.alive or not self._corresponds(input_event, entity):
                continue
            remaining = float(remaining_extent_of(entity))
            if remaining > float(tolerance):
                judgement = JudgementEvent(
                    time_ms=float(now_ms),
                    tier=Tier.BROKEN_HOLD,
                    deviation=remaining,
                    delta=-remaining,
                    entity=entity,
                )
                return ReleaseResult(entity=entity, judgement=judgement)
            return ReleaseResult(entity=entity, judgement=None)
        return None

    def collect_expired(
        self,
        candidates: Sequence[Entity],
        is_expired: Callable[[Entity], bool],
        *,
        now_ms: float = 0.0,
    ) -> List[JudgementEvent]:
        misses: List[JudgementEvent] = []
        for entity in self._live(candidates):
            if not is_expired(entity):
                continue
            entity.alive = False
            misses.append(self._event(now_ms=now_ms, tier=Tier.MISS, entity=entity, implicit=True))
        return misses


def classify_commit(
    linked: Sequence[Entity],
    *,
    is_satisfied: Callable[[Entity], bool],
    reset: Callable[[Entity], None],
    now_ms: float = 0.0,
    success_tier: Tier = Tier.PERFECT,
) -> Optional[JudgementEvent]:
    """All-or-nothing commit over linked entities.

    Success requires every linked entity to satisfy its condition at the moment of commit.
    Any failure resets every linked entity, including the satisfied ones.
    """
    if not linked:
        return None

    unsatisfied = [entity for entity in linked if not is_satisfied(entity)]
    if not unsatisfied:
        return JudgementEvent(time_ms=float(now_ms), tier=success_tier, deviation=0.0, delta=0.0, entity=linked[0])

    for entity in linked:
        reset(entity)
    logger.debug("Commit failed: %d of %d linked entities unsatisfied", len(unsatisfied), len(linked))
    return JudgementEvent(
        time_ms=float(now_ms),
        tier=Tier.MISS,
        deviation=float(len(unsatisfied)),
        delta=0.0,
        entity=unsatisfied[0],
    )


def _run_unit_tests() -> None:
    from gameplay_models import EntityKind, InputKind, NotePayload

    windows = JudgementWindows.simple(perfect=30.0, good=60.0, miss_cutoff=90.0, search_range=100.0)
    assert windows.classify_deviation(5.0) is Tier.PERFECT
    assert windows.classify_deviation(75.0) is Tier.GOOD
    assert windows.classify_deviation(95.0) is None

    hit_line_y = 650.0
    note = Entity(entity_id=1, kind=EntityKind.NOTE, payload=NotePayload(lane=0), y=hit_line_y - 5.0)
    classifier = InputClassifier(
        windows,
        deviation_of=lambda entity: abs(entity.y - hit_line_y),
        signed_delta_of=lambda entity: entity.y - hit_line_y,
        corresponds=lambda event, entity: event.key == "s",
    )
    press = InputEvent(kind=InputKind.KEY_DOWN, key="s")
    judgement = classifier.classify(press, [note])
    assert judgement is not None and judgement.tier is Tier.PERFECT

    stray = classifier.classify(InputEvent(kind=InputKind.KEY_DOWN, key="d"), [note])
    assert stray is None

    score = ScoreState()
    score.apply_success(Tier.PERFECT, 100.0, 0.01)
    assert abs(score.score - 101.0) < 1e-9
    score.apply_failure(Tier.MISS)
    assert score.combo == 0 and score.max_combo == 1


if __name__ == "__main__":
    _run_unit_tests()
    print("judge.py: ok")
