# -*- coding: utf-8 -*-
########################
# spawner.py
########################
# Purpose:
# - Randomized spawn scheduling shared by the minigames.
# - IntervalSpawner fires after an interval redrawn from [min, max] after every spawn.
# - SpawnBag bounds short-term repetition of a categorical draw (keys, lanes).
# - UniformRange draws independent spawn parameters inside validated bounds.
#
# Design notes:
# - No Qt usage. All randomness comes from an injected random.Random.
# - Bounds are validated at construction (config time). Runtime draws never fail.
# - An optional interval_scale callback lets a game ramp difficulty with progress.
#
########################
# Interfaces:
# Public dataclasses:
# - UniformRange(low: float, high: float)
#   - sample(rng) -> float
#   - sample_int(rng) -> int
#
# Public classes:
# - class SpawnBag
#   - __init__(items: Sequence[str], rng: random.Random)
#   - draw() -> str
#   - remaining() -> int
#   - reset() -> None
# - class IntervalSpawner
#   - __init__(*, interval_range: UniformRange, rng, first_interval_ms=None, interval_scale=None)
#   - maybe_spawn(elapsed_since_last_spawn_ms: float) -> bool
#   - advance(delta_ms: float, factory: Callable[[], Entity]) -> Optional[Entity]
#   - reset() -> None
#   - next_interval_ms() -> float
#   - elapsed_ms() -> float
#
########################

from __future__ import annotations

from dataclasses import dataclass
import random
from typing import Callable, List, Optional, Sequence, Tuple

from gameplay_models import Entity


@dataclass(frozen=True)
class UniformRange:
    low: float
    high: float

    def __post_init__(self) -> None:
        if float(self.low) > float(self.high):
            raise ValueError(f"range low must be <= high, got [{self.low}, {self.high}]")

    @classmethod
    def from_pair(cls, pair: Sequence[float]) -> "UniformRange":
        values: Tuple[float, ...] = tuple(float(value) for value in pair)
        if len(values) != 2:
            raise ValueError(f"range must have exactly two values, got {list(values)}")
        return cls(low=values[0], high=values[1])

    def sample(self, rng: random.Random) -> float:
        return float(self.low) + rng.random() * (float(self.high) - float(self.low))

    def sample_int(self, rng: random.Random) -> int:
        return rng.randint(int(self.low), int(self.high))

    def contains(self, value: float) -> bool:
        return float(self.low) <= float(value) <= float(self.high)


class SpawnBag:
    """Finite shuffled multiset. Every full bag yields each item exactly as often as it was listed."""

    def __init__(self, items: Sequence[str], rng: random.Random) -> None:
        if not items:
            raise ValueError("SpawnBag needs at least one item")
        self._template: List[str] = [str(item) for item in items]
        self._rng = rng
        self._bag: List[str] = []
        self._refill_count = 0

    def _refill(self) -> None:
        self._bag = list(self._template)
        self._rng.shuffle(self._bag)
        self._refill_count += 1

    def draw(self) -> str:
        if not self._bag:
            self._refill()
        return self._bag.pop()

    def remaining(self) -> int:
        return len(self._bag)

    def refill_count(self) -> int:
        return int(self._refill_count)

    def reset(self) -> None:
        self._bag = []


class IntervalSpawner:
    def __init__(
        self,
        *,
        interval_range: UniformRange,
        rng: random.Random,
        first_interval_ms: Optional[float] = None,
        interval_scale: Optional[Callable[[], float]] = None,
    ) -> None:
        if float(interval_range.low) < 0.0:
            raise ValueError("spawn interval must be >= 0")
        self._interval_range = interval_range
        self._rng = rng
        self._first_interval_ms = first_interval_ms
        self._interval_scale = interval_scale
        self._elapsed_ms = 0.0
        self._next_interval_ms = 0.0
        self.reset()

    def reset(self) -> None:
        self._elapsed_ms = 0.0
        if self._first_interval_ms is not None:
            self._next_interval_ms = float(self._first_interval_ms)
        else:
            self._next_interval_ms = self._draw_interval()

    def next_interval_ms(self) -> float:
        return float(self._next_interval_ms)

    def elapsed_ms(self) -> float:
        return float(self._elapsed_ms)

    def _draw_interval(self) -> float:
        interval = self._interval_range.sample(self._rng)
        if self._interval_scale is not None:
            interval *= max(0.0, float(self._interval_scale()))
        return interval

    def maybe_spawn(self, elapsed_since_last_spawn_ms: float) -> bool:
        """Return True and redraw the interval if the elapsed time reached the current interval."""
        if float(elapsed_since_last_spawn_ms) < self._next_interval_ms:
            return False
        self._next_interval_ms = self._draw_interval()
        return True

    def advance(self, delta_ms: float, factory: Callable[[], Entity]) -> Optional[Entity]:
        self._elapsed_ms += max(0.0, float(delta_ms))
        if not self.maybe_spawn(self._elapsed_ms):
            return None
        self._elapsed_ms = 0.0
        return factory()


def _run_unit_tests() -> None:
    rng = random.Random(7)
    bag = SpawnBag(["w", "a", "s", "d", "w", "a", "s", "d"], rng)
    drawn = [bag.draw() for _ in range(8)]
    assert sorted(drawn) == sorted(["w", "a", "s", "d", "w", "a", "s", "d"])
    assert bag.remaining() == 0

    spawner = IntervalSpawner(interval_range=UniformRange(300.0, 800.0), rng=rng, first_interval_ms=1000.0)
    assert spawner.advance(999.0, lambda: None) is None  # type: ignore[arg-type,return-value]
    assert 300.0 <= spawner.next_interval_ms() <= 1000.0

    try:
        UniformRange(5.0, 1.0)
    except ValueError:
        pass
    else:
        raise AssertionError("inverted range must be rejected")


if __name__ == "__main__":
    _run_unit_tests()
    print("spawner.py: ok")
