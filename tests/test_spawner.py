import random
from collections import Counter

import pytest

from gameplay_models import Entity, EntityKind, PromptPayload
from spawner import IntervalSpawner, SpawnBag, UniformRange

PROMPT_KEYS = ["w", "a", "s", "d", "w", "a", "s", "d"]


def _prompt():
    return Entity(entity_id=0, kind=EntityKind.PROMPT, payload=PromptPayload(key="w", angle_radians=0.0))


def test_each_full_bag_contains_every_key_twice(seeded_rng):
    bag = SpawnBag(PROMPT_KEYS, seeded_rng)
    for bag_number in range(1, 4):
        drawn = [bag.draw() for _ in range(8)]
        assert Counter(drawn) == Counter({"w": 2, "a": 2, "s": 2, "d": 2})
        assert bag.refill_count() == bag_number
        assert bag.remaining() == 0


def test_bag_reset_discards_partial_bag(seeded_rng):
    bag = SpawnBag(PROMPT_KEYS, seeded_rng)
    bag.draw()
    bag.reset()
    assert bag.remaining() == 0
    bag.draw()
    assert bag.remaining() == 7


def test_empty_bag_rejected(seeded_rng):
    with pytest.raises(ValueError):
        SpawnBag([], seeded_rng)


def test_uniform_range_validation_and_sampling(seeded_rng):
    with pytest.raises(ValueError):
        UniformRange(5.0, 1.0)
    with pytest.raises(ValueError):
        UniformRange.from_pair([1.0, 2.0, 3.0])
    spread = UniformRange.from_pair([0.5, 1.5])
    for _ in range(100):
        assert spread.contains(spread.sample(seeded_rng))
        assert 0 <= UniformRange(0, 3).sample_int(seeded_rng) <= 3


def test_zero_first_interval_spawns_on_first_advance(seeded_rng):
    spawner = IntervalSpawner(interval_range=UniformRange(1050.0, 1950.0), rng=seeded_rng, first_interval_ms=0.0)
    assert spawner.advance(0.0, _prompt) is not None
    assert 1050.0 <= spawner.next_interval_ms() <= 1950.0


def test_intervals_stay_in_range(seeded_rng):
    spawner = IntervalSpawner(interval_range=UniformRange(300.0, 800.0), rng=seeded_rng)
    gaps = []
    since_last = 0.0
    for _ in range(2000):
        since_last += 10.0
        if spawner.advance(10.0, _prompt) is not None:
            gaps.append(since_last)
            since_last = 0.0
    assert gaps
    for gap in gaps:
        assert 300.0 <= gap <= 810.0


def test_interval_scale_shortens_intervals():
    rng = random.Random(3)
    spawner = IntervalSpawner(
        interval_range=UniformRange(1000.0, 1000.0),
        rng=rng,
        interval_scale=lambda: 0.5,
    )
    assert spawner.next_interval_ms() == pytest.approx(500.0)
    assert spawner.advance(499.0, _prompt) is None
    assert spawner.advance(1.0, _prompt) is not None
    assert spawner.elapsed_ms() == 0.0
