import pytest

from entity_set import EntitySet, is_dead, outside_rect, particle_expired, separate_overlapping
from gameplay_models import BirdPayload, Entity, EntityKind, ParticlePayload, PotPayload, PotType


def _bird(x=0.0, vx=0.5):
    payload = BirdPayload(direction=1, size_scale=1.0, sine_freq=0.0, sine_amp=0.0, noise_offset=0.0)
    return Entity(entity_id=0, kind=EntityKind.BIRD, payload=payload, x=x, y=100.0, vx=vx)


def _pot(x, y, vx=0.0, vy=0.0):
    payload = PotPayload(pot_type=PotType.MOUSE, bounce_bounds=(0.0, 0.0, 800.0, 600.0))
    return Entity(entity_id=0, kind=EntityKind.POT, payload=payload, x=x, y=y, vx=vx, vy=vy)


def test_spawn_assigns_increasing_ids():
    entities = EntitySet()
    first = entities.spawn(_bird())
    second = entities.spawn(_bird())
    assert first.entity_id < second.entity_id
    assert len(entities) == 2


def test_update_is_additive_over_split_steps():
    whole = EntitySet()
    split = EntitySet()
    a = whole.spawn(_bird())
    b = split.spawn(_bird())
    whole.update(100.0)
    split.update(40.0)
    split.update(60.0)
    assert a.x == pytest.approx(b.x)
    assert a.x == pytest.approx(50.0)


def test_dead_entities_do_not_move_and_prune_is_idempotent():
    entities = EntitySet()
    bird = entities.spawn(_bird())
    bird.alive = False
    entities.update(100.0)
    assert bird.x == 0.0
    assert entities.prune(is_dead) == [bird]
    assert entities.prune(is_dead) == []
    assert len(entities) == 0


def test_outside_rect_predicate():
    entities = EntitySet()
    entities.spawn(_bird(x=1500.0))
    kept = entities.spawn(_bird(x=600.0))
    removed = entities.prune(outside_rect(-100.0, -100.0, 1380.0, 820.0))
    assert len(removed) == 1
    assert entities.live() == [kept]


def test_particles_fade_and_expire():
    entities = EntitySet()
    particle = entities.spawn(
        Entity(entity_id=0, kind=EntityKind.PARTICLE, payload=ParticlePayload(life=1.0, decay_per_ms=0.01))
    )
    entities.update(50.0)
    assert particle.payload.life == pytest.approx(0.5)
    assert not particle_expired(particle)
    entities.update(60.0)
    assert particle_expired(particle)


def test_pot_bounces_off_bounds():
    entities = EntitySet()
    pot = entities.spawn(_pot(795.0, 300.0, vx=1.0))
    entities.update(10.0)
    assert pot.x == pytest.approx(800.0)
    assert pot.vx == pytest.approx(-1.0)


def test_completed_pot_stays_put():
    entities = EntitySet()
    pot = entities.spawn(_pot(100.0, 100.0, vx=1.0))
    pot.payload.completed = True
    entities.update(100.0)
    assert pot.x == pytest.approx(100.0)


def test_separate_overlapping_pushes_pair_apart():
    first = _pot(100.0, 100.0, vx=1.0)
    second = _pot(160.0, 100.0, vx=-1.0)
    assert separate_overlapping(first, second, min_distance=100.0) is True
    assert second.x - first.x == pytest.approx(100.0)
    assert first.vx == pytest.approx(-1.0)
    assert second.vx == pytest.approx(1.0)


def test_separate_overlapping_ignores_distant_pair():
    first = _pot(100.0, 100.0)
    second = _pot(300.0, 100.0)
    assert separate_overlapping(first, second, min_distance=100.0) is False
    assert first.x == 100.0
