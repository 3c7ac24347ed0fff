import pytest

from archery import ArcheryGame
from config import ArcheryConfig
from gameplay_models import BirdPayload, Entity, EntityKind, InputEvent, InputKind, Tier
from session import EndReason, Phase

from conftest import run_ms


def _game(seeded_rng, **overrides):
    settings = ArcheryConfig(first_spawn_ms=1_000_000.0, **overrides)
    game = ArcheryGame(settings, rng=seeded_rng)
    game.start()
    game.tick(0.0)
    return game


def _place_bird(game, x, y, vx=0.0):
    payload = BirdPayload(direction=1, size_scale=1.0, sine_freq=0.0, sine_amp=0.0, noise_offset=0.0)
    return game.entities.spawn(Entity(entity_id=0, kind=EntityKind.BIRD, payload=payload, x=x, y=y, vx=vx))


def _click(x, y):
    return InputEvent(kind=InputKind.POINTER_DOWN, x=x, y=y, button=0)


def test_starts_without_countdown(seeded_rng):
    game = _game(seeded_rng)
    assert game.phase() is Phase.ACTIVE
    assert game.snapshot().extras["ability_phase"] == "IDLE"


def test_click_near_bird_scores_a_perfect_hit(seeded_rng):
    game = _game(seeded_rng)
    bird = _place_bird(game, 400.0, 300.0)
    game.handle_input(_click(410.0, 300.0))
    assert not bird.alive
    judgements = game.drain_judgements()
    assert [j.tier for j in judgements] == [Tier.PERFECT]
    assert game.session.score.score == pytest.approx(50.0)
    assert game.snapshot().extras["birds_hit"] == 1


def test_click_far_from_every_bird_changes_nothing(seeded_rng):
    game = _game(seeded_rng)
    bird = _place_bird(game, 400.0, 300.0)
    game.handle_input(_click(900.0, 300.0))
    assert bird.alive
    assert game.drain_judgements() == []
    assert game.session.score.combo == 0


def test_focus_slows_birds_but_not_the_round_clock(seeded_rng):
    game = _game(seeded_rng)
    bird = _place_bird(game, 0.0, 300.0, vx=0.5)
    game.handle_input(InputEvent(kind=InputKind.KEY_DOWN, key="1"))
    assert game.clock.time_scale() == pytest.approx(0.3)
    run_ms(game, 0.0, 1000.0, step_ms=100.0)
    assert bird.x == pytest.approx(150.0)
    assert game.session.time_remaining_ms() == pytest.approx(59_000.0)


def test_focus_expires_then_cools_down(seeded_rng):
    game = _game(seeded_rng)
    game.handle_input(InputEvent(kind=InputKind.KEY_DOWN, key="1"))
    now = run_ms(game, 0.0, 6000.0, step_ms=100.0)
    assert game.clock.time_scale() == pytest.approx(1.0)
    assert game.focus.phase().value == "COOLDOWN"
    game.handle_input(InputEvent(kind=InputKind.KEY_DOWN, key="1"))
    assert game.clock.time_scale() == pytest.approx(1.0)
    run_ms(game, now, 6000.0, step_ms=100.0)
    assert game.focus.phase().value == "IDLE"


def test_birds_spawn_and_fly_off(seeded_rng):
    game = ArcheryGame(ArcheryConfig(first_spawn_ms=0.0), rng=seeded_rng)
    game.start()
    game.tick(0.0)
    run_ms(game, 0.0, 100.0)
    birds = game.entities.live(EntityKind.BIRD)
    assert birds
    first = birds[0]
    run_ms(game, 100.0, 10_000.0)
    assert first not in game.entities.live(EntityKind.BIRD)


def test_deadline_ends_the_round(seeded_rng):
    game = _game(seeded_rng, duration_seconds=2.0)
    summaries = []
    game.add_end_listener(summaries.append)
    run_ms(game, 0.0, 2500.0, step_ms=100.0)
    assert game.phase() is Phase.ENDED
    assert game.session.end_reason() is EndReason.DEADLINE
    assert summaries and summaries[0].session_id == "archery"


def test_input_ignored_outside_active(seeded_rng):
    game = _game(seeded_rng)
    bird = _place_bird(game, 400.0, 300.0)
    game.pause()
    game.handle_input(_click(400.0, 300.0))
    assert bird.alive


def test_tick_fault_is_logged_and_the_loop_continues(seeded_rng, monkeypatch, caplog):
    game = _game(seeded_rng)
    calls = []

    def failing_update(scaled_delta_ms, unscaled_delta_ms):
        calls.append(scaled_delta_ms)
        raise RuntimeError("boom")

    monkeypatch.setattr(game, "_update", failing_update)
    with caplog.at_level("ERROR"):
        game.tick(16.0)
    assert calls == [16.0]
    assert "tick failed" in caplog.text
    assert game.phase() is Phase.ACTIVE

    monkeypatch.undo()
    game.tick(32.0)
    assert game.phase() is Phase.ACTIVE
