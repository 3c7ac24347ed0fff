import math
import random

import pytest

from config import HorseTamingConfig
from gameplay_models import EntityKind, InputEvent, InputKind, Tier
from horse_taming import HorseTamingGame, prompt_angle, rank_for
from judge import StrayInputPolicy
from session import EndReason, Phase

from conftest import run_ms


def _game(seeded_rng, **overrides):
    game = HorseTamingGame(HorseTamingConfig(**overrides), rng=seeded_rng)
    game.start()
    game.tick(0.0)
    return game


def _press(key):
    return InputEvent(kind=InputKind.KEY_DOWN, key=key)


def _prompts(game):
    return game.entities.live(EntityKind.PROMPT)


def _other_key(key):
    return next(candidate for candidate in "wasd" if candidate != key)


def test_first_prompt_spawns_immediately(seeded_rng):
    game = _game(seeded_rng)
    prompts = _prompts(game)
    assert len(prompts) == 1
    assert prompts[0].distance == 0.0
    assert prompts[0].payload.key in "wasd"


def test_prompt_travels_along_its_key_direction():
    assert prompt_angle("w") == pytest.approx(-math.pi / 2.0)
    assert prompt_angle("d") == pytest.approx(0.0)
    game = _game(random.Random(5))
    prompt = _prompts(game)[0]
    run_ms(game, 0.0, 400.0)
    x, y = prompt.render_position()
    expected_angle = prompt_angle(prompt.payload.key)
    assert x == pytest.approx(400.0 + math.cos(expected_angle) * 100.0)
    assert y == pytest.approx(300.0 + math.sin(expected_angle) * 100.0)


def test_press_at_the_ring_is_perfect(seeded_rng):
    game = _game(seeded_rng)
    prompt = _prompts(game)[0]
    run_ms(game, 0.0, 800.0)
    assert prompt.distance == pytest.approx(200.0)
    game.handle_input(_press(prompt.payload.key))
    assert not prompt.alive
    assert [j.tier for j in game.drain_judgements()] == [Tier.PERFECT]
    assert game.session.score.score == pytest.approx(330.0)
    assert game.session.resource_value("progress") == pytest.approx(3.1)
    assert game.session.resource_value("stamina") == pytest.approx(100.0)
    assert game.entities.live(EntityKind.PARTICLE)


def test_press_between_great_and_cutoff_is_good(seeded_rng):
    game = _game(seeded_rng)
    prompt = _prompts(game)[0]
    run_ms(game, 0.0, 640.0)
    game.handle_input(_press(prompt.payload.key))
    assert [j.tier for j in game.drain_judgements()] == [Tier.GOOD]


def test_early_press_keeps_prompt(seeded_rng):
    game = _game(seeded_rng)
    prompt = _prompts(game)[0]
    run_ms(game, 0.0, 100.0)
    game.handle_input(_press(prompt.payload.key))
    assert prompt.alive
    assert game.drain_judgements() == []


def test_wrong_key_in_window_costs_stamina(seeded_rng):
    game = _game(seeded_rng)
    prompt = _prompts(game)[0]
    run_ms(game, 0.0, 800.0)
    game.handle_input(_press(_other_key(prompt.payload.key)))
    assert not prompt.alive
    assert [j.tier for j in game.drain_judgements()] == [Tier.MISS]
    assert game.session.resource_value("stamina") == pytest.approx(90.0)


def test_wrong_key_ignored_under_ignore_policy(seeded_rng):
    game = _game(seeded_rng, stray_input_policy=StrayInputPolicy.IGNORE)
    prompt = _prompts(game)[0]
    run_ms(game, 0.0, 800.0)
    game.handle_input(_press(_other_key(prompt.payload.key)))
    assert prompt.alive


def test_prompt_past_the_ring_is_an_implicit_miss(seeded_rng):
    game = _game(seeded_rng)
    prompt = _prompts(game)[0]
    run_ms(game, 0.0, 1060.0)
    assert not prompt.alive
    misses = [j for j in game.drain_judgements() if j.entity is prompt]
    assert len(misses) == 1 and misses[0].implicit
    assert game.session.resource_value("stamina") == pytest.approx(90.0)


def test_ignoring_every_prompt_exhausts_the_horse(seeded_rng):
    game = _game(seeded_rng)
    run_ms(game, 0.0, 40_000.0, step_ms=50.0)
    assert game.phase() is Phase.ENDED
    assert game.session.end_reason() is EndReason.EXHAUSTED
    assert game.last_summary().extras["rank"] == "Unworthy"


def test_full_progress_tames_the_horse(seeded_rng):
    game = _game(seeded_rng)
    prompt = _prompts(game)[0]
    run_ms(game, 0.0, 800.0)
    game.session.set_resource("progress", 99.0)
    game.handle_input(_press(prompt.payload.key))
    assert game.phase() is Phase.ENDED
    assert game.session.end_reason() is EndReason.COMPLETED
    assert game.rank() == "Novice"


@pytest.mark.parametrize(
    "completed, max_combo, stamina, expected",
    [
        (False, 40, 100.0, "Unworthy"),
        (True, 20, 80.0, "Grandmaster"),
        (True, 20, 79.0, "Master"),
        (True, 15, 50.0, "Master"),
        (True, 15, 49.0, "Disciple"),
        (True, 10, 0.0, "Disciple"),
        (True, 9, 100.0, "Novice"),
    ],
)
def test_rank_table(completed, max_combo, stamina, expected):
    assert rank_for(completed, max_combo, stamina) == expected


def test_starts_straight_into_play(seeded_rng):
    game = _game(seeded_rng)
    assert game.phase() is Phase.ACTIVE
    assert game.snapshot().session.countdown_label is None
