import pytest

import minigame
from config import PitchPotConfig
from gameplay_models import InputEvent, InputKind, PotType, Tier
from pitch_pot import PitchPotGame, RoundVariety, pot_speed_px_per_ms, round_time_limit_ms
from session import EndReason, Phase

from conftest import run_ms


def _game(seeded_rng, varieties, rounds=2, **overrides):
    options = dict(countdown_labels=[], countdown_step_ms=0.0)
    options.update(overrides)
    game = PitchPotGame(PitchPotConfig(**options), rng=seeded_rng, rounds=rounds, varieties=varieties)
    game.start()
    game.tick(0.0)
    return game


def _freeze(pot, x=150.0, y=150.0):
    pot.x, pot.y, pot.vx, pot.vy = x, y, 0.0, 0.0


def _move(x, y):
    return InputEvent(kind=InputKind.POINTER_MOVE, x=x, y=y)


def test_round_tables():
    assert pot_speed_px_per_ms(RoundVariety.MOUSE, 0) == pytest.approx(0.08)
    assert pot_speed_px_per_ms(RoundVariety.DUAL, 2) == pytest.approx(0.06)
    assert round_time_limit_ms(RoundVariety.HYBRID) == pytest.approx(40_000.0)


def test_dual_round_spawns_two_pots_and_both_cursors(seeded_rng):
    game = _game(seeded_rng, [RoundVariety.DUAL])
    assert game.variety() is RoundVariety.DUAL
    assert sorted(pot.payload.pot_type.value for pot in game.pots()) == ["mouse", "wasd"]
    assert game.cursor("mouse") == (400.0, 300.0)
    assert game.cursor("wasd") == (400.0, 300.0)
    assert game.session.time_remaining_ms() == pytest.approx(45_000.0)


def test_dual_commit_with_one_pot_short_fails_and_resets_both(seeded_rng):
    game = _game(seeded_rng, [RoundVariety.DUAL])
    game.session.apply_success(Tier.PERFECT, 100.0, 0.1)
    mouse_pot, wasd_pot = sorted(game.pots(), key=lambda pot: pot.payload.pot_type.value)
    mouse_pot.payload.charge = 100.0
    wasd_pot.payload.charge = 40.0
    judgement = game.commit()
    assert judgement.tier is Tier.MISS
    assert mouse_pot.payload.charge == 0.0
    assert wasd_pot.payload.charge == 0.0
    assert game.session.score.combo == 0
    assert not game.is_resolving()


def test_cursor_on_pot_charges_it(seeded_rng):
    game = _game(seeded_rng, [RoundVariety.MOUSE])
    pot = game.pots()[0]
    _freeze(pot)
    game.handle_input(_move(pot.x, pot.y))
    run_ms(game, 0.0, 400.0)
    assert pot.payload.charge == pytest.approx(60.0)
    game.handle_input(_move(700.0, 500.0))
    run_ms(game, 400.0, 100.0)
    assert pot.payload.charge == pytest.approx(30.0)


def test_tracking_a_moving_pot_and_committing_clears_the_round(seeded_rng):
    game = _game(seeded_rng, [RoundVariety.MOUSE])
    pot = game.pots()[0]
    now = 0.0
    while now < 1000.0:
        game.handle_input(_move(pot.x, pot.y))
        now += 16.0
        game.tick(now)
    assert pot.payload.charge == pytest.approx(100.0)
    game.handle_input(InputEvent(kind=InputKind.POINTER_DOWN, x=pot.x, y=pot.y, button=0))
    assert [j.tier for j in game.drain_judgements()] == [Tier.PERFECT]
    assert game.session.score.score == pytest.approx(110.0)
    assert game.is_resolving()
    assert pot.payload.completed
    assert game.commit() is None


def test_next_round_then_completion(seeded_rng):
    game = _game(seeded_rng, [RoundVariety.MOUSE], rounds=2)
    game.pots()[0].payload.charge = 100.0
    game.commit()
    now = run_ms(game, 0.0, 1000.0)
    assert game.session.round_index() == 1
    assert not game.is_resolving()
    assert len(game.pots()) == 1
    assert game.session.score.combo == 1

    game.pots()[0].payload.charge = 100.0
    game.commit()
    run_ms(game, now, 1000.0)
    assert game.phase() is Phase.ENDED
    assert game.session.end_reason() is EndReason.COMPLETED
    summary = game.last_summary()
    assert summary.extras["rounds_cleared"] == 2
    assert summary.extras["pots_completed"] == 2


def test_hybrid_pot_needs_both_cursors(seeded_rng):
    game = _game(seeded_rng, [RoundVariety.HYBRID])
    pot = game.pots()[0]
    assert pot.payload.pot_type is PotType.HYBRID
    _freeze(pot)
    game.handle_input(_move(pot.x, pot.y))
    run_ms(game, 0.0, 200.0)
    assert pot.payload.charge == 0.0

    _freeze(pot, x=400.0, y=300.0)
    game.handle_input(_move(400.0, 300.0))
    run_ms(game, 200.0, 200.0)
    assert pot.payload.charge == pytest.approx(30.0)


def test_wasd_cursor_moves_with_held_keys_and_stays_in_field(seeded_rng):
    game = _game(seeded_rng, [RoundVariety.WASD])
    game.handle_input(InputEvent(kind=InputKind.KEY_DOWN, key="d"))
    now = run_ms(game, 0.0, 500.0)
    assert game.cursor("wasd") == pytest.approx((600.0, 300.0))
    now = run_ms(game, now, 1000.0)
    assert game.cursor("wasd")[0] == pytest.approx(800.0)
    game.handle_input(InputEvent(kind=InputKind.KEY_UP, key="d"))
    run_ms(game, now, 200.0)
    assert game.cursor("wasd")[0] == pytest.approx(800.0)
    assert game.cursor("mouse") is None


def test_round_deadline_ends_the_session(seeded_rng):
    game = _game(seeded_rng, [RoundVariety.MOUSE])
    run_ms(game, 0.0, 31_000.0, step_ms=100.0)
    assert game.session.end_reason() is EndReason.DEADLINE


def test_cursors_move_during_countdown_but_pots_wait(seeded_rng):
    game = PitchPotGame(PitchPotConfig(), rng=seeded_rng, rounds=1, varieties=[RoundVariety.WASD])
    game.start()
    game.tick(0.0)
    assert game.snapshot().extras["countdown_label"] == "3"
    pot = game.pots()[0]
    start = (pot.x, pot.y)
    game.handle_input(InputEvent(kind=InputKind.KEY_DOWN, key="s"))
    run_ms(game, 0.0, 250.0)
    assert game.cursor("wasd") == pytest.approx((400.0, 400.0))
    assert (pot.x, pot.y) == start
    game.handle_input(InputEvent(kind=InputKind.KEY_DOWN, key="space"))
    assert game.drain_judgements() == []


def test_invalid_round_count_rejected(seeded_rng):
    with pytest.raises(ValueError):
        PitchPotGame(PitchPotConfig(), rng=seeded_rng, rounds=0)


def test_create_game_passes_rounds(app_config, seeded_rng):
    game = minigame.create_game("pitch-pot", app_config, rng=seeded_rng, rounds=5)
    assert game.session.required_rounds() == 5
