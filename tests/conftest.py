"""Pytest configuration and fixtures for the minigame tests."""

import random

import pytest


@pytest.fixture
def seeded_rng():
    """Provide a deterministic RNG for tests."""
    return random.Random(42)


@pytest.fixture
def app_config():
    """Built-in defaults, independent of any config file on the machine."""
    from config import AppConfig

    return AppConfig()


def run_ms(game, start_ms, duration_ms, step_ms=16.0):
    """Tick a game from start_ms for duration_ms in fixed steps. Returns the last timestamp."""
    now = float(start_ms)
    end = now + float(duration_ms)
    while now < end:
        now = min(end, now + float(step_ms))
        game.tick(now)
    return now
