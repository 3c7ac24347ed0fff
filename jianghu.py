"""
jianghu.py

Real entrypoint that launches the minigame suite.

Integration
- Loads config (config.get_config) and configures logging from it
- Creates QApplication and the harness window for the selected game
- Seeds the game RNG when --seed is given
- Submits every finished session to the high score store
"""

from __future__ import annotations

import argparse
import logging
import random
import sys
from pathlib import Path
from typing import Any, Optional

import config
import minigame
from high_scores import HighScoreError, HighScoreStore

logger = logging.getLogger(__name__)


def configure_logging(app_config: config.AppConfig) -> None:
    logging.basicConfig(level=getattr(logging, app_config.logging.level, logging.INFO), format=app_config.logging.format)


def build_high_score_store(app_config: config.AppConfig) -> Optional[HighScoreStore]:
    if not app_config.high_scores.enabled:
        return None
    store_path = Path(app_config.high_scores.path) if app_config.high_scores.path else None
    return HighScoreStore(store_path=store_path)


def submit_summary(store: Optional[HighScoreStore], summary: Any) -> None:
    if store is None:
        return
    try:
        result = store.submit(summary)
    except HighScoreError as exc:
        logger.warning("%s", exc)
        return
    if result.is_new_record:
        logger.info("New record for %s: %d", result.session_id, result.best)


def build_argument_parser() -> argparse.ArgumentParser:
    argument_parser = argparse.ArgumentParser(description="Jianghu minigames")
    argument_parser.add_argument("--game", choices=list(minigame.GAME_IDS), default="archery", help="Game to load first.")
    argument_parser.add_argument("--seed", type=int, default=None, help="Seed for the game RNG.")
    argument_parser.add_argument("--song", default=None, help="Song id for the melody game.")
    argument_parser.add_argument("--rounds", type=int, default=None, help="Round count for pitch pot.")
    argument_parser.add_argument("--print-config", action="store_true", help="Print the resolved config as JSON and exit.")
    argument_parser.add_argument("--fullscreen", action="store_true", help="Start in fullscreen.")
    return argument_parser


def main() -> int:
    parsed_args = build_argument_parser().parse_args()

    app_config, config_path = config.get_config()
    if parsed_args.print_config:
        print(config.to_json(app_config))
        return 0

    configure_logging(app_config)
    logger.info("Config: %s", config_path if config_path is not None else "defaults")

    rng = random.Random(parsed_args.seed) if parsed_args.seed is not None else random.Random()

    def game_factory(game_id: str) -> minigame.Minigame:
        return minigame.create_game(
            game_id,
            app_config,
            rng=rng,
            song_id=parsed_args.song,
            rounds=parsed_args.rounds,
        )

    from PyQt6.QtWidgets import QApplication

    import gameplay_harness

    qt_application = QApplication(sys.argv)

    main_window = gameplay_harness.GameplayHarnessWindow(
        app_config=app_config,
        game_id=str(parsed_args.game),
        game_factory=game_factory,
    )
    store = build_high_score_store(app_config)
    main_window.controller.signals.sessionEnded.connect(lambda summary: submit_summary(store, summary))

    main_window.resize(1000, 800)
    main_window.show()
    if parsed_args.fullscreen:
        main_window.showFullScreen()

    return int(qt_application.exec())


if __name__ == "__main__":
    raise SystemExit(main())
