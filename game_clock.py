# -*- coding: utf-8 -*-
########################
# game_clock.py
########################
# Purpose:
# - Qt frame driver for one minigame.
# - Reads a monotonic QElapsedTimer every frame, feeds it to Minigame.tick and emits the snapshot.
#
# Design notes:
# - Gameplay logic must not depend on GameClock. timing_model.FrameClock inside the game is the
#   source of truth for deltas, clamping and time scale.
# - This module only turns Qt timer events into timestamps.
#
########################
# Interfaces:
# Public classes:
# - class GameClock(PyQt6.QtCore.QObject)
#   - Signals:
#     - snapshotUpdated(minigame.GameSnapshot)
#   - Methods:
#     - set_game(game: Optional[minigame.Minigame]) -> None
#     - start() -> None
#     - stop() -> None
#     - is_running() -> bool
#     - now_ms() -> float
#
# Inputs:
# - Qt timer events at frame_interval_ms.
#
# Outputs:
# - snapshotUpdated signal for renderers.
#
########################

from __future__ import annotations

from typing import Any, Optional

from PyQt6.QtCore import QElapsedTimer, QObject, pyqtSignal


class GameClock(QObject):
    snapshotUpdated = pyqtSignal(object)

    def __init__(self, game: Optional[Any] = None, *, frame_interval_ms: int = 16, parent: Optional[QObject] = None) -> None:
        super().__init__(parent)
        self._game = game
        self._frame_interval_ms = max(1, int(frame_interval_ms))
        self._elapsed = QElapsedTimer()
        self._elapsed.start()
        self._timer_id: Optional[int] = None

    def set_game(self, game: Optional[Any]) -> None:
        self._game = game

    def game(self) -> Optional[Any]:
        return self._game

    def now_ms(self) -> float:
        return float(self._elapsed.elapsed())

    def start(self) -> None:
        if self._timer_id is not None:
            return
        self._timer_id = self.startTimer(self._frame_interval_ms)

    def stop(self) -> None:
        if self._timer_id is None:
            return
        self.killTimer(self._timer_id)
        self._timer_id = None

    def is_running(self) -> bool:
        return self._timer_id is not None

    def timerEvent(self, event) -> None:  # type: ignore[override]
        if self._timer_id is None or event.timerId() != self._timer_id:
            return
        if self._game is None:
            return
        self._game.tick(self.now_ms())
        self.snapshotUpdated.emit(self._game.snapshot())
