# -*- coding: utf-8 -*-
########################
# gameplay_harness.py
########################
# Purpose:
# - Gameplay harness window for local testing and iteration of the minigames.
# - Integrates GameClock + InputRouter + Minigame + a minimal QPainter debug view.
#
# Design notes:
# - Provides a reusable controller (GameplayHarnessController) so jianghu.py and the standalone
#   harness share the same event filter, frame loop and button handlers.
# - The debug view only reads GameSnapshot values. It never mutates the game.
# - --run-tests runs the pure logic self checks of every Qt free module.
#
########################
# Interfaces:
# Public dataclasses:
# - HarnessState(game_id: str, seed: Optional[int], status_text: str, last_error: str)
#
# Public classes:
# - class GameplayHarnessController(PyQt6.QtCore.QObject)
#   - Owns the frame loop and input routing for one Minigame at a time.
#   - Signals (via .signals): sessionEnded(SessionSummary), snapshotUpdated(GameSnapshot)
#
# - class GameView(PyQt6.QtWidgets.QWidget)
#   - set_snapshot(snapshot) -> None
#
# - class GameplayHarnessWindow(PyQt6.QtWidgets.QMainWindow)
#   - Default harness UI: game selector, Start/Pause/Restart/Quit, status label, debug view.
#
# Public functions:
# - run_pure_tests() -> list[str]
# - main() -> int
#
########################

from __future__ import annotations

from dataclasses import dataclass
import argparse
import importlib
import logging
from typing import Any, List, Optional, Tuple

logger = logging.getLogger(__name__)

PURE_TEST_MODULES: Tuple[str, ...] = (
    "timing_model",
    "timer_registry",
    "spawner",
    "note_scheduler",
    "judge",
    "session",
)

DEFAULT_FIELD_WIDTH = 800.0


@dataclass
class HarnessState:
    game_id: str = "archery"
    seed: Optional[int] = None
    status_text: str = ""
    last_error: str = ""


def field_size_for(game: Any) -> Tuple[float, float]:
    """Field size from the game settings. Games without a height use a 16:9 field."""
    settings = getattr(game, "_settings", None)
    width = float(getattr(settings, "field_width", DEFAULT_FIELD_WIDTH))
    height = float(getattr(settings, "field_height", width * 9.0 / 16.0))
    return (width, height)


def describe_snapshot(snapshot: Any) -> str:
    session = snapshot.session
    parts = [
        f"{snapshot.game_id}",
        f"phase={session.phase.value}",
        f"score={session.display_score}",
        f"combo={session.combo}",
    ]
    if session.countdown_label:
        parts.append(f"countdown={session.countdown_label}")
    if session.time_remaining_ms is not None:
        parts.append(f"time={session.time_remaining_ms / 1000.0:.1f}s")
    for name, value in sorted(session.resources.items()):
        parts.append(f"{name}={value:.0f}")
    return "  ".join(parts)


class GameplayHarnessController:  # QObject subclass, defined lazily inside Qt import block
    pass


def _create_controller_class():
    from PyQt6.QtCore import QEvent, QObject, pyqtSignal
    from PyQt6.QtGui import QKeyEvent, QMouseEvent

    import game_clock
    import input_router

    class _Signals(QObject):
        sessionEnded = pyqtSignal(object)
        snapshotUpdated = pyqtSignal(object)

    class _GameplayHarnessController(QObject):
        def __init__(
            self,
            *,
            game: Optional[Any] = None,
            frame_interval_ms: int = 16,
            parent: Optional[QObject] = None,
        ) -> None:
            super().__init__(parent)
            self._signals = _Signals(self)
            self._state = HarnessState()
            self._game: Optional[Any] = None

            self._clock = game_clock.GameClock(frame_interval_ms=frame_interval_ms, parent=self)
            self._clock.snapshotUpdated.connect(self._signals.snapshotUpdated.emit)

            self._router = input_router.InputRouter(self._clock.now_ms, parent=self)
            self._router.inputEvent.connect(self._on_input_event)

            if game is not None:
                self.set_game(game)
            self._clock.start()

        @property
        def signals(self) -> _Signals:
            return self._signals

        @property
        def state(self) -> HarnessState:
            return self._state

        @property
        def router(self) -> input_router.InputRouter:
            return self._router

        @property
        def clock(self) -> game_clock.GameClock:
            return self._clock

        def game(self) -> Optional[Any]:
            return self._game

        def set_game(self, game: Any) -> None:
            if self._game is not None:
                self._game.quit()
            self._game = game
            self._state.game_id = str(getattr(game, "game_id", "unknown"))
            game.add_end_listener(self._on_session_ended)
            self._clock.set_game(game)
            self._set_status(f"Loaded {self._state.game_id}")

        # -----------------
        # Event filter (shared)
        # -----------------

        def eventFilter(self, watched: QObject, event: QEvent) -> bool:  # noqa: N802
            event_type = event.type()
            if event_type == QEvent.Type.KeyPress and isinstance(event, QKeyEvent):
                if self._router.handle_key_press(event):
                    return True
            elif event_type == QEvent.Type.KeyRelease and isinstance(event, QKeyEvent):
                if self._router.handle_key_release(event):
                    return True
            elif event_type == QEvent.Type.MouseButtonPress and isinstance(event, QMouseEvent):
                self._router.handle_mouse_press(event)
            elif event_type == QEvent.Type.MouseButtonRelease and isinstance(event, QMouseEvent):
                self._router.handle_mouse_release(event)
            elif event_type == QEvent.Type.MouseMove and isinstance(event, QMouseEvent):
                self._router.handle_mouse_move(event)
            elif event_type in (QEvent.Type.WindowDeactivate, QEvent.Type.FocusOut):
                self._router.clear_pressed_keys()
                if self._game is not None:
                    self._game.clear_held_input()
            return super().eventFilter(watched, event)

        # -----------------
        # Core operations
        # -----------------

        def start(self) -> None:
            if self._game is not None and self._game.start():
                self._set_status("Started")

        def pause(self) -> None:
            if self._game is not None and self._game.pause():
                self._set_status("Paused")

        def resume(self) -> None:
            if self._game is not None and self._game.resume():
                self._set_status("Resumed")

        def toggle_pause(self) -> None:
            if self._game is not None and self._game.toggle_pause():
                self._set_status(self._game.phase().value.title())

        def restart(self) -> None:
            if self._game is not None and self._game.restart():
                self._set_status("Restarted")

        def quit_to_menu(self) -> None:
            if self._game is not None and self._game.quit():
                self._set_status("Menu")

        def _set_status(self, text: str) -> None:
            self._state.status_text = str(text)
            logger.debug("Harness: %s", text)

        # -----------------
        # Callbacks
        # -----------------

        def _on_input_event(self, input_event: Any) -> None:
            if self._game is not None:
                self._game.handle_input(input_event)

        def _on_session_ended(self, summary: Any) -> None:
            self._set_status(f"Ended ({summary.end_reason}) score={summary.display_score}")
            self._signals.sessionEnded.emit(summary)

    return _GameplayHarnessController


GameplayHarnessController = _create_controller_class()


class GameView:
    pass


def _create_view_class():
    from PyQt6.QtCore import QPointF, QRectF, Qt
    from PyQt6.QtGui import QColor, QPainter, QPen
    from PyQt6.QtWidgets import QWidget

    from gameplay_models import EntityKind, ParticlePayload, PotPayload, PromptPayload

    kind_colors = {
        EntityKind.BIRD: QColor(40, 40, 40),
        EntityKind.NOTE: QColor(210, 60, 60),
        EntityKind.PROMPT: QColor(255, 120, 0),
        EntityKind.POT: QColor(93, 64, 55),
        EntityKind.PARTICLE: QColor(255, 51, 0),
    }

    class _GameView(QWidget):
        """Debug renderer. Paints entities as circles scaled from field to widget coordinates."""

        def __init__(self, parent: Optional[QWidget] = None) -> None:
            super().__init__(parent)
            self._snapshot: Optional[Any] = None
            self._field_size: Tuple[float, float] = (800.0, 600.0)
            self.setMinimumSize(400, 300)
            self.setMouseTracking(True)
            self.setFocusPolicy(Qt.FocusPolicy.StrongFocus)

        def set_field_size(self, field_size: Tuple[float, float]) -> None:
            self._field_size = (max(1.0, float(field_size[0])), max(1.0, float(field_size[1])))
            self.update()

        def set_snapshot(self, snapshot: Any) -> None:
            self._snapshot = snapshot
            self.update()

        def _scale(self) -> Tuple[float, float]:
            return (self.width() / self._field_size[0], self.height() / self._field_size[1])

        def widget_to_field(self, x: float, y: float) -> Tuple[float, float]:
            scale_x, scale_y = self._scale()
            return (x / max(scale_x, 1e-6), y / max(scale_y, 1e-6))

        def paintEvent(self, event) -> None:  # type: ignore[override]
            painter = QPainter(self)
            painter.setRenderHint(QPainter.RenderHint.Antialiasing)
            painter.fillRect(self.rect(), QColor(244, 236, 216))

            snapshot = self._snapshot
            if snapshot is None:
                painter.end()
                return

            scale_x, scale_y = self._scale()
            painter.save()
            painter.scale(scale_x, scale_y)
            for entity in snapshot.entities:
                self._paint_entity(painter, entity)
            painter.restore()

            painter.setPen(QPen(QColor(20, 20, 20)))
            painter.drawText(QRectF(8.0, 8.0, self.width() - 16.0, 24.0), describe_snapshot(snapshot))
            label = snapshot.session.countdown_label
            if label:
                font = painter.font()
                font.setPointSize(32)
                painter.setFont(font)
                painter.drawText(QRectF(self.rect()), int(Qt.AlignmentFlag.AlignCenter), str(label))
            painter.end()

        def _paint_entity(self, painter: QPainter, entity: Any) -> None:
            x, y = entity.render_position()
            color = QColor(kind_colors.get(entity.kind, QColor(0, 0, 0)))
            radius = 12.0
            payload = entity.payload
            if isinstance(payload, ParticlePayload):
                color.setAlphaF(max(0.0, min(1.0, float(payload.life))))
                radius = 4.0 * max(0.0, float(payload.life))
            elif isinstance(payload, PotPayload):
                radius = float(payload.radius)
                if payload.completed:
                    return
            painter.setPen(Qt.PenStyle.NoPen)
            painter.setBrush(color)
            painter.drawEllipse(QPointF(x, y), radius, radius)
            if isinstance(payload, PromptPayload):
                painter.setPen(QPen(QColor(255, 255, 255)))
                painter.drawText(QRectF(x - radius, y - radius, radius * 2.0, radius * 2.0), int(Qt.AlignmentFlag.AlignCenter), payload.key.upper())
            elif isinstance(payload, PotPayload) and payload.charge > 0.0:
                painter.setPen(QPen(QColor(255, 215, 0), 4.0))
                painter.setBrush(Qt.BrushStyle.NoBrush)
                span = int(360 * 16 * payload.charge / 100.0)
                painter.drawArc(QRectF(x - radius - 6.0, y - radius - 6.0, (radius + 6.0) * 2.0, (radius + 6.0) * 2.0), 90 * 16, -span)

    return _GameView


GameView = _create_view_class()


class GameplayHarnessWindow:
    pass


def _create_window_class():
    from PyQt6.QtWidgets import (
        QComboBox,
        QHBoxLayout,
        QLabel,
        QMainWindow,
        QPushButton,
        QVBoxLayout,
        QWidget,
    )

    import minigame

    class _GameplayHarnessWindow(QMainWindow):
        def __init__(self, *, app_config: Optional[Any] = None, game_id: str = "archery", game_factory=None) -> None:
            super().__init__()
            self.setWindowTitle("Jianghu Minigames Harness")
            self._app_config = app_config
            self._game_factory = game_factory if game_factory is not None else (lambda gid: minigame.create_game(gid, app_config))

            root_widget = QWidget(self)
            root_layout = QVBoxLayout(root_widget)
            controls = QWidget(root_widget)
            controls_layout = QHBoxLayout(controls)

            self.game_combo = QComboBox(controls)
            self.game_combo.addItems(list(minigame.GAME_IDS))
            self.start_button = QPushButton("Start", controls)
            self.pause_button = QPushButton("Pause", controls)
            self.restart_button = QPushButton("Restart", controls)
            self.quit_button = QPushButton("Quit", controls)
            self.status_label = QLabel("", root_widget)

            controls_layout.addWidget(QLabel("Game:", controls))
            controls_layout.addWidget(self.game_combo)
            controls_layout.addWidget(self.start_button)
            controls_layout.addWidget(self.pause_button)
            controls_layout.addWidget(self.restart_button)
            controls_layout.addWidget(self.quit_button)

            self.view = GameView(root_widget)
            root_layout.addWidget(controls)
            root_layout.addWidget(self.view, stretch=1)
            root_layout.addWidget(self.status_label)
            self.setCentralWidget(root_widget)

            frame_interval_ms = int(app_config.clock.frame_interval_ms) if app_config is not None else 16
            self._controller = GameplayHarnessController(frame_interval_ms=frame_interval_ms, parent=self)
            self._controller.router.set_position_mapper(self.view.widget_to_field)
            self._controller.signals.snapshotUpdated.connect(self._on_snapshot)

            self.start_button.clicked.connect(self._controller.start)
            self.pause_button.clicked.connect(self._controller.toggle_pause)
            self.restart_button.clicked.connect(self._controller.restart)
            self.quit_button.clicked.connect(self._controller.quit_to_menu)
            self.game_combo.currentTextChanged.connect(self.load_game)

            self.view.installEventFilter(self._controller)
            self.installEventFilter(self._controller)

            self.game_combo.setCurrentText(str(game_id))
            if self._controller.game() is None:
                self.load_game(str(game_id))

        @property
        def controller(self) -> GameplayHarnessController:
            return self._controller

        def load_game(self, game_id: str) -> None:
            try:
                game = self._game_factory(str(game_id))
            except (ValueError, FileNotFoundError) as exc:
                logger.error("Could not load game %s: %s", game_id, exc)
                self.status_label.setText(f"Load failed: {exc}")
                return
            self._controller.set_game(game)
            self.view.set_field_size(field_size_for(game))
            self.view.set_snapshot(game.snapshot())
            self.view.setFocus()

        def _on_snapshot(self, snapshot: Any) -> None:
            self.view.set_snapshot(snapshot)
            self.status_label.setText(self._controller.state.status_text)

    return _GameplayHarnessWindow


GameplayHarnessWindow = _create_window_class()


def run_pure_tests() -> List[str]:
    passed: List[str] = []
    for module_name in PURE_TEST_MODULES:
        module = importlib.import_module(module_name)
        module._run_unit_tests()
        passed.append(module_name)
    return passed


def _run_gui() -> int:
    from PyQt6.QtWidgets import QApplication
    import sys

    app = QApplication(sys.argv)
    window = GameplayHarnessWindow()
    window.resize(1000, 800)
    window.show()
    return int(app.exec())


def build_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser()
    parser.add_argument(
        "--run-tests",
        action="store_true",
        help="Run pure logic tests (no Qt).",
    )
    return parser


def main() -> int:
    args = build_argument_parser().parse_args()
    if args.run_tests:
        for module_name in run_pure_tests():
            print(f"{module_name}.py: ok")
        print("Pure logic tests passed.")
        return 0
    return _run_gui()


if __name__ == "__main__":
    raise SystemExit(main())
