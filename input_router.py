# -*- coding: utf-8 -*-
########################
# input_router.py
########################
# Purpose:
# - Single keyboard and mouse listener for the minigames.
# - Translates QKeyEvent and QMouseEvent into gameplay_models.InputEvent and emits a Qt signal.
#
# Design notes:
# - This must be the only input source. Games never read Qt events.
# - Key names are lowercase letters and digits, plus "space", "escape" and arrow names.
#   Keys outside the map are not consumed.
# - Debounce rules:
#   - Auto repeat presses are forwarded with is_repeat=True so games can ignore them.
#   - A second press of a key that is still held is dropped.
# - Time source is injected as a callable returning milliseconds.
#
########################
# Interfaces:
# Public functions:
# - key_name(key_code: int) -> Optional[str]
# - mouse_button_index(button) -> int
#
# Public classes:
# - class InputRouter(PyQt6.QtCore.QObject)
#   - Signals:
#     - inputEvent(gameplay_models.InputEvent)
#   - Methods:
#     - handle_key_press(event: QKeyEvent) -> bool
#     - handle_key_release(event: QKeyEvent) -> bool
#     - handle_mouse_press(event: QMouseEvent) -> bool
#     - handle_mouse_release(event: QMouseEvent) -> bool
#     - handle_mouse_move(event: QMouseEvent) -> bool
#     - clear_pressed_keys() -> None
#
# Inputs:
# - Raw Qt events from the event loop.
#
# Outputs:
# - Normalized InputEvent values consumed by minigame.Minigame.handle_input.
#
########################

from __future__ import annotations

from typing import Callable, Dict, Optional, Set, Tuple

from PyQt6.QtCore import QObject, Qt, pyqtSignal
from PyQt6.QtGui import QKeyEvent, QMouseEvent

from gameplay_models import InputEvent, InputKind

PositionMapper = Callable[[float, float], Tuple[float, float]]


def _build_key_names() -> Dict[int, str]:
    names: Dict[int, str] = {}
    for code in range(int(Qt.Key.Key_A.value), int(Qt.Key.Key_Z.value) + 1):
        names[code] = chr(code).lower()
    for code in range(int(Qt.Key.Key_0.value), int(Qt.Key.Key_9.value) + 1):
        names[code] = chr(code)

    names[int(Qt.Key.Key_Space.value)] = "space"
    names[int(Qt.Key.Key_Escape.value)] = "escape"
    names[int(Qt.Key.Key_Left.value)] = "left"
    names[int(Qt.Key.Key_Right.value)] = "right"
    names[int(Qt.Key.Key_Up.value)] = "up"
    names[int(Qt.Key.Key_Down.value)] = "down"
    return names


_KEY_NAMES = _build_key_names()


def key_name(key_code: int) -> Optional[str]:
    return _KEY_NAMES.get(int(key_code))


def mouse_button_index(button) -> int:
    if button == Qt.MouseButton.RightButton:
        return 2
    if button == Qt.MouseButton.MiddleButton:
        return 1
    return 0


class InputRouter(QObject):
    """
    Central keyboard and mouse router.

    This object never judges anything. Its only job is to:
      - name keys and buttons
      - attach the current time from the injected time provider
      - map widget coordinates into field coordinates
      - emit a gameplay_models.InputEvent for each accepted event
    """

    inputEvent = pyqtSignal(object)

    def __init__(
        self,
        time_provider_ms: Callable[[], float],
        parent: Optional[QObject] = None,
        position_mapper: Optional[PositionMapper] = None,
    ) -> None:
        """
        time_provider_ms:
            Callable that returns the current time in milliseconds. The harness passes GameClock.now_ms.
        position_mapper:
            Optional widget -> field coordinate transform. Identity when omitted.
        """
        super().__init__(parent)
        self._time_provider_ms = time_provider_ms
        self._position_mapper: PositionMapper = position_mapper if position_mapper is not None else (lambda x, y: (x, y))
        self._pressed_keys: Set[int] = set()

    def set_position_mapper(self, position_mapper: Optional[PositionMapper]) -> None:
        self._position_mapper = position_mapper if position_mapper is not None else (lambda x, y: (x, y))

    # ------------------------------------------------------------------
    # Keyboard
    # ------------------------------------------------------------------

    def handle_key_press(self, event: QKeyEvent) -> bool:
        """Returns True if this router consumed the event."""
        key_code = int(event.key())
        name = key_name(key_code)
        if name is None:
            return False

        if event.isAutoRepeat():
            self._emit(InputEvent(kind=InputKind.KEY_DOWN, key=name, is_repeat=True, time_ms=self._now_ms()))
            return True

        if key_code in self._pressed_keys:
            return True

        self._pressed_keys.add(key_code)
        self._emit(InputEvent(kind=InputKind.KEY_DOWN, key=name, time_ms=self._now_ms()))
        return True

    def handle_key_release(self, event: QKeyEvent) -> bool:
        key_code = int(event.key())
        name = key_name(key_code)
        if name is None:
            return False
        if event.isAutoRepeat():
            return True

        self._pressed_keys.discard(key_code)
        self._emit(InputEvent(kind=InputKind.KEY_UP, key=name, time_ms=self._now_ms()))
        return True

    def clear_pressed_keys(self) -> None:
        """Called by the harness on focus loss or window deactivation."""
        self._pressed_keys.clear()

    # ------------------------------------------------------------------
    # Mouse
    # ------------------------------------------------------------------

    def handle_mouse_press(self, event: QMouseEvent) -> bool:
        return self._emit_pointer(InputKind.POINTER_DOWN, event)

    def handle_mouse_release(self, event: QMouseEvent) -> bool:
        return self._emit_pointer(InputKind.POINTER_UP, event)

    def handle_mouse_move(self, event: QMouseEvent) -> bool:
        return self._emit_pointer(InputKind.POINTER_MOVE, event)

    def _emit_pointer(self, kind: InputKind, event: QMouseEvent) -> bool:
        position = event.position()
        field_x, field_y = self._position_mapper(float(position.x()), float(position.y()))
        button = 0 if kind is InputKind.POINTER_MOVE else mouse_button_index(event.button())
        self._emit(
            InputEvent(
                kind=kind,
                x=float(field_x),
                y=float(field_y),
                button=button,
                time_ms=self._now_ms(),
            )
        )
        return True

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _now_ms(self) -> float:
        return float(self._time_provider_ms())

    def _emit(self, input_event: InputEvent) -> None:
        self.inputEvent.emit(input_event)


def _run_unit_tests() -> None:
    assert key_name(int(Qt.Key.Key_A.value)) == "a"
    assert key_name(int(Qt.Key.Key_S.value)) == "s"
    assert key_name(int(Qt.Key.Key_1.value)) == "1"
    assert key_name(int(Qt.Key.Key_Space.value)) == "space"
    assert key_name(int(Qt.Key.Key_Escape.value)) == "escape"
    assert key_name(int(Qt.Key.Key_F1.value)) is None
    assert mouse_button_index(Qt.MouseButton.LeftButton) == 0
    assert mouse_button_index(Qt.MouseButton.RightButton) == 2


if __name__ == "__main__":
    _run_unit_tests()
    print("input_router.py: ok")
