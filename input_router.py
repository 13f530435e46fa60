# -*- coding: utf-8 -*-
########################
# input_router.py
########################
# Purpose:
# - Single keyboard listener for gameplay lane input.
# - Translates QKeyEvent into gameplay_models.InputEvent and emits a Qt signal.
#
# Design notes:
# - This must be the only lane input source. The key-to-lane table comes from config
#   (input.key_bindings); the engine never sees key codes.
# - Single-lane keys (Space by default) emit InputEvent(lane=None). The run controller maps that to
#   lane 0 in single-lane modes and ignores it otherwise.
# - Debounce rules:
#   - Ignore auto repeat.
#   - Track pressed keys to avoid duplicate presses.
# - Time source is injected as a callable returning the host clock in milliseconds.
#
########################
# Interfaces:
# Public functions:
# - key_code_for_name(key_name: str) -> Optional[int]
# - build_key_to_lane_map(key_bindings: Mapping[str, int]) -> Dict[int, int]
#
# Public classes:
# - class InputRouter(PyQt6.QtCore.QObject)
#   - Signals:
#     - inputEvent(gameplay_models.InputEvent)
#   - Methods:
#     - handle_key_press(event: QKeyEvent) -> bool
#     - handle_key_release(event: QKeyEvent) -> bool
#     - clear_pressed_keys() -> None
#     - reset_stats() -> None
#
# Inputs:
# - Raw QKeyEvent from the Qt event loop.
#
# Outputs:
# - Normalized lane input events consumed by RunController.on_press.
#
########################

from __future__ import annotations

import logging
from typing import Callable, Dict, Iterable, Mapping, Optional, Set

from PyQt6.QtCore import QObject, Qt, pyqtSignal
from PyQt6.QtGui import QKeyEvent

import gameplay_models


logger = logging.getLogger(__name__)


def key_code_for_name(key_name: str) -> Optional[int]:
    """Resolve a Qt key name such as "A", "Left" or "Space" to its key code."""
    name = str(key_name or "").strip()
    if not name:
        return None
    key_constant = getattr(Qt.Key, "Key_" + name, None)
    if key_constant is None and len(name) == 1:
        key_constant = getattr(Qt.Key, "Key_" + name.upper(), None)
    if key_constant is None:
        return None
    return int(key_constant.value)


def build_key_to_lane_map(key_bindings: Mapping[str, int]) -> Dict[int, int]:
    key_to_lane: Dict[int, int] = {}

    def bind(key_name: str, lane_index: int) -> None:
        key_code = key_code_for_name(key_name)
        if key_code is None:
            logger.warning("Ignoring unknown key name in key bindings: %r", key_name)
            return
        key_to_lane[key_code] = int(lane_index)

    for key_name, lane_index in key_bindings.items():
        bind(key_name, lane_index)
    return key_to_lane


def _build_single_lane_keys(key_names: Iterable[str]) -> Set[int]:
    codes: Set[int] = set()
    for key_name in key_names:
        key_code = key_code_for_name(key_name)
        if key_code is not None:
            codes.add(key_code)
    return codes


class InputRouter(QObject):
    """
    Central keyboard router for gameplay lane input.

    This object never judges anything. It maps keys to lanes, stamps each press with the
    injected clock, and emits a gameplay_models.InputEvent.
    """

    inputEvent = pyqtSignal(object)

    def __init__(
        self,
        time_provider_ms: Callable[[], float],
        key_bindings: Mapping[str, int],
        single_lane_keys: Iterable[str] = ("Space",),
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)

        self._time_provider_ms: Callable[[], float] = time_provider_ms
        self._key_to_lane: Dict[int, int] = build_key_to_lane_map(key_bindings)
        self._single_lane_keys: Set[int] = _build_single_lane_keys(single_lane_keys)

        self._pressed_keys: Set[int] = set()

        self._total_presses: int = 0
        self._ignored_presses: int = 0

    def _is_gameplay_key(self, key_code: int) -> bool:
        return key_code in self._key_to_lane or key_code in self._single_lane_keys

    def handle_key_press(self, event: QKeyEvent) -> bool:
        """
        Handle a Qt key press.

        Returns True if this router consumed the event, False otherwise.
        """
        key_code = int(event.key())

        if event.isAutoRepeat() or key_code in self._pressed_keys:
            if self._is_gameplay_key(key_code):
                self._ignored_presses += 1
                return True
            return False

        if not self._is_gameplay_key(key_code):
            return False

        self._pressed_keys.add(key_code)
        self._total_presses += 1
        self._emit_input_event(self._key_to_lane.get(key_code))
        return True

    def handle_key_release(self, event: QKeyEvent) -> bool:
        key_code = int(event.key())

        if event.isAutoRepeat():
            return self._is_gameplay_key(key_code)

        self._pressed_keys.discard(key_code)
        return self._is_gameplay_key(key_code)

    def clear_pressed_keys(self) -> None:
        """Called by the harness on focus loss or window deactivation."""
        self._pressed_keys.clear()

    def reset_stats(self) -> None:
        self._total_presses = 0
        self._ignored_presses = 0

    def _emit_input_event(self, lane_index: Optional[int]) -> None:
        input_event = gameplay_models.InputEvent(
            time_ms=float(self._time_provider_ms()),
            lane=None if lane_index is None else int(lane_index),
        )
        self.inputEvent.emit(input_event)

    @property
    def key_to_lane_map(self) -> Dict[int, int]:
        return dict(self._key_to_lane)

    @property
    def total_presses(self) -> int:
        return self._total_presses

    @property
    def ignored_presses(self) -> int:
        return self._ignored_presses


def _run_unit_tests() -> None:
    key_map = build_key_to_lane_map({"A": 0, "s": 1, "Left": 0, "NotAKey": 3})
    assert key_map[int(Qt.Key.Key_A.value)] == 0
    assert key_map[int(Qt.Key.Key_S.value)] == 1
    assert key_map[int(Qt.Key.Key_Left.value)] == 0
    assert len(key_map) == 3
    assert key_code_for_name("Space") == int(Qt.Key.Key_Space.value)


if __name__ == "__main__":
    _run_unit_tests()
    print("input_router.py: ok")
