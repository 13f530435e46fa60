# -*- coding: utf-8 -*-
########################
# gameplay_harness.py
########################
# Purpose:
# - Desktop host for the note lifecycle engine, and the command line entry point.
# - Integrates QtAudioTransport + InputRouter + RunController + PlayfieldWidget behind a small
#   mode-select / play / results window.
#
# Design notes:
# - The host owns the monotonic clock (QElapsedTimer) and drives RunController.tick from a Qt timer.
#   Key presses are forwarded to RunController.on_press as they arrive, never deferred to a tick.
# - Audio is optional. A missing track or a player error is logged and the run continues without a
#   known duration (it then ends on Stop, or on --duration-ms when given).
# - Provides a reusable controller (GameplayHarnessController) that can be embedded into another UI
#   by passing an object exposing the widget attributes in HarnessUiProtocol.
# - --simulate and --run-tests never create a QApplication.
#
########################
# Interfaces:
# Public dataclasses:
# - HarnessState(mode_key: str, audio_path: str, last_error: str, last_summary: Optional[RunSummary])
#
# Public classes:
# - class QtAudioTransport(PyQt6.QtCore.QObject): has_ended() -> bool, duration_ms() -> Optional[float]
# - class GameplayHarnessController(PyQt6.QtCore.QObject)
#   - start_run(mode_key: str) / stop_run() / restart_run()
# - class GameplayHarnessWindow(PyQt6.QtWidgets.QMainWindow)
#
# Public functions:
# - format_results(summary: RunSummary, mode: ModeConfig) -> str
# - build_argument_parser() -> argparse.ArgumentParser
# - main(argv: Optional[list[str]] = None) -> int
#
# Inputs:
# - Keyboard lane input (InputRouter handles QKeyEvent).
# - Audio playback state (QMediaPlayer).
# - Command line flags and config.AppConfig.
#
# Outputs:
# - Visible playfield, HUD and results panel; JSON summaries for --simulate.
#
########################

from __future__ import annotations

from dataclasses import asdict, dataclass
import argparse
import json
import logging
from typing import Any, List, Optional, Protocol, runtime_checkable

import gameplay_models
import mode_config


logger = logging.getLogger(__name__)


@dataclass
class HarnessState:
    mode_key: str = "confucius"
    audio_path: str = ""
    last_error: str = ""
    last_summary: Optional[gameplay_models.RunSummary] = None


def format_results(summary: gameplay_models.RunSummary, mode: mode_config.ModeConfig) -> str:
    lines = [
        f"Final score: {summary.final_score}",
        f"Hit percentage: {summary.hit_percentage}%",
        f"Max combo: {summary.max_combo}",
        "",
        f"Reflection: {mode.name} Mode",
    ]
    lines.extend(mode_config.REFLECTION_PROMPTS)
    return "\n".join(lines)


@runtime_checkable
class HarnessUiProtocol(Protocol):
    """UI contract used by GameplayHarnessController.

    Attribute based, so callers can pass a plain object whose attributes point at existing widgets.

    Required attributes for wiring:
    - mode_combo: QComboBox-like (currentData() -> str, setCurrentIndex(int), findData(str) -> int)
    - start_button, stop_button, restart_button: QPushButton-like objects exposing .clicked
    - status_label, description_label, results_label: QLabel-like objects with setText(str)

    Optional attributes for embedding:
    - root_widget: QWidget, only required when the harness window calls setCentralWidget(root_widget).
    """

    mode_combo: Any
    start_button: Any
    stop_button: Any
    restart_button: Any
    status_label: Any
    description_label: Any
    results_label: Any
    root_widget: Any


class QtAudioTransport:  # QObject subclass, defined lazily inside Qt import block
    pass


def _create_transport_class():
    from PyQt6.QtCore import QObject, QUrl
    from PyQt6.QtMultimedia import QAudioOutput, QMediaPlayer

    import run_clock

    class _QtAudioTransport(QObject):
        """Audio transport backed by QMediaPlayer.

        fallback_duration_ms is reported only when no track is loaded (missing file or playback error).
        """

        def __init__(self, *, volume: float, fallback_duration_ms: Optional[float] = None, parent: Optional[QObject] = None) -> None:
            super().__init__(parent)
            self._fallback_duration_ms = fallback_duration_ms
            self._ended = False
            self._loaded = False

            self._audio_output = QAudioOutput(self)
            self._audio_output.setVolume(float(volume))
            self._player = QMediaPlayer(self)
            self._player.setAudioOutput(self._audio_output)
            self._player.mediaStatusChanged.connect(self._on_media_status_changed)
            self._player.errorOccurred.connect(self._on_error)

        def load_and_play(self, audio_path: Optional[str]) -> None:
            self._ended = False
            self._loaded = False
            self._player.stop()
            if not audio_path:
                logger.warning("No audio track for this run; playing without a duration")
                return
            self._player.setSource(QUrl.fromLocalFile(str(audio_path)))
            self._loaded = True
            self._player.play()

        def stop(self) -> None:
            self._player.stop()

        def has_ended(self) -> bool:
            return bool(self._ended)

        def duration_ms(self) -> Optional[float]:
            return run_clock.transport_duration_ms(
                float(self._player.duration()),
                track_loaded=self._loaded,
                fallback_duration_ms=self._fallback_duration_ms,
            )

        def _on_media_status_changed(self, status) -> None:
            if status == QMediaPlayer.MediaStatus.EndOfMedia:
                self._ended = True

        def _on_error(self, error, error_string: str) -> None:
            logger.warning("Audio playback failed (%s): %s", error, error_string)
            self._loaded = False

    return _QtAudioTransport


QtAudioTransport = _create_transport_class()


class GameplayHarnessController:  # QObject subclass, defined lazily inside Qt import block
    pass


def _create_controller_class():
    from PyQt6.QtCore import QElapsedTimer, QEvent, QObject
    from PyQt6.QtGui import QKeyEvent

    import config
    import input_router
    import overlay_renderer
    import paths
    import run_controller

    class _GameplayHarnessController(QObject):
        def __init__(
            self,
            *,
            app_config: config.AppConfig,
            playfield: overlay_renderer.PlayfieldWidget,
            ui: Optional[HarnessUiProtocol] = None,
            seed: Optional[int] = None,
            fallback_duration_ms: Optional[float] = None,
            parent: Optional[QObject] = None,
        ) -> None:
            super().__init__(parent)
            self._config = app_config
            self._state = HarnessState(mode_key=app_config.engine.default_mode)
            self._ui: Optional[HarnessUiProtocol] = None

            self._clock = QElapsedTimer()
            self._clock.start()

            effective_seed = seed if seed is not None else app_config.engine.seed
            self._playfield = playfield
            self._run = run_controller.RunController(
                seed=effective_seed,
                strict_invariants=app_config.engine.strict_invariants,
                render_sink=playfield,
            )
            self._transport = QtAudioTransport(
                volume=app_config.audio.volume,
                fallback_duration_ms=fallback_duration_ms,
                parent=self,
            )

            self._router = input_router.InputRouter(
                self.now_ms,
                app_config.input.key_bindings,
                app_config.input.single_lane_keys,
                parent=self,
            )
            self._router.inputEvent.connect(self._on_input_event)

            self._tick_timer_id: int = self.startTimer(int(app_config.engine.tick_interval_ms))

            if ui is not None:
                self.attach_ui(ui)

        @property
        def state(self) -> HarnessState:
            return self._state

        @property
        def run(self) -> run_controller.RunController:
            return self._run

        def now_ms(self) -> float:
            return float(self._clock.nsecsElapsed()) / 1_000_000.0

        def attach_ui(self, ui: HarnessUiProtocol) -> None:
            self._ui = ui
            self._ui.start_button.clicked.connect(self._on_start_clicked)
            self._ui.stop_button.clicked.connect(self._on_stop_clicked)
            self._ui.restart_button.clicked.connect(self._on_restart_clicked)
            self._ui.mode_combo.currentIndexChanged.connect(self._on_mode_changed)

            index = self._ui.mode_combo.findData(self._state.mode_key)
            if index >= 0:
                self._ui.mode_combo.setCurrentIndex(index)
            self._show_mode_description(self._state.mode_key)

        def detach_ui(self) -> None:
            self._ui = None

        # -----------------
        # Event filter and timer loop
        # -----------------

        def eventFilter(self, watched: QObject, event: QEvent) -> bool:  # noqa: N802
            if event.type() == QEvent.Type.KeyPress and isinstance(event, QKeyEvent):
                if self._router.handle_key_press(event):
                    return True
            if event.type() == QEvent.Type.KeyRelease and isinstance(event, QKeyEvent):
                if self._router.handle_key_release(event):
                    return True
            if event.type() in (QEvent.Type.WindowDeactivate, QEvent.Type.FocusOut):
                self._router.clear_pressed_keys()
            return super().eventFilter(watched, event)

        def timerEvent(self, event) -> None:  # type: ignore[override]
            if event.timerId() != self._tick_timer_id:
                return
            if not self._run.is_running():
                return
            summary = self._run.tick(self.now_ms(), self._transport)
            self._playfield.set_hud_state(self._run.state())
            self._run.clear_recent_judgements()
            if summary is not None:
                self._on_run_finished(summary)

        # -----------------
        # UI helpers
        # -----------------

        def _set_status(self, text: str) -> None:
            status_text = str(text)
            if self._ui is not None:
                self._ui.status_label.setText(status_text)
            self._playfield.set_state_text(status_text)

        def _selected_mode_key(self) -> str:
            if self._ui is None:
                return self._state.mode_key
            data = self._ui.mode_combo.currentData()
            return str(data or self._state.mode_key)

        def _show_mode_description(self, mode_key: str) -> None:
            if self._ui is None:
                return
            try:
                mode = self._config.resolve_mode(mode_key)
            except ValueError as exception:
                self._ui.description_label.setText(str(exception))
                return
            self._ui.description_label.setText(f"{mode.full_description}\n\n{mode.description}")

        # -----------------
        # Core operations
        # -----------------

        def start_run(self, mode_key: str) -> None:
            mode = self._config.resolve_mode(mode_key)
            self._state.mode_key = mode.key
            self._state.last_error = ""
            self._state.last_summary = None

            audio_path = None
            if self._config.audio.enabled:
                audio_path = paths.mode_audio_path(mode.audio_file, self._config.audio.music_dir)
                if audio_path is None:
                    self._state.last_error = f"Track not found: {mode.audio_file}"
                    logger.warning("Track not found for mode %s: %s", mode.key, mode.audio_file)
            self._state.audio_path = str(audio_path or "")

            self._router.clear_pressed_keys()
            self._router.reset_stats()
            self._playfield.set_mode(mode)
            self._transport.load_and_play(self._state.audio_path or None)
            self._run.start(mode, self.now_ms())

            if self._ui is not None:
                self._ui.results_label.setText("")
            self._set_status(f"Playing {mode.name}")

        def stop_run(self) -> None:
            self._transport.stop()
            if not self._run.is_running():
                return
            summary = self._run.stop(self.now_ms())
            if summary is not None:
                self._on_run_finished(summary)

        def restart_run(self) -> None:
            self.start_run(self._state.mode_key)

        def _on_run_finished(self, summary: gameplay_models.RunSummary) -> None:
            self._transport.stop()
            self._state.last_summary = summary
            self._playfield.set_hud_state(self._run.state())
            mode = self._run.mode()
            if self._ui is not None and mode is not None:
                self._ui.results_label.setText(format_results(summary, mode))
            self._set_status(f"Run ended ({summary.ended_by})")

        # -----------------
        # Button handlers
        # -----------------

        def _on_start_clicked(self) -> None:
            self.start_run(self._selected_mode_key())

        def _on_stop_clicked(self) -> None:
            self.stop_run()

        def _on_restart_clicked(self) -> None:
            self.restart_run()

        def _on_mode_changed(self, _index: int) -> None:
            self._show_mode_description(self._selected_mode_key())

        # -----------------
        # Input path
        # -----------------

        def _on_input_event(self, input_event: gameplay_models.InputEvent) -> None:
            self._playfield.on_input_event(input_event)
            if not self._run.is_running():
                return
            self._run.on_press(input_event.lane, input_event.time_ms)
            self._playfield.set_hud_state(self._run.state())

    return _GameplayHarnessController


GameplayHarnessController = _create_controller_class()


class GameplayHarnessWindow:
    pass


def _create_window_class():
    from PyQt6.QtCore import Qt
    from PyQt6.QtWidgets import (
        QComboBox,
        QHBoxLayout,
        QLabel,
        QMainWindow,
        QPushButton,
        QVBoxLayout,
        QWidget,
    )

    import config
    import overlay_renderer

    class _DefaultHarnessUi:
        def __init__(self, *, parent: QWidget) -> None:
            self.root_widget = QWidget(parent)
            self.root_layout = QHBoxLayout(self.root_widget)

            self.side_panel = QWidget(self.root_widget)
            self.side_layout = QVBoxLayout(self.side_panel)

            self.mode_combo = QComboBox(self.side_panel)
            for mode_key in mode_config.mode_keys():
                self.mode_combo.addItem(mode_config.MODES[mode_key].name, mode_key)

            self.description_label = QLabel("", self.side_panel)
            self.description_label.setWordWrap(True)

            self.start_button = QPushButton("Start", self.side_panel)
            self.stop_button = QPushButton("Stop", self.side_panel)
            self.restart_button = QPushButton("Play Again", self.side_panel)
            for button in (self.start_button, self.stop_button, self.restart_button):
                button.setFocusPolicy(Qt.FocusPolicy.NoFocus)
            self.mode_combo.setFocusPolicy(Qt.FocusPolicy.NoFocus)

            self.status_label = QLabel("", self.side_panel)
            self.results_label = QLabel("", self.side_panel)
            self.results_label.setWordWrap(True)

            self.side_layout.addWidget(QLabel("Mode:", self.side_panel))
            self.side_layout.addWidget(self.mode_combo)
            self.side_layout.addWidget(self.description_label)
            self.side_layout.addWidget(self.start_button)
            self.side_layout.addWidget(self.stop_button)
            self.side_layout.addWidget(self.restart_button)
            self.side_layout.addWidget(self.status_label)
            self.side_layout.addWidget(self.results_label, stretch=1)

            self.root_layout.addWidget(self.side_panel, stretch=2)

    class _GameplayHarnessWindow(QMainWindow):
        def __init__(
            self,
            *,
            app_config: config.AppConfig,
            seed: Optional[int] = None,
            fallback_duration_ms: Optional[float] = None,
            ui: Optional[HarnessUiProtocol] = None,
        ) -> None:
            super().__init__()
            self.setWindowTitle("Waybeat")

            self._playfield = overlay_renderer.PlayfieldWidget(lambda: 0.0, parent=self)
            self._controller = GameplayHarnessController(
                app_config=app_config,
                playfield=self._playfield,
                ui=None,
                seed=seed,
                fallback_duration_ms=fallback_duration_ms,
                parent=self,
            )
            self._playfield._time_provider_ms = self._controller.now_ms  # type: ignore[attr-defined]

            if ui is None:
                default_ui = _DefaultHarnessUi(parent=self)
                default_ui.root_layout.insertWidget(0, self._playfield, stretch=5)
                self.setCentralWidget(default_ui.root_widget)
                self._controller.attach_ui(default_ui)  # type: ignore[arg-type]
            else:
                self._controller.attach_ui(ui)

            self.installEventFilter(self._controller)

        @property
        def controller(self) -> GameplayHarnessController:
            return self._controller

    return _GameplayHarnessWindow


GameplayHarnessWindow = _create_window_class()


_SELF_TEST_MODULES = (
    "gameplay_models",
    "mode_config",
    "note_registry",
    "run_clock",
    "spawn_scheduler",
    "note_motion",
    "judge",
    "scoring",
    "run_controller",
    "autoplay",
    "logging_setup",
    "paths",
)


def _run_module_self_tests() -> List[str]:
    import importlib

    passed: List[str] = []
    for module_name in _SELF_TEST_MODULES:
        module = importlib.import_module(module_name)
        module._run_unit_tests()
        passed.append(module_name)
    return passed


def _run_simulation(app_config, args: argparse.Namespace) -> int:
    import autoplay

    mode = app_config.resolve_mode(args.mode or app_config.engine.default_mode)
    seed = args.seed if args.seed is not None else (app_config.engine.seed if app_config.engine.seed is not None else 0)
    duration_ms = float(args.duration_ms) if args.duration_ms is not None else 45000.0
    result = autoplay.simulate_run(
        mode,
        seed=int(seed),
        duration_ms=duration_ms,
        tick_ms=float(args.tick_ms or app_config.engine.tick_interval_ms),
        accuracy=float(args.accuracy),
        strict_invariants=app_config.engine.strict_invariants,
    )
    payload = {
        "mode": mode.key,
        "seed": int(seed),
        "ticks": result.ticks,
        "judgements": len(result.events),
        "summary": asdict(result.summary),
    }
    print(json.dumps(payload, ensure_ascii=False, indent=2))
    return 0


def _run_gui(app_config, args: argparse.Namespace) -> int:
    from PyQt6.QtWidgets import QApplication
    import sys

    app = QApplication(sys.argv)
    window = GameplayHarnessWindow(
        app_config=app_config,
        seed=args.seed,
        fallback_duration_ms=args.duration_ms,
    )
    if args.mode:
        window.controller.start_run(args.mode)
    window.resize(1100, 760)
    window.show()
    return int(app.exec())


def build_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="waybeat", description="Waybeat rhythm game")
    parser.add_argument("--mode", choices=mode_config.mode_keys(), default=None, help="Mode to start immediately.")
    parser.add_argument("--seed", type=int, default=None, help="Seed for spawn and variant rolls.")
    parser.add_argument("--duration-ms", type=float, default=None, help="Run length when no audio duration is known.")
    parser.add_argument("--simulate", action="store_true", help="Run a headless autoplay simulation and print JSON.")
    parser.add_argument("--accuracy", type=float, default=0.9, help="Autoplay hit probability for --simulate.")
    parser.add_argument("--tick-ms", type=float, default=None, help="Tick interval for --simulate.")
    parser.add_argument("--run-tests", action="store_true", help="Run pure logic self tests (no Qt).")
    parser.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING or ERROR.")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    import config
    import logging_setup

    args = build_argument_parser().parse_args(argv)

    try:
        app_config, config_path = config.load_config()
    except (OSError, ValueError) as exception:
        print(f"Config error: {exception}")
        return 2

    logging_setup.setup_logging(args.log_level, config_level=app_config.logging.level)
    logger.debug("Config loaded from %s", config_path or "(defaults)")

    if args.run_tests:
        passed = _run_module_self_tests()
        print("Self tests passed: " + ", ".join(passed))
        return 0

    if args.simulate:
        return _run_simulation(app_config, args)

    return _run_gui(app_config, args)


if __name__ == "__main__":
    raise SystemExit(main())
