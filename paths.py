# -*- coding: utf-8 -*-
########################
# paths.py
########################
# Purpose:
# - Central filesystem path helpers for the app.
# - Defines where mode music tracks live and resolves a mode's track file.
#
# Design notes:
# - Keep path derivation consistent across modules.
# - No Qt usage. Return pathlib.Path only.
# - Nothing here creates directories. A missing track is reported as None and the run continues
#   without audio.
#
########################
# Interfaces:
# Public functions:
# - app_root_dir() -> pathlib.Path
# - music_dir(configured_dir: str = "") -> pathlib.Path
# - mode_audio_path(audio_file: str, configured_dir: str = "") -> Optional[pathlib.Path]
#
# Inputs:
# - The launched Python entrypoint file location, audio.music_dir from config.
#
# Outputs:
# - Paths used by gameplay_harness.py for the audio transport.
#
########################

from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional


def _entrypoint_file_path() -> Optional[Path]:
    main_module = sys.modules.get("__main__")
    main_file = getattr(main_module, "__file__", None)
    if main_file:
        return Path(str(main_file)).resolve()

    argv0 = str(sys.argv[0] or "").strip()
    if argv0 and argv0 not in {"-c", "-m"}:
        try:
            return Path(argv0).resolve()
        except OSError:
            return None

    return None


def app_root_dir() -> Path:
    """Return the directory containing the launched .py file (or the cwd when there is none)."""
    entrypoint_path = _entrypoint_file_path()
    if entrypoint_path is not None:
        return entrypoint_path.parent

    return Path.cwd().resolve()


def music_dir(configured_dir: str = "") -> Path:
    """Return the music directory (not created automatically)."""
    text = str(configured_dir or "").strip()
    if text:
        return Path(text).expanduser()
    return app_root_dir() / "Music"


def mode_audio_path(audio_file: str, configured_dir: str = "") -> Optional[Path]:
    name = str(audio_file or "").strip()
    if not name:
        return None
    candidate = music_dir(configured_dir) / name
    if candidate.is_file():
        return candidate
    return None


def _run_unit_tests() -> None:
    assert music_dir("/tmp/waybeat-music") == Path("/tmp/waybeat-music")
    assert mode_audio_path("") is None
    assert mode_audio_path("definitely-not-here.mp3", "/nonexistent-waybeat-dir") is None


if __name__ == "__main__":
    _run_unit_tests()
    print("paths.py: ok")
