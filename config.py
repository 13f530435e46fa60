"""
config.py

Typed configuration loading and validation for Waybeat.

Design goals
- Load at most one UTF-8 JSON config file
- Validate with pydantic (defaults included), so a missing file means "all defaults"
- Support environment variable overrides
- Mode overrides are merged over the built-in mode records and validated again
- No other I/O beyond reading the config file (no directory creation)

Config file location
- If WAYBEAT_CONFIG_PATH is set, that file is used (and must exist).
- Otherwise Waybeat searches these paths in order and uses the first one that exists:
  1) ./waybeat_config.json (current working directory)
  2) <user config dir>/Waybeat/Waybeat/waybeat_config.json
  3) <user config dir>/Waybeat/Waybeat/config.json

Example config file (waybeat_config.json)
{
  "engine": {
    "seed": 42,
    "strict_invariants": false,
    "tick_interval_ms": 16,
    "default_mode": "confucius"
  },
  "audio": {
    "music_dir": "/home/me/Music/waybeat",
    "volume": 0.8
  },
  "input": {
    "key_bindings": {"A": 0, "S": 1, "D": 2, "F": 3}
  },
  "modes": {
    "xunzi": {"combo_reset_threshold": 2},
    "confucius": {"combo_reset_policy": "every_nth_miss"}
  },
  "logging": {
    "level": "INFO"
  }
}
"""

from __future__ import annotations

import json
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from platformdirs import user_config_dir
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

import logging_setup
import mode_config


class EngineConfig(BaseModel):
    seed: Optional[int] = Field(default=None, description="Seed for spawn and variant rolls. None means random.")
    strict_invariants: bool = Field(default=False, description="Raise InvariantViolation instead of logging it.")
    tick_interval_ms: int = Field(default=16, ge=1, le=100, description="Host timer interval.")
    default_mode: str = Field(default="confucius")

    @field_validator("default_mode")
    @classmethod
    def validate_default_mode(cls, value: str) -> str:
        normalized = (value or "").strip().lower()
        if normalized not in mode_config.MODES:
            raise ValueError("default_mode must be one of: " + ", ".join(mode_config.mode_keys()))
        return normalized


class AudioConfig(BaseModel):
    enabled: bool = Field(default=True, description="Play the mode's track during a run.")
    music_dir: str = Field(default="", description="Directory holding the mode tracks. Empty means <app root>/Music.")
    volume: float = Field(default=0.8, ge=0.0, le=1.0)

    @field_validator("music_dir")
    @classmethod
    def normalize_music_dir(cls, value: str) -> str:
        return (value or "").strip()


def _default_key_bindings() -> Dict[str, int]:
    bindings: Dict[str, int] = {}

    def bind(key_name: str, lane: int) -> None:
        bindings[key_name] = int(lane)

    bind("A", 0)
    bind("S", 1)
    bind("D", 2)
    bind("F", 3)

    bind("Left", 0)
    bind("Down", 1)
    bind("Up", 2)
    bind("Right", 3)
    return bindings


class InputConfig(BaseModel):
    key_bindings: Dict[str, int] = Field(default_factory=_default_key_bindings, description="Qt key name -> lane.")
    single_lane_keys: List[str] = Field(default_factory=lambda: ["Space"])
    ignore_auto_repeat: bool = Field(default=True)

    @field_validator("key_bindings")
    @classmethod
    def validate_key_bindings(cls, value: Dict[str, int]) -> Dict[str, int]:
        cleaned: Dict[str, int] = {}
        for key_name, lane in value.items():
            name = str(key_name).strip()
            if not name:
                raise ValueError("key_bindings keys must be non-empty key names")
            if int(lane) < 0 or int(lane) > 3:
                raise ValueError(f"key_bindings[{name!r}] lane must be within 0..3")
            cleaned[name] = int(lane)
        return cleaned


class LoggingConfig(BaseModel):
    level: str = Field(default="INFO")

    @field_validator("level")
    @classmethod
    def validate_level(cls, value: str) -> str:
        normalized = (value or "").strip().upper()
        if logging_setup.parse_level(normalized) is None:
            raise ValueError("level must be one of: DEBUG, INFO, WARNING, ERROR, CRITICAL")
        return normalized


class AppConfig(BaseModel):
    engine: EngineConfig = Field(default_factory=EngineConfig)
    audio: AudioConfig = Field(default_factory=AudioConfig)
    input: InputConfig = Field(default_factory=InputConfig)
    modes: Dict[str, Dict[str, Any]] = Field(default_factory=dict, description="Partial per-mode overrides.")
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @model_validator(mode="after")
    def validate_mode_overrides(self) -> "AppConfig":
        for mode_key, overrides in self.modes.items():
            mode_config.get_mode(mode_key, overrides)
        return self

    def resolve_mode(self, mode_key: str) -> mode_config.ModeConfig:
        normalized = str(mode_key or "").strip().lower()
        return mode_config.get_mode(normalized, self.modes.get(normalized))


def _default_config_candidates() -> List[Path]:
    config_directory = Path(user_config_dir("Waybeat", "Waybeat"))
    return [
        Path.cwd() / "waybeat_config.json",
        config_directory / "waybeat_config.json",
        config_directory / "config.json",
    ]


def _resolve_config_path() -> Optional[Path]:
    explicit_path_text = os.environ.get("WAYBEAT_CONFIG_PATH", "").strip()
    if explicit_path_text:
        return Path(explicit_path_text)

    for candidate_path in _default_config_candidates():
        if candidate_path.exists():
            return candidate_path

    return None


def _read_json_file_utf8(config_path: Path) -> Dict[str, Any]:
    try:
        raw_text = config_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise
    except OSError as exception:
        raise OSError(f"Failed to read config file: {config_path}. Error: {exception}") from exception

    try:
        parsed = json.loads(raw_text)
    except json.JSONDecodeError as exception:
        raise ValueError(f"Config file is not valid JSON: {config_path}. Error: {exception}") from exception

    if not isinstance(parsed, dict):
        raise ValueError(f"Config file root must be a JSON object: {config_path}")

    return parsed


def _apply_environment_overrides(config_dict: Dict[str, Any]) -> Dict[str, Any]:
    """
    Environment overrides are optional. The config file is the primary source of truth.

    Override variables:
    - WAYBEAT_SEED
    - WAYBEAT_STRICT_INVARIANTS
    - WAYBEAT_TICK_INTERVAL_MS
    - WAYBEAT_MUSIC_DIR
    - WAYBEAT_VOLUME
    - WAYBEAT_LOG_LEVEL
    """
    def ensure_nested(config_root: Dict[str, Any], section_name: str) -> Dict[str, Any]:
        section = config_root.get(section_name)
        if isinstance(section, dict):
            section = dict(section)
        else:
            section = {}
        config_root[section_name] = section
        return section

    updated_config = dict(config_dict)

    engine_section = ensure_nested(updated_config, "engine")
    audio_section = ensure_nested(updated_config, "audio")
    logging_section = ensure_nested(updated_config, "logging")

    def override_string(env_name: str, target_dict: Dict[str, Any], key_name: str) -> None:
        value_text = os.environ.get(env_name, "")
        if value_text.strip():
            target_dict[key_name] = value_text.strip()

    def override_int(env_name: str, target_dict: Dict[str, Any], key_name: str) -> None:
        value_text = os.environ.get(env_name, "").strip()
        if not value_text:
            return
        try:
            target_dict[key_name] = int(value_text)
        except ValueError:
            return

    def override_float(env_name: str, target_dict: Dict[str, Any], key_name: str) -> None:
        value_text = os.environ.get(env_name, "").strip()
        if not value_text:
            return
        try:
            target_dict[key_name] = float(value_text)
        except ValueError:
            return

    def override_bool(env_name: str, target_dict: Dict[str, Any], key_name: str) -> None:
        value_text = os.environ.get(env_name, "").strip().lower()
        if not value_text:
            return
        truthy = {"1", "true", "yes", "on"}
        falsy = {"0", "false", "no", "off"}
        if value_text in truthy:
            target_dict[key_name] = True
        elif value_text in falsy:
            target_dict[key_name] = False

    override_int("WAYBEAT_SEED", engine_section, "seed")
    override_bool("WAYBEAT_STRICT_INVARIANTS", engine_section, "strict_invariants")
    override_int("WAYBEAT_TICK_INTERVAL_MS", engine_section, "tick_interval_ms")

    override_string("WAYBEAT_MUSIC_DIR", audio_section, "music_dir")
    override_float("WAYBEAT_VOLUME", audio_section, "volume")

    override_string("WAYBEAT_LOG_LEVEL", logging_section, "level")

    return updated_config


def load_config(config_path: Optional[Path] = None) -> Tuple[AppConfig, Optional[Path]]:
    resolved_path = config_path if config_path is not None else _resolve_config_path()
    json_dict: Dict[str, Any] = {}
    if resolved_path is not None:
        json_dict = _read_json_file_utf8(resolved_path)
    json_dict = _apply_environment_overrides(json_dict)

    source_text = str(resolved_path) if resolved_path is not None else "(defaults)"
    try:
        config = AppConfig.model_validate(json_dict)
    except ValidationError as exception:
        raise ValueError(f"Config validation failed for {source_text}:\n{exception}") from exception
    except ValueError as exception:
        raise ValueError(f"Config validation failed for {source_text}:\n{exception}") from exception

    return config, resolved_path


@lru_cache(maxsize=1)
def get_config() -> Tuple[AppConfig, Optional[Path]]:
    return load_config()


def to_json(config: AppConfig) -> str:
    return json.dumps(config.model_dump(mode="json"), ensure_ascii=False, indent=2)


def main() -> int:
    try:
        config, resolved_path = load_config()
    except (OSError, ValueError) as exception:
        error_payload = {"ok": False, "error": str(exception)}
        print(json.dumps(error_payload, ensure_ascii=False, indent=2))
        return 2

    output_payload = {
        "ok": True,
        "config_path": str(resolved_path) if resolved_path is not None else None,
        "config": json.loads(to_json(config)),
    }
    print(json.dumps(output_payload, ensure_ascii=False, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
