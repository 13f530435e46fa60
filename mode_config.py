# -*- coding: utf-8 -*-
########################
# mode_config.py
########################
# Purpose:
# - Immutable per-mode gameplay parameters and the shared playfield geometry.
# - Built-in catalogue of the philosopher modes (Confucius, Xunzi, Laozi, Zhuangzi) plus the
#   single-lane legacy Confucius variant.
#
# Design notes:
# - ModeConfig is a frozen pydantic model validated once when it is built. Invalid records raise
#   ValueError naming the mode key.
# - Overrides from the app config are merged over the built-in record and validated again, so an
#   override can never produce a record the engine would not accept.
# - PlayfieldGeometry is a plain frozen dataclass. All positions are abstract units on one vertical
#   axis: 0 is the spawn point and values grow toward the miss boundary.
# - No Qt usage.
#
########################
# Interfaces:
# Public enums:
# - SpawnPattern: REGULAR | DELAYED_REVEAL | VARIABLE_INTERVAL | LANE_SHIFTING
# - ComboResetPolicy: EVERY_MISS | EVERY_NTH_MISS
#
# Public classes:
# - ModeConfig (pydantic, frozen)
#   - active_lanes -> tuple[int, ...]
#   - is_single_lane -> bool
# - PlayfieldGeometry (frozen dataclass)
#
# Public constants:
# - DEFAULT_GEOMETRY: PlayfieldGeometry
# - MODES: Dict[str, ModeConfig]
# - REFLECTION_PROMPTS: tuple[str, ...]
#
# Public functions:
# - mode_keys() -> List[str]
# - get_mode(mode_key: str, overrides: Optional[Mapping[str, Any]] = None) -> ModeConfig
#
# Inputs:
# - Optional partial override dicts (from config.AppConfig.modes).
#
# Outputs:
# - ModeConfig records injected into RunController at run start.
#
########################

from __future__ import annotations

from dataclasses import dataclass
import enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator


class SpawnPattern(str, enum.Enum):
    REGULAR = "regular"
    DELAYED_REVEAL = "delayed_reveal"
    VARIABLE_INTERVAL = "variable_interval"
    LANE_SHIFTING = "lane_shifting"


class ComboResetPolicy(str, enum.Enum):
    EVERY_MISS = "every_miss"
    EVERY_NTH_MISS = "every_nth_miss"


@dataclass(frozen=True)
class PlayfieldGeometry:
    note_extent: float = 40.0
    zone_top: float = 560.0
    zone_height: float = 80.0
    miss_boundary: float = 640.0
    shift_fraction: float = 0.2
    reappear_band_far: float = 100.0
    reappear_band_near: float = 50.0
    base_speed_per_second: float = 72.0
    min_speed_per_second: float = 6.0

    @property
    def zone_bottom(self) -> float:
        return float(self.zone_top) + float(self.zone_height)

    @property
    def zone_center(self) -> float:
        return float(self.zone_top) + float(self.zone_height) / 2.0

    @property
    def zone_half_extent(self) -> float:
        return float(self.zone_height) / 2.0

    @property
    def shift_threshold(self) -> float:
        return float(self.miss_boundary) * float(self.shift_fraction)

    def overlaps_zone(self, position: float) -> bool:
        """True when a note at `position` physically overlaps the judgment zone."""
        note_top = float(position)
        note_bottom = note_top + float(self.note_extent)
        return note_bottom >= float(self.zone_top) and note_top <= self.zone_bottom

    def note_center(self, position: float) -> float:
        return float(position) + float(self.note_extent) / 2.0

    def distance_to_zone_center(self, position: float) -> float:
        return abs(self.note_center(position) - self.zone_center)


DEFAULT_GEOMETRY = PlayfieldGeometry()


REFLECTION_PROMPTS: Tuple[str, ...] = (
    "Did this rhythm feel natural or forced?",
    "Which rhythm felt the most natural to you?",
    "Consider: Does harmony come from exactness, balance, or letting go? "
    "What does it mean to act in harmony with the Way?",
)


class ModeConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: str = Field(min_length=1)
    name: str = Field(min_length=1)
    full_description: str = Field(default="")
    description: str = Field(default="")
    audio_file: str = Field(default="", description="Track file name, resolved against audio.music_dir.")
    tempo_bpm: int = Field(default=120, gt=0)

    spawn_interval_ms: float = Field(gt=0)
    timing_window_ms: float = Field(gt=0, description="Half-width of the timing window.")
    combo_reset_threshold: int = Field(default=1, ge=1)
    combo_reset_policy: ComboResetPolicy = Field(default=ComboResetPolicy.EVERY_MISS)
    spawn_pattern: SpawnPattern = Field(default=SpawnPattern.REGULAR)

    lane_count: int = Field(default=4)
    spam_penalty_enabled: bool = Field(default=False)
    early_cue_enabled: bool = Field(default=False)
    early_cue_lead_ms: float = Field(default=0.0, ge=0)
    lane_shifting_enabled: bool = Field(default=False)
    shift_probability: float = Field(default=0.0)
    disappear_probability: float = Field(default=0.0)
    interval_range_ms: Optional[Tuple[float, float]] = Field(default=None)

    @model_validator(mode="after")
    def validate_consistency(self) -> "ModeConfig":
        if self.lane_count not in (1, 2, 4):
            raise ValueError("lane_count must be 1, 2 or 4")

        for field_name in ("shift_probability", "disappear_probability"):
            value = float(getattr(self, field_name))
            if value < 0.0 or value > 1.0:
                raise ValueError(f"{field_name} must be within [0, 1]")

        if float(self.timing_window_ms) >= float(self.spawn_interval_ms) / 2.0:
            raise ValueError("timing_window_ms must be less than half of spawn_interval_ms")

        if self.spawn_pattern == SpawnPattern.VARIABLE_INTERVAL:
            if self.interval_range_ms is None:
                raise ValueError("variable_interval pattern requires interval_range_ms")
            minimum_ms, maximum_ms = self.interval_range_ms
            if not (0.0 < float(minimum_ms) <= float(maximum_ms)):
                raise ValueError("interval_range_ms must satisfy 0 < min <= max")
            if float(self.timing_window_ms) >= float(minimum_ms) / 2.0:
                raise ValueError("timing_window_ms must be less than half of the minimum interval")

        if self.spawn_pattern == SpawnPattern.DELAYED_REVEAL:
            if not self.early_cue_enabled or float(self.early_cue_lead_ms) <= 0.0:
                raise ValueError("delayed_reveal pattern requires early_cue_enabled with a positive lead")

        if self.spawn_pattern == SpawnPattern.LANE_SHIFTING and not self.lane_shifting_enabled:
            raise ValueError("lane_shifting pattern requires lane_shifting_enabled")

        if self.lane_shifting_enabled and self.lane_count < 2:
            raise ValueError("lane shifting needs at least two lanes")

        return self

    @property
    def active_lanes(self) -> Tuple[int, ...]:
        return tuple(range(int(self.lane_count)))

    @property
    def is_single_lane(self) -> bool:
        return int(self.lane_count) == 1


def _build_mode(mode_key: str, values: Mapping[str, Any]) -> ModeConfig:
    payload = dict(values)
    payload["key"] = mode_key
    try:
        return ModeConfig.model_validate(payload)
    except ValidationError as exception:
        raise ValueError(f"Invalid mode configuration for '{mode_key}':\n{exception}") from exception


_BUILTIN_MODE_VALUES: Dict[str, Dict[str, Any]] = {
    "confucius": {
        "name": "Confucius",
        "full_description": "Virtue as Habitual Practice",
        "description": (
            "Confucius teaches that harmony comes from moderation and repetition. The rhythm is regular "
            "and moderate. Minor timing errors are forgiven, and consistency is rewarded: virtue is reached "
            "through habitual practice, acting with the right measure at the right time until it becomes natural."
        ),
        "audio_file": "Wild Geese Descending on the Sandbank.mp3",
        "tempo_bpm": 120,
        "spawn_interval_ms": 1000.0,
        "timing_window_ms": 200.0,
        "combo_reset_threshold": 3,
        "spawn_pattern": SpawnPattern.REGULAR,
        "lane_count": 4,
    },
    "xunzi": {
        "name": "Xunzi",
        "full_description": "Discipline and Control",
        "description": (
            "Xunzi argues that humans are born chaotic and must be trained into virtue through rigid ritual. "
            "Timing windows are strict and one mistake resets your points. The beat is mechanical and fast, "
            "with visual cues appearing early to demand planning and control."
        ),
        "audio_file": "Three_Variations_Of_The_Plum_Blossom.mp3",
        "tempo_bpm": 160,
        "spawn_interval_ms": 600.0,
        "timing_window_ms": 50.0,
        "combo_reset_threshold": 1,
        "spawn_pattern": SpawnPattern.DELAYED_REVEAL,
        "lane_count": 4,
        "early_cue_enabled": True,
        "early_cue_lead_ms": 1500.0,
    },
    "laozi": {
        "name": "Laozi",
        "full_description": "Wu Wei: Non-Action",
        "description": (
            "The Daodejing teaches wu wei, acting without forcing and flowing with the Way. Notes arrive "
            "unpredictably. Overreacting or pressing early breaks your streak, so align with the rhythm "
            "instead of forcing control."
        ),
        "audio_file": "The Autumn Moon over the Han Palace.mp3",
        "tempo_bpm": 110,
        "spawn_interval_ms": 1200.0,
        "timing_window_ms": 120.0,
        "combo_reset_threshold": 2,
        "spawn_pattern": SpawnPattern.VARIABLE_INTERVAL,
        "lane_count": 4,
        "spam_penalty_enabled": True,
        "interval_range_ms": (800.0, 1600.0),
    },
    "zhuangzi": {
        "name": "Zhuangzi",
        "full_description": "Spontaneity and Transformation",
        "description": (
            "Zhuangzi celebrates spontaneity and the ever-changing nature of reality. Notes move between "
            "columns or even disappear for a moment. Adapt to surprise and ambiguity, embracing "
            "transformation rather than resisting it."
        ),
        "audio_file": "Butterfly Lovers Violin Concerto - First Movement.mp3",
        "tempo_bpm": 130,
        "spawn_interval_ms": 900.0,
        "timing_window_ms": 100.0,
        "combo_reset_threshold": 2,
        "spawn_pattern": SpawnPattern.LANE_SHIFTING,
        "lane_count": 4,
        "lane_shifting_enabled": True,
        "shift_probability": 0.4,
        "disappear_probability": 0.2,
    },
    "confucius_solo": {
        "name": "Confucius (Single Lane)",
        "full_description": "Steady rhythm rewards consistency and patience",
        "description": "One lane, one key. Press Space as each note crosses the zone.",
        "audio_file": "confucius.mp3",
        "tempo_bpm": 120,
        "spawn_interval_ms": 1000.0,
        "timing_window_ms": 150.0,
        "combo_reset_threshold": 3,
        "spawn_pattern": SpawnPattern.REGULAR,
        "lane_count": 1,
    },
}


MODES: Dict[str, ModeConfig] = {
    mode_key: _build_mode(mode_key, values) for mode_key, values in _BUILTIN_MODE_VALUES.items()
}


def mode_keys() -> List[str]:
    return list(MODES.keys())


def get_mode(mode_key: str, overrides: Optional[Mapping[str, Any]] = None) -> ModeConfig:
    """Return the mode record for `mode_key`, with optional partial overrides applied.

    Raises ValueError for an unknown key or when the merged record fails validation.
    """
    normalized_key = str(mode_key or "").strip().lower()
    base_mode = MODES.get(normalized_key)
    if base_mode is None:
        raise ValueError(f"Unknown mode '{mode_key}'. Known modes: {', '.join(mode_keys())}")

    if not overrides:
        return base_mode

    merged_values = base_mode.model_dump()
    for field_name, value in dict(overrides).items():
        if field_name == "key":
            continue
        if field_name not in ModeConfig.model_fields:
            raise ValueError(f"Unknown field '{field_name}' in overrides for mode '{normalized_key}'")
        merged_values[field_name] = value

    return _build_mode(normalized_key, merged_values)


def _run_unit_tests() -> None:
    geometry = DEFAULT_GEOMETRY
    assert geometry.zone_center == 600.0
    assert geometry.zone_half_extent == 40.0
    assert abs(geometry.shift_threshold - 128.0) < 1e-9
    assert geometry.overlaps_zone(560.0)
    assert geometry.overlaps_zone(520.0)
    assert not geometry.overlaps_zone(519.0)
    assert not geometry.overlaps_zone(641.0)
    assert geometry.distance_to_zone_center(580.0) == 0.0

    assert set(mode_keys()) == {"confucius", "xunzi", "laozi", "zhuangzi", "confucius_solo"}
    assert get_mode("Confucius").active_lanes == (0, 1, 2, 3)
    assert get_mode("confucius_solo").is_single_lane

    relaxed = get_mode("xunzi", {"combo_reset_threshold": 2})
    assert relaxed.combo_reset_threshold == 2
    assert MODES["xunzi"].combo_reset_threshold == 1

    try:
        get_mode("confucius", {"timing_window_ms": 600.0})
    except ValueError as exception:
        assert "confucius" in str(exception)
    else:
        raise AssertionError("expected ValueError for overlapping windows")

    try:
        get_mode("mozi")
    except ValueError:
        pass
    else:
        raise AssertionError("expected ValueError for unknown mode")


if __name__ == "__main__":
    _run_unit_tests()
    print("mode_config.py: ok")
