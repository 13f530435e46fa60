# -*- coding: utf-8 -*-
########################
# judge.py
########################
# Purpose:
# - Resolve a discrete lane press against the live notes.
# - Classifies the press as Hit, WrongLane or EmptyPress and computes timing accuracy.
#
# Design notes:
# - No Qt usage. Pure gameplay logic.
# - Judgement is purely geometric. Physical overlap with the judgment zone is the precondition for
#   a hit; distance from the zone center (converted to milliseconds at the note's current speed)
#   is the accuracy measure.
# - Only visible, not-yet-judged notes are considered. A hit removes its note through
#   NoteRegistry.remove(), the single removal path.
# - Tie break: closest to zone center wins, equal distances go to the lower note id (earlier spawn).
# - WrongLane needs more than one active lane. Single-lane modes map a lane-less press to lane 0.
# - Grades are display-only and never change points.
#
########################
# Interfaces:
# Public dataclasses:
# - GradeWindows(perfect_ms: float, great_ms: float)
#   - for_timing_window(timing_window_ms: float) -> GradeWindows
#   - classify_timing(timing_ms: float) -> str
#
# Public functions:
# - timing_ms_for_distance(distance: float, speed: float, geometry: PlayfieldGeometry) -> float
#
# Public classes:
# - class JudgeEngine
#   - __init__(*, mode: ModeConfig, geometry: PlayfieldGeometry, registry: NoteRegistry)
#   - grade_windows() -> GradeWindows
#   - normalize_lane(lane: Optional[int]) -> Optional[int]
#   - resolve_press(lane: Optional[int]) -> Optional[JudgementOutcome]
#   - grade_for(hit: Hit) -> str
#
# Inputs:
# - Lane presses from RunController.on_press (already stamped with the press time).
#
# Outputs:
# - JudgementOutcome values consumed once by the scoring model.
#
########################

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import List, Optional, Tuple

import gameplay_models
import mode_config
import note_registry


logger = logging.getLogger(__name__)

PERFECT_FRACTION = 0.3
GREAT_FRACTION = 0.6


@dataclass(frozen=True)
class GradeWindows:
    perfect_ms: float
    great_ms: float

    @classmethod
    def for_timing_window(cls, timing_window_ms: float) -> "GradeWindows":
        window = float(timing_window_ms)
        return cls(perfect_ms=window * PERFECT_FRACTION, great_ms=window * GREAT_FRACTION)

    def classify_timing(self, timing_ms: float) -> str:
        abs_timing = abs(float(timing_ms))
        if abs_timing <= float(self.perfect_ms):
            return "perfect"
        if abs_timing <= float(self.great_ms):
            return "great"
        return "good"


def timing_ms_for_distance(distance: float, speed: float, geometry: mode_config.PlayfieldGeometry) -> float:
    effective_speed = max(float(speed), float(geometry.min_speed_per_second))
    return float(distance) / effective_speed * 1000.0


class JudgeEngine:
    def __init__(
        self,
        *,
        mode: mode_config.ModeConfig,
        geometry: mode_config.PlayfieldGeometry,
        registry: note_registry.NoteRegistry,
    ) -> None:
        self._mode = mode
        self._geometry = geometry
        self._registry = registry
        self._grade_windows = GradeWindows.for_timing_window(mode.timing_window_ms)

    def grade_windows(self) -> GradeWindows:
        return self._grade_windows

    def normalize_lane(self, lane: Optional[int]) -> Optional[int]:
        """Map a raw press lane to an active lane, or None when the press is not addressable."""
        if lane is None:
            return 0 if self._mode.is_single_lane else None
        try:
            lane_value = int(lane)
        except (TypeError, ValueError):
            return None
        if lane_value not in self._mode.active_lanes:
            return None
        return lane_value

    def _candidates(self) -> List[gameplay_models.Note]:
        return [note for note in self._registry.live_notes() if note.visible and not note.judged]

    def _closest_in_zone(self, notes: List[gameplay_models.Note]) -> Optional[Tuple[gameplay_models.Note, float]]:
        best_note: Optional[gameplay_models.Note] = None
        best_distance = 0.0
        for note in notes:
            if not self._geometry.overlaps_zone(note.position):
                continue
            distance = self._geometry.distance_to_zone_center(note.position)
            if best_note is None or distance < best_distance:
                best_note = note
                best_distance = distance
            elif distance == best_distance and int(note.note_id) < int(best_note.note_id):
                best_note = note
        if best_note is None:
            return None
        return best_note, best_distance

    def resolve_press(self, lane: Optional[int]) -> Optional[gameplay_models.JudgementOutcome]:
        pressed_lane = self.normalize_lane(lane)
        if pressed_lane is None:
            return None

        candidates = self._candidates()

        primary = self._closest_in_zone([note for note in candidates if int(note.lane) == pressed_lane])
        if primary is not None:
            note, distance = primary
            if not self._registry.remove(note):
                return None
            timing_ms = timing_ms_for_distance(distance, note.speed, self._geometry)
            logger.debug("Hit note %d lane %d distance %.2f timing %.1fms", note.note_id, pressed_lane, distance, timing_ms)
            return gameplay_models.Hit(note=note, distance=float(distance), timing_ms=float(timing_ms))

        if len(self._mode.active_lanes) > 1:
            other = self._closest_in_zone([note for note in candidates if int(note.lane) != pressed_lane])
            if other is not None:
                other_note, _distance = other
                return gameplay_models.WrongLane(pressed_lane=pressed_lane, note_lane=int(other_note.lane))

        return gameplay_models.EmptyPress(lane=pressed_lane)

    def grade_for(self, hit: gameplay_models.Hit) -> str:
        return self._grade_windows.classify_timing(hit.timing_ms)


def _run_unit_tests() -> None:
    windows = GradeWindows.for_timing_window(200.0)
    assert windows.classify_timing(60.0) == "perfect"
    assert windows.classify_timing(-100.0) == "great"
    assert windows.classify_timing(500.0) == "good"

    geometry = mode_config.DEFAULT_GEOMETRY
    mode = mode_config.get_mode("confucius")
    registry = note_registry.NoteRegistry(active_lanes=mode.active_lanes, strict=True)
    engine = JudgeEngine(mode=mode, geometry=geometry, registry=registry)

    centered = registry.insert(lane=1, position=580.0, base_speed=72.0, now_ms=0.0)
    assert centered is not None
    outcome = engine.resolve_press(1)
    assert isinstance(outcome, gameplay_models.Hit)
    assert outcome.note is centered and outcome.distance == 0.0 and outcome.timing_ms == 0.0
    assert engine.grade_for(outcome) == "perfect"
    assert len(registry) == 0

    registry.insert(lane=2, position=570.0, base_speed=72.0, now_ms=0.0)
    wrong = engine.resolve_press(0)
    assert isinstance(wrong, gameplay_models.WrongLane)
    assert (wrong.pressed_lane, wrong.note_lane) == (0, 2)

    registry.clear()
    registry.insert(lane=3, position=100.0, base_speed=72.0, now_ms=0.0)
    assert isinstance(engine.resolve_press(3), gameplay_models.EmptyPress)
    assert engine.resolve_press(None) is None
    assert engine.resolve_press(9) is None

    first = registry.insert(lane=0, position=570.0, base_speed=72.0, now_ms=0.0)
    registry.insert(lane=0, position=590.0, base_speed=72.0, now_ms=0.0)
    tie = engine.resolve_press(0)
    assert isinstance(tie, gameplay_models.Hit) and tie.note is first

    solo = mode_config.get_mode("confucius_solo")
    solo_registry = note_registry.NoteRegistry(active_lanes=solo.active_lanes, strict=True)
    solo_engine = JudgeEngine(mode=solo, geometry=geometry, registry=solo_registry)
    solo_registry.insert(lane=0, position=560.0, base_speed=72.0, now_ms=0.0)
    assert isinstance(solo_engine.resolve_press(None), gameplay_models.Hit)


if __name__ == "__main__":
    _run_unit_tests()
    print("judge.py: ok")
