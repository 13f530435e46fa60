# -*- coding: utf-8 -*-
########################
# gameplay_models.py
########################
# Purpose:
# - Core gameplay data models for the note lifecycle engine.
# - Defines the live Note entity, input events, judgement outcomes, and the events
#   handed to the render sink.
#
# Design notes:
# - Keep these models stable. Prefer extending with new optional fields rather than breaking changes.
# - No Qt usage. These are plain dataclasses.
# - Note is the only mutable model. It is owned by NoteRegistry from spawn until judged or expired.
# - All times are milliseconds.
#
########################
# Interfaces:
# Public exceptions:
# - InvariantViolation(RuntimeError)
#
# Public enums:
# - JudgementKind: HIT | WRONG_LANE | EMPTY_PRESS | MISS
#
# Public dataclasses:
# - Note(note_id: int, lane: int, position: float, base_speed: float, speed: float, ...)
#   - view() -> NoteView
# - NoteView(note_id: int, lane: int, position: float, visible: bool, cue_shown: bool)
# - InputEvent(time_ms: float, lane: Optional[int])
# - Hit(note: Note, distance: float, timing_ms: float)
# - WrongLane(pressed_lane: int, note_lane: int)
# - EmptyPress(lane: Optional[int])
# - Miss(note: Note)
# - JudgementEvent(time_ms: float, kind: JudgementKind, lane: Optional[int], note_id: Optional[int],
#                  points_delta: int, grade: Optional[str], timing_ms: Optional[float], ...)
# - RunSummary(mode_key: str, final_score: int, max_combo: int, hits: int, misses: int,
#              hit_percentage: int, elapsed_ms: float, ended_by: str)
#
# Inputs/Outputs:
# - These types are exchanged between SpawnScheduler, NoteRegistry, NoteMotionUpdater, JudgeEngine,
#   the scoring model, RunController, and the Qt host modules.
#
########################

from __future__ import annotations

from dataclasses import dataclass
import enum
from typing import Optional, Union


class InvariantViolation(RuntimeError):
    """A programming error inside the engine (never a player mistake)."""


class JudgementKind(enum.Enum):
    HIT = "hit"
    WRONG_LANE = "wrong_lane"
    EMPTY_PRESS = "empty_press"
    MISS = "miss"


@dataclass
class Note:
    note_id: int
    lane: int
    position: float
    base_speed: float
    speed: float
    spawn_time_ms: float
    visible: bool = True
    reappear_at_ms: Optional[float] = None
    cue_eligible: bool = False
    cue_shown: bool = False
    shift_rolled: bool = False
    shifted: bool = False
    judged: bool = False

    def view(self) -> "NoteView":
        return NoteView(
            note_id=int(self.note_id),
            lane=int(self.lane),
            position=float(self.position),
            visible=bool(self.visible),
            cue_shown=bool(self.cue_shown),
        )


@dataclass(frozen=True)
class NoteView:
    note_id: int
    lane: int
    position: float
    visible: bool
    cue_shown: bool


@dataclass(frozen=True)
class InputEvent:
    time_ms: float
    lane: Optional[int]


@dataclass(frozen=True)
class Hit:
    note: Note
    distance: float
    timing_ms: float


@dataclass(frozen=True)
class WrongLane:
    pressed_lane: int
    note_lane: int


@dataclass(frozen=True)
class EmptyPress:
    lane: Optional[int]


@dataclass(frozen=True)
class Miss:
    note: Note


JudgementOutcome = Union[Hit, WrongLane, EmptyPress, Miss]


def outcome_kind(outcome: JudgementOutcome) -> JudgementKind:
    if isinstance(outcome, Hit):
        return JudgementKind.HIT
    if isinstance(outcome, WrongLane):
        return JudgementKind.WRONG_LANE
    if isinstance(outcome, Miss):
        return JudgementKind.MISS
    return JudgementKind.EMPTY_PRESS


@dataclass(frozen=True)
class JudgementEvent:
    time_ms: float
    kind: JudgementKind
    lane: Optional[int]
    note_id: Optional[int]
    points_delta: int
    grade: Optional[str] = None
    timing_ms: Optional[float] = None
    threshold_reached: bool = False
    spam_penalized: bool = False


@dataclass(frozen=True)
class RunSummary:
    mode_key: str
    final_score: int
    max_combo: int
    hits: int
    misses: int
    hit_percentage: int
    elapsed_ms: float
    ended_by: str


def _run_unit_tests() -> None:
    note = Note(note_id=3, lane=2, position=100.0, base_speed=72.0, speed=72.0, spawn_time_ms=0.0)
    view = note.view()
    assert view.note_id == 3 and view.lane == 2 and view.visible and not view.cue_shown

    assert outcome_kind(Hit(note=note, distance=0.0, timing_ms=0.0)) is JudgementKind.HIT
    assert outcome_kind(WrongLane(pressed_lane=0, note_lane=1)) is JudgementKind.WRONG_LANE
    assert outcome_kind(EmptyPress(lane=None)) is JudgementKind.EMPTY_PRESS
    assert outcome_kind(Miss(note=note)) is JudgementKind.MISS


if __name__ == "__main__":
    _run_unit_tests()
    print("gameplay_models.py: ok")
