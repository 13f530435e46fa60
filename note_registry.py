# -*- coding: utf-8 -*-
########################
# note_registry.py
########################
# Purpose:
# - Own the set of live notes for a run: identity, lane, position and lifecycle flags.
# - Provide the queries used by the motion updater, the judge and the render sink.
#
# Design notes:
# - No Qt usage. Pure gameplay logic.
# - Note ids come from a monotonic counter and are never reused, not even after clear().
# - remove() is the single removal path. It marks the note judged before dropping it, so the
#   registry never holds a judged note and a note can be judged at most once.
# - Programming errors (inactive lane on insert, removing a note that is not live) are reported
#   through report_invariant_violation(): raised in strict mode, logged and dropped otherwise.
# - Iteration order is insertion order, which is also ascending id order.
#
########################
# Interfaces:
# Public functions:
# - report_invariant_violation(message: str, *, strict: bool) -> None
#
# Public classes:
# - class NoteRegistry
#   - __init__(*, active_lanes: Sequence[int], strict: bool = False)
#   - insert(*, lane: int, position: float, base_speed: float, now_ms: float) -> Optional[Note]
#   - remove(note: Note) -> bool
#   - get(note_id: int) -> Optional[Note]
#   - live_notes() -> list[Note]
#   - notes_in_lane(lane: int) -> list[Note]
#   - occupied_lanes() -> set[int]
#   - views() -> list[NoteView]
#   - clear() -> None
#   - set_active_lanes(active_lanes: Sequence[int]) -> None
#
# Inputs:
# - Spawn requests from SpawnScheduler, removals from NoteMotionUpdater and JudgeEngine.
#
# Outputs:
# - Live Note objects and NoteView snapshots.
#
########################

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence, Set

import gameplay_models


logger = logging.getLogger(__name__)


def report_invariant_violation(message: str, *, strict: bool) -> None:
    if strict:
        raise gameplay_models.InvariantViolation(str(message))
    logger.error("Invariant violation (operation dropped): %s", message)


class NoteRegistry:
    def __init__(self, *, active_lanes: Sequence[int], strict: bool = False) -> None:
        self._strict = bool(strict)
        self._active_lanes: Set[int] = set()
        self._notes: Dict[int, gameplay_models.Note] = {}
        self._next_id = 1
        self.set_active_lanes(active_lanes)

    def set_active_lanes(self, active_lanes: Sequence[int]) -> None:
        self._active_lanes = {int(lane) for lane in active_lanes}

    def active_lanes(self) -> List[int]:
        return sorted(self._active_lanes)

    def insert(
        self,
        *,
        lane: int,
        position: float,
        base_speed: float,
        now_ms: float,
    ) -> Optional[gameplay_models.Note]:
        lane_value = int(lane)
        if lane_value not in self._active_lanes:
            report_invariant_violation(
                f"spawn into inactive lane {lane_value} (active: {self.active_lanes()})",
                strict=self._strict,
            )
            return None

        note = gameplay_models.Note(
            note_id=int(self._next_id),
            lane=lane_value,
            position=float(position),
            base_speed=float(base_speed),
            speed=float(base_speed),
            spawn_time_ms=float(now_ms),
        )
        self._next_id += 1
        self._notes[note.note_id] = note
        return note

    def remove(self, note: gameplay_models.Note) -> bool:
        live_note = self._notes.get(int(note.note_id))
        if live_note is None or live_note is not note or note.judged:
            report_invariant_violation(
                f"note {int(note.note_id)} is not live (already judged or expired)",
                strict=self._strict,
            )
            return False

        note.judged = True
        del self._notes[int(note.note_id)]
        return True

    def get(self, note_id: int) -> Optional[gameplay_models.Note]:
        return self._notes.get(int(note_id))

    def live_notes(self) -> List[gameplay_models.Note]:
        return list(self._notes.values())

    def notes_in_lane(self, lane: int) -> List[gameplay_models.Note]:
        lane_value = int(lane)
        return [note for note in self._notes.values() if int(note.lane) == lane_value]

    def occupied_lanes(self) -> Set[int]:
        return {int(note.lane) for note in self._notes.values()}

    def views(self) -> List[gameplay_models.NoteView]:
        return [note.view() for note in self._notes.values()]

    def clear(self) -> None:
        for note in self._notes.values():
            note.judged = True
        self._notes.clear()

    def __len__(self) -> int:
        return len(self._notes)


def _run_unit_tests() -> None:
    registry = NoteRegistry(active_lanes=[0, 1, 2, 3], strict=True)
    first = registry.insert(lane=2, position=0.0, base_speed=72.0, now_ms=0.0)
    second = registry.insert(lane=0, position=0.0, base_speed=72.0, now_ms=10.0)
    assert first is not None and second is not None
    assert (first.note_id, second.note_id) == (1, 2)
    assert registry.occupied_lanes() == {0, 2}
    assert [note.note_id for note in registry.notes_in_lane(2)] == [1]

    assert registry.remove(first)
    assert first.judged
    assert registry.get(1) is None

    try:
        registry.remove(first)
    except gameplay_models.InvariantViolation:
        pass
    else:
        raise AssertionError("double removal must be reported")

    try:
        registry.insert(lane=7, position=0.0, base_speed=72.0, now_ms=0.0)
    except gameplay_models.InvariantViolation:
        pass
    else:
        raise AssertionError("inactive lane must be reported")

    lenient = NoteRegistry(active_lanes=[0], strict=False)
    assert lenient.insert(lane=3, position=0.0, base_speed=72.0, now_ms=0.0) is None
    assert len(lenient) == 0

    registry.clear()
    third = registry.insert(lane=1, position=0.0, base_speed=72.0, now_ms=20.0)
    assert third is not None and third.note_id == 3
    assert second.judged


if __name__ == "__main__":
    _run_unit_tests()
    print("note_registry.py: ok")
