# -*- coding: utf-8 -*-
########################
# note_motion.py
########################
# Purpose:
# - Per-tick motion and lifecycle updates for every live note.
# - Applies the mode variants (reappear, lane reassignment, early cue), advances positions and
#   expires notes that fall past the miss boundary.
#
# Design notes:
# - No Qt usage. Pure gameplay logic.
# - Steps run in a fixed order per note: reappear, lane reassignment, early cue, advance, boundary.
#   Each step only touches its own flags, so each variant can be tested on its own.
# - Motion is frame-rate independent: a visible note advances by speed * dt_ms / 1000.
# - Current speed = base speed * (1 + progress), so notes fall twice as fast at the end of a run.
# - The lane reassignment roll happens once per note, the first tick it is past the threshold.
#   shift_rolled records the roll, shifted records that a move actually happened.
# - A hidden note does not move, but still counts as live.
#
########################
# Interfaces:
# Public functions:
# - speed_multiplier(progress: float) -> float
# - time_to_zone_ms(note: Note, geometry: PlayfieldGeometry) -> float
#
# Public classes:
# - class NoteMotionUpdater
#   - __init__(*, mode: ModeConfig, geometry: PlayfieldGeometry, rng: random.Random)
#   - update(*, now_ms: float, dt_ms: float, progress: float, registry: NoteRegistry) -> list[Miss]
#
# Inputs:
# - Tick timing from RunController.
#
# Outputs:
# - Mutated Note state and Miss outcomes for the scoring model.
#
########################

from __future__ import annotations

import logging
import random
from typing import List

import gameplay_models
import mode_config
import note_registry


logger = logging.getLogger(__name__)


def speed_multiplier(progress: float) -> float:
    clamped = min(max(float(progress), 0.0), 1.0)
    return 1.0 + clamped


def time_to_zone_ms(note: gameplay_models.Note, geometry: mode_config.PlayfieldGeometry) -> float:
    """Projected milliseconds until the note's leading edge reaches the zone top at current speed."""
    distance = float(geometry.zone_top) - float(note.position)
    speed = max(float(note.speed), float(geometry.min_speed_per_second))
    return distance / speed * 1000.0


class NoteMotionUpdater:
    def __init__(
        self,
        *,
        mode: mode_config.ModeConfig,
        geometry: mode_config.PlayfieldGeometry,
        rng: random.Random,
    ) -> None:
        self._mode = mode
        self._geometry = geometry
        self._rng = rng

    def _reappear_if_due(self, note: gameplay_models.Note, now_ms: float) -> bool:
        if note.visible:
            return True
        if note.reappear_at_ms is None or float(now_ms) < float(note.reappear_at_ms):
            return False

        band_width = float(self._geometry.reappear_band_far) - float(self._geometry.reappear_band_near)
        note.position = float(self._geometry.zone_top) - float(self._geometry.reappear_band_far) + self._rng.random() * band_width
        note.visible = True
        note.reappear_at_ms = None
        # reappearing notes land past the shift threshold and never shift
        note.shift_rolled = True
        logger.debug("Note %d reappeared at %.1f", note.note_id, note.position)
        return True

    def _maybe_shift_lane(self, note: gameplay_models.Note) -> None:
        if not self._mode.lane_shifting_enabled or note.shift_rolled or note.shifted:
            return
        if float(note.position) < float(self._geometry.shift_threshold):
            return

        note.shift_rolled = True
        if self._rng.random() >= float(self._mode.shift_probability):
            return

        other_lanes = [lane for lane in self._mode.active_lanes if lane != int(note.lane)]
        if not other_lanes:
            return

        previous_lane = int(note.lane)
        note.lane = int(self._rng.choice(other_lanes))
        note.shifted = True
        logger.debug("Note %d shifted lane %d -> %d", note.note_id, previous_lane, note.lane)

    def _maybe_show_cue(self, note: gameplay_models.Note) -> None:
        if not self._mode.early_cue_enabled or not note.cue_eligible or note.cue_shown:
            return
        remaining_ms = time_to_zone_ms(note, self._geometry)
        if 0.0 < remaining_ms <= float(self._mode.early_cue_lead_ms):
            note.cue_shown = True

    def update(
        self,
        *,
        now_ms: float,
        dt_ms: float,
        progress: float,
        registry: note_registry.NoteRegistry,
    ) -> List[gameplay_models.Miss]:
        misses: List[gameplay_models.Miss] = []
        step_seconds = max(0.0, float(dt_ms)) / 1000.0
        multiplier = speed_multiplier(progress)

        for note in registry.live_notes():
            note.speed = float(note.base_speed) * multiplier

            if not self._reappear_if_due(note, now_ms):
                continue

            self._maybe_shift_lane(note)
            self._maybe_show_cue(note)

            note.position = float(note.position) + float(note.speed) * step_seconds

            if float(note.position) > float(self._geometry.miss_boundary):
                if registry.remove(note):
                    misses.append(gameplay_models.Miss(note=note))

        return misses


def _run_unit_tests() -> None:
    geometry = mode_config.DEFAULT_GEOMETRY
    assert speed_multiplier(0.0) == 1.0
    assert speed_multiplier(0.5) == 1.5
    assert speed_multiplier(3.0) == 2.0

    mode = mode_config.get_mode("confucius")
    registry = note_registry.NoteRegistry(active_lanes=mode.active_lanes, strict=True)
    updater = NoteMotionUpdater(mode=mode, geometry=geometry, rng=random.Random(1))
    note = registry.insert(lane=1, position=0.0, base_speed=72.0, now_ms=0.0)
    assert note is not None

    updater.update(now_ms=1000.0, dt_ms=1000.0, progress=0.0, registry=registry)
    assert abs(note.position - 72.0) < 1e-9
    updater.update(now_ms=2000.0, dt_ms=1000.0, progress=1.0, registry=registry)
    assert abs(note.position - 216.0) < 1e-9

    note.position = 639.0
    misses = updater.update(now_ms=2100.0, dt_ms=100.0, progress=0.0, registry=registry)
    assert len(misses) == 1 and misses[0].note is note
    assert note.judged and len(registry) == 0

    hidden = registry.insert(lane=0, position=0.0, base_speed=72.0, now_ms=0.0)
    assert hidden is not None
    hidden.visible = False
    hidden.reappear_at_ms = 500.0
    updater.update(now_ms=400.0, dt_ms=100.0, progress=0.0, registry=registry)
    assert hidden.position == 0.0 and not hidden.visible
    updater.update(now_ms=500.0, dt_ms=100.0, progress=0.0, registry=registry)
    assert hidden.visible
    assert geometry.zone_top - 100.0 <= hidden.position <= geometry.zone_top - 50.0 + 7.2 + 1e-9

    xunzi = mode_config.get_mode("xunzi")
    cue_registry = note_registry.NoteRegistry(active_lanes=xunzi.active_lanes, strict=True)
    cue_updater = NoteMotionUpdater(mode=xunzi, geometry=geometry, rng=random.Random(1))
    cue_note = cue_registry.insert(lane=0, position=0.0, base_speed=72.0, now_ms=0.0)
    assert cue_note is not None
    cue_note.cue_eligible = True
    cue_updater.update(now_ms=10.0, dt_ms=10.0, progress=0.0, registry=cue_registry)
    assert not cue_note.cue_shown
    cue_note.position = 500.0
    cue_updater.update(now_ms=20.0, dt_ms=10.0, progress=0.0, registry=cue_registry)
    assert cue_note.cue_shown


if __name__ == "__main__":
    _run_unit_tests()
    print("note_motion.py: ok")
