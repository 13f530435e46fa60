# -*- coding: utf-8 -*-
########################
# spawn_scheduler.py
########################
# Purpose:
# - Decide when to create a new note and in which lane, per the active mode's spawn pattern.
# - Mark per-note variant state at spawn time (early cue eligibility, hidden start).
#
# Design notes:
# - No Qt usage. Pure gameplay logic.
# - All random draws come from the injected random.Random so runs are reproducible by seed.
# - The first spawn happens one interval after the run starts, then one interval after each spawn.
#   At most one note is spawned per tick.
# - Variable-interval: every spawn draws its own next interval uniformly from [min, max]. Draws are
#   independent, so consecutive intervals do not correlate.
# - Lane-shifting: with the mode's shift probability the scheduler prefers a lane that holds no live
#   note; otherwise (or when every lane is occupied) the lane is uniform over active lanes.
# - Disappear roll: each spawned note independently starts hidden with the mode's disappear
#   probability, reappearing 300 to 700 ms later.
#
########################
# Interfaces:
# Public constants:
# - REAPPEAR_DELAY_MIN_MS, REAPPEAR_DELAY_SPAN_MS
#
# Public classes:
# - class SpawnScheduler
#   - __init__(*, mode: ModeConfig, geometry: PlayfieldGeometry, rng: random.Random)
#   - reset(now_ms: float) -> None
#   - next_interval_ms() -> float
#   - drawn_intervals() -> list[float]
#   - choose_lane(registry: NoteRegistry) -> int
#   - update_for_time(*, now_ms: float, registry: NoteRegistry) -> list[Note]
#
# Inputs:
# - now_ms from RunController, live lane occupancy from NoteRegistry.
#
# Outputs:
# - New Note objects inserted into NoteRegistry.
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

REAPPEAR_DELAY_MIN_MS = 300.0
REAPPEAR_DELAY_SPAN_MS = 400.0


class SpawnScheduler:
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
        self._last_spawn_ms = 0.0
        self._next_interval_ms = float(mode.spawn_interval_ms)
        self._drawn_intervals: List[float] = []

    def reset(self, now_ms: float) -> None:
        self._last_spawn_ms = float(now_ms)
        self._drawn_intervals = []
        self._next_interval_ms = self._draw_interval_ms()

    def next_interval_ms(self) -> float:
        return float(self._next_interval_ms)

    def drawn_intervals(self) -> List[float]:
        return list(self._drawn_intervals)

    def _draw_interval_ms(self) -> float:
        if self._mode.spawn_pattern == mode_config.SpawnPattern.VARIABLE_INTERVAL and self._mode.interval_range_ms:
            minimum_ms, maximum_ms = self._mode.interval_range_ms
            interval_ms = self._rng.uniform(float(minimum_ms), float(maximum_ms))
        else:
            interval_ms = float(self._mode.spawn_interval_ms)
        self._drawn_intervals.append(float(interval_ms))
        return float(interval_ms)

    def choose_lane(self, registry: note_registry.NoteRegistry) -> int:
        active_lanes = list(self._mode.active_lanes)
        if len(active_lanes) == 1:
            return int(active_lanes[0])

        if self._mode.spawn_pattern == mode_config.SpawnPattern.LANE_SHIFTING:
            if self._rng.random() < float(self._mode.shift_probability) and len(registry) > 0:
                occupied = registry.occupied_lanes()
                free_lanes = [lane for lane in active_lanes if lane not in occupied]
                if free_lanes:
                    return int(self._rng.choice(free_lanes))

        return int(self._rng.choice(active_lanes))

    def _spawn(self, *, now_ms: float, registry: note_registry.NoteRegistry) -> List[gameplay_models.Note]:
        lane = self.choose_lane(registry)
        note = registry.insert(
            lane=lane,
            position=0.0,
            base_speed=float(self._geometry.base_speed_per_second),
            now_ms=now_ms,
        )
        if note is None:
            return []

        note.cue_eligible = bool(self._mode.early_cue_enabled)

        disappear_probability = float(self._mode.disappear_probability)
        if disappear_probability > 0.0 and self._rng.random() < disappear_probability:
            note.visible = False
            note.reappear_at_ms = float(now_ms) + REAPPEAR_DELAY_MIN_MS + self._rng.random() * REAPPEAR_DELAY_SPAN_MS

        logger.debug(
            "Spawned note %d in lane %d (hidden=%s, cue=%s)",
            note.note_id,
            note.lane,
            not note.visible,
            note.cue_eligible,
        )
        return [note]

    def update_for_time(
        self,
        *,
        now_ms: float,
        registry: note_registry.NoteRegistry,
    ) -> List[gameplay_models.Note]:
        now_value = float(now_ms)
        if now_value - float(self._last_spawn_ms) < float(self._next_interval_ms):
            return []

        spawned = self._spawn(now_ms=now_value, registry=registry)
        self._last_spawn_ms = now_value
        self._next_interval_ms = self._draw_interval_ms()
        return spawned


def _run_unit_tests() -> None:
    mode = mode_config.get_mode("confucius")
    registry = note_registry.NoteRegistry(active_lanes=mode.active_lanes, strict=True)
    scheduler = SpawnScheduler(mode=mode, geometry=mode_config.DEFAULT_GEOMETRY, rng=random.Random(7))
    scheduler.reset(0.0)

    assert scheduler.update_for_time(now_ms=999.0, registry=registry) == []
    spawned = scheduler.update_for_time(now_ms=1000.0, registry=registry)
    assert len(spawned) == 1 and spawned[0].lane in mode.active_lanes
    assert scheduler.update_for_time(now_ms=1500.0, registry=registry) == []
    assert len(scheduler.update_for_time(now_ms=2000.0, registry=registry)) == 1

    laozi = mode_config.get_mode("laozi")
    variable = SpawnScheduler(mode=laozi, geometry=mode_config.DEFAULT_GEOMETRY, rng=random.Random(11))
    variable.reset(0.0)
    laozi_registry = note_registry.NoteRegistry(active_lanes=laozi.active_lanes, strict=True)
    now_ms = 0.0
    for _ in range(200):
        now_ms += variable.next_interval_ms() + 0.5
        assert len(variable.update_for_time(now_ms=now_ms, registry=laozi_registry)) == 1
    for interval_ms in variable.drawn_intervals():
        assert 800.0 <= interval_ms <= 1600.0

    solo = mode_config.get_mode("confucius_solo")
    solo_registry = note_registry.NoteRegistry(active_lanes=solo.active_lanes, strict=True)
    solo_scheduler = SpawnScheduler(mode=solo, geometry=mode_config.DEFAULT_GEOMETRY, rng=random.Random(3))
    for _ in range(10):
        assert solo_scheduler.choose_lane(solo_registry) == 0


if __name__ == "__main__":
    _run_unit_tests()
    print("spawn_scheduler.py: ok")
