"""Tests for per-tick note motion: speed ramp, reappear, lane shift, early cue and miss."""
import random

import pytest

import mode_config
import note_registry
from note_motion import NoteMotionUpdater, speed_multiplier, time_to_zone_ms


def _updater(mode_key, geometry, seed=1, overrides=None):
    mode = mode_config.get_mode(mode_key, overrides)
    registry = note_registry.NoteRegistry(active_lanes=mode.active_lanes, strict=True)
    updater = NoteMotionUpdater(mode=mode, geometry=geometry, rng=random.Random(seed))
    return mode, registry, updater


class TestSpeed:
    """Speed ramp and advance."""

    @pytest.mark.parametrize("progress, expected", [(0.0, 1.0), (0.25, 1.25), (1.0, 2.0), (-1.0, 1.0), (5.0, 2.0)])
    def test_multiplier_clamped(self, progress, expected):
        assert speed_multiplier(progress) == pytest.approx(expected)

    def test_advance_uses_speed_and_dt(self, geometry):
        _mode, registry, updater = _updater("confucius", geometry)
        note = registry.insert(lane=0, position=100.0, base_speed=72.0, now_ms=0.0)
        updater.update(now_ms=500.0, dt_ms=500.0, progress=0.5, registry=registry)
        assert note.speed == pytest.approx(108.0)
        assert note.position == pytest.approx(154.0)

    def test_time_to_zone_uses_speed_floor(self, geometry, make_registry):
        registry = make_registry()
        note = registry.insert(lane=0, position=500.0, base_speed=72.0, now_ms=0.0)
        note.speed = 1.0
        assert time_to_zone_ms(note, geometry) == pytest.approx(60.0 / 6.0 * 1000.0)


class TestMiss:
    """Notes past the miss boundary."""

    def test_miss_removes_note_once(self, geometry):
        _mode, registry, updater = _updater("confucius", geometry)
        note = registry.insert(lane=2, position=639.5, base_speed=72.0, now_ms=0.0)
        misses = updater.update(now_ms=100.0, dt_ms=100.0, progress=0.0, registry=registry)
        assert [miss.note for miss in misses] == [note]
        assert note.judged
        assert updater.update(now_ms=200.0, dt_ms=100.0, progress=0.0, registry=registry) == []

    def test_note_at_boundary_is_not_missed(self, geometry):
        _mode, registry, updater = _updater("confucius", geometry)
        note = registry.insert(lane=2, position=640.0, base_speed=72.0, now_ms=0.0)
        assert updater.update(now_ms=0.0, dt_ms=0.0, progress=0.0, registry=registry) == []
        assert not note.judged


class TestReappear:
    """Hidden notes hold position until their reappear time."""

    def test_hidden_note_frozen_then_placed_in_band(self, geometry):
        _mode, registry, updater = _updater("zhuangzi", geometry, overrides={"shift_probability": 0.0})
        note = registry.insert(lane=1, position=0.0, base_speed=72.0, now_ms=0.0)
        note.visible = False
        note.reappear_at_ms = 600.0

        updater.update(now_ms=300.0, dt_ms=300.0, progress=0.0, registry=registry)
        assert not note.visible and note.position == 0.0

        updater.update(now_ms=600.0, dt_ms=0.0, progress=0.0, registry=registry)
        assert note.visible
        assert note.reappear_at_ms is None
        assert geometry.zone_top - 100.0 <= note.position <= geometry.zone_top - 50.0

    @pytest.mark.parametrize("seed", range(20))
    def test_reappeared_note_keeps_its_lane(self, geometry, seed):
        _mode, registry, updater = _updater("zhuangzi", geometry, seed=seed, overrides={"shift_probability": 1.0})
        note = registry.insert(lane=2, position=0.0, base_speed=72.0, now_ms=0.0)
        note.visible = False
        note.reappear_at_ms = 400.0

        for step in range(10):
            updater.update(now_ms=400.0 + step * 16.0, dt_ms=16.0, progress=0.0, registry=registry)
        assert note.visible
        assert note.position > geometry.shift_threshold
        assert not note.shifted
        assert note.lane == 2

    def test_hidden_note_cannot_miss(self, geometry):
        _mode, registry, updater = _updater("zhuangzi", geometry)
        note = registry.insert(lane=1, position=639.0, base_speed=72.0, now_ms=0.0)
        note.visible = False
        note.reappear_at_ms = 10_000.0
        assert updater.update(now_ms=1000.0, dt_ms=1000.0, progress=0.0, registry=registry) == []
        assert note.position == 639.0


class TestLaneShift:
    """Zhuangzi mid-flight lane change."""

    def test_shift_happens_once_at_threshold(self, geometry):
        mode, registry, updater = _updater("zhuangzi", geometry, overrides={"shift_probability": 1.0})
        note = registry.insert(lane=0, position=geometry.shift_threshold - 1.0, base_speed=72.0, now_ms=0.0)

        updater.update(now_ms=0.0, dt_ms=0.0, progress=0.0, registry=registry)
        assert not note.shifted and note.lane == 0

        note.position = geometry.shift_threshold
        updater.update(now_ms=16.0, dt_ms=16.0, progress=0.0, registry=registry)
        assert note.shifted and note.shift_rolled
        shifted_lane = note.lane
        assert shifted_lane != 0 and shifted_lane in mode.active_lanes

        for step in range(1, 100):
            updater.update(now_ms=16.0 + step * 16.0, dt_ms=16.0, progress=0.0, registry=registry)
            if note.judged:
                break
            assert note.lane == shifted_lane

    def test_failed_roll_is_not_retried(self, geometry):
        _mode, registry, updater = _updater("zhuangzi", geometry, overrides={"shift_probability": 0.0})
        note = registry.insert(lane=3, position=geometry.shift_threshold, base_speed=72.0, now_ms=0.0)
        for step in range(20):
            updater.update(now_ms=step * 16.0, dt_ms=16.0, progress=0.0, registry=registry)
        assert note.shift_rolled
        assert not note.shifted
        assert note.lane == 3

    def test_no_shift_outside_lane_shifting_modes(self, geometry):
        _mode, registry, updater = _updater("confucius", geometry)
        note = registry.insert(lane=1, position=300.0, base_speed=72.0, now_ms=0.0)
        updater.update(now_ms=16.0, dt_ms=16.0, progress=0.0, registry=registry)
        assert not note.shift_rolled and note.lane == 1

    def test_shift_targets_are_spread(self, geometry):
        mode, registry, updater = _updater("zhuangzi", geometry, seed=8, overrides={"shift_probability": 1.0})
        targets = set()
        for _ in range(60):
            note = registry.insert(lane=0, position=geometry.shift_threshold, base_speed=72.0, now_ms=0.0)
            updater.update(now_ms=0.0, dt_ms=0.0, progress=0.0, registry=registry)
            targets.add(note.lane)
            registry.remove(note)
        assert targets == set(mode.active_lanes) - {0}


class TestEarlyCue:
    """Xunzi cue lead."""

    def test_cue_within_lead(self, geometry):
        _mode, registry, updater = _updater("xunzi", geometry)
        note = registry.insert(lane=0, position=0.0, base_speed=72.0, now_ms=0.0)
        note.cue_eligible = True

        # 560 units at 72/s is ~7.8s, well outside the 1.5s lead
        updater.update(now_ms=0.0, dt_ms=0.0, progress=0.0, registry=registry)
        assert not note.cue_shown

        note.position = 560.0 - 72.0 * 1.4
        updater.update(now_ms=0.0, dt_ms=0.0, progress=0.0, registry=registry)
        assert note.cue_shown

    def test_not_eligible_never_cued(self, geometry):
        _mode, registry, updater = _updater("xunzi", geometry)
        note = registry.insert(lane=0, position=500.0, base_speed=72.0, now_ms=0.0)
        updater.update(now_ms=0.0, dt_ms=0.0, progress=0.0, registry=registry)
        assert not note.cue_shown

    def test_no_cue_once_in_zone(self, geometry):
        _mode, registry, updater = _updater("xunzi", geometry)
        note = registry.insert(lane=0, position=570.0, base_speed=72.0, now_ms=0.0)
        note.cue_eligible = True
        updater.update(now_ms=0.0, dt_ms=0.0, progress=0.0, registry=registry)
        assert not note.cue_shown
