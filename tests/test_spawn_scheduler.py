"""Tests for spawn timing, lane choice and spawn-time variant rolls."""
import random

import pytest

import mode_config
import note_registry
from spawn_scheduler import REAPPEAR_DELAY_MIN_MS, REAPPEAR_DELAY_SPAN_MS, SpawnScheduler


def _setup(mode_key, seed=42, overrides=None):
    mode = mode_config.get_mode(mode_key, overrides)
    registry = note_registry.NoteRegistry(active_lanes=mode.active_lanes, strict=True)
    scheduler = SpawnScheduler(mode=mode, geometry=mode_config.DEFAULT_GEOMETRY, rng=random.Random(seed))
    scheduler.reset(0.0)
    return mode, registry, scheduler


class TestRegular:
    """Fixed-interval spawning."""

    def test_first_spawn_after_one_interval(self):
        _mode, registry, scheduler = _setup("confucius")
        assert scheduler.update_for_time(now_ms=500.0, registry=registry) == []
        assert len(scheduler.update_for_time(now_ms=1000.0, registry=registry)) == 1

    def test_at_most_one_spawn_per_tick(self):
        _mode, registry, scheduler = _setup("confucius")
        assert len(scheduler.update_for_time(now_ms=5000.0, registry=registry)) == 1
        assert scheduler.update_for_time(now_ms=5001.0, registry=registry) == []

    def test_lanes_are_active_and_uniform(self):
        mode, registry, scheduler = _setup("confucius", seed=9)
        counts = {lane: 0 for lane in mode.active_lanes}
        for _ in range(4000):
            counts[scheduler.choose_lane(registry)] += 1
        for count in counts.values():
            assert 850 < count < 1150

    def test_new_notes_start_at_spawn_point(self):
        _mode, registry, scheduler = _setup("confucius")
        note = scheduler.update_for_time(now_ms=1000.0, registry=registry)[0]
        assert note.position == 0.0
        assert note.visible
        assert not note.cue_eligible
        assert note.base_speed == mode_config.DEFAULT_GEOMETRY.base_speed_per_second

    def test_single_lane_always_lane_zero(self):
        _mode, registry, scheduler = _setup("confucius_solo")
        assert {scheduler.choose_lane(registry) for _ in range(50)} == {0}


class TestVariableInterval:
    """Laozi interval draws."""

    def test_intervals_within_range_and_uncorrelated(self):
        _mode, registry, scheduler = _setup("laozi", seed=77)
        now_ms = 0.0
        for _ in range(500):
            now_ms += scheduler.next_interval_ms() + 0.25
            scheduler.update_for_time(now_ms=now_ms, registry=registry)
            for note in registry.live_notes():
                registry.remove(note)

        intervals = scheduler.drawn_intervals()
        assert len(intervals) == 501
        assert all(800.0 <= value <= 1600.0 for value in intervals)
        repeats = sum(1 for a, b in zip(intervals, intervals[1:]) if abs(a - b) < 1e-6)
        assert repeats == 0

    def test_spawn_waits_for_drawn_interval(self):
        _mode, registry, scheduler = _setup("laozi", seed=5)
        interval = scheduler.next_interval_ms()
        assert scheduler.update_for_time(now_ms=interval - 1.0, registry=registry) == []
        assert len(scheduler.update_for_time(now_ms=interval, registry=registry)) == 1


class TestLaneShifting:
    """Zhuangzi lane preference and disappear roll."""

    def test_prefers_free_lane_when_rolled(self):
        _mode, registry, scheduler = _setup("zhuangzi", overrides={"shift_probability": 1.0, "disappear_probability": 0.0})
        for lane in (0, 1, 2):
            registry.insert(lane=lane, position=0.0, base_speed=72.0, now_ms=0.0)
        assert {scheduler.choose_lane(registry) for _ in range(30)} == {3}

    def test_uniform_when_all_lanes_occupied(self):
        mode, registry, scheduler = _setup("zhuangzi", overrides={"shift_probability": 1.0})
        for lane in mode.active_lanes:
            registry.insert(lane=lane, position=0.0, base_speed=72.0, now_ms=0.0)
        chosen = {scheduler.choose_lane(registry) for _ in range(200)}
        assert chosen == set(mode.active_lanes)

    def test_disappear_roll_sets_reappear_deadline(self):
        _mode, registry, scheduler = _setup("zhuangzi", overrides={"disappear_probability": 1.0})
        note = scheduler.update_for_time(now_ms=900.0, registry=registry)[0]
        assert not note.visible
        assert 900.0 + REAPPEAR_DELAY_MIN_MS <= note.reappear_at_ms <= 900.0 + REAPPEAR_DELAY_MIN_MS + REAPPEAR_DELAY_SPAN_MS

    def test_no_disappear_without_probability(self):
        _mode, registry, scheduler = _setup("confucius")
        now_ms = 0.0
        for _ in range(50):
            now_ms += 1000.0
            for note in scheduler.update_for_time(now_ms=now_ms, registry=registry):
                assert note.visible and note.reappear_at_ms is None


class TestDelayedReveal:
    """Xunzi marks cue eligibility at spawn."""

    def test_cue_eligibility_marked(self):
        _mode, registry, scheduler = _setup("xunzi")
        note = scheduler.update_for_time(now_ms=600.0, registry=registry)[0]
        assert note.cue_eligible
        assert not note.cue_shown


def test_seeded_schedulers_agree():
    _m1, registry_a, scheduler_a = _setup("zhuangzi", seed=3)
    _m2, registry_b, scheduler_b = _setup("zhuangzi", seed=3)
    lanes_a = []
    lanes_b = []
    for step in range(1, 40):
        now_ms = step * 900.0
        lanes_a.extend((n.lane, n.visible) for n in scheduler_a.update_for_time(now_ms=now_ms, registry=registry_a))
        lanes_b.extend((n.lane, n.visible) for n in scheduler_b.update_for_time(now_ms=now_ms, registry=registry_b))
    assert lanes_a == lanes_b
    assert len(lanes_a) == 39


@pytest.mark.parametrize("mode_key", ["confucius", "xunzi", "laozi", "zhuangzi", "confucius_solo"])
def test_spawned_lanes_always_active(mode_key):
    mode, registry, scheduler = _setup(mode_key, seed=21)
    now_ms = 0.0
    for _ in range(300):
        now_ms += 1700.0
        for note in scheduler.update_for_time(now_ms=now_ms, registry=registry):
            assert note.lane in mode.active_lanes
