"""Tests for the pure scoring model."""
import random

import pytest

import gameplay_models
import mode_config
from scoring import (
    RunState,
    hit_points,
    max_hit_points,
    penalty_points,
    round_half_up,
    score_outcome,
)


def _note(lane=0):
    return gameplay_models.Note(note_id=1, lane=lane, position=580.0, base_speed=72.0, speed=72.0, spawn_time_ms=0.0)


def _hit(distance=0.0):
    return gameplay_models.Hit(note=_note(), distance=distance, timing_ms=distance / 72.0 * 1000.0)


@pytest.fixture
def confucius():
    return mode_config.get_mode("confucius")


@pytest.fixture
def xunzi():
    return mode_config.get_mode("xunzi")


@pytest.fixture
def laozi():
    return mode_config.get_mode("laozi")


class TestRounding:
    """Half-up rounding of point values."""

    @pytest.mark.parametrize("value, expected", [(0.5, 1), (1.5, 2), (2.5, 3), (112.4999, 112), (-0.5, 0)])
    def test_round_half_up(self, value, expected):
        assert round_half_up(value) == expected


class TestHits:
    """Hit points and combo."""

    def test_perfect_hit_at_start(self, confucius):
        change = score_outcome(RunState(), _hit(0.0), mode=confucius, progress=0.0, now_ms=100.0)
        assert change.state.score == 300
        assert change.state.combo == 1
        assert change.state.max_combo == 1
        assert change.state.hits == 1
        assert change.points_delta == 300

    def test_edge_hit_floor_of_base(self):
        assert hit_points(distance=40.0, zone_half_extent=40.0, progress=0.0, combo=0) == 100
        assert hit_points(distance=80.0, zone_half_extent=40.0, progress=0.0, combo=0) == 100

    def test_multipliers(self):
        # 200 * 1.25 * 1.5
        assert hit_points(distance=20.0, zone_half_extent=40.0, progress=0.5, combo=10) == 375

    def test_hit_points_bounded(self):
        rng = random.Random(99)
        for _ in range(500):
            combo = rng.randrange(0, 60)
            points = hit_points(
                distance=rng.uniform(0.0, 40.0),
                zone_half_extent=40.0,
                progress=rng.random(),
                combo=combo,
            )
            assert 50 <= points <= max_hit_points(combo)

    def test_hit_resets_spam_count(self, laozi):
        state = RunState(spam_count=2)
        assert score_outcome(state, _hit(), mode=laozi, progress=0.0, now_ms=0.0).state.spam_count == 0

    def test_max_combo_is_kept(self, confucius):
        state = RunState(combo=1, max_combo=7)
        assert score_outcome(state, _hit(), mode=confucius, progress=0.0, now_ms=0.0).state.max_combo == 7


class TestPenalties:
    """Miss, WrongLane and EmptyPress."""

    def test_threshold_one_clears_score(self, xunzi):
        change = score_outcome(RunState(score=4200, combo=15), gameplay_models.Miss(note=_note()), mode=xunzi, progress=0.7, now_ms=0.0)
        assert change.state.score == 0
        assert change.state.combo == 0
        assert change.state.misses == 1
        assert change.threshold_reached

    def test_wrong_lane_penalty_scales_with_progress(self, confucius):
        change = score_outcome(
            RunState(score=1000, combo=4),
            gameplay_models.WrongLane(pressed_lane=0, note_lane=2),
            mode=confucius,
            progress=0.5,
            now_ms=0.0,
        )
        assert change.points_delta == -150
        assert change.state.combo == 0

    def test_empty_press_without_spam_channel(self, confucius):
        change = score_outcome(RunState(score=500, combo=6), gameplay_models.EmptyPress(lane=1), mode=confucius, progress=0.0, now_ms=0.0)
        assert change.counted_as_miss
        assert not change.spam_channel and not change.spam_penalized
        assert change.state.misses == 1
        assert change.state.combo == 0
        assert change.state.score == 425

    def test_score_never_negative(self, confucius):
        change = score_outcome(RunState(score=30), gameplay_models.Miss(note=_note()), mode=confucius, progress=1.0, now_ms=0.0)
        assert change.state.score == 0
        assert change.points_delta == -30

    def test_penalty_table(self):
        assert penalty_points(gameplay_models.JudgementKind.MISS, 0.0) == 75
        assert penalty_points(gameplay_models.JudgementKind.EMPTY_PRESS, 1.0) == 150
        assert penalty_points(gameplay_models.JudgementKind.WRONG_LANE, 0.25) == 125
        assert penalty_points(gameplay_models.JudgementKind.HIT, 0.5) == 0

    def test_threshold_reached_every_nth(self, confucius):
        state = RunState()
        flags = []
        for _ in range(6):
            change = score_outcome(state, gameplay_models.Miss(note=_note()), mode=confucius, progress=0.0, now_ms=0.0)
            flags.append(change.threshold_reached)
            state = change.state
        assert flags == [False, False, True, False, False, True]


class TestComboPolicy:
    """every_miss versus every_nth_miss."""

    def test_every_miss_resets_combo(self, confucius):
        change = score_outcome(RunState(combo=9), gameplay_models.Miss(note=_note()), mode=confucius, progress=0.0, now_ms=0.0)
        assert change.state.combo == 0

    def test_every_nth_miss_keeps_combo_until_threshold(self):
        mode = mode_config.get_mode("confucius", {"combo_reset_policy": "every_nth_miss"})
        state = RunState(combo=9)
        combos = []
        for _ in range(3):
            state = score_outcome(state, gameplay_models.Miss(note=_note()), mode=mode, progress=0.0, now_ms=0.0).state
            combos.append(state.combo)
        assert combos == [9, 9, 0]


class TestSpamChannel:
    """Laozi EmptyPress handling."""

    def test_first_two_presses_are_free(self, laozi):
        state = RunState(score=100, combo=5)
        for _ in range(2):
            change = score_outcome(state, gameplay_models.EmptyPress(lane=0), mode=laozi, progress=0.0, now_ms=5000.0)
            assert change.spam_channel
            assert not change.spam_penalized
            assert change.points_delta == 0
            state = change.state
        assert state.misses == 0 and state.combo == 5 and state.spam_count == 2

    def test_third_press_penalized(self, laozi):
        state = RunState(score=100, combo=5, spam_count=2)
        change = score_outcome(state, gameplay_models.EmptyPress(lane=0), mode=laozi, progress=0.0, now_ms=5000.0)
        assert change.spam_penalized
        assert change.state.score == 80
        assert change.state.combo == 0
        assert change.state.misses == 0

    def test_grace_after_recent_hit(self, laozi):
        state = RunState(score=100, combo=5, spam_count=4, last_hit_ms=4800.0)
        change = score_outcome(state, gameplay_models.EmptyPress(lane=0), mode=laozi, progress=0.0, now_ms=5000.0)
        assert not change.spam_penalized
        assert change.state.score == 100

    def test_spam_penalty_never_negative(self, laozi):
        state = RunState(score=5, spam_count=3)
        change = score_outcome(state, gameplay_models.EmptyPress(lane=0), mode=laozi, progress=0.0, now_ms=0.0)
        assert change.state.score == 0

    def test_wrong_lane_still_counts_in_laozi(self, laozi):
        change = score_outcome(
            RunState(score=500),
            gameplay_models.WrongLane(pressed_lane=1, note_lane=0),
            mode=laozi,
            progress=0.0,
            now_ms=0.0,
        )
        assert change.counted_as_miss
        assert change.state.misses == 1


class TestHitPercentage:
    """Summary percentage."""

    @pytest.mark.parametrize("hits, misses, expected", [(0, 0, 0), (2, 1, 67), (1, 1, 50), (1, 7, 13), (5, 0, 100)])
    def test_percentage(self, hits, misses, expected):
        assert RunState(hits=hits, misses=misses).hit_percentage() == expected


def test_random_sequences_keep_invariants():
    rng = random.Random(2024)
    modes = [mode_config.get_mode(key) for key in mode_config.mode_keys()]
    for mode in modes:
        state = RunState()
        for step in range(400):
            roll = rng.random()
            if roll < 0.4:
                outcome = _hit(rng.uniform(0.0, 40.0))
            elif roll < 0.6:
                outcome = gameplay_models.Miss(note=_note())
            elif roll < 0.8:
                outcome = gameplay_models.WrongLane(pressed_lane=0, note_lane=1)
            else:
                outcome = gameplay_models.EmptyPress(lane=0)
            state = score_outcome(state, outcome, mode=mode, progress=step / 400.0, now_ms=step * 100.0).state
            assert state.score >= 0
            assert 0 <= state.combo <= state.max_combo
            assert 0 <= state.hit_percentage() <= 100
