# -*- coding: utf-8 -*-
########################
# scoring.py
########################
# Purpose:
# - Scoring, combo and penalty model for a run.
# - Turns one judgement outcome plus run progress into a score delta, combo transition and
#   miss-count update.
#
# Design notes:
# - No Qt usage. Pure gameplay logic.
# - score_outcome() is pure: it returns a ScoreChange holding the next RunState and never mutates
#   its input. RunController applies the change.
# - Score is clamped to >= 0 on every mutation.
# - Rounding is half-up, matching how points were always rounded in this game.
# - Hit points: base 300 at the zone center down to 100 at the zone edge, times the progress
#   multiplier (1.0 -> 1.5) and the combo multiplier (1 + 0.05 * combo), floored at 50.
# - Penalties: Miss and EmptyPress 75 * (1 + progress), WrongLane 100 * (1 + progress).
# - Threshold 1 zeroes score and combo on any negative judgement. Otherwise combo handling follows
#   the mode's combo_reset_policy.
# - Spam channel (spam-penalty modes only): EmptyPress does not count as a miss. It bumps the spam
#   counter instead, and past two presses with no hit in the last 500 ms the combo breaks and 20
#   points are taken.
#
########################
# Interfaces:
# Public dataclasses:
# - RunState(score: int, combo: int, max_combo: int, hits: int, misses: int, spam_count: int,
#            last_hit_ms: Optional[float], last_judgement_ms: Optional[float])
#   - hit_percentage() -> int
# - ScoreChange(state: RunState, points_delta: int, counted_as_miss: bool, threshold_reached: bool,
#               spam_penalized: bool, spam_channel: bool)
#
# Public functions:
# - round_half_up(value: float) -> int
# - hit_points(*, distance: float, zone_half_extent: float, progress: float, combo: int) -> int
# - penalty_points(kind: JudgementKind, progress: float) -> int
# - max_hit_points(max_combo: int) -> int
# - score_outcome(state: RunState, outcome: JudgementOutcome, *, mode: ModeConfig, progress: float,
#                 now_ms: float, geometry: PlayfieldGeometry) -> ScoreChange
#
# Inputs:
# - Judgement outcomes from JudgeEngine (presses) and NoteMotionUpdater (misses).
#
# Outputs:
# - Updated RunState for the HUD and the final RunSummary.
#
########################

from __future__ import annotations

from dataclasses import dataclass, replace
import math
from typing import Optional

import gameplay_models
import mode_config


HIT_BASE_MAX = 300.0
HIT_BASE_MIN = 100.0
HIT_FLOOR = 50
PROGRESS_REWARD_SCALE = 0.5
COMBO_STEP = 0.05

MISS_PENALTY = 75.0
EMPTY_PRESS_PENALTY = 75.0
WRONG_LANE_PENALTY = 100.0

SPAM_COUNT_LIMIT = 2
SPAM_GRACE_MS = 500.0
SPAM_PENALTY = 20


@dataclass(frozen=True)
class RunState:
    score: int = 0
    combo: int = 0
    max_combo: int = 0
    hits: int = 0
    misses: int = 0
    spam_count: int = 0
    last_hit_ms: Optional[float] = None
    last_judgement_ms: Optional[float] = None

    def hit_percentage(self) -> int:
        total = int(self.hits) + int(self.misses)
        if total <= 0:
            return 0
        return round_half_up(100.0 * float(self.hits) / float(total))


@dataclass(frozen=True)
class ScoreChange:
    state: RunState
    points_delta: int
    counted_as_miss: bool = False
    threshold_reached: bool = False
    spam_penalized: bool = False
    spam_channel: bool = False


def round_half_up(value: float) -> int:
    return int(math.floor(float(value) + 0.5))


def _clamp_progress(progress: float) -> float:
    return min(max(float(progress), 0.0), 1.0)


def hit_points(*, distance: float, zone_half_extent: float, progress: float, combo: int) -> int:
    half_extent = max(float(zone_half_extent), 1e-9)
    normalized = min(max(float(distance) / half_extent, 0.0), 1.0)
    base_points = max(HIT_BASE_MIN, HIT_BASE_MAX - normalized * (HIT_BASE_MAX - HIT_BASE_MIN))
    progress_multiplier = 1.0 + _clamp_progress(progress) * PROGRESS_REWARD_SCALE
    combo_multiplier = 1.0 + max(0, int(combo)) * COMBO_STEP
    return max(HIT_FLOOR, round_half_up(base_points * progress_multiplier * combo_multiplier))


def max_hit_points(max_combo: int) -> int:
    """Upper bound for a single hit at the given combo (zero distance, full progress)."""
    return hit_points(distance=0.0, zone_half_extent=1.0, progress=1.0, combo=max_combo)


def penalty_points(kind: gameplay_models.JudgementKind, progress: float) -> int:
    scale = 1.0 + _clamp_progress(progress)
    if kind is gameplay_models.JudgementKind.WRONG_LANE:
        return round_half_up(WRONG_LANE_PENALTY * scale)
    if kind is gameplay_models.JudgementKind.EMPTY_PRESS:
        return round_half_up(EMPTY_PRESS_PENALTY * scale)
    if kind is gameplay_models.JudgementKind.MISS:
        return round_half_up(MISS_PENALTY * scale)
    return 0


def _score_hit(
    state: RunState,
    outcome: gameplay_models.Hit,
    *,
    progress: float,
    now_ms: float,
    geometry: mode_config.PlayfieldGeometry,
) -> ScoreChange:
    points = hit_points(
        distance=outcome.distance,
        zone_half_extent=geometry.zone_half_extent,
        progress=progress,
        combo=state.combo,
    )
    combo = int(state.combo) + 1
    next_state = replace(
        state,
        score=max(0, int(state.score) + points),
        combo=combo,
        max_combo=max(int(state.max_combo), combo),
        hits=int(state.hits) + 1,
        spam_count=0,
        last_hit_ms=float(now_ms),
        last_judgement_ms=float(now_ms),
    )
    return ScoreChange(state=next_state, points_delta=int(next_state.score) - int(state.score))


def _score_spam_press(state: RunState, *, now_ms: float) -> ScoreChange:
    spam_count = int(state.spam_count) + 1
    if state.last_hit_ms is None:
        since_last_hit = math.inf
    else:
        since_last_hit = float(now_ms) - float(state.last_hit_ms)

    penalized = spam_count > SPAM_COUNT_LIMIT and since_last_hit > SPAM_GRACE_MS
    if penalized:
        next_state = replace(
            state,
            score=max(0, int(state.score) - SPAM_PENALTY),
            combo=0,
            spam_count=spam_count,
            last_judgement_ms=float(now_ms),
        )
    else:
        next_state = replace(state, spam_count=spam_count, last_judgement_ms=float(now_ms))

    return ScoreChange(
        state=next_state,
        points_delta=int(next_state.score) - int(state.score),
        spam_penalized=penalized,
        spam_channel=True,
    )


def _score_negative(
    state: RunState,
    kind: gameplay_models.JudgementKind,
    *,
    mode: mode_config.ModeConfig,
    progress: float,
    now_ms: float,
) -> ScoreChange:
    threshold = max(1, int(mode.combo_reset_threshold))
    misses = int(state.misses) + 1
    threshold_reached = misses % threshold == 0

    if threshold == 1:
        score = 0
        combo = 0
    else:
        score = max(0, int(state.score) - penalty_points(kind, progress))
        if mode.combo_reset_policy == mode_config.ComboResetPolicy.EVERY_NTH_MISS:
            combo = 0 if threshold_reached else int(state.combo)
        else:
            combo = 0

    next_state = replace(
        state,
        score=score,
        combo=combo,
        misses=misses,
        last_judgement_ms=float(now_ms),
    )
    return ScoreChange(
        state=next_state,
        points_delta=int(next_state.score) - int(state.score),
        counted_as_miss=True,
        threshold_reached=threshold_reached,
    )


def score_outcome(
    state: RunState,
    outcome: gameplay_models.JudgementOutcome,
    *,
    mode: mode_config.ModeConfig,
    progress: float,
    now_ms: float,
    geometry: mode_config.PlayfieldGeometry = mode_config.DEFAULT_GEOMETRY,
) -> ScoreChange:
    if isinstance(outcome, gameplay_models.Hit):
        return _score_hit(state, outcome, progress=progress, now_ms=now_ms, geometry=geometry)

    kind = gameplay_models.outcome_kind(outcome)
    if kind is gameplay_models.JudgementKind.EMPTY_PRESS and mode.spam_penalty_enabled:
        return _score_spam_press(state, now_ms=now_ms)

    return _score_negative(state, kind, mode=mode, progress=progress, now_ms=now_ms)


def _run_unit_tests() -> None:
    geometry = mode_config.DEFAULT_GEOMETRY
    confucius = mode_config.get_mode("confucius")
    xunzi = mode_config.get_mode("xunzi")
    laozi = mode_config.get_mode("laozi")

    assert round_half_up(2.5) == 3
    assert round_half_up(112.5) == 113

    note = gameplay_models.Note(note_id=1, lane=0, position=580.0, base_speed=72.0, speed=72.0, spawn_time_ms=0.0)
    perfect = gameplay_models.Hit(note=note, distance=0.0, timing_ms=0.0)
    change = score_outcome(RunState(), perfect, mode=confucius, progress=0.0, now_ms=100.0, geometry=geometry)
    assert change.state.score == 300 and change.state.combo == 1 and change.points_delta == 300

    edge = gameplay_models.Hit(note=note, distance=40.0, timing_ms=555.0)
    assert score_outcome(RunState(), edge, mode=confucius, progress=0.0, now_ms=0.0).state.score == 100

    miss = gameplay_models.Miss(note=note)
    nuked = score_outcome(RunState(score=5000, combo=12), miss, mode=xunzi, progress=0.3, now_ms=0.0)
    assert nuked.state.score == 0 and nuked.state.combo == 0 and nuked.state.misses == 1

    wrong = gameplay_models.WrongLane(pressed_lane=0, note_lane=1)
    penalized = score_outcome(RunState(score=1000, combo=4), wrong, mode=confucius, progress=0.5, now_ms=0.0)
    assert penalized.state.score == 850 and penalized.state.combo == 0 and penalized.points_delta == -150

    empty = gameplay_models.EmptyPress(lane=0)
    state = RunState(score=100, combo=5)
    for _ in range(2):
        spam = score_outcome(state, empty, mode=laozi, progress=0.0, now_ms=10000.0)
        assert not spam.spam_penalized and spam.state.misses == 0
        state = spam.state
    spam = score_outcome(state, empty, mode=laozi, progress=0.0, now_ms=10000.0)
    assert spam.spam_penalized and spam.state.score == 80 and spam.state.combo == 0

    assert RunState(hits=2, misses=1).hit_percentage() == 67
    assert RunState().hit_percentage() == 0


if __name__ == "__main__":
    _run_unit_tests()
    print("scoring.py: ok")
