"""Tests for press resolution and display grades."""
import pytest

import gameplay_models
import mode_config
from judge import GradeWindows, JudgeEngine, timing_ms_for_distance


@pytest.fixture
def four_lane(geometry, make_registry):
    registry = make_registry("confucius")
    engine = JudgeEngine(mode=mode_config.get_mode("confucius"), geometry=geometry, registry=registry)
    return engine, registry


class TestHit:
    """Primary-lane matches."""

    def test_centered_hit_removes_note(self, four_lane):
        engine, registry = four_lane
        note = registry.insert(lane=1, position=580.0, base_speed=72.0, now_ms=0.0)
        outcome = engine.resolve_press(1)
        assert isinstance(outcome, gameplay_models.Hit)
        assert outcome.note is note
        assert outcome.distance == 0.0
        assert note.judged and len(registry) == 0

    def test_zone_edges(self, four_lane):
        engine, registry = four_lane
        registry.insert(lane=0, position=520.0, base_speed=72.0, now_ms=0.0)
        registry.insert(lane=1, position=640.0, base_speed=72.0, now_ms=0.0)
        registry.insert(lane=2, position=519.0, base_speed=72.0, now_ms=0.0)
        assert isinstance(engine.resolve_press(0), gameplay_models.Hit)
        assert isinstance(engine.resolve_press(1), gameplay_models.Hit)
        assert isinstance(engine.resolve_press(2), gameplay_models.EmptyPress)

    def test_closest_note_wins(self, four_lane):
        engine, registry = four_lane
        registry.insert(lane=0, position=530.0, base_speed=72.0, now_ms=0.0)
        closer = registry.insert(lane=0, position=585.0, base_speed=72.0, now_ms=0.0)
        outcome = engine.resolve_press(0)
        assert outcome.note is closer
        assert outcome.distance == pytest.approx(5.0)

    def test_tie_goes_to_lower_id(self, four_lane):
        engine, registry = four_lane
        first = registry.insert(lane=0, position=570.0, base_speed=72.0, now_ms=0.0)
        registry.insert(lane=0, position=590.0, base_speed=72.0, now_ms=0.0)
        assert engine.resolve_press(0).note is first

    def test_hidden_note_is_not_hittable(self, four_lane):
        engine, registry = four_lane
        note = registry.insert(lane=0, position=580.0, base_speed=72.0, now_ms=0.0)
        note.visible = False
        assert isinstance(engine.resolve_press(0), gameplay_models.EmptyPress)
        assert not note.judged

    def test_timing_uses_current_speed(self, four_lane):
        engine, registry = four_lane
        note = registry.insert(lane=0, position=590.0, base_speed=72.0, now_ms=0.0)
        note.speed = 144.0
        outcome = engine.resolve_press(0)
        assert outcome.timing_ms == pytest.approx(10.0 / 144.0 * 1000.0)


class TestMisses:
    """Wrong-lane and empty presses."""

    def test_wrong_lane_leaves_note_live(self, four_lane):
        engine, registry = four_lane
        note = registry.insert(lane=3, position=575.0, base_speed=72.0, now_ms=0.0)
        outcome = engine.resolve_press(0)
        assert outcome == gameplay_models.WrongLane(pressed_lane=0, note_lane=3)
        assert not note.judged and len(registry) == 1

    def test_wrong_lane_picks_closest_other_note(self, four_lane):
        engine, registry = four_lane
        registry.insert(lane=2, position=525.0, base_speed=72.0, now_ms=0.0)
        registry.insert(lane=3, position=582.0, base_speed=72.0, now_ms=0.0)
        assert engine.resolve_press(0).note_lane == 3

    def test_empty_press(self, four_lane):
        engine, registry = four_lane
        registry.insert(lane=0, position=100.0, base_speed=72.0, now_ms=0.0)
        assert engine.resolve_press(0) == gameplay_models.EmptyPress(lane=0)

    @pytest.mark.parametrize("lane", [None, -1, 4, 9, "x"])
    def test_unaddressable_press_is_ignored(self, four_lane, lane):
        engine, registry = four_lane
        registry.insert(lane=0, position=580.0, base_speed=72.0, now_ms=0.0)
        assert engine.resolve_press(lane) is None
        assert len(registry) == 1


class TestSingleLane:
    """confucius_solo maps lane-less presses to lane 0."""

    def test_lane_none_hits(self, geometry, make_registry):
        registry = make_registry("confucius_solo")
        engine = JudgeEngine(mode=mode_config.get_mode("confucius_solo"), geometry=geometry, registry=registry)
        registry.insert(lane=0, position=560.0, base_speed=72.0, now_ms=0.0)
        assert isinstance(engine.resolve_press(None), gameplay_models.Hit)

    def test_never_wrong_lane(self, geometry, make_registry):
        registry = make_registry("confucius_solo")
        engine = JudgeEngine(mode=mode_config.get_mode("confucius_solo"), geometry=geometry, registry=registry)
        registry.insert(lane=0, position=300.0, base_speed=72.0, now_ms=0.0)
        assert engine.resolve_press(None) == gameplay_models.EmptyPress(lane=0)
        assert engine.resolve_press(1) is None


class TestGrades:
    """Display-only timing grades."""

    def test_windows_scale_with_mode(self):
        windows = GradeWindows.for_timing_window(50.0)
        assert windows.perfect_ms == pytest.approx(15.0)
        assert windows.great_ms == pytest.approx(30.0)

    @pytest.mark.parametrize("timing, grade", [(0.0, "perfect"), (60.0, "perfect"), (-61.0, "great"), (120.0, "great"), (121.0, "good")])
    def test_classify(self, timing, grade):
        assert GradeWindows.for_timing_window(200.0).classify_timing(timing) == grade

    def test_timing_speed_floor(self, geometry):
        assert timing_ms_for_distance(12.0, 0.0, geometry) == pytest.approx(2000.0)
