"""Tests for the mode catalogue and playfield geometry."""
import pytest

import mode_config
from mode_config import ComboResetPolicy, SpawnPattern


class TestCatalogue:
    """Built-in mode records."""

    def test_all_modes_present(self):
        assert set(mode_config.mode_keys()) == {
            "confucius",
            "xunzi",
            "laozi",
            "zhuangzi",
            "confucius_solo",
        }

    @pytest.mark.parametrize(
        "key, interval, window, threshold, pattern",
        [
            ("confucius", 1000.0, 200.0, 3, SpawnPattern.REGULAR),
            ("xunzi", 600.0, 50.0, 1, SpawnPattern.DELAYED_REVEAL),
            ("laozi", 1200.0, 120.0, 2, SpawnPattern.VARIABLE_INTERVAL),
            ("zhuangzi", 900.0, 100.0, 2, SpawnPattern.LANE_SHIFTING),
        ],
    )
    def test_mode_parameters(self, key, interval, window, threshold, pattern):
        mode = mode_config.get_mode(key)
        assert mode.spawn_interval_ms == interval
        assert mode.timing_window_ms == window
        assert mode.combo_reset_threshold == threshold
        assert mode.spawn_pattern == pattern
        assert mode.combo_reset_policy == ComboResetPolicy.EVERY_MISS

    def test_windows_never_overlap(self):
        for mode in mode_config.MODES.values():
            assert mode.timing_window_ms < mode.spawn_interval_ms / 2.0

    def test_variant_flags(self):
        assert mode_config.get_mode("xunzi").early_cue_lead_ms == 1500.0
        laozi = mode_config.get_mode("laozi")
        assert laozi.spam_penalty_enabled
        assert laozi.interval_range_ms == (800.0, 1600.0)
        zhuangzi = mode_config.get_mode("zhuangzi")
        assert zhuangzi.shift_probability == 0.4
        assert zhuangzi.disappear_probability == 0.2

    def test_single_lane_mode(self):
        solo = mode_config.get_mode("confucius_solo")
        assert solo.is_single_lane
        assert solo.active_lanes == (0,)

    def test_records_are_frozen(self):
        mode = mode_config.get_mode("confucius")
        with pytest.raises(Exception):
            mode.timing_window_ms = 10.0


class TestOverrides:
    """Overrides are merged and validated again."""

    def test_override_applies_without_touching_builtin(self):
        relaxed = mode_config.get_mode("xunzi", {"combo_reset_threshold": 3})
        assert relaxed.combo_reset_threshold == 3
        assert mode_config.MODES["xunzi"].combo_reset_threshold == 1

    def test_policy_override_from_json_string(self):
        mode = mode_config.get_mode("confucius", {"combo_reset_policy": "every_nth_miss"})
        assert mode.combo_reset_policy == ComboResetPolicy.EVERY_NTH_MISS

    def test_overlapping_window_rejected(self):
        with pytest.raises(ValueError, match="confucius"):
            mode_config.get_mode("confucius", {"timing_window_ms": 500.0})

    def test_probability_out_of_range_rejected(self):
        with pytest.raises(ValueError):
            mode_config.get_mode("zhuangzi", {"shift_probability": 1.5})

    def test_bad_lane_count_rejected(self):
        with pytest.raises(ValueError):
            mode_config.get_mode("confucius", {"lane_count": 3})

    def test_variable_interval_needs_range(self):
        with pytest.raises(ValueError):
            mode_config.get_mode("laozi", {"interval_range_ms": None})

    def test_unknown_field_rejected(self):
        with pytest.raises(ValueError):
            mode_config.get_mode("confucius", {"bpm": 90})

    def test_unknown_mode_rejected(self):
        with pytest.raises(ValueError):
            mode_config.get_mode("mozi")


class TestGeometry:
    """Zone overlap and distance helpers."""

    def test_derived_values(self, geometry):
        assert geometry.zone_center == 600.0
        assert geometry.zone_half_extent == 40.0
        assert geometry.zone_bottom == 640.0
        assert geometry.shift_threshold == pytest.approx(128.0)

    @pytest.mark.parametrize(
        "position, expected",
        [(519.9, False), (520.0, True), (580.0, True), (640.0, True), (640.1, False)],
    )
    def test_overlap_edges(self, geometry, position, expected):
        assert geometry.overlaps_zone(position) is expected

    def test_distance_uses_note_center(self, geometry):
        assert geometry.distance_to_zone_center(580.0) == 0.0
        assert geometry.distance_to_zone_center(540.0) == 40.0

    def test_note_center(self, geometry):
        assert geometry.note_center(560.0) == 580.0
        assert geometry.distance_to_zone_center(560.0) == abs(geometry.note_center(560.0) - geometry.zone_center)
