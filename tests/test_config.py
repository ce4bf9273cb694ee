"""Tests for timelinekit.config — thresholds and environment overrides."""

import pytest
from timelinekit.config import ENV_VARS, Thresholds, env_report, load_thresholds, thresholds_dict
from timelinekit.errors import TimelineError


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for env_var in ENV_VARS:
        monkeypatch.delenv(env_var, raising=False)


class TestThresholds:
    def test_defaults(self):
        assert load_thresholds() == Thresholds()
        assert thresholds_dict(Thresholds()) == {
            "max_gap_frames": 90,
            "long_clip_frames": 54000,
            "min_font_size": 12,
            "max_fps": 120,
            "short_clip_frames": 60,
            "slide_distance_px": 100,
        }

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("TIMELINEKIT_MAX_GAP_FRAMES", "15")
        monkeypatch.setenv("TIMELINEKIT_MIN_FONT_SIZE", "")
        thresholds = load_thresholds()
        assert thresholds.max_gap_frames == 15
        assert thresholds.min_font_size == 12

    def test_invalid_env_value(self, monkeypatch):
        monkeypatch.setenv("TIMELINEKIT_MAX_FPS", "fast")
        with pytest.raises(TimelineError) as exc_info:
            load_thresholds()
        assert exc_info.value.code == "INVALID_CONFIG"
        assert exc_info.value.context["variable"] == "TIMELINEKIT_MAX_FPS"

    def test_env_report(self, monkeypatch):
        monkeypatch.setenv("TIMELINEKIT_SLIDE_DISTANCE", "40")
        report = env_report()
        assert set(report) == set(ENV_VARS)
        assert report["TIMELINEKIT_SLIDE_DISTANCE"] == "40"
        assert report["TIMELINEKIT_MAX_FPS"] is None
