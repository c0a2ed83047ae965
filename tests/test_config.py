"""
Tests for configuration loading.
"""

import pytest

from config import load_config, slot_minutes
from errors import ConfigError


class TestLoadConfig:
    def test_defaults(self, cfg):
        assert cfg["start_hour"] == 8
        assert cfg["end_hour"] == 20
        assert cfg["slots_per_hour"] == 4
        assert cfg["max_span_days"] == 7
        assert slot_minutes(cfg) == 15

    def test_yaml_file(self, cfg, tmp_path):
        (tmp_path / "config.yaml").write_text("start_hour: 9\nend_hour: 21\n", encoding="utf-8")
        loaded = load_config()
        assert (loaded["start_hour"], loaded["end_hour"]) == (9, 21)

    def test_config_path_from_env(self, cfg, tmp_path, monkeypatch):
        path = tmp_path / "other.yaml"
        path.write_text("slots_per_hour: 2\n", encoding="utf-8")
        monkeypatch.setenv("GROUPGRID_CONFIG", str(path))
        assert load_config()["slots_per_hour"] == 2

    def test_env_beats_yaml(self, cfg, tmp_path, monkeypatch):
        (tmp_path / "config.yaml").write_text("start_hour: 9\n", encoding="utf-8")
        monkeypatch.setenv("GROUPGRID_START_HOUR", "10")
        assert load_config()["start_hour"] == 10

    def test_overrides_win(self, cfg, monkeypatch):
        monkeypatch.setenv("GROUPGRID_START_HOUR", "10")
        assert load_config({"start_hour": 7})["start_hour"] == 7

    @pytest.mark.parametrize("value", ["none", "", None])
    def test_unbounded_span(self, cfg, value):
        assert load_config({"max_span_days": value})["max_span_days"] is None

    def test_supabase_url_trailing_slash(self, cfg):
        assert load_config({"supabase_url": "https://x.supabase.co/"})["supabase_url"] == "https://x.supabase.co"


class TestValidation:
    @pytest.mark.parametrize(
        "overrides",
        [
            {"start_hour": 20, "end_hour": 8},
            {"start_hour": 8, "end_hour": 25},
            {"slots_per_hour": 7},
            {"slots_per_hour": 0},
            {"max_span_days": -1},
            {"max_span_days": 0},
            {"max_span_days": "0"},
            {"default_days": 0},
            {"start_hour": "nine"},
        ],
    )
    def test_invalid(self, cfg, overrides):
        with pytest.raises(ConfigError):
            load_config(overrides)

    def test_unknown_key(self, cfg):
        with pytest.raises(ConfigError):
            load_config({"colour": "red"})

    def test_yaml_must_be_mapping(self, cfg, tmp_path):
        (tmp_path / "config.yaml").write_text("- 1\n- 2\n", encoding="utf-8")
        with pytest.raises(ConfigError):
            load_config()
