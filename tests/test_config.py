from __future__ import annotations

import json

import pytest

from media_presence.config import AppConfig, load_config, save_config

ENV_KEYS = (
    "MEDIA_PRESENCE_MIN_WIDTH",
    "MEDIA_PRESENCE_MAX_WIDTH",
    "MEDIA_PRESENCE_ANIMATION_MS",
    "MEDIA_PRESENCE_FRAME_HZ",
    "MEDIA_PRESENCE_ALT_SCREEN",
    "MEDIA_PRESENCE_SETTLE_TIMEOUT",
)


@pytest.fixture(autouse=True)
def clean_env(tmp_path, monkeypatch):
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def _write(tmp_path, data):
    (tmp_path / "media-presence").mkdir(parents=True, exist_ok=True)
    (tmp_path / "media-presence" / "config.json").write_text(json.dumps(data), encoding="utf-8")


class TestLoadConfig:
    def test_defaults(self, tmp_path):
        cfg = load_config()
        assert cfg.config_dir == tmp_path / "media-presence"
        assert (cfg.min_width, cfg.max_width, cfg.animation_ms) == (24, 64, 300)
        assert cfg.use_alt_screen is True
        assert cfg.settle_timeout_s == 2.0

    def test_env_values(self, monkeypatch):
        monkeypatch.setenv("MEDIA_PRESENCE_MAX_WIDTH", "80")
        monkeypatch.setenv("MEDIA_PRESENCE_ALT_SCREEN", "0")
        monkeypatch.setenv("MEDIA_PRESENCE_FRAME_HZ", "30")
        cfg = load_config()
        assert cfg.max_width == 80
        assert cfg.use_alt_screen is False
        assert cfg.frame_hz == 30.0

    def test_config_file_over_env(self, tmp_path, monkeypatch):
        _write(tmp_path, {"animation_ms": 120})
        monkeypatch.setenv("MEDIA_PRESENCE_ANIMATION_MS", "900")
        assert load_config().animation_ms == 120

    def test_malformed_values_fall_back(self, tmp_path, monkeypatch):
        _write(tmp_path, {"min_width": "wide"})
        monkeypatch.setenv("MEDIA_PRESENCE_SETTLE_TIMEOUT", "soon")
        cfg = load_config()
        assert cfg.min_width == 24
        assert cfg.settle_timeout_s == 2.0

    def test_unreadable_file_is_ignored(self, tmp_path):
        (tmp_path / "media-presence").mkdir()
        (tmp_path / "media-presence" / "config.json").write_text("{not json", encoding="utf-8")
        assert load_config().max_width == 64

    def test_inverted_bounds_are_swapped(self, monkeypatch):
        monkeypatch.setenv("MEDIA_PRESENCE_MIN_WIDTH", "90")
        monkeypatch.setenv("MEDIA_PRESENCE_MAX_WIDTH", "30")
        cfg = load_config()
        assert (cfg.min_width, cfg.max_width) == (30, 90)


class TestSaveConfig:
    def test_save_and_load(self):
        save_config(max_width=50)
        save_config(animation_ms=0)
        cfg = load_config()
        assert cfg.max_width == 50
        assert cfg.animation_ms == 0

    def test_unknown_key(self):
        with pytest.raises(KeyError):
            save_config(colour="red")


def test_with_overrides_skips_none(tmp_path):
    cfg = AppConfig(config_dir=tmp_path)
    cfg2 = cfg.with_overrides(min_width=None, max_width=40)
    assert cfg2.min_width == cfg.min_width
    assert cfg2.max_width == 40
