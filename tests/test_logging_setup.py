from __future__ import annotations

import logging

import pytest

import media_presence.logging_setup as logging_setup


@pytest.fixture
def basic_config(monkeypatch):
    calls: list[dict] = []
    monkeypatch.setattr(logging_setup.logging, "basicConfig", lambda **kw: calls.append(kw))
    monkeypatch.delenv("MEDIA_PRESENCE_LOG_LEVEL", raising=False)
    return calls


def test_debug_flag(basic_config):
    logging_setup.setup_logging(True)
    assert basic_config[0]["level"] == logging.DEBUG
    assert isinstance(basic_config[0]["handlers"][0], logging.StreamHandler)


@pytest.mark.parametrize("value, expected", [("warning", logging.WARNING), ("30", 30), (" error ", logging.ERROR)])
def test_env_override(basic_config, monkeypatch, value, expected):
    monkeypatch.setenv("MEDIA_PRESENCE_LOG_LEVEL", value)
    logging_setup.setup_logging(True)
    assert basic_config[0]["level"] == expected


def test_unknown_env_level_keeps_default_and_warns(basic_config, monkeypatch, caplog):
    monkeypatch.setenv("MEDIA_PRESENCE_LOG_LEVEL", "chatty")
    with caplog.at_level(logging.WARNING, logger="media_presence.logging_setup"):
        logging_setup.setup_logging(False)
    assert basic_config[0]["level"] == logging.INFO
    assert "chatty" in caplog.text


def test_log_file_replaces_stderr(basic_config, tmp_path):
    path = tmp_path / "state" / "watch.log"
    logging_setup.setup_logging(False, path)
    handler = basic_config[0]["handlers"][0]
    try:
        assert isinstance(handler, logging.FileHandler)
        assert path.parent.is_dir()
        assert handler.baseFilename == str(path)
    finally:
        handler.close()
