"""Tests for command-line parsing and logging setup."""

import logging

import pytest

from hnbrowse.config import configure_logging, parse_args
from hnbrowse.sources import DEFAULT_API_BASE

ENV_VARS = (
    "CLX_COMMENT_WIDTH",
    "CLX_INDENT_SIZE",
    "HNBROWSE_SOURCE",
    "HNBROWSE_API_BASE",
    "HNBROWSE_LOG_FILE",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        handler.close()
    root.handlers = handlers
    root.setLevel(level)


class TestParseArgs:
    def test_defaults(self):
        config = parse_args([])
        assert config.source == "hackerweb"
        assert config.api_base == DEFAULT_API_BASE
        assert config.comment_width == 0
        assert config.indent_size == 5
        assert config.status_seconds == 1.0
        assert config.timeout_seconds == 20
        assert not config.compact
        assert not config.shuffle
        assert config.thread_id is None
        assert not config.once

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("CLX_COMMENT_WIDTH", "70")
        monkeypatch.setenv("CLX_INDENT_SIZE", "2")
        monkeypatch.setenv("HNBROWSE_SOURCE", "rss")
        config = parse_args([])
        assert config.comment_width == 70
        assert config.indent_size == 2
        assert config.source == "rss"

    def test_flags_beat_environment(self, monkeypatch):
        monkeypatch.setenv("CLX_INDENT_SIZE", "2")
        assert parse_args(["--indent-size", "8"]).indent_size == 8

    def test_debug_uses_mock_data_and_shuffles(self):
        config = parse_args(["--debug"])
        assert config.debug
        assert config.source == "mock"
        assert config.shuffle

    def test_thread_and_once(self):
        config = parse_args(["--thread", "42", "--once", "--compact"])
        assert config.thread_id == 42
        assert config.once
        assert config.compact

    def test_bad_environment_integer(self, monkeypatch):
        monkeypatch.setenv("CLX_COMMENT_WIDTH", "wide")
        with pytest.raises(ValueError, match="CLX_COMMENT_WIDTH"):
            parse_args([])

    def test_bad_environment_source(self, monkeypatch):
        monkeypatch.setenv("HNBROWSE_SOURCE", "gopher")
        with pytest.raises(ValueError, match="Unknown source"):
            parse_args([])

    @pytest.mark.parametrize(
        "argv",
        [
            ["--comment-width", "-1"],
            ["--indent-size", "-2"],
            ["--status-seconds", "-0.5"],
            ["--timeout-seconds", "0"],
        ],
    )
    def test_out_of_range_values(self, argv):
        with pytest.raises(ValueError):
            parse_args(argv)


class TestConfigureLogging:
    def test_writes_to_log_file(self, tmp_path, restore_logging):
        log_file = tmp_path / "hnbrowse.log"
        configure_logging(str(log_file))
        logging.getLogger("hnbrowse.test").info("fetched %d stories", 3)
        for handler in logging.getLogger().handlers:
            handler.flush()

        contents = log_file.read_text(encoding="utf-8")
        assert "hnbrowse.test - INFO - fetched 3 stories" in contents

    def test_debug_level(self, tmp_path, restore_logging):
        configure_logging(str(tmp_path / "debug.log"), debug=True)
        assert logging.getLogger().level == logging.DEBUG
        assert logging.getLogger("urllib3").level == logging.WARNING

    def test_without_file_nothing_reaches_the_terminal(self, restore_logging):
        configure_logging("")
        handlers = logging.getLogger().handlers
        assert len(handlers) == 1
        assert isinstance(handlers[0], logging.NullHandler)
