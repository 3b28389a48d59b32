"""
Tests for environment handling and log formatting.
"""
import logging

import pytest

import config
from vocabsync.logger import format_event, setup_logger


@pytest.mark.unit
class TestEnvironment:
    def test_require_env_reports_the_variable(self):
        with pytest.raises(config.MissingEnvironmentError) as exc_info:
            config.require_env("NOTION_TOKEN")
        assert exc_info.value.name == "NOTION_TOKEN"
        assert str(exc_info.value) == "MISSING_ENV:NOTION_TOKEN"

    def test_empty_value_counts_as_missing(self, monkeypatch):
        monkeypatch.setenv("NOTION_TOKEN", "")
        assert config.get_env("NOTION_TOKEN") is None

    def test_check_environment_never_exposes_values(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-secret")
        report = config.check_environment()
        assert report == {"openai": True, "notion": False, "database": False}
        assert "sk-secret" not in repr(report)


@pytest.mark.unit
class TestLogging:
    def test_format_event_drops_empty_metadata(self):
        line = format_event("RECONCILE", "Lookup", trace_id="abc", entry_id=None, found=False)
        assert line == '[RECONCILE] Lookup {"trace_id": "abc", "found": false}'

    def test_format_event_without_metadata(self):
        assert format_event("SCHEMA", "ok") == "[SCHEMA] ok"

    def test_format_event_keeps_non_ascii(self):
        assert "дом" in format_event("RECONCILE", "Start", word="дом")

    def test_setup_logger_writes_to_file(self, tmp_path):
        logger = setup_logger(name="vocabsync.test", log_file="run.log", logs_dir=tmp_path)
        logger.info("hello")
        for handler in logger.handlers:
            handler.flush()

        assert "hello" in (tmp_path / "run.log").read_text(encoding="utf-8")
        assert len(logger.handlers) == 2

        for handler in list(logger.handlers):
            handler.close()
            logger.removeHandler(handler)
        logger.setLevel(logging.NOTSET)
