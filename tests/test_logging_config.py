"""
Tests for logging configuration and environment settings.
"""

import json
import logging

import pytest

from surveyreview.config import Config
from surveyreview.logging_config import ColoredFormatter, JSONFormatter, configure_logging


def _record(msg="Snapshot loaded", level=logging.INFO, **extra):
    record = logging.LogRecord("surveyreview.test", level, __file__, 1, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestFormatters:
    """Tests for the JSON and coloured formatters."""

    def test_json_formatter_fields(self):
        data = json.loads(JSONFormatter().format(_record()))

        assert data["level"] == "INFO"
        assert data["logger"] == "surveyreview.test"
        assert data["message"] == "Snapshot loaded"
        assert "timestamp" in data

    def test_json_formatter_extra(self):
        data = json.loads(JSONFormatter().format(_record(request_id="abc", survey_count=3)))

        assert data["request_id"] == "abc"
        assert data["survey_count"] == 3

    def test_colored_formatter_leaves_record_plain(self):
        record = _record(level=logging.WARNING)
        output = ColoredFormatter("%(levelname)s %(message)s").format(record)

        assert "\033[33m" in output
        assert record.levelname == "WARNING"


class TestConfigureLogging:
    """Tests for configure_logging."""

    @pytest.fixture(autouse=True)
    def restore_root(self):
        root = logging.getLogger()
        handlers, level = root.handlers[:], root.level
        yield
        for handler in root.handlers:
            if handler not in handlers:
                handler.close()
        root.handlers[:] = handlers
        root.setLevel(level)

    def test_level_and_handlers(self, tmp_path):
        log_file = tmp_path / "review.log"
        configure_logging(level="debug", json_format=True, log_file=str(log_file))

        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 2
        assert all(isinstance(h.formatter, JSONFormatter) for h in root.handlers)
        assert logging.getLogger("httpx").level == logging.WARNING


class TestConfig:
    """Tests for Config.validate."""

    def test_production_requires_source(self, monkeypatch):
        monkeypatch.setattr(Config, "ENVIRONMENT", "production")
        monkeypatch.setattr(Config, "SURVEY_API_BASE_URL", "")
        monkeypatch.setattr(Config, "SURVEY_DATA_FILE", None)

        with pytest.raises(ValueError):
            Config.validate()

    def test_production_with_base_url(self, monkeypatch):
        monkeypatch.setattr(Config, "ENVIRONMENT", "production")
        monkeypatch.setattr(Config, "SURVEY_API_BASE_URL", "https://survey.example.org")

        Config.validate()

    def test_retry_attempts_positive(self, monkeypatch):
        monkeypatch.setattr(Config, "SURVEY_API_RETRY_ATTEMPTS", 0)

        with pytest.raises(ValueError):
            Config.validate()
