"""Tests for logging configuration."""

import logging

import pytest

from datatransform.core import logging as dt_logging
from datatransform.core.logging import StructuredFormatter, configure_logging


def make_record(message: str, **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        "datatransform.core.engine", logging.INFO, __file__, 1, message, None, None
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestStructuredFormatter:
    def test_plain_message(self):
        assert StructuredFormatter().format(make_record("hello")) == "[INFO] hello"

    def test_job_phase_and_partition(self):
        record = make_record("Applied 3 row(s)", job_name="adult", phase="apply", partition=2)
        assert (
            StructuredFormatter().format(record)
            == "[INFO] job=adult phase=apply partition=2 Applied 3 row(s)"
        )

    def test_context_items(self):
        record = make_record("bad value", context={"column_id": 3, "row": 7})
        assert StructuredFormatter().format(record) == "[INFO] column_id=3 row=7 bad value"


class TestConfigureLogging:
    @pytest.fixture(autouse=True)
    def reset_logger(self):
        yield
        logging.getLogger("datatransform").handlers.clear()

    def test_level_and_handler(self):
        configure_logging(level="DEBUG")
        logger = logging.getLogger("datatransform")
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0].formatter, StructuredFormatter)

    def test_reconfigure_replaces_handler(self):
        configure_logging()
        configure_logging()
        assert len(logging.getLogger("datatransform").handlers) == 1

    def test_job_name_attached(self, capsys):
        configure_logging(level="INFO", job_name="adult")
        logging.getLogger("datatransform.core.engine").info("started")
        assert "job=adult started" in capsys.readouterr().out

    def test_json_without_formatter_installed(self, monkeypatch):
        monkeypatch.setattr(dt_logging, "JSONFormatter", None)
        with pytest.raises(ImportError):
            configure_logging(json_format=True)
