"""Test logging configuration"""

import json
import logging
from io import StringIO

import pytest

from mp4concat.utils.logging_config import (
    JSONFormatter,
    LoggingConfig,
    RunIdFilter,
    get_logger,
    log_performance,
    run_context,
)


@pytest.fixture
def logging_config():
    config = LoggingConfig()
    root = logging.getLogger()
    level = root.level
    yield config
    for handler in config._handlers:
        root.removeHandler(handler)
        handler.close()
    root.setLevel(level)


def _record(msg="hello", **extra):
    record = logging.LogRecord("mp4concat.test", logging.INFO, __file__, 10, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:

    def test_basic_fields(self):
        entry = json.loads(JSONFormatter().format(_record()))

        assert entry["message"] == "hello"
        assert entry["level"] == "INFO"
        assert entry["logger"] == "mp4concat.test"
        assert entry["run_id"] == "no-run"

    def test_extra_fields(self):
        entry = json.loads(JSONFormatter().format(_record(output_path="/out/x.mp4", count=3)))

        assert entry["extra"] == {"output_path": "/out/x.mp4", "count": 3}


class TestRunContext:

    def test_run_id_applied_and_restored(self):
        run_filter = RunIdFilter()

        with run_context("abc123") as run_id:
            record = _record()
            run_filter.filter(record)
            assert run_id == "abc123"
            assert record.run_id == "abc123"

        record = _record()
        run_filter.filter(record)
        assert record.run_id == "no-run"


class TestLoggingConfig:

    def test_json_console(self, logging_config):
        stream = StringIO()
        logging_config.configure(log_level="DEBUG", enable_json=True, stream=stream)

        get_logger("mp4concat.test").info("concat started", extra={"files": 2})

        lines = [json.loads(line) for line in stream.getvalue().splitlines()]
        entry = [line for line in lines if line["message"] == "concat started"][0]
        assert entry["extra"]["files"] == 2

    def test_file_handler(self, logging_config, tmp_path):
        log_file = tmp_path / "logs" / "mp4concat.log"
        logging_config.configure(log_level="INFO", stream=StringIO(), log_file=log_file)

        get_logger("mp4concat.test").warning("disk almost full")
        for handler in logging_config._handlers:
            handler.flush()

        assert "disk almost full" in log_file.read_text(encoding="utf-8")

    def test_configure_once_unless_forced(self, logging_config):
        first = StringIO()
        second = StringIO()
        logging_config.configure(stream=first)
        logging_config.configure(stream=second)

        get_logger("mp4concat.test").warning("only once")

        assert "only once" in first.getvalue()
        assert second.getvalue() == ""


class TestLogPerformance:

    def test_reraises(self):
        with pytest.raises(RuntimeError):
            with log_performance("failing step", get_logger("mp4concat.test")):
                raise RuntimeError("boom")

    def test_logs_completion(self, caplog):
        caplog.set_level(logging.DEBUG, logger="mp4concat.test")

        with log_performance("quick step", get_logger("mp4concat.test")):
            pass

        assert "Completed quick step" in caplog.text
