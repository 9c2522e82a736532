#!/usr/bin/env python3
"""
Centralized logging configuration for mp4concat.
Console output is colored for terminals or JSON for log collectors; an optional
rotating file handler always writes JSON.
"""

import json
import logging
import logging.handlers
import os
import sys
import threading
import time
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import psutil

# Thread-local storage for the current run id
_context_storage = threading.local()

_RESERVED_ATTRS = {
    "name",
    "msg",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "lineno",
    "funcName",
    "created",
    "msecs",
    "relativeCreated",
    "thread",
    "threadName",
    "processName",
    "process",
    "message",
    "exc_info",
    "exc_text",
    "stack_info",
    "taskName",
    "run_id",
}


class RunIdFilter(logging.Filter):
    """Filter to add the run id to log records"""

    def filter(self, record):
        record.run_id = getattr(_context_storage, "run_id", None) or "no-run"
        return True


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging"""

    def __init__(self, include_extra_fields: bool = True):
        super().__init__()
        self.include_extra_fields = include_extra_fields

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "run_id": getattr(record, "run_id", "no-run"),
            "process_id": os.getpid(),
        }

        if record.exc_info:
            log_entry["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": self.formatException(record.exc_info),
            }

        if self.include_extra_fields:
            extra_fields = {}
            for key, value in record.__dict__.items():
                if key in _RESERVED_ATTRS:
                    continue
                # Only include serializable values
                try:
                    json.dumps(value)
                    extra_fields[key] = value
                except (TypeError, ValueError):
                    extra_fields[key] = str(value)

            if extra_fields:
                log_entry["extra"] = extra_fields

        return json.dumps(log_entry, default=str)


class ColoredConsoleFormatter(logging.Formatter):
    """Colored formatter for console output"""

    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
        "RESET": "\033[0m",
    }

    def format(self, record: logging.LogRecord) -> str:
        run_id = getattr(record, "run_id", "no-run")
        timestamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S.%f")[:-3]

        color = self.COLORS.get(record.levelname, "")
        reset = self.COLORS["RESET"]
        short_run = run_id[:8] if run_id != "no-run" else "main"

        log_line = (
            f"{color}[{timestamp}] {record.levelname:8}{reset} "
            f"{record.name:28} | {short_run} | {record.getMessage()}"
        )

        if record.exc_info:
            log_line += f"\n{self.formatException(record.exc_info)}"

        return log_line


class LoggingConfig:
    """Centralized logging configuration manager"""

    def __init__(self):
        self._configured = False
        self._log_level = None
        self._handlers = []

    def configure(
        self,
        log_level: str = "INFO",
        enable_json: bool = False,
        log_file: Optional[Path] = None,
        max_file_size: int = 10 * 1024 * 1024,
        backup_count: int = 3,
        stream=None,
        force: bool = False,
    ):
        """
        Configure logging for the application.

        Args:
            log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            enable_json: Emit JSON lines on the console instead of colored text
            log_file: Optional path of a rotating JSON log file
            max_file_size: Maximum size for the log file before rotation
            backup_count: Number of rotated files to keep
            stream: Console stream (defaults to stderr)
            force: Reconfigure even if already configured
        """
        if self._configured and not force:
            return

        self._log_level = log_level.upper()

        root_logger = logging.getLogger()
        root_logger.setLevel(getattr(logging, self._log_level, logging.INFO))

        # Drop only the handlers we installed on a previous call
        for handler in self._handlers:
            root_logger.removeHandler(handler)
            handler.close()
        self._handlers = []

        run_filter = RunIdFilter()

        console_handler = logging.StreamHandler(stream or sys.stderr)
        console_handler.addFilter(run_filter)
        if enable_json:
            console_handler.setFormatter(JSONFormatter())
        else:
            console_handler.setFormatter(ColoredConsoleFormatter())
        root_logger.addHandler(console_handler)
        self._handlers.append(console_handler)

        if log_file is not None:
            log_file = Path(log_file)
            log_file.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.handlers.RotatingFileHandler(
                log_file,
                maxBytes=max_file_size,
                backupCount=backup_count,
                encoding="utf-8",
            )
            file_handler.addFilter(run_filter)
            file_handler.setFormatter(JSONFormatter())
            root_logger.addHandler(file_handler)
            self._handlers.append(file_handler)

        self._configured = True

        logging.getLogger(__name__).debug(
            "Logging configured",
            extra={
                "log_level": self._log_level,
                "json_enabled": enable_json,
                "log_file": str(log_file) if log_file else None,
            },
        )


def get_logger(name: str = None) -> logging.Logger:
    """Get a logger instance (defaults to the package logger)"""
    return logging.getLogger(name or "mp4concat")


@contextmanager
def run_context(run_id: str = None):
    """
    Context manager tagging every log record with a run id.

    Args:
        run_id: Identifier for this invocation (generated when omitted)
    """
    if run_id is None:
        run_id = uuid.uuid4().hex

    old_run_id = getattr(_context_storage, "run_id", None)
    _context_storage.run_id = run_id
    try:
        yield run_id
    finally:
        _context_storage.run_id = old_run_id


@contextmanager
def log_performance(operation_name: str, logger: logging.Logger = None):
    """
    Context manager for logging elapsed time and memory of an operation.

    Args:
        operation_name: Name of the operation being measured
        logger: Logger to use (defaults to the package logger)
    """
    perf_logger = logger or get_logger()
    start_time = time.time()
    start_memory = _get_memory_usage()

    perf_logger.debug(
        f"Starting {operation_name}",
        extra={"operation": operation_name, "start_memory_mb": start_memory},
    )

    try:
        yield
    except Exception as e:
        perf_logger.error(
            f"Failed {operation_name}",
            extra={
                "operation": operation_name,
                "elapsed_seconds": round(time.time() - start_time, 3),
                "status": "error",
                "error_type": type(e).__name__,
            },
        )
        raise

    end_memory = _get_memory_usage()
    perf_logger.debug(
        f"Completed {operation_name}",
        extra={
            "operation": operation_name,
            "elapsed_seconds": round(time.time() - start_time, 3),
            "memory_delta_mb": round(end_memory - start_memory, 2),
            "status": "success",
        },
    )


def _get_memory_usage() -> float:
    """Get current memory usage in MB"""
    return round(psutil.Process().memory_info().rss / 1024 / 1024, 2)


# Global logging configuration instance
_config = LoggingConfig()


def configure_logging(*args, **kwargs):
    """Configure logging - see LoggingConfig.configure for parameters"""
    return _config.configure(*args, **kwargs)
