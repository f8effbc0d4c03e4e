"""
Logging configuration for AVC Importer.

Console output goes through Rich; an optional log file receives one JSON
object per record. The document or phase being processed is tracked in a
context variable and stamped on every record emitted inside ``LogContext``.
"""

import contextvars
import functools
import json
import logging
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from rich.console import Console
from rich.logging import RichHandler

QUIET_LOGGERS = ("httpx", "httpcore", "paramiko")

_context: contextvars.ContextVar[Mapping[str, Any]] = contextvars.ContextVar("avc_log_context", default={})

# Attributes every LogRecord has; anything else was passed via extra= or context
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


def current_context() -> Dict[str, Any]:
    """Return a copy of the active logging context."""
    return dict(_context.get())


class LogContext:
    """
    Attach fields to every record logged inside the block.

    Usage:
        with LogContext(phase="edi"):
            with LogContext(document="PO_1.edi"):
                logger.info("Uploaded 997")
    """

    def __init__(self, **fields: Any) -> None:
        self.fields = fields
        self._token: Optional[contextvars.Token] = None

    def __enter__(self) -> "LogContext":
        self._token = _context.set({**_context.get(), **self.fields})
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        _context.reset(self._token)
        self._token = None


class ContextFilter(logging.Filter):
    """Copy the active context onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in _context.get().items():
            setattr(record, key, value)
        return True


class StructuredFormatter(logging.Formatter):
    """One JSON object per record, including context and extra fields."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}:{record.funcName}:{record.lineno}",
        }
        entry.update({k: v for k, v in vars(record).items() if k not in _RECORD_ATTRS})

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


class _ConsoleFormatter(logging.Formatter):
    """Prefix console messages with the document being processed."""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        document = getattr(record, "document", None)
        return f"[{document}] {message}" if document else message


def _console_handler(level: str, console: Optional[Console]) -> logging.Handler:
    handler = RichHandler(
        console=console or Console(stderr=True),
        show_time=False,
        show_path=False,
        markup=False,
        rich_tracebacks=True,
        tracebacks_show_locals=level == "DEBUG",
    )
    handler.setFormatter(_ConsoleFormatter("%(message)s"))
    return handler


def _file_handler(path: Path, structured: bool) -> logging.Handler:
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path, encoding="utf-8")
    if structured:
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)-8s %(name)s: %(message)s", datefmt="%Y-%m-%d %H:%M:%S")
        )
    return handler


def setup_logging(
    log_level: str = "INFO",
    log_file_path: Optional[Path] = None,
    use_structured_logging: bool = True,
    console: Optional[Console] = None,
) -> None:
    """
    Configure logging for the application.

    Safe to call more than once; each call replaces the root handlers.

    Args:
        log_level: Logging level name
        log_file_path: Optional path to a log file
        use_structured_logging: Write JSON lines to the log file
        console: Rich console for the console handler (stderr by default)
    """
    handlers = [_console_handler(log_level, console)]
    if log_file_path:
        handlers.append(_file_handler(Path(log_file_path), use_structured_logging))

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    context_filter = ContextFilter()
    for handler in handlers:
        handler.setLevel(log_level)
        handler.addFilter(context_filter)
        root_logger.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).debug(
        f"Logging configured at {log_level}",
        extra={"log_file": str(log_file_path) if log_file_path else None},
    )


def get_logger(name: str) -> logging.Logger:
    """Return the module logger for name (usually ``__name__``)."""
    return logging.getLogger(name)


def log_performance(func):
    """Log the start, completion and duration of each call of func."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        logger = get_logger(func.__module__)
        logger.debug(f"Starting {func.__name__}")
        started = time.perf_counter()
        try:
            result = func(*args, **kwargs)
        except Exception:
            elapsed = time.perf_counter() - started
            logger.warning(f"{func.__name__} failed after {elapsed:.2f}s", extra={"duration_seconds": elapsed})
            raise
        elapsed = time.perf_counter() - started
        logger.info(f"Completed {func.__name__} in {elapsed:.2f}s", extra={"duration_seconds": elapsed})
        return result

    return wrapper
