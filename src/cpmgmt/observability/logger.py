"""Structured logging configuration for the management client.

Levels, from quiet to noisy:
- INFO (20): Login, logout, publish and export summaries
- VERBOSE (15): One line per API command
- DEBUG (10): Pagination progress, conversion passes, reference lookups
- TRACE (5): Request and response payloads (secrets redacted)
"""

import logging
import sys
from contextvars import ContextVar
from pathlib import Path
from typing import Any

import structlog

# Context variables for request tracing
_log_context: ContextVar[dict[str, Any]] = ContextVar("log_context", default={})

TRACE = 5
VERBOSE = 15

logging.addLevelName(TRACE, "TRACE")
logging.addLevelName(VERBOSE, "VERBOSE")

# Keys whose values never reach a log line
SECRET_KEYS = frozenset({"password", "shared-secret", "shared_secret", "sid", "api-key"})
REDACTED = "***"


def trace(self: logging.Logger, message: str, *args: Any, **kwargs: Any) -> None:
    """Log at TRACE level (request and response payloads)."""
    if self.isEnabledFor(TRACE):
        self._log(TRACE, message, args, **kwargs)


def verbose(self: logging.Logger, message: str, *args: Any, **kwargs: Any) -> None:
    """Log at VERBOSE level (one line per command)."""
    if self.isEnabledFor(VERBOSE):
        self._log(VERBOSE, message, args, **kwargs)


logging.Logger.trace = trace  # type: ignore
logging.Logger.verbose = verbose  # type: ignore


class LogContext:
    """
    Context manager for adding context to logs.

    Usage:
        with LogContext(server="mgmt01", domain="SMC User"):
            await session.find_all_hosts()
    """

    def __init__(self, **kwargs: Any) -> None:
        self.new_context = kwargs
        self.token = None

    def __enter__(self) -> "LogContext":
        current = _log_context.get().copy()
        current.update(self.new_context)
        self.token = _log_context.set(current)
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if self.token:
            _log_context.reset(self.token)


def add_context(**kwargs: Any) -> None:
    """Add key/value pairs to every later log line of this execution context."""
    current = _log_context.get().copy()
    current.update(kwargs)
    _log_context.set(current)


def clear_context(key: str) -> None:
    current = _log_context.get().copy()
    if key in current:
        del current[key]
        _log_context.set(current)


def clear_all_context() -> None:
    """Clear all context variables."""
    _log_context.set({})


def redact(value: Any) -> Any:
    """
    Return a copy of value with secret fields masked.

    Nested dicts and lists are walked; anything else is returned unchanged.
    """
    if isinstance(value, dict):
        return {
            k: REDACTED if k in SECRET_KEYS else redact(v) for k, v in value.items()
        }
    if isinstance(value, list):
        return [redact(v) for v in value]
    return value


def _context_processor(
    logger: logging.Logger, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Structlog processor to inject context variables."""
    context = _log_context.get()
    if context:
        event_dict.update(context)
    return event_dict


def _redact_processor(
    logger: logging.Logger, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Structlog processor masking secrets in event values."""
    return redact(event_dict)


LOG_LEVELS = {
    "TRACE": TRACE,
    "DEBUG": logging.DEBUG,
    "VERBOSE": VERBOSE,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def get_log_level(level: str) -> int:
    """
    Get numeric log level from string.

    Args:
        level: Level name (TRACE, DEBUG, VERBOSE, INFO, WARNING, ERROR, CRITICAL)

    Returns:
        Numeric log level (INFO for unknown names)
    """
    return LOG_LEVELS.get(level.upper(), logging.INFO)


def configure_logging(
    level: str = "INFO",
    json_logs: bool = False,
    log_file: str | Path | None = None,
) -> None:
    """
    Configure structured logging.

    Args:
        level: Logging level (TRACE, DEBUG, VERBOSE, INFO, WARNING, ERROR, CRITICAL)
        json_logs: Whether to output logs in JSON format
        log_file: Optional path to write logs to file
    """
    log_level = get_log_level(level)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        file_path = Path(log_file)
        file_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(file_path))

    logging.basicConfig(
        format="%(message)s",
        level=log_level,
        handlers=handlers,
        force=True,
    )
    logging.getLogger().setLevel(log_level)
    # httpx logs every request at INFO; keep it quiet unless tracing
    logging.getLogger("httpx").setLevel(logging.DEBUG if log_level <= TRACE else logging.WARNING)

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        _context_processor,
        _redact_processor,
    ]

    if json_logs:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
