"""Logging setup for the CDP driver.

Records may carry a `context` dict (method, url, loader ids, timeout) attached
with log_with_context(). Both formatters render it: JSON as a "context"
object, text as a trailing [key=value ...] block.

Note: Named logging_setup.py to avoid conflicts with Python's built-in logging module.
"""

import sys
import json
import logging
from typing import Optional, Dict, Any, Union
from datetime import datetime

# Rendered first and in this order; other context keys follow sorted
CONTEXT_FIELDS = ("method", "url", "frame_id", "loader_id", "previous_loader_id", "timeout")


def record_context(record: logging.LogRecord) -> Dict[str, Any]:
    """Context fields of a record, driver fields first."""
    context = getattr(record, "context", None)
    if not isinstance(context, dict) or not context:
        return {}
    ordered = {key: context[key] for key in CONTEXT_FIELDS if key in context}
    for key in sorted(set(context) - set(CONTEXT_FIELDS)):
        ordered[key] = context[key]
    return ordered


class JSONFormatter(logging.Formatter):
    """One JSON object per record.

    Example output:
        {"timestamp": "2025-10-24T23:30:00.123Z", "level": "DEBUG",
         "logger": "cdp_driver.page", "message": "Navigation started",
         "context": {"url": "https://example.com", "loader_id": "4A1F..."}}
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat() + "Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        context = record_context(record)
        if context:
            log_data["context"] = context

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if record.levelno == logging.DEBUG:
            log_data["location"] = f"{record.filename}:{record.lineno}"

        return json.dumps(log_data, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable lines for stderr.

    Example output:
        2025-10-24 23:30:00 [INFO] cdp_driver.cli.navigate_cmd: Navigation finished [url=https://example.com loader_id=4A1F]
    """

    def __init__(self):
        super().__init__(
            fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    def formatMessage(self, record: logging.LogRecord) -> str:
        line = super().formatMessage(record)
        context = record_context(record)
        if context:
            pairs = " ".join(f"{key}={value}" for key, value in context.items())
            line = f"{line} [{pairs}]"
        return line


def resolve_level(
    level: Optional[str] = None, quiet: bool = False, verbose: bool = False
) -> int:
    """Pick the effective level.

    Precedence: quiet (ERROR) > verbose (DEBUG) > explicit level > INFO.
    """
    if quiet:
        return logging.ERROR
    if verbose:
        return logging.DEBUG
    if level:
        return getattr(logging, level.upper(), logging.INFO)
    return logging.INFO


def setup_logging(
    format_type: str = "text",
    level: Optional[str] = None,
    quiet: bool = False,
    verbose: bool = False,
) -> None:
    """Send driver logs to stderr.

    Args:
        format_type: "json" or "text"
        level: Level name, overridden by quiet/verbose
        quiet: Errors only
        verbose: Debug output, including every command and event
    """
    log_level = resolve_level(level, quiet, verbose)

    formatter: Union[JSONFormatter, TextFormatter]
    if format_type == "json":
        formatter = JSONFormatter()
    else:
        formatter = TextFormatter()

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(log_level)
    handler.setFormatter(formatter)
    root_logger.addHandler(handler)

    logging.getLogger("cdp_driver").setLevel(log_level)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def log_with_context(
    logger: logging.Logger, level: int, message: str, **context
) -> None:
    """Log `message` with driver context fields.

    Example:
        log_with_context(
            logger, logging.INFO, "Navigation finished",
            url="https://example.com", loader_id="4A1F..."
        )
    """
    if not logger.isEnabledFor(level):
        return
    logger.log(
        level, message, extra={"context": context} if context else None, stacklevel=2
    )
