# ============================================================================
# STRUCTURED LOGGING
# ============================================================================
# STATUS: Core - Structured logging with context
# PURPOSE: Consistent, queryable logging across both pipelines
# CREATED: 18 OCT 2026
# ============================================================================
"""
Structured Logging

Provides human-readable or JSON-formatted logging for the cron runs.

Features:
- Contextual fields (run, cid, operation)
- JSON output for log aggregation
- Named begin/finish markers per run

Usage:
    from core.logging import get_logger, log_context

    logger = get_logger("worker.analyzer")

    with log_context(run="pin-dags"):
        logger.info("Pinning", extra={"dags": 5})
"""

import json
import logging
import os
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union


@dataclass
class LogContext:
    """
    Context for structured logging.

    Task-local storage for contextual fields.
    """
    run: Optional[str] = None
    cid: Optional[str] = None
    operation: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict, excluding None values."""
        result = {}
        for key, value in asdict(self).items():
            if value is not None and key != "extra":
                result[key] = value
        if self.extra:
            result.update(self.extra)
        return result


# Context stack, copied into every asyncio task
_context_stack: ContextVar[tuple] = ContextVar("log_context_stack", default=())


def get_current_context() -> LogContext:
    """Get current logging context."""
    stack = _context_stack.get()
    if stack:
        return stack[-1]
    return LogContext()


@contextmanager
def log_context(**kwargs):
    """
    Context manager for adding logging context.

    Args:
        **kwargs: Context fields to add

    Example:
        with log_context(run="export-status"):
            logger.info("Refreshing rollup")
    """
    parent = get_current_context()
    new_context = LogContext(
        run=kwargs.get("run", parent.run),
        cid=kwargs.get("cid", parent.cid),
        operation=kwargs.get("operation", parent.operation),
        extra={**parent.extra, **kwargs.get("extra", {})},
    )

    token = _context_stack.set(_context_stack.get() + (new_context,))
    try:
        yield new_context
    finally:
        _context_stack.reset(token)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StructuredFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    Outputs log records as JSON for easy parsing by log aggregators.
    """

    def __init__(self, include_context: bool = True):
        super().__init__()
        self.include_context = include_context

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data: Dict[str, Any] = {
            "timestamp": _utcnow().isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if self.include_context:
            context_dict = get_current_context().to_dict()
            if context_dict:
                log_data["context"] = context_dict

        if hasattr(record, "extra") and record.extra:
            log_data["data"] = record.extra

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        log_data["source"] = {
            "file": record.filename,
            "line": record.lineno,
            "function": record.funcName,
        }

        return json.dumps(log_data, default=str)


class HumanFormatter(logging.Formatter):
    """
    Human-readable formatter for interactive runs.

    Includes context fields inline for easy reading.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record for human reading."""
        timestamp = _utcnow().strftime("%Y-%m-%d %H:%M:%S")
        level = record.levelname.ljust(8)

        context = get_current_context()
        context_parts = []
        if context.run:
            context_parts.append(f"run={context.run}")
        if context.cid:
            context_parts.append(f"cid={context.cid}")

        context_str = f" [{', '.join(context_parts)}]" if context_parts else ""

        extra_str = ""
        if hasattr(record, "extra") and record.extra:
            extra_str = f" {record.extra}"

        result = f"{timestamp} {level} {record.name}{context_str}: {record.getMessage()}{extra_str}"

        if record.exc_info:
            result += f"\n{self.formatException(record.exc_info)}"

        return result


class ContextLogger(logging.LoggerAdapter):
    """
    Logger adapter that includes context in log records.

    Automatically includes task-local context in all log messages.
    """

    def process(self, msg, kwargs):
        """Process log record to include context."""
        context = get_current_context()

        extra = dict(kwargs.get("extra") or {})
        extra.update(context.to_dict())

        # Stored as a single attribute for formatter access
        kwargs["extra"] = {"extra": extra}

        return msg, kwargs


def get_logger(name: str) -> ContextLogger:
    """
    Get a context-aware logger.

    Args:
        name: Logger name (e.g., "worker.pool")

    Returns:
        ContextLogger instance
    """
    return ContextLogger(logging.getLogger(name), {})


def configure_logging(
    level: Union[str, int] = "INFO",
    json_output: bool = False,
) -> None:
    """
    Configure logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_output: Use JSON format (for production)
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    if json_output or os.getenv("LOG_FORMAT", "").lower() == "json":
        formatter = StructuredFormatter(include_context=True)
    else:
        formatter = HumanFormatter()

    root = logging.getLogger()
    root.setLevel(level)

    for handler in root.handlers[:]:
        root.removeHandler(handler)

    # stdout: stderr is reserved for the progress indicator
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    root.addHandler(handler)


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "LogContext",
    "StructuredFormatter",
    "HumanFormatter",
    "ContextLogger",
    "get_logger",
    "configure_logging",
    "log_context",
    "get_current_context",
]
