"""Structured logging with claim context for observability.

This module provides:
- get_logger: Logger configured with JSON or human-readable claim-aware output
- claim_context: A context manager for setting claim context
- log_claim_event: Helper for logging engine events
"""

import json
import logging
import os
import sys
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any

# Thread-local storage for claim context
_context = threading.local()


def _get_claim_context() -> dict[str, Any]:
    """Get the current claim context from thread-local storage."""
    return getattr(_context, "claim_data", {})


def _set_claim_context(data: dict[str, Any]) -> None:
    """Set the claim context in thread-local storage."""
    _context.claim_data = data


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def __init__(self, include_timestamp: bool = True):
        super().__init__()
        self.include_timestamp = include_timestamp

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON with claim context."""
        log_data: dict[str, Any] = {
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if self.include_timestamp:
            log_data["timestamp"] = datetime.now(timezone.utc).isoformat()

        claim_ctx = _get_claim_context()
        if claim_ctx:
            log_data["claim_number"] = claim_ctx.get("claim_number")
            log_data["operation"] = claim_ctx.get("operation")

        if getattr(record, "claim_number", None):
            log_data["claim_number"] = record.claim_number
        if getattr(record, "operation", None):
            log_data["operation"] = record.operation
        if getattr(record, "extra_data", None):
            log_data["data"] = record.extra_data

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        log_data["source"] = {
            "file": record.filename,
            "line": record.lineno,
            "function": record.funcName,
        }

        return json.dumps(log_data, default=str)


class HumanReadableFormatter(logging.Formatter):
    """Human-readable formatter with claim context prefix."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with claim context prefix."""
        timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")

        ctx_parts = []
        claim_ctx = _get_claim_context()

        claim_number = getattr(record, "claim_number", None) or claim_ctx.get("claim_number")
        if claim_number:
            ctx_parts.append(f"claim={claim_number}")

        operation = getattr(record, "operation", None) or claim_ctx.get("operation")
        if operation:
            ctx_parts.append(f"op={operation}")

        ctx_str = f" [{', '.join(ctx_parts)}]" if ctx_parts else ""

        message = record.getMessage()
        if getattr(record, "extra_data", None):
            message += f" | {record.extra_data}"

        line = f"{timestamp} {record.levelname:8}{ctx_str} {record.name}: {message}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def get_logger(name: str, structured: bool | None = None) -> logging.Logger:
    """Get a logger with a claim-aware formatter attached.

    Claim number and operation come from ``claim_context`` or from
    ``extra={"claim_number": ...}`` on individual calls.

    Args:
        name: Logger name (typically __name__)
        structured: If True, use JSON format. If False, use human-readable.
                   If None, use CLAIM_KNOWLEDGE_LOG_FORMAT env var (default: human)

    Returns:
        The configured logging.Logger
    """
    logger = logging.getLogger(name)

    # Only configure if not already configured
    if not logger.handlers:
        if structured is None:
            log_format = os.environ.get("CLAIM_KNOWLEDGE_LOG_FORMAT", "human").lower()
            structured = log_format == "json"

        # stderr keeps stdout clean for CLI output and the MCP stdio transport
        handler = logging.StreamHandler(sys.stderr)
        if structured:
            handler.setFormatter(StructuredFormatter())
        else:
            handler.setFormatter(HumanReadableFormatter())

        logger.addHandler(handler)

        log_level = os.environ.get("CLAIM_KNOWLEDGE_LOG_LEVEL", "INFO").upper()
        logger.setLevel(getattr(logging, log_level, logging.INFO))

        # Prevent duplicate logs from propagating to parent handlers
        logger.propagate = False

    return logger


@contextmanager
def claim_context(
    claim_number: str | None = None,
    operation: str | None = None,
    **extra: Any,
):
    """Context manager for setting claim context on all logs within the block.

    Usage:
        with claim_context(claim_number="CLM-2025-001007", operation="lookup"):
            logger.info("Looking up claim")  # Will include claim_number in output
    """
    old_context = _get_claim_context()
    new_context = {
        "claim_number": claim_number,
        "operation": operation,
        **extra,
    }
    _set_claim_context(new_context)
    try:
        yield
    finally:
        _set_claim_context(old_context)


def log_claim_event(
    logger: logging.Logger,
    event: str,
    claim_number: str | None = None,
    level: int = logging.INFO,
    **data: Any,
) -> None:
    """Log an engine event with structured data.

    Args:
        logger: Logger instance
        event: Event name (e.g., "index_created", "batch_uploaded")
        claim_number: Claim number (optional if using claim_context)
        level: Log level
        **data: Additional event data
    """
    message = f"[{event}]"
    if data:
        details = ", ".join(f"{k}={v}" for k, v in data.items())
        message = f"{message} {details}"

    extra = {"claim_number": claim_number, "extra_data": {"event": event, **data}}
    logger.log(level, message, extra=extra)
