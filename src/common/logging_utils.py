# src/common/logging_utils.py

"""
Credential-safe logging utilities for the RegionalMate proxy.

This module ensures:
- The IBM API key and IAM bearer tokens are never logged.
- User messages and model replies are never logged.
- Logs are structured as key=value pairs.
- Logging level is set once at startup via configure_logging().

We use a very lightweight wrapper on top of Python's standard logging module.
"""

from __future__ import annotations

import logging
import sys
from typing import Optional, Dict, Any


LOGGER_NAME = "regionalmate"


# -------------------------------------------------------------------------
# Logger Initialization
# -------------------------------------------------------------------------

def _initialize_logger() -> logging.Logger:
    """
    Initializes a logger with stdout handler at INFO level.
    Logs are formatted as: timestamp level message key=value key=value ...
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.INFO)

    handler = logging.StreamHandler(sys.stdout)

    formatter = logging.Formatter(
        fmt="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    handler.setFormatter(formatter)

    # Avoid multiple handlers if this is re-imported
    if not logger.handlers:
        logger.addHandler(handler)

    logger.propagate = False
    return logger


_logger = _initialize_logger()


def configure_logging(level: str) -> None:
    """Apply LOG_LEVEL (e.g. "INFO", "DEBUG"); unknown names fall back to INFO."""
    _logger.setLevel(_level_to_int(level))


# -------------------------------------------------------------------------
# Sanitization
# -------------------------------------------------------------------------

# Keys that should never be logged
SENSITIVE_KEYS = {
    "apikey",
    "api_key",
    "access_token",
    "token",
    "authorization",
    "message",
    "content",
    "reply",
    "raw_response",
}

MAX_VALUE_LENGTH = 256


def _sanitize_extra(extra: Optional[Dict[str, Any]]) -> Dict[str, str]:
    """
    Sanitize extra metadata fields before logging.

    Rules:
    - Drop known sensitive keys (SENSITIVE_KEYS), case-insensitively.
    - Coerce values to strings and cut them at MAX_VALUE_LENGTH.
    """
    if not extra:
        return {}

    cleaned: Dict[str, str] = {}

    for key, value in extra.items():
        k = str(key)

        if k.lower() in SENSITIVE_KEYS:
            continue

        cleaned[k] = _truncate(str(value))

    return cleaned


def _truncate(value: str) -> str:
    if len(value) <= MAX_VALUE_LENGTH:
        return value
    return value[:MAX_VALUE_LENGTH] + "..."


def _level_to_int(level: str) -> int:
    lvl = level.lower()
    if lvl == "info":
        return logging.INFO
    if lvl == "warning":
        return logging.WARNING
    if lvl == "error":
        return logging.ERROR
    if lvl == "debug":
        return logging.DEBUG
    return logging.INFO


# -------------------------------------------------------------------------
# Sanitized logging function
# -------------------------------------------------------------------------

def format_event(
    message: str,
    *,
    request_id: Optional[str] = None,
    error: Optional[str] = None,
    extra: Optional[Dict[str, Any]] = None,
) -> str:
    fields = []

    if request_id:
        fields.append(f"request_id={request_id}")

    if error:
        # Upstream error text may echo response bodies; keep it bounded.
        fields.append(f"error={_truncate(error)}")

    for k, v in _sanitize_extra(extra).items():
        fields.append(f"{k}={v}")

    return f"{message} " + " ".join(fields) if fields else message


def log_event(
    message: str,
    *,
    request_id: Optional[str] = None,
    error: Optional[str] = None,
    extra: Optional[Dict[str, Any]] = None,
    level: str = "info",
):
    """
    Logs a sanitized, structured event with no credentials or chat content.

    Examples:
        log_event(
            "iam_token_failed",
            request_id="abc123",
            error="IAM token failed: 400 - ...",
            level="error",
        )

        log_event(
            "ask_completed",
            request_id="abc123",
            extra={"strategy": "chat_completion", "elapsed_ms": 812},
        )
    """
    _logger.log(
        _level_to_int(level),
        format_event(message, request_id=request_id, error=error, extra=extra),
    )
