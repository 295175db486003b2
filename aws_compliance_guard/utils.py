"""Shared helpers for the compliance guard."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Iterable, Sequence, TypeVar

from botocore.exceptions import ClientError

T = TypeVar("T")

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: str = "INFO") -> logging.Logger:
    """Configure the package logger with a single stream handler.

    Repeated calls only adjust the level.
    """

    logger = logging.getLogger("aws_compliance_guard")
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)

    level_value = getattr(logging, level.upper(), None)
    if not isinstance(level_value, int):
        raise ValueError(f"Unknown log level '{level}'")
    logger.setLevel(level_value)
    return logger


def error_code(exc: Exception) -> str:
    """Return the AWS error code from a botocore exception, if present."""

    if isinstance(exc, ClientError):
        return exc.response.get("Error", {}).get("Code", "")
    return ""


def describe_exception(exc: Exception) -> str:
    """Return ``"<code>: <message>"`` for AWS errors, ``str(exc)`` otherwise."""

    code = error_code(exc)
    if code:
        message = exc.response.get("Error", {}).get("Message", "")  # type: ignore[attr-defined]
        return f"{code}: {message}" if message else code
    return str(exc) or type(exc).__name__


def batch_iterable(items: Sequence[T], size: int) -> Iterable[Sequence[T]]:
    """Yield slices of *items* with at most ``size`` members."""

    for i in range(0, len(items), size):
        yield items[i : i + size]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


__all__ = [
    "LOG_FORMAT",
    "batch_iterable",
    "describe_exception",
    "error_code",
    "setup_logging",
    "utc_now",
]
