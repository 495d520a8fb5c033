"""
Logging utilities for the mq tool.

Diagnostics always go to standard error so they never mix with message data
written to standard output.
"""

from __future__ import annotations

import logging
import sys
from datetime import datetime
from typing import Optional, TextIO

from mqcli.libs.constants import TIMESTAMP_FORMAT


PACKAGE_LOGGER = "mqcli"


def format_timestamp(when: Optional[datetime] = None) -> str:
    """
    Format a local time as ``YYYY-MM-DD HH:MM:SS.mmm``.

    Args:
        when: Time to format; defaults to now

    Returns:
        A new string on every call
    """
    when = when or datetime.now()
    return f"{when.strftime(TIMESTAMP_FORMAT)}.{when.microsecond // 1000:03d}"


def format_hex(payload: bytes) -> str:
    """Render bytes as space separated lowercase hex pairs, e.g. ``68 69``."""
    return payload.hex(" ")


class TimestampFormatter(logging.Formatter):
    """Formatter that prefixes every line with ``format_timestamp``."""

    def format(self, record: logging.LogRecord) -> str:
        stamp = format_timestamp(datetime.fromtimestamp(record.created))
        return f"{stamp} {super().format(record)}"


def setup_logging(
    verbose: bool = False,
    timestamp: bool = False,
    format_string: Optional[str] = None,
    stream: Optional[TextIO] = None,
) -> logging.Logger:
    """
    Setup logging configuration for the mq tool.

    Args:
        verbose: Log open calls and payload hex dumps (DEBUG) instead of errors only
        timestamp: Prefix each diagnostic line with a timestamp
        format_string: Custom format string for log messages
        stream: Diagnostic stream; defaults to standard error

    Returns:
        The configured package logger
    """

    if format_string is None:
        format_string = "%(message)s"
    level = logging.DEBUG if verbose else logging.WARNING

    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setLevel(level)
    formatter_class = TimestampFormatter if timestamp else logging.Formatter
    handler.setFormatter(formatter_class(format_string))

    # Configure the package logger only; the root logger is left to the host
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.handlers = [handler]
    package_logger.setLevel(level)
    package_logger.propagate = False
    return package_logger
