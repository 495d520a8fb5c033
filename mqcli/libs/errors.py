"""
Exception classes for queue operations.
Every error remembers the operation that failed so it can be reported as
``<operation> error: <reason>`` on the diagnostic stream.
"""

from __future__ import annotations

import errno as _errno
import os
from typing import Optional


class QueueError(Exception):
    """Base exception for every failed queue operation."""

    errno: int = _errno.EIO

    def __init__(self, operation: str, detail: Optional[str] = None, errno: Optional[int] = None):
        if errno is not None:
            self.errno = errno
        self.operation = operation
        self.detail = detail
        super().__init__(str(self))

    @property
    def reason(self) -> str:
        return self.detail or os.strerror(self.errno)

    def __str__(self) -> str:
        return f"{self.operation} error: {self.reason}"


class NotFound(QueueError):
    """Raised when the named queue does not exist."""

    errno = _errno.ENOENT


class AlreadyExists(QueueError):
    """Raised when creating a queue whose name is already taken."""

    errno = _errno.EEXIST


class InvalidArgument(QueueError):
    """Raised for a bad queue name, size, count, priority or delimiter."""

    errno = _errno.EINVAL


class MessageTooLong(InvalidArgument):
    """Raised when a payload does not fit the queue's message size."""

    errno = _errno.EMSGSIZE


class WouldBlock(QueueError):
    """Raised by non-blocking send on a full queue or receive on an empty one."""

    errno = _errno.EAGAIN


class PermissionDenied(QueueError):
    """Raised when the queue permissions forbid the requested access."""

    errno = _errno.EACCES


class ResourceError(QueueError):
    """Raised when writing output or waiting for readiness fails."""


class Unsupported(QueueError):
    """Raised when the readiness wait reports something other than data."""

    errno = _errno.EPROTO
