"""Queue handle manager built on ``posix_ipc``.

This module wraps ``posix_ipc.MessageQueue`` to provide a consistent interface for:
- Opening an existing queue read-only or write-only, blocking or not
- Creating a queue exclusively with caller-supplied attributes
- Reading attributes, sending and receiving on an open handle
- Removing a queue name from the namespace

Every ``posix_ipc`` failure is translated into the ``QueueError`` taxonomy at
this boundary, tagged with the operation that failed. Nothing is cached: each
attribute query goes back to the kernel because other processes share the
queue.

Example:
```python
with open_queue("/jobs", AccessMode.WRITE_ONLY, blocking=False) as handle:
    handle.send(b"hello", priority=1)
```
"""
from __future__ import annotations

import errno
import logging
from contextlib import contextmanager
from typing import Iterator, Optional, Tuple

import posix_ipc
from pydantic import ValidationError

from mqcli.libs.constants import (
    OP_CLOSE,
    OP_GETATTR,
    OP_OPEN,
    OP_RECEIVE,
    OP_SEND,
    OP_UNLINK,
    QUEUE_NAME_MAX,
    QUEUE_NAME_PREFIX,
)
from mqcli.libs.errors import (
    AlreadyExists,
    InvalidArgument,
    MessageTooLong,
    NotFound,
    PermissionDenied,
    QueueError,
    ResourceError,
    WouldBlock,
)
from mqcli.libs.metrics import BYTES_RECEIVED_TOTAL, MESSAGES_RECEIVED_TOTAL, MESSAGES_SENT_TOTAL
from mqcli.libs.models import AccessMode, QueueAttributes
from mqcli.utils.logging import format_hex


logger = logging.getLogger(__name__)


@contextmanager
def _translated(operation: str, *, creating: bool = False) -> Iterator[None]:
    """Re-raise ``posix_ipc`` and OS failures as ``QueueError`` subclasses."""
    try:
        yield
    except posix_ipc.ExistentialError as e:
        raise (AlreadyExists if creating else NotFound)(operation) from e
    except posix_ipc.BusyError as e:
        raise WouldBlock(operation) from e
    except posix_ipc.PermissionsError as e:
        raise PermissionDenied(operation) from e
    except posix_ipc.SignalError as e:
        raise ResourceError(operation, errno=errno.EINTR) from e
    except posix_ipc.Error as e:
        raise QueueError(operation, detail=str(e)) from e
    except ValueError as e:
        if operation == OP_SEND:
            raise MessageTooLong(operation) from e
        raise InvalidArgument(operation) from e
    except OSError as e:
        raise QueueError(operation, errno=e.errno or errno.EIO) from e


def validate_queue_name(name: str, operation: str) -> str:
    """Return ``name`` unchanged if it is a valid queue name, else raise.

    Names are ``/`` followed by at least one character, with no further
    slashes, and at most ``QUEUE_NAME_MAX`` bytes after the leading ``/``.

    >>> validate_queue_name("/jobs", "mq_open")
    '/jobs'
    """
    if not name or not name.startswith(QUEUE_NAME_PREFIX):
        raise InvalidArgument(operation, detail=f"queue name must start with '{QUEUE_NAME_PREFIX}': {name!r}")
    if len(name) == 1 or QUEUE_NAME_PREFIX in name[1:]:
        raise InvalidArgument(operation, detail=f"invalid queue name: {name!r}")
    if len(name[1:].encode()) > QUEUE_NAME_MAX:
        raise InvalidArgument(operation, errno=errno.ENAMETOOLONG)
    return name


def describe_flags(
    mode: AccessMode, *, create: bool = False, blocking: bool = True, permissions: Optional[int] = None
) -> str:
    """Render open flags the way they appear in verbose output.

    >>> describe_flags(AccessMode.READ_ONLY, blocking=False)
    'O_RDONLY, O_NONBLOCK'
    >>> describe_flags(AccessMode.READ_WRITE, create=True, permissions=0o644)
    'O_CREAT, O_RDWR, O_EXCL, 644'
    """
    flags = [mode.value]
    if create:
        flags = ["O_CREAT", mode.value, "O_EXCL"]
    if not blocking:
        flags.append("O_NONBLOCK")
    if create and permissions is not None:
        flags.append(format(permissions, "o"))
    return ", ".join(flags)


class QueueHandle:
    """An open queue, bound to the access and blocking mode it was opened with.

    Handles are context managers; leaving the ``with`` block closes the
    handle whatever the exit path. ``close()`` may safely be called again.
    """

    def __init__(self, name: str, mq: posix_ipc.MessageQueue, mode: AccessMode, blocking: bool) -> None:
        self.name = name
        self.mode = mode
        self.blocking = blocking
        self._mq: Optional[posix_ipc.MessageQueue] = mq

    def __enter__(self) -> "QueueHandle":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.close()
        return False

    def __repr__(self) -> str:
        state = "closed" if self.closed else "open"
        return f"<QueueHandle {self.name} {self.mode.value} blocking={self.blocking} {state}>"

    @property
    def closed(self) -> bool:
        return self._mq is None

    def _queue(self, operation: str) -> posix_ipc.MessageQueue:
        if self._mq is None:
            raise QueueError(operation, errno=errno.EBADF)
        return self._mq

    def fileno(self) -> int:
        """Return the queue descriptor, usable with ``select.poll`` on Linux."""
        return self._queue(OP_GETATTR).mqd

    def attributes(self) -> QueueAttributes:
        mq = self._queue(OP_GETATTR)
        with _translated(OP_GETATTR):
            return QueueAttributes(
                max_messages=mq.max_messages,
                max_message_size=mq.max_message_size,
                current_messages=mq.current_messages,
            )

    def send(self, payload: bytes, priority: int = 0) -> None:
        mq = self._queue(OP_SEND)
        if not 0 <= priority <= posix_ipc.QUEUE_PRIORITY_MAX:
            raise InvalidArgument(OP_SEND, detail=f"priority must be between 0 and {posix_ipc.QUEUE_PRIORITY_MAX}")
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("%s", format_hex(payload))
        with _translated(OP_SEND):
            mq.send(payload, priority=priority)
        MESSAGES_SENT_TOTAL.inc()

    def receive(self) -> Tuple[bytes, int]:
        """Receive one message and its priority.

        ``posix_ipc`` sizes the receive buffer from the queue's own
        ``mq_msgsize`` on every call, so no caller-supplied size is taken.
        """
        mq = self._queue(OP_RECEIVE)
        with _translated(OP_RECEIVE):
            payload, priority = mq.receive()
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("%s", format_hex(payload))
        MESSAGES_RECEIVED_TOTAL.inc()
        BYTES_RECEIVED_TOTAL.inc(len(payload))
        return payload, priority

    def close(self) -> None:
        if self._mq is None:
            return
        mq, self._mq = self._mq, None
        with _translated(OP_CLOSE):
            mq.close()


def open_queue(
    name: str,
    mode: AccessMode,
    *,
    create: bool = False,
    blocking: bool = True,
    attributes: Optional[QueueAttributes] = None,
    permissions: int = 0o644,
) -> QueueHandle:
    """Open (or, with ``create=True``, exclusively create) a named queue.

    Parameters
    ----------
    name: str
        Queue name, ``/`` followed by the queue's own name.
    mode: AccessMode
        Access the handle grants; ``info``/``recv`` use read-only, ``send`` write-only.
    create: bool
        Create the queue, failing with ``AlreadyExists`` if the name is taken.
    blocking: bool
        When False, send/receive fail with ``WouldBlock`` instead of waiting.
    attributes: QueueAttributes | None
        Required with ``create``; supplies max messages and message size.
    permissions: int
        Permission bits for a created queue.

    Raises
    ------
    NotFound, AlreadyExists, InvalidArgument, PermissionDenied, QueueError
    """
    validate_queue_name(name, OP_OPEN)
    if create and attributes is None:
        raise InvalidArgument(OP_OPEN, detail="queue attributes are required to create a queue")
    logger.debug(
        "Opening mq %s (%s)",
        name,
        describe_flags(mode, create=create, blocking=blocking, permissions=permissions),
    )

    kwargs = {"read": mode.readable, "write": mode.writable}
    if create:
        kwargs.update(
            flags=posix_ipc.O_CREX,
            mode=permissions,
            max_messages=attributes.max_messages,
            max_message_size=attributes.max_message_size,
        )
    with _translated(OP_OPEN, creating=create):
        mq = posix_ipc.MessageQueue(name, **kwargs)
    mq.block = blocking
    return QueueHandle(name, mq, mode, blocking)


def create_attributes(max_messages: int, max_message_size: int) -> QueueAttributes:
    """Validate caller-supplied create attributes, raising ``InvalidArgument``."""
    try:
        return QueueAttributes(max_messages=max_messages, max_message_size=max_message_size)
    except ValidationError as e:
        raise InvalidArgument(OP_OPEN) from e


def unlink_queue(name: str) -> None:
    """Remove ``name`` from the queue namespace; no open handle is needed."""
    validate_queue_name(name, OP_UNLINK)
    logger.debug("Deleting mq %s", name)
    with _translated(OP_UNLINK):
        posix_ipc.unlink_message_queue(name)
