"""Message framing between the shell and the queue.

Outbound, a payload is either the literal message argument or everything read
from standard input up to end-of-stream. Nothing is appended: payloads are
exact-length byte strings.

Inbound, a received payload is written in full to the output stream followed
by one delimiter byte (newline, NUL, or nothing). A failed write is reported as
``ResourceError``; callers treat it as fatal because a torn, undelimited
message would corrupt any consumer that splits on the delimiter.
"""
from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from typing import BinaryIO, Optional, Union

from mqcli.libs.constants import OP_WRITE
from mqcli.libs.errors import ResourceError
from mqcli.libs.models import Delimiter


READ_CHUNK_SIZE = 64 * 1024


def encode_outbound(message: Optional[Union[str, bytes]], stdin: BinaryIO) -> bytes:
    """Return the payload for ``send``.

    A ``str`` argument is converted back to the bytes it came from on the
    command line with ``os.fsencode``. With no argument, ``stdin`` is read
    until end-of-stream.
    """
    if message is not None:
        return message if isinstance(message, bytes) else os.fsencode(message)
    chunks = []
    while True:
        chunk = stdin.read(READ_CHUNK_SIZE)
        if not chunk:
            break
        chunks.append(chunk)
    return b"".join(chunks)


def _write_all(stream: BinaryIO, data: bytes, what: str) -> None:
    view = memoryview(data)
    remaining = len(view)
    while remaining > 0:
        try:
            written = stream.write(view[len(view) - remaining:])
        except OSError as e:
            raise ResourceError(OP_WRITE, detail=f"error writing {what}: {e.strerror or e}") from e
        # Raw non-blocking streams return None when nothing could be written
        remaining -= written or 0


def write_inbound(payload: bytes, delimiter: Delimiter, stream: BinaryIO) -> None:
    """Write ``payload`` and its delimiter to ``stream``, then flush it."""
    _write_all(stream, payload, "message")
    if delimiter is not Delimiter.NONE:
        _write_all(stream, delimiter.value, "delimiter")
    try:
        stream.flush()
    except OSError as e:
        raise ResourceError(OP_WRITE, detail=f"error writing message: {e.strerror or e}") from e


@dataclass(frozen=True)
class Streams:
    """Binary standard streams used by the executors."""
    stdin: BinaryIO
    stdout: BinaryIO

    @classmethod
    def standard(cls) -> "Streams":
        return cls(stdin=sys.stdin.buffer, stdout=sys.stdout.buffer)
