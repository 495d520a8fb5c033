"""Data models shared by the executors.

``QueueAttributes`` is a pydantic model so that caller-supplied create
attributes are validated the same way as the ones read back from the kernel.
Command invocations are small frozen dataclasses, one per command, each
carrying only the fields that command needs.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from mqcli.libs.constants import (
    DEFAULT_MAX_MESSAGE_SIZE,
    DEFAULT_MAX_MESSAGES,
    DEFAULT_PRIORITY,
    DELIMITER_BYTES,
    DELIMITER_NEWLINE,
    DELIMITER_NONE,
    DELIMITER_NUL,
)


class AccessMode(str, Enum):
    READ_ONLY = "O_RDONLY"
    WRITE_ONLY = "O_WRONLY"
    READ_WRITE = "O_RDWR"

    @property
    def readable(self) -> bool:
        return self is not AccessMode.WRITE_ONLY

    @property
    def writable(self) -> bool:
        return self is not AccessMode.READ_ONLY


class QueueAttributes(BaseModel):
    """Attributes of a queue, as requested at creation or read back later."""
    model_config = ConfigDict(frozen=True)

    max_messages: int = Field(gt=0)
    max_message_size: int = Field(gt=0)
    current_messages: int = Field(default=0, ge=0)

    def describe(self, name: str) -> str:
        return (
            f"{name}: maxmsg={self.max_messages}, "
            f"msgsize={self.max_message_size}, curmsgs={self.current_messages}"
        )


class Delimiter(bytes, Enum):
    """Byte written after each received message."""
    NEWLINE = DELIMITER_BYTES[DELIMITER_NEWLINE]
    NUL = DELIMITER_BYTES[DELIMITER_NUL]
    NONE = DELIMITER_BYTES[DELIMITER_NONE]

    @classmethod
    def from_spec(cls, spec: str) -> "Delimiter":
        """Map a ``--delimiter`` specifier (``n``, ``z`` or ``x``) to a delimiter.

        >>> Delimiter.from_spec("z").value
        b'\\x00'
        """
        try:
            return cls(DELIMITER_BYTES[spec])
        except KeyError:
            raise ValueError(f"Invalid delimiter specifier '{spec}' (use 'n' or 'z' or 'x')") from None


@dataclass(frozen=True)
class CreateCommand:
    command: ClassVar[str] = "create"
    queue_name: str
    max_messages: int = DEFAULT_MAX_MESSAGES
    max_message_size: int = DEFAULT_MAX_MESSAGE_SIZE


@dataclass(frozen=True)
class InfoCommand:
    command: ClassVar[str] = "info"
    queue_name: str


@dataclass(frozen=True)
class UnlinkCommand:
    command: ClassVar[str] = "unlink"
    queue_name: str


@dataclass(frozen=True)
class SendCommand:
    """Send one message; ``message=None`` means read the payload from stdin."""
    command: ClassVar[str] = "send"
    queue_name: str
    message: Optional[bytes] = None
    priority: int = DEFAULT_PRIORITY
    blocking: bool = True


@dataclass(frozen=True)
class RecvCommand:
    command: ClassVar[str] = "recv"
    queue_name: str
    blocking: bool = True
    follow: bool = False
    delimiter: Delimiter = Delimiter.NEWLINE


CommandInvocation = Union[CreateCommand, InfoCommand, UnlinkCommand, SendCommand, RecvCommand]
