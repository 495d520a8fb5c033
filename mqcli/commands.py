"""
Command executors and the dispatch table.

- Each executor acquires at most one queue handle, performs its operation and
  releases the handle on every exit path
- ``dispatch`` resolves an invocation to exactly one executor, reports any
  ``QueueError`` as ``<operation> error: <reason>`` and returns the exit status
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, Optional

from mqcli.follow import follow_queue
from mqcli.libs.codec import Streams, encode_outbound, write_inbound
from mqcli.libs.config import Settings, get_settings
from mqcli.libs.errors import QueueError
from mqcli.libs.metrics import OPERATION_TOTAL
from mqcli.libs.models import (
    AccessMode,
    CommandInvocation,
    CreateCommand,
    Delimiter,
    InfoCommand,
    RecvCommand,
    SendCommand,
    UnlinkCommand,
)
from mqcli.libs.queue import create_attributes, open_queue, unlink_queue


logger = logging.getLogger(__name__)

Executor = Callable[..., int]


def execute_create(command: CreateCommand, streams: Streams, settings: Settings) -> int:
    attributes = create_attributes(command.max_messages, command.max_message_size)
    with open_queue(
        command.queue_name,
        AccessMode.READ_WRITE,
        create=True,
        attributes=attributes,
        permissions=settings.create_mode,
    ):
        pass
    return 0


def execute_info(command: InfoCommand, streams: Streams, settings: Settings) -> int:
    """Print ``NAME: maxmsg=M, msgsize=S, curmsgs=C``."""
    with open_queue(command.queue_name, AccessMode.READ_ONLY) as handle:
        attributes = handle.attributes()
    write_inbound(attributes.describe(command.queue_name).encode(), Delimiter.NEWLINE, streams.stdout)
    return 0


def execute_unlink(command: UnlinkCommand, streams: Streams, settings: Settings) -> int:
    unlink_queue(command.queue_name)
    return 0


def execute_send(command: SendCommand, streams: Streams, settings: Settings) -> int:
    """Send the message argument, or stdin up to end-of-stream, as one message."""
    with open_queue(command.queue_name, AccessMode.WRITE_ONLY, blocking=command.blocking) as handle:
        payload = encode_outbound(command.message, streams.stdin)
        handle.send(payload, command.priority)
    return 0


def execute_recv(command: RecvCommand, streams: Streams, settings: Settings) -> int:
    """Receive one message, or hand over to the follow loop with ``follow``."""
    if command.follow:
        return follow_queue(command, streams, settings)
    with open_queue(command.queue_name, AccessMode.READ_ONLY, blocking=command.blocking) as handle:
        attributes = handle.attributes()
        logger.debug("Receiving from mq %s (msgsize=%d)", command.queue_name, attributes.max_message_size)
        payload, _priority = handle.receive()
        write_inbound(payload, command.delimiter, streams.stdout)
    return 0


EXECUTORS: Dict[str, Executor] = {
    CreateCommand.command: execute_create,
    InfoCommand.command: execute_info,
    UnlinkCommand.command: execute_unlink,
    SendCommand.command: execute_send,
    RecvCommand.command: execute_recv,
}


def dispatch(
    invocation: CommandInvocation,
    streams: Optional[Streams] = None,
    settings: Optional[Settings] = None,
) -> int:
    """Run the executor for ``invocation`` and return the process exit status."""
    executor = EXECUTORS[invocation.command]
    streams = streams or Streams.standard()
    settings = settings or get_settings()
    try:
        status = executor(invocation, streams, settings)
    except QueueError as e:
        logger.error("%s", e)
        status = 1
    except KeyboardInterrupt:
        # Handles are already closed by the executors' ``with`` blocks
        logger.error("%s: interrupted", invocation.command)
        status = 1
    OPERATION_TOTAL.labels(operation=invocation.command, result="ok" if status == 0 else "error").inc()
    return status
