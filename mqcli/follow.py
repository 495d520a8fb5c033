"""
Continuous receive ("recv --follow").

- Waits on the queue descriptor with ``select.poll`` (no timeout)
- Drains exactly one message per readiness event and writes it out
- Ends only on an error or an external interrupt (SIGINT/SIGTERM); the
  handle is closed on every path and the command always exits with status 1
"""

from __future__ import annotations

import logging
import select
import signal
from enum import Enum
from typing import BinaryIO, Callable, List, Optional, Tuple

from mqcli.libs.codec import Streams, write_inbound
from mqcli.libs.config import Settings
from mqcli.libs.constants import OP_POLL
from mqcli.libs.errors import ResourceError, Unsupported
from mqcli.libs.metrics import FOLLOW_ACTIVE, start_metrics_server
from mqcli.libs.models import AccessMode, Delimiter, RecvCommand
from mqcli.libs.queue import QueueHandle, open_queue


logger = logging.getLogger(__name__)


class FollowState(str, Enum):
    WAITING = "waiting"
    DRAINING = "draining"
    TERMINATED = "terminated"


class FollowLoop:
    """Receive loop over a single open handle.

    The loop alternates between two blocking calls: a readiness wait on the
    handle's descriptor (``WAITING``) and one receive (``DRAINING``). Any
    error from either moves it to ``TERMINATED`` and propagates; the loop
    never returns normally.

    Properties:
    - `handle`: the read-only handle being followed; owned by the caller
    - `state`: current ``FollowState``
    """

    def __init__(
        self,
        handle: QueueHandle,
        delimiter: Delimiter,
        stdout: BinaryIO,
        poller_factory: Optional[Callable[[], "select.poll"]] = None,
    ) -> None:
        self.handle = handle
        self.delimiter = delimiter
        self.stdout = stdout
        self._poller_factory = poller_factory or select.poll
        self.state = FollowState.WAITING
        self.received = 0

    def _wait(self, poller, fd: int) -> None:
        """Block until the handle is readable; anything else is fatal."""
        try:
            events: List[Tuple[int, int]] = poller.poll()
        except OSError as e:
            raise ResourceError(OP_POLL, errno=e.errno) from e
        if len(events) != 1:
            raise Unsupported(OP_POLL, detail=f"expected one ready descriptor, got {len(events)}")
        ready_fd, revents = events[0]
        if ready_fd != fd or revents != select.POLLIN:
            raise Unsupported(OP_POLL, detail=f"poll revents != POLLIN ({revents:x})")

    def run(self) -> None:
        fd = self.handle.fileno()
        poller = self._poller_factory()
        poller.register(fd, select.POLLIN)
        try:
            while True:
                self.state = FollowState.WAITING
                self._wait(poller, fd)
                self.state = FollowState.DRAINING
                payload, _priority = self.handle.receive()
                write_inbound(payload, self.delimiter, self.stdout)
                self.received += 1
        finally:
            self.state = FollowState.TERMINATED


def follow_queue(command: RecvCommand, streams: Streams, settings: Settings) -> int:
    """Open the queue read-only and print every message until stopped.

    Returns 1 after an interrupt; queue, wait and write errors propagate as
    ``QueueError`` once the handle has been closed.
    """
    if settings.metrics_port > 0:
        try:
            start_metrics_server(settings.metrics_port)
            logger.debug("Metrics server listening on :%s /metrics", settings.metrics_port)
        except OSError as e:
            logger.warning("metrics server error: %s", e.strerror or e)

    # SIGTERM ends the loop the same way Ctrl-C does
    previous = signal.signal(signal.SIGTERM, signal.default_int_handler)
    try:
        with open_queue(command.queue_name, AccessMode.READ_ONLY, blocking=command.blocking) as handle:
            attributes = handle.attributes()
            logger.debug("Following mq %s (msgsize=%d)", command.queue_name, attributes.max_message_size)
            loop = FollowLoop(handle, command.delimiter, streams.stdout)
            FOLLOW_ACTIVE.labels(queue=command.queue_name).set(1)
            try:
                loop.run()
            except KeyboardInterrupt:
                logger.debug("Interrupted after %d messages, closing mq %s", loop.received, command.queue_name)
            finally:
                FOLLOW_ACTIVE.labels(queue=command.queue_name).set(0)
    finally:
        if previous is not None:
            signal.signal(signal.SIGTERM, previous)
    return 1
