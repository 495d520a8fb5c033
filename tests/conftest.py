import io
import itertools
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Tuple

import posix_ipc
import pytest

from mqcli.libs.codec import Streams
from mqcli.libs.config import reset_settings


@dataclass
class FakeQueueState:
    max_messages: int
    max_message_size: int
    mode: int
    # (priority, sequence, payload)
    messages: List[Tuple[int, int, bytes]] = field(default_factory=list)


class FakeBroker:
    """In-memory stand-in for the kernel queue namespace."""

    def __init__(self) -> None:
        self.queues: Dict[str, FakeQueueState] = {}
        self.handles: List["FakeMessageQueue"] = []
        self._seq = itertools.count()
        self._fds = itertools.count(100)

    def message_queue_class(self):
        broker = self

        class FakeMessageQueue:
            def __init__(self, name, flags=0, mode=0o600, max_messages=10, max_message_size=8192,
                         read=True, write=True):
                if flags & posix_ipc.O_CREAT:
                    if flags & posix_ipc.O_EXCL and name in broker.queues:
                        raise posix_ipc.ExistentialError("Queue already exists")
                    if max_messages <= 0 or max_message_size <= 0:
                        raise ValueError("Invalid parameter(s)")
                    broker.queues.setdefault(name, FakeQueueState(max_messages, max_message_size, mode))
                elif name not in broker.queues:
                    raise posix_ipc.ExistentialError("No queue exists with the specified name")
                self.name = name
                self.read = read
                self.write = write
                self.block = True
                self.mqd = next(broker._fds)
                self.closed = False
                self._state = broker.queues[name]
                broker.handles.append(self)

            @property
            def max_messages(self):
                return self._state.max_messages

            @property
            def max_message_size(self):
                return self._state.max_message_size

            @property
            def current_messages(self):
                return len(self._state.messages)

            def send(self, message, timeout=None, priority=0):
                if not self.write:
                    raise posix_ipc.PermissionsError("The queue is not open for writing")
                if len(message) > self._state.max_message_size:
                    raise ValueError("The message is longer than the queue's message size")
                if len(self._state.messages) >= self._state.max_messages:
                    if self.block:
                        raise AssertionError("blocking send on a full queue would hang")
                    raise posix_ipc.BusyError("The queue is full")
                self._state.messages.append((priority, next(broker._seq), bytes(message)))

            def receive(self, timeout=None):
                if not self.read:
                    raise posix_ipc.PermissionsError("The queue is not open for reading")
                if not self._state.messages:
                    if self.block:
                        raise AssertionError("blocking receive on an empty queue would hang")
                    raise posix_ipc.BusyError("The queue is empty")
                best = max(self._state.messages, key=lambda m: (m[0], -m[1]))
                self._state.messages.remove(best)
                return best[2], best[0]

            def close(self):
                self.closed = True

        return FakeMessageQueue

    def unlink(self, name):
        if name not in self.queues:
            raise posix_ipc.ExistentialError("No queue exists with the specified name")
        del self.queues[name]

    def put(self, name: str, payload: bytes, priority: int = 0) -> None:
        self.queues[name].messages.append((priority, next(self._seq), payload))

    def depth(self, name: str) -> int:
        return len(self.queues[name].messages)

    @property
    def open_handles(self):
        return [h for h in self.handles if not h.closed]


@pytest.fixture
def broker(monkeypatch):
    fake = FakeBroker()
    monkeypatch.setattr(posix_ipc, "MessageQueue", fake.message_queue_class())
    monkeypatch.setattr(posix_ipc, "unlink_message_queue", fake.unlink)
    return fake


@pytest.fixture
def streams():
    return Streams(stdin=io.BytesIO(), stdout=io.BytesIO())


@pytest.fixture(autouse=True)
def _isolated_config(monkeypatch):
    for key in ("MQ_DEFAULT_MAXMSG", "MQ_DEFAULT_MSGSIZE", "MQ_CREATE_MODE", "MQ_METRICS_PORT", "MQ_LOG_FORMAT"):
        monkeypatch.delenv(key, raising=False)
    reset_settings()
    package_logger = logging.getLogger("mqcli")
    yield
    reset_settings()
    package_logger.handlers = []
    package_logger.setLevel(logging.NOTSET)
    package_logger.propagate = True
