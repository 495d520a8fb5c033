import io
import logging

import posix_ipc
import pytest

from mqcli.commands import EXECUTORS, dispatch
from mqcli.libs.codec import Streams
from mqcli.libs.config import Settings
from mqcli.libs.models import (
    CreateCommand,
    Delimiter,
    InfoCommand,
    RecvCommand,
    SendCommand,
    UnlinkCommand,
)


def run(invocation, stdin=b""):
    streams = Streams(stdin=io.BytesIO(stdin), stdout=io.BytesIO())
    status = dispatch(invocation, streams=streams, settings=Settings())
    return status, streams.stdout.getvalue()


def test_dispatch_table_covers_every_command():
    assert set(EXECUTORS) == {"create", "info", "unlink", "send", "recv"}


@pytest.mark.parametrize("max_messages,max_message_size", [(1, 1), (5, 64), (10, 8192)])
def test_create_then_info_reports_attributes(broker, max_messages, max_message_size):
    assert run(CreateCommand("/q", max_messages, max_message_size)) == (0, b"")
    status, out = run(InfoCommand("/q"))
    assert status == 0
    assert out == f"/q: maxmsg={max_messages}, msgsize={max_message_size}, curmsgs=0\n".encode()
    assert broker.open_handles == []


def test_create_uses_configured_permissions(broker):
    run(CreateCommand("/q"))
    assert broker.queues["/q"].mode == 0o644
    assert broker.queues["/q"].max_messages == 10
    assert broker.queues["/q"].max_message_size == 1024


def test_create_existing_queue_fails_and_keeps_attributes(broker, caplog):
    run(CreateCommand("/q", 3, 32))
    status, _ = run(CreateCommand("/q", 8, 128))
    assert status == 1
    assert "mq_open error: File exists" in caplog.text
    assert run(InfoCommand("/q"))[1] == b"/q: maxmsg=3, msgsize=32, curmsgs=0\n"


def test_create_rejects_zero_size(broker, caplog):
    status, _ = run(CreateCommand("/q", 10, 0))
    assert status == 1
    assert "mq_open error: Invalid argument" in caplog.text
    assert broker.queues == {}


def test_info_reports_current_depth(broker):
    run(CreateCommand("/q", 4, 16))
    run(SendCommand("/q", b"one"))
    run(SendCommand("/q", b"two"))
    assert run(InfoCommand("/q"))[1] == b"/q: maxmsg=4, msgsize=16, curmsgs=2\n"


@pytest.mark.parametrize(
    "delimiter,suffix",
    [(Delimiter.NEWLINE, b"\n"), (Delimiter.NUL, b"\x00"), (Delimiter.NONE, b"")],
)
def test_send_then_recv_round_trip(broker, delimiter, suffix):
    payload = b"\x00\x01hello\xff"
    run(CreateCommand("/q", 4, 16))
    assert run(SendCommand("/q", payload)) == (0, b"")
    assert run(RecvCommand("/q", delimiter=delimiter)) == (0, payload + suffix)
    assert broker.open_handles == []


def test_send_reads_stdin_when_no_message(broker):
    run(CreateCommand("/q", 4, 64))
    assert run(SendCommand("/q", None), stdin=b"line one\nline two\n")[0] == 0
    assert run(RecvCommand("/q", delimiter=Delimiter.NONE))[1] == b"line one\nline two\n"


def test_send_priority_is_honoured(broker):
    run(CreateCommand("/q", 4, 16))
    run(SendCommand("/q", b"normal"))
    run(SendCommand("/q", b"urgent", priority=3))
    assert run(RecvCommand("/q"))[1] == b"urgent\n"
    assert run(RecvCommand("/q"))[1] == b"normal\n"


def test_send_oversize_fails_and_leaves_depth(broker, caplog):
    run(CreateCommand("/q", 4, 4))
    status, _ = run(SendCommand("/q", b"12345"))
    assert status == 1
    assert "mq_send error: Message too long" in caplog.text
    assert broker.depth("/q") == 0
    assert broker.open_handles == []


def test_send_to_missing_queue(broker, caplog):
    status, _ = run(SendCommand("/nope", b"x"))
    assert status == 1
    assert "mq_open error: No such file or directory" in caplog.text


def test_non_blocking_send_on_full_queue(broker, caplog):
    run(CreateCommand("/q", 1, 16))
    assert run(SendCommand("/q", b"a", blocking=False))[0] == 0
    status, _ = run(SendCommand("/q", b"b", blocking=False))
    assert status == 1
    assert "mq_send error: Resource temporarily unavailable" in caplog.text
    assert broker.depth("/q") == 1


def test_non_blocking_recv_on_empty_queue(broker, caplog):
    run(CreateCommand("/q", 1, 16))
    status, out = run(RecvCommand("/q", blocking=False))
    assert (status, out) == (1, b"")
    assert "mq_receive error: Resource temporarily unavailable" in caplog.text
    assert broker.open_handles == []


def test_unlink_removes_queue(broker, caplog):
    run(CreateCommand("/q"))
    assert run(UnlinkCommand("/q")) == (0, b"")
    assert run(InfoCommand("/q"))[0] == 1
    assert run(UnlinkCommand("/q"))[0] == 1
    assert "mq_unlink error: No such file or directory" in caplog.text


def test_invalid_queue_name(broker, caplog):
    status, _ = run(InfoCommand("noslash"))
    assert status == 1
    assert "mq_open error: queue name must start with '/'" in caplog.text


def test_verbose_logs_open_flags_and_hex_payload(broker, caplog):
    caplog.set_level(logging.DEBUG, logger="mqcli")
    run(CreateCommand("/q", 2, 8))
    run(SendCommand("/q", b"ab", blocking=False))
    run(RecvCommand("/q"))
    messages = [r.getMessage() for r in caplog.records]
    assert "Opening mq /q (O_CREAT, O_RDWR, O_EXCL, 644)" in messages
    assert "Opening mq /q (O_WRONLY, O_NONBLOCK)" in messages
    assert "Opening mq /q (O_RDONLY)" in messages
    assert messages.count("61 62") == 2


def test_verbose_output_stays_off_stdout(broker, caplog):
    caplog.set_level(logging.DEBUG, logger="mqcli")
    run(CreateCommand("/q", 2, 8))
    run(SendCommand("/q", b"data"))
    assert run(RecvCommand("/q")) == (0, b"data\n")


def test_longest_queue_name_works_for_every_command(broker):
    name = "/" + "a" * 255
    assert run(CreateCommand(name, 2, 8)) == (0, b"")
    assert run(SendCommand(name, b"hi")) == (0, b"")
    assert run(RecvCommand(name)) == (0, b"hi\n")
    assert run(InfoCommand(name)) == (0, f"{name}: maxmsg=2, msgsize=8, curmsgs=0\n".encode())
    assert run(UnlinkCommand(name)) == (0, b"")


def test_overlong_queue_name_is_rejected(broker, caplog):
    assert run(CreateCommand("/" + "a" * 256, 2, 8)) == (1, b"")
    assert "mq_open error: File name too long" in caplog.text
    assert broker.queues == {}


def test_recv_queries_attributes_before_receiving(broker, caplog):
    caplog.set_level(logging.DEBUG, logger="mqcli")
    run(CreateCommand("/q", 2, 8))
    run(SendCommand("/q", b"12345678"))
    assert run(RecvCommand("/q", delimiter=Delimiter.NONE)) == (0, b"12345678")
    assert "Receiving from mq /q (msgsize=8)" in caplog.text


def test_interrupted_blocking_recv_exits_one(broker, caplog, monkeypatch):
    def interrupted(self, timeout=None):
        raise KeyboardInterrupt

    run(CreateCommand("/q"))
    monkeypatch.setattr(posix_ipc.MessageQueue, "receive", interrupted)
    assert run(RecvCommand("/q")) == (1, b"")
    assert "recv: interrupted" in caplog.text
    assert broker.open_handles == []


def test_interrupted_stdin_read_exits_one(broker, caplog):
    class InterruptedStdin(io.RawIOBase):
        def readable(self):
            return True

        def readinto(self, b):
            raise KeyboardInterrupt

    run(CreateCommand("/q"))
    streams = Streams(stdin=InterruptedStdin(), stdout=io.BytesIO())
    assert dispatch(SendCommand("/q"), streams=streams, settings=Settings()) == 1
    assert "send: interrupted" in caplog.text
    assert broker.depth("/q") == 0
    assert broker.open_handles == []
