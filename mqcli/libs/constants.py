"""Shared constants for queue operations, delimiters and diagnostics.

Operation names (used as the prefix of every error line):
- ``mq_open``: opening or creating a queue.
- ``mq_getattr``: reading queue attributes.
- ``mq_send`` / ``mq_receive``: exchanging a message.
- ``mq_unlink``: removing a queue name.
- ``poll``: the readiness wait of the follow loop.
- ``write``: emitting a received message on standard output.

Delimiter specifiers (``--delimiter``):
- ``n``: newline (LF), the default.
- ``z``: NUL byte.
- ``x``: no delimiter.
"""
# Constants for queue operations

PROG_NAME = "mq"

OP_OPEN = "mq_open"
OP_GETATTR = "mq_getattr"
OP_SEND = "mq_send"
OP_RECEIVE = "mq_receive"
OP_UNLINK = "mq_unlink"
OP_CLOSE = "mq_close"
OP_POLL = "poll"
OP_WRITE = "write"

# Defaults for create
DEFAULT_MAX_MESSAGES = 10
DEFAULT_MAX_MESSAGE_SIZE = 1024
DEFAULT_PRIORITY = 0

# Queue names live in a flat namespace: "/name", the part after "/" at most NAME_MAX bytes
QUEUE_NAME_PREFIX = "/"
QUEUE_NAME_MAX = 255

# Delimiter specifiers
DELIMITER_NEWLINE = "n"
DELIMITER_NUL = "z"
DELIMITER_NONE = "x"
DELIMITER_BYTES = {
    DELIMITER_NEWLINE: b"\n",
    DELIMITER_NUL: b"\0",
    DELIMITER_NONE: b"",
}

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
