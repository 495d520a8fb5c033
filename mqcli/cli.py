"""
Command-line interface for the mq tool.
"""

import os

import click

from mqcli import __version__
from mqcli.commands import dispatch
from mqcli.libs.config import get_settings
from mqcli.libs.constants import DELIMITER_BYTES, DELIMITER_NEWLINE, PROG_NAME
from mqcli.libs.models import (
    CreateCommand,
    Delimiter,
    InfoCommand,
    RecvCommand,
    SendCommand,
    UnlinkCommand,
)
from mqcli.utils.logging import setup_logging


EPILOG = """\b
Delimiters:
  n         new line (LF) [default]
  z         zero (NUL)
  x         no delimiter

\b
Examples:
  mq create /myqueue
  mq send /myqueue "hello" -n
  echo hello | mq send /myqueue
  mq info /myqueue
  mq recv /myqueue
  mq recv /myqueue --follow -d z
  mq unlink /myqueue
"""


def common_options(func):
    """Options accepted by every command."""
    func = click.option(
        "--delimiter", "-d",
        type=click.Choice(sorted(DELIMITER_BYTES)),
        default=DELIMITER_NEWLINE,
        show_default=True,
        help="Character to delimit the end of received messages (see delimiters)",
    )(func)
    func = click.option(
        "--timestamp", "-t",
        is_flag=True,
        help="Print a timestamp before lines of diagnostics",
    )(func)
    func = click.option(
        "--verbose", "-v",
        is_flag=True,
        help="Produce verbose output on standard error",
    )(func)
    return func


def _run(ctx: click.Context, invocation, verbose: bool, timestamp: bool) -> None:
    settings = get_settings()
    setup_logging(verbose=verbose, timestamp=timestamp, format_string=settings.log_format)
    ctx.exit(dispatch(invocation, settings=settings))


@click.group(epilog=EPILOG, context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(version=__version__, prog_name=PROG_NAME, message="%(prog)s %(version)s")
def cli():
    """A command line tool to use POSIX message queues from the shell"""
    pass


@cli.command()
@click.argument("qname")
@click.option("--maxmsg", "-m", type=int, help="Maximum number of messages in queue  [default: 10]")
@click.option("--msgsize", "-s", type=int, help="Message size in bytes  [default: 1024]")
@common_options
@click.pass_context
def create(ctx, qname, maxmsg, msgsize, verbose, timestamp, delimiter):
    """Create a POSIX message queue"""
    settings = get_settings()
    invocation = CreateCommand(
        queue_name=qname,
        max_messages=settings.default_max_messages if maxmsg is None else maxmsg,
        max_message_size=settings.default_max_message_size if msgsize is None else msgsize,
    )
    _run(ctx, invocation, verbose, timestamp)


@cli.command()
@click.argument("qname")
@common_options
@click.pass_context
def info(ctx, qname, verbose, timestamp, delimiter):
    """Print information about an existing message queue"""
    _run(ctx, InfoCommand(queue_name=qname), verbose, timestamp)


@cli.command()
@click.argument("qname")
@common_options
@click.pass_context
def unlink(ctx, qname, verbose, timestamp, delimiter):
    """Delete a message queue"""
    _run(ctx, UnlinkCommand(queue_name=qname), verbose, timestamp)


@cli.command()
@click.argument("qname")
@click.argument("message", required=False)
@click.option("--priority", "-p", type=click.IntRange(min=0), default=0, show_default=True,
              help="Use priority PRIO, PRIO >= 0")
@click.option("--non-blocking", "-n", "non_blocking", is_flag=True,
              help="Fail instead of waiting when the queue is full")
@common_options
@click.pass_context
def send(ctx, qname, message, priority, non_blocking, verbose, timestamp, delimiter):
    """Send a message to a message queue (MESSAGE or standard input)"""
    invocation = SendCommand(
        queue_name=qname,
        message=None if message is None else os.fsencode(message),
        priority=priority,
        blocking=not non_blocking,
    )
    _run(ctx, invocation, verbose, timestamp)


@cli.command()
@click.argument("qname")
@click.option("--non-blocking", "-n", "non_blocking", is_flag=True,
              help="Fail instead of waiting when the queue is empty")
@click.option("--follow", "-f", is_flag=True, help="Print messages as they are received")
@common_options
@click.pass_context
def recv(ctx, qname, non_blocking, follow, verbose, timestamp, delimiter):
    """Receive and print a message from a message queue"""
    invocation = RecvCommand(
        queue_name=qname,
        blocking=not non_blocking,
        follow=follow,
        delimiter=Delimiter.from_spec(delimiter),
    )
    _run(ctx, invocation, verbose, timestamp)


def main() -> None:
    cli(prog_name=PROG_NAME)
