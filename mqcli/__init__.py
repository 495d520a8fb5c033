"""Command line front end for POSIX message queues.

Subpackages and modules include configuration, the queue handle manager,
the message codec, metrics, the command executors and the follow loop.
"""

__version__ = "1.0.0"
