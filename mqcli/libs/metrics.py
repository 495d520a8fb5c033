"""Prometheus metrics and a tiny HTTP server to expose them.

One-shot commands only update counters in-process. The follow loop calls
`start_metrics_server(port)` when ``MQ_METRICS_PORT`` is set, so a long
running consumer can be scraped.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, start_http_server


# Command metrics
OPERATION_TOTAL = Counter(
    "mq_operation_total", "Total commands executed", ["operation", "result"]
)

# Message metrics
MESSAGES_SENT_TOTAL = Counter(
    "mq_messages_sent_total", "Total messages sent to a queue"
)
MESSAGES_RECEIVED_TOTAL = Counter(
    "mq_messages_received_total", "Total messages received from a queue"
)
BYTES_RECEIVED_TOTAL = Counter(
    "mq_bytes_received_total", "Total payload bytes received from a queue"
)

# Follow loop
FOLLOW_ACTIVE = Gauge(
    "mq_follow_active", "1 while a follow loop is waiting on a queue", ["queue"]
)


def start_metrics_server(port: int) -> None:
    start_http_server(port)
