"""
Prometheus metrics for the bank wire server.

Metrics are registered once per process on the default registry and are
updated by the connection handler. ``start_metrics_server`` exposes them on a
separate port; the wire protocol itself never serves them.
"""

import logging

from prometheus_client import Counter, Gauge, Histogram, start_http_server

logger = logging.getLogger("bankserver")

REQ_TOTAL = Counter(
    "bankserver_requests_total", "Total handled requests", ["method", "status"]
)
REQ_FAILURES = Counter(
    "bankserver_request_failures_total", "Requests answered with a classified failure", ["tag"]
)
REQ_IN_FLIGHT = Gauge("bankserver_in_flight_connections", "Connections currently being handled")
REQ_LATENCY = Histogram("bankserver_request_duration_seconds", "Request duration seconds")


def start_metrics_server(port: int, host: str = "127.0.0.1") -> None:
    """Serve Prometheus metrics over HTTP on ``host:port``."""
    start_http_server(port, addr=host)
    logger.info("Metrics exporter listening on %s:%s", host, port)
