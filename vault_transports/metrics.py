"""
Prometheus Metrics for Vault transports

Host application should expose the prometheus_client registry.
"""

import logging
from typing import Union

from prometheus_client import Counter, Histogram

logger = logging.getLogger("vault.transports.metrics")

# Transfers by engine, method and outcome (status code or "error")
REQUEST_COUNT = Counter(
    "vault_transport_requests_total",
    "Total number of transfers sent by Vault transports",
    ["transport", "method", "outcome"],
)

REQUEST_LATENCY = Histogram(
    "vault_transport_request_latency_seconds",
    "Transfer latency in seconds",
    ["transport"],
)


def record_transfer(transport: str, method: str, outcome: Union[int, str], latency: float) -> None:
    """
    Record metrics for one transfer.

    Args:
        transport: Engine name (e.g., 'requests', 'aiohttp')
        method: HTTP method
        outcome: HTTP status code, or 'error' for transfer failures
        latency: Transfer duration in seconds
    """
    try:
        REQUEST_COUNT.labels(transport=transport, method=method, outcome=str(outcome)).inc()
        REQUEST_LATENCY.labels(transport=transport).observe(latency)
    except Exception as e:
        # Metrics failures should not break a transfer
        logger.debug("Failed to record metrics: %s", e)
