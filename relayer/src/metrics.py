"""Prometheus metrics for the relayer.

Metrics are registered on the default ``prometheus_client`` registry and
served by the health server on ``GET /metrics``.
"""

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

price_update_counter = Counter(
    "relayer_price_update_total",
    "Number of price update cycles by outcome",
    ["outcome"],
)

hermes_fetch_duration = Histogram(
    "relayer_hermes_fetch_duration_seconds",
    "Duration of Hermes API price fetches in seconds",
)


def record_outcome(label: str) -> None:
    """Count one finished update cycle.

    :param label: Outcome label (e.g., "submitted", "failed").
    """
    price_update_counter.labels(outcome=label).inc()


def render_latest() -> tuple[bytes, str]:
    """Render all metrics in the Prometheus text format.

    :returns: Tuple of (body, content type).
    """
    return generate_latest(), CONTENT_TYPE_LATEST
