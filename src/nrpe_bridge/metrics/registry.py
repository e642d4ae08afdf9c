"""Prometheus metrics registry for the bridge's own instrumentation.

These metrics describe the bridge itself (exchanges, decode errors, scrapes)
and live in the process-wide default registry served on the metrics path.
Metrics derived from agent results never go here; they are built per scrape.
"""

from typing import Final

from prometheus_client import Counter, Histogram  # type: ignore[import-untyped]

# Metric definitions
nrpe_bridge_exchange_total: Final = Counter(  # type: ignore[assignment]
    "nrpe_bridge_exchange_total",
    "Total NRPE exchanges",
    ["target", "outcome"],
)

nrpe_bridge_exchange_latency_seconds: Final = Histogram(  # type: ignore[assignment]
    "nrpe_bridge_exchange_latency_seconds",
    "NRPE exchange round-trip latency in seconds",
    ["target"],
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

nrpe_bridge_decode_errors_total: Final = Counter(  # type: ignore[assignment]
    "nrpe_bridge_decode_errors_total",
    "Total response packets rejected by the decoder",
    ["target", "reason"],
)

nrpe_bridge_dial_errors_total: Final = Counter(  # type: ignore[assignment]
    "nrpe_bridge_dial_errors_total",
    "Total failed attempts to connect to an agent",
    ["target"],
)

nrpe_bridge_scrape_total: Final = Counter(  # type: ignore[assignment]
    "nrpe_bridge_scrape_total",
    "Total scrapes served",
    ["outcome"],
)

nrpe_bridge_scrape_duration_seconds: Final = Histogram(  # type: ignore[assignment]
    "nrpe_bridge_scrape_duration_seconds",
    "Scrape duration in seconds",
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
)

nrpe_bridge_perfdata_dropped_total: Final = Counter(  # type: ignore[assignment]
    "nrpe_bridge_perfdata_dropped_total",
    "Total performance data fields dropped",
    ["reason"],
)


def record_exchange(target: str, outcome: str) -> None:
    """Record an exchange outcome (success, failure, cancelled)."""
    nrpe_bridge_exchange_total.labels(target=target, outcome=outcome).inc()  # type: ignore[no-untyped-call]


def record_exchange_latency(target: str, latency_seconds: float) -> None:
    """Record exchange latency."""
    nrpe_bridge_exchange_latency_seconds.labels(target=target).observe(latency_seconds)  # type: ignore[no-untyped-call]


def record_decode_error(target: str, reason: str) -> None:
    """Record a decode error."""
    nrpe_bridge_decode_errors_total.labels(target=target, reason=reason).inc()  # type: ignore[no-untyped-call]


def record_dial_error(target: str) -> None:
    """Record a dial failure."""
    nrpe_bridge_dial_errors_total.labels(target=target).inc()  # type: ignore[no-untyped-call]


def record_scrape(outcome: str, duration_seconds: float) -> None:
    """Record a finished scrape (up or down)."""
    nrpe_bridge_scrape_total.labels(outcome=outcome).inc()  # type: ignore[no-untyped-call]
    nrpe_bridge_scrape_duration_seconds.observe(duration_seconds)  # type: ignore[no-untyped-call]


def record_perfdata_dropped(reason: str) -> None:
    """Record a dropped performance data field."""
    nrpe_bridge_perfdata_dropped_total.labels(reason=reason).inc()  # type: ignore[no-untyped-call]
