"""Metrics module."""

from .exposition import SampleCollector, render_samples
from .registry import (
    record_decode_error,
    record_dial_error,
    record_exchange,
    record_exchange_latency,
    record_perfdata_dropped,
    record_scrape,
)
from .types import MetricKind, MetricSample

__all__ = [
    "MetricKind",
    "MetricSample",
    "SampleCollector",
    "record_decode_error",
    "record_dial_error",
    "record_exchange",
    "record_exchange_latency",
    "record_perfdata_dropped",
    "record_scrape",
    "render_samples",
]
