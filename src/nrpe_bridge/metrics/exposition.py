"""Expose scrape samples through prometheus_client.

Each scrape builds a throwaway CollectorRegistry holding one SampleCollector,
so agent-derived metrics never leak into the process-wide registry.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence

from prometheus_client import CollectorRegistry, generate_latest  # type: ignore[import-untyped]
from prometheus_client.core import Metric  # type: ignore[import-untyped]
from prometheus_client.registry import Collector  # type: ignore[import-untyped]

from nrpe_bridge.metrics.types import MetricKind, MetricSample


class SampleCollector(Collector):
    """Custom collector yielding a fixed list of samples.

    Samples sharing a name and kind are grouped into one family, families are
    yielded in first-seen order and samples keep their original order inside
    a family. Duplicates are passed through untouched.
    """

    def __init__(self, samples: Sequence[MetricSample]):
        self.samples = list(samples)

    def collect(self) -> Iterator[Metric]:
        families: dict[tuple[str, MetricKind], Metric] = {}
        for sample in self.samples:
            key = (sample.name, sample.kind)
            family = families.get(key)
            if family is None:
                family = Metric(sample.name, sample.help, sample.kind.value)
                families[key] = family
            sample_name = f"{family.name}_total" if sample.kind is MetricKind.COUNTER else family.name
            family.add_sample(sample_name, sample.labels, sample.value)
        yield from families.values()


def render_samples(samples: Sequence[MetricSample]) -> bytes:
    """Render samples in the Prometheus text exposition format."""
    registry = CollectorRegistry(auto_describe=False)
    registry.register(SampleCollector(samples))
    return generate_latest(registry)
