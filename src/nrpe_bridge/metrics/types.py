"""Metric records produced by a scrape."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class MetricKind(Enum):
    """Prometheus value type of an emitted sample."""

    GAUGE = "gauge"
    COUNTER = "counter"

    @classmethod
    def parse(cls, value: str | None) -> MetricKind:
        """Map a configured type string to a kind (empty means gauge).

        Raises:
            ValueError: For anything other than gauge or counter
        """
        if not value:
            return cls.GAUGE
        return cls(value.strip().lower())


@dataclass(frozen=True)
class MetricSample:
    """One output metric record.

    Attributes:
        name: Sanitized metric name
        help: Help text
        kind: Gauge or counter
        label_keys: Ordered label names
        label_values: Label values, same order as label_keys
        value: Sample value
    """

    name: str
    help: str
    kind: MetricKind
    value: float
    label_keys: tuple[str, ...] = field(default_factory=tuple)
    label_values: tuple[str, ...] = field(default_factory=tuple)

    @property
    def labels(self) -> dict[str, str]:
        """Labels as a mapping."""
        return dict(zip(self.label_keys, self.label_values, strict=True))
