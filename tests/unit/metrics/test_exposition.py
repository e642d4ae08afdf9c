"""Unit tests for sample exposition."""

from __future__ import annotations

import pytest

from nrpe_bridge.metrics.exposition import SampleCollector, render_samples
from nrpe_bridge.metrics.types import MetricKind, MetricSample


def _sample(name: str, value: float, command: str | None = None, kind: MetricKind = MetricKind.GAUGE) -> MetricSample:
    if command is None:
        return MetricSample(name=name, help=f"{name} help", kind=kind, value=value)
    return MetricSample(
        name=name,
        help=f"{name} help",
        kind=kind,
        value=value,
        label_keys=("command",),
        label_values=(command,),
    )


def test_samples_grouped_by_name_in_first_seen_order() -> None:
    """Test repeated names share one family and families keep first-seen order."""
    collector = SampleCollector(
        [
            _sample("nrpe_command_ok", 1, "check_load"),
            _sample("nrpe_command_status", 0, "check_load"),
            _sample("nrpe_command_ok", 0, "check_disk"),
            _sample("nrpe_up", 1),
        ]
    )

    families = list(collector.collect())

    assert [f.name for f in families] == ["nrpe_command_ok", "nrpe_command_status", "nrpe_up"]
    assert [s.labels for s in families[0].samples] == [{"command": "check_load"}, {"command": "check_disk"}]


def test_render_gauge_text() -> None:
    """Test gauges render with HELP/TYPE headers and labels."""
    text = render_samples([_sample("nrpe_command_ok", 1, "check_load"), _sample("nrpe_up", 1)]).decode()

    assert "# HELP nrpe_command_ok nrpe_command_ok help" in text
    assert "# TYPE nrpe_command_ok gauge" in text
    assert 'nrpe_command_ok{command="check_load"} 1.0' in text
    assert "nrpe_up 1.0" in text


def test_render_counter_gets_total_suffix() -> None:
    """Test counters are exposed with the _total sample suffix."""
    text = render_samples([_sample("rx_bytes", 100, kind=MetricKind.COUNTER)]).decode()

    assert "# TYPE rx_bytes_total counter" in text
    assert "rx_bytes_total 100.0" in text


def test_render_passes_duplicates_through() -> None:
    """Test identical unlabelled series are not merged."""
    text = render_samples([_sample("load", 0.5), _sample("load", 0.6)]).decode()

    assert "load 0.5" in text
    assert "load 0.6" in text


def test_render_empty() -> None:
    """Test an empty scrape renders as an empty body."""
    assert render_samples([]) == b""


@pytest.mark.parametrize(
    ("value", "expected"),
    [("", MetricKind.GAUGE), ("Counter", MetricKind.COUNTER), ("gauge", MetricKind.GAUGE)],
)
def test_metric_kind_parse(value: str, expected: MetricKind) -> None:
    """Test type strings map to kinds, empty meaning gauge."""
    assert MetricKind.parse(value) is expected


def test_metric_kind_parse_invalid() -> None:
    """Test unknown type strings are rejected."""
    with pytest.raises(ValueError):
        MetricKind.parse("histogram")
