"""Metric naming and labelling policy for performance data.

Turns parsed perfdata fields plus per-command naming configuration into final
metric samples. Everything here is a pure function of its inputs: the same
fields and config always give the same samples in the same order.

Naming priority for plain numeric fields:
1. Explicit metric name list: slot i becomes metric ``metric_names[i]``
   (extra slots are dropped), labelled with the field name.
2. Metric prefix: metric ``<prefix>_<field>``, first slot, no label.
3. Otherwise: metric ``<command>``, first slot, labelled with the field name.

The label key is the configured label name (or the command name). The label
name ``NONE`` suppresses the label, and duplicate series then become the
caller's responsibility.

labels() fields become ``<prefix or command>_<field>`` with their decoded label set.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Final

from nrpe_bridge.metrics.types import MetricKind, MetricSample
from nrpe_bridge.perfdata.parser import parse_value
from nrpe_bridge.perfdata.types import LabeledField, NumericField, PerfField

if TYPE_CHECKING:
    from nrpe_bridge.profiles import CommandSpec

UNDEFINED_METRIC_NAME: Final = "undefined_metric_name"
DEFAULT_PERFDATA_HELP: Final = "the NRPE command perfdata value"
NO_LABEL_SENTINEL: Final = "NONE"

PRINTABLE_ASCII_MIN: Final = 0x20
PRINTABLE_ASCII_MAX: Final = 0x7E

logger = logging.getLogger(__name__)


def validate_metric_name(name: str) -> str:
    """
    Sanitize a string into a valid metric name.

    Characters outside ``[a-zA-Z0-9_:]`` become "_", a leading digit becomes
    "_", and the result is lowercased. Empty input yields a fixed placeholder.

    Example:
        >>> validate_metric_name("My Metric!")
        'my_metric_'

    """
    if not name:
        name = UNDEFINED_METRIC_NAME
    chars = [
        ch if (ch.isascii() and (ch.isalpha() or ch in "_:" or (ch.isdigit() and i > 0))) else "_"
        for i, ch in enumerate(name)
    ]
    return "".join(chars).lower()


def validate_label_name(name: str) -> str:
    """Sanitize a label key (metric name rules without ":")."""
    return validate_metric_name(name).replace(":", "_")


def sanitize_label_value(value: str) -> str:
    """Replace every character outside printable ASCII with "_"."""
    return "".join(ch if PRINTABLE_ASCII_MIN <= ord(ch) <= PRINTABLE_ASCII_MAX else "_" for ch in value)


@dataclass(frozen=True)
class NamingConfig:
    """Explicit naming configuration for one command.

    Attributes:
        command: Command name (metric name / label key fallback)
        metric_names: Ordered per-slot metric names (empty for none)
        metric_prefix: Prefix for per-field metric names
        label_name: Label key override, or "NONE" for no label
        help: Help text override
        kind: Value type of emitted samples
    """

    command: str
    metric_names: tuple[str, ...] = field(default_factory=tuple)
    metric_prefix: str = ""
    label_name: str = ""
    help: str = ""
    kind: MetricKind = MetricKind.GAUGE

    @classmethod
    def from_command_spec(cls, spec: CommandSpec) -> NamingConfig:
        """Build the naming config of a configured command."""
        return cls(
            command=spec.command,
            metric_names=tuple(spec.metric_name),
            metric_prefix=spec.metric_prefix,
            label_name=spec.label_name,
            help=spec.help,
            kind=spec.kind,
        )

    @property
    def help_text(self) -> str:
        """Help override or the generic default."""
        return self.help or DEFAULT_PERFDATA_HELP

    @property
    def suppress_label(self) -> bool:
        """Whether the NONE sentinel is configured."""
        return self.label_name == NO_LABEL_SENTINEL

    @property
    def label_key(self) -> str:
        """Label key carrying the perfdata field name."""
        return validate_label_name((self.label_name or self.command).lower())


def _field_label(config: NamingConfig, field_name: str) -> tuple[tuple[str, ...], tuple[str, ...]]:
    if config.suppress_label:
        return (), ()
    return (config.label_key,), (sanitize_label_value(field_name),)


def _numeric_samples(perf: NumericField, config: NamingConfig) -> Iterable[MetricSample]:
    if config.metric_names:
        label_keys, label_values = _field_label(config, perf.name)
        for metric_name, raw_value in zip(config.metric_names, perf.values, strict=False):
            if not metric_name:
                continue
            yield MetricSample(
                name=validate_metric_name(metric_name),
                help=config.help_text,
                kind=config.kind,
                value=parse_value(raw_value),
                label_keys=label_keys,
                label_values=label_values,
            )
        return

    value = parse_value(perf.values[0])
    if config.metric_prefix:
        yield MetricSample(
            name=validate_metric_name(f"{config.metric_prefix}_{perf.name}"),
            help=config.help_text,
            kind=config.kind,
            value=value,
        )
        return

    label_keys, label_values = _field_label(config, perf.name)
    yield MetricSample(
        name=validate_metric_name(config.command),
        help=config.help_text,
        kind=config.kind,
        value=value,
        label_keys=label_keys,
        label_values=label_values,
    )


def _labeled_sample(perf: LabeledField, config: NamingConfig) -> MetricSample:
    base = config.metric_prefix or config.command
    return MetricSample(
        name=validate_metric_name(f"{base}_{perf.name}"),
        help=config.help_text,
        kind=config.kind,
        value=perf.value,
        label_keys=tuple(key for key, _ in perf.labels),
        label_values=tuple(sanitize_label_value(value) for _, value in perf.labels),
    )


def derive_samples(fields: Sequence[PerfField], config: NamingConfig) -> list[MetricSample]:
    """
    Apply the naming policy to parsed fields, preserving field and slot order.

    Args:
        fields: Parsed perfdata fields
        config: Naming configuration of the command that produced them

    Returns:
        Metric samples ready for exposition
    """
    samples: list[MetricSample] = []
    for perf in fields:
        match perf:
            case NumericField():
                samples.extend(_numeric_samples(perf, config))
            case LabeledField():
                samples.append(_labeled_sample(perf, config))

    logger.debug(
        "Derived %d samples from %d perfdata fields",
        len(samples),
        len(fields),
        extra={"command": config.command},
    )
    return samples
