"""Performance data package - perfdata parsing and metric naming."""

from nrpe_bridge.perfdata.exceptions import LabelDecodeError, PerfDataError, ValueParseError
from nrpe_bridge.perfdata.naming import (
    NamingConfig,
    derive_samples,
    sanitize_label_value,
    validate_label_name,
    validate_metric_name,
)
from nrpe_bridge.perfdata.parser import parse_output, parse_perfdata, parse_value
from nrpe_bridge.perfdata.types import LabeledField, NumericField, PerfField

__all__ = [
    "LabelDecodeError",
    "LabeledField",
    "NamingConfig",
    "NumericField",
    "PerfDataError",
    "PerfField",
    "ValueParseError",
    "derive_samples",
    "parse_output",
    "parse_perfdata",
    "parse_value",
    "sanitize_label_value",
    "validate_label_name",
    "validate_metric_name",
]
