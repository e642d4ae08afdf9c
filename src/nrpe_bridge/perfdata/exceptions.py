"""Performance data errors.

Both are local to one field: the parser catches them, logs, and either drops
the field (LabelDecodeError) or substitutes the -1 sentinel (ValueParseError).
"""

from __future__ import annotations


class PerfDataError(Exception):
    """Base exception for performance data errors."""


class LabelDecodeError(PerfDataError):
    """Malformed base64 or ``key="value"`` syntax inside a labels() field.

    Attributes:
        field_name: Perfdata field the labels belong to
        reason: Specific failure reason ("invalid_base64", "invalid_label_pair", "duplicate_label", "no_labels")
    """

    def __init__(self, field_name: str, reason: str, detail: str = ""):
        self.field_name = field_name
        self.reason = reason
        message = f"Cannot decode labels of field {field_name!r}: {reason}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class ValueParseError(PerfDataError, ValueError):
    """Value text does not start with a number.

    Attributes:
        raw: Offending value text
    """

    def __init__(self, raw: str):
        self.raw = raw
        super().__init__(f"Invalid perfdata value: {raw!r}")
