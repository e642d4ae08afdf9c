"""Performance data field variants.

A perfdata token is either a plain ``name=v1;v2;...`` field or a
``name=labels(<base64>)[,value]`` field carrying its own label set.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class NumericField:
    """``name=v1[;v2[;v3...]]``: ordered raw value slots, not yet parsed.

    Attributes:
        name: Field name (left of the first "=")
        values: Raw slot strings in source order
    """

    name: str
    values: tuple[str, ...]


@dataclass(frozen=True)
class LabeledField:
    """``name=labels(<base64>)[,value]`` with a decoded label set.

    Attributes:
        name: Field name (left of the first "=")
        labels: Decoded (key, value) pairs in source order
        value: Parsed numeric value (1.0 when absent)
    """

    name: str
    labels: tuple[tuple[str, str], ...]
    value: float


PerfField = NumericField | LabeledField
