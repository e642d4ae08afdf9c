"""Performance data parser.

Check output has the shape ``<status line> | <field> <field> ...``. Everything
before the first ``|`` is the human status line; the rest is split on single
spaces into fields, each either ``name=v1;v2;...`` or
``name=labels(<base64>)[,value]``.

Problems inside one field never fail the scrape: a malformed labels() field is
dropped and an unparsable value becomes -1, both with a log line.
"""

from __future__ import annotations

import base64
import binascii
import logging
import re
from typing import Final

from nrpe_bridge.metrics import registry
from nrpe_bridge.perfdata.exceptions import LabelDecodeError, ValueParseError
from nrpe_bridge.perfdata.types import LabeledField, NumericField, PerfField

PERFDATA_SEPARATOR: Final = "|"
FIELD_SEPARATOR: Final = " "
SLOT_SEPARATOR: Final = ";"
BLANK_CHARACTERS: Final = " \t\r\n"

# Sentinel for absent or malformed values (monitoring-plugin convention)
VALUE_SENTINEL: Final = -1.0
DEFAULT_LABELED_VALUE: Final = 1.0

LABELS_PATTERN: Final = re.compile(r"^labels\(([^)]*)\)(?:,(.*))?$")
LABEL_PAIR_PATTERN: Final = re.compile(r'^([a-zA-Z_][a-zA-Z0-9_]*)="([^"]*)"$')
VALUE_PATTERN: Final = re.compile(r"^[-+]?[0-9.]+")

logger = logging.getLogger(__name__)


def extract_number(raw: str) -> float:
    """
    Parse the longest leading ``[-+]?[0-9.]+`` of a value slot.

    Units and other suffixes ("12.5MB", "80%") are ignored.

    Raises:
        ValueParseError: If no number can be extracted
    """
    match = VALUE_PATTERN.match(raw)
    if match is None:
        raise ValueParseError(raw)
    try:
        return float(match.group(0))
    except ValueError as e:
        raise ValueParseError(raw) from e


def parse_value(raw: str) -> float:
    """Parse a value slot, returning -1 when it is absent or malformed."""
    try:
        return extract_number(raw)
    except ValueParseError:
        logger.debug("Invalid perfdata value, using sentinel", extra={"raw_value": raw})
        return VALUE_SENTINEL


def decode_labels(field_name: str, encoded: str) -> tuple[tuple[str, str], ...]:
    """
    Decode the base64 body of a labels() field into ordered (key, value) pairs.

    Non-printable characters are stripped from the decoded text before it is
    split on spaces. Any token that is not a strict ``key="value"`` pair
    abandons the whole label set.

    Raises:
        LabelDecodeError: On invalid base64, a malformed pair, a repeated key, or no pairs at all
    """
    try:
        decoded = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as e:
        raise LabelDecodeError(field_name, "invalid_base64", str(e)) from e

    text = "".join(ch for ch in decoded.decode("utf-8", errors="replace") if ch.isprintable())

    pairs: list[tuple[str, str]] = []
    for token in text.split(FIELD_SEPARATOR):
        if not token:
            continue
        match = LABEL_PAIR_PATTERN.match(token)
        if match is None:
            raise LabelDecodeError(field_name, "invalid_label_pair", token)
        key = match.group(1)
        if any(key == seen for seen, _ in pairs):
            raise LabelDecodeError(field_name, "duplicate_label", key)
        pairs.append((key, match.group(2)))

    if not pairs:
        raise LabelDecodeError(field_name, "no_labels")
    return tuple(pairs)


def parse_field(token: str) -> PerfField | None:
    """
    Parse one perfdata token.

    Returns:
        NumericField or LabeledField, or None when the token is skipped
        (no "=", or undecodable labels)
    """
    name, sep, raw_value = token.partition("=")
    if not sep:
        logger.debug("Skipping perfdata token without '='", extra={"token": token})
        registry.record_perfdata_dropped("missing_equals")
        return None

    match = LABELS_PATTERN.match(raw_value)
    if match is None:
        return NumericField(name=name, values=tuple(raw_value.split(SLOT_SEPARATOR)))

    try:
        labels = decode_labels(name, match.group(1))
    except LabelDecodeError as e:
        logger.warning("Dropping perfdata field: %s", e, extra={"field": name, "reason": e.reason})
        registry.record_perfdata_dropped(e.reason)
        return None

    extra_value = match.group(2)
    value = parse_value(extra_value) if extra_value else DEFAULT_LABELED_VALUE
    return LabeledField(name=name, labels=labels, value=value)


def split_output(output_text: str) -> tuple[str, str | None]:
    """Split check output into (status line, raw perfdata or None)."""
    status_line, sep, perfdata = output_text.partition(PERFDATA_SEPARATOR)
    if not sep:
        return output_text.strip(BLANK_CHARACTERS), None
    return status_line.strip(BLANK_CHARACTERS), perfdata.strip(BLANK_CHARACTERS)


def parse_perfdata(output_text: str) -> list[PerfField]:
    """
    Parse all performance data fields of a check output, in source order.

    Args:
        output_text: Full check output (status line and optional perfdata)

    Returns:
        Parsed fields; empty when the output has no "|"

    Example:
        >>> parse_perfdata("OK | load1=0.50;0.60;0.70")
        [NumericField(name='load1', values=('0.50', '0.60', '0.70'))]

    """
    _, perfdata = split_output(output_text)
    if perfdata is None:
        return []

    fields: list[PerfField] = []
    for token in perfdata.split(FIELD_SEPARATOR):
        if not token:
            continue
        field = parse_field(token)
        if field is not None:
            fields.append(field)

    logger.debug("Parsed perfdata", extra={"perfdata": perfdata, "fields": len(fields)})
    return fields


def parse_output(output_text: str) -> tuple[str, list[PerfField]]:
    """Return the status line together with the parsed perfdata fields."""
    status_line, _ = split_output(output_text)
    return status_line, parse_perfdata(output_text)
