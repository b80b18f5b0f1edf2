"""Type-safe field parsing helpers for run-spec stages.

This module centralizes primitive parsing so run-spec loaders can stay
concise and produce consistent validation errors across CLI and SDK flows.
"""

from __future__ import annotations

from typing import Mapping, Sequence, cast

from core.constants import DEFAULT_READER_TYPE, SUPPORTED_READER_TYPES
from core.errors import ConduitRunSpecError
from core.types import ReaderType


def required_string(args: Mapping[str, object], field_name: str, context: str) -> str:
    """Read a required string field from a run-spec mapping."""
    value = optional_string(args, field_name, context)
    if value is None:
        raise ConduitRunSpecError(f"Invalid {context}: missing required field '{field_name}'.")
    return value


def optional_string(args: Mapping[str, object], field_name: str, context: str) -> str | None:
    """Read an optional string field from a run-spec mapping."""
    value = args.get(field_name)
    if value is None:
        return None
    if isinstance(value, str):
        stripped = value.strip()
        return stripped if stripped else None
    raise ConduitRunSpecError(
        f"Invalid {context}: field '{field_name}' must be a string when provided."
    )


def optional_int(args: Mapping[str, object], field_name: str, context: str) -> int | None:
    """Read an optional positive integer field from a run-spec mapping."""
    value = args.get(field_name)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConduitRunSpecError(f"Invalid {context}: field '{field_name}' must be an integer.")
    if value < 1:
        raise ConduitRunSpecError(f"Invalid {context}: field '{field_name}' must be at least 1.")
    return value


def optional_float(args: Mapping[str, object], field_name: str, context: str) -> float | None:
    """Read an optional positive numeric field from a run-spec mapping."""
    value = args.get(field_name)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConduitRunSpecError(f"Invalid {context}: field '{field_name}' must be numeric.")
    if value <= 0:
        raise ConduitRunSpecError(
            f"Invalid {context}: field '{field_name}' must be greater than 0."
        )
    return float(value)


def string_list(args: Mapping[str, object], field_name: str, context: str) -> tuple[str, ...]:
    """Read an optional list of strings; a single string becomes one item."""
    value = args.get(field_name)
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    if isinstance(value, Sequence) and all(isinstance(item, str) for item in value):
        return tuple(cast(Sequence[str], value))
    raise ConduitRunSpecError(
        f"Invalid {context}: field '{field_name}' must be a list of strings."
    )


def string_mapping(
    args: Mapping[str, object],
    field_name: str,
    context: str,
) -> Mapping[str, str] | None:
    """Read an optional string-to-string mapping."""
    value = args.get(field_name)
    if value is None:
        return None
    if isinstance(value, Mapping) and all(
        isinstance(key, str) and isinstance(item, str) for key, item in value.items()
    ):
        return dict(cast(Mapping[str, str], value))
    raise ConduitRunSpecError(
        f"Invalid {context}: field '{field_name}' must map target field names to source names."
    )


def parse_reader_type(args: Mapping[str, object], context: str) -> ReaderType:
    """Parse the optional reader type of a stage."""
    value = optional_string(args, "reader", context)
    if value is None:
        return cast(ReaderType, DEFAULT_READER_TYPE)
    if value in SUPPORTED_READER_TYPES:
        return cast(ReaderType, value)
    supported_rows = ", ".join(SUPPORTED_READER_TYPES)
    raise ConduitRunSpecError(
        f"Invalid {context}: unsupported reader '{value}'. Use one of: {supported_rows}."
    )
