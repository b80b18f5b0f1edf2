"""Reusable record and collection rules.

These rules back the declarative run-spec keys ``required`` and ``unique``.
"""

from __future__ import annotations

from typing import Iterable, Mapping, Sequence

from core.types import ErrorEvent
from rules.specification import Specification

MISSING = object()


def record_value(record: object, field_name: str) -> object:
    """Read a field from a mapping or attribute-style record."""
    if isinstance(record, Mapping):
        return record.get(field_name, MISSING)
    return getattr(record, field_name, MISSING)


def required_fields(field_names: Sequence[str]) -> Specification[object]:
    """Build a record rule rejecting missing, null, or blank fields.

    Args:
        field_names: Fields that must carry a value.

    Returns:
        Record-level specification named ``RequiredField``.
    """

    def _check(record: object) -> Iterable[ErrorEvent]:
        for field_name in field_names:
            value = record_value(record, field_name)
            if value is MISSING or value is None:
                yield ErrorEvent("RequiredField", f"Field '{field_name}' is required.")
            elif isinstance(value, str) and not value.strip():
                yield ErrorEvent("RequiredField", f"Field '{field_name}' must not be blank.")

    return Specification(
        name="RequiredField",
        description=f"Fields must be present: {', '.join(field_names)}.",
        check=_check,
    )


def unique_key(field_name: str) -> Specification[Sequence[object]]:
    """Build a collection rule rejecting duplicate key values.

    Args:
        field_name: Key field compared across the batch.

    Returns:
        Collection-level specification named ``UniqueKey``.
    """

    def _check(records: Sequence[object]) -> Iterable[ErrorEvent]:
        seen: set[object] = set()
        reported: set[object] = set()
        for record in records:
            value = record_value(record, field_name)
            if value in seen and value not in reported:
                reported.add(value)
                yield ErrorEvent(
                    "UniqueKey",
                    f"Duplicate value '{value}' for key field '{field_name}'.",
                )
            seen.add(value)

    return Specification(
        name="UniqueKey",
        description=f"Field '{field_name}' must be unique within a batch.",
        check=_check,
    )
