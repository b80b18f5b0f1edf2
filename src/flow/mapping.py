"""Explicit field mappings from input records to output records.

Mappings are resolved and checked when a pipeline is built, so a target
field without a source fails at configuration time instead of silently
defaulting. A source field missing from one record fails only that record.
"""

from __future__ import annotations

from dataclasses import MISSING as DATACLASS_MISSING
from dataclasses import asdict, fields, is_dataclass
from typing import Any, Callable, Mapping, Sequence, Union

from core.errors import ConduitConfigError, ConduitMappingError
from rules.builtin_rules import MISSING, record_value

FieldSource = Union[str, Callable[[Any], object]]


class FieldMapping:
    """Callable mapping one input record to one output record."""

    def __init__(
        self,
        target_type_name: str,
        sources: Mapping[str, FieldSource],
        build: Callable[[dict[str, object]], object],
    ) -> None:
        """Create a mapping from resolved per-field sources.

        Args:
            target_type_name: Name of the produced record type.
            sources: Target field name to source field name or callable.
            build: Constructor receiving the resolved field values.
        """
        self._target_type_name = target_type_name
        self._sources = dict(sources)
        self._build = build

    @property
    def target_type_name(self) -> str:
        """Name of the produced record type."""
        return self._target_type_name

    @property
    def target_fields(self) -> tuple[str, ...]:
        """Target field names in declaration order."""
        return tuple(self._sources)

    def __call__(self, record: object) -> object:
        values = {
            target_field: _resolve(record, target_field, source)
            for target_field, source in self._sources.items()
        }
        return self._build(values)


def structural_mapping(
    output_type: type,
    overrides: Mapping[str, FieldSource] | None = None,
    source_fields: Sequence[str] | type | None = None,
) -> FieldMapping:
    """Build a name-based mapping onto a dataclass output type.

    Every target field maps from the same-named source field unless an
    override supplies another field name or a callable.

    Args:
        output_type: Dataclass produced by the mapping.
        overrides: Per-field source replacements.
        source_fields: Known input field names, or an input dataclass.
            When given, unmapped targets without defaults are rejected.

    Returns:
        Validated field mapping.

    Raises:
        ConduitConfigError: If the mapping cannot cover the output type.
    """
    if not (is_dataclass(output_type) and isinstance(output_type, type)):
        raise ConduitConfigError(
            f"Structural mapping target must be a dataclass type, got {output_type!r}."
        )
    override_map = dict(overrides or {})
    target_fields = [field for field in fields(output_type) if field.init]
    target_names = {field.name for field in target_fields}
    unknown_overrides = sorted(set(override_map) - target_names)
    if unknown_overrides:
        raise ConduitConfigError(
            f"Mapping overrides reference unknown fields on {output_type.__name__}: "
            f"{', '.join(unknown_overrides)}."
        )
    known_sources = _known_source_fields(source_fields)
    sources: dict[str, FieldSource] = {}
    unmapped: list[str] = []
    for field in target_fields:
        source = override_map.get(field.name, field.name)
        if known_sources is None or callable(source) or source in known_sources:
            sources[field.name] = source
            continue
        has_default = (
            field.default is not DATACLASS_MISSING
            or field.default_factory is not DATACLASS_MISSING
        )
        if not has_default:
            unmapped.append(field.name)
    if unmapped:
        raise ConduitConfigError(
            f"Unmapped target fields on {output_type.__name__}: {', '.join(unmapped)}. "
            "Add an override naming a source field or a callable."
        )
    return FieldMapping(
        target_type_name=output_type.__name__,
        sources=sources,
        build=lambda values: output_type(**values),
    )


def dict_mapping(renames: Mapping[str, str] | None = None) -> Callable[[object], object]:
    """Build a mapping producing plain dictionaries.

    Args:
        renames: Target key to source key. When omitted, records are
            copied field for field.

    Returns:
        Mapping callable with a ``target_type_name`` of ``dict``.
    """
    if not renames:
        return _CopyMapping()
    return FieldMapping(target_type_name="dict", sources=dict(renames), build=dict)


class _CopyMapping:
    """Field-for-field copy into a new dictionary."""

    target_type_name = "dict"

    def __call__(self, record: object) -> object:
        if isinstance(record, Mapping):
            return dict(record)
        if is_dataclass(record) and not isinstance(record, type):
            return asdict(record)
        raise ConduitMappingError(
            f"Cannot copy fields from record of type {type(record).__name__}."
        )


def _known_source_fields(source_fields: Sequence[str] | type | None) -> set[str] | None:
    if source_fields is None:
        return None
    if isinstance(source_fields, type):
        if not is_dataclass(source_fields):
            raise ConduitConfigError(
                f"Mapping source type must be a dataclass, got {source_fields.__name__}."
            )
        return {field.name for field in fields(source_fields)}
    return set(source_fields)


def _resolve(record: object, target_field: str, source: FieldSource) -> object:
    if callable(source):
        return source(record)
    value = record_value(record, source)
    if value is MISSING:
        raise ConduitMappingError(
            f"Source field '{source}' is missing for target field '{target_field}'."
        )
    return value
