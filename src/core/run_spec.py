"""Typed run-spec parsing for declarative Conduit pipelines.

This module loads and validates YAML run-spec files used by CLI workflows.
It provides one strict schema so CLI and SDK execution paths can build
the same chain of polled stages safely.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Sequence, cast

from core.constants import DEFAULT_CSV_DELIMITER, DEFAULT_FILE_PATTERN
from core.errors import ConduitDependencyError, ConduitRunSpecError
from core.run_spec_fields import (
    optional_float,
    optional_int,
    optional_string,
    parse_reader_type,
    required_string,
    string_list,
    string_mapping,
)
from core.types import StageDefinition

_ROOT_KEYS = {"version", "defaults", "stages"}
_DEFAULTS_KEYS = {"data_root", "poll_interval_seconds", "batch_size"}
_STAGE_KEYS = {
    "code",
    "entity",
    "reader",
    "in_dir",
    "out_dir",
    "file_pattern",
    "fields",
    "required",
    "unique",
    "batch_size",
    "delimiter",
}


@dataclass(frozen=True)
class RunSpecDefaults:
    """Default values applied to run-spec stages."""

    data_root: str | None = None
    poll_interval_seconds: float | None = None
    batch_size: int | None = None


@dataclass(frozen=True)
class RunSpec:
    """Validated run-spec root object."""

    version: int
    defaults: RunSpecDefaults
    stages: tuple[StageDefinition, ...]


def load_run_spec(spec_path: str) -> RunSpec:
    """Load and validate a YAML run-spec from disk.

    Relative stage directories resolve against the run-spec file location.

    Args:
        spec_path: File path to YAML run-spec.

    Returns:
        Fully validated run-spec object.

    Raises:
        ConduitDependencyError: If PyYAML is unavailable.
        ConduitRunSpecError: If file is invalid or schema checks fail.
    """
    spec_file = Path(spec_path).expanduser().resolve()
    payload = _load_yaml_payload(spec_file)
    root_mapping = _expect_mapping(payload, "run spec root")
    _validate_keys(root_mapping, _ROOT_KEYS, "run spec root")
    version = _parse_version(root_mapping)
    defaults = _parse_defaults(root_mapping)
    stages = _parse_stages(root_mapping, spec_file.parent)
    return RunSpec(version=version, defaults=defaults, stages=stages)


def _load_yaml_payload(spec_file: Path) -> object:
    try:
        import yaml  # type: ignore[import-untyped]
    except ImportError as error:  # pragma: no cover - dependency failure
        raise ConduitDependencyError(
            "YAML run-spec support requires PyYAML. Install with 'pip install pyyaml'."
        ) from error
    if not spec_file.exists():
        raise ConduitRunSpecError(
            f"Run spec file does not exist at {spec_file}. Provide a valid YAML file path."
        )
    try:
        payload = cast(object, yaml.safe_load(spec_file.read_text(encoding="utf-8")))
    except OSError as error:
        raise ConduitRunSpecError(
            f"Failed to read run spec at {spec_file}: {error}. Check file permissions and retry."
        ) from error
    except yaml.YAMLError as error:
        raise ConduitRunSpecError(
            f"Failed to parse YAML run spec at {spec_file}: {error}. Fix YAML syntax and retry."
        ) from error
    if payload is None:
        raise ConduitRunSpecError(f"Run spec at {spec_file} is empty. Define 'version' and 'stages'.")
    return payload


def _expect_mapping(value: object, context: str) -> Mapping[str, object]:
    if isinstance(value, Mapping):
        normalized_mapping = {}
        for key, payload in value.items():
            if not isinstance(key, str):
                raise ConduitRunSpecError(
                    f"Invalid {context}: expected string keys, got {type(key).__name__}."
                )
            normalized_mapping[key] = payload
        return normalized_mapping
    raise ConduitRunSpecError(
        f"Invalid {context}: expected object mapping, got {type(value).__name__}."
    )


def _expect_sequence(value: object, context: str) -> Sequence[object]:
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
        return value
    raise ConduitRunSpecError(f"Invalid {context}: expected list, got {type(value).__name__}.")


def _parse_version(root_mapping: Mapping[str, object]) -> int:
    raw_version = root_mapping.get("version")
    if not isinstance(raw_version, int) or isinstance(raw_version, bool):
        raise ConduitRunSpecError("Run spec field 'version' must be an integer. Set version: 1.")
    if raw_version != 1:
        raise ConduitRunSpecError(f"Unsupported run spec version {raw_version}. Use version: 1.")
    return raw_version


def _parse_defaults(root_mapping: Mapping[str, object]) -> RunSpecDefaults:
    raw_defaults = root_mapping.get("defaults")
    if raw_defaults is None:
        return RunSpecDefaults()
    context = "run spec defaults"
    defaults_mapping = _expect_mapping(raw_defaults, context)
    _validate_keys(defaults_mapping, _DEFAULTS_KEYS, context)
    return RunSpecDefaults(
        data_root=optional_string(defaults_mapping, "data_root", context),
        poll_interval_seconds=optional_float(defaults_mapping, "poll_interval_seconds", context),
        batch_size=optional_int(defaults_mapping, "batch_size", context),
    )


def _parse_stages(root_mapping: Mapping[str, object], base_dir: Path) -> tuple[StageDefinition, ...]:
    raw_stages = root_mapping.get("stages")
    if raw_stages is None:
        raise ConduitRunSpecError(
            "Run spec missing required field 'stages'. Add a non-empty list of stages."
        )
    stage_rows = _expect_sequence(raw_stages, "run spec stages")
    if len(stage_rows) == 0:
        raise ConduitRunSpecError("Run spec field 'stages' must include at least one stage.")
    stages = tuple(
        _parse_stage(stage_value, index, base_dir) for index, stage_value in enumerate(stage_rows)
    )
    codes = [stage.code for stage in stages]
    duplicate_codes = sorted({code for code in codes if codes.count(code) > 1})
    if duplicate_codes:
        raise ConduitRunSpecError(
            f"Run spec stage codes must be unique; duplicated: {', '.join(duplicate_codes)}."
        )
    return stages


def _parse_stage(stage_value: object, stage_index: int, base_dir: Path) -> StageDefinition:
    context = f"run spec stage #{stage_index + 1}"
    stage_mapping = _expect_mapping(stage_value, context)
    _validate_keys(stage_mapping, _STAGE_KEYS, context)
    delimiter = _parse_delimiter(stage_mapping, context)
    return StageDefinition(
        code=required_string(stage_mapping, "code", context),
        entity=required_string(stage_mapping, "entity", context),
        in_dir=_resolve_dir(required_string(stage_mapping, "in_dir", context), base_dir),
        out_dir=_resolve_dir(required_string(stage_mapping, "out_dir", context), base_dir),
        reader_type=parse_reader_type(stage_mapping, context),
        file_pattern=optional_string(stage_mapping, "file_pattern", context)
        or DEFAULT_FILE_PATTERN,
        fields=string_mapping(stage_mapping, "fields", context),
        required=string_list(stage_mapping, "required", context),
        unique=optional_string(stage_mapping, "unique", context),
        batch_size=optional_int(stage_mapping, "batch_size", context),
        delimiter=delimiter,
    )


def _parse_delimiter(stage_mapping: Mapping[str, object], context: str) -> str:
    raw_delimiter = stage_mapping.get("delimiter")
    if raw_delimiter is None:
        return DEFAULT_CSV_DELIMITER
    if isinstance(raw_delimiter, str) and len(raw_delimiter) == 1:
        return raw_delimiter
    raise ConduitRunSpecError(
        f"Invalid {context}: field 'delimiter' must be a single character."
    )


def _resolve_dir(raw_dir: str, base_dir: Path) -> str:
    directory = Path(raw_dir).expanduser()
    if not directory.is_absolute():
        directory = base_dir / directory
    return str(directory.resolve())


def _validate_keys(mapping: Mapping[str, object], allowed_keys: set[str], context: str) -> None:
    unknown_keys = sorted(set(mapping) - allowed_keys)
    if unknown_keys:
        raise ConduitRunSpecError(
            f"Invalid {context}: unknown fields {', '.join(unknown_keys)}."
        )
