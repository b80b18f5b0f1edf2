"""Unit tests for run-spec parsing."""

from __future__ import annotations

from pathlib import Path

import pytest

from core.errors import ConduitRunSpecError
from core.run_spec import load_run_spec


def _write_spec(tmp_path: Path, text: str) -> str:
    spec_path = tmp_path / "pipeline.yaml"
    spec_path.write_text(text, encoding="utf-8")
    return str(spec_path)


_VALID_SPEC = """
version: 1
defaults:
  poll_interval_seconds: 0.5
  batch_size: 2
stages:
  - code: load-people
    entity: person
    in_dir: inbox
    out_dir: people
    file_pattern: "*.csv"
    fields:
      id: person_id
      name: full_name
    required: [id, name]
    unique: id
  - code: publish-people
    entity: person
    reader: snapshot
    in_dir: people
    out_dir: published
    file_pattern: "*.json"
"""


def test_load_run_spec_valid_chain_parses_stage_order(tmp_path) -> None:
    """Valid run-spec should keep stage declaration order."""
    spec = load_run_spec(_write_spec(tmp_path, _VALID_SPEC))

    assert tuple(stage.code for stage in spec.stages) == ("load-people", "publish-people")


def test_load_run_spec_resolves_relative_dirs_against_spec_file(tmp_path) -> None:
    """Relative stage directories should resolve next to the spec file."""
    spec = load_run_spec(_write_spec(tmp_path, _VALID_SPEC))

    assert spec.stages[0].out_dir == spec.stages[1].in_dir == str((tmp_path / "people").resolve())


def test_load_run_spec_parses_rules_and_defaults(tmp_path) -> None:
    """Stage rules, renames, reader, and defaults should be parsed."""
    spec = load_run_spec(_write_spec(tmp_path, _VALID_SPEC))
    first, second = spec.stages

    assert (
        first.required == ("id", "name")
        and first.unique == "id"
        and dict(first.fields or {}) == {"id": "person_id", "name": "full_name"}
        and second.reader_type == "snapshot"
        and spec.defaults.batch_size == 2
        and spec.defaults.poll_interval_seconds == 0.5
    )


def test_load_run_spec_unknown_stage_key_raises_error(tmp_path) -> None:
    """Unknown stage field should be rejected."""
    text = "version: 1\nstages:\n  - {code: a, entity: e, in_dir: i, out_dir: o, colour: red}\n"
    with pytest.raises(ConduitRunSpecError):
        load_run_spec(_write_spec(tmp_path, text))
    assert True


def test_load_run_spec_invalid_defaults_key_raises_error(tmp_path) -> None:
    """Unknown defaults field should be rejected."""
    text = (
        "version: 1\ndefaults: {retries: 3}\n"
        "stages:\n  - {code: a, entity: e, in_dir: i, out_dir: o}\n"
    )
    with pytest.raises(ConduitRunSpecError):
        load_run_spec(_write_spec(tmp_path, text))
    assert True


def test_load_run_spec_duplicate_stage_codes_raise_error(tmp_path) -> None:
    """Stage codes must be unique within one run-spec."""
    text = (
        "version: 1\nstages:\n"
        "  - {code: a, entity: e, in_dir: i, out_dir: o}\n"
        "  - {code: a, entity: e, in_dir: o, out_dir: p}\n"
    )
    with pytest.raises(ConduitRunSpecError):
        load_run_spec(_write_spec(tmp_path, text))
    assert True


def test_load_run_spec_unsupported_reader_raises_error(tmp_path) -> None:
    """Unsupported reader names should be rejected."""
    text = "version: 1\nstages:\n  - {code: a, entity: e, reader: xml, in_dir: i, out_dir: o}\n"
    with pytest.raises(ConduitRunSpecError):
        load_run_spec(_write_spec(tmp_path, text))
    assert True


def test_load_run_spec_unsupported_version_raises_error(tmp_path) -> None:
    """Only version 1 run-specs should be accepted."""
    text = "version: 2\nstages:\n  - {code: a, entity: e, in_dir: i, out_dir: o}\n"
    with pytest.raises(ConduitRunSpecError):
        load_run_spec(_write_spec(tmp_path, text))
    assert True


def test_load_run_spec_missing_file_raises_error(tmp_path) -> None:
    """Missing run-spec file should raise a run-spec error."""
    with pytest.raises(ConduitRunSpecError):
        load_run_spec(str(tmp_path / "absent.yaml"))
    assert True


def test_load_run_spec_tab_delimiter_is_preserved(tmp_path) -> None:
    """A tab delimiter should survive parsing unchanged."""
    text = (
        'version: 1\nstages:\n  - {code: a, entity: e, in_dir: i, out_dir: o, delimiter: "\\t"}\n'
    )
    spec = load_run_spec(_write_spec(tmp_path, text))

    assert spec.stages[0].delimiter == "\t"
