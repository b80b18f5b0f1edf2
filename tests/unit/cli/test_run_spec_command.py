"""Unit tests for run-spec and poll command wiring."""

from __future__ import annotations

from pathlib import Path

from cli.main import main


def _write_spec(tmp_path: Path) -> Path:
    inbox = tmp_path / "inbox"
    inbox.mkdir()
    (inbox / "rows.jsonl").write_text('{"id": 1}\n{"id": 2}\n', encoding="utf-8")
    spec_path = tmp_path / "pipeline.yaml"
    spec_path.write_text(
        "version: 1\n"
        "defaults: {data_root: state, poll_interval_seconds: 0.05}\n"
        "stages:\n"
        "  - {code: rows, entity: row, reader: jsonl, in_dir: inbox, out_dir: out}\n",
        encoding="utf-8",
    )
    return spec_path


def test_poll_command_processes_pending_files(tmp_path, capsys) -> None:
    """poll should process files found during the polling window."""
    spec_path = _write_spec(tmp_path)

    exit_code = main(["poll", str(spec_path), "--duration", "1.0"])
    output = capsys.readouterr().out.strip()

    assert exit_code == 0 and output == (
        "stage=rows file=rows.jsonl batch=1 processed=2 valid=2 errors=0"
    )


def test_poll_command_rejects_non_positive_duration(tmp_path, capsys) -> None:
    """poll should refuse a zero-length duration."""
    spec_path = _write_spec(tmp_path)

    exit_code = main(["poll", str(spec_path), "--duration", "0"])

    assert exit_code == 2 and "--duration" in capsys.readouterr().out


def test_run_spec_second_run_skips_processed_files(tmp_path, capsys) -> None:
    """A second run over unchanged inputs should process nothing."""
    spec_path = _write_spec(tmp_path)
    main(["run-spec", str(spec_path)])
    capsys.readouterr()

    exit_code = main(["run-spec", str(spec_path)])

    assert exit_code == 0 and capsys.readouterr().out == ""
