"""Source record readers for pipeline stages.

This module yields finite, restartable record sequences from delimited
text files, JSONL files, persisted snapshots, and in-memory lists.
Sources are validated eagerly so missing files fail before iteration.
"""

from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import Callable, Iterable, Iterator, Mapping, Protocol, Sequence

from core.constants import DEFAULT_CSV_DELIMITER
from core.errors import ConduitReaderError
from core.types import ErrorEvent, ReaderType, RecordFailure
from store.snapshot_payload import read_snapshot_file

RecordFactory = Callable[[Mapping[str, object]], object]


class Reader(Protocol):
    """Produces a finite record sequence from one source."""

    def read(self, source: str | Path) -> Iterable[object]:
        """Return records from the beginning of the source."""
        ...


class CsvReader:
    """Delimited-text reader using the header row as field names."""

    def __init__(
        self,
        delimiter: str = DEFAULT_CSV_DELIMITER,
        record_factory: RecordFactory | None = None,
    ) -> None:
        self._delimiter = delimiter
        self._record_factory = record_factory

    def read(self, source: str | Path) -> Iterator[object]:
        """Open a delimited file and yield one record per data row.

        Args:
            source: Path to the delimited text file.

        Returns:
            Lazy iterator over parsed rows.

        Raises:
            ConduitReaderError: If the file does not exist.
        """
        source_path = _require_file(source)
        return self._iter_rows(source_path)

    def _iter_rows(self, source_path: Path) -> Iterator[object]:
        try:
            with source_path.open("r", encoding="utf-8", newline="") as handle:
                rows = csv.DictReader(handle, delimiter=self._delimiter)
                for line_number, row in enumerate(rows, 2):
                    yield _build_record(self._record_factory, dict(row), source_path, line_number)
        except csv.Error as error:
            raise ConduitReaderError(
                f"Failed to parse delimited file {source_path}: {error}. "
                "Check the delimiter and quoting and retry."
            ) from error
        except (UnicodeDecodeError, OSError) as error:
            raise _read_failure(source_path, error) from error


class JsonlReader:
    """JSON-lines reader yielding one object per non-blank line."""

    def __init__(self, record_factory: RecordFactory | None = None) -> None:
        self._record_factory = record_factory

    def read(self, source: str | Path) -> Iterator[object]:
        """Open a JSONL file and yield one record per object line."""
        source_path = _require_file(source)
        return self._iter_lines(source_path)

    def _iter_lines(self, source_path: Path) -> Iterator[object]:
        try:
            with source_path.open("r", encoding="utf-8") as handle:
                for line_number, line in enumerate(handle, 1):
                    if not line.strip():
                        continue
                    payload = _parse_jsonl_line(source_path, line, line_number)
                    yield _build_record(self._record_factory, payload, source_path, line_number)
        except (UnicodeDecodeError, OSError) as error:
            raise _read_failure(source_path, error) from error


class SnapshotReader:
    """Reader that re-reads the valid items of a persisted snapshot.

    This is the chaining reader: an upstream stage's snapshot document is
    a legal source for the downstream stage.
    """

    def __init__(self, record_factory: RecordFactory | None = None) -> None:
        self._record_factory = record_factory

    def read(self, source: str | Path) -> Iterator[object]:
        """Load a snapshot document and yield its valid items."""
        source_path = _require_file(source)
        payload = read_snapshot_file(source_path, error_type=ConduitReaderError)
        raw_items = payload.get("valid_items", [])
        if not isinstance(raw_items, list):
            raise ConduitReaderError(
                f"Invalid snapshot document at {source_path}: 'valid_items' must be a list."
            )
        return self._iter_items(source_path, raw_items)

    def _iter_items(self, source_path: Path, raw_items: list[object]) -> Iterator[object]:
        for index, item in enumerate(raw_items, 1):
            if not isinstance(item, dict):
                yield item
                continue
            yield _build_record(self._record_factory, item, source_path, index)


class InMemoryReader:
    """Reader over a fixed in-memory record list."""

    def __init__(self, records: Sequence[object]) -> None:
        self._records = tuple(records)

    def read(self, source: str | Path | None = None) -> Iterator[object]:
        """Return the held records; the source argument is ignored."""
        return iter(self._records)


def build_reader(
    reader_type: ReaderType,
    delimiter: str = DEFAULT_CSV_DELIMITER,
    record_factory: RecordFactory | None = None,
) -> Reader:
    """Create a file reader by declarative type name.

    Args:
        reader_type: One of ``csv``, ``jsonl``, or ``snapshot``.
        delimiter: Delimiter applied to csv inputs.
        record_factory: Optional row-to-record builder.

    Returns:
        Reader instance.

    Raises:
        ConduitReaderError: If the reader type is unknown.
    """
    if reader_type == "csv":
        return CsvReader(delimiter=delimiter, record_factory=record_factory)
    if reader_type == "jsonl":
        return JsonlReader(record_factory=record_factory)
    if reader_type == "snapshot":
        return SnapshotReader(record_factory=record_factory)
    raise ConduitReaderError(
        f"Unsupported reader type '{reader_type}'. Use one of: csv, jsonl, snapshot."
    )


def _require_file(source: str | Path) -> Path:
    """Resolve a source path and fail fast when it is missing."""
    source_path = Path(source).expanduser()
    if not source_path.is_file():
        raise ConduitReaderError(
            f"Failed to read source at {source_path}: file does not exist. "
            "Provide an existing file path."
        )
    return source_path


def _build_record(
    record_factory: RecordFactory | None,
    payload: Mapping[str, object],
    source_path: Path,
    position: int,
) -> object:
    """Convert one raw row into a record with the optional factory.

    Returns:
        The built record, or a ``RecordFailure`` carrying the raw row when
        the factory rejects it.
    """
    if record_factory is None:
        return payload
    try:
        return record_factory(payload)
    except (TypeError, ValueError, KeyError) as error:
        return RecordFailure(
            error=ErrorEvent(
                type(error).__name__,
                f"Failed to build record from {source_path}:{position}: {error}. "
                "Align the record factory with the source columns.",
            ),
            item=dict(payload),
            position=position,
        )


def _read_failure(source_path: Path, error: Exception) -> ConduitReaderError:
    return ConduitReaderError(
        f"Failed to read source at {source_path}: {error}. "
        "Check the file encoding (UTF-8 is required) and that the file is readable."
    )


def _parse_jsonl_line(source_path: Path, line: str, line_number: int) -> dict[str, object]:
    """Parse and validate one JSONL row.

    Raises:
        ConduitReaderError: If the line is not a JSON object.
    """
    try:
        payload = json.loads(line)
    except json.JSONDecodeError as error:
        raise ConduitReaderError(
            f"Failed to parse JSONL record at {source_path}:{line_number}: "
            f"{error.msg}. Fix the JSON syntax and retry."
        ) from error
    if not isinstance(payload, dict):
        raise ConduitReaderError(
            f"Invalid JSONL record at {source_path}:{line_number}: expected JSON object."
        )
    return payload
