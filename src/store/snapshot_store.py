"""Snapshot store for pipeline results.

This module persists one immutable JSON document per pipeline run and
resolves snapshots by pipeline name, batch id, and correlation id.
Persisted snapshots are both the resume point and the chaining source.
"""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path
import re

from core.constants import SNAPSHOT_FILE_SUFFIX, SNAPSHOT_FILE_TEMPLATE
from core.errors import ConduitStoreError
from core.logging_config import get_logger
from core.types import Snapshot
from store.json_io import write_json_file
from store.snapshot_payload import read_snapshot_file, snapshot_from_payload, snapshot_to_payload

_LOGGER = get_logger(__name__)
_UNSAFE_NAME_CHARS = re.compile(r"[^A-Za-z0-9_.]+")


class SnapshotStore:
    """Directory-backed snapshot store.

    Every saved snapshot gets its own file. A canonical name that is
    already taken receives an incrementing ``-{i}`` suffix.
    """

    def __init__(self, snapshot_dir: Path) -> None:
        """Initialize store over one output directory.

        Args:
            snapshot_dir: Directory receiving snapshot documents.

        Raises:
            ConduitStoreError: If the directory cannot be created.
        """
        self._snapshot_dir = Path(snapshot_dir).expanduser()
        try:
            self._snapshot_dir.mkdir(parents=True, exist_ok=True)
        except OSError as error:
            raise ConduitStoreError(
                f"Failed to create snapshot directory {self._snapshot_dir}: {error}. "
                "Check the stage out_dir and its permissions."
            ) from error

    @property
    def snapshot_dir(self) -> Path:
        """Directory holding snapshot documents."""
        return self._snapshot_dir

    def save(self, snapshot: Snapshot) -> Snapshot:
        """Persist a snapshot under a collision-free file name.

        Args:
            snapshot: Snapshot to persist.

        Returns:
            Persisted snapshot with ``target_address`` set to its document.

        Raises:
            ConduitStoreError: If the document cannot be written.
        """
        snapshot_path = self._next_free_path(snapshot)
        saved = replace(snapshot, target_address=str(snapshot_path))
        write_json_file(snapshot_path, snapshot_to_payload(saved))
        _LOGGER.info(
            "snapshot_saved",
            process_name=saved.process_name,
            correlation_id=saved.correlation_id,
            batch_id=saved.batch.batch_id,
            processed_count=saved.processed_count,
            error_count=len(saved.errors),
            target_address=saved.target_address,
        )
        return saved

    def load(self, snapshot_path: str | Path) -> Snapshot:
        """Load one snapshot document.

        Raises:
            ConduitStoreError: If the document is missing or malformed.
        """
        resolved_path = Path(snapshot_path).expanduser()
        payload = read_snapshot_file(resolved_path)
        try:
            return snapshot_from_payload(payload)
        except (KeyError, TypeError, ValueError) as error:
            raise ConduitStoreError(
                f"Invalid snapshot document at {resolved_path}: {error}. "
                "Regenerate the snapshot by reprocessing its source."
            ) from error

    def get(
        self,
        process_name: str,
        batch_id: int,
        correlation_id: str | None = None,
    ) -> Snapshot:
        """Resolve exactly one snapshot by pipeline and batch.

        Args:
            process_name: Pipeline name that produced the snapshot.
            batch_id: Batch id of the run.
            correlation_id: Optional run identity narrowing the lookup.

        Returns:
            Matching snapshot.

        Raises:
            ConduitStoreError: If no snapshot or more than one matches.
        """
        matches = [
            snapshot
            for snapshot in (self.load(path) for path in self.list(process_name))
            if snapshot.batch.batch_id == batch_id
            and (correlation_id is None or snapshot.correlation_id == correlation_id)
        ]
        if not matches:
            raise ConduitStoreError(
                f"No snapshot found for pipeline '{process_name}' batch {batch_id} "
                f"in {self._snapshot_dir}. Check the pipeline name and batch id."
            )
        if len(matches) > 1:
            raise ConduitStoreError(
                f"Ambiguous snapshot lookup for pipeline '{process_name}' batch {batch_id}: "
                f"{len(matches)} documents match. Pass a correlation id to disambiguate."
            )
        return matches[0]

    def list(self, process_name: str | None = None) -> tuple[Path, ...]:
        """List snapshot documents sorted by file name.

        Args:
            process_name: Optional pipeline name filter.

        Returns:
            Snapshot document paths.
        """
        prefix = f"{_safe_name(process_name)}-" if process_name else ""
        paths = [
            path
            for path in self._snapshot_dir.glob(f"{prefix}*{SNAPSHOT_FILE_SUFFIX}")
            if path.is_file() and not path.name.startswith(".")
        ]
        if process_name is not None:
            paths = [path for path in paths if self._belongs_to(path, process_name)]
        return tuple(sorted(paths))

    def _belongs_to(self, snapshot_path: Path, process_name: str) -> bool:
        payload = read_snapshot_file(snapshot_path)
        return payload.get("process_name") == process_name

    def _next_free_path(self, snapshot: Snapshot) -> Path:
        stem = SNAPSHOT_FILE_TEMPLATE.format(
            pipeline=_safe_name(snapshot.process_name),
            correlation_id=_safe_name(snapshot.correlation_id),
            batch_id=snapshot.batch.batch_id,
        )
        candidate = self._snapshot_dir / f"{stem}{SNAPSHOT_FILE_SUFFIX}"
        counter = 1
        while candidate.exists():
            candidate = self._snapshot_dir / f"{stem}-{counter}{SNAPSHOT_FILE_SUFFIX}"
            counter += 1
        return candidate


def _safe_name(value: str) -> str:
    """Replace characters that are unsafe in file names."""
    return _UNSAFE_NAME_CHARS.sub("_", value.strip()) or "_"
