"""Single flow-file processing for one pipeline stage.

This module reads one input file with the stage reader, runs the stage
pipeline, and persists the snapshot into the stage output directory.
"""

from __future__ import annotations

from pathlib import Path

from core.errors import (
    ConduitConfigError,
    ConduitControllerError,
    ConduitReaderError,
    ConduitStoreError,
)
from core.types import FlowBatch, Snapshot, StageDefinition
from flow.pipeline import Pipeline
from ingest.readers import Reader
from store.snapshot_store import SnapshotStore


class FlowFileController:
    """Binds a stage definition, its reader, its pipeline, and its output store."""

    def __init__(
        self,
        stage: StageDefinition,
        reader: Reader,
        pipeline: Pipeline,
        snapshot_store: SnapshotStore | None = None,
    ) -> None:
        self._stage = stage
        self._reader = reader
        self._pipeline = pipeline
        self._snapshot_store = snapshot_store or _open_store(stage)

    @property
    def stage(self) -> StageDefinition:
        """Stage definition served by this controller."""
        return self._stage

    @property
    def pipeline(self) -> Pipeline:
        """Pipeline run for each flow file."""
        return self._pipeline

    @property
    def snapshot_store(self) -> SnapshotStore:
        """Store receiving snapshots of processed files."""
        return self._snapshot_store

    def process(self, flow_file: Path, batch: FlowBatch) -> Snapshot:
        """Process one input file into a persisted snapshot.

        Args:
            flow_file: Input file to read.
            batch: Batch minted for this attempt.

        Returns:
            Saved snapshot with its target address.

        Raises:
            ConduitControllerError: If the file cannot be read or the
                snapshot cannot be saved.
        """
        try:
            snapshot = self._pipeline.process_source(self._reader, flow_file, batch)
            return self._snapshot_store.save(snapshot)
        except (ConduitReaderError, ConduitStoreError, ConduitConfigError) as error:
            raise ConduitControllerError(
                f"Failed to process flow file {flow_file} for stage '{self._stage.code}': "
                f"{error}"
            ) from error


def _open_store(stage: StageDefinition) -> SnapshotStore:
    try:
        return SnapshotStore(Path(stage.out_dir))
    except ConduitStoreError as error:
        raise ConduitControllerError(
            f"Cannot prepare output directory for stage '{stage.code}': {error}"
        ) from error
