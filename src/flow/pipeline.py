"""Pipeline stage wrapping the processing engine.

This module binds a mapping, rules, and commit hooks into one named
stage whose runs produce immutable snapshots. A stage's snapshot valid
items are a legal input sequence for the next stage.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Iterable, Sequence
from uuid import uuid4

from core.constants import DEFAULT_BATCH_SIZE
from core.logging_config import get_logger
from core.types import FlowBatch, ProcessContext, Snapshot
from flow.engine import (
    BeginProcessingItemHook,
    CommitFn,
    MappingFn,
    OnCommittingHook,
    ProcessingEngine,
)
from flow.mapping import dict_mapping
from ingest.readers import Reader
from rules.specification import SpecificationSet

_LOGGER = get_logger(__name__)


class Pipeline:
    """One named ETL stage producing snapshots."""

    def __init__(
        self,
        name: str,
        mapping: MappingFn | None = None,
        rules: SpecificationSet[Any] | None = None,
        collection_rules: SpecificationSet[Sequence[Any]] | None = None,
        begin_processing_item: BeginProcessingItemHook | None = None,
        on_committing: OnCommittingHook | None = None,
        commit: CommitFn | None = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
        source_type: str = "dict",
    ) -> None:
        """Create a pipeline stage.

        Args:
            name: Pipeline name recorded on every snapshot.
            mapping: Input-to-output mapping; copies fields when omitted.
            rules: Record-level specifications.
            collection_rules: Batch-level specifications.
            begin_processing_item: Per-record enrichment hook.
            on_committing: Hook run right before commit.
            commit: Persists each valid window.
            batch_size: Records per processing window.
            source_type: Input record type name for snapshots.
        """
        self._name = name
        self._mapping = mapping or dict_mapping()
        self._source_type = source_type
        self._engine = ProcessingEngine(
            mapping=self._mapping,
            rules=rules,
            collection_rules=collection_rules,
            begin_processing_item=begin_processing_item,
            on_committing=on_committing,
            commit=commit,
            batch_size=batch_size,
        )

    @property
    def name(self) -> str:
        """Pipeline name."""
        return self._name

    @property
    def target_type(self) -> str:
        """Output record type name."""
        return str(getattr(self._mapping, "target_type_name", "object"))

    def process(
        self,
        records: Iterable[object],
        batch: FlowBatch,
        correlation_id: str | None = None,
        source_address: str | None = None,
    ) -> Snapshot:
        """Run the stage over a record sequence.

        Args:
            records: Input records in arrival order.
            batch: Batch minted for this run.
            correlation_id: Run identity; generated when omitted.
            source_address: Source locator recorded on the snapshot.

        Returns:
            Unsaved snapshot of the run.
        """
        context = ProcessContext(batch=batch)
        result = self._engine.process(records, context)
        snapshot = Snapshot(
            correlation_id=correlation_id or uuid4().hex,
            batch=batch,
            process_name=self._name,
            source_type=self._source_type,
            target_type=self.target_type,
            processed_count=result.processed_count,
            load_time=result.load_time,
            valid_items=result.valid_items,
            errors=result.errors,
            warnings=tuple(context.warnings),
            added=result.added,
            updated=result.updated,
            removed=result.removed,
            source_address=source_address,
        )
        _LOGGER.info(
            "pipeline_processed",
            process_name=self._name,
            flow_code=batch.flow_code,
            batch_id=batch.batch_id,
            processed_count=snapshot.processed_count,
            valid_count=len(snapshot.valid_items),
            error_count=len(snapshot.errors),
            warning_count=len(snapshot.warnings),
            load_time=snapshot.load_time,
        )
        return snapshot

    def process_source(
        self,
        reader: Reader,
        source: str | Path,
        batch: FlowBatch,
        correlation_id: str | None = None,
    ) -> Snapshot:
        """Read a source with a reader and run the stage over it."""
        records = reader.read(source)
        return self.process(records, batch, correlation_id, source_address=str(source))
