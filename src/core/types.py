"""Shared typed models.

This module defines immutable data models used by the engine, stores,
controller, and SDK layers to keep interfaces explicit and stable.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Literal, Mapping

from core.constants import (
    DEFAULT_CSV_DELIMITER,
    DEFAULT_FILE_PATTERN,
)

ControllerState = Literal[
    "stopped",
    "polling",
    "discovering",
    "processing",
    "recording",
]
ReaderType = Literal["csv", "jsonl", "snapshot"]


def utc_now() -> datetime:
    """Return the current timezone-aware UTC timestamp."""
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ErrorEvent:
    """One validation or processing failure.

    Attributes:
        type: Short error category, e.g. a rule name or exception class.
        message: Human-readable failure description.
    """

    type: str
    message: str


@dataclass(frozen=True)
class ProcessError:
    """Failure bound to the record that caused it.

    Attributes:
        error: Summary error, the first one raised for the record.
        item: Offending input record.
        details: Every error collected for the record.
    """

    error: ErrorEvent
    item: object
    details: tuple[ErrorEvent, ...] = ()


@dataclass(frozen=True)
class RecordFailure:
    """Source row a reader could not turn into a record.

    Readers yield it in place of the record so the engine can account for
    the row as an error and keep processing the rest of the source.

    Attributes:
        error: Conversion failure.
        item: Raw row payload as read from the source.
        position: Line or item number inside the source.
    """

    error: ErrorEvent
    item: object
    position: int


@dataclass(frozen=True)
class FlowBatch:
    """One run of one pipeline code."""

    flow_code: str
    batch_id: int


@dataclass(frozen=True)
class FlowEntity:
    """Partition key naming the type of data a flow handles."""

    entity_type_id: str
    date_added: datetime = field(default_factory=utc_now)

    @classmethod
    def from_type(cls, entity_type: type) -> "FlowEntity":
        """Build an entity key from a record class name."""
        return cls(entity_type_id=entity_type.__name__)


@dataclass(frozen=True)
class FlowId:
    """Persisted pipeline identity and batch sequence.

    Attributes:
        code: Unique pipeline code, never renamed after creation.
        created_date: UTC creation timestamp.
        display_name: Optional human label.
        current_batch_id: Last batch id handed out for this code.
        entities: Entity types registered against the flow.
    """

    code: str
    created_date: datetime
    display_name: str | None = None
    current_batch_id: int = 0
    entities: tuple[FlowEntity, ...] = ()


@dataclass(frozen=True)
class IntakeLogEntry:
    """One processed source address.

    Attributes:
        address_id: Source locator, usually an absolute file path.
        target_address_id: Output locator written on success.
        batch_id: Batch id minted for the attempt.
        date_last_updated: Source modification time at processing.
        processed_at: UTC time the entry was recorded.
    """

    address_id: str
    target_address_id: str | None
    batch_id: int
    date_last_updated: datetime
    processed_at: datetime = field(default_factory=utc_now)

    def dedup_key(self) -> tuple[str, datetime]:
        """Return the pair used to detect duplicate intake entries."""
        return self.address_id, self.date_last_updated


@dataclass(frozen=True)
class IntakeLog:
    """Ledger of processed addresses for one entity and flow code."""

    entity_type_id: str
    flow_code: str
    entries: tuple[IntakeLogEntry, ...] = ()


@dataclass(frozen=True)
class CommitResult:
    """Counters reported by a commit callback."""

    added: int = 0
    updated: int = 0
    removed: int = 0


@dataclass(frozen=True)
class Snapshot:
    """Immutable result of one pipeline run over one batch.

    Attributes:
        correlation_id: Process run identity.
        batch: Flow code and batch id of the run.
        process_name: Name of the pipeline that produced the snapshot.
        source_type: Input record type name.
        target_type: Output record type name.
        processed_count: Number of input records consumed.
        load_time: Wall-clock seconds spent processing.
        valid_items: Mapped records that passed all rules and committed.
        errors: Per-record failures.
        warnings: Batch-level warnings.
        added: Records reported added by commit.
        updated: Records reported updated by commit.
        removed: Records reported removed by commit.
        source_address: Source locator when read from a file.
        target_address: Persisted snapshot location once saved.
        created_at: UTC creation timestamp.
    """

    correlation_id: str
    batch: FlowBatch
    process_name: str
    source_type: str
    target_type: str
    processed_count: int
    load_time: float
    valid_items: tuple[object, ...]
    errors: tuple[ProcessError, ...]
    warnings: tuple[ErrorEvent, ...] = ()
    added: int = 0
    updated: int = 0
    removed: int = 0
    source_address: str | None = None
    target_address: str | None = None
    created_at: datetime = field(default_factory=utc_now)


@dataclass
class ProcessContext:
    """Mutable per-run state shared with engine hooks."""

    batch: FlowBatch
    warnings: list[ErrorEvent] = field(default_factory=list)

    def warn(self, warning_type: str, message: str) -> None:
        """Record a batch-level warning."""
        self.warnings.append(ErrorEvent(type=warning_type, message=message))


@dataclass(frozen=True)
class FlowFileProcessed:
    """Notification raised after every polling attempt."""

    flow_code: str
    entity_type_id: str
    address_id: str
    target_address_id: str | None
    batch_id: int
    error: str | None = None
    processed_count: int = 0
    valid_count: int = 0
    error_count: int = 0

    @property
    def succeeded(self) -> bool:
        """Return whether the flow file processed without raising."""
        return self.error is None


@dataclass(frozen=True)
class StageDefinition:
    """Declarative description of one polled pipeline stage.

    Attributes:
        code: Flow code used for batch ids and intake partitioning.
        entity: Entity type id the stage produces.
        in_dir: Directory polled for input files.
        out_dir: Directory receiving snapshot documents.
        reader_type: Reader used for input files.
        file_pattern: Glob selecting candidate input files.
        fields: Target-to-source field renames, identity when None.
        required: Fields that must be present and non-empty.
        unique: Field that must be unique across each committed window.
        batch_size: Optional processing window override.
        delimiter: Delimiter for csv inputs.
    """

    code: str
    entity: str
    in_dir: str
    out_dir: str
    reader_type: ReaderType = "csv"
    file_pattern: str = DEFAULT_FILE_PATTERN
    fields: Mapping[str, str] | None = None
    required: tuple[str, ...] = ()
    unique: str | None = None
    batch_size: int | None = None
    delimiter: str = DEFAULT_CSV_DELIMITER


@dataclass(frozen=True)
class EnrichmentLogEntry:
    """Outcome of one enricher pass."""

    output_type_id: str
    entities_enriched: int
    created_at: datetime = field(default_factory=utc_now)


@dataclass(frozen=True)
class EnrichmentLog:
    """Record of one enrichment run over a target set."""

    target_type_id: str
    started_at: datetime
    completed_at: datetime
    entries: tuple[EnrichmentLogEntry, ...] = ()
    errors: tuple[ErrorEvent, ...] = ()
