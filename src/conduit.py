"""Public SDK surface for Conduit.

This module provides a stable import path for pipeline users.
It re-exports the client, stage building blocks, and typed models.
"""

from __future__ import annotations

from control.controller import PollingController
from control.flow_file_controller import FlowFileController
from core.config import ConduitConfig
from core.types import (
    CommitResult,
    ErrorEvent,
    FlowBatch,
    FlowEntity,
    FlowFileProcessed,
    IntakeLogEntry,
    ProcessError,
    RecordFailure,
    Snapshot,
    StageDefinition,
)
from flow.enrichment import Enricher, enrich_targets
from flow.mapping import dict_mapping, structural_mapping
from flow.pipeline import Pipeline
from ingest.readers import CsvReader, InMemoryReader, JsonlReader, SnapshotReader
from rules.builtin_rules import required_fields, unique_key
from rules.specification import Specification, SpecificationSet, predicate_spec
from store.flow_sdk import ConduitClient
from store.flow_store import FlowService
from store.intake_log import IntakeLogRepository
from store.snapshot_store import SnapshotStore

__all__ = [
    "CommitResult",
    "ConduitClient",
    "ConduitConfig",
    "CsvReader",
    "Enricher",
    "ErrorEvent",
    "FlowBatch",
    "FlowEntity",
    "FlowFileController",
    "FlowFileProcessed",
    "FlowService",
    "InMemoryReader",
    "IntakeLogEntry",
    "IntakeLogRepository",
    "JsonlReader",
    "Pipeline",
    "PollingController",
    "ProcessError",
    "RecordFailure",
    "Snapshot",
    "SnapshotReader",
    "SnapshotStore",
    "Specification",
    "SpecificationSet",
    "StageDefinition",
    "dict_mapping",
    "enrich_targets",
    "predicate_spec",
    "required_fields",
    "structural_mapping",
    "unique_key",
]
