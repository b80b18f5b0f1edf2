"""Python SDK for pipeline stage operations.

This module exposes high-level APIs for wiring stages, running
run-specs, and inspecting snapshots, intake logs, and batch ids.
"""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path

from control.controller import PollingController
from control.flow_file_controller import FlowFileController
from core.config import ConduitConfig
from core.run_spec_execution import execute_run_spec_file, poll_run_spec_file
from core.types import FlowBatch, FlowEntity, IntakeLogEntry, Snapshot, StageDefinition
from flow.mapping import dict_mapping
from flow.pipeline import Pipeline
from ingest.readers import build_reader
from rules.builtin_rules import required_fields, unique_key
from rules.specification import SpecificationSet
from store.flow_store import FlowService
from store.intake_log import IntakeLogRepository
from store.snapshot_store import SnapshotStore


class ConduitClient:
    """Primary SDK entry point for pipeline workflows."""

    def __init__(self, config: ConduitConfig | None = None) -> None:
        """Create SDK client.

        Args:
            config: Optional runtime configuration.
        """
        self._config = config or ConduitConfig.from_env()
        self._flow_service = FlowService(self._config.flows_dir)
        self._intake_log = IntakeLogRepository(self._config.intake_dir)

    @property
    def config(self) -> ConduitConfig:
        """Runtime configuration of this client."""
        return self._config

    @property
    def flow_service(self) -> FlowService:
        """Flow registry under the client data root."""
        return self._flow_service

    @property
    def intake_log(self) -> IntakeLogRepository:
        """Intake ledger under the client data root."""
        return self._intake_log

    def with_data_root(self, data_root: str) -> "ConduitClient":
        """Clone the client with a different local data root.

        Args:
            data_root: New data root path.

        Returns:
            New SDK client instance.
        """
        resolved_root = Path(data_root).expanduser().resolve()
        updated_config = replace(self._config, data_root=resolved_root)
        return ConduitClient(updated_config)

    def build_pipeline(self, stage: StageDefinition, batch_size: int | None = None) -> Pipeline:
        """Build the declarative pipeline for one stage.

        Args:
            stage: Stage definition.
            batch_size: Window size when the stage does not set one.

        Returns:
            Pipeline with rename mapping, required rule, and unique rule.
        """
        rules = SpecificationSet([required_fields(stage.required)] if stage.required else [])
        collection_rules = SpecificationSet([unique_key(stage.unique)] if stage.unique else [])
        return Pipeline(
            name=stage.code,
            mapping=dict_mapping(stage.fields),
            rules=rules,
            collection_rules=collection_rules,
            batch_size=stage.batch_size or batch_size or self._config.batch_size,
            source_type=stage.reader_type,
        )

    def build_controller(
        self,
        stage: StageDefinition,
        interval_seconds: float | None = None,
        batch_size: int | None = None,
        pipeline: Pipeline | None = None,
    ) -> PollingController:
        """Wire a polling controller for one stage.

        The flow is registered on first use together with its entity type.

        Args:
            stage: Stage definition.
            interval_seconds: Optional polling interval override.
            batch_size: Optional window size default.
            pipeline: Custom pipeline replacing the declarative one.

        Returns:
            Stopped polling controller.
        """
        self._flow_service.get_or_create(stage.code)
        self._flow_service.register_entity(stage.code, FlowEntity(entity_type_id=stage.entity))
        reader = build_reader(stage.reader_type, delimiter=stage.delimiter)
        flow_file_controller = FlowFileController(
            stage=stage,
            reader=reader,
            pipeline=pipeline or self.build_pipeline(stage, batch_size),
        )
        return PollingController(
            flow_file_controller=flow_file_controller,
            flow_service=self._flow_service,
            intake_log=self._intake_log,
            interval_seconds=interval_seconds or self._config.poll_interval_seconds,
        )

    def run_spec(self, spec_file: str) -> tuple[str, ...]:
        """Drain every stage of a YAML run-spec once, in order.

        Args:
            spec_file: Path to YAML run-spec file.

        Returns:
            Ordered output lines, one per processed file.
        """
        return execute_run_spec_file(self, spec_file)

    def poll(self, spec_file: str, duration_seconds: float) -> tuple[str, ...]:
        """Poll every stage of a YAML run-spec for a fixed duration."""
        return poll_run_spec_file(self, spec_file, duration_seconds)

    def snapshot_store(self, snapshot_dir: str) -> SnapshotStore:
        """Open the snapshot store of one stage output directory."""
        return SnapshotStore(Path(snapshot_dir))

    def list_snapshots(
        self,
        snapshot_dir: str,
        process_name: str | None = None,
    ) -> tuple[Snapshot, ...]:
        """Load every snapshot in an output directory.

        Args:
            snapshot_dir: Stage output directory.
            process_name: Optional pipeline name filter.

        Returns:
            Snapshots ordered by document name.
        """
        store = self.snapshot_store(snapshot_dir)
        return tuple(store.load(path) for path in store.list(process_name))

    def intake_entries(self, entity_type_id: str, flow_code: str) -> tuple[IntakeLogEntry, ...]:
        """Return the intake ledger entries of one entity and flow code."""
        return self._intake_log.get(entity_type_id, flow_code).entries

    def next_batch(self, flow_code: str) -> FlowBatch:
        """Mint the next batch id for a flow code."""
        return self._flow_service.next_batch(flow_code)
