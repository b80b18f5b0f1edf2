"""Shared run-spec execution engine for CLI and SDK workflows.

This module turns validated run-spec stages into polling controllers so
different entry points run one declarative chain without drift. Stages
drain in declaration order, which makes each upstream snapshot visible
to the downstream stage polling its output directory.
"""

from __future__ import annotations

from pathlib import Path
import threading
from typing import Protocol

from core.run_spec import RunSpec, load_run_spec
from core.types import FlowFileProcessed, StageDefinition


class RunSpecController(Protocol):
    """Controller operations required by run-spec execution."""

    @property
    def stage(self) -> StageDefinition: ...

    def drain(self) -> tuple[FlowFileProcessed, ...]: ...

    def start(self) -> None: ...

    def stop(self) -> None: ...

    def add_observer(self, observer: "FlowFileObserverFn") -> None: ...


class FlowFileObserverFn(Protocol):
    """Callback receiving flow-file notifications."""

    def __call__(self, event: FlowFileProcessed) -> None: ...


class RunSpecClient(Protocol):
    """Client API contract required by run-spec execution."""

    def with_data_root(self, data_root: str) -> "RunSpecClient": ...

    def build_controller(
        self,
        stage: StageDefinition,
        interval_seconds: float | None = None,
        batch_size: int | None = None,
    ) -> RunSpecController: ...


def execute_run_spec_file(client: RunSpecClient, spec_file: str) -> tuple[str, ...]:
    """Load a run-spec file and drain every stage once, in order.

    Args:
        client: SDK-compatible client used for stage wiring.
        spec_file: YAML run-spec path.

    Returns:
        One output line per processed flow file.
    """
    run_spec = load_run_spec(spec_file)
    controllers = _build_controllers(client, run_spec, spec_file)
    output_lines: list[str] = []
    for controller in controllers:
        for event in controller.drain():
            output_lines.append(format_flow_file_event(event))
    return tuple(output_lines)


def poll_run_spec_file(
    client: RunSpecClient,
    spec_file: str,
    duration_seconds: float,
) -> tuple[str, ...]:
    """Poll every stage of a run-spec for a fixed duration.

    Args:
        client: SDK-compatible client used for stage wiring.
        spec_file: YAML run-spec path.
        duration_seconds: Time to keep the polling threads alive.

    Returns:
        One output line per processed flow file, in completion order.
    """
    run_spec = load_run_spec(spec_file)
    controllers = _build_controllers(client, run_spec, spec_file)
    events: list[FlowFileProcessed] = []
    events_lock = threading.Lock()

    def _collect(event: FlowFileProcessed) -> None:
        with events_lock:
            events.append(event)

    for controller in controllers:
        controller.add_observer(_collect)
        controller.start()
    try:
        threading.Event().wait(duration_seconds)
    finally:
        for controller in controllers:
            controller.stop()
    with events_lock:
        return tuple(format_flow_file_event(event) for event in events)


def format_flow_file_event(event: FlowFileProcessed) -> str:
    """Render one flow-file notification as a tab-free output line."""
    file_name = Path(event.address_id).name
    if event.error is not None:
        return (
            f"stage={event.flow_code} file={file_name} batch={event.batch_id} "
            f"status=failed error={event.error}"
        )
    return (
        f"stage={event.flow_code} file={file_name} batch={event.batch_id} "
        f"processed={event.processed_count} valid={event.valid_count} "
        f"errors={event.error_count}"
    )


def _build_controllers(
    client: RunSpecClient,
    run_spec: RunSpec,
    spec_file: str,
) -> list[RunSpecController]:
    defaults = run_spec.defaults
    stage_client = client
    if defaults.data_root is not None:
        data_root = Path(defaults.data_root).expanduser()
        if not data_root.is_absolute():
            data_root = Path(spec_file).expanduser().resolve().parent / data_root
        stage_client = client.with_data_root(str(data_root))
    return [
        stage_client.build_controller(
            stage,
            interval_seconds=defaults.poll_interval_seconds,
            batch_size=defaults.batch_size,
        )
        for stage in run_spec.stages
    ]
