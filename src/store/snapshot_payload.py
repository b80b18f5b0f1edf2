"""Shared JSON serialization for Snapshot payloads.

This module centralizes Snapshot JSON serialization logic.
It is reused by the snapshot store and by the chaining snapshot reader.
"""

from __future__ import annotations

from dataclasses import asdict, is_dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Mapping

from core.errors import ConduitError, ConduitStoreError
from core.types import ErrorEvent, FlowBatch, ProcessError, Snapshot
from store.json_io import read_json_file


def item_to_payload(item: object) -> object:
    """Serialize one record by field name.

    Args:
        item: Dataclass instance, mapping, or JSON-native value.

    Returns:
        JSON-safe payload keyed by field name where applicable.
    """
    if is_dataclass(item) and not isinstance(item, type):
        return asdict(item)
    if isinstance(item, Mapping):
        return dict(item)
    return item


def snapshot_to_payload(snapshot: Snapshot) -> dict[str, object]:
    """Serialize Snapshot into a JSON-safe payload.

    Args:
        snapshot: Snapshot instance.

    Returns:
        Dictionary payload for JSON encoding.
    """
    return {
        "correlation_id": snapshot.correlation_id,
        "batch": {"flow_code": snapshot.batch.flow_code, "batch_id": snapshot.batch.batch_id},
        "process_name": snapshot.process_name,
        "source_type": snapshot.source_type,
        "target_type": snapshot.target_type,
        "source_address": snapshot.source_address,
        "target_address": snapshot.target_address,
        "processed_count": snapshot.processed_count,
        "load_time": snapshot.load_time,
        "added": snapshot.added,
        "updated": snapshot.updated,
        "removed": snapshot.removed,
        "created_at": snapshot.created_at.isoformat(),
        "warnings": [_event_to_payload(warning) for warning in snapshot.warnings],
        "errors": [_process_error_to_payload(error) for error in snapshot.errors],
        "valid_items": [item_to_payload(item) for item in snapshot.valid_items],
    }


def snapshot_from_payload(payload: Mapping[str, Any]) -> Snapshot:
    """Deserialize JSON payload into Snapshot.

    Valid items and error items come back as plain mappings.

    Args:
        payload: Serialized snapshot payload.

    Returns:
        Parsed Snapshot.

    Raises:
        KeyError: If a required field is missing.
        ValueError: If a field has an invalid value.
    """
    batch_payload = payload["batch"]
    return Snapshot(
        correlation_id=str(payload["correlation_id"]),
        batch=FlowBatch(
            flow_code=str(batch_payload["flow_code"]),
            batch_id=int(batch_payload["batch_id"]),
        ),
        process_name=str(payload["process_name"]),
        source_type=str(payload.get("source_type", "")),
        target_type=str(payload.get("target_type", "")),
        processed_count=int(payload["processed_count"]),
        load_time=float(payload.get("load_time", 0.0)),
        valid_items=tuple(payload.get("valid_items", [])),
        errors=tuple(_process_error_from_payload(row) for row in payload.get("errors", [])),
        warnings=tuple(_event_from_payload(row) for row in payload.get("warnings", [])),
        added=int(payload.get("added", 0)),
        updated=int(payload.get("updated", 0)),
        removed=int(payload.get("removed", 0)),
        source_address=payload.get("source_address"),
        target_address=payload.get("target_address"),
        created_at=datetime.fromisoformat(str(payload["created_at"])),
    )


def read_snapshot_file(
    snapshot_path: Path,
    error_type: type[ConduitError] = ConduitStoreError,
) -> dict[str, Any]:
    """Read a snapshot document and check its root shape.

    Args:
        snapshot_path: Snapshot JSON file path.
        error_type: Domain error raised on failure.

    Returns:
        Raw snapshot payload mapping.
    """
    payload = read_json_file(snapshot_path, error_type=error_type)
    if not isinstance(payload, dict):
        raise error_type(
            f"Invalid snapshot document at {snapshot_path}: expected JSON object. "
            "Regenerate the snapshot by reprocessing its source."
        )
    return payload


def _event_to_payload(event: ErrorEvent) -> dict[str, str]:
    return {"type": event.type, "message": event.message}


def _event_from_payload(payload: Mapping[str, Any]) -> ErrorEvent:
    return ErrorEvent(type=str(payload["type"]), message=str(payload["message"]))


def _process_error_to_payload(error: ProcessError) -> dict[str, object]:
    return {
        "error": _event_to_payload(error.error),
        "details": [_event_to_payload(detail) for detail in error.details],
        "item": item_to_payload(error.item),
    }


def _process_error_from_payload(payload: Mapping[str, Any]) -> ProcessError:
    return ProcessError(
        error=_event_from_payload(payload["error"]),
        item=payload.get("item"),
        details=tuple(_event_from_payload(row) for row in payload.get("details", [])),
    )
