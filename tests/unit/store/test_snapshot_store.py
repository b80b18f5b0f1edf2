"""Unit tests for snapshot store persistence."""

from __future__ import annotations

from dataclasses import dataclass

import pytest

from core.errors import ConduitStoreError
from core.types import ErrorEvent, FlowBatch, ProcessError, Snapshot
from store.snapshot_store import SnapshotStore


@dataclass(frozen=True)
class _Person:
    id: str
    name: str


def _snapshot(
    process_name: str = "people",
    batch_id: int = 1,
    correlation_id: str = "c1",
) -> Snapshot:
    return Snapshot(
        correlation_id=correlation_id,
        batch=FlowBatch(flow_code=process_name, batch_id=batch_id),
        process_name=process_name,
        source_type="dict",
        target_type="_Person",
        processed_count=2,
        load_time=0.25,
        valid_items=(_Person(id="1", name="Ada"),),
        errors=(
            ProcessError(
                error=ErrorEvent("RequiredField", "Field 'name' is required."),
                item={"id": "2"},
            ),
        ),
    )


def test_save_sets_target_address_and_round_trips_fields(tmp_path) -> None:
    """Saved snapshots should load back with items keyed by field name."""
    store = SnapshotStore(tmp_path)

    saved = store.save(_snapshot())
    loaded = store.load(saved.target_address)

    assert (
        loaded.valid_items == ({"id": "1", "name": "Ada"},)
        and loaded.errors[0].item == {"id": "2"}
        and loaded.target_address == saved.target_address
        and loaded.processed_count == 2
    )


def test_save_same_identity_twice_appends_counter_suffix(tmp_path) -> None:
    """Colliding file names should receive an incrementing suffix."""
    store = SnapshotStore(tmp_path)

    first = store.save(_snapshot())
    second = store.save(_snapshot())

    assert first.target_address != second.target_address and second.target_address.endswith(
        "-1.json"
    )


def test_get_resolves_by_pipeline_and_batch(tmp_path) -> None:
    """Lookup by pipeline name and batch id should return one snapshot."""
    store = SnapshotStore(tmp_path)
    store.save(_snapshot(batch_id=1))
    store.save(_snapshot(batch_id=2, correlation_id="c2"))

    snapshot = store.get("people", 2)

    assert snapshot.correlation_id == "c2"


def test_get_ambiguous_match_raises_store_error(tmp_path) -> None:
    """Two runs of one batch should require a correlation id."""
    store = SnapshotStore(tmp_path)
    store.save(_snapshot(correlation_id="c1"))
    store.save(_snapshot(correlation_id="c2"))

    with pytest.raises(ConduitStoreError):
        store.get("people", 1)

    assert store.get("people", 1, correlation_id="c2").correlation_id == "c2"


def test_get_missing_snapshot_raises_store_error(tmp_path) -> None:
    """Unknown batches should fail with a store error."""
    store = SnapshotStore(tmp_path)

    with pytest.raises(ConduitStoreError):
        store.get("people", 9)

    assert True


def test_list_filters_by_pipeline_name(tmp_path) -> None:
    """Listing with a pipeline name should skip other pipelines."""
    store = SnapshotStore(tmp_path)
    store.save(_snapshot(process_name="people"))
    store.save(_snapshot(process_name="people-archive"))

    assert len(store.list("people")) == 1 and len(store.list()) == 2
