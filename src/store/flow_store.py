"""Flow registry and batch id minting.

This module persists one identity document per flow code and hands out
monotonically increasing batch ids. Gaps left by failed attempts are
allowed, repeated ids are not.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Any, Mapping

from core.constants import FLOW_FILE_TEMPLATE
from core.errors import ConduitStoreError
from core.logging_config import get_logger
from core.types import FlowBatch, FlowEntity, FlowId, utc_now
from store.json_io import document_lock, read_json_file, write_json_file

_LOGGER = get_logger(__name__)


class FlowService:
    """File-backed flow identity registry."""

    def __init__(self, flows_dir: Path) -> None:
        self._flows_dir = Path(flows_dir).expanduser()

    def create(self, code: str, display_name: str | None = None) -> FlowId:
        """Register a new flow code.

        Args:
            code: Unique flow code.
            display_name: Optional human label.

        Returns:
            Persisted flow identity with no batches minted.

        Raises:
            ConduitStoreError: If the code already exists or is blank.
        """
        flow_path = self._flow_path(code)
        with document_lock(flow_path):
            if flow_path.exists():
                raise ConduitStoreError(
                    f"Flow '{code}' already exists at {flow_path}. "
                    "Use get_or_create to reuse an existing flow."
                )
            flow_id = FlowId(code=code, created_date=utc_now(), display_name=display_name)
            write_json_file(flow_path, _flow_to_payload(flow_id))
        _LOGGER.info("flow_created", flow_code=code)
        return flow_id

    def get(self, code: str) -> FlowId:
        """Load one flow identity.

        Raises:
            ConduitStoreError: If the flow does not exist or is malformed.
        """
        flow_path = self._flow_path(code)
        with document_lock(flow_path):
            return self._read_flow(flow_path)

    def get_or_create(self, code: str, display_name: str | None = None) -> FlowId:
        """Load a flow identity, registering it on first use."""
        flow_path = self._flow_path(code)
        if flow_path.exists():
            return self.get(code)
        try:
            return self.create(code, display_name)
        except ConduitStoreError:
            if flow_path.exists():
                return self.get(code)
            raise

    def register_entity(self, code: str, entity: FlowEntity) -> FlowId:
        """Attach an entity type to a flow unless already present.

        Args:
            code: Flow code.
            entity: Entity type handled by the flow.

        Returns:
            Updated flow identity.
        """
        flow_path = self._flow_path(code)
        with document_lock(flow_path):
            flow_id = self._read_flow(flow_path)
            known_ids = {known.entity_type_id for known in flow_id.entities}
            if entity.entity_type_id in known_ids:
                return flow_id
            updated = replace(flow_id, entities=flow_id.entities + (entity,))
            write_json_file(flow_path, _flow_to_payload(updated), backup=True)
        return updated

    def next_batch(self, code: str) -> FlowBatch:
        """Mint the next batch id for a flow code.

        The flow is created on first use. The incremented counter is
        persisted before the batch is returned, so a crash never reissues it.

        Args:
            code: Flow code.

        Returns:
            Newly minted batch.

        Raises:
            ConduitStoreError: If the registry document cannot be written.
        """
        self.get_or_create(code)
        flow_path = self._flow_path(code)
        with document_lock(flow_path):
            flow_id = self._read_flow(flow_path)
            updated = replace(flow_id, current_batch_id=flow_id.current_batch_id + 1)
            write_json_file(flow_path, _flow_to_payload(updated), backup=True)
        _LOGGER.info("batch_minted", flow_code=code, batch_id=updated.current_batch_id)
        return FlowBatch(flow_code=code, batch_id=updated.current_batch_id)

    def list_codes(self) -> tuple[str, ...]:
        """Return every registered flow code sorted by name."""
        if not self._flows_dir.exists():
            return ()
        codes = [self._read_flow(path).code for path in sorted(self._flows_dir.glob("flow-*.json"))]
        return tuple(codes)

    def _flow_path(self, code: str) -> Path:
        if not code.strip():
            raise ConduitStoreError("Flow code must be a non-empty string.")
        return self._flows_dir / FLOW_FILE_TEMPLATE.format(flow_code=code)

    def _read_flow(self, flow_path: Path) -> FlowId:
        payload = read_json_file(flow_path)
        try:
            return _flow_from_payload(payload)
        except (KeyError, TypeError, ValueError) as error:
            raise ConduitStoreError(
                f"Invalid flow document at {flow_path}: {error}. "
                "Restore the '.bak' sibling and retry."
            ) from error


def _flow_to_payload(flow_id: FlowId) -> dict[str, object]:
    return {
        "code": flow_id.code,
        "display_name": flow_id.display_name,
        "created_date": flow_id.created_date.isoformat(),
        "current_batch_id": flow_id.current_batch_id,
        "entities": [
            {
                "entity_type_id": entity.entity_type_id,
                "date_added": entity.date_added.isoformat(),
            }
            for entity in flow_id.entities
        ],
    }


def _flow_from_payload(payload: Any) -> FlowId:
    if not isinstance(payload, Mapping):
        raise TypeError("expected JSON object at document root")
    display_name = payload.get("display_name")
    return FlowId(
        code=str(payload["code"]),
        created_date=datetime.fromisoformat(str(payload["created_date"])),
        display_name=str(display_name) if display_name else None,
        current_batch_id=int(payload["current_batch_id"]),
        entities=tuple(
            FlowEntity(
                entity_type_id=str(row["entity_type_id"]),
                date_added=datetime.fromisoformat(str(row["date_added"])),
            )
            for row in payload.get("entities", [])
        ),
    )
