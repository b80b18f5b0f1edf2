"""Intake log persistence and deduplication.

This module keeps one append-only ledger per entity type and flow code.
An address is new work unless its (address, last-modified) pair was
already recorded, which is what keeps files from being processed twice.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any, Mapping
from urllib.parse import quote

from core.constants import INTAKE_FILE_TEMPLATE
from core.errors import ConduitIntakeError
from core.logging_config import get_logger
from core.types import IntakeLog, IntakeLogEntry
from store.json_io import document_lock, read_json_file, write_json_file

_LOGGER = get_logger(__name__)


class IntakeLogRepository:
    """File-backed intake ledger store.

    Writes copy the previous document to a ``.bak`` sibling and then
    atomically replace it. Only writers in the same process are serialized.
    """

    def __init__(self, log_dir: Path) -> None:
        self._log_dir = Path(log_dir).expanduser()

    def get(self, entity_type_id: str, flow_code: str) -> IntakeLog:
        """Load the ledger for one entity type and flow code.

        Args:
            entity_type_id: Entity partition key.
            flow_code: Pipeline code.

        Returns:
            Ledger, empty when nothing was recorded yet.

        Raises:
            ConduitIntakeError: If the document cannot be parsed.
        """
        log_path = self._log_path(entity_type_id, flow_code)
        with document_lock(log_path):
            return self._read_log(log_path, entity_type_id, flow_code)

    def contains(
        self,
        entity_type_id: str,
        flow_code: str,
        address_id: str,
        date_last_updated: datetime | None = None,
    ) -> bool:
        """Return whether an address was already recorded.

        Args:
            entity_type_id: Entity partition key.
            flow_code: Pipeline code.
            address_id: Source locator.
            date_last_updated: When given, match this modification time too.

        Returns:
            True when a matching entry exists.
        """
        intake_log = self.get(entity_type_id, flow_code)
        for entry in intake_log.entries:
            if entry.address_id != address_id:
                continue
            if date_last_updated is None or entry.date_last_updated == date_last_updated:
                return True
        return False

    def add(self, entity_type_id: str, flow_code: str, entry: IntakeLogEntry) -> bool:
        """Append an entry unless its dedup pair is already present.

        Args:
            entity_type_id: Entity partition key.
            flow_code: Pipeline code.
            entry: Entry to record.

        Returns:
            True when the entry was newly added, False for a duplicate.

        Raises:
            ConduitIntakeError: If the ledger cannot be read or written.
        """
        log_path = self._log_path(entity_type_id, flow_code)
        with document_lock(log_path):
            intake_log = self._read_log(log_path, entity_type_id, flow_code)
            existing_keys = {existing.dedup_key() for existing in intake_log.entries}
            if entry.dedup_key() in existing_keys:
                _LOGGER.debug(
                    "intake_entry_duplicate",
                    entity_type_id=entity_type_id,
                    flow_code=flow_code,
                    address_id=entry.address_id,
                )
                return False
            entries = intake_log.entries + (entry,)
            payload = _log_to_payload(IntakeLog(entity_type_id, flow_code, entries))
            write_json_file(log_path, payload, backup=True, error_type=ConduitIntakeError)
        _LOGGER.info(
            "intake_entry_added",
            entity_type_id=entity_type_id,
            flow_code=flow_code,
            address_id=entry.address_id,
            target_address_id=entry.target_address_id,
            batch_id=entry.batch_id,
            entry_count=len(entries),
        )
        return True

    def _log_path(self, entity_type_id: str, flow_code: str) -> Path:
        if not entity_type_id.strip() or not flow_code.strip():
            raise ConduitIntakeError(
                "Intake log entity type and flow code must be non-empty strings."
            )
        relative_path = INTAKE_FILE_TEMPLATE.format(
            entity_type_id=_path_part(entity_type_id),
            flow_code=_path_part(flow_code),
        )
        return self._log_dir / relative_path

    def _read_log(self, log_path: Path, entity_type_id: str, flow_code: str) -> IntakeLog:
        if not log_path.exists():
            return IntakeLog(entity_type_id=entity_type_id, flow_code=flow_code)
        payload = read_json_file(log_path, error_type=ConduitIntakeError)
        try:
            intake_log = _log_from_payload(payload)
        except (KeyError, TypeError, ValueError) as error:
            raise ConduitIntakeError(
                f"Invalid intake log at {log_path}: {error}. "
                "Restore the '.bak' sibling or remove the document to reprocess."
            ) from error
        if (intake_log.entity_type_id, intake_log.flow_code) != (entity_type_id, flow_code):
            raise ConduitIntakeError(
                f"Intake log at {log_path} belongs to entity '{intake_log.entity_type_id}' "
                f"and flow '{intake_log.flow_code}', not '{entity_type_id}' and "
                f"'{flow_code}'. Move the document back to its own partition."
            )
        return intake_log


def _path_part(value: str) -> str:
    """Percent-encode one partition key so it maps to exactly one path segment."""
    return quote(value, safe="").replace(".", "%2E")


def _log_to_payload(intake_log: IntakeLog) -> dict[str, object]:
    return {
        "entity_type_id": intake_log.entity_type_id,
        "flow_code": intake_log.flow_code,
        "entries": [
            {
                "address_id": entry.address_id,
                "target_address_id": entry.target_address_id,
                "batch_id": entry.batch_id,
                "date_last_updated": entry.date_last_updated.isoformat(),
                "processed_at": entry.processed_at.isoformat(),
            }
            for entry in intake_log.entries
        ],
    }


def _log_from_payload(payload: Any) -> IntakeLog:
    if not isinstance(payload, Mapping):
        raise TypeError("expected JSON object at document root")
    entries = tuple(_entry_from_payload(row) for row in payload["entries"])
    return IntakeLog(
        entity_type_id=str(payload["entity_type_id"]),
        flow_code=str(payload["flow_code"]),
        entries=entries,
    )


def _entry_from_payload(payload: Mapping[str, Any]) -> IntakeLogEntry:
    target_address_id = payload.get("target_address_id")
    return IntakeLogEntry(
        address_id=str(payload["address_id"]),
        target_address_id=str(target_address_id) if target_address_id else None,
        batch_id=int(payload["batch_id"]),
        date_last_updated=datetime.fromisoformat(str(payload["date_last_updated"])),
        processed_at=datetime.fromisoformat(str(payload["processed_at"])),
    )
