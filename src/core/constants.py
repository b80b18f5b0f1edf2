"""Core constants used across Conduit modules.

This module centralizes defaults and persisted file-name templates.
Keeping values here avoids magic literals in business logic.
"""

from __future__ import annotations

from pathlib import Path

DEFAULT_DATA_ROOT = Path(".conduit")
FLOWS_DIR_NAME = "flows"
INTAKE_DIR_NAME = "intake"
DEFAULT_BATCH_SIZE = 10000
DEFAULT_POLL_INTERVAL_SECONDS = 30.0
DEFAULT_FILE_PATTERN = "*"
DEFAULT_CSV_DELIMITER = ","
SNAPSHOT_FILE_SUFFIX = ".json"
SNAPSHOT_FILE_TEMPLATE = "{pipeline}-{correlation_id}-{batch_id}"
INTAKE_FILE_TEMPLATE = "{entity_type_id}/{flow_code}.json"
FLOW_FILE_TEMPLATE = "flow-{flow_code}.json"
BACKUP_FILE_SUFFIX = ".bak"
COMMIT_FAILURE_MESSAGE = "Failed to commit changes: {message}"
RULE_VIOLATION_ERROR_TYPE = "RuleViolation"
MAPPING_ERROR_TYPE = "MappingError"
SUPPORTED_READER_TYPES = ("csv", "jsonl", "snapshot")
DEFAULT_READER_TYPE = "csv"
COMMIT_FAILURE_ERROR_TYPE = "CommitFailure"
