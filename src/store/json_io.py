"""JSON document I/O helpers for persisted Conduit state.

Snapshots, intake logs, and flow registry documents share one read path
and one backup-then-atomic-rename write path.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
import shutil
import tempfile
import threading

from core.constants import BACKUP_FILE_SUFFIX
from core.errors import ConduitError, ConduitStoreError

_REGISTRY_LOCK = threading.Lock()
_DOCUMENT_LOCKS: dict[Path, threading.Lock] = {}


def read_json_file(
    payload_path: Path,
    default_value: object | None = None,
    error_type: type[ConduitError] = ConduitStoreError,
) -> object:
    """Read JSON payload from disk with optional default when missing."""
    if default_value is not None and not payload_path.exists():
        return default_value
    try:
        return json.loads(payload_path.read_text(encoding="utf-8"))
    except FileNotFoundError as error:
        raise error_type(
            f"Missing required document at {payload_path}. Check the data root and retry."
        ) from error
    except json.JSONDecodeError as error:
        raise error_type(
            f"Failed to parse JSON at {payload_path}: {error.msg}. "
            f"Restore the '{BACKUP_FILE_SUFFIX}' sibling if the file was truncated."
        ) from error
    except OSError as error:
        raise error_type(f"Failed to read document {payload_path}: {error}.") from error


def write_json_file(
    payload_path: Path,
    payload: object,
    backup: bool = False,
    error_type: type[ConduitError] = ConduitStoreError,
) -> None:
    """Write one JSON payload through a temp file and atomic rename.

    Args:
        payload_path: Destination document path.
        payload: JSON-serializable payload.
        backup: Copy the previous version to a ``.bak`` sibling first.
        error_type: Domain error raised on I/O failure.

    Raises:
        ConduitError: Subclass chosen by ``error_type`` on failure.
    """
    text = json.dumps(payload, indent=2, default=_json_default) + "\n"
    try:
        payload_path.parent.mkdir(parents=True, exist_ok=True)
        if backup and payload_path.exists():
            shutil.copy2(payload_path, backup_path_for(payload_path))
        file_descriptor, temp_name = tempfile.mkstemp(
            prefix=f".{payload_path.name}.", dir=payload_path.parent
        )
        try:
            with os.fdopen(file_descriptor, "w", encoding="utf-8") as handle:
                handle.write(text)
            os.replace(temp_name, payload_path)
        except OSError:
            Path(temp_name).unlink(missing_ok=True)
            raise
    except OSError as error:
        raise error_type(f"Failed to write document {payload_path}: {error}.") from error


def backup_path_for(payload_path: Path) -> Path:
    """Return the backup sibling path for a document."""
    return payload_path.with_name(payload_path.name + BACKUP_FILE_SUFFIX)


def _json_default(value: object) -> object:
    """Encode values the json module does not handle natively."""
    isoformat = getattr(value, "isoformat", None)
    if callable(isoformat):
        return isoformat()
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=str)
    return str(value)


def document_lock(document_path: Path) -> threading.Lock:
    """Return the process-wide lock guarding one persisted document.

    Args:
        document_path: Document path; resolved before lookup.

    Returns:
        Lock shared by every repository touching the same document.
    """
    resolved_path = document_path.expanduser().resolve()
    with _REGISTRY_LOCK:
        lock = _DOCUMENT_LOCKS.get(resolved_path)
        if lock is None:
            lock = threading.Lock()
            _DOCUMENT_LOCKS[resolved_path] = lock
        return lock
