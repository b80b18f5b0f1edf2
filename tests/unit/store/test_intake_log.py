"""Unit tests for intake log persistence."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from core.errors import ConduitIntakeError
from core.types import IntakeLogEntry
from store.intake_log import IntakeLogRepository
from store.json_io import backup_path_for

_MODIFIED = datetime(2024, 5, 1, 12, 30, 15, 123456, tzinfo=timezone.utc)


def _entry(address_id: str = "/in/a.csv", batch_id: int = 1) -> IntakeLogEntry:
    return IntakeLogEntry(
        address_id=address_id,
        target_address_id="/out/a.json",
        batch_id=batch_id,
        date_last_updated=_MODIFIED,
    )


def test_get_missing_log_returns_empty_ledger(tmp_path) -> None:
    """Unknown entity and flow pairs should have no entries."""
    repository = IntakeLogRepository(tmp_path)

    assert repository.get("person", "load").entries == ()


def test_add_is_idempotent_for_same_address_and_mtime(tmp_path) -> None:
    """Adding the same address and modification time twice should be a no-op."""
    repository = IntakeLogRepository(tmp_path)

    first = repository.add("person", "load", _entry())
    second = repository.add("person", "load", _entry(batch_id=2))

    assert first and not second and len(repository.get("person", "load").entries) == 1


def test_add_round_trips_entry_fields(tmp_path) -> None:
    """Persisted entries should keep microsecond timestamps."""
    repository = IntakeLogRepository(tmp_path)
    repository.add("person", "load", _entry())

    entry = repository.get("person", "load").entries[0]

    assert entry.date_last_updated == _MODIFIED and entry.target_address_id == "/out/a.json"


def test_add_writes_backup_of_previous_document(tmp_path) -> None:
    """Second write should leave the previous ledger as a backup sibling."""
    repository = IntakeLogRepository(tmp_path)
    repository.add("person", "load", _entry("/in/a.csv"))
    repository.add("person", "load", _entry("/in/b.csv"))

    log_path = tmp_path / "person" / "load.json"

    assert backup_path_for(log_path).exists() and "/in/b.csv" not in backup_path_for(
        log_path
    ).read_text(encoding="utf-8")


def test_contains_checks_address_and_optional_mtime(tmp_path) -> None:
    """Containment should match the address and, when given, the mtime."""
    repository = IntakeLogRepository(tmp_path)
    repository.add("person", "load", _entry())
    other_time = datetime(2024, 5, 2, tzinfo=timezone.utc)

    assert (
        repository.contains("person", "load", "/in/a.csv")
        and not repository.contains("person", "load", "/in/a.csv", other_time)
        and not repository.contains("person", "other", "/in/a.csv")
    )


def test_corrupt_log_raises_intake_error(tmp_path) -> None:
    """Unparseable ledgers should fail with an intake error."""
    (tmp_path / "person").mkdir()
    (tmp_path / "person" / "load.json").write_text("{not json", encoding="utf-8")
    repository = IntakeLogRepository(tmp_path)

    with pytest.raises(ConduitIntakeError):
        repository.get("person", "load")

    assert True


def test_hyphenated_partitions_keep_separate_ledgers(tmp_path) -> None:
    """Entity and flow codes containing separators should never share a ledger."""
    repository = IntakeLogRepository(tmp_path)

    first = repository.add("orders", "load-csv", _entry())
    second = repository.add("orders-load", "csv", _entry())

    assert (
        first
        and second
        and len(repository.get("orders", "load-csv").entries) == 1
        and len(repository.get("orders-load", "csv").entries) == 1
    )


def test_path_like_partition_keys_stay_inside_log_dir(tmp_path) -> None:
    """Slashes and dots in partition keys should not escape the log directory."""
    log_dir = tmp_path / "intake"
    repository = IntakeLogRepository(log_dir)

    repository.add("..", "a/b", _entry())

    written = list(tmp_path.rglob("*.json"))
    assert len(written) == 1 and log_dir in written[0].parents


def test_misplaced_ledger_for_other_pair_raises_intake_error(tmp_path) -> None:
    """A document whose stored pair differs from the requested one should be rejected."""
    repository = IntakeLogRepository(tmp_path)
    repository.add("person", "load", _entry())
    (tmp_path / "person" / "load.json").replace(tmp_path / "person" / "publish.json")

    with pytest.raises(ConduitIntakeError):
        repository.get("person", "publish")

    assert True
