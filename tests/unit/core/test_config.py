"""Unit tests for core config parsing."""

from __future__ import annotations

import os

import pytest

from core.config import ConduitConfig
from core.errors import ConduitConfigError


def test_from_env_reads_data_root(monkeypatch: pytest.MonkeyPatch) -> None:
    """Config should resolve data root from environment."""
    monkeypatch.setenv("CONDUIT_DATA_ROOT", "./.tmp-conduit")

    config = ConduitConfig.from_env()

    assert config.data_root.name == ".tmp-conduit"


def test_from_env_derives_state_directories(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    """Flow registry and intake directories should live under the data root."""
    monkeypatch.setenv("CONDUIT_DATA_ROOT", str(tmp_path))

    config = ConduitConfig.from_env()

    assert config.flows_dir.parent == config.intake_dir.parent == tmp_path.resolve()


def test_from_env_raises_for_invalid_batch_size(monkeypatch: pytest.MonkeyPatch) -> None:
    """Config should fail for non-numeric batch size."""
    monkeypatch.setenv("CONDUIT_BATCH_SIZE", "not-a-number")

    with pytest.raises(ConduitConfigError):
        ConduitConfig.from_env()

    assert os.getenv("CONDUIT_BATCH_SIZE") == "not-a-number"


def test_from_env_raises_for_zero_batch_size(monkeypatch: pytest.MonkeyPatch) -> None:
    """Config should reject a processing window below one record."""
    monkeypatch.setenv("CONDUIT_BATCH_SIZE", "0")

    with pytest.raises(ConduitConfigError):
        ConduitConfig.from_env()

    assert True


def test_from_env_raises_for_non_positive_interval(monkeypatch: pytest.MonkeyPatch) -> None:
    """Config should reject a polling interval of zero seconds."""
    monkeypatch.setenv("CONDUIT_POLL_INTERVAL_SECONDS", "0")

    with pytest.raises(ConduitConfigError):
        ConduitConfig.from_env()

    assert True
