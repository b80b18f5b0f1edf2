"""Runtime configuration model for Conduit.

This module owns all environment variable parsing and validation.
Other modules consume a typed config object instead of raw env reads.
"""

from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path

from core.constants import (
    DEFAULT_BATCH_SIZE,
    DEFAULT_DATA_ROOT,
    DEFAULT_POLL_INTERVAL_SECONDS,
    FLOWS_DIR_NAME,
    INTAKE_DIR_NAME,
)
from core.errors import ConduitConfigError


@dataclass(frozen=True)
class ConduitConfig:
    """Validated runtime configuration.

    Attributes:
        data_root: Local root directory for flow registry and intake logs.
        poll_interval_seconds: Delay between polling controller ticks.
        batch_size: Number of records per processing window.
    """

    data_root: Path
    poll_interval_seconds: float
    batch_size: int

    @classmethod
    def from_env(cls) -> "ConduitConfig":
        """Build config from process environment variables.

        Returns:
            A validated config object.

        Raises:
            ConduitConfigError: If environment values are invalid.
        """
        data_root_value = os.getenv("CONDUIT_DATA_ROOT", str(DEFAULT_DATA_ROOT))
        interval_value = os.getenv(
            "CONDUIT_POLL_INTERVAL_SECONDS", str(DEFAULT_POLL_INTERVAL_SECONDS)
        )
        batch_size_value = os.getenv("CONDUIT_BATCH_SIZE", str(DEFAULT_BATCH_SIZE))
        return cls(
            data_root=Path(data_root_value).expanduser().resolve(),
            poll_interval_seconds=_parse_poll_interval(interval_value),
            batch_size=_parse_batch_size(batch_size_value),
        )

    @property
    def flows_dir(self) -> Path:
        """Directory holding flow registry documents."""
        return self.data_root / FLOWS_DIR_NAME

    @property
    def intake_dir(self) -> Path:
        """Directory holding intake log documents."""
        return self.data_root / INTAKE_DIR_NAME


def _parse_poll_interval(raw_value: str) -> float:
    """Parse the polling interval environment value.

    Args:
        raw_value: Raw string from environment.

    Returns:
        Positive interval in seconds.

    Raises:
        ConduitConfigError: If value is not a positive number.
    """
    try:
        interval = float(raw_value)
    except ValueError as error:
        raise ConduitConfigError(
            "Invalid CONDUIT_POLL_INTERVAL_SECONDS value: "
            f"expected number, got '{raw_value}'. "
            "Set CONDUIT_POLL_INTERVAL_SECONDS to a positive number of seconds."
        ) from error
    if interval <= 0:
        raise ConduitConfigError(
            f"Invalid CONDUIT_POLL_INTERVAL_SECONDS value {interval}: must be greater than 0."
        )
    return interval


def _parse_batch_size(raw_value: str) -> int:
    """Parse the processing window size environment value.

    Args:
        raw_value: Raw string from environment.

    Returns:
        Window size of at least one record.

    Raises:
        ConduitConfigError: If value is not a positive integer.
    """
    try:
        batch_size = int(raw_value)
    except ValueError as error:
        raise ConduitConfigError(
            "Invalid CONDUIT_BATCH_SIZE value: "
            f"expected integer, got '{raw_value}'. "
            "Set CONDUIT_BATCH_SIZE to a numeric value."
        ) from error
    if batch_size < 1:
        raise ConduitConfigError(
            f"Invalid CONDUIT_BATCH_SIZE value {batch_size}: must be at least 1."
        )
    return batch_size
