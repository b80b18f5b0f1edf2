"""Conduit exception hierarchy.

This module defines traceable domain errors with clear boundaries.
Each subsystem raises a specific error type for debuggability.
"""

from __future__ import annotations

from typing import Sequence, TYPE_CHECKING

if TYPE_CHECKING:
    from core.types import ErrorEvent


class ConduitError(Exception):
    """Base exception for all Conduit failures."""


class ConduitConfigError(ConduitError):
    """Raised for invalid runtime or pipeline configuration."""


class ConduitReaderError(ConduitError):
    """Raised when a source cannot be opened or parsed."""


class ConduitStoreError(ConduitError):
    """Raised for snapshot and flow registry persistence failures."""


class ConduitIntakeError(ConduitError):
    """Raised for intake log read and write failures."""


class ConduitControllerError(ConduitError):
    """Raised for polling controller lifecycle and flow-file failures."""


class ConduitRuleError(ConduitError):
    """Raised when a collection-level rule rejects a batch."""

    def __init__(self, message: str, errors: Sequence["ErrorEvent"] = ()) -> None:
        super().__init__(message)
        self.errors = tuple(errors)


class ConduitDependencyError(ConduitError):
    """Raised when an optional runtime dependency is missing."""


class ConduitRunSpecError(ConduitError):
    """Raised for invalid or unsupported run-spec configuration."""


class ConduitMappingError(ConduitError):
    """Raised when a record cannot be mapped to the output shape."""
