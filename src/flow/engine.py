"""Record processing engine.

This module maps, validates, and commits one record sequence window by
window. Every consumed record ends up either in the valid output or in
the error list, and per-record failures never abort the run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import time
from typing import Any, Callable, Iterable, Sequence

from core.constants import (
    COMMIT_FAILURE_ERROR_TYPE,
    COMMIT_FAILURE_MESSAGE,
    DEFAULT_BATCH_SIZE,
    MAPPING_ERROR_TYPE,
    RULE_VIOLATION_ERROR_TYPE,
)
from core.errors import ConduitMappingError, ConduitRuleError
from core.logging_config import get_logger
from core.types import CommitResult, ErrorEvent, ProcessContext, ProcessError, RecordFailure
from flow.batching import iter_windows
from rules.specification import SpecificationSet

_LOGGER = get_logger(__name__)

MappingFn = Callable[[Any], Any]
BeginProcessingItemHook = Callable[[Any, Any], Any]
OnCommittingHook = Callable[[list[Any]], Any]
CommitFn = Callable[[list[Any]], "CommitResult | None"]


@dataclass(frozen=True)
class EngineResult:
    """Accumulated outcome of one engine run.

    Attributes:
        processed_count: Records consumed from the source.
        valid_items: Records committed successfully.
        errors: Records rejected with their reasons.
        added: Added count reported by commit.
        updated: Updated count reported by commit.
        removed: Removed count reported by commit.
        load_time: Wall-clock seconds from first read to completion.
    """

    processed_count: int
    valid_items: tuple[object, ...]
    errors: tuple[ProcessError, ...]
    added: int
    updated: int
    removed: int
    load_time: float


@dataclass
class _WindowOutcome:
    valid_items: list[object] = field(default_factory=list)
    errors: list[ProcessError] = field(default_factory=list)
    commit_result: CommitResult = field(default_factory=CommitResult)


class ProcessingEngine:
    """Sequential map, validate, and commit engine."""

    def __init__(
        self,
        mapping: MappingFn,
        rules: SpecificationSet[Any] | None = None,
        collection_rules: SpecificationSet[Sequence[Any]] | None = None,
        begin_processing_item: BeginProcessingItemHook | None = None,
        on_committing: OnCommittingHook | None = None,
        commit: CommitFn | None = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> None:
        """Create an engine.

        Args:
            mapping: Converts one input record into a candidate output.
            rules: Record-level specifications run on each candidate.
            collection_rules: Batch-level specifications run before commit.
            begin_processing_item: Hook receiving (input, candidate) before
                rule evaluation. A non-None return replaces the candidate.
            on_committing: Hook receiving the valid window before commit.
                A non-None return replaces the items handed to commit.
            commit: Persists the valid window and may report counters.
            batch_size: Records per processing window.
        """
        self._mapping = mapping
        self._rules = rules or SpecificationSet()
        self._collection_rules = collection_rules or SpecificationSet()
        self._begin_processing_item = begin_processing_item
        self._on_committing = on_committing
        self._commit = commit
        self._batch_size = batch_size

    def process(self, records: Iterable[object], context: ProcessContext) -> EngineResult:
        """Process a record sequence window by window.

        Args:
            records: Input records in arrival order.
            context: Per-run batch identity and warning sink.

        Returns:
            Accumulated result across all windows.

        Raises:
            ConduitConfigError: If the window size is invalid.
            ConduitReaderError: If the source fails while being consumed.
        """
        processed_count = 0
        valid_items: list[object] = []
        errors: list[ProcessError] = []
        added = updated = removed = 0
        started = time.perf_counter()
        try:
            for window in iter_windows(records, self._batch_size):
                outcome = self._process_window(window, context)
                processed_count += len(window)
                valid_items.extend(outcome.valid_items)
                errors.extend(outcome.errors)
                added += outcome.commit_result.added
                updated += outcome.commit_result.updated
                removed += outcome.commit_result.removed
        finally:
            load_time = time.perf_counter() - started
            _LOGGER.debug(
                "engine_run_finished",
                flow_code=context.batch.flow_code,
                batch_id=context.batch.batch_id,
                processed_count=processed_count,
                error_count=len(errors),
                load_time=load_time,
            )
        return EngineResult(
            processed_count=processed_count,
            valid_items=tuple(valid_items),
            errors=tuple(errors),
            added=added,
            updated=updated,
            removed=removed,
            load_time=load_time,
        )

    def _process_window(self, window: list[object], context: ProcessContext) -> _WindowOutcome:
        outcome = _WindowOutcome()
        pending: list[tuple[object, object]] = []
        for record in window:
            process_error, candidate = self._process_record(record)
            if process_error is not None:
                outcome.errors.append(process_error)
                continue
            pending.append((record, candidate))
        if not pending:
            return outcome
        try:
            self._check_collection_rules([candidate for _, candidate in pending])
        except ConduitRuleError as error:
            summary = error.errors[0] if error.errors else ErrorEvent(
                RULE_VIOLATION_ERROR_TYPE, str(error)
            )
            violation = ErrorEvent(RULE_VIOLATION_ERROR_TYPE, summary.message)
            outcome.errors.extend(
                ProcessError(error=violation, item=record, details=error.errors)
                for record, _ in pending
            )
            context.warn(RULE_VIOLATION_ERROR_TYPE, str(error))
            _LOGGER.warning(
                "collection_rule_failed",
                flow_code=context.batch.flow_code,
                batch_id=context.batch.batch_id,
                rejected_count=len(pending),
                message=str(error),
            )
            return outcome
        return self._commit_window(pending, outcome, context)

    def _process_record(self, record: object) -> tuple[ProcessError | None, object]:
        """Map, enrich, and validate one record.

        Returns:
            Pair of an optional error and the candidate output.
        """
        if isinstance(record, RecordFailure):
            return ProcessError(error=record.error, item=record.item, details=(record.error,)), None
        try:
            candidate = self._mapping(record)
            if self._begin_processing_item is not None:
                replacement = self._begin_processing_item(record, candidate)
                if replacement is not None:
                    candidate = replacement
            rule_errors = self._rules.evaluate(candidate)
        except Exception as error:
            event = ErrorEvent(_error_type(error), str(error))
            return ProcessError(error=event, item=record, details=(event,)), None
        if rule_errors:
            return ProcessError(error=rule_errors[0], item=record, details=tuple(rule_errors)), None
        return None, candidate

    def _check_collection_rules(self, candidates: list[object]) -> None:
        """Raise when any collection rule rejects the pending window.

        Raises:
            ConduitRuleError: Carrying every collection error.
        """
        try:
            collection_errors = self._collection_rules.evaluate(candidates)
        except Exception as error:
            collection_errors = [ErrorEvent(_error_type(error), str(error))]
        if collection_errors:
            raise ConduitRuleError(
                f"Collection rules rejected the batch: {collection_errors[0].message}",
                collection_errors,
            )

    def _commit_window(
        self,
        pending: list[tuple[object, object]],
        outcome: _WindowOutcome,
        context: ProcessContext,
    ) -> _WindowOutcome:
        valid_items = [candidate for _, candidate in pending]
        try:
            if self._on_committing is not None:
                replacement = self._on_committing(valid_items)
                if replacement is not None:
                    valid_items = list(replacement)
                if len(valid_items) != len(pending):
                    raise ValueError(
                        "on_committing must return one item per pending record, "
                        f"got {len(valid_items)} for {len(pending)}."
                    )
            commit_result = self._commit(valid_items) if self._commit is not None else None
        except Exception as error:
            message = COMMIT_FAILURE_MESSAGE.format(message=error)
            event = ErrorEvent(COMMIT_FAILURE_ERROR_TYPE, message)
            outcome.errors.extend(
                ProcessError(error=event, item=record, details=(event,)) for record, _ in pending
            )
            _LOGGER.error(
                "commit_failed",
                flow_code=context.batch.flow_code,
                batch_id=context.batch.batch_id,
                demoted_count=len(pending),
                message=str(error),
            )
            return outcome
        outcome.valid_items.extend(valid_items)
        if not isinstance(commit_result, CommitResult):
            commit_result = CommitResult(added=len(valid_items))
        outcome.commit_result = commit_result
        return outcome


def _error_type(error: Exception) -> str:
    """Return the error type name recorded for an unexpected exception."""
    if isinstance(error, ConduitMappingError):
        return MAPPING_ERROR_TYPE
    return type(error).__name__
