"""Timer-driven polling controller for one pipeline stage.

Each tick finds the oldest input file not yet in the intake log, mints a
batch, processes the file, and records the attempt whether it succeeded
or not. Only one tick is ever in flight; overlapping ticks are skipped.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
import threading
from typing import Callable

from core.constants import DEFAULT_POLL_INTERVAL_SECONDS
from core.errors import ConduitConfigError, ConduitControllerError
from core.logging_config import get_logger
from core.types import (
    ControllerState,
    FlowFileProcessed,
    IntakeLogEntry,
    Snapshot,
    StageDefinition,
)
from control.flow_file_controller import FlowFileController
from store.flow_store import FlowService
from store.intake_log import IntakeLogRepository

_LOGGER = get_logger(__name__)

FlowFileObserver = Callable[[FlowFileProcessed], None]


class PollingController:
    """Polls a stage input directory and processes files oldest first."""

    def __init__(
        self,
        flow_file_controller: FlowFileController,
        flow_service: FlowService,
        intake_log: IntakeLogRepository,
        interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS,
    ) -> None:
        """Create a stopped controller.

        Args:
            flow_file_controller: Stage processor for one file.
            flow_service: Registry minting batch ids.
            intake_log: Ledger of processed addresses.
            interval_seconds: Delay between ticks.

        Raises:
            ConduitConfigError: If the interval is not positive.
        """
        if interval_seconds <= 0:
            raise ConduitConfigError(
                f"Invalid polling interval {interval_seconds}: must be greater than 0."
            )
        self._flow_file_controller = flow_file_controller
        self._flow_service = flow_service
        self._intake_log = intake_log
        self._interval_seconds = interval_seconds
        self._stage = flow_file_controller.stage
        self._busy = threading.Lock()
        self._state_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._state: ControllerState = "stopped"
        self._skipped_ticks = 0
        self._observers: list[FlowFileObserver] = []

    @property
    def stage(self) -> StageDefinition:
        """Stage definition polled by this controller."""
        return self._stage

    @property
    def state(self) -> ControllerState:
        """Current lifecycle state."""
        with self._state_lock:
            return self._state

    @property
    def skipped_ticks(self) -> int:
        """Ticks skipped because processing was already in flight."""
        with self._state_lock:
            return self._skipped_ticks

    @property
    def is_running(self) -> bool:
        """Return whether the polling thread is active."""
        return self._thread is not None

    def add_observer(self, observer: FlowFileObserver) -> None:
        """Register a callback notified after every processed file."""
        self._observers.append(observer)

    def start(self) -> None:
        """Start the background polling thread.

        Raises:
            ConduitControllerError: If the controller is already started.
        """
        if self._thread is not None:
            raise ConduitControllerError(
                f"Controller for stage '{self._stage.code}' is already started. "
                "Call stop() before starting it again."
            )
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run,
            name=f"conduit-poll-{self._stage.code}",
            daemon=True,
        )
        self._set_state("polling")
        self._thread.start()
        _LOGGER.info(
            "controller_started",
            flow_code=self._stage.code,
            in_dir=self._stage.in_dir,
            interval_seconds=self._interval_seconds,
        )

    def stop(self) -> None:
        """Stop polling after the in-flight tick, if any, completes."""
        thread = self._thread
        if thread is None:
            return
        self._stop_event.set()
        if thread is not threading.current_thread():
            thread.join()
        self._thread = None
        self._set_state("stopped")
        _LOGGER.info("controller_stopped", flow_code=self._stage.code)

    def tick(self) -> FlowFileProcessed | None:
        """Run one polling pass.

        Returns:
            Notification for the processed file, or None when the tick was
            skipped, found no candidate, or failed before processing.
        """
        if not self._busy.acquire(blocking=False):
            with self._state_lock:
                self._skipped_ticks += 1
            _LOGGER.info("tick_skipped", flow_code=self._stage.code)
            return None
        try:
            self._set_state("discovering")
            flow_file = self.next_flow_file()
            if flow_file is None:
                return None
            return self._process_flow_file(flow_file)
        except Exception as error:
            _LOGGER.error(
                "controller_tick_failed",
                flow_code=self._stage.code,
                error=str(error),
                exc_info=True,
            )
            return None
        finally:
            self._set_state("polling" if self._thread is not None else "stopped")
            self._busy.release()

    def drain(self) -> tuple[FlowFileProcessed, ...]:
        """Process pending files synchronously until none remain.

        Returns:
            Notifications in processing order.

        Raises:
            ConduitControllerError: If the polling thread is running.
        """
        if self._thread is not None:
            raise ConduitControllerError(
                f"Cannot drain stage '{self._stage.code}' while its polling thread runs. "
                "Stop the controller first."
            )
        events: list[FlowFileProcessed] = []
        for _ in range(len(self._list_candidates())):
            event = self.tick()
            if event is None:
                break
            events.append(event)
        return tuple(events)

    def next_flow_file(self) -> Path | None:
        """Return the oldest input file not yet recorded in the intake log.

        Returns:
            Candidate path, or None when every file was processed.
        """
        intake = self._intake_log.get(self._stage.entity, self._stage.code)
        recorded = {entry.dedup_key() for entry in intake.entries}
        for flow_file in self._list_candidates():
            if (_address_of(flow_file), _modified_at(flow_file)) not in recorded:
                return flow_file
        return None

    def _list_candidates(self) -> list[Path]:
        in_dir = Path(self._stage.in_dir).expanduser()
        if not in_dir.is_dir():
            return []
        candidates = [
            path
            for path in in_dir.glob(self._stage.file_pattern)
            if path.is_file() and not path.name.startswith(".")
        ]
        return sorted(candidates, key=_creation_sort_key)

    def _process_flow_file(self, flow_file: Path) -> FlowFileProcessed:
        modified_at = _modified_at(flow_file)
        batch = self._flow_service.next_batch(self._stage.code)
        self._set_state("processing")
        snapshot: Snapshot | None = None
        error_text: str | None = None
        try:
            snapshot = self._flow_file_controller.process(flow_file, batch)
        except Exception as error:
            error_text = str(error)
            _LOGGER.error(
                "flow_file_failed",
                flow_code=self._stage.code,
                address_id=_address_of(flow_file),
                batch_id=batch.batch_id,
                error=error_text,
                exc_info=True,
            )
        finally:
            self._set_state("recording")
            self._intake_log.add(
                self._stage.entity,
                self._stage.code,
                IntakeLogEntry(
                    address_id=_address_of(flow_file),
                    target_address_id=snapshot.target_address if snapshot else None,
                    batch_id=batch.batch_id,
                    date_last_updated=modified_at,
                ),
            )
        event = FlowFileProcessed(
            flow_code=self._stage.code,
            entity_type_id=self._stage.entity,
            address_id=_address_of(flow_file),
            target_address_id=snapshot.target_address if snapshot else None,
            batch_id=batch.batch_id,
            error=error_text,
            processed_count=snapshot.processed_count if snapshot else 0,
            valid_count=len(snapshot.valid_items) if snapshot else 0,
            error_count=len(snapshot.errors) if snapshot else 0,
        )
        _LOGGER.info(
            "flow_file_processed",
            flow_code=event.flow_code,
            address_id=event.address_id,
            target_address_id=event.target_address_id,
            batch_id=event.batch_id,
            succeeded=event.succeeded,
        )
        self._notify(event)
        return event

    def _notify(self, event: FlowFileProcessed) -> None:
        for observer in list(self._observers):
            try:
                observer(event)
            except Exception as error:
                _LOGGER.warning(
                    "observer_failed",
                    flow_code=self._stage.code,
                    error=str(error),
                )

    def _run(self) -> None:
        while not self._stop_event.wait(self._interval_seconds):
            self.tick()

    def _set_state(self, state: ControllerState) -> None:
        with self._state_lock:
            self._state = state


def _address_of(flow_file: Path) -> str:
    return str(flow_file.expanduser().resolve())


def _modified_at(flow_file: Path) -> datetime:
    return datetime.fromtimestamp(flow_file.stat().st_mtime, tz=timezone.utc)


def _creation_sort_key(flow_file: Path) -> tuple[float, str]:
    """Order by creation time where the platform records it, else mtime."""
    stat_result = flow_file.stat()
    created = getattr(stat_result, "st_birthtime", stat_result.st_mtime)
    return created, flow_file.name
