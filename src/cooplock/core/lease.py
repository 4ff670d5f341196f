"""Held lock with background renewal.

`OperationLease` acquires a set of resources for an operation, keeps the lock
alive by periodically reacquiring it, and releases it when done:

    with OperationLease(coordinator, "op-1", OperationType.DELETE, resources):
        ...  # long-running work
"""

import logging
import threading
from collections.abc import Sequence
from datetime import UTC, datetime

from ..errors import LockConsistencyError, LockError, LockOwnershipLostError
from ..models import LockRecord, OperationType, ResourceId
from .lock_manager import LockCoordinator

logger = logging.getLogger(__name__)

MIN_HEARTBEAT_SECONDS = 1.0
MAX_HEARTBEAT_SECONDS = 30.0


class OperationLease:
    """Lock held by one operation, renewed by a heartbeat thread."""

    def __init__(
        self,
        coordinator: LockCoordinator,
        operation_id: str,
        operation_type: OperationType,
        resources: Sequence[ResourceId],
        *,
        operation_time: datetime | None = None,
        heartbeat_interval: float | None = None,
    ):
        self.coordinator = coordinator
        self.operation_id = operation_id
        self.operation_type = operation_type
        self.resources = list(resources)
        self.operation_time = operation_time or datetime.now(UTC)
        if heartbeat_interval is None:
            timeout_seconds = coordinator.config.lock_expiration_timeout.total_seconds()
            heartbeat_interval = min(
                MAX_HEARTBEAT_SECONDS, max(MIN_HEARTBEAT_SECONDS, timeout_seconds / 3)
            )
        self.heartbeat_interval = heartbeat_interval

        self._record: LockRecord | None = None
        self._state_lock = threading.RLock()
        self._heartbeat_stop = threading.Event()
        self._heartbeat_thread: threading.Thread | None = None
        self._lost = threading.Event()
        self._lost_reason: str | None = None

    @property
    def record(self) -> LockRecord | None:
        with self._state_lock:
            return self._record

    @property
    def held(self) -> bool:
        with self._state_lock:
            return self._record is not None

    @property
    def lost(self) -> bool:
        return self._lost.is_set()

    def acquire(self) -> LockRecord:
        """Lock the resources, blocking until they are available."""
        with self._state_lock:
            if self._record is not None:
                return self._record

        record = self.coordinator.lock_paths(
            self.operation_id, self.operation_time, self.operation_type, *self.resources
        )
        with self._state_lock:
            self._record = record
            self._lost.clear()
            self._lost_reason = None
        self._start_heartbeat()
        return record

    def release(self) -> None:
        """Release the lock if still held."""
        self._stop_heartbeat()
        with self._state_lock:
            record = self._record
            self._record = None
        if record is None:
            return
        self.coordinator.unlock_paths(self.operation_id, *self.resources)

    def ensure_held(self) -> None:
        """Raise if the heartbeat lost the lock."""
        with self._state_lock:
            if self._record is not None:
                return
        if self._lost.is_set():
            raise LockOwnershipLostError(self.operation_id, reason=self._lost_reason)

    def __enter__(self) -> "OperationLease":
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            self.release()
            return
        # Keep the body's exception as the one that propagates
        try:
            self.release()
        except LockError:
            logger.exception("Failed to release lock for operation %s", self.operation_id)

    def _start_heartbeat(self) -> None:
        if self._heartbeat_thread is not None and self._heartbeat_thread.is_alive():
            return
        self._heartbeat_stop.clear()
        self._heartbeat_thread = threading.Thread(
            target=self._heartbeat_loop,
            daemon=True,
            name=f"lock-heartbeat-{self.operation_id}",
        )
        self._heartbeat_thread.start()

    def _stop_heartbeat(self) -> None:
        self._heartbeat_stop.set()
        thread = self._heartbeat_thread
        if thread is not None and thread is not threading.current_thread() and thread.is_alive():
            thread.join(timeout=self.heartbeat_interval + 1.0)
        self._heartbeat_thread = None

    def _heartbeat_loop(self) -> None:
        namespace = self.resources[0].namespace
        while not self._heartbeat_stop.wait(self.heartbeat_interval):
            with self._state_lock:
                record = self._record
            if record is None:
                return
            try:
                refreshed = self.coordinator.relock_operation(namespace, record)
            except LockConsistencyError as e:
                self._handle_heartbeat_failure(e)
                return
            except LockError as e:
                # Record is still stored; renew again on the next beat
                logger.warning("Lock heartbeat skipped for operation %s: %s", self.operation_id, e)
                continue
            with self._state_lock:
                if self._record is not None:
                    self._record = refreshed

    def _handle_heartbeat_failure(self, error: LockError) -> None:
        logger.error("Lock heartbeat failed for operation %s: %s", self.operation_id, error)
        with self._state_lock:
            self._record = None
            self._lost_reason = f"heartbeat failed: {error}"
            self._lost.set()
        self._heartbeat_stop.set()
