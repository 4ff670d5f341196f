"""Lock coordinator for cooperative locking over an object store.

All lock records of a namespace live in the metadata of one lock file object
(`_lock/all.lock`). Every operation is an optimistic read-modify-write cycle
on that object: read the records, apply a mutation in memory, and write them
back conditioned on the version that was read. Lost races and transient
store errors are retried with exponential backoff; resources locked by other
operations are retried at a fixed interval until they are released.

The loops never give up. Callers that need bounded latency must enforce
their own deadline around these calls.
"""

import contextlib
import json
import logging
import random
import time
from collections.abc import Callable, Sequence
from datetime import UTC, datetime

from pydantic import ValidationError

from ..config import LockingConfig
from ..constants import FORMAT_VERSION, LOCK_METADATA_KEY, LOCK_PATH
from ..errors import LockConsistencyError, LockValidationError
from ..logging import ThrottledLogger
from ..models import LockRecord, LockRecordSet, OperationType, ResourceId
from ..storage import (
    ObjectAlreadyExistsError,
    ObjectInfo,
    ObjectNotFoundError,
    ObjectStore,
    ObjectStoreError,
    PreconditionFailedError,
)
from .backoff import ExponentialBackoff
from .client_id import new_client_id
from .conflicts import conflicts

logger = logging.getLogger(__name__)

ModificationFn = Callable[[LockRecordSet], bool]


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


def lock_file_id(namespace: str) -> ResourceId:
    """Get the lock file object of a namespace."""
    return ResourceId(namespace=namespace, name=LOCK_PATH)


def validate_resources(resources: Sequence[ResourceId]) -> tuple[str, frozenset[str]]:
    """Check resources are non-empty and share one namespace.

    Returns:
        Tuple of (namespace, resource names)

    Raises:
        LockValidationError: If resources are missing or span namespaces
    """
    if not resources:
        raise LockValidationError("resources should not be empty")
    if any(resource is None for resource in resources):
        raise LockValidationError("resources should not be null")
    for resource in resources:
        if not isinstance(resource, ResourceId):
            raise LockValidationError(f"resources should be ResourceId, got {resource!r}")
    namespace = resources[0].namespace
    if any(resource.namespace != namespace for resource in resources):
        raise LockValidationError("All resources should be in the same namespace")
    return namespace, frozenset(resource.name for resource in resources)


def parse_lock_records(content: str) -> LockRecordSet:
    """Deserialize a record set, rejecting unknown format versions.

    Raises:
        LockConsistencyError: If the content is corrupt or has another format version
    """
    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise LockConsistencyError(f"Corrupted lock records: {e}") from e
    if not isinstance(data, dict):
        raise LockConsistencyError(f"Corrupted lock records: expected object, got {type(data).__name__}")

    format_version = data.get("formatVersion")
    if format_version != FORMAT_VERSION:
        raise LockConsistencyError(
            f"Unsupported metadata format: expected {FORMAT_VERSION}, but was {format_version}"
        )

    try:
        return LockRecordSet.model_validate(data)
    except ValidationError as e:
        raise LockConsistencyError(f"Corrupted lock records: {e}") from e


def read_lock_records(info: ObjectInfo) -> LockRecordSet:
    """Get the record set of a lock file, or an empty one if it holds none."""
    content = info.metadata.get(LOCK_METADATA_KEY) if info.exists else None
    if info.version == 0 or content is None:
        return LockRecordSet()
    return parse_lock_records(content)


class LockCoordinator:
    """Acquires, releases, renews and lists locks stored in a lock file.

    Args:
        store: Object store holding the lock file of each namespace
        config: Locking options (expiration, capacity, retry intervals)
        client_id_provider: Generates a fresh client id for an operation id
        sleep: Called with the number of seconds to wait between attempts
        clock: Returns the current time as an aware UTC datetime
        rng: Random source for backoff jitter
    """

    def __init__(
        self,
        store: ObjectStore,
        config: LockingConfig | None = None,
        *,
        client_id_provider: Callable[[str], str] = new_client_id,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], datetime] = _utcnow,
        rng: random.Random | None = None,
    ):
        self.store = store
        self.config = config or LockingConfig()
        self._client_id_provider = client_id_provider
        self._sleep = sleep
        self._clock = clock
        self._rng = rng
        self._throttled = ThrottledLogger(logger)

    def get_locked_operations(self, namespace: str) -> set[LockRecord]:
        """List all lock records of a namespace.

        Read-only and not retried: store errors propagate to the caller.
        """
        start = time.monotonic()
        info = self.store.get_info(lock_file_id(namespace))
        operations = set(read_lock_records(info).locks)
        logger.debug(
            "[%dms] get_locked_operations(%s): %s", _elapsed_ms(start), namespace, operations
        )
        return operations

    def get_expired_operations(
        self, namespace: str, now: datetime | None = None
    ) -> set[LockRecord]:
        """List lock records whose expiration has passed."""
        now = now or self._clock()
        return {record for record in self.get_locked_operations(namespace) if record.is_expired(now)}

    def lock_paths(
        self,
        operation_id: str,
        operation_time: datetime,
        operation_type: OperationType | str,
        *resources: ResourceId,
    ) -> LockRecord:
        """Lock resources for an operation, waiting until no other lock overlaps them.

        Returns:
            The committed lock record

        Raises:
            LockValidationError: If arguments are invalid
            LockConsistencyError: If the operation already holds a lock
        """
        start = time.monotonic()
        namespace, names = validate_resources(resources)
        if not operation_id:
            raise LockValidationError("operation id should not be empty")
        if not isinstance(operation_time, datetime):
            raise LockValidationError(f"operation time should be a datetime, got {operation_time!r}")
        try:
            operation_type = OperationType(operation_type)
        except ValueError:
            raise LockValidationError(f"Unknown operation type: {operation_type}") from None

        committed: LockRecord | None = None

        def add_lock_record(records: LockRecordSet) -> bool:
            nonlocal committed
            held = records.find(operation_id)
            if held is not None:
                raise LockConsistencyError(
                    f"Operation {operation_id} already holds a lock on {sorted(held.resources)}"
                )
            if conflicts(records.locked_resources(), names):
                return False
            committed = LockRecord(
                operation_id=operation_id,
                client_id=self._client_id_provider(operation_id),
                operation_type=operation_type,
                operation_time=operation_time,
                lock_expiration=self._clock() + self.config.lock_expiration_timeout,
                resources=names,
            )
            records.locks.append(committed)
            return True

        self._modify_lock(add_lock_record, namespace, operation_id)
        assert committed is not None
        logger.debug(
            "[%dms] lock_paths(%s, %s)", _elapsed_ms(start), operation_id, sorted(map(str, resources))
        )
        return committed

    def unlock_paths(self, operation_id: str, *resources: ResourceId) -> None:
        """Release the lock an operation holds on exactly these resources.

        Raises:
            LockValidationError: If arguments are invalid
            LockConsistencyError: If the resources are not locked by exactly
                this operation with exactly this resource set
        """
        start = time.monotonic()
        namespace, names = validate_resources(resources)

        def remove_lock_record(records: LockRecordSet) -> bool:
            matching = [record for record in records.locks if not record.resources.isdisjoint(names)]
            if len(matching) != 1:
                raise LockConsistencyError(
                    f"Only {operation_id} operation with {sorted(names)} resources should be "
                    f"unlocked, but found {len(matching)} operations: {matching}"
                )
            record = matching[0]
            if record.operation_id != operation_id:
                raise LockConsistencyError(
                    f"All resources should be locked by {operation_id} operation, "
                    f"but they are locked by {record.operation_id} operation"
                )
            if record.resources != names:
                raise LockConsistencyError(
                    f"All of {sorted(names)} resources should be locked by operation "
                    f"{operation_id}, but it locked {sorted(record.resources)} resources"
                )
            records.locks.remove(record)
            return True

        self._modify_lock(remove_lock_record, namespace, operation_id)
        logger.debug(
            "[%dms] unlock_paths(%s, %s)", _elapsed_ms(start), operation_id, sorted(map(str, resources))
        )

    def relock_operation(self, namespace: str, operation_record: LockRecord) -> LockRecord:
        """Renew a held lock with a new client id and a later expiration.

        Returns:
            The refreshed lock record

        Raises:
            LockConsistencyError: If the lock is no longer held
        """
        start = time.monotonic()
        operation_id = operation_record.operation_id
        refreshed: LockRecord | None = None

        def reacquire_lock_record(records: LockRecordSet) -> bool:
            nonlocal refreshed
            record = next((r for r in records.locks if r == operation_record), None)
            if record is None:
                raise LockConsistencyError(f"operation {operation_id} not found")
            record.client_id = self._client_id_provider(operation_id)
            record.lock_expiration = self._clock() + self.config.lock_expiration_timeout
            refreshed = record.model_copy()
            return True

        self._modify_lock(reacquire_lock_record, namespace, operation_id)
        assert refreshed is not None
        logger.debug(
            "[%dms] relock_operation(%s, %s)", _elapsed_ms(start), operation_id, refreshed.client_id
        )
        return refreshed

    def _modify_lock(self, modification_fn: ModificationFn, namespace: str, operation_id: str) -> None:
        start = time.monotonic()
        lock_id = lock_file_id(namespace)
        retry_interval = self.config.retry_interval_ms / 1000
        backoff = ExponentialBackoff.from_config(self.config.backoff, rng=self._rng)

        while True:
            try:
                info = self.store.get_info(lock_id)
                if not info.exists:
                    with contextlib.suppress(ObjectAlreadyExistsError):
                        self.store.create_empty(lock_id)
                    info = self.store.get_info(lock_id)
                records = read_lock_records(info)

                if not modification_fn(records):
                    self._throttled.info(
                        "locked",
                        "Failed to update %d entries in %s file: resources could be locked, retrying.",
                        len(records.locks),
                        lock_id,
                    )
                    self._sleep(retry_interval)
                    continue

                # Last lock released: remove the lock file itself
                if not records.locks:
                    self.store.delete(lock_id, info.version)
                    break

                if len(records.locks) > self.config.max_concurrent_operations:
                    self._throttled.info(
                        "capacity",
                        "Skipping lock entries update in %s file: too many (%d) locked resources, retrying.",
                        lock_id,
                        len(records.locks),
                    )
                    self._sleep(retry_interval)
                    continue

                metadata = dict(info.metadata)
                metadata[LOCK_METADATA_KEY] = records.to_json()
                self.store.update_metadata(lock_id, info.version, metadata)

                logger.debug(
                    "Updated lock file in %dms for %s operation", _elapsed_ms(start), operation_id
                )
                break
            except PreconditionFailedError:
                self._throttled.info(
                    "precondition",
                    "Failed to update entries (condition not met) in %s file for operation %s, retrying.",
                    lock_id,
                    operation_id,
                )
            except ObjectNotFoundError:
                self._throttled.info(
                    "not-found",
                    "Failed to update entries (file not found) in %s file for operation %s, retrying.",
                    lock_id,
                    operation_id,
                )
            except (ObjectStoreError, OSError):
                self._throttled.warning(
                    "store-error",
                    "Failed to modify lock for %s operation, retrying.",
                    operation_id,
                    exc_info=True,
                )
            # Only reached after a failed store call
            self._sleep(backoff.next_backoff())
