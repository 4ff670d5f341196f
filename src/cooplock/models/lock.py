"""Lock record models persisted in the lock file metadata.

One `LockRecord` exists per in-flight operation; all records of a namespace
are stored together in a `LockRecordSet` serialized as camelCase JSON with
ISO-8601 UTC timestamps.
"""

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator
from pydantic.alias_generators import to_camel

from ..constants import FORMAT_VERSION


class OperationType(str, Enum):
    """Kinds of operations that hold locks."""

    DELETE = "DELETE"
    RENAME = "RENAME"


class LockRecord(BaseModel):
    """Claim of one operation over a set of resource paths.

    Attributes:
        operation_id: Stable owner key of the logical operation.
        client_id: Liveness marker of the process currently driving the operation.
        operation_type: Kind of operation holding the lock.
        operation_time: When the operation was created.
        lock_expiration: After this instant the lock is considered abandoned.
        resources: Resource path names covered by the lock.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        validate_assignment=True,
    )

    operation_id: str = Field(min_length=1, description="Operation holding the lock")
    client_id: str = Field(description="Process instance responsible for the operation")
    operation_type: OperationType
    operation_time: datetime
    lock_expiration: datetime
    resources: frozenset[str] = Field(min_length=1)

    @field_validator("operation_time", "lock_expiration")
    @classmethod
    def _as_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    @field_serializer("resources")
    def _sorted_resources(self, resources: frozenset[str]) -> list[str]:
        return sorted(resources)

    def __eq__(self, other: object) -> bool:
        # Lookup identity: the operation and the exact resources it locked
        if not isinstance(other, LockRecord):
            return NotImplemented
        return self.operation_id == other.operation_id and self.resources == other.resources

    def __hash__(self) -> int:
        return hash((self.operation_id, self.resources))

    def is_expired(self, now: datetime | None = None) -> bool:
        """Check whether the lock expiration is in the past."""
        now = now or datetime.now(UTC)
        return self.lock_expiration < now


class LockRecordSet(BaseModel):
    """Versioned collection of all active lock records of a namespace."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    format_version: int = FORMAT_VERSION
    locks: list[LockRecord] = Field(default_factory=list)

    def to_json(self) -> str:
        """Serialize to the persisted wire format."""
        return self.model_dump_json(by_alias=True)

    def find(self, operation_id: str) -> LockRecord | None:
        """Find the record held by an operation."""
        for record in self.locks:
            if record.operation_id == operation_id:
                return record
        return None

    def locked_resources(self) -> list[frozenset[str]]:
        """Resource sets of all records."""
        return [record.resources for record in self.locks]
