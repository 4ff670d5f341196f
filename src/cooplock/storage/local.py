"""Directory-backed object store for processes sharing one file system.

Each object is a small JSON document holding its version and metadata:

    <root>/<namespace>/<object name>  ->  {"version": 3, "metadata": {...}}

Conditional operations of a namespace are serialized with an exclusive
`fcntl.flock` on `<root>/<namespace>/.store.lock`, and documents are replaced
atomically through a temp file and `os.replace`.
"""

import contextlib
import fcntl
import json
import os
import uuid
from collections.abc import Iterator, Mapping
from pathlib import Path

from ..models import ResourceId
from .base import (
    ObjectAlreadyExistsError,
    ObjectInfo,
    ObjectNotFoundError,
    ObjectStoreError,
    PreconditionFailedError,
)

STORE_LOCK_FILE = ".store.lock"


def _write_all(fd: int, payload: bytes) -> None:
    """Write complete payload to fd, handling short writes."""
    total_written = 0
    while total_written < len(payload):
        written = os.write(fd, payload[total_written:])
        if written <= 0:
            raise OSError("short write while persisting object")
        total_written += written


class LocalObjectStore:
    """Object store keeping each object as a JSON file under `root`."""

    def __init__(self, root: Path | str):
        self.root = Path(root)

    def get_info(self, object_id: ResourceId) -> ObjectInfo:
        with self._namespace_lock(object_id.namespace):
            document = self._read(object_id)
        if document is None:
            return ObjectInfo.missing(object_id)
        version, metadata = document
        return ObjectInfo(object_id=object_id, exists=True, version=version, metadata=metadata)

    def create_empty(self, object_id: ResourceId) -> None:
        with self._namespace_lock(object_id.namespace):
            if self._read(object_id) is not None:
                raise ObjectAlreadyExistsError(f"{object_id} already exists")
            self._write(object_id, 1, {})

    def update_metadata(
        self, object_id: ResourceId, version: int, metadata: Mapping[str, str]
    ) -> None:
        with self._namespace_lock(object_id.namespace):
            self._check_version(object_id, version)
            self._write(object_id, version + 1, dict(metadata))

    def delete(self, object_id: ResourceId, version: int) -> None:
        with self._namespace_lock(object_id.namespace):
            self._check_version(object_id, version)
            try:
                self._object_path(object_id).unlink()
            except FileNotFoundError:
                raise ObjectNotFoundError(f"{object_id} not found") from None
            except OSError as e:
                raise ObjectStoreError(f"Failed to delete {object_id}: {e}") from e

    def _namespace_dir(self, namespace: str) -> Path:
        namespace_dir = (self.root / namespace).resolve()
        if namespace_dir.parent != self.root.resolve():
            raise ValueError(f"Invalid namespace: {namespace}")
        return namespace_dir

    def _object_path(self, object_id: ResourceId) -> Path:
        namespace_dir = self._namespace_dir(object_id.namespace)
        path = (namespace_dir / object_id.name).resolve()
        if namespace_dir not in path.parents or path.name == STORE_LOCK_FILE:
            raise ValueError(f"Invalid object name: {object_id}")
        return path

    @contextlib.contextmanager
    def _namespace_lock(self, namespace: str) -> Iterator[None]:
        namespace_dir = self._namespace_dir(namespace)
        try:
            namespace_dir.mkdir(parents=True, exist_ok=True)
            fd = os.open(str(namespace_dir / STORE_LOCK_FILE), os.O_CREAT | os.O_RDWR, 0o600)
        except OSError as e:
            raise ObjectStoreError(f"Cannot open store lock for namespace {namespace}: {e}") from e
        try:
            fcntl.flock(fd, fcntl.LOCK_EX)
            yield
        finally:
            with contextlib.suppress(OSError):
                fcntl.flock(fd, fcntl.LOCK_UN)
            os.close(fd)

    def _check_version(self, object_id: ResourceId, version: int) -> None:
        document = self._read(object_id)
        if document is None:
            raise ObjectNotFoundError(f"{object_id} not found")
        current, _ = document
        if current != version:
            raise PreconditionFailedError(
                f"{object_id} is at version {current}, expected {version}"
            )

    def _read(self, object_id: ResourceId) -> tuple[int, dict[str, str]] | None:
        path = self._object_path(object_id)
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            return int(data["version"]), {str(k): str(v) for k, v in data["metadata"].items()}
        except FileNotFoundError:
            return None
        except (OSError, json.JSONDecodeError, KeyError, TypeError, ValueError, AttributeError) as e:
            raise ObjectStoreError(f"Cannot read {object_id}: {e}") from e

    def _write(self, object_id: ResourceId, version: int, metadata: dict[str, str]) -> None:
        path = self._object_path(object_id)
        payload = json.dumps({"version": version, "metadata": metadata}, sort_keys=True)
        tmp_path = path.with_name(f"{path.name}.{uuid.uuid4().hex}.tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd = os.open(str(tmp_path), os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o600)
            try:
                _write_all(fd, payload.encode("utf-8"))
                os.fsync(fd)
            finally:
                os.close(fd)
            os.replace(tmp_path, path)
        except OSError as e:
            with contextlib.suppress(OSError):
                tmp_path.unlink()
            raise ObjectStoreError(f"Failed to write {object_id}: {e}") from e
