"""Shared test fixtures for cooplock tests."""

import itertools
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest
from typer.testing import CliRunner

from cooplock.config import BackoffConfig, LockingConfig
from cooplock.core import LockCoordinator
from cooplock.models import ResourceId
from cooplock.storage import InMemoryObjectStore


class FakeClock:
    """Deterministic clock advancing by `step` on every call."""

    def __init__(
        self,
        start: datetime = datetime(2026, 1, 4, 12, 0, tzinfo=UTC),
        step: timedelta = timedelta(seconds=1),
    ):
        self.now = start
        self.step = step

    def __call__(self) -> datetime:
        value = self.now
        self.now += self.step
        return value

    def advance(self, delta: timedelta) -> None:
        self.now += delta


class SleepRecorder:
    """Sleep replacement recording requested delays and running optional hooks."""

    def __init__(self) -> None:
        self.calls: list[float] = []
        self.hooks: list[Callable[[], None]] = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        if self.hooks:
            self.hooks.pop(0)()


def make_client_ids() -> Callable[[str], str]:
    """Create a client id provider yielding client-1, client-2, ..."""
    counter = itertools.count(1)
    return lambda operation_id: f"client-{next(counter)}"


def res(value: str) -> ResourceId:
    """Shorthand for ResourceId.parse."""
    return ResourceId.parse(value)


@pytest.fixture
def runner() -> CliRunner:
    """Create CLI test runner."""
    return CliRunner()


@pytest.fixture
def store() -> InMemoryObjectStore:
    """Create empty in-memory object store."""
    return InMemoryObjectStore()


@pytest.fixture
def config() -> LockingConfig:
    """Locking config with default intervals (sleeps are faked)."""
    return LockingConfig(max_concurrent_operations=5)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sleeps() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def coordinator(
    store: InMemoryObjectStore,
    config: LockingConfig,
    clock: FakeClock,
    sleeps: SleepRecorder,
) -> LockCoordinator:
    """Coordinator with deterministic client ids, clock and sleeps."""
    return LockCoordinator(
        store,
        config,
        client_id_provider=make_client_ids(),
        sleep=sleeps,
        clock=clock,
    )


@pytest.fixture
def fast_config() -> LockingConfig:
    """Config with millisecond intervals for tests that really sleep."""
    return LockingConfig(
        retry_interval_ms=1,
        backoff=BackoffConfig(initial_interval_ms=1, max_interval_ms=5),
    )


@pytest.fixture
def in_tmp_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Change cwd to tmp_path for the duration of the test."""
    monkeypatch.chdir(tmp_path)
    return tmp_path
