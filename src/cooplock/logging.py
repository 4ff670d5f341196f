"""Logging configuration for cooplock."""

import logging
import threading
import time
from collections.abc import Callable
from enum import IntEnum
from typing import Any

from rich.console import Console
from rich.logging import RichHandler

from .constants import LOG_THROTTLE_SECONDS


class LogLevel(IntEnum):
    """Log level enumeration."""

    QUIET = logging.WARNING
    NORMAL = logging.INFO
    VERBOSE = logging.DEBUG


def configure_logging(
    verbosity: int = 0,
    quiet: bool = False,
    no_color: bool = False,
    debug: bool = False,
) -> Console:
    """Configure logging based on CLI options.

    Args:
        verbosity: Number of -v flags (0=normal, 1+=debug)
        quiet: Suppress non-error output (takes precedence over debug/verbosity)
        no_color: Disable colored output
        debug: Enable debug logging with timestamps and source paths

    Returns:
        Configured Rich console for output
    """
    if quiet:
        level = LogLevel.QUIET
    elif debug or verbosity >= 1:
        level = LogLevel.VERBOSE
    else:
        level = LogLevel.NORMAL

    console = Console(
        stderr=True,
        force_terminal=not no_color,
        no_color=no_color,
    )

    handler = RichHandler(
        console=console,
        show_time=debug or verbosity >= 2,
        show_path=debug or verbosity >= 2,
    )

    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[handler],
        force=True,
    )

    return console


class ThrottledLogger:
    """Logger wrapper emitting each message key at most once per interval.

    Used for contention and transient-error messages of retry loops, which
    may repeat many times per second under load.
    """

    def __init__(
        self,
        logger: logging.Logger,
        interval_seconds: float = LOG_THROTTLE_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.logger = logger
        self.interval_seconds = interval_seconds
        self._clock = clock
        self._last_emitted: dict[str, float] = {}
        self._lock = threading.Lock()

    def log(self, level: int, key: str, msg: str, *args: Any, **kwargs: Any) -> bool:
        """Log `msg` unless `key` was logged within the interval.

        Returns:
            True if the message was emitted
        """
        now = self._clock()
        with self._lock:
            last = self._last_emitted.get(key)
            if last is not None and now - last < self.interval_seconds:
                return False
            self._last_emitted[key] = now
        self.logger.log(level, msg, *args, **kwargs)
        return True

    def info(self, key: str, msg: str, *args: Any, **kwargs: Any) -> bool:
        return self.log(logging.INFO, key, msg, *args, **kwargs)

    def warning(self, key: str, msg: str, *args: Any, **kwargs: Any) -> bool:
        return self.log(logging.WARNING, key, msg, *args, **kwargs)
