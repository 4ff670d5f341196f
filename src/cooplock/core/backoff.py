"""Exponential backoff for optimistic-write races and transient store errors."""

import random

from ..config import BackoffConfig


class ExponentialBackoff:
    """Randomized exponential backoff with a bounded interval.

    Each call to `next_backoff` returns the current interval randomized by
    +/- `randomization_factor`, capped at `max_interval`, then grows the
    interval by `multiplier`. There is no limit on elapsed time.
    """

    def __init__(
        self,
        initial_interval: float,
        multiplier: float,
        max_interval: float,
        randomization_factor: float = 0.5,
        rng: random.Random | None = None,
    ):
        if initial_interval < 0 or max_interval < 0:
            raise ValueError("backoff intervals should not be negative")
        if multiplier < 1.0:
            raise ValueError(f"backoff multiplier should be >= 1.0, got {multiplier}")
        if not 0.0 <= randomization_factor < 1.0:
            raise ValueError(f"randomization factor should be in [0, 1), got {randomization_factor}")
        self.initial_interval = initial_interval
        self.multiplier = multiplier
        self.max_interval = max(initial_interval, max_interval)
        self.randomization_factor = randomization_factor
        self._rng = rng or random.Random()
        self._current = initial_interval

    @classmethod
    def from_config(cls, config: BackoffConfig, rng: random.Random | None = None) -> "ExponentialBackoff":
        return cls(
            initial_interval=config.initial_interval_ms / 1000,
            multiplier=config.multiplier,
            max_interval=config.max_interval_ms / 1000,
            randomization_factor=config.randomization_factor,
            rng=rng,
        )

    def next_backoff(self) -> float:
        """Return the next delay in seconds."""
        delta = self.randomization_factor * self._current
        delay = self._rng.uniform(self._current - delta, self._current + delta)
        self._current = min(self._current * self.multiplier, self.max_interval)
        return min(delay, self.max_interval)

    def reset(self) -> None:
        self._current = self.initial_interval
