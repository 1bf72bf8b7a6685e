"""Exponential backoff used between failed fetches and loop restarts."""

from __future__ import annotations

import random


class BackoffConfig:
    """Configuration for backoff behavior."""

    def __init__(
        self,
        initial_delay: float = 1.0,
        max_delay: float = 30.0,
        factor: float = 2.0,
        jitter: float = 0.1,
    ) -> None:
        """Initialize backoff configuration.

        Args:
            initial_delay: Delay in seconds after the first failure
            max_delay: Upper bound for any single delay
            factor: Multiplier applied after each consecutive failure
            jitter: Relative random spread added to each delay (0.1 = +-10%)
        """
        if initial_delay <= 0 or max_delay < initial_delay:
            raise ValueError("`initial_delay` must be positive and <= `max_delay`")
        if factor < 1.0:
            raise ValueError(f"`factor` should be >= 1.0, not {factor}")
        self.initial_delay = initial_delay
        self.max_delay = max_delay
        self.factor = factor
        self.jitter = jitter


class Backoff:
    """Stateful delay generator, reset after every success."""

    def __init__(self, config: BackoffConfig | None = None) -> None:
        self.config = config or BackoffConfig()
        self.attempt = 0

    @property
    def current(self) -> float:
        """Undisturbed delay for the current attempt count."""
        if self.attempt == 0:
            return 0.0
        delay = self.config.initial_delay * (self.config.factor ** (self.attempt - 1))
        return min(delay, self.config.max_delay)

    def next(self) -> float:
        self.attempt += 1
        delay = self.current
        if self.config.jitter:
            delay += delay * random.uniform(-self.config.jitter, self.config.jitter)
        return max(0.0, min(delay, self.config.max_delay))

    def reset(self) -> None:
        self.attempt = 0
