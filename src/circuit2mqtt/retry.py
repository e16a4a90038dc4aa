# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Jeff Culverhouse
import random


class RetryPolicy:
    """Delay schedule for retrying an operation until it succeeds.

    The defaults give a constant interval; set `backoff` above 1.0 to grow the
    delay geometrically, capped at `max_interval`.
    """

    def __init__(self, interval: float = 5.0, backoff: float = 1.0, max_interval: float | None = None, jitter: float = 0.0) -> None:
        if interval < 0:
            raise ValueError("interval must be >= 0")
        if backoff < 1.0:
            raise ValueError("backoff must be >= 1.0")
        self.interval = interval
        self.backoff = backoff
        self.max_interval = max_interval
        self.jitter = jitter

    def get_delay(self, attempt: int) -> float:
        """Delay to wait after failed attempt number `attempt` (0-indexed)."""
        delay = self.interval * (self.backoff**attempt)
        if self.max_interval is not None:
            delay = min(delay, self.max_interval)
        if self.jitter:
            delay += random.uniform(0, delay * self.jitter)
        return delay

    def __repr__(self) -> str:
        return f"RetryPolicy(interval={self.interval}s, backoff={self.backoff}, max_interval={self.max_interval}, jitter={self.jitter})"
