"""Polling policy handed to the UI status pollers."""
from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Callable, Dict


@dataclass(frozen=True)
class PollingPolicy:
    """Fixed interval with jitter, backing off exponentially after errors.

    ``jitter`` is a fraction of the computed delay; a delay of 2s with a
    jitter of 0.25 lands anywhere between 1.5s and 2.5s.
    """

    interval: float = 2.0
    jitter: float = 0.25
    backoff_factor: float = 2.0
    max_interval: float = 30.0

    def base_delay(self, consecutive_failures: int = 0) -> float:
        failures = max(consecutive_failures, 0)
        delay = self.interval * (self.backoff_factor ** failures)
        return min(delay, max(self.max_interval, self.interval))

    def next_delay(
        self,
        consecutive_failures: int = 0,
        rand: Callable[[], float] = random.random,
    ) -> float:
        base = self.base_delay(consecutive_failures)
        if not self.jitter:
            return base
        spread = base * self.jitter
        return max(base - spread + 2 * spread * rand(), 0.0)

    def as_dict(self) -> Dict[str, float]:
        return {
            "intervalMs": int(self.interval * 1000),
            "jitter": self.jitter,
            "backoffFactor": self.backoff_factor,
            "maxIntervalMs": int(self.max_interval * 1000),
        }
