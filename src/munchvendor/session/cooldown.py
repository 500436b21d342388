"""OTP resend cooldown with exponential backoff.

Shared by the login and signup flows. The first wait is ``initial_wait``
seconds; every successful manual resend multiplies the next wait by
``factor`` (60 -> 120 -> 240 ...).
"""

from __future__ import annotations

import math
import time
from collections.abc import Callable
from dataclasses import dataclass

__all__ = ["CountingDown", "Idle", "ResendCooldown"]


@dataclass(frozen=True)
class Idle:
    """Resend allowed."""


@dataclass(frozen=True)
class CountingDown:
    remaining: int


class ResendCooldown:
    def __init__(
        self,
        initial_wait: int = 60,
        factor: int = 2,
        clock: Callable[[], float] = time.monotonic,
    ):
        if initial_wait <= 0 or factor < 1:
            raise ValueError("initial_wait must be positive and factor at least 1")
        self.initial_wait = initial_wait
        self.factor = factor
        self._clock = clock
        self.current_wait = initial_wait
        self._deadline: float | None = None

    def start(self) -> None:
        """Begin the first countdown (OTP was just sent by login/signup)."""
        self.current_wait = self.initial_wait
        self._deadline = self._clock() + self.current_wait

    def register_resend(self) -> int:
        """Record a successful resend; returns the new wait in seconds."""
        self.current_wait *= self.factor
        self._deadline = self._clock() + self.current_wait
        return self.current_wait

    @property
    def remaining(self) -> int:
        if self._deadline is None:
            return 0
        left = self._deadline - self._clock()
        if left <= 0:
            self._deadline = None
            return 0
        return math.ceil(left)

    @property
    def ready(self) -> bool:
        return self.remaining == 0

    @property
    def state(self) -> Idle | CountingDown:
        remaining = self.remaining
        return CountingDown(remaining) if remaining else Idle()

    def format_remaining(self) -> str:
        mins, secs = divmod(self.remaining, 60)
        return f"{mins}:{secs:02d}"
