"""Deteccion manual de pasos por acelerometro y vida del contador de hardware."""

from __future__ import annotations

import math


class HardwareLiveness:
    """Tracks whether the hardware step counter is currently delivering events."""

    def __init__(self, window_ms: int = 5_000) -> None:
        self._window_ms = window_ms
        self.reset()

    def reset(self) -> None:
        """Forget liveness; called on every foreground transition."""
        self.candidate = False
        self.last_event_ms = 0
        self.last_value: float | None = None

    def record(self, value: float, now_ms: int) -> bool:
        """Note a counter event; False if it went backwards and must be ignored."""
        previous = self.last_value
        self.candidate = True
        self.last_event_ms = now_ms
        self.last_value = value
        return previous is None or value >= previous

    def is_active(self, now_ms: int) -> bool:
        return self.candidate and (now_ms - self.last_event_ms) < self._window_ms


class ManualStepDetector:
    """Threshold peak detector over accelerometer magnitude.

    Only used while the hardware counter is inactive. Counts are reconciled
    against the ledger so switching modes never lowers the visible count.
    """

    def __init__(self, threshold: float = 12.0, min_interval_ms: int = 300) -> None:
        self._threshold = threshold
        self._min_interval_ms = min_interval_ms
        self.manual_count = 0
        self.last_step_ms: int | None = None

    @staticmethod
    def magnitude(x: float, y: float, z: float) -> float:
        return math.sqrt(x * x + y * y + z * z)

    def sync(self, ledger_steps: int) -> None:
        """Align the manual count with the ledger (foreground transition)."""
        self.manual_count = ledger_steps

    def next_count(self, ledger_steps: int) -> int:
        """Count after one more step, never below the ledger's count."""
        self.manual_count = max(self.manual_count, ledger_steps) + 1
        return self.manual_count

    def detect(self, magnitude: float, now_ms: int, ledger_steps: int) -> int | None:
        """Return the new step count if ``magnitude`` registers a step."""
        if magnitude <= self._threshold:
            return None
        if (
            self.last_step_ms is not None
            and now_ms - self.last_step_ms < self._min_interval_ms
        ):
            return None
        self.last_step_ms = now_ms
        return self.next_count(ledger_steps)
