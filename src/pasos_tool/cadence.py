"""Cadencia instantanea a partir de una ventana deslizante de pasos."""

from __future__ import annotations

from collections import deque

from pasos_tool.model import STRIDE_M


class CadenceTracker:
    """Sliding window of recent step timestamps (milliseconds)."""

    def __init__(self, horizon_ms: int = 8_000, stride_m: float = STRIDE_M) -> None:
        self._horizon_ms = horizon_ms
        self._stride_m = stride_m
        self._timestamps: deque[int] = deque()

    def __len__(self) -> int:
        return len(self._timestamps)

    def push_step(self, timestamp_ms: int) -> None:
        """Record a step and evict entries older than the horizon."""
        self._timestamps.append(timestamp_ms)
        horizon = timestamp_ms - self._horizon_ms
        while self._timestamps and self._timestamps[0] < horizon:
            self._timestamps.popleft()

    def cadence_spm(self, now_ms: int | None = None) -> float:
        """Steps per minute over the window; 0 with fewer than 2 samples."""
        if len(self._timestamps) < 2:
            return 0.0
        span = max(self._timestamps[-1] - self._timestamps[0], 1)
        return (len(self._timestamps) - 1) * 60_000.0 / span

    def step_speed_mps(self, now_ms: int | None = None) -> float:
        """Speed implied by cadence and stride length."""
        spm = self.cadence_spm(now_ms)
        if spm <= 0.0:
            return 0.0
        return spm / 60.0 * self._stride_m

    def reset(self) -> None:
        self._timestamps.clear()
