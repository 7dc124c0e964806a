"""Clasificacion heuristica de actividad a partir de aceleracion y ultimo paso."""

from __future__ import annotations

import math

STEPPING = "Stepping"
MOVING = "Moving"
INACTIVE = "Inactive"


def intensity_bucket(acceleration: float) -> str:
    """Map acceleration magnitude (m/s^2) to a coarse intensity label."""
    if acceleration > 15.0:
        return "Running"
    if acceleration > 12.0:
        return "Fast Walk"
    if acceleration > 10.0:
        return "Walking"
    if acceleration > 9.0:
        return "Slow Walk"
    return INACTIVE


def is_recently_walking(ms_since_step: float, acceleration: float) -> bool:
    return ms_since_step < 3_000 or acceleration > 9.5


def classify_activity(ms_since_step: float, acceleration: float) -> str:
    """Activity label from the time since the last step and acceleration.

    Args:
        ms_since_step: Milliseconds since the last step (``math.inf`` if none).
        acceleration: Latest acceleration magnitude in m/s^2.

    Returns:
        "Stepping", "Moving", an intensity bucket, or "Inactive".
    """
    if ms_since_step < 1_000:
        return STEPPING
    if acceleration > 12.0:
        return MOVING
    if is_recently_walking(ms_since_step, acceleration):
        return intensity_bucket(acceleration)
    return INACTIVE


def describe_time_since(ms_since_step: float) -> str:
    """Human label for the time elapsed since the last step."""
    if math.isinf(ms_since_step):
        return "No steps detected"
    diff = max(0, int(ms_since_step))
    if diff < 1_000:
        return "Just now"
    if diff < 60_000:
        return f"{diff // 1_000}s ago"
    if diff < 3_600_000:
        return f"{diff // 60_000}m ago"
    return f"{diff // 3_600_000}h ago"
