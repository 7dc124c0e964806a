"""Fusion de velocidad/distancia GPS con la cadencia de pasos."""

from __future__ import annotations

import math
from dataclasses import replace

import structlog

from pasos_tool.cadence import CadenceTracker
from pasos_tool.model import STRIDE_M, FusedMetrics, LocationFix

logger = structlog.get_logger(__name__)

EARTH_RADIUS_M = 6_371_008.8
MAX_SEGMENT_M = 100.0
MAX_SEGMENT_ACCURACY_M = 50.0
MAX_GPS_WEIGHT = 0.95


def gps_weight(accuracy_m: float, fix_age_ms: float) -> float:
    """Trust placed in GPS speed, from horizontal accuracy and fix age.

    Never exceeds 0.95, so step cadence always keeps some weight.
    """
    if accuracy_m <= 5.0:
        base = 0.85
    elif accuracy_m <= 10.0:
        base = 0.65
    elif accuracy_m <= 20.0:
        base = 0.40
    else:
        base = 0.15

    if fix_age_ms <= 2_000:
        age_penalty = 1.0
    elif fix_age_ms <= 5_000:
        age_penalty = 0.9
    elif fix_age_ms <= 10_000:
        age_penalty = 0.8
    else:
        age_penalty = 0.6

    return min(max(base * age_penalty, 0.0), MAX_GPS_WEIGHT)


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in meters."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dphi = phi2 - phi1
    dlmb = math.radians(lon2 - lon1)
    a = (
        math.sin(dphi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(dlmb / 2) ** 2
    )
    return 2 * EARTH_RADIUS_M * math.asin(min(1.0, math.sqrt(a)))


def segment_accepted(segment_m: float, accuracy_m: float) -> bool:
    """Whether a GPS segment may be added to the cumulative GPS distance."""
    return (
        math.isfinite(segment_m)
        and 0.0 <= segment_m <= MAX_SEGMENT_M
        and accuracy_m <= MAX_SEGMENT_ACCURACY_M
    )


class FusionEngine:
    """Confidence-weighted blend of GPS speed and step-cadence speed."""

    def __init__(self, cadence: CadenceTracker, stride_m: float = STRIDE_M) -> None:
        self._cadence = cadence
        self._stride_m = stride_m
        self.reset()

    @property
    def metrics(self) -> FusedMetrics:
        return self._metrics

    def reset(self) -> None:
        """Start a new session: distances back to zero, no previous fix."""
        self._metrics = FusedMetrics()
        self._previous_fix: LocationFix | None = None
        self._last_fix_ms: int | None = None
        self._gps_distance_m = 0.0
        self._fused_distance_m = 0.0

    def on_fix(self, fix: LocationFix, now_ms: int, total_steps: int) -> FusedMetrics:
        """Fold one location fix into the fused metrics.

        Args:
            fix: The new location fix.
            now_ms: Wall-clock time the fix was received.
            total_steps: Current authoritative step count.

        Returns:
            The updated metrics snapshot.
        """
        accuracy = fix.accuracy_m
        age_ms = max(0, now_ms - fix.timestamp_ms)
        gps_speed = fix.speed_mps if fix.speed_mps is not None else 0.0

        if self._previous_fix is not None:
            segment = haversine_m(
                self._previous_fix.latitude,
                self._previous_fix.longitude,
                fix.latitude,
                fix.longitude,
            )
            if segment_accepted(segment, accuracy):
                self._gps_distance_m += segment
            else:
                logger.debug(
                    "GPS segment rejected",
                    segment_m=round(segment, 1),
                    accuracy_m=accuracy,
                )
        self._previous_fix = fix

        step_speed = self._cadence.step_speed_mps(now_ms)
        weight = gps_weight(accuracy, age_ms)
        fused_speed = weight * gps_speed + (1 - weight) * step_speed

        if self._last_fix_ms is None:
            dt_s = 1.0
        else:
            dt_s = min(max((now_ms - self._last_fix_ms) / 1000.0, 0.2), 2.5)
        self._fused_distance_m += fused_speed * dt_s
        self._last_fix_ms = now_ms

        self._metrics = replace(
            self._metrics,
            gps_accuracy_m=accuracy,
            last_fix_age_ms=age_ms,
            gps_speed_mps=gps_speed,
            step_speed_mps=step_speed,
            fused_speed_mps=fused_speed,
            gps_distance_km=self._gps_distance_m / 1000.0,
            step_distance_km=total_steps * self._stride_m / 1000.0,
            fused_distance_km=self._fused_distance_m / 1000.0,
        )
        return self._metrics
