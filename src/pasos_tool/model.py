"""Modelos tipados para pasos diarios, eventos de sensores y metricas fusionadas."""

from __future__ import annotations

import math
from dataclasses import dataclass

STEP_COUNTER = "step_counter"
STEP_DETECTOR = "step_detector"
ACCELEROMETER = "accelerometer"
LOCATION = "location"

STRIDE_M = 0.762
CAL_PER_STEP = 0.04


@dataclass(frozen=True)
class DayStats:
    """Steps and derived metrics for one calendar day."""

    date_key: str
    label: str
    steps: int
    distance_km: float
    calories_kcal: float


@dataclass(frozen=True)
class WeeklySummary:
    """Aggregates over the 7-day window."""

    total_steps: int
    average_steps: int
    total_distance_km: float
    total_calories_kcal: float
    best_day: DayStats | None


@dataclass(frozen=True)
class LocationFix:
    """One location fix as delivered by the location provider."""

    latitude: float
    longitude: float
    accuracy_m: float
    timestamp_ms: int
    speed_mps: float | None = None


@dataclass(frozen=True)
class SensorEvent:
    """One raw sensor event (step counter, step detector or accelerometer)."""

    timestamp_ms: int
    sensor: str
    values: tuple[float, ...] = ()


@dataclass(frozen=True)
class FusedMetrics:
    """Snapshot of GPS/step fusion for the current session (never persisted)."""

    gps_accuracy_m: float = math.nan
    last_fix_age_ms: float = math.inf
    gps_speed_mps: float = 0.0
    step_speed_mps: float = 0.0
    fused_speed_mps: float = 0.0
    gps_distance_km: float = 0.0
    step_distance_km: float = 0.0
    fused_distance_km: float = 0.0


@dataclass(frozen=True)
class TrackerConfig:
    """Tunables shared by the tracking components."""

    stride_m: float = STRIDE_M
    save_delay_s: float = 1.0
    rollover_check_s: float = 30.0
    cadence_horizon_ms: int = 8_000
    step_threshold: float = 12.0
    min_step_interval_ms: int = 300
    hardware_liveness_ms: int = 5_000
