from __future__ import annotations

import math

import pytest

from pasos_tool.cadence import CadenceTracker
from pasos_tool.fusion import FusionEngine, gps_weight, haversine_m, segment_accepted
from pasos_tool.model import LocationFix

# Roughly 50 m of latitude.
LAT_50M = 0.00045


def _fix(
    lat: float, accuracy: float, ts: int, speed: float | None = 1.0
) -> LocationFix:
    return LocationFix(
        latitude=lat,
        longitude=0.0,
        accuracy_m=accuracy,
        timestamp_ms=ts,
        speed_mps=speed,
    )


def test_gps_weight_buckets() -> None:
    assert gps_weight(3.0, 0) == pytest.approx(0.85)
    assert gps_weight(8.0, 0) == pytest.approx(0.65)
    assert gps_weight(15.0, 0) == pytest.approx(0.40)
    assert gps_weight(40.0, 0) == pytest.approx(0.15)
    assert gps_weight(3.0, 3_000) == pytest.approx(0.85 * 0.9)
    assert gps_weight(3.0, 8_000) == pytest.approx(0.85 * 0.8)
    assert gps_weight(3.0, 60_000) == pytest.approx(0.85 * 0.6)


def test_gps_weight_is_bounded_and_monotonic() -> None:
    accuracies = [1.0, 5.0, 7.5, 10.0, 12.0, 20.0, 35.0, 500.0]
    ages = [0, 2_000, 4_000, 5_000, 9_000, 10_000, 30_000]
    for age in ages:
        weights = [gps_weight(a, age) for a in accuracies]
        assert weights == sorted(weights, reverse=True)
        assert all(0.0 <= w <= 0.95 for w in weights)
    for accuracy in accuracies:
        weights = [gps_weight(accuracy, age) for age in ages]
        assert weights == sorted(weights, reverse=True)


def test_haversine_and_segment_gate() -> None:
    assert haversine_m(10.0, 20.0, 10.0, 20.0) == 0.0
    assert haversine_m(0.0, 0.0, LAT_50M, 0.0) == pytest.approx(50.0, rel=0.01)
    assert segment_accepted(50.0, 10.0)
    assert segment_accepted(100.0, 50.0)
    assert not segment_accepted(100.5, 10.0)
    assert not segment_accepted(50.0, 50.5)
    assert not segment_accepted(math.nan, 5.0)


def test_metrics_start_empty() -> None:
    engine = FusionEngine(CadenceTracker())
    assert engine.metrics.gps_distance_km == 0.0
    assert math.isnan(engine.metrics.gps_accuracy_m)
    assert math.isinf(engine.metrics.last_fix_age_ms)


def test_gps_distance_accepts_short_segments_only() -> None:
    engine = FusionEngine(CadenceTracker())
    engine.on_fix(_fix(0.0, 10.0, 0), 0, 0)
    metrics = engine.on_fix(_fix(LAT_50M, 10.0, 1_000), 1_000, 0)
    first_leg = metrics.gps_distance_km
    assert first_leg == pytest.approx(0.050, rel=0.01)

    # A 500 m jump is a glitch.
    metrics = engine.on_fix(_fix(LAT_50M * 11, 10.0, 2_000), 2_000, 0)
    assert metrics.gps_distance_km == first_leg

    # Short but inaccurate.
    metrics = engine.on_fix(_fix(LAT_50M * 12, 80.0, 3_000), 3_000, 0)
    assert metrics.gps_distance_km == first_leg

    # The rejected fixes still become the previous position.
    metrics = engine.on_fix(_fix(LAT_50M * 13, 10.0, 4_000), 4_000, 0)
    assert metrics.gps_distance_km == pytest.approx(first_leg * 2, rel=0.01)


def test_fused_distance_uses_clamped_interval() -> None:
    engine = FusionEngine(CadenceTracker())
    # Accuracy 3 m and a fresh fix: weight 0.85, no cadence.
    metrics = engine.on_fix(_fix(0.0, 3.0, 0, speed=2.0), 0, 0)
    assert metrics.fused_speed_mps == pytest.approx(1.7)
    assert metrics.fused_distance_km == pytest.approx(1.7 / 1000)

    metrics = engine.on_fix(_fix(0.0, 3.0, 60_000, speed=2.0), 60_000, 0)
    assert metrics.fused_distance_km == pytest.approx(1.7 * (1.0 + 2.5) / 1000)

    metrics = engine.on_fix(_fix(0.0, 3.0, 60_050, speed=2.0), 60_050, 0)
    assert metrics.fused_distance_km == pytest.approx(1.7 * (1.0 + 2.5 + 0.2) / 1000)


def test_fix_age_and_missing_speed() -> None:
    engine = FusionEngine(CadenceTracker())
    metrics = engine.on_fix(_fix(0.0, 15.0, 2_000, speed=None), 5_000, 0)
    assert metrics.last_fix_age_ms == 3_000
    assert metrics.gps_speed_mps == 0.0
    assert metrics.gps_accuracy_m == 15.0

    metrics = engine.on_fix(_fix(0.0, 15.0, 9_000), 6_000, 0)
    assert metrics.last_fix_age_ms == 0


def test_step_speed_blends_with_gps() -> None:
    cadence = CadenceTracker()
    for ts in range(0, 4_001, 500):
        cadence.push_step(ts)
    engine = FusionEngine(cadence)

    metrics = engine.on_fix(_fix(0.0, 40.0, 4_000, speed=0.0), 4_000, 1_000)
    assert metrics.step_speed_mps == pytest.approx(2 * 0.762)
    assert metrics.fused_speed_mps == pytest.approx(0.85 * 2 * 0.762)
    assert metrics.step_distance_km == pytest.approx(0.762)


def test_reset_clears_session_distances() -> None:
    engine = FusionEngine(CadenceTracker())
    engine.on_fix(_fix(0.0, 5.0, 0), 0, 10)
    engine.on_fix(_fix(LAT_50M, 5.0, 1_000), 1_000, 10)
    engine.reset()
    assert engine.metrics.fused_distance_km == 0.0
    assert math.isinf(engine.metrics.last_fix_age_ms)
    metrics = engine.on_fix(_fix(LAT_50M * 2, 5.0, 2_000), 2_000, 10)
    assert metrics.gps_distance_km == 0.0


def test_cadence_window() -> None:
    cadence = CadenceTracker(horizon_ms=8_000)
    assert cadence.cadence_spm() == 0.0
    cadence.push_step(0)
    assert cadence.cadence_spm() == 0.0
    cadence.push_step(500)
    assert cadence.cadence_spm() == pytest.approx(120.0)

    cadence.push_step(8_200)
    assert len(cadence) == 2
    assert cadence.cadence_spm() == pytest.approx(60_000 / 7_700)

    cadence.reset()
    assert len(cadence) == 0
    assert cadence.step_speed_mps() == 0.0
