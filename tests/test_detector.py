from __future__ import annotations

import math

import pytest

from pasos_tool.activity import classify_activity, describe_time_since, intensity_bucket
from pasos_tool.detector import HardwareLiveness, ManualStepDetector


def test_liveness_window_and_reset() -> None:
    liveness = HardwareLiveness(window_ms=5_000)
    assert not liveness.is_active(0)
    assert liveness.record(100.0, 1_000)
    assert liveness.is_active(5_999)
    assert not liveness.is_active(6_000)
    assert not liveness.record(90.0, 2_000)
    liveness.reset()
    assert not liveness.is_active(2_001)
    assert liveness.record(10.0, 3_000)


def test_manual_detector_reconciles_with_ledger() -> None:
    detector = ManualStepDetector()
    detector.sync(10)
    assert detector.detect(12.5, 0, 10) == 11
    assert detector.detect(12.5, 299, 11) is None
    assert detector.detect(12.0, 1_000, 11) is None
    # The ledger moved ahead through the hardware counter.
    assert detector.detect(20.0, 1_000, 40) == 41
    assert detector.next_count(5) == 42


def test_magnitude() -> None:
    assert ManualStepDetector.magnitude(3.0, 4.0, 12.0) == pytest.approx(13.0)


@pytest.mark.parametrize(
    ("acceleration", "label"),
    [
        (16.0, "Running"),
        (13.0, "Fast Walk"),
        (10.5, "Walking"),
        (9.5, "Slow Walk"),
        (9.0, "Inactive"),
    ],
)
def test_intensity_bucket(acceleration: float, label: str) -> None:
    assert intensity_bucket(acceleration) == label


def test_classify_activity() -> None:
    assert classify_activity(500, 0.0) == "Stepping"
    assert classify_activity(math.inf, 13.0) == "Moving"
    assert classify_activity(2_000, 9.2) == "Slow Walk"
    assert classify_activity(2_000, 8.0) == "Inactive"
    assert classify_activity(10_000, 9.6) == "Slow Walk"
    assert classify_activity(10_000, 9.4) == "Inactive"


def test_describe_time_since() -> None:
    assert describe_time_since(math.inf) == "No steps detected"
    assert describe_time_since(-5) == "Just now"
    assert describe_time_since(999) == "Just now"
    assert describe_time_since(59_999) == "59s ago"
    assert describe_time_since(120_000) == "2m ago"
    assert describe_time_since(7_200_000) == "2h ago"
