from __future__ import annotations

from datetime import date

from structlog.testing import capture_logs

from pasos_tool.ledger import StepLedger
from pasos_tool.model import (
    ACCELEROMETER,
    STEP_COUNTER,
    STEP_DETECTOR,
    FusedMetrics,
    LocationFix,
    SensorEvent,
)
from pasos_tool.scheduling import ManualScheduler
from pasos_tool.session import TrackingSession
from pasos_tool.storage import MemoryStore


def _session(
    store: MemoryStore | None = None, day: date = date(2024, 6, 1)
) -> tuple[TrackingSession, ManualScheduler, MemoryStore]:
    store = store if store is not None else MemoryStore()
    scheduler = ManualScheduler()
    ledger = StepLedger(
        store, scheduler, today_fn=lambda: day, clock_ms=scheduler.now_ms
    )
    return TrackingSession(ledger, clock_ms=scheduler.now_ms), scheduler, store


def test_events_are_ignored_while_stopped() -> None:
    session, _, _ = _session()
    session.on_step_detector(1_000)
    session.on_step_counter(500.0, 1_000)
    session.on_accelerometer(0.0, 0.0, 20.0, 1_000)
    assert session.ledger.bootstrapped is False
    assert session.ledger.steps == 0


def test_start_bootstraps_and_stop_flushes() -> None:
    store = MemoryStore({"today_date": "2024-06-01", "today_steps": 40})
    session, _, _ = _session(store)
    session.start()
    assert session.active
    assert session.ledger.steps == 40

    session.on_step_detector(100)
    assert session.ledger.steps == 41
    assert store.load_state().today_steps == 40

    session.stop()
    assert not session.active
    assert store.load_state().today_steps == 41

    session.on_step_detector(200)
    assert session.ledger.steps == 41


def test_step_detector_counts_only_in_manual_mode() -> None:
    session, _, _ = _session()
    session.start()
    for ts in (100, 600, 1_100):
        session.on_step_detector(ts)
    assert session.ledger.steps == 3
    assert session.in_manual_mode(1_100)
    assert session.ledger.last_step_time_ms == 1_100
    assert len(session.cadence) == 3

    session.on_step_counter(5_000.0, 2_000)
    assert not session.in_manual_mode(2_000)
    assert session.ledger.counter_base == 4_997.0
    session.on_step_counter(5_002.0, 2_500)
    assert session.ledger.steps == 5

    # Hardware is live: detector events only feed cadence and activity.
    session.on_step_detector(2_600)
    assert session.ledger.steps == 5
    assert session.ledger.last_step_time_ms == 2_600


def test_handoff_back_to_manual_never_decreases() -> None:
    session, _, _ = _session()
    session.start()
    session.on_step_detector(100)
    session.on_step_counter(1_000.0, 200)
    session.on_step_counter(1_050.0, 1_000)
    assert session.ledger.steps == 51

    # No counter event for longer than the liveness window.
    assert session.in_manual_mode(7_000)
    session.on_step_detector(7_000)
    assert session.ledger.steps == 52


def test_decreasing_counter_value_is_ignored() -> None:
    session, _, _ = _session()
    session.start()
    session.on_step_counter(100.0, 0)
    session.on_step_counter(110.0, 100)
    assert session.ledger.steps == 10
    with capture_logs() as logs:
        session.on_step_counter(105.0, 200)
    assert session.ledger.steps == 10
    assert session.ledger.counter_base == 100.0
    assert logs[0]["event"] == "Ignoring decreasing counter value"


def test_accelerometer_peaks_respect_threshold_and_interval() -> None:
    session, _, _ = _session()
    session.start()
    session.on_accelerometer(0.0, 0.0, 11.9, 0)
    assert session.ledger.steps == 0
    session.on_accelerometer(0.0, 0.0, 13.0, 1_000)
    assert session.ledger.steps == 1
    session.on_accelerometer(0.0, 0.0, 13.0, 1_200)
    assert session.ledger.steps == 1
    session.on_accelerometer(0.0, 5.0, 12.5, 1_300)
    assert session.ledger.steps == 2
    assert session.ledger.last_step_time_ms == 1_300

    session.on_accelerometer(0.0, 0.0, 9.8, 1_400)
    assert session.ledger.current_acceleration == 9.8
    assert session.ledger.walking_intensity == "Slow Walk"


def test_accelerometer_does_not_count_while_hardware_is_live() -> None:
    session, _, _ = _session()
    session.start()
    session.on_step_counter(300.0, 0)
    session.on_accelerometer(0.0, 0.0, 15.0, 1_000)
    assert session.ledger.steps == 0
    assert session.ledger.current_acceleration == 15.0


def test_location_updates_notify_listeners() -> None:
    session, _, _ = _session()
    seen: list[FusedMetrics] = []
    session.subscribe(seen.append)
    fix = LocationFix(0.0, 0.0, 4.0, 1_000, speed_mps=1.2)

    assert session.on_location(fix, 1_000).fused_distance_km == 0.0
    assert seen == []

    session.start()
    metrics = session.on_location(fix, 1_000)
    assert seen == [metrics]
    assert metrics.gps_accuracy_m == 4.0


def test_dispatch_routes_recorded_events() -> None:
    session, _, _ = _session()
    session.start()
    session.dispatch(SensorEvent(100, STEP_DETECTOR))
    session.dispatch(SensorEvent(200, ACCELEROMETER, (0.0, 0.0, 9.81)))
    session.dispatch(LocationFix(0.0, 0.0, 8.0, 300, speed_mps=1.0))
    session.dispatch(SensorEvent(400, STEP_COUNTER, (2_000.0,)))
    with capture_logs() as logs:
        session.dispatch(SensorEvent(500, "gyroscope", (1.0, 2.0, 3.0)))

    assert session.ledger.steps == 1
    assert session.ledger.counter_base == 1_999.0
    assert session.fused_metrics.gps_accuracy_m == 8.0
    assert logs[0]["log_level"] == "warning"


def test_restart_resyncs_and_close_discards_fusion() -> None:
    session, _, _ = _session()
    session.start()
    session.on_step_detector(100)
    session.on_location(LocationFix(0.0, 0.0, 4.0, 100, speed_mps=1.0), 100)
    session.stop()

    session.ledger.update_steps(30)
    session.start()
    session.on_step_detector(200)
    assert session.ledger.steps == 31

    session.close()
    assert not session.active
    assert session.fused_metrics.fused_distance_km == 0.0
    assert len(session.cadence) == 0
