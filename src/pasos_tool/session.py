"""Sesion de seguimiento: enruta eventos de sensores y GPS hacia el contador."""

from __future__ import annotations

from collections.abc import Callable

import structlog

from pasos_tool.cadence import CadenceTracker
from pasos_tool.detector import HardwareLiveness, ManualStepDetector
from pasos_tool.fusion import FusionEngine
from pasos_tool.ledger import StepLedger, wall_clock_ms
from pasos_tool.model import (
    ACCELEROMETER,
    STEP_COUNTER,
    STEP_DETECTOR,
    FusedMetrics,
    LocationFix,
    SensorEvent,
    TrackerConfig,
)

logger = structlog.get_logger(__name__)

MetricsListener = Callable[[FusedMetrics], None]


class TrackingSession:
    """Sensor-adapter layer between raw events and the tracking components.

    ``start()``/``stop()`` follow the app's foreground/background transitions;
    events received while stopped are ignored, as if unsubscribed.
    """

    def __init__(
        self,
        ledger: StepLedger,
        *,
        config: TrackerConfig | None = None,
        clock_ms: Callable[[], int] = wall_clock_ms,
    ) -> None:
        cfg = config or TrackerConfig()
        self.ledger = ledger
        self.cadence = CadenceTracker(cfg.cadence_horizon_ms, cfg.stride_m)
        self.fusion = FusionEngine(self.cadence, cfg.stride_m)
        self.detector = ManualStepDetector(cfg.step_threshold, cfg.min_step_interval_ms)
        self.liveness = HardwareLiveness(cfg.hardware_liveness_ms)
        self._clock_ms = clock_ms
        self._listeners: list[MetricsListener] = []
        self._active = False

    @property
    def active(self) -> bool:
        return self._active

    @property
    def fused_metrics(self) -> FusedMetrics:
        return self.fusion.metrics

    def in_manual_mode(self, now_ms: int | None = None) -> bool:
        """True while the hardware counter is not delivering events."""
        return not self.liveness.is_active(self._now(now_ms))

    def subscribe(self, listener: MetricsListener) -> Callable[[], None]:
        """Call ``listener(metrics)`` after every location fix."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def start(self) -> None:
        """Foreground: bootstrap if needed, reset liveness, start rollover checks."""
        if self._active:
            return
        if not self.ledger.bootstrapped:
            self.ledger.bootstrap()
        else:
            self.ledger.check_rollover()
        self.liveness.reset()
        self.detector.sync(self.ledger.steps)
        self.ledger.start_rollover_checks()
        self._active = True
        logger.debug("Tracking session started", steps=self.ledger.steps)

    def stop(self) -> None:
        """Background: stop timers and write any pending state."""
        if not self._active:
            return
        self._active = False
        self.ledger.stop_rollover_checks()
        self.ledger.flush()
        logger.debug("Tracking session stopped", steps=self.ledger.steps)

    def close(self) -> None:
        """End of the app session; fused distances are discarded."""
        self.stop()
        self.ledger.close()
        self.fusion.reset()
        self.cadence.reset()

    # -- event entry points ----------------------------------------------

    def on_step_counter(
        self, total_since_boot: float, now_ms: int | None = None
    ) -> None:
        if not self._active:
            return
        now = self._now(now_ms)
        if self.liveness.record(total_since_boot, now):
            self.ledger.on_hardware_counter(total_since_boot)
        else:
            logger.debug("Ignoring decreasing counter value", value=total_since_boot)

    def on_step_detector(self, now_ms: int | None = None) -> None:
        if not self._active:
            return
        now = self._now(now_ms)
        if self.in_manual_mode(now):
            self.ledger.update_steps(self.detector.next_count(self.ledger.steps))
        self.ledger.update_last_step_time(now)
        self.cadence.push_step(now)

    def on_accelerometer(
        self, x: float, y: float, z: float, now_ms: int | None = None
    ) -> None:
        if not self._active:
            return
        now = self._now(now_ms)
        magnitude = ManualStepDetector.magnitude(x, y, z)
        if self.in_manual_mode(now):
            count = self.detector.detect(magnitude, now, self.ledger.steps)
            if count is not None:
                self.ledger.update_steps(count)
                self.ledger.update_last_step_time(now)
                self.cadence.push_step(now)
        self.ledger.update_movement_data(magnitude)

    def on_location(self, fix: LocationFix, now_ms: int | None = None) -> FusedMetrics:
        if not self._active:
            return self.fusion.metrics
        metrics = self.fusion.on_fix(fix, self._now(now_ms), self.ledger.steps)
        for listener in list(self._listeners):
            listener(metrics)
        return metrics

    def dispatch(self, event: SensorEvent | LocationFix) -> None:
        """Route a recorded event to the matching entry point."""
        if isinstance(event, LocationFix):
            self.on_location(event, event.timestamp_ms)
            return
        if event.sensor == STEP_COUNTER:
            self.on_step_counter(event.values[0], event.timestamp_ms)
        elif event.sensor == STEP_DETECTOR:
            self.on_step_detector(event.timestamp_ms)
        elif event.sensor == ACCELEROMETER:
            x, y, z = event.values[:3]
            self.on_accelerometer(x, y, z, event.timestamp_ms)
        else:
            logger.warning("Unknown sensor event", sensor=event.sensor)

    def _now(self, now_ms: int | None) -> int:
        return self._clock_ms() if now_ms is None else now_ms
