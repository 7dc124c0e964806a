"""Contador autoritativo de pasos: linea base del hardware, cambio de dia y guardado."""

from __future__ import annotations

import math
import threading
import time
from collections.abc import Callable
from datetime import date

import structlog

from pasos_tool.activity import (
    INACTIVE,
    classify_activity,
    describe_time_since,
    intensity_bucket,
    is_recently_walking,
)
from pasos_tool.dates import local_today, parse_key, today_key
from pasos_tool.history import (
    History,
    day_stats,
    decode_history,
    encode_history,
    seven_day_list,
    trim_to_window,
)
from pasos_tool.model import DayStats, TrackerConfig, WeeklySummary
from pasos_tool.report import summarize_week
from pasos_tool.scheduling import Scheduler, Timer
from pasos_tool.storage import PersistenceError, PreferenceStore, StoredState

logger = structlog.get_logger(__name__)

MAX_RETRY_DELAY_S = 30.0

Listener = Callable[["StepLedger"], None]


def wall_clock_ms() -> int:
    return int(time.time() * 1000)


class StepLedger:
    """Single source of truth for today's steps and the 7-day history.

    The hardware step counter reports steps since boot, so the ledger keeps a
    baseline (counter value at zero steps today) and re-baselines whenever the
    counter goes backwards, so a reboot never costs steps. Every public mutator
    takes the ledger lock, so events coming from several sources are applied
    one at a time.
    """

    def __init__(
        self,
        store: PreferenceStore,
        scheduler: Scheduler,
        *,
        config: TrackerConfig | None = None,
        today_fn: Callable[[], date] = local_today,
        clock_ms: Callable[[], int] = wall_clock_ms,
    ) -> None:
        self._store = store
        self._scheduler = scheduler
        self._config = config or TrackerConfig()
        self._today_fn = today_fn
        self._clock_ms = clock_ms
        self._lock = threading.RLock()
        self._listeners: list[Listener] = []

        self._today = today_fn()
        self._today_key = today_key(self._today)
        self._steps = 0
        self._counter_base: float | None = None
        self._counter_base_date: str | None = None
        self._history: History = {}
        self._week: list[DayStats] = seven_day_list({}, self._today_key, 0, self._today)

        self._last_step_ms: int | None = None
        self._acceleration = 0.0
        self._is_walking = False
        self._intensity = INACTIVE

        self._bootstrapped = False
        self._persistence_degraded = False
        self._retry_delay_s = self._config.save_delay_s
        self._save_timer: Timer | None = None
        self._rollover_timer: Timer | None = None

    # -- read-only state -------------------------------------------------

    @property
    def steps(self) -> int:
        return self._steps

    @property
    def today_key(self) -> str:
        return self._today_key

    @property
    def counter_base(self) -> float | None:
        return self._counter_base

    @property
    def counter_base_date(self) -> str | None:
        return self._counter_base_date

    @property
    def history(self) -> History:
        """Finalized days (at most 6, today excluded)."""
        return dict(self._history)

    @property
    def weekly_history(self) -> list[DayStats]:
        """The 7-day view, oldest first, today last."""
        return list(self._week)

    @property
    def last_step_time_ms(self) -> int | None:
        return self._last_step_ms

    @property
    def current_acceleration(self) -> float:
        return self._acceleration

    @property
    def is_walking(self) -> bool:
        return self._is_walking

    @property
    def walking_intensity(self) -> str:
        return self._intensity

    @property
    def bootstrapped(self) -> bool:
        return self._bootstrapped

    @property
    def persistence_degraded(self) -> bool:
        """True while the last write failed and a retry is pending."""
        return self._persistence_degraded

    @property
    def summary(self) -> WeeklySummary:
        return summarize_week(self._week)

    @property
    def weekly_total(self) -> int:
        return self.summary.total_steps

    @property
    def weekly_average(self) -> int:
        return self.summary.average_steps

    @property
    def weekly_distance_km(self) -> float:
        return self.summary.total_distance_km

    @property
    def weekly_calories_kcal(self) -> float:
        return self.summary.total_calories_kcal

    @property
    def best_day(self) -> DayStats | None:
        return self.summary.best_day

    # -- observers -------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener(ledger)`` after every state change.

        Returns:
            A function that removes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    # -- lifecycle -------------------------------------------------------

    def bootstrap(self) -> None:
        """Load persisted state, finalizing a stale day into history.

        Raises:
            PersistenceError: If the stored state cannot be read.
        """
        with self._lock:
            stored = self._store.load_state()
            today = self._today_fn()
            key = today_key(today)
            history = decode_history(stored.history, today)
            self._today = today
            self._today_key = key

            if stored.today_date is None:
                logger.info("First run, starting a new ledger", today=key)
                self._steps = 0
                self._clear_baseline()
                self._history = trim_to_window(history, today)
                self._refresh_week()
                self._persist_now()
            elif stored.today_date != key:
                finalized = stored.today_date
                if parse_key(finalized) is not None:
                    previous = history.get(finalized)
                    steps = max(previous.steps if previous else 0, stored.today_steps)
                    history[finalized] = day_stats(finalized, steps, today)
                    logger.info("Finalized stored day", day=finalized, steps=steps)
                self._history = trim_to_window(history, today)
                self._steps = 0
                self._clear_baseline()
                self._refresh_week()
                self._persist_now()
            else:
                self._steps = stored.today_steps
                if stored.counter_base_date == key and stored.counter_base is not None:
                    self._counter_base = stored.counter_base
                    self._counter_base_date = stored.counter_base_date
                else:
                    self._clear_baseline()
                self._history = trim_to_window(history, today)
                self._refresh_week()
                logger.info("Resumed today's ledger", today=key, steps=self._steps)

            self._bootstrapped = True
            self._notify()

    def start_rollover_checks(self) -> None:
        """Check for a date change every ``rollover_check_s`` seconds."""
        with self._lock:
            if self._rollover_timer is None:
                self._rollover_timer = self._scheduler.call_every(
                    self._config.rollover_check_s, self._on_rollover_tick
                )

    def stop_rollover_checks(self) -> None:
        with self._lock:
            if self._rollover_timer is not None:
                self._rollover_timer.cancel()
                self._rollover_timer = None

    def flush(self) -> None:
        """Write a pending debounced save immediately."""
        with self._lock:
            if self._save_timer is not None:
                self._persist_now()
                self._notify()

    def close(self) -> None:
        self.stop_rollover_checks()
        self.flush()

    # -- date rollover ---------------------------------------------------

    def check_rollover(self) -> bool:
        """Finalize today into history if the calendar date has advanced.

        Returns:
            True if a rollover was applied.
        """
        with self._lock:
            self._require_bootstrap()
            current = self._today_fn()
            if current <= self._today:
                return False
            self._roll_over(current)
            self._notify()
            return True

    def _on_rollover_tick(self) -> None:
        self.check_rollover()

    def _roll_over(self, new_today: date) -> None:
        finalized = self._today_key
        previous = self._history.get(finalized)
        steps = max(previous.steps if previous else 0, self._steps)
        history = dict(self._history)
        history[finalized] = day_stats(finalized, steps, new_today)

        self._history = trim_to_window(history, new_today)
        self._today = new_today
        self._today_key = today_key(new_today)
        self._steps = 0
        self._clear_baseline()
        self._refresh_week()
        self._persist_now()
        logger.info(
            "Day rolled over", finalized=finalized, steps=steps, today=self._today_key
        )

    # -- sensor entry points ---------------------------------------------

    def on_hardware_counter(self, total_since_boot: float) -> None:
        """Apply a hardware step-counter reading (cumulative since boot)."""
        with self._lock:
            self._require_bootstrap()
            current = self._today_fn()
            if current > self._today:
                self._roll_over(current)
                # This reading is the first step of the new day.
                self._counter_base = total_since_boot - 1
                self._counter_base_date = self._today_key
                self._set_steps(1)
                self._persist_now()
                self._notify()
                return

            if self._counter_base is None or self._counter_base_date != self._today_key:
                self._counter_base = total_since_boot - self._steps
                self._counter_base_date = self._today_key
                logger.debug(
                    "Counter baseline established",
                    base=self._counter_base,
                    steps=self._steps,
                )
                self._persist_now()

            candidate = math.floor(total_since_boot - self._counter_base)
            if candidate < self._steps:
                self._counter_base = total_since_boot - self._steps
                self._counter_base_date = self._today_key
                logger.info(
                    "Step counter went backwards, re-baselined",
                    total_since_boot=total_since_boot,
                    candidate=candidate,
                    steps=self._steps,
                )
                self._persist_now()
            else:
                self._set_steps(candidate)
                self._schedule_save()
            self._notify()

    def update_steps(self, count: int) -> None:
        """Set today's step count and schedule a debounced save."""
        with self._lock:
            self._require_bootstrap()
            self._set_steps(count)
            self._schedule_save()
            self._notify()

    def update_last_step_time(self, timestamp_ms: int) -> None:
        with self._lock:
            self._last_step_ms = timestamp_ms
            self._check_walking()
            self._notify()

    def update_movement_data(self, acceleration: float) -> None:
        """Record the latest acceleration magnitude (m/s^2)."""
        with self._lock:
            self._acceleration = acceleration
            self._intensity = intensity_bucket(acceleration)
            self._check_walking()
            self._notify()

    # -- activity --------------------------------------------------------

    def ms_since_last_step(self, now_ms: int | None = None) -> float:
        if self._last_step_ms is None:
            return math.inf
        now = self._clock_ms() if now_ms is None else now_ms
        return now - self._last_step_ms

    def activity_status(self, now_ms: int | None = None) -> str:
        return classify_activity(self.ms_since_last_step(now_ms), self._acceleration)

    def time_since_last_step(self, now_ms: int | None = None) -> str:
        return describe_time_since(self.ms_since_last_step(now_ms))

    # -- internals -------------------------------------------------------

    def _require_bootstrap(self) -> None:
        if not self._bootstrapped:
            raise RuntimeError("StepLedger.bootstrap() must run before updates")

    def _clear_baseline(self) -> None:
        self._counter_base = None
        self._counter_base_date = None

    def _set_steps(self, count: int) -> None:
        self._steps = max(0, int(count))
        self._check_walking()
        self._refresh_week()

    def _check_walking(self) -> None:
        self._is_walking = is_recently_walking(
            self.ms_since_last_step(), self._acceleration
        )

    def _refresh_week(self) -> None:
        self._week = seven_day_list(
            self._history, self._today_key, self._steps, self._today
        )

    def _schedule_save(self, delay_s: float | None = None) -> None:
        if delay_s is None and self._persistence_degraded:
            # A backed-off retry is already pending; it writes the latest state.
            if self._save_timer is not None:
                return
            delay_s = self._retry_delay_s
        if self._save_timer is not None:
            self._save_timer.cancel()
        delay = self._config.save_delay_s if delay_s is None else delay_s
        self._save_timer = self._scheduler.call_later(delay, self._on_save_timer)

    def _on_save_timer(self) -> None:
        with self._lock:
            self._save_timer = None
            self._persist_now()
            self._notify()

    def _persist_now(self) -> bool:
        if self._save_timer is not None:
            self._save_timer.cancel()
            self._save_timer = None
        state = StoredState(
            today_date=self._today_key,
            today_steps=self._steps,
            history=encode_history(self._history),
            counter_base=self._counter_base,
            counter_base_date=self._counter_base_date,
        )
        try:
            self._store.save_state(state)
        except PersistenceError as exc:
            logger.error(
                "Persisting step state failed, will retry",
                error=str(exc),
                retry_in_s=self._retry_delay_s,
            )
            self._persistence_degraded = True
            self._schedule_save(self._retry_delay_s)
            self._retry_delay_s = min(self._retry_delay_s * 2, MAX_RETRY_DELAY_S)
            return False
        if self._persistence_degraded:
            logger.info("Persistence recovered", steps=self._steps)
        self._persistence_degraded = False
        self._retry_delay_s = self._config.save_delay_s
        return True
