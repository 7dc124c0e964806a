"""App Kivy: pasos en vivo, actividad, fusion GPS y semana, con persistencia SQLite."""

from __future__ import annotations

import math
import traceback
from collections import deque
from collections.abc import Callable
from dataclasses import replace
from pathlib import Path

from pasos_tool.ledger import StepLedger, wall_clock_ms
from pasos_tool.model import DayStats, FusedMetrics
from pasos_tool.scheduling import Scheduler, Timer
from pasos_tool.session import TrackingSession
from pasos_tool.sources.base import RecordedEvent
from pasos_tool.storage import SQLiteStore

_LIGHT_BG = (0.96, 0.96, 0.96, 1)
_DARK_BG = (0.08, 0.08, 0.1, 1)


class KivyClockScheduler(Scheduler):
    """Timers on the Kivy main loop, so every callback runs on the UI thread."""

    def call_later(self, delay_s: float, callback: Callable[[], None]) -> Timer:
        from kivy.clock import Clock

        return Clock.schedule_once(lambda _dt: callback(), delay_s)

    def call_every(self, interval_s: float, callback: Callable[[], None]) -> Timer:
        from kivy.clock import Clock

        return Clock.schedule_interval(lambda _dt: callback(), interval_s)


def rebase_events(events: list[RecordedEvent], start_ms: int) -> deque[RecordedEvent]:
    """Shift recorded events so the first one happens at ``start_ms``."""
    if not events:
        return deque()
    offset = start_ms - events[0].timestamp_ms
    return deque(replace(e, timestamp_ms=e.timestamp_ms + offset) for e in events)


def run_app(replay: list[RecordedEvent] | None = None) -> int:
    """Lanza la app Kivy, opcionalmente reproduciendo un registro de sensores."""
    from kivy.app import App
    from kivy.clock import Clock
    from kivy.core.window import Window
    from kivy.uix.boxlayout import BoxLayout
    from kivy.uix.button import Button
    from kivy.uix.gridlayout import GridLayout
    from kivy.uix.label import Label
    from kivy.uix.scrollview import ScrollView

    class PasosApp(App):
        """Main Kivy app."""

        def __init__(self, **kwargs: object) -> None:
            super().__init__(**kwargs)
            self.store = SQLiteStore(Path.cwd() / "pasos_tool.sqlite3")
            self.app_config = self.store.load_config()
            self.ledger = StepLedger(self.store, KivyClockScheduler())
            self.session = TrackingSession(self.ledger)
            self.pending = rebase_events(replay or [], wall_clock_ms())
            self.show_distance = False
            self.dirty = True
            self.steps_label: Label | None = None
            self.goal_label: Label | None = None
            self.activity_label: Label | None = None
            self.fusion_label: Label | None = None
            self.week_grid: GridLayout | None = None
            self.status: Label | None = None

        def build(self) -> BoxLayout:
            dark = uses_dark_theme(self.app_config.theme_option)
            Window.clearcolor = _DARK_BG if dark else _LIGHT_BG
            color = (1, 1, 1, 1) if dark else (0.1, 0.1, 0.1, 1)

            root = BoxLayout(orientation="vertical", spacing=8, padding=10)
            self.steps_label = Label(text="0", font_size="48sp", color=color)
            self.goal_label = Label(text="", size_hint_y=None, height=30, color=color)
            self.activity_label = Label(
                text="", size_hint_y=None, height=30, color=color
            )
            self.fusion_label = Label(
                text="", size_hint_y=None, height=90, color=color, halign="center"
            )
            root.add_widget(self.steps_label)
            root.add_widget(self.goal_label)
            root.add_widget(self.activity_label)
            root.add_widget(self.fusion_label)

            self.week_grid = GridLayout(cols=3, spacing=4, size_hint_y=None)
            self.week_grid.bind(minimum_height=self.week_grid.setter("height"))
            scroll = ScrollView()
            scroll.add_widget(self.week_grid)
            root.add_widget(scroll)

            actions = BoxLayout(
                orientation="horizontal", spacing=8, size_hint_y=None, height=40
            )
            mode_btn = Button(text="Pasos / Distancia")
            exit_btn = Button(text="Salir")
            mode_btn.bind(on_press=self._toggle_mode)
            exit_btn.bind(on_press=lambda *_args: self.stop())
            actions.add_widget(mode_btn)
            actions.add_widget(exit_btn)
            root.add_widget(actions)

            self.status = Label(text="", size_hint_y=None, height=30, color=color)
            root.add_widget(self.status)
            return root

        def on_start(self) -> None:
            self.ledger.subscribe(self._mark_dirty)
            self.session.subscribe(self._refresh_fusion)
            try:
                self.session.start()
            except Exception as exc:
                self._show_error("iniciar", exc)
                return
            self._refresh()
            self._refresh_fusion(self.session.fused_metrics)
            Clock.schedule_interval(self._tick, 0.1)

        def on_pause(self) -> bool:
            self.session.stop()
            return True

        def on_resume(self) -> None:
            self.session.start()

        def on_stop(self) -> None:
            self.session.close()

        def _mark_dirty(self, _ledger: StepLedger) -> None:
            self.dirty = True

        def _tick(self, _dt: float) -> None:
            now = wall_clock_ms()
            while self.pending and self.pending[0].timestamp_ms <= now:
                self.session.dispatch(self.pending.popleft())
            if self.dirty:
                self.dirty = False
                self._refresh()
            if self.activity_label is not None:
                self.activity_label.text = (
                    f"{self.ledger.activity_status(now)} · "
                    f"{self.ledger.time_since_last_step(now)}"
                )

        def _toggle_mode(self, _: object) -> None:
            self.show_distance = not self.show_distance
            self._refresh()

        def _refresh(self) -> None:
            if self.steps_label is None or self.week_grid is None:
                return
            steps = self.ledger.steps
            if self.show_distance:
                today = self.ledger.weekly_history[-1]
                self.steps_label.text = f"{today.distance_km:.2f} km"
            else:
                self.steps_label.text = f"{steps:,}"
            if self.goal_label is not None:
                goal = self.app_config.daily_goal
                pct = min(steps / goal, 1.0) * 100
                self.goal_label.text = f"Meta {goal:,} pasos · {pct:.0f}%"
            self.week_grid.clear_widgets()
            for day in self.ledger.weekly_history:
                for text in _week_cells(day):
                    self.week_grid.add_widget(
                        Label(text=text, size_hint_y=None, height=26)
                    )
            summary = self.ledger.summary
            if self.status is not None:
                degraded = " · sin guardar" if self.ledger.persistence_degraded else ""
                self.status.text = (
                    f"Semana {summary.total_steps:,} pasos · "
                    f"promedio {summary.average_steps:,}{degraded}"
                )

        def _refresh_fusion(self, metrics: FusedMetrics) -> None:
            if self.fusion_label is not None:
                self.fusion_label.text = _fusion_text(metrics)

        def _show_error(self, action: str, exc: Exception) -> None:
            error_type = type(exc).__name__
            if self.status is not None:
                self.status.text = f"Error al {action} ({error_type}): {exc}"
            if self.fusion_label is not None:
                self.fusion_label.text = traceback.format_exc(limit=3)

    PasosApp().run()
    return 0


def uses_dark_theme(theme_option: str) -> bool:
    """Whether the shell draws with the dark palette.

    Kivy exposes no OS light/dark preference, so "System" uses the dark palette.
    """
    return theme_option != "Light"


def _week_cells(day: DayStats) -> tuple[str, str, str]:
    return (day.label, f"{day.steps:,}", f"{day.distance_km:.2f} km")


def _fusion_text(metrics: FusedMetrics) -> str:
    if math.isnan(metrics.gps_accuracy_m):
        accuracy = "-"
    else:
        accuracy = f"{metrics.gps_accuracy_m:.0f} m"
    return (
        f"GPS ±{accuracy} · {metrics.gps_speed_mps:.2f} m/s\n"
        f"Pasos {metrics.step_speed_mps:.2f} m/s · "
        f"Fusion {metrics.fused_speed_mps:.2f} m/s\n"
        f"km GPS {metrics.gps_distance_km:.2f} · pasos {metrics.step_distance_km:.2f}"
        f" · fusion {metrics.fused_distance_km:.2f}"
    )
