"""Agregados semanales (total, promedio, mejor dia) sobre la ventana de 7 dias."""

from __future__ import annotations

from collections.abc import Sequence

import pandas as pd

from pasos_tool.model import DayStats, WeeklySummary

WEEK_COLUMNS = ["date", "label", "steps", "distance_km", "calories_kcal"]


def week_frame(days: Sequence[DayStats]) -> pd.DataFrame:
    """One row per day, in window order (oldest first)."""
    rows = [
        {
            "date": d.date_key,
            "label": d.label,
            "steps": d.steps,
            "distance_km": d.distance_km,
            "calories_kcal": d.calories_kcal,
        }
        for d in days
    ]
    if not rows:
        return pd.DataFrame(columns=WEEK_COLUMNS)
    out = pd.DataFrame(rows, columns=WEEK_COLUMNS)
    out["date"] = pd.to_datetime(out["date"], errors="coerce").dt.date
    return out


def summarize_week(days: Sequence[DayStats]) -> WeeklySummary:
    """Totals, integer average and best day.

    Ties for the best day go to the earliest day in the window.
    """
    df = week_frame(days)
    if df.empty:
        return WeeklySummary(
            total_steps=0,
            average_steps=0,
            total_distance_km=0.0,
            total_calories_kcal=0.0,
            best_day=None,
        )
    total = int(df["steps"].sum())
    # idxmax returns the first occurrence of the maximum.
    best_pos = int(df["steps"].astype("int64").idxmax())
    return WeeklySummary(
        total_steps=total,
        average_steps=total // len(df),
        total_distance_km=float(df["distance_km"].sum()),
        total_calories_kcal=float(df["calories_kcal"].sum()),
        best_day=days[best_pos],
    )


def week_table(days: Sequence[DayStats]) -> str:
    """Plain-text table of the week for terminal output."""
    df = week_frame(days)
    if df.empty:
        return ""
    display = df.copy()
    display["distance_km"] = display["distance_km"].map(lambda v: f"{v:.2f}")
    display["calories_kcal"] = display["calories_kcal"].map(lambda v: f"{v:.1f}")
    return display.to_string(index=False)
