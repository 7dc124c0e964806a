from __future__ import annotations

from datetime import date

import pytest

from pasos_tool.history import day_stats
from pasos_tool.model import DayStats
from pasos_tool.report import summarize_week, week_frame, week_table

TODAY = date(2024, 6, 10)


def _week(steps: list[int]) -> list[DayStats]:
    keys = [f"2024-06-{d:02d}" for d in range(4, 11)]
    return [day_stats(k, s, TODAY) for k, s in zip(keys, steps)]


def test_week_frame_columns_and_dates() -> None:
    df = week_frame(_week([0, 1, 2, 3, 4, 5, 6]))
    assert list(df.columns) == [
        "date",
        "label",
        "steps",
        "distance_km",
        "calories_kcal",
    ]
    assert df.shape[0] == 7
    assert df["date"].iloc[0] == date(2024, 6, 4)
    assert df["label"].iloc[-1] == "Today"


def test_summarize_week_totals_and_floor_average() -> None:
    summary = summarize_week(_week([1000, 0, 2500, 0, 0, 3, 500]))
    assert summary.total_steps == 4003
    assert summary.average_steps == 571
    assert summary.total_distance_km == pytest.approx(4003 * 0.762 / 1000)
    assert summary.total_calories_kcal == pytest.approx(4003 * 0.04)
    assert summary.best_day is not None
    assert summary.best_day.date_key == "2024-06-06"


def test_best_day_tie_goes_to_earliest() -> None:
    summary = summarize_week(_week([0, 700, 0, 700, 0, 0, 700]))
    assert summary.best_day is not None
    assert summary.best_day.date_key == "2024-06-05"


def test_all_zero_week_best_day_is_oldest() -> None:
    summary = summarize_week(_week([0] * 7))
    assert summary.total_steps == 0
    assert summary.best_day is not None
    assert summary.best_day.date_key == "2024-06-04"


def test_empty_week() -> None:
    summary = summarize_week([])
    assert summary.total_steps == 0
    assert summary.best_day is None
    assert week_frame([]).empty
    assert week_table([]) == ""


def test_week_table_formats_numbers() -> None:
    table = week_table(_week([0, 0, 0, 0, 0, 0, 1234]))
    assert "Today" in table
    assert "0.94" in table
    assert "49.4" in table
