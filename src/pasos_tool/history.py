"""Codificacion persistente del historial acotado fecha -> DayStats."""

from __future__ import annotations

import math
from collections.abc import Mapping
from datetime import date

from pasos_tool.dates import (
    TODAY_LABEL,
    day_label,
    last_7_keys,
    parse_key,
    window_before,
)
from pasos_tool.model import CAL_PER_STEP, STRIDE_M, DayStats

History = dict[str, DayStats]


def distance_from_steps(steps: int) -> float:
    """Distance in km implied by ``steps`` at the fixed stride length."""
    return steps * STRIDE_M / 1000.0


def calories_from_steps(steps: int) -> float:
    """Calories implied by ``steps``."""
    return steps * CAL_PER_STEP


def day_stats(key: str, steps: int, today: date | None = None) -> DayStats:
    """Build a DayStats for ``key`` deriving distance/calories from steps."""
    steps = max(0, int(steps))
    return DayStats(
        date_key=key,
        label=day_label(key, today),
        steps=steps,
        distance_km=distance_from_steps(steps),
        calories_kcal=calories_from_steps(steps),
    )


def encode_history(history: Mapping[str, DayStats]) -> str:
    """Serialize history as ``key:steps:km:kcal`` entries joined by ``|``.

    Numbers always use ``.`` as decimal separator regardless of locale.
    """
    return "|".join(
        f"{key}:{stats.steps}:{stats.distance_km:.2f}:{stats.calories_kcal:.2f}"
        for key, stats in sorted(history.items())
    )


def decode_history(raw: str | None, today: date | None = None) -> History:
    """Parse a persisted history string.

    Tolerates the legacy ``key:steps`` form and skips malformed entries, so any
    input maps to a (possibly empty) history.
    """
    out: History = {}
    if raw is None or not raw.strip():
        return out
    for token in raw.split("|"):
        if not token.strip():
            continue
        cols = token.split(":")
        if len(cols) < 2:
            continue
        key = cols[0].strip()
        if parse_key(key) is None:
            continue
        steps = max(0, _parse_int(cols[1]))
        distance = _parse_float(cols[2] if len(cols) > 2 else None)
        calories = _parse_float(cols[3] if len(cols) > 3 else None)
        out[key] = DayStats(
            date_key=key,
            label=day_label(key, today),
            steps=steps,
            distance_km=distance_from_steps(steps) if distance is None else distance,
            calories_kcal=calories_from_steps(steps) if calories is None else calories,
        )
    return out


def trim_to_window(history: Mapping[str, DayStats], anchor: date | str) -> History:
    """Keep only entries for the 6 days preceding ``anchor``."""
    anchor_date = parse_key(anchor) if isinstance(anchor, str) else anchor
    if anchor_date is None:
        return {}
    keep = set(window_before(anchor_date))
    return {key: stats for key, stats in history.items() if key in keep}


def seven_day_list(
    history: Mapping[str, DayStats],
    today_key: str,
    today_steps: int,
    today: date | None = None,
) -> list[DayStats]:
    """Weekly view: stored days (zero-filled) plus a live "Today" entry."""
    out: list[DayStats] = []
    for key in last_7_keys(today):
        if key == today_key:
            steps = max(0, today_steps)
            out.append(
                DayStats(
                    date_key=key,
                    label=TODAY_LABEL,
                    steps=steps,
                    distance_km=distance_from_steps(steps),
                    calories_kcal=calories_from_steps(steps),
                )
            )
        else:
            out.append(history.get(key) or day_stats(key, 0, today))
    return out


def _parse_int(value: str) -> int:
    try:
        return int(value.strip())
    except ValueError:
        return 0


def _parse_float(value: str | None) -> float | None:
    if value is None:
        return None
    try:
        parsed = float(value.strip())
    except ValueError:
        return None
    if not math.isfinite(parsed) or parsed < 0:
        return None
    return parsed
