"""Lectura de registros CSV de sensores y ubicacion para reproducirlos."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import pandas as pd

from pasos_tool.model import (
    ACCELEROMETER,
    LOCATION,
    STEP_COUNTER,
    STEP_DETECTOR,
    LocationFix,
    SensorEvent,
)
from pasos_tool.sources.base import EventSource, RecordedEvent, SourcePaths

REQUIRED_COLUMNS = ["timestamp_ms", "sensor"]
NUMERIC_COLUMNS = [
    "timestamp_ms",
    "x",
    "y",
    "z",
    "latitude",
    "longitude",
    "accuracy_m",
    "speed_mps",
]


@dataclass(frozen=True)
class SensorLogPaths(SourcePaths):
    """Paths for recorded sensor logs."""

    # root: a sensors_*.csv file, or the folder that holds them


class SensorLogSource(EventSource):
    """CSV sensor log reader."""

    def validate(self) -> None:
        """Validate that the log file or folder exists."""
        if not self._paths.root.exists():
            raise FileNotFoundError(str(self._paths.root))

    def newest_log(self) -> Path:
        """Return the log file itself, or the newest sensors_*.csv by mtime."""
        if self._paths.root.is_file():
            return self._paths.root
        files = sorted(
            self._paths.root.glob("sensors_*.csv"),
            key=lambda p: p.stat().st_mtime,
            reverse=True,
        )
        if not files:
            raise FileNotFoundError(f"No sensors_*.csv in {self._paths.root}")
        return files[0]

    def load_events(self, path: Path) -> list[RecordedEvent]:
        """Parse a sensor log into typed events.

        Args:
            path: Path to the CSV file.

        Returns:
            Events ordered by timestamp; rows with an unknown sensor or
            missing values are skipped.

        Raises:
            ValueError: If the required columns are missing.
        """
        df = pd.read_csv(path)
        df = df.rename(columns={c: str(c).strip().lower() for c in df.columns})
        missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
        if missing:
            raise ValueError(f"Sensor log is missing columns: {', '.join(missing)}")
        for col in NUMERIC_COLUMNS:
            if col in df.columns:
                df[col] = pd.to_numeric(df[col], errors="coerce")

        out: list[RecordedEvent] = []
        for row in df.to_dict(orient="records"):
            event = _row_to_event(row)
            if event is not None:
                out.append(event)
        out.sort(key=lambda e: e.timestamp_ms)
        return out


def _num(value: object) -> float | None:
    """Float value of a cell; None for blanks/NaN."""
    if value is None or pd.isna(value):
        return None
    return float(value)


def _row_to_event(row: dict[str, object]) -> RecordedEvent | None:
    ts = _num(row.get("timestamp_ms"))
    sensor = row.get("sensor")
    if ts is None or not isinstance(sensor, str):
        return None
    timestamp_ms = int(ts)
    sensor = sensor.strip().lower()
    x, y, z = (_num(row.get(c)) for c in ("x", "y", "z"))

    if sensor == STEP_COUNTER:
        if x is None:
            return None
        return SensorEvent(timestamp_ms, STEP_COUNTER, (x,))
    if sensor == STEP_DETECTOR:
        return SensorEvent(timestamp_ms, STEP_DETECTOR)
    if sensor == ACCELEROMETER:
        if x is None or y is None or z is None:
            return None
        return SensorEvent(timestamp_ms, ACCELEROMETER, (x, y, z))
    if sensor == LOCATION:
        lat = _num(row.get("latitude"))
        lon = _num(row.get("longitude"))
        accuracy = _num(row.get("accuracy_m"))
        if lat is None or lon is None or accuracy is None:
            return None
        return LocationFix(
            latitude=lat,
            longitude=lon,
            accuracy_m=accuracy,
            timestamp_ms=timestamp_ms,
            speed_mps=_num(row.get("speed_mps")),
        )
    return None
