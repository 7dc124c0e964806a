"""Persistencia clave/valor (SQLite o memoria) para el contador y la configuracion."""

from __future__ import annotations

import math
import sqlite3
from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path

import structlog

logger = structlog.get_logger(__name__)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS prefs (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
);
"""

TODAY_DATE = "today_date"
TODAY_STEPS = "today_steps"
HISTORY = "history"
COUNTER_BASE = "counter_base"
COUNTER_BASE_DATE = "counter_base_date"
DAILY_GOAL = "daily_goal"
THEME_OPTION = "theme_option"

THEME_OPTIONS: tuple[str, ...] = ("Light", "Dark", "System")
DEFAULT_DAILY_GOAL = 10_000


class PersistenceError(RuntimeError):
    """Raised when the durable store cannot be read or written."""


@dataclass(frozen=True)
class StoredState:
    """Persisted step-ledger state (absent keys map to defaults)."""

    today_date: str | None = None
    today_steps: int = 0
    history: str | None = None
    counter_base: float | None = None
    counter_base_date: str | None = None


@dataclass(frozen=True)
class AppConfig:
    """Configuracion persistida de la app."""

    daily_goal: int = DEFAULT_DAILY_GOAL
    theme_option: str = "System"


class PreferenceStore(ABC):
    """Abstract durable key/value store with atomic multi-key edits."""

    @abstractmethod
    def snapshot(self) -> dict[str, str]:
        """Return the current values of every stored key.

        Raises:
            PersistenceError: If the store cannot be read.
        """

    @abstractmethod
    def edit(self, values: Mapping[str, object], remove: Iterable[str] = ()) -> None:
        """Write ``values`` and delete ``remove`` as one all-or-nothing edit.

        Raises:
            PersistenceError: If the edit could not be applied.
        """

    def load_state(self) -> StoredState:
        """Read the ledger keys, applying defaults for absent or bad values."""
        values = self.snapshot()
        base = _parse_float(values.get(COUNTER_BASE))
        return StoredState(
            today_date=values.get(TODAY_DATE) or None,
            today_steps=max(0, _parse_int(values.get(TODAY_STEPS), 0)),
            history=values.get(HISTORY),
            counter_base=base,
            counter_base_date=values.get(COUNTER_BASE_DATE) or None,
        )

    def save_state(self, state: StoredState) -> None:
        """Persist the ledger keys; the baseline is removed unless complete."""
        values: dict[str, object] = {
            TODAY_DATE: state.today_date or "",
            TODAY_STEPS: state.today_steps,
            HISTORY: state.history or "",
        }
        remove: tuple[str, ...] = ()
        if state.counter_base is not None and state.counter_base_date:
            values[COUNTER_BASE] = state.counter_base
            values[COUNTER_BASE_DATE] = state.counter_base_date
        else:
            remove = (COUNTER_BASE, COUNTER_BASE_DATE)
        self.edit(values, remove)

    def load_config(self) -> AppConfig:
        """Devuelve configuracion guardada o defaults."""
        values = self.snapshot()
        goal = _parse_int(values.get(DAILY_GOAL), DEFAULT_DAILY_GOAL)
        theme = values.get(THEME_OPTION, "System")
        return AppConfig(
            daily_goal=goal if goal > 0 else DEFAULT_DAILY_GOAL,
            theme_option=theme if theme in THEME_OPTIONS else "System",
        )

    def save_config(self, config: AppConfig) -> None:
        """Guarda la configuracion."""
        self.edit({DAILY_GOAL: config.daily_goal, THEME_OPTION: config.theme_option})


class MemoryStore(PreferenceStore):
    """In-process store, used for replays and tests."""

    def __init__(self, initial: Mapping[str, object] | None = None) -> None:
        self._values = {k: _to_text(v) for k, v in (initial or {}).items()}

    def snapshot(self) -> dict[str, str]:
        return dict(self._values)

    def edit(self, values: Mapping[str, object], remove: Iterable[str] = ()) -> None:
        updated = dict(self._values)
        updated.update({k: _to_text(v) for k, v in values.items()})
        for key in remove:
            updated.pop(key, None)
        self._values = updated


class SQLiteStore(PreferenceStore):
    """Repositorio SQLite clave/valor."""

    def __init__(self, db_path: Path) -> None:
        """Create store and ensure schema exists."""
        self._db_path = db_path
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_schema(self) -> None:
        try:
            with self._connect() as conn:
                conn.executescript(SCHEMA_SQL)
                conn.commit()
        except sqlite3.Error as exc:
            raise PersistenceError(f"Cannot initialize {self._db_path}: {exc}") from exc

    def snapshot(self) -> dict[str, str]:
        try:
            with self._connect() as conn:
                rows = conn.execute("SELECT key, value FROM prefs").fetchall()
        except sqlite3.Error as exc:
            raise PersistenceError(f"Cannot read {self._db_path}: {exc}") from exc
        return {row["key"]: row["value"] for row in rows}

    def edit(self, values: Mapping[str, object], remove: Iterable[str] = ()) -> None:
        payload = [(key, _to_text(value)) for key, value in values.items()]
        removed = [(key,) for key in remove]
        try:
            # The connection context manager rolls back on error, so either
            # every key in the edit lands or none does.
            with self._connect() as conn:
                conn.executemany(
                    """
                    INSERT INTO prefs(key, value) VALUES(?, ?)
                    ON CONFLICT(key) DO UPDATE SET value=excluded.value
                    """,
                    payload,
                )
                if removed:
                    conn.executemany("DELETE FROM prefs WHERE key = ?", removed)
                conn.commit()
        except sqlite3.Error as exc:
            raise PersistenceError(f"Cannot write {self._db_path}: {exc}") from exc
        logger.debug("Preferences written", keys=len(payload), removed=len(removed))


def _to_text(value: object) -> str:
    if isinstance(value, float):
        return repr(value)
    return str(value)


def _parse_int(raw: str | None, default: int) -> int:
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _parse_float(raw: str | None) -> float | None:
    if raw is None or not raw.strip():
        return None
    try:
        parsed = float(raw)
    except ValueError:
        return None
    return parsed if math.isfinite(parsed) else None
