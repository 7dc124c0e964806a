"""CLI: resumen semanal, exportacion a Excel y reproduccion de registros."""

from __future__ import annotations

import argparse
import logging
import time
from datetime import datetime
from pathlib import Path

import structlog
from dateutil import tz

from pasos_tool.excel_writer import ExcelLayout, write_week_xlsx
from pasos_tool.ledger import StepLedger
from pasos_tool.model import WeeklySummary
from pasos_tool.replay import replay_events
from pasos_tool.report import week_frame, week_table
from pasos_tool.scheduling import ManualScheduler
from pasos_tool.sources.sensor_log import SensorLogPaths, SensorLogSource
from pasos_tool.storage import MemoryStore, PreferenceStore, SQLiteStore

_LOCAL_TZ = tz.tzlocal()
DEFAULT_DB = Path.home() / ".pasos_tool" / "pasos.sqlite3"


def configure_logging(level: str = "INFO") -> None:
    """Configure structlog console output at ``level``."""
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level.upper(), logging.INFO)
        ),
        logger_factory=structlog.PrintLoggerFactory(),
        context_class=dict,
    )


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments.

    Returns:
        Parsed argparse namespace.
    """
    parser = argparse.ArgumentParser(
        description="Contador de pasos: resumen semanal, exportacion y replay."
    )
    parser.add_argument(
        "--db",
        default=str(DEFAULT_DB),
        help="Base SQLite de preferencias (default: ~/.pasos_tool/pasos.sqlite3).",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        help="Nivel de log (DEBUG, INFO, WARNING, ERROR).",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("summary", help="Muestra la semana y los totales.")

    export = sub.add_parser("export", help="Exporta la semana a Excel.")
    export.add_argument(
        "--out-dir",
        default=str(Path.cwd() / "salidas"),
        help="Directorio de salida (default: ./salidas).",
    )

    replay = sub.add_parser("replay", help="Reproduce un registro de sensores.")
    replay.add_argument("log", help="CSV de sensores o carpeta con sensors_*.csv.")
    replay.add_argument(
        "--dry-run",
        action="store_true",
        help="No escribe en la base; usa un almacen en memoria.",
    )
    return parser.parse_args()


def main() -> int:
    """Run the CLI.

    Returns:
        Exit code (0 on success).
    """
    ns = parse_args()
    configure_logging(ns.log_level)
    db_path = Path(ns.db).expanduser().resolve()

    if ns.command == "replay":
        return _run_replay(Path(ns.log).expanduser(), db_path, dry_run=ns.dry_run)

    store = SQLiteStore(db_path)
    ledger = _open_ledger(store)
    try:
        if ns.command == "export":
            out_dir = Path(ns.out_dir).expanduser()
            ts = datetime.now(tz=_LOCAL_TZ).strftime("%Y-%m-%d_%H-%M-%S")
            out_path = out_dir / f"pasos_semana_{ts}.xlsx"
            write_week_xlsx(week_frame(ledger.weekly_history), out_path, ExcelLayout())
            print(f"OK: Output: {out_path}")
        else:
            print(week_table(ledger.weekly_history))
            _print_summary(ledger.summary)
    finally:
        ledger.close()
    return 0


def _open_ledger(store: PreferenceStore) -> StepLedger:
    ledger = StepLedger(store, ManualScheduler(time.time()))
    ledger.bootstrap()
    return ledger


def _run_replay(log: Path, db_path: Path, *, dry_run: bool) -> int:
    source = SensorLogSource(SensorLogPaths(root=log))
    source.validate()
    log_file = source.newest_log()
    events = source.load_events(log_file)

    store: PreferenceStore = MemoryStore() if dry_run else SQLiteStore(db_path)
    result = replay_events(store, events)

    m = result.metrics
    print(f"OK: Log: {log_file}")
    print(f"OK: Events: {result.events}")
    print(f"OK: Steps today ({result.today_key}): {result.steps}")
    print(
        f"OK: Distance km gps={m.gps_distance_km:.3f} "
        f"steps={m.step_distance_km:.3f} fused={m.fused_distance_km:.3f}"
    )
    _print_summary(result.summary)
    return 0


def _print_summary(summary: WeeklySummary) -> None:
    best = summary.best_day
    print(f"Total: {summary.total_steps} pasos")
    print(f"Promedio: {summary.average_steps} pasos/dia")
    print(f"Distancia: {summary.total_distance_km:.2f} km")
    print(f"Calorias: {summary.total_calories_kcal:.0f} kcal")
    if best is not None:
        print(f"Mejor dia: {best.label} ({best.date_key}) {best.steps} pasos")
