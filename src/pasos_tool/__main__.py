"""Punto de entrada de la app Kivy."""

from __future__ import annotations

import sys
from pathlib import Path

from pasos_tool.app import run_app
from pasos_tool.cli import configure_logging
from pasos_tool.sources.sensor_log import SensorLogPaths, SensorLogSource


def main() -> int:
    """Run app entrypoint; an optional argument is a sensor log to play back."""
    configure_logging("INFO")
    replay = None
    if len(sys.argv) > 1:
        source = SensorLogSource(SensorLogPaths(root=Path(sys.argv[1]).expanduser()))
        source.validate()
        replay = source.load_events(source.newest_log())
    try:
        return run_app(replay)
    except ImportError as exc:
        print(f"No se pudo iniciar Kivy: {exc}")
        print("Instala dependencias de GUI: pip install kivy")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
