"""Clases base para fuentes de eventos registrados."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

from pasos_tool.model import LocationFix, SensorEvent

RecordedEvent = SensorEvent | LocationFix


@dataclass(frozen=True)
class SourcePaths:
    """Location of a recorded source (a file, or a folder of files)."""

    root: Path


class EventSource(ABC):
    """Abstract source of recorded sensor and location events."""

    def __init__(self, paths: SourcePaths) -> None:
        """Create an event source.

        Args:
            paths: Where the recorded data lives.
        """
        self._paths = paths

    @abstractmethod
    def validate(self) -> None:
        """Validate that the recorded data exists.

        Raises:
            FileNotFoundError: If required files are missing.
        """

    @abstractmethod
    def load_events(self, path: Path) -> list[RecordedEvent]:
        """Load events from ``path`` ordered by timestamp."""
