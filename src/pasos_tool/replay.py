"""Reproduccion determinista de registros de sensores en tiempo virtual."""

from __future__ import annotations

import time
from collections.abc import Sequence
from dataclasses import dataclass

import structlog

from pasos_tool.dates import local_date, parse_key
from pasos_tool.ledger import StepLedger
from pasos_tool.model import DayStats, FusedMetrics, TrackerConfig, WeeklySummary
from pasos_tool.scheduling import ManualScheduler
from pasos_tool.session import TrackingSession
from pasos_tool.sources.base import RecordedEvent
from pasos_tool.storage import PreferenceStore

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ReplayResult:
    """State after a replay."""

    events: int
    steps: int
    today_key: str
    metrics: FusedMetrics
    week: list[DayStats]
    summary: WeeklySummary


def replay_events(
    store: PreferenceStore,
    events: Sequence[RecordedEvent],
    config: TrackerConfig | None = None,
) -> ReplayResult:
    """Feed recorded events through a tracking session.

    Time is virtual: the scheduler clock jumps to each event's timestamp, so
    debounced saves and the periodic rollover check fire exactly as they would
    have live, including across midnight.

    Raises:
        ValueError: If the log starts before the day already stored in
            ``store``, since replaying it would finalize and drop newer days.
    """
    cfg = config or TrackerConfig()
    start_s = events[0].timestamp_ms / 1000.0 if events else time.time()
    stored_date = parse_key(store.load_state().today_date or "")
    log_date = local_date(start_s)
    if stored_date is not None and stored_date > log_date:
        raise ValueError(
            f"Sensor log starts on {log_date.isoformat()}, before the stored day "
            f"{stored_date.isoformat()}; replay it with a fresh or in-memory store"
        )
    scheduler = ManualScheduler(start_s)
    ledger = StepLedger(
        store,
        scheduler,
        config=cfg,
        today_fn=lambda: local_date(scheduler.now_s),
        clock_ms=scheduler.now_ms,
    )
    session = TrackingSession(ledger, config=cfg, clock_ms=scheduler.now_ms)
    session.start()
    for event in events:
        scheduler.advance_to(event.timestamp_ms / 1000.0)
        session.dispatch(event)
    # Let the last debounced save land.
    scheduler.advance(cfg.save_delay_s)

    result = ReplayResult(
        events=len(events),
        steps=ledger.steps,
        today_key=ledger.today_key,
        metrics=session.fused_metrics,
        week=ledger.weekly_history,
        summary=ledger.summary,
    )
    session.close()
    logger.info("Replay finished", events=len(events), steps=result.steps)
    return result
