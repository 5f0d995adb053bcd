"""
Proximity Alert Monitor

Periodically scans scheduled visits against the clock and raises one alert
per visit when it enters the imminent window (0 < minutes until start <= 30).

Each tick:
1. read the current time
2. for every scheduled visit not yet alerted, round the minutes until start
3. inside the window: look up the client (skip if it is gone), deliver
   "Imminent visit: <client>" to the sink and remember the visit id

There is no catch-up: a visit first seen at or past its start time never
alerts. The record of alerted visits lives only in memory, so a restart can
re-alert a visit already inside its window.
"""

import asyncio
import logging
import math
import threading
from datetime import datetime
from typing import Optional

from ..clock import Clock
from ..config import ALERT_WINDOW_MINUTES, MONITOR_INTERVAL_SECONDS
from ..schemas import Client, Visit, VisitStatus
from ..store import EntityStore
from .notification_service import AlertSink, deliver_alert

logger = logging.getLogger(__name__)


def minutes_until(visit: Visit, now: datetime) -> int:
    """Whole minutes from now until the visit starts, halves rounded up"""
    seconds = (visit.starts_at - now).total_seconds()
    return math.floor(seconds / 60 + 0.5)


def format_alert(client: Client, visit: Visit, minutes: int) -> tuple[str, str]:
    title = f"Imminent visit: {client.name}"
    body = f"Your {visit.type.label} visit starts in {minutes} minutes."
    return title, body


class AlertRecord:
    """
    Visit ids that already produced an alert.

    Append-only for the life of the process; entries survive cancellation and
    deletion of the visit. ``reset`` exists for tests.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._visit_ids: set[str] = set()

    def add(self, visit_id: str) -> None:
        with self._lock:
            self._visit_ids.add(visit_id)

    def reset(self) -> None:
        with self._lock:
            self._visit_ids.clear()

    def __contains__(self, visit_id: object) -> bool:
        with self._lock:
            return visit_id in self._visit_ids

    def __len__(self) -> int:
        with self._lock:
            return len(self._visit_ids)


class ProximityAlertMonitor:
    """Recurring evaluator owning the alert record"""

    def __init__(
        self,
        store: EntityStore,
        clock: Clock,
        sink: AlertSink,
        interval_seconds: float = MONITOR_INTERVAL_SECONDS,
        window_minutes: int = ALERT_WINDOW_MINUTES,
    ):
        self.store = store
        self.clock = clock
        self.sink = sink
        self.interval_seconds = interval_seconds
        self.window_minutes = window_minutes
        self.record = AlertRecord()

        self._tick_lock = threading.Lock()
        self._stop_event: Optional[asyncio.Event] = None
        self._task: Optional[asyncio.Task] = None

    def tick(self) -> list[str]:
        """
        Evaluate every eligible visit once.

        Returns the ids of visits alerted during this tick. Never raises:
        a failing tick is logged and the next one runs as usual.
        """
        with self._tick_lock:
            try:
                return self._evaluate()
            except Exception as e:
                logger.error(f"❌ Proximity monitor tick failed: {e}", exc_info=True)
                return []

    def _evaluate(self) -> list[str]:
        now = self.clock.now()
        snapshot = self.store.snapshot()
        alerted = []

        for visit in snapshot.visits.values():
            if visit.status != VisitStatus.SCHEDULED or visit.id in self.record:
                continue

            minutes = minutes_until(visit, now)
            if not 0 < minutes <= self.window_minutes:
                continue

            client = snapshot.clients.get(visit.client_id)
            if client is None:
                logger.warning(
                    f"⚠️ Visit {visit.id} references missing client {visit.client_id}, skipping alert"
                )
                continue

            title, body = format_alert(client, visit, minutes)
            deliver_alert(self.sink, title, body)
            self.record.add(visit.id)
            alerted.append(visit.id)
            logger.info(f"🔔 Alerted visit {visit.id}: {minutes} minutes to start")

        return alerted

    def reset(self) -> None:
        """Forget every alerted visit (tests only)"""
        self.record.reset()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run(self) -> None:
        """
        Tick every interval until ``stop`` is called.

        The first tick happens one interval after start. Stopping wakes the
        loop between ticks; a tick in progress always finishes.
        """
        if self._stop_event is None:
            self._stop_event = asyncio.Event()
        stop_event = self._stop_event
        logger.info(f"✅ Proximity monitor started (every {self.interval_seconds}s)")
        try:
            while not stop_event.is_set():
                try:
                    await asyncio.wait_for(stop_event.wait(), timeout=self.interval_seconds)
                except asyncio.TimeoutError:
                    self.tick()
        finally:
            logger.info("Proximity monitor stopped")

    def start(self) -> asyncio.Task:
        """Schedule ``run`` on the running event loop"""
        if self.running:
            return self._task
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self.run(), name="proximity-monitor")
        return self._task

    async def stop(self) -> None:
        if self._stop_event is not None:
            self._stop_event.set()
        if self._task is not None:
            await self._task
            self._task = None
        self._stop_event = None
