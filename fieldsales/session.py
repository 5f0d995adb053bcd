"""
Working session wiring

One FieldSession owns the store, the clock, the alert channels, the backend
sync dispatcher, the intent services and the proximity monitor. The FastAPI
lifespan starts it on boot and stops it on shutdown; tests build their own
with a fixed clock and an in-memory backend.
"""

import asyncio
import logging
from typing import Optional

from fastapi import Request

from .clock import Clock, SystemClock
from .config import (
    ALERT_WEBHOOK_URL,
    ALERT_WINDOW_MINUTES,
    DATABASE_URL,
    MONITOR_INTERVAL_SECONDS,
    PROSPECTING_TARGET,
    SYNC_ENABLED,
)
from .database import build_engine, build_session_factory
from .domain.clients.service import ClientService
from .domain.tasks.service import TaskService
from .domain.visits.service import VisitService
from .errors import SyncWarning
from .services.notification_service import (
    AlertSink,
    FanoutAlertSink,
    LoggingAlertSink,
    NotificationCenter,
    WebhookAlertSink,
)
from .services.proximity_monitor import ProximityAlertMonitor
from .services.sync_service import BackendSync, EntityKind, SqlBackendSync, SyncDispatcher
from .store import EntityStore

logger = logging.getLogger(__name__)


class FieldSession:
    def __init__(
        self,
        clock: Optional[Clock] = None,
        backend: Optional[BackendSync] = None,
        extra_sinks: tuple[AlertSink, ...] = (),
        webhook_url: Optional[str] = None,
        interval_seconds: float = MONITOR_INTERVAL_SECONDS,
        window_minutes: int = ALERT_WINDOW_MINUTES,
        prospecting_target: int = PROSPECTING_TARGET,
    ):
        self.clock = clock or SystemClock()
        self.store = EntityStore()
        self.notifications = NotificationCenter()

        # Toast inbox plus the native channel (log and optional webhook)
        self.webhook = WebhookAlertSink(webhook_url) if webhook_url else None
        channels: list[AlertSink] = [self.notifications, LoggingAlertSink(), *extra_sinks]
        if self.webhook:
            channels.append(self.webhook)
        self.sink = FanoutAlertSink(channels)

        self.sync = SyncDispatcher(backend, on_warning=self._on_sync_warning)

        self.clients = ClientService(self.store, self.sync, prospecting_target)
        self.visits = VisitService(self.store, self.clock, self.sink, self.sync)
        self.tasks = TaskService(self.store, self.clock, self.sync)
        self.monitor = ProximityAlertMonitor(
            self.store,
            self.clock,
            self.sink,
            interval_seconds=interval_seconds,
            window_minutes=window_minutes,
        )

    @classmethod
    def from_config(cls) -> "FieldSession":
        """Session backed by DATABASE_URL (or purely in memory when sync is disabled)"""
        backend = None
        if SYNC_ENABLED:
            backend = SqlBackendSync(build_session_factory(build_engine(DATABASE_URL)))
        else:
            logger.warning("⚠️ Backend sync disabled - changes will not outlive the process")
        return cls(backend=backend, webhook_url=ALERT_WEBHOOK_URL)

    def _on_sync_warning(self, warning: SyncWarning) -> None:
        self.notifications.push(f"Change not saved to server: {warning.message}", "warning")

    def load(self) -> bool:
        """Reload the store from the backend; keeps an empty store when that fails"""
        if not self.sync.enabled:
            return False
        try:
            loaded = self.sync.load_all()
        except Exception as e:
            logger.error(f"❌ Failed to load data from backend: {e}")
            self.notifications.push("Could not load data from server", "error")
            return False

        self.store.load(
            clients=loaded[EntityKind.CLIENT],
            visits=loaded[EntityKind.VISIT],
            tasks=loaded[EntityKind.TASK],
        )
        return True

    def check_urgent_tasks(self) -> int:
        urgent = self.tasks.urgent_tasks_due_today()
        if urgent:
            self.notifications.push(f"You have {len(urgent)} urgent tasks for today!", "warning")
        return len(urgent)

    async def start(self) -> None:
        logger.info("Session starting...")
        self.load()
        self.check_urgent_tasks()
        self.monitor.start()

    async def stop(self, sync_timeout: float = 10.0) -> None:
        logger.info("Session stopping...")
        await self.monitor.stop()
        # Waiting on the sync worker must not block the event loop
        flushed = await asyncio.to_thread(self.sync.flush, sync_timeout)
        if not flushed:
            logger.warning("⚠️ Some backend writes were still pending at shutdown")
        self.sync.shutdown(wait=False)
        if self.webhook:
            self.webhook.close()


def get_session(request: Request) -> FieldSession:
    """Dependency returning the session started by the application lifespan"""
    return request.app.state.session
