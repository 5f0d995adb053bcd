"""
Alert Sink implementations

Every sink honours the same contract: ``notify(title, body)`` is best-effort
and never raises back into the caller (the proximity monitor loop or a
lifecycle intent). Delivery failures are logged and dropped.
"""

import logging
import threading
from collections import deque
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Optional, Protocol

import httpx

from ..config import ALERT_WEBHOOK_TIMEOUT
from ..schemas import generate_id

logger = logging.getLogger(__name__)

TOAST_KINDS = ("success", "error", "info", "warning")


class AlertSink(Protocol):
    def notify(self, title: str, body: str) -> None: ...


def deliver_alert(sink: AlertSink, title: str, body: str) -> bool:
    """Call a sink without letting its failure escape; returns False when it raised"""
    try:
        sink.notify(title, body)
        return True
    except Exception as e:
        logger.error(f"❌ Failed to deliver alert '{title}': {e}")
        return False


class LoggingAlertSink:
    """Writes alerts to the application log"""

    def notify(self, title: str, body: str) -> None:
        logger.info(f"🔔 {title} - {body}")


class WebhookAlertSink:
    """
    POSTs alerts as JSON to an external webhook (push gateway, chat hook, ...).

    Requests run on a background worker so a slow endpoint never stalls the
    monitor tick.
    """

    def __init__(
        self,
        url: str,
        timeout: float = ALERT_WEBHOOK_TIMEOUT,
        client: Optional[httpx.Client] = None,
    ):
        self.url = url
        self.client = client or httpx.Client(timeout=timeout)
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="alert-webhook")

    def notify(self, title: str, body: str) -> None:
        try:
            self._executor.submit(self._post, title, body)
        except RuntimeError as e:
            # Executor already shut down
            logger.warning(f"⚠️ Alert dropped, webhook sink closed: {title} ({e})")

    def _post(self, title: str, body: str) -> None:
        try:
            response = self.client.post(self.url, json={"title": title, "body": body})
            response.raise_for_status()
            logger.info(f"✅ Alert delivered to webhook: {title}")
        except httpx.HTTPError as e:
            logger.error(f"❌ Failed to deliver alert to webhook {self.url}: {e}")

    def close(self) -> None:
        """Flush queued deliveries and release the HTTP client"""
        self._executor.shutdown(wait=True)
        self.client.close()


@dataclass(frozen=True)
class Toast:
    message: str
    kind: str = "info"
    id: str = field(default_factory=generate_id)
    created_at: datetime = field(default_factory=datetime.now)


class NotificationCenter:
    """
    In-memory toast inbox read by the UI.

    Alerts arrive through ``notify`` as info toasts. The API routes push
    success and info toasts for completed intents; the session pushes error
    and warning toasts for failed loads, sync failures and urgent tasks.
    """

    def __init__(self, max_toasts: int = 100):
        self._lock = threading.Lock()
        self._toasts: deque[Toast] = deque(maxlen=max_toasts)

    def push(self, message: str, kind: str = "info") -> Toast:
        if kind not in TOAST_KINDS:
            raise ValueError(f"Unknown toast kind: {kind}")
        toast = Toast(message=message, kind=kind)
        with self._lock:
            self._toasts.append(toast)
        return toast

    def notify(self, title: str, body: str) -> None:
        self.push(title, "info")

    def list(self) -> list[Toast]:
        with self._lock:
            return list(self._toasts)

    def dismiss(self, toast_id: str) -> bool:
        with self._lock:
            for toast in self._toasts:
                if toast.id == toast_id:
                    self._toasts.remove(toast)
                    return True
        return False

    def clear(self) -> None:
        with self._lock:
            self._toasts.clear()


class FanoutAlertSink:
    """
    Delivers each alert to several channels (toast + native notification).

    A failing channel is logged and skipped; the remaining channels still
    receive the alert.
    """

    def __init__(self, sinks: Iterable[AlertSink]):
        self.sinks = list(sinks)

    def notify(self, title: str, body: str) -> None:
        for sink in self.sinks:
            channel = type(sink).__name__
            try:
                sink.notify(title, body)
            except Exception as e:
                logger.error(f"❌ Alert channel {channel} failed for '{title}': {e}")
