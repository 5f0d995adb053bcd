"""
Shared fixtures: a fixed clock on the morning of 2026-10-19, a recording alert
sink, an in-memory backend and the services wired the way a session wires them.
"""

import threading
from datetime import date, datetime, time

import pytest

from fieldsales.clock import FixedClock
from fieldsales.database import build_engine, build_session_factory
from fieldsales.domain.clients.schemas import ClientCreate
from fieldsales.domain.clients.service import ClientService
from fieldsales.domain.tasks.service import TaskService
from fieldsales.domain.visits.service import VisitService
from fieldsales.schemas import Visit, VisitType
from fieldsales.services.proximity_monitor import ProximityAlertMonitor
from fieldsales.services.sync_service import EntityKind, SqlBackendSync, SyncDispatcher
from fieldsales.store import EntityStore

TODAY = date(2026, 10, 19)


class RecordingSink:
    """Alert sink keeping every (title, body) pair"""

    def __init__(self):
        self.alerts: list[tuple[str, str]] = []

    def notify(self, title: str, body: str) -> None:
        self.alerts.append((title, body))

    def titles(self) -> list[str]:
        return [title for title, _ in self.alerts]


class InMemoryBackend:
    """Backend Sync double; set ``fail`` to make every remote call raise"""

    def __init__(self):
        self.rows: dict[EntityKind, dict[str, dict]] = {kind: {} for kind in EntityKind}
        self.calls: list[tuple[str, EntityKind, str]] = []
        self.fail = False
        self.gate = threading.Event()
        self.gate.set()

    def _check(self):
        self.gate.wait(5)
        if self.fail:
            raise ConnectionError("backend unreachable")

    def create_entity(self, kind, fields):
        self._check()
        self.rows[kind][fields["id"]] = dict(fields)
        self.calls.append(("create", kind, fields["id"]))
        return fields["id"]

    def update_entity(self, kind, entity_id, fields):
        self._check()
        self.rows[kind][entity_id] = dict(fields)
        self.calls.append(("update", kind, entity_id))

    def delete_entity(self, kind, entity_id):
        self._check()
        self.rows[kind].pop(entity_id, None)
        self.calls.append(("delete", kind, entity_id))

    def load_all(self):
        self._check()
        return {kind: list(rows.values()) for kind, rows in self.rows.items()}


@pytest.fixture
def clock():
    return FixedClock(datetime.combine(TODAY, time(8, 0)))


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def store():
    return EntityStore()


@pytest.fixture
def sync():
    """Local-only dispatcher (no backend)"""
    return SyncDispatcher(None)


@pytest.fixture
def backend():
    return InMemoryBackend()


@pytest.fixture
def sql_backend():
    return SqlBackendSync(build_session_factory(build_engine("sqlite:///:memory:")))


@pytest.fixture
def client_service(store, sync):
    return ClientService(store, sync)


@pytest.fixture
def visit_service(store, clock, sink, sync):
    return VisitService(store, clock, sink, sync)


@pytest.fixture
def task_service(store, clock, sync):
    return TaskService(store, clock, sync)


@pytest.fixture
def monitor(store, clock, sink):
    return ProximityAlertMonitor(store, clock, sink, interval_seconds=60, window_minutes=30)


@pytest.fixture
def client(client_service):
    return client_service.create_client(
        ClientCreate(name="Hotel Tete", contact_person="Ana Machava", phone="84 123 4567")
    ).value


def add_visit(store, client_id, at, visit_type=VisitType.FOLLOW_UP, **kwargs):
    """Insert a visit straight into the store, bypassing lifecycle checks"""
    visit = Visit(
        client_id=client_id,
        scheduled_date=at.date(),
        scheduled_time=at.time(),
        type=visit_type,
        **kwargs,
    )
    return store.visits.insert(visit)
