"""
In-memory Entity Store

Authoritative collections of clients, visits and tasks keyed by identifier.
All collections share one re-entrant lock: services hold it across a whole
intent with ``store.atomic()`` and the proximity monitor takes a snapshot under
it, so a reader never sees one half of a multi-entity mutation.
"""

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Generic, Iterable, Iterator, Optional, TypeVar

from .schemas import Client, Entity, Task, Visit

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=Entity)


class EntityCollection(Generic[T]):
    """Mapping of identifier -> entity for one entity kind"""

    def __init__(self, kind: str, lock: threading.RLock):
        self.kind = kind
        self._lock = lock
        self._items: dict[str, T] = {}

    def get(self, entity_id: str) -> Optional[T]:
        with self._lock:
            return self._items.get(entity_id)

    def insert(self, entity: T) -> T:
        """Add a new entity; identifiers are never reused"""
        with self._lock:
            if entity.id in self._items:
                raise KeyError(f"{self.kind} {entity.id} already exists")
            self._items[entity.id] = entity
            return entity

    def replace(self, entity: T) -> T:
        """Swap the stored entity with the same identifier"""
        with self._lock:
            if entity.id not in self._items:
                raise KeyError(f"{self.kind} {entity.id} does not exist")
            self._items[entity.id] = entity
            return entity

    def delete(self, entity_id: str) -> Optional[T]:
        with self._lock:
            return self._items.pop(entity_id, None)

    def all(self) -> list[T]:
        with self._lock:
            return list(self._items.values())

    def load(self, entities: Iterable[T]) -> None:
        with self._lock:
            self._items = {entity.id: entity for entity in entities}

    def copy(self) -> dict[str, T]:
        with self._lock:
            return dict(self._items)

    def __contains__(self, entity_id: object) -> bool:
        with self._lock:
            return entity_id in self._items

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)


@dataclass(frozen=True)
class StoreSnapshot:
    """Point-in-time view of every collection"""

    clients: dict[str, Client]
    visits: dict[str, Visit]
    tasks: dict[str, Task]


class EntityStore:
    """Single source of truth for the engine"""

    def __init__(self):
        self._lock = threading.RLock()
        self.clients: EntityCollection[Client] = EntityCollection("client", self._lock)
        self.visits: EntityCollection[Visit] = EntityCollection("visit", self._lock)
        self.tasks: EntityCollection[Task] = EntityCollection("task", self._lock)

    @contextmanager
    def atomic(self) -> Iterator["EntityStore"]:
        """Hold the store lock for the duration of one intent"""
        with self._lock:
            yield self

    def snapshot(self) -> StoreSnapshot:
        # Entities are immutable, so shallow copies are enough
        with self._lock:
            return StoreSnapshot(
                clients=self.clients.copy(),
                visits=self.visits.copy(),
                tasks=self.tasks.copy(),
            )

    def load(
        self,
        clients: Iterable[Client] = (),
        visits: Iterable[Visit] = (),
        tasks: Iterable[Task] = (),
    ) -> None:
        """Replace every collection, used when a session reloads from the backend"""
        with self._lock:
            self.clients.load(clients)
            self.visits.load(visits)
            self.tasks.load(tasks)
            logger.info(
                f"📦 Store loaded: {len(self.clients)} clients, "
                f"{len(self.visits)} visits, {len(self.tasks)} tasks"
            )
