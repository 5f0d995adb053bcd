"""
Backend Sync

The engine applies every mutation to its in-memory store first and only then
forwards it to the backend. Remote calls run on a single background worker
(FIFO, so a create always reaches the backend before a later update of the
same entity) and never block the intent that issued them. Each call yields a
``SyncReceipt`` the caller can inspect or wait on:

    local applied → pending → confirmed | failed

A failed remote write becomes a ``SyncWarning``: it is logged, stored on the
receipt and passed to the ``on_warning`` callback. Local state is never rolled
back.
"""

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Generic, Optional, Protocol, TypeVar

from pydantic import BaseModel
from sqlalchemy.orm import sessionmaker

from ..errors import SyncWarning
from ..models import ClientRecord, TaskRecord, VisitRecord
from ..schemas import Client, Entity, Task, Visit

logger = logging.getLogger(__name__)

T = TypeVar("T")


class EntityKind(str, Enum):
    CLIENT = "client"
    VISIT = "visit"
    TASK = "task"


RECORD_TYPES = {
    EntityKind.CLIENT: ClientRecord,
    EntityKind.VISIT: VisitRecord,
    EntityKind.TASK: TaskRecord,
}

ENTITY_TYPES = {
    EntityKind.CLIENT: Client,
    EntityKind.VISIT: Visit,
    EntityKind.TASK: Task,
}

# Managed by the database, not part of the entity fields
_SERVER_COLUMNS = {"created_at", "updated_at"}


class BackendSync(Protocol):
    def create_entity(self, kind: EntityKind, fields: dict) -> str: ...

    def update_entity(self, kind: EntityKind, entity_id: str, fields: dict) -> None: ...

    def delete_entity(self, kind: EntityKind, entity_id: str) -> None: ...

    def load_all(self) -> dict[EntityKind, list[dict]]: ...


class SqlBackendSync:
    """Backend Sync persisting entities to SQLAlchemy tables"""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    @staticmethod
    def _columns(kind: EntityKind, fields: dict) -> dict:
        table = RECORD_TYPES[kind].__table__
        return {
            key: value
            for key, value in fields.items()
            if key in table.columns and key not in _SERVER_COLUMNS
        }

    @staticmethod
    def _to_fields(record) -> dict:
        return {
            column.name: getattr(record, column.name)
            for column in record.__table__.columns
            if column.name not in _SERVER_COLUMNS
        }

    def create_entity(self, kind: EntityKind, fields: dict) -> str:
        db = self.session_factory()
        try:
            record = RECORD_TYPES[kind](**self._columns(kind, fields))
            db.add(record)
            db.commit()
            return record.id
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def update_entity(self, kind: EntityKind, entity_id: str, fields: dict) -> None:
        db = self.session_factory()
        try:
            record = db.get(RECORD_TYPES[kind], entity_id)
            if not record:
                raise LookupError(f"{kind.value} {entity_id} not found in backend")
            for key, value in self._columns(kind, fields).items():
                if key != "id":
                    setattr(record, key, value)
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def delete_entity(self, kind: EntityKind, entity_id: str) -> None:
        db = self.session_factory()
        try:
            record = db.get(RECORD_TYPES[kind], entity_id)
            if not record:
                logger.debug(f"{kind.value} {entity_id} already absent from backend")
                return
            db.delete(record)
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def load_all(self) -> dict[EntityKind, list[dict]]:
        db = self.session_factory()
        try:
            return {
                kind: [self._to_fields(record) for record in db.query(model).all()]
                for kind, model in RECORD_TYPES.items()
            }
        finally:
            db.close()


class SyncState(str, Enum):
    LOCAL_ONLY = "local_only"  # sync disabled, nothing was sent
    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"


class SyncReceipt:
    """Outcome of one remote write, resolved on the sync worker"""

    def __init__(self, kind: EntityKind, operation: str, entity_id: str):
        self.kind = kind
        self.operation = operation
        self.entity_id = entity_id
        self.state = SyncState.PENDING
        self.remote_id: Optional[str] = None
        self.warning: Optional[SyncWarning] = None
        self._done = threading.Event()

    @property
    def done(self) -> bool:
        return self._done.is_set()

    def wait(self, timeout: Optional[float] = None) -> SyncState:
        self._done.wait(timeout)
        return self.state

    def _resolve(self, state: SyncState) -> None:
        self.state = state
        self._done.set()

    def __repr__(self) -> str:
        return f"<SyncReceipt {self.operation} {self.kind.value} {self.entity_id} {self.state.value}>"


@dataclass
class MutationResult(Generic[T]):
    """Local result of an intent plus the receipts of its remote writes"""

    value: T
    receipts: list[SyncReceipt] = field(default_factory=list)

    @property
    def sync_state(self) -> SyncState:
        states = {receipt.state for receipt in self.receipts}
        if not states or states == {SyncState.LOCAL_ONLY}:
            return SyncState.LOCAL_ONLY
        if SyncState.FAILED in states:
            return SyncState.FAILED
        if SyncState.PENDING in states:
            return SyncState.PENDING
        return SyncState.CONFIRMED

    @property
    def warnings(self) -> list[SyncWarning]:
        return [receipt.warning for receipt in self.receipts if receipt.warning]

    def wait_for_sync(self, timeout: Optional[float] = None) -> SyncState:
        for receipt in self.receipts:
            receipt.wait(timeout)
        return self.sync_state


class SyncDispatcher:
    """Fire-and-forget bridge between lifecycle intents and the backend"""

    def __init__(
        self,
        backend: Optional[BackendSync],
        on_warning: Optional[Callable[[SyncWarning], None]] = None,
    ):
        self.backend = backend
        self.on_warning = on_warning
        self._executor = (
            ThreadPoolExecutor(max_workers=1, thread_name_prefix="backend-sync")
            if backend is not None
            else None
        )
        self._lock = threading.Lock()
        self._outstanding: set[SyncReceipt] = set()

    @property
    def enabled(self) -> bool:
        return self.backend is not None

    def create(self, kind: EntityKind, entity: Entity) -> SyncReceipt:
        fields = entity.model_dump(mode="json")
        return self._submit(SyncReceipt(kind, "create", entity.id), "create_entity", kind, fields)

    def update(self, kind: EntityKind, entity: Entity) -> SyncReceipt:
        fields = entity.model_dump(mode="json")
        return self._submit(
            SyncReceipt(kind, "update", entity.id), "update_entity", kind, entity.id, fields
        )

    def delete(self, kind: EntityKind, entity_id: str) -> SyncReceipt:
        return self._submit(SyncReceipt(kind, "delete", entity_id), "delete_entity", kind, entity_id)

    def _submit(self, receipt: SyncReceipt, method: str, *args: Any) -> SyncReceipt:
        if not self.enabled:
            receipt._resolve(SyncState.LOCAL_ONLY)
            return receipt

        with self._lock:
            self._outstanding.add(receipt)
        try:
            self._executor.submit(self._run, receipt, method, args)
        except RuntimeError as e:
            # Dispatcher shut down while the session was closing
            self._fail(receipt, e)
        return receipt

    def _run(self, receipt: SyncReceipt, method: str, args: tuple) -> None:
        try:
            result = getattr(self.backend, method)(*args)
            if receipt.operation == "create":
                receipt.remote_id = result
            receipt._resolve(SyncState.CONFIRMED)
            logger.debug(f"✅ Synced {receipt.operation} {receipt.kind.value} {receipt.entity_id}")
        except Exception as e:
            self._fail(receipt, e)
        finally:
            with self._lock:
                self._outstanding.discard(receipt)

    def _fail(self, receipt: SyncReceipt, error: BaseException) -> None:
        warning = SyncWarning(receipt.kind.value, receipt.operation, receipt.entity_id, error)
        receipt.warning = warning
        logger.warning(f"⚠️ {warning.message} (local state kept)")

        # Handler runs before the receipt resolves so waiters see its effects
        if self.on_warning:
            try:
                self.on_warning(warning)
            except Exception as e:
                logger.error(f"❌ Sync warning handler failed: {e}")

        receipt._resolve(SyncState.FAILED)
        with self._lock:
            self._outstanding.discard(receipt)

    def flush(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for every outstanding remote write; True when all resolved.

        ``timeout`` bounds the whole wait, not each receipt.
        """
        with self._lock:
            pending = list(self._outstanding)
        deadline = None if timeout is None else time.monotonic() + timeout
        for receipt in pending:
            if deadline is None:
                receipt.wait()
            else:
                receipt.wait(max(0.0, deadline - time.monotonic()))
        return all(receipt.done for receipt in pending)

    def load_all(self) -> dict[EntityKind, list]:
        """Read every persisted entity back as validated entities"""
        if not self.enabled:
            return {kind: [] for kind in EntityKind}
        raw = self.backend.load_all()
        return {
            kind: [ENTITY_TYPES[kind].model_validate(fields) for fields in raw.get(kind, [])]
            for kind in EntityKind
        }

    def shutdown(self, wait: bool = True) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=wait)


class MutationResponse(BaseModel, Generic[T]):
    """API envelope: the locally applied entity plus where its remote write stands"""

    data: T
    sync_state: SyncState

    @classmethod
    def from_result(cls, result: MutationResult) -> "MutationResponse":
        return cls(data=result.value, sync_state=result.sync_state)
