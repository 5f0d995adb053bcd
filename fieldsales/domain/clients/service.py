"""Client service - Business logic for client operations"""

import logging
from dataclasses import dataclass
from typing import Optional

from ...config import PROSPECTING_TARGET
from ...errors import NotFoundError, ValidationError
from ...schemas import Client
from ...services.sync_service import EntityKind, MutationResult, SyncDispatcher
from ...shared.validators import validate_email, validate_moz_phone
from ...store import EntityStore
from .schemas import ClientCreate, ClientUpdate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProspectingProgress:
    count: int
    target: int

    @property
    def fraction(self) -> float:
        """Share of the target reached, capped at 1.0 for progress bars"""
        if self.target <= 0:
            return 1.0
        return min(1.0, self.count / self.target)

    @property
    def reached(self) -> bool:
        return self.count >= self.target


class ClientService:
    """Service layer for client business logic"""

    def __init__(
        self,
        store: EntityStore,
        sync: SyncDispatcher,
        prospecting_target: int = PROSPECTING_TARGET,
    ):
        self.store = store
        self.sync = sync
        self.prospecting_target = prospecting_target

    def get_clients(self) -> list[Client]:
        """Get all clients ordered by name"""
        return sorted(self.store.clients.all(), key=lambda c: c.name.lower())

    def get_client(self, client_id: str) -> Client:
        """Get a specific client"""
        client = self.store.clients.get(client_id)
        if not client:
            raise NotFoundError(f"Client {client_id} not found")
        return client

    def create_client(self, data: ClientCreate) -> MutationResult[Client]:
        """Create a new client with validation"""
        if not (data.name or "").strip() or not (data.contact_person or "").strip():
            raise ValidationError("Company name and contact person are required")

        try:
            phone = validate_moz_phone(data.phone) or ""
            email = validate_email(data.email) or ""
        except ValueError as e:
            raise ValidationError(str(e))

        fields = data.model_dump(exclude_none=True)
        fields.update(
            name=data.name.strip(),
            contact_person=data.contact_person.strip(),
            phone=phone,
            email=email,
            # New clients always start with no prospecting visits
            prospecting_count=0,
        )
        client = Client(**fields)

        with self.store.atomic():
            self.store.clients.insert(client)
            receipts = [self.sync.create(EntityKind.CLIENT, client)]

        logger.info(f"✅ Client {client.id} created: {client.name}")
        return MutationResult(client, receipts)

    def update_client(self, client_id: str, data: ClientUpdate) -> MutationResult[Client]:
        """Update contact and classification fields of a client"""
        updates = data.model_dump(exclude_none=True)

        try:
            if "phone" in updates:
                updates["phone"] = validate_moz_phone(updates["phone"]) or ""
            if "email" in updates:
                updates["email"] = validate_email(updates["email"]) or ""
        except ValueError as e:
            raise ValidationError(str(e))

        for required in ("name", "contact_person"):
            if required in updates and not updates[required].strip():
                raise ValidationError(f"{required.replace('_', ' ').capitalize()} cannot be empty")

        return self._apply(client_id, updates)

    def update_client_notes(self, client_id: str, notes: Optional[str]) -> MutationResult[Client]:
        """Replace the free-text notes of a client"""
        return self._apply(client_id, {"notes": notes or ""})

    def delete_client(self, client_id: str) -> MutationResult[Client]:
        """
        Delete a client.

        Visits referencing the client are kept; the proximity monitor skips
        them once their client is gone.
        """
        with self.store.atomic():
            client = self.get_client(client_id)
            self.store.clients.delete(client_id)
            receipts = [self.sync.delete(EntityKind.CLIENT, client_id)]

        logger.info(f"🗑️ Client {client_id} deleted")
        return MutationResult(client, receipts)

    def prospecting_progress(self, client_id: str) -> ProspectingProgress:
        client = self.get_client(client_id)
        return ProspectingProgress(count=client.prospecting_count, target=self.prospecting_target)

    def _apply(self, client_id: str, updates: dict) -> MutationResult[Client]:
        with self.store.atomic():
            client = self.get_client(client_id)
            if not updates:
                return MutationResult(client)
            client = client.model_copy(update=updates)
            self.store.clients.replace(client)
            receipts = [self.sync.update(EntityKind.CLIENT, client)]

        logger.info(f"✅ Client {client.id} updated: {', '.join(sorted(updates))}")
        return MutationResult(client, receipts)
