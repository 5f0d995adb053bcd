"""
Visit lifecycle service
Validates and applies visit status transitions and the prospecting counter
update that comes with booking a prospecting visit
"""

import logging
from datetime import date, time
from typing import Iterable, Optional, Union

from ...clock import Clock
from ...errors import InvalidTransitionError, NotFoundError, ValidationError
from ...schemas import Opportunity, Visit, VisitStatus, VisitType
from ...services.notification_service import AlertSink, deliver_alert
from ...services.sync_service import EntityKind, MutationResult, SyncDispatcher
from ...shared.validators import is_date_in_past
from ...store import EntityStore

logger = logging.getLogger(__name__)

# scheduled → completed | cancelled; both terminal
VALID_TRANSITIONS = {
    VisitStatus.SCHEDULED: {VisitStatus.COMPLETED, VisitStatus.CANCELLED},
    VisitStatus.COMPLETED: set(),
    VisitStatus.CANCELLED: set(),
}


def validate_status_transition(current_status: VisitStatus, new_status: VisitStatus) -> bool:
    """
    Check whether a visit may move from current_status to new_status.

    Terminal visits reject every transition, including a repeat of their own
    status, and a scheduled visit cannot be "rescheduled" through this path.
    """
    return new_status in VALID_TRANSITIONS.get(current_status, set())


def _normalize_services(services: Union[Iterable[str], str, None]) -> tuple[str, ...]:
    # A single service name is one service, not a sequence of characters
    if isinstance(services, str):
        services = [services]
    # Set semantics, first occurrence wins the display position
    cleaned = (service.strip() for service in services or () if service and service.strip())
    return tuple(dict.fromkeys(cleaned))


class VisitService:
    """Visit Lifecycle Manager: the only writer of visit status"""

    def __init__(
        self,
        store: EntityStore,
        clock: Clock,
        sink: AlertSink,
        sync: SyncDispatcher,
    ):
        self.store = store
        self.clock = clock
        self.sink = sink
        self.sync = sync

    def get_visit(self, visit_id: str) -> Visit:
        visit = self.store.visits.get(visit_id)
        if not visit:
            raise NotFoundError(f"Visit {visit_id} not found")
        return visit

    def list_visits(
        self,
        on_date: Optional[date] = None,
        status: Optional[VisitStatus] = None,
        client_id: Optional[str] = None,
    ) -> list[Visit]:
        """Visits ordered by date then time, optionally filtered"""
        visits = self.store.visits.all()
        if on_date is not None:
            visits = [v for v in visits if v.scheduled_date == on_date]
        if status is not None:
            visits = [v for v in visits if v.status == status]
        if client_id is not None:
            visits = [v for v in visits if v.client_id == client_id]
        return sorted(visits, key=lambda v: (v.scheduled_date, v.scheduled_time))

    def schedule_visit(
        self,
        client_id: Optional[str],
        scheduled_date: Optional[date],
        scheduled_time: Optional[time],
        visit_type: Union[VisitType, str],
        planned_services: Union[Iterable[str], str] = (),
        notes: str = "",
    ) -> MutationResult[Visit]:
        """
        Book a new visit for an existing client.

        A prospecting visit bumps the client's prospecting counter as part of
        the same store mutation: the counter tracks visits booked, not visits
        held, so later completion or cancellation never touches it again.

        Raises:
            ValidationError: missing client, date or time, unknown type, or a
                date before today
        """
        if not client_id:
            raise ValidationError("Select a client for the visit")
        if scheduled_date is None:
            raise ValidationError("Visit date is required")
        if scheduled_time is None:
            raise ValidationError("Visit time is required")
        try:
            visit_type = VisitType(visit_type)
        except ValueError:
            raise ValidationError(f"Unknown visit type: {visit_type}")

        today = self.clock.now().date()
        if is_date_in_past(scheduled_date, today):
            raise ValidationError("Cannot schedule visits in the past")

        with self.store.atomic():
            client = self.store.clients.get(client_id)
            if not client:
                raise ValidationError(f"Client {client_id} not found")

            visit = Visit(
                client_id=client.id,
                scheduled_date=scheduled_date,
                scheduled_time=scheduled_time,
                type=visit_type,
                status=VisitStatus.SCHEDULED,
                notes=notes or "",
                planned_services=_normalize_services(planned_services),
            )
            self.store.visits.insert(visit)
            receipts = [self.sync.create(EntityKind.VISIT, visit)]

            if visit_type == VisitType.PROSPECTING:
                client = client.model_copy(
                    update={"prospecting_count": client.prospecting_count + 1}
                )
                self.store.clients.replace(client)
                receipts.append(self.sync.update(EntityKind.CLIENT, client))
                logger.info(
                    f"📈 Client {client.id} prospecting count → {client.prospecting_count}"
                )

        logger.info(
            f"📅 Visit {visit.id} scheduled for {client.name} on "
            f"{visit.scheduled_date} at {visit.scheduled_time:%H:%M} ({visit_type.value})"
        )
        deliver_alert(
            self.sink,
            "Schedule updated",
            f"Visit booked for {visit.scheduled_date.isoformat()} with {client.name}",
        )
        return MutationResult(visit, receipts)

    def complete_visit(
        self, visit_id: str, opportunities: Iterable[Union[Opportunity, dict]] = ()
    ) -> MutationResult[Visit]:
        """
        Mark a scheduled visit as completed and attach the opportunities found.

        Raises:
            NotFoundError: unknown visit
            InvalidTransitionError: visit already completed or cancelled
            ValidationError: malformed opportunity or negative estimate
        """
        with self.store.atomic():
            visit = self.get_visit(visit_id)
            self._check_transition(visit, VisitStatus.COMPLETED)

            recorded = []
            for item in opportunities:
                try:
                    opportunity = Opportunity.model_validate(item)
                except ValueError as e:
                    raise ValidationError(f"Invalid opportunity: {e}")
                if opportunity.estimate is not None and opportunity.estimate < 0:
                    raise ValidationError(
                        f"Opportunity estimate for {opportunity.service} cannot be negative"
                    )
                recorded.append(opportunity)

            visit = visit.model_copy(
                update={"status": VisitStatus.COMPLETED, "opportunities": tuple(recorded)}
            )
            self.store.visits.replace(visit)
            receipts = [self.sync.update(EntityKind.VISIT, visit)]

        logger.info(f"✅ Visit {visit.id} completed with {len(recorded)} opportunities")
        return MutationResult(visit, receipts)

    def update_visit_status(
        self, visit_id: str, status: Union[VisitStatus, str]
    ) -> MutationResult[Visit]:
        """
        Generic transition, used for cancellation.

        Completing through this path records no opportunities.
        """
        try:
            status = VisitStatus(status)
        except ValueError:
            raise ValidationError(f"Unknown visit status: {status}")

        if status == VisitStatus.COMPLETED:
            return self.complete_visit(visit_id)

        with self.store.atomic():
            visit = self.get_visit(visit_id)
            self._check_transition(visit, status)

            visit = visit.model_copy(update={"status": status})
            self.store.visits.replace(visit)
            receipts = [self.sync.update(EntityKind.VISIT, visit)]

        logger.info(f"✅ Visit {visit.id} transitioned: scheduled → {status.value}")
        return MutationResult(visit, receipts)

    def delete_visit(self, visit_id: str) -> MutationResult[Visit]:
        """Remove a visit; the prospecting counter it contributed to is kept"""
        with self.store.atomic():
            visit = self.get_visit(visit_id)
            self.store.visits.delete(visit_id)
            receipts = [self.sync.delete(EntityKind.VISIT, visit_id)]

        logger.info(f"🗑️ Visit {visit_id} deleted")
        return MutationResult(visit, receipts)

    @staticmethod
    def _check_transition(visit: Visit, new_status: VisitStatus) -> None:
        if not validate_status_transition(visit.status, new_status):
            logger.warning(
                f"⚠️ Rejected transition for visit {visit.id}: "
                f"{visit.status.value} → {new_status.value}"
            )
            raise InvalidTransitionError(
                f"Visit {visit.id} is {visit.status.value} and cannot become {new_status.value}"
            )
