"""
Tests for the visit lifecycle service.

Tests cover:
- Scheduling validation (missing fields, past dates, unknown client)
- Prospecting counter bumped once, at booking time
- Completion with opportunities
- Terminal statuses reject every further transition
"""

from datetime import time, timedelta

import pytest

from conftest import TODAY

from fieldsales.domain.visits.service import validate_status_transition
from fieldsales.errors import InvalidTransitionError, NotFoundError, ValidationError
from fieldsales.schemas import VisitStatus, VisitType
from fieldsales.services.sync_service import SyncState


def schedule(service, client, **overrides):
    kwargs = dict(
        client_id=client.id,
        scheduled_date=TODAY,
        scheduled_time=time(9, 0),
        visit_type=VisitType.PROSPECTING,
    )
    kwargs.update(overrides)
    return service.schedule_visit(**kwargs)


class TestScheduleVisit:
    def test_prospecting_visit_increments_counter(self, visit_service, store, client):
        assert client.prospecting_count == 0

        result = schedule(visit_service, client)

        assert result.value.status == VisitStatus.SCHEDULED
        assert store.visits.get(result.value.id) == result.value
        assert store.clients.get(client.id).prospecting_count == 1

    def test_other_visit_types_leave_counter_alone(self, visit_service, store, client):
        schedule(visit_service, client, visit_type=VisitType.FOLLOW_UP)
        schedule(visit_service, client, visit_type="technical")

        assert store.clients.get(client.id).prospecting_count == 0
        assert len(store.visits) == 2

    def test_counter_is_not_clamped_at_target(self, visit_service, store, client):
        for _ in range(4):
            schedule(visit_service, client)

        assert store.clients.get(client.id).prospecting_count == 4

    def test_counter_kept_after_cancel_and_complete(self, visit_service, store, client):
        first = schedule(visit_service, client).value
        second = schedule(visit_service, client).value

        visit_service.update_visit_status(first.id, VisitStatus.CANCELLED)
        visit_service.complete_visit(second.id, [])

        assert store.clients.get(client.id).prospecting_count == 2

    def test_past_date_rejected_without_mutation(self, visit_service, store, client):
        with pytest.raises(ValidationError, match="past"):
            schedule(visit_service, client, scheduled_date=TODAY - timedelta(days=1))

        assert len(store.visits) == 0
        assert store.clients.get(client.id).prospecting_count == 0

    def test_today_is_allowed_even_if_time_passed(self, visit_service, clock, client):
        clock.set(clock.now().replace(hour=18))
        result = schedule(visit_service, client, scheduled_time=time(7, 0))
        assert result.value.scheduled_date == TODAY

    def test_missing_date_rejected(self, visit_service, client):
        with pytest.raises(ValidationError, match="date"):
            schedule(visit_service, client, scheduled_date=None)

    def test_missing_time_rejected(self, visit_service, client):
        with pytest.raises(ValidationError, match="time"):
            schedule(visit_service, client, scheduled_time=None)

    def test_missing_client_rejected(self, visit_service, store):
        with pytest.raises(ValidationError):
            visit_service.schedule_visit(None, TODAY, time(9, 0), VisitType.PROSPECTING)
        with pytest.raises(ValidationError, match="not found"):
            visit_service.schedule_visit("nope", TODAY, time(9, 0), VisitType.PROSPECTING)
        assert len(store.visits) == 0

    def test_unknown_type_rejected(self, visit_service, client):
        with pytest.raises(ValidationError, match="type"):
            schedule(visit_service, client, visit_type="courtesy")

    def test_planned_services_deduplicated_in_order(self, visit_service, client):
        visit = schedule(
            visit_service,
            client,
            planned_services=["CCTV", "Networking", "CCTV", " ", "Software"],
        ).value
        assert visit.planned_services == ("CCTV", "Networking", "Software")

    def test_single_service_name_is_not_split(self, visit_service, client):
        visit = schedule(visit_service, client, planned_services="CCTV").value
        assert visit.planned_services == ("CCTV",)

    def test_no_planned_services(self, visit_service, client):
        visit = schedule(visit_service, client, planned_services=None).value
        assert visit.planned_services == ()

    def test_notifies_sink(self, visit_service, sink, client):
        schedule(visit_service, client)
        assert sink.alerts == [("Schedule updated", "Visit booked for 2026-10-19 with Hotel Tete")]

    def test_sink_failure_does_not_abort_scheduling(self, visit_service, store, client):
        class BrokenSink:
            def notify(self, title, body):
                raise RuntimeError("no permission")

        visit_service.sink = BrokenSink()
        result = schedule(visit_service, client)
        assert result.value.id in store.visits

    def test_local_only_without_backend(self, visit_service, client):
        result = schedule(visit_service, client)
        assert result.sync_state == SyncState.LOCAL_ONLY
        assert len(result.receipts) == 2


class TestCompleteVisit:
    def test_complete_with_opportunities(self, visit_service, store, client):
        visit = schedule(visit_service, client, visit_type=VisitType.FOLLOW_UP).value

        result = visit_service.complete_visit(
            visit.id,
            [{"service": "CCTV", "estimate": 1500.0}, {"service": "Networking"}],
        )

        completed = store.visits.get(visit.id)
        assert completed.status == VisitStatus.COMPLETED
        assert [o.service for o in completed.opportunities] == ["CCTV", "Networking"]
        assert completed.opportunities[0].estimate == 1500.0
        assert completed.opportunities[1].estimate is None
        assert completed.opportunities[0].description == "Interest in CCTV"
        assert result.value == completed

    def test_completion_does_not_touch_counter(self, visit_service, store, client):
        visit = schedule(visit_service, client).value
        visit_service.complete_visit(visit.id, [{"service": "Software", "estimate": 10}])
        assert store.clients.get(client.id).prospecting_count == 1

    def test_unknown_visit(self, visit_service):
        with pytest.raises(NotFoundError):
            visit_service.complete_visit("missing", [])

    def test_complete_cancelled_visit_fails(self, visit_service, store, client):
        visit = schedule(visit_service, client).value
        visit_service.update_visit_status(visit.id, VisitStatus.CANCELLED)

        with pytest.raises(InvalidTransitionError):
            visit_service.complete_visit(visit.id, [{"service": "CCTV", "estimate": 100}])

        unchanged = store.visits.get(visit.id)
        assert unchanged.status == VisitStatus.CANCELLED
        assert unchanged.opportunities == ()

    def test_complete_twice_fails(self, visit_service, store, client):
        visit = schedule(visit_service, client).value
        visit_service.complete_visit(visit.id, [{"service": "CCTV"}])

        with pytest.raises(InvalidTransitionError):
            visit_service.complete_visit(visit.id, [])

        assert len(store.visits.get(visit.id).opportunities) == 1

    def test_negative_estimate_rejected(self, visit_service, store, client):
        visit = schedule(visit_service, client).value

        with pytest.raises(ValidationError, match="negative"):
            visit_service.complete_visit(visit.id, [{"service": "CCTV", "estimate": -5}])

        assert store.visits.get(visit.id).status == VisitStatus.SCHEDULED

    def test_zero_estimate_accepted(self, visit_service, client):
        visit = schedule(visit_service, client).value
        result = visit_service.complete_visit(visit.id, [{"service": "CCTV", "estimate": 0}])
        assert result.value.opportunities[0].estimate == 0


class TestUpdateVisitStatus:
    def test_cancel_scheduled_visit(self, visit_service, store, client):
        visit = schedule(visit_service, client).value
        result = visit_service.update_visit_status(visit.id, "cancelled")
        assert result.value.status == VisitStatus.CANCELLED
        assert store.visits.get(visit.id).status == VisitStatus.CANCELLED

    @pytest.mark.parametrize("terminal", [VisitStatus.COMPLETED, VisitStatus.CANCELLED])
    @pytest.mark.parametrize(
        "target", [VisitStatus.SCHEDULED, VisitStatus.COMPLETED, VisitStatus.CANCELLED]
    )
    def test_terminal_visits_never_transition(self, visit_service, store, client, terminal, target):
        visit = schedule(visit_service, client).value
        visit_service.update_visit_status(visit.id, terminal)
        before = store.visits.get(visit.id)

        with pytest.raises(InvalidTransitionError):
            visit_service.update_visit_status(visit.id, target)

        assert store.visits.get(visit.id) == before

    def test_scheduled_to_scheduled_rejected(self, visit_service, client):
        visit = schedule(visit_service, client).value
        with pytest.raises(InvalidTransitionError):
            visit_service.update_visit_status(visit.id, VisitStatus.SCHEDULED)

    def test_complete_through_status_path(self, visit_service, client):
        visit = schedule(visit_service, client).value
        result = visit_service.update_visit_status(visit.id, VisitStatus.COMPLETED)
        assert result.value.status == VisitStatus.COMPLETED
        assert result.value.opportunities == ()

    def test_unknown_status(self, visit_service, client):
        visit = schedule(visit_service, client).value
        with pytest.raises(ValidationError):
            visit_service.update_visit_status(visit.id, "postponed")

    def test_unknown_visit(self, visit_service):
        with pytest.raises(NotFoundError):
            visit_service.update_visit_status("missing", VisitStatus.CANCELLED)


class TestTransitionTable:
    def test_valid_transitions(self):
        assert validate_status_transition(VisitStatus.SCHEDULED, VisitStatus.COMPLETED)
        assert validate_status_transition(VisitStatus.SCHEDULED, VisitStatus.CANCELLED)

    def test_terminal_statuses(self):
        for terminal in (VisitStatus.COMPLETED, VisitStatus.CANCELLED):
            assert terminal.is_terminal
            for target in VisitStatus:
                assert not validate_status_transition(terminal, target)


class TestDeleteAndQuery:
    def test_delete_keeps_counter(self, visit_service, store, client):
        visit = schedule(visit_service, client).value
        visit_service.delete_visit(visit.id)
        assert visit.id not in store.visits
        assert store.clients.get(client.id).prospecting_count == 1

    def test_list_visits_sorted_and_filtered(self, visit_service, client):
        late = schedule(visit_service, client, scheduled_time=time(15, 0)).value
        early = schedule(visit_service, client, scheduled_time=time(9, 30)).value
        tomorrow = schedule(
            visit_service, client, scheduled_date=TODAY + timedelta(days=1)
        ).value
        visit_service.update_visit_status(late.id, VisitStatus.CANCELLED)

        assert [v.id for v in visit_service.list_visits()] == [early.id, late.id, tomorrow.id]
        assert [v.id for v in visit_service.list_visits(on_date=TODAY)] == [early.id, late.id]
        assert [v.id for v in visit_service.list_visits(status=VisitStatus.CANCELLED)] == [late.id]
