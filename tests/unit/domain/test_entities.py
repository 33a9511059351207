"""Tests for domain entities and value objects."""

from dataclasses import FrozenInstanceError

import pytest

from fakes import SCHEDULED, make_appointment, make_route, make_worker

from app.domain.entities.appointment import StorageUnitRef
from app.domain.entities.dispatch_task import DispatchTask
from app.domain.value_objects.edit_request import UNSET, EditRequest
from app.domain.value_objects.enums import (
    AppointmentType,
    TaskNotificationStatus,
    TaskStep,
    WorkerType,
)
from app.domain.value_objects.geo_point import GeoPoint


def test_task_requires_unit_number():
    with pytest.raises(ValueError):
        DispatchTask(id=None, appointment_id=1, step=TaskStep.PICKUP, unit_number=None)
    with pytest.raises(ValueError):
        DispatchTask(id=None, appointment_id=1, step=TaskStep.PICKUP, unit_number=0)


def test_task_step_coerced_from_int():
    task = DispatchTask(id=None, appointment_id=1, step=2, unit_number=1)
    assert task.step is TaskStep.CUSTOMER_STOP


def test_unlink_worker_clears_bookkeeping():
    worker = make_worker()
    task = DispatchTask(
        id=1, appointment_id=1, step=TaskStep.PICKUP, unit_number=1,
        worker_id=worker.id, worker=worker,
    )
    task.mark_pending_reconfirmation(worker.id, SCHEDULED)
    task.unlink_worker()
    assert task.worker_id is None
    assert task.worker is None
    assert task.notification_status == TaskNotificationStatus.NONE
    assert task.last_notified_worker_id is None
    assert task.notification_sent_at is None


def test_mark_pending_resets_previous_response():
    task = DispatchTask(
        id=1, appointment_id=1, step=TaskStep.PICKUP, unit_number=1,
        worker_accepted_at=SCHEDULED,
    )
    task.mark_pending_reconfirmation(10, SCHEDULED)
    assert task.notification_status == TaskNotificationStatus.PENDING_RECONFIRMATION
    assert task.last_notified_worker_id == 10
    assert task.worker_accepted_at is None


def test_worker_type_membership():
    assert make_worker().is_directly_managed()
    assert not make_worker(worker_type=WorkerType.PARTNER).is_directly_managed()


def test_appointment_unit_helpers():
    worker = make_worker()
    a = make_appointment(
        unit_count=2,
        appointment_type=AppointmentType.STORAGE_ACCESS,
        selected_units=[StorageUnitRef(1, "A-1"), StorageUnitRef(2, "A-2")],
        workers={2: worker},
    )
    assert a.unit_label(2) == "A-2"
    assert a.unit_label(3) is None
    assert len(a.tasks_for_unit(1)) == 3
    assert a.highest_unit_number() == 2


def test_route_was_offered_to():
    route = make_route(offered_worker_ids=[3, 4])
    assert route.was_offered_to(3)
    assert not route.was_offered_to(5)


def test_edit_request_partner_sentinel():
    assert not EditRequest().supplies_partner
    assert EditRequest(partner_id=None).supplies_partner
    assert EditRequest().partner_id is UNSET


def test_edit_request_normalizes_unit_ids():
    assert EditRequest(selected_unit_ids=[3, 1]).selected_unit_ids == (3, 1)


def test_geo_point_location_order():
    assert GeoPoint(latitude=37.7, longitude=-122.4).to_location() == [-122.4, 37.7]


def test_geo_point_is_frozen():
    p = GeoPoint(latitude=1.0, longitude=2.0)
    with pytest.raises(FrozenInstanceError):
        p.latitude = 3.0
