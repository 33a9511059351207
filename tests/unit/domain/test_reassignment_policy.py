"""Tests for the worker reassignment policy."""

from datetime import timedelta

from fakes import SCHEDULED, make_tasks, make_worker

from app.domain.policies.reassignment import (
    UnitAssignment,
    assignments_from_tasks,
    plan_reassignment,
    plan_switch,
    required_worker_type,
    unit_arrival_time,
)
from app.domain.value_objects.enums import PlanSwitch, PlanType, WorkerType

NETWORK = make_worker(10)
NETWORK_2 = make_worker(11)
PARTNER = make_worker(20, worker_type=WorkerType.PARTNER)


def test_plan_switch_directions():
    assert plan_switch(PlanType.SELF_SERVICE, PlanType.FULL_SERVICE) == PlanSwitch.SELF_TO_FULL
    assert plan_switch(PlanType.FULL_SERVICE, PlanType.SELF_SERVICE) == PlanSwitch.FULL_TO_SELF
    assert plan_switch(PlanType.SELF_SERVICE, PlanType.THIRD_PARTY_LOADING) is None


def test_required_worker_type():
    assert required_worker_type(PlanType.FULL_SERVICE, 1) == WorkerType.PARTNER
    assert required_worker_type(PlanType.FULL_SERVICE, 2) == WorkerType.NETWORK
    assert required_worker_type(PlanType.SELF_SERVICE, 1) == WorkerType.NETWORK


def test_unit_arrival_is_staggered():
    assert unit_arrival_time(SCHEDULED, 1) == SCHEDULED
    assert unit_arrival_time(SCHEDULED, 3) == SCHEDULED + timedelta(minutes=90)


def test_assignments_dedupe_worker_per_unit():
    tasks = make_tasks(1, 1, NETWORK) + make_tasks(1, 2, None)
    assignments = assignments_from_tasks(tasks)
    assert assignments == [UnitAssignment(1, NETWORK)]


def test_self_to_full_shifts_network_worker_off_unit_one():
    plan = plan_reassignment(
        [UnitAssignment(1, NETWORK)],
        PlanType.SELF_SERVICE, PlanType.FULL_SERVICE,
        old_unit_count=1, new_unit_count=2,
        scheduled_at=SCHEDULED, partner_id=7,
    )
    (shift,) = plan.workers_to_keep
    assert (shift.current_unit, shift.new_unit) == (1, 2)
    assert shift.new_arrival == SCHEDULED + timedelta(minutes=45)
    assert plan.workers_to_remove == ()
    assert [s.unit_number for s in plan.unit_slots] == [1]
    assert plan.unit_slots[0].required_type == WorkerType.PARTNER


def test_self_to_full_without_room_removes_network_worker():
    plan = plan_reassignment(
        [UnitAssignment(1, NETWORK)],
        PlanType.SELF_SERVICE, PlanType.FULL_SERVICE,
        old_unit_count=1, new_unit_count=1,
        scheduled_at=SCHEDULED, partner_id=7,
    )
    (removal,) = plan.workers_to_remove
    assert removal.reason == "plan changed from self_service to full_service"


def test_full_to_self_removes_partner_worker():
    plan = plan_reassignment(
        [UnitAssignment(1, PARTNER), UnitAssignment(2, NETWORK)],
        PlanType.FULL_SERVICE, PlanType.SELF_SERVICE,
        old_unit_count=2, new_unit_count=2,
        scheduled_at=SCHEDULED, partner_id=None,
    )
    assert [r.worker.id for r in plan.workers_to_remove] == [PARTNER.id]
    assert plan.workers_to_remove[0].reason == "partner company removed from appointment"
    (kept,) = plan.workers_to_keep
    assert kept.worker.id == NETWORK.id
    assert kept.new_unit == 2
    assert not kept.shifted
    assert [s.unit_number for s in plan.unit_slots] == [1]


def test_unit_count_reduction_removes_high_units_first():
    plan = plan_reassignment(
        [UnitAssignment(1, NETWORK), UnitAssignment(2, NETWORK_2)],
        PlanType.SELF_SERVICE, PlanType.SELF_SERVICE,
        old_unit_count=2, new_unit_count=1,
        scheduled_at=SCHEDULED,
    )
    assert [k.worker.id for k in plan.workers_to_keep] == [NETWORK.id]
    (removal,) = plan.workers_to_remove
    assert removal.worker.id == NETWORK_2.id
    assert removal.reason == "unit count reduced from 2 to 1"


def test_workers_in_place_are_not_shifted():
    plan = plan_reassignment(
        [UnitAssignment(1, PARTNER), UnitAssignment(2, NETWORK)],
        PlanType.FULL_SERVICE, PlanType.FULL_SERVICE,
        old_unit_count=2, new_unit_count=3,
        scheduled_at=SCHEDULED, partner_id=7,
    )
    assert plan.shifted_workers() == []
    assert [s.unit_number for s in plan.unit_slots] == [3]
