"""Tests for DispatchTaskSynchronizer with a fake dispatch platform."""

from datetime import timedelta

import pytest

from fakes import (
    SCHEDULED,
    FakeDispatchPlatform,
    FakeGeocoder,
    FakeTaskRepo,
    make_appointment,
    make_partner,
    make_worker,
)

from app.application.use_cases.task_sync import DispatchTaskSynchronizer
from app.domain.entities.appointment import StorageUnitRef
from app.domain.value_objects.change_set import ChangeSet
from app.domain.value_objects.enums import PlanType, TaskStep

WAREHOUSE = "105 Associated Rd, South San Francisco, CA 94080"


def _sync(platform, task_repo=None):
    return DispatchTaskSynchronizer(
        platform=platform,
        geocoder=FakeGeocoder(),
        task_repo=task_repo or FakeTaskRepo(),
        default_pool_id="pool",
        warehouse_address=WAREHOUSE,
    )


@pytest.mark.asyncio
async def test_one_failed_task_does_not_block_siblings():
    platform = FakeDispatchPlatform()
    appointment = make_appointment()
    platform.fail_get.add(appointment.tasks[0].external_id)
    platform.fail_update.add(appointment.tasks[1].external_id)

    results = await _sync(platform).sync_tasks(appointment, ChangeSet(time_changed=True))

    assert [r.success for r in results] == [False, False, True]
    assert results[0].error == "Failed to fetch task from dispatch platform"
    assert "502" in results[1].error
    assert len(platform.calls_of("update")) == 2


class GarbledPlatform(FakeDispatchPlatform):
    """Answers one task with a body nobody can parse."""

    def __init__(self, garbled: str):
        super().__init__()
        self.garbled = garbled

    async def get_task(self, external_id):
        if external_id == self.garbled:
            raise ValueError("Expecting value: line 1 column 1 (char 0)")
        return await super().get_task(external_id)


@pytest.mark.asyncio
async def test_unexpected_error_on_one_task_is_isolated():
    appointment = make_appointment(unit_count=2)
    platform = GarbledPlatform(appointment.tasks[1].external_id)

    results = await _sync(platform).sync_tasks(appointment, ChangeSet(time_changed=True))

    assert len(results) == 6
    (failed,) = [r for r in results if not r.success]
    assert failed.external_id == appointment.tasks[1].external_id
    assert failed.error.startswith("ValueError")
    assert len(platform.calls_of("update")) == 5


@pytest.mark.asyncio
async def test_sync_payload_windows_and_destinations():
    platform = FakeDispatchPlatform()
    appointment = make_appointment()
    await _sync(platform).sync_tasks(appointment, ChangeSet(time_changed=True))

    payloads = {c[1]: c[2] for c in platform.calls_of("update")}
    pickup = payloads[appointment.tasks[0].external_id]
    stop = payloads[appointment.tasks[1].external_id]
    assert pickup.address == WAREHOUSE
    assert pickup.complete_after == SCHEDULED - timedelta(hours=1)
    assert stop.address == appointment.address
    assert stop.metadata["step"] == "2"


@pytest.mark.asyncio
async def test_assigned_task_keeps_container_unless_plan_changes():
    platform = FakeDispatchPlatform()
    appointment = make_appointment(
        plan_type=PlanType.FULL_SERVICE, partner=make_partner(), workers={1: make_worker()}
    )
    await _sync(platform).sync_tasks(appointment, ChangeSet(time_changed=True))
    assert all(c[2].container_id is None for c in platform.calls_of("update"))

    platform.calls.clear()
    await _sync(platform).sync_tasks(appointment, ChangeSet(plan_changed=True))
    assert all(c[2].container_id == "team-partner-7" for c in platform.calls_of("update"))


@pytest.mark.asyncio
async def test_sync_rewrites_unit_segment_of_remote_notes():
    platform = FakeDispatchPlatform()
    appointment = make_appointment(selected_units=[StorageUnitRef(4, "B-4")])
    for task in appointment.tasks:
        platform.remote_notes[task.external_id] = "Fragile\nStorage Unit: A-1\nCall ahead"

    await _sync(platform).sync_tasks(appointment, ChangeSet(details_changed=True))

    notes = {c[2].notes for c in platform.calls_of("update")}
    assert notes == {"Fragile\nStorage Unit: B-4\nCall ahead"}


@pytest.mark.asyncio
async def test_create_unit_tasks_creates_three_steps_each():
    platform = FakeDispatchPlatform()
    repo = FakeTaskRepo()
    appointment = make_appointment(plan_type=PlanType.FULL_SERVICE, partner=make_partner())

    created, results = await _sync(platform, repo).create_unit_tasks(appointment, [2, 3])

    assert len(created) == 6
    assert all(r.success for r in results)
    assert [(t.unit_number, t.step) for t in created[:3]] == [
        (2, TaskStep.PICKUP), (2, TaskStep.CUSTOMER_STOP), (2, TaskStep.RETURN)
    ]
    assert all(c[1].container_id == "pool" for c in platform.calls_of("create"))
    assert len(repo.tasks) == 6


@pytest.mark.asyncio
async def test_failed_creation_is_not_saved_locally():
    platform = FakeDispatchPlatform()
    platform.fail_create = True
    repo = FakeTaskRepo()
    created, results = await _sync(platform, repo).create_unit_tasks(make_appointment(), [2])
    assert created == []
    assert not any(r.success for r in results)
    assert repo.tasks == {}


@pytest.mark.asyncio
async def test_delete_tasks_removes_remote_then_local():
    platform = FakeDispatchPlatform()
    repo = FakeTaskRepo()
    appointment = make_appointment(unit_count=2)
    repo.seed(appointment.tasks)

    await _sync(platform, repo).delete_tasks(appointment.tasks_for_unit(2))

    assert len(platform.calls_of("delete")) == 3
    assert {t.unit_number for t in repo.tasks.values()} == {1}
