"""DispatchTaskSynchronizer — push local task state to the dispatch platform."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from app.application.exceptions import DispatchPlatformError
from app.application.ports.dispatch_platform_port import DispatchPlatformPort, TaskPayload
from app.application.ports.geocoder_port import GeocoderPort
from app.application.ports.task_repo import TaskRepository
from app.application.use_cases.effects import PartialSyncFailure
from app.domain.entities.appointment import Appointment
from app.domain.entities.dispatch_task import DispatchTask
from app.domain.policies.dispatch_rules import (
    default_notes,
    needs_container_reassignment,
    resolve_container,
    rewrite_unit_notes,
    task_window,
    uses_customer_destination,
)
from app.domain.policies.reassignment import DEFAULT_UNIT_STAGGER_MINUTES
from app.domain.value_objects.change_set import ChangeSet
from app.domain.value_objects.enums import ContainerType, TaskStep
from app.domain.value_objects.geo_point import GeoPoint

logger = logging.getLogger(__name__)


@dataclass
class TaskSyncResult:
    task_id: int | None
    external_id: str | None
    unit_number: int
    step: int
    success: bool
    error: str | None = None

    def to_failure(self, operation: str) -> PartialSyncFailure:
        return PartialSyncFailure(
            system="dispatch",
            operation=operation,
            target=self.external_id or f"unit {self.unit_number} step {self.step}",
            error=self.error or "unknown error",
        )


class DispatchTaskSynchronizer:
    """Translates appointment/task state into dispatch-platform calls.

    Every per-task call is isolated: a failure is recorded in the returned
    TaskSyncResult list and never aborts the sibling tasks.
    """

    def __init__(
        self,
        platform: DispatchPlatformPort,
        geocoder: GeocoderPort,
        task_repo: TaskRepository,
        default_pool_id: str,
        warehouse_address: str,
        stagger_minutes: int = DEFAULT_UNIT_STAGGER_MINUTES,
    ):
        self._platform = platform
        self._geocoder = geocoder
        self._tasks = task_repo
        self._default_pool_id = default_pool_id
        self._warehouse_address = warehouse_address
        self._stagger = stagger_minutes

    @property
    def default_pool_id(self) -> str:
        return self._default_pool_id

    async def _locations(self, appointment: Appointment) -> tuple[GeoPoint | None, GeoPoint | None]:
        customer = await self._geocoder.geocode(appointment.address) if appointment.address else None
        warehouse = await self._geocoder.geocode(self._warehouse_address)
        return customer, warehouse

    def build_payload(
        self,
        appointment: Appointment,
        task: DispatchTask,
        container_id: str | None,
        notes: str,
        customer_point: GeoPoint | None,
        warehouse_point: GeoPoint | None,
    ) -> TaskPayload:
        window = task_window(appointment.scheduled_at, task.step, task.unit_number, self._stagger)
        if uses_customer_destination(task.step):
            address, location = appointment.address, customer_point
        else:
            address, location = self._warehouse_address, warehouse_point
        return TaskPayload(
            container_type=ContainerType.TEAM if container_id else None,
            container_id=container_id,
            complete_after=window.complete_after,
            complete_before=window.complete_before,
            address=address,
            location=location,
            notes=notes,
            metadata={
                "appointment_id": str(appointment.id),
                "step": str(int(task.step)),
                "unit_number": str(task.unit_number),
                "plan_type": appointment.plan_type.value,
            },
        )

    # ─── Update ──────────────────────────────────────────────────────

    async def sync_tasks(self, appointment: Appointment, changes: ChangeSet) -> list[TaskSyncResult]:
        tasks = [t for t in appointment.tasks if t.external_id]
        if not tasks:
            return []
        customer_point, warehouse_point = await self._locations(appointment)
        results = await asyncio.gather(
            *(
                self._sync_isolated(appointment, task, changes, customer_point, warehouse_point)
                for task in tasks
            )
        )
        failed = sum(1 for r in results if not r.success)
        logger.info(
            "Appointment %s: synced %d task(s), %d failed", appointment.id, len(results), failed
        )
        return list(results)

    async def _sync_isolated(
        self,
        appointment: Appointment,
        task: DispatchTask,
        changes: ChangeSet,
        customer_point: GeoPoint | None,
        warehouse_point: GeoPoint | None,
    ) -> TaskSyncResult:
        try:
            return await self._sync_one(
                appointment, task, changes, customer_point, warehouse_point
            )
        except Exception as e:
            logger.exception("Task %s sync failed unexpectedly", task.external_id)
            return TaskSyncResult(
                task_id=task.id,
                external_id=task.external_id,
                unit_number=task.unit_number,
                step=int(task.step),
                success=False,
                error=f"{type(e).__name__}: {e}",
            )

    async def _sync_one(
        self,
        appointment: Appointment,
        task: DispatchTask,
        changes: ChangeSet,
        customer_point: GeoPoint | None,
        warehouse_point: GeoPoint | None,
    ) -> TaskSyncResult:
        container_id = None
        if needs_container_reassignment(changes, task):
            container_id = resolve_container(
                appointment.plan_type, task.unit_number, appointment.partner, self._default_pool_id
            )

        remote = await self._platform.get_task(task.external_id)
        if remote is None:
            return TaskSyncResult(
                task_id=task.id,
                external_id=task.external_id,
                unit_number=task.unit_number,
                step=int(task.step),
                success=False,
                error="Failed to fetch task from dispatch platform",
            )

        notes = rewrite_unit_notes(
            remote.notes or default_notes(appointment), appointment.unit_label(task.unit_number)
        )
        payload = self.build_payload(
            appointment, task, container_id, notes, customer_point, warehouse_point
        )
        try:
            await self._platform.update_task(task.external_id, payload)
        except DispatchPlatformError as e:
            logger.warning("Task %s update failed: %s", task.external_id, e)
            return TaskSyncResult(
                task_id=task.id,
                external_id=task.external_id,
                unit_number=task.unit_number,
                step=int(task.step),
                success=False,
                error=str(e),
            )
        return TaskSyncResult(
            task_id=task.id,
            external_id=task.external_id,
            unit_number=task.unit_number,
            step=int(task.step),
            success=True,
        )

    # ─── Create / delete / move ──────────────────────────────────────

    async def create_unit_tasks(
        self, appointment: Appointment, unit_numbers: list[int]
    ) -> tuple[list[DispatchTask], list[TaskSyncResult]]:
        """Create the three steps for each new unit, remotely then locally."""
        created: list[DispatchTask] = []
        results: list[TaskSyncResult] = []
        if not unit_numbers:
            return created, results

        customer_point, warehouse_point = await self._locations(appointment)
        for unit in unit_numbers:
            container_id = resolve_container(
                appointment.plan_type, unit, appointment.partner, self._default_pool_id
            )
            for step in TaskStep:
                task = DispatchTask(
                    id=None, appointment_id=appointment.id, step=step, unit_number=unit
                )
                notes = rewrite_unit_notes(default_notes(appointment), appointment.unit_label(unit))
                payload = self.build_payload(
                    appointment, task, container_id, notes, customer_point, warehouse_point
                )
                try:
                    remote = await self._platform.create_task(payload)
                except DispatchPlatformError as e:
                    logger.warning(
                        "Appointment %s: creating unit %d step %d failed: %s",
                        appointment.id, unit, int(step), e,
                    )
                    results.append(
                        TaskSyncResult(None, None, unit, int(step), success=False, error=str(e))
                    )
                    continue
                task.external_id = remote.id
                task.short_id = remote.short_id
                created.append(await self._tasks.save(task))
                results.append(TaskSyncResult(task.id, remote.id, unit, int(step), success=True))

        logger.info(
            "Appointment %s: created %d task(s) for unit(s) %s",
            appointment.id, len(created), unit_numbers,
        )
        return created, results

    async def delete_tasks(self, tasks: list[DispatchTask]) -> list[TaskSyncResult]:
        """Delete on the platform first, then locally (local delete always happens)."""
        results = []
        for task in tasks:
            if not task.external_id:
                continue
            try:
                await self._platform.delete_task(task.external_id)
                results.append(
                    TaskSyncResult(task.id, task.external_id, task.unit_number, int(task.step), True)
                )
            except DispatchPlatformError as e:
                logger.warning("Task %s delete failed: %s", task.external_id, e)
                results.append(
                    TaskSyncResult(
                        task.id, task.external_id, task.unit_number, int(task.step), False, str(e)
                    )
                )
        ids = [t.id for t in tasks if t.id is not None]
        if ids:
            await self._tasks.delete(ids)
        return results

    async def move_to_container(
        self, tasks: list[DispatchTask], container_id: str
    ) -> list[TaskSyncResult]:
        results = []
        for task in tasks:
            if not task.external_id:
                continue
            try:
                await self._platform.assign_container(task.external_id, ContainerType.TEAM, container_id)
                results.append(
                    TaskSyncResult(task.id, task.external_id, task.unit_number, int(task.step), True)
                )
            except DispatchPlatformError as e:
                logger.warning("Task %s container move failed: %s", task.external_id, e)
                results.append(
                    TaskSyncResult(
                        task.id, task.external_id, task.unit_number, int(task.step), False, str(e)
                    )
                )
        return results

    async def revert_to_default_pool(self, tasks: list[DispatchTask]) -> list[TaskSyncResult]:
        return await self.move_to_container(tasks, self._default_pool_id)
