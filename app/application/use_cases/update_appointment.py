"""UpdateAppointmentUseCase — sequence every side effect of an appointment edit."""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from datetime import datetime

from app.application.exceptions import AppointmentNotFoundError, EditValidationError
from app.application.ports.appointment_repo import AppointmentRepository
from app.application.ports.task_repo import TaskRepository
from app.application.use_cases.booking_window import BookingWindowManager
from app.application.use_cases.effects import (
    EffectReport,
    MessageEffectExecutor,
    PartialSyncFailure,
)
from app.application.use_cases.notifications import (
    InAppNotificationService,
    InAppRequest,
    NotificationDispatcher,
    cancellation_messages,
    collect_unique_workers,
    partner_plan_change_messages,
    reassignment_message,
    unit_shift_notice,
)
from app.application.use_cases.reconfirmation import ReconfirmationFlow
from app.application.use_cases.task_sync import DispatchTaskSynchronizer, TaskSyncResult
from app.domain.entities.appointment import Appointment
from app.domain.entities.dispatch_task import DispatchTask
from app.domain.policies.change_detection import (
    compact_unit_numbers,
    detect_changes,
    removed_unit_numbers_by_count,
    removed_unit_numbers_by_id,
    validate_edit,
)
from app.domain.policies.dispatch_rules import resolve_container
from app.domain.policies.reassignment import (
    DEFAULT_UNIT_STAGGER_MINUTES,
    PendingReconfirmation,
    WorkerRemoval,
    WorkerShift,
    assignments_from_tasks,
    plan_reassignment,
    plan_switch,
    unit_arrival_time,
)
from app.domain.value_objects.change_set import ChangeSet
from app.domain.value_objects.edit_request import EditRequest
from app.domain.value_objects.enums import (
    NotificationType,
    PlanSwitch,
    PlanType,
    RecipientType,
    WorkerType,
)

logger = logging.getLogger(__name__)

DEFAULT_LOADING_HELP_PRICE = 189.0


@dataclass
class UpdateResult:
    """Outcome of one edit. ``failures`` lists downstream calls needing follow-up."""

    success: bool
    appointment: Appointment | None = None
    changes: ChangeSet | None = None
    task_results: list[TaskSyncResult] = field(default_factory=list)
    notifications_sent: list[str] = field(default_factory=list)
    failures: list[PartialSyncFailure] = field(default_factory=list)
    error: str | None = None
    error_kind: str | None = None  # "not_found" | "validation" | "internal"


class UpdateAppointmentUseCase:
    """Applies an edit across the datastore, the dispatch platform and messaging."""

    def __init__(
        self,
        appointment_repo: AppointmentRepository,
        task_repo: TaskRepository,
        sync: DispatchTaskSynchronizer,
        reconfirmation: ReconfirmationFlow,
        bookings: BookingWindowManager,
        dispatcher: NotificationDispatcher,
        in_app: InAppNotificationService,
        effects: MessageEffectExecutor,
        stagger_minutes: int = DEFAULT_UNIT_STAGGER_MINUTES,
        default_loading_help_price: float = DEFAULT_LOADING_HELP_PRICE,
    ):
        self._appointments = appointment_repo
        self._tasks = task_repo
        self._sync = sync
        self._reconfirm = reconfirmation
        self._bookings = bookings
        self._dispatcher = dispatcher
        self._in_app = in_app
        self._effects = effects
        self._stagger = stagger_minutes
        self._default_loading_help_price = default_loading_help_price

    async def execute(self, appointment_id: int, edit: EditRequest) -> UpdateResult:
        """Process one edit end-to-end.

        Pipeline:
        1. Load appointment with tasks, partner and customer
        2. Detect changes
        3. Validate business rules (no mutation on failure)
        4. Plan switch: reassign workers against the pre-mutation tasks
        5. Unit removal: notify, delete tasks, re-point the lowest unit,
           move workers of renumbered units and ask them to reconfirm
        6. Datastore update (single committed transaction)
        7. Sync remaining tasks with the dispatch platform
        8. Create tasks for added units, apply deferred reconfirmations
        9. Reconcile the partner booking window
        10. Time change: rebook workers, request reconfirmations
        11. Role notifications

        Local writes are committed at the end of every step that produced
        them, so a later failure never rolls back rows mirroring calls the
        dispatch platform or a recipient already received. Repeating the same
        edit converges because step 2 runs against the new state.
        """
        try:
            return await self._process(appointment_id, edit)
        except AppointmentNotFoundError as e:
            return UpdateResult(success=False, error=str(e), error_kind="not_found")
        except EditValidationError as e:
            logger.info("Appointment %d: edit rejected: %s", appointment_id, e)
            return UpdateResult(success=False, error=str(e), error_kind="validation")
        except Exception as e:
            logger.exception("Error updating appointment %d", appointment_id)
            return UpdateResult(success=False, error=str(e), error_kind="internal")

    async def _process(self, appointment_id: int, edit: EditRequest) -> UpdateResult:
        # Step 1
        before = await self._appointments.get_with_relations(appointment_id)
        if before is None:
            raise AppointmentNotFoundError(f"Appointment {appointment_id} not found")

        # Step 2
        changes = detect_changes(before, edit)
        logger.info("Appointment %d: detected %s", appointment_id, changes)

        # Step 3
        violation = validate_edit(before, edit)
        if violation:
            raise EditValidationError(violation)
        if not changes.has_changes:
            return UpdateResult(success=True, appointment=before, changes=changes)

        report = EffectReport()
        task_results: list[TaskSyncResult] = []
        new_plan = edit.plan_type or before.plan_type
        new_time = edit.scheduled_at or before.scheduled_at

        pending: list[PendingReconfirmation] = []
        asked: frozenset[tuple[int, int]] = frozenset()
        if changes.worker_reassignment_required:
            # Step 4
            switch = plan_switch(before.plan_type, new_plan) if changes.plan_changed else None
            if switch is not None:
                pending = await self._handle_plan_switch(switch, before, edit, report)
            elif changes.partner_changed:
                await self._release_partner_workers(before, report)
            await self._appointments.commit()

            # Step 5
            numbers: list[int] = []
            if changes.units_removed:
                numbers = removed_unit_numbers_by_id(before, changes.units_removed)
            elif changes.units_to_remove_by_count:
                numbers = removed_unit_numbers_by_count(before.unit_count, edit.unit_count)
            if numbers:
                asked = await self._reduce_units(
                    before, numbers, new_plan, new_time, report, task_results
                )
                await self._appointments.commit()

        # Step 6
        after = await self._apply_update(before, edit)

        # Step 7
        task_results.extend(await self._sync.sync_tasks(after, changes))

        # Step 8
        if changes.units_increased:
            count = len(changes.units_added) or changes.additional_units_to_create
            start = after.highest_unit_number() + 1
            _, created_results = await self._sync.create_unit_tasks(
                after, list(range(start, start + count))
            )
            task_results.extend(created_results)
        if changes.units_increased or pending:
            after.tasks = await self._tasks.get_by_appointment(appointment_id)
        if pending:
            await self._reconfirm.apply_pending(after.tasks, pending)
        await self._appointments.commit()

        # Step 9
        if changes.partner_changed or changes.time_changed:
            await self._bookings.reconcile(
                appointment_id, after.scheduled_at, after.partner_id, before.partner_id
            )

        # Step 10
        if changes.time_changed:
            await self._rebook_workers(after)
            if any(
                t.worker is not None and t.worker.is_directly_managed() for t in after.tasks
            ):
                report.extend(
                    await self._reconfirm.request_time_change(
                        after, before.scheduled_at, new_time, already_asked=asked
                    )
                )
        await self._appointments.commit()

        # Step 11
        report.extend(await self._dispatcher.dispatch_change_notifications(before, after, changes))
        await self._appointments.commit()

        failures = [r.to_failure("sync") for r in task_results if not r.success] + report.failures
        for failure in failures:
            logger.warning(
                "Appointment %d: %s %s failed for %s: %s",
                appointment_id, failure.system, failure.operation, failure.target, failure.error,
            )
        logger.info("Appointment %d: update complete", appointment_id)
        return UpdateResult(
            success=True,
            appointment=after,
            changes=changes,
            task_results=task_results,
            notifications_sent=report.sent,
            failures=failures,
        )

    # ─── Step 4: plan switch ─────────────────────────────────────────

    async def _handle_plan_switch(
        self,
        switch: PlanSwitch,
        appointment: Appointment,
        edit: EditRequest,
        report: EffectReport,
    ) -> list[PendingReconfirmation]:
        new_plan = edit.plan_type
        if appointment.appointment_type.selects_units and edit.selected_unit_ids is not None:
            new_count = len(edit.selected_unit_ids)
        else:
            new_count = edit.unit_count or appointment.unit_count
        partner_id = edit.partner_id if edit.supplies_partner else appointment.partner_id

        plan = plan_reassignment(
            assignments_from_tasks(appointment.tasks),
            old_plan=appointment.plan_type,
            new_plan=new_plan,
            old_unit_count=appointment.unit_count,
            new_unit_count=new_count,
            scheduled_at=edit.scheduled_at or appointment.scheduled_at,
            partner_id=partner_id,
            stagger_minutes=self._stagger,
        )
        logger.info(
            "Appointment %s: %s keeps %d, removes %d, open slots %s",
            appointment.id, switch.value, len(plan.workers_to_keep),
            len(plan.workers_to_remove), [s.unit_number for s in plan.unit_slots],
        )

        pending: list[PendingReconfirmation] = []
        for removal in plan.workers_to_remove:
            await self._remove_worker(appointment, removal, report)

        if switch == PlanSwitch.SELF_TO_FULL:
            for shift in plan.shifted_workers():
                if not shift.worker.is_directly_managed():
                    continue
                deferred = await self._reconfirm.request_unit_shift(appointment, shift, report)
                if deferred is not None:
                    pending.append(deferred)
            for slot in plan.unit_slots:
                await self._clear_tasks(
                    [
                        t for t in appointment.tasks_for_unit(slot.unit_number)
                        if t.worker_id is not None
                    ],
                    report,
                )
        else:
            report.extend(await self._effects.run(partner_plan_change_messages(appointment)))
            notices = [unit_shift_notice(appointment, s) for s in plan.shifted_workers()]
            report.extend(await self._effects.run([m for m in notices if m is not None]))
            for shift in plan.shifted_workers():
                await self._clear_tasks(
                    [
                        t for t in appointment.tasks_for_unit(shift.current_unit)
                        if t.worker_id == shift.worker.id
                    ],
                    report,
                )
            await self._bookings.delete(appointment.id)
        return pending

    async def _release_partner_workers(self, appointment: Appointment, report: EffectReport) -> None:
        """A new partner company means the old partner's crew is off the job."""
        for task in appointment.tasks:
            if task.worker is not None and task.worker.worker_type == WorkerType.PARTNER:
                removal = WorkerRemoval(
                    worker=task.worker,
                    unit_number=task.unit_number,
                    reason="partner company changed",
                )
                await self._remove_worker(appointment, removal, report)

    async def _remove_worker(
        self, appointment: Appointment, removal: WorkerRemoval, report: EffectReport
    ) -> None:
        worker_tasks = [t for t in appointment.tasks if t.worker_id == removal.worker.id]
        if not worker_tasks:
            return
        message = reassignment_message(appointment, removal)
        if message is not None:
            report.extend(await self._effects.run([message]))
        await self._bookings.release_worker(appointment.id, removal.worker.id)
        await self._clear_tasks(worker_tasks, report)

    async def _clear_tasks(self, tasks: list[DispatchTask], report: EffectReport) -> None:
        """Unlink workers and send the tasks back to the default pool."""
        if not tasks:
            return
        for task in tasks:
            task.unlink_worker()
            await self._tasks.update(task)
        for result in await self._sync.revert_to_default_pool(tasks):
            if not result.success:
                report.failures.append(result.to_failure("revert_to_default_pool"))

    # ─── Step 5: unit removal ────────────────────────────────────────

    async def _reduce_units(
        self,
        appointment: Appointment,
        unit_numbers: list[int],
        new_plan: PlanType,
        new_time: datetime,
        report: EffectReport,
        task_results: list[TaskSyncResult],
    ) -> frozenset[tuple[int, int]]:
        """Remove units and close the numbering gap.

        Returns the (worker, unit) pairs that were asked to reconfirm a
        renumbered unit.
        """
        doomed = [t for t in appointment.tasks if t.unit_number in unit_numbers]
        remaining = [t for t in appointment.tasks if t.unit_number not in unit_numbers]
        old_count = appointment.unit_count
        new_count = old_count - len(unit_numbers)
        logger.info(
            "Appointment %s: removing unit(s) %s (%d task(s))",
            appointment.id, unit_numbers, len(doomed),
        )

        report.extend(await self._effects.run(cancellation_messages(appointment, doomed)))
        for worker in collect_unique_workers(doomed):
            if not any(t.worker_id == worker.id for t in remaining):
                await self._bookings.release_worker(appointment.id, worker.id)

        if appointment.partner is not None:
            _, failures = await self._in_app.create_batch(
                [
                    InAppRequest(
                        recipient_id=appointment.partner.id,
                        recipient_type=RecipientType.PARTNER,
                        notification_type=NotificationType.UNITS_REDUCED,
                        variables={
                            "appointment_id": str(appointment.id),
                            "old_count": str(old_count),
                            "new_count": str(new_count),
                        },
                        appointment_id=appointment.id,
                    )
                ]
            )
            report.failures.extend(failures)

        task_results.extend(await self._sync.delete_tasks(doomed))

        renumber = compact_unit_numbers(sorted({t.unit_number for t in remaining}))
        shifts = {
            (t.worker.id, t.unit_number): WorkerShift(
                worker=t.worker,
                current_unit=t.unit_number,
                new_unit=renumber[t.unit_number],
                new_arrival=unit_arrival_time(new_time, renumber[t.unit_number], self._stagger),
            )
            for t in remaining
            if t.unit_number in renumber and t.worker is not None
        }
        for task in remaining:
            if task.unit_number in renumber:
                task.unit_number = renumber[task.unit_number]
                await self._tasks.update(task)
        appointment.tasks = remaining

        if 1 in unit_numbers:
            container_id = resolve_container(
                new_plan, 1, appointment.partner, self._sync.default_pool_id
            )
            task_results.extend(
                await self._sync.move_to_container(appointment.tasks_for_unit(1), container_id)
            )
        return await self._shift_renumbered_workers(
            appointment, sorted(shifts.values(), key=lambda s: s.new_unit), report
        )

    async def _shift_renumbered_workers(
        self, appointment: Appointment, shifts: list[WorkerShift], report: EffectReport
    ) -> frozenset[tuple[int, int]]:
        """A renumbered unit arrives earlier: rebook its worker and tell them."""
        asked: set[tuple[int, int]] = set()
        for shift in shifts:
            await self._bookings.rebook_worker(
                appointment.id, shift.new_unit, shift.worker.id, shift.new_arrival
            )
            if shift.worker.is_directly_managed():
                if await self._reconfirm.request_renumbered_unit(appointment, shift, report):
                    asked.add((shift.worker.id, shift.new_unit))
            else:
                notice = unit_shift_notice(appointment, shift)
                if notice is not None:
                    report.extend(await self._effects.run([notice]))
        vacated = {s.current_unit for s in shifts} - {s.new_unit for s in shifts}
        if vacated:
            await self._bookings.drop_unit_bookings(appointment.id, sorted(vacated))
        return frozenset(asked)

    # ─── Step 6: datastore update ────────────────────────────────────

    def _loading_help_price(self, old_plan: PlanType, new_plan: PlanType, price: float) -> float:
        if new_plan == PlanType.SELF_SERVICE:
            return 0.0
        if new_plan == PlanType.FULL_SERVICE and old_plan == PlanType.SELF_SERVICE and not price:
            return self._default_loading_help_price
        return price

    async def _apply_update(self, before: Appointment, edit: EditRequest) -> Appointment:
        new_plan = edit.plan_type or before.plan_type
        unit_count = before.unit_count
        selected_ids = None
        if before.appointment_type.selects_units:
            if edit.selected_unit_ids is not None:
                selected_ids = edit.selected_unit_ids
                unit_count = len(selected_ids)
        elif edit.unit_count is not None:
            unit_count = edit.unit_count

        price = (
            edit.loading_help_price
            if edit.loading_help_price is not None
            else before.loading_help_price
        )
        updated = dataclasses.replace(
            before,
            scheduled_at=edit.scheduled_at or before.scheduled_at,
            address=edit.address if edit.address is not None else before.address,
            zipcode=edit.zipcode if edit.zipcode is not None else before.zipcode,
            description=edit.description if edit.description is not None else before.description,
            plan_type=new_plan,
            unit_count=unit_count,
            partner_id=edit.partner_id if edit.supplies_partner else before.partner_id,
            third_party_partner_id=(
                edit.third_party_partner_id
                if edit.supplies_third_party_partner
                else before.third_party_partner_id
            ),
            loading_help_price=self._loading_help_price(before.plan_type, new_plan, price),
            tasks=list(before.tasks),
        )
        return await self._appointments.update(updated, selected_ids)

    # ─── Step 10: worker bookings ────────────────────────────────────

    async def _rebook_workers(self, appointment: Appointment) -> None:
        for worker_unit in assignments_from_tasks(appointment.tasks):
            await self._bookings.rebook_worker(
                appointment.id,
                worker_unit.unit_number,
                worker_unit.worker.id,
                unit_arrival_time(
                    appointment.scheduled_at, worker_unit.unit_number, self._stagger
                ),
            )
