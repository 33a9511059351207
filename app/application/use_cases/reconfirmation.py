"""ReconfirmationFlow — ask directly-managed workers to re-accept a changed job."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from app.application.formatting import format_date, format_time
from app.application.ports.link_signer_port import LinkSignerPort
from app.application.ports.task_repo import TaskRepository
from app.application.templates import RECONFIRM_TIME_CHANGE, RECONFIRM_UNIT_SHIFT
from app.application.use_cases.effects import EffectReport, MessageEffectExecutor
from app.application.use_cases.task_sync import DispatchTaskSynchronizer
from app.domain.entities.appointment import Appointment
from app.domain.entities.dispatch_task import DispatchTask
from app.domain.policies.reassignment import PendingReconfirmation, WorkerShift
from app.domain.value_objects.outbound_message import Channel, OutboundMessage

logger = logging.getLogger(__name__)

RECONFIRM_PURPOSE = "reconfirm"
RECONFIRM_PATH = "/driver/reconfirm"

# Workers arrive at the warehouse an hour before the customer's slot
ARRIVAL_LEAD = timedelta(hours=1)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ReconfirmationFlow:
    """Per (worker, unit) handshake: none -> pending_reconfirmation -> response.

    Only directly-managed workers take part; the response callback lives
    outside this flow.
    """

    def __init__(
        self,
        task_repo: TaskRepository,
        signer: LinkSignerPort,
        effects: MessageEffectExecutor,
        sync: DispatchTaskSynchronizer,
        clock=_utcnow,
    ):
        self._tasks = task_repo
        self._signer = signer
        self._effects = effects
        self._sync = sync
        self._clock = clock

    def reconfirm_url(self, worker_id: int, appointment_id: int, unit_number: int) -> str:
        token = self._signer.sign(
            {
                "worker_id": worker_id,
                "appointment_id": appointment_id,
                "unit_number": unit_number,
                "action": RECONFIRM_PURPOSE,
            },
            RECONFIRM_PURPOSE,
        )
        return self._signer.build_url(RECONFIRM_PATH, token)

    async def _mark_pending(self, tasks: list[DispatchTask], worker_id: int) -> None:
        now = self._clock()
        for task in tasks:
            task.mark_pending_reconfirmation(worker_id, now)
            await self._tasks.update(task)

    # ─── Time change ─────────────────────────────────────────────────

    async def request_time_change(
        self,
        appointment: Appointment,
        original_time: datetime,
        new_time: datetime,
        already_asked: frozenset[tuple[int, int]] = frozenset(),
    ) -> EffectReport:
        """Send one reconfirmation per (worker, unit) and mark those tasks pending.

        Pairs in ``already_asked`` were sent a unit-shift reconfirmation carrying
        the new arrival during this edit and are skipped.
        """
        report = EffectReport()
        seen: set[tuple[int, int]] = set(already_asked)

        for task in sorted(appointment.tasks, key=lambda t: (t.unit_number, t.step)):
            worker = task.worker
            if worker is None or not worker.is_directly_managed():
                continue
            key = (worker.id, task.unit_number)
            if key in seen:
                continue
            seen.add(key)

            if not worker.phone:
                logger.warning("Worker %d has no phone, cannot request reconfirmation", worker.id)
                continue

            message = OutboundMessage(
                channel=Channel.SMS,
                to=worker.phone,
                template=RECONFIRM_TIME_CHANGE.name,
                variables={
                    "worker_name": worker.first_name,
                    "address": appointment.address,
                    "original_date": format_date(original_time),
                    "original_time": format_time(original_time - ARRIVAL_LEAD),
                    "new_date": format_date(new_time),
                    "new_time": format_time(new_time - ARRIVAL_LEAD),
                    "reconfirm_url": self.reconfirm_url(
                        worker.id, appointment.id, task.unit_number
                    ),
                },
                key=f"worker:{worker.id}:unit:{task.unit_number}:reconfirm",
            )
            failure = await self._effects.send(message)
            if failure is not None:
                report.failures.append(failure)
                continue
            report.sent.append(message.key)

            await self._mark_pending(
                [
                    t for t in appointment.tasks_for_unit(task.unit_number)
                    if t.worker_id == worker.id
                ],
                worker.id,
            )
        return report

    # ─── Unit shift ──────────────────────────────────────────────────

    async def _send_unit_shift(
        self, appointment: Appointment, shift: WorkerShift, report: EffectReport
    ) -> bool:
        worker = shift.worker
        if not worker.phone:
            logger.warning("Worker %d has no phone, cannot request unit-shift reconfirmation",
                           worker.id)
            return False

        message = OutboundMessage(
            channel=Channel.SMS,
            to=worker.phone,
            template=RECONFIRM_UNIT_SHIFT.name,
            variables={
                "worker_name": worker.first_name,
                "appointment_date": format_date(shift.new_arrival),
                "new_unit": str(shift.new_unit),
                "new_arrival": format_time(shift.new_arrival - ARRIVAL_LEAD),
                "reconfirm_url": self.reconfirm_url(worker.id, appointment.id, shift.new_unit),
            },
            key=f"worker:{worker.id}:unit:{shift.new_unit}:unit_shift",
        )
        failure = await self._effects.send(message)
        if failure is not None:
            report.failures.append(failure)
            return False
        report.sent.append(message.key)
        return True

    async def request_renumbered_unit(
        self, appointment: Appointment, shift: WorkerShift, report: EffectReport
    ) -> bool:
        """Ask a worker whose unit slot was renumbered to reconfirm the new arrival.

        The worker keeps their tasks, which now carry ``shift.new_unit`` and
        are marked pending.
        """
        if not await self._send_unit_shift(appointment, shift, report):
            return False
        await self._mark_pending(
            [
                t for t in appointment.tasks_for_unit(shift.new_unit)
                if t.worker_id == shift.worker.id
            ],
            shift.worker.id,
        )
        return True

    async def request_unit_shift(
        self, appointment: Appointment, shift: WorkerShift, report: EffectReport
    ) -> PendingReconfirmation | None:
        """Ask a worker to reconfirm on a different unit.

        On a successful send the worker is unlinked from the old unit (whose
        tasks go back to the default pool). If the new unit's tasks exist they
        are marked pending now; otherwise a PendingReconfirmation is returned
        to be applied once they are created.
        """
        worker = shift.worker
        if not await self._send_unit_shift(appointment, shift, report):
            return None

        old_tasks = [
            t for t in appointment.tasks_for_unit(shift.current_unit) if t.worker_id == worker.id
        ]
        for task in old_tasks:
            task.unlink_worker()
            await self._tasks.update(task)
        for result in await self._sync.revert_to_default_pool(old_tasks):
            if not result.success:
                report.failures.append(result.to_failure("revert_to_default_pool"))

        new_tasks = appointment.tasks_for_unit(shift.new_unit)
        if new_tasks:
            await self._mark_pending(new_tasks, worker.id)
            return None

        logger.info(
            "Appointment %s: unit %d has no tasks yet, deferring reconfirmation of worker %d",
            appointment.id, shift.new_unit, worker.id,
        )
        return PendingReconfirmation(
            worker=worker, new_unit=shift.new_unit, new_arrival=shift.new_arrival
        )

    async def apply_pending(
        self, tasks: list[DispatchTask], pending: list[PendingReconfirmation]
    ) -> int:
        """Mark newly created unit tasks pending. Returns the number of tasks touched."""
        touched = 0
        for item in pending:
            unit_tasks = [t for t in tasks if t.unit_number == item.new_unit]
            if not unit_tasks:
                logger.warning(
                    "No tasks for unit %d to apply reconfirmation of worker %d",
                    item.new_unit, item.worker.id,
                )
                continue
            await self._mark_pending(unit_tasks, item.worker.id)
            touched += len(unit_tasks)
        return touched
