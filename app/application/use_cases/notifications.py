"""Notification dispatch — recipient de-duplication, role messages and grouped in-app rows."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone

from app.application.exceptions import NotificationTemplateError
from app.application.formatting import format_date, format_time
from app.application.ports.notification_repo import NotificationRepository
from app.application.templates import (
    NOTIFICATION_TEMPLATES,
    PARTNER_PLAN_CHANGE_EMAIL,
    PARTNER_PLAN_CHANGE_SMS,
    PARTNER_TIME_CHANGE_EMAIL,
    PARTNER_TIME_CHANGE_SMS,
    PARTNER_WORKER_TIME_CHANGE,
    TASK_CANCELLED,
    UNIT_SHIFT_NOTICE,
    WORKER_REASSIGNED,
)
from app.application.use_cases.effects import (
    EffectReport,
    MessageEffectExecutor,
    PartialSyncFailure,
)
from app.application.use_cases.reconfirmation import ARRIVAL_LEAD
from app.domain.entities.appointment import Appointment
from app.domain.entities.dispatch_task import DispatchTask, Worker
from app.domain.entities.notification import Notification
from app.domain.policies.reassignment import WorkerRemoval, WorkerShift
from app.domain.value_objects.change_set import ChangeSet
from app.domain.value_objects.enums import NotificationType, RecipientType, WorkerType
from app.domain.value_objects.outbound_message import Channel, OutboundMessage

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ─── Recipient collection ───────────────────────────────────────────


def collect_unique_workers(tasks: list[DispatchTask]) -> list[Worker]:
    """One entry per worker id, in first-seen order."""
    workers: dict[int, Worker] = {}
    for task in tasks:
        if task.worker is not None and task.worker.id not in workers:
            workers[task.worker.id] = task.worker
    return list(workers.values())


def collect_partner_workers(tasks: list[DispatchTask]) -> list[Worker]:
    return [w for w in collect_unique_workers(tasks) if w.worker_type == WorkerType.PARTNER]


# ─── Message builders (pure) ────────────────────────────────────────


def _customer_name(appointment: Appointment) -> str:
    if appointment.customer is None:
        return "the customer"
    return f"{appointment.customer.first_name} {appointment.customer.last_name}".strip()


def _time_vars(original: datetime, new: datetime) -> dict[str, str]:
    return {
        "original_date": format_date(original),
        "original_time": format_time(original),
        "new_date": format_date(new),
        "new_time": format_time(new),
    }


def time_change_messages(before: Appointment, after: Appointment) -> list[OutboundMessage]:
    """Informational messages for partner-employed workers and the partner company."""
    messages: list[OutboundMessage] = []
    times = _time_vars(before.scheduled_at, after.scheduled_at)

    for worker in collect_partner_workers(before.tasks):
        if not worker.phone:
            logger.warning("Partner worker %s has no phone, skipping time-change notice", worker.id)
            continue
        messages.append(
            OutboundMessage(
                channel=Channel.SMS,
                to=worker.phone,
                template=PARTNER_WORKER_TIME_CHANGE.name,
                variables={"worker_name": worker.first_name, "address": after.address, **times},
                key=f"worker:{worker.id}:time_change",
            )
        )

    partner = after.partner or before.partner
    if partner is not None:
        variables = {
            "partner_name": partner.name,
            "appointment_id": str(after.id),
            "customer_name": _customer_name(after),
            "address": after.address,
            **times,
        }
        if partner.phone:
            messages.append(
                OutboundMessage(
                    channel=Channel.SMS,
                    to=partner.phone,
                    template=PARTNER_TIME_CHANGE_SMS.name,
                    variables=variables,
                    key=f"partner:{partner.id}:time_change:sms",
                )
            )
        if partner.email:
            messages.append(
                OutboundMessage(
                    channel=Channel.EMAIL,
                    to=partner.email,
                    template=PARTNER_TIME_CHANGE_EMAIL.name,
                    variables=variables,
                    key=f"partner:{partner.id}:time_change:email",
                )
            )
    return messages


def cancellation_messages(
    appointment: Appointment, removed_tasks: list[DispatchTask]
) -> list[OutboundMessage]:
    """One cancellation per worker, listing every unit of theirs that was dropped."""
    messages = []
    for worker in collect_unique_workers(removed_tasks):
        if not worker.phone:
            continue
        units = sorted({t.unit_number for t in removed_tasks if t.worker_id == worker.id})
        messages.append(
            OutboundMessage(
                channel=Channel.SMS,
                to=worker.phone,
                template=TASK_CANCELLED.name,
                variables={
                    "worker_name": worker.first_name,
                    "unit_numbers": ", ".join(str(u) for u in units),
                    "appointment_date": format_date(appointment.scheduled_at),
                },
                key=f"worker:{worker.id}:task_cancelled",
            )
        )
    return messages


def reassignment_message(appointment: Appointment, removal: WorkerRemoval) -> OutboundMessage | None:
    if not removal.worker.phone:
        return None
    return OutboundMessage(
        channel=Channel.SMS,
        to=removal.worker.phone,
        template=WORKER_REASSIGNED.name,
        variables={
            "worker_name": removal.worker.first_name,
            "appointment_date": format_date(appointment.scheduled_at),
            "address": appointment.address,
            "reason": removal.reason,
        },
        key=f"worker:{removal.worker.id}:reassigned",
    )


def unit_shift_notice(appointment: Appointment, shift: WorkerShift) -> OutboundMessage | None:
    if not shift.worker.phone:
        return None
    return OutboundMessage(
        channel=Channel.SMS,
        to=shift.worker.phone,
        template=UNIT_SHIFT_NOTICE.name,
        variables={
            "worker_name": shift.worker.first_name,
            "appointment_date": format_date(appointment.scheduled_at),
            "new_unit": str(shift.new_unit),
            "new_arrival": format_time(shift.new_arrival - ARRIVAL_LEAD),
        },
        key=f"worker:{shift.worker.id}:unit_shift_notice",
    )


def partner_plan_change_messages(appointment: Appointment) -> list[OutboundMessage]:
    partner = appointment.partner
    if partner is None:
        return []
    variables = {
        "partner_name": partner.name,
        "appointment_id": str(appointment.id),
        "appointment_date": format_date(appointment.scheduled_at),
    }
    messages = []
    if partner.phone:
        messages.append(
            OutboundMessage(
                channel=Channel.SMS,
                to=partner.phone,
                template=PARTNER_PLAN_CHANGE_SMS.name,
                variables=variables,
                key=f"partner:{partner.id}:plan_change:sms",
            )
        )
    if partner.email:
        messages.append(
            OutboundMessage(
                channel=Channel.EMAIL,
                to=partner.email,
                template=PARTNER_PLAN_CHANGE_EMAIL.name,
                variables=variables,
                key=f"partner:{partner.id}:plan_change:email",
            )
        )
    return messages


def change_summary(before: Appointment, after: Appointment, changes: ChangeSet) -> str:
    parts = []
    if changes.time_changed:
        parts.append(
            f"new time {format_date(after.scheduled_at)} {format_time(after.scheduled_at)}"
        )
    if changes.plan_changed:
        parts.append(f"plan changed to {after.plan_type.value.replace('_', ' ')}")
    if changes.units_reduced or changes.units_increased:
        parts.append(f"{after.unit_count} storage unit(s)")
    return ", ".join(parts) or "details changed"


# ─── In-app notifications ───────────────────────────────────────────


@dataclass(frozen=True)
class InAppRequest:
    recipient_id: int
    recipient_type: RecipientType
    notification_type: NotificationType
    variables: dict[str, str] = field(default_factory=dict)
    appointment_id: int | None = None
    route_id: str | None = None


class InAppNotificationService:
    """Template-driven in-app notifications with grouping of repeated events."""

    def __init__(self, repo: NotificationRepository, clock=_utcnow):
        self._repo = repo
        self._clock = clock

    async def create(self, request: InAppRequest) -> Notification:
        template = NOTIFICATION_TEMPLATES.get(request.notification_type)
        if template is None:
            raise NotificationTemplateError(
                f"No template for notification type {request.notification_type.value}"
            )
        template.check(request.variables)

        title = template.title.format(**request.variables)
        message = template.message.format(**request.variables)
        now = self._clock()

        group_key = None
        if template.groupable and template.group_key:
            group_key = template.group_key.format(**request.variables)
            existing = await self._repo.find_unread_group(
                request.recipient_id, request.recipient_type, group_key
            )
            if existing is not None:
                existing.group_count += 1
                existing.title = title
                existing.message = message
                existing.created_at = now
                logger.info(
                    "Grouped notification %s for %s %s (count=%d)",
                    group_key, request.recipient_type.value,
                    request.recipient_id, existing.group_count,
                )
                return await self._repo.update(existing)

        notification = Notification(
            id=None,
            recipient_id=request.recipient_id,
            recipient_type=request.recipient_type,
            notification_type=request.notification_type,
            title=title,
            message=message,
            group_key=group_key,
            group_count=1,
            appointment_id=request.appointment_id,
            route_id=request.route_id,
            created_at=now,
        )
        return await self._repo.save(notification)

    async def create_batch(
        self, requests: list[InAppRequest]
    ) -> tuple[list[Notification], list[PartialSyncFailure]]:
        created: list[Notification] = []
        failures: list[PartialSyncFailure] = []
        for request in requests:
            try:
                created.append(await self.create(request))
            except Exception as e:
                logger.exception(
                    "Failed to create %s notification for %s %s",
                    request.notification_type.value,
                    request.recipient_type.value,
                    request.recipient_id,
                )
                failures.append(
                    PartialSyncFailure(
                        system="in_app",
                        operation=request.notification_type.value,
                        target=f"{request.recipient_type.value}:{request.recipient_id}",
                        error=str(e),
                    )
                )
        return created, failures


# ─── Dispatcher ──────────────────────────────────────────────────────


class NotificationDispatcher:
    """Sends the role-appropriate messages for a completed appointment edit."""

    def __init__(self, effects: MessageEffectExecutor, in_app: InAppNotificationService):
        self._effects = effects
        self._in_app = in_app

    async def dispatch_change_notifications(
        self, before: Appointment, after: Appointment, changes: ChangeSet
    ) -> EffectReport:
        messages: list[OutboundMessage] = []
        if changes.time_changed:
            messages.extend(time_change_messages(before, after))
        report = await self._effects.run(messages)

        if (changes.time_changed or changes.plan_changed) and after.customer_id is not None:
            request = InAppRequest(
                recipient_id=after.customer_id,
                recipient_type=RecipientType.CUSTOMER,
                notification_type=NotificationType.APPOINTMENT_UPDATED,
                variables={
                    "appointment_id": str(after.id),
                    "appointment_date": format_date(after.scheduled_at),
                    "summary": change_summary(before, after, changes),
                },
                appointment_id=after.id,
            )
            created, failures = await self._in_app.create_batch([request])
            report.sent.extend(f"customer:{n.recipient_id}:in_app" for n in created)
            report.failures.extend(failures)
        return report
