"""Message and in-app notification templates.

Templates use ``str.format`` placeholders. ``required`` lists the variables a
caller must supply; rendering fails loudly when one is missing.
"""

from __future__ import annotations

from dataclasses import dataclass

from app.application.exceptions import NotificationTemplateError
from app.domain.value_objects.enums import NotificationType


@dataclass(frozen=True)
class MessageTemplate:
    name: str
    body: str
    subject: str | None = None  # email only

    def render(self, variables: dict[str, str]) -> str:
        return self.body.format(**variables)

    def render_subject(self, variables: dict[str, str]) -> str:
        return (self.subject or "").format(**variables)


@dataclass(frozen=True)
class NotificationTemplate:
    title: str
    message: str
    required: tuple[str, ...]
    groupable: bool = False
    group_key: str | None = None  # format string over the same variables

    def check(self, variables: dict[str, str]) -> None:
        missing = [k for k in self.required if not variables.get(k)]
        if missing:
            raise NotificationTemplateError(
                f"Missing template variables: {', '.join(missing)}"
            )


# ─── SMS / email ─────────────────────────────────────────────────────

RECONFIRM_TIME_CHANGE = MessageTemplate(
    name="reconfirm_time_change",
    body=(
        "Hi {worker_name}, the job at {address} moved from {original_date} {original_time} "
        "to {new_date} {new_time}. Please reconfirm you can still make it: {reconfirm_url}"
    ),
)

RECONFIRM_UNIT_SHIFT = MessageTemplate(
    name="reconfirm_unit_shift",
    body=(
        "Hi {worker_name}, your job on {appointment_date} now covers unit #{new_unit} "
        "with arrival at {new_arrival}. Please reconfirm: {reconfirm_url}"
    ),
)

UNIT_SHIFT_NOTICE = MessageTemplate(
    name="unit_shift_notice",
    body=(
        "Hi {worker_name}, your job on {appointment_date} moved to unit #{new_unit}. "
        "New arrival time: {new_arrival}. No action needed."
    ),
)

WORKER_REASSIGNED = MessageTemplate(
    name="worker_reassigned",
    body=(
        "Hi {worker_name}, you have been removed from the job on {appointment_date} "
        "at {address} ({reason}). We'll send you new jobs soon."
    ),
)

TASK_CANCELLED = MessageTemplate(
    name="task_cancelled",
    body=(
        "Hi {worker_name}, unit #{unit_numbers} of the job on {appointment_date} "
        "was cancelled by the customer. No need to show up for it."
    ),
)

PARTNER_WORKER_TIME_CHANGE = MessageTemplate(
    name="partner_worker_time_change",
    body=(
        "Hi {worker_name}, the job at {address} moved from {original_date} {original_time} "
        "to {new_date} {new_time}. Check with your company for details."
    ),
)

PARTNER_TIME_CHANGE_SMS = MessageTemplate(
    name="partner_time_change_sms",
    body=(
        "{partner_name}: appointment #{appointment_id} for {customer_name} moved from "
        "{original_date} {original_time} to {new_date} {new_time}."
    ),
)

PARTNER_TIME_CHANGE_EMAIL = MessageTemplate(
    name="partner_time_change_email",
    subject="Appointment #{appointment_id} rescheduled",
    body=(
        "Hello {partner_name},\n\nAppointment #{appointment_id} for {customer_name} at "
        "{address} moved from {original_date} {original_time} to {new_date} {new_time}.\n"
    ),
)

PARTNER_PLAN_CHANGE_SMS = MessageTemplate(
    name="partner_plan_change_sms",
    body=(
        "{partner_name}: the customer switched appointment #{appointment_id} on "
        "{appointment_date} to self service. Your crew is no longer needed."
    ),
)

PARTNER_PLAN_CHANGE_EMAIL = MessageTemplate(
    name="partner_plan_change_email",
    subject="Appointment #{appointment_id} no longer needs your crew",
    body=(
        "Hello {partner_name},\n\nThe customer switched appointment #{appointment_id} on "
        "{appointment_date} to a self-service plan. The job has been removed from your schedule.\n"
    ),
)

ROUTE_OFFER = MessageTemplate(
    name="route_offer",
    body=(
        "New route on {delivery_date}: {total_stops} stops in {delivery_area}. "
        "Accept within {timeout_minutes} min: {offer_url}"
    ),
)

MESSAGE_TEMPLATES: dict[str, MessageTemplate] = {
    t.name: t
    for t in (
        RECONFIRM_TIME_CHANGE,
        RECONFIRM_UNIT_SHIFT,
        UNIT_SHIFT_NOTICE,
        WORKER_REASSIGNED,
        TASK_CANCELLED,
        PARTNER_WORKER_TIME_CHANGE,
        PARTNER_TIME_CHANGE_SMS,
        PARTNER_TIME_CHANGE_EMAIL,
        PARTNER_PLAN_CHANGE_SMS,
        PARTNER_PLAN_CHANGE_EMAIL,
        ROUTE_OFFER,
    )
}


# ─── In-app ──────────────────────────────────────────────────────────

NOTIFICATION_TEMPLATES: dict[NotificationType, NotificationTemplate] = {
    NotificationType.APPOINTMENT_UPDATED: NotificationTemplate(
        title="Appointment updated",
        message="Your appointment on {appointment_date} was updated: {summary}.",
        required=("appointment_id", "appointment_date", "summary"),
        groupable=True,
        group_key="appointment_updated:{appointment_id}",
    ),
    NotificationType.UNITS_REDUCED: NotificationTemplate(
        title="Unit count reduced",
        message="Appointment #{appointment_id}: unit count reduced from {old_count} to {new_count}.",
        required=("appointment_id", "old_count", "new_count"),
        groupable=True,
        group_key="units_reduced:{appointment_id}",
    ),
    NotificationType.ROUTE_OFFER_EXHAUSTED: NotificationTemplate(
        title="Route needs manual assignment",
        message="No eligible worker accepted route {route_id} for {delivery_date}.",
        required=("route_id", "delivery_date"),
    ),
}
