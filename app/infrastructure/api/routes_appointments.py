"""Appointment edit endpoint."""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from app.application.use_cases.update_appointment import UpdateAppointmentUseCase, UpdateResult
from app.domain.entities.appointment import Appointment
from app.domain.value_objects.edit_request import UNSET, EditRequest
from app.domain.value_objects.enums import PlanType
from app.infrastructure.api.dependencies import get_update_appointment_uc

router = APIRouter(prefix="/appointments", tags=["appointments"])


class AppointmentEditBody(BaseModel):
    scheduled_at: datetime | None = None
    address: str | None = None
    zipcode: str | None = None
    description: str | None = None
    plan_type: PlanType | None = None
    unit_count: int | None = Field(default=None, ge=0)
    selected_unit_ids: list[int] | None = None
    partner_id: int | None = None
    third_party_partner_id: int | None = None
    loading_help_price: float | None = Field(default=None, ge=0)

    def to_edit(self) -> EditRequest:
        """Partner fields distinguish "set to null" from "not sent"."""
        supplied = self.model_fields_set
        return EditRequest(
            scheduled_at=self.scheduled_at,
            address=self.address,
            zipcode=self.zipcode,
            description=self.description,
            plan_type=self.plan_type,
            unit_count=self.unit_count,
            selected_unit_ids=tuple(self.selected_unit_ids) if self.selected_unit_ids is not None else None,
            partner_id=self.partner_id if "partner_id" in supplied else UNSET,
            third_party_partner_id=(
                self.third_party_partner_id if "third_party_partner_id" in supplied else UNSET
            ),
            loading_help_price=self.loading_help_price,
        )


@router.patch("/{appointment_id}")
async def update_appointment(
    appointment_id: int,
    body: AppointmentEditBody,
    uc: UpdateAppointmentUseCase = Depends(get_update_appointment_uc),
):
    """Apply an edit and propagate it to tasks, bookings and notifications."""
    result = await uc.execute(appointment_id, body.to_edit())
    if not result.success:
        status = {"not_found": 404, "validation": 422}.get(result.error_kind, 500)
        raise HTTPException(status_code=status, detail=result.error)
    return _serialize_result(result)


def _serialize_appointment(a: Appointment) -> dict:
    return {
        "id": a.id,
        "appointment_type": a.appointment_type.value,
        "scheduled_at": a.scheduled_at.isoformat(),
        "address": a.address,
        "zipcode": a.zipcode,
        "description": a.description,
        "plan_type": a.plan_type.value,
        "unit_count": a.unit_count,
        "partner_id": a.partner_id,
        "third_party_partner_id": a.third_party_partner_id,
        "loading_help_price": a.loading_help_price,
        "selected_units": [{"id": u.id, "label": u.label} for u in a.selected_units],
        "tasks": [
            {
                "id": t.id,
                "external_id": t.external_id,
                "unit_number": t.unit_number,
                "step": int(t.step),
                "worker_id": t.worker_id,
                "notification_status": t.notification_status.value,
            }
            for t in a.tasks
        ],
    }


def _serialize_result(result: UpdateResult) -> dict:
    changes = result.changes
    return {
        "success": True,
        "appointment": _serialize_appointment(result.appointment) if result.appointment else None,
        "changes": {
            "plan_changed": changes.plan_changed,
            "time_changed": changes.time_changed,
            "partner_changed": changes.partner_changed,
            "details_changed": changes.details_changed,
            "units_added": list(changes.units_added),
            "units_removed": list(changes.units_removed),
            "units_to_remove_by_count": changes.units_to_remove_by_count,
            "additional_units_to_create": changes.additional_units_to_create,
        }
        if changes
        else None,
        "task_results": [
            {
                "task_id": r.task_id,
                "external_id": r.external_id,
                "unit_number": r.unit_number,
                "step": r.step,
                "success": r.success,
                "error": r.error,
            }
            for r in result.task_results
        ],
        "notifications_sent": result.notifications_sent,
        "failures": [
            {"system": f.system, "operation": f.operation, "target": f.target, "error": f.error}
            for f in result.failures
        ],
    }
