"""ChangeDetectionPolicy — diff a proposed edit against the stored appointment."""

from __future__ import annotations

from app.domain.entities.appointment import Appointment
from app.domain.value_objects.change_set import ChangeSet
from app.domain.value_objects.edit_request import EditRequest


def detect_changes(appointment: Appointment, edit: EditRequest) -> ChangeSet:
    """Pure function: compare supplied edit fields with the stored snapshot.

    Rules:
      1. A field counts as changed only if the edit supplies it AND it differs.
      2. Unit-selection appointments (access, end of term) diff unit ids.
      3. Counted appointments diff the unit count; the surplus or shortfall
         becomes "create N" or "remove N" (highest numbers go first).
    """
    plan_changed = edit.plan_type is not None and edit.plan_type != appointment.plan_type
    time_changed = (
        edit.scheduled_at is not None and edit.scheduled_at != appointment.scheduled_at
    )
    partner_changed = edit.supplies_partner and edit.partner_id != appointment.partner_id

    details_changed = any(
        [
            edit.address is not None and edit.address != appointment.address,
            edit.zipcode is not None and edit.zipcode != appointment.zipcode,
            edit.description is not None and edit.description != appointment.description,
            edit.loading_help_price is not None
            and edit.loading_help_price != appointment.loading_help_price,
            edit.supplies_third_party_partner
            and edit.third_party_partner_id != appointment.third_party_partner_id,
        ]
    )

    units_added: tuple[int, ...] = ()
    units_removed: tuple[int, ...] = ()
    remove_by_count = 0
    create_by_count = 0

    if appointment.appointment_type.selects_units:
        if edit.selected_unit_ids is not None:
            existing = appointment.selected_unit_ids
            units_added = tuple(i for i in edit.selected_unit_ids if i not in existing)
            units_removed = tuple(i for i in existing if i not in edit.selected_unit_ids)
    elif edit.unit_count is not None:
        diff = edit.unit_count - appointment.unit_count
        if diff < 0:
            remove_by_count = -diff
        elif diff > 0:
            create_by_count = diff

    return ChangeSet(
        plan_changed=plan_changed,
        time_changed=time_changed,
        partner_changed=partner_changed,
        details_changed=details_changed,
        units_added=units_added,
        units_removed=units_removed,
        units_to_remove_by_count=remove_by_count,
        additional_units_to_create=create_by_count,
    )


def validate_edit(appointment: Appointment, edit: EditRequest) -> str | None:
    """Return a human-readable rule violation, or None if the edit is valid."""
    if edit.unit_count is not None and edit.unit_count < 1:
        return "Appointment must have at least one storage unit"
    if appointment.appointment_type.selects_units:
        selected = (
            edit.selected_unit_ids
            if edit.selected_unit_ids is not None
            else tuple(appointment.selected_unit_ids)
        )
        if len(selected) < 1:
            return "At least one storage unit must be selected"
    return None


def removed_unit_numbers_by_count(existing_count: int, new_count: int) -> list[int]:
    """Highest unit numbers go first, so the survivors are always 1..new_count."""
    return list(range(new_count + 1, existing_count + 1))


def removed_unit_numbers_by_id(appointment: Appointment, removed_ids: tuple[int, ...]) -> list[int]:
    """1-based slot numbers of the removed storage units in the stored selection."""
    return [
        idx + 1
        for idx, unit in enumerate(appointment.selected_units)
        if unit.id in removed_ids
    ]


def compact_unit_numbers(remaining: list[int]) -> dict[int, int]:
    """Map surviving unit numbers onto a gap-free 1..N sequence (order kept)."""
    return {old: new for new, old in enumerate(sorted(remaining), start=1) if old != new}
