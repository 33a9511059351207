"""Tests for change detection and edit validation."""

from datetime import timedelta

from fakes import SCHEDULED, make_appointment, make_partner

from app.domain.entities.appointment import StorageUnitRef
from app.domain.policies.change_detection import (
    compact_unit_numbers,
    detect_changes,
    removed_unit_numbers_by_count,
    removed_unit_numbers_by_id,
    validate_edit,
)
from app.domain.value_objects.edit_request import EditRequest
from app.domain.value_objects.enums import AppointmentType, PlanType

UNITS = [StorageUnitRef(11, "A-11"), StorageUnitRef(12, "A-12"), StorageUnitRef(13, "A-13")]


def _access_appointment():
    return make_appointment(
        appointment_type=AppointmentType.STORAGE_ACCESS,
        unit_count=3,
        selected_units=list(UNITS),
    )


# ─── detect_changes ─────────────────────────────────────────────────


def test_empty_edit_has_no_changes():
    changes = detect_changes(make_appointment(), EditRequest())
    assert not changes.has_changes


def test_same_values_are_not_changes():
    a = make_appointment()
    edit = EditRequest(scheduled_at=a.scheduled_at, address=a.address, plan_type=a.plan_type)
    assert not detect_changes(a, edit).has_changes


def test_time_change_detected():
    changes = detect_changes(
        make_appointment(), EditRequest(scheduled_at=SCHEDULED + timedelta(hours=2))
    )
    assert changes.time_changed
    assert not changes.plan_changed
    assert not changes.worker_reassignment_required


def test_plan_change_requires_reassignment():
    changes = detect_changes(make_appointment(), EditRequest(plan_type=PlanType.FULL_SERVICE))
    assert changes.plan_changed
    assert changes.worker_reassignment_required


def test_partner_cleared_counts_as_change():
    a = make_appointment(partner=make_partner())
    changes = detect_changes(a, EditRequest(partner_id=None))
    assert changes.partner_changed


def test_partner_not_supplied_is_not_a_change():
    a = make_appointment(partner=make_partner())
    assert not detect_changes(a, EditRequest(address="1 New St")).partner_changed


def test_third_party_partner_is_a_detail_change():
    changes = detect_changes(make_appointment(), EditRequest(third_party_partner_id=42))
    assert changes.details_changed
    assert not changes.partner_changed


def test_unit_count_increase():
    changes = detect_changes(make_appointment(unit_count=1), EditRequest(unit_count=3))
    assert changes.additional_units_to_create == 2
    assert changes.units_increased


def test_unit_count_decrease():
    changes = detect_changes(make_appointment(unit_count=3), EditRequest(unit_count=1))
    assert changes.units_to_remove_by_count == 2
    assert changes.units_reduced
    assert changes.worker_reassignment_required


def test_unit_selection_diff():
    changes = detect_changes(_access_appointment(), EditRequest(selected_unit_ids=[11, 13, 14]))
    assert changes.units_added == (14,)
    assert changes.units_removed == (12,)


def test_unit_count_ignored_for_selection_appointments():
    changes = detect_changes(_access_appointment(), EditRequest(unit_count=1))
    assert changes.units_to_remove_by_count == 0


# ─── validate_edit ──────────────────────────────────────────────────


def test_zero_units_rejected():
    assert validate_edit(make_appointment(), EditRequest(unit_count=0)) == (
        "Appointment must have at least one storage unit"
    )


def test_empty_selection_rejected():
    assert validate_edit(_access_appointment(), EditRequest(selected_unit_ids=[])) == (
        "At least one storage unit must be selected"
    )


def test_valid_edit_passes():
    assert validate_edit(make_appointment(), EditRequest(unit_count=2)) is None


# ─── Unit numbering ─────────────────────────────────────────────────


def test_removed_by_count_takes_highest_units():
    assert removed_unit_numbers_by_count(4, 2) == [3, 4]


def test_removed_by_id_maps_to_slot_positions():
    assert removed_unit_numbers_by_id(_access_appointment(), (12,)) == [2]


def test_compact_unit_numbers_closes_gaps():
    assert compact_unit_numbers([1, 3]) == {3: 2}
    assert compact_unit_numbers([2, 3]) == {2: 1, 3: 2}
    assert compact_unit_numbers([1, 2]) == {}
