"""ChangeSet value object — what an edit actually changes."""

from dataclasses import dataclass


@dataclass(frozen=True)
class ChangeSet:
    plan_changed: bool = False
    time_changed: bool = False
    partner_changed: bool = False
    details_changed: bool = False  # address, zipcode, description, pricing, third party
    units_added: tuple[int, ...] = ()  # storage unit ids
    units_removed: tuple[int, ...] = ()  # storage unit ids
    units_to_remove_by_count: int = 0
    additional_units_to_create: int = 0

    @property
    def worker_reassignment_required(self) -> bool:
        return (
            self.plan_changed
            or self.partner_changed
            or bool(self.units_removed)
            or self.units_to_remove_by_count > 0
        )

    @property
    def units_reduced(self) -> bool:
        return bool(self.units_removed) or self.units_to_remove_by_count > 0

    @property
    def units_increased(self) -> bool:
        return bool(self.units_added) or self.additional_units_to_create > 0

    @property
    def has_changes(self) -> bool:
        return (
            self.plan_changed
            or self.time_changed
            or self.partner_changed
            or self.details_changed
            or self.units_reduced
            or self.units_increased
        )
