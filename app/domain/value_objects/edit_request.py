"""EditRequest value object — the fields a caller wants to change."""

from dataclasses import dataclass
from datetime import datetime

from app.domain.value_objects.enums import PlanType


class _Unset:
    """Marker for nullable fields that were not supplied at all."""

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET = _Unset()


@dataclass(frozen=True)
class EditRequest:
    """Partial edit of an appointment.

    ``None`` means "not supplied" for every field except the partner
    references, which are nullable themselves and use ``UNSET`` instead.
    """

    scheduled_at: datetime | None = None
    address: str | None = None
    zipcode: str | None = None
    description: str | None = None
    plan_type: PlanType | None = None
    unit_count: int | None = None
    selected_unit_ids: tuple[int, ...] | None = None
    partner_id: int | None | _Unset = UNSET
    third_party_partner_id: int | None | _Unset = UNSET
    loading_help_price: float | None = None

    def __post_init__(self) -> None:
        if self.selected_unit_ids is not None and not isinstance(self.selected_unit_ids, tuple):
            object.__setattr__(self, "selected_unit_ids", tuple(self.selected_unit_ids))

    @property
    def supplies_partner(self) -> bool:
        return not isinstance(self.partner_id, _Unset)

    @property
    def supplies_third_party_partner(self) -> bool:
        return not isinstance(self.third_party_partner_id, _Unset)
