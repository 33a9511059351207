"""Domain enums — pure Python, no external dependencies."""

from enum import Enum


class PlanType(str, Enum):
    SELF_SERVICE = "self_service"
    FULL_SERVICE = "full_service"
    THIRD_PARTY_LOADING = "third_party_loading"


class PlanSwitch(str, Enum):
    SELF_TO_FULL = "self_to_full"
    FULL_TO_SELF = "full_to_self"


class AppointmentType(str, Enum):
    INITIAL_PICKUP = "initial_pickup"
    ADDITIONAL_STORAGE = "additional_storage"
    STORAGE_ACCESS = "storage_access"
    END_STORAGE_TERM = "end_storage_term"

    @property
    def selects_units(self) -> bool:
        """Access-style appointments operate on specific existing units."""
        return self in (AppointmentType.STORAGE_ACCESS, AppointmentType.END_STORAGE_TERM)


class WorkerType(str, Enum):
    NETWORK = "network"  # directly managed, reconfirms changes
    PARTNER = "partner"  # employed by a partner company, informed only


class TaskStep(int, Enum):
    PICKUP = 1
    CUSTOMER_STOP = 2
    RETURN = 3


class TaskNotificationStatus(str, Enum):
    NONE = "none"
    PENDING_RECONFIRMATION = "pending_reconfirmation"
    CANCELLED = "cancelled"


class ContainerType(str, Enum):
    TEAM = "TEAM"
    WORKER = "WORKER"
    ORGANIZATION = "ORGANIZATION"


class OfferStatus(str, Enum):
    UNSENT = "unsent"
    SENT = "sent"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    EXPIRED = "expired"


class RouteStatus(str, Enum):
    PENDING = "pending"
    ASSIGNED = "assigned"
    NEEDS_MANUAL_ASSIGNMENT = "needs_manual_assignment"


class AcceptOutcome(str, Enum):
    ACCEPTED = "accepted"
    NOT_FOUND = "not_found"
    ALREADY_ACCEPTED = "already_accepted"
    EXPIRED = "expired"
    NOT_SENT = "not_sent"
    WRONG_DRIVER = "wrong_driver"


class RecipientType(str, Enum):
    CUSTOMER = "customer"
    WORKER = "worker"
    PARTNER = "partner"
    ADMIN = "admin"


class NotificationType(str, Enum):
    APPOINTMENT_UPDATED = "appointment_updated"
    UNITS_REDUCED = "units_reduced"
    ROUTE_OFFER_EXHAUSTED = "route_offer_exhausted"


class NotificationStatus(str, Enum):
    UNREAD = "unread"
    READ = "read"
