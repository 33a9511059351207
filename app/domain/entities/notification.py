"""In-app notification entity."""

from dataclasses import dataclass
from datetime import datetime

from app.domain.value_objects.enums import NotificationStatus, NotificationType, RecipientType


@dataclass
class Notification:
    id: int | None
    recipient_id: int
    recipient_type: RecipientType
    notification_type: NotificationType
    title: str
    message: str
    status: NotificationStatus = NotificationStatus.UNREAD
    group_key: str | None = None
    group_count: int = 1
    appointment_id: int | None = None
    route_id: str | None = None
    created_at: datetime | None = None
