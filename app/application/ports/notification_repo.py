"""Port interface for in-app notifications."""

from abc import ABC, abstractmethod

from app.domain.entities.notification import Notification
from app.domain.value_objects.enums import RecipientType


class NotificationRepository(ABC):
    @abstractmethod
    async def find_unread_group(
        self, recipient_id: int, recipient_type: RecipientType, group_key: str
    ) -> Notification | None:
        ...

    @abstractmethod
    async def save(self, notification: Notification) -> Notification:
        ...

    @abstractmethod
    async def update(self, notification: Notification) -> Notification:
        ...
