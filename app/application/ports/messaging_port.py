"""Port interface for the SMS / email gateway."""

from abc import ABC, abstractmethod

from app.application.templates import MessageTemplate


class MessagingPort(ABC):
    @abstractmethod
    async def send_sms(self, to: str, template: MessageTemplate, variables: dict[str, str]) -> None:
        """Raises MessagingError when the provider rejects the message."""
        ...

    @abstractmethod
    async def send_email(self, to: str, template: MessageTemplate, variables: dict[str, str]) -> None:
        ...
