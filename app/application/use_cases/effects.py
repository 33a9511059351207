"""Outbound message executor — performs messaging effects with per-effect isolation."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from app.application.exceptions import MessagingError
from app.application.ports.messaging_port import MessagingPort
from app.application.templates import MESSAGE_TEMPLATES
from app.domain.value_objects.outbound_message import Channel, OutboundMessage

logger = logging.getLogger(__name__)


@dataclass
class PartialSyncFailure:
    """One external call that failed after the core state was already decided."""

    system: str  # "dispatch" | "messaging" | "in_app"
    operation: str
    target: str
    error: str


@dataclass
class EffectReport:
    sent: list[str] = field(default_factory=list)
    failures: list[PartialSyncFailure] = field(default_factory=list)

    def extend(self, other: "EffectReport") -> None:
        self.sent.extend(other.sent)
        self.failures.extend(other.failures)


class MessageEffectExecutor:
    """Sends OutboundMessages one by one; a failed send never stops the rest."""

    def __init__(self, messaging: MessagingPort):
        self._messaging = messaging

    async def send(self, message: OutboundMessage) -> PartialSyncFailure | None:
        template = MESSAGE_TEMPLATES.get(message.template)
        if template is None:
            logger.error("Unknown message template %s for %s", message.template, message.key)
            return PartialSyncFailure(
                system="messaging",
                operation=message.channel.value,
                target=message.key,
                error=f"unknown template {message.template}",
            )
        try:
            if message.channel == Channel.SMS:
                await self._messaging.send_sms(message.to, template, message.variables)
            else:
                await self._messaging.send_email(message.to, template, message.variables)
        except (MessagingError, KeyError) as e:
            logger.warning("Failed to send %s %s: %s", message.channel.value, message.key, e)
            return PartialSyncFailure(
                system="messaging",
                operation=message.channel.value,
                target=message.key,
                error=str(e),
            )
        logger.info("Sent %s %s", message.channel.value, message.key)
        return None

    async def run(self, messages: list[OutboundMessage]) -> EffectReport:
        report = EffectReport()
        for message in messages:
            failure = await self.send(message)
            if failure is None:
                report.sent.append(message.key)
            else:
                report.failures.append(failure)
        return report
