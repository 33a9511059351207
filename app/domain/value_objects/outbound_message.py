"""OutboundMessage value object — an SMS or email the core wants sent."""

from dataclasses import dataclass, field
from enum import Enum


class Channel(str, Enum):
    SMS = "sms"
    EMAIL = "email"


@dataclass(frozen=True)
class OutboundMessage:
    channel: Channel
    to: str
    template: str
    variables: dict[str, str] = field(default_factory=dict)
    key: str = ""  # e.g. "worker:12:time_change", used in results and logs
