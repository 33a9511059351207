"""Port interface for signed, time-boxed links."""

from abc import ABC, abstractmethod


class LinkSignerPort(ABC):
    @abstractmethod
    def sign(self, payload: dict, purpose: str) -> str:
        ...

    @abstractmethod
    def verify(self, token: str, purpose: str, max_age: int) -> dict | None:
        """Decode a token. Returns None if it is expired or tampered with."""
        ...

    @abstractmethod
    def build_url(self, path: str, token: str) -> str:
        ...
