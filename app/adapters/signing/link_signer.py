"""Signed driver links backed by itsdangerous."""

from __future__ import annotations

import logging
from urllib.parse import quote

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from app.application.ports.link_signer_port import LinkSignerPort

logger = logging.getLogger(__name__)


class TimedLinkSigner(LinkSignerPort):
    """Each purpose is used as the salt, so a token minted for one flow
    never verifies in another."""

    def __init__(self, secret: str, base_url: str):
        self._serializer = URLSafeTimedSerializer(secret)
        self._base_url = base_url.rstrip("/")

    def sign(self, payload: dict, purpose: str) -> str:
        return self._serializer.dumps(payload, salt=purpose)

    def verify(self, token: str, purpose: str, max_age: int) -> dict | None:
        try:
            return self._serializer.loads(token, salt=purpose, max_age=max_age)
        except SignatureExpired:
            logger.info("Expired %s token", purpose)
            return None
        except BadSignature:
            logger.warning("Invalid %s token", purpose)
            return None

    def build_url(self, path: str, token: str) -> str:
        return f"{self._base_url}/{path.lstrip('/')}/{quote(token, safe='')}"
