"""Twilio SMS and SendGrid email gateway — implements MessagingPort."""

from __future__ import annotations

import logging

import httpx

from app.application.exceptions import MessagingError
from app.application.ports.messaging_port import MessagingPort
from app.application.templates import MessageTemplate

logger = logging.getLogger(__name__)

TWILIO_MESSAGES_URL = "https://api.twilio.com/2010-04-01/Accounts/{sid}/Messages.json"
SENDGRID_SEND_URL = "https://api.sendgrid.com/v3/mail/send"


class SmsEmailGateway(MessagingPort):
    def __init__(
        self,
        twilio_account_sid: str,
        twilio_auth_token: str,
        twilio_from_number: str,
        sendgrid_api_key: str,
        email_from: str,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._sid = twilio_account_sid
        self._token = twilio_auth_token
        self._from_number = twilio_from_number
        self._sendgrid_key = sendgrid_api_key
        self._email_from = email_from
        self._transport = transport

    async def send_sms(self, to: str, template: MessageTemplate, variables: dict[str, str]) -> None:
        if not self._sid or not self._token:
            raise MessagingError("Twilio credentials are not configured")
        body = template.render(variables)

        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                response = await client.post(
                    TWILIO_MESSAGES_URL.format(sid=self._sid),
                    auth=(self._sid, self._token),
                    data={"To": to, "From": self._from_number, "Body": body},
                    timeout=10.0,
                )
        except httpx.HTTPError as e:
            raise MessagingError(f"Twilio request failed: {e}") from e

        if response.status_code not in (200, 201):
            raise MessagingError(f"Twilio rejected SMS to {to}: {response.status_code} {response.text}")
        logger.info("SMS '%s' sent to %s", template.name, to)

    async def send_email(self, to: str, template: MessageTemplate, variables: dict[str, str]) -> None:
        if not self._sendgrid_key:
            raise MessagingError("SendGrid API key is not configured")
        payload = {
            "personalizations": [{"to": [{"email": to}]}],
            "from": {"email": self._email_from},
            "subject": template.render_subject(variables),
            "content": [{"type": "text/plain", "value": template.render(variables)}],
        }

        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                response = await client.post(
                    SENDGRID_SEND_URL,
                    headers={"Authorization": f"Bearer {self._sendgrid_key}"},
                    json=payload,
                    timeout=10.0,
                )
        except httpx.HTTPError as e:
            raise MessagingError(f"SendGrid request failed: {e}") from e

        if response.status_code >= 300:
            raise MessagingError(
                f"SendGrid rejected email to {to}: {response.status_code} {response.text}"
            )
        logger.info("Email '%s' sent to %s", template.name, to)
