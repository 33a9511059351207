"""Tests for SmsEmailGateway — Twilio and SendGrid calls over MockTransport."""

import json
from urllib.parse import parse_qs

import httpx
import pytest

from app.adapters.messaging.sms_email_gateway import SmsEmailGateway
from app.application.exceptions import MessagingError
from app.application.templates import PARTNER_PLAN_CHANGE_EMAIL, TASK_CANCELLED

SMS_VARS = {"worker_name": "Sam", "unit_numbers": "2", "appointment_date": "Mon, Jun 2"}
EMAIL_VARS = {"partner_name": "Bay Movers", "appointment_id": "1", "appointment_date": "Mon, Jun 2"}


def _gateway(handler, **overrides):
    settings = dict(
        twilio_account_sid="AC123",
        twilio_auth_token="secret",
        twilio_from_number="+15550009999",
        sendgrid_api_key="SG.key",
        email_from="dispatch@example.test",
    )
    settings.update(overrides)
    return SmsEmailGateway(**settings, transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_sms_posts_form_to_twilio():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(201, json={"sid": "SM1"})

    await _gateway(handler).send_sms("+15550000010", TASK_CANCELLED, SMS_VARS)

    (request,) = seen
    assert request.url.path == "/2010-04-01/Accounts/AC123/Messages.json"
    form = parse_qs(request.content.decode())
    assert form["To"] == ["+15550000010"]
    assert form["From"] == ["+15550009999"]
    assert "Sam" in form["Body"][0]


@pytest.mark.asyncio
async def test_sms_rejection_raises():
    with pytest.raises(MessagingError, match="400"):
        await _gateway(lambda r: httpx.Response(400, text="invalid number")).send_sms(
            "+1", TASK_CANCELLED, SMS_VARS
        )


@pytest.mark.asyncio
async def test_sms_without_credentials_raises():
    with pytest.raises(MessagingError, match="not configured"):
        await _gateway(lambda r: httpx.Response(201), twilio_account_sid="").send_sms(
            "+1", TASK_CANCELLED, SMS_VARS
        )


@pytest.mark.asyncio
async def test_email_posts_to_sendgrid():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(202)

    await _gateway(handler).send_email("ops@baymovers.test", PARTNER_PLAN_CHANGE_EMAIL, EMAIL_VARS)

    (request,) = seen
    assert request.headers["Authorization"] == "Bearer SG.key"
    body = json.loads(request.content)
    assert body["personalizations"] == [{"to": [{"email": "ops@baymovers.test"}]}]
    assert body["subject"] == "Appointment #1 no longer needs your crew"
    assert body["from"] == {"email": "dispatch@example.test"}


@pytest.mark.asyncio
async def test_email_transport_error_becomes_messaging_error():
    def handler(request):
        raise httpx.ConnectTimeout("timed out", request=request)

    with pytest.raises(MessagingError, match="SendGrid request failed"):
        await _gateway(handler).send_email("a@b.test", PARTNER_PLAN_CHANGE_EMAIL, EMAIL_VARS)
