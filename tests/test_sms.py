"""Tests for the Twilio SMS notifier"""

from datetime import date

import pytest
from twilio.base.exceptions import TwilioRestException

from restoagent.notifications.sms import SMSNotifier, confirmation_body


class FakeMessages:
    def __init__(self, error=None):
        self.error = error
        self.created = []

    def create(self, body, from_, to):
        if self.error is not None:
            raise self.error
        self.created.append({"body": body, "to": to})
        return type("Message", (), {"sid": "SM123"})()


class FakeTwilioClient:
    def __init__(self, error=None):
        self.messages = FakeMessages(error)


@pytest.mark.asyncio
async def test_send_normalizes_number():
    """Test the message goes to the E.164 number"""
    client = FakeTwilioClient()

    result = await SMSNotifier(client=client).send("06 12 34 56 78", "Bonjour")

    assert result.success
    assert result.message_sid == "SM123"
    assert client.messages.created == [{"body": "Bonjour", "to": "+33612345678"}]


@pytest.mark.asyncio
async def test_send_reports_twilio_errors():
    """Test a Twilio API error becomes a failed result"""
    client = FakeTwilioClient(TwilioRestException(400, "https://api.twilio.com", msg="invalid number"))

    result = await SMSNotifier(client=client).send("+33612345678", "Bonjour")

    assert not result.success
    assert "invalid number" in result.error


@pytest.mark.asyncio
async def test_send_reports_network_errors():
    """Test transport errors outside the Twilio hierarchy do not escape send"""
    client = FakeTwilioClient(ConnectionError("connection reset by peer"))

    result = await SMSNotifier(client=client).send_reminder(
        "+33612345678", "L'Épicurie", date(2025, 1, 20), "19:00", 2
    )

    assert not result.success
    assert result.error == "connection reset by peer"


def test_confirmation_body_has_cancel_link():
    """Test the confirmation ends with the cancellation link"""
    body = confirmation_body("L'Épicurie", date(2025, 1, 20), "19:30", 2, "tok123")

    assert body.startswith("L'Épicurie: Réservation confirmée!")
    assert body.endswith("/cancel/tok123")
