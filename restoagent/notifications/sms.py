"""
Customer SMS through Twilio.

Bodies stay short (under ~160 characters plus the link) so providers do not
split them. Sending never raises: callers get an SMSResult and decide whether
to log the failure.
"""

import asyncio
from dataclasses import dataclass
from datetime import date
from typing import Optional

import structlog
from twilio.base.exceptions import TwilioException
from twilio.rest import Client as TwilioClient

from restoagent.config import settings
from restoagent.utils.dates import format_date_fr, format_time, parse_time
from restoagent.utils.phone import format_phone_e164, mask_phone

logger = structlog.get_logger()


@dataclass
class SMSResult:
    success: bool
    message_sid: Optional[str] = None
    error: Optional[str] = None


def confirmation_body(
    restaurant_name: str,
    reservation_date: date,
    reservation_time: str,
    guests: int,
    cancellation_token: str,
) -> str:
    return (
        f"{restaurant_name}: Réservation confirmée!\n"
        f"{format_date_fr(reservation_date, short=True)} à {format_time(parse_time(reservation_time))}\n"
        f"{guests} pers.\n"
        f"Annuler: {settings.app_url.rstrip('/')}/cancel/{cancellation_token}"
    )


def reminder_body(
    restaurant_name: str,
    reservation_date: date,
    reservation_time: str,
    guests: int,
) -> str:
    return (
        f"Rappel {restaurant_name}\n"
        f"Réservation demain {format_date_fr(reservation_date, short=True)} à "
        f"{format_time(parse_time(reservation_time))}\n"
        f"{guests} personnes\n"
        "À bientôt!"
    )


def cancellation_body(
    restaurant_name: str,
    reservation_date: date,
    reservation_time: str,
) -> str:
    return (
        f"{restaurant_name}\n"
        f"Votre réservation du {format_date_fr(reservation_date, short=True)} à "
        f"{format_time(parse_time(reservation_time))} a été annulée.\n"
        "À bientôt!"
    )


class SMSNotifier:
    """Sends reservation SMS; the Twilio client is created lazily"""

    def __init__(self, client: Optional[TwilioClient] = None):
        self._client = client

    @property
    def configured(self) -> bool:
        return self._client is not None or settings.twilio_configured

    def _get_client(self) -> TwilioClient:
        if self._client is None:
            self._client = TwilioClient(settings.twilio_account_sid, settings.twilio_auth_token)
        return self._client

    async def send(self, to: str, body: str) -> SMSResult:
        if not self.configured:
            logger.warning("Twilio not configured, SMS not sent", to=mask_phone(to))
            return SMSResult(success=False, error="Twilio non configuré")

        to_number = format_phone_e164(to)
        try:
            # The Twilio client is blocking
            message = await asyncio.to_thread(
                self._get_client().messages.create,
                body=body,
                from_=settings.twilio_phone_number,
                to=to_number,
            )
        except TwilioException as e:
            logger.error("Failed to send SMS", to=mask_phone(to_number), error=str(e))
            return SMSResult(success=False, error=str(e))
        except Exception as e:
            # Network and transport errors surface outside TwilioException
            logger.error("Unexpected error sending SMS", to=mask_phone(to_number), error=str(e))
            return SMSResult(success=False, error=str(e))

        logger.info("SMS sent", to=mask_phone(to_number), message_sid=message.sid)
        return SMSResult(success=True, message_sid=message.sid)

    async def send_confirmation(
        self,
        phone: str,
        restaurant_name: str,
        reservation_date: date,
        reservation_time: str,
        guests: int,
        cancellation_token: str,
    ) -> SMSResult:
        body = confirmation_body(
            restaurant_name, reservation_date, reservation_time, guests, cancellation_token
        )
        return await self.send(phone, body)

    async def send_reminder(
        self,
        phone: str,
        restaurant_name: str,
        reservation_date: date,
        reservation_time: str,
        guests: int,
    ) -> SMSResult:
        body = reminder_body(restaurant_name, reservation_date, reservation_time, guests)
        return await self.send(phone, body)

    async def send_cancellation_confirmation(
        self,
        phone: str,
        restaurant_name: str,
        reservation_date: date,
        reservation_time: str,
    ) -> SMSResult:
        body = cancellation_body(restaurant_name, reservation_date, reservation_time)
        return await self.send(phone, body)


def get_notifier() -> SMSNotifier:
    """FastAPI dependency"""
    return SMSNotifier()
