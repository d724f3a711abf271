"""Waitlist capture and conversion"""

from dataclasses import dataclass
from datetime import date, time
from typing import Optional
from uuid import UUID

import structlog

from restoagent.booking.schedule import service_type_for_time
from restoagent.booking.store import ReservationStore
from restoagent.models import DesiredService, WaitlistEntry, WaitlistStatus
from restoagent.utils.dates import format_time
from restoagent.utils.phone import format_phone_e164, mask_phone

logger = structlog.get_logger()


@dataclass
class WaitlistResult:
    success: bool
    message: str
    entry: Optional[WaitlistEntry] = None
    already_registered: bool = False


def desired_service_for(desired_time: Optional[time]) -> DesiredService:
    if desired_time is None:
        return DesiredService.ANY
    return DesiredService(service_type_for_time(desired_time).value)


async def add_to_waitlist(
    store: ReservationStore,
    restaurant_id: UUID,
    customer_name: str,
    customer_phone: str,
    desired_date: date,
    party_size: int,
    desired_time: Optional[time] = None,
    customer_email: Optional[str] = None,
    notes: Optional[str] = None,
    call_id: Optional[str] = None,
    status: WaitlistStatus = WaitlistStatus.WAITING,
) -> WaitlistResult:
    """
    Record a waitlist entry and commit it.

    A customer already waiting for the same date is not registered twice.
    Large parties use status NEEDS_MANAGER_CALL so the manager calls back.
    """
    phone = format_phone_e164(customer_phone)

    existing = await store.find_active_waitlist_entry(restaurant_id, phone, desired_date)
    if existing is not None:
        return WaitlistResult(
            success=False,
            already_registered=True,
            entry=existing,
            message=(
                "Vous êtes déjà inscrit sur notre liste d'attente pour cette date. "
                "Nous vous contacterons dès qu'une place se libère."
            ),
        )

    call = await store.find_call_by_external_id(call_id)

    entry = WaitlistEntry(
        restaurant_id=restaurant_id,
        call_id=call.id if call else None,
        customer_name=customer_name,
        customer_phone=phone,
        customer_email=customer_email,
        desired_date=desired_date,
        desired_time=format_time(desired_time) if desired_time else None,
        desired_service=desired_service_for(desired_time).value,
        party_size=party_size,
        status=status.value,
        notes=notes,
    )
    store.add(entry)
    await store.commit()

    logger.info(
        "Added to waitlist",
        restaurant_id=str(restaurant_id),
        waitlist_id=str(entry.id),
        status=status.value,
        phone=mask_phone(phone),
    )

    if status == WaitlistStatus.NEEDS_MANAGER_CALL:
        message = (
            "Vos coordonnées ont été notées. Le gérant vous rappellera sous 24h "
            f"pour finaliser votre demande de {party_size} personnes."
        )
    else:
        message = (
            "Vous avez été inscrit sur notre liste d'attente. Nous vous contacterons "
            f"dès qu'une place se libère pour {party_size} personnes."
        )

    return WaitlistResult(success=True, message=message, entry=entry)


async def convert_waitlist_entry(
    store: ReservationStore,
    waitlist_id,
    reservation_id: UUID,
) -> bool:
    """Mark an entry converted; the caller commits"""
    entry = await store.get_waitlist_entry(waitlist_id)
    if entry is None:
        logger.warning("Waitlist entry not found for conversion", waitlist_id=str(waitlist_id))
        return False

    entry.status = WaitlistStatus.CONVERTED.value
    entry.converted_reservation_id = reservation_id
    return True
