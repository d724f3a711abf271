"""Duplicate detection: one active reservation per phone and date"""

from dataclasses import dataclass
from datetime import date
from typing import Optional

from restoagent.booking.store import ReservationStore
from restoagent.models import Reservation
from restoagent.utils.phone import format_phone_e164


@dataclass
class DuplicateCheck:
    has_duplicate: bool
    existing_reservation: Optional[Reservation] = None


async def check_duplicate(
    store: ReservationStore,
    restaurant_id,
    phone: str,
    on_date: date,
) -> DuplicateCheck:
    """Time is ignored: a second call about the same day means the same visit"""
    existing = await store.find_active_by_phone_and_date(
        restaurant_id,
        format_phone_e164(phone),
        on_date,
    )
    if existing is None:
        return DuplicateCheck(has_duplicate=False)
    return DuplicateCheck(has_duplicate=True, existing_reservation=existing)
