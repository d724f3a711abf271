"""
Availability resolver.

Composes the schedule model and capacity accounting into one decision, and
looks for alternative slots when the requested one cannot be served.
"""

import enum
from dataclasses import dataclass
from datetime import date, time, timedelta
from typing import List, Optional
from uuid import UUID

import structlog

from restoagent.booking.capacity import available_capacity
from restoagent.booking.schedule import Closed, open_services, resolve_service
from restoagent.booking.store import ReservationStore
from restoagent.config import settings
from restoagent.models import Restaurant
from restoagent.schemas.restaurant import SERVICE_LABELS_FR, RestaurantSchedule, ServiceType
from restoagent.utils.dates import format_date_fr

logger = structlog.get_logger()

RESTAURANT_NOT_FOUND = "Restaurant non trouvé"


class AvailabilityReason(str, enum.Enum):
    AVAILABLE = "available"
    RESTAURANT_NOT_FOUND = "restaurant_not_found"
    EXCEPTIONAL_CLOSURE = "exceptional_closure"
    WEEKLY_CLOSURE = "weekly_closure"
    OUTSIDE_SERVICE_HOURS = "outside_service_hours"
    INSUFFICIENT_CAPACITY = "insufficient_capacity"


@dataclass
class AvailabilityResult:
    available: bool
    reason_code: AvailabilityReason
    reason: Optional[str] = None
    service_type: Optional[ServiceType] = None
    available_capacity: Optional[int] = None
    restaurant: Optional[Restaurant] = None


@dataclass(frozen=True)
class AlternativeSlot:
    date: date
    service_type: ServiceType
    available_capacity: int

    def describe(self) -> str:
        """vendredi 17 janvier soir"""
        return f"{format_date_fr(self.date)} {SERVICE_LABELS_FR[self.service_type]}"


def capacity_shortfall_message(service_type: ServiceType, capacity: int) -> str:
    return (
        f"Capacité insuffisante pour le service du {SERVICE_LABELS_FR[service_type]}. "
        f"Places disponibles: {max(0, capacity)}"
    )


async def check_availability(
    store: ReservationStore,
    restaurant_id,
    on_date: date,
    at: time,
    guests: int,
    lock: bool = False,
    exclude_reservation_id: Optional[UUID] = None,
) -> AvailabilityResult:
    """
    Decide whether `guests` can be seated at `on_date` `at`.

    With lock=True the restaurant row is locked for the rest of the
    transaction, so the caller can insert or update before another booking
    re-reads capacity.
    """
    restaurant = await store.get_restaurant(restaurant_id, for_update=lock)
    if restaurant is None:
        return AvailabilityResult(
            available=False,
            reason_code=AvailabilityReason.RESTAURANT_NOT_FOUND,
            reason=RESTAURANT_NOT_FOUND,
        )

    schedule = RestaurantSchedule.from_restaurant(restaurant)
    resolution = resolve_service(schedule, on_date, at)
    if isinstance(resolution, Closed):
        return AvailabilityResult(
            available=False,
            reason_code=AvailabilityReason(resolution.reason.value),
            reason=resolution.message,
            restaurant=restaurant,
        )

    capacity = await available_capacity(
        store,
        restaurant,
        on_date,
        resolution.service_type,
        exclude_reservation_id=exclude_reservation_id,
    )

    if capacity < guests:
        logger.info(
            "Insufficient capacity",
            restaurant_id=str(restaurant.id),
            date=on_date.isoformat(),
            service=resolution.service_type.value,
            available_capacity=capacity,
            guests=guests,
        )
        return AvailabilityResult(
            available=False,
            reason_code=AvailabilityReason.INSUFFICIENT_CAPACITY,
            reason=capacity_shortfall_message(resolution.service_type, capacity),
            service_type=resolution.service_type,
            available_capacity=max(0, capacity),
            restaurant=restaurant,
        )

    return AvailabilityResult(
        available=True,
        reason_code=AvailabilityReason.AVAILABLE,
        service_type=resolution.service_type,
        available_capacity=capacity,
        restaurant=restaurant,
    )


async def find_alternatives(
    store: ReservationStore,
    restaurant: Restaurant,
    on_date: date,
    guests: int,
    requested_service: Optional[ServiceType] = None,
    days_ahead: Optional[int] = None,
    limit: Optional[int] = None,
) -> List[AlternativeSlot]:
    """
    Open service periods able to seat the party, from `on_date` up to
    `days_ahead` days later. Sorted by date then lunch before dinner; the
    requested slot itself is never proposed.
    """
    if days_ahead is None:
        days_ahead = settings.alternatives_days_ahead
    if limit is None:
        limit = settings.max_alternatives

    schedule = RestaurantSchedule.from_restaurant(restaurant)
    alternatives = []

    for offset in range(days_ahead + 1):
        candidate = on_date + timedelta(days=offset)
        services = open_services(schedule, candidate)
        if not services:
            continue

        for service_type, _window in services:
            if offset == 0 and service_type == requested_service:
                continue
            capacity = await available_capacity(store, restaurant, candidate, service_type)
            if capacity >= guests:
                alternatives.append(AlternativeSlot(candidate, service_type, capacity))
            if len(alternatives) >= limit:
                return alternatives

    return alternatives


def format_alternatives_message(alternatives: List[AlternativeSlot]) -> Optional[str]:
    if not alternatives:
        return None

    descriptions = [slot.describe() for slot in alternatives]
    if len(descriptions) == 1:
        return (
            f"Cependant, nous avons de la disponibilité le {descriptions[0]}. "
            "Souhaitez-vous réserver ce créneau ?"
        )

    last = descriptions.pop()
    return (
        f"Cependant, nous avons de la disponibilité le {', '.join(descriptions)} ou le {last}. "
        "L'un de ces créneaux vous conviendrait-il ?"
    )
