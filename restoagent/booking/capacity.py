"""Capacity accounting per service period"""

from datetime import date
from typing import Iterable, Optional
from uuid import UUID

import structlog

from restoagent.booking.schedule import service_type_for_time
from restoagent.booking.store import ReservationStore
from restoagent.models import Reservation, Restaurant
from restoagent.schemas.restaurant import ServiceType
from restoagent.utils.dates import parse_time

logger = structlog.get_logger()


def capacity_ceiling(restaurant: Restaurant, service_type: ServiceType) -> int:
    """Per-period ceiling when configured, else the global one"""
    if service_type == ServiceType.LUNCH and restaurant.max_capacity_lunch is not None:
        return restaurant.max_capacity_lunch
    if service_type == ServiceType.DINNER and restaurant.max_capacity_dinner is not None:
        return restaurant.max_capacity_dinner
    return restaurant.max_capacity


def booked_guests(reservations: Iterable[Reservation], service_type: ServiceType) -> int:
    total = 0
    for reservation in reservations:
        try:
            at = parse_time(reservation.reservation_time)
        except ValueError:
            logger.warning(
                "Skipping reservation with unreadable time",
                reservation_id=str(reservation.id),
                reservation_time=reservation.reservation_time,
            )
            continue
        if service_type_for_time(at) == service_type:
            total += reservation.number_of_guests or 0
    return total


async def available_capacity(
    store: ReservationStore,
    restaurant: Restaurant,
    on_date: date,
    service_type: ServiceType,
    exclude_reservation_id: Optional[UUID] = None,
) -> int:
    """Ceiling minus active guests of the same service; may be negative when overbooked"""
    reservations = await store.list_active_reservations(
        restaurant.id,
        on_date,
        exclude_reservation_id=exclude_reservation_id,
    )
    return capacity_ceiling(restaurant, service_type) - booked_guests(reservations, service_type)
