"""Data access for the booking engine"""

import uuid
from datetime import date
from typing import List, Optional, Sequence
from uuid import UUID

from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from restoagent.models import (
    ACTIVE_STATUSES,
    ACTIVE_WAITLIST_STATUSES,
    Call,
    Reservation,
    Restaurant,
    WaitlistEntry,
)


def parse_uuid(value) -> Optional[UUID]:
    """UUID from a string sent by the agent, None when malformed"""
    if value is None:
        return None
    if isinstance(value, UUID):
        return value
    try:
        return uuid.UUID(str(value).strip())
    except ValueError:
        return None


class ReservationStore:
    """
    Read/insert/update capability over one AsyncSession.

    Handlers receive a store instead of reaching for a global session, so a
    request owns exactly one unit of work.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_restaurant(self, restaurant_id, for_update: bool = False) -> Optional[Restaurant]:
        """Load a restaurant; for_update takes the row lock that serializes bookings"""
        restaurant_uuid = parse_uuid(restaurant_id)
        if restaurant_uuid is None:
            return None

        query = select(Restaurant).where(Restaurant.id == restaurant_uuid)
        if for_update:
            query = query.with_for_update()
            result = await self.db.execute(query.execution_options(populate_existing=True))
        else:
            result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def list_active_reservations(
        self,
        restaurant_id: UUID,
        on_date: date,
        exclude_reservation_id: Optional[UUID] = None,
    ) -> Sequence[Reservation]:
        query = select(Reservation).where(
            Reservation.restaurant_id == restaurant_id,
            Reservation.reservation_date == on_date,
            Reservation.status.in_(ACTIVE_STATUSES),
        )
        if exclude_reservation_id is not None:
            query = query.where(Reservation.id != exclude_reservation_id)

        result = await self.db.execute(query)
        return result.scalars().all()

    async def find_active_by_phone_and_date(
        self,
        restaurant_id: UUID,
        phone: str,
        on_date: date,
    ) -> Optional[Reservation]:
        result = await self.db.execute(
            select(Reservation)
            .where(
                Reservation.restaurant_id == restaurant_id,
                Reservation.customer_phone == phone,
                Reservation.reservation_date == on_date,
                Reservation.status.in_(ACTIVE_STATUSES),
            )
            .order_by(Reservation.created_at)
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def search_active_by_name(
        self,
        restaurant_id: UUID,
        name: str,
        phone: Optional[str] = None,
    ) -> List[Reservation]:
        """
        Active reservations whose customer name contains any term of `name`.

        Matching is case-insensitive; `phone` narrows by exact match. Results
        are ordered soonest first.
        """
        terms = [term for term in name.split() if term]
        if not terms:
            return []

        name_filters = [
            func.lower(Reservation.customer_name).contains(term.lower(), autoescape=True)
            for term in terms
        ]
        conditions = [
            Reservation.restaurant_id == restaurant_id,
            Reservation.status.in_(ACTIVE_STATUSES),
            or_(*name_filters),
        ]
        if phone:
            conditions.append(Reservation.customer_phone == phone)

        result = await self.db.execute(
            select(Reservation)
            .where(and_(*conditions))
            .order_by(Reservation.reservation_date, Reservation.reservation_time)
        )
        return list(result.scalars().all())

    async def get_reservation(self, reservation_id) -> Optional[Reservation]:
        reservation_uuid = parse_uuid(reservation_id)
        if reservation_uuid is None:
            return None
        result = await self.db.execute(
            select(Reservation).where(Reservation.id == reservation_uuid)
        )
        return result.scalar_one_or_none()

    async def get_reservation_by_token(self, token: str) -> Optional[Reservation]:
        result = await self.db.execute(
            select(Reservation).where(Reservation.cancellation_token == token)
        )
        return result.scalar_one_or_none()

    async def find_call_by_external_id(self, vapi_call_id: Optional[str]) -> Optional[Call]:
        if not vapi_call_id:
            return None
        result = await self.db.execute(
            select(Call).where(Call.vapi_call_id == vapi_call_id)
        )
        return result.scalar_one_or_none()

    async def find_active_waitlist_entry(
        self,
        restaurant_id: UUID,
        phone: str,
        on_date: date,
    ) -> Optional[WaitlistEntry]:
        result = await self.db.execute(
            select(WaitlistEntry)
            .where(
                WaitlistEntry.restaurant_id == restaurant_id,
                WaitlistEntry.customer_phone == phone,
                WaitlistEntry.desired_date == on_date,
                WaitlistEntry.status.in_(ACTIVE_WAITLIST_STATUSES),
            )
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def get_waitlist_entry(self, entry_id) -> Optional[WaitlistEntry]:
        entry_uuid = parse_uuid(entry_id)
        if entry_uuid is None:
            return None
        result = await self.db.execute(
            select(WaitlistEntry).where(WaitlistEntry.id == entry_uuid)
        )
        return result.scalar_one_or_none()

    def add(self, instance) -> None:
        self.db.add(instance)

    async def flush(self) -> None:
        await self.db.flush()

    async def commit(self) -> None:
        await self.db.commit()

    async def rollback(self) -> None:
        await self.db.rollback()

    async def refresh(self, instance) -> None:
        await self.db.refresh(instance)
