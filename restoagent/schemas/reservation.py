"""Reservation schemas"""

from datetime import date, datetime
from typing import Optional
from uuid import UUID
from pydantic import BaseModel


class ReservationResponse(BaseModel):
    """Reservation as shown to the customer and the agent"""
    id: UUID
    restaurant_id: UUID
    customer_name: str
    customer_phone: str
    customer_email: Optional[str] = None
    reservation_date: date
    reservation_time: str
    number_of_guests: int
    status: str
    source: Optional[str] = None
    special_requests: Optional[str] = None
    needs_confirmation: Optional[bool] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CancellationView(BaseModel):
    """Self-service cancellation page data"""
    reservation: ReservationResponse
    restaurant_name: str
    can_cancel: bool


class CancellationResponse(BaseModel):
    success: bool
    message: str
    reservation: ReservationResponse
