"""Waitlist model"""

import enum
import uuid
from datetime import datetime
from sqlalchemy import Column, String, Integer, Date, DateTime, ForeignKey, Text, Uuid
from sqlalchemy.orm import relationship

from restoagent.database import Base


class WaitlistStatus(str, enum.Enum):
    WAITING = "waiting"
    NEEDS_MANAGER_CALL = "needs_manager_call"
    CONTACTED = "contacted"
    CONVERTED = "converted"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


class DesiredService(str, enum.Enum):
    LUNCH = "lunch"
    DINNER = "dinner"
    ANY = "any"


ACTIVE_WAITLIST_STATUSES = (
    WaitlistStatus.WAITING.value,
    WaitlistStatus.NEEDS_MANAGER_CALL.value,
)


class WaitlistEntry(Base):
    """Customers waiting for a table, or large parties waiting for a manager callback"""
    __tablename__ = "waitlist"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    restaurant_id = Column(Uuid, ForeignKey("restaurants.id"), nullable=False)
    call_id = Column(Uuid, ForeignKey("calls.id"))

    # Customer information
    customer_name = Column(String(255), nullable=False)
    customer_phone = Column(String(20), nullable=False)
    customer_email = Column(String(255))

    # Request
    desired_date = Column(Date, nullable=False)
    desired_time = Column(String(5))  # HH:MM
    desired_service = Column(String(10), default=DesiredService.ANY.value)
    party_size = Column(Integer, nullable=False)

    status = Column(String(30), default=WaitlistStatus.WAITING.value)
    notes = Column(Text)

    # Set on conversion only
    converted_reservation_id = Column(Uuid, ForeignKey("reservations.id"))

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    restaurant = relationship("Restaurant", back_populates="waitlist_entries")
