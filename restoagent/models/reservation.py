"""Reservation model"""

import enum
import secrets
import uuid
from datetime import datetime
from sqlalchemy import (
    Column,
    String,
    Integer,
    Float,
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Text,
    Uuid,
)
from sqlalchemy.orm import relationship

from restoagent.database import Base


class ReservationStatus(str, enum.Enum):
    """Reservation lifecycle"""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


class ReservationSource(str, enum.Enum):
    """Channel the reservation came from"""
    PHONE = "phone"
    WEB = "web"
    MANUAL = "manual"


# Only these count toward capacity, duplicates and name lookups
ACTIVE_STATUSES = (ReservationStatus.PENDING.value, ReservationStatus.CONFIRMED.value)


def generate_cancellation_token() -> str:
    return secrets.token_urlsafe(24)


class Reservation(Base):
    """Table reservations"""
    __tablename__ = "reservations"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    restaurant_id = Column(Uuid, ForeignKey("restaurants.id"), nullable=False)
    call_id = Column(Uuid, ForeignKey("calls.id"))

    # Customer information
    customer_name = Column(String(255), nullable=False)
    customer_phone = Column(String(20), nullable=False)
    customer_email = Column(String(255))

    # Reservation details
    reservation_date = Column(Date, nullable=False)
    reservation_time = Column(String(5), nullable=False)  # HH:MM
    number_of_guests = Column(Integer, nullable=False)

    # Status
    status = Column(String(20), default=ReservationStatus.PENDING.value)
    source = Column(String(20), default=ReservationSource.PHONE.value)

    special_requests = Column(Text)

    # Extraction quality, below threshold flags the row for manual review
    confidence_score = Column(Float)
    needs_confirmation = Column(Boolean, default=False)

    # Self-service cancellation link
    cancellation_token = Column(
        String(64), unique=True, nullable=False, default=generate_cancellation_token
    )

    # SMS
    confirmation_sent_at = Column(DateTime)
    reminder_sent_at = Column(DateTime)

    # Metadata
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    restaurant = relationship("Restaurant", back_populates="reservations")
    call = relationship("Call", back_populates="reservations")

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES
