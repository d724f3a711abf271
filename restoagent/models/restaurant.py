"""Restaurant model"""

import uuid
from datetime import datetime
from sqlalchemy import Column, String, Integer, Boolean, DateTime, JSON, Text, Uuid
from sqlalchemy.orm import relationship

from restoagent.database import Base


class Restaurant(Base):
    """Restaurant served by the voice agent"""
    __tablename__ = "restaurants"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)

    # Contact
    phone = Column(String(20), nullable=False)
    email = Column(String(255))
    address = Column(Text)

    # Transfer destination when a call is escalated to a human
    fallback_phone = Column(String(20))

    # Capacity ceilings (per-period values override the global one)
    max_capacity = Column(Integer, nullable=False, default=50)
    max_capacity_lunch = Column(Integer)
    max_capacity_dinner = Column(Integer)

    # {"monday": {"lunch": {"start": "12:00", "end": "14:30"}, "dinner": null}, "sunday": null, ...}
    opening_hours = Column(JSON, default=dict)

    # ["2025-12-25", ...]
    closed_dates = Column(JSON, default=list)

    sms_enabled = Column(Boolean, default=False)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    reservations = relationship("Reservation", back_populates="restaurant")
    calls = relationship("Call", back_populates="restaurant")
    waitlist_entries = relationship("WaitlistEntry", back_populates="restaurant")
