"""Call-related models"""

import enum
import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, ForeignKey, JSON, Text, Integer, Uuid
from sqlalchemy.orm import relationship

from restoagent.database import Base


class CallStatus(str, enum.Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


class Call(Base):
    """Call records"""
    __tablename__ = "calls"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    restaurant_id = Column(Uuid, ForeignKey("restaurants.id"), nullable=False)

    # Vapi identifier
    vapi_call_id = Column(String(100), unique=True)

    # Caller
    phone_number = Column(String(20))

    # Timing
    started_at = Column(DateTime, default=datetime.utcnow)
    ended_at = Column(DateTime)
    duration_seconds = Column(Integer)

    status = Column(String(20), default=CallStatus.IN_PROGRESS.value)

    transcript = Column(Text)
    summary = Column(Text)

    # Raw call payload plus transfer markers
    metadata_json = Column(JSON, default=dict)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    restaurant = relationship("Restaurant", back_populates="calls")
    reservations = relationship("Reservation", back_populates="call")
