"""Database models"""

from restoagent.models.restaurant import Restaurant
from restoagent.models.call import Call, CallStatus
from restoagent.models.reservation import (
    Reservation,
    ReservationStatus,
    ReservationSource,
    ACTIVE_STATUSES,
)
from restoagent.models.waitlist import (
    WaitlistEntry,
    WaitlistStatus,
    DesiredService,
    ACTIVE_WAITLIST_STATUSES,
)

__all__ = [
    "Restaurant",
    "Call",
    "CallStatus",
    "Reservation",
    "ReservationStatus",
    "ReservationSource",
    "ACTIVE_STATUSES",
    "WaitlistEntry",
    "WaitlistStatus",
    "DesiredService",
    "ACTIVE_WAITLIST_STATUSES",
]
