"""Availability and booking decision engine"""

from restoagent.booking.store import ReservationStore, parse_uuid
from restoagent.booking.schedule import (
    Closed,
    ClosureReason,
    OpenInService,
    resolve_service,
    service_type_for_time,
)
from restoagent.booking.capacity import available_capacity, capacity_ceiling
from restoagent.booking.availability import (
    AlternativeSlot,
    AvailabilityReason,
    AvailabilityResult,
    check_availability,
    find_alternatives,
    format_alternatives_message,
)
from restoagent.booking.duplicates import DuplicateCheck, check_duplicate
from restoagent.booking.waitlist import WaitlistResult, add_to_waitlist, convert_waitlist_entry
from restoagent.booking.transfer import (
    TransferDecision,
    TransferReason,
    TransferThresholds,
    detect_privatization_request,
    detect_transfer_request,
    evaluate_transfer,
)

__all__ = [
    "ReservationStore",
    "parse_uuid",
    "Closed",
    "ClosureReason",
    "OpenInService",
    "resolve_service",
    "service_type_for_time",
    "available_capacity",
    "capacity_ceiling",
    "AlternativeSlot",
    "AvailabilityReason",
    "AvailabilityResult",
    "check_availability",
    "find_alternatives",
    "format_alternatives_message",
    "DuplicateCheck",
    "check_duplicate",
    "WaitlistResult",
    "add_to_waitlist",
    "convert_waitlist_entry",
    "TransferDecision",
    "TransferReason",
    "TransferThresholds",
    "detect_privatization_request",
    "detect_transfer_request",
    "evaluate_transfer",
]
