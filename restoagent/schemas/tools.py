"""Tool argument and result schemas"""

import enum
from typing import Any, Dict, Literal, Optional, Union
from pydantic import BaseModel

from restoagent.booking.transfer import TransferReason


class FailureKind(str, enum.Enum):
    """Why a tool call did not succeed"""
    NOT_FOUND = "not_found"
    UNAVAILABLE = "unavailable"
    VALIDATION = "validation"
    CONFLICT = "conflict"
    DOWNSTREAM = "downstream"
    UNKNOWN_TOOL = "unknown_tool"


class ToolSuccess(BaseModel):
    """Successful tool call"""
    success: Literal[True] = True
    message: str
    data: Dict[str, Any] = {}


class ToolFailure(BaseModel):
    """Failed tool call, with the kind of failure"""
    success: Literal[False] = False
    kind: FailureKind
    message: str
    data: Dict[str, Any] = {}


ToolResult = Union[ToolSuccess, ToolFailure]


class ToolArgs(BaseModel):
    """Base for tool arguments; unknown keys sent by the agent are ignored"""
    restaurant_id: Optional[str] = None
    call_id: Optional[str] = None

    class Config:
        extra = "ignore"


class CheckAvailabilityArgs(ToolArgs):
    date: Optional[str] = None
    time: Optional[str] = None
    number_of_guests: Optional[int] = None


class CreateReservationArgs(ToolArgs):
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    customer_email: Optional[str] = None
    date: Optional[str] = None
    time: Optional[str] = None
    number_of_guests: Optional[int] = None
    special_requests: Optional[str] = None
    force_create: bool = False
    waitlist_id: Optional[str] = None


class CancelReservationArgs(ToolArgs):
    reservation_id: Optional[str] = None


class FindReservationArgs(ToolArgs):
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None


class FindAndUpdateReservationArgs(FindReservationArgs):
    new_date: Optional[str] = None
    new_time: Optional[str] = None
    new_number_of_guests: Optional[int] = None


class AddToWaitlistArgs(ToolArgs):
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    customer_email: Optional[str] = None
    date: Optional[str] = None
    time: Optional[str] = None
    number_of_guests: Optional[int] = None
    notes: Optional[str] = None


class TransferCallArgs(ToolArgs):
    reason: Optional[TransferReason] = None
    guest_count: Optional[int] = None
    failed_attempts: Optional[int] = None
    customer_message: Optional[str] = None
