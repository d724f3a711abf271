"""Pydantic schemas for request/response validation"""

from restoagent.schemas.restaurant import (
    Weekday,
    ServiceType,
    ServiceWindow,
    DaySchedule,
    RestaurantSchedule,
)
from restoagent.schemas.reservation import (
    ReservationResponse,
    CancellationView,
    CancellationResponse,
)
from restoagent.schemas.tools import (
    FailureKind,
    ToolSuccess,
    ToolFailure,
    ToolResult,
)
from restoagent.schemas.vapi import (
    VapiWebhookPayload,
    VapiMessage,
    VapiToolCall,
    ToolCallResult,
    ToolCallsResponse,
)

__all__ = [
    "Weekday",
    "ServiceType",
    "ServiceWindow",
    "DaySchedule",
    "RestaurantSchedule",
    "ReservationResponse",
    "CancellationView",
    "CancellationResponse",
    "FailureKind",
    "ToolSuccess",
    "ToolFailure",
    "ToolResult",
    "VapiWebhookPayload",
    "VapiMessage",
    "VapiToolCall",
    "ToolCallResult",
    "ToolCallsResponse",
]
