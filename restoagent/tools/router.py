"""Tool dispatch, plus a direct HTTP endpoint per tool"""

import asyncio
import json
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends
import structlog

from restoagent.config import settings
from restoagent.dependencies import get_reservation_tools
from restoagent.errors import graceful_error_message, log_technical_error
from restoagent.schemas.tools import FailureKind, ToolFailure, ToolResult, ToolSuccess
from restoagent.tools.handlers import ReservationTools

router = APIRouter()
logger = structlog.get_logger()

# Tools that do not need a restaurant identifier
RESTAURANT_OPTIONAL_TOOLS = {"get_current_date"}

TOOL_NAMES = (
    "get_current_date",
    "get_restaurant_info",
    "check_availability",
    "create_reservation",
    "cancel_reservation",
    "find_and_cancel_reservation",
    "find_and_update_reservation",
    "add_to_waitlist",
    "transfer_call",
)


async def dispatch_tool(
    tools: ReservationTools,
    tool_name: Optional[str],
    arguments: Optional[Dict[str, Any]],
    timeout: Optional[float] = None,
) -> ToolResult:
    """
    Run one tool by name within the deadline.

    Always returns a result: unknown names give UNKNOWN_TOOL, an exceeded
    deadline gives the graceful DOWNSTREAM apology.
    """
    if tool_name not in TOOL_NAMES:
        logger.warning("Unknown tool", tool=tool_name)
        return ToolFailure(
            kind=FailureKind.UNKNOWN_TOOL,
            message=f"Fonction inconnue: {tool_name}",
        )

    handler = getattr(tools, tool_name)
    timeout = settings.tool_timeout_seconds if timeout is None else timeout

    try:
        return await asyncio.wait_for(handler(arguments or {}), timeout=timeout)
    except asyncio.TimeoutError as e:
        log_technical_error(
            e,
            function_name=tool_name,
            parameters=arguments,
            restaurant_id=(arguments or {}).get("restaurant_id"),
            call_id=(arguments or {}).get("call_id"),
            context={"timeout_seconds": timeout},
        )
        # The cancelled handler may have left a transaction open, restaurant lock included
        await tools.rollback_quietly()
        return ToolFailure(kind=FailureKind.DOWNSTREAM, message=graceful_error_message(tool_name))


def render_result(tool_name: Optional[str], result: ToolResult) -> str:
    """The string handed back to the agent: the message, or JSON for get_current_date"""
    if tool_name == "get_current_date" and isinstance(result, ToolSuccess):
        return json.dumps(
            {
                "current_date": result.data.get("current_date"),
                "current_time": result.data.get("current_time"),
                "day_of_week": result.data.get("day_of_week"),
                "tomorrow_date": result.data.get("tomorrow_date"),
                "message": result.message,
            },
            ensure_ascii=False,
        )
    return result.message


@router.post("/{tool_name}")
async def execute_tool(
    tool_name: str,
    arguments: Optional[Dict[str, Any]] = Body(default=None),
    tools: ReservationTools = Depends(get_reservation_tools),
):
    """Execute a tool directly, outside the Vapi envelope"""
    arguments = arguments or {}
    logger.info("Tool endpoint", tool=tool_name, restaurant_id=arguments.get("restaurant_id"))
    result = await dispatch_tool(tools, tool_name, arguments)
    return result.model_dump(mode="json")
