"""Vapi server-message webhook"""

import asyncio
import hmac
import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
import structlog

from restoagent.booking import ReservationStore, parse_uuid
from restoagent.config import settings
from restoagent.dependencies import get_reservation_tools, get_store
from restoagent.errors import graceful_error_message
from restoagent.models import Call, CallStatus
from restoagent.schemas.tools import FailureKind, ToolFailure
from restoagent.schemas.vapi import (
    ToolCallResult,
    ToolCallsResponse,
    VapiMessage,
    VapiToolCall,
    VapiWebhookPayload,
)
from restoagent.tools.handlers import MISSING_RESTAURANT_MESSAGE, ReservationTools
from restoagent.tools.router import RESTAURANT_OPTIONAL_TOOLS, dispatch_tool, render_result
from restoagent.utils.phone import mask_phone

router = APIRouter()
logger = structlog.get_logger()

TOOL_CALL_EVENTS = {"tool-calls", "function-call"}
CALL_STARTED_EVENTS = {"call-started", "status-update"}
CALL_ENDED_EVENTS = {"call-ended", "end-of-call-report"}
# status-update values that mean the call is starting
STARTING_STATUSES = {"in-progress", "queued"}


async def verify_vapi_secret(x_vapi_secret: Optional[str] = Header(default=None)):
    """Check the x-vapi-secret header against the configured secret"""
    if not settings.vapi_webhook_secret:
        logger.warning("VAPI_WEBHOOK_SECRET not configured, webhook signature not checked")
        return

    if not x_vapi_secret:
        logger.error("Missing webhook signature")
        raise HTTPException(status_code=401, detail="Missing webhook signature")

    if not hmac.compare_digest(x_vapi_secret, settings.vapi_webhook_secret):
        logger.error("Invalid webhook signature")
        raise HTTPException(status_code=401, detail="Invalid webhook signature")


def _first_restaurant_id(*sources: Optional[Dict[str, Any]]) -> Optional[str]:
    for source in sources:
        if source and source.get("restaurant_id"):
            return str(source["restaurant_id"])
    return None


def resolve_restaurant_id(message: VapiMessage, arguments: Dict[str, Any]) -> Optional[str]:
    """Arguments, then assistant metadata, then call metadata, then message metadata"""
    return _first_restaurant_id(
        arguments,
        message.assistant.metadata if message.assistant else None,
        message.call.metadata if message.call else None,
        message.metadata,
    )


def decode_arguments(tool_call: VapiToolCall) -> Dict[str, Any]:
    """Arguments arrive as a JSON string or as an object; raises ValueError when unusable"""
    raw = tool_call.function.arguments
    if raw is None:
        return dict(tool_call.function.parameters or {})
    if isinstance(raw, str):
        raw = json.loads(raw) if raw.strip() else {}
    if not isinstance(raw, dict):
        raise ValueError("Tool arguments must be an object")
    return raw


async def run_tool_call(
    tools: ReservationTools,
    message: VapiMessage,
    tool_call: VapiToolCall,
    timeout: Optional[float] = None,
) -> ToolCallResult:
    tool_name = tool_call.function.name

    try:
        arguments = decode_arguments(tool_call)
    except ValueError as e:
        logger.warning("Undecodable tool arguments", tool=tool_name, tool_call_id=tool_call.id, error=str(e))
        failure = ToolFailure(
            kind=FailureKind.VALIDATION,
            message="Paramètres invalides: les arguments de la fonction sont illisibles.",
        )
        return ToolCallResult(tool_call_id=tool_call.id, result=failure.message)

    restaurant_id = resolve_restaurant_id(message, arguments)
    if not restaurant_id and tool_name not in RESTAURANT_OPTIONAL_TOOLS:
        logger.warning("restaurant_id missing", tool=tool_name, tool_call_id=tool_call.id)
        return ToolCallResult(tool_call_id=tool_call.id, result=MISSING_RESTAURANT_MESSAGE)

    enriched = dict(arguments)
    if restaurant_id:
        enriched["restaurant_id"] = restaurant_id
    if message.call and message.call.id and not enriched.get("call_id"):
        enriched["call_id"] = message.call.id
    caller_number = message.call.customer.number if message.call and message.call.customer else None
    if caller_number and not enriched.get("customer_phone"):
        enriched["customer_phone"] = caller_number

    result = await dispatch_tool(tools, tool_name, enriched, timeout=timeout)

    logger.info(
        "Tool call handled",
        tool=tool_name,
        tool_call_id=tool_call.id,
        restaurant_id=restaurant_id,
        success=result.success,
        kind=getattr(result, "kind", None),
    )
    return ToolCallResult(tool_call_id=tool_call.id, result=render_result(tool_name, result))


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


async def record_call_started(store: ReservationStore, message: VapiMessage) -> Dict[str, Any]:
    if message.type == "status-update" and message.status not in STARTING_STATUSES:
        return {"received": True}

    if not message.call or not message.call.id:
        return {"received": True}

    if await store.find_call_by_external_id(message.call.id) is not None:
        return {"received": True}

    restaurant_id = parse_uuid(
        _first_restaurant_id(
            message.call.metadata,
            message.assistant.metadata if message.assistant else None,
            message.metadata,
        )
    )
    if restaurant_id is None:
        logger.error("restaurant_id missing, call not recorded", call_id=message.call.id)
        return {"received": True, "warning": "restaurant_id missing"}

    phone_number = message.call.customer.number if message.call.customer else None
    call = Call(
        restaurant_id=restaurant_id,
        vapi_call_id=message.call.id,
        phone_number=phone_number,
        status=CallStatus.IN_PROGRESS.value,
        started_at=_parse_timestamp(message.call.started_at) or datetime.utcnow(),
        metadata_json=message.call.model_dump(mode="json", by_alias=True),
    )
    store.add(call)
    try:
        await store.commit()
    except SQLAlchemyError as e:
        logger.error("Error creating call record", call_id=message.call.id, error=str(e))
        await store.rollback()
        return {"received": True}

    logger.info(
        "Call record created",
        call_id=message.call.id,
        restaurant_id=str(restaurant_id),
        phone=mask_phone(phone_number),
    )
    return {"received": True}


async def record_call_ended(store: ReservationStore, message: VapiMessage) -> Dict[str, Any]:
    if not message.call or not message.call.id:
        return {"received": True}

    call = await store.find_call_by_external_id(message.call.id)
    if call is None:
        logger.warning("Call not found", call_id=message.call.id)
        return {"received": True}

    started_at = _parse_timestamp(message.call.started_at)
    ended_at = _parse_timestamp(message.call.ended_at)

    call.status = CallStatus.COMPLETED.value
    call.ended_at = ended_at or datetime.utcnow()
    if started_at and ended_at:
        call.duration_seconds = int((ended_at - started_at).total_seconds())
    if message.transcript:
        call.transcript = message.transcript
    if message.summary:
        call.summary = message.summary
    call.metadata_json = {
        **(call.metadata_json or {}),
        **message.call.model_dump(mode="json", by_alias=True, exclude_none=True),
    }

    try:
        await store.commit()
    except SQLAlchemyError as e:
        logger.error("Error updating call record", call_id=message.call.id, error=str(e))
        await store.rollback()
        return {"received": True}

    logger.info("Call ended", call_id=message.call.id, duration=call.duration_seconds)
    return {"received": True}


@router.post("", dependencies=[Depends(verify_vapi_secret)])
async def handle_vapi_webhook(
    request: Request,
    tools: ReservationTools = Depends(get_reservation_tools),
    store: ReservationStore = Depends(get_store),
):
    """
    Handle a Vapi server message.

    Tool calls get one {toolCallId, result} entry each. A body that is not a
    Vapi envelope is the only case answered with a 500, since there is no
    toolCallId to answer to.
    """
    try:
        payload = VapiWebhookPayload.model_validate(await request.json())
    except (ValueError, ValidationError) as e:
        logger.error("Invalid webhook payload", error=str(e))
        raise HTTPException(status_code=500, detail="Invalid webhook payload")

    message = payload.message
    logger.info(
        "Vapi webhook received",
        type=message.type,
        call_id=message.call.id if message.call else None,
    )

    if message.type in TOOL_CALL_EVENTS:
        tool_calls = message.pending_tool_calls()
        if not tool_calls:
            logger.warning("No tool calls found in message")
            return {"received": True}

        # One deadline for the whole request, Vapi stops waiting after it
        loop = asyncio.get_running_loop()
        deadline = loop.time() + settings.tool_timeout_seconds
        results = []
        for tool_call in tool_calls:
            remaining = deadline - loop.time()
            if remaining <= 0:
                logger.warning("Webhook deadline exceeded", tool=tool_call.function.name, tool_call_id=tool_call.id)
                results.append(
                    ToolCallResult(tool_call_id=tool_call.id, result=graceful_error_message(tool_call.function.name))
                )
                continue
            results.append(await run_tool_call(tools, message, tool_call, timeout=remaining))
        return ToolCallsResponse(results=results).model_dump(by_alias=True)

    if message.type in CALL_STARTED_EVENTS:
        return await record_call_started(store, message)

    if message.type in CALL_ENDED_EVENTS:
        return await record_call_ended(store, message)

    logger.debug("Unhandled event type", type=message.type)
    return {"received": True}
