"""
Technical error reporting for tool calls.

Failures of the database or of the SMS provider are logged with their full
context, then turned into a non-technical message for the voice agent. The
ERREUR_TECHNIQUE prefix is what the agent's prompt keys its fallback
procedure (capturing the caller's details) on.
"""

import asyncio
import traceback
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

import structlog
from sqlalchemy.exc import SQLAlchemyError
from twilio.base.exceptions import TwilioException

logger = structlog.get_logger()


def _is_timeout(exc: BaseException) -> bool:
    if isinstance(exc, (asyncio.TimeoutError, TimeoutError)):
        return True
    message = str(exc).lower()
    return "timeout" in message or "timed out" in message


def _is_database(exc: BaseException) -> bool:
    if isinstance(exc, SQLAlchemyError):
        return True
    message = str(exc).lower()
    return any(word in message for word in ("database", "postgres", "connection"))


def _is_notification(exc: BaseException) -> bool:
    return isinstance(exc, TwilioException)


# Checked in order, first match wins
ERROR_TYPE_RULES: List[Tuple[str, Callable[[BaseException], bool]]] = [
    ("TIMEOUT", _is_timeout),
    ("DATABASE", _is_database),
    ("NOTIFICATION", _is_notification),
]


def classify_error(exc: BaseException) -> str:
    for error_type, matches in ERROR_TYPE_RULES:
        if matches(exc):
            return error_type
    return type(exc).__name__


def log_technical_error(
    exc: BaseException,
    function_name: Optional[str] = None,
    parameters: Optional[Dict[str, Any]] = None,
    restaurant_id: Optional[str] = None,
    call_id: Optional[str] = None,
    context: Optional[Dict[str, Any]] = None,
) -> None:
    logger.error(
        "Technical error",
        timestamp=datetime.now(timezone.utc).isoformat(),
        error_type=classify_error(exc),
        error_message=str(exc),
        function_name=function_name,
        parameters=_redact(parameters),
        restaurant_id=restaurant_id,
        call_id=call_id,
        context=context,
        stack_trace="".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
    )


def graceful_error_message(function_name: Optional[str]) -> str:
    """Apology that never exposes the underlying failure"""
    return (
        "ERREUR_TECHNIQUE: Une erreur technique est survenue lors de l'exécution de "
        f"{function_name or 'la fonction'}. Veuillez utiliser la procédure de capture "
        "de coordonnées."
    )


def _redact(parameters: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not parameters:
        return parameters
    redacted = dict(parameters)
    phone = redacted.get("customer_phone")
    if isinstance(phone, str):
        redacted["customer_phone"] = phone[-4:]
    return redacted
