"""Voice call logs and the VAPI server-URL webhook.

VAPI posts ``{"message": {"type": ..., "call": {...}, ...}}``. Call lifecycle
events upsert ``call_logs`` keyed by the VAPI call id; ``tool-calls`` answers
the assistant's function calls synchronously. Persistence failures are
logged and still acknowledged so VAPI does not retry the event.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError
from app.core.pagination import PaginationParams
from app.domain.call import CallLog
from app.repositories.call import CallLogRepository

logger = logging.getLogger(__name__)

ACK = {"received": True}
INVALID_TOOL_CALLS = "Invalid tool call format"

_TOOL_REPLIES = {
    "update_crm_contact": "Your contact information has been updated successfully in our system.",
    "transfer_to_human": "I'm connecting you with a human agent now. Please hold for a moment.",
    "end_call": "Thank you for calling. Have a great day!",
}


def _parse_ts(value: Any) -> datetime | None:
    if not value or not isinstance(value, str):
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.warning("Unparseable VAPI timestamp %r", value)
        return None


def _number(value: Any) -> float | None:
    try:
        return float(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def tool_result(name: str | None, arguments: dict[str, Any]) -> str:
    if name == "schedule_appointment":
        return (
            f"Appointment scheduled for {arguments.get('date')} at {arguments.get('time')}. "
            "You'll receive a confirmation email shortly."
        )
    if name in _TOOL_REPLIES:
        return _TOOL_REPLIES[name]
    return f"Tool {name} not implemented"


def handle_tool_calls(message: dict[str, Any]) -> dict[str, Any]:
    """One ``{"toolCallId", "result"}`` entry per requested tool call.

    Accepts both VAPI shapes: ``{"id", "function": {"name", "arguments"}}``
    and the flat ``{"id", "name", "arguments"}``.
    """
    tool_calls = message.get("toolCallList", message.get("toolCalls"))
    if not isinstance(tool_calls, list):
        logger.warning("VAPI tool-calls without a tool call list")
        return {"results": [{"result": INVALID_TOOL_CALLS}]}

    results = []
    for call in tool_calls:
        if not isinstance(call, dict):
            results.append({"result": INVALID_TOOL_CALLS})
            continue
        function = call.get("function") or {}
        name = function.get("name") or call.get("name")
        arguments = function.get("arguments", call.get("arguments")) or {}
        if not isinstance(arguments, dict):
            arguments = {}
        logger.info("VAPI tool call id=%s name=%s", call.get("id"), name)
        results.append({"toolCallId": call.get("id"), "result": tool_result(name, arguments)})
    return {"results": results}


class CallLogService:
    def __init__(self, session: AsyncSession, organization_id: str):
        self._session = session
        self._calls = CallLogRepository(session, organization_id)

    async def handle_webhook(self, payload: dict[str, Any]) -> dict[str, Any]:
        message = payload.get("message")
        if not isinstance(message, dict):
            logger.warning("VAPI webhook without a message body")
            return ACK

        event = message.get("type")
        if event == "tool-calls":
            return handle_tool_calls(message)
        if event == "status-update":
            await self._record(message, final=False)
        elif event == "end-of-call-report":
            await self._record(message, final=True)
        else:
            logger.debug("VAPI webhook %s acknowledged", event)
        return ACK

    async def _record(self, message: dict[str, Any], *, final: bool) -> None:
        call = message.get("call") or {}
        call_id = call.get("id")
        if not call_id:
            logger.warning("VAPI %s without a call id", message.get("type"))
            return

        fields: dict[str, Any] = {
            "status": "completed" if final else (message.get("status") or call.get("status") or "unknown"),
            "started_at": _parse_ts(call.get("startedAt")),
            "ended_at": _parse_ts(call.get("endedAt")),
            "duration_seconds": _number(call.get("duration")),
            "cost": _number(call.get("cost")),
        }
        if final:
            customer = call.get("customer") or {}
            fields.update(
                assistant_id=call.get("assistantId"),
                phone_number=customer.get("number"),
                customer_name=customer.get("name"),
                transcript=message.get("transcript"),
                summary=message.get("summary"),
                analysis=message.get("analysis"),
                call_metadata=call.get("metadata"),
            )

        try:
            await self._upsert(call_id, fields)
        except SQLAlchemyError as exc:
            await self._session.rollback()
            logger.error("Failed to store VAPI call %s: %s", call_id, exc)

    async def _upsert(self, call_id: str, fields: dict[str, Any]) -> CallLog:
        existing = await self._calls.get_by_vapi_id(call_id)
        if existing is None:
            log = await self._calls.create(vapi_call_id=call_id, **fields)
            logger.info("Call log created vapi_id=%s status=%s", call_id, log.status)
            return log
        for field, value in fields.items():
            if value is not None:
                setattr(existing, field, value)
        return await self._calls.save(existing)

    async def list_calls(self, pagination: PaginationParams):
        return await self._calls.list(**pagination.as_repo_kwargs())

    async def get_call(self, call_log_id: str) -> CallLog:
        log = await self._calls.get_by_id(call_log_id)
        if not log:
            raise NotFoundError("Call log", call_log_id)
        return log
