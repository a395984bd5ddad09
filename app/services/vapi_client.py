"""VAPI voice-agent REST client.

Thin async wrapper over https://api.vapi.ai using httpx. Every method
raises :class:`VoiceAgentError` on transport failures or non-2xx answers;
constructing the client without ``VAPI_API_KEY`` raises
:class:`ServiceUnavailableError`.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable

import httpx

from app.core.config import settings
from app.core.exceptions import ServiceUnavailableError, VoiceAgentError
from app.schemas.voice import (
    AssistantCreate,
    AssistantUpdate,
    BulkCallCreate,
    BulkCallResult,
    CallCreate,
    PhoneNumberCreate,
    VoiceOption,
)

logger = logging.getLogger(__name__)

DEFAULT_VOICE = "male_professional"
DEFAULT_MODEL = "gpt-4o"
DEFAULT_TEMPERATURE = 0.7
WEBHOOK_PATH = "/api/webhooks/vapi"

VOICE_PRESETS: dict[str, dict[str, Any]] = {
    "male_professional": {
        "provider": "azure", "voiceId": "en-US-AndrewNeural",
        "fallback": [{"provider": "openai", "voiceId": "onyx"}, {"provider": "playht", "voiceId": "matthew"}],
    },
    "female_professional": {
        "provider": "azure", "voiceId": "en-US-EmmaNeural",
        "fallback": [{"provider": "openai", "voiceId": "nova"}, {"provider": "playht", "voiceId": "jennifer"}],
    },
    "female_friendly": {
        "provider": "azure", "voiceId": "en-US-JennyNeural",
        "fallback": [{"provider": "openai", "voiceId": "shimmer"}, {"provider": "playht", "voiceId": "melissa"}],
    },
    "male_friendly": {
        "provider": "azure", "voiceId": "en-US-BrianNeural",
        "fallback": [{"provider": "openai", "voiceId": "echo"}, {"provider": "playht", "voiceId": "ryan"}],
    },
    "male_authoritative": {
        "provider": "azure", "voiceId": "en-US-GuyNeural",
        "fallback": [{"provider": "openai", "voiceId": "fable"}, {"provider": "playht", "voiceId": "michael"}],
    },
    "female_warm": {
        "provider": "azure", "voiceId": "en-US-AriaNeural",
        "fallback": [{"provider": "openai", "voiceId": "alloy"}, {"provider": "playht", "voiceId": "sarah"}],
    },
    "male_sophisticated": {
        "provider": "11labs", "voiceId": "21m00Tcm4TlvDq8ikWAM",
        "fallback": [{"provider": "azure", "voiceId": "en-US-DavisNeural"}, {"provider": "openai", "voiceId": "onyx"}],
    },
    "female_elegant": {
        "provider": "11labs", "voiceId": "EXAVITQu4vr4xnSDxMaL",
        "fallback": [{"provider": "azure", "voiceId": "en-US-EmmaNeural"}, {"provider": "openai", "voiceId": "nova"}],
    },
    "male_conversational": {
        "provider": "cartesia", "voiceId": "248be419-c632-4f23-adf1-5324ed7dbf1d",
        "fallback": [{"provider": "azure", "voiceId": "en-US-BrianNeural"}, {"provider": "openai", "voiceId": "echo"}],
    },
    "female_conversational": {
        "provider": "cartesia", "voiceId": "a0e99841-438c-4a64-b679-ae501e7d6091",
        "fallback": [{"provider": "azure", "voiceId": "en-US-JennyNeural"}, {"provider": "openai", "voiceId": "shimmer"}],
    },
}


def voice_config(voice_key: str | None) -> dict[str, Any]:
    """VAPI ``voice`` block for a preset key; unknown keys use the default preset."""
    preset = VOICE_PRESETS.get(voice_key or DEFAULT_VOICE, VOICE_PRESETS[DEFAULT_VOICE])
    config = {"provider": preset["provider"], "voiceId": preset["voiceId"]}
    if preset.get("fallback"):
        config["fallbackPlan"] = {"voices": list(preset["fallback"])}
    return config


def get_available_voices() -> list[VoiceOption]:
    return [
        VoiceOption(
            id=key,
            name=key.replace("_", " ").title(),
            provider=preset["provider"],
            voice_id=preset["voiceId"],
            description=(
                f"{preset['provider']} voice with "
                f"{'fallback support' if preset.get('fallback') else 'no fallback'}"
            ),
            has_fallback=bool(preset.get("fallback")),
        )
        for key, preset in VOICE_PRESETS.items()
    ]


# ---------------------------------------------------------------------------
# Tools (function calling)
# ---------------------------------------------------------------------------

def _string(description: str, **extra: Any) -> dict[str, Any]:
    return {"type": "string", "description": description, **extra}


_TOOL_FUNCTIONS: dict[str, dict[str, Any]] = {
    "schedule_appointment": {
        "description": "Schedule an appointment with the customer",
        "properties": {
            "date": _string("Appointment date in YYYY-MM-DD format"),
            "time": _string("Appointment time in HH:MM format"),
            "duration": {"type": "number", "description": "Duration in minutes"},
            "type": _string("Type of appointment (consultation, demo, etc.)"),
            "notes": _string("Additional notes for the appointment"),
        },
        "required": ["date", "time", "type"],
    },
    "update_crm_contact": {
        "description": "Update contact information in the CRM system",
        "properties": {
            "phone": _string("Contact phone number"),
            "email": _string("Contact email address"),
            "name": _string("Contact full name"),
            "company": _string("Company name"),
            "status": _string("Lead status (interested, not_interested, callback, etc.)"),
            "notes": _string("Call notes and observations"),
            "tags": {"type": "array", "items": {"type": "string"}, "description": "Tags to add to the contact"},
        },
        "required": ["phone"],
    },
    "transfer_to_human": {
        "description": "Transfer the call to a human agent",
        "properties": {
            "reason": _string("Reason for transfer (complex_question, customer_request, etc.)"),
            "department": _string("Department to transfer to (sales, support, etc.)"),
            "priority": _string("Priority level for the transfer", enum=["low", "medium", "high"]),
            "notes": _string("Context notes for the human agent"),
        },
        "required": ["reason"],
    },
    "end_call": {
        "description": "End the current call",
        "properties": {
            "reason": _string("Reason for ending the call"),
            "outcome": _string(
                "Call outcome",
                enum=["successful", "unsuccessful", "callback_requested", "not_interested"],
            ),
            "follow_up_required": {"type": "boolean", "description": "Whether follow-up is required"},
            "notes": _string("Final call notes"),
        },
        "required": ["outcome"],
    },
    "get_contact_info": {
        "description": "Retrieve contact information from CRM",
        "properties": {
            "phone": _string("Phone number to look up"),
            "email": _string("Email address to look up"),
        },
        "required": [],
    },
    "send_email": {
        "description": "Send a follow-up email to the contact",
        "properties": {
            "to": _string("Recipient email address"),
            "subject": _string("Email subject"),
            "template": _string("Email template to use (follow_up, appointment_confirmation, etc.)"),
            "variables": {"type": "object", "description": "Variables to populate in the email template"},
        },
        "required": ["to", "template"],
    },
    "create_task": {
        "description": "Create a task or reminder for follow-up",
        "properties": {
            "title": _string("Task title"),
            "description": _string("Task description"),
            "due_date": _string("Due date in YYYY-MM-DD format"),
            "priority": _string("Task priority", enum=["low", "medium", "high"]),
            "assignee": _string("Person to assign the task to"),
        },
        "required": ["title", "description"],
    },
}

AGENT_TOOLS: dict[str, tuple[str, ...]] = {
    "appointment_scheduler": ("schedule_appointment", "get_contact_info", "transfer_to_human", "end_call"),
    "sales_outbound": ("update_crm_contact", "schedule_appointment", "send_email", "transfer_to_human", "end_call"),
    "customer_support": ("get_contact_info", "create_task", "transfer_to_human", "end_call"),
    "lead_qualifier": ("update_crm_contact", "schedule_appointment", "transfer_to_human", "end_call"),
}
DEFAULT_AGENT_TOOLS = ("transfer_to_human", "end_call")


def webhook_url() -> str | None:
    """Webhook URL for VAPI callbacks; VAPI only calls HTTPS endpoints."""
    base = settings.public_app_url.rstrip("/")
    return f"{base}{WEBHOOK_PATH}" if base.startswith("https://") else None


def tools_for_agent_type(agent_type: str | None) -> list[dict[str, Any]]:
    names = AGENT_TOOLS.get(agent_type or "general", DEFAULT_AGENT_TOOLS)
    url = webhook_url()
    tools = []
    for name in names:
        spec = _TOOL_FUNCTIONS[name]
        tool: dict[str, Any] = {
            "type": "function",
            "function": {
                "name": name,
                "description": spec["description"],
                "parameters": {
                    "type": "object",
                    "properties": spec["properties"],
                    "required": spec["required"],
                },
            },
        }
        if url:
            tool["server"] = {"url": url}
        tools.append(tool)
    return tools


def _model_block(
    system_prompt: str, model: str | None, temperature: float | None, agent_type: str | None
) -> dict[str, Any]:
    block: dict[str, Any] = {
        "provider": "openai",
        "model": model or DEFAULT_MODEL,
        "temperature": DEFAULT_TEMPERATURE if temperature is None else temperature,
        "messages": [{"role": "system", "content": system_prompt}],
    }
    if webhook_url() and agent_type is not None:
        block["tools"] = tools_for_agent_type(agent_type)
    return block


def build_assistant_config(data: AssistantCreate) -> dict[str, Any]:
    """Request body for ``POST /assistant``.

    Tools and the server URL are only attached when the app is reachable over
    HTTPS; VAPI refuses plain-HTTP webhooks.
    """
    config: dict[str, Any] = {
        "name": data.name,
        "firstMessage": data.first_message,
        "model": _model_block(data.system_prompt, data.model, data.temperature, data.agent_type),
        "voice": voice_config(data.voice_id),
        "transcriber": {"provider": "deepgram", "model": "nova-2", "language": "en-US"},
    }
    url = webhook_url()
    if url:
        config["serverUrl"] = url
    return config


class VapiClient:
    def __init__(
        self,
        api_key: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._api_key = api_key or settings.vapi_api_key
        if not self._api_key:
            raise ServiceUnavailableError("VAPI_API_KEY is not configured. Voice agents are unavailable.")
        self._transport = transport
        self._sleep = sleep

    async def _request(
        self, method: str, path: str, *, json: Any = None, params: dict[str, Any] | None = None
    ) -> Any:
        try:
            async with httpx.AsyncClient(
                base_url=settings.vapi_base_url,
                timeout=settings.vapi_timeout,
                transport=self._transport,
                headers={"Authorization": f"Bearer {self._api_key}"},
            ) as client:
                response = await client.request(method, path, json=json, params=params)
        except httpx.HTTPError as exc:
            logger.error("VAPI request %s %s failed: %s", method, path, exc)
            raise VoiceAgentError(f"VAPI request failed: {exc}") from exc

        if response.status_code >= 400:
            try:
                detail = response.json().get("message", response.text)
            except ValueError:
                detail = response.text
            logger.error("VAPI %s %s returned %d: %s", method, path, response.status_code, detail)
            raise VoiceAgentError(f"VAPI error ({response.status_code}): {detail}")

        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    # -- assistants -----------------------------------------------------

    async def list_assistants(self) -> list[dict[str, Any]]:
        return await self._request("GET", "/assistant")

    async def get_assistant(self, assistant_id: str) -> dict[str, Any]:
        return await self._request("GET", f"/assistant/{assistant_id}")

    async def create_assistant(self, data: AssistantCreate) -> dict[str, Any]:
        assistant = await self._request("POST", "/assistant", json=build_assistant_config(data))
        logger.info("VAPI assistant created id=%s name=%r", assistant.get("id"), data.name)
        return assistant

    async def update_assistant(self, assistant_id: str, data: AssistantUpdate) -> dict[str, Any]:
        """PATCH an assistant. A model change without a new prompt keeps the current one."""
        body: dict[str, Any] = {}
        if data.name:
            body["name"] = data.name
        if data.first_message:
            body["firstMessage"] = data.first_message
        if data.voice_id:
            body["voice"] = voice_config(data.voice_id)

        if data.system_prompt or data.model or data.temperature is not None or data.agent_type:
            prompt = data.system_prompt
            if not prompt:
                current = await self.get_assistant(assistant_id)
                messages = (current.get("model") or {}).get("messages") or [{}]
                prompt = messages[0].get("content", "")
            body["model"] = _model_block(prompt, data.model, data.temperature, data.agent_type)

        return await self._request("PATCH", f"/assistant/{assistant_id}", json=body)

    async def delete_assistant(self, assistant_id: str) -> None:
        await self._request("DELETE", f"/assistant/{assistant_id}")
        logger.info("VAPI assistant deleted id=%s", assistant_id)

    # -- calls ------------------------------------------------------------

    async def create_call(self, data: CallCreate) -> dict[str, Any]:
        body: dict[str, Any] = {
            "assistantId": data.assistant_id,
            "phoneNumberId": data.phone_number_id,
            "customer": {"number": data.customer_number, "name": data.customer_name},
        }
        if data.metadata:
            body["metadata"] = data.metadata
        return await self._request("POST", "/call", json=body)

    async def list_calls(self, limit: int | None = None) -> list[dict[str, Any]]:
        return await self._request("GET", "/call", params={"limit": limit} if limit else None)

    async def get_call(self, call_id: str) -> dict[str, Any]:
        return await self._request("GET", f"/call/{call_id}")

    async def bulk_calls(self, data: BulkCallCreate) -> BulkCallResult:
        """Place one outbound call per contact, pausing between calls.

        Failures are collected per contact; the batch never aborts early.
        """
        delay = (
            data.delay_between_calls
            if data.delay_between_calls is not None
            else settings.vapi_bulk_call_delay_seconds
        )
        calls: list[dict[str, Any]] = []
        errors: list[str] = []
        for index, contact in enumerate(data.contacts):
            try:
                calls.append(await self.create_call(CallCreate(
                    assistant_id=data.assistant_id,
                    phone_number_id=data.phone_number_id,
                    customer_number=contact.number,
                    customer_name=contact.name,
                    metadata=contact.metadata,
                )))
            except VoiceAgentError as exc:
                errors.append(f"Failed to create call for {contact.number}: {exc.message}")
            if index < len(data.contacts) - 1 and delay:
                await self._sleep(delay)

        logger.info("VAPI bulk calls placed=%d failed=%d", len(calls), len(errors))
        return BulkCallResult(calls=calls, errors=errors)

    # -- phone numbers ----------------------------------------------------

    async def list_phone_numbers(self) -> list[dict[str, Any]]:
        return await self._request("GET", "/phone-number")

    async def create_phone_number(self, data: PhoneNumberCreate) -> dict[str, Any]:
        body: dict[str, Any] = {"provider": data.provider}
        if data.provider == "byo-phone-number" and data.credential_id:
            body["credentialId"] = data.credential_id
        if data.assistant_id:
            body["assistantId"] = data.assistant_id
        if data.number:
            body["number"] = data.number
        return await self._request("POST", "/phone-number", json=body)


def get_vapi_client() -> VapiClient:
    return VapiClient()
