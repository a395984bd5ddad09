"""Voice agent (VAPI) request/response schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

from app.schemas.common import CamelModel


class AssistantCreate(CamelModel):
    name: str = Field(min_length=1, max_length=100)
    first_message: str
    system_prompt: str
    voice_id: str | None = None  # voice preset key, e.g. "female_professional"
    model: str = "gpt-4o"
    temperature: float = Field(default=0.7, ge=0, le=2)
    agent_type: str = "general"


class AssistantUpdate(CamelModel):
    name: str | None = None
    first_message: str | None = None
    system_prompt: str | None = None
    voice_id: str | None = None
    model: str | None = None
    temperature: float | None = Field(default=None, ge=0, le=2)
    agent_type: str | None = None


class CallCreate(CamelModel):
    assistant_id: str
    phone_number_id: str
    customer_number: str
    customer_name: str | None = None
    metadata: dict[str, Any] | None = None


class BulkContact(CamelModel):
    number: str
    name: str | None = None
    metadata: dict[str, Any] | None = None


class BulkCallCreate(CamelModel):
    assistant_id: str
    phone_number_id: str
    contacts: list[BulkContact] = Field(min_length=1)
    delay_between_calls: float | None = Field(default=None, ge=0)  # seconds


class BulkCallResult(CamelModel):
    calls: list[dict[str, Any]]
    errors: list[str]


class PhoneNumberCreate(CamelModel):
    provider: Literal["vapi", "twilio", "byo-phone-number"]
    assistant_id: str | None = None
    credential_id: str | None = None
    number: str | None = None


class VoiceOption(CamelModel):
    id: str
    name: str
    provider: str
    voice_id: str
    description: str
    has_fallback: bool


class CallLogOut(CamelModel):
    id: str
    vapi_call_id: str
    assistant_id: str | None = None
    phone_number: str | None = None
    customer_name: str | None = None
    status: str
    started_at: datetime | None = None
    ended_at: datetime | None = None
    duration_seconds: float | None = None
    cost: float | None = None
    summary: str | None = None
    created_at: datetime
    updated_at: datetime


# ---------------------------------------------------------------------------
# Webhook — VAPI posts camelCase JSON; keep unknown keys.
# ---------------------------------------------------------------------------

class WebhookEnvelope(BaseModel):
    message: dict[str, Any] | None = None

    model_config = {"extra": "allow"}


class ToolCallResult(BaseModel):
    toolCallId: str | None = None
    result: str
