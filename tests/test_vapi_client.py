"""Tests for the VAPI voice-agent client (HTTP mocked with httpx.MockTransport)."""

import json
from unittest.mock import AsyncMock

import httpx
import pytest

from app.core.config import settings
from app.core.exceptions import ServiceUnavailableError, VoiceAgentError
from app.schemas.voice import AssistantCreate, AssistantUpdate, BulkCallCreate, CallCreate
from app.services import vapi_client
from app.services.vapi_client import VapiClient


class RecordingHandler:
    """Answers VAPI requests from a queue and remembers what was sent."""

    def __init__(self, *responses: httpx.Response):
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responses.pop(0)

    def body(self, index: int = -1) -> dict:
        return json.loads(self.requests[index].content)


def _client(handler: RecordingHandler, sleep=None) -> VapiClient:
    return VapiClient(
        api_key="vapi-test-key",
        transport=httpx.MockTransport(handler),
        sleep=sleep or AsyncMock(),
    )


def _assistant(**overrides) -> AssistantCreate:
    data = {
        "name": "Intake Agent",
        "firstMessage": "Hi, this is the practice calling.",
        "systemPrompt": "You collect missing tax documents.",
        "voiceId": "female_professional",
        "agentType": "appointment_scheduler",
    }
    data.update(overrides)
    return AssistantCreate.model_validate(data)


class TestConfiguration:
    def test_missing_key_is_service_unavailable(self) -> None:
        with pytest.raises(ServiceUnavailableError):
            VapiClient()

    def test_voice_config_with_fallback(self) -> None:
        config = vapi_client.voice_config("female_professional")
        assert config["provider"] == "azure"
        assert config["voiceId"] == "en-US-EmmaNeural"
        assert config["fallbackPlan"]["voices"][0] == {"provider": "openai", "voiceId": "nova"}

    def test_unknown_voice_uses_default(self) -> None:
        assert vapi_client.voice_config("robot")["voiceId"] == "en-US-AndrewNeural"

    def test_available_voices(self) -> None:
        voices = vapi_client.get_available_voices()
        assert len(voices) == 10
        assert voices[0].name == "Male Professional"
        assert all(v.has_fallback for v in voices)

    def test_no_tools_without_https(self) -> None:
        config = vapi_client.build_assistant_config(_assistant())

        assert "serverUrl" not in config
        assert "tools" not in config["model"]
        assert config["model"]["messages"][0]["content"] == "You collect missing tax documents."

    def test_tools_attached_over_https(self, monkeypatch) -> None:
        monkeypatch.setattr(settings, "public_app_url", "https://practice.example.com/")

        config = vapi_client.build_assistant_config(_assistant())

        assert config["serverUrl"] == "https://practice.example.com/api/webhooks/vapi"
        names = [t["function"]["name"] for t in config["model"]["tools"]]
        assert names == ["schedule_appointment", "get_contact_info", "transfer_to_human", "end_call"]
        assert config["model"]["tools"][0]["server"]["url"] == config["serverUrl"]

    def test_unknown_agent_type_gets_default_tools(self, monkeypatch) -> None:
        monkeypatch.setattr(settings, "public_app_url", "https://practice.example.com")
        names = [t["function"]["name"] for t in vapi_client.tools_for_agent_type("general")]
        assert names == ["transfer_to_human", "end_call"]


class TestRequests:
    @pytest.mark.asyncio
    async def test_create_assistant(self) -> None:
        handler = RecordingHandler(httpx.Response(201, json={"id": "asst_1"}))

        result = await _client(handler).create_assistant(_assistant())

        request = handler.requests[0]
        assert result == {"id": "asst_1"}
        assert request.method == "POST"
        assert request.url == httpx.URL(f"{settings.vapi_base_url}/assistant")
        assert request.headers["Authorization"] == "Bearer vapi-test-key"
        assert handler.body()["firstMessage"] == "Hi, this is the practice calling."

    @pytest.mark.asyncio
    async def test_error_message_surfaced(self) -> None:
        handler = RecordingHandler(httpx.Response(400, json={"message": "bad voice"}))

        with pytest.raises(VoiceAgentError) as exc_info:
            await _client(handler).get_assistant("asst_1")

        assert exc_info.value.message == "VAPI error (400): bad voice"
        assert exc_info.value.status_code == 502

    @pytest.mark.asyncio
    async def test_transport_failure(self) -> None:
        def boom(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = VapiClient(api_key="k", transport=httpx.MockTransport(boom), sleep=AsyncMock())
        with pytest.raises(VoiceAgentError):
            await client.list_calls()

    @pytest.mark.asyncio
    async def test_delete_returns_none(self) -> None:
        handler = RecordingHandler(httpx.Response(204))
        assert await _client(handler).delete_assistant("asst_1") is None

    @pytest.mark.asyncio
    async def test_update_keeps_existing_prompt_on_model_change(self) -> None:
        handler = RecordingHandler(
            httpx.Response(200, json={"model": {"messages": [{"role": "system", "content": "Old prompt"}]}}),
            httpx.Response(200, json={"id": "asst_1"}),
        )

        await _client(handler).update_assistant("asst_1", AssistantUpdate(model="gpt-4o-mini"))

        assert [r.method for r in handler.requests] == ["GET", "PATCH"]
        model = handler.body()["model"]
        assert model["model"] == "gpt-4o-mini"
        assert model["messages"][0]["content"] == "Old prompt"

    @pytest.mark.asyncio
    async def test_create_call_body(self) -> None:
        handler = RecordingHandler(httpx.Response(201, json={"id": "call_1"}))

        await _client(handler).create_call(CallCreate(
            assistant_id="asst_1",
            phone_number_id="pn_1",
            customer_number="+15551234567",
            customer_name="Jane",
            metadata={"clientId": "c1"},
        ))

        assert handler.body() == {
            "assistantId": "asst_1",
            "phoneNumberId": "pn_1",
            "customer": {"number": "+15551234567", "name": "Jane"},
            "metadata": {"clientId": "c1"},
        }


class TestBulkCalls:
    """Bulk calls keep going after a failed contact."""

    @pytest.mark.asyncio
    async def test_partial_failure_collected(self) -> None:
        handler = RecordingHandler(
            httpx.Response(201, json={"id": "call_1"}),
            httpx.Response(400, json={"message": "invalid number"}),
            httpx.Response(201, json={"id": "call_3"}),
        )
        sleep = AsyncMock()
        data = BulkCallCreate.model_validate({
            "assistantId": "asst_1",
            "phoneNumberId": "pn_1",
            "contacts": [{"number": "+1001"}, {"number": "+1002"}, {"number": "+1003"}],
            "delayBetweenCalls": 0.5,
        })

        result = await _client(handler, sleep=sleep).bulk_calls(data)

        assert [c["id"] for c in result.calls] == ["call_1", "call_3"]
        assert result.errors == ["Failed to create call for +1002: VAPI error (400): invalid number"]
        assert sleep.await_count == 2
        sleep.assert_awaited_with(0.5)

    @pytest.mark.asyncio
    async def test_zero_delay_never_sleeps(self) -> None:
        handler = RecordingHandler(httpx.Response(201, json={"id": "a"}), httpx.Response(201, json={"id": "b"}))
        sleep = AsyncMock()
        data = BulkCallCreate.model_validate({
            "assistantId": "asst_1",
            "phoneNumberId": "pn_1",
            "contacts": [{"number": "+1001"}, {"number": "+1002"}],
            "delayBetweenCalls": 0,
        })

        await _client(handler, sleep=sleep).bulk_calls(data)

        sleep.assert_not_awaited()
