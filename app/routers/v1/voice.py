"""Voice agent router: proxies to VAPI and exposes stored call logs."""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.pagination import PaginationParams
from app.core.response import ActionResponse, DataResponse, ListResponse, paginated
from app.core.tenancy import get_organization_id
from app.db.base import get_db
from app.schemas.voice import (
    AssistantCreate,
    AssistantUpdate,
    BulkCallCreate,
    BulkCallResult,
    CallCreate,
    CallLogOut,
    PhoneNumberCreate,
    VoiceOption,
)
from app.services.calls import CallLogService
from app.services.vapi_client import VapiClient, get_available_voices, get_vapi_client

router = APIRouter(prefix="/voice", tags=["Voice Agents"])


@router.get("/voices", response_model=DataResponse[list[VoiceOption]])
async def list_voices():
    return {"data": get_available_voices()}


# ------------------------------------------------------------------
# Assistants
# ------------------------------------------------------------------

@router.get("/assistants", response_model=DataResponse[list[dict[str, Any]]])
async def list_assistants(vapi: VapiClient = Depends(get_vapi_client)):
    return {"data": await vapi.list_assistants()}


@router.post("/assistants", response_model=DataResponse[dict[str, Any]], status_code=status.HTTP_201_CREATED)
async def create_assistant(body: AssistantCreate, vapi: VapiClient = Depends(get_vapi_client)):
    return {"data": await vapi.create_assistant(body)}


@router.get("/assistants/{assistant_id}", response_model=DataResponse[dict[str, Any]])
async def get_assistant(assistant_id: str, vapi: VapiClient = Depends(get_vapi_client)):
    return {"data": await vapi.get_assistant(assistant_id)}


@router.patch("/assistants/{assistant_id}", response_model=DataResponse[dict[str, Any]])
async def update_assistant(
    assistant_id: str, body: AssistantUpdate, vapi: VapiClient = Depends(get_vapi_client)
):
    return {"data": await vapi.update_assistant(assistant_id, body)}


@router.delete("/assistants/{assistant_id}", response_model=ActionResponse)
async def delete_assistant(assistant_id: str, vapi: VapiClient = Depends(get_vapi_client)):
    await vapi.delete_assistant(assistant_id)
    return ActionResponse(message="Assistant deleted")


# ------------------------------------------------------------------
# Calls
# ------------------------------------------------------------------

@router.post("/calls", response_model=DataResponse[dict[str, Any]], status_code=status.HTTP_201_CREATED)
async def create_call(body: CallCreate, vapi: VapiClient = Depends(get_vapi_client)):
    return {"data": await vapi.create_call(body)}


@router.get("/calls", response_model=DataResponse[list[dict[str, Any]]])
async def list_calls(
    limit: Optional[int] = Query(default=None, ge=1, le=1000),
    vapi: VapiClient = Depends(get_vapi_client),
):
    return {"data": await vapi.list_calls(limit)}


@router.post("/calls/bulk", response_model=DataResponse[BulkCallResult])
async def create_bulk_calls(body: BulkCallCreate, vapi: VapiClient = Depends(get_vapi_client)):
    """Place one call per contact with a pause between calls; failures are listed, not raised."""
    return {"data": await vapi.bulk_calls(body)}


@router.get("/calls/{call_id}", response_model=DataResponse[dict[str, Any]])
async def get_call(call_id: str, vapi: VapiClient = Depends(get_vapi_client)):
    return {"data": await vapi.get_call(call_id)}


# ------------------------------------------------------------------
# Phone numbers
# ------------------------------------------------------------------

@router.get("/phone-numbers", response_model=DataResponse[list[dict[str, Any]]])
async def list_phone_numbers(vapi: VapiClient = Depends(get_vapi_client)):
    return {"data": await vapi.list_phone_numbers()}


@router.post("/phone-numbers", response_model=DataResponse[dict[str, Any]], status_code=status.HTTP_201_CREATED)
async def create_phone_number(body: PhoneNumberCreate, vapi: VapiClient = Depends(get_vapi_client)):
    return {"data": await vapi.create_phone_number(body)}


# ------------------------------------------------------------------
# Stored call logs (fed by the webhook)
# ------------------------------------------------------------------

@router.get("/call-logs", response_model=ListResponse[CallLogOut])
async def list_call_logs(
    pagination: PaginationParams = Depends(),
    session: AsyncSession = Depends(get_db),
    organization_id: str = Depends(get_organization_id),
):
    items, total = await CallLogService(session, organization_id).list_calls(pagination)
    return paginated(
        [CallLogOut.model_validate(c) for c in items],
        total, pagination.page, pagination.limit,
    )


@router.get("/call-logs/{call_log_id}", response_model=DataResponse[CallLogOut])
async def get_call_log(
    call_log_id: str,
    session: AsyncSession = Depends(get_db),
    organization_id: str = Depends(get_organization_id),
):
    log = await CallLogService(session, organization_id).get_call(call_log_id)
    return {"data": CallLogOut.model_validate(log)}
