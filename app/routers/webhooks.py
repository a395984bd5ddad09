"""Inbound webhooks from hosted services (/api/webhooks/*).

VAPI reaches this endpoint through the assistant ``serverUrl``. It carries no
tenant header, so the organization comes from ``call.metadata.organizationId``
and falls back to the request's tenant.
"""

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.tenancy import get_organization_id
from app.db.base import get_db
from app.services.calls import CallLogService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/webhooks", tags=["Webhooks"])


def _organization_from_payload(payload: dict[str, Any], default: str) -> str:
    message = payload.get("message")
    if not isinstance(message, dict):
        return default
    metadata = (message.get("call") or {}).get("metadata") or {}
    return metadata.get("organizationId") or default


@router.post("/vapi")
async def vapi_webhook(
    payload: dict[str, Any] = Body(...),
    session: AsyncSession = Depends(get_db),
    organization_id: str = Depends(get_organization_id),
):
    """Call status updates, end-of-call reports and tool calls from VAPI."""
    tenant = _organization_from_payload(payload, organization_id)
    return await CallLogService(session, tenant).handle_webhook(payload)
