"""Team invitation router."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.response import ActionResponse, DataResponse
from app.core.tenancy import get_actor_id, get_organization_id, require_cron_secret
from app.db.base import get_db
from app.schemas.invitation import (
    InvitationAccept,
    InvitationCreate,
    InvitationOut,
    InvitationSent,
    UserOut,
)
from app.services.invitations import InvitationService

router = APIRouter(prefix="/invitations", tags=["Invitations"])


def _svc(session: AsyncSession, organization_id: str) -> InvitationService:
    return InvitationService(session, organization_id)


@router.post("", response_model=DataResponse[InvitationSent], status_code=status.HTTP_201_CREATED)
async def send_invitation(
    body: InvitationCreate,
    session: AsyncSession = Depends(get_db),
    organization_id: str = Depends(get_organization_id),
    actor_id: Optional[str] = Depends(get_actor_id),
):
    """Invite a staff member by email. The response carries the link even if the email failed."""
    return {"data": await _svc(session, organization_id).send(body, invited_by=actor_id)}


@router.get("", response_model=DataResponse[list[InvitationOut]])
async def list_invitations(
    filter_status: Optional[str] = Query(default=None, alias="status"),
    session: AsyncSession = Depends(get_db),
    organization_id: str = Depends(get_organization_id),
):
    invitations = await _svc(session, organization_id).list_invitations(filter_status)
    return {"data": [InvitationOut.model_validate(i) for i in invitations]}


@router.get("/token/{token}", response_model=DataResponse[InvitationOut])
async def get_invitation_by_token(
    token: str,
    session: AsyncSession = Depends(get_db),
    organization_id: str = Depends(get_organization_id),
):
    invitation = await _svc(session, organization_id).get_by_token(token)
    return {"data": InvitationOut.model_validate(invitation)}


@router.post("/accept", response_model=DataResponse[UserOut], status_code=status.HTTP_201_CREATED)
async def accept_invitation(
    body: InvitationAccept,
    session: AsyncSession = Depends(get_db),
    organization_id: str = Depends(get_organization_id),
):
    user = await _svc(session, organization_id).accept(body)
    return {"data": UserOut.model_validate(user)}


@router.delete("/{invitation_id}", response_model=DataResponse[InvitationOut])
async def revoke_invitation(
    invitation_id: str,
    session: AsyncSession = Depends(get_db),
    organization_id: str = Depends(get_organization_id),
):
    invitation = await _svc(session, organization_id).revoke(invitation_id)
    return {"data": InvitationOut.model_validate(invitation)}


@router.post("/cron/cleanup", response_model=ActionResponse, dependencies=[Depends(require_cron_secret)])
async def cleanup_expired_invitations(
    session: AsyncSession = Depends(get_db),
    organization_id: str = Depends(get_organization_id),
):
    expired = await _svc(session, organization_id).cleanup_expired()
    return ActionResponse(message=f"{expired} invitation(s) expired", data={"expired": expired})
