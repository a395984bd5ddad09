"""Client CRUD router."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.pagination import PaginationParams
from app.core.response import DataResponse, ListResponse, paginated
from app.core.tenancy import get_organization_id
from app.db.base import get_db
from app.schemas.client import ClientCreate, ClientOut, ClientUpdate
from app.services.clients import ClientService

router = APIRouter(prefix="/clients", tags=["Clients"])


def _svc(session: AsyncSession, organization_id: str) -> ClientService:
    return ClientService(session, organization_id)


@router.get("", response_model=ListResponse[ClientOut])
async def list_clients(
    filter_status: Optional[str] = Query(default=None, alias="status", description="Filter by status"),
    pagination: PaginationParams = Depends(),
    session: AsyncSession = Depends(get_db),
    organization_id: str = Depends(get_organization_id),
):
    """List clients (paginated). Filter by ?status=onboarding|active|inactive|archived."""
    items, total = await _svc(session, organization_id).list_clients(pagination, status=filter_status)
    return paginated(
        [ClientOut.model_validate(c) for c in items],
        total, pagination.page, pagination.limit,
    )


@router.post("", response_model=DataResponse[ClientOut], status_code=status.HTTP_201_CREATED)
async def create_client(
    body: ClientCreate,
    session: AsyncSession = Depends(get_db),
    organization_id: str = Depends(get_organization_id),
):
    client = await _svc(session, organization_id).create_client(body)
    return {"data": ClientOut.model_validate(client)}


@router.get("/{client_id}", response_model=DataResponse[ClientOut])
async def get_client(
    client_id: str,
    session: AsyncSession = Depends(get_db),
    organization_id: str = Depends(get_organization_id),
):
    client = await _svc(session, organization_id).get_client(client_id)
    return {"data": ClientOut.model_validate(client)}


@router.put("/{client_id}", response_model=DataResponse[ClientOut])
async def update_client(
    client_id: str,
    body: ClientUpdate,
    session: AsyncSession = Depends(get_db),
    organization_id: str = Depends(get_organization_id),
):
    client = await _svc(session, organization_id).update_client(client_id, body)
    return {"data": ClientOut.model_validate(client)}


@router.delete("/{client_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_client(
    client_id: str,
    session: AsyncSession = Depends(get_db),
    organization_id: str = Depends(get_organization_id),
):
    await _svc(session, organization_id).delete_client(client_id)
