"""Client Pydantic schemas (request DTOs and response models)."""

from datetime import datetime
from typing import Any, Literal

from pydantic import EmailStr, Field

from app.schemas.common import CamelModel

ClientType = Literal["individual", "business", "estate", "nonprofit"]
ClientStatus = Literal["onboarding", "active", "inactive", "archived"]


class ClientCreate(CamelModel):
    name: str = Field(min_length=1, max_length=255)
    email: EmailStr | None = None
    phone: str | None = None
    client_type: ClientType = "individual"
    tax_year: int | None = None
    assigned_to: str | None = None
    profile: dict[str, Any] | None = None
    status: ClientStatus = "active"
    notes: str | None = None


class ClientUpdate(CamelModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    email: EmailStr | None = None
    phone: str | None = None
    client_type: ClientType | None = None
    tax_year: int | None = None
    assigned_to: str | None = None
    profile: dict[str, Any] | None = None
    status: ClientStatus | None = None
    notes: str | None = None


class ClientOut(CamelModel):
    id: str
    organization_id: str
    name: str
    email: str | None = None
    phone: str | None = None
    client_type: str
    tax_year: int | None = None
    assigned_to: str | None = None
    profile: dict[str, Any] | None = None
    progress: int
    status: str
    last_activity: datetime | None = None
    notes: str | None = None
    created_at: datetime
    updated_at: datetime
