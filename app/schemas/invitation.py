"""Team invitation and email configuration schemas."""

from datetime import datetime
from typing import Literal

from pydantic import EmailStr, Field

from app.schemas.common import CamelModel

Role = Literal["admin", "manager", "agent", "viewer"]


class InvitationCreate(CamelModel):
    email: EmailStr
    first_name: str | None = None
    last_name: str | None = None
    role: Role = "agent"
    message: str | None = Field(default=None, max_length=2000)


class InvitationOut(CamelModel):
    id: str
    organization_id: str
    email: str
    first_name: str | None = None
    last_name: str | None = None
    role: str
    invited_by: str | None = None
    invitation_message: str | None = None
    status: str
    expires_at: datetime
    accepted_at: datetime | None = None
    created_at: datetime


class InvitationSent(CamelModel):
    invitation: InvitationOut
    invitation_url: str
    email_sent: bool


class InvitationAccept(CamelModel):
    token: str = Field(min_length=1)
    password: str = Field(min_length=8, max_length=128)
    first_name: str | None = None
    last_name: str | None = None


class UserOut(CamelModel):
    id: str
    organization_id: str
    email: str
    first_name: str | None = None
    last_name: str | None = None
    role: str
    is_active: bool
    created_at: datetime


class EmailTestRequest(CamelModel):
    to: EmailStr


class EmailConfigStatus(CamelModel):
    provider: str
    configured: bool
    from_email: str
    message_id: str | None = None
