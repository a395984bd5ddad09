"""Organization, user and invitation repositories."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import func, select

from app.domain.organization import Invitation, Organization, User
from app.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    model = User

    async def get_by_email(self, email: str) -> User | None:
        return await self._first(
            self._base_query().where(func.lower(User.email) == email.lower())
        )


class InvitationRepository(BaseRepository[Invitation]):
    model = Invitation

    async def find_pending_for_email(self, email: str) -> Invitation | None:
        q = self._base_query().where(
            func.lower(Invitation.email) == email.lower(),
            Invitation.status == "pending",
        )
        return await self._first(q)

    async def get_by_token(self, token: str) -> Invitation | None:
        """Token lookup is global: the invitee does not know the tenant yet."""
        q = select(Invitation).where(
            Invitation.token == token, Invitation.deleted_at.is_(None)
        )
        return await self._first(q)

    async def list_pending_expired(self, now: datetime) -> list[Invitation]:
        q = self._base_query().where(
            Invitation.status == "pending", Invitation.expires_at < now
        )
        return await self._all(q)


async def get_organization(session, organization_id: str) -> Organization | None:
    result = await session.execute(
        select(Organization).where(
            Organization.id == organization_id, Organization.deleted_at.is_(None)
        )
    )
    return result.scalars().first()
