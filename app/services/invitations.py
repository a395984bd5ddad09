"""Staff invitations: send, look up by token, accept, revoke, expire."""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta
from typing import Callable

import bcrypt
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import ConflictError, EmailDeliveryError, GoneError, NotFoundError
from app.domain.mixins import utcnow
from app.domain.organization import Invitation, User
from app.repositories.organization import InvitationRepository, UserRepository, get_organization
from app.schemas.invitation import InvitationAccept, InvitationCreate, InvitationOut, InvitationSent
from app.services.email_service import EmailService, get_email_service, render_invitation

logger = logging.getLogger(__name__)

TOKEN_BYTES = 32
BCRYPT_MAX_BYTES = 72


def hash_password(password: str) -> str:
    # bcrypt only looks at the first 72 bytes and newer releases reject longer input
    return bcrypt.hashpw(password.encode("utf-8")[:BCRYPT_MAX_BYTES], bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    return bcrypt.checkpw(password.encode("utf-8")[:BCRYPT_MAX_BYTES], password_hash.encode("utf-8"))


def invitation_url(token: str) -> str:
    return f"{settings.public_app_url.rstrip('/')}/accept-invitation?token={token}"


class InvitationService:
    def __init__(
        self,
        session: AsyncSession,
        organization_id: str,
        email_service: EmailService | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._session = session
        self._organization_id = organization_id
        self._invitations = InvitationRepository(session, organization_id)
        self._users = UserRepository(session, organization_id)
        self._email = email_service or get_email_service()
        self._clock = clock

    async def send(self, data: InvitationCreate, invited_by: str | None = None) -> InvitationSent:
        """Create a pending invitation and email the link.

        A failed email does not undo the invitation; the caller gets the URL
        back and ``email_sent`` tells whether delivery worked.
        """
        email = str(data.email).lower()
        if await self._users.get_by_email(email):
            raise ConflictError(f"{email} is already a member of this organization")
        if await self._invitations.find_pending_for_email(email):
            raise ConflictError(f"An invitation is already pending for {email}")

        invitation = await self._invitations.create(
            email=email,
            first_name=data.first_name,
            last_name=data.last_name,
            role=data.role,
            invited_by=invited_by,
            invitation_message=data.message,
            token=secrets.token_urlsafe(TOKEN_BYTES),
            status="pending",
            expires_at=self._clock() + timedelta(days=settings.invitation_ttl_days),
        )
        url = invitation_url(invitation.token)

        organization = await get_organization(self._session, self._organization_id)
        inviter = await self._users.get_by_id(invited_by) if invited_by else None
        email_sent = False
        try:
            await self._email.send(render_invitation(
                to=email,
                organization_name=organization.name if organization else settings.app_name,
                inviter_name=inviter.display_name if inviter else "A team member",
                invite_url=url,
                role=invitation.role,
                expires_at=invitation.expires_at,
                personal_message=data.message,
            ))
            email_sent = True
        except EmailDeliveryError as exc:
            logger.warning("Invitation %s created but email failed: %s", invitation.id, exc.message)

        logger.info("Invitation sent id=%s email=%s role=%s", invitation.id, email, invitation.role)
        return InvitationSent(
            invitation=InvitationOut.model_validate(invitation),
            invitation_url=url,
            email_sent=email_sent,
        )

    async def list_invitations(self, status: str | None = None) -> list[Invitation]:
        filters = {"status": status} if status else {}
        return await self._invitations.list_all(**filters)

    async def get_by_token(self, token: str) -> Invitation:
        """Pending invitation for ``token``; an expired one is marked so and refused."""
        invitation = await self._invitations.get_by_token(token)
        if invitation is None or invitation.status != "pending":
            raise NotFoundError("Invitation")
        if invitation.expires_at < self._clock():
            invitation.status = "expired"
            await self._invitations.save(invitation)
            # the request session rolls back on errors, keep the status change
            await self._session.commit()
            raise GoneError("This invitation has expired")
        return invitation

    async def accept(self, data: InvitationAccept) -> User:
        invitation = await self.get_by_token(data.token)
        users = UserRepository(self._session, invitation.organization_id)
        if await users.get_by_email(invitation.email):
            raise ConflictError(f"{invitation.email} is already a member of this organization")

        user = await users.create(
            email=invitation.email,
            first_name=data.first_name or invitation.first_name,
            last_name=data.last_name or invitation.last_name,
            role=invitation.role,
            password_hash=hash_password(data.password),
            is_active=True,
        )
        invitation.status = "accepted"
        invitation.accepted_at = self._clock()
        await self._invitations.save(invitation)
        logger.info("Invitation %s accepted user=%s", invitation.id, user.id)
        return user

    async def revoke(self, invitation_id: str) -> Invitation:
        invitation = await self._invitations.get_by_id(invitation_id)
        if not invitation:
            raise NotFoundError("Invitation", invitation_id)
        if invitation.status != "pending":
            raise ConflictError(f"Invitation is already {invitation.status}")
        invitation.status = "revoked"
        return await self._invitations.save(invitation)

    async def cleanup_expired(self) -> int:
        expired = await self._invitations.list_pending_expired(self._clock())
        for invitation in expired:
            invitation.status = "expired"
            await self._invitations.save(invitation)
        if expired:
            logger.info("Expired %d stale invitations", len(expired))
        return len(expired)
