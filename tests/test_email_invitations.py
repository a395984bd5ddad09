"""Tests for outbound email providers and staff invitations."""

import json
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import httpx
import pytest

from app.core.config import settings
from app.core.exceptions import ConflictError, EmailDeliveryError, GoneError, NotFoundError
from app.domain.mixins import utcnow
from app.domain.organization import Organization
from app.repositories.organization import InvitationRepository, UserRepository
from app.schemas.invitation import InvitationAccept, InvitationCreate
from app.services.email_service import EmailService, render_invitation, render_notification
from app.services.invitations import InvitationService, hash_password, verify_password


def _later(days: int):
    return lambda: utcnow() + timedelta(days=days)


class TestEmailService:
    """Provider selection and request shapes."""

    @pytest.mark.asyncio
    async def test_log_mode_without_keys(self) -> None:
        def fail(request):
            raise AssertionError("no HTTP call expected")

        service = EmailService(transport=httpx.MockTransport(fail))
        message = render_notification(to="a@example.com", subject="Hi", body="Body <b>")

        assert service.provider == "log"
        assert await service.send(message) is None
        assert "&lt;b&gt;" in message.html

    @pytest.mark.asyncio
    async def test_resend_payload(self, monkeypatch) -> None:
        monkeypatch.setattr(settings, "resend_api_key", "re_test")
        monkeypatch.setattr(settings, "sendgrid_api_key", "SG.ignored")
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"id": "email_123"})

        service = EmailService(transport=httpx.MockTransport(handler))
        message_id = await service.send(render_notification(to="a@example.com", subject="Hi", body="Body"))

        body = json.loads(seen[0].content)
        assert message_id == "email_123"
        assert str(seen[0].url) == "https://api.resend.com/emails"
        assert seen[0].headers["Authorization"] == "Bearer re_test"
        assert body["to"] == ["a@example.com"]
        assert body["from"] == f"{settings.from_name} <{settings.from_email}>"

    @pytest.mark.asyncio
    async def test_sendgrid_payload(self, monkeypatch) -> None:
        monkeypatch.setattr(settings, "sendgrid_api_key", "SG.test")
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(202, headers={"X-Message-Id": "sg-1"})

        service = EmailService(transport=httpx.MockTransport(handler))
        message_id = await service.send(render_notification(to="a@example.com", subject="Hi", body="Body"))

        body = json.loads(seen[0].content)
        assert message_id == "sg-1"
        assert body["personalizations"] == [{"to": [{"email": "a@example.com"}]}]
        assert [c["type"] for c in body["content"]] == ["text/plain", "text/html"]

    @pytest.mark.asyncio
    async def test_provider_error_raises(self, monkeypatch) -> None:
        monkeypatch.setattr(settings, "sendgrid_api_key", "SG.test")
        service = EmailService(transport=httpx.MockTransport(lambda r: httpx.Response(401, text="bad key")))

        with pytest.raises(EmailDeliveryError) as exc_info:
            await service.send(render_notification(to="a@example.com", subject="Hi", body="Body"))
        assert exc_info.value.message == "SendGrid API error: bad key"

    @pytest.mark.asyncio
    async def test_configuration_status(self) -> None:
        status = await EmailService().test_configuration()
        assert status.provider == "log"
        assert status.configured is False
        assert status.message_id is None

    def test_invitation_template(self) -> None:
        message = render_invitation(
            to="new@example.com",
            organization_name="Smith & Co CPA",
            inviter_name="Pat",
            invite_url="http://localhost:3000/accept-invitation?token=abc",
            role="manager",
            expires_at=datetime(2025, 3, 17, tzinfo=timezone.utc),
            personal_message="Welcome aboard",
        )
        assert message.subject == f"You're invited to join Smith & Co CPA on {settings.app_name}"
        assert "Smith &amp; Co CPA" in message.html
        assert "March 17, 2025" in message.text
        assert '"Welcome aboard"' in message.text


class TestPasswords:
    def test_hash_and_verify(self) -> None:
        hashed = hash_password("correct horse battery")
        assert verify_password("correct horse battery", hashed)
        assert not verify_password("wrong horse battery", hashed)

    def test_long_passwords_accepted(self) -> None:
        hashed = hash_password("x" * 100)
        assert verify_password("x" * 100, hashed)


@pytest.fixture
def email() -> AsyncMock:
    return AsyncMock(spec=EmailService)


@pytest.fixture
def service(session, org_id, email) -> InvitationService:
    return InvitationService(session, org_id, email_service=email)


class TestInvitations:
    """Invitation lifecycle: send, accept, revoke, expire."""

    @pytest.mark.asyncio
    async def test_send(self, service, email, session, org_id) -> None:
        session.add(Organization(id=org_id, name="Smith CPA", slug="smith-cpa"))
        inviter = await UserRepository(session, org_id).create(email="pat@example.com", first_name="Pat")

        sent = await service.send(
            InvitationCreate(email="New.Hire@Example.com", role="manager", message="Join us"),
            invited_by=inviter.id,
        )

        assert sent.email_sent is True
        assert sent.invitation.email == "new.hire@example.com"
        assert sent.invitation.status == "pending"
        assert sent.invitation_url.startswith("http://localhost:3000/accept-invitation?token=")
        message = email.send.await_args.args[0]
        assert message.to == "new.hire@example.com"
        assert "Smith CPA" in message.subject
        assert "Pat has invited you" in message.text

    @pytest.mark.asyncio
    async def test_email_failure_keeps_invitation(self, service, email) -> None:
        email.send.side_effect = EmailDeliveryError("provider down")

        sent = await service.send(InvitationCreate(email="new@example.com"))

        assert sent.email_sent is False
        assert [i.email for i in await service.list_invitations("pending")] == ["new@example.com"]

    @pytest.mark.asyncio
    async def test_duplicates_rejected(self, service, session, org_id) -> None:
        await UserRepository(session, org_id).create(email="member@example.com")
        await service.send(InvitationCreate(email="pending@example.com"))

        with pytest.raises(ConflictError):
            await service.send(InvitationCreate(email="MEMBER@example.com"))
        with pytest.raises(ConflictError):
            await service.send(InvitationCreate(email="pending@example.com"))

    @pytest.mark.asyncio
    async def test_accept_creates_user(self, service, session, org_id) -> None:
        sent = await service.send(InvitationCreate(email="new@example.com", first_name="Nia", role="viewer"))
        token = sent.invitation_url.split("token=")[1]

        user = await service.accept(InvitationAccept(token=token, password="s3cret-pass", last_name="Lee"))

        assert user.email == "new@example.com"
        assert user.role == "viewer"
        assert user.display_name == "Nia Lee"
        assert verify_password("s3cret-pass", user.password_hash)
        invitation = await InvitationRepository(session, org_id).get_by_id(sent.invitation.id)
        assert invitation.status == "accepted"
        with pytest.raises(NotFoundError):
            await service.accept(InvitationAccept(token=token, password="s3cret-pass"))

    @pytest.mark.asyncio
    async def test_expired_token(self, service, session, org_id, email) -> None:
        sent = await service.send(InvitationCreate(email="late@example.com"))
        token = sent.invitation_url.split("token=")[1]
        later = InvitationService(session, org_id, email_service=email, clock=_later(8))

        with pytest.raises(GoneError):
            await later.get_by_token(token)

        invitation = await InvitationRepository(session, org_id).get_by_id(sent.invitation.id)
        assert invitation.status == "expired"

    @pytest.mark.asyncio
    async def test_revoke(self, service) -> None:
        sent = await service.send(InvitationCreate(email="new@example.com"))

        assert (await service.revoke(sent.invitation.id)).status == "revoked"
        with pytest.raises(ConflictError):
            await service.revoke(sent.invitation.id)
        with pytest.raises(NotFoundError):
            await service.revoke("missing")

    @pytest.mark.asyncio
    async def test_cleanup_expired(self, service, session, org_id, email) -> None:
        await service.send(InvitationCreate(email="one@example.com"))
        await service.send(InvitationCreate(email="two@example.com"))

        assert await service.cleanup_expired() == 0
        later = InvitationService(session, org_id, email_service=email, clock=_later(8))
        assert await later.cleanup_expired() == 2
        assert await later.cleanup_expired() == 0
