"""Outbound email over plain HTTPS.

The first configured provider wins: Resend, then SendGrid. With neither key
set, messages are logged instead of sent so local development and tests
never need credentials.

Every send raises :class:`EmailDeliveryError` on a provider failure;
callers that treat email as best effort (invitations, alert sweeps) catch
it themselves.
"""

from __future__ import annotations

import html
import logging
from dataclasses import dataclass
from datetime import datetime

import httpx

from app.core.config import settings
from app.core.exceptions import EmailDeliveryError
from app.schemas.invitation import EmailConfigStatus

logger = logging.getLogger(__name__)

RESEND_URL = "https://api.resend.com/emails"
SENDGRID_URL = "https://api.sendgrid.com/v3/mail/send"


@dataclass
class EmailMessage:
    to: str
    subject: str
    html: str
    text: str


class EmailService:
    """Sends :class:`EmailMessage` objects through the active provider.

    ``transport`` is passed to ``httpx.AsyncClient`` (tests inject an
    ``httpx.MockTransport``).
    """

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._transport = transport

    @property
    def provider(self) -> str:
        return settings.email_provider

    @property
    def sender(self) -> str:
        return f"{settings.from_name} <{settings.from_email}>"

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=settings.email_timeout, transport=self._transport)

    async def send(self, message: EmailMessage) -> str | None:
        """Deliver one message; returns the provider's message id when it gives one."""
        provider = self.provider
        if provider == "resend":
            return await self._send_via_resend(message)
        if provider == "sendgrid":
            return await self._send_via_sendgrid(message)

        logger.info(
            "Email not sent (no provider configured) to=%s subject=%r preview=%r",
            message.to, message.subject, message.text[:200],
        )
        return None

    async def _send_via_resend(self, message: EmailMessage) -> str | None:
        try:
            async with self._client() as client:
                response = await client.post(
                    RESEND_URL,
                    headers={"Authorization": f"Bearer {settings.resend_api_key}"},
                    json={
                        "from": self.sender,
                        "to": [message.to],
                        "subject": message.subject,
                        "html": message.html,
                        "text": message.text,
                    },
                )
        except httpx.HTTPError as exc:
            logger.error("Resend request failed: %s", exc)
            raise EmailDeliveryError(f"Resend request failed: {exc}") from exc

        if response.status_code >= 400:
            logger.error("Resend API error status=%d body=%s", response.status_code, response.text)
            raise EmailDeliveryError(f"Resend API error: {response.text}")

        message_id = response.json().get("id")
        logger.info("Email sent via Resend to=%s id=%s", message.to, message_id)
        return message_id

    async def _send_via_sendgrid(self, message: EmailMessage) -> str | None:
        try:
            async with self._client() as client:
                response = await client.post(
                    SENDGRID_URL,
                    headers={"Authorization": f"Bearer {settings.sendgrid_api_key}"},
                    json={
                        "personalizations": [{"to": [{"email": message.to}]}],
                        "from": {"email": settings.from_email, "name": settings.from_name},
                        "subject": message.subject,
                        "content": [
                            {"type": "text/plain", "value": message.text},
                            {"type": "text/html", "value": message.html},
                        ],
                    },
                )
        except httpx.HTTPError as exc:
            logger.error("SendGrid request failed: %s", exc)
            raise EmailDeliveryError(f"SendGrid request failed: {exc}") from exc

        if response.status_code >= 400:
            logger.error("SendGrid API error status=%d body=%s", response.status_code, response.text)
            raise EmailDeliveryError(f"SendGrid API error: {response.text}")

        message_id = response.headers.get("X-Message-Id")
        logger.info("Email sent via SendGrid to=%s id=%s", message.to, message_id)
        return message_id

    async def test_configuration(self, to: str | None = None) -> EmailConfigStatus:
        """Report the active provider; with ``to`` also send a test message."""
        message_id = None
        if to:
            message_id = await self.send(EmailMessage(
                to=to,
                subject=f"{settings.app_name} email configuration test",
                html="<p>Email delivery is configured correctly.</p>",
                text="Email delivery is configured correctly.",
            ))
        return EmailConfigStatus(
            provider=self.provider,
            configured=self.provider != "log",
            from_email=settings.from_email,
            message_id=message_id,
        )


def get_email_service() -> EmailService:
    return EmailService()


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------

def render_invitation(
    *,
    to: str,
    organization_name: str,
    inviter_name: str,
    invite_url: str,
    role: str,
    expires_at: datetime,
    personal_message: str | None = None,
) -> EmailMessage:
    expires = expires_at.strftime("%B %d, %Y")
    subject = f"You're invited to join {organization_name} on {settings.app_name}"

    note_html = ""
    note_text = ""
    if personal_message:
        note_html = (
            f'<blockquote style="border-left:3px solid #ccc;padding-left:12px;">'
            f"{html.escape(personal_message)}</blockquote>"
        )
        note_text = f'\nMessage from {inviter_name}:\n"{personal_message}"\n'

    body_html = f"""<html>
  <body style="font-family:Arial,sans-serif;color:#333;">
    <h2>You're invited to join {html.escape(organization_name)}</h2>
    <p>{html.escape(inviter_name)} has invited you to join
      <strong>{html.escape(organization_name)}</strong> as <strong>{html.escape(role)}</strong>.</p>
    {note_html}
    <p><a href="{html.escape(invite_url, quote=True)}"
       style="background:#2563eb;color:#fff;padding:12px 24px;border-radius:6px;text-decoration:none;">
       Accept Invitation</a></p>
    <p style="font-size:12px;color:#666;">This invitation expires on {expires}.
      If you weren't expecting it, you can ignore this email.</p>
  </body>
</html>"""

    body_text = (
        f"You're invited to join {organization_name}\n\n"
        f"{inviter_name} has invited you to join {organization_name} as {role}.\n"
        f"{note_text}\n"
        f"Accept the invitation: {invite_url}\n\n"
        f"This invitation expires on {expires}. "
        "If you weren't expecting it, you can ignore this email.\n"
    )
    return EmailMessage(to=to, subject=subject, html=body_html, text=body_text)


def render_notification(*, to: str, subject: str, body: str) -> EmailMessage:
    """Plain one-paragraph notice (document reminders, deadline reminders, W-9 requests)."""
    return EmailMessage(
        to=to,
        subject=subject,
        html=f'<p style="font-family:Arial,sans-serif;">{html.escape(body)}</p>',
        text=body,
    )
