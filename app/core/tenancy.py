"""Request-scoped tenant and caller resolution (FastAPI dependencies)."""


import secrets

from fastapi import Header

from app.core.config import settings
from app.core.exceptions import UnauthorizedError


def get_organization_id(
    x_organization_id: str | None = Header(default=None, alias="X-Organization-Id"),
) -> str:
    """Tenant for the request; falls back to the configured default organization."""
    return x_organization_id or settings.default_organization_id


def get_actor_id(
    x_user_id: str | None = Header(default=None, alias="X-User-Id"),
) -> str | None:
    """Id of the calling staff member, when the gateway forwards one."""
    return x_user_id


def require_cron_secret(
    x_cron_secret: str | None = Header(default=None, alias="X-Cron-Secret"),
) -> None:
    """Guard for scheduled sweep endpoints."""
    if not settings.cron_secret or not x_cron_secret:
        raise UnauthorizedError("Cron secret required")
    if not secrets.compare_digest(x_cron_secret, settings.cron_secret):
        raise UnauthorizedError("Invalid cron secret")
