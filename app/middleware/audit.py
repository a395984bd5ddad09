"""Audit logging middleware — records every state-changing request to audit_trail."""


import asyncio
import logging
import time
from collections.abc import Callable

from fastapi import Request, Response
from sqlalchemy.exc import SQLAlchemyError
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.config import settings
from app.db.base import async_session_factory
from app.domain.audit import AuditTrail

logger = logging.getLogger(__name__)

# Methods that mutate state
_WRITE_METHODS = {"POST", "PUT", "PATCH", "DELETE"}
_UUID_LENGTH = 36


def infer_entity(path: str) -> tuple[str, str | None]:
    """``/api/v1/clients/<uuid>/checklist`` -> ``("client", "<uuid>")``.

    The entity is the last path segment that is followed by an id; without
    an id the last plain segment is used.
    """
    parts = [p for p in path.strip("/").split("/") if p]
    entity_type, entity_id = (parts[-1] if parts else "unknown"), None
    for index, part in enumerate(parts[:-1]):
        if len(parts[index + 1]) == _UUID_LENGTH:
            entity_type, entity_id = part, parts[index + 1]
    singular = entity_type[:-1] if entity_type.endswith("s") else entity_type
    return singular, entity_id


class AuditMiddleware(BaseHTTPMiddleware):
    """Logs all write operations.

    Each audit row is written in a background task after the response is
    produced so it never adds latency. Storage failures are logged and
    never reach the caller.
    """

    def __init__(self, app, session_factory=async_session_factory):
        super().__init__(app)
        self._session_factory = session_factory

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start = time.monotonic()
        response = await call_next(request)
        duration_ms = round((time.monotonic() - start) * 1000)

        if request.method in _WRITE_METHODS:
            asyncio.create_task(self._record(request, response.status_code, duration_ms))

        return response

    async def _record(self, request: Request, status_code: int, duration_ms: int) -> None:
        entity_type, entity_id = infer_entity(request.url.path)
        try:
            async with self._session_factory() as session:
                session.add(
                    AuditTrail(
                        organization_id=request.headers.get("x-organization-id")
                        or settings.default_organization_id,
                        user_id=request.headers.get("x-user-id"),
                        ip_address=request.client.host if request.client else None,
                        user_agent=request.headers.get("user-agent"),
                        action=f"{request.method}:{status_code}",
                        entity_type=entity_type,
                        entity_id=entity_id,
                        description=f"{request.method} {request.url.path} -> {status_code} ({duration_ms}ms)",
                    )
                )
                await session.commit()
        except SQLAlchemyError as exc:
            logger.error("Audit write failed for %s %s: %s", request.method, request.url.path, exc)
