"""Tests for the audit trail middleware."""

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker
from starlette.requests import Request

from app.domain.audit import AuditTrail
from app.middleware.audit import AuditMiddleware, infer_entity

CLIENT_ID = "0b6f7c1e-9a51-4d8e-a0a5-6a1f3c2b9d10"


def _request(method: str, path: str, headers: dict[str, str] | None = None) -> Request:
    return Request({
        "type": "http",
        "method": method,
        "path": path,
        "query_string": b"",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "client": ("10.0.0.5", 52000),
        "server": ("testserver", 80),
        "scheme": "http",
    })


class TestInferEntity:
    @pytest.mark.parametrize(
        "path,expected",
        [
            (f"/api/v1/clients/{CLIENT_ID}/checklist", ("client", CLIENT_ID)),
            ("/api/v1/invitations", ("invitation", None)),
            ("/api/v1/document-collection/cron/send-alerts", ("send-alert", None)),
            ("/", ("unknown", None)),
        ],
    )
    def test_infer_entity(self, path, expected) -> None:
        assert infer_entity(path) == expected


class TestAuditRecord:
    @pytest.mark.asyncio
    async def test_record_writes_row(self, engine, org_id) -> None:
        factory = async_sessionmaker(engine, expire_on_commit=False)
        middleware = AuditMiddleware(app=None, session_factory=factory)

        await middleware._record(
            _request("PUT", f"/api/v1/clients/{CLIENT_ID}", {"X-Organization-Id": org_id, "X-User-Id": "user-1"}),
            200,
            12,
        )

        async with factory() as session:
            rows = (await session.execute(select(AuditTrail))).scalars().all()
        assert len(rows) == 1
        row = rows[0]
        assert row.organization_id == org_id
        assert row.user_id == "user-1"
        assert row.ip_address == "10.0.0.5"
        assert row.action == "PUT:200"
        assert (row.entity_type, row.entity_id) == ("client", CLIENT_ID)
        assert row.description == f"PUT /api/v1/clients/{CLIENT_ID} -> 200 (12ms)"
