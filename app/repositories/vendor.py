"""Vendor and W-9 status repositories."""

from __future__ import annotations

from datetime import date

from app.domain.vendor import Vendor, W9Status
from app.repositories.base import BaseRepository


class VendorRepository(BaseRepository[Vendor]):
    model = Vendor

    async def get_by_name(self, client_id: str, name: str) -> Vendor | None:
        q = self._base_query().where(Vendor.client_id == client_id, Vendor.name == name)
        return await self._first(q)

    async def list_for_client(self, client_id: str | None = None) -> list[Vendor]:
        q = self._base_query()
        if client_id:
            q = q.where(Vendor.client_id == client_id)
        return await self._all(q.order_by(Vendor.name.asc()))

    async def list_requiring_1099(self, client_id: str | None = None) -> list[Vendor]:
        q = self._base_query().where(Vendor.requires_1099.is_(True))
        if client_id:
            q = q.where(Vendor.client_id == client_id)
        return await self._all(q.order_by(Vendor.name.asc()))


class W9StatusRepository(BaseRepository[W9Status]):
    model = W9Status

    async def get_for_vendor(self, vendor_id: str) -> W9Status | None:
        return await self._first(self._base_query().where(W9Status.vendor_id == vendor_id))

    async def list_for_client(self, client_id: str | None = None) -> list[W9Status]:
        q = self._base_query()
        if client_id:
            q = q.where(W9Status.client_id == client_id)
        return await self._all(q)

    async def list_expired(self, today: date) -> list[W9Status]:
        q = self._base_query().where(
            W9Status.status == "received",
            W9Status.expiration_date.is_not(None),
            W9Status.expiration_date < today,
        )
        return await self._all(q)

    async def list_expiring_between(self, start: date, end: date) -> list[W9Status]:
        q = self._base_query().where(
            W9Status.status == "received",
            W9Status.expiration_date >= start,
            W9Status.expiration_date <= end,
        )
        return await self._all(q)

    async def list_by_status(self, status: str) -> list[W9Status]:
        return await self._all(self._base_query().where(W9Status.status == status))
