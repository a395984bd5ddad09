"""Voice call log repository."""

from app.domain.call import CallLog
from app.repositories.base import BaseRepository


class CallLogRepository(BaseRepository[CallLog]):
    model = CallLog

    async def get_by_vapi_id(self, vapi_call_id: str) -> CallLog | None:
        return await self._first(self._base_query().where(CallLog.vapi_call_id == vapi_call_id))
