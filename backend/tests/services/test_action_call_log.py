"""Action Call Log — tests that dispatches are recorded and recording never fails a dispatch."""

import pytest
from sqlalchemy import select

from restrpc.core.domain_types import DispatchState
from restrpc.core.envelope import ServiceNotFound, Success
from restrpc.core.errors import DatabaseError
from restrpc.models.action_call import ActionCall
from restrpc.services.action_call_log import ActionCallRecorder
from restrpc.services.action_dispatch import DispatchRequest, DispatchResult


def _request(**kwargs) -> DispatchRequest:
    return DispatchRequest(
        service=kwargs.pop("service", "todos"),
        action=kwargs.pop("action", "create"),
        payload={"title": "secret title"},
        api_version="v1",
        **kwargs,
    )


@pytest.mark.asyncio
async def test_records_successful_dispatch(db_manager):
    result = DispatchResult(
        Success({"ok": True}, action="create"), DispatchState.ENVELOPED,
        "req-1", duration_ms=1.5, subject="user-1",
    )
    await ActionCallRecorder().record(_request(resource_id="todo-1"), result)

    async with db_manager.session() as db:
        rows = (await db.execute(select(ActionCall))).scalars().all()
    assert len(rows) == 1
    row = rows[0]
    assert (row.request_id, row.service, row.action) == ("req-1", "todos", "create")
    assert row.api_version == "v1"
    assert row.resource_id == "todo-1"
    assert row.subject == "user-1"
    assert row.status is True
    assert row.dispatch_state == "enveloped"
    assert row.error_code is None


@pytest.mark.asyncio
async def test_records_failure_code(db_manager):
    result = DispatchResult(ServiceNotFound("ghost"), DispatchState.NOT_FOUND, "req-2")
    await ActionCallRecorder().record(_request(service="ghost", action=None), result)

    async with db_manager.session() as db:
        row = (await db.execute(select(ActionCall))).scalar_one()
    assert row.status is False
    assert row.error_code == "SERVICE_NOT_FOUND"
    assert row.action == ""


@pytest.mark.asyncio
async def test_recording_failure_is_swallowed():
    def broken_provider():
        raise DatabaseError("Database not initialized", "connect")

    result = DispatchResult(Success(), DispatchState.ENVELOPED, "req-3")
    await ActionCallRecorder(broken_provider).record(_request(), result)
