"""Action Call Log — persists one ActionCall row per dispatch for observability.

Invariants:
    - Recording never changes or fails a dispatch: every error is logged and dropped
    - Payloads are never persisted, only routing metadata and the terminal state
"""

import logging
from typing import Callable

from restrpc.infrastructure.database import DatabaseSessionManager, get_session_manager
from restrpc.models.action_call import ActionCall
from restrpc.services.action_dispatch import DispatchRequest, DispatchResult

logger = logging.getLogger(__name__)


class ActionCallRecorder:
    """Writes ActionCall rows through the current DatabaseSessionManager."""

    def __init__(
        self,
        manager_provider: Callable[[], DatabaseSessionManager] = get_session_manager,
    ):
        self._manager_provider = manager_provider

    async def record(self, request: DispatchRequest, result: DispatchResult) -> None:
        try:
            async with self._manager_provider().session() as db:
                db.add(ActionCall(
                    request_id=result.request_id,
                    api_version=request.api_version,
                    service=request.service,
                    action=request.action or "",
                    resource_id=request.resource_id,
                    subject=result.subject,
                    status=result.envelope["status"],
                    dispatch_state=result.state.value,
                    error_code=result.error_code,
                    duration_ms=result.duration_ms,
                ))
                await db.commit()
        except Exception as e:
            logger.warning(
                f"Failed to record action call "
                f"'{request.service}.{request.action}': {e}",
                extra={"request_id": result.request_id},
            )
