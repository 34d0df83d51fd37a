"""Action Dispatch — resolves, authenticates, validates, executes, and envelopes one POST.

Invariants:
    - Step order is fixed: resolve -> authenticate -> validate -> execute -> envelope
    - A protected action with a bad payload and no token reports UNAUTHORIZED,
      never INVALID_PAYLOAD (auth precedes validation)
    - dispatch() never raises for anything a handler or schema engine does:
      exceptions become HandlerError (INTERNAL_ERROR + requestId), ActionError
      becomes ActionFailed
    - No shared mutable state is written: registry is read-only, every request
      carries its own AuthContext and validation result
    - resource_id reaches the handler untouched

Design Decisions:
    - Async handlers run on the event loop, sync handlers in the threadpool, both
      under asyncio.timeout so one slow handler never stalls other requests;
      only an expired deadline counts as a timeout, a TimeoutError the handler
      raises itself is an ordinary handler fault
    - Handler results are JSON-encoded inside the execute step: an unserializable
      result is a handler fault, not a transport fault
    - Call recording wrapped in try/except inside the recorder: never breaks dispatch
"""

import asyncio
import inspect
import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Protocol

from fastapi.concurrency import run_in_threadpool
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel

from restrpc.core.auth_types import Denied
from restrpc.core.contracts import Handler, HandlerContext, UploadedFile
from restrpc.core.domain_types import TERMINAL_FAILURE_STATES, DispatchState
from restrpc.core.envelope import (
    ActionFailed, ActionNotFound, HandlerEnvelope, HandlerError, InvalidPayload,
    Outcome, ServiceNotFound, Success, Unauthorized,
    build_envelope, http_status_for, is_envelope,
)
from restrpc.core.errors import ActionError, ActionNotFoundError, ServiceNotFoundError
from restrpc.core.schema_registry import SchemaRegistry
from restrpc.core.validation_result import Invalid
from restrpc.core.validator import validate
from restrpc.services.authenticator import Authenticator

logger = logging.getLogger(__name__)

ACTION_FIELD = "action"
# Body problems that make the action itself unresolvable; the rest are payload
# problems and are reported after authentication.
_ENVELOPE_FIELDS = frozenset({"body", ACTION_FIELD})


class _DeadlineExceeded(Exception):
    """The dispatcher's own handler deadline ran out."""


def new_request_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class DispatchRequest:
    """Inbound POST, already parsed from JSON or multipart."""
    service: str
    action: str | None
    payload: Any = None
    resource_id: str | None = None
    credential: str | None = None
    files: tuple[UploadedFile, ...] = field(default_factory=tuple)
    request_id: str | None = None
    api_version: str | None = None
    body_errors: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class DispatchResult:
    """Terminal outcome of one dispatch plus the state it stopped in."""
    outcome: Outcome
    state: DispatchState
    request_id: str
    duration_ms: float = 0.0
    subject: str | None = None

    @property
    def envelope(self) -> dict:
        return build_envelope(self.outcome)

    @property
    def http_status(self) -> int:
        return http_status_for(self.outcome)

    @property
    def error_code(self) -> str | None:
        data = self.envelope["data"]
        if self.envelope["status"] or not isinstance(data, dict):
            return None
        return data.get("code")


class CallRecorder(Protocol):
    async def record(self, request: DispatchRequest, result: DispatchResult) -> None: ...


def _is_async_callable(handler: Handler) -> bool:
    return inspect.iscoroutinefunction(handler) or inspect.iscoroutinefunction(
        getattr(handler, "__call__", None),
    )


class ActionDispatcher:
    """Routes (service, action) -> handler for one API version."""

    def __init__(
        self,
        registry: SchemaRegistry,
        authenticator: Authenticator,
        *,
        coerce_types: bool = False,
        handler_timeout: float | None = None,
        recorder: CallRecorder | None = None,
    ):
        self._registry = registry
        self._authenticator = authenticator
        self._coerce = coerce_types
        self._timeout = handler_timeout
        self._recorder = recorder

    @property
    def registry(self) -> SchemaRegistry:
        return self._registry

    async def dispatch(self, request: DispatchRequest) -> DispatchResult:
        """Run one request to a terminal state. Never raises for handler faults."""
        request_id = request.request_id or new_request_id()
        started = time.perf_counter()
        outcome, state, subject = await self._run(request, request_id)
        result = DispatchResult(
            outcome=outcome,
            state=state,
            request_id=request_id,
            duration_ms=round((time.perf_counter() - started) * 1000, 3),
            subject=subject,
        )
        self._log_result(request, result)
        if self._recorder is not None:
            await self._recorder.record(request, result)
        return result

    async def _run(
        self, request: DispatchRequest, request_id: str,
    ) -> tuple[Outcome, DispatchState, str | None]:
        # RECEIVED -> RESOLVED
        try:
            service = self._registry.get_service(request.service)
        except ServiceNotFoundError as e:
            return ServiceNotFound(e.service), DispatchState.NOT_FOUND, None
        envelope_errors = {
            k: v for k, v in request.body_errors.items() if k in _ENVELOPE_FIELDS
        }
        if envelope_errors or not request.action:
            missing = [] if envelope_errors or request.action else [ACTION_FIELD]
            return (
                InvalidPayload(missing=missing, invalid=envelope_errors),
                DispatchState.INVALID_PAYLOAD, None,
            )
        try:
            action = self._registry.get_action(service.name, request.action)
        except ActionNotFoundError as e:
            return (
                ActionNotFound(e.service, e.action, e.available_actions),
                DispatchState.NOT_FOUND, None,
            )

        # RESOLVED -> AUTHENTICATED
        auth = self._authenticator.authenticate(action, request.credential)
        if isinstance(auth, Denied):
            return Unauthorized(auth.reason), DispatchState.UNAUTHORIZED, None
        identity = auth.context
        subject = identity.subject

        # AUTHENTICATED -> VALIDATED
        payload_errors = {
            k: v for k, v in request.body_errors.items() if k not in _ENVELOPE_FIELDS
        }
        if payload_errors:
            return (
                InvalidPayload(invalid=payload_errors),
                DispatchState.INVALID_PAYLOAD, subject,
            )
        try:
            validation = validate(
                action.validation_schema, request.payload, coerce=self._coerce,
            )
        except Exception as e:
            logger.error(
                f"Schema engine raised in {service.name}.{action.name}: {e}",
                extra=self._extra(request, request_id, error_code="INTERNAL_ERROR"),
                exc_info=True,
            )
            return HandlerError(request_id), DispatchState.HANDLER_ERROR, subject
        if isinstance(validation, Invalid):
            return (
                InvalidPayload(**validation.to_data()),
                DispatchState.INVALID_PAYLOAD, subject,
            )

        # VALIDATED -> EXECUTED
        context = HandlerContext(
            service=service.name,
            action=action.name,
            request_id=request_id,
            auth=identity,
            resource_id=request.resource_id,
            files=tuple(request.files),
            api_version=request.api_version,
        )
        try:
            raw = await self._invoke(action.handler, validation.payload, context)
            outcome = self._wrap(raw, action.name)
        except ActionError as e:
            return (
                ActionFailed(e.message, e.code, e.http_status, dict(e.data)),
                DispatchState.ENVELOPED, subject,
            )
        except _DeadlineExceeded:
            logger.error(
                f"Handler timed out after {self._timeout}s: "
                f"{service.name}.{action.name}",
                extra=self._extra(request, request_id, error_code="INTERNAL_ERROR"),
            )
            return (
                HandlerError(request_id, timed_out=True),
                DispatchState.HANDLER_ERROR, subject,
            )
        except Exception as e:
            logger.error(
                f"Handler raised in {service.name}.{action.name}: {e}",
                extra=self._extra(request, request_id, error_code="INTERNAL_ERROR"),
                exc_info=True,
            )
            return HandlerError(request_id), DispatchState.HANDLER_ERROR, subject

        # EXECUTED -> ENVELOPED
        return outcome, DispatchState.ENVELOPED, subject

    async def _invoke(
        self, handler: Handler, payload: Any, context: HandlerContext,
    ) -> Any:
        async def call() -> Any:
            if _is_async_callable(handler):
                result = await handler(payload, context)
            else:
                result = await run_in_threadpool(handler, payload, context)
            if inspect.isawaitable(result):
                result = await result
            return result

        deadline = asyncio.timeout(self._timeout)
        try:
            async with deadline:
                return await call()
        except TimeoutError:
            if deadline.expired():
                raise _DeadlineExceeded from None
            raise

    @staticmethod
    def _wrap(raw: Any, action_name: str) -> Outcome:
        if isinstance(raw, BaseModel):
            raw = raw.model_dump(mode="json")
        encoded = jsonable_encoder(raw)
        if is_envelope(encoded):
            return HandlerEnvelope(
                encoded["status"], encoded["message"], encoded["data"],
            )
        return Success(data=encoded, action=action_name)

    @staticmethod
    def _extra(
        request: DispatchRequest, request_id: str, **fields: Any,
    ) -> dict:
        return {
            "request_id": request_id,
            "service": request.service,
            "action": request.action,
            "api_version": request.api_version,
            "resource_id": request.resource_id,
            **fields,
        }

    def _log_result(self, request: DispatchRequest, result: DispatchResult) -> None:
        level = (
            logging.WARNING if result.state in TERMINAL_FAILURE_STATES
            else logging.INFO
        )
        logger.log(
            level,
            f"Dispatched {request.service}.{request.action} -> {result.state.value}",
            extra=self._extra(
                request, result.request_id,
                dispatch_state=result.state.value,
                duration_ms=result.duration_ms,
                error_code=result.error_code,
                subject=result.subject,
            ),
        )
