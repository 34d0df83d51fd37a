"""Response Envelope Builder — maps every dispatch outcome to {status, message, data}.

Invariants:
    - build_envelope() is PURE and total: every Outcome type has exactly one builder
    - status=True only for Success and for handler envelopes that say so
    - status=False data is always None or a dict carrying "code" (or missing/invalid)
    - http_status_for() never changes the envelope, only the transport status

Canonical mappings:
    Success          -> True,  handler message or default,           result
    ServiceNotFound  -> False, "Service '<s>' not found",             {code}
    ActionNotFound   -> False, "Action '<a>' not found in service..", {availableActions, code}
    VersionNotFound  -> False, "API version '<v>' not found",         {availableVersions, code}
    Unauthorized     -> False, "Unauthorized",                        {code, reason}
    InvalidPayload   -> False, "invalid request format",              {missing, invalid}
    HandlerError     -> False, "Internal server error",               {code, requestId}
    ActionFailed     -> False, handler message,                       {code, ...}

Design Decisions:
    - Outcomes as frozen dataclasses + explicit type->builder dict: every mapping
      visible in one place
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Union

from restrpc.core.domain_types import ErrorCode

INVALID_REQUEST_MESSAGE = "invalid request format"
INTERNAL_ERROR_MESSAGE = "Internal server error"
UNAUTHORIZED_MESSAGE = "Unauthorized"


# ─── Outcomes ────────────────────────────────────────────────────

@dataclass(frozen=True)
class Success:
    data: Any = None
    message: str | None = None
    action: str | None = None


@dataclass(frozen=True)
class HandlerEnvelope:
    """Handler already returned {status, message, data}; passed through verbatim."""
    status: bool
    message: str
    data: Any = None


@dataclass(frozen=True)
class ServiceNotFound:
    service: str


@dataclass(frozen=True)
class ActionNotFound:
    service: str
    action: str
    available_actions: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class VersionNotFound:
    version: str
    available_versions: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class Unauthorized:
    reason: str


@dataclass(frozen=True)
class InvalidPayload:
    missing: list[str] = field(default_factory=list)
    invalid: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class HandlerError:
    request_id: str | None = None
    timed_out: bool = False


@dataclass(frozen=True)
class ActionFailed:
    message: str
    code: str
    http_status: int = 400
    data: dict[str, Any] = field(default_factory=dict)


Outcome = Union[
    Success, HandlerEnvelope, ServiceNotFound, ActionNotFound, VersionNotFound,
    Unauthorized, InvalidPayload, HandlerError, ActionFailed,
]


# ─── Builders ────────────────────────────────────────────────────

def _envelope(status: bool, message: str, data: Any = None) -> dict:
    return {"status": status, "message": message, "data": data}


def _success(o: Success) -> dict:
    default = (
        f"Action '{o.action}' executed successfully" if o.action else "OK"
    )
    return _envelope(True, o.message or default, o.data)


def _handler_envelope(o: HandlerEnvelope) -> dict:
    return _envelope(o.status, o.message, o.data)


def _service_not_found(o: ServiceNotFound) -> dict:
    return _envelope(
        False, f"Service '{o.service}' not found",
        {"code": ErrorCode.SERVICE_NOT_FOUND.value},
    )


def _action_not_found(o: ActionNotFound) -> dict:
    return _envelope(
        False, f"Action '{o.action}' not found in service '{o.service}'",
        {
            "availableActions": list(o.available_actions),
            "code": ErrorCode.ACTION_NOT_FOUND.value,
        },
    )


def _version_not_found(o: VersionNotFound) -> dict:
    return _envelope(
        False, f"API version '{o.version}' not found",
        {
            "availableVersions": list(o.available_versions),
            "code": ErrorCode.VERSION_NOT_FOUND.value,
        },
    )


def _unauthorized(o: Unauthorized) -> dict:
    return _envelope(
        False, UNAUTHORIZED_MESSAGE,
        {"code": ErrorCode.UNAUTHORIZED.value, "reason": o.reason},
    )


def _invalid_payload(o: InvalidPayload) -> dict:
    return _envelope(
        False, INVALID_REQUEST_MESSAGE,
        {"missing": list(o.missing), "invalid": dict(o.invalid)},
    )


def _handler_error(o: HandlerError) -> dict:
    data: dict[str, Any] = {"code": ErrorCode.INTERNAL_ERROR.value}
    if o.request_id:
        data["requestId"] = o.request_id
    if o.timed_out:
        data["reason"] = "timeout"
    return _envelope(False, INTERNAL_ERROR_MESSAGE, data)


def _action_failed(o: ActionFailed) -> dict:
    return _envelope(False, o.message, {"code": o.code, **o.data})


_BUILDERS: dict[type, Callable[[Any], dict]] = {
    Success: _success,
    HandlerEnvelope: _handler_envelope,
    ServiceNotFound: _service_not_found,
    ActionNotFound: _action_not_found,
    VersionNotFound: _version_not_found,
    Unauthorized: _unauthorized,
    InvalidPayload: _invalid_payload,
    HandlerError: _handler_error,
    ActionFailed: _action_failed,
}

_HTTP_STATUS: dict[type, int] = {
    Success: 200,
    ServiceNotFound: 404,
    ActionNotFound: 404,
    VersionNotFound: 404,
    Unauthorized: 401,
    InvalidPayload: 400,
}


def build_envelope(outcome: Outcome) -> dict:
    """Wrap any outcome into the uniform response envelope."""
    return _BUILDERS[type(outcome)](outcome)


def http_status_for(outcome: Outcome) -> int:
    """Verb-appropriate transport status accompanying the envelope."""
    if isinstance(outcome, HandlerError):
        return 504 if outcome.timed_out else 500
    if isinstance(outcome, ActionFailed):
        return outcome.http_status
    if isinstance(outcome, HandlerEnvelope):
        return 200 if outcome.status else 400
    return _HTTP_STATUS[type(outcome)]


def success(data: Any = None, message: str | None = None) -> dict:
    """Shortcut for discovery responses."""
    return build_envelope(Success(data=data, message=message))


def is_envelope(value: Any) -> bool:
    """True when a handler result already has the envelope shape."""
    return (
        isinstance(value, dict)
        and set(value) == {"status", "message", "data"}
        and isinstance(value["status"], bool)
        and isinstance(value["message"], str)
    )
