"""Domain Types — rich types that replace bare primitives across the router.

Invariants:
    - ServiceName, ActionName, ApiVersion wrap str — never pass bare names through dispatch
    - Every terminal dispatch state is a DispatchState member
    - Every error code that reaches an envelope is an ErrorCode member

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON without custom encoders (envelopes are JSON)
"""

from enum import Enum
from typing import NewType


# ─── Identity Types ──────────────────────────────────────────────

ServiceName = NewType("ServiceName", str)
ActionName = NewType("ActionName", str)
ApiVersion = NewType("ApiVersion", str)
RequestId = NewType("RequestId", str)


# ─── Enums ───────────────────────────────────────────────────────

class DispatchState(str, Enum):
    """Per-request dispatch states. The last four are early-exit terminals."""
    RECEIVED = "received"
    RESOLVED = "resolved"
    AUTHENTICATED = "authenticated"
    VALIDATED = "validated"
    EXECUTED = "executed"
    ENVELOPED = "enveloped"
    NOT_FOUND = "not_found"
    UNAUTHORIZED = "unauthorized"
    INVALID_PAYLOAD = "invalid_payload"
    HANDLER_ERROR = "handler_error"


TERMINAL_FAILURE_STATES = frozenset({
    DispatchState.NOT_FOUND,
    DispatchState.UNAUTHORIZED,
    DispatchState.INVALID_PAYLOAD,
    DispatchState.HANDLER_ERROR,
})


class ErrorCode(str, Enum):
    """Codes carried in `data.code` of unsuccessful envelopes."""
    SERVICE_NOT_FOUND = "SERVICE_NOT_FOUND"
    ACTION_NOT_FOUND = "ACTION_NOT_FOUND"
    VERSION_NOT_FOUND = "VERSION_NOT_FOUND"
    UNAUTHORIZED = "UNAUTHORIZED"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    DATABASE_ERROR = "DATABASE_ERROR"
    REGISTRY_CONFIG_ERROR = "REGISTRY_CONFIG_ERROR"


class DenialKind(str, Enum):
    """Why a credential was refused. Only surfaced with verbose diagnostics."""
    MISSING = "missing"
    INVALID = "invalid"
    EXPIRED = "expired"


class AuthScheme(str, Enum):
    """Credential verifiers selectable from settings."""
    JWT = "jwt"
    STATIC = "static"
