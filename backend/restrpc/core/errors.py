"""Error Hierarchy — typed, categorized exceptions for all router failure modes.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Lookup errors (404) are never fatal: callers turn them into status=false envelopes
    - to_envelope() always produces the uniform {status, message, data} shape
    - No internal details leaked in user-facing messages

Design Decisions:
    - Single hierarchy with RestRpcError base: FastAPI global handler catches all
    - ActionError is the one error handlers raise on purpose: it becomes a business
      failure envelope instead of INTERNAL_ERROR
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from restrpc.core.domain_types import ErrorCode


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    AUTHENTICATION = "authentication"
    BUSINESS_RULE = "business_rule"
    RESOURCE_NOT_FOUND = "resource_not_found"
    CONFIGURATION = "configuration"
    DATABASE = "database"
    INTERNAL = "internal"
    TIMEOUT = "timeout"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    request_id: str | None = None
    service: str | None = None
    action: str | None = None
    debug_info: dict[str, Any] | None = None


class RestRpcError(Exception):
    """Base exception for all router errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
        data: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status
        self.data = data or {}

    def to_envelope(self) -> dict:
        """Convert to the uniform response envelope."""
        return {
            "status": False,
            "message": self.message,
            "data": {"code": self.code, **self.data},
        }


# ─── Lookup Errors (404) ────────────────────────────────────────

class ServiceNotFoundError(RestRpcError):
    """Service name absent from the registry."""
    def __init__(self, service: str, context: ErrorContext | None = None):
        super().__init__(
            f"Service '{service}' not found",
            ErrorCode.SERVICE_NOT_FOUND.value, ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.WARNING, context, 404,
        )
        self.service = service


class ActionNotFoundError(RestRpcError):
    """Action name absent from an existing service."""
    def __init__(
        self,
        service: str,
        action: str,
        available_actions: list[str],
        context: ErrorContext | None = None,
    ):
        super().__init__(
            f"Action '{action}' not found in service '{service}'",
            ErrorCode.ACTION_NOT_FOUND.value, ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.WARNING, context, 404,
            data={"availableActions": list(available_actions)},
        )
        self.service = service
        self.action = action
        self.available_actions = list(available_actions)


class VersionNotFoundError(RestRpcError):
    """API version segment not served by this process."""
    def __init__(
        self, version: str, available_versions: list[str],
        context: ErrorContext | None = None,
    ):
        super().__init__(
            f"API version '{version}' not found",
            ErrorCode.VERSION_NOT_FOUND.value, ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.WARNING, context, 404,
            data={"availableVersions": list(available_versions)},
        )
        self.version = version


# ─── Handler-raised Errors ──────────────────────────────────────

class ActionError(RestRpcError):
    """Deliberate business failure raised by a handler.

    The dispatcher turns it into a status=false envelope carrying the
    handler's message and code, not an INTERNAL_ERROR.
    """
    def __init__(
        self,
        message: str,
        code: str,
        http_status: int = 400,
        data: dict[str, Any] | None = None,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            message, code, ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.INFO, context, http_status, data,
        )


# ─── Configuration / Infrastructure Errors ──────────────────────

class RegistryConfigError(RestRpcError):
    """Service table rejected at startup (duplicates, reserved names)."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, ErrorCode.REGISTRY_CONFIG_ERROR.value,
            ErrorCategory.CONFIGURATION, ErrorSeverity.CRITICAL, context, 500,
        )


class DatabaseError(RestRpcError):
    """Database operation failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Database {operation} failed: {message}",
            ErrorCode.DATABASE_ERROR.value, ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation
