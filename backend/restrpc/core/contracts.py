"""Boundary Protocols — contracts between the dispatcher and its collaborators.

Invariants:
    - Core NEVER imports from services/, api/, or infrastructure/
    - A handler is any callable (payload, HandlerContext) -> result | awaitable
    - A schema engine is anything exposing validate() and to_json_descriptor()

Design Decisions:
    - Protocol over ABC: structural subtyping, bound methods satisfy Handler directly
    - HandlerContext is frozen: handlers read request metadata, never rewrite it
"""

from dataclasses import dataclass, field
from typing import Any, Awaitable, Protocol, Union

from restrpc.core.auth_types import AuthContext, ANONYMOUS
from restrpc.core.domain_types import ActionName, ApiVersion, RequestId, ServiceName
from restrpc.core.validation_result import ValidationResult


@dataclass(frozen=True)
class UploadedFile:
    """One file part of a multipart POST, fully read into memory."""
    filename: str
    content_type: str | None
    content: bytes

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass(frozen=True)
class HandlerContext:
    """Everything a handler gets besides the normalized payload."""
    service: ServiceName
    action: ActionName
    request_id: RequestId
    auth: AuthContext = ANONYMOUS
    resource_id: str | None = None
    files: tuple[UploadedFile, ...] = field(default_factory=tuple)
    api_version: ApiVersion | None = None


class Handler(Protocol):
    """Executable logic behind one action."""
    def __call__(
        self, payload: dict, context: HandlerContext,
    ) -> Union[Any, Awaitable[Any]]: ...


class SchemaDescriptor(Protocol):
    """Swappable validation engine attached to an action."""
    def validate(self, payload: Any, coerce: bool = False) -> ValidationResult: ...
    def to_json_descriptor(self) -> dict: ...


class CredentialVerifier(Protocol):
    """Turns an opaque credential into identity or raises CredentialRejected."""
    scheme: str

    def verify(self, token: str) -> AuthContext: ...

