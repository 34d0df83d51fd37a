"""Auth Types — per-request identity and authentication outcomes.

Invariants:
    - AuthContext is created per dispatch and never persisted
    - Exactly one AuthOutcome per authenticate() call: Anonymous, Authenticated, or Denied
    - Denied.reason is already redacted (generic unless verbose diagnostics are on)

Design Decisions:
    - Frozen dataclasses: outcomes are values, handlers cannot mutate identity
"""

from dataclasses import dataclass, field
from typing import Any, Union

from restrpc.core.domain_types import DenialKind


@dataclass(frozen=True)
class AuthContext:
    """Identity available to a handler for the lifetime of one dispatch."""
    subject: str | None = None
    scheme: str | None = None
    claims: dict[str, Any] = field(default_factory=dict)

    @property
    def is_anonymous(self) -> bool:
        return self.subject is None


ANONYMOUS = AuthContext()


@dataclass(frozen=True)
class Anonymous:
    """Action is unprotected; any credential was ignored."""
    context: AuthContext = ANONYMOUS


@dataclass(frozen=True)
class Authenticated:
    """Credential verified for a protected action."""
    context: AuthContext


@dataclass(frozen=True)
class Denied:
    """Protected action and the credential was missing, invalid, or expired."""
    reason: str
    kind: DenialKind


AuthOutcome = Union[Anonymous, Authenticated, Denied]


class CredentialRejected(Exception):
    """Raised by credential verifiers. kind is never shown unless verbose."""

    def __init__(self, kind: DenialKind, detail: str = ""):
        super().__init__(detail or kind.value)
        self.kind = kind
        self.detail = detail
