"""Authenticator — decides allow/deny for one action and extracts identity.

Invariants:
    - Unprotected actions are always Anonymous; the credential is not even parsed
    - Protected actions: no header -> Denied(MISSING); malformed header or bad
      token -> Denied(INVALID); expired token -> Denied(EXPIRED)
    - Denied.reason is generic unless verbose diagnostics are configured
    - Never raises: verifier bugs are logged and reported as an invalid credential

Design Decisions:
    - Bearer header parsing here, token checking in a CredentialVerifier: the
      scheme is pluggable (JWT via PyJWT, or static opaque tokens)
    - issue_token lives next to JWTVerifier so both share one claim layout
"""

import hmac
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Mapping

import jwt

from restrpc.config import Settings
from restrpc.core.auth_types import (
    Anonymous, Authenticated, AuthContext, AuthOutcome, CredentialRejected, Denied,
)
from restrpc.core.contracts import CredentialVerifier
from restrpc.core.domain_types import AuthScheme, DenialKind
from restrpc.core.schema_registry import Action

logger = logging.getLogger(__name__)

GENERIC_DENIAL_REASON = "Invalid or missing credentials"
_VERBOSE_REASONS = {
    DenialKind.MISSING: "missing credentials",
    DenialKind.INVALID: "invalid credentials",
    DenialKind.EXPIRED: "expired credentials",
}
_BEARER = "bearer"


def credential_from_header(authorization: str | None) -> str | None:
    """Token from `Authorization: Bearer <token>`.

    None when the header is absent, "" when present but not a bearer credential.
    """
    if authorization is None or not authorization.strip():
        return None
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != _BEARER or not token.strip():
        return ""
    return token.strip()


# ─── Verifiers ───────────────────────────────────────────────────

class JWTVerifier:
    """Signed JWT bearer tokens (PyJWT). `sub` claim is required."""
    scheme = AuthScheme.JWT.value

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        audience: str | None = None,
        issuer: str | None = None,
    ):
        self._secret = secret
        self._algorithm = algorithm
        self._audience = audience
        self._issuer = issuer

    def verify(self, token: str) -> AuthContext:
        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                audience=self._audience,
                issuer=self._issuer,
                options={"require": ["sub"]},
            )
        except jwt.ExpiredSignatureError:
            raise CredentialRejected(DenialKind.EXPIRED, "token has expired")
        except jwt.InvalidTokenError as e:
            raise CredentialRejected(DenialKind.INVALID, str(e))
        return AuthContext(
            subject=str(claims["sub"]), scheme=self.scheme, claims=claims,
        )


class StaticTokenVerifier:
    """Opaque tokens from configuration, mapped to a subject."""
    scheme = AuthScheme.STATIC.value

    def __init__(self, tokens: Mapping[str, str]):
        self._tokens = dict(tokens)

    def verify(self, token: str) -> AuthContext:
        for known, subject in self._tokens.items():
            if hmac.compare_digest(known.encode(), token.encode()):
                return AuthContext(subject=subject, scheme=self.scheme)
        raise CredentialRejected(DenialKind.INVALID, "unknown token")


def issue_token(
    subject: str,
    settings: Settings,
    extra_claims: dict[str, Any] | None = None,
    ttl_seconds: int | None = None,
    now: datetime | None = None,
) -> str:
    """Mint a JWT that JWTVerifier built from the same settings accepts."""
    issued_at = now or datetime.now(timezone.utc)
    ttl = settings.jwt_ttl_seconds if ttl_seconds is None else ttl_seconds
    claims: dict[str, Any] = {
        **(extra_claims or {}),
        "sub": str(subject),
        "iat": issued_at,
        "exp": issued_at + timedelta(seconds=ttl),
    }
    if settings.jwt_audience:
        claims["aud"] = settings.jwt_audience
    if settings.jwt_issuer:
        claims["iss"] = settings.jwt_issuer
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


# ─── Authenticator ───────────────────────────────────────────────

class Authenticator:
    """Applies an action's protection flag to a request credential."""

    def __init__(self, verifier: CredentialVerifier, verbose_errors: bool = False):
        self._verifier = verifier
        self._verbose = verbose_errors

    def authenticate(self, action: Action, credential: str | None) -> AuthOutcome:
        if not action.is_protected:
            return Anonymous()
        if credential is None:
            return self._deny(DenialKind.MISSING)
        if not credential:
            return self._deny(DenialKind.INVALID)
        try:
            context = self._verifier.verify(credential)
        except CredentialRejected as e:
            logger.info(
                f"Credential rejected for action '{action.name}': {e.kind.value}",
            )
            return self._deny(e.kind)
        except Exception:
            logger.error(
                f"Credential verifier failed for action '{action.name}'",
                exc_info=True,
            )
            return self._deny(DenialKind.INVALID)
        return Authenticated(context)

    def _deny(self, kind: DenialKind) -> Denied:
        reason = _VERBOSE_REASONS[kind] if self._verbose else GENERIC_DENIAL_REASON
        return Denied(reason=reason, kind=kind)


def build_authenticator(settings: Settings) -> Authenticator:
    """Authenticator for the configured scheme."""
    if settings.auth_scheme == AuthScheme.STATIC:
        verifier: CredentialVerifier = StaticTokenVerifier(settings.static_tokens)
    else:
        verifier = JWTVerifier(
            settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
            audience=settings.jwt_audience,
            issuer=settings.jwt_issuer,
        )
    return Authenticator(verifier, verbose_errors=settings.auth_verbose_errors)
