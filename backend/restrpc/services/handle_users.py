"""Users Handlers — accounts and token issuance for the example `users` service (3 methods).

Invariants:
    - Passwords stored only as salted scrypt hashes; comparison is constant-time
    - login failure never says whether the username or the password was wrong
    - Issued tokens carry sub=<user id>, so todos ownership checks line up
"""

import hashlib
import hmac
import secrets
from typing import Callable

from fastapi.concurrency import run_in_threadpool
from sqlalchemy import select

from restrpc.config import Settings
from restrpc.core.contracts import HandlerContext
from restrpc.core.errors import ActionError
from restrpc.infrastructure.database import DatabaseSessionManager, get_session_manager
from restrpc.models.user import User
from restrpc.services.authenticator import issue_token

_SCRYPT_N, _SCRYPT_R, _SCRYPT_P = 2**14, 8, 1


def hash_password(password: str, salt: bytes | None = None) -> str:
    salt = salt or secrets.token_bytes(16)
    digest = hashlib.scrypt(
        password.encode(), salt=salt, n=_SCRYPT_N, r=_SCRYPT_R, p=_SCRYPT_P,
    )
    return f"scrypt${_SCRYPT_N}${_SCRYPT_R}${_SCRYPT_P}${salt.hex()}${digest.hex()}"


def verify_password(password: str, stored: str) -> bool:
    try:
        _, n, r, p, salt_hex, digest_hex = stored.split("$")
        digest = hashlib.scrypt(
            password.encode(), salt=bytes.fromhex(salt_hex),
            n=int(n), r=int(r), p=int(p),
        )
    except ValueError:
        return False
    return hmac.compare_digest(digest.hex(), digest_hex)


class UsersHandlers:
    """Account registration, login, and identity lookup."""

    def __init__(
        self,
        settings: Settings,
        manager_provider: Callable[[], DatabaseSessionManager] = get_session_manager,
    ):
        self._settings = settings
        self._manager_provider = manager_provider

    async def register(self, payload: dict, context: HandlerContext) -> dict:
        async with self._manager_provider().session() as db:
            existing = await db.execute(
                select(User.id).where(User.username == payload["username"]),
            )
            if existing.scalar_one_or_none() is not None:
                raise ActionError(
                    f"Username '{payload['username']}' is already taken",
                    "USERNAME_TAKEN", http_status=409,
                )
            user = User(
                username=payload["username"],
                display_name=payload.get("display_name"),
                password_hash=await run_in_threadpool(hash_password, payload["password"]),
            )
            db.add(user)
            await db.commit()
        return user.to_public_dict()

    async def login(self, payload: dict, context: HandlerContext) -> dict:
        async with self._manager_provider().session() as db:
            result = await db.execute(
                select(User).where(User.username == payload["username"]),
            )
            user = result.scalar_one_or_none()
        valid = user is not None and await run_in_threadpool(
            verify_password, payload["password"], user.password_hash,
        )
        if not valid:
            raise ActionError(
                "Invalid username or password", "INVALID_CREDENTIALS", http_status=401,
            )
        token = issue_token(
            str(user.id), self._settings, extra_claims={"username": user.username},
        )
        return {
            "status": True,
            "message": "Login successful",
            "data": {
                "token": token,
                "tokenType": "bearer",
                "expiresIn": self._settings.jwt_ttl_seconds,
            },
        }

    async def me(self, payload: dict, context: HandlerContext) -> dict:
        return {
            "subject": context.auth.subject,
            "scheme": context.auth.scheme,
            "username": context.auth.claims.get("username"),
        }
