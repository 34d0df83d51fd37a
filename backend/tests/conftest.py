"""Root conftest — shared test configuration and fixtures.

Invariants:
    - Environment pinned before restrpc.main is imported (module-level app reads settings)
    - Every test that touches the DB gets a fresh in-memory SQLite database
    - db_manager patched on the module so handlers resolve it at call time
"""

import os

# Ensure tests never pick up real secrets or a real database
os.environ.setdefault("JWT_SECRET", "test-secret-key-with-enough-length-for-hs256")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("LOG_FORMAT", "text")

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

import restrpc.infrastructure.database as db_module  # noqa: E402
from restrpc.config import Settings  # noqa: E402
from restrpc.infrastructure.database import DatabaseSessionManager  # noqa: E402
from restrpc.main import create_app  # noqa: E402
from restrpc.services.authenticator import issue_token  # noqa: E402


@pytest.fixture
def settings() -> Settings:
    return Settings(
        jwt_secret="test-secret-key-with-enough-length-for-hs256",
        database_url="sqlite+aiosqlite:///:memory:",
        handler_timeout_seconds=5.0,
        record_action_calls=True,
        log_format="text",
    )


@pytest.fixture
async def db_manager(monkeypatch):
    """Fresh in-memory database with all tables, installed as the global manager."""
    manager = DatabaseSessionManager("sqlite+aiosqlite:///:memory:")
    await manager.create_tables()
    monkeypatch.setattr(db_module, "db_manager", manager)
    yield manager
    await manager.dispose()


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
async def client(app, db_manager):
    """FastAPI test client over ASGI, backed by the in-memory database."""
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c


@pytest.fixture
def make_token(settings):
    """Mint bearer tokens signed with the test settings."""
    def _make(subject: str = "user-1", **kwargs) -> str:
        return issue_token(subject, settings, **kwargs)
    return _make
