"""Application Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - All secrets come from environment variables (never hardcoded in handlers)
    - AUTH_SCHEME=jwt requires JWT_SECRET of at least 32 bytes; there is no default
    - get_settings() is cached (lru_cache) — single instance per process
    - Validation is strict unless VALIDATION_COERCE_TYPES is set

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support
    - Defaults provided for all non-secret settings: works out-of-the-box with docker-compose
"""

from functools import lru_cache

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from restrpc.core.domain_types import AuthScheme

MIN_JWT_SECRET_BYTES = 32


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Routing: /{base_url}/{api_version}/services/...
    base_url: str = "api"

    @field_validator("base_url")
    @classmethod
    def strip_slashes(cls, v: str) -> str:
        return v.strip("/")

    # Database
    database_url: str = (
        "postgresql+asyncpg://restrpc:restrpc@db:5432/restrpc"
    )

    @field_validator("database_url", mode="before")
    @classmethod
    def convert_postgres_url(cls, v: str) -> str:
        """Hosting platforms hand out postgresql:// but asyncpg needs postgresql+asyncpg://."""
        if isinstance(v, str) and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    database_pool_size: int = 20
    database_max_overflow: int = 10
    database_create_tables: bool = True

    # Authentication
    auth_scheme: AuthScheme = AuthScheme.JWT
    jwt_secret: str = ""
    jwt_algorithm: str = "HS256"
    jwt_audience: str | None = None
    jwt_issuer: str | None = None
    jwt_ttl_seconds: int = 3600
    static_tokens: dict[str, str] = {}
    auth_verbose_errors: bool = False

    # Dispatch
    validation_coerce_types: bool = False
    handler_timeout_seconds: float | None = 30.0
    record_action_calls: bool = True
    max_upload_bytes: int = 10 * 1024 * 1024

    # API
    cors_origins: list[str] = ["http://localhost:5173"]

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"

    @model_validator(mode="after")
    def require_jwt_secret(self) -> "Settings":
        """JWT auth refuses to start on a missing or short secret."""
        if self.auth_scheme != AuthScheme.JWT:
            return self
        if len(self.jwt_secret.encode()) < MIN_JWT_SECRET_BYTES:
            raise ValueError(
                f"JWT_SECRET must be set to at least {MIN_JWT_SECRET_BYTES} bytes "
                "when AUTH_SCHEME=jwt",
            )
        return self


@lru_cache
def get_settings() -> Settings:
    return Settings()
