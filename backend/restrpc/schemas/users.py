"""User Schemas — Pydantic payload models for the example `users` service.

Invariants:
    - username: 3-64 chars of [A-Za-z0-9_.-]
    - password: 8-128 chars, never echoed back
    - Unknown fields rejected (extra="forbid")

Design Decisions:
    - Pydantic models double as discovery descriptors via model_json_schema()
"""

from pydantic import BaseModel, ConfigDict, Field


class RegisterUserPayload(BaseModel):
    """Account creation."""
    model_config = ConfigDict(extra="forbid")

    username: str = Field(min_length=3, max_length=64, pattern=r"^[A-Za-z0-9_.-]+$")
    password: str = Field(min_length=8, max_length=128)
    display_name: str | None = Field(None, max_length=128)


class LoginPayload(BaseModel):
    """Username/password exchange for a bearer token."""
    model_config = ConfigDict(extra="forbid")

    username: str = Field(min_length=1, max_length=64)
    password: str = Field(min_length=1, max_length=128)
