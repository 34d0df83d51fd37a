"""Envelope Schemas — Pydantic models for the HTTP boundary (OpenAPI documentation).

Invariants:
    - Envelope mirrors core/envelope.py exactly: {status, message, data}
    - ActionRequest documents the JSON POST body; parsing itself is lenient
      (api/request_parsing.py) so malformed bodies still get an envelope

Design Decisions:
    - Separate from core: core builds plain dicts, these models only describe them
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Envelope(BaseModel):
    """Uniform response wrapper for every endpoint."""
    status: bool
    message: str
    data: Any = None


class ActionRequest(BaseModel):
    """POST /services/{service} JSON body."""
    model_config = ConfigDict(populate_by_name=True)

    action: str = Field(min_length=1, description="Action name within the service")
    payload: dict[str, Any] = Field(default_factory=dict)
    resource_id: str | None = Field(
        None, alias="resourceId",
        description="Opaque identifier passed through to the handler",
    )
