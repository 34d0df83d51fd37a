"""ActionCall ORM — logging table for dispatched POST requests.

Invariants:
    - One row per dispatch that reached the dispatcher (success or failure)
    - resource_id stored verbatim; nothing dedupes on it here

Design Decisions:
    - Logging table, not enforcement: observability only, no dispatch logic reads it
    - Payloads are NOT stored: they may carry credentials or personal data
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, Float, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from restrpc.db.base import Base


class ActionCall(Base):
    """ActionCall log entry — observability for service/action usage."""
    __tablename__ = "action_calls"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    request_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    api_version: Mapped[str | None] = mapped_column(String(20), nullable=True)
    service: Mapped[str] = mapped_column(String(100), nullable=False)
    action: Mapped[str] = mapped_column(String(100), nullable=False)
    resource_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    subject: Mapped[str | None] = mapped_column(String(255), nullable=True)
    status: Mapped[bool] = mapped_column(Boolean, nullable=False)
    dispatch_state: Mapped[str] = mapped_column(String(30), nullable=False)
    error_code: Mapped[str | None] = mapped_column(String(50), nullable=True)
    duration_ms: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
