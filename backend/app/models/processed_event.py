"""ProcessedEvent ORM — idempotency markers for webhook events already applied.

Invariants:
    - key is the SHA-256 idempotency key (primary key, one row per event content)
    - A row is written only AFTER the authoritative write succeeded
    - applied_at drives expiry: markers older than the TTL no longer block a write

Design Decisions:
    - Marker table, not a job store: nothing else in the service reads it
    - new_value kept for operators inspecting replays, never for logic
"""

from datetime import datetime, timezone

from sqlalchemy import String, Text, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


class ProcessedEvent(Base):
    """Idempotency marker — one per applied (source, kind, item, value)."""
    __tablename__ = "processed_events"

    key: Mapped[str] = mapped_column(String(64), primary_key=True)
    source_system: Mapped[str] = mapped_column(String(32), nullable=False)
    event_type: Mapped[str] = mapped_column(String(64), nullable=False)
    external_item_id: Mapped[str] = mapped_column(
        String(255), nullable=False,
    )
    new_value: Mapped[str] = mapped_column(Text, nullable=False)
    applied_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
        default=lambda: datetime.now(timezone.utc),
    )
