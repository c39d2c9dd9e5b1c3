"""Idempotency Store — SQL-backed markers for events already applied.

Invariants:
    - seen() is True only for markers younger than the TTL
    - mark() upserts: an expired marker for the same key is refreshed, not duplicated
    - Store failures never block a legitimate write (fail-open, logged)

Design Decisions:
    - Fail-open over fail-closed: every authoritative write is a "set to value" call,
      so a rare double-apply is harmless while a dead store must not stop syncing
      (same trade-off as provider-side webhook dedup)
    - TTL bounds the marker's meaning: a value set back to an earlier value days
      later is a new change, not a replay
"""

import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.domain_types import WebhookEvent
from app.models.processed_event import ProcessedEvent

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 86_400


class SqlIdempotencyStore:
    """IdempotencyStore over the processed_events table."""

    def __init__(self, db: AsyncSession, ttl_seconds: int = DEFAULT_TTL_SECONDS):
        self._db = db
        self._ttl = timedelta(seconds=ttl_seconds)

    def _cutoff(self) -> datetime:
        return datetime.now(timezone.utc) - self._ttl

    async def seen(self, key: str) -> bool:
        try:
            result = await self._db.execute(
                select(ProcessedEvent.key).where(
                    ProcessedEvent.key == key,
                    ProcessedEvent.applied_at >= self._cutoff(),
                ),
            )
            return result.scalar_one_or_none() is not None
        except SQLAlchemyError as e:
            logger.warning(
                f"Idempotency store unavailable, allowing event: {e}",
                extra={"idempotency_key": key},
            )
            await self._db.rollback()
            return False

    async def mark(self, key: str, event: WebhookEvent) -> None:
        try:
            await self._db.merge(
                ProcessedEvent(
                    key=key,
                    source_system=event.source_system.value,
                    event_type=event.event_type.value,
                    external_item_id=event.external_item_id,
                    new_value=event.new_value,
                    applied_at=datetime.now(timezone.utc),
                ),
            )
            await self._db.commit()
        except SQLAlchemyError as e:
            logger.warning(
                f"Failed to record idempotency marker: {e}",
                extra={"idempotency_key": key},
            )
            await self._db.rollback()
