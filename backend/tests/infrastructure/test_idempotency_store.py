"""Idempotency Store — processed_events markers over SQLAlchemy.

Tests:
    - Unmarked key → not seen; marked key → seen
    - Markers older than the TTL no longer count
    - Marking twice upserts (no integrity error)
    - Database failures fail open (seen → False, mark → logged)
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from app.core.domain_types import EventKind, SourceSystem, WebhookEvent
from app.core.idempotency import idempotency_key
from app.infrastructure.database import DatabaseSessionManager
from app.infrastructure.idempotency_store import SqlIdempotencyStore
from app.models.processed_event import ProcessedEvent


def _event(value: str = "2025-03-14") -> WebhookEvent:
    return WebhookEvent(
        source_system=SourceSystem.PROJECT_BOARD,
        event_type=EventKind.DATE_FIELD_CHANGED,
        external_item_id="555",
        changed_field="date",
        new_value=value,
    )


@pytest.mark.asyncio
async def test_unmarked_key_not_seen(test_db):
    store = SqlIdempotencyStore(test_db)
    assert await store.seen(idempotency_key(_event())) is False


@pytest.mark.asyncio
async def test_marked_key_seen(test_db):
    store = SqlIdempotencyStore(test_db)
    event = _event()
    key = idempotency_key(event)
    await store.mark(key, event)
    assert await store.seen(key) is True
    assert await store.seen(idempotency_key(_event("2025-03-15"))) is False


@pytest.mark.asyncio
async def test_marker_row_records_event(test_db):
    store = SqlIdempotencyStore(test_db)
    event = _event()
    key = idempotency_key(event)
    await store.mark(key, event)
    row = (await test_db.execute(
        select(ProcessedEvent).where(ProcessedEvent.key == key),
    )).scalar_one()
    assert row.source_system == "project_board"
    assert row.event_type == "date_field_changed"
    assert row.external_item_id == "555"
    assert row.new_value == "2025-03-14"


@pytest.mark.asyncio
async def test_expired_marker_not_seen(test_db):
    event = _event()
    key = idempotency_key(event)
    test_db.add(ProcessedEvent(
        key=key,
        source_system=event.source_system.value,
        event_type=event.event_type.value,
        external_item_id=event.external_item_id,
        new_value=event.new_value,
        applied_at=datetime.now(timezone.utc) - timedelta(hours=2),
    ))
    await test_db.commit()

    assert await SqlIdempotencyStore(test_db, ttl_seconds=3600).seen(key) is False
    assert await SqlIdempotencyStore(test_db, ttl_seconds=86_400).seen(key) is True


@pytest.mark.asyncio
async def test_marking_twice_refreshes_marker(test_db):
    store = SqlIdempotencyStore(test_db)
    event = _event()
    key = idempotency_key(event)
    await store.mark(key, event)
    await store.mark(key, event)
    rows = (await test_db.execute(select(ProcessedEvent))).scalars().all()
    assert len(rows) == 1


def _failing_session() -> AsyncMock:
    db = AsyncMock()
    db.execute.side_effect = OperationalError("SELECT", {}, Exception("down"))
    db.merge.side_effect = OperationalError("INSERT", {}, Exception("down"))
    return db


@pytest.mark.asyncio
async def test_seen_fails_open_when_database_down():
    db = _failing_session()
    assert await SqlIdempotencyStore(db).seen("k") is False
    db.rollback.assert_awaited()


@pytest.mark.asyncio
async def test_mark_failure_is_logged_not_raised(caplog):
    db = _failing_session()
    await SqlIdempotencyStore(db).mark("k", _event())
    db.rollback.assert_awaited()
    assert "idempotency marker" in caplog.text


@pytest.mark.asyncio
async def test_session_manager_health_check_on_sqlite():
    manager = DatabaseSessionManager("sqlite+aiosqlite:///:memory:")
    try:
        assert await manager.health_check() is True
    finally:
        await manager.close()
