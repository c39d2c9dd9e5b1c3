"""Idempotency Keys — stable fingerprint per (source, kind, item, value).

Tests:
    - Same content → same key; different value or item → different key
    - Key is 64 hex chars (fits the marker table's primary key)
    - Signature and attributes do not affect the key (redeliveries re-sign)
"""

from app.core.domain_types import EventKind, SourceSystem, WebhookEvent
from app.core.idempotency import idempotency_key


def _event(**overrides) -> WebhookEvent:
    fields = dict(
        source_system=SourceSystem.PROJECT_BOARD,
        event_type=EventKind.DATE_FIELD_CHANGED,
        external_item_id="555",
        changed_field="date",
        new_value="2025-03-14",
    )
    fields.update(overrides)
    return WebhookEvent(**fields)


def test_key_is_sha256_hex():
    key = idempotency_key(_event())
    assert len(key) == 64
    int(key, 16)


def test_same_content_same_key():
    assert idempotency_key(_event()) == idempotency_key(_event())


def test_redelivery_with_new_signature_same_key():
    assert idempotency_key(_event(raw_signature="a")) == idempotency_key(
        _event(raw_signature="b", attributes={"event_id": "evt_2"}),
    )


def test_new_value_changes_key():
    assert idempotency_key(_event()) != idempotency_key(_event(new_value="2025-03-15"))


def test_other_item_changes_key():
    assert idempotency_key(_event()) != idempotency_key(_event(external_item_id="556"))


def test_other_kind_changes_key():
    assert idempotency_key(_event()) != idempotency_key(
        _event(event_type=EventKind.QUOTE_STATUS_CHANGED),
    )
