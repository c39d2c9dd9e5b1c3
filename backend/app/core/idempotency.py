"""Idempotency Keys — one stable marker key per (source, kind, item, value).

Invariants:
    - Same event content → same key, across processes and redeliveries
    - Different new_value for the same item → different key (a later change is not a replay)

Design Decisions:
    - SHA-256 hex of '|'-joined parts: fixed length, fits an indexed String(64) column
"""

import hashlib

from app.core.domain_types import WebhookEvent


def idempotency_key(event: WebhookEvent) -> str:
    parts = (
        event.source_system.value,
        event.event_type.value,
        event.external_item_id,
        event.new_value,
    )
    return hashlib.sha256("|".join(parts).encode("utf-8")).hexdigest()
