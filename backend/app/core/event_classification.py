"""Event Classification — verified payloads → WebhookEvent, or None when ignored.

Invariants:
    - Only called on payloads whose authenticity has already been verified
    - Unknown columns / event types / unmapped labels → None (acknowledged, ignored)
    - The column id decides relevance before the value is read: a cleared value on
      an unwatched column is never an error
    - A watched column that was cleared (no readable value) → None, nothing to sync
    - A date that is present but not strictly YYYY-MM-DD → MalformedPayload
    - Payment events without a known paymentType → None; job id may be resolved later

Design Decisions:
    - Pure functions over parsed schema models: no IO, trivially testable
    - Payment amounts normalized from minor units (pence) to major units here
"""

import logging
import re
from datetime import datetime

from app.core.domain_types import (
    EventKind, PaymentType, SourceSystem, WebhookEvent,
)
from app.core.errors import ErrorContext, MalformedPayload
from app.core.field_mappings import (
    COMPLETION_COLUMN, COMPLETION_LABEL, DATE_COLUMNS, LEDGER_COMPLETED_STATUS,
    LEDGER_STATUS_FIELD, LEDGER_STATUS_NAMES, LEDGER_STATUS_TO_BOARD,
    QUOTE_STATUS_COLUMN, QUOTE_STATUS_TO_LEDGER, lookup_label,
    payment_status_update,
)
from app.schemas.webhooks import (
    ColumnChangeEvent, LedgerWebhookPayload, PaymentEventPayload,
)

logger = logging.getLogger(__name__)

BOARD_DATE_FORMAT = "%Y-%m-%d"
_BOARD_DATE_SHAPE = re.compile(r"\d{4}-\d{2}-\d{2}")
LEDGER_STATUS_EVENT = "job.status"

PAYMENT_EVENT_KINDS: dict[str, EventKind] = {
    "checkout.session.completed": EventKind.CHECKOUT_COMPLETED,
    "payment_intent.succeeded": EventKind.PAYMENT_SUCCEEDED,
}


def classify_board_event(
    event: ColumnChangeEvent, raw_signature: str | None = None,
) -> WebhookEvent | None:
    """Map a column change to the event kind it implies."""
    column = event.column_id
    if column in DATE_COLUMNS:
        kind = EventKind.DATE_FIELD_CHANGED
    elif column == QUOTE_STATUS_COLUMN:
        kind = EventKind.QUOTE_STATUS_CHANGED
    elif column == COMPLETION_COLUMN:
        kind = EventKind.COMPLETION_STATUS_CHANGED
    else:
        return None

    value = event.value_text
    if not value:
        logger.info(
            f"Column {column} on item {event.board_item_id} has no value, ignoring",
            extra={
                "source_system": SourceSystem.PROJECT_BOARD.value,
                "event_type": kind.value,
            },
        )
        return None

    if kind is EventKind.DATE_FIELD_CHANGED:
        return _date_event(event, value, raw_signature)
    if kind is EventKind.QUOTE_STATUS_CHANGED:
        return _status_event(
            event, value, raw_signature, kind, QUOTE_STATUS_TO_LEDGER,
        )
    return _status_event(
        event, value, raw_signature, kind,
        {COMPLETION_LABEL: LEDGER_COMPLETED_STATUS},
    )


def _date_event(
    event: ColumnChangeEvent, value: str, raw_signature: str | None,
) -> WebhookEvent:
    kind = EventKind.DATE_FIELD_CHANGED
    try:
        if not _BOARD_DATE_SHAPE.fullmatch(value):
            raise ValueError(value)
        datetime.strptime(value, BOARD_DATE_FORMAT)
    except ValueError:
        raise MalformedPayload(
            f"Column {event.column_id} value is not a YYYY-MM-DD date",
            context=ErrorContext(
                source_system=SourceSystem.PROJECT_BOARD.value,
                event_type=kind.value,
            ),
        )
    return WebhookEvent(
        source_system=SourceSystem.PROJECT_BOARD,
        event_type=kind,
        external_item_id=event.board_item_id,
        changed_field=event.column_id,
        new_value=value,
        raw_signature=raw_signature,
    )


def _status_event(
    event: ColumnChangeEvent,
    label: str,
    raw_signature: str | None,
    kind: EventKind,
    mapping: dict[str, int],
) -> WebhookEvent | None:
    ledger_status = lookup_label(mapping, label)
    if ledger_status is None:
        return None
    return WebhookEvent(
        source_system=SourceSystem.PROJECT_BOARD,
        event_type=kind,
        external_item_id=event.board_item_id,
        changed_field=event.column_id,
        new_value=label,
        raw_signature=raw_signature,
        attributes={"ledger_status": ledger_status},
    )


def classify_payment_event(
    payload: PaymentEventPayload, raw_signature: str | None = None,
) -> WebhookEvent | None:
    """Map a payment-processor event to the board status it authorizes."""
    kind = PAYMENT_EVENT_KINDS.get(payload.type)
    if kind is None:
        return None

    obj = payload.data.object
    metadata = obj.metadata
    try:
        payment_type = PaymentType(metadata.payment_type or "")
    except ValueError:
        # Intents behind a checkout session carry no metadata of their own
        logger.info(
            f"Payment {obj.id} has no known paymentType "
            f"({metadata.payment_type!r}), ignoring",
            extra={
                "source_system": SourceSystem.PAYMENTS.value,
                "event_type": kind.value,
                "job_id": metadata.job_id,
            },
        )
        return None

    is_pre_auth = (metadata.is_pre_auth or "").lower() == "true"
    column, label = payment_status_update(payment_type, is_pre_auth)
    amount_minor = obj.amount_minor
    return WebhookEvent(
        source_system=SourceSystem.PAYMENTS,
        event_type=kind,
        external_item_id=obj.id,
        changed_field=column,
        new_value=label,
        raw_signature=raw_signature,
        attributes={
            "event_id": payload.id,
            "job_id": metadata.job_id or None,
            "payment_type": payment_type.value,
            "is_pre_auth": is_pre_auth,
            "amount": amount_minor / 100 if amount_minor is not None else None,
        },
    )


def classify_ledger_event(payload: LedgerWebhookPayload) -> WebhookEvent | None:
    """Map a ledger job status change to the board quote status it implies."""
    if not payload.event or LEDGER_STATUS_EVENT not in payload.event:
        return None
    change = payload.changes.status if payload.changes else None
    if change is None or change.to_status is None:
        return None

    kind = EventKind.JOB_STATUS_CHANGED
    label = LEDGER_STATUS_TO_BOARD.get(change.to_status)
    if label is None:
        logger.info(
            f"Ledger status {change.to_status} "
            f"({LEDGER_STATUS_NAMES.get(change.to_status, 'unknown')}) not mapped, ignoring",
            extra={
                "source_system": SourceSystem.JOB_LEDGER.value,
                "event_type": kind.value,
            },
        )
        return None

    job_id = payload.data.job_id if payload.data else None
    if not job_id:
        raise MalformedPayload(
            "Ledger status change does not name a job",
            context=ErrorContext(
                source_system=SourceSystem.JOB_LEDGER.value,
                event_type=kind.value,
            ),
        )
    return WebhookEvent(
        source_system=SourceSystem.JOB_LEDGER,
        event_type=kind,
        external_item_id=job_id,
        changed_field=LEDGER_STATUS_FIELD,
        new_value=label,
        attributes={
            "ledger_status": change.to_status,
            "previous_status": change.from_status,
        },
    )
