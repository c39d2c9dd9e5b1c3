"""Webhook Schemas — the inbound payload shapes, parsed once at the boundary.

Invariants:
    - Board payloads are exactly one of: ChallengePayload | ColumnChangePayload
    - A column value is one of: null | plain string | {date} | {label:{text}} | {text}
      | {label:"<text>"} | {name} (a cleared column arrives as null)
    - Payment events must carry type + data.object.id; metadata is optional
    - Ledger notifications: every field optional; a status change is read from
      changes.STATUS.{from,to} and the job from data.ID (or data.id)
    - Anything that fails to match a known shape is rejected (MalformedPayload upstream)

Design Decisions:
    - TypeAdapter over ad-hoc dict probing: one parse, typed result (ADR: no shape sniffing)
    - extra="ignore": partners add fields freely; we only depend on what we read
"""

from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, model_validator


class _Inbound(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)


# --- Board (field-change) channel ---------------------------------------------

class ChallengePayload(_Inbound):
    """Webhook handshake — echoed back verbatim."""
    challenge: str = Field(min_length=1)


class DateValue(_Inbound):
    date: str = Field(min_length=1)
    time: str | None = None


class LabelText(_Inbound):
    text: str = Field(min_length=1)
    index: int | None = None


class LabelValue(_Inbound):
    label: LabelText


class TextValue(_Inbound):
    text: str = Field(min_length=1)


class LabelString(_Inbound):
    label: str = Field(min_length=1)


class NameValue(_Inbound):
    name: str = Field(min_length=1)


# Unmonitored column types (numbers, people, ...) arrive as other objects
ColumnValue = Union[
    None, str, DateValue, LabelValue, TextValue, LabelString, NameValue,
    dict[str, Any],
]


class ColumnChangeEvent(_Inbound):
    """The `event` object of a board column-change webhook."""
    column_id: str = Field(alias="columnId", min_length=1)
    value: ColumnValue = Field(None, union_mode="left_to_right")
    pulse_id: int | str | None = Field(None, alias="pulseId")
    item_id: int | str | None = Field(None, alias="itemId")
    board_id: int | str | None = Field(None, alias="boardId")
    type: str | None = None

    @model_validator(mode="after")
    def require_item(self) -> "ColumnChangeEvent":
        if self.pulse_id is None and self.item_id is None:
            raise ValueError("event needs pulseId or itemId")
        return self

    @property
    def board_item_id(self) -> str:
        return str(self.pulse_id if self.pulse_id is not None else self.item_id)

    @property
    def value_text(self) -> str:
        """The scalar the column now holds, whatever shape it arrived in; "" when cleared."""
        value = self.value
        if value is None:
            return ""
        if isinstance(value, str):
            return value.strip()
        if isinstance(value, DateValue):
            return value.date
        if isinstance(value, LabelValue):
            return value.label.text
        if isinstance(value, TextValue):
            return value.text
        if isinstance(value, LabelString):
            return value.label
        if isinstance(value, NameValue):
            return value.name
        return ""


class ColumnChangePayload(_Inbound):
    event: ColumnChangeEvent


BoardPayload = Union[ChallengePayload, ColumnChangePayload]
board_payload_adapter: TypeAdapter[BoardPayload] = TypeAdapter(BoardPayload)


# --- Payment channel -----------------------------------------------------------

class PaymentMetadata(_Inbound):
    job_id: str | None = Field(None, alias="jobId")
    payment_type: str | None = Field(None, alias="paymentType")
    is_pre_auth: str | None = Field(None, alias="isPreAuth")


class PaymentObject(_Inbound):
    id: str = Field(min_length=1)
    metadata: PaymentMetadata = Field(default_factory=PaymentMetadata)
    amount_total: int | None = None
    amount: int | None = None
    amount_received: int | None = None
    currency: str | None = None

    @property
    def amount_minor(self) -> int | None:
        for value in (self.amount_total, self.amount, self.amount_received):
            if value is not None:
                return value
        return None


class PaymentEventData(_Inbound):
    object: PaymentObject


class PaymentEventPayload(_Inbound):
    id: str = Field(min_length=1)
    type: str = Field(min_length=1)
    data: PaymentEventData


# --- Ledger channel ------------------------------------------------------------

class LedgerStatusChange(_Inbound):
    from_status: int | None = Field(None, alias="from")
    to_status: int | None = Field(None, alias="to")


class LedgerChanges(_Inbound):
    status: LedgerStatusChange | None = Field(None, alias="STATUS")


class LedgerJobData(_Inbound):
    upper_id: int | str | None = Field(None, alias="ID")
    lower_id: int | str | None = Field(None, alias="id")

    @property
    def job_id(self) -> str | None:
        value = self.upper_id if self.upper_id is not None else self.lower_id
        return str(value) if value not in (None, "") else None


class LedgerWebhookPayload(_Inbound):
    """Job ledger notification; `export_key` is the channel's shared secret."""
    event: str | None = None
    export_key: str | None = None
    data: LedgerJobData | None = None
    changes: LedgerChanges | None = None
