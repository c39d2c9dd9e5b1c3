"""Domain Types — rich types that replace bare primitives across the codebase.

Invariants:
    - JobId, BoardItemId wrap str — adapters return them from
      lookups and SyncPlan carries JobId, so ids from different systems never mix
    - All valid states encoded as Enums — no raw string matching
    - WebhookEvent, ExternalRecordRef, SyncOutcome are frozen (never mutated after creation)

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON without custom encoders
    - SyncOutcome.to_response() is the verbatim HTTP body (applied_key names the
      field that changed, e.g. outgoingDate)
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, NewType


# ─── Identity Types ──────────────────────────────────────────────

JobId = NewType("JobId", str)
BoardItemId = NewType("BoardItemId", str)


# ─── Enums ───────────────────────────────────────────────────────

class SourceSystem(str, Enum):
    """Systems JobSync talks to."""
    PAYMENTS = "payments"
    PROJECT_BOARD = "project_board"
    JOB_LEDGER = "job_ledger"


class EventKind(str, Enum):
    """Closed set of event kinds the orchestrator knows how to realize."""
    DATE_FIELD_CHANGED = "date_field_changed"
    QUOTE_STATUS_CHANGED = "quote_status_changed"
    COMPLETION_STATUS_CHANGED = "completion_status_changed"
    CHECKOUT_COMPLETED = "checkout_completed"
    PAYMENT_SUCCEEDED = "payment_succeeded"
    JOB_STATUS_CHANGED = "job_status_changed"


class LockState(str, Enum):
    """Writability of a target record."""
    LOCKED = "locked"
    UNLOCKED = "unlocked"
    NOT_FOUND = "not_found"


class PaymentType(str, Enum):
    """Payment purposes carried in payment metadata."""
    DEPOSIT = "deposit"
    BALANCE = "balance"
    EXCESS = "excess"


# ─── Value Objects ───────────────────────────────────────────────

def _frozen_mapping(values: Mapping[str, Any] | None = None) -> Mapping[str, Any]:
    return MappingProxyType(dict(values or {}))


@dataclass(frozen=True)
class WebhookEvent:
    """Normalized, verified inbound event. Discarded after the request."""
    source_system: SourceSystem
    event_type: EventKind
    external_item_id: str
    changed_field: str
    new_value: str
    raw_signature: str | None = None
    attributes: Mapping[str, Any] = field(default_factory=_frozen_mapping)

    def __post_init__(self):
        if not isinstance(self.attributes, MappingProxyType):
            object.__setattr__(
                self, "attributes", _frozen_mapping(self.attributes),
            )


@dataclass(frozen=True)
class ExternalRecordRef:
    """One system's id resolved to another system's id, for one invocation."""
    source_system: SourceSystem
    source_id: str
    target_system: SourceSystem
    target_id: str


@dataclass(frozen=True)
class SyncOutcome:
    """Terminal result of one orchestration run."""
    success: bool
    job_id: str | None = None
    applied_value: Any = None
    applied_key: str = "appliedValue"
    error: str | None = None
    duplicate: bool = False

    def to_response(self) -> dict:
        body: dict[str, Any] = {"success": self.success, "jobId": self.job_id}
        if self.applied_value is not None:
            body[self.applied_key] = self.applied_value
        if self.error:
            body["error"] = self.error
        if self.duplicate:
            body["duplicate"] = True
        return body

    @classmethod
    def locked(cls, job_id: str | None) -> "SyncOutcome":
        return cls(success=False, job_id=job_id, error=LockState.LOCKED.value)
