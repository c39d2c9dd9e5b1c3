"""Sync Orchestrator — one verified event → resolve, lock check, one write, audit note.

Invariants:
    - Steps run strictly in order; each needs the previous step's resolved id or lock state
    - Resolution failure → no lock check, no write (ReferenceResolutionFailure)
    - LOCKED target → SyncOutcome "locked", no write attempted
    - Exactly ONE field is written per event — never a broader sync
    - Idempotency marker checked before any external call, recorded after the write
    - Audit note is advisory: its failure is logged and never changes the outcome
    - Nothing is retried here; redelivery by the sender is the retry policy
    - seen() and mark() are separate calls, so two deliveries of the same event
      arriving together can both pass the check and both write. Every write sets a
      field to an absolute value, so the second write leaves the same state; only
      the audit note is repeated

Design Decisions:
    - Two explicit phases: _apply (authoritative, raises) and _append_note (advisory,
      logs only)
    - Explicit dict EventKind → procedure: every mapping visible in one place
    - SyncPlan built after resolution: the executor never knows which event kind it runs
"""

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from app.core.domain_types import (
    EventKind, ExternalRecordRef, JobId, LockState, SourceSystem, SyncOutcome,
    WebhookEvent,
)
from app.core.errors import (
    ErrorContext, ExternalApiError, ExternalReadFailure, ExternalWriteFailure,
    FailureKind, RecordLockedError, ReferenceResolutionFailure,
)
from app.core.field_mappings import (
    DATE_COLUMNS, LEDGER_STATUS_FIELD, LEDGER_STATUS_NAMES, QUOTE_STATUS_COLUMN,
    ledger_date_value,
)
from app.core.idempotency import idempotency_key
from app.core.repository_protocols import (
    ExternalRecordClient, IdempotencyStore, ProjectBoard,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SyncPlan:
    """The single mutation an event authorizes, once its target is resolved."""
    job_id: JobId
    target: ExternalRecordClient
    target_id: str
    field: str
    value: str | int
    applied_key: str
    applied_value: Any
    note_target: ExternalRecordClient
    note_target_id: str
    note: str


class SyncOrchestrator:
    """Runs one orchestration procedure per event kind."""

    def __init__(
        self,
        ledger: ExternalRecordClient,
        board: ProjectBoard,
        payments: ExternalRecordClient,
        markers: IdempotencyStore,
    ):
        self._ledger = ledger
        self._board = board
        self._payments = payments
        self._markers = markers
        # ADR: a new event kind requires an entry here
        self._planners: dict[
            EventKind, Callable[[WebhookEvent], Awaitable[SyncPlan]]
        ] = {
            EventKind.DATE_FIELD_CHANGED: self._plan_date_field,
            EventKind.QUOTE_STATUS_CHANGED: self._plan_job_status,
            EventKind.COMPLETION_STATUS_CHANGED: self._plan_job_status,
            EventKind.CHECKOUT_COMPLETED: self._plan_payment_status,
            EventKind.PAYMENT_SUCCEEDED: self._plan_payment_status,
            EventKind.JOB_STATUS_CHANGED: self._plan_board_status,
        }

    async def sync(self, event: WebhookEvent) -> SyncOutcome:
        """Realize one verified event against the downstream systems."""
        key = idempotency_key(event)
        if await self._markers.seen(key):
            logger.info(
                "Event already applied, skipping",
                extra=self._log_extra(event, idempotency_key=key),
            )
            return SyncOutcome(success=True, duplicate=True)

        plan = await self._planners[event.event_type](event)
        outcome = await self._apply(event, plan)
        if outcome.success:
            await self._markers.mark(key, event)
            await self._append_note(event, plan)
        return outcome

    # ─── Step 1: cross-system resolution ────────────────────────

    async def _plan_date_field(self, event: WebhookEvent) -> SyncPlan:
        ref = await self._resolve(
            event, self._board.resolve_reference, event.external_item_id,
            SourceSystem.JOB_LEDGER, "job for board item",
        )
        ledger_field, applied_key = DATE_COLUMNS[event.changed_field]
        return SyncPlan(
            job_id=JobId(ref.target_id),
            target=self._ledger,
            target_id=ref.target_id,
            field=ledger_field,
            value=ledger_date_value(event.new_value),
            applied_key=applied_key,
            applied_value=event.new_value,
            note_target=self._ledger,
            note_target_id=ref.target_id,
            note=f"Date synced from board: {applied_key}={event.new_value}",
        )

    async def _plan_job_status(self, event: WebhookEvent) -> SyncPlan:
        ref = await self._resolve(
            event, self._board.resolve_reference, event.external_item_id,
            SourceSystem.JOB_LEDGER, "job for board item",
        )
        status = event.attributes["ledger_status"]
        status_name = LEDGER_STATUS_NAMES.get(status, str(status))
        return SyncPlan(
            job_id=JobId(ref.target_id),
            target=self._ledger,
            target_id=ref.target_id,
            field=LEDGER_STATUS_FIELD,
            value=status,
            applied_key="jobStatus",
            applied_value=status,
            note_target=self._ledger,
            note_target_id=ref.target_id,
            note=(
                f"Status set to {status_name} from board "
                f"({event.changed_field}: {event.new_value})"
            ),
        )

    async def _plan_payment_status(self, event: WebhookEvent) -> SyncPlan:
        job_id = event.attributes.get("job_id")
        if job_id:
            job_id = JobId(job_id)
        else:
            job_ref = await self._resolve(
                event, self._payments.resolve_reference, event.external_item_id,
                SourceSystem.JOB_LEDGER, "job for payment",
            )
            job_id = JobId(job_ref.target_id)
        item_ref = await self._resolve(
            event, self._board.find_item, job_id,
            SourceSystem.PROJECT_BOARD, "board item for job", job_id=job_id,
        )
        amount = event.attributes.get("amount")
        amount_text = f"£{amount:.2f} " if amount is not None else ""
        return SyncPlan(
            job_id=job_id,
            target=self._board,
            target_id=item_ref.target_id,
            field=event.changed_field,
            value=event.new_value,
            applied_key="paymentStatus",
            applied_value=event.new_value,
            note_target=self._ledger,
            note_target_id=job_id,
            note=(
                f"{amount_text}{event.attributes.get('payment_type')} payment "
                f"processed ({event.external_item_id}); board set to "
                f"{event.new_value}"
            ),
        )

    async def _plan_board_status(self, event: WebhookEvent) -> SyncPlan:
        job_id = JobId(event.external_item_id)
        item_ref = await self._resolve(
            event, self._board.find_item, job_id,
            SourceSystem.PROJECT_BOARD, "board item for job", job_id=job_id,
        )
        return SyncPlan(
            job_id=job_id,
            target=self._board,
            target_id=item_ref.target_id,
            field=QUOTE_STATUS_COLUMN,
            value=event.new_value,
            applied_key="boardStatus",
            applied_value=event.new_value,
            note_target=self._board,
            note_target_id=item_ref.target_id,
            note=f'Status synced from ledger: "{event.new_value}"',
        )

    async def _resolve(
        self,
        event: WebhookEvent,
        resolver: Callable[[str], Awaitable[str | None]],
        own_id: str,
        target_system: SourceSystem,
        description: str,
        job_id: str | None = None,
    ) -> ExternalRecordRef:
        context = self._context(event, job_id)
        try:
            target_id = await resolver(own_id)
        except ExternalApiError as e:
            self._log_external_failure(event, e, "resolution")
            raise ReferenceResolutionFailure(
                f"Lookup of {description} {own_id} failed",
                lookup_failed=True, context=context,
                details={"system": e.system, "kind": e.kind.value, "raw": e.raw},
            )
        if not target_id:
            logger.warning(
                f"No {description} {own_id}", extra=self._log_extra(event),
            )
            raise ReferenceResolutionFailure(
                f"No {description} {own_id}", context=context,
            )
        return ExternalRecordRef(
            source_system=event.source_system,
            source_id=own_id,
            target_system=target_system,
            target_id=str(target_id),
        )

    # ─── Steps 2-3: authoritative phase ─────────────────────────

    async def _apply(self, event: WebhookEvent, plan: SyncPlan) -> SyncOutcome:
        context = self._context(event, plan.job_id)
        try:
            lock_state = await plan.target.read_lock_state(plan.target_id)
        except ExternalApiError as e:
            self._log_external_failure(event, e, "lock check")
            raise ExternalReadFailure(
                f"Could not read lock state of {plan.target.system} "
                f"record {plan.target_id}",
                context=context,
                details={"system": e.system, "kind": e.kind.value, "raw": e.raw},
            )

        if lock_state is LockState.NOT_FOUND:
            raise ReferenceResolutionFailure(
                f"{plan.target.system} record {plan.target_id} not found",
                context=context,
            )
        if lock_state is LockState.LOCKED:
            logger.warning(
                f"{plan.target.system} record {plan.target_id} is locked, "
                "not writing",
                extra=self._log_extra(event, job_id=plan.job_id),
            )
            return SyncOutcome.locked(plan.job_id)

        try:
            await plan.target.write_field(plan.target_id, plan.field, plan.value)
        except RecordLockedError:
            logger.warning(
                f"{plan.target.system} rejected write: record locked",
                extra=self._log_extra(event, job_id=plan.job_id),
            )
            return SyncOutcome.locked(plan.job_id)
        except ExternalApiError as e:
            self._log_external_failure(event, e, "write", plan.job_id)
            raise ExternalWriteFailure(
                f"Failed to update {plan.target.system} {plan.field}",
                context=context,
                details={"system": e.system, "kind": e.kind.value, "raw": e.raw},
            )

        logger.info(
            f"Applied {plan.field}={plan.value!r} to {plan.target.system} "
            f"record {plan.target_id}",
            extra=self._log_extra(event, job_id=plan.job_id),
        )
        return SyncOutcome(
            success=True,
            job_id=plan.job_id,
            applied_value=plan.applied_value,
            applied_key=plan.applied_key,
        )

    # ─── Step 4: advisory phase ─────────────────────────────────

    async def _append_note(self, event: WebhookEvent, plan: SyncPlan) -> None:
        try:
            await plan.note_target.write_note(plan.note_target_id, plan.note)
        except Exception as e:
            # Advisory: the field write above is authoritative
            logger.warning(
                f"Audit note failed for {plan.note_target.system} record "
                f"{plan.note_target_id}: {e}",
                extra=self._log_extra(
                    event, job_id=plan.job_id, error_code="AUDIT_WRITE_FAILURE",
                ),
            )

    # ─── Helpers ────────────────────────────────────────────────

    def _context(self, event: WebhookEvent, job_id: str | None) -> ErrorContext:
        return ErrorContext(
            source_system=event.source_system.value,
            event_type=event.event_type.value,
            job_id=job_id,
        )

    def _log_extra(self, event: WebhookEvent, **extra: Any) -> dict:
        return {
            "source_system": event.source_system.value,
            "event_type": event.event_type.value,
            **extra,
        }

    def _log_external_failure(
        self,
        event: WebhookEvent,
        error: ExternalApiError,
        step: str,
        job_id: str | None = None,
    ) -> None:
        extra = self._log_extra(
            event, job_id=job_id, failure_kind=error.kind.value,
        )
        if error.kind is FailureKind.TRANSPORT:
            logger.error(
                f"Transport failure during {step} (retryable by redelivery): "
                f"{error.message}",
                extra=extra,
            )
        else:
            logger.error(
                f"{error.system} rejected {step}: {error.message}",
                extra=extra,
            )
