"""Boundary Protocols — contracts between the orchestrator and the outside world.

Invariants:
    - Orchestration code depends on these Protocols only — never on httpx or SQLAlchemy
    - Every external system exposes the same four operations
    - NotFound is a value (None / LockState.NOT_FOUND); failures raise ExternalApiError

Design Decisions:
    - Protocol over ABC: structural subtyping, fakes in tests need no inheritance
    - Credentials live inside the implementation (injected at construction), so
      callers never pass or see tokens
"""

from typing import Protocol

from app.core.domain_types import BoardItemId, JobId, LockState, WebhookEvent


class ExternalRecordClient(Protocol):
    """Contract every external-system adapter satisfies."""
    system: str

    async def resolve_reference(self, own_id: str) -> str | None: ...
    async def read_lock_state(self, foreign_id: str) -> LockState: ...
    async def write_field(
        self, foreign_id: str, field: str, value: str | int,
    ) -> None: ...
    async def write_note(self, foreign_id: str, text: str) -> None: ...


class ProjectBoard(ExternalRecordClient, Protocol):
    """Board adapter — also finds the item that tracks a given job."""
    async def find_item(self, job_id: JobId) -> BoardItemId | None: ...


class IdempotencyStore(Protocol):
    """Marker store for applied events — owned outside the core."""
    async def seen(self, key: str) -> bool: ...
    async def mark(self, key: str, event: WebhookEvent) -> None: ...
