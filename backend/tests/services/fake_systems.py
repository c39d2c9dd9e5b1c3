"""Fake External Systems — in-memory adapters with call logs for orchestration tests.

Invariants:
    - Every adapter call is appended to `calls` as (operation, *args) in order
    - Unknown ids resolve to None; unknown records read as UNLOCKED
    - Errors are injected per operation through the `fail` dict

Design Decisions:
    - Flat fake classes satisfying the Protocols structurally (no inheritance needed)
"""

from app.core.domain_types import LockState, WebhookEvent
from app.core.errors import ExternalApiError, FailureKind

PAYMENT_SECRET = "whsec_route_tests"
BOARD_SECRET = "board-route-tests"
TOKEN_SECRET = "job-token-route-tests"
EXPORT_KEY = "ledger-export-route-tests"


def transport_error(system: str, operation: str) -> ExternalApiError:
    return ExternalApiError(system, operation, "timeout", FailureKind.TRANSPORT)


def application_error(system: str, operation: str, raw=None) -> ExternalApiError:
    return ExternalApiError(
        system, operation, "HTTP 500", FailureKind.APPLICATION, raw=raw,
    )


class FakeRecordClient:
    def __init__(
        self,
        system: str,
        references: dict[str, str] | None = None,
        lock_states: dict[str, LockState] | None = None,
    ):
        self.system = system
        self.references = dict(references or {})
        self.lock_states = dict(lock_states or {})
        self.fail: dict[str, Exception] = {}
        self.calls: list[tuple] = []
        self.fields: dict[tuple[str, str], object] = {}
        self.notes: list[tuple[str, str]] = []

    def _record(self, operation: str, *args) -> None:
        self.calls.append((operation, *args))
        if operation in self.fail:
            raise self.fail[operation]

    def calls_to(self, operation: str) -> list[tuple]:
        return [c for c in self.calls if c[0] == operation]

    async def resolve_reference(self, own_id: str) -> str | None:
        self._record("resolve_reference", own_id)
        return self.references.get(own_id)

    async def read_lock_state(self, foreign_id: str) -> LockState:
        self._record("read_lock_state", foreign_id)
        return self.lock_states.get(foreign_id, LockState.UNLOCKED)

    async def write_field(self, foreign_id: str, field: str, value) -> None:
        self._record("write_field", foreign_id, field, value)
        self.fields[(foreign_id, field)] = value

    async def write_note(self, foreign_id: str, text: str) -> None:
        self._record("write_note", foreign_id, text)
        self.notes.append((foreign_id, text))


class FakeProjectBoard(FakeRecordClient):
    def __init__(self, items_by_job: dict[str, str] | None = None, **kwargs):
        super().__init__("project_board", **kwargs)
        self.items_by_job = dict(items_by_job or {})

    async def find_item(self, job_id: str) -> str | None:
        self._record("find_item", job_id)
        return self.items_by_job.get(job_id)


class InMemoryIdempotencyStore:
    def __init__(self):
        self.markers: dict[str, WebhookEvent] = {}

    async def seen(self, key: str) -> bool:
        return key in self.markers

    async def mark(self, key: str, event: WebhookEvent) -> None:
        self.markers[key] = event
