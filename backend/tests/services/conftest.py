"""Service test fixtures — fake external systems + FastAPI test client.

Invariants:
    - Every test gets fresh fakes (no call log leaks between tests)
    - get_settings and get_sync_orchestrator overridden: no env reads, no network,
      no database in route tests
    - Board item 555 ↔ job 4521 is the shared fixture record

Design Decisions:
    - Override at the orchestrator dependency: the real WebhookRouter, signature
      checks and classification run end to end
"""

import pytest
from httpx import ASGITransport, AsyncClient

from app.api.dependencies import get_sync_orchestrator
from app.config import Settings, get_settings
from app.main import app
from app.services.sync_orchestrator import SyncOrchestrator
from tests.services.fake_systems import (
    BOARD_SECRET, EXPORT_KEY, PAYMENT_SECRET, TOKEN_SECRET,
    FakeProjectBoard, FakeRecordClient, InMemoryIdempotencyStore,
)


@pytest.fixture
def ledger():
    return FakeRecordClient("job_ledger")


@pytest.fixture
def board():
    return FakeProjectBoard(
        items_by_job={"4521": "555"},
        references={"555": "4521"},
    )


@pytest.fixture
def payments():
    return FakeRecordClient("payments", references={"cs_test_1": "4521"})


@pytest.fixture
def markers():
    return InMemoryIdempotencyStore()


@pytest.fixture
def orchestrator(ledger, board, payments, markers):
    return SyncOrchestrator(ledger, board, payments, markers)


@pytest.fixture
def test_settings():
    return Settings(
        database_url="sqlite+aiosqlite:///:memory:",
        stripe_webhook_secret=PAYMENT_SECRET,
        board_webhook_secret=BOARD_SECRET,
        job_token_secret=TOKEN_SECRET,
        hirehop_export_key=EXPORT_KEY,
    )


@pytest.fixture
async def client(orchestrator, test_settings):
    """FastAPI test client with settings and orchestrator overridden."""
    app.dependency_overrides[get_settings] = lambda: test_settings
    app.dependency_overrides[get_sync_orchestrator] = lambda: orchestrator

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
