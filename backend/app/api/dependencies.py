"""Request Dependencies — wire settings, HTTP client and marker store into services.

Invariants:
    - Credentials reach adapters through constructors only (never read from env there)
    - One httpx.AsyncClient per request, closed when the request finishes; the
      payments adapter goes through the process-wide StripeClient instead
    - Every outbound call inherits the configured timeout from that client

Design Decisions:
    - Plain FastAPI Depends chain: tests override get_settings / get_sync_orchestrator
      via app.dependency_overrides instead of patching modules
"""

from typing import AsyncGenerator

import httpx
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings, get_settings
from app.infrastructure.database import get_db
from app.infrastructure.idempotency_store import SqlIdempotencyStore
from app.infrastructure.job_ledger_client import JobLedgerClient
from app.infrastructure.payments_client import PaymentsClient
from app.infrastructure.project_board_client import ProjectBoardClient
from app.services.sync_orchestrator import SyncOrchestrator
from app.services.webhook_router import WebhookRouter, WebhookSecrets


async def get_http_client(
    settings: Settings = Depends(get_settings),
) -> AsyncGenerator[httpx.AsyncClient, None]:
    async with httpx.AsyncClient(timeout=settings.http_timeout_seconds) as client:
        yield client


def get_sync_orchestrator(
    settings: Settings = Depends(get_settings),
    http: httpx.AsyncClient = Depends(get_http_client),
    db: AsyncSession = Depends(get_db),
) -> SyncOrchestrator:
    """Build the orchestrator with adapters bound to this request's client."""
    return SyncOrchestrator(
        ledger=JobLedgerClient(
            http, settings.hirehop_api_token, settings.hirehop_domain,
        ),
        board=ProjectBoardClient(
            http,
            settings.monday_api_key,
            settings.monday_board_id,
            api_url=settings.monday_api_url,
            api_version=settings.monday_api_version,
        ),
        payments=PaymentsClient(
            settings.stripe_api_key,
            timeout_seconds=settings.http_timeout_seconds,
        ),
        markers=SqlIdempotencyStore(db, ttl_seconds=settings.idempotency_ttl_seconds),
    )


def get_webhook_router(
    settings: Settings = Depends(get_settings),
    orchestrator: SyncOrchestrator = Depends(get_sync_orchestrator),
) -> WebhookRouter:
    return WebhookRouter(
        WebhookSecrets(
            payment_signing_secret=settings.stripe_webhook_secret,
            board_signing_secret=settings.board_webhook_secret,
            payment_tolerance_seconds=settings.stripe_timestamp_tolerance_seconds,
            ledger_export_key=settings.hirehop_export_key,
        ),
        orchestrator,
    )
