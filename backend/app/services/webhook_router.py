"""Webhook Router — Unverified → Verified → Classified, or Unverified → Rejected.

Invariants:
    - Signatures are checked on the RAW body before any JSON parsing of event content
    - Rejected requests never reach the orchestrator (no adapter call of any kind)
    - A board handshake {"challenge": ...} is echoed verbatim and short-circuits
      before classification; it is the only unsigned payload accepted
    - Unknown event kinds → 200 "ignored" (partners retry on errors forever)
    - Missing secret → ConfigurationError (500), never a silently skipped check
    - Ledger notifications carry their secret (export_key) inside the body: it is
      checked right after parsing, before anything is classified

Design Decisions:
    - Router returns (status, body) and raises JobSyncError for rejections: the
      route stays thin, the global handlers shape every error body
    - Channel picked by signature header on the shared /webhook endpoint
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Mapping

from pydantic import ValidationError

from app.core.domain_types import SourceSystem
from app.core.errors import AuthenticationFailure, ErrorContext, MalformedPayload
from app.core.event_classification import (
    classify_board_event, classify_ledger_event, classify_payment_event,
)
from app.core.signatures import (
    DEFAULT_PAYMENT_TOLERANCE_SECONDS, verify_board_signature,
    verify_export_key, verify_payment_signature,
)
from app.schemas.webhooks import (
    ChallengePayload, LedgerWebhookPayload, PaymentEventPayload,
    board_payload_adapter,
)
from app.services.sync_orchestrator import SyncOrchestrator

logger = logging.getLogger(__name__)

PAYMENT_SIGNATURE_HEADER = "stripe-signature"
BOARD_SIGNATURE_HEADER = "x-board-signature"


@dataclass(frozen=True)
class WebhookSecrets:
    """Inbound verification secrets, injected from settings."""
    payment_signing_secret: str
    board_signing_secret: str
    payment_tolerance_seconds: int = DEFAULT_PAYMENT_TOLERANCE_SECONDS
    ledger_export_key: str = ""


@dataclass(frozen=True)
class RouterResult:
    status_code: int
    body: dict[str, Any]


def _log_webhook(source: SourceSystem, event_type: str, status: str) -> None:
    """Audit line for every inbound webhook."""
    logger.info(
        f"WEBHOOK_AUDIT source={source.value} event={event_type} status={status}",
        extra={"source_system": source.value, "event_type": event_type},
    )


def _parse_json(raw_body: bytes, source: SourceSystem) -> Any:
    try:
        return json.loads(raw_body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        _log_webhook(source, "unknown", "invalid_json")
        raise MalformedPayload(
            "Invalid JSON payload",
            context=ErrorContext(source_system=source.value),
        )


def _validation_details(error: ValidationError) -> list[dict]:
    return [
        {
            "field": ".".join(str(loc) for loc in e["loc"]),
            "message": e["msg"],
            "type": e["type"],
        }
        for e in error.errors()
    ]


class WebhookRouter:
    """Authenticates, parses, classifies, and dispatches one inbound webhook."""

    def __init__(self, secrets: WebhookSecrets, orchestrator: SyncOrchestrator):
        self._secrets = secrets
        self._orchestrator = orchestrator

    async def handle(
        self, raw_body: bytes, headers: Mapping[str, str],
    ) -> RouterResult:
        """Shared endpoint: the signature header names the channel."""
        lowered = {k.lower(): v for k, v in headers.items()}
        if PAYMENT_SIGNATURE_HEADER in lowered:
            return await self.handle_payment(raw_body, lowered)
        return await self.handle_board(raw_body, lowered)

    async def handle_payment(
        self, raw_body: bytes, headers: Mapping[str, str],
    ) -> RouterResult:
        source = SourceSystem.PAYMENTS
        lowered = {k.lower(): v for k, v in headers.items()}
        signature = lowered.get(PAYMENT_SIGNATURE_HEADER)

        if not verify_payment_signature(
            raw_body, signature,
            self._secrets.payment_signing_secret,
            self._secrets.payment_tolerance_seconds,
        ):
            _log_webhook(source, "unknown", "signature_failed")
            raise AuthenticationFailure(
                "Payment webhook signature verification failed",
                context=ErrorContext(source_system=source.value),
            )

        data = _parse_json(raw_body, source)
        try:
            payload = PaymentEventPayload.model_validate(data)
        except ValidationError as e:
            _log_webhook(source, "unknown", "malformed")
            raise MalformedPayload(
                "Payment event does not match a known shape",
                context=ErrorContext(source_system=source.value),
                details=_validation_details(e),
            )

        event = classify_payment_event(payload, signature)
        if event is None:
            _log_webhook(source, payload.type, "ignored")
            return RouterResult(
                200,
                {"received": True, "message": f"Event {payload.type} ignored"},
            )

        _log_webhook(source, payload.type, "dispatched")
        outcome = await self._orchestrator.sync(event)
        return RouterResult(200, {"received": True, **outcome.to_response()})

    async def handle_board(
        self, raw_body: bytes, headers: Mapping[str, str],
    ) -> RouterResult:
        source = SourceSystem.PROJECT_BOARD
        lowered = {k.lower(): v for k, v in headers.items()}
        signature = lowered.get(BOARD_SIGNATURE_HEADER)

        if not verify_board_signature(
            raw_body, signature, self._secrets.board_signing_secret,
        ):
            challenge = self._handshake_challenge(raw_body)
            if challenge is not None:
                _log_webhook(source, "challenge", "echoed")
                return RouterResult(200, {"challenge": challenge})
            _log_webhook(source, "unknown", "signature_failed")
            raise AuthenticationFailure(
                "Board webhook signature verification failed",
                context=ErrorContext(source_system=source.value),
            )

        data = _parse_json(raw_body, source)
        try:
            payload = board_payload_adapter.validate_python(data)
        except ValidationError as e:
            _log_webhook(source, "unknown", "malformed")
            raise MalformedPayload(
                "Board event does not match a known shape",
                context=ErrorContext(source_system=source.value),
                details=_validation_details(e),
            )

        if isinstance(payload, ChallengePayload):
            _log_webhook(source, "challenge", "echoed")
            return RouterResult(200, {"challenge": payload.challenge})

        event = classify_board_event(payload.event, signature)
        if event is None:
            column = payload.event.column_id
            _log_webhook(source, column, "ignored")
            return RouterResult(
                200,
                {"message": f"Change to column {column} ignored"},
            )

        _log_webhook(source, event.event_type.value, "dispatched")
        outcome = await self._orchestrator.sync(event)
        return RouterResult(200, outcome.to_response())

    async def handle_ledger(self, raw_body: bytes) -> RouterResult:
        source = SourceSystem.JOB_LEDGER
        data = _parse_json(raw_body, source)
        try:
            payload = LedgerWebhookPayload.model_validate(data)
        except ValidationError as e:
            _log_webhook(source, "unknown", "malformed")
            raise MalformedPayload(
                "Ledger event does not match a known shape",
                context=ErrorContext(source_system=source.value),
                details=_validation_details(e),
            )

        event_type = payload.event or "unknown"
        if not verify_export_key(
            payload.export_key, self._secrets.ledger_export_key,
        ):
            _log_webhook(source, event_type, "export_key_failed")
            raise AuthenticationFailure(
                "Ledger webhook export key mismatch",
                context=ErrorContext(source_system=source.value),
            )

        event = classify_ledger_event(payload)
        if event is None:
            _log_webhook(source, event_type, "ignored")
            return RouterResult(200, {"message": f"Event {event_type} ignored"})

        _log_webhook(source, event.event_type.value, "dispatched")
        outcome = await self._orchestrator.sync(event)
        return RouterResult(200, outcome.to_response())

    @staticmethod
    def _handshake_challenge(raw_body: bytes) -> str | None:
        """The challenge value if the unsigned body is a bare handshake, else None.

        Only a body with nothing but a challenge string qualifies; its content is
        echoed and never reaches classification.
        """
        try:
            data = json.loads(raw_body)
        except (json.JSONDecodeError, UnicodeDecodeError):
            return None
        if not isinstance(data, dict) or set(data) != {"challenge"}:
            return None
        try:
            return ChallengePayload.model_validate(data).challenge
        except ValidationError:
            return None
