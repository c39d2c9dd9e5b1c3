"""Payments Client — Stripe checkout sessions and payment intents via StripeClient.

Invariants:
    - Object kind is decided by id prefix: cs_ → checkout session, pi_ → payment intent
    - Missing object (404) → NotFound (None / LockState.NOT_FOUND), never an error
    - Session `expired` or intent `canceled` → LockState.LOCKED
    - Connection failures → TRANSPORT; every other Stripe error → APPLICATION with
      the redacted error body attached
    - No SDK-level retries: redelivery by the webhook sender is the retry policy

Design Decisions:
    - One StripeClient per (key, timeout) for the process, built on first use so a
      missing key only fails payment calls
    - Fresh fetch per call (no caching): metadata may have been edited since the event
    - Notes stored in metadata[sync_note]: sessions have no free-text field that is
      writable after creation
"""

import logging
from functools import lru_cache
from typing import Any

import stripe

from app.core.domain_types import JobId, LockState, SourceSystem
from app.core.errors import ConfigurationError, ExternalApiError, FailureKind
from app.infrastructure.external_http import redact

logger = logging.getLogger(__name__)

NOTE_METADATA_KEY = "sync_note"
DEFAULT_TIMEOUT_SECONDS = 15.0

_LOCKED_STATUSES = frozenset({"expired", "canceled"})


@lru_cache
def build_stripe_client(
    api_key: str, timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
) -> stripe.StripeClient:
    return stripe.StripeClient(
        api_key,
        http_client=stripe.HTTPXClient(timeout=timeout_seconds),
        max_network_retries=0,
    )


class PaymentsClient:
    """Adapter for the payment processor, over the official SDK's async methods."""

    system = SourceSystem.PAYMENTS.value

    def __init__(
        self,
        api_key: str,
        client: Any = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        self._api_key = api_key
        self._client = client
        self._timeout_seconds = timeout_seconds

    def _stripe(self) -> Any:
        if self._client is None:
            if not self._api_key:
                raise ConfigurationError("Stripe API key")
            self._client = build_stripe_client(self._api_key, self._timeout_seconds)
        return self._client

    def _service(self, object_id: str, operation: str) -> Any:
        if object_id.startswith("cs_"):
            return self._stripe().checkout.sessions
        if object_id.startswith("pi_"):
            return self._stripe().payment_intents
        raise ExternalApiError(
            self.system, operation,
            f"unsupported payment object id {object_id!r}",
            FailureKind.APPLICATION,
        )

    def _redact(self, text: str) -> str:
        return redact(text, (self._api_key,))

    def _error(self, operation: str, error: stripe.StripeError) -> ExternalApiError:
        message = self._redact(str(error))
        if isinstance(error, stripe.APIConnectionError):
            return ExternalApiError(
                self.system, operation, message, FailureKind.TRANSPORT,
            )
        raw = error.json_body
        if raw is not None:
            raw = self._redact_raw(raw)
        return ExternalApiError(
            self.system, operation, message, FailureKind.APPLICATION,
            raw=raw, status_code=error.http_status,
        )

    def _redact_raw(self, raw: Any) -> Any:
        if isinstance(raw, dict):
            return {k: self._redact_raw(v) for k, v in raw.items()}
        if isinstance(raw, list):
            return [self._redact_raw(v) for v in raw]
        if isinstance(raw, str):
            return self._redact(raw)
        return raw

    async def _fetch(self, object_id: str, operation: str) -> Any | None:
        service = self._service(object_id, operation)
        try:
            return await service.retrieve_async(object_id)
        except stripe.InvalidRequestError as e:
            if e.http_status == 404:
                return None
            raise self._error(operation, e)
        except stripe.StripeError as e:
            raise self._error(operation, e)

    async def resolve_reference(self, own_id: str) -> JobId | None:
        """Payment object id → job id from its metadata."""
        obj = await self._fetch(own_id, "resolve_reference")
        if obj is None:
            return None
        job_id = (obj.get("metadata") or {}).get("jobId")
        return JobId(str(job_id)) if job_id else None

    async def read_lock_state(self, foreign_id: str) -> LockState:
        obj = await self._fetch(foreign_id, "read_lock_state")
        if obj is None:
            return LockState.NOT_FOUND
        if obj.get("status") in _LOCKED_STATUSES:
            return LockState.LOCKED
        return LockState.UNLOCKED

    async def write_field(
        self, foreign_id: str, field: str, value: str | int,
    ) -> None:
        """Set one metadata key on the payment object."""
        service = self._service(foreign_id, "write_field")
        try:
            await service.update_async(
                foreign_id, params={"metadata": {field: str(value)}},
            )
        except stripe.StripeError as e:
            raise self._error("write_field", e)
        logger.info(f"Payment {foreign_id} metadata {field} updated")

    async def write_note(self, foreign_id: str, text: str) -> None:
        await self.write_field(foreign_id, NOTE_METADATA_KEY, text)
