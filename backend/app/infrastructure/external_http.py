"""External HTTP — one bounded request helper shared by every adapter.

Invariants:
    - Every call is bounded by the client's timeout (no hung invocation)
    - Transport failures (timeout, connect, protocol) → ExternalApiError(kind=TRANSPORT)
    - The remote answering with an error status → ExternalApiError(kind=APPLICATION)
    - Secrets are redacted from every message and raw payload we keep
    - No retries here: redelivery by the webhook sender is the retry policy

Design Decisions:
    - Shared httpx.AsyncClient injected per invocation: tests swap in MockTransport
    - Error mapping centralized: adapters only interpret successful bodies
"""

import json
import logging
from typing import Any

import httpx

from app.core.errors import ExternalApiError, FailureKind, RecordLockedError

logger = logging.getLogger(__name__)

_REDACTED = "***"
_MAX_RAW_CHARS = 2000


def redact(text: str, secrets: tuple[str, ...]) -> str:
    """Strip secrets from text before it is logged or returned."""
    for secret in secrets:
        if secret:
            text = text.replace(secret, _REDACTED)
    return text


def decode_body(response: httpx.Response) -> Any:
    """JSON body if it parses, else the raw text."""
    try:
        return response.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return response.text


class ExternalHttp:
    """Bounded, classified HTTP calls against one external system."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        system: str,
        secrets: tuple[str, ...] = (),
    ):
        self._http = http
        self.system = system
        self._secrets = secrets

    def redact(self, value: Any) -> Any:
        """Redact secrets from a raw payload (str or JSON-able structure)."""
        if isinstance(value, str):
            return redact(value, self._secrets)[:_MAX_RAW_CHARS]
        try:
            text = json.dumps(value, ensure_ascii=False)
        except (TypeError, ValueError):
            text = str(value)
        redacted = redact(text, self._secrets)
        if redacted == text:
            return value
        return json.loads(redacted)

    def application_error(
        self,
        operation: str,
        message: str,
        raw: Any = None,
        status_code: int | None = None,
    ) -> ExternalApiError:
        return ExternalApiError(
            self.system, operation, message, FailureKind.APPLICATION,
            raw=self.redact(raw) if raw is not None else None,
            status_code=status_code,
        )

    def locked_error(self, operation: str, raw: Any = None) -> RecordLockedError:
        return RecordLockedError(
            self.system, operation,
            raw=self.redact(raw) if raw is not None else None,
        )

    async def request(
        self,
        operation: str,
        method: str,
        url: str,
        *,
        allow_status: tuple[int, ...] = (),
        **kwargs: Any,
    ) -> httpx.Response:
        """Send one request; raise ExternalApiError on any failure.

        Statuses listed in allow_status (e.g. 404) are returned to the caller
        so it can map them to NotFound.
        """
        try:
            response = await self._http.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            logger.warning(
                f"{self.system} {operation} timed out",
                extra={"failure_kind": FailureKind.TRANSPORT.value},
            )
            raise ExternalApiError(
                self.system, operation, f"timeout ({type(e).__name__})",
                FailureKind.TRANSPORT,
            )
        except httpx.TransportError as e:
            logger.warning(
                f"{self.system} {operation} transport error: {type(e).__name__}",
                extra={"failure_kind": FailureKind.TRANSPORT.value},
            )
            raise ExternalApiError(
                self.system, operation,
                redact(f"{type(e).__name__}: {e}", self._secrets),
                FailureKind.TRANSPORT,
            )

        if response.status_code in allow_status or response.is_success:
            return response

        raw = decode_body(response)
        logger.warning(
            f"{self.system} {operation} returned HTTP {response.status_code}",
            extra={"failure_kind": FailureKind.APPLICATION.value},
        )
        raise self.application_error(
            operation, f"HTTP {response.status_code}", raw,
            status_code=response.status_code,
        )
