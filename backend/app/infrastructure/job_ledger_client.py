"""Job Ledger Client — HireHop job records: lock flag, dates, status, notes.

Invariants:
    - Token travels as a query-string parameter (the ledger's auth scheme) and is
      redacted from every error and log line
    - LOCKED == 1 on the job refresh payload → LockState.LOCKED
    - A write answered with error code 320 → RecordLockedError (locked between check and write)
    - Only error code 2 (no such job) means NOT_FOUND; any other error body is an
      application failure, never a missing record
    - Date fields are written through job_save; status through job_status — one field per call

Design Decisions:
    - Ledger replies 200 with {"error": ...} bodies: application errors detected
      from the body, not the status code
"""

import logging
from typing import Any

import httpx

from app.core.domain_types import LockState, SourceSystem
from app.core.field_mappings import LEDGER_STATUS_FIELD
from app.infrastructure.external_http import ExternalHttp, decode_body

logger = logging.getLogger(__name__)

LOCKED_ERROR_CODE = 320
JOB_NOT_FOUND_ERROR_CODE = 2


def _error_code(body: Any) -> Any:
    if isinstance(body, dict):
        return body.get("error")
    if isinstance(body, str) and "error" in body.lower():
        return "unknown"
    return None


def _is_code(code: Any, expected: int) -> bool:
    return code is not None and str(code) == str(expected)


class JobLedgerClient:
    """Adapter for the job ledger's PHP endpoints."""

    system = SourceSystem.JOB_LEDGER.value

    def __init__(self, http: httpx.AsyncClient, token: str, domain: str):
        self._token = token
        self._base_url = f"https://{domain}"
        self._http = ExternalHttp(http, self.system, secrets=(token,))

    def _params(self, **params: Any) -> dict[str, Any]:
        return {**params, "token": self._token}

    async def resolve_reference(self, own_id: str) -> str | None:
        """Job id → the accounting client id the job is billed to."""
        response = await self._http.request(
            "resolve_reference", "GET", f"{self._base_url}/api/job_data.php",
            params=self._params(job=own_id),
        )
        body = decode_body(response)
        if not isinstance(body, dict):
            raise self._http.application_error(
                "resolve_reference", "job data was not JSON", body,
            )
        code = _error_code(body)
        if _is_code(code, JOB_NOT_FOUND_ERROR_CODE):
            return None
        if code is not None:
            raise self._http.application_error(
                "resolve_reference", f"ledger error code {code}", body,
            )
        client_id = body.get("CLIENT_ID")
        return str(client_id) if client_id else None

    async def read_lock_state(self, foreign_id: str) -> LockState:
        response = await self._http.request(
            "read_lock_state", "GET",
            f"{self._base_url}/php_functions/job_refresh.php",
            params=self._params(job=foreign_id),
        )
        body = decode_body(response)
        if not isinstance(body, dict):
            raise self._http.application_error(
                "read_lock_state", "job details were not JSON", body,
            )
        code = _error_code(body)
        if _is_code(code, JOB_NOT_FOUND_ERROR_CODE):
            return LockState.NOT_FOUND
        if code is not None:
            raise self._http.application_error(
                "read_lock_state", f"ledger error code {code}", body,
            )
        if str(body.get("LOCKED", 0)) == "1":
            return LockState.LOCKED
        return LockState.UNLOCKED

    async def write_field(
        self, foreign_id: str, field: str, value: str | int,
    ) -> None:
        if field == LEDGER_STATUS_FIELD:
            response = await self._http.request(
                "write_field", "POST", f"{self._base_url}/api/job_status.php",
                params=self._params(job=foreign_id, status=value),
            )
        else:
            response = await self._http.request(
                "write_field", "POST",
                f"{self._base_url}/php_functions/job_save.php",
                params=self._params(),
                data={"job": foreign_id, field: str(value)},
            )
        self._raise_for_body_error("write_field", response)
        logger.info(
            f"Ledger job {foreign_id} field {field} updated",
            extra={"job_id": foreign_id},
        )

    async def write_note(self, foreign_id: str, text: str) -> None:
        response = await self._http.request(
            "write_note", "GET", f"{self._base_url}/api/job_note.php",
            params=self._params(job=foreign_id, note=text),
        )
        self._raise_for_body_error("write_note", response)

    def _raise_for_body_error(self, operation: str, response: httpx.Response) -> None:
        body = decode_body(response)
        code = _error_code(body)
        if code is None:
            return
        if _is_code(code, LOCKED_ERROR_CODE):
            raise self._http.locked_error(operation, body)
        raise self._http.application_error(
            operation, f"ledger error code {code}", body,
        )
