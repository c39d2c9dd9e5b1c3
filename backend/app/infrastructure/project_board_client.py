"""Project Board Client — monday.com GraphQL: items, job-id column, status columns, updates.

Invariants:
    - All values travel as GraphQL variables (never interpolated into the query text)
    - GraphQL `errors` / `error_message` in a 200 body → application ExternalApiError
    - Item state active → UNLOCKED; archived or deleted → LOCKED; absent → NOT_FOUND
    - Writes touch exactly one column per call

Design Decisions:
    - items_page_by_column_values for job → item lookup (server-side filter, no paging scan)
    - change_simple_column_value: status columns accept the label text directly
"""

import logging
from typing import Any

import httpx

from app.core.domain_types import BoardItemId, JobId, LockState, SourceSystem
from app.core.field_mappings import JOB_ID_COLUMN
from app.infrastructure.external_http import ExternalHttp, decode_body

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.monday.com/v2"
DEFAULT_API_VERSION = "2023-10"

_JOB_ID_QUERY = """
query ($ids: [ID!]) {
  items(ids: $ids) {
    column_values(ids: ["%s"]) { id text value }
  }
}
""" % JOB_ID_COLUMN

_FIND_ITEM_QUERY = """
query ($board: ID!, $value: String!) {
  items_page_by_column_values(
    board_id: $board, limit: 1,
    columns: [{column_id: "%s", column_values: [$value]}]
  ) { items { id } }
}
""" % JOB_ID_COLUMN

_ITEM_STATE_QUERY = """
query ($ids: [ID!]) {
  items(ids: $ids) { id state }
}
"""

_CHANGE_COLUMN_MUTATION = """
mutation ($board: ID!, $item: ID!, $column: String!, $value: String) {
  change_simple_column_value(
    board_id: $board, item_id: $item, column_id: $column, value: $value
  ) { id }
}
"""

_CREATE_UPDATE_MUTATION = """
mutation ($item: ID!, $body: String!) {
  create_update(item_id: $item, body: $body) { id }
}
"""

_LOCKED_STATES = frozenset({"archived", "deleted"})


class ProjectBoardClient:
    """Adapter for the board's GraphQL API."""

    system = SourceSystem.PROJECT_BOARD.value

    def __init__(
        self,
        http: httpx.AsyncClient,
        api_key: str,
        board_id: str,
        api_url: str = DEFAULT_API_URL,
        api_version: str = DEFAULT_API_VERSION,
    ):
        self._board_id = board_id
        self._api_url = api_url
        self._headers = {
            "Authorization": api_key,
            "API-Version": api_version,
            "Content-Type": "application/json",
        }
        self._http = ExternalHttp(http, self.system, secrets=(api_key,))

    async def _graphql(
        self, operation: str, query: str, variables: dict[str, Any],
    ) -> dict:
        response = await self._http.request(
            operation, "POST", self._api_url,
            headers=self._headers,
            json={"query": query, "variables": variables},
        )
        body = decode_body(response)
        if not isinstance(body, dict):
            raise self._http.application_error(
                operation, "response was not JSON", body,
            )
        if body.get("errors") or body.get("error_message"):
            raise self._http.application_error(
                operation, "GraphQL error",
                body.get("errors") or body.get("error_message"),
            )
        return body.get("data") or {}

    async def resolve_reference(self, own_id: str) -> JobId | None:
        """Board item id → job id stored in the job-id column."""
        data = await self._graphql(
            "resolve_reference", _JOB_ID_QUERY, {"ids": [own_id]},
        )
        items = data.get("items") or []
        if not items:
            return None
        columns = items[0].get("column_values") or []
        if not columns:
            return None
        job_id = (columns[0].get("text") or "").strip()
        return JobId(job_id) if job_id else None

    async def find_item(self, job_id: JobId) -> BoardItemId | None:
        """Job id → the board item that tracks it."""
        data = await self._graphql(
            "find_item", _FIND_ITEM_QUERY,
            {"board": self._board_id, "value": str(job_id)},
        )
        page = data.get("items_page_by_column_values") or {}
        items = page.get("items") or []
        if not items:
            logger.info(f"No board item tracks job {job_id}")
            return None
        return BoardItemId(str(items[0]["id"]))

    async def read_lock_state(self, foreign_id: str) -> LockState:
        data = await self._graphql(
            "read_lock_state", _ITEM_STATE_QUERY, {"ids": [foreign_id]},
        )
        items = data.get("items") or []
        if not items:
            return LockState.NOT_FOUND
        if items[0].get("state") in _LOCKED_STATES:
            return LockState.LOCKED
        return LockState.UNLOCKED

    async def write_field(
        self, foreign_id: str, field: str, value: str | int,
    ) -> None:
        await self._graphql(
            "write_field", _CHANGE_COLUMN_MUTATION,
            {
                "board": self._board_id,
                "item": foreign_id,
                "column": field,
                "value": str(value),
            },
        )
        logger.info(f"Board item {foreign_id} column {field} set to {value!r}")

    async def write_note(self, foreign_id: str, text: str) -> None:
        await self._graphql(
            "write_note", _CREATE_UPDATE_MUTATION,
            {"item": foreign_id, "body": text},
        )
