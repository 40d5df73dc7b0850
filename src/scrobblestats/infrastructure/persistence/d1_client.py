"""Cloudflare D1 query client.

Hey future me - D1 is reached over the Cloudflare REST API: one POST per
statement, body {"sql": ..., "params": [...]}, answer wrapped like

    {"success": true, "errors": [],
     "result": [{"success": true, "results": [{...row...}], "meta": {...}}]}

No connection state, no transactions across calls - which is exactly why every
write in this project is an idempotent "insert if absent".
"""

import logging
from collections.abc import Sequence
from typing import Any

import httpx

from scrobblestats.config import StoreSettings
from scrobblestats.domain.exceptions import StoreQueryError
from scrobblestats.domain.ports import IQueryExecutor, Row

logger = logging.getLogger(__name__)


class D1QueryExecutor(IQueryExecutor):
    """IQueryExecutor over the Cloudflare D1 HTTP query endpoint."""

    def __init__(self, settings: StoreSettings) -> None:
        """
        Initialize D1 client.

        Args:
            settings: Store settings with account id, database id and API token
        """
        self.settings = settings
        self._client: httpx.AsyncClient | None = None

    @property
    def query_url(self) -> str:
        """Full URL of the database's /query endpoint."""
        base = self.settings.api_base_url.rstrip("/")
        return (
            f"{base}/accounts/{self.settings.account_id}"
            f"/d1/database/{self.settings.database_id}/query"
        )

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.settings.timeout_seconds,
                headers={
                    "Authorization": f"Bearer {self.settings.api_token}",
                    "Content-Type": "application/json",
                },
            )
        return self._client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def execute(self, sql: str, params: Sequence[Any] = ()) -> list[Row]:
        """
        POST one statement to D1.

        Args:
            sql: SQL with `?` placeholders
            params: Positional parameters (bools are sent as 0/1)

        Returns:
            Rows of the first (only) statement result

        Raises:
            StoreQueryError: On transport errors, non-2xx answers or success=false
        """
        client = await self._get_client()
        payload = {
            "sql": sql,
            "params": [int(p) if isinstance(p, bool) else p for p in params],
        }

        try:
            response = await client.post(self.query_url, json=payload)
        except httpx.HTTPError as e:
            raise StoreQueryError(f"D1 query failed: {e}", sql=sql) from e

        if response.is_error:
            raise StoreQueryError(
                f"D1 query failed: {response.status_code} {response.reason_phrase} - "
                f"{response.text}",
                sql=sql,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise StoreQueryError(f"D1 query failed: response is not JSON ({e})", sql=sql) from e
        if not isinstance(data, dict):
            raise StoreQueryError("D1 query failed: response is not a JSON object", sql=sql)

        if not data.get("success", False):
            messages = "; ".join(
                str(err.get("message", err)) for err in data.get("errors") or []
            )
            raise StoreQueryError(f"D1 query failed: {messages or 'unknown error'}", sql=sql)

        results = data.get("result") or []
        if not results:
            return []
        return list(results[0].get("results") or [])

    async def __aenter__(self) -> "D1QueryExecutor":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.close()
