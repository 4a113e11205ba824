from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence

import httpx
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
class StoreError(BaseModel):
    """Error reported by the remote table store."""
    message: str = Field(default="", description="Backend error message, as returned.")
    code: Optional[str] = Field(default=None, description="Backend error code, when present.")


# PUBLIC_INTERFACE
class StoreResponse(BaseModel):
    """Result of a single store call: rows on success, an error otherwise."""
    data: List[Dict[str, Any]] = Field(default_factory=list)
    error: Optional[StoreError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


# PUBLIC_INTERFACE
class TableClient(Protocol):
    """Minimal query capability the score store depends on."""

    async def insert(self, table: str, row: Mapping[str, Any]) -> StoreResponse:
        ...

    async def select(
        self,
        table: str,
        columns: Sequence[str],
        *,
        order: Optional[str] = None,
        descending: bool = True,
        limit: Optional[int] = None,
        filters: Optional[Mapping[str, Any]] = None,
    ) -> StoreResponse:
        ...


class PostgrestClient:
    """TableClient over a Supabase / PostgREST REST endpoint.

    Every call returns a StoreResponse; HTTP and transport failures are folded
    into ``StoreResponse.error`` instead of being raised.
    """

    def __init__(
        self,
        url: str,
        key: str,
        schema: str = "public",
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.url = url.strip().rstrip("/")
        self.key = key.strip()
        self.schema = schema
        self._client = client or httpx.AsyncClient()
        self._owns_client = client is None

    def _endpoint(self, table: str) -> str:
        return f"{self.url}/rest/v1/{table}"

    def _headers(self, prefer: Optional[str] = None, write: bool = False) -> Dict[str, str]:
        headers = {
            "apikey": self.key,
            "Authorization": f"Bearer {self.key}",
            "Accept": "application/json",
        }
        if self.schema and self.schema != "public":
            headers["Accept-Profile"] = self.schema
            if write:
                headers["Content-Profile"] = self.schema
        if prefer:
            headers["Prefer"] = prefer
        return headers

    # PUBLIC_INTERFACE
    async def insert(self, table: str, row: Mapping[str, Any]) -> StoreResponse:
        """Insert a single row. The store assigns id and created_at."""
        headers = self._headers("return=minimal", write=True)
        headers["Content-Type"] = "application/json"
        try:
            response = await self._client.post(self._endpoint(table), json=dict(row), headers=headers)
        except httpx.HTTPError as exc:
            logger.warning("Store insert into %s failed (%s)", table, exc)
            return StoreResponse(error=StoreError(message=str(exc) or type(exc).__name__))
        if response.is_success:
            return StoreResponse()
        return StoreResponse(error=self._error_from_response(response))

    # PUBLIC_INTERFACE
    async def select(
        self,
        table: str,
        columns: Sequence[str],
        *,
        order: Optional[str] = None,
        descending: bool = True,
        limit: Optional[int] = None,
        filters: Optional[Mapping[str, Any]] = None,
    ) -> StoreResponse:
        """Select columns, optionally filtered by equality, ordered and limited."""
        params: Dict[str, Any] = {"select": ",".join(columns)}
        for column, value in (filters or {}).items():
            params[column] = f"eq.{value}"
        if order:
            params["order"] = f"{order}.{'desc' if descending else 'asc'}"
        if limit is not None:
            params["limit"] = limit
        try:
            response = await self._client.get(self._endpoint(table), params=params, headers=self._headers())
        except httpx.HTTPError as exc:
            logger.warning("Store select from %s failed (%s)", table, exc)
            return StoreResponse(error=StoreError(message=str(exc) or type(exc).__name__))
        if not response.is_success:
            return StoreResponse(error=self._error_from_response(response))
        try:
            rows = response.json()
        except ValueError:
            return StoreResponse(error=StoreError(message="Store returned a non-JSON response"))
        if not isinstance(rows, list):
            return StoreResponse(error=StoreError(message=f"Unexpected payload from store: {type(rows).__name__}"))
        return StoreResponse(data=[row for row in rows if isinstance(row, dict)])

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    @staticmethod
    def _error_from_response(response: httpx.Response) -> StoreError:
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            message = body.get("message") or body.get("error") or body.get("hint")
            code = body.get("code")
            if message:
                return StoreError(message=str(message), code=str(code) if code is not None else None)
        text = response.text.strip()
        return StoreError(
            message=text or f"{response.status_code} {response.reason_phrase}".strip(),
            code=str(response.status_code),
        )
