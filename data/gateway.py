"""
Remote Data Gateway

This module talks to the hosted backend: PostgREST table operations and
remote procedure calls under ``/rest/v1`` and object storage under
``/storage/v1``. It maps transport and HTTP failures onto the gateway
error taxonomy and never retries; retry policy belongs to the caller.
"""

import json
from typing import Any, Dict, List, Optional, Sequence
from urllib.parse import quote

import httpx

from config import settings
from data.protocols import Payload
from data.requests import Filter, TableQuery, filter_params
from utils.exceptions import (
    AuthExpiredError, ConflictError, ServerError, TransientNetworkError
)
from utils.logger import get_logger

logger = get_logger(__name__)

UNIQUE_VIOLATION = "23505"


class SupabaseGateway:
    """Gateway to the hosted backend over ``httpx.AsyncClient``."""

    def __init__(self, base_url: str, api_key: str, access_token: Optional[str] = None,
                 client: Optional[httpx.AsyncClient] = None):
        """
        Initialize the gateway.

        Args:
            base_url: Project URL, e.g. ``https://xyz.supabase.co``.
            api_key: The project's public (anon) key.
            access_token: The signed-in user's JWT; the anon key is used when absent.
            client: An existing AsyncClient (tests pass one with a mock transport).
        """
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.access_token = access_token
        self._client = client or httpx.AsyncClient()
        self._owns_client = client is None

    @classmethod
    def from_settings(cls, access_token: Optional[str] = None) -> "SupabaseGateway":
        return cls(settings.SUPABASE_URL, settings.SUPABASE_ANON_KEY,
                   access_token=access_token or settings.CHIRP_ACCESS_TOKEN)

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "SupabaseGateway":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    # -------------------------------------------------------------------------
    # Table operations
    # -------------------------------------------------------------------------

    async def query(self, request: TableQuery) -> List[Dict[str, Any]]:
        params = request.to_params()
        response = await self._send("GET", self._rest_url(request.table), params=params)
        rows = self._decode(response) or []
        logger.debug(f"query {request.table}: {len(rows)} rows")
        return rows

    async def insert(self, table: str, payload: Payload, returning: bool = False,
                     select: str = "*") -> List[Dict[str, Any]]:
        params = [("select", select)] if returning else None
        response = await self._send(
            "POST", self._rest_url(table), params=params, json_body=payload,
            prefer="return=representation" if returning else "return=minimal",
        )
        if not returning:
            return []
        return self._decode(response) or []

    async def upsert(self, table: str, payload: Payload, on_conflict: str) -> List[Dict[str, Any]]:
        response = await self._send(
            "POST", self._rest_url(table), params=[("on_conflict", on_conflict)], json_body=payload,
            prefer="resolution=merge-duplicates,return=representation",
        )
        return self._decode(response) or []

    async def update(self, table: str, values: Dict[str, Any], filters: Sequence[Filter],
                     returning: bool = False) -> List[Dict[str, Any]]:
        response = await self._send(
            "PATCH", self._rest_url(table), params=filter_params(filters), json_body=values,
            prefer="return=representation" if returning else "return=minimal",
        )
        if not returning:
            return []
        return self._decode(response) or []

    async def delete(self, table: str, filters: Sequence[Filter]) -> None:
        await self._send("DELETE", self._rest_url(table), params=filter_params(filters))

    # -------------------------------------------------------------------------
    # Remote procedure calls
    # -------------------------------------------------------------------------

    async def call(self, procedure: str, params: Optional[Dict[str, Any]] = None) -> Any:
        response = await self._send("POST", f"{self.base_url}/rest/v1/rpc/{procedure}",
                                    json_body=params or {})
        return self._decode(response)

    # -------------------------------------------------------------------------
    # Object storage
    # -------------------------------------------------------------------------

    async def upload_object(self, bucket: str, path: str, data: bytes,
                            content_type: str, upsert: bool = False) -> str:
        url = f"{self.base_url}/storage/v1/object/{bucket}/{quote(path)}"
        headers = {"Content-Type": content_type, "x-upsert": "true" if upsert else "false"}
        await self._send("POST", url, content=data, extra_headers=headers)
        logger.info(f"Uploaded {len(data)} bytes to {bucket}/{path}")
        return self.public_url(bucket, path)

    def public_url(self, bucket: str, path: str) -> str:
        return f"{self.base_url}/storage/v1/object/public/{bucket}/{quote(path)}"

    # -------------------------------------------------------------------------
    # Transport
    # -------------------------------------------------------------------------

    def _rest_url(self, table: str) -> str:
        return f"{self.base_url}/rest/v1/{table}"

    def _headers(self, prefer: Optional[str] = None) -> Dict[str, str]:
        headers = {
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.access_token or self.api_key}",
            "Accept": "application/json",
        }
        if prefer:
            headers["Prefer"] = prefer
        return headers

    async def _send(self, method: str, url: str, params=None, json_body: Any = None,
                    content: Optional[bytes] = None, prefer: Optional[str] = None,
                    extra_headers: Optional[Dict[str, str]] = None) -> httpx.Response:
        headers = self._headers(prefer)
        if extra_headers:
            headers.update(extra_headers)
        try:
            response = await self._client.request(
                method, url, params=params, json=json_body, content=content, headers=headers
            )
        except httpx.TimeoutException as e:
            raise TransientNetworkError(f"Request to {url} timed out: {e}") from e
        except httpx.TransportError as e:
            raise TransientNetworkError(f"Network error calling {url}: {e}") from e

        if response.status_code >= 400:
            self._raise_for_status(response)
        return response

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        status = response.status_code
        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}
        message = body.get("message") or body.get("error") or response.text or f"HTTP {status}"
        code = str(body.get("code") or "")

        if status == 401:
            raise AuthExpiredError(f"Session rejected by backend: {message}")
        if status == 409 or code == UNIQUE_VIOLATION:
            raise ConflictError(f"Conflicting write: {message}")
        raise ServerError(f"Backend error {status}: {message}", status_code=status)

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except json.JSONDecodeError as e:
            raise ServerError(f"Malformed response body: {e}", status_code=response.status_code) from e
