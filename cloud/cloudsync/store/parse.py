"""
REST schema store for Parse-compatible servers.

Talks to the server's schema endpoints with the master key:
- GET    /schemas              list every class
- POST   /schemas/{className}  create a class
- PUT    /schemas/{className}  add/delete fields and indexes
- DELETE /schemas/{className}  drop an empty class
- DELETE /purge/{className}    delete all records of a class

Invariants:
    - Every call is a single HTTP request; nothing is cached or retried
    - Non-2xx responses raise StoreError with the server's code and message
    - Transport failures raise StoreConnectionError

How to change safely:
    - Keep request bodies in the server's JSON shape (see SchemaDefinition.to_dict)
    - Test against httpx.MockTransport before a real server
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from ..config import StoreConfig
from ..errors import ErrorCode, StoreConnectionError, StoreError
from ..schema.types import SchemaDefinition
from .base import RemoteSchema, SchemaChangeSet

logger = logging.getLogger(__name__)


class ParseSchemaStore:
    """SchemaStore backed by a Parse-compatible REST API.

    Attributes:
        config: Store configuration

    Example:
        >>> store = ParseSchemaStore(StoreConfig(app_id="app", master_key="secret"))
        >>> await store.connect()
        >>> schemas = await store.list_all()
        >>> await store.close()
    """

    def __init__(
        self,
        config: StoreConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """Initialize the store.

        Args:
            config: Store configuration
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.config = config
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    async def connect(self) -> None:
        """Open the HTTP client."""
        if self._client is not None:
            return

        headers = {
            "X-Parse-Application-Id": self.config.app_id,
            "Content-Type": "application/json",
        }
        if self.config.master_key:
            headers["X-Parse-Master-Key"] = self.config.master_key

        self._client = httpx.AsyncClient(
            base_url=self.config.server_url.rstrip("/"),
            headers=headers,
            timeout=self.config.timeout_seconds,
            transport=self._transport,
        )
        logger.info(f"Schema store client ready for {self.config.server_url}")

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> ParseSchemaStore:
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def list_all(self) -> List[RemoteSchema]:
        data = await self._request("GET", "/schemas")
        return [RemoteSchema.from_dict(item) for item in data.get("results", [])]

    async def save(self, definition: SchemaDefinition) -> None:
        await self._request(
            "POST",
            f"/schemas/{definition.class_name}",
            json=definition.to_dict(),
            class_name=definition.class_name,
        )

    async def commit(self, changes: SchemaChangeSet) -> None:
        await self._request(
            "PUT",
            f"/schemas/{changes.class_name}",
            json=changes.to_update_payload(),
            class_name=changes.class_name,
        )

    async def purge(self, class_name: str) -> None:
        await self._request("DELETE", f"/purge/{class_name}", class_name=class_name)

    async def delete_class(self, class_name: str) -> None:
        await self._request("DELETE", f"/schemas/{class_name}", class_name=class_name)

    async def _request(
        self,
        method: str,
        path: str,
        json: Optional[Dict[str, Any]] = None,
        class_name: Optional[str] = None,
    ) -> Dict[str, Any]:
        if self._client is None:
            raise StoreConnectionError("Not connected", address=self.config.server_url)

        try:
            response = await self._client.request(method, path, json=json)
        except httpx.TransportError as e:
            raise StoreConnectionError(
                f"{method} {path} failed: {e}", address=self.config.server_url
            ) from e

        body = _json_body(response)
        if response.is_success:
            logger.debug(f"{method} {path} -> {response.status_code}")
            return body

        message = body.get("error") or response.reason_phrase or "Unknown error"
        raise StoreError(
            f"{method} {path} failed: {message}",
            code=body.get("code", ErrorCode.INTERNAL_SERVER_ERROR),
            class_name=class_name,
            status_code=response.status_code,
        )


def _json_body(response: httpx.Response) -> Dict[str, Any]:
    if not response.content:
        return {}
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}
