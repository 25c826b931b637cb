"""Remote store access: the protocol the engine consumes and an httpx implementation."""
import logging
from collections.abc import Callable, Mapping
from typing import Any, Protocol

import httpx

from services.exceptions import NetworkError, NotFoundError
from shared.api_errors import to_sync_error

logger = logging.getLogger(__name__)

TokenProvider = Callable[[], str | None]


class RemoteStore(Protocol):
    """Query/insert/delete contract of the remote store."""

    async def query(
        self,
        collection: str,
        filters: Mapping[str, Any],
        order_by: str | None = None,
    ) -> list[dict[str, Any]]:
        """Return all rows of `collection` matching every equality filter."""
        ...

    async def insert(self, collection: str, record: Mapping[str, Any]) -> dict[str, Any]:
        """Insert `record` and return the created row."""
        ...

    async def delete(self, collection: str, record_id: str) -> None:
        """Delete the row with `record_id`; raises NotFoundError if it doesn't exist."""
        ...


def _get_headers(api_key: str, token: str | None) -> dict[str, str]:
    """Get common headers for remote store requests."""
    headers = {
        "apikey": api_key,
        "Prefer": "return=representation",
        "X-Client-Info": "bookmark-sync",
    }
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


def _order_param(order_by: str) -> str:
    """
    Translate "created_at desc" / "-created_at" / "created_at.desc" to PostgREST form.
    """
    order_by = order_by.strip()
    if order_by.startswith("-"):
        return f"{order_by[1:]}.desc"
    if "." in order_by:
        return order_by
    parts = order_by.split()
    if len(parts) == 2:  # noqa: PLR2004
        return f"{parts[0]}.{parts[1].lower()}"
    return f"{order_by}.asc"


class RestRemoteStore:
    """
    Remote store backed by a PostgREST-style HTTP endpoint.

    The client is injected so the caller owns its lifecycle (base_url, timeout,
    transport). Every httpx failure is converted to the engine's exception taxonomy
    at this seam; nothing above it sees httpx exceptions.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        api_key: str = "",
        token_provider: TokenProvider | None = None,
    ) -> None:
        self._client = client
        self._api_key = api_key
        self._token_provider = token_provider

    def _headers(self) -> dict[str, str]:
        token = self._token_provider() if self._token_provider else None
        return _get_headers(self._api_key, token)

    async def query(
        self,
        collection: str,
        filters: Mapping[str, Any],
        order_by: str | None = None,
    ) -> list[dict[str, Any]]:
        """Select all columns of matching rows."""
        params: dict[str, str] = {"select": "*"}
        for column, value in filters.items():
            params[column] = f"eq.{value}"
        if order_by:
            params["order"] = _order_param(order_by)
        try:
            response = await self._client.get(f"/{collection}", params=params, headers=self._headers())  # noqa: E501
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("remote_query_failed collection=%s error=%s", collection, e)
            raise to_sync_error(e) from e
        return self._rows(response)

    async def insert(self, collection: str, record: Mapping[str, Any]) -> dict[str, Any]:
        """Insert a single row and return its server representation."""
        try:
            response = await self._client.post(
                f"/{collection}", json=[dict(record)], headers=self._headers(),
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("remote_insert_failed collection=%s error=%s", collection, e)
            raise to_sync_error(e) from e
        rows = self._rows(response)
        if not rows:
            raise NetworkError("Remote store returned no representation for the insert")
        return rows[0]

    async def delete(self, collection: str, record_id: str) -> None:
        """Delete one row by id; an empty representation means nothing matched."""
        try:
            response = await self._client.delete(
                f"/{collection}", params={"id": f"eq.{record_id}"}, headers=self._headers(),
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(
                "remote_delete_failed collection=%s id=%s error=%s", collection, record_id, e,
            )
            raise to_sync_error(e, entity_id=record_id) from e
        if response.status_code == 204:  # noqa: PLR2004
            # Server ignored the representation preference; assume the delete matched
            return
        if not self._rows(response):
            raise NotFoundError(record_id)

    @staticmethod
    def _rows(response: httpx.Response) -> list[dict[str, Any]]:
        try:
            body = response.json()
        except ValueError as e:
            raise NetworkError("Remote store returned a malformed body") from e
        if isinstance(body, dict):
            return [body]
        if not isinstance(body, list):
            raise NetworkError("Remote store returned an unexpected body")
        return body


def create_http_client(base_url: str, timeout: float) -> httpx.AsyncClient:
    """Create the HTTP client used by RestRemoteStore."""
    return httpx.AsyncClient(base_url=base_url, timeout=timeout)
