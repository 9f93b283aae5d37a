"""
Notion API Client

Thin async wrapper over the Notion REST API (title search, page metadata,
block children, database rows). HTTP error statuses are mapped onto the
Store* exceptions; transport failures propagate unchanged.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from .config import NotionConfig

logger = logging.getLogger("seeker.common.notion_client")


class StoreError(Exception):
    """Notion API returned an error response."""

    def __init__(self, message: str, status_code: Optional[int] = None, code: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.code = code


class StoreAuthError(StoreError):
    """The integration lacks access (401/403)."""
    pass


class StoreNotFoundError(StoreError):
    """The page or block does not exist or is not shared (404)."""
    pass


class StoreRateLimitError(StoreError):
    """Notion rate limit hit (429)."""
    pass


def _error_for(response: httpx.Response) -> StoreError:
    try:
        body = response.json()
    except ValueError:
        body = {}
    code = body.get("code", "")
    message = body.get("message") or response.text or f"HTTP {response.status_code}"
    status = response.status_code

    if status in (401, 403):
        return StoreAuthError(message, status, code)
    if status == 404:
        return StoreNotFoundError(message, status, code)
    if status == 429:
        return StoreRateLimitError(message, status, code)
    return StoreError(message, status, code)


class NotionClient:
    """
    Async Notion API client.

    Usage:
        client = NotionClient(config.notion)
        results = await client.search("react", page_size=10)
        await client.close()
    """

    def __init__(
        self,
        config: NotionConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            config: Notion section of SeekerConfig
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self._config = config
        self._http = httpx.AsyncClient(
            base_url=config.base_url,
            headers={
                "Authorization": f"Bearer {config.token}",
                "Notion-Version": config.api_version,
                "Content-Type": "application/json",
            },
            timeout=httpx.Timeout(config.timeout),
            transport=transport,
        )

    async def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        response = await self._http.request(method, path, **kwargs)
        if response.is_error:
            error = _error_for(response)
            logger.debug("Notion %s %s -> %s %s", method, path, response.status_code, error.code)
            raise error
        return response.json()

    async def search(self, query: str, page_size: int = 10) -> List[Dict[str, Any]]:
        """Title search across pages and databases shared with the integration."""
        data = await self._request(
            "POST",
            "/search",
            json={"query": query, "page_size": page_size},
        )
        return data.get("results", [])

    async def get_page(self, page_id: str) -> Dict[str, Any]:
        return await self._request("GET", f"/pages/{page_id}")

    async def get_block_children(
        self,
        block_id: str,
        page_size: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """First page of a block's children (Notion caps page_size at 100)."""
        params = {}
        if page_size:
            params["page_size"] = min(page_size, 100)
        data = await self._request("GET", f"/blocks/{block_id}/children", params=params)
        return data.get("results", [])

    async def query_database(self, database_id: str, page_size: int = 10) -> List[Dict[str, Any]]:
        data = await self._request(
            "POST",
            f"/databases/{database_id}/query",
            json={"page_size": page_size},
        )
        return data.get("results", [])

    async def close(self) -> None:
        await self._http.aclose()
