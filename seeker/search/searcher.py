"""
Searcher

Title search over the Notion workspace. Each keyword is searched separately
(rate-limited), results are normalized to PageSummary and deduplicated by
page id; the first keyword to match a page wins.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

from ..common.accounting import ApiCallCounter, RateLimiter
from ..common.notion_client import NotionClient, StoreError

logger = logging.getLogger("seeker.search.searcher")

UNTITLED = "未命名頁面"


@dataclass
class PageSummary:
    """A search hit, identified by ``id``"""
    id: str
    title: str
    url: str = ""
    last_edited_at: str = ""
    created_at: str = ""
    matched_keyword: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pageId": self.id,
            "title": self.title,
            "url": self.url,
            "lastEdited": self.last_edited_at,
            "createdTime": self.created_at,
            "matchedKeyword": self.matched_keyword,
        }


def rich_text_to_plain(rich_text: Any) -> str:
    """Join the plain_text of a Notion rich text array."""
    if not isinstance(rich_text, list):
        return ""
    return "".join(t.get("plain_text", "") for t in rich_text if isinstance(t, dict)).strip()


def extract_title(obj: Dict[str, Any]) -> str:
    """Title of a Notion page or database object."""
    properties = obj.get("properties") or {}
    for prop in properties.values():
        if isinstance(prop, dict) and prop.get("type") == "title":
            title = rich_text_to_plain(prop.get("title", []))
            if title:
                return title

    # Databases carry their title at the top level
    title = rich_text_to_plain(obj.get("title", []))
    return title or UNTITLED


def page_summary_from_notion(obj: Dict[str, Any], keyword: Optional[str] = None) -> PageSummary:
    return PageSummary(
        id=obj.get("id", ""),
        title=extract_title(obj),
        url=obj.get("url", ""),
        last_edited_at=obj.get("last_edited_time", ""),
        created_at=obj.get("created_time", ""),
        matched_keyword=keyword,
    )


class PageSearcher:
    """
    Keyword-by-keyword title search with deduplication.

    Notion's search endpoint only matches titles, so each keyword is issued
    as its own query.
    """

    def __init__(
        self,
        store: NotionClient,
        rate_limiter: RateLimiter,
        page_size: int = 10,
        max_results: int = 5,
    ):
        self._store = store
        self._limiter = rate_limiter
        self.page_size = page_size
        self.max_results = max_results

    async def search(
        self,
        keywords: List[str],
        counter: Optional[ApiCallCounter] = None,
    ) -> List[PageSummary]:
        """
        Search every keyword and merge the hits.

        Args:
            keywords: Title keywords, searched in order
            counter: Per-query call counter

        Returns:
            Unique PageSummary list, at most ``max_results`` long
        """
        found: Dict[str, PageSummary] = {}

        for keyword in keywords:
            logger.debug("Searching keyword: %r", keyword)
            await self._limiter.wait()
            try:
                results = await self._store.search(keyword, page_size=self.page_size)
            except (StoreError, httpx.TransportError) as e:
                logger.error("Search for keyword %r failed: %s", keyword, e)
                continue
            finally:
                if counter is not None:
                    counter.increment_store()

            for obj in results:
                page_id = obj.get("id")
                if page_id and page_id not in found:
                    found[page_id] = page_summary_from_notion(obj, keyword)

        pages = list(found.values())
        if len(pages) > self.max_results:
            logger.debug("Trimming %d results to %d", len(pages), self.max_results)
        return pages[: self.max_results]
