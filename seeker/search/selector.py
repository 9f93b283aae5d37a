"""Model-ranked selection of the most promising search candidates."""

import logging
from typing import List, Optional

from ..common.accounting import ApiCallCounter
from ..common.llm_utils import parse_llm_json, parse_llm_list
from ..common.provider_pool import ProviderExhaustedError, ProviderPool
from .searcher import PageSummary

logger = logging.getLogger("seeker.search.selector")


SELECTION_PROMPT = """用戶查詢：「{query}」

找到以下頁面：
{pages}

請從這{total}個頁面中選出最相關的{count}個，按相關性排序。

請以JSON格式回覆：
{{
  "selectedIndices": [頁面編號1, 頁面編號2, 頁面編號3],
  "reason": "選擇理由"
}}

選擇標準：
1. 標題與用戶查詢最相關
2. 考慮最近編輯時間（較新的內容優先）
3. 專業技術內容優於一般內容

只回覆JSON，不要其他文字。"""


def _parse_indices(raw: str) -> tuple:
    """Return (indices, reason) from either an object or a bare array reply."""
    data = parse_llm_json(raw)
    if isinstance(data.get("selectedIndices"), list):
        return data["selectedIndices"], str(data.get("reason", ""))
    return parse_llm_list(raw), ""


class PageSelector:
    """Picks the top ``count`` candidates for a query."""

    def __init__(self, provider: ProviderPool):
        self._provider = provider

    def build_prompt(self, user_query: str, candidates: List[PageSummary], count: int) -> str:
        listing = "\n".join(
            f"{i}. {page.title} (最後編輯：{page.last_edited_at or '未知'})"
            for i, page in enumerate(candidates, 1)
        )
        return SELECTION_PROMPT.format(
            query=user_query,
            pages=listing,
            total=len(candidates),
            count=count,
        )

    async def select(
        self,
        user_query: str,
        candidates: List[PageSummary],
        count: int,
        counter: Optional[ApiCallCounter] = None,
    ) -> List[PageSummary]:
        """
        Select up to ``count`` pages, best first.

        Never fails: falls back to the first ``count`` candidates.
        """
        if len(candidates) <= count:
            return list(candidates)

        fallback = candidates[:count]
        try:
            raw = await self._provider.generate(
                self.build_prompt(user_query, candidates, count), counter=counter
            )
        except ProviderExhaustedError as e:
            logger.error("Page selection failed, using first %d pages: %s", count, e)
            return fallback

        indices, reason = _parse_indices(raw)

        selected: List[PageSummary] = []
        seen = set()
        for index in indices:
            if isinstance(index, bool) or not isinstance(index, (int, float)):
                continue
            index = int(index)
            if 1 <= index <= len(candidates) and index not in seen:
                seen.add(index)
                selected.append(candidates[index - 1])

        if not selected:
            logger.warning("Page selection reply unusable, using first %d pages", count)
            return fallback

        if reason:
            logger.info("Page selection reason: %s", reason)
        return selected[:count]
