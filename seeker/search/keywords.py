"""
Keyword Strategy Generator

Asks the model for a fresh keyword set when the previous round found
nothing usable. Notion search only matches page titles, so both prompts
push toward terms that plausibly appear in a title.
"""

import logging
from enum import Enum
from typing import List, Optional

from ..common.accounting import ApiCallCounter
from ..common.llm_utils import parse_llm_reply
from ..common.provider_pool import ProviderExhaustedError, ProviderPool

logger = logging.getLogger("seeker.search.keywords")


class KeywordStrategy(str, Enum):
    """Keyword source for a round"""
    INITIAL = "initial"  # caller-supplied keywords, verbatim
    OPTIMIZE = "optimize"  # synonyms, abbreviations, narrower title terms
    EXPAND = "expand"  # broader, bilingual, category terms


def strategy_for_round(round_number: int) -> KeywordStrategy:
    """Round 1 is initial, round 2 optimize, every later round expand."""
    if round_number <= 1:
        return KeywordStrategy.INITIAL
    if round_number == 2:
        return KeywordStrategy.OPTIMIZE
    return KeywordStrategy.EXPAND


TITLE_SEARCH_NOTICE = """⚠️ **重要：Notion API 搜尋限制**
- 只搜尋頁面標題，不搜尋內容
- 關鍵詞必須可能出現在標題中
- 優先選擇名詞、技術術語、專案名稱"""


OPTIMIZE_PROMPT = """用戶問題：「{query}」
當前關鍵詞：{keywords}

上一輪搜索沒有找到合適內容。請優化關鍵詞，提供更精確的搜索詞。

{notice}

請以JSON格式回覆：
{{
  "keywords": ["優化關鍵詞1", "優化關鍵詞2", "優化關鍵詞3"]
}}

標題導向優化策略：
- 替換為更常見的標題用詞
- 考慮技術縮寫和全名（例如「機器學習」→「ML」、「AI」）
- 包含分類詞（筆記、文檔、專案、學習）
- 考慮中英文混用

最多 {limit} 個關鍵詞。只回覆JSON，不要其他文字。"""


EXPAND_PROMPT = """用戶問題：「{query}」
先前關鍵詞：{keywords}

前幾輪搜索都沒有找到合適內容。請擴展關鍵詞範圍，提供更廣泛的搜索詞。

{notice}

請以JSON格式回覆：
{{
  "keywords": ["擴展關鍵詞1", "擴展關鍵詞2", "擴展關鍵詞3"]
}}

標題導向擴展策略：
- 使用更廣泛的上位詞（「React」→「前端」→「開發」）
- 包含相關工具和技術
- 加入英文或中文對應詞（「安全」→「資安」、「Security」）
- 嘗試常見標題模式詞

最多 {limit} 個關鍵詞。只回覆JSON，不要其他文字。"""


def _clean_keywords(raw: list) -> List[str]:
    seen = set()
    cleaned = []
    for item in raw:
        if not isinstance(item, str):
            continue
        keyword = item.strip()
        if keyword and keyword.lower() not in seen:
            seen.add(keyword.lower())
            cleaned.append(keyword)
    return cleaned


class KeywordGenerator:
    """Model-driven keyword refinement between search rounds."""

    def __init__(self, provider: ProviderPool, max_keywords: int = 5):
        self._provider = provider
        self.max_keywords = max_keywords

    def build_prompt(self, user_query: str, current_keywords: List[str], mode: KeywordStrategy) -> str:
        template = OPTIMIZE_PROMPT if mode == KeywordStrategy.OPTIMIZE else EXPAND_PROMPT
        return template.format(
            query=user_query,
            keywords=", ".join(current_keywords) or "（無）",
            notice=TITLE_SEARCH_NOTICE,
            limit=self.max_keywords,
        )

    async def generate(
        self,
        user_query: str,
        current_keywords: List[str],
        mode: KeywordStrategy,
        counter: Optional[ApiCallCounter] = None,
    ) -> List[str]:
        """
        Produce the keyword set for an optimize or expand round.

        Falls back to ``current_keywords`` (capped) when the reply is
        unusable or every API key failed.
        """
        mode = KeywordStrategy(mode)
        if mode == KeywordStrategy.INITIAL:
            return current_keywords[: self.max_keywords]

        fallback = current_keywords[: self.max_keywords]
        prompt = self.build_prompt(user_query, current_keywords, mode)

        try:
            raw = await self._provider.generate(prompt, counter=counter)
        except ProviderExhaustedError as e:
            logger.error("Keyword %s failed, keeping previous keywords: %s", mode.value, e)
            return fallback

        reply = parse_llm_reply(raw, fallback={})
        keywords = reply.data.get("keywords") if reply.ok else None
        if not isinstance(keywords, list):
            logger.warning("Keyword %s reply unparsable, keeping previous keywords", mode.value)
            return fallback

        keywords = _clean_keywords(keywords)
        if not keywords:
            logger.warning("Keyword %s reply was empty, keeping previous keywords", mode.value)
            return fallback

        if len(keywords) > self.max_keywords:
            logger.warning(
                "Model returned %d keywords, limiting to %d", len(keywords), self.max_keywords
            )
        limited = keywords[: self.max_keywords]
        logger.info("%s keywords: %s", mode.value.capitalize(), ", ".join(limited))
        return limited
