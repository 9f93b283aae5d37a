"""
Synthesizer

Writes the final answer from the pages that passed the suitability gate.

Key principle: the reply always ends with the pages it drew on, so the
user can open the original notes. If the model call fails the same
references are listed without synthesis.
"""

import logging
from typing import List, Optional

from ..common.accounting import ApiCallCounter
from ..common.provider_pool import ProviderExhaustedError, ProviderPool
from .extractor import PageContent

logger = logging.getLogger("seeker.search.synthesizer")

REFERENCES_HEADING = "📚 **參考資料：**"
FALLBACK_PREVIEW_LENGTH = 200


SYNTHESIS_PROMPT = """根據以下用戶問題和找到的 Notion 資料，請提供一個精煉、整合且有用的回覆：

用戶問題：「{query}」

找到以下相關資料：

{records}

請以繁體中文回覆，要求：
1. 整合多個資料來源的資訊
2. 回答用戶的具體問題
3. 提供重要細節和關鍵點
4. 如果資料間有矛盾，請指出
5. 在回覆末尾列出參考的頁面標題和連結
6. 保持回覆結構清晰、易讀

回覆格式：
[整合後的主要回覆內容]

{heading}
• [頁面標題1]（[URL1]）
• [頁面標題2]（[URL2]）
..."""


FALLBACK_TEMPLATE = """找到 {count} 筆與「{query}」相關的資料（未經 AI 整合，直接列出）：

{formatted_results}

{references}"""


def format_references(contents: List[PageContent]) -> str:
    lines = [REFERENCES_HEADING]
    for content in contents:
        lines.append(f"• {content.title}（{content.url}）")
    return "\n".join(lines)


class ResponseSynthesizer:
    """
    Produces the cited answer for a successful round.

    Falls back to a plain listing if the model is unavailable.
    """

    def __init__(self, provider: ProviderPool, preview_length: int = 8000):
        self._provider = provider
        self.preview_length = preview_length

    def _format_records_for_prompt(self, contents: List[PageContent]) -> str:
        formatted = []
        for i, content in enumerate(contents, 1):
            body = content.text[: self.preview_length]
            if len(content.text) > self.preview_length:
                body += "..."
            formatted.append(
                f"=== 資料 {i}：{content.title} ===\n"
                f"網址：{content.url}\n"
                f"內容：\n{body}\n"
            )
        return "\n".join(formatted)

    def build_prompt(self, user_query: str, contents: List[PageContent]) -> str:
        return SYNTHESIS_PROMPT.format(
            query=user_query,
            records=self._format_records_for_prompt(contents),
            heading=REFERENCES_HEADING,
        )

    async def synthesize(
        self,
        user_query: str,
        contents: List[PageContent],
        counter: Optional[ApiCallCounter] = None,
    ) -> str:
        """Integrated answer with references; never empty."""
        try:
            answer = await self._provider.generate(
                self.build_prompt(user_query, contents), counter=counter
            )
        except ProviderExhaustedError as e:
            logger.warning("Synthesis failed, listing pages instead: %s", e)
            return self._synthesize_fallback(user_query, contents)

        if not answer or not answer.strip():
            logger.warning("Synthesis returned an empty answer, listing pages instead")
            return self._synthesize_fallback(user_query, contents)
        return answer

    def _synthesize_fallback(self, user_query: str, contents: List[PageContent]) -> str:
        formatted_results = []
        for i, content in enumerate(contents, 1):
            preview = " ".join(content.text.split())[:FALLBACK_PREVIEW_LENGTH]
            if content.length > FALLBACK_PREVIEW_LENGTH:
                preview += "..."
            formatted_results.append(f"### {i}. {content.title}\n{content.url}\n{preview}")

        return FALLBACK_TEMPLATE.format(
            count=len(contents),
            query=user_query,
            formatted_results="\n\n".join(formatted_results),
            references=format_references(contents),
        )
