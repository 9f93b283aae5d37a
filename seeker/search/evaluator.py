"""
Suitability Evaluator

The suitability gate: asks the model whether the fetched pages answer the
user's question. A negative answer sends the orchestrator to the next round.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from ..common.accounting import ApiCallCounter
from ..common.llm_utils import parse_llm_reply
from ..common.provider_pool import ProviderPool
from .extractor import PageContent

logger = logging.getLogger("seeker.search.evaluator")

PARSE_FAILURE_REASON = "parse failure"


EVALUATION_PROMPT = """用戶問題：「{query}」

從 Notion 工作區找到的相關頁面內容：
{pages}

請評估這些 Notion 頁面內容是否足夠回答用戶的問題。

重要理解：
- 這些都是用戶存儲在 Notion 中的筆記/資料
- 用戶要找的就是存儲在 Notion 中與關鍵詞相關的任何內容
- 例如：用戶問「找Promise的筆記」= 找Notion中關於Promise的任何資料

請以JSON格式回覆：
{{
  "suitable": true/false,
  "reason": "評估原因說明"
}}

判斷標準：
- 內容與用戶查找的主題相關 → suitable: true
- 內容雖不完整但有參考價值 → suitable: true
- 內容完全不相關於查找主題 → suitable: false

只回覆JSON，不要其他文字。"""


@dataclass
class SuitabilityResult:
    """Outcome of the suitability gate"""
    suitable: bool
    reason: str
    raw_response: Optional[str] = None


def _as_bool(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "yes", "1")
    return bool(value)


class SuitabilityEvaluator:
    """Binary relevance judgement over truncated page previews.

    ProviderExhaustedError is left to the caller; the orchestrator records
    it as a failed round.
    """

    def __init__(self, provider: ProviderPool, preview_length: int = 800):
        self._provider = provider
        self.preview_length = preview_length

    def build_prompt(self, user_query: str, contents: List[PageContent]) -> str:
        sections = []
        for i, content in enumerate(contents, 1):
            preview = content.text[: self.preview_length]
            if len(content.text) > self.preview_length:
                preview += "..."
            sections.append(f"頁面{i}: {content.title}\n內容預覽: {preview}")
        return EVALUATION_PROMPT.format(query=user_query, pages="\n\n".join(sections))

    async def evaluate(
        self,
        user_query: str,
        contents: List[PageContent],
        counter: Optional[ApiCallCounter] = None,
    ) -> SuitabilityResult:
        raw = await self._provider.generate(self.build_prompt(user_query, contents), counter=counter)

        reply = parse_llm_reply(raw, fallback={})
        if not reply.ok or "suitable" not in reply.data:
            logger.warning("Suitability reply unparsable: %.200s", raw)
            return SuitabilityResult(suitable=False, reason=PARSE_FAILURE_REASON, raw_response=raw)

        result = SuitabilityResult(
            suitable=_as_bool(reply.data.get("suitable")),
            reason=str(reply.data.get("reason", "")).strip() or "no reason given",
            raw_response=raw,
        )
        logger.info("Suitability: %s - %s", "yes" if result.suitable else "no", result.reason)
        return result
