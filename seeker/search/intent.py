"""
Intent Classifier

Decides whether a chat message is a greeting, a request to search the
workspace, or general conversation, and supplies round-1 keywords for
searches. Also produces the short replies for the non-search intents.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from ..common.accounting import ApiCallCounter
from ..common.llm_utils import parse_llm_reply
from ..common.provider_pool import ProviderExhaustedError, ProviderPool
from .keywords import TITLE_SEARCH_NOTICE

logger = logging.getLogger("seeker.search.intent")


class IntentType(str, Enum):
    GREETING = "greeting"
    SEARCH = "search"
    CHAT = "chat"


@dataclass
class Intent:
    """Classified chat message"""
    type: IntentType
    keywords: List[str] = field(default_factory=list)
    confidence: float = 0.5


INTENT_PROMPT = """分析以下用戶訊息的意圖：「{message}」

請以JSON格式回覆:
{{
  "intentType": "greeting|search|chat",
  "keywords": ["關鍵詞1", "關鍵詞2", "關鍵詞3"],
  "confidence": 0.8
}}

意圖分類：
1. greeting: 純粹打招呼（你好、嗨、早安等）
2. search: 想要搜尋/查找特定資料（包含「找」、「搜尋」、「查」、「有沒有」等）
3. chat: 一般對話或問答

如果是search意圖，請提供3個最適合的關鍵詞用於Notion頁面標題搜索。

{notice}

只回覆JSON，不要其他文字。"""

GREETING_PROMPT = (
    "用戶說：「{message}」，這是一個問候訊息。請用繁體中文友善地回應，"
    "並簡介你是 Notion 工作區的搜尋助手。回應要簡潔親切，約50字內。"
)

CHAT_PROMPT = (
    "用戶問：「{message}」。請用繁體中文回應。如果問題與 Notion 或筆記管理相關，"
    "提供實用建議；否則進行一般對話。回應要自然友善，約100字內。"
)

GREETING_FALLBACK = "您好！我是您的 Notion 搜尋助手，可以幫您找到工作區中的筆記和資料。有什麼可以幫您的嗎？"
CHAT_FALLBACK = "抱歉，我現在無法處理您的問題。請稍後再試，或者嘗試搜尋您的 Notion 筆記。"


class IntentClassifier:
    """Model-backed intent analysis plus greeting/chat replies."""

    def __init__(self, provider: ProviderPool, max_keywords: int = 5):
        self._provider = provider
        self.max_keywords = max_keywords

    async def classify(self, message: str, counter: Optional[ApiCallCounter] = None) -> Intent:
        prompt = INTENT_PROMPT.format(message=message, notice=TITLE_SEARCH_NOTICE)
        try:
            raw = await self._provider.generate(prompt, counter=counter)
        except ProviderExhaustedError as e:
            logger.error("Intent analysis failed: %s", e)
            return Intent(type=IntentType.CHAT, confidence=0.0)

        reply = parse_llm_reply(raw, fallback={})
        try:
            intent_type = IntentType(str(reply.data.get("intentType", "")).lower())
        except ValueError:
            logger.warning("Unrecognized intent reply: %.200s", raw)
            return Intent(type=IntentType.CHAT, confidence=0.5)

        keywords = reply.data.get("keywords") or []
        if not isinstance(keywords, list):
            keywords = []
        keywords = [str(k).strip() for k in keywords if str(k).strip()][: self.max_keywords]

        try:
            confidence = float(reply.data.get("confidence", 0.5))
        except (TypeError, ValueError):
            confidence = 0.5

        logger.debug("Intent: %s (confidence %.2f)", intent_type.value, confidence)
        return Intent(type=intent_type, keywords=keywords, confidence=confidence)

    async def greet(self, message: str, counter: Optional[ApiCallCounter] = None) -> str:
        return await self._reply(GREETING_PROMPT.format(message=message), GREETING_FALLBACK, counter)

    async def chat(self, message: str, counter: Optional[ApiCallCounter] = None) -> str:
        return await self._reply(CHAT_PROMPT.format(message=message), CHAT_FALLBACK, counter)

    async def _reply(self, prompt: str, fallback: str, counter: Optional[ApiCallCounter]) -> str:
        try:
            text = await self._provider.generate(prompt, counter=counter)
        except ProviderExhaustedError as e:
            logger.error("Reply generation failed: %s", e)
            return fallback
        return text or fallback
