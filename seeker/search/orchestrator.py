"""
Search Orchestrator

Runs up to ``max_rounds`` search rounds for one question. Each round:

1. Pick keywords (round 1: caller's, round 2: optimized, 3+: expanded)
2. Title-search Notion for candidates
3. Let the model pick the most promising pages
4. Read their content
5. Ask the model whether the content answers the question
6. On yes, write the final answer and stop

A round that fails any step records why and the next round starts. Only
unexpected errors (and deadline expiry) escape, as SearchFailedError with
the partial call stats attached.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from ..common.accounting import ApiCallCounter, CallStats
from ..common.config import SeekerConfig
from ..common.provider_pool import ProviderExhaustedError
from .evaluator import SuitabilityEvaluator
from .extractor import ContentExtractor, PageContent
from .keywords import KeywordGenerator, KeywordStrategy, strategy_for_round
from .searcher import PageSearcher, PageSummary
from .selector import PageSelector
from .synthesizer import ResponseSynthesizer

logger = logging.getLogger("seeker.search.orchestrator")

REASON_NO_PAGES = "no matching pages"
REASON_UNREADABLE = "content unreadable"
REASON_PROVIDER_DOWN = "AI provider unavailable"
REASON_FOUND = "suitable content found"

REMEDIATION_SUGGESTIONS = [
    "檢查 Notion Integration 是否有正確的頁面存取權限",
    "確認相關內容確實存在於您的工作區中",
    "嘗試使用不同的關鍵詞或描述方式",
]


class RoundState(str, Enum):
    """Orchestration states"""
    ROUND_START = "round_start"
    SEARCHING = "searching"
    SELECTING = "selecting"
    EXTRACTING = "extracting"
    EVALUATING = "evaluating"
    SUCCESS = "success"
    ROUND_FAILED = "round_failed"
    ALL_ROUNDS_FAILED = "all_rounds_failed"


class SearchFailedError(Exception):
    """The orchestration itself broke down (not a failed round)."""

    def __init__(self, message: str, stats: CallStats):
        super().__init__(message)
        self.stats = stats


@dataclass(frozen=True)
class SearchRound:
    """One completed round"""
    round_number: int
    keywords: List[str]
    candidates: List[PageSummary] = field(default_factory=list)
    selected: List[PageSummary] = field(default_factory=list)
    contents: List[PageContent] = field(default_factory=list)
    suitable: bool = False
    response: Optional[str] = None
    reason: str = ""
    strategy: KeywordStrategy = KeywordStrategy.INITIAL

    def to_dict(self) -> Dict[str, Any]:
        return {
            "round": self.round_number,
            "strategy": self.strategy.value,
            "keywords": list(self.keywords),
            "searchResults": [p.to_dict() for p in self.candidates],
            "selectedPages": [p.to_dict() for p in self.selected],
            "pages": [c.to_dict() for c in self.contents],
            "suitable": self.suitable,
            "response": self.response,
            "reason": self.reason,
        }


@dataclass
class SearchOutcome:
    """Terminal result of one question"""
    success: bool
    response: str
    found_pages: List[PageContent]
    rounds: List[SearchRound]
    stats: Optional[CallStats] = None

    @property
    def state(self) -> RoundState:
        return RoundState.SUCCESS if self.success else RoundState.ALL_ROUNDS_FAILED


def format_failure_report(user_message: str, rounds: List[SearchRound]) -> str:
    """Per-round keywords and reasons, followed by remediation tips."""
    lines = [f"抱歉，經過{len(rounds)}輪搜索都沒有找到與「{user_message}」相關的合適內容。", ""]
    lines.append("🔍 **搜索記錄：**")
    for r in rounds:
        lines.append(f"第{r.round_number}輪：使用關鍵詞 [{', '.join(r.keywords)}]")
        lines.append(f"　　　結果：{r.reason}")
    lines.append("")
    lines.append("💡 **建議：**")
    for suggestion in REMEDIATION_SUGGESTIONS:
        lines.append(f"• {suggestion}")
    return "\n".join(lines)


class SearchOrchestrator:
    """
    Multi-round search state machine.

    All collaborators are injected; ``from_config`` wires the defaults.
    """

    def __init__(
        self,
        searcher: PageSearcher,
        selector: PageSelector,
        extractor: ContentExtractor,
        evaluator: SuitabilityEvaluator,
        synthesizer: ResponseSynthesizer,
        keyword_generator: KeywordGenerator,
        max_selected_pages: int = 3,
        max_keywords: int = 5,
        timeout_seconds: Optional[float] = None,
    ):
        self._searcher = searcher
        self._selector = selector
        self._extractor = extractor
        self._evaluator = evaluator
        self._synthesizer = synthesizer
        self._keywords = keyword_generator
        self.max_selected_pages = max_selected_pages
        self.max_keywords = max_keywords
        self.timeout_seconds = timeout_seconds

    @classmethod
    def from_config(cls, config: SeekerConfig, provider, store, rate_limiter) -> "SearchOrchestrator":
        notion = config.notion
        return cls(
            searcher=PageSearcher(
                store, rate_limiter, page_size=notion.page_size, max_results=notion.max_results
            ),
            selector=PageSelector(provider),
            extractor=ContentExtractor(
                store,
                rate_limiter,
                max_depth=notion.max_depth,
                max_blocks_per_page=notion.max_blocks_per_page,
            ),
            evaluator=SuitabilityEvaluator(provider, preview_length=notion.evaluation_preview_length),
            synthesizer=ResponseSynthesizer(provider, preview_length=notion.preview_length),
            keyword_generator=KeywordGenerator(provider, max_keywords=config.search.max_keywords),
            max_selected_pages=notion.max_selected_pages,
            max_keywords=config.search.max_keywords,
            timeout_seconds=config.search.timeout_seconds,
        )

    async def perform_search(
        self,
        user_message: str,
        initial_keywords: List[str],
        max_rounds: int = 1,
        counter: Optional[ApiCallCounter] = None,
        deadline: Optional[float] = None,
    ) -> SearchOutcome:
        """
        Search until a round is judged suitable or the rounds run out.

        Args:
            user_message: The user's question
            initial_keywords: Round-1 keywords (usually from intent analysis)
            max_rounds: Round budget, at least 1
            counter: Per-query call counter (created if omitted)
            deadline: Seconds allowed for the whole search; overrides config

        Raises:
            SearchFailedError: deadline expired or an unexpected error occurred
        """
        counter = counter or ApiCallCounter()
        timeout = deadline if deadline is not None else self.timeout_seconds

        try:
            if timeout:
                outcome = await asyncio.wait_for(
                    self._run_rounds(user_message, initial_keywords, max_rounds, counter),
                    timeout=timeout,
                )
            else:
                outcome = await self._run_rounds(user_message, initial_keywords, max_rounds, counter)
        except asyncio.TimeoutError as e:
            logger.error("Search timed out after %.1fs", timeout)
            raise SearchFailedError(f"Search timed out after {timeout}s", counter.get_stats()) from e
        except Exception as e:
            logger.exception("Search failed unexpectedly")
            raise SearchFailedError(f"Search failed: {e}", counter.get_stats()) from e

        outcome.stats = counter.get_stats()
        return outcome

    async def _run_rounds(
        self,
        user_message: str,
        initial_keywords: List[str],
        max_rounds: int,
        counter: ApiCallCounter,
    ) -> SearchOutcome:
        max_rounds = max(1, int(max_rounds))
        logger.info("Starting %d-round search", max_rounds)

        rounds: List[SearchRound] = []
        keywords = list(initial_keywords)

        for round_number in range(1, max_rounds + 1):
            logger.debug("Round %d: %s", round_number, RoundState.ROUND_START.value)
            strategy = strategy_for_round(round_number)
            if strategy == KeywordStrategy.INITIAL:
                keywords = list(initial_keywords)[: self.max_keywords]
            else:
                keywords = await self._keywords.generate(user_message, keywords, strategy, counter)
                keywords = keywords[: self.max_keywords]

            result = await self._execute_round(user_message, keywords, round_number, strategy, counter)
            rounds.append(result)

            if result.suitable:
                logger.info("Round %d found suitable content, stopping", round_number)
                return SearchOutcome(
                    success=True,
                    response=result.response or "",
                    found_pages=list(result.contents),
                    rounds=rounds,
                )
            logger.info("Round %d failed: %s", round_number, result.reason)

        logger.warning("No suitable content after %d round(s)", len(rounds))
        return SearchOutcome(
            success=False,
            response=format_failure_report(user_message, rounds),
            found_pages=[],
            rounds=rounds,
        )

    async def _execute_round(
        self,
        user_message: str,
        keywords: List[str],
        round_number: int,
        strategy: KeywordStrategy,
        counter: ApiCallCounter,
    ) -> SearchRound:
        def finish(reason, candidates=(), selected=(), contents=(), suitable=False, response=None):
            state = RoundState.SUCCESS if suitable else RoundState.ROUND_FAILED
            logger.debug("Round %d: %s (%s)", round_number, state.value, reason)
            return SearchRound(
                round_number=round_number,
                keywords=list(keywords),
                candidates=list(candidates),
                selected=list(selected),
                contents=list(contents),
                suitable=suitable,
                response=response,
                reason=reason,
                strategy=strategy,
            )

        logger.debug("Round %d: %s [%s]", round_number, RoundState.SEARCHING.value, ", ".join(keywords))
        candidates = await self._searcher.search(keywords, counter)
        if not candidates:
            return finish(REASON_NO_PAGES)

        logger.debug("Round %d: %s from %d candidates", round_number, RoundState.SELECTING.value, len(candidates))
        selected = await self._selector.select(user_message, candidates, self.max_selected_pages, counter)
        selected = selected[: self.max_selected_pages]

        logger.debug("Round %d: %s %d pages", round_number, RoundState.EXTRACTING.value, len(selected))
        contents = await self._extractor.extract_many(selected, counter)
        if not contents:
            return finish(REASON_UNREADABLE, candidates, selected)

        logger.debug("Round %d: %s", round_number, RoundState.EVALUATING.value)
        try:
            verdict = await self._evaluator.evaluate(user_message, contents, counter)
            if not verdict.suitable:
                return finish(verdict.reason, candidates, selected, contents)
            response = await self._synthesizer.synthesize(user_message, contents, counter)
        except ProviderExhaustedError as e:
            logger.error("Round %d: AI provider unavailable: %s", round_number, e)
            return finish(REASON_PROVIDER_DOWN, candidates, selected, contents)

        return finish(REASON_FOUND, candidates, selected, contents, suitable=True, response=response)
