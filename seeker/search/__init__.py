"""
Search Agent - Multi-round Notion Search

Finds workspace pages that answer a question and synthesizes the answer.

Key Components:
- KeywordGenerator: Optimizes / expands title keywords between rounds
- PageSearcher: Title search with deduplication
- PageSelector: Model-ranked candidate selection
- ContentExtractor: Depth-bounded block tree rendering
- SuitabilityEvaluator: Does the content answer the question?
- ResponseSynthesizer: Final cited answer
- SearchOrchestrator: The round loop tying them together
- IntentClassifier: greeting / search / chat routing

Pipeline:
1. Classify intent and get round-1 keywords
2. Search titles, select pages, read content
3. Judge suitability; refine keywords and retry on failure
4. Synthesize the answer from the suitable round
"""

from .searcher import PageSearcher, PageSummary
from .extractor import ContentExtractor, PageContent
from .keywords import KeywordGenerator, KeywordStrategy, strategy_for_round
from .selector import PageSelector
from .evaluator import SuitabilityEvaluator, SuitabilityResult
from .synthesizer import ResponseSynthesizer
from .orchestrator import (
    SearchOrchestrator,
    SearchOutcome,
    SearchRound,
    SearchFailedError,
    RoundState,
)
from .intent import IntentClassifier, Intent, IntentType

__all__ = [
    "PageSearcher",
    "PageSummary",
    "ContentExtractor",
    "PageContent",
    "KeywordGenerator",
    "KeywordStrategy",
    "strategy_for_round",
    "PageSelector",
    "SuitabilityEvaluator",
    "SuitabilityResult",
    "ResponseSynthesizer",
    "SearchOrchestrator",
    "SearchOutcome",
    "SearchRound",
    "SearchFailedError",
    "RoundState",
    "IntentClassifier",
    "Intent",
    "IntentType",
]
