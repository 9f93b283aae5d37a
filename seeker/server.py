"""
Seeker Server

FastAPI server exposing the Notion search assistant.

Endpoints:
- POST /chat: Classify a message and answer it (greeting, search, or chat)
- GET /system/health: Health check with key status
- GET /system/status: Detailed AI key status
- GET /system/test: One title search to verify Notion access
"""

import logging
from typing import Optional
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .common.accounting import ApiCallCounter, RateLimiter
from .common.config import ConfigError, load_config, validate_config, SeekerConfig
from .common.notion_client import NotionClient
from .common.provider_pool import ProviderPool
from .search.intent import IntentClassifier, IntentType
from .search.orchestrator import SearchOrchestrator, SearchFailedError
from .search.searcher import PageSearcher

logger = logging.getLogger("seeker.server")


# Global state
config: Optional[SeekerConfig] = None
provider: Optional[ProviderPool] = None
notion: Optional[NotionClient] = None
orchestrator: Optional[SearchOrchestrator] = None
classifier: Optional[IntentClassifier] = None
searcher: Optional[PageSearcher] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize components on startup"""
    global config, provider, notion, orchestrator, classifier, searcher

    config = load_config()
    for problem in validate_config(config):
        logger.warning("Config: %s", problem)

    rate_limiter = RateLimiter(config.notion.rate_limit_delay_ms)
    notion = NotionClient(config.notion)
    searcher = PageSearcher(
        notion,
        rate_limiter,
        page_size=config.notion.page_size,
        max_results=config.notion.max_results,
    )
    try:
        provider = ProviderPool.from_config(config.llm)
    except ConfigError as e:
        # Keep serving /system/health so the missing keys are visible
        logger.error("AI provider not configured, chat disabled: %s", e)
        provider = orchestrator = classifier = None
    else:
        orchestrator = SearchOrchestrator.from_config(config, provider, notion, rate_limiter)
        classifier = IntentClassifier(provider, max_keywords=config.search.max_keywords)
        logger.info("Seeker ready (%d AI key(s))", provider.key_count)

    yield

    logger.info("Shutting down...")
    await notion.close()


app = FastAPI(
    title="Notion Seeker",
    description="Multi-round Notion workspace search with AI-judged relevance",
    version="0.1.0",
    lifespan=lifespan,
)


# =============================================================================
# Request Models
# =============================================================================

class ChatRequest(BaseModel):
    """Chat request"""
    message: str = ""
    max_rounds: Optional[int] = Field(default=None, ge=1, alias="maxRounds")

    model_config = {"populate_by_name": True}


def _require_ready():
    if not orchestrator or not classifier or not provider:
        raise HTTPException(status_code=503, detail="Service not initialized")


# =============================================================================
# Endpoints
# =============================================================================

@app.post("/chat")
async def chat(request: ChatRequest):
    """Answer one chat message."""
    _require_ready()

    message = request.message.strip()
    if not message:
        raise HTTPException(status_code=400, detail="訊息內容不能為空")

    max_rounds = request.max_rounds
    if max_rounds is None:
        max_rounds = config.search.max_rounds if config else 1

    counter = ApiCallCounter()
    logger.info("Message received (%d round search mode)", max_rounds)

    intent = await classifier.classify(message, counter)

    if intent.type == IntentType.GREETING:
        response = await classifier.greet(message, counter)
    elif intent.type == IntentType.SEARCH:
        try:
            outcome = await orchestrator.perform_search(
                message, intent.keywords, max_rounds, counter
            )
        except SearchFailedError as e:
            return JSONResponse(
                status_code=500,
                content={
                    "success": False,
                    "error": str(e),
                    "intent": intent.type.value,
                    "apiStats": e.stats.to_dict(),
                },
            )
        return {
            "success": outcome.success,
            "response": outcome.response,
            "foundPages": [p.to_dict() for p in outcome.found_pages],
            "rounds": [r.to_dict() for r in outcome.rounds],
            "maxRounds": max_rounds,
            "actualRounds": len(outcome.rounds),
            "intent": intent.type.value,
            "apiStats": outcome.stats.to_dict(),
        }
    else:
        response = await classifier.chat(message, counter)

    return {
        "success": True,
        "response": response,
        "intent": intent.type.value,
        "apiStats": counter.get_stats().to_dict(),
    }


@app.get("/system/health")
async def health():
    """Health check endpoint"""
    return {
        "status": "OK",
        "initialized": orchestrator is not None,
        "env": {
            "notion_token": "Set" if config and config.notion.token else "Missing",
            "ai_keys": provider.key_count if provider else 0,
        },
        "keyStatus": provider.get_status() if provider else [],
    }


@app.get("/system/status")
async def status():
    """Detailed AI key status"""
    _require_ready()
    return {
        "success": True,
        "keys": provider.get_status(),
        "totalKeys": provider.key_count,
        "currentKey": provider.current_index + 1,
    }


@app.get("/system/test")
async def test_notion():
    """Run one title search to verify the Notion integration."""
    if not searcher:
        raise HTTPException(status_code=503, detail="Service not initialized")

    counter = ApiCallCounter()
    pages = await searcher.search(["test"], counter)
    return {
        "success": True,
        "results_count": len(pages),
        "pages": [{"id": p.id, "title": p.title, "url": p.url} for p in pages[:5]],
        "apiStats": counter.get_stats().to_dict(),
    }


# =============================================================================
# CLI Entry Point
# =============================================================================

def run_server():
    """Run the Seeker server"""
    import uvicorn

    config = load_config()
    logging.basicConfig(
        level=getattr(logging, config.server.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    logger.info("Starting server on %s:%d", config.server.host, config.server.port)
    uvicorn.run(
        "seeker.server:app",
        host=config.server.host,
        port=config.server.port,
        reload=False,
    )


if __name__ == "__main__":
    run_server()
