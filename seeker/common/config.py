"""
Configuration Management for Notion Seeker

Loads configuration from ~/.seeker/config.json and environment variables.
"""

import os
import json
import logging
from pathlib import Path
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import load_dotenv

logger = logging.getLogger("seeker.common.config")

# Default config paths
CONFIG_DIR = Path.home() / ".seeker"
CONFIG_PATH = CONFIG_DIR / "config.json"

# Upper bound on numbered GEMINI_API_KEY_<n> variables scanned from the environment
MAX_ENV_KEYS = 20


class ConfigError(Exception):
    """Configuration is unusable."""
    pass


@dataclass
class NotionConfig:
    """Notion API access and content limits"""
    token: str = ""
    base_url: str = "https://api.notion.com/v1"
    api_version: str = "2022-06-28"
    timeout: float = 30.0
    page_size: int = 10  # results per keyword search
    max_results: int = 5  # candidates kept after dedup
    max_selected_pages: int = 3
    max_depth: int = 3
    max_blocks_per_page: int = 100
    preview_length: int = 8000  # per page, fed to the synthesizer
    evaluation_preview_length: int = 800  # per page, fed to the evaluator
    rate_limit_delay_ms: int = 350


@dataclass
class LLMConfig:
    """Generative model configuration, one client per API key"""
    provider: str = "google"
    model: str = "gemini-1.5-flash"
    api_keys: List[str] = field(default_factory=list)
    max_tokens: int = 2048
    timeout: float = 30.0


@dataclass
class SearchConfig:
    """Multi-round search configuration"""
    max_rounds: int = 1
    max_keywords: int = 5
    timeout_seconds: Optional[float] = None


@dataclass
class ServerConfig:
    """HTTP service configuration"""
    host: str = "127.0.0.1"
    port: int = 3000
    log_level: str = "INFO"


@dataclass
class SeekerConfig:
    """Main Notion Seeker configuration"""
    notion: NotionConfig = field(default_factory=NotionConfig)
    llm: LLMConfig = field(default_factory=LLMConfig)
    search: SearchConfig = field(default_factory=SearchConfig)
    server: ServerConfig = field(default_factory=ServerConfig)


def _parse_notion_config(data: dict) -> NotionConfig:
    """Parse notion section from config dict"""
    notion_data = data.get("notion", {})
    defaults = NotionConfig()
    return NotionConfig(
        token=notion_data.get("token", ""),
        base_url=notion_data.get("base_url", defaults.base_url),
        api_version=notion_data.get("api_version", defaults.api_version),
        timeout=notion_data.get("timeout", defaults.timeout),
        page_size=notion_data.get("page_size", defaults.page_size),
        max_results=notion_data.get("max_results", defaults.max_results),
        max_selected_pages=notion_data.get("max_selected_pages", defaults.max_selected_pages),
        max_depth=notion_data.get("max_depth", defaults.max_depth),
        max_blocks_per_page=notion_data.get("max_blocks_per_page", defaults.max_blocks_per_page),
        preview_length=notion_data.get("preview_length", defaults.preview_length),
        evaluation_preview_length=notion_data.get(
            "evaluation_preview_length", defaults.evaluation_preview_length
        ),
        rate_limit_delay_ms=notion_data.get("rate_limit_delay_ms", defaults.rate_limit_delay_ms),
    )


def _parse_llm_config(data: dict) -> LLMConfig:
    """Parse llm section from config dict.

    Accepts either ``api_keys`` (list) or a single ``api_key`` string.
    """
    llm_data = data.get("llm", {})
    keys = llm_data.get("api_keys")
    if keys is None:
        single = llm_data.get("api_key", "")
        keys = [single] if single else []
    return LLMConfig(
        provider=llm_data.get("provider", "google"),
        model=llm_data.get("model", "gemini-1.5-flash"),
        api_keys=[k for k in keys if k],
        max_tokens=llm_data.get("max_tokens", 2048),
        timeout=llm_data.get("timeout", 30.0),
    )


def _parse_search_config(data: dict) -> SearchConfig:
    """Parse search section from config dict"""
    search_data = data.get("search", {})
    return SearchConfig(
        max_rounds=search_data.get("max_rounds", 1),
        max_keywords=search_data.get("max_keywords", 5),
        timeout_seconds=search_data.get("timeout_seconds"),
    )


def _parse_server_config(data: dict) -> ServerConfig:
    """Parse server section from config dict"""
    server_data = data.get("server", {})
    return ServerConfig(
        host=server_data.get("host", "127.0.0.1"),
        port=server_data.get("port", 3000),
        log_level=server_data.get("log_level", "INFO"),
    )


def load_api_keys_from_env() -> List[str]:
    """Collect GEMINI_API_KEY, GEMINI_API_KEY_2, GEMINI_API_KEY_3, ... in order.

    Stops at the first missing numbered key.
    """
    keys = []
    primary = os.getenv("GEMINI_API_KEY")
    if primary:
        keys.append(primary)
    for n in range(2, MAX_ENV_KEYS + 1):
        val = os.getenv(f"GEMINI_API_KEY_{n}")
        if not val:
            break
        keys.append(val)
    return keys


def load_config() -> SeekerConfig:
    """
    Load configuration from file and environment variables.

    Priority (highest to lowest):
    1. Environment variables (including a local .env file)
    2. Config file (~/.seeker/config.json)
    3. Default values
    """
    load_dotenv()
    config = SeekerConfig()

    if CONFIG_PATH.exists():
        try:
            with open(CONFIG_PATH) as f:
                data = json.load(f)

            config.notion = _parse_notion_config(data)
            config.llm = _parse_llm_config(data)
            config.search = _parse_search_config(data)
            config.server = _parse_server_config(data)
        except (json.JSONDecodeError, IOError) as e:
            logger.warning("Failed to load config file %s: %s", CONFIG_PATH, e)

    # Environment variable overrides
    if os.getenv("NOTION_TOKEN"):
        config.notion.token = os.getenv("NOTION_TOKEN")
    if os.getenv("NOTION_RATE_LIMIT_MS"):
        config.notion.rate_limit_delay_ms = int(os.getenv("NOTION_RATE_LIMIT_MS"))

    env_keys = load_api_keys_from_env()
    if env_keys:
        config.llm.api_keys = env_keys
    if os.getenv("SEEKER_LLM_PROVIDER"):
        config.llm.provider = os.getenv("SEEKER_LLM_PROVIDER")
    if os.getenv("SEEKER_LLM_MODEL"):
        config.llm.model = os.getenv("SEEKER_LLM_MODEL")

    if os.getenv("SEEKER_MAX_ROUNDS"):
        config.search.max_rounds = int(os.getenv("SEEKER_MAX_ROUNDS"))

    if os.getenv("PORT"):
        config.server.port = int(os.getenv("PORT"))
    if os.getenv("SEEKER_LOG_LEVEL"):
        config.server.log_level = os.getenv("SEEKER_LOG_LEVEL")

    return config


def validate_config(config: SeekerConfig) -> List[str]:
    """Return a list of human-readable problems; empty means usable."""
    problems = []

    if not config.notion.token:
        problems.append("NOTION_TOKEN is not set")
    if not config.llm.api_keys:
        problems.append("No AI provider API keys configured (GEMINI_API_KEY)")

    positive = {
        "notion.page_size": config.notion.page_size,
        "notion.max_results": config.notion.max_results,
        "notion.max_selected_pages": config.notion.max_selected_pages,
        "notion.max_blocks_per_page": config.notion.max_blocks_per_page,
        "notion.preview_length": config.notion.preview_length,
        "notion.evaluation_preview_length": config.notion.evaluation_preview_length,
        "search.max_rounds": config.search.max_rounds,
        "search.max_keywords": config.search.max_keywords,
    }
    for name, value in positive.items():
        if value < 1:
            problems.append(f"{name} must be >= 1 (got {value})")

    if config.notion.max_depth < 0:
        problems.append(f"notion.max_depth must be >= 0 (got {config.notion.max_depth})")
    if config.notion.rate_limit_delay_ms < 0:
        problems.append(
            f"notion.rate_limit_delay_ms must be >= 0 (got {config.notion.rate_limit_delay_ms})"
        )
    if config.notion.page_size > 100:
        problems.append("notion.page_size cannot exceed 100 (Notion API limit)")

    return problems
