"""
Notion Seeker Common Module

Shared infrastructure for the search pipeline: configuration, model clients
with key rotation, the Notion API client, and call accounting.
"""

from .config import SeekerConfig, ConfigError, load_config, validate_config
from .accounting import ApiCallCounter, CallStats, RateLimiter
from .llm_client import LLMClient
from .provider_pool import ProviderPool, ProviderExhaustedError, CredentialStatus
from .notion_client import (
    NotionClient,
    StoreError,
    StoreAuthError,
    StoreNotFoundError,
    StoreRateLimitError,
)

__all__ = [
    "SeekerConfig",
    "ConfigError",
    "load_config",
    "validate_config",
    "ApiCallCounter",
    "CallStats",
    "RateLimiter",
    "LLMClient",
    "ProviderPool",
    "ProviderExhaustedError",
    "CredentialStatus",
    "NotionClient",
    "StoreError",
    "StoreAuthError",
    "StoreNotFoundError",
    "StoreRateLimitError",
]
