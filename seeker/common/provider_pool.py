"""
Provider Pool

Rotates text generation across several API keys for the same provider.
A key whose error looks like a quota or rate-limit hit is marked unavailable
until every key is exhausted, at which point all keys are optimistically
re-enabled (daily quotas may have reset).

One pool is shared by all concurrent queries; its state is guarded by a
single asyncio.Lock while the generation call itself runs unlocked.
"""

from __future__ import annotations

import asyncio
import logging
import re
import time
from dataclasses import dataclass, asdict
from typing import List, Optional, TYPE_CHECKING

from .config import ConfigError, LLMConfig
from .llm_client import LLMClient

if TYPE_CHECKING:
    from .accounting import ApiCallCounter

logger = logging.getLogger("seeker.common.provider_pool")

QUOTA_PATTERN = re.compile(r"429|quota|exceeded|rate.?limit|resource_exhausted", re.IGNORECASE)


class ProviderExhaustedError(Exception):
    """Every key failed within one generate() call."""

    def __init__(self, message: str, last_error: Optional[BaseException] = None):
        super().__init__(message)
        self.last_error = last_error


@dataclass
class CredentialStatus:
    """Health of one API key"""
    index: int
    available: bool = True
    error_count: int = 0
    last_error: Optional[str] = None
    last_used_at: float = 0.0
    usage_count: int = 0


def is_quota_error(error: BaseException) -> bool:
    return bool(QUOTA_PATTERN.search(str(error)))


class ProviderPool:
    """
    Failover manager over a fixed, ordered list of LLM clients.

    Usage:
        pool = ProviderPool.from_config(config.llm)
        text = await pool.generate("prompt", counter=counter)
    """

    def __init__(self, clients: List[LLMClient]):
        if not clients:
            raise ConfigError("ProviderPool needs at least one API key")
        self._clients = list(clients)
        self._statuses = [CredentialStatus(index=i) for i in range(len(self._clients))]
        self._current_index = 0
        self._lock = asyncio.Lock()

    @classmethod
    def from_config(cls, llm_config: LLMConfig) -> "ProviderPool":
        if not llm_config.api_keys:
            raise ConfigError("No AI provider API keys configured")
        clients = [
            LLMClient(
                provider=llm_config.provider,
                model=llm_config.model,
                api_key=key,
                max_tokens=llm_config.max_tokens,
                timeout=llm_config.timeout,
            )
            for key in llm_config.api_keys
        ]
        logger.info("Loaded %d %s API key(s)", len(clients), llm_config.provider)
        return cls(clients)

    @property
    def key_count(self) -> int:
        return len(self._clients)

    @property
    def current_index(self) -> int:
        return self._current_index

    async def generate(self, prompt: str, *, counter: Optional["ApiCallCounter"] = None) -> str:
        """Generate text, rotating keys on failure.

        Makes at most one attempt per key.

        Raises:
            ProviderExhaustedError: when every attempt failed
        """
        last_error: Optional[BaseException] = None

        for _attempt in range(self.key_count):
            async with self._lock:
                index = self._current_index
                client = self._clients[index]

            try:
                text = await client.generate(prompt)
            except Exception as e:
                last_error = e
                await self._record_failure(index, e)
                continue

            async with self._lock:
                status = self._statuses[index]
                status.last_used_at = time.time()
                status.usage_count += 1
                status.error_count = 0
                logger.debug("API key %d succeeded (use #%d)", index + 1, status.usage_count)

            if counter is not None:
                counter.increment_ai()
            return text

        raise ProviderExhaustedError(
            f"All {self.key_count} API key(s) failed: {last_error}",
            last_error=last_error,
        )

    async def _record_failure(self, index: int, error: BaseException) -> None:
        async with self._lock:
            status = self._statuses[index]
            status.error_count += 1
            status.last_error = str(error)
            logger.error("API key %d failed: %s", index + 1, error)

            if is_quota_error(error):
                status.available = False
                logger.warning("API key %d looks quota-exhausted, marking unavailable", index + 1)

            # Another query already moved off this key
            if self._current_index != index:
                return
            self._switch_from(index)

    def _switch_from(self, index: int) -> None:
        """Advance to the next available key; caller holds the lock."""
        n = self.key_count
        for step in range(1, n + 1):
            candidate = (index + step) % n
            if candidate == index:
                break
            if self._statuses[candidate].available:
                self._current_index = candidate
                logger.info("Switched to API key %d/%d", candidate + 1, n)
                return

        if self._statuses[index].available:
            # Only the failing key is usable; stay on it
            return

        logger.warning("All API keys unavailable, resetting status")
        for status in self._statuses:
            status.available = True
            status.error_count = 0
        self._current_index = index

    def get_status(self) -> List[dict]:
        """Per-key status snapshot, 1-based ``key_index`` for display."""
        snapshot = []
        for status in self._statuses:
            entry = asdict(status)
            entry["key_index"] = status.index + 1
            entry["is_current"] = status.index == self._current_index
            snapshot.append(entry)
        return snapshot
