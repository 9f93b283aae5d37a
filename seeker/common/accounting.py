"""
Rate limiting and API call accounting.

RateLimiter spaces out Notion API calls; ApiCallCounter tallies external
calls for one user query.
"""

import asyncio
import time
from dataclasses import dataclass


@dataclass(frozen=True)
class CallStats:
    """Snapshot of external call counts for one query"""
    store_calls: int
    ai_calls: int
    total_calls: int
    duration_seconds: float

    def to_dict(self) -> dict:
        return {
            "notionCalls": self.store_calls,
            "geminiCalls": self.ai_calls,
            "totalCalls": self.total_calls,
            "duration": round(self.duration_seconds, 2),
        }


class RateLimiter:
    """Fixed delay before each page-store call."""

    def __init__(self, delay_ms: int = 350):
        self.delay_ms = max(0, delay_ms)

    async def wait(self) -> None:
        if self.delay_ms:
            await asyncio.sleep(self.delay_ms / 1000)


class ApiCallCounter:
    """Counts Notion and AI calls and wall-clock time since construction."""

    def __init__(self):
        self.store_calls = 0
        self.ai_calls = 0
        self._started = time.monotonic()

    def increment_store(self) -> None:
        self.store_calls += 1

    def increment_ai(self) -> None:
        self.ai_calls += 1

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self._started

    def get_stats(self) -> CallStats:
        return CallStats(
            store_calls=self.store_calls,
            ai_calls=self.ai_calls,
            total_calls=self.store_calls + self.ai_calls,
            duration_seconds=self.elapsed,
        )

    def call_rate(self) -> float:
        """Average calls per second so far."""
        elapsed = self.elapsed
        if elapsed <= 0:
            return 0.0
        return (self.store_calls + self.ai_calls) / elapsed

    def reset(self) -> None:
        self.store_calls = 0
        self.ai_calls = 0
        self._started = time.monotonic()
