"""Tests for call accounting and the Notion rate limiter."""

import pytest
from unittest.mock import AsyncMock, patch

from seeker.common.accounting import ApiCallCounter, CallStats, RateLimiter


class TestApiCallCounter:
    def test_counts(self):
        counter = ApiCallCounter()
        counter.increment_store()
        counter.increment_store()
        counter.increment_ai()

        stats = counter.get_stats()

        assert stats.store_calls == 2
        assert stats.ai_calls == 1
        assert stats.total_calls == 3
        assert stats.duration_seconds >= 0

    def test_reset(self):
        counter = ApiCallCounter()
        counter.increment_ai()
        counter.reset()
        assert counter.get_stats().total_calls == 0

    def test_stats_dict(self):
        stats = CallStats(store_calls=4, ai_calls=2, total_calls=6, duration_seconds=1.23456)
        assert stats.to_dict() == {
            "notionCalls": 4,
            "geminiCalls": 2,
            "totalCalls": 6,
            "duration": 1.23,
        }


class TestRateLimiter:
    @pytest.mark.asyncio
    async def test_sleeps_configured_delay(self):
        with patch("seeker.common.accounting.asyncio.sleep", new_callable=AsyncMock) as sleep:
            await RateLimiter(350).wait()
        sleep.assert_awaited_once_with(0.35)

    @pytest.mark.asyncio
    async def test_zero_delay_does_not_sleep(self):
        with patch("seeker.common.accounting.asyncio.sleep", new_callable=AsyncMock) as sleep:
            await RateLimiter(0).wait()
        sleep.assert_not_awaited()

    def test_negative_delay_clamped(self):
        assert RateLimiter(-5).delay_ms == 0
