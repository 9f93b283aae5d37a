"""Tests for LLMClient provider abstraction."""

import logging

import pytest
from unittest.mock import patch

from seeker.common.llm_client import LLMClient


class TestLLMClientInit:
    @pytest.mark.parametrize("provider", ["google", "anthropic", "openai"])
    def test_missing_key_logs_info(self, provider, caplog):
        with caplog.at_level(logging.INFO, logger="seeker.common.llm_client"):
            client = LLMClient(provider=provider)
        assert not client.is_available
        assert "API key not provided" in caplog.text

    def test_default_provider_is_google(self):
        client = LLMClient()
        assert client.provider == "google"

    def test_provider_name_is_normalized(self):
        client = LLMClient(provider="OpenAI")
        assert client.provider == "openai"

    def test_unsupported_provider_logs_warning(self, caplog):
        with caplog.at_level(logging.WARNING, logger="seeker.common.llm_client"):
            client = LLMClient(provider="unsupported_xyz", api_key="k")
        assert not client.is_available
        assert "Unsupported" in caplog.text

    def test_google_client_gets_timeout(self):
        with patch("google.genai.Client") as client_cls:
            client = LLMClient(provider="google", model="gemini-1.5-flash", api_key="k", timeout=12.5)
        assert client.is_available
        client_cls.assert_called_once_with(api_key="k", http_options={"timeout": 12500})


class TestLLMClientGenerate:
    @pytest.mark.asyncio
    async def test_generate_raises_when_unavailable(self):
        client = LLMClient(provider="google")
        with pytest.raises(RuntimeError, match="not available"):
            await client.generate("test")

