"""
Provider-agnostic async LLM client for Notion Seeker.

One client wraps exactly one credential. Supports Google Gemini (default),
Anthropic, and OpenAI with a shared text-generation interface; credential
rotation lives in ProviderPool.
"""

from __future__ import annotations

import logging
from typing import Optional

logger = logging.getLogger("seeker.common.llm_client")


class LLMClient:
    """Unified async text generation client for a single API key."""

    def __init__(
        self,
        provider: str = "google",
        model: str = "",
        api_key: Optional[str] = None,
        max_tokens: int = 2048,
        timeout: float = 30.0,
    ) -> None:
        self.provider = (provider or "google").lower()
        self.model = model
        self.max_tokens = max_tokens
        self.timeout = timeout
        self._client = None

        if not api_key:
            logger.info("%s API key not provided, LLM client unavailable", self.provider)
            return

        if self.provider == "google":
            try:
                from google import genai

                # google-genai takes its request timeout in milliseconds
                self._client = genai.Client(
                    api_key=api_key,
                    http_options={"timeout": int(timeout * 1000)},
                )
            except ImportError:
                logger.warning("google-genai package not installed")
            except Exception as e:
                logger.warning("Failed to initialize Gemini client: %s", e)
            return

        if self.provider == "anthropic":
            try:
                import anthropic

                self._client = anthropic.AsyncAnthropic(api_key=api_key)
            except ImportError:
                logger.warning("anthropic package not installed")
            except Exception as e:
                logger.warning("Failed to initialize Anthropic client: %s", e)
            return

        if self.provider == "openai":
            try:
                from openai import AsyncOpenAI

                self._client = AsyncOpenAI(api_key=api_key)
            except ImportError:
                logger.warning("openai package not installed")
            except Exception as e:
                logger.warning("Failed to initialize OpenAI client: %s", e)
            return

        logger.warning("Unsupported LLM provider: %s", self.provider)

    @property
    def is_available(self) -> bool:
        return self._client is not None

    async def generate(self, prompt: str, *, system: Optional[str] = None) -> str:
        if not self.is_available:
            raise RuntimeError("LLM client is not available")

        if self.provider == "google":
            config = {"max_output_tokens": self.max_tokens}
            if system:
                config["system_instruction"] = system
            response = await self._client.aio.models.generate_content(
                model=self.model,
                contents=prompt,
                config=config,
            )
            return (response.text or "").strip()

        if self.provider == "anthropic":
            kwargs = {}
            if system:
                kwargs["system"] = system
            response = await self._client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                messages=[{"role": "user", "content": prompt}],
                timeout=self.timeout,
                **kwargs,
            )
            return response.content[0].text.strip()

        if self.provider == "openai":
            messages = []
            if system:
                messages.append({"role": "system", "content": system})
            messages.append({"role": "user", "content": prompt})
            response = await self._client.chat.completions.create(
                model=self.model,
                max_tokens=self.max_tokens,
                messages=messages,
                timeout=self.timeout,
            )
            return (response.choices[0].message.content or "").strip()

        raise RuntimeError(f"Unsupported LLM provider: {self.provider}")
