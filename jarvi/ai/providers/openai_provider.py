"""
OpenAI Provider - GPT client.

Alternative backend for intent classification and token suggestion
(CLASSIFIER_BACKEND / TOKEN_BACKEND = "openai").

API Documentation: https://platform.openai.com/docs/api-reference
"""

import logging
import time
from typing import List, Optional

from openai import AsyncOpenAI

from jarvi.core.config import settings
from jarvi.ai.providers.base import (
    AIProvider,
    AIResponse,
    ProviderType,
    TokenUsage,
)

logger = logging.getLogger("jarvi.ai.openai")


class OpenAIProvider(AIProvider):
    """OpenAI chat-completions provider; JSON answers use json_object mode."""

    provider_type = ProviderType.OPENAI

    def __init__(self, model: str = None, api_key: str = None):
        self.model = model or settings.OPENAI_MODEL
        self.api_key = api_key or settings.OPENAI_API_KEY

        if self.api_key:
            self._client = AsyncOpenAI(api_key=self.api_key)
            logger.info(f"OpenAI provider initialized with model: {self.model}")
        else:
            self._client = None
            logger.warning("OpenAI API key not configured - provider unavailable")

    async def generate(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 1024,
        **kwargs
    ) -> AIResponse:
        return await self._complete(
            self._messages(prompt, system_prompt),
            temperature=temperature,
            max_tokens=max_tokens,
        )

    async def generate_json(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        **kwargs
    ) -> AIResponse:
        """Generate with JSON mode enabled (response_format=json_object)."""
        return await self._complete(
            self._messages(prompt, system_prompt),
            temperature=0.1,
            max_tokens=kwargs.get("max_tokens", 512),
            response_format={"type": "json_object"},
        )

    @staticmethod
    def _messages(prompt: str, system_prompt: Optional[str]) -> List[dict]:
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})
        return messages

    async def _complete(self, messages: List[dict], **options) -> AIResponse:
        start_time = time.time()

        if not self._client:
            return self._create_error_response(
                error="OpenAI API key not configured",
                model=self.model,
                latency_ms=self._measure_latency(start_time),
            )

        try:
            response = await self._client.chat.completions.create(
                model=self.model,
                messages=messages,
                **options,
            )
        except Exception as e:
            return self._create_error_response(
                error=str(e),
                model=self.model,
                latency_ms=self._measure_latency(start_time),
            )

        latency_ms = self._measure_latency(start_time)
        usage = TokenUsage(
            prompt_tokens=response.usage.prompt_tokens if response.usage else 0,
            completion_tokens=response.usage.completion_tokens if response.usage else 0,
        )
        logger.info(f"OpenAI request completed in {latency_ms:.0f}ms, tokens: {usage.total_tokens}")

        return AIResponse(
            content=response.choices[0].message.content or "",
            provider=self.provider_type,
            model=self.model,
            usage=usage,
            latency_ms=latency_ms,
            success=True,
        )
