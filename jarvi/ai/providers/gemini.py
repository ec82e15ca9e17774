"""
Gemini Provider - Google's GenAI SDK.

Used as the optional backend for intent classification and temporal
token suggestion when CLASSIFIER_BACKEND / TOKEN_BACKEND is "gemini".
"""

import logging
import time
from typing import Optional

from google import genai
from google.genai import types

from jarvi.core.config import settings
from jarvi.ai.providers.base import (
    AIProvider,
    AIResponse,
    ProviderType,
    TokenUsage,
)

logger = logging.getLogger("jarvi.ai.gemini")


class GeminiProvider(AIProvider):
    provider_type = ProviderType.GEMINI

    def __init__(self, model: str = None, api_key: str = None):
        self.model = model or settings.GEMINI_MODEL
        self.api_key = api_key or settings.GEMINI_API_KEY

        if self.api_key:
            self._client = genai.Client(api_key=self.api_key)
            logger.info(f"Gemini provider initialized with model: {self.model}")
        else:
            self._client = None
            logger.warning("Gemini API key not configured")

    async def generate(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 1024,
        **kwargs
    ) -> AIResponse:
        config = types.GenerateContentConfig(
            temperature=temperature,
            max_output_tokens=max_tokens,
            system_instruction=system_prompt,
        )
        return await self._call(prompt, config)

    async def generate_json(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        **kwargs
    ) -> AIResponse:
        config = types.GenerateContentConfig(
            temperature=0.1,
            max_output_tokens=kwargs.get("max_tokens", 512),
            response_mime_type="application/json",
            system_instruction=system_prompt,
        )
        response = await self._call(f"{prompt}\n\nRespond ONLY with valid JSON.", config)
        if response.success:
            content = response.content.strip()
            if content.startswith("```"):
                content = content.strip("`")
                content = content[4:] if content.startswith("json") else content
            response.content = content.strip()
        return response

    async def _call(self, contents: str, config: types.GenerateContentConfig) -> AIResponse:
        start_time = time.time()
        if not self._client:
            return self._error("API key missing", start_time)

        try:
            response = await self._client.aio.models.generate_content(
                model=self.model,
                contents=contents,
                config=config,
            )
        except Exception as e:
            logger.error(f"Gemini generation failed: {e}")
            return self._error(str(e), start_time)

        return AIResponse(
            content=response.text or "",
            provider=self.provider_type,
            model=self.model,
            usage=self._extract_usage(response),
            latency_ms=self._measure_latency(start_time),
            success=True,
        )

    def _extract_usage(self, response) -> TokenUsage:
        meta = response.usage_metadata
        if not meta:
            return TokenUsage()
        return TokenUsage(
            prompt_tokens=meta.prompt_token_count or 0,
            completion_tokens=meta.candidates_token_count or 0,
        )

    def _error(self, msg, start_time):
        return self._create_error_response(
            error=msg, model=self.model, latency_ms=self._measure_latency(start_time)
        )
