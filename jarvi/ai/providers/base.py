"""
Base AI Provider - Abstract interface for generative backends.

The delegation core never depends on a generative model for correctness.
Providers sit behind the classification and token-suggestion capabilities,
and every caller has a deterministic rule-based fallback.

Backends are interchangeable behind AIProvider; get_provider() picks one
by the CLASSIFIER_BACKEND / TOKEN_BACKEND setting.

Example:
    provider = get_provider("gemini")
    answer = await provider.generate_json(clause, system_prompt=TOKEN_SYSTEM_PROMPT)
    tokens = json.loads(answer.content) if answer.success else None
"""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

logger = logging.getLogger("jarvi.ai.providers")


class ProviderType(str, Enum):
    """Supported generative providers."""
    GEMINI = "gemini"
    OPENAI = "openai"


@dataclass
class TokenUsage:
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    def __post_init__(self):
        if self.total_tokens == 0:
            self.total_tokens = self.prompt_tokens + self.completion_tokens


@dataclass
class AIResponse:
    """
    Standardized response from any provider.

    Attributes:
        content: Generated text (JSON string for generate_json)
        provider: Which provider answered
        model: Model name
        usage: Token usage statistics
        latency_ms: Request duration
        success: False when the call failed; error holds the reason
    """
    content: str
    provider: ProviderType
    model: str
    usage: TokenUsage = field(default_factory=TokenUsage)
    latency_ms: float = 0.0
    success: bool = True
    error: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "content": self.content[:100] + "..." if len(self.content) > 100 else self.content,
            "provider": self.provider.value,
            "model": self.model,
            "total_tokens": self.usage.total_tokens,
            "latency_ms": round(self.latency_ms, 2),
            "success": self.success,
            "error": self.error,
        }


class AIProvider(ABC):
    """
    Abstract base class for generative providers.

    Implementations must NOT raise from generate/generate_json.
    Failures are reported through AIResponse.success / AIResponse.error.
    """

    provider_type: ProviderType

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 1024,
        **kwargs
    ) -> AIResponse:
        pass

    @abstractmethod
    async def generate_json(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        **kwargs
    ) -> AIResponse:
        """
        Generate a JSON document.

        Used for intent classification and token suggestion, where the
        caller parses content with json.loads and falls back to rules
        on any failure.
        """
        pass

    def _measure_latency(self, start_time: float) -> float:
        return (time.time() - start_time) * 1000

    def _create_error_response(
        self,
        error: str,
        model: str,
        latency_ms: float = 0.0
    ) -> AIResponse:
        logger.error(f"AI Provider Error [{self.provider_type.value}]: {error}")
        return AIResponse(
            content="",
            provider=self.provider_type,
            model=model,
            latency_ms=latency_ms,
            success=False,
            error=error,
        )
