"""
AI Providers Module - generative backends behind one interface.

- Google Gemini (google-genai SDK)
- OpenAI (chat completions)

Both are optional. get_provider() returns None for the "rules" backend,
which keeps the pipeline fully deterministic.
"""

from typing import Optional

from jarvi.ai.providers.base import AIProvider, AIResponse, ProviderType, TokenUsage


def get_provider(backend: str) -> Optional[AIProvider]:
    """Instantiate the provider named by a *_BACKEND setting."""
    if backend == ProviderType.GEMINI.value:
        from jarvi.ai.providers.gemini import GeminiProvider
        return GeminiProvider()
    if backend == ProviderType.OPENAI.value:
        from jarvi.ai.providers.openai_provider import OpenAIProvider
        return OpenAIProvider()
    return None


__all__ = [
    "AIProvider",
    "AIResponse",
    "ProviderType",
    "TokenUsage",
    "get_provider",
]
