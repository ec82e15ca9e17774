"""
Generative token suggestion.

LLMTokenSuggester asks a provider for the temporal tokens of a clause and
validates the answer. Provider failures, bad JSON and out-of-range values
all fall back to the rule-based parser, so extraction never depends on the
generative backend being available or correct.
"""

import json
import logging
from typing import Any, Dict, List, Optional

from jarvi.ai.extraction.tokens import (
    ClockTime,
    RuleBasedTokenSuggester,
    TemporalToken,
    TemporalTokenParser,
    TokenKind,
    TokenSuggester,
    token_parser,
)
from jarvi.ai.prompts.intent_prompts import TOKEN_SYSTEM_PROMPT, build_token_prompt
from jarvi.ai.providers import AIProvider, get_provider
from jarvi.core.config import settings

logger = logging.getLogger("jarvi.ai.extraction.suggesters")


class InvalidSuggestion(ValueError):
    """The provider answered with something that is not a usable token list."""


def _clock(data: Dict[str, Any]) -> ClockTime:
    hour = int(data["hour"])
    minute = int(data.get("minute") or 0)
    meridiem = data.get("meridiem")
    if meridiem not in (None, "am", "pm"):
        raise InvalidSuggestion(f"bad meridiem {meridiem!r}")
    if not 0 <= hour <= 23 or not 0 <= minute <= 59 or (meridiem and not 1 <= hour <= 12):
        raise InvalidSuggestion(f"bad clock value {data!r}")
    return ClockTime(hour=hour, minute=minute, meridiem=meridiem)


def parse_suggestion(content: str) -> List[TemporalToken]:
    """
    Convert the provider JSON into TemporalTokens.

    Raises:
        InvalidSuggestion: when the document does not match the schema
    """
    try:
        data = json.loads(content)
        raw_tokens = data["tokens"]
    except (json.JSONDecodeError, KeyError, TypeError) as e:
        raise InvalidSuggestion(f"unparseable suggestion: {e}") from e

    tokens = []
    try:
        for position, raw in enumerate(raw_tokens):
            kind = raw.get("kind")
            if kind == "range":
                value = (_clock(raw["start"]), _clock(raw["end"]))
                tokens.append(TemporalToken(TokenKind.RANGE, value, position=position))
            elif kind == "time":
                tokens.append(TemporalToken(TokenKind.TIME_OF_DAY, _clock(raw), position=position))
            elif kind == "duration":
                minutes = int(raw["minutes"])
                if minutes <= 0:
                    raise InvalidSuggestion(f"non-positive duration {minutes}")
                tokens.append(TemporalToken(TokenKind.DURATION_MINUTES, minutes, position=position))
            else:
                raise InvalidSuggestion(f"unknown token kind {kind!r}")
    except InvalidSuggestion:
        raise
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise InvalidSuggestion(f"malformed token: {e}") from e
    return tokens


class LLMTokenSuggester(TokenSuggester):
    """
    Token suggestion delegated to a generative provider.

    Usage:
        suggester = LLMTokenSuggester(GeminiProvider())
        extractor = MultiEventExtractor(suggester=suggester)
    """

    def __init__(self, provider: AIProvider, fallback: Optional[TemporalTokenParser] = None):
        self._provider = provider
        self._fallback = fallback or token_parser

    async def suggest_tokens(self, clause_text: str) -> List[TemporalToken]:
        response = await self._provider.generate_json(
            build_token_prompt(clause_text),
            system_prompt=TOKEN_SYSTEM_PROMPT,
        )
        if not response.success:
            logger.warning(f"Token suggestion failed ({response.error}), using rules")
            return self._fallback.parse(clause_text)

        try:
            tokens = parse_suggestion(response.content)
        except InvalidSuggestion as e:
            logger.warning(f"Discarding token suggestion: {e}")
            return self._fallback.parse(clause_text)

        # The rule parser still vets the clause, so a malformed time the
        # provider silently skipped is reported instead of ignored.
        self._fallback.parse(clause_text)
        return tokens


def create_token_suggester(name: Optional[str] = None) -> TokenSuggester:
    """Suggester for a TOKEN_BACKEND value ("rules", "gemini", "openai")."""
    name = name or settings.TOKEN_BACKEND
    provider = get_provider(name)
    if provider is None:
        return RuleBasedTokenSuggester(token_parser)
    return LLMTokenSuggester(provider)
