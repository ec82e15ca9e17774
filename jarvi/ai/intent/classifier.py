"""
Intent Classifier - maps a chat message to one IntentType.

Architecture:
=============
The classifier wraps a pluggable ClassificationBackend:

- RuleBasedClassificationBackend: keyword rules, deterministic, always on
- LLMClassificationBackend: asks a generative provider and falls back to
  the rules when the provider fails, times out or answers garbage

Whatever the backend says, two policies are applied here:

1. Confidence below INTENT_CONFIDENCE_THRESHOLD resolves to general_query,
   so a shaky guess can never trigger a mutating operation.
2. update_event / delete_event must carry an explicit event reference
   (id or quoted title). Its absence is recorded in missing_fields and
   later surfaces as MissingEventId.
"""

import asyncio
import json
import logging
import re
from abc import ABC, abstractmethod
from typing import List, Optional, Pattern, Tuple

from jarvi.ai.extraction.references import find_event_id, find_quoted
from jarvi.ai.extraction.tokens import RANGE_RE
from jarvi.ai.intent.schemas import (
    REFERENCE_INTENTS,
    IntentClassification,
    IntentType,
)
from jarvi.ai.prompts.intent_prompts import INTENT_SYSTEM_PROMPT, build_intent_prompt
from jarvi.ai.providers import AIProvider, get_provider
from jarvi.core.config import settings

logger = logging.getLogger("jarvi.ai.intent")

Verdict = Tuple[IntentType, float]


class ClassificationBackend(ABC):
    """classify(text) -> (intent, confidence)"""

    name: str = "backend"

    @abstractmethod
    async def classify(self, text: str) -> Verdict:
        pass


# ---------------------------------------------------------------------------
# RULE-BASED BACKEND
# ---------------------------------------------------------------------------

_EVENT_NOUN = r"(?:events?|meetings?|appointments?|calendar|sessions?|blocks?|class|lecture|call)"
_TASK_NOUN = r"(?:tasks?|to-?dos?|reminders?)"


def _rx(pattern: str) -> Pattern:
    return re.compile(pattern, re.IGNORECASE)


def _has_time_range(text: str) -> bool:
    return any(
        m.group("m1") or m.group("m2") or m.group("p1") or m.group("p2")
        for m in RANGE_RE.finditer(text)
    )


# (intent, pattern, confidence). The highest confidence wins; on a tie the
# earlier rule wins.
RULES: List[Tuple[IntentType, Pattern, float]] = [
    (IntentType.GENERAL_QUERY, _rx(r"\bwhat\s+can\s+you\s+do\b|^\s*help\b[\s?!.]*$|\bcapabilities\b|^\s*(?:hi|hello|hey|thanks?)\b[\s!.]*$"), 0.9),

    (IntentType.MARK_TASK_COMPLETE, _rx(rf"\b(?:mark|check\s+off|tick\s+off)\b.*\b(?:done|complete|completed|finished)\b"), 0.9),
    (IntentType.MARK_TASK_COMPLETE, _rx(rf"\b(?:complete|finish(?:ed)?|done\s+with)\b.*\b{_TASK_NOUN}\b|\b{_TASK_NOUN}\b.*\b(?:is\s+)?(?:done|completed|finished)\b"), 0.85),
    (IntentType.VIEW_TASKS, _rx(rf"\b(?:show|list|what|which|see|view|get|any)\b.*\b{_TASK_NOUN}\b"), 0.85),
    (IntentType.CREATE_TASK, _rx(rf"\b(?:create|add|new|make|put)\b.*\b{_TASK_NOUN}\b|\bremind\s+me\s+to\b|^\s*{_TASK_NOUN}\s*[:\-]"), 0.9),

    (IntentType.DELETE_EVENT, _rx(rf"\b(?:delete|remove|cancel|drop|clear)\b(?!.*\b{_TASK_NOUN}\b)"), 0.7),
    (IntentType.DELETE_EVENT, _rx(rf"\b(?:delete|remove|cancel|drop)\b.*(?:\b{_EVENT_NOUN}\b|\bid\b|#\w|[\"“])(?!.*\b{_TASK_NOUN}\b)"), 0.9),
    (IntentType.UPDATE_EVENT, _rx(r"\b(?:move|reschedule|postpone|push\s+back|shift|rename)\b"), 0.8),
    (IntentType.UPDATE_EVENT, _rx(rf"\b(?:change|update|edit|modify)\b.*(?:\b{_EVENT_NOUN}\b|\btime\b|\bid\b|#\w|[\"“])(?!.*\b{_TASK_NOUN}\b)"), 0.9),

    (IntentType.VIEW_CALENDAR, _rx(rf"\b(?:show|view|see|check|list|display)\b.*\b(?:calendar|schedule|agenda|{_EVENT_NOUN})\b"), 0.85),
    (IntentType.VIEW_CALENDAR, _rx(r"\bwhat(?:'s|\s+is)?\s+(?:on|in)\s+(?:my\s+)?(?:calendar|schedule|agenda)\b|\bwhat\s+do\s+i\s+have\b|\bam\s+i\s+free\b"), 0.9),

    (IntentType.CREATE_EVENT, _rx(rf"\b(?:create|add|schedule|book|plan|put|block|set\s+up)\b.*\b{_EVENT_NOUN}\b"), 0.9),
    (IntentType.CREATE_EVENT, _rx(r"\b(?:schedule|book)\b"), 0.75),
    (IntentType.CREATE_EVENT, _rx(r"\b(?:break|pause|puffer|buffer)\b.*\b\d+\s*(?:minutes?|mins?)\b"), 0.7),
]


class RuleBasedClassificationBackend(ClassificationBackend):
    """
    Deterministic keyword classifier.

    Usage:
        backend = RuleBasedClassificationBackend()
        await backend.classify("schedule a dentist appointment 3-4pm")
        # (IntentType.CREATE_EVENT, 0.9)
    """

    name = "rules"

    def __init__(self, rules: Optional[List[Tuple[IntentType, Pattern, float]]] = None):
        self._rules = rules if rules is not None else RULES

    async def classify(self, text: str) -> Verdict:
        return self.classify_sync(text)

    def classify_sync(self, text: str) -> Verdict:
        best: Verdict = (IntentType.GENERAL_QUERY, 0.3)
        for intent, pattern, confidence in self._rules:
            if confidence > best[1] and pattern.search(text):
                best = (intent, confidence)

        # Explicit time ranges without a stronger signal mean scheduling
        if best[1] < 0.8 and best[0] not in REFERENCE_INTENTS and _has_time_range(text):
            best = (IntentType.CREATE_EVENT, 0.8)
        return best


# ---------------------------------------------------------------------------
# GENERATIVE BACKEND
# ---------------------------------------------------------------------------


class LLMClassificationBackend(ClassificationBackend):
    """
    Classification delegated to a generative provider.

    Any failure (provider error, non-JSON answer, missing fields) falls back
    to the rule-based backend. An intent label outside the closed set is
    reported with confidence 0.0, which the threshold turns into
    general_query.
    """

    name = "llm"

    def __init__(self, provider: AIProvider, fallback: Optional[ClassificationBackend] = None):
        self._provider = provider
        self._fallback = fallback or RuleBasedClassificationBackend()

    async def classify(self, text: str) -> Verdict:
        response = await self._provider.generate_json(
            build_intent_prompt(text),
            system_prompt=INTENT_SYSTEM_PROMPT,
        )
        if not response.success:
            logger.warning(f"LLM classification failed ({response.error}), using rules")
            return await self._fallback.classify(text)

        try:
            data = json.loads(response.content)
            label = str(data["intent"]).strip().lower()
            confidence = float(data.get("confidence", 0.0))
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"Unusable LLM classification ({e}), using rules")
            return await self._fallback.classify(text)

        try:
            intent = IntentType(label)
        except ValueError:
            logger.warning(f"LLM returned unknown intent '{label}'")
            return IntentType.GENERAL_QUERY, 0.0

        return intent, min(max(confidence, 0.0), 1.0)


def create_classification_backend(name: Optional[str] = None) -> ClassificationBackend:
    """Backend for a CLASSIFIER_BACKEND value ("rules", "gemini", "openai")."""
    name = name or settings.CLASSIFIER_BACKEND
    provider = get_provider(name)
    if provider is None:
        return RuleBasedClassificationBackend()
    return LLMClassificationBackend(provider)


# ---------------------------------------------------------------------------
# CLASSIFIER
# ---------------------------------------------------------------------------


class IntentClassifier:
    """
    Threshold and reference policy on top of a ClassificationBackend.

    Usage:
        classifier = IntentClassifier(threshold=0.6)
        result = await classifier.classify("move \"Gym\" to 6-7pm")
        result.intent           # IntentType.UPDATE_EVENT
        result.event_reference  # "Gym"
    """

    def __init__(
        self,
        backend: Optional[ClassificationBackend] = None,
        threshold: Optional[float] = None,
        timeout: Optional[float] = None,
        fallback: Optional[ClassificationBackend] = None,
    ):
        self._backend = backend or create_classification_backend()
        self._fallback = fallback or RuleBasedClassificationBackend()
        self._threshold = settings.INTENT_CONFIDENCE_THRESHOLD if threshold is None else threshold
        self._timeout = timeout or settings.AI_REQUEST_TIMEOUT

    @property
    def threshold(self) -> float:
        return self._threshold

    async def classify(self, text: str) -> IntentClassification:
        raw_intent, confidence = await self._run_backend(text)

        intent = raw_intent
        reasoning = f"{self._backend.name}: {raw_intent.value} ({confidence:.2f})"
        if confidence < self._threshold:
            intent = IntentType.GENERAL_QUERY
            reasoning += f", below threshold {self._threshold:.2f}"
            logger.info(f"Low confidence {confidence:.2f} for {raw_intent.value}, using general_query")

        reference = None
        missing: List[str] = []
        if intent in REFERENCE_INTENTS:
            reference = find_event_id(text) or find_quoted(text)
            if reference is None:
                missing.append("event_id")

        return IntentClassification(
            intent=intent,
            confidence=confidence,
            raw_intent=raw_intent,
            event_reference=reference,
            missing_fields=missing,
            reasoning=reasoning,
        )

    async def _run_backend(self, text: str) -> Verdict:
        if isinstance(self._backend, RuleBasedClassificationBackend):
            return await self._backend.classify(text)
        try:
            return await asyncio.wait_for(self._backend.classify(text), timeout=self._timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Classification timed out after {self._timeout}s, using rules")
            return await self._fallback.classify(text)
