"""
Intent Schemas - closed intent set and classification result.
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class IntentType(str, Enum):
    """
    Every message resolves to exactly one of these.

    general_query is the safe fallback: it never mutates anything.
    """
    CREATE_EVENT = "create_event"
    VIEW_CALENDAR = "view_calendar"
    UPDATE_EVENT = "update_event"
    DELETE_EVENT = "delete_event"
    CREATE_TASK = "create_task"
    VIEW_TASKS = "view_tasks"
    MARK_TASK_COMPLETE = "mark_task_complete"
    GENERAL_QUERY = "general_query"


MUTATING_INTENTS = frozenset({
    IntentType.CREATE_EVENT,
    IntentType.UPDATE_EVENT,
    IntentType.DELETE_EVENT,
    IntentType.CREATE_TASK,
    IntentType.MARK_TASK_COMPLETE,
})

# Intents that must name an existing event
REFERENCE_INTENTS = frozenset({IntentType.UPDATE_EVENT, IntentType.DELETE_EVENT})


class IntentClassification(BaseModel):
    """
    Classifier output.

    Attributes:
        intent: Final intent after the confidence threshold
        confidence: Backend confidence (0.0 - 1.0)
        raw_intent: What the backend said before the threshold was applied
        event_reference: Event id or quoted title for update/delete
        missing_fields: Required fields the message did not supply
        reasoning: Short explanation from the backend
    """
    intent: IntentType
    confidence: float = Field(..., ge=0.0, le=1.0)
    raw_intent: IntentType
    event_reference: Optional[str] = None
    missing_fields: List[str] = Field(default_factory=list)
    reasoning: Optional[str] = None

    @property
    def is_mutating(self) -> bool:
        return self.intent in MUTATING_INTENTS
