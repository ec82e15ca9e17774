"""
Delegation Envelope Builder - canonical message for specialized executors.

The builder is a pure construction step. It chooses the target executor
from an explicit intent -> agent table handed to it at construction time
(no ambient registry) and guarantees that the envelope's message is always
a plain string.

Wire shape (what executors and logs see):
    {
        "message": "<original text>",
        "targetAgent": "calendar_executor",
        "intent": "create_event",
        "entities": [{"title": ..., "date": ..., "startTime": ..., ...}],
        "diagnostics": [...]
    }
"""

import json
import logging
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from jarvi.ai.extraction.schemas import (
    BoundaryReconciled,
    EventChange,
    EventDescriptor,
    QueryWindow,
    RawQuery,
    TaskDescriptor,
)
from jarvi.ai.intent.schemas import IntentClassification, IntentType
from jarvi.core.errors import UnclassifiedIntent

logger = logging.getLogger("jarvi.services.delegation")


class TargetAgent(str, Enum):
    CALENDAR = "calendar_executor"
    TASK = "task_executor"


# general_query is intentionally absent: it is answered inline.
DEFAULT_ROUTES: Dict[IntentType, TargetAgent] = {
    IntentType.CREATE_EVENT: TargetAgent.CALENDAR,
    IntentType.VIEW_CALENDAR: TargetAgent.CALENDAR,
    IntentType.UPDATE_EVENT: TargetAgent.CALENDAR,
    IntentType.DELETE_EVENT: TargetAgent.CALENDAR,
    IntentType.CREATE_TASK: TargetAgent.TASK,
    IntentType.VIEW_TASKS: TargetAgent.TASK,
    IntentType.MARK_TASK_COMPLETE: TargetAgent.TASK,
}

Entities = Union[
    List[EventDescriptor],
    List[EventChange],
    TaskDescriptor,
    QueryWindow,
    RawQuery,
]


def canonicalize_message(value: Any) -> str:
    """Serialize any non-string payload to a JSON string."""
    if isinstance(value, str):
        return value
    if isinstance(value, BaseModel):
        return value.model_dump_json(by_alias=True)
    return json.dumps(value, default=str, ensure_ascii=False)


class DelegationEnvelope(BaseModel):
    """
    Immutable hand-off from interpretation to an executor.

    message is always a str: anything else is serialized at construction.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    target_agent: TargetAgent = Field(..., alias="targetAgent")
    intent: IntentType
    entities: Entities
    message: str
    user_id: Optional[str] = Field(default=None, alias="userId")
    diagnostics: List[BoundaryReconciled] = Field(default_factory=list)

    @field_validator("message", mode="before")
    @classmethod
    def _canonicalize(cls, value: Any) -> str:
        return canonicalize_message(value)

    @property
    def events(self) -> List[EventDescriptor]:
        if isinstance(self.entities, list):
            return [e for e in self.entities if isinstance(e, EventDescriptor)]
        return []

    @property
    def changes(self) -> List[EventChange]:
        if isinstance(self.entities, list):
            return [e for e in self.entities if isinstance(e, EventChange)]
        return []

    def to_wire(self) -> Dict[str, Any]:
        data = self.model_dump(mode="json", by_alias=True, exclude={"user_id"})
        if not data["diagnostics"]:
            data.pop("diagnostics")
        return data


class DelegationEnvelopeBuilder:
    """
    Builds envelopes from a classification and its extracted entities.

    Usage:
        builder = DelegationEnvelopeBuilder(DEFAULT_ROUTES)
        envelope = builder.build(text, classification, result.events, result.diagnostics)
    """

    def __init__(self, routes: Optional[Mapping[IntentType, TargetAgent]] = None):
        self._routes = dict(DEFAULT_ROUTES if routes is None else routes)

    def route_for(self, intent: IntentType) -> Optional[TargetAgent]:
        return self._routes.get(intent)

    def build(
        self,
        message: Any,
        classification: IntentClassification,
        entities: Entities,
        diagnostics: Optional[List[BoundaryReconciled]] = None,
        user_id: Optional[str] = None,
    ) -> DelegationEnvelope:
        """
        Raises:
            UnclassifiedIntent: when no executor is mapped to the intent
        """
        target = self.route_for(classification.intent)
        if target is None:
            raise UnclassifiedIntent(
                f"No executor handles intent '{classification.intent.value}'"
            )

        envelope = DelegationEnvelope(
            target_agent=target,
            intent=classification.intent,
            entities=entities,
            message=message,
            user_id=user_id,
            diagnostics=diagnostics or [],
        )
        logger.debug(f"Built envelope for {target.value}: {classification.intent.value}")
        return envelope
