"""
Chat Service - the inbound entry point of the delegation core.

Architecture:
=============
```
{text, userId}
      │
      ▼
UserOrderedDispatcher      ← per-user FIFO, other users run concurrently
      │
      ▼
IntentClassifier           ← general_query is answered here, inline
      │
      ▼
extraction by intent       ← events / change / task / date window
      │
      ▼
DelegationEnvelopeBuilder  ← targetAgent from the route table
      │
      ▼
CalendarExecutor | TaskExecutor
      │
      ▼
{success, type, agentResponse}
```

Every path ends in a ChatResponse. Interpretation failures (JarviError)
become type="error" with the explanation and the offending clause;
anything unexpected is logged with its traceback and reported the same
way, so the per-user queue never sees an exception.
"""

import logging
import time
from datetime import date, datetime
from typing import Callable, Dict, Iterable, List, Optional, Tuple
from zoneinfo import ZoneInfo

from pydantic import BaseModel, ConfigDict, Field

from jarvi.ai.extraction.dates import resolve_date
from jarvi.ai.extraction.extractor import MultiEventExtractor
from jarvi.ai.extraction.references import parse_event_change
from jarvi.ai.extraction.schemas import (
    BoundaryReconciled,
    QueryWindow,
    RawQuery,
    TaskDescriptor,
)
from jarvi.ai.extraction.suggesters import create_token_suggester
from jarvi.ai.extraction.tasks import extract_task, extract_task_reference
from jarvi.ai.intent.classifier import IntentClassifier
from jarvi.ai.intent.schemas import IntentClassification, IntentType
from jarvi.core.config import settings
from jarvi.core.errors import (
    ErrorKind,
    JarviError,
    MissingEventId,
    UnclassifiedIntent,
    ValidationFailure,
)
from jarvi.monitoring import PipelineMonitor, pipeline_monitor
from jarvi.services.delegation import DelegationEnvelopeBuilder, Entities, TargetAgent
from jarvi.services.dispatcher import UserOrderedDispatcher
from jarvi.services.executors.base import Executor

logger = logging.getLogger("jarvi.services.chat")


CAPABILITIES_TEXT = (
    "I can manage your calendar and your tasks.\n"
    "Calendar: create one or several events in one message "
    "(\"3:30-6:00 study, then a 5 minute break, 6:05-6:50 more study\"), "
    "show a day (\"what's on my calendar tomorrow\"), "
    "move or rename an event and delete one "
    "(refer to it by id or by its title in quotes).\n"
    "Tasks: add a task (\"add task call the dentist due Friday\"), "
    "list open tasks and mark one as done."
)


class ResponseType:
    DELEGATION = "delegation"
    DIRECT = "direct"
    ERROR = "error"


class ChatResponse(BaseModel):
    """
    Outbound contract.

    Example:
    {
        "success": true,
        "type": "delegation",
        "agentResponse": "3 events created"
    }
    """
    model_config = ConfigDict(populate_by_name=True)

    success: bool
    type: str
    agent_response: Optional[str] = Field(default=None, alias="agentResponse")
    request_id: Optional[str] = Field(default=None, alias="requestId")


def _today() -> date:
    return datetime.now(ZoneInfo(settings.DEFAULT_TIMEZONE)).date()


class ChatService:
    """
    Usage:
        service = ChatService(executors=[CalendarExecutor(adapter), TaskExecutor(adapter)])
        response = await service.process("gym 7-8am tomorrow", user_id="u1")
        response.agent_response  # "1 event created"
    """

    def __init__(
        self,
        executors: Iterable[Executor],
        classifier: Optional[IntentClassifier] = None,
        extractor: Optional[MultiEventExtractor] = None,
        builder: Optional[DelegationEnvelopeBuilder] = None,
        dispatcher: Optional[UserOrderedDispatcher] = None,
        monitor: Optional[PipelineMonitor] = None,
        clock: Optional[Callable[[], date]] = None,
        day_start_hour: Optional[int] = None,
    ):
        self._executors: Dict[TargetAgent, Executor] = {e.agent: e for e in executors}
        self._classifier = classifier or IntentClassifier()
        self._extractor = extractor or MultiEventExtractor(suggester=create_token_suggester())
        self._builder = builder or DelegationEnvelopeBuilder()
        self._dispatcher = dispatcher or UserOrderedDispatcher()
        self._monitor = monitor or pipeline_monitor
        self._clock = clock or _today
        self._day_start_hour = settings.DAY_START_HOUR if day_start_hour is None else day_start_hour

    async def process(self, text: str, user_id: str) -> ChatResponse:
        """Handle one message in the user's arrival order."""
        return await self._dispatcher.run(user_id, lambda: self._handle(text, user_id))

    async def _handle(self, text: str, user_id: str) -> ChatResponse:
        start_time = time.time()
        request_id = self._monitor.new_request_id()
        self._monitor.track_message(request_id, user_id, text)

        def elapsed_ms() -> float:
            return (time.time() - start_time) * 1000

        try:
            classification = await self._classifier.classify(text)
            self._monitor.track_intent(
                request_id,
                intent=classification.intent.value,
                confidence=classification.confidence,
                raw_intent=classification.raw_intent.value if classification.raw_intent else None,
                missing_fields=classification.missing_fields,
            )

            if classification.intent == IntentType.GENERAL_QUERY:
                self._monitor.track_execution(request_id, None, True, elapsed_ms(), "capabilities")
                return ChatResponse(
                    success=True,
                    type=ResponseType.DIRECT,
                    agent_response=CAPABILITIES_TEXT,
                    request_id=request_id,
                )

            if "event_id" in classification.missing_fields:
                raise MissingEventId(
                    "Which event? Give its id (id abc123) or its title in quotes",
                    clause=text.strip(),
                )

            entities, diagnostics = await self._extract(classification, text)
            self._track_entities(request_id, entities, diagnostics)

            envelope = self._builder.build(
                text,
                classification,
                entities,
                diagnostics=diagnostics,
                user_id=user_id,
            )
            executor = self._executors.get(envelope.target_agent)
            if executor is None:
                raise UnclassifiedIntent(f"No executor is registered for {envelope.target_agent.value}")

            logger.info(f"[{request_id}] Delegating {envelope.intent.value} to {envelope.target_agent.value}")
            result = await executor.execute(envelope)

            self._monitor.track_execution(
                request_id,
                envelope.target_agent.value,
                result.succeeded,
                elapsed_ms(),
                detail=result.detail,
                error_kind=result.error_kind.value if result.error_kind else None,
            )
            return ChatResponse(
                success=result.succeeded,
                type=ResponseType.DELEGATION,
                agent_response=result.detail,
                request_id=request_id,
            )

        except JarviError as e:
            self._monitor.track_error(
                request_id,
                stage="interpretation",
                error_kind=e.kind.value,
                message=e.message,
                latency_ms=elapsed_ms(),
                clause=e.clause,
            )
            return ChatResponse(
                success=False,
                type=ResponseType.ERROR,
                agent_response=e.user_message(),
                request_id=request_id,
            )

        except Exception as e:
            logger.error(f"[{request_id}] Unexpected failure: {e}", exc_info=True)
            self._monitor.track_error(
                request_id,
                stage="unexpected",
                error_kind=ErrorKind.VALIDATION_FAILURE.value,
                message=str(e),
                latency_ms=elapsed_ms(),
            )
            return ChatResponse(
                success=False,
                type=ResponseType.ERROR,
                agent_response="Something went wrong while handling your message. Nothing was changed.",
                request_id=request_id,
            )

    # -----------------------------------------------------------------------
    # EXTRACTION BY INTENT
    # -----------------------------------------------------------------------

    async def _extract(
        self,
        classification: IntentClassification,
        text: str,
    ) -> Tuple[Entities, List[BoundaryReconciled]]:
        intent = classification.intent
        reference = self._clock()

        if intent == IntentType.CREATE_EVENT:
            result = await self._extractor.extract(text, reference=reference)
            return result.events, list(result.diagnostics)

        if intent == IntentType.VIEW_CALENDAR:
            return QueryWindow(window_date=resolve_date(text, reference) or reference), []

        if intent in (IntentType.UPDATE_EVENT, IntentType.DELETE_EVENT):
            return [parse_event_change(text, reference, day_start_hour=self._day_start_hour)], []

        if intent == IntentType.CREATE_TASK:
            return extract_task(text, reference), []

        if intent == IntentType.VIEW_TASKS:
            day = resolve_date(text, reference)
            if day is None:
                return RawQuery(text=text), []
            return QueryWindow(window_date=day), []

        if intent == IntentType.MARK_TASK_COMPLETE:
            title = extract_task_reference(text)
            if not title:
                raise ValidationFailure(
                    "Which task? Give its title, e.g. mark \"call the dentist\" as done",
                    clause=text.strip(),
                )
            return TaskDescriptor(title=title), []

        raise UnclassifiedIntent(f"No extraction for intent '{intent.value}'")

    def _track_entities(self, request_id: str, entities: Entities, diagnostics: List[BoundaryReconciled]) -> None:
        items = entities if isinstance(entities, list) else [entities]
        titles = [getattr(item, "title", None) or getattr(item, "title_reference", None) or "" for item in items]
        self._monitor.track_extraction(request_id, len(items), titles)
        for d in diagnostics:
            self._monitor.track_reconciliation(
                request_id,
                d.clause_order,
                d.inferred_end.strftime("%H:%M"),
                d.reconciled_end.strftime("%H:%M"),
            )
