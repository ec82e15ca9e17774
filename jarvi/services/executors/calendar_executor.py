"""
Calendar Executor - create, view, update and delete calendar events.

create_event is best-effort per descriptor:
- descriptors are processed in source order, one provider call each
- one failure does not stop the remaining descriptors
- each outcome is kept, and the aggregate is Failed on any failure

Before each create the day is listed once; an existing event with the same
title, start and end is reported as DuplicateEvent instead of created.
When that lookup itself fails, the create proceeds.

update_event / delete_event need an event id or a quoted title. A title is
resolved through listEvents on the referenced day and must match exactly
one event.
"""

import logging
from datetime import date, datetime, time, timedelta
from typing import Any, Callable, Dict, List, Optional, Tuple
from zoneinfo import ZoneInfo

from jarvi.ai.extraction.schemas import EventChange, EventDescriptor, QueryWindow
from jarvi.ai.intent.schemas import IntentType
from jarvi.core.config import settings
from jarvi.core.errors import ErrorKind, hint_for
from jarvi.environments.base import EventPayload, ProviderAdapter, summarize_events
from jarvi.services.delegation import DelegationEnvelope, TargetAgent
from jarvi.services.executors.base import (
    DescriptorOutcome,
    ExecutionResult,
    ExecutionStatus,
    Executor,
)

logger = logging.getLogger("jarvi.services.executors.calendar")


def _day_bounds(day: date) -> Tuple[datetime, datetime]:
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)


def _same_slot(existing: Dict[str, Any], title: str, start: datetime, end: datetime) -> bool:
    return (
        str(existing.get("title", "")).strip().lower() == title.strip().lower()
        and existing.get("start") == start
        and existing.get("end") == end
    )


class CalendarExecutor(Executor):
    """
    Usage:
        executor = CalendarExecutor(GoogleWorkspaceAdapter(token))
        result = await executor.execute(envelope)
        print(result.detail)   # "3 events created"
    """

    agent = TargetAgent.CALENDAR

    def __init__(
        self,
        adapter: ProviderAdapter,
        timeout: Optional[float] = None,
        retry_backoff: Optional[float] = None,
        timezone: Optional[str] = None,
        clock: Optional[Callable[[], date]] = None,
    ):
        super().__init__(adapter, timeout=timeout, retry_backoff=retry_backoff)
        self._timezone = timezone or settings.DEFAULT_TIMEZONE
        self._clock = clock or self._today

    def _today(self) -> date:
        return datetime.now(ZoneInfo(self._timezone)).date()

    async def execute(self, envelope: DelegationEnvelope) -> ExecutionResult:
        if envelope.intent == IntentType.CREATE_EVENT:
            result = await self._create_events(envelope.events)
            if result.outcomes and envelope.diagnostics:
                adjusted = ", ".join(
                    f"{d.inferred_end:%H:%M}->{d.reconciled_end:%H:%M}" for d in envelope.diagnostics
                )
                result.detail += f" (end times adjusted to the next start: {adjusted})"
            return result
        if envelope.intent == IntentType.VIEW_CALENDAR:
            return await self._view(envelope.entities)
        if envelope.intent == IntentType.UPDATE_EVENT:
            return await self._update(envelope.changes)
        if envelope.intent == IntentType.DELETE_EVENT:
            return await self._delete(envelope.changes)

        return ExecutionResult.failed(
            ErrorKind.VALIDATION_FAILURE,
            f"Calendar executor cannot handle {envelope.intent.value}",
        )

    # -----------------------------------------------------------------------
    # CREATE
    # -----------------------------------------------------------------------

    async def _create_events(self, events: List[EventDescriptor]) -> ExecutionResult:
        if not events:
            return ExecutionResult.failed(ErrorKind.VALIDATION_FAILURE, "No events to create")

        existing_by_day: Dict[date, Optional[List[Dict[str, Any]]]] = {}
        outcomes = []
        for descriptor in events:
            outcomes.append(await self._create_one(descriptor, existing_by_day))

        result = ExecutionResult.from_outcomes(outcomes, "event", "created")
        logger.info(f"create_event: {result.detail}")
        return result

    async def _create_one(
        self,
        descriptor: EventDescriptor,
        existing_by_day: Dict[date, Optional[List[Dict[str, Any]]]],
    ) -> DescriptorOutcome:
        start = datetime.combine(descriptor.event_date, descriptor.start_time)
        end = datetime.combine(descriptor.event_date, descriptor.end_time)

        if descriptor.event_date not in existing_by_day:
            existing_by_day[descriptor.event_date] = await self._list_day(descriptor.event_date)
        existing = existing_by_day[descriptor.event_date]

        if existing and any(_same_slot(e, descriptor.title, start, end) for e in existing):
            return DescriptorOutcome(
                order=descriptor.source_clause_order,
                title=descriptor.title,
                status=ExecutionStatus.FAILED,
                detail=f"{descriptor.title} {start:%H:%M}-{end:%H:%M} already exists",
                error_kind=ErrorKind.DUPLICATE_EVENT,
            )

        payload = EventPayload(
            title=descriptor.title,
            start=start,
            end=end,
            description=descriptor.description,
            timezone=self._timezone,
        )
        result = await self._call("createEvent", lambda: self.adapter.create_event(payload))
        if not result.ok:
            return DescriptorOutcome(
                order=descriptor.source_clause_order,
                title=descriptor.title,
                status=ExecutionStatus.FAILED,
                detail=result.detail,
                error_kind=result.error_kind,
            )

        if existing is not None:
            existing.append({"title": descriptor.title, "start": start, "end": end})
        return DescriptorOutcome(
            order=descriptor.source_clause_order,
            title=descriptor.title,
            status=ExecutionStatus.SUCCESS,
            detail=f"{start:%H:%M}-{end:%H:%M} {descriptor.title}",
            provider_ref=result.ref,
        )

    async def _list_day(self, day: date) -> Optional[List[Dict[str, Any]]]:
        """Events on day, or None when the lookup failed."""
        time_min, time_max = _day_bounds(day)
        result = await self._call(
            "listEvents",
            lambda: self.adapter.list_events(time_min, time_max),
            read_only=True,
        )
        if not result.ok:
            return None
        return list(result.data or [])

    # -----------------------------------------------------------------------
    # VIEW
    # -----------------------------------------------------------------------

    async def _view(self, window: Any) -> ExecutionResult:
        if not isinstance(window, QueryWindow):
            return ExecutionResult.failed(ErrorKind.VALIDATION_FAILURE, "No date to show")

        time_min, time_max = _day_bounds(window.window_date)
        result = await self._call(
            "listEvents",
            lambda: self.adapter.list_events(time_min, time_max),
            read_only=True,
        )
        if not result.ok:
            return ExecutionResult.failed(
                result.error_kind,
                f"Could not read your calendar: {hint_for(result.error_kind)}",
            )

        events = sorted(result.data or [], key=lambda e: e.get("start") or datetime.min)
        day = f"{window.window_date:%A, %B %d}"
        if not events:
            return ExecutionResult.success(f"Nothing scheduled on {day}", data=[])
        lines = "\n".join(summarize_events(events))
        return ExecutionResult.success(f"{day}:\n{lines}", data=events)

    # -----------------------------------------------------------------------
    # UPDATE / DELETE
    # -----------------------------------------------------------------------

    async def _resolve(self, change: EventChange) -> Tuple[Optional[Dict[str, Any]], Optional[ExecutionResult]]:
        """
        Find the referenced event.

        Returns (event, None) on success or (None, failure). With an event id
        the event dict only carries "id", and no provider call is made.
        """
        if change.event_id:
            return {"id": change.event_id}, None

        if not change.title_reference:
            return None, ExecutionResult.failed(
                ErrorKind.MISSING_EVENT_ID,
                "Which event? Give its id or its title in quotes",
            )

        day = change.event_date or self._clock()
        events = await self._list_day_strict(day)
        if isinstance(events, ExecutionResult):
            return None, events

        wanted = change.title_reference.strip().lower()
        matches = [e for e in events if str(e.get("title", "")).strip().lower() == wanted]
        if not matches:
            return None, ExecutionResult.failed(
                ErrorKind.PROVIDER_NOT_FOUND,
                f'No event "{change.title_reference}" on {day:%Y-%m-%d}',
            )
        if len(matches) > 1:
            return None, ExecutionResult.failed(
                ErrorKind.VALIDATION_FAILURE,
                f'{len(matches)} events are called "{change.title_reference}" on {day:%Y-%m-%d}; use the event id',
            )
        return matches[0], None

    async def _list_day_strict(self, day: date):
        time_min, time_max = _day_bounds(day)
        result = await self._call(
            "listEvents",
            lambda: self.adapter.list_events(time_min, time_max),
            read_only=True,
        )
        if not result.ok:
            return ExecutionResult.failed(
                result.error_kind,
                f"Could not look up the event: {hint_for(result.error_kind)}",
            )
        return list(result.data or [])

    def _changes_for(self, change: EventChange, event: Dict[str, Any]) -> Tuple[Dict[str, Any], Optional[ExecutionResult]]:
        changes: Dict[str, Any] = {}
        if change.new_title:
            changes["title"] = change.new_title

        if change.new_start_time is None:
            return changes, None

        old_start, old_end = event.get("start"), event.get("end")
        day = change.event_date or (old_start.date() if isinstance(old_start, datetime) else None)
        if day is None:
            return changes, ExecutionResult.failed(
                ErrorKind.AMBIGUOUS_EVENT_BOUNDARY,
                "Which day should the event move to?",
            )

        start = datetime.combine(day, change.new_start_time)
        if change.new_end_time is not None:
            end = datetime.combine(day, change.new_end_time)
        elif isinstance(old_start, datetime) and isinstance(old_end, datetime):
            end = start + (old_end - old_start)
        else:
            return changes, ExecutionResult.failed(
                ErrorKind.AMBIGUOUS_EVENT_BOUNDARY,
                "Give the new end time as well, e.g. 6-7pm",
            )

        if end <= start or end.date() != start.date():
            return changes, ExecutionResult.failed(
                ErrorKind.VALIDATION_FAILURE,
                f"The new time {start:%H:%M}-{end:%H:%M} must end after it starts, on the same day",
            )
        changes["start"] = start
        changes["end"] = end
        return changes, None

    async def _update(self, changes: List[EventChange]) -> ExecutionResult:
        if not changes:
            return ExecutionResult.failed(ErrorKind.MISSING_EVENT_ID, "Which event? Give its id or its title in quotes")
        change = changes[0]

        if not (change.new_title or change.new_start_time):
            return ExecutionResult.failed(
                ErrorKind.VALIDATION_FAILURE,
                "Nothing to change: give a new time or a new title in quotes",
            )

        event, failure = await self._resolve(change)
        if failure:
            return failure

        body, failure = self._changes_for(change, event)
        if failure:
            return failure

        event_id = event["id"]
        result = await self._call("updateEvent", lambda: self.adapter.update_event(event_id, body))
        if not result.ok:
            return ExecutionResult.failed(
                result.error_kind,
                f"Could not update the event: {hint_for(result.error_kind)}",
            )

        parts = []
        if "title" in body:
            parts.append(f'renamed to "{body["title"]}"')
        if "start" in body:
            parts.append(f"moved to {body['start']:%H:%M}-{body['end']:%H:%M}")
        label = change.title_reference or event_id
        return ExecutionResult.success(f"{label} {' and '.join(parts)}", provider_ref=result.ref or event_id)

    async def _delete(self, changes: List[EventChange]) -> ExecutionResult:
        if not changes:
            return ExecutionResult.failed(ErrorKind.MISSING_EVENT_ID, "Which event? Give its id or its title in quotes")
        change = changes[0]

        event, failure = await self._resolve(change)
        if failure:
            return failure

        event_id = event["id"]
        result = await self._call("deleteEvent", lambda: self.adapter.delete_event(event_id))
        if not result.ok:
            return ExecutionResult.failed(
                result.error_kind,
                f"Could not delete the event: {hint_for(result.error_kind)}",
            )
        label = change.title_reference or event_id
        return ExecutionResult.success(f"{label} deleted", provider_ref=event_id)
