"""
Tests for the Calendar Executor.

This module tests:
- Best-effort creation with per-descriptor outcomes
- Duplicate detection before create
- The provider call policy (timeouts, read-only retries)
- Viewing, updating and deleting events by id or title
"""

from datetime import date, datetime, time
from zoneinfo import ZoneInfo

import pytest

from jarvi.ai.extraction.schemas import (
    BoundaryReconciled,
    EventChange,
    EventDescriptor,
    QueryWindow,
    TaskDescriptor,
)
from jarvi.ai.intent.schemas import IntentClassification, IntentType
from jarvi.core.errors import ErrorKind
from jarvi.services.delegation import DelegationEnvelopeBuilder, TargetAgent
from jarvi.services.executors import CalendarExecutor, ExecutionStatus

REFERENCE_DATE = date(2025, 1, 15)

STUDY_BLOCKS = [
    ("Grinding programming for uni", time(15, 30), time(18, 0)),
    ("Break", time(18, 0), time(18, 5)),
    ("Grind more for uni", time(18, 5), time(18, 50)),
]


def _at(hour: int, minute: int = 0) -> datetime:
    return datetime.combine(REFERENCE_DATE, time(hour, minute))


def _envelope(intent, entities, diagnostics=None):
    classification = IntentClassification(intent=intent, confidence=0.9, raw_intent=intent)
    return DelegationEnvelopeBuilder().build("message", classification, entities, diagnostics=diagnostics)


def _create_envelope(blocks=STUDY_BLOCKS, diagnostics=None):
    events = [
        EventDescriptor(title=title, event_date=REFERENCE_DATE, start_time=start, end_time=end, source_clause_order=i)
        for i, (title, start, end) in enumerate(blocks)
    ]
    return _envelope(IntentType.CREATE_EVENT, events, diagnostics)


class TestCreate:
    """Best-effort creation in clause order."""

    @pytest.mark.asyncio
    async def test_all_created(self, calendar_executor, fake_adapter):
        result = await calendar_executor.execute(_create_envelope())

        assert result.status == ExecutionStatus.SUCCESS
        assert result.detail == "3 events created"
        assert fake_adapter.operations() == ["listEvents", "createEvent", "createEvent", "createEvent"]
        assert [e["title"] for e in fake_adapter.events] == [b[0] for b in STUDY_BLOCKS]
        assert [o.provider_ref for o in result.outcomes] == ["evt1", "evt2", "evt3"]

    @pytest.mark.asyncio
    async def test_payload_carries_timezone(self, calendar_executor, fake_adapter):
        await calendar_executor.execute(_create_envelope(STUDY_BLOCKS[:1]))

        payload = fake_adapter.calls[1][1][0]
        assert payload.start == _at(15, 30)
        assert payload.end == _at(18)
        assert payload.timezone == "Europe/Berlin"

    @pytest.mark.asyncio
    async def test_partial_failure_keeps_going(self, calendar_executor, fake_adapter):
        """The second create fails, the third still runs."""
        fake_adapter.fail("createEvent", None, ErrorKind.PROVIDER_AUTH_EXPIRED)

        result = await calendar_executor.execute(_create_envelope())

        assert result.status == ExecutionStatus.FAILED
        assert fake_adapter.operations().count("createEvent") == 3
        assert result.detail == "2 of 3 events created; Break could not be saved: reconnect calendar"
        assert [o.status for o in result.outcomes] == [
            ExecutionStatus.SUCCESS,
            ExecutionStatus.FAILED,
            ExecutionStatus.SUCCESS,
        ]
        assert result.error_kind == ErrorKind.PROVIDER_AUTH_EXPIRED

    @pytest.mark.asyncio
    async def test_duplicate_is_not_created(self, calendar_executor, fake_adapter):
        fake_adapter.add_event("break", _at(18), _at(18, 5))

        result = await calendar_executor.execute(_create_envelope())

        assert fake_adapter.operations().count("createEvent") == 2
        assert result.outcomes[1].error_kind == ErrorKind.DUPLICATE_EVENT
        assert "Break could not be saved: already in your calendar" in result.detail

    @pytest.mark.asyncio
    async def test_same_title_other_time_is_not_duplicate(self, calendar_executor, fake_adapter):
        fake_adapter.add_event("Break", _at(12), _at(12, 30))

        result = await calendar_executor.execute(_create_envelope())

        assert result.succeeded

    @pytest.mark.asyncio
    async def test_duplicates_within_one_message(self, calendar_executor, fake_adapter):
        """An event created earlier in the same message counts as existing."""
        blocks = [("Gym", time(7), time(8)), ("Gym", time(7), time(8))]

        result = await calendar_executor.execute(_create_envelope(blocks))

        assert fake_adapter.operations().count("createEvent") == 1
        assert result.outcomes[1].error_kind == ErrorKind.DUPLICATE_EVENT

    @pytest.mark.asyncio
    async def test_failed_duplicate_check_still_creates(self, calendar_executor, fake_adapter):
        fake_adapter.fail("listEvents", ErrorKind.PROVIDER_AUTH_EXPIRED)

        result = await calendar_executor.execute(_create_envelope(STUDY_BLOCKS[:1]))

        assert result.succeeded
        assert fake_adapter.operations() == ["listEvents", "createEvent"]

    @pytest.mark.asyncio
    async def test_reconciliation_is_reported(self, calendar_executor):
        diagnostic = BoundaryReconciled(clause_order=1, inferred_end=time(18, 10), reconciled_end=time(18, 5))

        result = await calendar_executor.execute(_create_envelope(diagnostics=[diagnostic]))

        assert result.detail == "3 events created (end times adjusted to the next start: 18:10->18:05)"


class TestCallPolicy:
    """Timeouts always, retries only for transient read failures."""

    @pytest.mark.asyncio
    async def test_read_is_retried_once(self, calendar_executor, fake_adapter):
        fake_adapter.fail("listEvents", ErrorKind.PROVIDER_UNAVAILABLE)

        result = await calendar_executor.execute(_create_envelope(STUDY_BLOCKS[:1]))

        assert result.succeeded
        assert fake_adapter.operations() == ["listEvents", "listEvents", "createEvent"]

    @pytest.mark.asyncio
    async def test_read_retry_gives_up(self, calendar_executor, fake_adapter):
        fake_adapter.fail("listEvents", ErrorKind.PROVIDER_RATE_LIMITED, ErrorKind.PROVIDER_RATE_LIMITED)

        result = await calendar_executor.execute(_envelope(IntentType.VIEW_CALENDAR, QueryWindow(window_date=REFERENCE_DATE)))

        assert result.error_kind == ErrorKind.PROVIDER_RATE_LIMITED
        assert fake_adapter.operations() == ["listEvents", "listEvents"]

    @pytest.mark.asyncio
    async def test_mutation_is_not_retried(self, calendar_executor, fake_adapter):
        fake_adapter.fail("createEvent", ErrorKind.PROVIDER_UNAVAILABLE)

        result = await calendar_executor.execute(_create_envelope(STUDY_BLOCKS[:1]))

        assert result.status == ExecutionStatus.FAILED
        assert fake_adapter.operations().count("createEvent") == 1
        assert fake_adapter.events == []

    @pytest.mark.asyncio
    async def test_slow_create_times_out(self, fake_adapter):
        executor = CalendarExecutor(fake_adapter, timeout=0.01, retry_backoff=0.0, timezone="Europe/Berlin")
        fake_adapter.delays["createEvent"] = 0.5

        result = await executor.execute(_create_envelope(STUDY_BLOCKS[:1]))

        assert result.error_kind == ErrorKind.PROVIDER_TIMEOUT
        assert fake_adapter.events == []


class TestView:
    @pytest.mark.asyncio
    async def test_events_sorted_by_start(self, calendar_executor, fake_adapter):
        fake_adapter.add_event("Lunch", _at(12), _at(13))
        fake_adapter.add_event("Gym", _at(7), _at(8))
        fake_adapter.add_event("Tomorrow thing", datetime(2025, 1, 16, 9), datetime(2025, 1, 16, 10))

        result = await calendar_executor.execute(_envelope(IntentType.VIEW_CALENDAR, QueryWindow(window_date=REFERENCE_DATE)))

        assert result.succeeded
        assert result.detail == "Wednesday, January 15:\n07:00-08:00 Gym\n12:00-13:00 Lunch"

    @pytest.mark.asyncio
    async def test_empty_day(self, calendar_executor):
        result = await calendar_executor.execute(_envelope(IntentType.VIEW_CALENDAR, QueryWindow(window_date=REFERENCE_DATE)))

        assert result.detail == "Nothing scheduled on Wednesday, January 15"

    @pytest.mark.asyncio
    async def test_unreadable_calendar(self, calendar_executor, fake_adapter):
        fake_adapter.fail("listEvents", ErrorKind.PROVIDER_AUTH_EXPIRED)

        result = await calendar_executor.execute(_envelope(IntentType.VIEW_CALENDAR, QueryWindow(window_date=REFERENCE_DATE)))

        assert result.detail == "Could not read your calendar: reconnect calendar"


class TestUpdate:
    """Changes resolve exactly one event first."""

    @pytest.mark.asyncio
    async def test_move_by_title(self, calendar_executor, fake_adapter):
        gym = fake_adapter.add_event("Gym", _at(7), _at(8))
        change = EventChange(
            title_reference="gym",
            event_date=REFERENCE_DATE,
            new_start_time=time(18),
            new_end_time=time(19),
        )

        result = await calendar_executor.execute(_envelope(IntentType.UPDATE_EVENT, [change]))

        assert result.succeeded
        assert result.detail == "gym moved to 18:00-19:00"
        assert (gym["start"], gym["end"]) == (_at(18), _at(19))
        assert fake_adapter.operations() == ["listEvents", "updateEvent"]

    @pytest.mark.asyncio
    async def test_start_only_keeps_duration(self, calendar_executor, fake_adapter):
        standup = fake_adapter.add_event("Standup", _at(9), _at(9, 15))
        change = EventChange(title_reference="Standup", event_date=REFERENCE_DATE, new_start_time=time(9, 30))

        result = await calendar_executor.execute(_envelope(IntentType.UPDATE_EVENT, [change]))

        assert result.detail == "Standup moved to 09:30-09:45"
        assert standup["end"] == _at(9, 45)

    @pytest.mark.asyncio
    async def test_rename_by_id(self, calendar_executor, fake_adapter):
        fake_adapter.add_event("Reading", _at(20), _at(21), event_id="abc123")
        change = EventChange(event_id="abc123", new_title="Novel")

        result = await calendar_executor.execute(_envelope(IntentType.UPDATE_EVENT, [change]))

        assert result.detail == 'abc123 renamed to "Novel"'
        assert fake_adapter.operations() == ["updateEvent"]

    @pytest.mark.asyncio
    async def test_start_only_by_id_needs_end(self, calendar_executor, fake_adapter):
        """Without listing, the old duration is unknown."""
        fake_adapter.add_event("Reading", _at(20), _at(21), event_id="abc123")
        change = EventChange(event_id="abc123", event_date=REFERENCE_DATE, new_start_time=time(19))

        result = await calendar_executor.execute(_envelope(IntentType.UPDATE_EVENT, [change]))

        assert result.error_kind == ErrorKind.AMBIGUOUS_EVENT_BOUNDARY
        assert "updateEvent" not in fake_adapter.operations()

    @pytest.mark.asyncio
    async def test_backwards_time(self, calendar_executor, fake_adapter):
        fake_adapter.add_event("Gym", _at(7), _at(8))
        change = EventChange(
            title_reference="Gym",
            event_date=REFERENCE_DATE,
            new_start_time=time(19),
            new_end_time=time(18),
        )

        result = await calendar_executor.execute(_envelope(IntentType.UPDATE_EVENT, [change]))

        assert result.error_kind == ErrorKind.VALIDATION_FAILURE

    @pytest.mark.asyncio
    async def test_not_found(self, calendar_executor, fake_adapter):
        change = EventChange(title_reference="Yoga", event_date=REFERENCE_DATE, new_start_time=time(9))

        result = await calendar_executor.execute(_envelope(IntentType.UPDATE_EVENT, [change]))

        assert result.error_kind == ErrorKind.PROVIDER_NOT_FOUND
        assert result.detail == 'No event "Yoga" on 2025-01-15'

    @pytest.mark.asyncio
    async def test_several_matches(self, calendar_executor, fake_adapter):
        fake_adapter.add_event("Break", _at(10), _at(10, 15))
        fake_adapter.add_event("Break", _at(15), _at(15, 15))
        change = EventChange(title_reference="Break", event_date=REFERENCE_DATE, new_title="Pause")

        result = await calendar_executor.execute(_envelope(IntentType.UPDATE_EVENT, [change]))

        assert result.error_kind == ErrorKind.VALIDATION_FAILURE
        assert "use the event id" in result.detail
        assert "updateEvent" not in fake_adapter.operations()

    @pytest.mark.asyncio
    async def test_nothing_to_change(self, calendar_executor, fake_adapter):
        change = EventChange(title_reference="Gym", event_date=REFERENCE_DATE)

        result = await calendar_executor.execute(_envelope(IntentType.UPDATE_EVENT, [change]))

        assert result.error_kind == ErrorKind.VALIDATION_FAILURE
        assert fake_adapter.calls == []

    @pytest.mark.asyncio
    async def test_missing_reference_makes_no_call(self, calendar_executor, fake_adapter):
        change = EventChange(event_date=REFERENCE_DATE, new_start_time=time(9))

        result = await calendar_executor.execute(_envelope(IntentType.UPDATE_EVENT, [change]))

        assert result.error_kind == ErrorKind.MISSING_EVENT_ID
        assert fake_adapter.calls == []


class TestDelete:
    @pytest.mark.asyncio
    async def test_delete_by_id(self, calendar_executor, fake_adapter):
        fake_adapter.add_event("Reading", _at(20), _at(21), event_id="abc123")

        result = await calendar_executor.execute(_envelope(IntentType.DELETE_EVENT, [EventChange(event_id="abc123")]))

        assert result.succeeded
        assert result.detail == "abc123 deleted"
        assert fake_adapter.operations() == ["deleteEvent"]
        assert fake_adapter.events == []

    @pytest.mark.asyncio
    async def test_delete_by_title(self, calendar_executor, fake_adapter):
        fake_adapter.add_event("Gym", _at(7), _at(8))
        change = EventChange(title_reference="Gym", event_date=REFERENCE_DATE)

        result = await calendar_executor.execute(_envelope(IntentType.DELETE_EVENT, [change]))

        assert result.detail == "Gym deleted"
        assert fake_adapter.events == []

    @pytest.mark.asyncio
    async def test_title_without_date_uses_today_in_calendar_timezone(self, fake_adapter):
        executor = CalendarExecutor(
            fake_adapter,
            timeout=1.0,
            retry_backoff=0.0,
            timezone="Europe/Berlin",
            clock=lambda: REFERENCE_DATE,
        )
        fake_adapter.add_event("Gym", _at(7), _at(8))

        result = await executor.execute(_envelope(IntentType.DELETE_EVENT, [EventChange(title_reference="Gym")]))

        assert result.detail == "Gym deleted"
        assert fake_adapter.events == []

    def test_default_today_follows_timezone(self, fake_adapter):
        executor = CalendarExecutor(fake_adapter, timezone="Pacific/Kiritimati")

        assert executor._today() == datetime.now(ZoneInfo("Pacific/Kiritimati")).date()

    @pytest.mark.asyncio
    async def test_unknown_id(self, calendar_executor, fake_adapter):
        result = await calendar_executor.execute(_envelope(IntentType.DELETE_EVENT, [EventChange(event_id="nope123")]))

        assert result.error_kind == ErrorKind.PROVIDER_NOT_FOUND
        assert result.detail == "Could not delete the event: no matching item was found"


class TestRouting:
    @pytest.mark.asyncio
    async def test_task_intent_is_rejected(self, calendar_executor, fake_adapter):
        """The calendar executor never touches tasks."""
        builder = DelegationEnvelopeBuilder({IntentType.CREATE_TASK: TargetAgent.CALENDAR})
        classification = IntentClassification(intent=IntentType.CREATE_TASK, confidence=0.9, raw_intent=IntentType.CREATE_TASK)
        envelope = builder.build("add task x", classification, TaskDescriptor(title="X"))

        result = await calendar_executor.execute(envelope)

        assert result.error_kind == ErrorKind.VALIDATION_FAILURE
        assert fake_adapter.calls == []
