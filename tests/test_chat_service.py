"""
Tests for the Chat Service end to end (rules backend, fake provider).

This module tests:
- The full create_event flow from raw text to provider calls
- Direct answers for general queries
- Error responses that name the offending clause
- Task and update flows
- Pipeline counters
"""

from datetime import date, datetime, time
from unittest.mock import AsyncMock, MagicMock

import pytest

from jarvi.ai.extraction.extractor import MultiEventExtractor
from jarvi.ai.intent.classifier import IntentClassifier, RuleBasedClassificationBackend
from jarvi.core.errors import ErrorKind
from jarvi.services.chat_service import CAPABILITIES_TEXT, ChatService, ResponseType
from jarvi.services.delegation import TargetAgent
from jarvi.services.dispatcher import UserOrderedDispatcher

REFERENCE_DATE = date(2025, 1, 15)

MULTI_EVENT_MESSAGE = (
    "3:30 - 6:00 - grinding programming for uni - and break of 5 minutes afterwards, "
    "as a puffer - 6:05-6:50 - let's grind more for uni"
)


def _at(hour: int, minute: int = 0) -> datetime:
    return datetime.combine(REFERENCE_DATE, time(hour, minute))


class TestCreateEvents:
    """Raw text in, provider events out."""

    @pytest.mark.asyncio
    async def test_study_session_is_scheduled(self, chat_service, fake_adapter):
        response = await chat_service.process(MULTI_EVENT_MESSAGE, user_id="user-1")

        assert response.success is True
        assert response.type == ResponseType.DELEGATION
        assert response.agent_response == "3 events created"
        assert [(e["title"], e["start"], e["end"]) for e in fake_adapter.events] == [
            ("Grinding programming for uni", _at(15, 30), _at(18)),
            ("Break", _at(18), _at(18, 5)),
            ("Grind more for uni", _at(18, 5), _at(18, 50)),
        ]

    @pytest.mark.asyncio
    async def test_reconciliation_is_reported(self, chat_service, fake_adapter):
        response = await chat_service.process(
            "3:30 - 6:00 study - break of 10 minutes - 6:05-6:50 review",
            user_id="user-1",
        )

        assert response.success is True
        assert response.agent_response.endswith("(end times adjusted to the next start: 18:10->18:05)")
        assert fake_adapter.events[1]["end"] == _at(18, 5)

    @pytest.mark.asyncio
    async def test_partial_failure(self, chat_service, fake_adapter):
        fake_adapter.fail("createEvent", None, ErrorKind.PROVIDER_AUTH_EXPIRED)

        response = await chat_service.process(MULTI_EVENT_MESSAGE, user_id="user-1")

        assert response.success is False
        assert response.type == ResponseType.DELEGATION
        assert response.agent_response == "2 of 3 events created; Break could not be saved: reconnect calendar"

    @pytest.mark.asyncio
    async def test_missing_end_creates_nothing(self, chat_service, fake_adapter):
        response = await chat_service.process("schedule dentist at 3pm", user_id="user-1")

        assert response.success is False
        assert response.type == ResponseType.ERROR
        assert '(offending clause: "dentist at 3pm")' in response.agent_response
        assert fake_adapter.calls == []


class TestDirectAndErrors:
    @pytest.mark.asyncio
    async def test_general_query(self, chat_service, fake_adapter):
        response = await chat_service.process("what can you do", user_id="user-1")

        assert response.success is True
        assert response.type == ResponseType.DIRECT
        assert response.agent_response == CAPABILITIES_TEXT
        assert fake_adapter.calls == []

    @pytest.mark.asyncio
    async def test_vague_delete_is_rejected(self, chat_service, fake_adapter):
        fake_adapter.add_event("Gym", _at(7), _at(8))

        response = await chat_service.process("delete the last event", user_id="user-1")

        assert response.type == ResponseType.ERROR
        assert response.agent_response.startswith("Which event?")
        assert fake_adapter.calls == []
        assert len(fake_adapter.events) == 1

    @pytest.mark.asyncio
    async def test_unexpected_exception(self, fake_adapter, monitor):
        executor = MagicMock()
        executor.agent = TargetAgent.CALENDAR
        executor.execute = AsyncMock(side_effect=RuntimeError("boom"))
        service = ChatService(
            executors=[executor],
            classifier=IntentClassifier(backend=RuleBasedClassificationBackend(), threshold=0.6),
            extractor=MultiEventExtractor(day_start_hour=7),
            dispatcher=UserOrderedDispatcher(),
            monitor=monitor,
            clock=lambda: REFERENCE_DATE,
            day_start_hour=7,
        )

        response = await service.process("yoga 5-6pm", user_id="user-1")

        assert response.success is False
        assert response.type == ResponseType.ERROR
        assert "Nothing was changed" in response.agent_response
        assert monitor.get_stats().by_error_kind == {"validation_failure": 1}

    @pytest.mark.asyncio
    async def test_missing_executor(self, fake_adapter, calendar_executor, monitor):
        service = ChatService(
            executors=[calendar_executor],
            classifier=IntentClassifier(backend=RuleBasedClassificationBackend(), threshold=0.6),
            extractor=MultiEventExtractor(day_start_hour=7),
            dispatcher=UserOrderedDispatcher(),
            monitor=monitor,
            clock=lambda: REFERENCE_DATE,
        )

        response = await service.process("add task buy milk", user_id="user-1")

        assert response.type == ResponseType.ERROR
        assert "task_executor" in response.agent_response
        assert fake_adapter.calls == []


class TestCalendarFlows:
    @pytest.mark.asyncio
    async def test_view_today(self, chat_service, fake_adapter):
        fake_adapter.add_event("Gym", _at(7), _at(8))

        response = await chat_service.process("what's on my calendar today", user_id="user-1")

        assert response.agent_response == "Wednesday, January 15:\n07:00-08:00 Gym"

    @pytest.mark.asyncio
    async def test_view_tomorrow(self, chat_service):
        response = await chat_service.process("what's on my calendar tomorrow", user_id="user-1")

        assert response.agent_response == "Nothing scheduled on Thursday, January 16"

    @pytest.mark.asyncio
    async def test_move_by_title(self, chat_service, fake_adapter):
        gym = fake_adapter.add_event("Gym", _at(7), _at(8))

        response = await chat_service.process("move \"Gym\" to 6-7pm", user_id="user-1")

        assert response.success is True
        assert response.agent_response == "Gym moved to 18:00-19:00"
        assert (gym["start"], gym["end"]) == (_at(18), _at(19))


class TestTaskFlows:
    @pytest.mark.asyncio
    async def test_create_task(self, chat_service, fake_adapter):
        response = await chat_service.process("add task call the dentist due friday", user_id="user-1")

        assert response.success is True
        assert response.agent_response == "Task created: Call the dentist (due 2025-01-17)"
        assert fake_adapter.tasks[0]["title"] == "Call the dentist"

    @pytest.mark.asyncio
    async def test_mark_complete(self, chat_service, fake_adapter):
        task = fake_adapter.add_task("Call doctor")

        response = await chat_service.process("mark \"call doctor\" as done", user_id="user-1")

        assert response.agent_response == "Marked as done: Call doctor"
        assert task["status"] == "completed"

    @pytest.mark.asyncio
    async def test_mark_complete_without_title(self, chat_service, fake_adapter):
        response = await chat_service.process("mark it as done", user_id="user-1")

        assert response.type == ResponseType.ERROR
        assert response.agent_response.startswith("Which task?")
        assert fake_adapter.calls == []

    @pytest.mark.asyncio
    async def test_show_tasks(self, chat_service, fake_adapter):
        fake_adapter.add_task("Buy milk")

        response = await chat_service.process("show my tasks", user_id="user-1")

        assert response.agent_response == "Open tasks:\n- Buy milk"


class TestMonitoring:
    @pytest.mark.asyncio
    async def test_counters(self, chat_service, monitor):
        await chat_service.process(MULTI_EVENT_MESSAGE, user_id="user-1")
        await chat_service.process("delete the last event", user_id="user-1")

        stats = monitor.get_stats()

        assert stats.messages_processed == 2
        assert stats.successful == 1
        assert stats.failed == 1
        assert stats.events_extracted == 3
        assert stats.by_intent == {"create_event": 1, "delete_event": 1}
        assert stats.by_error_kind == {"missing_event_id": 1}

    @pytest.mark.asyncio
    async def test_request_id_is_returned(self, chat_service):
        response = await chat_service.process("what can you do", user_id="user-1")

        assert response.request_id
        assert response.model_dump(by_alias=True)["requestId"] == response.request_id
