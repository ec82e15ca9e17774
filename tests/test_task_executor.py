"""
Tests for the Task Executor.

This module tests:
- Task creation with due date and priority notes
- Listing open tasks, optionally up to a date
- Completing a task by title reference
"""

from datetime import date

import pytest

from jarvi.ai.extraction.schemas import QueryWindow, RawQuery, TaskDescriptor, TaskPriority
from jarvi.ai.intent.schemas import IntentClassification, IntentType
from jarvi.core.errors import ErrorKind
from jarvi.services.delegation import DelegationEnvelopeBuilder
from jarvi.services.executors import ExecutionStatus
from jarvi.services.executors.task_executor import match_task


def _envelope(intent, entities):
    classification = IntentClassification(intent=intent, confidence=0.9, raw_intent=intent)
    return DelegationEnvelopeBuilder().build("message", classification, entities)


class TestCreateTask:
    @pytest.mark.asyncio
    async def test_create_with_due_date(self, task_executor, fake_adapter):
        task = TaskDescriptor(title="Call the dentist", due_date=date(2025, 1, 17), description="add task call the dentist due friday")

        result = await task_executor.execute(_envelope(IntentType.CREATE_TASK, task))

        assert result.succeeded
        assert result.detail == "Task created: Call the dentist (due 2025-01-17)"
        assert result.provider_ref == "task1"
        assert fake_adapter.tasks[0]["due"] == "2025-01-17"

    @pytest.mark.asyncio
    async def test_priority_goes_to_notes(self, task_executor, fake_adapter):
        task = TaskDescriptor(title="Finish presentation", description="urgent", priority=TaskPriority.HIGH)

        await task_executor.execute(_envelope(IntentType.CREATE_TASK, task))

        payload = fake_adapter.calls[0][1][0]
        assert payload.notes == "Priority: high\nurgent"

    @pytest.mark.asyncio
    async def test_medium_priority_is_not_noted(self, task_executor, fake_adapter):
        await task_executor.execute(_envelope(IntentType.CREATE_TASK, TaskDescriptor(title="Buy milk")))

        assert fake_adapter.calls[0][1][0].notes == ""

    @pytest.mark.asyncio
    async def test_failure(self, task_executor, fake_adapter):
        fake_adapter.fail("createTask", ErrorKind.PROVIDER_AUTH_EXPIRED)

        result = await task_executor.execute(_envelope(IntentType.CREATE_TASK, TaskDescriptor(title="Buy milk")))

        assert result.status == ExecutionStatus.FAILED
        assert result.error_kind == ErrorKind.PROVIDER_AUTH_EXPIRED
        assert result.detail == "0 of 1 task created; Buy milk could not be saved: reconnect calendar"
        assert fake_adapter.operations() == ["createTask"]


class TestViewTasks:
    @pytest.mark.asyncio
    async def test_open_tasks_only(self, task_executor, fake_adapter):
        fake_adapter.add_task("Buy milk")
        fake_adapter.add_task("Old chore", status="completed")
        fake_adapter.add_task("Call the dentist", due="2025-01-17")

        result = await task_executor.execute(_envelope(IntentType.VIEW_TASKS, RawQuery(text="show my tasks")))

        assert result.detail == "Open tasks:\n- Buy milk\n- Call the dentist (due 2025-01-17)"

    @pytest.mark.asyncio
    async def test_window_keeps_undated_tasks(self, task_executor, fake_adapter):
        fake_adapter.add_task("Buy milk")
        fake_adapter.add_task("Call the dentist", due="2025-01-17")
        fake_adapter.add_task("File taxes", due="2025-04-30")

        result = await task_executor.execute(_envelope(IntentType.VIEW_TASKS, QueryWindow(window_date=date(2025, 1, 17))))

        assert [t["title"] for t in result.data] == ["Buy milk", "Call the dentist"]

    @pytest.mark.asyncio
    async def test_no_tasks(self, task_executor):
        result = await task_executor.execute(_envelope(IntentType.VIEW_TASKS, RawQuery(text="show my tasks")))

        assert result.detail == "No open tasks"

    @pytest.mark.asyncio
    async def test_list_is_retried(self, task_executor, fake_adapter):
        fake_adapter.fail("listTasks", ErrorKind.PROVIDER_TIMEOUT)
        fake_adapter.add_task("Buy milk")

        result = await task_executor.execute(_envelope(IntentType.VIEW_TASKS, RawQuery(text="tasks")))

        assert result.succeeded
        assert fake_adapter.operations() == ["listTasks", "listTasks"]


class TestCompleteTask:
    @pytest.mark.asyncio
    async def test_exact_match(self, task_executor, fake_adapter):
        task = fake_adapter.add_task("Call doctor")
        fake_adapter.add_task("Call doctor's office")

        result = await task_executor.execute(_envelope(IntentType.MARK_TASK_COMPLETE, TaskDescriptor(title="call doctor")))

        assert result.succeeded
        assert result.detail == "Marked as done: Call doctor"
        assert task["status"] == "completed"
        assert fake_adapter.operations() == ["listTasks", "completeTask"]

    @pytest.mark.asyncio
    async def test_unique_substring(self, task_executor, fake_adapter):
        fake_adapter.add_task("Finish presentation slides")

        result = await task_executor.execute(_envelope(IntentType.MARK_TASK_COMPLETE, TaskDescriptor(title="presentation")))

        assert result.detail == "Marked as done: Finish presentation slides"

    @pytest.mark.asyncio
    async def test_ambiguous_match(self, task_executor, fake_adapter):
        fake_adapter.add_task("Call mom")
        fake_adapter.add_task("Call dad")

        result = await task_executor.execute(_envelope(IntentType.MARK_TASK_COMPLETE, TaskDescriptor(title="call")))

        assert result.error_kind == ErrorKind.VALIDATION_FAILURE
        assert "completeTask" not in fake_adapter.operations()

    @pytest.mark.asyncio
    async def test_completed_tasks_are_ignored(self, task_executor, fake_adapter):
        fake_adapter.add_task("Buy milk", status="completed")

        result = await task_executor.execute(_envelope(IntentType.MARK_TASK_COMPLETE, TaskDescriptor(title="Buy milk")))

        assert result.error_kind == ErrorKind.PROVIDER_NOT_FOUND
        assert result.detail == 'No open task matches "Buy milk"'


def test_match_task_prefers_exact():
    tasks = [{"title": "Gym"}, {"title": "Gym bag"}]

    assert match_task(tasks, "gym") == [{"title": "Gym"}]
    assert match_task(tasks, "bag") == [{"title": "Gym bag"}]
    assert match_task(tasks, "swim") == []
