"""
Test configuration and fixtures for pytest.

This module provides shared fixtures used across all tests:
- A recording in-memory ProviderAdapter (no network)
- A fixed reference day for date resolution
- Executor and ChatService factories wired to the fake adapter
"""

import asyncio
import itertools
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Tuple

import pytest

from jarvi.ai.extraction.extractor import MultiEventExtractor
from jarvi.ai.intent.classifier import IntentClassifier, RuleBasedClassificationBackend
from jarvi.core.errors import ErrorKind
from jarvi.environments.base import EventPayload, ProviderAdapter, ProviderResult, TaskPayload
from jarvi.monitoring import PipelineMonitor
from jarvi.services.chat_service import ChatService
from jarvi.services.dispatcher import UserOrderedDispatcher
from jarvi.services.executors import CalendarExecutor, TaskExecutor


# Wednesday
REFERENCE_DATE = date(2025, 1, 15)


# ---------------------------------------------------------------------------
# FAKE PROVIDER ADAPTER
# ---------------------------------------------------------------------------

class FakeProviderAdapter(ProviderAdapter):
    """
    In-memory calendar and task list that records every call.

    Failures are queued per operation:
        adapter.fail("createEvent", None, ErrorKind.PROVIDER_AUTH_EXPIRED)
    lets the first createEvent succeed and fails the second one.
    """

    def __init__(self):
        self.events: List[Dict[str, Any]] = []
        self.tasks: List[Dict[str, Any]] = []
        self.calls: List[Tuple[str, Tuple[Any, ...]]] = []
        self.failures: Dict[str, List[Optional[ErrorKind]]] = {}
        self.delays: Dict[str, float] = {}
        self._ids = itertools.count(1)

    def fail(self, operation: str, *kinds: Optional[ErrorKind]) -> None:
        self.failures.setdefault(operation, []).extend(kinds)

    def operations(self) -> List[str]:
        return [name for name, _ in self.calls]

    def add_event(self, title: str, start: datetime, end: datetime, event_id: Optional[str] = None) -> Dict[str, Any]:
        event = {"id": event_id or f"evt{next(self._ids)}", "title": title, "start": start, "end": end}
        self.events.append(event)
        return event

    def add_task(self, title: str, status: str = "needsAction", due: Optional[str] = None) -> Dict[str, Any]:
        task = {"id": f"task{next(self._ids)}", "title": title, "status": status, "due": due}
        self.tasks.append(task)
        return task

    async def _enter(self, operation: str, *args: Any) -> Optional[ProviderResult]:
        self.calls.append((operation, args))
        if operation in self.delays:
            await asyncio.sleep(self.delays[operation])
        queued = self.failures.get(operation)
        if queued:
            kind = queued.pop(0)
            if kind is not None:
                return ProviderResult.failure(kind, f"{operation} failed")
        return None

    async def create_event(self, event: EventPayload) -> ProviderResult:
        failure = await self._enter("createEvent", event)
        if failure:
            return failure
        created = self.add_event(event.title, event.start, event.end)
        return ProviderResult.success(dict(created), ref=created["id"])

    async def list_events(self, time_min: datetime, time_max: datetime) -> ProviderResult:
        failure = await self._enter("listEvents", time_min, time_max)
        if failure:
            return failure
        found = [dict(e) for e in self.events if time_min <= e["start"] < time_max]
        return ProviderResult.success(found)

    async def update_event(self, event_id: str, changes: Dict[str, Any]) -> ProviderResult:
        failure = await self._enter("updateEvent", event_id, changes)
        if failure:
            return failure
        for event in self.events:
            if event["id"] == event_id:
                event.update(changes)
                return ProviderResult.success(dict(event), ref=event_id)
        return ProviderResult.failure(ErrorKind.PROVIDER_NOT_FOUND, f"no event {event_id}")

    async def delete_event(self, event_id: str) -> ProviderResult:
        failure = await self._enter("deleteEvent", event_id)
        if failure:
            return failure
        for event in self.events:
            if event["id"] == event_id:
                self.events.remove(event)
                return ProviderResult.success(ref=event_id)
        return ProviderResult.failure(ErrorKind.PROVIDER_NOT_FOUND, f"no event {event_id}")

    async def create_task(self, task: TaskPayload) -> ProviderResult:
        failure = await self._enter("createTask", task)
        if failure:
            return failure
        created = self.add_task(task.title, due=task.due.isoformat() if task.due else None)
        created["notes"] = task.notes
        return ProviderResult.success(dict(created), ref=created["id"])

    async def list_tasks(self, show_completed: bool = False) -> ProviderResult:
        failure = await self._enter("listTasks", show_completed)
        if failure:
            return failure
        tasks = [dict(t) for t in self.tasks if show_completed or t["status"] != "completed"]
        return ProviderResult.success(tasks)

    async def complete_task(self, task_id: str) -> ProviderResult:
        failure = await self._enter("completeTask", task_id)
        if failure:
            return failure
        for task in self.tasks:
            if task["id"] == task_id:
                task["status"] = "completed"
                return ProviderResult.success(dict(task), ref=task_id)
        return ProviderResult.failure(ErrorKind.PROVIDER_NOT_FOUND, f"no task {task_id}")


# ---------------------------------------------------------------------------
# FIXTURES
# ---------------------------------------------------------------------------

@pytest.fixture
def reference_date() -> date:
    return REFERENCE_DATE


@pytest.fixture
def fake_adapter() -> FakeProviderAdapter:
    return FakeProviderAdapter()


@pytest.fixture
def calendar_executor(fake_adapter) -> CalendarExecutor:
    return CalendarExecutor(fake_adapter, timeout=1.0, retry_backoff=0.0, timezone="Europe/Berlin")


@pytest.fixture
def task_executor(fake_adapter) -> TaskExecutor:
    return TaskExecutor(fake_adapter, timeout=1.0, retry_backoff=0.0)


@pytest.fixture
def monitor() -> PipelineMonitor:
    return PipelineMonitor()


@pytest.fixture
def chat_service(fake_adapter, calendar_executor, task_executor, monitor) -> ChatService:
    """ChatService on rules only, fixed clock, isolated dispatcher and monitor."""
    return ChatService(
        executors=[calendar_executor, task_executor],
        classifier=IntentClassifier(backend=RuleBasedClassificationBackend(), threshold=0.6),
        extractor=MultiEventExtractor(day_start_hour=7),
        dispatcher=UserOrderedDispatcher(),
        monitor=monitor,
        clock=lambda: REFERENCE_DATE,
        day_start_hour=7,
    )
