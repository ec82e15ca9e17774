"""
Google Workspace adapter - ProviderAdapter over Calendar v3 and Tasks v1.

Translates APIError raised by the HTTP clients, and unreadable 2xx
bodies, into ProviderResult failures, so nothing provider-specific
reaches the executors.
"""

import logging
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx
from pydantic import ValidationError

from jarvi.core.config import settings
from jarvi.core.errors import ErrorKind
from jarvi.environments.base import (
    APIError,
    EventPayload,
    ProviderAdapter,
    ProviderResult,
    TaskPayload,
)
from jarvi.environments.google.calendar.client import GoogleCalendarClient
from jarvi.environments.google.tasks.client import GoogleTasksClient

logger = logging.getLogger("jarvi.environments.google")


async def _guard(operation: str, call: Callable[[], Awaitable[ProviderResult]]) -> ProviderResult:
    try:
        return await call()
    except APIError as e:
        logger.warning(f"{operation} failed: {e.kind.value} {e}")
        return ProviderResult.failure(e.kind, str(e))
    except (ValueError, ValidationError) as e:
        # 2xx with a body that is not JSON or not the documented resource
        logger.error(f"{operation} returned an unreadable response: {e}")
        return ProviderResult.failure(ErrorKind.PROVIDER_UNAVAILABLE, f"unreadable response from {operation}")


class GoogleWorkspaceAdapter(ProviderAdapter):
    """
    Usage:
        adapter = GoogleWorkspaceAdapter(access_token=token)
        result = await adapter.create_event(EventPayload(...))
        if not result.ok:
            print(result.error_kind)
    """

    def __init__(
        self,
        access_token: str,
        calendar_id: Optional[str] = None,
        tasklist_id: Optional[str] = None,
        timezone: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.timezone = timezone or settings.DEFAULT_TIMEZONE
        self.calendar = GoogleCalendarClient(
            access_token,
            calendar_id=calendar_id or settings.GOOGLE_CALENDAR_ID,
            timezone=self.timezone,
            transport=transport,
        )
        self.tasks = GoogleTasksClient(
            access_token,
            tasklist_id=tasklist_id or settings.GOOGLE_TASKLIST_ID,
            transport=transport,
        )

    async def create_event(self, event: EventPayload) -> ProviderResult:
        async def call():
            created = await self.calendar.create_event(
                summary=event.title,
                start=event.start,
                end=event.end,
                description=event.description,
            )
            return ProviderResult.success(created.to_adapter_dict(self.timezone), ref=created.id)
        return await _guard("createEvent", call)

    async def list_events(self, time_min: datetime, time_max: datetime) -> ProviderResult:
        async def call():
            events = await self.calendar.list_events(time_min, time_max)
            return ProviderResult.success([e.to_adapter_dict(self.timezone) for e in events])
        return await _guard("listEvents", call)

    async def update_event(self, event_id: str, changes: Dict[str, Any]) -> ProviderResult:
        async def call():
            updated = await self.calendar.update_event(event_id, changes)
            return ProviderResult.success(updated.to_adapter_dict(self.timezone), ref=updated.id)
        return await _guard("updateEvent", call)

    async def delete_event(self, event_id: str) -> ProviderResult:
        async def call():
            await self.calendar.delete_event(event_id)
            return ProviderResult.success(ref=event_id)
        return await _guard("deleteEvent", call)

    async def create_task(self, task: TaskPayload) -> ProviderResult:
        async def call():
            created = await self.tasks.create_task(task.title, due=task.due, notes=task.notes)
            return ProviderResult.success(created.to_adapter_dict(), ref=created.id)
        return await _guard("createTask", call)

    async def list_tasks(self, show_completed: bool = False) -> ProviderResult:
        async def call():
            items = await self.tasks.list_tasks(show_completed=show_completed)
            return ProviderResult.success([t.to_adapter_dict() for t in items])
        return await _guard("listTasks", call)

    async def complete_task(self, task_id: str) -> ProviderResult:
        async def call():
            done = await self.tasks.complete_task(task_id)
            return ProviderResult.success(done.to_adapter_dict(), ref=done.id)
        return await _guard("completeTask", call)
