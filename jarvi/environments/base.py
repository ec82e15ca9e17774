"""
Provider Adapter contract consumed by the executors.

Design Pattern: Strategy Pattern
================================
Executors depend on ProviderAdapter only. Google Workspace is one
implementation; tests use an in-memory fake.

Failures are values, not exceptions:
====================================
Every operation returns a ProviderResult. Typed failures
(AuthExpired, NotFound, RateLimited, Unavailable) travel as
ProviderResult.error_kind so executors can aggregate them per
descriptor without try/except around every call.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from jarvi.core.errors import ErrorKind


class APIError(Exception):
    """Raised inside HTTP clients; adapters translate it into a ProviderResult."""

    def __init__(self, message: str, kind: ErrorKind, status_code: Optional[int] = None):
        super().__init__(message)
        self.kind = kind
        self.status_code = status_code


def kind_for_status(status_code: int) -> ErrorKind:
    """Map an HTTP status from a provider API onto the error taxonomy."""
    if status_code in (401, 403):
        return ErrorKind.PROVIDER_AUTH_EXPIRED
    if status_code in (404, 410):
        return ErrorKind.PROVIDER_NOT_FOUND
    if status_code == 429:
        return ErrorKind.PROVIDER_RATE_LIMITED
    return ErrorKind.PROVIDER_UNAVAILABLE


@dataclass
class ProviderResult:
    """
    Outcome of one provider operation.

    Attributes:
        ok: True when the operation succeeded
        data: Provider payload (created event, list of events, ...)
        error_kind: Failure category when ok is False
        detail: Human-readable detail for logs and summaries
        ref: Provider identifier of the affected item (event id, task id)
    """
    ok: bool
    data: Any = None
    error_kind: Optional[ErrorKind] = None
    detail: str = ""
    ref: Optional[str] = None

    @classmethod
    def success(cls, data: Any = None, ref: Optional[str] = None, detail: str = "") -> "ProviderResult":
        return cls(ok=True, data=data, ref=ref, detail=detail)

    @classmethod
    def failure(cls, kind: ErrorKind, detail: str = "") -> "ProviderResult":
        return cls(ok=False, error_kind=kind, detail=detail)


@dataclass
class EventPayload:
    """Provider-neutral event body for create/update."""
    title: str
    start: datetime
    end: datetime
    description: str = ""
    timezone: str = "Europe/Berlin"


@dataclass
class TaskPayload:
    title: str
    due: Optional[date] = None
    notes: str = ""


class ProviderAdapter(ABC):
    """
    Calendar and task operations used by the executors.

    Implementations must never raise for provider failures; they return
    ProviderResult.failure(kind, detail) instead.

    list_events data: List[Dict] with at least id, title, start, end (datetimes)
    list_tasks data:  List[Dict] with at least id, title, status
    """

    @abstractmethod
    async def create_event(self, event: EventPayload) -> ProviderResult:
        pass

    @abstractmethod
    async def list_events(self, time_min: datetime, time_max: datetime) -> ProviderResult:
        pass

    @abstractmethod
    async def update_event(self, event_id: str, changes: Dict[str, Any]) -> ProviderResult:
        """changes may hold title, start, end (datetimes)."""
        pass

    @abstractmethod
    async def delete_event(self, event_id: str) -> ProviderResult:
        pass

    @abstractmethod
    async def create_task(self, task: TaskPayload) -> ProviderResult:
        pass

    @abstractmethod
    async def list_tasks(self, show_completed: bool = False) -> ProviderResult:
        pass

    @abstractmethod
    async def complete_task(self, task_id: str) -> ProviderResult:
        pass


def summarize_events(events: List[Dict[str, Any]]) -> List[str]:
    """One "HH:MM-HH:MM Title" line per event, for chat replies."""
    lines = []
    for event in events:
        start, end = event.get("start"), event.get("end")
        if isinstance(start, datetime) and isinstance(end, datetime):
            lines.append(f"{start:%H:%M}-{end:%H:%M} {event.get('title', '(untitled)')}")
        else:
            lines.append(f"All day: {event.get('title', '(untitled)')}")
    return lines
