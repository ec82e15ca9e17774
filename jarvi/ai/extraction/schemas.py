"""
Extraction schemas - structured entities produced from a chat message.

EventDescriptor and TaskDescriptor are the payloads executors receive.
They serialize with camelCase aliases (startTime, dueDate, ...) because
that is the shape executors and their logs consume.
"""

from datetime import date, time
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class TaskPriority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class EventDescriptor(BaseModel):
    """
    One calendar event derived from one clause.

    Invariant: end_time > start_time. Ordering between descriptors is the
    extractor's responsibility.
    """
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    title: str = Field(..., min_length=1)
    event_date: date = Field(..., alias="date")
    start_time: time = Field(..., alias="startTime")
    end_time: time = Field(..., alias="endTime")
    description: str = ""
    source_clause_order: int = Field(..., ge=0, alias="sourceClauseOrder")

    @model_validator(mode="after")
    def _end_after_start(self) -> "EventDescriptor":
        if self.end_time <= self.start_time:
            raise ValueError(f"end {self.end_time} must be after start {self.start_time}")
        return self


class TaskDescriptor(BaseModel):
    """A single task for the task executor."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    title: str = Field(..., min_length=1)
    due_date: Optional[date] = Field(default=None, alias="dueDate")
    description: str = ""
    priority: TaskPriority = TaskPriority.MEDIUM


class EventChange(BaseModel):
    """
    Target and payload of an update or delete.

    Exactly one of event_id / title_reference identifies the event.
    The new_* fields are only meaningful for updates.
    """
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    event_id: Optional[str] = Field(default=None, alias="eventId")
    title_reference: Optional[str] = Field(default=None, alias="titleReference")
    event_date: Optional[date] = Field(default=None, alias="date")
    new_title: Optional[str] = Field(default=None, alias="newTitle")
    new_start_time: Optional[time] = Field(default=None, alias="newStartTime")
    new_end_time: Optional[time] = Field(default=None, alias="newEndTime")


class QueryWindow(BaseModel):
    """Date window for view requests (view_calendar, view_tasks)."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    window_date: date = Field(..., alias="date")


class RawQuery(BaseModel):
    """Unstructured request answered inline."""
    model_config = ConfigDict(frozen=True)

    text: str


class BoundaryReconciled(BaseModel):
    """An inferred end time was moved to the next explicit start time."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    clause_order: int = Field(..., alias="clauseOrder")
    inferred_end: time = Field(..., alias="inferredEnd")
    reconciled_end: time = Field(..., alias="reconciledEnd")


class ExtractionResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    events: List[EventDescriptor]
    diagnostics: List[BoundaryReconciled] = Field(default_factory=list)
