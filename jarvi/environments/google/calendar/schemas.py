"""
Google Calendar Schemas - the parts of the Events resource we use.

Reference: https://developers.google.com/calendar/api/v3/reference/events
"""

from datetime import datetime
from typing import List, Optional
from zoneinfo import ZoneInfo

from pydantic import BaseModel, ConfigDict, Field


class EventTime(BaseModel):
    """
    Event start or end time.

    Google returns either dateTime (timed events, with offset) or date
    (all-day events, "YYYY-MM-DD").
    """
    model_config = ConfigDict(populate_by_name=True)

    date_time: Optional[datetime] = Field(None, alias="dateTime")
    date: Optional[str] = None
    time_zone: Optional[str] = Field(None, alias="timeZone")

    def is_all_day(self) -> bool:
        return self.date is not None and self.date_time is None

    def local(self, tz: str) -> Optional[datetime]:
        """Naive wall-clock time in tz (all-day events start at midnight)."""
        if self.date_time:
            if self.date_time.tzinfo is None:
                return self.date_time
            return self.date_time.astimezone(ZoneInfo(tz)).replace(tzinfo=None)
        if self.date:
            return datetime.strptime(self.date, "%Y-%m-%d")
        return None


class CalendarEvent(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    summary: Optional[str] = None
    description: Optional[str] = None
    start: Optional[EventTime] = None
    end: Optional[EventTime] = None
    status: Optional[str] = None
    html_link: Optional[str] = Field(None, alias="htmlLink")

    def get_display_title(self) -> str:
        return self.summary or "(No title)"

    def to_adapter_dict(self, tz: str) -> dict:
        return {
            "id": self.id,
            "title": self.get_display_title(),
            "start": self.start.local(tz) if self.start else None,
            "end": self.end.local(tz) if self.end else None,
            "all_day": bool(self.start and self.start.is_all_day()),
            "link": self.html_link,
        }


class CalendarEventsResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    items: List[CalendarEvent] = Field(default_factory=list)
    next_page_token: Optional[str] = Field(None, alias="nextPageToken")
    time_zone: Optional[str] = Field(None, alias="timeZone")
