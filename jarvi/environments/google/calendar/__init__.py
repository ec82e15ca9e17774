from jarvi.environments.google.calendar.client import GoogleCalendarClient
from jarvi.environments.google.calendar.schemas import CalendarEvent, EventTime

__all__ = ["GoogleCalendarClient", "CalendarEvent", "EventTime"]
