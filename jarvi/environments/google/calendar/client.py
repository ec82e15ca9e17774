"""
Google Calendar API Client - create, list, update and delete events.

API Reference:
==============
- Events API: https://developers.google.com/calendar/api/v3/reference/events

Times are sent as local wall-clock dateTime plus an explicit timeZone, so
"15:30" means 15:30 in the user's zone regardless of server clock.

Usage Example:
==============
    client = GoogleCalendarClient(access_token="ya29.xxx", timezone="Europe/Berlin")
    created = await client.create_event(
        summary="Grinding programming for uni",
        start=datetime(2025, 1, 15, 15, 30),
        end=datetime(2025, 1, 15, 18, 0),
    )
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional
from zoneinfo import ZoneInfo

import httpx

from jarvi.core.errors import ErrorKind
from jarvi.environments.base import APIError, kind_for_status
from jarvi.environments.google.calendar.schemas import CalendarEvent, CalendarEventsResponse

logger = logging.getLogger("jarvi.environments.google.calendar")


class GoogleCalendarClient:
    """
    Google Calendar API client.

    Attributes:
        access_token: OAuth access token with the calendar.events scope
        calendar_id: Target calendar ("primary" for the user's main calendar)
        timezone: IANA zone attached to created and updated events
    """

    service_name = "calendar"
    required_scopes = [
        "https://www.googleapis.com/auth/calendar.events",
    ]

    BASE_URL = "https://www.googleapis.com/calendar/v3"

    def __init__(
        self,
        access_token: str,
        calendar_id: str = "primary",
        timezone: str = "Europe/Berlin",
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 30.0,
    ):
        self.access_token = access_token
        self.calendar_id = calendar_id
        self.timezone = timezone
        self._transport = transport
        self._timeout = timeout

    # -------------------------------------------------------------------------
    # HTTP
    # -------------------------------------------------------------------------

    def _get_headers(self) -> dict:
        return {
            "Authorization": f"Bearer {self.access_token}",
            "Accept": "application/json",
        }

    async def _make_request(
        self,
        method: str,
        endpoint: str,
        params: Optional[dict] = None,
        json_body: Optional[dict] = None,
    ) -> Dict[str, Any]:
        """
        Make an authenticated request to the Calendar API.

        Raises:
            APIError: with the ErrorKind matching the failure
        """
        url = f"{self.BASE_URL}{endpoint}"

        async with httpx.AsyncClient(transport=self._transport, timeout=self._timeout) as client:
            try:
                response = await client.request(
                    method=method,
                    url=url,
                    headers=self._get_headers(),
                    params=params,
                    json=json_body,
                )
            except httpx.TimeoutException as e:
                logger.error(f"Calendar API timeout: {e}")
                raise APIError(f"Timed out: {e}", ErrorKind.PROVIDER_TIMEOUT)
            except httpx.RequestError as e:
                logger.error(f"Network error in Calendar API: {e}")
                raise APIError(f"Network error: {e}", ErrorKind.PROVIDER_UNAVAILABLE)

        if response.status_code in (401, 403):
            logger.error(f"Calendar API: {response.status_code} (token expired or scope missing)")
        if response.status_code >= 400:
            raise APIError(
                f"Calendar API {method} {endpoint} failed: {response.status_code} {response.text[:200]}",
                kind_for_status(response.status_code),
                status_code=response.status_code,
            )

        if response.status_code == 204 or not response.content:
            return {}
        return response.json()

    def _time_body(self, value: datetime) -> dict:
        return {"dateTime": value.strftime("%Y-%m-%dT%H:%M:00"), "timeZone": self.timezone}

    def _rfc3339(self, value: datetime) -> str:
        if value.tzinfo is None:
            value = value.replace(tzinfo=ZoneInfo(self.timezone))
        return value.isoformat()

    # -------------------------------------------------------------------------
    # EVENTS
    # -------------------------------------------------------------------------

    async def create_event(
        self,
        summary: str,
        start: datetime,
        end: datetime,
        description: str = "",
    ) -> CalendarEvent:
        body = {
            "summary": summary,
            "description": description,
            "start": self._time_body(start),
            "end": self._time_body(end),
        }
        data = await self._make_request(
            "POST", f"/calendars/{self.calendar_id}/events", json_body=body
        )
        event = CalendarEvent.model_validate(data)
        logger.info(f"Created event {event.id}: {summary} {start:%Y-%m-%d %H:%M}-{end:%H:%M}")
        return event

    async def list_events(
        self,
        time_min: datetime,
        time_max: datetime,
        max_results: int = 250,
    ) -> List[CalendarEvent]:
        params = {
            "timeMin": self._rfc3339(time_min),
            "timeMax": self._rfc3339(time_max),
            "singleEvents": "true",
            "orderBy": "startTime",
            "maxResults": max_results,
        }
        data = await self._make_request(
            "GET", f"/calendars/{self.calendar_id}/events", params=params
        )
        return CalendarEventsResponse.model_validate(data).items

    async def update_event(self, event_id: str, changes: Dict[str, Any]) -> CalendarEvent:
        """PATCH only the fields present in changes (title, start, end)."""
        body: Dict[str, Any] = {}
        if changes.get("title"):
            body["summary"] = changes["title"]
        if changes.get("start"):
            body["start"] = self._time_body(changes["start"])
        if changes.get("end"):
            body["end"] = self._time_body(changes["end"])

        data = await self._make_request(
            "PATCH", f"/calendars/{self.calendar_id}/events/{event_id}", json_body=body
        )
        logger.info(f"Updated event {event_id}: {sorted(body)}")
        return CalendarEvent.model_validate(data)

    async def delete_event(self, event_id: str) -> bool:
        await self._make_request("DELETE", f"/calendars/{self.calendar_id}/events/{event_id}")
        logger.info(f"Deleted event: {event_id}")
        return True
