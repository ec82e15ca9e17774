"""
Google Tasks API Client - create, list and complete tasks.

API Reference:
==============
- Tasks API: https://developers.google.com/tasks/reference/rest/v1/tasks

Google Tasks stores due dates as RFC3339 timestamps but only the date part
is meaningful, so due dates are sent as midnight UTC.
"""

import logging
from datetime import date
from typing import Any, Dict, List, Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field

from jarvi.core.errors import ErrorKind
from jarvi.environments.base import APIError, kind_for_status

logger = logging.getLogger("jarvi.environments.google.tasks")


class TaskItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str = ""
    notes: Optional[str] = None
    status: str = "needsAction"
    due: Optional[str] = None

    @property
    def completed(self) -> bool:
        return self.status == "completed"

    def to_adapter_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "status": self.status,
            "due": self.due[:10] if self.due else None,
        }


class TaskListResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    items: List[TaskItem] = Field(default_factory=list)


class GoogleTasksClient:
    """
    Google Tasks API client bound to one task list.

    Usage:
        client = GoogleTasksClient(access_token="ya29.xxx")
        task = await client.create_task("Call doctor", due=date(2025, 1, 16))
    """

    service_name = "tasks"
    required_scopes = ["https://www.googleapis.com/auth/tasks"]

    BASE_URL = "https://tasks.googleapis.com/tasks/v1"

    def __init__(
        self,
        access_token: str,
        tasklist_id: str = "@default",
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 30.0,
    ):
        self.access_token = access_token
        self.tasklist_id = tasklist_id
        self._transport = transport
        self._timeout = timeout

    async def _make_request(
        self,
        method: str,
        endpoint: str,
        params: Optional[dict] = None,
        json_body: Optional[dict] = None,
    ) -> Dict[str, Any]:
        url = f"{self.BASE_URL}{endpoint}"
        headers = {"Authorization": f"Bearer {self.access_token}", "Accept": "application/json"}

        async with httpx.AsyncClient(transport=self._transport, timeout=self._timeout) as client:
            try:
                response = await client.request(method, url, headers=headers, params=params, json=json_body)
            except httpx.TimeoutException as e:
                raise APIError(f"Timed out: {e}", ErrorKind.PROVIDER_TIMEOUT)
            except httpx.RequestError as e:
                logger.error(f"Network error in Tasks API: {e}")
                raise APIError(f"Network error: {e}", ErrorKind.PROVIDER_UNAVAILABLE)

        if response.status_code >= 400:
            logger.error(f"Tasks API error: {response.status_code} - {response.text[:200]}")
            raise APIError(
                f"Tasks API {method} {endpoint} failed: {response.status_code}",
                kind_for_status(response.status_code),
                status_code=response.status_code,
            )
        if response.status_code == 204 or not response.content:
            return {}
        return response.json()

    async def create_task(self, title: str, due: Optional[date] = None, notes: str = "") -> TaskItem:
        body: Dict[str, Any] = {"title": title, "notes": notes}
        if due:
            body["due"] = f"{due.isoformat()}T00:00:00.000Z"
        data = await self._make_request("POST", f"/lists/{self.tasklist_id}/tasks", json_body=body)
        task = TaskItem.model_validate(data)
        logger.info(f"Created task {task.id}: {title}")
        return task

    async def list_tasks(self, show_completed: bool = False) -> List[TaskItem]:
        params = {
            "showCompleted": "true" if show_completed else "false",
            "maxResults": 100,
        }
        data = await self._make_request("GET", f"/lists/{self.tasklist_id}/tasks", params=params)
        return TaskListResponse.model_validate(data).items

    async def complete_task(self, task_id: str) -> TaskItem:
        data = await self._make_request(
            "PATCH",
            f"/lists/{self.tasklist_id}/tasks/{task_id}",
            json_body={"status": "completed"},
        )
        logger.info(f"Completed task {task_id}")
        return TaskItem.model_validate(data)
