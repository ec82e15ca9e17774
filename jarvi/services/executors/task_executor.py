"""
Task Executor - create, list and complete tasks.

mark_task_complete receives a TaskDescriptor whose title is the reference
to an open task. The task is resolved among open tasks, first by exact
case-insensitive title and then by a unique substring match.
"""

import logging
from typing import Any, Dict, List, Optional

from jarvi.ai.extraction.schemas import QueryWindow, TaskDescriptor, TaskPriority
from jarvi.ai.intent.schemas import IntentType
from jarvi.core.errors import ErrorKind, hint_for
from jarvi.environments.base import TaskPayload
from jarvi.services.delegation import DelegationEnvelope, TargetAgent
from jarvi.services.executors.base import (
    DescriptorOutcome,
    ExecutionResult,
    ExecutionStatus,
    Executor,
)

logger = logging.getLogger("jarvi.services.executors.task")


def match_task(tasks: List[Dict[str, Any]], reference: str) -> List[Dict[str, Any]]:
    """Exact title matches, or substring matches when there is no exact one."""
    wanted = reference.strip().lower()
    exact = [t for t in tasks if str(t.get("title", "")).strip().lower() == wanted]
    if exact:
        return exact
    return [t for t in tasks if wanted in str(t.get("title", "")).lower()]


class TaskExecutor(Executor):
    """
    Usage:
        executor = TaskExecutor(adapter)
        result = await executor.execute(envelope)
    """

    agent = TargetAgent.TASK

    async def execute(self, envelope: DelegationEnvelope) -> ExecutionResult:
        entities = envelope.entities

        if envelope.intent == IntentType.CREATE_TASK and isinstance(entities, TaskDescriptor):
            return await self._create(entities)
        if envelope.intent == IntentType.VIEW_TASKS:
            return await self._view(entities if isinstance(entities, QueryWindow) else None)
        if envelope.intent == IntentType.MARK_TASK_COMPLETE and isinstance(entities, TaskDescriptor):
            return await self._complete(entities)

        return ExecutionResult.failed(
            ErrorKind.VALIDATION_FAILURE,
            f"Task executor cannot handle {envelope.intent.value}",
        )

    async def _create(self, task: TaskDescriptor) -> ExecutionResult:
        notes = task.description
        if task.priority != TaskPriority.MEDIUM:
            notes = f"Priority: {task.priority.value}\n{notes}".strip()

        payload = TaskPayload(title=task.title, due=task.due_date, notes=notes)
        result = await self._call("createTask", lambda: self.adapter.create_task(payload))

        if result.ok:
            outcome = DescriptorOutcome(
                order=0,
                title=task.title,
                status=ExecutionStatus.SUCCESS,
                detail=f"due {task.due_date:%Y-%m-%d}" if task.due_date else "",
                provider_ref=result.ref,
            )
        else:
            outcome = DescriptorOutcome(
                order=0,
                title=task.title,
                status=ExecutionStatus.FAILED,
                detail=result.detail,
                error_kind=result.error_kind,
            )

        aggregate = ExecutionResult.from_outcomes([outcome], "task", "created")
        if aggregate.succeeded:
            aggregate.detail = f"Task created: {task.title}"
            if task.due_date:
                aggregate.detail += f" (due {task.due_date:%Y-%m-%d})"
        logger.info(f"create_task: {aggregate.detail}")
        return aggregate

    async def _view(self, window: Optional[QueryWindow]) -> ExecutionResult:
        result = await self._call("listTasks", lambda: self.adapter.list_tasks(), read_only=True)
        if not result.ok:
            return ExecutionResult.failed(
                result.error_kind,
                f"Could not read your tasks: {hint_for(result.error_kind)}",
            )

        tasks = [t for t in (result.data or []) if t.get("status") != "completed"]
        if window is not None:
            due_by = window.window_date.isoformat()
            # Undated tasks stay visible
            tasks = [t for t in tasks if not t.get("due") or t["due"] <= due_by]

        if not tasks:
            return ExecutionResult.success("No open tasks", data=[])

        lines = []
        for task in tasks:
            due = f" (due {task['due']})" if task.get("due") else ""
            lines.append(f"- {task.get('title') or '(untitled)'}{due}")
        return ExecutionResult.success("Open tasks:\n" + "\n".join(lines), data=tasks)

    async def _complete(self, task: TaskDescriptor) -> ExecutionResult:
        listed = await self._call("listTasks", lambda: self.adapter.list_tasks(), read_only=True)
        if not listed.ok:
            return ExecutionResult.failed(
                listed.error_kind,
                f"Could not look up the task: {hint_for(listed.error_kind)}",
            )

        open_tasks = [t for t in (listed.data or []) if t.get("status") != "completed"]
        matches = match_task(open_tasks, task.title)
        if not matches:
            return ExecutionResult.failed(ErrorKind.PROVIDER_NOT_FOUND, f'No open task matches "{task.title}"')
        if len(matches) > 1:
            titles = ", ".join(t.get("title", "") for t in matches)
            return ExecutionResult.failed(
                ErrorKind.VALIDATION_FAILURE,
                f'"{task.title}" matches several tasks: {titles}',
            )

        target = matches[0]
        task_id = target["id"]
        result = await self._call("completeTask", lambda: self.adapter.complete_task(task_id))
        if not result.ok:
            return ExecutionResult.failed(
                result.error_kind,
                f"Could not complete the task: {hint_for(result.error_kind)}",
            )
        return ExecutionResult.success(f"Marked as done: {target.get('title')}", provider_ref=task_id)
