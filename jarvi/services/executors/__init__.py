"""
Executors - turn delegation envelopes into provider operations.
"""

from jarvi.services.executors.base import (
    DescriptorOutcome,
    ExecutionResult,
    ExecutionStatus,
    Executor,
)
from jarvi.services.executors.calendar_executor import CalendarExecutor
from jarvi.services.executors.task_executor import TaskExecutor

__all__ = [
    "CalendarExecutor",
    "DescriptorOutcome",
    "ExecutionResult",
    "ExecutionStatus",
    "Executor",
    "TaskExecutor",
]
