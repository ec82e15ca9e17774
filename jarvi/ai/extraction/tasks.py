"""
Task extraction - single TaskDescriptor from a chat message.

Examples:
    "create task - call doctor to schedule appointment"
        -> title "Call doctor to schedule appointment", priority medium
    "add task finish presentation due tomorrow, urgent"
        -> title "Finish presentation", due tomorrow, priority high
    "mark task \"call doctor\" as complete"
        -> task_reference "call doctor"
"""

import logging
import re
from datetime import date
from typing import Optional

from jarvi.ai.extraction.dates import resolve_date, strip_dates
from jarvi.ai.extraction.references import find_quoted
from jarvi.ai.extraction.schemas import TaskDescriptor, TaskPriority

logger = logging.getLogger("jarvi.ai.extraction.tasks")

TASK_PREFIX_RE = re.compile(
    r"^\s*(?:please\s+)?(?:(?:can|could)\s+you\s+)?"
    r"(?:create|add|new|make|put|remind\s+me\s+to|i\s+need\s+to|todo|to-do)\b\s*"
    r"(?:(?:a|an|the|new|my)\s+)*(?:tasks?|todos?|to-dos?|reminders?)?\s*(?:to\s+my\s+(?:tasks?|list)\s*)?"
    r"(?:[:\-–—]+\s*|\s+to\s+|\s+)?",
    re.IGNORECASE,
)
DUE_RE = re.compile(r"\b(?:due|by|before|until)\s+(.+)$", re.IGNORECASE)

HIGH_PRIORITY_RE = re.compile(r"\b(?:urgent(?:ly)?|asap|emergency|important|high\s+priority)\b", re.IGNORECASE)
LOW_PRIORITY_RE = re.compile(r"\b(?:whenever|sometime|eventually|low\s+priority|no\s+rush)\b", re.IGNORECASE)


def detect_priority(text: str) -> TaskPriority:
    if HIGH_PRIORITY_RE.search(text):
        return TaskPriority.HIGH
    if LOW_PRIORITY_RE.search(text):
        return TaskPriority.LOW
    return TaskPriority.MEDIUM


def extract_task(text: str, reference: date) -> TaskDescriptor:
    """Build a TaskDescriptor from a create_task message."""
    body = TASK_PREFIX_RE.sub("", text.strip(), count=1)
    priority = detect_priority(body)

    due_date = None
    due = DUE_RE.search(body)
    if due:
        due_date = resolve_date(due.group(1), reference)
        if due_date is not None:
            body = body[:due.start()]
    if due_date is None:
        due_date = resolve_date(body, reference)

    quoted = find_quoted(body)
    if quoted:
        title = quoted
    else:
        title = HIGH_PRIORITY_RE.sub(" ", body)
        title = LOW_PRIORITY_RE.sub(" ", title)
        title = strip_dates(title)
    title = re.sub(r"\s+", " ", title).strip(" ,;:.!-–—")
    if not title:
        title = "Task"

    task = TaskDescriptor(
        title=title[0].upper() + title[1:],
        due_date=due_date,
        description=text.strip(),
        priority=priority,
    )
    logger.debug(f"Extracted task '{task.title}' due={task.due_date} priority={task.priority.value}")
    return task


def extract_task_reference(text: str) -> Optional[str]:
    """Quoted title of an existing task ("mark \"call doctor\" as done")."""
    quoted = find_quoted(text)
    if quoted:
        return quoted
    match = re.search(
        r"\b(?:complete|completed|finish|finished|done\s+with|check\s+off|mark)\s+(?:the\s+)?(?:task\s+)?(.+?)"
        r"(?:\s+as\s+(?:done|complete|completed|finished))?\s*$",
        text,
        re.IGNORECASE,
    )
    if match:
        candidate = match.group(1).strip(" .!")
        if candidate and candidate.lower() not in {"task", "it", "this"}:
            return candidate
    return None
