"""
Event references for update and delete requests.

A message identifies an existing event either by id ("id abc123",
"event #abc123") or by a quoted title ("\"Break\""). Anything vaguer
("the last event", "my meeting") is not a reference, and the request
fails with MissingEventId before any provider call.
"""

import re
from datetime import date, time
from typing import List, Optional

from jarvi.ai.extraction.dates import resolve_date
from jarvi.ai.extraction.schemas import EventChange
from jarvi.ai.extraction.tokens import MeridiemResolver, TokenKind, token_parser

QUOTED_RE = re.compile(
    r"[\"“]([^\"”]+)[\"”]"
    r"|(?:(?<=\s)|^)['‘]([^'’]+)['’](?=[\s.,!?]|$)"
)

EVENT_ID_RE = re.compile(
    r"(?:\b(?:event\s+)?id\b\s*[:=#]?\s*|(?<![\w&])#)(?=[A-Za-z_-]*\d|[A-Za-z0-9_-]{8,})(?P<id>[A-Za-z0-9_-]{3,})",
    re.IGNORECASE,
)

NEW_TITLE_RE = re.compile(r"\b(?:to|as|into)\s+[\"“']([^\"”']+)[\"”']", re.IGNORECASE)


def find_all_quoted(text: str) -> List[str]:
    return [(m.group(1) or m.group(2)).strip() for m in QUOTED_RE.finditer(text)]


def find_quoted(text: str) -> Optional[str]:
    quoted = find_all_quoted(text)
    return quoted[0] if quoted else None


def find_event_id(text: str) -> Optional[str]:
    match = EVENT_ID_RE.search(text)
    return match.group("id") if match else None


def parse_event_change(text: str, reference: date, day_start_hour: Optional[int] = None) -> EventChange:
    """
    Build the target and payload of an update/delete message.

    Examples:
        'move "Gym" to 6-7pm'          -> title_reference="Gym", 18:00-19:00
        'rename id abc123 to "Reading"' -> event_id="abc123", new_title="Reading"
        'delete event #x9f2 tomorrow'   -> event_id="x9f2", date=tomorrow
    """
    event_id = find_event_id(text)
    quoted = find_all_quoted(text)

    new_title = None
    renamed = NEW_TITLE_RE.search(text)
    if renamed:
        new_title = renamed.group(1).strip()
        quoted = [q for q in quoted if q != new_title]

    title_reference = None if event_id else (quoted[0] if quoted else None)

    # Quoted titles must not be read as times ("\"9am standup\"")
    unquoted = QUOTED_RE.sub(" ", text)
    resolver = MeridiemResolver(day_start_hour)
    new_start = new_end = None
    for token in token_parser.parse(unquoted):
        if token.kind == TokenKind.RANGE:
            start, end = token.value
            new_start, new_end = resolver.resolve(start), resolver.resolve(end)
            break
        if token.kind == TokenKind.TIME_OF_DAY and new_start is None:
            new_start = resolver.resolve(token.value)

    def as_time(minutes: Optional[int]) -> Optional[time]:
        if minutes is None:
            return None
        return time(minutes // 60, minutes % 60)

    return EventChange(
        event_id=event_id,
        title_reference=title_reference,
        event_date=resolve_date(unquoted, reference) or reference,
        new_title=new_title,
        new_start_time=as_time(new_start),
        new_end_time=as_time(new_end),
    )
