"""
Clause Segmenter - splits a message into ordered activity/break clauses.

How it works:
=============
1. Strip the command prefix ("create an event", "please schedule", ...)
2. Split on structural delimiters: spaced dashes, commas, semicolons,
   newlines, list markers and sequencing words ("then", "followed by",
   "and break"). Time ranges and dates are protected, so "3:30 - 6:00"
   and "2025-01-15" never get cut.
3. Regroup fragments. A fragment that is only a time ("3:30 - 6:00")
   belongs to the activity next to it, and a trailing fragment that only
   adds break vocabulary ("as a puffer") belongs to the break before it.
4. Assign roles. A clause with break vocabulary and no explicit range is
   a BreakHint; everything else is an Activity.

Clauses are never reordered. Document order is temporal order.

Example:
    "3:30 - 6:00 - grinding programming for uni - and break of 5 minutes
     afterwards, as a puffer - 6:05-6:50 - let's grind more for uni"
    ->
    0 Activity   "3:30 - 6:00 grinding programming for uni"
    1 BreakHint  "break of 5 minutes afterwards as a puffer"
    2 Activity   "6:05-6:50 let's grind more for uni"
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

from jarvi.ai.extraction.dates import MONTH_DAY_RE, strip_dates
from jarvi.ai.extraction.tokens import (
    DATE_MASK_RE,
    RANGE_RE,
    TemporalTokenParser,
    TokenKind,
    token_parser,
)

logger = logging.getLogger("jarvi.ai.extraction.segmenter")


class ClauseRole(str, Enum):
    ACTIVITY = "activity"
    BREAK_HINT = "break_hint"


@dataclass(frozen=True)
class Clause:
    text: str
    order: int
    role: ClauseRole = ClauseRole.ACTIVITY


# ---------------------------------------------------------------------------
# PATTERNS
# ---------------------------------------------------------------------------

COMMAND_PREFIX_RE = re.compile(
    r"^\s*(?:hey\s+)?(?:jarvi[s]?\s*[,:]?\s*)?(?:please\s+)?(?:(?:can|could|would)\s+you\s+)?(?:please\s+)?"
    r"(?:create|add|schedule|book|put|make|plan|set\s+up|block)\s+"
    r"(?:(?:an?|the|my|some|new|following|these|two|three|multiple)\s+)*"
    r"(?:(?:calendar\s+)?(?:events?|entries|entry|blocks?)\b)?"
    r"(?:\s+(?:in|to|into)\s+(?:my\s+)?calendar\b)?\s*(?:for\s+(?=\d))?[:]?\s*",
    re.IGNORECASE,
)

DELIMITER_RE = re.compile(
    r"\s+[-–—]+\s*|\s*[-–—]+\s+"
    r"|[,;\n]+"
    r"|\s*\b(?:and\s+then|then|followed\s+by|after\s+that)\b\s*"
    r"|\s+and\s+(?=(?:(?:a|an|take|have|do|then)\s+)*(?:short\s+|quick\s+|small\s+)?(?:break|pause|buffer|puffer)\b)",
    re.IGNORECASE,
)

LIST_MARKER_RE = re.compile(r"^\s*(?:\d+[.)]|[*•])\s+")
LEADING_CONNECTIVE_RE = re.compile(r"^(?:and|also|plus)\s+", re.IGNORECASE)

BREAK_VOCABULARY_RE = re.compile(r"\b(?:break|pause|puffer|buffer|afterwards)\b", re.IGNORECASE)

# Words that carry no activity meaning on their own
FILLER_RE = re.compile(
    r"\b(?:from|at|to|until|till|for|on|the|a|an|between|and|of|as|in|about|around|is|it|that|this)\b",
    re.IGNORECASE,
)


@dataclass
class _Fragment:
    text: str
    has_time: bool
    has_range: bool
    has_duration: bool
    is_break: bool
    descriptive: bool

    @property
    def pure(self) -> bool:
        """Only temporal content, no activity words."""
        return not self.descriptive and (self.has_time or self.has_duration)


def _protected_spans(text: str) -> List[Tuple[int, int]]:
    spans = []
    for match in RANGE_RE.finditer(text):
        if match.group("m1") or match.group("m2") or match.group("p1") or match.group("p2"):
            spans.append(match.span())
    for pattern in (DATE_MASK_RE, MONTH_DAY_RE):
        spans.extend(m.span() for m in pattern.finditer(text))
    return spans


def _inside(position: Tuple[int, int], spans: List[Tuple[int, int]]) -> bool:
    start, end = position
    return any(start < span_end and end > span_start for span_start, span_end in spans)


class ClauseSegmenter:
    """
    Deterministic splitter for multi-event messages.

    Usage:
        clauses = ClauseSegmenter().segment("gym 7-8pm, then dinner")
    """

    def __init__(self, parser: Optional[TemporalTokenParser] = None):
        self._parser = parser or token_parser

    def segment(self, text: str) -> List[Clause]:
        """Split text into ordered clauses with roles assigned."""
        body = COMMAND_PREFIX_RE.sub("", text, count=1)
        fragments = [self._analyze(raw) for raw in self._split(body)]
        fragments = [f for f in fragments if f is not None]

        clauses = []
        for order, group in enumerate(self._group(fragments)):
            clause_text = " ".join(f.text for f in group)
            has_range = any(f.has_range for f in group)
            is_break = any(f.is_break for f in group)
            role = ClauseRole.BREAK_HINT if is_break and not has_range else ClauseRole.ACTIVITY
            clauses.append(Clause(text=clause_text, order=order, role=role))

        logger.debug(f"Segmented into {len(clauses)} clauses: {[c.text for c in clauses]}")
        return clauses

    # -----------------------------------------------------------------------
    # SPLITTING
    # -----------------------------------------------------------------------

    def _split(self, body: str) -> List[str]:
        spans = _protected_spans(body)
        pieces = []
        cursor = 0
        for match in DELIMITER_RE.finditer(body):
            if _inside(match.span(), spans):
                continue
            pieces.append(body[cursor:match.start()])
            cursor = match.end()
        pieces.append(body[cursor:])
        return pieces

    def _analyze(self, raw: str) -> Optional[_Fragment]:
        text = LIST_MARKER_RE.sub("", raw).strip(" .!?:\t")
        text = LEADING_CONNECTIVE_RE.sub("", text).strip()
        if not re.search(r"[a-z0-9]", text, re.IGNORECASE):
            return None

        tokens = self._parser.parse(text)
        residue = text
        for token in tokens:
            residue = residue.replace(token.text, " ")
        residue = FILLER_RE.sub(" ", strip_dates(residue))

        return _Fragment(
            text=text,
            has_time=any(t.kind != TokenKind.DURATION_MINUTES for t in tokens),
            has_range=any(t.kind == TokenKind.RANGE for t in tokens),
            has_duration=any(t.kind == TokenKind.DURATION_MINUTES for t in tokens),
            is_break=bool(BREAK_VOCABULARY_RE.search(text)),
            descriptive=bool(re.search(r"[a-z]{2,}", residue, re.IGNORECASE)),
        )

    # -----------------------------------------------------------------------
    # GROUPING
    # -----------------------------------------------------------------------

    def _group(self, fragments: List[_Fragment]) -> List[List[_Fragment]]:
        groups: List[List[_Fragment]] = []
        pending: Optional[_Fragment] = None
        # Date-only fragments ("tomorrow") ride along with the next group
        carry: List[_Fragment] = []

        def open_group(*members: _Fragment) -> None:
            groups.append(carry + list(members))
            carry.clear()

        for fragment in fragments:
            if not fragment.descriptive and not fragment.pure:
                carry.append(fragment)
                continue

            if fragment.pure:
                if pending is not None:
                    open_group(pending)
                    pending = None
                if groups and not carry and self._absorbs_backward(groups[-1], fragment):
                    groups[-1].append(fragment)
                else:
                    pending = fragment
                continue

            if pending is not None:
                bound = self._absorbs_forward(pending, fragment)
                pending, held = None, pending
                if bound:
                    open_group(held, fragment)
                    continue
                open_group(held)

            if not carry and self._continues_break(groups, fragment):
                groups[-1].append(fragment)
                continue

            open_group(fragment)

        if pending is not None:
            if groups and not carry and self._absorbs_backward(groups[-1], pending, trailing=True):
                groups[-1].append(pending)
            else:
                open_group(pending)
        if carry and groups:
            groups[-1].extend(carry)
        elif carry:
            groups.append(list(carry))
        return groups

    @staticmethod
    def _absorbs_backward(group: List[_Fragment], fragment: _Fragment, trailing: bool = False) -> bool:
        group_time = any(f.has_time for f in group)
        group_duration = any(f.has_duration for f in group)
        group_break = any(f.is_break for f in group)
        if fragment.has_time:
            if group_time or group_duration:
                return False
            # A time after a break usually starts the next activity
            return trailing or not group_break
        return not group_duration and not any(f.has_range for f in group)

    @staticmethod
    def _absorbs_forward(pending: _Fragment, fragment: _Fragment) -> bool:
        if fragment.has_time:
            return False
        # A break after a range, or a break with its own length, is a clause of its own
        if fragment.is_break and (pending.has_range or fragment.has_duration):
            return False
        return not (pending.has_duration and fragment.has_duration)

    @staticmethod
    def _continues_break(groups: List[List[_Fragment]], fragment: _Fragment) -> bool:
        if not groups or not fragment.is_break:
            return False
        if fragment.has_time or fragment.has_duration:
            return False
        return any(f.is_break for f in groups[-1])


clause_segmenter = ClauseSegmenter()
