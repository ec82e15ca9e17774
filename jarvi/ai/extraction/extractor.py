"""
Multi-Event Extractor - ordered, gap-reconciled event descriptors.

This is the heart of scheduling interpretation. It turns segmented clauses
plus their temporal tokens into a sequence of EventDescriptors whose
boundaries never contradict each other.

Boundary rules (per clause, in document order):
===============================================
1. Explicit range            -> start and end as written
2. Anchor + duration         -> end = start + duration
3. Duration only             -> start = previous end, end = start + duration
                                (the default break placement)
4. Anchor only               -> end = next clause's start
5. Nothing                   -> start = previous end, end = next start

Rules 3-5 depend on neighbours, so they are applied until nothing changes.
A boundary still missing afterwards is an AmbiguousEventBoundary.

Reconciliation:
===============
After the sequence is built, an inferred break end (or an activity end
guessed without a duration) that disagrees with the next clause's
explicit start is moved onto it. Explicit user times win, and each move
is reported as a BoundaryReconciled diagnostic. An activity keeps the
duration it was given.

Validation:
===========
Every event must have end > start, stay within its day, and end no later
than the next event starts. Otherwise the whole message fails with
ValidationFailure. Nothing partial is emitted.
"""

import asyncio
import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import List, Optional
from zoneinfo import ZoneInfo

from jarvi.ai.extraction.dates import resolve_date, strip_dates
from jarvi.ai.extraction.schemas import (
    BoundaryReconciled,
    EventDescriptor,
    ExtractionResult,
)
from jarvi.ai.extraction.segmenter import (
    BREAK_VOCABULARY_RE,
    Clause,
    ClauseRole,
    ClauseSegmenter,
    clause_segmenter,
)
from jarvi.ai.extraction.tokens import (
    MeridiemResolver,
    RuleBasedTokenSuggester,
    TemporalToken,
    TemporalTokenParser,
    TokenKind,
    TokenSuggester,
    token_parser,
)
from jarvi.core.config import settings
from jarvi.core.errors import AmbiguousEventBoundary, ValidationFailure

logger = logging.getLogger("jarvi.ai.extraction")

MINUTES_PER_DAY = 24 * 60

TITLE_FILLER_RE = re.compile(
    r"^(?:(?:let'?s|lets|i\s+need\s+to|i\s+want\s+to|i\s+will|i'll|going\s+to|gonna|time\s+for|"
    r"then|and|also|from|at|to|until|for|on|a|an|the|some|do|have|with|-)\s+)+",
    re.IGNORECASE,
)
TITLE_TRAILING_RE = re.compile(
    r"(?:\s+(?:at|for|from|to|until|till|on|between|and|of|by|starting|lasting))+$",
    re.IGNORECASE,
)
TITLE_MAX_LENGTH = 60


def _to_time(minutes: int) -> time:
    return time(hour=minutes // 60, minute=minutes % 60)


def _fmt(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


@dataclass
class _Draft:
    """Mutable working state for one clause."""
    clause: Clause
    day: date
    start: Optional[int] = None
    end: Optional[int] = None
    duration: Optional[int] = None
    start_explicit: bool = False
    end_explicit: bool = False


class MultiEventExtractor:
    """
    Builds an ordered event sequence from a free-form message.

    Usage:
        extractor = MultiEventExtractor()
        result = await extractor.extract(
            "3:30 - 6:00 - grinding - and break of 5 minutes afterwards"
            " - 6:05-6:50 - let's grind more",
            reference=date(2025, 1, 15),
        )
        [(e.start_time, e.end_time) for e in result.events]
        # [(15:30, 18:00), (18:00, 18:05), (18:05, 18:50)]
    """

    def __init__(
        self,
        segmenter: Optional[ClauseSegmenter] = None,
        suggester: Optional[TokenSuggester] = None,
        parser: Optional[TemporalTokenParser] = None,
        day_start_hour: Optional[int] = None,
        suggest_timeout: Optional[float] = None,
    ):
        self._segmenter = segmenter or clause_segmenter
        self._parser = parser or token_parser
        self._suggester = suggester or RuleBasedTokenSuggester(self._parser)
        self._day_start_hour = settings.DAY_START_HOUR if day_start_hour is None else day_start_hour
        self._suggest_timeout = suggest_timeout or settings.AI_REQUEST_TIMEOUT

    # -----------------------------------------------------------------------
    # PUBLIC API
    # -----------------------------------------------------------------------

    async def extract(self, text: str, reference: Optional[date] = None) -> ExtractionResult:
        """
        Segment, tokenize and build events for a whole message.

        Raises:
            MalformedTimeExpression, AmbiguousEventBoundary, ValidationFailure
        """
        clauses = self._segmenter.segment(text)
        if not clauses:
            raise AmbiguousEventBoundary("No event could be found in the message", clause=text.strip())

        tokens = [await self._suggest(clause) for clause in clauses]
        return self.build(clauses, reference=reference, tokens=tokens)

    def build(
        self,
        clauses: List[Clause],
        reference: Optional[date] = None,
        tokens: Optional[List[List[TemporalToken]]] = None,
    ) -> ExtractionResult:
        """
        Pure construction of the event sequence from already segmented clauses.

        Args:
            clauses: Clauses in document order
            reference: "Today" for date inheritance (defaults to now in DEFAULT_TIMEZONE)
            tokens: Per-clause tokens; parsed with the rule-based parser when omitted
        """
        reference = reference or datetime.now(ZoneInfo(settings.DEFAULT_TIMEZONE)).date()
        if tokens is None:
            tokens = [self._parser.parse(clause.text) for clause in clauses]

        drafts = self._draft(clauses, tokens, reference)
        self._infer(drafts)
        diagnostics = self._reconcile(drafts)
        self._validate(drafts)

        events = [
            EventDescriptor(
                title=self._title(draft.clause),
                event_date=draft.day,
                start_time=_to_time(draft.start),
                end_time=_to_time(draft.end),
                description=draft.clause.text,
                source_clause_order=draft.clause.order,
            )
            for draft in drafts
        ]
        logger.info(
            f"Extracted {len(events)} events: "
            + ", ".join(f"{e.title} {e.start_time:%H:%M}-{e.end_time:%H:%M}" for e in events)
        )
        return ExtractionResult(events=events, diagnostics=diagnostics)

    # -----------------------------------------------------------------------
    # TOKENS
    # -----------------------------------------------------------------------

    async def _suggest(self, clause: Clause) -> List[TemporalToken]:
        if isinstance(self._suggester, RuleBasedTokenSuggester):
            return await self._suggester.suggest_tokens(clause.text)
        try:
            return await asyncio.wait_for(
                self._suggester.suggest_tokens(clause.text),
                timeout=self._suggest_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(f"Token suggestion timed out for clause {clause.order}, using rules")
            return self._parser.parse(clause.text)

    # -----------------------------------------------------------------------
    # DRAFTING
    # -----------------------------------------------------------------------

    def _draft(
        self,
        clauses: List[Clause],
        tokens: List[List[TemporalToken]],
        reference: date,
    ) -> List[_Draft]:
        resolver = MeridiemResolver(self._day_start_hour)
        current_day = reference
        drafts = []

        for clause, clause_tokens in zip(clauses, tokens):
            named_day = resolve_date(clause.text, reference)
            if named_day and named_day != current_day:
                current_day = named_day
                resolver.reset()

            draft = _Draft(clause=clause, day=current_day)
            anchors: List[int] = []
            durations: List[int] = []

            for token in clause_tokens:
                if token.kind == TokenKind.RANGE and draft.start is None:
                    start_clock, end_clock = token.value
                    draft.start = resolver.resolve(start_clock)
                    draft.end = resolver.resolve(end_clock)
                    draft.start_explicit = draft.end_explicit = True
                elif token.kind == TokenKind.TIME_OF_DAY:
                    anchors.append(resolver.resolve(token.value))
                elif token.kind == TokenKind.DURATION_MINUTES:
                    durations.append(token.value)

            if draft.start is None and anchors:
                draft.start = anchors[0]
                draft.start_explicit = True
                if len(anchors) > 1:
                    draft.end = anchors[1]
                    draft.end_explicit = True
            if durations and not draft.end_explicit:
                draft.duration = sum(durations)

            drafts.append(draft)
        return drafts

    @staticmethod
    def _infer(drafts: List[_Draft]) -> None:
        changed = True
        while changed:
            changed = False
            for i, draft in enumerate(drafts):
                prev = drafts[i - 1] if i > 0 and drafts[i - 1].day == draft.day else None
                nxt = drafts[i + 1] if i + 1 < len(drafts) and drafts[i + 1].day == draft.day else None

                if draft.start is None and prev is not None and prev.end is not None:
                    draft.start = prev.end
                    changed = True
                if draft.end is None and draft.start is not None and draft.duration:
                    draft.end = draft.start + draft.duration
                    changed = True
                if draft.end is None and nxt is not None and nxt.start is not None and nxt.start_explicit:
                    draft.end = nxt.start
                    changed = True
                if draft.start is None and draft.end is not None and draft.duration:
                    draft.start = draft.end - draft.duration
                    changed = True
            if not changed:
                # Timeless clauses between two other timeless ones can only be
                # closed once the neighbour's inferred start is known.
                for i, draft in enumerate(drafts[:-1]):
                    nxt = drafts[i + 1]
                    if draft.end is None and draft.start is not None and nxt.day == draft.day and nxt.start is not None:
                        draft.end = nxt.start
                        changed = True

        for i, draft in enumerate(drafts):
            if draft.start is None:
                raise AmbiguousEventBoundary(
                    "Could not tell when this event starts; add a time",
                    clause=draft.clause.text,
                )
            if draft.end is None:
                reason = "it is the last one" if i == len(drafts) - 1 else "nothing after it has a start time"
                raise AmbiguousEventBoundary(
                    f"Could not tell when this event ends because {reason}; add an end time or a duration",
                    clause=draft.clause.text,
                )

    # -----------------------------------------------------------------------
    # RECONCILIATION & VALIDATION
    # -----------------------------------------------------------------------

    @staticmethod
    def _reconcile(drafts: List[_Draft]) -> List[BoundaryReconciled]:
        diagnostics = []
        for draft, nxt in zip(drafts, drafts[1:]):
            if draft.end_explicit or not nxt.start_explicit or nxt.day != draft.day:
                continue
            if draft.end == nxt.start:
                continue
            # A duration the user gave an activity stands; overlaps fail validation
            if draft.clause.role == ClauseRole.ACTIVITY and draft.duration:
                continue
            diagnostics.append(BoundaryReconciled(
                clause_order=draft.clause.order,
                inferred_end=_to_time(draft.end % MINUTES_PER_DAY),
                reconciled_end=_to_time(nxt.start),
            ))
            logger.info(
                f"Reconciled clause {draft.clause.order} end {_fmt(draft.end)} -> {_fmt(nxt.start)}"
            )
            draft.end = nxt.start
        return diagnostics

    @staticmethod
    def _validate(drafts: List[_Draft]) -> None:
        for draft in drafts:
            if draft.start < 0 or draft.end > MINUTES_PER_DAY - 1:
                raise ValidationFailure(
                    "Events must start and end on the same day",
                    clause=draft.clause.text,
                )
            if draft.end <= draft.start:
                raise ValidationFailure(
                    f"This event would end ({_fmt(draft.end)}) before it starts ({_fmt(draft.start)})",
                    clause=draft.clause.text,
                )

        for draft, nxt in zip(drafts, drafts[1:]):
            end = datetime.combine(draft.day, _to_time(draft.end))
            start = datetime.combine(nxt.day, _to_time(nxt.start))
            if end > start:
                raise ValidationFailure(
                    f"This event starts at {_fmt(nxt.start)}, before the previous one ends at {_fmt(draft.end)}",
                    clause=nxt.clause.text,
                )

    # -----------------------------------------------------------------------
    # TITLES
    # -----------------------------------------------------------------------

    def _title(self, clause: Clause) -> str:
        text = clause.text
        for token in self._parser.parse(text):
            text = text.replace(token.text, " ")
        text = strip_dates(text)
        text = re.sub(r"[\s,;:.!?–—-]+", " ", text).strip()
        text = TITLE_FILLER_RE.sub("", text).strip()
        text = TITLE_TRAILING_RE.sub("", text).strip()

        residue = BREAK_VOCABULARY_RE.sub(" ", text)
        residue = re.sub(r"\b(?:of|as|a|an|the|for|short|quick|small|take|have)\b", " ", residue, flags=re.IGNORECASE)
        if clause.role == ClauseRole.BREAK_HINT or (BREAK_VOCABULARY_RE.search(text) and not residue.strip()):
            return "Break"
        if not text:
            return "Event"
        if len(text) > TITLE_MAX_LENGTH:
            text = text[:TITLE_MAX_LENGTH].rsplit(" ", 1)[0]
        return text[0].upper() + text[1:]


multi_event_extractor = MultiEventExtractor()
