"""
Temporal Token Parser - time and duration expressions inside a clause.

Recognized shapes:
==================
- Range:      "3:30 - 6:00", "6:05-6:50", "5pm to 6:30pm", "10:00 until 11"
- TimeOfDay:  "3:30", "7:15pm", "9 am", "at 8"
- Duration:   "5 minutes", "1.5 hours", "1 hour 30 minutes", "half an hour"

Tokens are returned raw. Twelve-hour times written without am/pm stay
ambiguous until MeridiemResolver walks the whole message, because the
right reading of "6:00" depends on the anchors before it.

Anything that looks like a clock time but fits none of the shapes
("25:00", "3:7", "13pm") raises MalformedTimeExpression.
"""

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple, Union

from jarvi.core.config import settings
from jarvi.core.errors import MalformedTimeExpression

logger = logging.getLogger("jarvi.ai.extraction.tokens")


class TokenKind(str, Enum):
    TIME_OF_DAY = "time_of_day"
    DURATION_MINUTES = "duration_minutes"
    RANGE = "range"


@dataclass(frozen=True)
class ClockTime:
    """A clock reading as written, before AM/PM resolution."""
    hour: int
    minute: int = 0
    meridiem: Optional[str] = None  # "am" / "pm" when the user wrote it

    @property
    def ambiguous(self) -> bool:
        return self.meridiem is None and 1 <= self.hour <= 12

    def candidates(self) -> List[int]:
        """Possible readings in minutes after midnight, ascending."""
        if self.meridiem == "am":
            return [(self.hour % 12) * 60 + self.minute]
        if self.meridiem == "pm":
            return [(self.hour % 12 + 12) * 60 + self.minute]
        if self.ambiguous:
            base = (self.hour % 12) * 60 + self.minute
            return [base, base + 12 * 60]
        return [self.hour * 60 + self.minute]

    def __str__(self) -> str:
        suffix = self.meridiem or ""
        return f"{self.hour}:{self.minute:02d}{suffix}"


TokenValue = Union[ClockTime, int, Tuple[ClockTime, ClockTime]]


@dataclass(frozen=True)
class TemporalToken:
    """
    One time expression found in a clause.

    value depends on kind:
        TIME_OF_DAY       -> ClockTime
        DURATION_MINUTES  -> int
        RANGE             -> (ClockTime, ClockTime)
    """
    kind: TokenKind
    value: TokenValue
    text: str = ""
    position: int = 0


# ---------------------------------------------------------------------------
# PATTERNS
# ---------------------------------------------------------------------------

_MERIDIEM = r"(?:a\.?m\.?|p\.?m\.?)"

# Each side is H, H:MM, optionally followed by am/pm. At least one side
# must carry minutes or a meridiem, otherwise "2-3 people" would match.
RANGE_RE = re.compile(
    rf"(?<![\d:./-])(?P<h1>\d{{1,2}})(?::(?P<m1>\d{{2}}))?(?:\s*(?P<p1>{_MERIDIEM})(?![a-z]))?"
    rf"\s*(?:-|–|—|\bto\b|\buntil\b|\btill\b)\s*"
    rf"(?P<h2>\d{{1,2}})(?::(?P<m2>\d{{2}}))?(?:\s*(?P<p2>{_MERIDIEM})(?![a-z]))?(?![\d:])",
    re.IGNORECASE,
)

ANCHOR_RE = re.compile(
    rf"(?<![\d:./-])(?P<h>\d{{1,2}}):(?P<m>\d{{2}})\s*(?P<p>{_MERIDIEM})?(?![\d:])"
    rf"|(?<![\d:./-])(?P<h2>\d{{1,2}})\s*(?P<p2>{_MERIDIEM})(?![a-z])"
    rf"|(?:\bat\b|@)\s*(?P<h3>\d{{1,2}})\b(?!\s*(?::|%|minutes?|mins?|hours?|hrs?))",
    re.IGNORECASE,
)

DURATION_RE = re.compile(
    r"(?P<h>\d+(?:\.\d+)?)\s*(?:hours?|hrs?|h)\b"
    r"(?:\s*(?:and\s+)?(?P<hm>\d+)\s*(?:minutes?|mins?)\b)?"
    r"|(?P<m>\d+)\s*(?:minutes?|mins?)\b",
    re.IGNORECASE,
)

_WORD_NUMBERS = {
    "a": 1, "an": 1, "one": 1, "two": 2, "three": 3, "four": 4, "five": 5,
    "six": 6, "seven": 7, "eight": 8, "nine": 9, "ten": 10, "fifteen": 15,
    "twenty": 20, "thirty": 30, "forty": 40, "forty-five": 45, "fifty": 50,
    "sixty": 60, "ninety": 90,
}

WORD_DURATION_RE = re.compile(
    r"\b(?P<phrase>half an hour|half hour|quarter of an hour|quarter hour)\b"
    r"|\b(?P<word>" + "|".join(sorted(_WORD_NUMBERS, key=len, reverse=True)) + r")"
    r"\s+(?P<unit>minutes?|mins?|hours?)\b",
    re.IGNORECASE,
)

_PHRASE_MINUTES = {
    "half an hour": 30,
    "half hour": 30,
    "quarter of an hour": 15,
    "quarter hour": 15,
}

# Dates must not be read as times ("2025-01-15", "15.01.2025")
DATE_MASK_RE = re.compile(r"\b\d{4}-\d{1,2}-\d{1,2}\b|\b\d{1,2}\.\d{1,2}\.\d{2,4}\b")

# Leftovers that still look like clock times after all valid shapes are removed
SUSPECT_TIME_RE = re.compile(
    rf"\d+\s*:\s*\d*|\b\d+\s*{_MERIDIEM}(?![a-z])",
    re.IGNORECASE,
)


def _mask(text: str, start: int, end: int) -> str:
    return text[:start] + " " * (end - start) + text[end:]


def _normalize_meridiem(raw: Optional[str]) -> Optional[str]:
    if not raw:
        return None
    return "am" if raw.lower().startswith("a") else "pm"


def _clock(hour: str, minute: Optional[str], meridiem: Optional[str], text: str) -> ClockTime:
    h = int(hour)
    m = int(minute) if minute else 0
    mer = _normalize_meridiem(meridiem)
    if m > 59 or h > 23 or (mer and not 1 <= h <= 12):
        raise MalformedTimeExpression(f"'{text.strip()}' is not a valid time of day")
    return ClockTime(hour=h, minute=m, meridiem=mer)


# ---------------------------------------------------------------------------
# PARSER
# ---------------------------------------------------------------------------


class TemporalTokenParser:
    """
    Deterministic time expression recognizer.

    Usage:
        tokens = TemporalTokenParser().parse("6:05-6:50 let's grind more")
        # [TemporalToken(kind=RANGE, value=(6:05, 6:50), ...)]
    """

    def parse(self, clause_text: str) -> List[TemporalToken]:
        """
        Extract all temporal tokens from a clause, in text order.

        Raises:
            MalformedTimeExpression: when something time-like matches no shape
        """
        text = DATE_MASK_RE.sub(lambda m: " " * len(m.group(0)), clause_text)
        tokens: List[TemporalToken] = []

        for match in RANGE_RE.finditer(text):
            if not (match.group("m1") or match.group("m2") or match.group("p1") or match.group("p2")):
                continue
            start = _clock(match.group("h1"), match.group("m1"), match.group("p1"), match.group(0))
            end = _clock(match.group("h2"), match.group("m2"), match.group("p2"), match.group(0))
            # "5-6pm" means both ends are pm, "11-1pm" does not
            if start.ambiguous and end.meridiem and start.hour % 12 <= end.hour % 12:
                start = ClockTime(start.hour, start.minute, end.meridiem)
            tokens.append(TemporalToken(TokenKind.RANGE, (start, end), match.group(0).strip(), match.start()))
            text = _mask(text, match.start(), match.end())

        for match in ANCHOR_RE.finditer(text):
            if match.group("h") is not None:
                clock = _clock(match.group("h"), match.group("m"), match.group("p"), match.group(0))
            elif match.group("h2") is not None:
                clock = _clock(match.group("h2"), None, match.group("p2"), match.group(0))
            else:
                clock = _clock(match.group("h3"), None, None, match.group(0))
            tokens.append(TemporalToken(TokenKind.TIME_OF_DAY, clock, match.group(0).strip(), match.start()))
            text = _mask(text, match.start(), match.end())

        for match in DURATION_RE.finditer(text):
            if match.group("h") is not None:
                minutes = round(float(match.group("h")) * 60)
                if match.group("hm"):
                    minutes += int(match.group("hm"))
            else:
                minutes = int(match.group("m"))
            tokens.append(TemporalToken(TokenKind.DURATION_MINUTES, minutes, match.group(0).strip(), match.start()))
            text = _mask(text, match.start(), match.end())

        for match in WORD_DURATION_RE.finditer(text):
            phrase = match.group("phrase")
            if phrase:
                minutes = _PHRASE_MINUTES[phrase.lower()]
            else:
                count = _WORD_NUMBERS[match.group("word").lower()]
                minutes = count * 60 if match.group("unit").lower().startswith("h") else count
            tokens.append(TemporalToken(TokenKind.DURATION_MINUTES, minutes, match.group(0).strip(), match.start()))
            text = _mask(text, match.start(), match.end())

        leftover = SUSPECT_TIME_RE.search(text)
        if leftover:
            raise MalformedTimeExpression(
                f"'{leftover.group(0).strip()}' looks like a time but is not a recognized format",
                clause=clause_text.strip(),
            )

        tokens.sort(key=lambda token: token.position)
        return tokens


token_parser = TemporalTokenParser()


# ---------------------------------------------------------------------------
# AM/PM RESOLUTION
# ---------------------------------------------------------------------------


class MeridiemResolver:
    """
    Assigns AM/PM to ambiguous times so a message's anchors never go backwards.

    Each reading must be at or after the previous resolved anchor. When both
    readings qualify the nearer one wins. When neither does, the nearest one
    is returned anyway and ordering validation reports the conflict.

    The first anchor of a message (and of each new date) is compared with
    the configured start of the day, so "3:30" alone reads as 15:30 while
    "8:00" reads as 08:00.
    """

    def __init__(self, day_start_hour: Optional[int] = None):
        hour = settings.DAY_START_HOUR if day_start_hour is None else day_start_hour
        self._reference = hour * 60
        self._previous = self._reference

    def reset(self) -> None:
        self._previous = self._reference

    def resolve(self, clock: ClockTime) -> int:
        """Return the chosen reading in minutes after midnight."""
        candidates = clock.candidates()
        later = [c for c in candidates if c >= self._previous]
        chosen = min(later) if later else max(candidates)
        if clock.ambiguous:
            logger.debug(f"Resolved ambiguous {clock} to {chosen // 60:02d}:{chosen % 60:02d}")
        self._previous = chosen
        return chosen


# ---------------------------------------------------------------------------
# TOKEN SUGGESTION CAPABILITY
# ---------------------------------------------------------------------------


class TokenSuggester(ABC):
    """Pluggable source of temporal tokens for a clause."""

    @abstractmethod
    async def suggest_tokens(self, clause_text: str) -> List[TemporalToken]:
        pass


class RuleBasedTokenSuggester(TokenSuggester):
    """Deterministic suggester backed by TemporalTokenParser."""

    def __init__(self, parser: Optional[TemporalTokenParser] = None):
        self._parser = parser or token_parser

    async def suggest_tokens(self, clause_text: str) -> List[TemporalToken]:
        return self._parser.parse(clause_text)
