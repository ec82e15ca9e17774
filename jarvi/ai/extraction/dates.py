"""
Date resolution for clauses.

A clause may name its own date ("tomorrow", "next Friday", "January 15",
"2025-03-02"). Later clauses without a date inherit the most recent one;
the first clause defaults to the reference day.
"""

import re
from datetime import date, timedelta
from typing import Optional

WEEKDAYS = {
    "monday": 0, "tuesday": 1, "wednesday": 2, "thursday": 3,
    "friday": 4, "saturday": 5, "sunday": 6,
}

MONTHS = {
    "january": 1, "february": 2, "march": 3, "april": 4,
    "may": 5, "june": 6, "july": 7, "august": 8,
    "september": 9, "october": 10, "november": 11, "december": 12,
}

ISO_DATE_RE = re.compile(r"\b(\d{4})-(\d{1,2})-(\d{1,2})\b")
MONTH_DAY_RE = re.compile(
    r"\b(" + "|".join(MONTHS) + r")\s+(\d{1,2})(?:st|nd|rd|th)?\b(?:,?\s*(\d{4}))?",
    re.IGNORECASE,
)
WEEKDAY_RE = re.compile(
    r"\b(?:(next|this|on)\s+)?(" + "|".join(WEEKDAYS) + r")\b",
    re.IGNORECASE,
)


def next_weekday(today: date, weekday: int) -> date:
    """Next occurrence of weekday strictly after today."""
    days_ahead = weekday - today.weekday()
    if days_ahead <= 0:
        days_ahead += 7
    return today + timedelta(days=days_ahead)


def resolve_date(text: str, today: date) -> Optional[date]:
    """
    Find an explicit date in text.

    Examples (today = Wednesday 2025-01-15):
        "tomorrow"        -> 2025-01-16
        "next monday"     -> 2025-01-20
        "wednesday"       -> 2025-01-22
        "January 10"      -> 2026-01-10 (already passed this year)
        "2025-03-02"      -> 2025-03-02

    Returns:
        The date, or None when the text names none
    """
    lowered = text.lower()

    iso = ISO_DATE_RE.search(lowered)
    if iso:
        try:
            return date(int(iso.group(1)), int(iso.group(2)), int(iso.group(3)))
        except ValueError:
            return None

    if "day after tomorrow" in lowered:
        return today + timedelta(days=2)
    if re.search(r"\btomorrow\b", lowered):
        return today + timedelta(days=1)
    if re.search(r"\b(today|tonight)\b", lowered):
        return today

    month_day = MONTH_DAY_RE.search(lowered)
    if month_day:
        month = MONTHS[month_day.group(1)]
        day = int(month_day.group(2))
        explicit_year = month_day.group(3)
        try:
            if explicit_year:
                return date(int(explicit_year), month, day)
            target = date(today.year, month, day)
            if target < today:
                target = date(today.year + 1, month, day)
            return target
        except ValueError:
            return None

    weekday = WEEKDAY_RE.search(lowered)
    if weekday:
        return next_weekday(today, WEEKDAYS[weekday.group(2)])

    return None


def strip_dates(text: str) -> str:
    """Remove date phrases so they do not leak into titles."""
    cleaned = ISO_DATE_RE.sub(" ", text)
    cleaned = MONTH_DAY_RE.sub(" ", cleaned)
    cleaned = WEEKDAY_RE.sub(" ", cleaned)
    cleaned = re.sub(r"\b(?:the\s+)?day after tomorrow\b|\btomorrow\b|\btoday\b|\btonight\b", " ", cleaned, flags=re.IGNORECASE)
    return re.sub(r"\s+", " ", cleaned).strip()
