"""Normalize date fragments found in OCR text to ISO instants at 12:00 UTC.

Noon keeps the calendar date stable when a client renders the instant in
its own timezone.
"""

import logging
import re
from datetime import date, datetime

from dateutil import parser as date_parser

logger = logging.getLogger(__name__)

# Finds date-like fragments inside a line: M/D/Y, Y-M-D, "March 3, 2026", "3rd of March 2026"
DATE_PATTERN = re.compile(
    r"(\b\d{1,2}[/-]\d{1,2}[/-]\d{2,4}\b)"
    r"|(\b\d{4}[/-]\d{1,2}[/-]\d{1,2}\b)"
    r"|(\b[A-Za-z]{3,9}\s+\d{1,2}(?:st|nd|rd|th)?[,]?\s*\d{4}\b)"
    r"|(\b\d{1,2}(?:st|nd|rd|th)?\s+(?:of\s+)?[A-Za-z]{3,9}[,]?\s*\d{4}\b)",
    re.ASCII,
)

MONTHS: dict[str, int] = {
    "jan": 1, "january": 1,
    "feb": 2, "february": 2,
    "mar": 3, "march": 3,
    "apr": 4, "april": 4,
    "may": 5,
    "jun": 6, "june": 6,
    "jul": 7, "july": 7,
    "aug": 8, "august": 8,
    "sep": 9, "sept": 9, "september": 9,
    "oct": 10, "october": 10,
    "nov": 11, "november": 11,
    "dec": 12, "december": 12,
}

_NUMERIC = re.compile(r"^(\d{1,4})[/-](\d{1,2})[/-](\d{1,4})$", re.ASCII)
_MONTH_FIRST = re.compile(r"^([A-Za-z]{3,9})\s+(\d{1,2})\s*(\d{4})$", re.ASCII)
_DAY_FIRST = re.compile(r"^(\d{1,2})\s+(?:of\s+)?([A-Za-z]{3,9})\s*(\d{4})$", re.ASCII | re.IGNORECASE)
_ORDINAL = re.compile(r"\b(\d{1,2})(st|nd|rd|th)\b", re.ASCII | re.IGNORECASE)

# Fills components dateutil cannot find, so results never depend on today's date
_FALLBACK_DEFAULT = datetime(2000, 1, 1)


def find_date_fragments(line: str) -> list[str]:
    """Return every date-like substring of a line, left to right."""
    return [match.group(0) for match in DATE_PATTERN.finditer(line)]


def to_iso_noon(year: int, month: int, day: int) -> str | None:
    """Format a calendar date as ``YYYY-MM-DDT12:00:00.000Z``.

    Returns None for dates that do not exist (month 13, Feb 30, year 0).
    """
    try:
        value = date(year, month, day)
    except ValueError:
        return None
    return f"{value.year:04d}-{value.month:02d}-{value.day:02d}T12:00:00.000Z"


def sanitize(candidate: str) -> str:
    cleaned = candidate.replace(",", " ")
    cleaned = re.sub(r"\s+", " ", cleaned)
    cleaned = _ORDINAL.sub(r"\1", cleaned)
    return cleaned.strip()


def parse_iso_date(candidate: str | None) -> str | None:
    """Parse one date fragment into an ISO instant, or None.

    Numeric dates resolve as Y-M-D when the first number is a year,
    M-D-Y when the last one is, and M-D-YY otherwise. Month names may
    lead ("March 3 2026") or follow the day ("3 of March 2026").
    Anything else goes through dateutil as a last resort.
    """
    if not candidate:
        return None

    sanitized = sanitize(candidate)
    if not sanitized:
        return None

    numeric = _NUMERIC.match(sanitized)
    if numeric:
        first, second, third = (int(part) for part in numeric.groups())
        if first > 1900:
            year, month, day = first, second, third
        elif third > 1900:
            year, month, day = third, first, second
        else:
            year = third if third >= 100 else 2000 + third
            month, day = first, second
        return to_iso_noon(year, month, day)

    month_first = _MONTH_FIRST.match(sanitized)
    if month_first:
        month_text, day_text, year_text = month_first.groups()
        month = MONTHS.get(month_text.lower())
        if month is not None:
            return to_iso_noon(int(year_text), month, int(day_text))

    day_first = _DAY_FIRST.match(sanitized)
    if day_first:
        day_text, month_text, year_text = day_first.groups()
        month = MONTHS.get(month_text.lower())
        if month is not None:
            return to_iso_noon(int(year_text), month, int(day_text))

    return _parse_fallback(sanitized)


def _parse_fallback(sanitized: str) -> str | None:
    try:
        parsed = date_parser.parse(sanitized, default=_FALLBACK_DEFAULT)
    except (ValueError, OverflowError) as e:
        logger.debug("Unparseable date fragment %r: %s", sanitized, e)
        return None
    return to_iso_noon(parsed.year, parsed.month, parsed.day)
