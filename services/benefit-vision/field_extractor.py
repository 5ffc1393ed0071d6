"""Heuristic field extraction from OCR lines.

Position and keyword based only: the first line is taken as the merchant,
the next few as the description, and dates/amounts are scored by the words
around them on the same line.
"""

import logging
import re
from typing import Literal

from date_parser import find_date_fragments, parse_iso_date
from keywords import (
    AMOUNT_CONFIDENCE,
    AMOUNT_KEYWORDS,
    DESCRIPTION_CONFIDENCE,
    DESCRIPTION_MIN_LENGTH,
    DESCRIPTION_WINDOW,
    EXPIRY_KEYWORDS,
    KEYWORD_CONFIDENCE,
    MERCHANT_CONFIDENCE,
    NO_KEYWORD_CONFIDENCE,
    PRODUCT_NAME_CONFIDENCE,
    PURCHASE_KEYWORDS,
    RANGE_KEYWORDS,
    WARRANTY_KEYWORD,
)
from models import AnalysisFields, AnalysisType, FieldSuggestion

logger = logging.getLogger(__name__)

DatePreference = Literal["later", "earlier"]

AMOUNT_PATTERN = re.compile(
    r"(" + "|".join(AMOUNT_KEYWORDS) + r")\D{0,8}(\d{1,3}(?:[.,]\d{3})*\.?\d{2})",
    re.ASCII | re.IGNORECASE,
)
RANGE_PATTERN = re.compile("|".join(RANGE_KEYWORDS), re.IGNORECASE)


def score_for_context(line: str, keywords: tuple[str, ...]) -> float:
    """0.85 when the line contains any keyword, 0.55 otherwise."""
    lowered = line.lower()
    if any(keyword in lowered for keyword in keywords):
        return KEYWORD_CONFIDENCE
    return NO_KEYWORD_CONFIDENCE


def pick_better_candidate(
    current: FieldSuggestion[str] | None,
    candidate: FieldSuggestion[str],
    prefer: DatePreference,
) -> FieldSuggestion[str]:
    """Return whichever of two date suggestions should be kept.

    Higher confidence wins. On equal confidence the later ISO string wins
    when ``prefer`` is "later" and the earlier one when it is "earlier";
    otherwise the current suggestion stays.
    """
    if current is None:
        return candidate
    if candidate.confidence > current.confidence:
        return candidate
    if candidate.confidence == current.confidence:
        if prefer == "later" and candidate.value > current.value:
            return candidate
        if prefer == "earlier" and candidate.value < current.value:
            return candidate
    return current


def _parsed_dates(line: str) -> list[str]:
    parsed = (parse_iso_date(fragment) for fragment in find_date_fragments(line))
    return [value for value in parsed if value is not None]


def _scan_dates(
    lines: list[str],
    keywords: tuple[str, ...],
    prefer: DatePreference,
) -> FieldSuggestion[str] | None:
    """Fold every dated line into the best date suggestion.

    On range lines ("valid thru", "until") expiry scans take the latest
    date and purchase scans the first one; elsewhere expiry takes the first
    date and purchase the earliest.
    """
    best: FieldSuggestion[str] | None = None

    for line in lines:
        iso_values = _parsed_dates(line)
        if not iso_values:
            continue

        confidence = score_for_context(line, keywords)
        is_range = RANGE_PATTERN.search(line) is not None
        if prefer == "later":
            candidate_iso = max(iso_values) if is_range else iso_values[0]
        else:
            candidate_iso = iso_values[0] if is_range else min(iso_values)

        best = pick_better_candidate(
            best,
            FieldSuggestion[str](value=candidate_iso, confidence=confidence, source_text=line),
            prefer,
        )

    return best


def find_total_amount(lines: list[str]) -> FieldSuggestion[float] | None:
    """Return the last "total/amount/balance/due" figure in the text."""
    for line in reversed(lines):
        match = AMOUNT_PATTERN.search(line)
        if not match:
            continue
        try:
            amount = float(match.group(2).replace(",", ""))
        except ValueError:
            logger.debug("Skipping unparseable amount %r", match.group(2))
            continue
        return FieldSuggestion[float](value=amount, confidence=AMOUNT_CONFIDENCE, source_text=line)
    return None


def derive_fields_from_lines(lines: list[str], analysis_type: AnalysisType) -> AnalysisFields:
    """Infer benefit fields from trimmed, non-empty OCR lines."""
    fields = AnalysisFields()
    if not lines:
        return fields

    merchant_line = lines[0]
    fields.merchant = FieldSuggestion[str](
        value=merchant_line, confidence=MERCHANT_CONFIDENCE, source_text=merchant_line,
    )

    description_line = next(
        (line for line in lines[DESCRIPTION_WINDOW] if len(line) > DESCRIPTION_MIN_LENGTH),
        None,
    )
    if description_line is not None:
        fields.description = FieldSuggestion[str](
            value=description_line, confidence=DESCRIPTION_CONFIDENCE, source_text=description_line,
        )

    fields.expires_on = _scan_dates(lines, EXPIRY_KEYWORDS, prefer="later")
    fields.purchase_date = _scan_dates(lines, PURCHASE_KEYWORDS, prefer="earlier")
    fields.total_amount = find_total_amount(lines)

    if analysis_type == "warranty":
        warranty_line = next((line for line in lines if WARRANTY_KEYWORD in line.lower()), None)
        if warranty_line is not None:
            fields.product_name = FieldSuggestion[str](
                value=warranty_line, confidence=PRODUCT_NAME_CONFIDENCE, source_text=warranty_line,
            )
        if fields.expires_on is not None and fields.coverage_ends_on is None:
            fields.coverage_ends_on = fields.expires_on

    logger.debug(
        "Derived fields for %s from %d lines: %s",
        analysis_type,
        len(lines),
        sorted(fields.model_dump(exclude_none=True)),
    )
    return fields
