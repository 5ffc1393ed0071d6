"""Analysis orchestrator: raw OCR text -> fields + warnings.

Pure and synchronous. Safe to call from any number of request handlers.
"""

import logging
import re

from field_extractor import derive_fields_from_lines
from models import ANALYSIS_TYPES, AnalysisFields, AnalysisResult, AnalysisType
from warning_builder import build_warnings

logger = logging.getLogger(__name__)

NO_TEXT_WARNING = "No text detected in image"

_LINE_BREAK = re.compile(r"\r?\n")


def split_lines(raw_text: str | None) -> list[str]:
    """Split on line breaks, trim, and drop empty lines, keeping order."""
    if not raw_text:
        return []
    stripped = (line.strip() for line in _LINE_BREAK.split(raw_text))
    return [line for line in stripped if line]


def normalize_analysis_type(analysis_type: str | None) -> AnalysisType:
    if analysis_type in ANALYSIS_TYPES:
        return analysis_type  # type: ignore[return-value]
    if analysis_type is not None:
        logger.warning("Unknown analysis type %r, treating as 'unknown'", analysis_type)
    return "unknown"


def empty_result(analysis_type: AnalysisType, raw_text: str = "") -> AnalysisResult:
    return AnalysisResult(
        analysis_type=analysis_type,
        raw_text=raw_text,
        lines=[],
        fields=AnalysisFields(),
        warnings=[NO_TEXT_WARNING],
    )


def analyze_text(raw_text: str | None, analysis_type: str | None = "unknown") -> AnalysisResult:
    """Extract benefit fields from recognized text.

    Never raises for odd input: no usable lines gives an empty result with
    a single "No text detected" warning. Coupons never carry a coverage end
    date once an expiration date was found.
    """
    kind = normalize_analysis_type(analysis_type)
    text = raw_text or ""
    lines = split_lines(text)

    if not lines:
        return empty_result(kind, text)

    fields = derive_fields_from_lines(lines, kind)
    warnings = build_warnings(fields)

    if kind == "coupon" and fields.expires_on is not None:
        fields.coverage_ends_on = None

    return AnalysisResult(
        analysis_type=kind,
        raw_text=text,
        lines=lines,
        fields=fields,
        warnings=warnings,
    )


def analyze_lines(lines: list[str], analysis_type: str | None = "unknown") -> AnalysisResult:
    """Same as analyze_text for callers that already hold recognizer lines."""
    return analyze_text("\n".join(lines), analysis_type)
