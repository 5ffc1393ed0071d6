"""Pydantic models matching the shared VisionAnalysisResult shape.

JSON keys are camelCase on the wire; Python attributes stay snake_case.
"""

from typing import Any, Generic, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, model_validator
from pydantic.alias_generators import to_camel

T = TypeVar("T")

AnalysisType = Literal["coupon", "warranty", "unknown"]
ANALYSIS_TYPES: tuple[str, ...] = ("coupon", "warranty", "unknown")


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FieldSuggestion(CamelModel, Generic[T]):
    """One inferred value plus the line it was read from."""

    model_config = ConfigDict(frozen=True)

    value: T
    confidence: float
    source_text: str


class AnalysisFields(CamelModel):
    merchant: FieldSuggestion[str] | None = None
    description: FieldSuggestion[str] | None = None
    expires_on: FieldSuggestion[str] | None = None
    product_name: FieldSuggestion[str] | None = None
    purchase_date: FieldSuggestion[str] | None = None
    coverage_ends_on: FieldSuggestion[str] | None = None
    total_amount: FieldSuggestion[float] | None = None


class AnalysisResult(CamelModel):
    analysis_type: AnalysisType
    raw_text: str
    lines: list[str]
    fields: AnalysisFields
    warnings: list[str] = []


class ImageAnalysisResponse(AnalysisResult):
    storage_id: str = ""
    processing_time_ms: int = 0
    debug: dict[str, Any] | None = None


class TextAnalysisRequest(CamelModel):
    raw_text: str | None = None
    lines: list[str] | None = None
    benefit_type: AnalysisType = "unknown"

    @model_validator(mode="after")
    def _require_text(self) -> "TextAnalysisRequest":
        if self.raw_text is None and self.lines is None:
            raise ValueError("Either rawText or lines must be provided")
        return self
