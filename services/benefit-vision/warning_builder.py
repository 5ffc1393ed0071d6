"""User-facing warnings for fields the extractor could not fill."""

from models import AnalysisFields

MERCHANT_MISSING = "Merchant not detected"
DESCRIPTION_MISSING = "Description not detected"
DATE_MISSING = "Expiration or coverage date not detected"


def build_warnings(fields: AnalysisFields) -> list[str]:
    # Purchase date, product name and amount are best effort; no warning for them
    warnings: list[str] = []
    if fields.merchant is None:
        warnings.append(MERCHANT_MISSING)
    if fields.description is None:
        warnings.append(DESCRIPTION_MISSING)
    if fields.expires_on is None and fields.coverage_ends_on is None:
        warnings.append(DATE_MISSING)
    return warnings
