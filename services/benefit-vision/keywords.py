"""Trigger words and scores used by the field extractor.

All keyword matching is a case-insensitive substring test against a line.
"""

# Lines mentioning these read as an expiration ("Valid thru 12/25/2025")
EXPIRY_KEYWORDS: tuple[str, ...] = (
    "expire",
    "valid",
    "thru",
    "through",
    "until",
    "redeem",
)

# Lines mentioning these read as a purchase ("Order date 03/02/2024")
PURCHASE_KEYWORDS: tuple[str, ...] = (
    "purchase",
    "purchased",
    "bought",
    "order",
    "date",
    "issued",
)

# A line with one of these states a range; expiry takes its latest date,
# purchase its first
RANGE_KEYWORDS: tuple[str, ...] = ("thru", "through", "until")

AMOUNT_KEYWORDS: tuple[str, ...] = ("total", "amount", "balance", "due")

WARRANTY_KEYWORD = "warrant"

MERCHANT_CONFIDENCE = 0.45
DESCRIPTION_CONFIDENCE = 0.4
PRODUCT_NAME_CONFIDENCE = 0.5
AMOUNT_CONFIDENCE = 0.8

KEYWORD_CONFIDENCE = 0.85
NO_KEYWORD_CONFIDENCE = 0.55

DESCRIPTION_MIN_LENGTH = 3
DESCRIPTION_WINDOW = slice(1, 4)
