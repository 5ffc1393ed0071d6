"""Shared test fixtures for benefit vision tests."""

import sys
from pathlib import Path

import numpy as np
import pytest

# Add parent directory to path so we can import the modules
sys.path.insert(0, str(Path(__file__).parent.parent))


@pytest.fixture
def sample_image_bytes() -> bytes:
    """Generate a small JPEG (below the preprocessing threshold)."""
    import cv2

    # Create a 200x300 image with some text-like features
    img = np.zeros((300, 200, 3), dtype=np.uint8)
    img[:] = (240, 240, 240)  # Light gray background

    # Add some dark rectangles to simulate text regions
    cv2.rectangle(img, (20, 30), (180, 50), (30, 30, 30), -1)
    cv2.rectangle(img, (20, 70), (160, 90), (30, 30, 30), -1)
    cv2.rectangle(img, (20, 110), (140, 130), (30, 30, 30), -1)

    _, buf = cv2.imencode(".jpg", img, [cv2.IMWRITE_JPEG_QUALITY, 90])
    return buf.tobytes()


@pytest.fixture
def large_image_bytes() -> bytes:
    """Generate a noisy 400x600 JPEG, well above the preprocessing byte threshold."""
    import cv2

    rng = np.random.default_rng(seed=7)
    img = rng.integers(0, 256, size=(400, 600, 3), dtype=np.uint8)
    _, buf = cv2.imencode(".jpg", img, [cv2.IMWRITE_JPEG_QUALITY, 95])
    return buf.tobytes()


@pytest.fixture
def invalid_bytes() -> bytes:
    """Non-image bytes for testing graceful degradation."""
    return b"this is not an image file at all"


@pytest.fixture
def coupon_text() -> str:
    """Recognized text from a typical store coupon."""
    return "Acme Store\r\n10% off all items\r\n\r\n  Valid thru 12/25/2025  \n"


@pytest.fixture
def warranty_text() -> str:
    """Recognized text from a warranty card with a receipt stapled to it."""
    return "\n".join([
        "Best Electronics",
        "4K Television 55in",
        "Purchased 03/15/2024",
        "Warranty valid until 01/01/2027",
        "Total: $1,299.99",
    ])


@pytest.fixture
def receipt_text() -> str:
    """Recognized text from a receipt with no expiration information."""
    return "\n".join([
        "Corner Grocery",
        "Milk 2% 1gal",
        "Bread",
        "Subtotal 7.48",
        "Tax 0.52",
        "Total 8.00",
    ])


@pytest.fixture
def vision_text_response() -> dict:
    """Mock images:annotate response with full text."""
    return {
        "responses": [
            {
                "fullTextAnnotation": {
                    "text": "Acme Store\n10% off all items\nValid thru 12/25/2025\n",
                    "pages": [{"width": 600, "height": 400}],
                },
                "textAnnotations": [
                    {"description": "Acme Store\n10% off all items\nValid thru 12/25/2025\n"},
                    {"description": "Acme"},
                    {"description": "Store"},
                ],
            }
        ]
    }


@pytest.fixture
def vision_empty_response() -> dict:
    """Mock images:annotate response with no text at all."""
    return {"responses": [{}]}
