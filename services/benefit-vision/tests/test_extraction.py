"""Tests for the image pipeline with a mocked recognition client."""

import sys
from pathlib import Path
from unittest.mock import MagicMock, patch

import httpx
import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from analysis import NO_TEXT_WARNING
from extraction import analyze_image
from ocr_client import (
    DetectionResult,
    RecognitionServiceError,
    RecognitionServiceUnavailable,
    TextRecognitionClient,
)

EMPTY = DetectionResult(raw_text="", text_annotations=0, pages=0)


def _detected(text: str) -> DetectionResult:
    return DetectionResult(raw_text=text, text_annotations=len(text.split()) + 1, pages=1)


class TestAnalyzeImage:
    def test_text_on_processed_image(self, sample_image_bytes: bytes, coupon_text: str):
        mock_client = MagicMock()
        mock_client.detect_text.return_value = _detected(coupon_text)

        result = analyze_image(sample_image_bytes, "coupon", mock_client, storage_id="abc123")
        assert result.storage_id == "abc123"
        assert result.analysis_type == "coupon"
        assert result.fields.merchant.value == "Acme Store"
        assert result.fields.expires_on.value == "2025-12-25T12:00:00.000Z"
        assert result.fields.coverage_ends_on is None
        assert result.warnings == []
        assert result.debug is None
        mock_client.detect_text.assert_called_once_with(sample_image_bytes, "processed")

    def test_falls_back_to_original(self, large_image_bytes: bytes, warranty_text: str):
        mock_client = MagicMock()
        mock_client.detect_text.side_effect = [EMPTY, _detected(warranty_text)]

        result = analyze_image(large_image_bytes, "warranty", mock_client)
        assert result.fields.coverage_ends_on.value == "2027-01-01T12:00:00.000Z"
        labels = [call.args[1] for call in mock_client.detect_text.call_args_list]
        assert labels == ["processed", "original"]
        # Original attempt sends the untouched upload
        assert mock_client.detect_text.call_args_list[1].args[0] == large_image_bytes

    def test_tries_rotations_until_text_found(self, sample_image_bytes: bytes, coupon_text: str):
        mock_client = MagicMock()
        mock_client.detect_text.side_effect = [EMPTY, EMPTY, EMPTY, _detected(coupon_text)]

        result = analyze_image(sample_image_bytes, "coupon", mock_client)
        labels = [call.args[1] for call in mock_client.detect_text.call_args_list]
        assert labels == ["processed", "original", "rotated_90", "rotated_180"]
        assert result.lines == ["Acme Store", "10% off all items", "Valid thru 12/25/2025"]

    def test_no_text_after_all_attempts(self, sample_image_bytes: bytes):
        mock_client = MagicMock()
        mock_client.detect_text.return_value = EMPTY

        result = analyze_image(sample_image_bytes, "warranty", mock_client)
        assert result.lines == []
        assert result.raw_text == ""
        assert result.warnings == [NO_TEXT_WARNING]
        assert result.fields.model_dump(exclude_none=True) == {}
        assert mock_client.detect_text.call_count == 5

        attempts = [attempt["label"] for attempt in result.debug["attempts"]]
        assert attempts == ["processed", "original", "rotated_90", "rotated_180", "rotated_270"]
        assert result.debug["processedSize"] == len(sample_image_bytes)

    def test_service_unavailable_returns_warning(self, sample_image_bytes: bytes):
        mock_client = MagicMock()
        mock_client.detect_text.side_effect = RecognitionServiceUnavailable("Backend unavailable")

        result = analyze_image(sample_image_bytes, "coupon", mock_client)
        assert result.lines == []
        assert result.warnings[0] == NO_TEXT_WARNING
        assert "unavailable" in result.warnings[1].lower()

    def test_service_error_returns_warning(self, sample_image_bytes: bytes):
        mock_client = MagicMock()
        mock_client.detect_text.side_effect = RecognitionServiceError("Bad image data.")

        result = analyze_image(sample_image_bytes, "coupon", mock_client)
        assert result.fields.model_dump(exclude_none=True) == {}
        assert len(result.warnings) == 2
        assert "failed" in result.warnings[1].lower()

    def test_unknown_benefit_type(self, sample_image_bytes: bytes, receipt_text: str):
        mock_client = MagicMock()
        mock_client.detect_text.return_value = _detected(receipt_text)

        result = analyze_image(sample_image_bytes, None, mock_client)
        assert result.analysis_type == "unknown"
        assert "Expiration or coverage date not detected" in result.warnings


class TestMalformedServiceResponses:
    @pytest.fixture
    def ocr_client(self):
        client = TextRecognitionClient(
            base_url="http://fake-vision:8080/v1",
            api_key="test-key",
            retry_attempts=1,
            retry_delay=0.01,
            retry_backoff=1.0,
        )
        yield client
        client.close()

    @pytest.mark.parametrize(
        "response",
        [
            httpx.Response(200, text="<html>gateway</html>"),
            httpx.Response(200, json=[]),
            httpx.Response(200, json={"responses": [None]}),
        ],
        ids=["html", "json-list", "null-entry"],
    )
    def test_degrades_to_no_text_result(
        self, ocr_client: TextRecognitionClient, sample_image_bytes: bytes, response: httpx.Response,
    ):
        with patch.object(ocr_client._client, "post", return_value=response):
            result = analyze_image(sample_image_bytes, "coupon", ocr_client)

        assert result.analysis_type == "coupon"
        assert result.lines == []
        assert result.fields.model_dump(exclude_none=True) == {}
        assert result.warnings[0] == NO_TEXT_WARNING
        assert result.warnings[1].startswith("Text recognition failed:")
        assert [attempt["label"] for attempt in result.debug["attempts"]] == ["processed"]
