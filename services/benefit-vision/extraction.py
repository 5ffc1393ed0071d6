"""Image pipeline: preprocess, recognize text with fallbacks, analyze.

Recognition runs on the preprocessed image first, then on the original,
then on 90/180/270 degree rotations until some text comes back.
"""

import logging
import time

from analysis import NO_TEXT_WARNING, analyze_text, empty_result, normalize_analysis_type
from models import ImageAnalysisResponse
from ocr_client import (
    DetectionResult,
    RecognitionServiceError,
    RecognitionServiceUnavailable,
    TextRecognitionClient,
)
from preprocessing import preprocess, rotation_variants

logger = logging.getLogger(__name__)


def analyze_image(
    image_bytes: bytes,
    analysis_type: str | None,
    client: TextRecognitionClient,
    storage_id: str = "",
) -> ImageAnalysisResponse:
    """Run the image pipeline: preprocess -> recognize -> analyze."""
    start = time.monotonic()
    kind = normalize_analysis_type(analysis_type)

    processed = preprocess(image_bytes)
    logger.info(
        "Preprocessed image: %d bytes -> %d bytes",
        len(image_bytes), len(processed),
    )

    attempts: list[dict] = []
    try:
        detection = _recognize(client, processed, image_bytes, attempts)
    except RecognitionServiceUnavailable as e:
        logger.error("Recognition service unavailable after retries: %s", e)
        return _failed(kind, storage_id, start, f"Text recognition service unavailable: {e}", attempts)
    except RecognitionServiceError as e:
        logger.error("Recognition service error: %s", e)
        return _failed(kind, storage_id, start, f"Text recognition failed: {e}", attempts)

    elapsed_ms = int((time.monotonic() - start) * 1000)

    if not detection.raw_text.strip():
        logger.info("No text detected after %d attempts", len(attempts))
        result = empty_result(kind)
        return ImageAnalysisResponse(
            **result.model_dump(),
            storage_id=storage_id,
            processing_time_ms=elapsed_ms,
            debug={
                "processedSize": len(processed),
                "textAnnotations": detection.text_annotations,
                "documentPages": detection.pages,
                "attempts": attempts,
            },
        )

    result = analyze_text(detection.raw_text, kind)
    logger.info(
        "Analyzed %d lines (%s): %d warnings",
        len(result.lines), attempts[-1]["label"], len(result.warnings),
    )
    return ImageAnalysisResponse(
        **result.model_dump(),
        storage_id=storage_id,
        processing_time_ms=elapsed_ms,
    )


def _recognize(
    client: TextRecognitionClient,
    processed: bytes,
    original: bytes,
    attempts: list[dict],
) -> DetectionResult:
    attempts.append({"label": "processed", "size": len(processed)})
    detection = client.detect_text(processed, "processed")
    if detection.raw_text.strip():
        return detection

    attempts.append({"label": "original", "size": len(original)})
    detection = client.detect_text(original, "original")
    if detection.raw_text.strip():
        return detection

    for index, rotated in enumerate(rotation_variants(original)):
        label = f"rotated_{(index + 1) * 90}"
        attempts.append({"label": label, "size": len(rotated)})
        detection = client.detect_text(rotated, label)
        if detection.raw_text.strip():
            break

    return detection


def _failed(
    kind: str,
    storage_id: str,
    start: float,
    reason: str,
    attempts: list[dict],
) -> ImageAnalysisResponse:
    elapsed_ms = int((time.monotonic() - start) * 1000)
    return ImageAnalysisResponse(
        analysis_type=kind,
        raw_text="",
        lines=[],
        fields={},
        warnings=[NO_TEXT_WARNING, reason],
        storage_id=storage_id,
        processing_time_ms=elapsed_ms,
        debug={"attempts": attempts},
    )
