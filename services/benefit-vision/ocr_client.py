"""HTTP client for the text-recognition service (Cloud Vision images:annotate).

Uses httpx with configurable timeouts and tenacity for retry with
exponential backoff on 429/503 and connection errors.
"""

import base64
import logging
import time
from dataclasses import dataclass

import httpx
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from config import settings

logger = logging.getLogger(__name__)

RETRYABLE_STATUS = {429, 503}


class RecognitionServiceUnavailable(Exception):
    """Recognition service is temporarily unavailable (retryable: 429, 503, connection error)."""


class RecognitionServiceError(Exception):
    """Recognition service returned a non-retryable error (400, 403, 500, per-image error)."""


@dataclass
class DetectionResult:
    raw_text: str
    text_annotations: int
    pages: int


class TextRecognitionClient:
    """HTTP client for the text-recognition service with retry and backoff."""

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        language_hints: list[str] | None = None,
        timeout: int | None = None,
        connect_timeout: int | None = None,
        retry_attempts: int | None = None,
        retry_delay: float | None = None,
        retry_backoff: float | None = None,
    ):
        self._base_url = (base_url or settings.VISION_API_URL).rstrip("/")
        self._api_key = api_key if api_key is not None else settings.VISION_API_KEY
        self._language_hints = language_hints if language_hints is not None else settings.VISION_LANGUAGE_HINTS
        self._retry_attempts = retry_attempts if retry_attempts is not None else settings.VISION_RETRY_ATTEMPTS
        self._retry_delay = retry_delay if retry_delay is not None else settings.VISION_RETRY_DELAY
        self._retry_backoff = retry_backoff if retry_backoff is not None else settings.VISION_RETRY_BACKOFF

        read_timeout = timeout if timeout is not None else settings.VISION_TIMEOUT_SECONDS
        conn_timeout = connect_timeout if connect_timeout is not None else settings.VISION_CONNECT_TIMEOUT

        self._client = httpx.Client(
            base_url=self._base_url,
            headers={"X-Goog-Api-Key": self._api_key},
            timeout=httpx.Timeout(
                connect=float(conn_timeout),
                read=float(read_timeout),
                write=30.0,
                pool=30.0,
            ),
        )

    def close(self):
        self._client.close()

    def detect_text(self, image_bytes: bytes, label: str = "image") -> DetectionResult:
        """Recognize text in an image.

        Tries TEXT_DETECTION first and falls back to DOCUMENT_TEXT_DETECTION
        when the first pass finds nothing at all.
        Raises RecognitionServiceUnavailable (retryable) or RecognitionServiceError.
        """
        content = base64.b64encode(image_bytes).decode()

        start = time.monotonic()
        response = self._annotate(content, "TEXT_DETECTION")
        logger.info("vision: text detection (%s) took %dms", label, (time.monotonic() - start) * 1000)

        annotation = response.get("fullTextAnnotation") or {}
        text_annotations = response.get("textAnnotations") or []

        if not (annotation.get("text") or "").strip() and not text_annotations:
            start = time.monotonic()
            document = self._annotate(content, "DOCUMENT_TEXT_DETECTION")
            logger.info("vision: document detection (%s) took %dms", label, (time.monotonic() - start) * 1000)
            annotation = document.get("fullTextAnnotation") or annotation
            text_annotations = document.get("textAnnotations") or text_annotations

        raw_text = annotation.get("text") or ""
        if not raw_text and text_annotations:
            raw_text = text_annotations[0].get("description") or ""

        return DetectionResult(
            raw_text=raw_text,
            text_annotations=len(text_annotations),
            pages=len(annotation.get("pages") or []),
        )

    def _annotate(self, content_b64: str, feature: str) -> dict:
        payload = {
            "requests": [
                {
                    "image": {"content": content_b64},
                    "features": [{"type": feature}],
                    "imageContext": {"languageHints": self._language_hints},
                }
            ]
        }
        data = self._annotate_with_retry(payload)
        if not isinstance(data, dict):
            raise RecognitionServiceError(f"Unexpected response body: {type(data).__name__}")

        responses = data.get("responses") or [{}]
        result = responses[0] if isinstance(responses, list) else None
        if not isinstance(result, dict):
            raise RecognitionServiceError("Unexpected response entry in annotate batch")
        error = result.get("error")
        if error:
            message = error.get("message", "unknown error") if isinstance(error, dict) else str(error)
            logger.error("vision: %s returned an error: %s", feature, message)
            raise RecognitionServiceError(message)
        return result

    def _annotate_with_retry(self, payload: dict) -> dict:
        """Retry wrapper, configured dynamically based on settings."""

        @retry(
            retry=retry_if_exception_type(RecognitionServiceUnavailable),
            stop=stop_after_attempt(self._retry_attempts),
            wait=wait_exponential(
                multiplier=self._retry_delay,
                exp_base=self._retry_backoff,
                max=30,
            ),
            reraise=True,
            before_sleep=lambda state: logger.warning(
                "Recognition service unavailable, retrying in %.1fs (attempt %d/%d)",
                state.next_action.sleep,  # type: ignore[union-attr]
                state.attempt_number,
                self._retry_attempts,
            ),
        )
        def _do_annotate() -> dict:
            return self._send_annotate(payload)

        return _do_annotate()

    def _send_annotate(self, payload: dict) -> dict:
        """Send a single annotate request."""
        try:
            resp = self._client.post("/images:annotate", json=payload)
        except (httpx.ConnectError, httpx.ConnectTimeout) as e:
            logger.warning("Recognition service connection failed: %s", e)
            raise RecognitionServiceUnavailable(f"Cannot connect to recognition service: {e}") from e
        except httpx.ReadTimeout as e:
            logger.warning("Recognition service read timeout: %s", e)
            raise RecognitionServiceUnavailable(f"Recognition service read timeout: {e}") from e
        except httpx.HTTPError as e:
            logger.error("Recognition service HTTP error: %s", e)
            raise RecognitionServiceError(f"Recognition service HTTP error: {e}") from e

        if resp.status_code in RETRYABLE_STATUS:
            detail = _error_detail(resp)
            logger.warning("Recognition service returned %d: %s", resp.status_code, detail)
            raise RecognitionServiceUnavailable(detail)

        if resp.status_code != 200:
            detail = _error_detail(resp)
            logger.error("Recognition service error %d: %s", resp.status_code, detail)
            raise RecognitionServiceError(detail)

        try:
            return resp.json()
        except ValueError as e:
            logger.error("Recognition service returned a non-JSON body: %s", e)
            raise RecognitionServiceError(f"Recognition service returned invalid JSON: {e}") from e

    def health(self) -> dict:
        """Probe the recognition endpoint with an empty batch. Never raises."""
        try:
            resp = self._client.post(
                "/images:annotate",
                json={"requests": []},
                timeout=10.0,
            )
            if resp.status_code == 200:
                return {"status": "reachable", "ready": True}
            return {"status": "error", "ready": False, "error": _error_detail(resp)}
        except Exception as e:
            logger.warning("Recognition health check failed: %s", e)
            return {"status": "unreachable", "ready": False, "error": str(e)}


def _error_detail(resp: httpx.Response) -> str:
    """Pull the message out of a Google-style ``{"error": {...}}`` body."""
    try:
        body = resp.json()
    except ValueError:
        return f"HTTP {resp.status_code}"
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return error["message"]
    if isinstance(body, dict) and body.get("detail"):
        return str(body["detail"])
    return f"HTTP {resp.status_code}"
