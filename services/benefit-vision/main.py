"""FastAPI benefit vision service: OCR analysis for coupons and warranties.

Handles upload, preprocessing and the text-recognition call, then runs the
heuristic field extractor over the recognized text.
Images are processed in-memory only and never logged.
"""

import logging
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, File, Form, Request, UploadFile
from fastapi.responses import JSONResponse

from analysis import analyze_lines, analyze_text
from config import settings
from extraction import analyze_image
from models import AnalysisResult, AnalysisType, ImageAnalysisResponse, TextAnalysisRequest
from multipart_body import extract_multipart_file
from ocr_client import TextRecognitionClient

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

_ocr_client: TextRecognitionClient | None = None
_ocr_available: bool = False


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize the recognition client on startup if configured."""
    global _ocr_client, _ocr_available

    if not settings.VISION_API_KEY:
        logger.info("Recognition service not configured (VISION_API_KEY is empty), image analysis disabled")
        _ocr_available = False
    else:
        logger.info("Using recognition service at %s", settings.VISION_API_URL)
        _ocr_client = TextRecognitionClient()
        _ocr_available = True

    yield

    if _ocr_client is not None:
        _ocr_client.close()
        _ocr_client = None
    _ocr_available = False


app = FastAPI(title="Benefit Vision", version="1.0.0", lifespan=lifespan)


def _unavailable() -> JSONResponse:
    return JSONResponse(
        status_code=503,
        content={"detail": "Image analysis is not available - no recognition service configured"},
    )


@app.post(
    "/api/v1/analyze",
    response_model=ImageAnalysisResponse,
    response_model_exclude_none=True,
)
async def analyze(
    file: UploadFile = File(...),
    benefit_type: AnalysisType = Form("unknown"),
):
    """Analyze an uploaded coupon or warranty photo."""
    if not _ocr_available or _ocr_client is None:
        return _unavailable()

    image_bytes = await file.read()

    if not image_bytes:
        return JSONResponse(
            status_code=400,
            content={"detail": "Empty file uploaded"},
        )

    # Log byte count only, never image content
    logger.info(
        "Processing analysis: type=%s size=%d bytes",
        benefit_type,
        len(image_bytes),
    )

    return analyze_image(image_bytes, benefit_type, _ocr_client, storage_id=uuid.uuid4().hex)


@app.post(
    "/api/v1/analyze/raw",
    response_model=ImageAnalysisResponse,
    response_model_exclude_none=True,
)
async def analyze_raw(request: Request, benefit_type: AnalysisType = "unknown"):
    """Analyze a stored upload body: bare image bytes or a whole multipart form."""
    if not _ocr_available or _ocr_client is None:
        return _unavailable()

    body = await request.body()
    if not body:
        return JSONResponse(
            status_code=400,
            content={"detail": "Empty body uploaded"},
        )

    multipart = extract_multipart_file(body, request.headers.get("content-type"))
    image_bytes = multipart.data if multipart is not None else body

    logger.info(
        "Processing raw analysis: type=%s size=%d bytes multipart=%s",
        benefit_type,
        len(image_bytes),
        multipart is not None,
    )

    return analyze_image(image_bytes, benefit_type, _ocr_client, storage_id=uuid.uuid4().hex)


@app.post(
    "/api/v1/analyze/text",
    response_model=AnalysisResult,
    response_model_exclude_none=True,
)
async def analyze_recognized_text(payload: TextAnalysisRequest):
    """Analyze text already recognized on the device."""
    if payload.lines is not None:
        return analyze_lines(payload.lines, payload.benefit_type)
    return analyze_text(payload.raw_text, payload.benefit_type)


@app.get("/health")
async def health():
    """Return service status and recognition availability."""
    base = {
        "status": "healthy",
        "ocr_available": _ocr_available,
    }

    if _ocr_available and _ocr_client is not None:
        base["ocr_health"] = _ocr_client.health()

    return base


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=settings.PORT)
