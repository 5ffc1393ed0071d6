"""Image preprocessing before text recognition.

Improves recognition on phone photos of receipts and coupons:
1. Skip small uploads (already compact, usually screenshots)
2. Decode image bytes
3. Upscale images below the minimum dimension
4. Min-max normalize intensities
5. Boost contrast
6. Convert to greyscale
7. Encode as JPEG

Each step degrades gracefully: if it fails, the previous image continues.
"""

import logging

import cv2
import numpy as np

from config import settings

logger = logging.getLogger(__name__)

ROTATION_CODES: dict[int, int] = {
    90: cv2.ROTATE_90_CLOCKWISE,
    180: cv2.ROTATE_180,
    270: cv2.ROTATE_90_COUNTERCLOCKWISE,
}


def preprocess(
    image_bytes: bytes,
    min_bytes: int | None = None,
    min_dimension: int | None = None,
    contrast: float | None = None,
) -> bytes:
    """Run the preprocessing pipeline on raw image bytes.

    Returns JPEG bytes, or the original bytes when the image is small
    enough to send as is or cannot be decoded.
    """
    min_bytes = min_bytes if min_bytes is not None else settings.PREPROCESS_MIN_BYTES
    min_dimension = min_dimension if min_dimension is not None else settings.PREPROCESS_MIN_DIMENSION
    contrast = contrast if contrast is not None else settings.PREPROCESS_CONTRAST

    if len(image_bytes) <= min_bytes:
        return image_bytes

    img = _decode(image_bytes)
    if img is None:
        logger.warning("preprocessing: could not decode image, returning original")
        return image_bytes

    img = _upscale(img, min_dimension)
    img = _normalize(img)
    img = _adjust_contrast(img, contrast)
    img = _greyscale(img)
    return _encode(img, fallback=image_bytes)


def rotation_variants(image_bytes: bytes) -> list[bytes]:
    """Return JPEG encodings of the image rotated by 90, 180 and 270 degrees."""
    img = _decode(image_bytes)
    if img is None:
        logger.warning("preprocessing: could not decode image for rotation")
        return []

    variants: list[bytes] = []
    for degrees, code in ROTATION_CODES.items():
        try:
            rotated = cv2.rotate(img, code)
        except cv2.error as e:
            logger.warning("preprocessing: rotation by %d failed: %s", degrees, e)
            continue
        encoded = _encode(rotated, fallback=b"")
        if encoded:
            variants.append(encoded)
    return variants


def _decode(image_bytes: bytes) -> np.ndarray | None:
    """Decode raw bytes into an OpenCV BGR array."""
    if not image_bytes:
        return None
    arr = np.frombuffer(image_bytes, dtype=np.uint8)
    img = cv2.imdecode(arr, cv2.IMREAD_COLOR)
    return img


def _upscale(img: np.ndarray, min_dimension: int) -> np.ndarray:
    """Scale small images up so both sides reach ``min_dimension`` where possible."""
    try:
        h, w = img.shape[:2]
        if w >= min_dimension and h >= min_dimension:
            return img

        target_w = max(w, min_dimension)
        target_h = max(h, min_dimension)
        factor = min(target_w / w, target_h / h)
        if factor <= 1:
            return img

        logger.debug("preprocessing: upscaling %dx%d by %.2f", w, h, factor)
        return cv2.resize(img, None, fx=factor, fy=factor, interpolation=cv2.INTER_CUBIC)

    except Exception as e:
        logger.warning("preprocessing: upscale failed: %s", e)
        return img


def _normalize(img: np.ndarray) -> np.ndarray:
    """Stretch intensities to the full 0-255 range."""
    try:
        return cv2.normalize(img, None, 0, 255, cv2.NORM_MINMAX)
    except Exception as e:
        logger.warning("preprocessing: normalize failed: %s", e)
        return img


def _adjust_contrast(img: np.ndarray, amount: float) -> np.ndarray:
    """Increase contrast around mid-grey; ``amount`` is in (-1, 1)."""
    try:
        factor = (1 + amount) / (1 - amount)
        return cv2.convertScaleAbs(img, alpha=factor, beta=127.5 * (1 - factor))
    except Exception as e:
        logger.warning("preprocessing: contrast failed: %s", e)
        return img


def _greyscale(img: np.ndarray) -> np.ndarray:
    try:
        if img.ndim == 2:
            return img
        return cv2.cvtColor(img, cv2.COLOR_BGR2GRAY)
    except Exception as e:
        logger.warning("preprocessing: greyscale failed: %s", e)
        return img


def _encode(img: np.ndarray, fallback: bytes) -> bytes:
    """Encode image as JPEG bytes."""
    try:
        success, buf = cv2.imencode(".jpg", img, [cv2.IMWRITE_JPEG_QUALITY, 95])
        if success:
            return buf.tobytes()
    except Exception as e:
        logger.warning("preprocessing: JPEG encode failed: %s", e)

    return fallback
