"""Environment-based configuration for the benefit vision service."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Benefit vision settings, loaded from environment variables."""

    # Server
    PORT: int = 8092
    LOG_LEVEL: str = "INFO"

    # Text-recognition service (empty key = recognition unavailable, local dev default)
    VISION_API_URL: str = "https://vision.googleapis.com/v1"
    VISION_API_KEY: str = ""
    VISION_LANGUAGE_HINTS: list[str] = ["en"]

    # Text-recognition timeouts and retry
    VISION_TIMEOUT_SECONDS: int = 60
    VISION_CONNECT_TIMEOUT: int = 10
    VISION_RETRY_ATTEMPTS: int = 3
    VISION_RETRY_DELAY: float = 1.0
    VISION_RETRY_BACKOFF: float = 2.0

    # Preprocessing (images at or below PREPROCESS_MIN_BYTES are sent untouched)
    PREPROCESS_MIN_BYTES: int = 80_000
    PREPROCESS_MIN_DIMENSION: int = 960
    PREPROCESS_CONTRAST: float = 0.15

    model_config = {"env_prefix": "", "case_sensitive": True}


settings = Settings()
