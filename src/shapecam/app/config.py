"""Configuration for the shapecam camera application.

This module provides environment-based settings for the application.
Uses pydantic-settings for validation and type coercion.
"""

from functools import lru_cache
from typing import Literal, get_args

from pydantic_settings import BaseSettings, SettingsConfigDict

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
LOG_LEVELS = get_args(LogLevel)


class Settings(BaseSettings):
    """Camera application settings.

    Attributes:
        LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        LOG_FORMAT: "json" for structured logs, "text" for plain lines
        MODELS_DIR: Directory containing the bundled model file
        MODEL_NAME: Model resource name; defaults to the name in classifier.yaml
        CLASSIFIER_CONFIG: Optional alternative classifier.yaml
        CAMERA_INDEX: OpenCV capture device index
        WINDOW_NAME: Preview window title
        INTRA_OP_THREADS: ONNX Runtime intra-op threads
        INTER_OP_THREADS: ONNX Runtime inter-op threads
    """

    LOG_LEVEL: LogLevel = "INFO"
    LOG_FORMAT: Literal["json", "text"] = "json"
    MODELS_DIR: str = "models"
    MODEL_NAME: str | None = None
    CLASSIFIER_CONFIG: str | None = None
    CAMERA_INDEX: int = 0
    WINDOW_NAME: str = "shapecam"
    INTRA_OP_THREADS: int = 1
    INTER_OP_THREADS: int = 1

    model_config = SettingsConfigDict(
        env_prefix="SHAPECAM_",
        env_file=".env",
        case_sensitive=True,
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached Settings instance (singleton pattern).

    Returns:
        Validated Settings instance
    """
    return Settings()
