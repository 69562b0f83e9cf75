"""
Central configuration for the replacement engine.
Uses environment variables with sensible defaults.
"""

from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Detection
    padding: int = Field(default=0, alias="REGIONSWAP_PADDING")
    match_threshold: float = Field(default=0.8, alias="REGIONSWAP_MATCH_THRESHOLD")
    template_path: Optional[Path] = Field(default=None, alias="REGIONSWAP_TEMPLATE")
    detector: str = Field(default="template", alias="REGIONSWAP_DETECTOR")

    # Outputs (one file per variant, placeholder replaced by variant name)
    output_placeholder: str = Field(default="{name}", alias="REGIONSWAP_OUTPUT_PLACEHOLDER")
    default_variant_name: str = Field(default="default", alias="REGIONSWAP_DEFAULT_VARIANT")

    # Decoding: frames kept around so lookahead does not re-seek
    decode_window: int = Field(default=64, alias="REGIONSWAP_DECODE_WINDOW")
    fallback_fps: float = Field(default=30.0, alias="REGIONSWAP_FALLBACK_FPS")

    # Encoding (CRF 18 = visually lossless)
    video_codec: str = Field(default="libx264", alias="REGIONSWAP_VIDEO_CODEC")
    video_crf: int = Field(default=18, alias="REGIONSWAP_VIDEO_CRF")
    pix_fmt: str = Field(default="yuv420p", alias="REGIONSWAP_PIX_FMT")

    # Variant generation
    font_path: Optional[str] = Field(default=None, alias="REGIONSWAP_FONT")
    text_color: tuple[int, int, int] = Field(default=(0, 0, 0), alias="REGIONSWAP_TEXT_COLOR")
    background_color: tuple[int, int, int] = Field(default=(255, 255, 255), alias="REGIONSWAP_BACKGROUND_COLOR")
    http_timeout: float = Field(default=30.0, alias="REGIONSWAP_HTTP_TIMEOUT")

    log_level: str = Field(default="INFO", alias="REGIONSWAP_LOG_LEVEL")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "populate_by_name": True,
    }


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get settings, initializing if needed."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


settings = get_settings()
