"""Runtime configuration read from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

DEFAULT_FONT_DIR = Path(__file__).resolve().parent / "fonts"


def normalise_model_name(raw_name: Optional[str]) -> str:
    """Normalise user-provided model identifiers to the API format."""

    if not raw_name:
        return "models/gemini-1.5-flash"

    slug = raw_name.strip().lower().replace(" ", "-")
    if not slug.startswith("models/"):
        slug = f"models/{slug}"
    return slug


@dataclass(frozen=True)
class Settings:
    """Immutable process-wide settings. Built once, never mutated."""

    google_api_key: Optional[str] = None
    gemini_model: str = "models/gemini-1.5-flash"
    temperature: float = 0.0
    max_output_tokens: int = 4096
    detector: str = "vision"
    render_dpi: int = 150
    font_dir: Path = DEFAULT_FONT_DIR
    storage_backend: str = "local"
    output_dir: Path = Path("output")
    s3_bucket: Optional[str] = None
    url_expiry_seconds: int = 3600
    baseline_offset: float = 7.5
    tesseract_lang: str = "eng"

    @classmethod
    def from_env(cls, dotenv: bool = True) -> "Settings":
        if dotenv:
            load_dotenv()
        return cls(
            google_api_key=os.getenv("GOOGLE_API_KEY") or os.getenv("GEMINI_API_KEY"),
            gemini_model=normalise_model_name(os.getenv("GEMINI_MODEL")),
            temperature=float(os.getenv("TEMPERATURE", "0.0")),
            max_output_tokens=int(os.getenv("MAX_OUTPUT_TOKENS", "4096")),
            detector=os.getenv("FORMFILLER_DETECTOR", "vision").strip().lower(),
            render_dpi=int(os.getenv("FORMFILLER_RENDER_DPI", "150")),
            font_dir=Path(os.getenv("FORMFILLER_FONT_DIR", str(DEFAULT_FONT_DIR))),
            storage_backend=os.getenv("FORMFILLER_STORAGE", "local").strip().lower(),
            output_dir=Path(os.getenv("FORMFILLER_OUTPUT_DIR", "output")),
            s3_bucket=os.getenv("AWS_S3_BUCKET_NAME"),
            url_expiry_seconds=int(os.getenv("FORMFILLER_URL_EXPIRY", "3600")),
            baseline_offset=float(os.getenv("FORMFILLER_BASELINE_OFFSET", "7.5")),
            tesseract_lang=os.getenv("TESSERACT_LANG", "eng"),
        )


__all__ = ["DEFAULT_FONT_DIR", "Settings", "normalise_model_name"]
